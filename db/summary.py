"""Utilidad para mostrar un resumen del número de registros en la base de datos.

Este módulo proporciona funciones simples para obtener y mostrar
el conteo de registros en cada tabla de la base de datos.
"""

from typing import Dict

from db.connection import get_session
from db.models import (
    Season, Conference, Team, TeamConference, Matchup, TeamRecord, Player,
    DraftResult, Transaction, TeamRoster, MatchupAdminOverride
)


def get_record_counts() -> Dict[str, int]:
    """Obtiene el número de registros en cada tabla de la base de datos.

    Returns:
        Diccionario con el nombre de la tabla como clave y el conteo como valor
    """
    session = get_session()
    try:
        return {
            'seasons': session.query(Season).count(),
            'conferences': session.query(Conference).count(),
            'teams': session.query(Team).count(),
            'team_conferences': session.query(TeamConference).count(),
            'matchups': session.query(Matchup).count(),
            'team_records': session.query(TeamRecord).count(),
            'players': session.query(Player).count(),
            'draft_results': session.query(DraftResult).count(),
            'transactions': session.query(Transaction).count(),
            'team_rosters': session.query(TeamRoster).count(),
            'matchup_overrides': session.query(MatchupAdminOverride).count(),
        }
    finally:
        session.close()


def get_summary_string() -> str:
    """Retorna un resumen del número de registros como string.

    Returns:
        String con el resumen formateado
    """
    counts = get_record_counts()
    total = sum(counts.values())

    max_table_name_width = max(len(name) for name in counts.keys())

    lines = []
    lines.append("=" * 70)
    lines.append("RESUMEN DE REGISTROS EN LA BASE DE DATOS")
    lines.append("=" * 70)

    for table_name, count in sorted(counts.items()):
        display_name = table_name.replace('_', ' ').title()
        lines.append(f"  {display_name:<{max_table_name_width + 5}} {count:>12,}")

    lines.append("-" * 70)
    lines.append(f"  {'TOTAL':<{max_table_name_width + 5}} {total:>12,}")
    lines.append("=" * 70)

    return "\n".join(lines)


def print_summary():
    """Imprime un resumen visual del número de registros en cada tabla."""
    print("\n" + get_summary_string() + "\n")
