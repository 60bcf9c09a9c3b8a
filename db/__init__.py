"""Módulo de base de datos de Gladiator League.

Este módulo centraliza toda la funcionalidad relacionada con la base de datos:
- Modelos SQLAlchemy
- Configuración de conexión
- Lógica de clasificación
- Utilidades de consulta
"""

from db.connection import DATABASE_URL, init_db, get_session, get_engine
from db.models import (
    Base,
    Season,
    Conference,
    Team,
    TeamConference,
    Matchup,
    TeamRecord,
    Player,
    DraftResult,
    MatchupAdminOverride,
    PlayoffFormat,
    PlayoffBracket,
    TeamRoster,
    Transaction,
    SystemStatus,
    LogEntry,
)

# Importar funciones de consulta
from db.query import (
    get_seasons,
    get_current_season,
    get_season_by_year,
    get_conferences,
    get_playoff_format,
    get_standings,
    get_matchups,
    get_matchup_detail,
    get_weeks_with_matchups,
    get_teams,
    get_team_detail,
    get_players,
    get_rostered_players,
    get_player_detail,
    get_draft_results,
    get_transactions,
    get_playoff_bracket,
    get_active_overrides,
    get_database_stats,
)

# Importar funciones de resumen
from db.summary import (
    get_record_counts,
    print_summary,
    get_summary_string
)

__all__ = [
    'DATABASE_URL',
    'init_db',
    'get_session',
    'get_engine',
    'Base',
    'Season',
    'Conference',
    'Team',
    'TeamConference',
    'Matchup',
    'TeamRecord',
    'Player',
    'DraftResult',
    'MatchupAdminOverride',
    'PlayoffFormat',
    'PlayoffBracket',
    'TeamRoster',
    'Transaction',
    'SystemStatus',
    'LogEntry',
    # Funciones de consulta
    'get_seasons',
    'get_current_season',
    'get_season_by_year',
    'get_conferences',
    'get_playoff_format',
    'get_standings',
    'get_matchups',
    'get_matchup_detail',
    'get_weeks_with_matchups',
    'get_teams',
    'get_team_detail',
    'get_players',
    'get_rostered_players',
    'get_player_detail',
    'get_draft_results',
    'get_transactions',
    'get_playoff_bracket',
    'get_active_overrides',
    'get_database_stats',
    # Funciones de resumen
    'get_record_counts',
    'print_summary',
    'get_summary_string',
]
