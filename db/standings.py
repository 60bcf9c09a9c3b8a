"""Lógica de liga sobre registros ya cargados.

Funciones puras (sin sesión) para:
- Agregar récords a partir de enfrentamientos completados
- Construir la clasificación general y por conferencia
- Elegibilidad y siembra de playoffs
- Ordenación por columnas, formato de récords y puntos
- Agrupación del draft y utilidades de conferencias

Los registros pueden ser objetos ORM o diccionarios.
"""

from typing import Any, Dict, List, Optional

from ingestion.config import DEFAULT_PLAYOFF_FORMAT


def _field(obj: Any, name: str, default: Any = None) -> Any:
    """Lee un campo de un diccionario o de un objeto."""
    if isinstance(obj, dict):
        value = obj.get(name, default)
    else:
        value = getattr(obj, name, default)
    return default if value is None else value


def _format_value(playoff_format: Any, name: str) -> Any:
    if playoff_format is None:
        return DEFAULT_PLAYOFF_FORMAT[name]
    return _field(playoff_format, name, DEFAULT_PLAYOFF_FORMAT[name])


# =============================================================================
# Récords
# =============================================================================

def compute_team_records(matchups: List[Any], team_conferences: Dict[int, int]) -> Dict[int, Dict[str, Any]]:
    """Agrega victorias, derrotas, empates y puntos por equipo.

    Solo cuentan los enfrentamientos completados con dos equipos. Sin ganador
    significa empate.

    Args:
        matchups: Enfrentamientos (Matchup o dicts)
        team_conferences: Mapa team_id -> conference_id

    Returns:
        Dict team_id -> dict con wins, losses, ties, points_for,
        points_against, point_diff y conference_id
    """
    records: Dict[int, Dict[str, Any]] = {}

    def _record(team_id: int) -> Dict[str, Any]:
        if team_id not in records:
            records[team_id] = {
                'team_id': team_id,
                'conference_id': team_conferences.get(team_id),
                'wins': 0, 'losses': 0, 'ties': 0,
                'points_for': 0.0, 'points_against': 0.0, 'point_diff': 0.0,
            }
        return records[team_id]

    for team_id in team_conferences:
        _record(team_id)

    for m in matchups:
        if _field(m, 'matchup_status') != 'complete' or _field(m, 'is_bye', False):
            continue
        team1_id = _field(m, 'team1_id')
        team2_id = _field(m, 'team2_id')
        if team1_id is None or team2_id is None:
            continue

        score1 = float(_field(m, 'team1_score', 0))
        score2 = float(_field(m, 'team2_score', 0))
        winner = _field(m, 'winning_team_id')

        r1, r2 = _record(team1_id), _record(team2_id)
        r1['points_for'] += score1
        r1['points_against'] += score2
        r2['points_for'] += score2
        r2['points_against'] += score1

        if winner == team1_id:
            r1['wins'] += 1
            r2['losses'] += 1
        elif winner == team2_id:
            r2['wins'] += 1
            r1['losses'] += 1
        else:
            r1['ties'] += 1
            r2['ties'] += 1

    for r in records.values():
        r['points_for'] = round(r['points_for'], 2)
        r['points_against'] = round(r['points_against'], 2)
        r['point_diff'] = round(r['points_for'] - r['points_against'], 2)

    return records


def win_percentage(wins: int, losses: int, ties: int) -> float:
    games = wins + losses + ties
    return wins / games if games > 0 else 0.0


# =============================================================================
# Clasificación
# =============================================================================

def _rank_key(row: Dict[str, Any]):
    return (-row['win_percentage'], -row['points_for'])


def build_standings(
    records: List[Any],
    teams: Dict[int, Any],
    conferences: Dict[int, Any],
    playoff_format: Any = None
) -> List[Dict[str, Any]]:
    """Construye la clasificación a partir de los récords.

    1. Convierte cada récord en una fila con valores por defecto.
    2. Ordena (estable) por porcentaje de victorias y puntos a favor y
       asigna overall_rank.
    3. Repite la ordenación dentro de cada conferencia (conference_rank);
       el primero es campeón de conferencia.
    4. Los campeones entran siempre en playoffs; las plazas restantes van a
       los mejores no campeones por overall_rank.

    Args:
        records: TeamRecord o dicts con team_id, conference_id, wins...
        teams: Mapa team_id -> Team (o dict con team_name/owner_name)
        conferences: Mapa conference_id -> Conference (o dict con conference_name)
        playoff_format: PlayoffFormat o dict; si es None se usa el formato por defecto

    Returns:
        Lista de filas ordenadas por overall_rank
    """
    rows = []
    for record in records:
        team_id = _field(record, 'team_id')
        conference_id = _field(record, 'conference_id')
        team = teams.get(team_id)
        conference = conferences.get(conference_id)
        wins = int(_field(record, 'wins', 0))
        losses = int(_field(record, 'losses', 0))
        ties = int(_field(record, 'ties', 0))
        points_for = float(_field(record, 'points_for', 0))
        points_against = float(_field(record, 'points_against', 0))

        rows.append({
            'team_id': team_id,
            'team_name': _field(team, 'team_name', f"Team {team_id}") if team is not None else f"Team {team_id}",
            'owner_name': _field(team, 'owner_name', 'Unknown Owner') if team is not None else 'Unknown Owner',
            'team_logourl': _field(team, 'team_logourl') if team is not None else None,
            'conference_id': conference_id,
            'conference_name': (
                _field(conference, 'conference_name', 'Unknown Conference')
                if conference is not None else 'Unknown Conference'
            ),
            'wins': wins,
            'losses': losses,
            'ties': ties,
            'points_for': points_for,
            'points_against': points_against,
            'point_diff': round(points_for - points_against, 2),
            'win_percentage': win_percentage(wins, losses, ties),
            'overall_rank': 0,
            'conference_rank': 0,
            'is_conference_champion': False,
            'playoff_eligible': False,
            'playoff_seed': None,
            'has_bye': False,
        })

    rows.sort(key=_rank_key)
    for index, row in enumerate(rows):
        row['overall_rank'] = index + 1

    by_conference: Dict[Any, List[Dict[str, Any]]] = {}
    for row in rows:
        by_conference.setdefault(row['conference_id'], []).append(row)
    for conference_rows in by_conference.values():
        conference_rows.sort(key=_rank_key)
        for index, row in enumerate(conference_rows):
            row['conference_rank'] = index + 1
            row['is_conference_champion'] = index == 0

    playoff_teams = int(_format_value(playoff_format, 'playoff_teams'))
    champions = [row for row in rows if row['is_conference_champion']]
    non_champions = [row for row in rows if not row['is_conference_champion']]
    for row in champions:
        row['playoff_eligible'] = True
    for row in non_champions[:max(0, playoff_teams - len(champions))]:
        row['playoff_eligible'] = True

    return rows


def assign_playoff_seeds(standings: List[Dict[str, Any]], playoff_format: Any = None) -> List[Dict[str, Any]]:
    """Asigna semillas de playoffs a las filas elegibles.

    Los campeones de conferencia reciben las primeras semillas (por
    overall_rank), después el resto de clasificados. Las primeras
    week_14_byes semillas descansan en la primera ronda.

    Returns:
        Lista de filas clasificadas ordenadas por semilla
    """
    byes = int(_format_value(playoff_format, 'week_14_byes'))
    eligible = [row for row in standings if row.get('playoff_eligible')]
    champions = sorted((r for r in eligible if r.get('is_conference_champion')), key=lambda r: r['overall_rank'])
    others = sorted((r for r in eligible if not r.get('is_conference_champion')), key=lambda r: r['overall_rank'])

    seeded = champions + others
    for index, row in enumerate(seeded):
        row['playoff_seed'] = index + 1
        row['has_bye'] = index < byes
    return seeded


# =============================================================================
# Cuadro de playoffs
# =============================================================================

def playoff_round_name(round_number: int, teams: int) -> str:
    """Nombre de una ronda según los equipos que siguen vivos."""
    if teams == 2:
        return 'Final'
    if teams <= 4:
        return 'Semifinales'
    if teams <= 8:
        return 'Cuartos de final'
    return f'Ronda {round_number}'


def _bracket_entry(round_number: int, week: int, first: tuple, second: Optional[tuple] = None) -> Dict[str, Any]:
    return {
        'round': round_number,
        'week': week,
        'team1_seed': first[0],
        'team1_id': first[1],
        'team2_seed': second[0] if second else None,
        'team2_id': second[1] if second else None,
        'is_bye': second is None,
        'winner_team_id': first[1] if second is None else None,
        'team1_score': None,
        'team2_score': None,
    }


def _pair_highest_lowest(participants: List[tuple], round_number: int, week: int) -> List[Dict[str, Any]]:
    """El primero juega contra el último; con número impar el del medio descansa."""
    entries = []
    low, high = 0, len(participants) - 1
    while low < high:
        entries.append(_bracket_entry(round_number, week, participants[low], participants[high]))
        low += 1
        high -= 1
    if low == high:
        entries.append(_bracket_entry(round_number, week, participants[low]))
    return entries


def _number_round(entries: List[Dict[str, Any]], round_number: int, teams: int) -> List[Dict[str, Any]]:
    name = playoff_round_name(round_number, teams)
    for index, entry in enumerate(entries):
        entry['matchup_number'] = index + 1
        entry['playoff_round_name'] = name
    return entries


def build_first_round(seeded: List[Dict[str, Any]], playoff_format: Any = None) -> List[Dict[str, Any]]:
    """Primera ronda del cuadro a partir de las filas sembradas.

    Las primeras week_14_byes semillas descansan; el resto se empareja
    mejor semilla contra peor semilla.

    Args:
        seeded: Filas de assign_playoff_seeds (ordenadas por semilla)
        playoff_format: Formato de playoffs (o None para el de por defecto)
    """
    participants = [(row['playoff_seed'], row['team_id']) for row in seeded]
    byes = min(int(_format_value(playoff_format, 'week_14_byes')), len(participants))
    week = int(_format_value(playoff_format, 'playoff_start_week'))

    entries = [_bracket_entry(1, week, participant) for participant in participants[:byes]]
    entries.extend(_pair_highest_lowest(participants[byes:], 1, week))
    return _number_round(entries, 1, len(participants))


def build_next_round(previous_round: List[Any], reseed: bool = True) -> List[Dict[str, Any]]:
    """Siguiente ronda con los ganadores (y los que descansaron) de la anterior.

    Con reseeding los supervivientes se ordenan por semilla; sin él se
    mantiene el orden del cuadro. En ambos casos juega el primero contra el
    último.

    Raises:
        ValueError: Si falta algún ganador o el cuadro ya tiene campeón
    """
    if not previous_round:
        raise ValueError("No hay ronda anterior")

    participants = []
    for entry in sorted(previous_round, key=lambda e: _field(e, 'matchup_number', 0)):
        team1_id = _field(entry, 'team1_id')
        is_bye = _field(entry, 'is_bye', False)
        winner = _field(entry, 'winner_team_id') or (team1_id if is_bye else None)
        if winner is None:
            raise ValueError(f"El cruce {_field(entry, 'matchup_number')} no tiene ganador")
        seed = _field(entry, 'team1_seed') if winner == team1_id else _field(entry, 'team2_seed')
        participants.append((seed, winner))

    if len(participants) < 2:
        raise ValueError("El cuadro ya tiene campeón")
    if reseed:
        participants.sort(key=lambda p: (p[0] is None, p[0] or 0))

    round_number = max(_field(e, 'round', 1) for e in previous_round) + 1
    week = max(_field(e, 'week', 0) for e in previous_round) + 1
    entries = _pair_highest_lowest(participants, round_number, week)
    return _number_round(entries, round_number, len(participants))


# Columnas permitidas para ordenar la clasificación
SORTABLE_COLUMNS = {
    'rank': 'overall_rank',
    'overall_rank': 'overall_rank',
    'conference_rank': 'conference_rank',
    'team': 'team_name',
    'team_name': 'team_name',
    'owner': 'owner_name',
    'conference': 'conference_name',
    'wins': 'wins',
    'losses': 'losses',
    'ties': 'ties',
    'win_percentage': 'win_percentage',
    'points_for': 'points_for',
    'points_against': 'points_against',
    'point_diff': 'point_diff',
}


def sort_standings(rows: List[Dict[str, Any]], key: Optional[str] = None, direction: str = 'asc') -> List[Dict[str, Any]]:
    """Ordena filas por una columna elegida por el usuario.

    Los valores None quedan siempre al final. Una columna desconocida
    devuelve las filas ordenadas por overall_rank.
    """
    column = SORTABLE_COLUMNS.get(key or 'rank', 'overall_rank')
    reverse = (direction or 'asc').lower() == 'desc'

    present = [r for r in rows if r.get(column) is not None]
    missing = [r for r in rows if r.get(column) is None]

    def _sort_value(row):
        value = row[column]
        return value.lower() if isinstance(value, str) else value

    return sorted(present, key=_sort_value, reverse=reverse) + missing


# =============================================================================
# Formato
# =============================================================================

def format_record(wins: Optional[int], losses: Optional[int], ties: Optional[int] = 0) -> str:
    """Formatea un récord como "W-L" o "W-L-T" si hay empates."""
    wins, losses, ties = wins or 0, losses or 0, ties or 0
    if ties > 0:
        return f"{wins}-{losses}-{ties}"
    return f"{wins}-{losses}"


def format_points(points: Optional[float]) -> str:
    """Formatea puntos con un decimal."""
    return f"{float(points or 0):.1f}"


# =============================================================================
# Draft
# =============================================================================

def group_draft_picks(picks: List[Any]) -> Dict[str, Any]:
    """Agrupa selecciones por ronda y por equipo y cuenta posiciones.

    Returns:
        Dict con 'by_round' (ronda -> picks por pick_number),
        'by_owner' (owner_id -> picks) y 'position_counts' (posición -> n)
    """
    by_round: Dict[int, List[Any]] = {}
    by_owner: Dict[Any, List[Any]] = {}
    position_counts: Dict[str, int] = {}

    for pick in sorted(picks, key=lambda p: _field(p, 'pick_number', 0)):
        by_round.setdefault(_field(pick, 'round', 0), []).append(pick)
        by_owner.setdefault(_field(pick, 'owner_id', 'unknown'), []).append(pick)
        position = _field(pick, 'position', 'UNK')
        position_counts[position] = position_counts.get(position, 0) + 1

    return {
        'by_round': dict(sorted(by_round.items())),
        'by_owner': by_owner,
        'position_counts': dict(sorted(position_counts.items(), key=lambda kv: (-kv[1], kv[0]))),
    }


# =============================================================================
# Conferencias
# =============================================================================

def find_conference_by_name(conferences: List[Any], name: Optional[str]) -> Optional[Any]:
    """Busca una conferencia: coincidencia exacta, sin mayúsculas y parcial."""
    if not conferences or not name:
        return None

    for conference in conferences:
        if _field(conference, 'conference_name') == name:
            return conference

    lowered = name.lower()
    for conference in conferences:
        if (_field(conference, 'conference_name', '') or '').lower() == lowered:
            return conference

    for conference in conferences:
        candidate = (_field(conference, 'conference_name', '') or '').lower()
        if candidate and (lowered in candidate or candidate in lowered):
            return conference
    return None


def group_conferences_by_status(conferences: List[Any]) -> Dict[str, List[Any]]:
    groups: Dict[str, List[Any]] = {}
    for conference in conferences:
        groups.setdefault(_field(conference, 'status', 'unknown'), []).append(conference)
    return groups


def sort_conferences_by_name(conferences: List[Any]) -> List[Any]:
    return sorted(conferences, key=lambda c: (_field(c, 'conference_name', '') or '').lower())


def is_valid_league_id(league_id: Any) -> bool:
    """Un league_id de Sleeper es un string no vacío."""
    return isinstance(league_id, str) and len(league_id.strip()) > 0
