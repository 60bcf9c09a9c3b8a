"""Transformaciones puras de los payloads de Sleeper.

Funciones sin acceso a red ni a base de datos que convierten las respuestas
de la API en estructuras listas para guardar o mostrar:
- Lineups (titulares por hueco, banquillo, IR)
- Emparejamiento de enfrentamientos
- Selecciones del draft
- Descripción legible de transacciones
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Any

from ingestion.config import LINEUP_SLOTS, BENCH_SLOT
from ingestion.utils import safe_float, safe_int, parse_timestamp

logger = logging.getLogger(__name__)

UNKNOWN_PLAYER = 'Unknown Player'


def player_display_name(player: Optional[Dict[str, Any]]) -> str:
    """Retorna "nombre apellido" del jugador o 'Unknown Player'."""
    if not player:
        return UNKNOWN_PLAYER
    name = f"{player.get('first_name') or ''} {player.get('last_name') or ''}".strip()
    return name or player.get('full_name') or UNKNOWN_PLAYER


def organize_roster(
    roster: Dict[str, Any],
    all_players: Dict[str, Dict[str, Any]],
    slots: Optional[List[str]] = None
) -> Dict[str, Any]:
    """Organiza un roster de Sleeper en titulares, banquillo e IR.

    Los titulares se asignan a los huecos en el orden configurado; si hay más
    titulares que huecos, el resto se marca como BENCH.

    Returns:
        Dict con 'starters' (lista de dicts player_id/position/slot_position),
        'bench' (ids) e 'ir' (ids)
    """
    slots = slots if slots is not None else LINEUP_SLOTS
    starters_ids = [pid for pid in (roster.get('starters') or [])]
    reserve = list(roster.get('reserve') or [])
    players = roster.get('players') or []

    starters = []
    for index, player_id in enumerate(starters_ids):
        player = all_players.get(player_id) or {}
        starters.append({
            'player_id': player_id,
            'position': player.get('position') or 'UNK',
            'slot_position': slots[index] if index < len(slots) else BENCH_SLOT,
        })

    bench = [pid for pid in players if pid not in starters_ids and pid not in reserve]

    return {
        'starters': starters,
        'bench': bench,
        'ir': reserve,
    }


def starting_slots(roster_positions: Optional[List[str]]) -> List[str]:
    """Huecos titulares de la liga a partir de roster_positions (sin BN/IR/TAXI)."""
    if not roster_positions:
        return list(LINEUP_SLOTS)
    return [pos for pos in roster_positions if pos not in ('BN', 'IR', 'TAXI')]


def lineup_from_matchup_entry(
    entry: Optional[Dict[str, Any]],
    all_players: Dict[str, Dict[str, Any]],
    slots: Optional[List[str]] = None
) -> Dict[str, Any]:
    """Lineup de un equipo en una semana a partir de su entrada de /matchups.

    Returns:
        Dict con 'points', 'starters' (hueco, jugador y puntos) y 'bench'
    """
    if not entry:
        return {'points': 0.0, 'starters': [], 'bench': []}

    slots = slots if slots is not None else LINEUP_SLOTS
    player_points = entry.get('players_points') or {}
    starters_points = entry.get('starters_points') or []
    starter_ids = entry.get('starters') or []

    starters = []
    for index, player_id in enumerate(starter_ids):
        # Sleeper marca un hueco vacío con "0"
        empty = not player_id or player_id == '0'
        player = None if empty else all_players.get(player_id)
        points = starters_points[index] if index < len(starters_points) else player_points.get(player_id)
        starters.append({
            'slot_position': slots[index] if index < len(slots) else BENCH_SLOT,
            'player_id': None if empty else player_id,
            'player_name': 'Empty' if empty else player_display_name(player),
            'position': (player or {}).get('position') or 'UNK',
            'nfl_team': (player or {}).get('team'),
            'points': safe_float(points),
        })

    bench = [
        {
            'player_id': player_id,
            'player_name': player_display_name(all_players.get(player_id)),
            'position': (all_players.get(player_id) or {}).get('position') or 'UNK',
            'points': safe_float(player_points.get(player_id)),
        }
        for player_id in (entry.get('players') or []) if player_id not in starter_ids
    ]

    return {
        'points': safe_float(entry.get('points')),
        'starters': starters,
        'bench': sorted(bench, key=lambda p: p['points'], reverse=True),
    }


def organize_matchups(
    matchups: List[Dict[str, Any]],
    rosters: List[Dict[str, Any]],
    users: List[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    """Agrupa las entradas de una semana por matchup_id.

    Solo se conservan las parejas completas (dos equipos). Cada equipo lleva
    roster_id, points (0 si falta), owner y roster.
    """
    rosters_by_id = {r.get('roster_id'): r for r in rosters}
    users_by_id = {u.get('user_id'): u for u in users}

    groups: Dict[Any, List[Dict[str, Any]]] = {}
    for entry in matchups:
        matchup_id = entry.get('matchup_id')
        if matchup_id is None:
            continue
        groups.setdefault(matchup_id, []).append(entry)

    organized = []
    for matchup_id, entries in groups.items():
        if len(entries) != 2:
            continue
        teams = []
        for entry in entries:
            roster = rosters_by_id.get(entry.get('roster_id'))
            owner = users_by_id.get(roster.get('owner_id')) if roster else None
            teams.append({
                'roster_id': entry.get('roster_id'),
                'points': safe_float(entry.get('points')),
                'owner': owner,
                'roster': roster,
            })
        organized.append({'matchup_id': matchup_id, 'teams': teams})

    logger.debug(f"Organizados {len(organized)} enfrentamientos")
    return organized


def unpaired_rosters(matchups: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Retorna las entradas sin rival en la semana (semanas de descanso)."""
    counts: Dict[Any, int] = {}
    for entry in matchups:
        counts[entry.get('matchup_id')] = counts.get(entry.get('matchup_id'), 0) + 1
    return [
        entry for entry in matchups
        if entry.get('matchup_id') is None or counts[entry.get('matchup_id')] == 1
    ]


def decide_winner(team1_id: Optional[int], score1: Optional[float],
                  team2_id: Optional[int], score2: Optional[float]) -> Optional[int]:
    """Retorna el id del equipo con más puntos, o None en caso de empate."""
    score1 = safe_float(score1)
    score2 = safe_float(score2)
    if score1 > score2:
        return team1_id
    if score2 > score1:
        return team2_id
    return None


def process_draft_picks(picks: List[Dict[str, Any]], season_id: int, conference_id: int) -> List[Dict[str, Any]]:
    """Convierte las selecciones de Sleeper en campos de DraftResult."""
    processed = []
    for pick in picks:
        metadata = pick.get('metadata') or {}
        name = f"{metadata.get('first_name') or ''} {metadata.get('last_name') or ''}".strip()
        processed.append({
            'season_id': season_id,
            'conference_id': conference_id,
            'draft_id': str(pick.get('draft_id')),
            'round': safe_int(pick.get('round'), 1),
            'draft_slot': safe_int(pick.get('draft_slot')),
            'pick_number': safe_int(pick.get('pick_no'), 1),
            'owner_id': pick.get('picked_by') or None,
            'roster_id': safe_int(pick.get('roster_id')) if pick.get('roster_id') is not None else None,
            'sleeper_id': str(pick.get('player_id')),
            'player_name': name or UNKNOWN_PLAYER,
            'position': metadata.get('position') or 'UNK',
            'nfl_team': metadata.get('team') or 'UNK',
            'is_keeper': bool(pick.get('is_keeper')),
        })
    logger.debug(f"Procesadas {len(processed)} selecciones del draft")
    return processed


def _team_name(team_names: Dict[int, str], roster_id: Any) -> str:
    return team_names.get(roster_id) or f"Team {roster_id}"


def _player_moves(moves: Optional[Dict[str, Any]], team_names: Dict[int, str],
                  player_names: Dict[str, str]) -> List[Dict[str, Any]]:
    return [
        {
            'id': player_id,
            'name': player_names.get(player_id) or UNKNOWN_PLAYER,
            'team': _team_name(team_names, roster_id),
        }
        for player_id, roster_id in (moves or {}).items()
    ]


def describe_transaction(tx: Dict[str, Any], team_names: Dict[int, str],
                         player_names: Dict[str, str]) -> str:
    """Genera el texto descriptivo de una transacción según su tipo."""
    tx_type = tx.get('type')
    teams = [_team_name(team_names, rid) for rid in (tx.get('roster_ids') or [])]
    added = _player_moves(tx.get('adds'), team_names, player_names)
    dropped = _player_moves(tx.get('drops'), team_names, player_names)
    parts = []

    if tx_type == 'trade':
        if len(teams) >= 2:
            parts.append(f"Trade between {' and '.join(teams)}")
        moves = [f"{p['name']} to {p['team']}" for p in added]
        moves += [f"{p['name']} from {p['team']}" for p in dropped]
        if moves:
            parts.append(', '.join(moves))
        picks = tx.get('draft_picks') or []
        if picks:
            parts.append("Draft picks: " + ', '.join(
                f"{pick.get('season')} Round {pick.get('round')} pick" for pick in picks
            ))
        budget = tx.get('waiver_budget') or []
        if budget:
            parts.append("FAAB: " + ', '.join(f"${wb.get('amount')} FAAB" for wb in budget))
        return ' | '.join(parts)

    if tx_type == 'free_agent':
        if added:
            parts.append("Added: " + ', '.join(p['name'] for p in added))
        if dropped:
            parts.append("Dropped: " + ', '.join(p['name'] for p in dropped))
        return ' | '.join(parts) or 'Free agent pickup'

    if tx_type == 'waiver':
        if added:
            parts.append("Claimed: " + ', '.join(p['name'] for p in added))
        if dropped:
            parts.append("Dropped: " + ', '.join(p['name'] for p in dropped))
        bid = (tx.get('settings') or {}).get('waiver_bid')
        if bid:
            parts.append(f"Bid: ${bid}")
        return ' | '.join(parts) or 'Waiver claim'

    return f"{tx_type} transaction"


def process_transactions(
    transactions: List[Dict[str, Any]],
    team_names: Dict[int, str],
    player_names: Dict[str, str]
) -> List[Dict[str, Any]]:
    """Procesa transacciones de Sleeper a un formato de presentación.

    Una transacción que no se puede procesar se registra y se omite.
    Retorna la lista ordenada de más reciente a más antigua.
    """
    processed = []
    for tx in transactions:
        try:
            created = parse_timestamp(tx.get('created'))
            processed.append({
                'id': tx['transaction_id'],
                'type': tx.get('type'),
                'week': tx.get('leg'),
                'date': created,
                'status': tx.get('status'),
                'teams': [_team_name(team_names, rid) for rid in (tx.get('roster_ids') or [])],
                'roster_ids': tx.get('roster_ids') or [],
                'details': describe_transaction(tx, team_names, player_names),
                'added': _player_moves(tx.get('adds'), team_names, player_names),
                'dropped': _player_moves(tx.get('drops'), team_names, player_names),
                'draft_picks': tx.get('draft_picks') or [],
                'waiver_bid': (tx.get('settings') or {}).get('waiver_bid'),
                'waiver_budget': tx.get('waiver_budget') or [],
                'notes': (tx.get('metadata') or {}).get('notes'),
            })
        except Exception as e:
            logger.error(f"Error procesando transacción: {e}")

    epoch = datetime.min.replace(tzinfo=timezone.utc)
    return sorted(processed, key=lambda t: t['date'] or epoch, reverse=True)
