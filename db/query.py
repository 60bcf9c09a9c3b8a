"""Utilidades para consultar información de la base de datos de la liga.

Este módulo proporciona funciones de alto nivel para consultar datos
de manera fácil y eficiente. Todas aceptan una sesión opcional; si no se
proporciona, abren y cierran la suya.
"""

import math
from typing import Optional, List, Dict, Any, Tuple
from sqlalchemy import func, desc, asc, or_, select
from sqlalchemy.orm import Session, joinedload

from db.connection import get_session
from db.models import (
    Season, Conference, Team, TeamConference, Matchup, TeamRecord, Player,
    DraftResult, MatchupAdminOverride, PlayoffFormat, PlayoffBracket,
    TeamRoster, Transaction
)
from db.standings import build_standings, assign_playoff_seeds
from ingestion.config import DEFAULT_PLAYOFF_FORMAT
from ingestion.transforms import process_transactions


def _own_session(session: Optional[Session]) -> Tuple[Session, bool]:
    if session is None:
        return get_session(), True
    return session, False


# =============================================================================
# Temporadas y conferencias
# =============================================================================

def get_seasons(session: Optional[Session] = None) -> List[Season]:
    """Obtiene todas las temporadas, de la más reciente a la más antigua."""
    session, own_session = _own_session(session)
    try:
        return session.query(Season).order_by(desc(Season.season_year)).all()
    finally:
        if own_session:
            session.close()


def get_current_season(session: Optional[Session] = None) -> Optional[Season]:
    """Obtiene la temporada marcada como actual o, si no hay, la más reciente."""
    session, own_session = _own_session(session)
    try:
        season = session.query(Season).filter(Season.is_current.is_(True))\
            .order_by(desc(Season.season_year)).first()
        if season:
            return season
        return session.query(Season).order_by(desc(Season.season_year)).first()
    finally:
        if own_session:
            session.close()


def get_season_by_year(year: Any, session: Optional[Session] = None) -> Optional[Season]:
    session, own_session = _own_session(session)
    try:
        return session.query(Season).filter(Season.season_year == str(year)).first()
    finally:
        if own_session:
            session.close()


def get_conferences(season_id: Optional[int] = None, session: Optional[Session] = None) -> List[Conference]:
    """Obtiene las conferencias (opcionalmente de una temporada) ordenadas por nombre."""
    session, own_session = _own_session(session)
    try:
        query = session.query(Conference).options(joinedload(Conference.season))
        if season_id is not None:
            query = query.filter(Conference.season_id == season_id)
        return query.order_by(asc(Conference.conference_name)).all()
    finally:
        if own_session:
            session.close()


def get_playoff_format(season_id: int, session: Optional[Session] = None) -> PlayoffFormat:
    """Obtiene el formato de playoffs activo o uno por defecto (no persistido)."""
    session, own_session = _own_session(session)
    try:
        playoff_format = session.query(PlayoffFormat).filter(
            PlayoffFormat.season_id == season_id,
            PlayoffFormat.is_active.is_(True)
        ).order_by(desc(PlayoffFormat.updated_at)).first()
        if playoff_format:
            return playoff_format
        return PlayoffFormat(season_id=season_id, is_active=True, **DEFAULT_PLAYOFF_FORMAT)
    finally:
        if own_session:
            session.close()


# =============================================================================
# Clasificación
# =============================================================================

def get_standings(season_id: int, conference_id: Optional[int] = None,
                  session: Optional[Session] = None) -> List[Dict[str, Any]]:
    """Obtiene la clasificación de la temporada con rangos, playoffs y semillas.

    La elegibilidad de playoffs se calcula sobre toda la liga aunque se
    filtre por conferencia.
    """
    session, own_session = _own_session(session)
    try:
        conferences = {c.id: c for c in get_conferences(season_id, session=session)}
        records = session.query(TeamRecord).filter(TeamRecord.season_id == season_id).all()

        # Equipos de la temporada aún sin récord cuentan como 0-0
        with_record = {(r.team_id, r.conference_id) for r in records}
        rows = [
            {
                'team_id': r.team_id, 'conference_id': r.conference_id,
                'wins': r.wins, 'losses': r.losses, 'ties': r.ties,
                'points_for': r.points_for, 'points_against': r.points_against,
            }
            for r in records
        ]
        if conferences:
            links = session.query(TeamConference).filter(
                TeamConference.conference_id.in_(list(conferences.keys()))
            ).all()
            for link in links:
                if (link.team_id, link.conference_id) not in with_record:
                    rows.append({'team_id': link.team_id, 'conference_id': link.conference_id})

        team_ids = {row['team_id'] for row in rows}
        teams = {t.id: t for t in session.query(Team).filter(Team.id.in_(team_ids)).all()} if team_ids else {}

        playoff_format = get_playoff_format(season_id, session=session)
        standings = build_standings(rows, teams, conferences, playoff_format)
        assign_playoff_seeds(standings, playoff_format)

        if conference_id is not None:
            standings = [row for row in standings if row['conference_id'] == conference_id]
        return standings
    finally:
        if own_session:
            session.close()


# =============================================================================
# Enfrentamientos
# =============================================================================

def get_matchups(season_id: int, conference_id: Optional[int] = None, week: Optional[int] = None,
                 session: Optional[Session] = None) -> List[Matchup]:
    """Obtiene enfrentamientos filtrados por conferencia y semana."""
    session, own_session = _own_session(session)
    try:
        query = session.query(Matchup).options(
            joinedload(Matchup.team1), joinedload(Matchup.team2), joinedload(Matchup.conference)
        ).filter(Matchup.season_id == season_id)
        if conference_id is not None:
            query = query.filter(Matchup.conference_id == conference_id)
        if week is not None:
            query = query.filter(Matchup.week == week)
        return query.order_by(asc(Matchup.week), asc(Matchup.conference_id), asc(Matchup.id)).all()
    finally:
        if own_session:
            session.close()


def get_matchup_detail(matchup_id: int, session: Optional[Session] = None) -> Optional[Matchup]:
    session, own_session = _own_session(session)
    try:
        return session.query(Matchup).options(
            joinedload(Matchup.team1), joinedload(Matchup.team2), joinedload(Matchup.conference)
        ).filter(Matchup.id == matchup_id).first()
    finally:
        if own_session:
            session.close()


def get_weeks_with_matchups(season_id: int, session: Optional[Session] = None) -> List[int]:
    session, own_session = _own_session(session)
    try:
        weeks = session.query(Matchup.week).filter(Matchup.season_id == season_id)\
            .distinct().order_by(asc(Matchup.week)).all()
        return [w[0] for w in weeks]
    finally:
        if own_session:
            session.close()


def get_active_overrides(season_id: int, week: Optional[int] = None, conference_id: Optional[int] = None,
                         session: Optional[Session] = None) -> List[MatchupAdminOverride]:
    """Obtiene los cambios manuales de enfrentamientos activos."""
    session, own_session = _own_session(session)
    try:
        query = session.query(MatchupAdminOverride).options(
            joinedload(MatchupAdminOverride.override_team1),
            joinedload(MatchupAdminOverride.override_team2),
            joinedload(MatchupAdminOverride.conference),
        ).filter(
            MatchupAdminOverride.season_id == season_id,
            MatchupAdminOverride.is_active.is_(True)
        )
        if week is not None:
            query = query.filter(MatchupAdminOverride.week == week)
        if conference_id is not None:
            query = query.filter(MatchupAdminOverride.conference_id == conference_id)
        return query.order_by(asc(MatchupAdminOverride.week), desc(MatchupAdminOverride.created_at)).all()
    finally:
        if own_session:
            session.close()


# =============================================================================
# Equipos
# =============================================================================

def get_teams(season_id: Optional[int] = None, conference_id: Optional[int] = None,
              session: Optional[Session] = None) -> List[Dict[str, Any]]:
    """Obtiene los equipos con su conferencia, roster_id y récord.

    Returns:
        Lista de dicts con 'team', 'conference', 'roster_id' y 'record'
    """
    session, own_session = _own_session(session)
    try:
        query = session.query(TeamConference).options(
            joinedload(TeamConference.team), joinedload(TeamConference.conference)
        ).join(Conference, TeamConference.conference_id == Conference.id)
        if season_id is not None:
            query = query.filter(Conference.season_id == season_id)
        if conference_id is not None:
            query = query.filter(TeamConference.conference_id == conference_id)
        links = query.all()

        records = {}
        if links:
            record_query = session.query(TeamRecord).filter(
                TeamRecord.team_id.in_([link.team_id for link in links])
            )
            if season_id is not None:
                record_query = record_query.filter(TeamRecord.season_id == season_id)
            records = {(r.team_id, r.conference_id): r for r in record_query.all()}

        result = [
            {
                'team': link.team,
                'conference': link.conference,
                'roster_id': link.roster_id,
                'record': records.get((link.team_id, link.conference_id)),
            }
            for link in links
        ]
        return sorted(result, key=lambda t: (t['conference'].conference_name, t['team'].team_name.lower()))
    finally:
        if own_session:
            session.close()


def _team_name_map(session: Session, conference_id: int) -> Dict[int, str]:
    links = session.query(TeamConference).options(joinedload(TeamConference.team))\
        .filter(TeamConference.conference_id == conference_id).all()
    return {link.roster_id: link.team.team_name for link in links if link.team}


def _player_name_map(session: Session, player_ids: List[str]) -> Dict[str, str]:
    if not player_ids:
        return {}
    rows = session.query(Player.sleeper_id, Player.player_name)\
        .filter(Player.sleeper_id.in_(player_ids)).all()
    return {sleeper_id: name for sleeper_id, name in rows}


def _latest_roster_week(session: Session, season_id: int) -> Optional[int]:
    return session.query(func.max(TeamRoster.week)).filter(TeamRoster.season_id == season_id).scalar()


def get_team_detail(team_id: int, season_id: int, session: Optional[Session] = None) -> Optional[Dict[str, Any]]:
    """Obtiene el detalle de un equipo en una temporada.

    Incluye récord, enfrentamientos, último roster conocido, selecciones del
    draft y transacciones en las que participa.
    """
    session, own_session = _own_session(session)
    try:
        team = session.query(Team).filter(Team.id == team_id).first()
        if not team:
            return None

        link = session.query(TeamConference).options(joinedload(TeamConference.conference))\
            .join(Conference, TeamConference.conference_id == Conference.id)\
            .filter(TeamConference.team_id == team_id, Conference.season_id == season_id).first()

        record = session.query(TeamRecord).filter(
            TeamRecord.team_id == team_id, TeamRecord.season_id == season_id
        ).first()

        matchups = session.query(Matchup).options(
            joinedload(Matchup.team1), joinedload(Matchup.team2)
        ).filter(
            Matchup.season_id == season_id,
            or_(Matchup.team1_id == team_id, Matchup.team2_id == team_id)
        ).order_by(asc(Matchup.week)).all()

        roster = []
        roster_week = session.query(func.max(TeamRoster.week)).filter(
            TeamRoster.team_id == team_id, TeamRoster.season_id == season_id
        ).scalar()
        if roster_week is not None:
            entries = session.query(TeamRoster).filter(
                TeamRoster.team_id == team_id,
                TeamRoster.season_id == season_id,
                TeamRoster.week == roster_week
            ).all()
            players = {p.sleeper_id: p for p in session.query(Player).filter(
                Player.sleeper_id.in_([e.sleeper_id for e in entries])
            ).all()} if entries else {}
            roster = [
                {'entry': e, 'player': players.get(e.sleeper_id)}
                for e in sorted(entries, key=lambda e: (not e.is_starter, e.status, e.sleeper_id))
            ]

        draft_picks = session.query(DraftResult).filter(
            DraftResult.season_id == season_id, DraftResult.owner_id == team.owner_id
        ).order_by(asc(DraftResult.pick_number)).all()

        transactions = []
        if link:
            transactions = [
                tx for tx in get_transactions(season_id, conference_id=link.conference_id, session=session)
                if link.roster_id in tx['roster_ids']
            ]

        return {
            'team': team,
            'conference': link.conference if link else None,
            'roster_id': link.roster_id if link else None,
            'record': record,
            'matchups': matchups,
            'roster_week': roster_week,
            'roster': roster,
            'draft_picks': draft_picks,
            'transactions': transactions,
        }
    finally:
        if own_session:
            session.close()


# =============================================================================
# Jugadores
# =============================================================================

PLAYER_SORT_FIELDS = {
    'player_name': Player.player_name,
    'position': Player.position,
    'nfl_team': Player.nfl_team,
    'age': Player.age,
    'years_exp': Player.years_exp,
    'number': Player.number,
    'injury_status': Player.injury_status,
}


def get_rostered_players(season_id: int, session: Optional[Session] = None) -> Dict[str, str]:
    """Mapa sleeper_id -> nombre del equipo para el roster de la última semana."""
    session, own_session = _own_session(session)
    try:
        week = _latest_roster_week(session, season_id)
        if week is None:
            return {}
        rows = session.query(TeamRoster.sleeper_id, Team.team_name)\
            .join(Team, TeamRoster.team_id == Team.id)\
            .filter(TeamRoster.season_id == season_id, TeamRoster.week == week).all()
        return {sleeper_id: team_name for sleeper_id, team_name in rows}
    finally:
        if own_session:
            session.close()


def get_players(
    search: Optional[str] = None,
    position: Optional[str] = None,
    nfl_team: Optional[str] = None,
    rostered: Optional[str] = None,
    season_id: Optional[int] = None,
    sort_field: str = 'player_name',
    sort_direction: str = 'asc',
    page: int = 1,
    per_page: Optional[int] = 50,
    session: Optional[Session] = None
) -> Tuple[List[Player], int]:
    """Busca jugadores con filtros, orden y paginación.

    Args:
        search: Texto contra nombre o equipo NFL
        position: Posición exacta (QB, RB...)
        nfl_team: Abreviatura del equipo NFL
        rostered: 'yes' (en algún roster), 'no' (libres) o None
        season_id: Temporada usada para el filtro rostered
        sort_field: Campo de orden (lista blanca)
        sort_direction: 'asc' o 'desc'
        page: Página (desde 1)
        per_page: Tamaño de página; None devuelve todos

    Returns:
        Tupla (jugadores, total)
    """
    session, own_session = _own_session(session)
    try:
        query = session.query(Player)

        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(Player.player_name.ilike(pattern), Player.nfl_team.ilike(pattern)))
        if position:
            query = query.filter(Player.position == position.upper())
        if nfl_team:
            query = query.filter(Player.nfl_team == nfl_team.upper())

        if rostered in ('yes', 'no') and season_id is not None:
            week = _latest_roster_week(session, season_id)
            rostered_ids = select(TeamRoster.sleeper_id).where(
                TeamRoster.season_id == season_id, TeamRoster.week == week
            )
            if rostered == 'yes':
                query = query.filter(Player.sleeper_id.in_(rostered_ids))
            else:
                query = query.filter(~Player.sleeper_id.in_(rostered_ids))

        total = query.count()

        column = PLAYER_SORT_FIELDS.get(sort_field, Player.player_name)
        order = desc(column) if (sort_direction or '').lower() == 'desc' else asc(column)
        query = query.order_by(order, asc(Player.player_name))

        if per_page:
            page = max(1, page)
            query = query.offset((page - 1) * per_page).limit(per_page)

        return query.all(), total
    finally:
        if own_session:
            session.close()


def total_pages(total: int, per_page: int) -> int:
    return max(1, math.ceil(total / per_page)) if per_page else 1


def get_player_detail(sleeper_id: str, season_id: Optional[int] = None,
                      session: Optional[Session] = None) -> Optional[Dict[str, Any]]:
    """Obtiene un jugador, los equipos que lo tienen y su selección en el draft."""
    session, own_session = _own_session(session)
    try:
        player = session.query(Player).filter(Player.sleeper_id == str(sleeper_id)).first()
        if not player:
            return None

        rosters = []
        draft = []
        if season_id is not None:
            week = _latest_roster_week(session, season_id)
            if week is not None:
                entries = session.query(TeamRoster).options(joinedload(TeamRoster.team)).filter(
                    TeamRoster.season_id == season_id,
                    TeamRoster.week == week,
                    TeamRoster.sleeper_id == player.sleeper_id
                ).all()
                rosters = [
                    {'team': e.team, 'week': e.week, 'status': e.status,
                     'is_starter': e.is_starter, 'slot_position': e.slot_position}
                    for e in entries
                ]
            draft = session.query(DraftResult).options(joinedload(DraftResult.conference)).filter(
                DraftResult.season_id == season_id,
                DraftResult.sleeper_id == player.sleeper_id
            ).all()

        return {'player': player, 'rosters': rosters, 'draft': draft}
    finally:
        if own_session:
            session.close()


# =============================================================================
# Draft y transacciones
# =============================================================================

def get_draft_results(season_id: int, conference_id: Optional[int] = None, round: Optional[int] = None,
                      session: Optional[Session] = None) -> List[DraftResult]:
    session, own_session = _own_session(session)
    try:
        query = session.query(DraftResult).options(joinedload(DraftResult.conference))\
            .filter(DraftResult.season_id == season_id)
        if conference_id is not None:
            query = query.filter(DraftResult.conference_id == conference_id)
        if round is not None:
            query = query.filter(DraftResult.round == round)
        return query.order_by(asc(DraftResult.conference_id), asc(DraftResult.pick_number)).all()
    finally:
        if own_session:
            session.close()


def get_transactions(season_id: int, conference_id: Optional[int] = None, type: Optional[str] = None,
                     week: Optional[int] = None, limit: Optional[int] = None,
                     session: Optional[Session] = None) -> List[Dict[str, Any]]:
    """Obtiene transacciones procesadas (con descripción), de más reciente a más antigua."""
    session, own_session = _own_session(session)
    try:
        query = session.query(Transaction).options(joinedload(Transaction.conference))\
            .filter(Transaction.season_id == season_id)
        if conference_id is not None:
            query = query.filter(Transaction.conference_id == conference_id)
        if type:
            query = query.filter(Transaction.type == type)
        if week is not None:
            query = query.filter(Transaction.week == week)
        stored = query.all()

        by_conference: Dict[int, List[Transaction]] = {}
        player_ids = set()
        for tx in stored:
            by_conference.setdefault(tx.conference_id, []).append(tx)
            data = tx.data or {}
            player_ids.update((data.get('adds') or {}).keys())
            player_ids.update((data.get('drops') or {}).keys())
        player_names = _player_name_map(session, list(player_ids))

        processed = []
        for conf_id, txs in by_conference.items():
            team_names = _team_name_map(session, conf_id)
            conference_name = txs[0].conference.conference_name if txs[0].conference else 'Unknown Conference'
            payloads = []
            for tx in txs:
                payload = dict(tx.data or {})
                payload.setdefault('transaction_id', tx.sleeper_transaction_id)
                payload.setdefault('type', tx.type)
                payload.setdefault('status', tx.status)
                payload.setdefault('leg', tx.week)
                payload.setdefault('roster_ids', tx.roster_ids or [])
                if payload.get('created') is None:
                    payload['created'] = tx.transaction_created_at
                payloads.append(payload)
            for item in process_transactions(payloads, team_names, player_names):
                item['conference_id'] = conf_id
                item['conference_name'] = conference_name
                processed.append(item)

        processed = _newest_first(processed)
        return processed[:limit] if limit else processed
    finally:
        if own_session:
            session.close()


def _newest_first(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Ordena transacciones ya procesadas de más reciente a más antigua."""
    dated = [t for t in items if t['date'] is not None]
    undated = [t for t in items if t['date'] is None]
    return sorted(dated, key=lambda t: t['date'], reverse=True) + undated


# =============================================================================
# Playoffs y estadísticas
# =============================================================================

def get_playoff_bracket(season_id: int, session: Optional[Session] = None) -> Dict[int, List[PlayoffBracket]]:
    """Obtiene el cuadro de playoffs agrupado por ronda."""
    session, own_session = _own_session(session)
    try:
        rows = session.query(PlayoffBracket).options(
            joinedload(PlayoffBracket.team1), joinedload(PlayoffBracket.team2)
        ).filter(PlayoffBracket.season_id == season_id)\
            .order_by(asc(PlayoffBracket.round), asc(PlayoffBracket.matchup_number)).all()
        bracket: Dict[int, List[PlayoffBracket]] = {}
        for row in rows:
            bracket.setdefault(row.round, []).append(row)
        return bracket
    finally:
        if own_session:
            session.close()


def get_database_stats(session: Optional[Session] = None) -> Dict[str, int]:
    """Obtiene conteos de registros para la portada y el panel de admin."""
    session, own_session = _own_session(session)
    try:
        return {
            'seasons': session.query(Season).count(),
            'conferences': session.query(Conference).count(),
            'teams': session.query(Team).count(),
            'players': session.query(Player).count(),
            'matchups': session.query(Matchup).count(),
            'completed_matchups': session.query(Matchup).filter(Matchup.matchup_status == 'complete').count(),
            'draft_picks': session.query(DraftResult).count(),
            'transactions': session.query(Transaction).count(),
            'active_overrides': session.query(MatchupAdminOverride)
                .filter(MatchupAdminOverride.is_active.is_(True)).count(),
        }
    finally:
        if own_session:
            session.close()
