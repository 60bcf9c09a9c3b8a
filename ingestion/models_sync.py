"""Sincronización de ligas, equipos, jugadores, rosters, draft y transacciones.

Este módulo maneja la sincronización de entidades desde la API de Sleeper:
- Información de liga (draft_id, avatar, puntuación, posiciones)
- Equipos (usuarios + rosters) y su relación con la conferencia
- Catálogo de jugadores NFL
- Rosters semanales
- Resultados del draft
- Transacciones
"""

import logging
from typing import Optional, Dict, Any, List, Tuple

from sqlalchemy.orm import Session

from db.models import (
    Conference, Team, TeamConference, Player, TeamRoster, DraftResult, Transaction
)
from ingestion.config import MAX_TRANSACTION_WEEK
from ingestion.sleeper_client import SleeperApiClient
from ingestion.transforms import organize_roster, player_display_name, process_draft_picks
from ingestion.utils import (
    SleeperApiError, FatalSyncError, ProgressReporter,
    safe_int, safe_int_or_none, parse_timestamp
)
from db.logging import log_step, log_success

logger = logging.getLogger("gladiator.ingestion.sync")

SLEEPER_AVATAR_URL = "https://sleepercdn.com/avatars/{avatar}"
SLEEPER_AVATAR_THUMB_URL = "https://sleepercdn.com/avatars/thumbs/{avatar}"


def avatar_url(avatar: Optional[str], thumb: bool = False) -> Optional[str]:
    """Construye la URL del avatar de Sleeper (o la devuelve si ya es una URL)."""
    if not avatar:
        return None
    if avatar.startswith('http'):
        return avatar
    template = SLEEPER_AVATAR_THUMB_URL if thumb else SLEEPER_AVATAR_URL
    return template.format(avatar=avatar)


def roster_team_map(session: Session, conference_id: int) -> Dict[int, int]:
    """Mapa roster_id -> team_id de una conferencia."""
    links = session.query(TeamConference).filter(TeamConference.conference_id == conference_id).all()
    return {link.roster_id: link.team_id for link in links}


def team_league_link(session: Session, team_id: int, season_id: int,
                     preferred_conference_id: Optional[int] = None) -> Optional[Tuple[Conference, int]]:
    """Conferencia y roster_id de un equipo en una temporada.

    Si el equipo está en varias conferencias se prefiere preferred_conference_id.
    """
    rows = session.query(Conference, TeamConference.roster_id).join(
        TeamConference, TeamConference.conference_id == Conference.id
    ).filter(
        TeamConference.team_id == team_id,
        Conference.season_id == season_id
    ).order_by(Conference.id).all()
    if not rows:
        return None
    for conference, roster_id in rows:
        if conference.id == preferred_conference_id:
            return conference, roster_id
    return rows[0][0], rows[0][1]


def team_matchup_entry(session: Session, api: SleeperApiClient, team_id: int, season_id: int, week: int,
                       preferred_conference_id: Optional[int] = None) -> Optional[Dict[str, Any]]:
    """Entrada de enfrentamiento de Sleeper de un equipo, buscada en la liga de su conferencia.

    Permite puntuar enfrentamientos interconferencia: cada equipo se busca en
    su propia liga. Las semanas se memoizan en el cliente.

    Raises:
        SleeperApiError: Si la API de Sleeper falla
    """
    link = team_league_link(session, team_id, season_id, preferred_conference_id)
    if link is None:
        return None
    conference, roster_id = link
    for entry in api.fetch_matchups(conference.league_id, week):
        if entry.get('roster_id') == roster_id:
            return entry
    return None


class LeagueSync:
    """Sincroniza la información de la liga de Sleeper de cada conferencia."""

    def __init__(self, api_client: SleeperApiClient):
        self.api = api_client

    def sync_conference(self, session: Session, conference: Conference) -> bool:
        """Actualiza draft_id y logo de la conferencia y la configuración de la temporada.

        Returns:
            True si se encontró la liga en Sleeper
        """
        league = self.api.fetch_league(conference.league_id)
        if not league:
            logger.warning(f"Liga {conference.league_id} ({conference.conference_name}) no encontrada en Sleeper")
            return False

        if league.get('draft_id'):
            conference.draft_id = str(league['draft_id'])
        logo = avatar_url(league.get('avatar'))
        if logo:
            conference.league_logo_url = logo
        conference.status = 'completed' if league.get('status') == 'complete' else 'active'

        season = conference.season
        if season is not None:
            if league.get('scoring_settings'):
                season.scoring_settings = league['scoring_settings']
            if league.get('roster_positions'):
                season.roster_positions = league['roster_positions']

        session.commit()
        logger.info(f"Liga sincronizada: {conference.conference_name} ({league.get('name')})")
        return True


class TeamSync:
    """Sincroniza equipos a partir de usuarios y rosters de Sleeper."""

    def __init__(self, api_client: SleeperApiClient):
        self.api = api_client

    @staticmethod
    def team_info_from_user(user: Optional[Dict[str, Any]], roster_id: Any) -> Dict[str, Any]:
        """Nombre de equipo desde metadata.team_name, si no display_name."""
        user = user or {}
        metadata = user.get('metadata') or {}
        display_name = user.get('display_name')
        return {
            'team_name': metadata.get('team_name') or display_name or f"Team {roster_id}",
            'owner_name': display_name or 'Unknown Owner',
            'team_logourl': avatar_url(metadata.get('avatar')) or avatar_url(user.get('avatar'), thumb=True),
        }

    def sync_conference(self, session: Session, conference: Conference) -> int:
        """Crea o actualiza los equipos de una conferencia y su roster_id.

        Returns:
            Número de equipos sincronizados
        """
        users = self.api.fetch_league_users(conference.league_id)
        rosters = self.api.fetch_league_rosters(conference.league_id)
        users_by_id = {u.get('user_id'): u for u in users}

        synced = 0
        for roster in rosters:
            roster_id = roster.get('roster_id')
            owner_id = roster.get('owner_id')
            if not owner_id:
                logger.warning(f"Roster {roster_id} de {conference.conference_name} sin dueño, se omite")
                continue

            info = self.team_info_from_user(users_by_id.get(owner_id), roster_id)
            team = session.query(Team).filter(Team.owner_id == str(owner_id)).first()
            if team:
                for key, value in info.items():
                    if value is not None:
                        setattr(team, key, value)
            else:
                team = Team(owner_id=str(owner_id), **info)
                session.add(team)
                session.flush()

            co_owners = roster.get('co_owners') or []
            if co_owners:
                co_owner_id = str(co_owners[0])
                taken = session.query(Team).filter(Team.co_owner_id == co_owner_id, Team.id != team.id).first()
                if not taken:
                    team.co_owner_id = co_owner_id
                    co_user = users_by_id.get(co_owner_id) or {}
                    team.co_owner_name = co_user.get('display_name')

            self._link(session, team, conference, roster_id)
            synced += 1

        session.commit()
        logger.info(f"Sincronizados {synced} equipos de {conference.conference_name}")
        return synced

    def _link(self, session: Session, team: Team, conference: Conference, roster_id: int):
        """Crea o actualiza la relación equipo-conferencia con su roster_id."""
        by_team = session.query(TeamConference).filter(
            TeamConference.team_id == team.id, TeamConference.conference_id == conference.id
        ).first()
        by_roster = session.query(TeamConference).filter(
            TeamConference.conference_id == conference.id, TeamConference.roster_id == roster_id
        ).first()

        if by_team:
            if by_roster and by_roster.id != by_team.id:
                session.delete(by_roster)
                session.flush()
            by_team.roster_id = roster_id
        elif by_roster:
            by_roster.team_id = team.id
        else:
            session.add(TeamConference(team_id=team.id, conference_id=conference.id, roster_id=roster_id))
        session.flush()


class PlayerSync:
    """Sincroniza el catálogo de jugadores NFL de Sleeper."""

    def __init__(self, api_client: SleeperApiClient):
        self.api = api_client

    @staticmethod
    def player_fields(data: Dict[str, Any]) -> Dict[str, Any]:
        years_exp = data.get('years_exp')
        return {
            'player_name': player_display_name(data),
            'position': data.get('position'),
            'nfl_team': data.get('team'),
            'number': safe_int_or_none(data.get('number')),
            'playing_status': data.get('status'),
            'injury_status': data.get('injury_status'),
            'age': safe_int_or_none(data.get('age')),
            'height': safe_int_or_none(data.get('height')),
            'weight': safe_int_or_none(data.get('weight')),
            'years_exp': safe_int(years_exp) if years_exp is not None else None,
            'college': data.get('college'),
        }

    def sync_all(self, session: Session, reporter: Optional[ProgressReporter] = None) -> int:
        """Crea o actualiza todos los jugadores por sleeper_id.

        Returns:
            Número de jugadores sincronizados
        """
        log_step("Descargando catálogo de jugadores NFL")
        players = self.api.fetch_all_players()
        if not players:
            logger.warning("Catálogo de jugadores vacío")
            return 0

        existing = {p.sleeper_id: p for p in session.query(Player).all()}
        if reporter:
            reporter.set_total(len(players))

        synced = 0
        for player_id, data in players.items():
            fields = self.player_fields(data or {})
            player = existing.get(str(player_id))
            if player:
                for key, value in fields.items():
                    setattr(player, key, value)
            else:
                session.add(Player(sleeper_id=str(player_id), **fields))
            synced += 1
            if reporter and synced % 1000 == 0:
                reporter.increment(f"{synced} jugadores", delta=1000)

        session.commit()
        log_success(f"Sincronizados {synced} jugadores")
        return synced


class RosterSync:
    """Guarda los rosters semanales (titulares, banquillo, IR y taxi)."""

    def __init__(self, api_client: SleeperApiClient):
        self.api = api_client

    def sync_conference(self, session: Session, conference: Conference, week: int) -> int:
        """Reemplaza las filas de TeamRoster de la semana para los equipos de la conferencia.

        Returns:
            Número de filas insertadas
        """
        rosters = self.api.fetch_league_rosters(conference.league_id)
        teams_by_roster = roster_team_map(session, conference.id)
        if not teams_by_roster:
            logger.warning(f"{conference.conference_name} no tiene equipos vinculados; ejecutar antes la sincronización de equipos")
            return 0

        session.query(TeamRoster).filter(
            TeamRoster.season_id == conference.season_id,
            TeamRoster.week == week,
            TeamRoster.team_id.in_(list(teams_by_roster.values()))
        ).delete(synchronize_session=False)

        inserted = 0
        for roster in rosters:
            team_id = teams_by_roster.get(roster.get('roster_id'))
            if team_id is None:
                continue

            organized = organize_roster(roster, {})
            taxi = list(roster.get('taxi') or [])
            entries = [(s['player_id'], 'active', True, s['slot_position']) for s in organized['starters']]
            entries += [(pid, 'ir', False, None) for pid in organized['ir']]
            entries += [(pid, 'taxi', False, None) for pid in taxi]
            entries += [(pid, 'bench', False, 'BENCH') for pid in organized['bench'] if pid not in taxi]

            seen = set()
            for player_id, status, is_starter, slot in entries:
                # Sleeper usa "0" para huecos vacíos del lineup
                if not player_id or player_id == '0' or player_id in seen:
                    continue
                seen.add(player_id)
                session.add(TeamRoster(
                    team_id=team_id,
                    season_id=conference.season_id,
                    week=week,
                    sleeper_id=str(player_id),
                    status=status,
                    is_starter=is_starter,
                    slot_position=slot,
                ))
                inserted += 1

        session.commit()
        logger.info(f"Rosters de {conference.conference_name} (semana {week}): {inserted} jugadores")
        return inserted


class DraftSync:
    """Sincroniza los resultados del draft de cada conferencia."""

    def __init__(self, api_client: SleeperApiClient):
        self.api = api_client

    def sync_conference(self, session: Session, conference: Conference) -> int:
        """Reemplaza las selecciones del draft de la conferencia y temporada.

        Returns:
            Número de selecciones insertadas
        """
        drafts = self.api.fetch_league_drafts(conference.league_id)
        draft_ids = [str(d.get('draft_id')) for d in drafts if d.get('draft_id')]
        if conference.draft_id and conference.draft_id in draft_ids:
            draft_ids = [conference.draft_id]
        if not draft_ids and conference.draft_id:
            draft_ids = [conference.draft_id]
        if not draft_ids:
            logger.warning(f"{conference.conference_name} no tiene draft en Sleeper")
            return 0

        processed = []
        for draft_id in draft_ids:
            picks = self.api.fetch_draft_picks(draft_id)
            processed.extend(
                p for p in process_draft_picks(picks, conference.season_id, conference.id)
                if p['sleeper_id'] and p['sleeper_id'] != 'None'
            )

        session.query(DraftResult).filter(
            DraftResult.conference_id == conference.id,
            DraftResult.season_id == conference.season_id
        ).delete(synchronize_session=False)

        for pick in processed:
            session.add(DraftResult(**pick))

        if not conference.draft_id:
            conference.draft_id = draft_ids[0]

        session.commit()
        logger.info(f"Draft de {conference.conference_name}: {len(processed)} selecciones")
        return len(processed)


class TransactionSync:
    """Sincroniza las transacciones semanales de cada conferencia."""

    def __init__(self, api_client: SleeperApiClient):
        self.api = api_client
        self.failed_weeks: List[int] = []

    def sync_conference(self, session: Session, conference: Conference,
                        max_week: int = MAX_TRANSACTION_WEEK) -> int:
        """Crea o actualiza transacciones de las semanas 1..max_week.

        Una semana que falla se registra en failed_weeks y se omite.

        Returns:
            Número de transacciones sincronizadas
        """
        self.failed_weeks = []
        synced = 0
        for week in range(1, max_week + 1):
            try:
                transactions = self.api.fetch_transactions(conference.league_id, week)
            except SleeperApiError as e:
                logger.error(f"Transacciones de la semana {week} ({conference.conference_name}) no disponibles: {e}")
                self.failed_weeks.append(week)
                continue

            for tx in transactions:
                tx_id = tx.get('transaction_id')
                if not tx_id:
                    continue
                existing = session.query(Transaction).filter(
                    Transaction.sleeper_transaction_id == str(tx_id)
                ).first()
                fields = {
                    'season_id': conference.season_id,
                    'conference_id': conference.id,
                    'type': tx.get('type'),
                    'status': tx.get('status'),
                    'week': tx.get('leg') or week,
                    'roster_ids': tx.get('roster_ids') or [],
                    'data': tx,
                    'transaction_created_at': parse_timestamp(tx.get('created')),
                }
                if existing:
                    for key, value in fields.items():
                        setattr(existing, key, value)
                else:
                    session.add(Transaction(sleeper_transaction_id=str(tx_id), **fields))
                synced += 1
            session.commit()

        if self.failed_weeks and len(self.failed_weeks) == max_week:
            raise FatalSyncError(f"No se pudo obtener ninguna semana de transacciones de {conference.conference_name}")

        logger.info(f"Transacciones de {conference.conference_name}: {synced}")
        return synced
