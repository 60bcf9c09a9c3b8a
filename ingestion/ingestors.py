"""Sincronización de enfrentamientos semanales y récords de equipos.

Este módulo contiene la lógica para descargar los enfrentamientos de Sleeper,
aplicar los cambios manuales del administrador, guardar marcadores y
recalcular los récords de cada equipo.
"""

import logging
from typing import Optional, Dict, Any, List

from sqlalchemy import or_
from sqlalchemy.orm import Session

from db.models import Conference, Season, Matchup, MatchupAdminOverride, TeamRecord, PlayoffFormat
from db.standings import compute_team_records
from ingestion.config import DEFAULT_PLAYOFF_FORMAT
from ingestion.models_sync import roster_team_map, team_matchup_entry
from ingestion.sleeper_client import SleeperApiClient
from ingestion.transforms import organize_matchups, unpaired_rosters, decide_winner
from ingestion.utils import safe_float

logger = logging.getLogger("gladiator.ingestion.matchups")


class MatchupSync:
    """Sincroniza los enfrentamientos de una semana para una conferencia."""

    def __init__(self, api_client: SleeperApiClient):
        self.api = api_client

    @staticmethod
    def is_complete(week: int, current_week: Optional[int], score1: float, score2: float) -> bool:
        """Una semana anterior a la actual, o con ambos marcadores positivos, está completa."""
        if current_week is not None and week < current_week:
            return True
        return score1 > 0 and score2 > 0

    def _active_overrides(self, session: Session, conference: Conference, week: int) -> Dict[Any, MatchupAdminOverride]:
        overrides = session.query(MatchupAdminOverride).filter(
            MatchupAdminOverride.season_id == conference.season_id,
            MatchupAdminOverride.week == week,
            MatchupAdminOverride.conference_id == conference.id,
            MatchupAdminOverride.is_active.is_(True)
        ).order_by(MatchupAdminOverride.created_at).all()
        return {o.sleeper_matchup_id: o for o in overrides}

    def _team_points(self, session: Session, conference: Conference, week: int, team_id: int,
                     points_by_team: Dict[int, float]) -> float:
        """Puntos de un equipo de un cambio manual.

        Un equipo de otra conferencia se puntúa con los enfrentamientos de su propia liga.
        """
        if team_id in points_by_team:
            return points_by_team[team_id]

        entry = team_matchup_entry(session, self.api, team_id, conference.season_id, week)
        if entry is None:
            logger.warning(f"Sin puntos en Sleeper para el equipo {team_id} (semana {week}); se usa 0")
            return 0.0
        return safe_float(entry.get('points'))

    def sync_week(
        self,
        session: Session,
        conference: Conference,
        week: int,
        current_week: Optional[int] = None,
        playoff_format: Optional[PlayoffFormat] = None
    ) -> int:
        """Crea o actualiza los enfrentamientos (y descansos) de la semana.

        Returns:
            Número de enfrentamientos guardados
        """
        entries = self.api.fetch_matchups(conference.league_id, week)
        if not entries:
            logger.info(f"Sin enfrentamientos para {conference.conference_name} en la semana {week}")
            return 0

        teams_by_roster = roster_team_map(session, conference.id)
        overrides = self._active_overrides(session, conference, week)
        playoff_start = (
            playoff_format.playoff_start_week
            if playoff_format is not None and playoff_format.playoff_start_week
            else DEFAULT_PLAYOFF_FORMAT['playoff_start_week']
        )
        is_playoff = week >= playoff_start

        points_by_team = {}
        for entry in entries:
            team_id = teams_by_roster.get(entry.get('roster_id'))
            if team_id is not None:
                points_by_team[team_id] = safe_float(entry.get('points'))

        saved = 0
        for pair in organize_matchups(entries, [], []):
            side1, side2 = pair['teams']
            team1_id = teams_by_roster.get(side1['roster_id'])
            team2_id = teams_by_roster.get(side2['roster_id'])
            if team1_id is None or team2_id is None:
                logger.warning(
                    f"Enfrentamiento {pair['matchup_id']} (semana {week}, {conference.conference_name}) "
                    f"con roster sin equipo: {side1['roster_id']}/{side2['roster_id']}"
                )
                continue

            score1, score2 = side1['points'], side2['points']
            manual_override = False
            notes = None
            override = overrides.get(pair['matchup_id'])
            if override:
                team1_id, team2_id = override.override_team1_id, override.override_team2_id
                score1 = self._team_points(session, conference, week, team1_id, points_by_team)
                score2 = self._team_points(session, conference, week, team2_id, points_by_team)
                manual_override = True
                notes = override.override_reason

            complete = self.is_complete(week, current_week, score1, score2)
            matchup = session.query(Matchup).filter(
                Matchup.conference_id == conference.id,
                Matchup.season_id == conference.season_id,
                Matchup.week == week,
                Matchup.sleeper_matchup_id == pair['matchup_id'],
                Matchup.is_bye.is_(False)
            ).first()
            if matchup is not None and matchup.manually_completed:
                logger.info(f"Enfrentamiento {matchup.id} completado manualmente; se conserva su resultado")
                continue
            if not matchup:
                matchup = Matchup(
                    conference_id=conference.id,
                    season_id=conference.season_id,
                    week=week,
                    sleeper_matchup_id=pair['matchup_id'],
                    is_bye=False,
                )
                session.add(matchup)

            matchup.team1_id = team1_id
            matchup.team2_id = team2_id
            matchup.team1_score = score1
            matchup.team2_score = score2
            matchup.winning_team_id = decide_winner(team1_id, score1, team2_id, score2) if complete else None
            matchup.matchup_status = 'complete' if complete else 'pending'
            matchup.is_playoff = is_playoff
            matchup.manual_override = manual_override
            matchup.notes = notes
            saved += 1

        for entry in unpaired_rosters(entries):
            team_id = teams_by_roster.get(entry.get('roster_id'))
            if team_id is None:
                continue
            self._save_bye(session, conference, week, team_id, entry, current_week, is_playoff)
            saved += 1

        session.commit()
        logger.info(f"Semana {week} de {conference.conference_name}: {saved} enfrentamientos")
        return saved

    def _save_bye(self, session: Session, conference: Conference, week: int, team_id: int,
                  entry: Dict[str, Any], current_week: Optional[int], is_playoff: bool):
        """Un roster sin rival se guarda como semana de descanso."""
        matchup = session.query(Matchup).filter(
            Matchup.conference_id == conference.id,
            Matchup.season_id == conference.season_id,
            Matchup.week == week,
            Matchup.team1_id == team_id,
            Matchup.is_bye.is_(True)
        ).first()
        if not matchup:
            matchup = Matchup(
                conference_id=conference.id,
                season_id=conference.season_id,
                week=week,
                team1_id=team_id,
                is_bye=True,
            )
            session.add(matchup)

        matchup.sleeper_matchup_id = entry.get('matchup_id')
        matchup.team2_id = None
        matchup.team1_score = safe_float(entry.get('points'))
        matchup.team2_score = None
        matchup.winning_team_id = None
        matchup.is_playoff = is_playoff
        matchup.matchup_status = 'complete' if current_week is not None and week < current_week else 'pending'


class TeamRecordsSync:
    """Recalcula los récords de equipos a partir de los enfrentamientos guardados."""

    def recalculate(self, session: Session, season: Season, conference: Conference) -> int:
        """Recalcula TeamRecord con los enfrentamientos completados de temporada regular.

        Returns:
            Número de récords actualizados
        """
        team_conferences = {team_id: conference.id for team_id in roster_team_map(session, conference.id).values()}
        team_ids = list(team_conferences)
        # Incluye los enfrentamientos interconferencia alojados en otra liga
        matchups = session.query(Matchup).filter(
            Matchup.season_id == season.id,
            or_(
                Matchup.conference_id == conference.id,
                Matchup.team1_id.in_(team_ids),
                Matchup.team2_id.in_(team_ids)
            ),
            Matchup.matchup_status == 'complete',
            Matchup.is_playoff.is_(False)
        ).all()

        records = compute_team_records(matchups, team_conferences)
        updated = 0
        for team_id, data in records.items():
            if team_id not in team_conferences:
                continue
            record = session.query(TeamRecord).filter(
                TeamRecord.team_id == team_id,
                TeamRecord.conference_id == conference.id,
                TeamRecord.season_id == season.id
            ).first()
            if not record:
                record = TeamRecord(team_id=team_id, conference_id=conference.id, season_id=season.id)
                session.add(record)
            for key in ('wins', 'losses', 'ties', 'points_for', 'points_against', 'point_diff'):
                setattr(record, key, data[key])
            updated += 1

        session.commit()
        logger.info(f"Récords recalculados para {conference.conference_name}: {updated} equipos")
        return updated
