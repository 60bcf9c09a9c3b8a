"""Estrategias de sincronización con Sleeper.

Este módulo define el orquestador que ejecuta los distintos modos de
sincronización (full, weekly, players, drafts, transactions, records)
sobre todas las conferencias de una temporada.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any, List, Callable

from sqlalchemy.orm import Session

from db.models import Season, Conference
from db.query import get_current_season, get_season_by_year, get_conferences, get_playoff_format
from ingestion.config import REGULAR_SEASON_WEEKS, MAX_TRANSACTION_WEEK
from ingestion.sleeper_client import SleeperApiClient
from ingestion.models_sync import (
    LeagueSync, TeamSync, PlayerSync, RosterSync, DraftSync, TransactionSync
)
from ingestion.ingestors import MatchupSync, TeamRecordsSync
from ingestion.utils import FatalSyncError, ProgressReporter
from db.logging import log_header, log_step, log_success

logger = logging.getLogger("gladiator.ingestion.strategies")

SYNC_MODES = ['full', 'weekly', 'players', 'drafts', 'transactions', 'records']
SYNC_TASK_NAME = "league_sync"


@dataclass
class SyncResult:
    """Resultado consolidado de una sincronización."""

    mode: str
    status: str = 'success'
    processed: int = 0
    units_ok: int = 0
    errors: List[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def finalize(self):
        """Calcula el estado final: success, partial o failed."""
        self.finished_at = datetime.now()
        if not self.errors:
            self.status = 'success'
        elif self.units_ok > 0:
            self.status = 'partial'
        else:
            self.status = 'failed'
        return self

    @property
    def duration_seconds(self) -> float:
        if self.started_at and self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'mode': self.mode,
            'status': self.status,
            'processed': self.processed,
            'errors': self.errors,
            'duration_seconds': round(self.duration_seconds, 2),
        }


class SyncRunner:
    """Ejecuta un modo de sincronización sobre las conferencias de una temporada."""

    def __init__(self, api_client: SleeperApiClient, session: Session,
                 reporter: Optional[ProgressReporter] = None):
        self.api = api_client
        self.session = session
        self.reporter = reporter
        self.league_sync = LeagueSync(api_client)
        self.team_sync = TeamSync(api_client)
        self.player_sync = PlayerSync(api_client)
        self.roster_sync = RosterSync(api_client)
        self.draft_sync = DraftSync(api_client)
        self.transaction_sync = TransactionSync(api_client)
        self.matchup_sync = MatchupSync(api_client)
        self.records_sync = TeamRecordsSync()

    # ------------------------------------------------------------------
    # Utilidades
    # ------------------------------------------------------------------

    def resolve_season(self, season_year: Optional[str] = None) -> Season:
        season = (
            get_season_by_year(season_year, session=self.session)
            if season_year else get_current_season(session=self.session)
        )
        if not season:
            raise FatalSyncError(
                f"Temporada {season_year} no encontrada" if season_year else "No hay temporadas configuradas"
            )
        return season

    def _progress(self, progress: int, message: str):
        if self.reporter:
            self.reporter.update(progress, message)

    def _run_unit(self, result: SyncResult, label: str, func: Callable[[], int]):
        """Ejecuta una unidad de trabajo; si falla se registra y se continúa."""
        try:
            count = func()
            result.processed += count or 0
            result.units_ok += 1
        except Exception as e:
            self.session.rollback()
            logger.error(f"Error en {label}: {e}", exc_info=True)
            result.errors.append(f"{label}: {e}")

    def _for_each_conference(self, result: SyncResult, conferences: List[Conference], label: str,
                             func: Callable[[Conference], int], start: int = 0, end: int = 100):
        total = max(1, len(conferences))
        for index, conference in enumerate(conferences):
            self._progress(start + int((end - start) * index / total), f"{label}: {conference.conference_name}")
            self._run_unit(result, f"{label} ({conference.conference_name})", lambda c=conference: func(c))

    # ------------------------------------------------------------------
    # Modos
    # ------------------------------------------------------------------

    def run(self, mode: str, season_year: Optional[str] = None, week: Optional[int] = None) -> SyncResult:
        """Ejecuta el modo indicado y retorna el resultado consolidado.

        Raises:
            FatalSyncError: Si el modo no existe o no hay temporada
        """
        if mode not in SYNC_MODES:
            raise FatalSyncError(f"Modo de sincronización desconocido: {mode}")

        result = SyncResult(mode=mode, started_at=datetime.now())
        log_header(f"Sincronización {mode}")

        if mode == 'players':
            self._run_unit(result, "jugadores", lambda: self.player_sync.sync_all(self.session, self.reporter))
            return self._finish(result)

        season = self.resolve_season(season_year)
        conferences = get_conferences(season.id, session=self.session)
        if not conferences:
            logger.warning(f"La temporada {season.season_year} no tiene conferencias")

        if mode == 'full':
            self._run_full(result, season, conferences, week)
        elif mode == 'weekly':
            self._run_weekly(result, season, conferences, week)
        elif mode == 'drafts':
            self._for_each_conference(result, conferences, "draft",
                                      lambda c: self.draft_sync.sync_conference(self.session, c))
        elif mode == 'transactions':
            self._run_transactions(result, conferences, 0, 100)
        elif mode == 'records':
            self._for_each_conference(result, conferences, "récords",
                                      lambda c: self.records_sync.recalculate(self.session, season, c))

        return self._finish(result)

    def _finish(self, result: SyncResult) -> SyncResult:
        result.finalize()
        if result.status == 'success':
            log_success(f"Sincronización {result.mode} completada: {result.processed} registros")
        else:
            logger.warning(
                f"Sincronización {result.mode} terminó con estado {result.status}: "
                f"{len(result.errors)} errores"
            )
        return result

    def _current_week(self, season: Season, week: Optional[int]) -> int:
        current_week = week or self.api.get_current_nfl_week()
        season.current_week = current_week
        self.session.commit()
        return current_week

    def _sync_matchup_weeks(self, result: SyncResult, season: Season, conferences: List[Conference],
                            weeks: List[int], current_week: int, start: int, end: int):
        playoff_format = get_playoff_format(season.id, session=self.session)
        units = [(c, w) for c in conferences for w in weeks]
        total = max(1, len(units))
        for index, (conference, wk) in enumerate(units):
            self._progress(start + int((end - start) * index / total),
                           f"Enfrentamientos semana {wk}: {conference.conference_name}")
            self._run_unit(
                result, f"enfrentamientos semana {wk} ({conference.conference_name})",
                lambda c=conference, w=wk: self.matchup_sync.sync_week(
                    self.session, c, w, current_week=current_week, playoff_format=playoff_format
                )
            )

    def _run_transactions(self, result: SyncResult, conferences: List[Conference], start: int, end: int):
        def _sync(conference):
            count = self.transaction_sync.sync_conference(self.session, conference, MAX_TRANSACTION_WEEK)
            for failed_week in self.transaction_sync.failed_weeks:
                result.errors.append(f"transacciones semana {failed_week} ({conference.conference_name})")
            return count
        self._for_each_conference(result, conferences, "transacciones", _sync, start, end)

    def _run_full(self, result: SyncResult, season: Season, conferences: List[Conference], week: Optional[int]):
        log_step("Sincronizando ligas y equipos")
        current_week = self._current_week(season, week)
        self._for_each_conference(result, conferences, "liga",
                                  lambda c: int(self.league_sync.sync_conference(self.session, c)), 0, 10)
        self._for_each_conference(result, conferences, "equipos",
                                  lambda c: self.team_sync.sync_conference(self.session, c), 10, 20)

        self._progress(20, "Sincronizando jugadores")
        self._run_unit(result, "jugadores", lambda: self.player_sync.sync_all(self.session))

        log_step("Sincronizando enfrentamientos de la temporada")
        weeks = list(range(1, REGULAR_SEASON_WEEKS + 1))
        self._sync_matchup_weeks(result, season, conferences, weeks, current_week, 30, 60)

        roster_week = min(current_week, REGULAR_SEASON_WEEKS)
        self._for_each_conference(result, conferences, "rosters",
                                  lambda c: self.roster_sync.sync_conference(self.session, c, roster_week), 60, 70)
        self._for_each_conference(result, conferences, "draft",
                                  lambda c: self.draft_sync.sync_conference(self.session, c), 70, 80)
        self._run_transactions(result, conferences, 80, 90)
        self._for_each_conference(result, conferences, "récords",
                                  lambda c: self.records_sync.recalculate(self.session, season, c), 90, 100)

    def _run_weekly(self, result: SyncResult, season: Season, conferences: List[Conference], week: Optional[int]):
        current_week = self._current_week(season, week)
        # La semana anterior se vuelve a sincronizar para cerrar sus marcadores
        weeks = [w for w in (current_week - 1, current_week) if 1 <= w <= REGULAR_SEASON_WEEKS]
        log_step(f"Sincronizando semanas {weeks}")
        self._sync_matchup_weeks(result, season, conferences, weeks, current_week, 0, 60)

        roster_week = min(current_week, REGULAR_SEASON_WEEKS)
        self._for_each_conference(result, conferences, "rosters",
                                  lambda c: self.roster_sync.sync_conference(self.session, c, roster_week), 60, 80)
        self._for_each_conference(result, conferences, "récords",
                                  lambda c: self.records_sync.recalculate(self.session, season, c), 80, 100)
