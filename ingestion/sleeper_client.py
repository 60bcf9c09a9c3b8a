"""Cliente para la API pública de Sleeper.

Este módulo centraliza todas las llamadas a la API de Sleeper,
proporcionando una interfaz consistente con manejo automático
de errores y reintentos.
"""

import logging
from typing import Dict, List, Optional, Any, Tuple

import httpx

from ingestion.config import (
    SLEEPER_API_BASE_URL, API_TIMEOUT, MAX_RETRIES, RETRY_WAIT,
    REGULAR_SEASON_WEEKS, DEFAULT_NFL_WEEK
)
from ingestion.utils import fetch_with_retry, SleeperApiError

logger = logging.getLogger(__name__)


class SleeperApiClient:
    """Cliente que maneja todas las llamadas a la API de Sleeper.

    Todas las llamadas usan fetch_with_retry. Un 404 se interpreta como
    "sin datos" y las listas vacías se devuelven como tales. Si la API falla
    persistentemente se lanza SleeperApiError.
    """

    def __init__(
        self,
        base_url: str = SLEEPER_API_BASE_URL,
        timeout: float = API_TIMEOUT,
        http_client: Optional[httpx.Client] = None,
        max_retries: int = MAX_RETRIES,
        retry_wait: float = RETRY_WAIT,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_wait = retry_wait
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(timeout=timeout)
        self._transactions_cache: Dict[Tuple[str, int], List[Dict[str, Any]]] = {}
        self._matchups_cache: Dict[Tuple[str, int], List[Dict[str, Any]]] = {}

    def close(self):
        """Cierra el cliente HTTP si fue creado por esta instancia."""
        if self._owns_client:
            self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _request(self, path: str) -> Any:
        response = self._http.get(f"{self.base_url}/{path.lstrip('/')}", timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def _get(self, path: str, error_context: str, fatal: bool = True) -> Any:
        return fetch_with_retry(
            lambda: self._request(path),
            max_retries=self.max_retries,
            timeout=self.retry_wait,
            error_context=error_context,
            fatal=fatal
        )

    # ------------------------------------------------------------------
    # Ligas
    # ------------------------------------------------------------------

    def fetch_league(self, league_id: str) -> Optional[Dict[str, Any]]:
        """Obtiene la información de una liga (nombre, avatar, draft_id, settings).

        Raises:
            SleeperApiError: Si la API falla persistentemente tras reintentos
        """
        return self._get(f"league/{league_id}", f"league({league_id})")

    def fetch_league_rosters(self, league_id: str) -> List[Dict[str, Any]]:
        """Obtiene los rosters de una liga."""
        return self._get(f"league/{league_id}/rosters", f"rosters({league_id})") or []

    def fetch_league_users(self, league_id: str) -> List[Dict[str, Any]]:
        """Obtiene los usuarios (managers) de una liga."""
        return self._get(f"league/{league_id}/users", f"users({league_id})") or []

    # ------------------------------------------------------------------
    # Enfrentamientos
    # ------------------------------------------------------------------

    def fetch_matchups(self, league_id: str, week: int) -> List[Dict[str, Any]]:
        """Obtiene las entradas de enfrentamientos de una semana.

        Cada entrada corresponde a un roster; dos entradas con el mismo
        matchup_id forman un enfrentamiento. Se memoizan por liga y semana
        para que los enfrentamientos interconferencia no repitan llamadas.
        """
        key = (league_id, week)
        if key in self._matchups_cache:
            return self._matchups_cache[key]

        matchups = self._get(
            f"league/{league_id}/matchups/{week}",
            f"matchups({league_id}, semana {week})"
        ) or []
        self._matchups_cache[key] = matchups
        return matchups

    def fetch_all_season_matchups(self, league_id: str, weeks: int = REGULAR_SEASON_WEEKS) -> Dict[int, List[Dict[str, Any]]]:
        """Obtiene los enfrentamientos de las semanas 1..weeks.

        Una semana que falla se registra y queda como lista vacía.
        """
        all_matchups = {}
        for week in range(1, weeks + 1):
            try:
                all_matchups[week] = self.fetch_matchups(league_id, week)
            except SleeperApiError as e:
                logger.error(f"No se pudieron obtener enfrentamientos de la semana {week} ({league_id}): {e}")
                all_matchups[week] = []
        return all_matchups

    # ------------------------------------------------------------------
    # Transacciones
    # ------------------------------------------------------------------

    def fetch_transactions(self, league_id: str, week: int) -> List[Dict[str, Any]]:
        """Obtiene las transacciones de una semana (memoizadas por liga y semana)."""
        key = (league_id, week)
        if key in self._transactions_cache:
            return self._transactions_cache[key]

        transactions = self._get(
            f"league/{league_id}/transactions/{week}",
            f"transactions({league_id}, semana {week})"
        ) or []
        self._transactions_cache[key] = transactions
        return transactions

    def clear_cache(self):
        self._transactions_cache.clear()
        self._matchups_cache.clear()

    # ------------------------------------------------------------------
    # Draft
    # ------------------------------------------------------------------

    def fetch_league_drafts(self, league_id: str) -> List[Dict[str, Any]]:
        """Obtiene los drafts asociados a una liga."""
        return self._get(f"league/{league_id}/drafts", f"drafts({league_id})") or []

    def fetch_draft_picks(self, draft_id: str) -> List[Dict[str, Any]]:
        """Obtiene todas las selecciones de un draft."""
        return self._get(f"draft/{draft_id}/picks", f"draft_picks({draft_id})") or []

    # ------------------------------------------------------------------
    # Jugadores y estado NFL
    # ------------------------------------------------------------------

    def fetch_all_players(self) -> Dict[str, Dict[str, Any]]:
        """Obtiene el catálogo completo de jugadores NFL indexado por player_id.

        La respuesta es grande (~5MB); Sleeper pide no llamarlo más de una vez al día.
        """
        return self._get("players/nfl", "players/nfl") or {}

    def get_current_nfl_week(self) -> int:
        """Retorna la semana NFL actual o DEFAULT_NFL_WEEK si state/nfl no responde."""
        state = self._get("state/nfl", "state/nfl", fatal=False)
        week = state.get('week') if isinstance(state, dict) else None
        if not week:
            logger.warning(f"Semana NFL no disponible, usando semana por defecto {DEFAULT_NFL_WEEK}")
            return DEFAULT_NFL_WEEK
        return int(week)
