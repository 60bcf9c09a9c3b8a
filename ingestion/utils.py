import logging
import math
import time
from datetime import datetime, timezone
from typing import Optional, Any

import httpx
from dateutil import parser as date_parser

from ingestion.config import API_DELAY, MAX_RETRIES, RETRY_WAIT, PROGRESS_LOG_INTERVAL

logger = logging.getLogger(__name__)


class FatalSyncError(Exception):
    """Excepción para errores que impiden continuar una sincronización."""
    pass


class SleeperApiError(FatalSyncError):
    """Una llamada a la API de Sleeper falló tras agotar los reintentos."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _is_not_found(error: Exception) -> bool:
    return isinstance(error, httpx.HTTPStatusError) and error.response.status_code == 404


def fetch_with_retry(api_call_func, max_retries=MAX_RETRIES, timeout=RETRY_WAIT, error_context="", fatal=True):
    """Ejecuta una llamada API con reintentos simplificados.

    Un 404 significa "sin datos" y retorna None sin reintentar. Tras el último
    intento lanza SleeperApiError si fatal, o retorna None en caso contrario.
    """
    for attempt in range(max_retries):
        try:
            result = api_call_func()
            time.sleep(API_DELAY)
            return result
        except Exception as e:
            error_msg = str(e)

            # Sleeper responde 404 cuando no hay datos (semana futura, liga sin draft)
            if _is_not_found(e):
                logger.warning(f"Datos no disponibles en {error_context}: {error_msg}")
                return None

            logger.warning(
                f"Error en {error_context} (intento {attempt + 1}/{max_retries}): {error_msg}. "
                f"Esperando {timeout}s para reintentar..."
            )
            if attempt == max_retries - 1:
                logger.error(f"Fallo persistente en {error_context} tras {max_retries} intentos.")
                if fatal:
                    status_code = e.response.status_code if isinstance(e, httpx.HTTPStatusError) else None
                    raise SleeperApiError(
                        f"Agotados reintentos en {error_context}: {error_msg}",
                        status_code=status_code
                    ) from e
                return None
            time.sleep(timeout)
    return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parsea un timestamp de Sleeper (milisegundos epoch) o un string ISO a datetime UTC."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    try:
        parsed = date_parser.parse(str(value))
    except (ValueError, OverflowError):
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def safe_int(value: Any, default: int = 0) -> int:
    """Convierte un valor a int de forma segura."""
    try:
        f_val = float(value)
        return int(f_val) if not (math.isnan(f_val) or math.isinf(f_val)) else default
    except (TypeError, ValueError): return default


def safe_float(value: Any, default: float = 0.0) -> float:
    """Convierte un valor a float de forma segura."""
    try:
        f_val = float(value)
        return f_val if not (math.isnan(f_val) or math.isinf(f_val)) else default
    except (TypeError, ValueError): return default


def safe_int_or_none(value: Any) -> Optional[int]:
    """Convierte un valor a int o None si es 0, None o inválido."""
    try:
        val = int(float(value))
        return val if val > 0 else None
    except (TypeError, ValueError): return None


class ProgressReporter:
    """Publica el progreso de una sincronización en system_status.

    El panel de administración consulta esa fila para mostrar porcentaje y
    mensaje. Sin session_factory el progreso solo se registra en el log.
    """

    def __init__(self, task_name: str, session_factory=None):
        self.task_name = task_name
        self.session_factory = session_factory
        self.current_progress = 0
        self.last_message = ""
        self.start_time = time.time()
        self.last_log_time = self.start_time
        self.items_processed = 0
        self.total_items = 0

    def _elapsed(self) -> str:
        elapsed = int(time.time() - self.start_time)
        return f"{elapsed // 60}m{elapsed % 60}s" if elapsed > 60 else f"{elapsed}s"

    def set_total(self, total: int):
        self.total_items = total

    def increment(self, message: str = "", delta: int = 1):
        """Suma delta elementos procesados; con total conocido recalcula el porcentaje."""
        self.items_processed += delta
        progress = None
        if self.total_items > 0:
            progress = min(100, int(self.items_processed * 100 / self.total_items))
            message = message or f"{self.items_processed}/{self.total_items}"
        self.update(progress, message or "En progreso...")

    def update(self, progress: Optional[int], message: str, status: str = "running"):
        """Actualiza el progreso (None mantiene el actual) y el estado de la tarea.

        Args:
            status: running, completed o failed
        """
        if progress is not None:
            self.current_progress = progress
        self.last_message = message

        now = time.time()
        if now - self.last_log_time >= PROGRESS_LOG_INTERVAL or self.current_progress >= 100 or status != "running":
            logger.info(f"[{self.task_name}] {self.current_progress}% - {message} ({self._elapsed()})")
            self.last_log_time = now

        if self.session_factory:
            self._save(status, message)

    def _save(self, status: str, message: str):
        from db.models import SystemStatus

        session = self.session_factory()
        try:
            task = session.query(SystemStatus).filter_by(task_name=self.task_name).first()
            if not task:
                task = SystemStatus(task_name=self.task_name)
                session.add(task)
            task.status = status
            task.progress = self.current_progress
            task.message = message[:255]
            if task.last_run is None:
                task.last_run = datetime.now()
            session.commit()
        except Exception:
            # El estado es informativo; no interrumpe la sincronización
            session.rollback()
        finally:
            session.close()

    def complete(self, message: str = "Sincronización completada"):
        self.update(100, f"{message} en {self._elapsed()}", status="completed")

    def fail(self, message: str):
        self.update(None, f"ERROR: {message}", status="failed")
