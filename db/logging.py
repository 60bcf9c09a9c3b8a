"""Logging de Gladiator League.

La CLI de sincronización y la web comparten la misma configuración: consola
(salvo en subprocesos silenciados) y la tabla log_entries, que el panel de
administración muestra mientras corre una sincronización.
"""
import os
import sys
import logging
import traceback
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from db.connection import get_session
from db.models import LogEntry

IS_CLOUD = os.getenv("RENDER") == "true" or os.getenv("CLOUD_MODE") == "true"

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING" if IS_CLOUD else "INFO").upper()

# El subproceso lanzado desde el panel ya escribe en log_entries
SILENT_STDOUT = os.getenv("SYNC_SILENT_STDOUT", "false").lower() == "true"
CLEAR_LOGS_ON_SYNC_START = os.getenv("SYNC_CLEAR_LOGS", "false").lower() == "true"

# Loggers que no se guardan en la BD (el propio guardado los generaría)
UNPERSISTED_LOGGERS = ('sqlalchemy', 'psycopg2')
NOISY_LOGGERS = ('urllib3', 'httpx', 'httpcore')

SYSTEM_LOGGER = "gladiator.system"


class SQLAlchemyHandler(logging.Handler):
    """Guarda cada registro en log_entries con su traceback, si lo hay.

    Un fallo al escribir se descarta: el log nunca debe tumbar una sincronización.
    """

    def __init__(self, session_factory=get_session):
        super().__init__()
        self.session_factory = session_factory

    def emit(self, record):
        if record.name.startswith(UNPERSISTED_LOGGERS):
            return

        session = self.session_factory()
        try:
            session.add(LogEntry(
                timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc),
                level=record.levelname,
                module=record.name,
                message=record.getMessage(),
                traceback="".join(traceback.format_exception(*record.exc_info)) if record.exc_info else None
            ))
            session.commit()
        except Exception:
            session.rollback()
        finally:
            session.close()


def setup_logging(context: str = "cli", verbose: bool = False):
    """Configura el logger raíz para la CLI ('cli') o la web ('web')."""
    handlers = [SQLAlchemyHandler()]
    if not SILENT_STDOUT:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        handlers.append(console)

    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, LOG_LEVEL, logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    if context == "web":
        logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)


def log_header(message: str):
    logger = logging.getLogger(SYSTEM_LOGGER)
    logger.info("=" * 80)
    logger.info(message.upper())
    logger.info("=" * 80)


def log_step(message: str):
    logging.getLogger(SYSTEM_LOGGER).info(f"➜ {message}...")


def log_success(message: str):
    logging.getLogger(SYSTEM_LOGGER).info(f"✅ {message}")


def clear_sync_logs(session: Session) -> int:
    """Borra log_entries antes de una sincronización nueva. Retorna las filas borradas."""
    try:
        deleted = session.query(LogEntry).delete()
        session.commit()
        return deleted
    except Exception:
        session.rollback()
        raise
