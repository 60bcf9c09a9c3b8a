"""CLI para ejecutar sincronizaciones con Sleeper.

Este módulo proporciona la interfaz de línea de comandos para sincronizar
la base de datos de la liga con la API de Sleeper. Modos disponibles:
- full: Todas las sincronizaciones para cada conferencia de la temporada
- weekly: Enfrentamientos, rosters y récords de la semana actual
- players: Catálogo de jugadores NFL
- drafts: Resultados del draft
- transactions: Transacciones de la temporada
- records: Recalcular récords desde los enfrentamientos guardados
"""

import argparse
import logging
import sys

from db import init_db
from db.connection import get_session
from db.logging import setup_logging, clear_sync_logs, CLEAR_LOGS_ON_SYNC_START
from db.summary import print_summary
from ingestion.sleeper_client import SleeperApiClient
from ingestion.strategies import SyncRunner, SYNC_MODES, SYNC_TASK_NAME
from ingestion.utils import FatalSyncError, ProgressReporter

logger = logging.getLogger("gladiator.ingestion.cli")


def run_sync(mode: str, season_year=None, week=None) -> int:
    """Ejecuta un modo de sincronización y retorna el código de salida."""
    if CLEAR_LOGS_ON_SYNC_START:
        session = get_session()
        try:
            clear_sync_logs(session)
        finally:
            session.close()

    reporter = ProgressReporter(SYNC_TASK_NAME, session_factory=get_session)
    reporter.update(0, f"Iniciando sincronización {mode}...")

    session = get_session()
    try:
        with SleeperApiClient() as api_client:
            runner = SyncRunner(api_client, session, reporter=reporter)
            result = runner.run(mode, season_year=season_year, week=week)

        if result.status == 'success':
            reporter.complete(f"Sincronización {mode} completada ({result.processed} registros)")
            return 0
        if result.status == 'partial':
            reporter.complete(
                f"Sincronización {mode} parcial ({result.processed} registros, {len(result.errors)} errores)"
            )
            return 0
        reporter.fail(f"Sincronización {mode} fallida: {'; '.join(result.errors[:3])}")
        return 1

    except FatalSyncError as e:
        logger.error("=" * 80)
        logger.error("🔴 ERROR FATAL EN SINCRONIZACIÓN")
        logger.error("=" * 80)
        logger.error(f"Error: {e}")
        reporter.fail(str(e))
        return 1

    except Exception as e:
        logger.error(f"❌ Error inesperado: {e}", exc_info=True)
        reporter.fail(str(e))
        return 1

    finally:
        session.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Sincronización de la liga con la API de Sleeper',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Ejemplos de uso:

  # Sincronización completa de la temporada actual
  python -m ingestion.cli --mode full

  # Sincronización semanal (la usa el cron)
  python -m ingestion.cli --mode weekly

  # Forzar semana y temporada
  python -m ingestion.cli --mode weekly --season 2025 --week 9

  # Recalcular récords y mostrar resumen
  python -m ingestion.cli --mode records --summary

  # Inicializar base de datos
  python -m ingestion.cli --init-db
        """
    )

    parser.add_argument(
        '--mode',
        type=str,
        choices=SYNC_MODES,
        help='Modo de sincronización (requerido si no se usa --init-db o --summary)'
    )
    parser.add_argument(
        '--season',
        type=str,
        default=None,
        help='Año de la temporada (default: temporada actual)'
    )
    parser.add_argument(
        '--week',
        type=int,
        default=None,
        help='Semana NFL (default: semana actual según Sleeper)'
    )
    parser.add_argument(
        '--init-db',
        action='store_true',
        help='Inicializar base de datos antes de sincronizar'
    )
    parser.add_argument(
        '--summary',
        action='store_true',
        help='Mostrar resumen de registros al terminar'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Nivel de log DEBUG'
    )
    return parser


def main(argv=None) -> int:
    """Punto de entrada principal del CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.week is not None and args.week < 1:
        parser.error("--week debe ser mayor o igual a 1")

    # Asegurar que la tabla de logs (y el resto) existe antes de configurar logging
    init_db()
    setup_logging("cli", verbose=args.verbose)

    if args.init_db:
        logger.info("✅ Base de datos inicializada")

    exit_code = 0
    if args.mode:
        exit_code = run_sync(args.mode, season_year=args.season, week=args.week)
    elif not args.init_db and not args.summary:
        parser.error("--mode es requerido (usar --help para ver ejemplos)")

    if args.summary:
        print_summary()

    return exit_code


if __name__ == '__main__':
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\n⚠️  Sincronización interrumpida")
        sys.exit(130)
