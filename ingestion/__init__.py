"""Módulo de sincronización con Sleeper.

Este módulo contiene toda la lógica para descargar, transformar y almacenar
los datos de las ligas (conferencias) desde la API pública de Sleeper.
"""

from ingestion.sleeper_client import SleeperApiClient
from ingestion.utils import FatalSyncError, SleeperApiError, fetch_with_retry, ProgressReporter

__all__ = [
    'SleeperApiClient',
    'FatalSyncError',
    'SleeperApiError',
    'fetch_with_retry',
    'ProgressReporter',
]
