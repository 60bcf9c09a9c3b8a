"""Configuraciones para el módulo de sincronización con Sleeper.

Este módulo centraliza todas las configuraciones relacionadas con:
- Timeouts y reintentos de llamadas API
- Delays para rate limiting
- Calendario de la temporada NFL
- Formato de playoffs por defecto
- Frecuencia de los logs de progreso
"""
import os
from dotenv import load_dotenv

# Cargar variables de entorno del archivo .env
load_dotenv()

# Configuración de API
SLEEPER_API_BASE_URL = os.getenv("SLEEPER_API_BASE_URL", "https://api.sleeper.app/v1")
API_TIMEOUT = int(os.getenv("SYNC_API_TIMEOUT", 10))      # Tiempo de espera máximo por petición (segundos)
MAX_RETRIES = int(os.getenv("SYNC_MAX_RETRIES", 3))       # Reintentos automáticos ante cualquier error
RETRY_WAIT = float(os.getenv("SYNC_RETRY_WAIT", 2))       # Espera (segundos) antes de reintentar
API_DELAY = float(os.getenv("SYNC_API_DELAY", 0.1))       # Pausa (segundos) entre llamadas exitosas consecutivas

# Calendario
REGULAR_SEASON_WEEKS = int(os.getenv("REGULAR_SEASON_WEEKS", 17))
MAX_TRANSACTION_WEEK = int(os.getenv("MAX_TRANSACTION_WEEK", 18))
DEFAULT_NFL_WEEK = int(os.getenv("DEFAULT_NFL_WEEK", 14))   # Semana usada si state/nfl no responde

# Formato de playoffs por defecto
DEFAULT_PLAYOFF_FORMAT = {
    'playoff_teams': 10,
    'week_14_byes': 6,
    'reseed': True,
    'playoff_start_week': 14,
    'championship_week': 17,
}

# Orden de los huecos del lineup titular
LINEUP_SLOTS = ['QB', 'RB', 'RB', 'WR', 'WR', 'WR', 'TE', 'FLEX', 'SUPER_FLEX', 'K', 'DEF']
BENCH_SLOT = 'BENCH'

# Intervalo mínimo (segundos) entre logs de progreso de una sincronización
PROGRESS_LOG_INTERVAL = int(os.getenv("SYNC_PROGRESS_LOG_INTERVAL", 5))
