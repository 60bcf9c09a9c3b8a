"""Configuración de la aplicación web (panel de admin, sesiones y paginación)."""
import os
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

# Contraseña compartida del panel de administración
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "gladleague2025")
ADMIN_SESSION_HOURS = int(os.getenv("ADMIN_SESSION_HOURS", 8))

# Clave para firmar la cookie de sesión
SESSION_SECRET = os.getenv("SESSION_SECRET", "gladiator-league-dev-secret")

PLAYERS_PER_PAGE = int(os.getenv("PLAYERS_PER_PAGE", 50))


def get_auth_token() -> Optional[str]:
    """Obtiene el token de seguridad para el cron desde las variables de entorno."""
    return os.getenv("SECURE_TOKEN") or os.getenv("CRON_API_KEY")
