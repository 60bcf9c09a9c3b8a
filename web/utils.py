from typing import Optional, Any, Tuple, List

from sqlalchemy.orm import Session

from db.connection import get_session
from db.models import Season
from db.query import get_seasons, get_current_season, get_season_by_year
from db.standings import format_record, format_points
from ingestion.sleeper_client import SleeperApiClient


# Dependencia para obtener la sesion de BD
def get_db():
    db = get_session()
    try:
        yield db
    finally:
        db.close()


# Dependencia para obtener el cliente de Sleeper (sustituible en tests)
def get_sleeper_client():
    client = SleeperApiClient()
    try:
        yield client
    finally:
        client.close()


def to_int(value: Any) -> Optional[int]:
    """Convierte un parámetro de formulario a int; vacío o inválido es None."""
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def to_float(value: Any) -> Optional[float]:
    """Como to_int, para marcadores."""
    if value is None or value == '':
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def resolve_season(db: Session, season: Optional[str]) -> Tuple[Optional[Season], List[Season]]:
    """Retorna la temporada pedida (o la actual) y la lista de temporadas."""
    seasons = get_seasons(session=db)
    selected = get_season_by_year(season, session=db) if season else None
    return selected or get_current_season(session=db), seasons


def record_filter(obj: Any) -> str:
    """Filtro Jinja: récord "W-L" o "W-L-T" desde un TeamRecord o dict."""
    if obj is None:
        return "0-0"
    get = obj.get if isinstance(obj, dict) else lambda k: getattr(obj, k, 0)
    return format_record(get('wins'), get('losses'), get('ties'))


def points_filter(value: Optional[float]) -> str:
    return format_points(value)


def pct_filter(value: Optional[float]) -> str:
    """Porcentaje de victorias al estilo ".625"."""
    value = float(value or 0)
    if value >= 1:
        return "1.000"
    return f"{value:.3f}".lstrip('0')


def height_filter(inches: Optional[int]) -> Optional[str]:
    """Convierte altura en pulgadas a pies-pulgadas (6'2")."""
    if not inches or inches <= 0:
        return None
    return f"{inches // 12}'{inches % 12}\""


def lbs_to_kg(lbs: Optional[int]) -> Optional[int]:
    """Convierte peso de libras a kilogramos."""
    if lbs is None or lbs <= 0:
        return None
    return int(round(lbs * 0.453592))
