from fastapi.templating import Jinja2Templates
from pathlib import Path
from web.utils import record_filter, points_filter, pct_filter, height_filter, lbs_to_kg

# Configurar rutas de templates
BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

# Registrar filtros personalizados
templates.env.filters["record"] = record_filter
templates.env.filters["points"] = points_filter
templates.env.filters["pct"] = pct_filter
templates.env.filters["height"] = height_filter
templates.env.filters["to_kg"] = lbs_to_kg
