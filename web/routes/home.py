import logging

from fastapi import APIRouter, Request, Depends
from sqlalchemy.orm import Session

from db import get_database_stats, get_standings, get_matchups, get_transactions
from web.templates import templates
from web.utils import get_db, resolve_season

router = APIRouter()
logger = logging.getLogger("gladiator.web.home")


@router.get("/")
async def home(request: Request, db: Session = Depends(get_db)):
    season, seasons = resolve_season(db, None)
    context = {
        "request": request,
        "active_page": "home",
        "season": season,
        "stats": {},
        "top_standings": [],
        "week_matchups": [],
        "current_week": None,
        "recent_transactions": [],
        "error": None,
    }

    try:
        context["stats"] = get_database_stats(session=db)
        if season:
            context["top_standings"] = get_standings(season.id, session=db)[:5]
            current_week = season.current_week
            if current_week:
                context["week_matchups"] = get_matchups(season.id, week=current_week, session=db)
            context["current_week"] = current_week
            context["recent_transactions"] = get_transactions(season.id, limit=5, session=db)
    except Exception as e:
        logger.error(f"Error cargando la portada: {e}", exc_info=True)
        context["error"] = "No se pudieron cargar los datos de la liga."

    return templates.TemplateResponse(request, "home.html", context)
