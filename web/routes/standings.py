import logging
from typing import Optional

from fastapi import APIRouter, Request, Depends
from sqlalchemy.orm import Session

from db import get_conferences, get_standings, get_playoff_format, get_playoff_bracket
from db.standings import sort_standings, SORTABLE_COLUMNS
from web.templates import templates
from web.utils import get_db, resolve_season, to_int

router = APIRouter(prefix="/standings")
logger = logging.getLogger("gladiator.web.standings")


@router.get("")
async def standings_page(
    request: Request,
    season: Optional[str] = None,
    conference: Optional[str] = None,
    sort: Optional[str] = None,
    direction: str = "asc",
    db: Session = Depends(get_db)
):
    selected, seasons = resolve_season(db, season)
    conference_id = to_int(conference)
    context = {
        "request": request,
        "active_page": "standings",
        "seasons": seasons,
        "season": selected,
        "conferences": [],
        "conference_id": conference_id,
        "standings": [],
        "playoff_format": None,
        "bracket": {},
        "sort": sort,
        "direction": direction,
        "sortable_columns": SORTABLE_COLUMNS,
        "error": None,
    }

    if selected:
        try:
            context["conferences"] = get_conferences(selected.id, session=db)
            rows = get_standings(selected.id, conference_id=conference_id, session=db)
            context["standings"] = sort_standings(rows, sort, direction) if sort else rows
            context["playoff_format"] = get_playoff_format(selected.id, session=db)
            context["bracket"] = get_playoff_bracket(selected.id, session=db)
        except Exception as e:
            logger.error(f"Error cargando la clasificación: {e}", exc_info=True)
            context["error"] = "No se pudo cargar la clasificación."

    return templates.TemplateResponse(request, "standings.html", context)
