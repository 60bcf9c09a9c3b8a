import logging
from typing import Optional, Dict, List, Any

from fastapi import APIRouter, Request, Depends
from sqlalchemy.orm import Session

from db import get_conferences, get_teams
from db.standings import sort_conferences_by_name, group_conferences_by_status
from web.templates import templates
from web.utils import get_db, resolve_season

router = APIRouter(prefix="/conferences")
logger = logging.getLogger("gladiator.web.conferences")


@router.get("")
async def list_conferences(request: Request, season: Optional[str] = None, db: Session = Depends(get_db)):
    selected, seasons = resolve_season(db, season)
    conferences = []
    by_status: Dict[str, List[Any]] = {}
    teams_by_conference: Dict[int, List[Dict[str, Any]]] = {}
    error = None

    if selected:
        try:
            conferences = sort_conferences_by_name(get_conferences(selected.id, session=db))
            by_status = group_conferences_by_status(conferences)
            for item in get_teams(selected.id, session=db):
                teams_by_conference.setdefault(item['conference'].id, []).append(item)
        except Exception as e:
            logger.error(f"Error cargando conferencias: {e}", exc_info=True)
            error = "No se pudieron cargar las conferencias."

    return templates.TemplateResponse(request, "conferences.html", {
        "request": request,
        "active_page": "conferences",
        "seasons": seasons,
        "season": selected,
        "conferences": conferences,
        "by_status": by_status,
        "teams_by_conference": teams_by_conference,
        "error": error,
    })
