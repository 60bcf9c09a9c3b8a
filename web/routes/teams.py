import logging
from typing import Optional, Dict, List, Any

from fastapi import APIRouter, Request, Depends
from sqlalchemy.orm import Session

from db import get_conferences, get_teams, get_team_detail
from web.templates import templates
from web.utils import get_db, resolve_season, to_int

router = APIRouter(prefix="/teams")
logger = logging.getLogger("gladiator.web.teams")


@router.get("")
async def list_teams(
    request: Request,
    season: Optional[str] = None,
    conference: Optional[str] = None,
    db: Session = Depends(get_db)
):
    selected, seasons = resolve_season(db, season)
    conference_id = to_int(conference)
    teams_by_conference: Dict[str, List[Dict[str, Any]]] = {}
    conferences = []
    error = None

    if selected:
        try:
            conferences = get_conferences(selected.id, session=db)
            for item in get_teams(selected.id, conference_id=conference_id, session=db):
                teams_by_conference.setdefault(item['conference'].conference_name, []).append(item)
        except Exception as e:
            logger.error(f"Error cargando equipos: {e}", exc_info=True)
            error = "No se pudieron cargar los equipos."

    return templates.TemplateResponse(request, "teams/list.html", {
        "request": request,
        "active_page": "teams",
        "seasons": seasons,
        "season": selected,
        "conferences": conferences,
        "conference_id": conference_id,
        "teams_by_conference": teams_by_conference,
        "error": error,
    })


@router.get("/{team_id}")
async def team_detail(
    request: Request,
    team_id: int,
    season: Optional[str] = None,
    db: Session = Depends(get_db)
):
    selected, seasons = resolve_season(db, season)
    detail = get_team_detail(team_id, selected.id, session=db) if selected else None
    if not detail:
        return templates.TemplateResponse(request, "404.html", {"request": request, "active_page": "teams"},
                                          status_code=404)

    return templates.TemplateResponse(request, "teams/detail.html", {
        "request": request,
        "active_page": "teams",
        "seasons": seasons,
        "season": selected,
        **detail,
    })
