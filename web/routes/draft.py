import logging
from typing import Optional

from fastapi import APIRouter, Request, Depends
from sqlalchemy.orm import Session

from db import get_conferences, get_draft_results, Team
from db.standings import group_draft_picks
from web.templates import templates
from web.utils import get_db, resolve_season, to_int

router = APIRouter(prefix="/draft")
logger = logging.getLogger("gladiator.web.draft")


@router.get("")
async def draft_board(
    request: Request,
    season: Optional[str] = None,
    conference: Optional[str] = None,
    round: Optional[str] = None,
    db: Session = Depends(get_db)
):
    selected, seasons = resolve_season(db, season)
    conference_id = to_int(conference)
    round_number = to_int(round)
    context = {
        "request": request,
        "active_page": "draft",
        "seasons": seasons,
        "season": selected,
        "conferences": [],
        "conference_id": conference_id,
        "round": round_number,
        "picks": [],
        "grouped": {"by_round": {}, "by_owner": {}, "position_counts": {}},
        "owner_names": {},
        "error": None,
    }

    if selected:
        try:
            context["conferences"] = get_conferences(selected.id, session=db)
            picks = get_draft_results(selected.id, conference_id=conference_id, round=round_number, session=db)
            context["picks"] = picks
            context["grouped"] = group_draft_picks(picks)
            owner_ids = [owner for owner in context["grouped"]["by_owner"] if owner and owner != "unknown"]
            if owner_ids:
                teams = db.query(Team).filter(Team.owner_id.in_(owner_ids)).all()
                context["owner_names"] = {t.owner_id: t.team_name for t in teams}
        except Exception as e:
            logger.error(f"Error cargando el draft: {e}", exc_info=True)
            context["error"] = "No se pudo cargar el draft."

    return templates.TemplateResponse(request, "draft.html", context)
