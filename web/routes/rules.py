from typing import Optional

from fastapi import APIRouter, Request, Depends
from sqlalchemy.orm import Session

from db import get_playoff_format
from web.templates import templates
from web.utils import get_db, resolve_season

router = APIRouter(prefix="/rules")


@router.get("")
async def rules_page(request: Request, season: Optional[str] = None, db: Session = Depends(get_db)):
    """Reglas de la temporada: puntuación, posiciones, playoffs y reglamento."""
    selected, seasons = resolve_season(db, season)
    scoring = dict(sorted((selected.scoring_settings or {}).items())) if selected else {}

    return templates.TemplateResponse(request, "rules.html", {
        "request": request,
        "active_page": "rules",
        "seasons": seasons,
        "season": selected,
        "scoring_settings": scoring,
        "roster_positions": (selected.roster_positions or []) if selected else [],
        "playoff_format": get_playoff_format(selected.id, session=db) if selected else None,
    })
