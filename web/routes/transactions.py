import logging
from typing import Optional

from fastapi import APIRouter, Request, Depends
from sqlalchemy.orm import Session

from db import get_conferences, get_transactions
from web.templates import templates
from web.utils import get_db, resolve_season, to_int

router = APIRouter(prefix="/transactions")
logger = logging.getLogger("gladiator.web.transactions")

TRANSACTION_TYPES = ['trade', 'free_agent', 'waiver', 'commissioner']


@router.get("")
async def list_transactions(
    request: Request,
    season: Optional[str] = None,
    conference: Optional[str] = None,
    type: Optional[str] = None,
    week: Optional[str] = None,
    db: Session = Depends(get_db)
):
    selected, seasons = resolve_season(db, season)
    conference_id = to_int(conference)
    week_number = to_int(week)
    tx_type = type if type in TRANSACTION_TYPES else None
    context = {
        "request": request,
        "active_page": "transactions",
        "seasons": seasons,
        "season": selected,
        "conferences": [],
        "conference_id": conference_id,
        "type": tx_type,
        "week": week_number,
        "types": TRANSACTION_TYPES,
        "transactions": [],
        "error": None,
    }

    if selected:
        try:
            context["conferences"] = get_conferences(selected.id, session=db)
            context["transactions"] = get_transactions(
                selected.id, conference_id=conference_id, type=tx_type, week=week_number, session=db
            )
        except Exception as e:
            logger.error(f"Error cargando transacciones: {e}", exc_info=True)
            context["error"] = "No se pudieron cargar las transacciones."

    return templates.TemplateResponse(request, "transactions.html", context)
