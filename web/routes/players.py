from fastapi import APIRouter, Request, Depends
from fastapi.responses import Response
from web.templates import templates
from sqlalchemy.orm import Session
from typing import Optional
import logging

import pandas as pd

from db import get_players, get_player_detail, get_rostered_players
from db.query import total_pages, PLAYER_SORT_FIELDS
from web.config import PLAYERS_PER_PAGE
from web.utils import get_db, resolve_season

router = APIRouter(prefix="/players")
logger = logging.getLogger("gladiator.web.players")

POSITIONS = ['QB', 'RB', 'WR', 'TE', 'K', 'DEF']

EXPORT_COLUMNS = ['sleeper_id', 'player_name', 'position', 'nfl_team', 'number',
                  'age', 'years_exp', 'college', 'injury_status', 'fantasy_team']


@router.get("")
async def list_players(
    request: Request,
    page: int = 1,
    search: Optional[str] = None,
    position: Optional[str] = None,
    nfl_team: Optional[str] = None,
    rostered: Optional[str] = None,
    sort: str = "player_name",
    direction: str = "asc",
    season: Optional[str] = None,
    db: Session = Depends(get_db)
):
    selected, seasons = resolve_season(db, season)
    season_id = selected.id if selected else None
    players, total = [], 0
    owners = {}
    error = None

    try:
        players, total = get_players(
            search=search, position=position, nfl_team=nfl_team, rostered=rostered,
            season_id=season_id, sort_field=sort, sort_direction=direction,
            page=page, per_page=PLAYERS_PER_PAGE, session=db
        )
        if season_id is not None:
            owners = get_rostered_players(season_id, session=db)
    except Exception as e:
        logger.error(f"Error buscando jugadores: {e}", exc_info=True)
        error = "No se pudieron cargar los jugadores."

    context = {
        "request": request,
        "active_page": "players",
        "players": players,
        "owners": owners,
        "total": total,
        "page": page,
        "total_pages": total_pages(total, PLAYERS_PER_PAGE),
        "search": search,
        "position": position,
        "nfl_team": nfl_team,
        "rostered": rostered,
        "sort": sort,
        "direction": direction,
        "positions": POSITIONS,
        "sort_fields": list(PLAYER_SORT_FIELDS.keys()),
        "season": selected,
        "error": error,
    }

    # Si es una peticion AJAX (Live Search), devolver solo el fragmento de la tabla
    if request.headers.get("X-Live-Search"):
        return templates.TemplateResponse(request, "players/_table.html", context)

    return templates.TemplateResponse(request, "players/list.html", context)


@router.get("/export")
async def export_players(
    search: Optional[str] = None,
    position: Optional[str] = None,
    nfl_team: Optional[str] = None,
    rostered: Optional[str] = None,
    sort: str = "player_name",
    direction: str = "asc",
    season: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Descarga la lista filtrada de jugadores como CSV."""
    selected, _ = resolve_season(db, season)
    season_id = selected.id if selected else None
    players, _ = get_players(
        search=search, position=position, nfl_team=nfl_team, rostered=rostered,
        season_id=season_id, sort_field=sort, sort_direction=direction,
        per_page=None, session=db
    )
    owners = get_rostered_players(season_id, session=db) if season_id is not None else {}

    df = pd.DataFrame(
        [
            {
                'sleeper_id': p.sleeper_id,
                'player_name': p.player_name,
                'position': p.position,
                'nfl_team': p.nfl_team,
                'number': p.number,
                'age': p.age,
                'years_exp': p.years_exp,
                'college': p.college,
                'injury_status': p.injury_status,
                'fantasy_team': owners.get(p.sleeper_id),
            }
            for p in players
        ],
        columns=EXPORT_COLUMNS
    )
    logger.info(f"Exportando {len(df)} jugadores a CSV")

    return Response(
        content=df.to_csv(index=False),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=players.csv"}
    )


@router.get("/{sleeper_id}")
async def player_detail(request: Request, sleeper_id: str, season: Optional[str] = None,
                        db: Session = Depends(get_db)):
    selected, _ = resolve_season(db, season)
    detail = get_player_detail(sleeper_id, selected.id if selected else None, session=db)
    if not detail:
        return templates.TemplateResponse(request, "404.html", {"request": request, "active_page": "players"},
                                          status_code=404)

    return templates.TemplateResponse(request, "players/detail.html", {
        "request": request,
        "active_page": "players",
        "season": selected,
        **detail,
    })
