import logging
from typing import Optional, Dict, Any, List

from fastapi import APIRouter, Request, Depends
from sqlalchemy.orm import Session

from db import (
    get_conferences, get_matchups, get_matchup_detail, get_weeks_with_matchups,
    get_active_overrides, Player, Season
)
from ingestion.models_sync import team_matchup_entry
from ingestion.sleeper_client import SleeperApiClient
from ingestion.transforms import starting_slots, lineup_from_matchup_entry
from web.templates import templates
from web.utils import get_db, get_sleeper_client, resolve_season, to_int

router = APIRouter(prefix="/matchups")
logger = logging.getLogger("gladiator.web.matchups")


@router.get("")
async def list_matchups(
    request: Request,
    season: Optional[str] = None,
    conference: Optional[str] = None,
    week: Optional[str] = None,
    db: Session = Depends(get_db)
):
    selected, seasons = resolve_season(db, season)
    conference_id = to_int(conference)
    week_number = to_int(week)
    context = {
        "request": request,
        "active_page": "matchups",
        "seasons": seasons,
        "season": selected,
        "conferences": [],
        "conference_id": conference_id,
        "weeks": [],
        "week": week_number,
        "matchups_by_week": {},
        "overrides": [],
        "error": None,
    }

    if selected:
        try:
            context["conferences"] = get_conferences(selected.id, session=db)
            context["weeks"] = get_weeks_with_matchups(selected.id, session=db)
            matchups = get_matchups(selected.id, conference_id=conference_id, week=week_number, session=db)
            by_week: Dict[int, List[Any]] = {}
            for m in matchups:
                by_week.setdefault(m.week, []).append(m)
            context["matchups_by_week"] = by_week
            context["overrides"] = get_active_overrides(
                selected.id, week=week_number, conference_id=conference_id, session=db
            )
        except Exception as e:
            logger.error(f"Error cargando enfrentamientos: {e}", exc_info=True)
            context["error"] = "No se pudieron cargar los enfrentamientos."

    return templates.TemplateResponse(request, "matchups/list.html", context)


def _players_by_id(db: Session, entries: List[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Jugadores de la BD en el formato de diccionario de Sleeper."""
    ids = set()
    for entry in entries:
        ids.update(entry.get('players') or [])
        ids.update(entry.get('starters') or [])
    if not ids:
        return {}
    players = db.query(Player).filter(Player.sleeper_id.in_(list(ids))).all()
    return {
        p.sleeper_id: {'full_name': p.player_name, 'position': p.position, 'team': p.nfl_team}
        for p in players
    }


@router.get("/{matchup_id}")
def matchup_detail(
    request: Request,
    matchup_id: int,
    db: Session = Depends(get_db),
    api: SleeperApiClient = Depends(get_sleeper_client)
):
    """Detalle con el lineup en vivo de cada equipo.

    Ruta síncrona: el cliente de Sleeper bloquea, así que FastAPI la ejecuta
    en el threadpool. Cada equipo se busca en la liga de su conferencia, lo
    que cubre los enfrentamientos interconferencia.
    """
    matchup = get_matchup_detail(matchup_id, session=db)
    if not matchup:
        return templates.TemplateResponse(request, "404.html", {"request": request, "active_page": "matchups"},
                                          status_code=404)

    lineups = {"team1": None, "team2": None}
    error = None

    try:
        season = db.query(Season).filter(Season.id == matchup.season_id).first()
        slots = starting_slots(season.roster_positions if season else None)

        entries = {}
        for side, team_id in (("team1", matchup.team1_id), ("team2", matchup.team2_id)):
            if team_id is not None:
                entries[side] = team_matchup_entry(db, api, team_id, matchup.season_id, matchup.week,
                                                   preferred_conference_id=matchup.conference_id)

        players = _players_by_id(db, [entry for entry in entries.values() if entry])
        for side, entry in entries.items():
            lineups[side] = lineup_from_matchup_entry(entry, players, slots)
    except Exception as e:
        logger.error(f"Error cargando el lineup del enfrentamiento {matchup_id}: {e}")
        error = "No se pudo cargar el lineup en vivo desde Sleeper. Se muestran los puntos guardados."

    return templates.TemplateResponse(request, "matchups/detail.html", {
        "request": request,
        "active_page": "matchups",
        "matchup": matchup,
        "lineups": lineups,
        "error": error,
    })
