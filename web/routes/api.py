"""Endpoints JSON que reflejan las consultas de las páginas."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from db import get_standings, get_matchups
from web.utils import get_db, resolve_season, to_int

router = APIRouter(prefix="/api")


def _require_season(db: Session, season: Optional[str]):
    selected, _ = resolve_season(db, season)
    if not selected:
        raise HTTPException(status_code=404, detail="Temporada no encontrada")
    return selected


@router.get("/seasons")
async def api_seasons(db: Session = Depends(get_db)):
    _, seasons = resolve_season(db, None)
    return [
        {
            "id": s.id,
            "season_year": s.season_year,
            "season_name": s.season_name,
            "is_current": s.is_current,
            "current_week": s.current_week,
        }
        for s in seasons
    ]


@router.get("/standings")
async def api_standings(season: Optional[str] = None, conference: Optional[str] = None,
                        db: Session = Depends(get_db)):
    selected = _require_season(db, season)
    return {
        "season": selected.season_year,
        "standings": get_standings(selected.id, conference_id=to_int(conference), session=db),
    }


@router.get("/matchups")
async def api_matchups(season: Optional[str] = None, conference: Optional[str] = None,
                       week: Optional[str] = None, db: Session = Depends(get_db)):
    selected = _require_season(db, season)
    matchups = get_matchups(selected.id, conference_id=to_int(conference), week=to_int(week), session=db)
    return {
        "season": selected.season_year,
        "matchups": [
            {
                "id": m.id,
                "week": m.week,
                "conference": m.conference.conference_name if m.conference else None,
                "team1": m.team1.team_name if m.team1 else None,
                "team2": m.team2.team_name if m.team2 else None,
                "team1_score": m.team1_score,
                "team2_score": m.team2_score,
                "winning_team_id": m.winning_team_id,
                "status": m.matchup_status,
                "is_playoff": m.is_playoff,
                "is_bye": m.is_bye,
                "manual_override": m.manual_override,
            }
            for m in matchups
        ],
    }
