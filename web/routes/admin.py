from fastapi import APIRouter, Request, Depends, BackgroundTasks, Header, HTTPException, Form
from fastapi.responses import RedirectResponse
from web.templates import templates
from sqlalchemy.orm import Session
from typing import Optional, List
import os
from datetime import datetime
import logging
import subprocess
import sys
import time
import asyncio
import httpx

from db.connection import get_session
from db.models import (
    SystemStatus, LogEntry, Season, Conference, Team, Matchup, MatchupAdminOverride, PlayoffFormat,
    PlayoffBracket
)
from db.query import (
    get_database_stats, get_active_overrides, get_playoff_format, get_teams, get_standings,
    get_playoff_bracket, get_matchups
)
from db.standings import build_first_round, build_next_round
from db.logging import clear_sync_logs, CLEAR_LOGS_ON_SYNC_START
from ingestion.ingestors import TeamRecordsSync
from ingestion.models_sync import team_league_link, team_matchup_entry
from ingestion.sleeper_client import SleeperApiClient
from ingestion.strategies import SYNC_MODES, SYNC_TASK_NAME
from ingestion.transforms import decide_winner
from ingestion.utils import ProgressReporter, SleeperApiError, safe_float
from web.config import ADMIN_PASSWORD, ADMIN_SESSION_HOURS, get_auth_token
from web.utils import get_db, get_sleeper_client, resolve_season, to_int, to_float

router = APIRouter(prefix="/admin")
logger = logging.getLogger("gladiator.web.admin")

# Lista global para rastrear procesos de sincronización activos
active_processes = []


# =============================================================================
# Sesión de administrador
# =============================================================================

def is_admin(request: Request) -> bool:
    """Retorna True si la sesión está autenticada y no ha caducado."""
    if not request.session.get("admin_authenticated"):
        return False
    login_time = request.session.get("admin_login_time")
    if login_time is None or time.time() - float(login_time) > ADMIN_SESSION_HOURS * 3600:
        request.session.clear()
        return False
    return True


def require_admin(request: Request):
    if not is_admin(request):
        raise HTTPException(status_code=401, detail="Se requiere sesión de administrador")


def require_token(x_secure_token: Optional[str], x_cron_key: Optional[str]):
    """Valida el token de las llamadas automáticas (cron)."""
    secure_token = get_auth_token()

    if not secure_token:
        raise HTTPException(status_code=500, detail="SECURE_TOKEN no configurada en el servidor")

    provided_token = x_secure_token or x_cron_key
    if provided_token != secure_token:
        raise HTTPException(status_code=403, detail="Token de seguridad inválido")


@router.get("")
async def admin_page(request: Request, season: Optional[str] = None, db: Session = Depends(get_db)):
    if not is_admin(request):
        return templates.TemplateResponse(request, "admin/login.html", {
            "request": request,
            "active_page": "admin",
            "error": None
        })

    selected, seasons = resolve_season(db, season)
    status = db.query(SystemStatus).filter_by(task_name=SYNC_TASK_NAME).first()
    logs = db.query(LogEntry).order_by(LogEntry.timestamp.desc()).limit(20).all()

    return templates.TemplateResponse(request, "admin/index.html", {
        "request": request,
        "active_page": "admin",
        "status": status,
        "logs": logs,
        "stats": get_database_stats(session=db),
        "seasons": seasons,
        "season": selected,
        "sync_modes": SYNC_MODES,
        "conferences": db.query(Conference).filter_by(season_id=selected.id).all() if selected else [],
        "teams": get_teams(selected.id, session=db) if selected else [],
        "overrides": get_active_overrides(selected.id, session=db) if selected else [],
        "playoff_format": get_playoff_format(selected.id, session=db) if selected else None,
        "bracket": get_playoff_bracket(selected.id, session=db) if selected else {},
        "pending_matchups": [
            m for m in get_matchups(selected.id, session=db) if m.matchup_status == "pending" and not m.is_bye
        ] if selected else [],
    })


@router.post("/login")
async def admin_login(request: Request, password: str = Form(...)):
    if password != ADMIN_PASSWORD:
        logger.warning("Intento de acceso al panel con contraseña incorrecta")
        return templates.TemplateResponse(request, "admin/login.html", {
            "request": request,
            "active_page": "admin",
            "error": "Contraseña incorrecta"
        }, status_code=401)

    request.session["admin_authenticated"] = True
    request.session["admin_login_time"] = time.time()
    logger.info("Sesión de administrador iniciada")
    return RedirectResponse("/admin", status_code=303)


@router.post("/logout")
async def admin_logout(request: Request):
    request.session.clear()
    return RedirectResponse("/admin", status_code=303)


# =============================================================================
# Sincronización
# =============================================================================

async def keep_alive_during_task(task_name: str, max_hours: int = 0):
    """Evita el spin-down de Render haciendo ping local cada 5 min mientras la tarea corre.

    Args:
        task_name: Nombre de la tarea en la tabla system_status
        max_hours: Si > 0, tiempo máximo de ejecución. Si es 0 (default), corre
                  mientras la tarea esté activa en la base de datos.
    """
    # Solo actuar si estamos en la nube (Render o similar)
    if os.getenv("RENDER") != "true" and os.getenv("CLOUD_MODE") != "true":
        return

    port = os.getenv("PORT", "8000")
    start_time = time.time()
    logger.info(f"🔄 Anti-spin-down ACTIVO para: {task_name}")

    while True:
        await asyncio.sleep(300)

        if max_hours > 0 and (time.time() - start_time) > (max_hours * 3600):
            logger.warning(f"⏱️ Keep-alive timeout tras {max_hours}h. Deteniendo.")
            break

        session = get_session()
        try:
            status = session.query(SystemStatus).filter_by(task_name=task_name).first()
            if not status or status.status not in ["running", "pending"]:
                break

            try:
                async with httpx.AsyncClient(timeout=10.0) as client:
                    await client.get(f"http://localhost:{port}/admin/sync/status")
                logger.debug(f"💓 Keep-alive ping enviado (tarea: {task_name})")
            except httpx.HTTPError as e:
                logger.debug(f"⚠️ Fallo en ping keep-alive: {e}")
        finally:
            session.close()

    logger.info(f"🛑 Anti-spin-down FINALIZADO para: {task_name}")


def run_sync_task(mode: str, extra_args: Optional[List[str]] = None):
    """Ejecuta la sincronización llamando al CLI como subproceso.

    El CLI escribe en la BD y en STDOUT, así que el progreso es visible
    tanto en el panel como en los logs del servidor.
    """
    env = os.environ.copy()
    env["PYTHONUNBUFFERED"] = "1"

    cmd = [sys.executable, "-m", "ingestion.cli", "--mode", mode]
    if extra_args:
        cmd.extend(extra_args)

    logger.info(f"Iniciando sincronización: {' '.join(cmd)}")
    process = None
    try:
        process = subprocess.Popen(cmd, env=env)
        active_processes.append(process)
        process.wait()

        if process in active_processes:
            active_processes.remove(process)

        if process.returncode != 0:
            reporter = ProgressReporter(SYNC_TASK_NAME, session_factory=get_session)
            reporter.fail(f"El CLI terminó con código {process.returncode}")

    except Exception as e:
        if process and process in active_processes:
            active_processes.remove(process)
        logger.error(f"Error fatal en tarea de sincronización: {e}")
        reporter = ProgressReporter(SYNC_TASK_NAME, session_factory=get_session)
        reporter.fail(str(e))


def _mark_running(db: Session, message: str) -> bool:
    """Marca la tarea como running. Retorna False si ya había una en curso."""
    status = db.query(SystemStatus).filter_by(task_name=SYNC_TASK_NAME).first()
    if status and status.status == "running":
        return False

    if CLEAR_LOGS_ON_SYNC_START:
        clear_sync_logs(db)

    if not status:
        status = SystemStatus(task_name=SYNC_TASK_NAME)
        db.add(status)

    status.status = "running"
    status.progress = 0
    status.message = message
    status.last_run = datetime.now()
    db.commit()
    return True


@router.post("/sync/cron")
async def cron_sync(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    x_secure_token: Optional[str] = Header(None, alias="X-Secure-Token"),
    x_cron_key: Optional[str] = Header(None, alias="X-Cron-Key")
):
    """Endpoint para disparar la sincronización semanal desde un cron externo."""
    require_token(x_secure_token, x_cron_key)

    if not _mark_running(db, "Iniciando sincronización automática (Cron)..."):
        return {"status": "ignored", "message": "Ya hay una sincronización en curso."}

    background_tasks.add_task(run_sync_task, "weekly")
    background_tasks.add_task(keep_alive_during_task, SYNC_TASK_NAME)

    return {"status": "success", "message": "Sincronización semanal iniciada en segundo plano."}


@router.get("/sync/status")
async def get_sync_status(db: Session = Depends(get_db)):
    status = db.query(SystemStatus).filter_by(task_name=SYNC_TASK_NAME).first()
    if not status:
        return {"status": "idle", "progress": 0, "message": "No hay tareas registradas."}

    return {
        "status": status.status,
        "progress": status.progress,
        "message": status.message,
        "last_run": status.last_run.isoformat() if status.last_run else None,
        "updated_at": status.updated_at.isoformat() if status.updated_at else None
    }


@router.post("/sync/{mode}", dependencies=[Depends(require_admin)])
async def start_sync(
    mode: str,
    background_tasks: BackgroundTasks,
    season: Optional[str] = None,
    week: Optional[str] = None,
    db: Session = Depends(get_db)
):
    if mode not in SYNC_MODES:
        raise HTTPException(status_code=400, detail=f"Modo desconocido: {mode}")

    if not _mark_running(db, f"Iniciando sincronización ({mode})..."):
        return {"status": "error", "message": "Ya hay una sincronización en curso."}

    extra_args = []
    if season:
        extra_args.extend(["--season", str(season)])
    if to_int(week):
        extra_args.extend(["--week", str(to_int(week))])

    background_tasks.add_task(run_sync_task, mode, extra_args)
    background_tasks.add_task(keep_alive_during_task, SYNC_TASK_NAME)

    return {"status": "success", "message": f"Sincronización '{mode}' iniciada en segundo plano."}


@router.get("/logs", dependencies=[Depends(require_admin)])
async def get_sync_logs(limit: int = 50, db: Session = Depends(get_db)):
    """Retorna los últimos logs de la base de datos."""
    logs = db.query(LogEntry).order_by(LogEntry.timestamp.desc()).limit(limit).all()
    return [
        {
            "id": log.id,
            "timestamp": log.timestamp.isoformat(),
            "level": log.level,
            "module": log.module,
            "message": log.message
        } for log in reversed(logs)
    ]


# =============================================================================
# Cambios manuales de enfrentamientos
# =============================================================================

@router.post("/overrides", dependencies=[Depends(require_admin)])
async def create_override(
    season_id: int = Form(...),
    week: int = Form(...),
    conference_id: int = Form(...),
    override_team1_id: int = Form(...),
    override_team2_id: int = Form(...),
    original_team1_id: Optional[str] = Form(None),
    original_team2_id: Optional[str] = Form(None),
    sleeper_matchup_id: Optional[str] = Form(None),
    override_reason: Optional[str] = Form(None),
    admin_notes: Optional[str] = Form(None),
    db: Session = Depends(get_db)
):
    """Crea un cambio manual y desactiva los anteriores de la misma semana y conferencia."""
    if override_team1_id == override_team2_id:
        raise HTTPException(status_code=400, detail="Un equipo no puede enfrentarse a sí mismo")
    if week < 1:
        raise HTTPException(status_code=400, detail="La semana debe ser 1 o mayor")

    team_ids = {override_team1_id, override_team2_id}
    original_ids = {to_int(original_team1_id), to_int(original_team2_id)} - {None}
    found = db.query(Team).filter(Team.id.in_(team_ids | original_ids)).count()
    if found != len(team_ids | original_ids) or not db.query(Season).filter_by(id=season_id).first():
        raise HTTPException(status_code=404, detail="Temporada o equipos no encontrados")

    conference = db.query(Conference).filter_by(id=conference_id).first()
    if not conference:
        raise HTTPException(status_code=404, detail="Conferencia no encontrada")
    if conference.season_id != season_id:
        raise HTTPException(status_code=400, detail="La conferencia no pertenece a la temporada")

    deactivated = db.query(MatchupAdminOverride).filter(
        MatchupAdminOverride.season_id == season_id,
        MatchupAdminOverride.week == week,
        MatchupAdminOverride.conference_id == conference_id,
        MatchupAdminOverride.is_active.is_(True)
    ).update({MatchupAdminOverride.is_active: False}, synchronize_session=False)

    override = MatchupAdminOverride(
        season_id=season_id,
        week=week,
        conference_id=conference_id,
        original_team1_id=to_int(original_team1_id),
        original_team2_id=to_int(original_team2_id),
        override_team1_id=override_team1_id,
        override_team2_id=override_team2_id,
        sleeper_matchup_id=to_int(sleeper_matchup_id),
        override_reason=override_reason or None,
        admin_notes=admin_notes or None,
        overridden_by_admin_id="admin",
        is_active=True,
    )
    db.add(override)
    db.commit()
    logger.info(f"Cambio manual creado para semana {week} (conferencia {conference_id}); "
                f"{deactivated} anteriores desactivados")

    return RedirectResponse("/admin", status_code=303)


def _get_override(db: Session, override_id: int) -> MatchupAdminOverride:
    override = db.query(MatchupAdminOverride).filter_by(id=override_id).first()
    if not override:
        raise HTTPException(status_code=404, detail="Cambio manual no encontrado")
    return override


@router.post("/overrides/{override_id}/deactivate", dependencies=[Depends(require_admin)])
async def deactivate_override(override_id: int, db: Session = Depends(get_db)):
    override = _get_override(db, override_id)
    override.is_active = False
    db.commit()
    return RedirectResponse("/admin", status_code=303)


@router.post("/overrides/{override_id}/delete", dependencies=[Depends(require_admin)])
async def delete_override(override_id: int, db: Session = Depends(get_db)):
    override = _get_override(db, override_id)
    db.delete(override)
    db.commit()
    return RedirectResponse("/admin", status_code=303)


# =============================================================================
# Formato de playoffs y reglamento
# =============================================================================

@router.post("/playoff-format", dependencies=[Depends(require_admin)])
async def save_playoff_format(
    season_id: int = Form(...),
    playoff_teams: int = Form(...),
    week_14_byes: int = Form(...),
    playoff_start_week: int = Form(...),
    championship_week: int = Form(...),
    reseed: Optional[str] = Form(None),
    db: Session = Depends(get_db)
):
    """Crea o actualiza el formato de playoffs activo de una temporada."""
    if playoff_teams < 0 or week_14_byes < 0:
        raise HTTPException(status_code=400, detail="Los valores no pueden ser negativos")
    if week_14_byes > playoff_teams:
        raise HTTPException(status_code=400, detail="No puede haber más byes que equipos en playoffs")
    if championship_week < playoff_start_week:
        raise HTTPException(status_code=400, detail="La final no puede ser antes del inicio de playoffs")
    if not db.query(Season).filter_by(id=season_id).first():
        raise HTTPException(status_code=404, detail="Temporada no encontrada")

    playoff_format = db.query(PlayoffFormat).filter_by(season_id=season_id, is_active=True).first()
    if not playoff_format:
        playoff_format = PlayoffFormat(season_id=season_id, is_active=True)
        db.add(playoff_format)

    playoff_format.playoff_teams = playoff_teams
    playoff_format.week_14_byes = week_14_byes
    playoff_format.playoff_start_week = playoff_start_week
    playoff_format.championship_week = championship_week
    playoff_format.reseed = reseed in ("1", "true", "on")
    db.commit()
    logger.info(f"Formato de playoffs actualizado para la temporada {season_id}")

    return RedirectResponse("/admin", status_code=303)


@router.post("/seasons/{season_id}/charter", dependencies=[Depends(require_admin)])
async def save_charter(
    season_id: int,
    charter_file_url: str = Form(...),
    charter_file_name: Optional[str] = Form(None),
    db: Session = Depends(get_db)
):
    season = db.query(Season).filter_by(id=season_id).first()
    if not season:
        raise HTTPException(status_code=404, detail="Temporada no encontrada")

    season.charter_file_url = charter_file_url
    season.charter_file_name = charter_file_name or charter_file_url.rsplit("/", 1)[-1]
    season.charter_uploaded_at = datetime.now()
    db.commit()

    return RedirectResponse("/admin", status_code=303)


# =============================================================================
# Cuadro de playoffs
# =============================================================================

def _bracket_rows(db: Session, season_id: int, round_number: Optional[int] = None) -> List[PlayoffBracket]:
    query = db.query(PlayoffBracket).filter(PlayoffBracket.season_id == season_id)
    if round_number is not None:
        query = query.filter(PlayoffBracket.round == round_number)
    return query.order_by(PlayoffBracket.round, PlayoffBracket.matchup_number).all()


def _require_season(db: Session, season_id: int) -> Season:
    season = db.query(Season).filter_by(id=season_id).first()
    if not season:
        raise HTTPException(status_code=404, detail="Temporada no encontrada")
    return season


@router.post("/playoff-bracket", dependencies=[Depends(require_admin)])
async def generate_playoff_bracket(season_id: int = Form(...), db: Session = Depends(get_db)):
    """Genera la primera ronda con las semillas actuales. Reemplaza el cuadro existente."""
    _require_season(db, season_id)
    seeded = sorted(
        (row for row in get_standings(season_id, session=db) if row.get('playoff_seed')),
        key=lambda row: row['playoff_seed']
    )
    if not seeded:
        raise HTTPException(status_code=400, detail="No hay equipos clasificados para playoffs")

    entries = build_first_round(seeded, get_playoff_format(season_id, session=db))
    removed = db.query(PlayoffBracket).filter(PlayoffBracket.season_id == season_id).delete(
        synchronize_session=False
    )
    db.add_all(PlayoffBracket(season_id=season_id, **entry) for entry in entries)
    db.commit()
    logger.info(f"Cuadro de playoffs generado para la temporada {season_id}: "
                f"{len(entries)} cruces ({removed} anteriores eliminados)")

    return RedirectResponse("/admin", status_code=303)


@router.post("/playoff-bracket/advance", dependencies=[Depends(require_admin)])
async def advance_playoff_bracket(season_id: int = Form(...), db: Session = Depends(get_db)):
    """Crea la siguiente ronda con los ganadores de la última."""
    _require_season(db, season_id)
    rows = _bracket_rows(db, season_id)
    last_round = [row for row in rows if row.round == rows[-1].round] if rows else []

    playoff_format = get_playoff_format(season_id, session=db)
    try:
        entries = build_next_round(last_round, reseed=bool(playoff_format.reseed))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    db.add_all(PlayoffBracket(season_id=season_id, **entry) for entry in entries)
    db.commit()
    logger.info(f"Ronda {entries[0]['round']} del cuadro creada para la temporada {season_id}")

    return RedirectResponse("/admin", status_code=303)


@router.post("/playoff-bracket/{bracket_id}", dependencies=[Depends(require_admin)])
def update_playoff_bracket(
    bracket_id: int,
    team1_id: int = Form(...),
    team2_id: Optional[str] = Form(None),
    team1_score: Optional[str] = Form(None),
    team2_score: Optional[str] = Form(None),
    fetch_scores: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    api: SleeperApiClient = Depends(get_sleeper_client)
):
    """Edita un cruce del cuadro: equipos, marcadores y ganador.

    Con fetch_scores los marcadores se leen de Sleeper para la semana del
    cruce, buscando cada equipo en la liga de su conferencia.
    """
    entry = db.query(PlayoffBracket).filter_by(id=bracket_id).first()
    if not entry:
        raise HTTPException(status_code=404, detail="Cruce no encontrado")

    second_id = to_int(team2_id)
    if second_id == team1_id:
        raise HTTPException(status_code=400, detail="Un equipo no puede enfrentarse a sí mismo")
    found = db.query(Team).filter(Team.id.in_([t for t in (team1_id, second_id) if t is not None])).count()
    if found != (2 if second_id is not None else 1):
        raise HTTPException(status_code=404, detail="Equipo no encontrado")

    score1, score2 = to_float(team1_score), to_float(team2_score)
    if fetch_scores in ("1", "true", "on"):
        try:
            score1, score2 = (
                _sleeper_points(db, api, team_id, entry.season_id, entry.week)
                for team_id in (team1_id, second_id)
            )
        except SleeperApiError as e:
            raise HTTPException(status_code=502, detail=f"Sleeper no respondió: {e}")

    entry.team1_id = team1_id
    entry.team2_id = second_id
    entry.is_bye = second_id is None
    entry.team1_score = score1
    entry.team2_score = score2 if second_id is not None else None
    if entry.is_bye:
        entry.winner_team_id = team1_id
    elif score1 is not None and score2 is not None:
        entry.winner_team_id = decide_winner(team1_id, score1, second_id, score2)
    else:
        entry.winner_team_id = None
    entry.manual_override = True
    db.commit()
    logger.info(f"Cruce {bracket_id} del cuadro editado (ganador: {entry.winner_team_id})")

    return RedirectResponse("/admin", status_code=303)


def _sleeper_points(db: Session, api: SleeperApiClient, team_id: Optional[int],
                    season_id: int, week: int) -> Optional[float]:
    if team_id is None:
        return None
    entry = team_matchup_entry(db, api, team_id, season_id, week)
    return safe_float(entry.get('points')) if entry else None


# =============================================================================
# Resultados manuales
# =============================================================================

@router.post("/matchups/{matchup_id}/complete", dependencies=[Depends(require_admin)])
async def complete_matchup(
    matchup_id: int,
    team1_score: float = Form(...),
    team2_score: float = Form(...),
    db: Session = Depends(get_db)
):
    """Fija el resultado de un enfrentamiento y recalcula los récords afectados.

    El enfrentamiento queda marcado como completado manualmente y las
    sincronizaciones posteriores no lo modifican.
    """
    matchup = db.query(Matchup).filter_by(id=matchup_id).first()
    if not matchup:
        raise HTTPException(status_code=404, detail="Enfrentamiento no encontrado")
    if matchup.is_bye or matchup.team2_id is None:
        raise HTTPException(status_code=400, detail="Una semana de descanso no tiene resultado")
    if team1_score < 0 or team2_score < 0:
        raise HTTPException(status_code=400, detail="Los marcadores no pueden ser negativos")

    matchup.team1_score = team1_score
    matchup.team2_score = team2_score
    matchup.winning_team_id = decide_winner(matchup.team1_id, team1_score, matchup.team2_id, team2_score)
    matchup.matchup_status = 'complete'
    matchup.manual_override = True
    matchup.manually_completed = True
    db.commit()
    logger.info(f"Enfrentamiento {matchup_id} completado manualmente: {team1_score} - {team2_score}")

    # La conferencia anfitriona y las de ambos equipos (interconferencia)
    conferences = {matchup.conference_id: matchup.conference}
    for team_id in (matchup.team1_id, matchup.team2_id):
        link = team_league_link(db, team_id, matchup.season_id, matchup.conference_id)
        if link is not None:
            conferences.setdefault(link[0].id, link[0])

    season = db.get(Season, matchup.season_id)
    records = TeamRecordsSync()
    for conference in conferences.values():
        records.recalculate(db, season, conference)

    return RedirectResponse("/admin", status_code=303)
