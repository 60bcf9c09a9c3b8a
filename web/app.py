from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware
from pathlib import Path

import logging
import sys
from db.connection import init_db
from db.logging import setup_logging
from web.config import SESSION_SECRET, ADMIN_SESSION_HOURS
from web.templates import templates

# Asegurar que las tablas existen antes de configurar logging
try:
    init_db()
except Exception as e:
    print(f"Error inicializando DB: {e}", file=sys.stderr)

# Configurar logging global (consola y tabla log_entries)
setup_logging("web")
logger = logging.getLogger("gladiator.web")

app = FastAPI(title="Gladiator League")

# Sesión firmada para el panel de administración
app.add_middleware(SessionMiddleware, secret_key=SESSION_SECRET, max_age=ADMIN_SESSION_HOURS * 3600)

# Configurar rutas de archivos estaticos
BASE_DIR = Path(__file__).resolve().parent
app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")

# Importar routers
from web.routes import home
from web.routes import standings
from web.routes import matchups
from web.routes import teams
from web.routes import players
from web.routes import draft
from web.routes import transactions
from web.routes import conferences
from web.routes import rules
from web.routes import api
from web.routes import admin

# Incluir routers
app.include_router(home.router)
app.include_router(standings.router)
app.include_router(matchups.router)
app.include_router(teams.router)
app.include_router(players.router)
app.include_router(draft.router)
app.include_router(transactions.router)
app.include_router(conferences.router)
app.include_router(rules.router)
app.include_router(api.router)
app.include_router(admin.router)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Las páginas desconocidas se renderizan con 404.html; el resto responde JSON."""
    if exc.status_code == 404 and not request.url.path.startswith(("/api", "/admin")):
        return templates.TemplateResponse(request, "404.html", {
            "request": request,
            "active_page": None
        }, status_code=404)
    return JSONResponse({"detail": exc.detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None))


if __name__ == "__main__":
    import os
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run("web.app:app", host="0.0.0.0", port=port, reload=os.getenv("RENDER") != "true")
