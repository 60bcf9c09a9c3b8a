#!/usr/bin/env python3
"""Script para inicializar la base de datos en producción.

Crea el esquema y, opcionalmente, registra una temporada y sus conferencias
(ligas de Sleeper) para que la sincronización tenga algo que recorrer.

Ejemplo:
    python scripts/init_db.py --season 2025 --conference "Roman:1180000000000000000"
"""

import argparse
import sys
from pathlib import Path

# Agregar el directorio raíz del proyecto al path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from db import init_db, get_session, Season, Conference
from db.standings import is_valid_league_id
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def register_season(session, year: str, conferences, make_current: bool = True) -> Season:
    """Crea (o reutiliza) la temporada y registra sus conferencias "nombre:league_id"."""
    season = session.query(Season).filter_by(season_year=str(year)).first()
    if not season:
        season = Season(season_year=str(year), season_name=f"{year} Season")
        session.add(season)
        session.flush()
        logger.info(f"Temporada {year} creada")

    if make_current:
        session.query(Season).filter(Season.id != season.id).update({Season.is_current: False})
        season.is_current = True

    for item in conferences:
        name, _, league_id = item.rpartition(':')
        if not name or not is_valid_league_id(league_id):
            raise ValueError(f"Conferencia inválida (se espera nombre:league_id): {item}")
        conference = session.query(Conference).filter_by(league_id=league_id).first()
        if conference:
            conference.conference_name = name
            conference.season_id = season.id
        else:
            session.add(Conference(conference_name=name, league_id=league_id, season_id=season.id))
            logger.info(f"Conferencia '{name}' registrada ({league_id})")

    session.commit()
    return season


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Inicializa la base de datos de Gladiator League")
    parser.add_argument('--season', type=str, help='Año de la temporada a registrar')
    parser.add_argument('--conference', action='append', default=[],
                        help='Conferencia como "nombre:league_id" (repetible)')
    args = parser.parse_args()

    try:
        logger.info("Inicializando esquema de base de datos...")
        init_db()
        if args.season:
            session = get_session()
            try:
                register_season(session, args.season, args.conference)
            finally:
                session.close()
        logger.info("✅ Base de datos inicializada correctamente")
    except Exception as e:
        logger.error(f"❌ Error al inicializar base de datos: {e}", exc_info=True)
        sys.exit(1)
