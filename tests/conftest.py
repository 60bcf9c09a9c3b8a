"""Configuracion y fixtures compartidas para tests.

Este modulo contiene fixtures reutilizables para todos los tests del proyecto:
- Base de datos SQLite temporal (se configura ANTES de importar el proyecto)
- Una liga de ejemplo con dos conferencias
- Payloads de ejemplo de la API de Sleeper
- Cliente de Sleeper con transporte simulado (sin red)
"""

import os
import sys
import tempfile
from pathlib import Path
from types import SimpleNamespace

import httpx
import pytest

# Agregar raiz al path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# La BD de tests y los tiempos de espera se fijan antes de cualquier import del proyecto
_TEST_DB_DIR = tempfile.mkdtemp(prefix="gladiator_tests_")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DB_DIR, 'test.db')}"
os.environ["SYNC_API_DELAY"] = "0"
os.environ["SYNC_RETRY_WAIT"] = "0"
os.environ["SYNC_SILENT_STDOUT"] = "true"

from db.connection import get_engine, get_session  # noqa: E402
from db.models import (  # noqa: E402
    Base, Season, Conference, Team, TeamConference, Matchup, TeamRecord,
    Player, DraftResult, TeamRoster, Transaction
)
from ingestion.sleeper_client import SleeperApiClient  # noqa: E402

SLEEPER_TEST_URL = "https://api.sleeper.app/v1"


# =============================================================================
# Fixtures de Base de Datos
# =============================================================================

@pytest.fixture
def db_session():
    """Sesion sobre un esquema recien creado."""
    engine = get_engine()
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    session = get_session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def league(db_session):
    """Temporada 2025 con dos conferencias, cuatro equipos y datos de la semana 1."""
    s = db_session
    season = Season(
        season_year='2025', season_name='2025 Season', is_current=True, current_week=2,
        roster_positions=['QB', 'RB', 'WR', 'FLEX', 'BN', 'BN', 'IR'],
        scoring_settings={'pass_td': 4.0, 'rec': 0.5},
    )
    s.add(season)
    s.flush()

    roman = Conference(conference_name='Roman', league_id='L1', season_id=season.id, draft_id='D1')
    greek = Conference(conference_name='Greek', league_id='L2', season_id=season.id)
    s.add_all([roman, greek])
    s.flush()

    alpha = Team(team_name='Alpha', owner_name='alice', owner_id='u1')
    beta = Team(team_name='Beta', owner_name='bob', owner_id='u2')
    gamma = Team(team_name='Gamma', owner_name='carol', owner_id='u3')
    delta = Team(team_name='Delta', owner_name='dave', owner_id='u4')
    s.add_all([alpha, beta, gamma, delta])
    s.flush()

    s.add_all([
        TeamConference(team_id=alpha.id, conference_id=roman.id, roster_id=1),
        TeamConference(team_id=beta.id, conference_id=roman.id, roster_id=2),
        TeamConference(team_id=gamma.id, conference_id=greek.id, roster_id=1),
        TeamConference(team_id=delta.id, conference_id=greek.id, roster_id=2),
    ])

    week1_roman = Matchup(
        conference_id=roman.id, season_id=season.id, week=1, sleeper_matchup_id=1,
        team1_id=alpha.id, team2_id=beta.id, team1_score=110.5, team2_score=98.2,
        winning_team_id=alpha.id, matchup_status='complete'
    )
    week1_greek = Matchup(
        conference_id=greek.id, season_id=season.id, week=1, sleeper_matchup_id=1,
        team1_id=gamma.id, team2_id=delta.id, team1_score=90.0, team2_score=95.0,
        winning_team_id=delta.id, matchup_status='complete'
    )
    week2_roman = Matchup(
        conference_id=roman.id, season_id=season.id, week=2, sleeper_matchup_id=1,
        team1_id=alpha.id, team2_id=beta.id, team1_score=0, team2_score=0,
        matchup_status='pending'
    )
    s.add_all([week1_roman, week1_greek, week2_roman])

    s.add_all([
        TeamRecord(team_id=alpha.id, conference_id=roman.id, season_id=season.id, wins=1, losses=0, ties=0,
                   points_for=110.5, points_against=98.2, point_diff=12.3),
        TeamRecord(team_id=beta.id, conference_id=roman.id, season_id=season.id, wins=0, losses=1, ties=0,
                   points_for=98.2, points_against=110.5, point_diff=-12.3),
        TeamRecord(team_id=gamma.id, conference_id=greek.id, season_id=season.id, wins=0, losses=1, ties=0,
                   points_for=90.0, points_against=95.0, point_diff=-5.0),
        TeamRecord(team_id=delta.id, conference_id=greek.id, season_id=season.id, wins=1, losses=0, ties=0,
                   points_for=95.0, points_against=90.0, point_diff=5.0),
    ])

    s.add_all([
        Player(sleeper_id='1001', player_name='Josh Allen', position='QB', nfl_team='BUF', number=17,
               age=29, height=77, weight=237, years_exp=7, college='Wyoming', playing_status='Active'),
        Player(sleeper_id='1002', player_name='Bijan Robinson', position='RB', nfl_team='ATL',
               injury_status='Questionable', age=23, years_exp=2),
        Player(sleeper_id='1003', player_name='Justin Jefferson', position='WR', nfl_team='MIN', age=26),
        Player(sleeper_id='1004', player_name='Tyreek Hill', position='WR', nfl_team='MIA', age=31),
        Player(sleeper_id='1005', player_name='Travis Kelce', position='TE', nfl_team='KC', age=35),
    ])

    s.add_all([
        TeamRoster(team_id=alpha.id, season_id=season.id, week=2, sleeper_id='1001',
                   status='active', is_starter=True, slot_position='QB'),
        TeamRoster(team_id=alpha.id, season_id=season.id, week=2, sleeper_id='1002',
                   status='bench', is_starter=False, slot_position='BENCH'),
        TeamRoster(team_id=beta.id, season_id=season.id, week=2, sleeper_id='1003',
                   status='active', is_starter=True, slot_position='WR'),
    ])

    s.add_all([
        DraftResult(season_id=season.id, conference_id=roman.id, draft_id='D1', round=1, draft_slot=1,
                    pick_number=1, owner_id='u1', roster_id=1, sleeper_id='1001',
                    player_name='Josh Allen', position='QB', nfl_team='BUF'),
        DraftResult(season_id=season.id, conference_id=roman.id, draft_id='D1', round=1, draft_slot=2,
                    pick_number=2, owner_id='u2', roster_id=2, sleeper_id='1003',
                    player_name='Justin Jefferson', position='WR', nfl_team='MIN'),
        DraftResult(season_id=season.id, conference_id=roman.id, draft_id='D1', round=2, draft_slot=2,
                    pick_number=3, owner_id='u2', roster_id=2, sleeper_id='1002',
                    player_name='Bijan Robinson', position='RB', nfl_team='ATL'),
    ])

    trade = {
        'transaction_id': 'tx1', 'type': 'trade', 'status': 'complete', 'leg': 1,
        'roster_ids': [1, 2], 'created': 1726000000000,
        'adds': {'1001': 2, '1003': 1}, 'drops': {'1001': 1, '1003': 2},
    }
    pickup = {
        'transaction_id': 'tx2', 'type': 'free_agent', 'status': 'complete', 'leg': 2,
        'roster_ids': [1], 'created': 1726500000000, 'adds': {'1004': 1}, 'drops': None,
    }
    for tx in (trade, pickup):
        s.add(Transaction(
            season_id=season.id, conference_id=roman.id, sleeper_transaction_id=tx['transaction_id'],
            type=tx['type'], status=tx['status'], week=tx['leg'], roster_ids=tx['roster_ids'], data=tx
        ))

    s.commit()

    return SimpleNamespace(
        season_id=season.id,
        roman_id=roman.id,
        greek_id=greek.id,
        alpha_id=alpha.id,
        beta_id=beta.id,
        gamma_id=gamma.id,
        delta_id=delta.id,
        week1_roman_id=week1_roman.id,
    )


# =============================================================================
# Fixtures de Payloads de Sleeper
# =============================================================================

@pytest.fixture
def sleeper_league():
    return {
        'league_id': 'L1',
        'name': 'Gladiator Roman',
        'avatar': 'abc123',
        'draft_id': 'D1',
        'status': 'in_season',
        'scoring_settings': {'pass_td': 4.0, 'rec': 0.5},
        'roster_positions': ['QB', 'RB', 'WR', 'FLEX', 'BN', 'BN', 'IR'],
    }


@pytest.fixture
def sleeper_users():
    return [
        {'user_id': 'u1', 'display_name': 'alice', 'avatar': 'av1', 'metadata': {'team_name': 'Alpha'}},
        {'user_id': 'u2', 'display_name': 'bob', 'avatar': None, 'metadata': {}},
        {'user_id': 'u9', 'display_name': 'erin', 'metadata': {}},
    ]


@pytest.fixture
def sleeper_rosters():
    return [
        {
            'roster_id': 1, 'owner_id': 'u1', 'co_owners': ['u9'],
            'players': ['1001', '1002', '1003'], 'starters': ['1001', '0'], 'reserve': ['1003'], 'taxi': None,
        },
        {
            'roster_id': 2, 'owner_id': 'u2', 'co_owners': None,
            'players': ['1004', '1005'], 'starters': ['1004'], 'reserve': None, 'taxi': None,
        },
    ]


@pytest.fixture
def sleeper_matchups_week1():
    return [
        {
            'roster_id': 1, 'matchup_id': 1, 'points': 110.5,
            'starters': ['1001', '0'], 'starters_points': [24.5, 0],
            'players': ['1001', '1002', '1003'], 'players_points': {'1001': 24.5, '1002': 8.0, '1003': 12.0},
        },
        {
            'roster_id': 2, 'matchup_id': 1, 'points': 98.2,
            'starters': ['1004'], 'starters_points': [18.2],
            'players': ['1004', '1005'], 'players_points': {'1004': 18.2, '1005': 3.0},
        },
    ]


@pytest.fixture
def sleeper_players():
    return {
        '1001': {'first_name': 'Josh', 'last_name': 'Allen', 'position': 'QB', 'team': 'BUF',
                 'number': 17, 'status': 'Active', 'age': 29, 'height': '77', 'weight': '237',
                 'years_exp': 7, 'college': 'Wyoming'},
        '1002': {'first_name': 'Bijan', 'last_name': 'Robinson', 'position': 'RB', 'team': 'ATL',
                 'injury_status': 'Questionable'},
        '1003': {'first_name': 'Justin', 'last_name': 'Jefferson', 'position': 'WR', 'team': 'MIN'},
        '1004': {'first_name': 'Tyreek', 'last_name': 'Hill', 'position': 'WR', 'team': 'MIA'},
        '1005': {'first_name': 'Travis', 'last_name': 'Kelce', 'position': 'TE', 'team': 'KC'},
    }


@pytest.fixture
def sleeper_draft_picks():
    return [
        {'draft_id': 'D1', 'round': 1, 'draft_slot': 1, 'pick_no': 1, 'picked_by': 'u1', 'roster_id': 1,
         'player_id': '1001', 'is_keeper': None,
         'metadata': {'first_name': 'Josh', 'last_name': 'Allen', 'position': 'QB', 'team': 'BUF'}},
        {'draft_id': 'D1', 'round': 1, 'draft_slot': 2, 'pick_no': 2, 'picked_by': 'u2', 'roster_id': 2,
         'player_id': '1004', 'is_keeper': True,
         'metadata': {'first_name': 'Tyreek', 'last_name': 'Hill', 'position': 'WR', 'team': 'MIA'}},
    ]


@pytest.fixture
def sleeper_transactions_week1():
    return [
        {
            'transaction_id': 'tx100', 'type': 'waiver', 'status': 'complete', 'leg': 1,
            'roster_ids': [2], 'created': 1726000000000,
            'adds': {'1005': 2}, 'drops': None, 'settings': {'waiver_bid': 12},
        },
    ]


# =============================================================================
# Cliente de Sleeper simulado
# =============================================================================

def mock_sleeper_client(routes, calls=None, max_retries=2):
    """Crea un SleeperApiClient cuyo transporte responde desde un diccionario.

    Args:
        routes: Mapa ruta (sin /v1/) -> payload. Un int se responde como ese
                código de estado; una ruta ausente responde 404.
        calls: Lista opcional donde se anotan las rutas pedidas
    """
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path.split('/v1/', 1)[-1]
        if calls is not None:
            calls.append(path)
        if path not in routes:
            return httpx.Response(404, json={'error': 'not found'})
        payload = routes[path]
        if isinstance(payload, int):
            return httpx.Response(payload, json={'error': 'boom'})
        return httpx.Response(200, json=payload)

    http_client = httpx.Client(transport=httpx.MockTransport(handler))
    return SleeperApiClient(base_url=SLEEPER_TEST_URL, http_client=http_client,
                            max_retries=max_retries, retry_wait=0)


@pytest.fixture
def sleeper_routes(sleeper_league, sleeper_users, sleeper_rosters, sleeper_matchups_week1,
                   sleeper_players, sleeper_draft_picks, sleeper_transactions_week1):
    """Rutas de Sleeper para la conferencia L1 (semana NFL actual: 2)."""
    return {
        'state/nfl': {'week': 2, 'season': '2025'},
        'league/L1': sleeper_league,
        'league/L1/users': sleeper_users,
        'league/L1/rosters': sleeper_rosters,
        'league/L1/matchups/1': sleeper_matchups_week1,
        'league/L1/drafts': [{'draft_id': 'D1'}],
        'draft/D1/picks': sleeper_draft_picks,
        'league/L1/transactions/1': sleeper_transactions_week1,
        'players/nfl': sleeper_players,
    }


@pytest.fixture
def make_client():
    """Fábrica de clientes de Sleeper simulados (ver mock_sleeper_client)."""
    return mock_sleeper_client
