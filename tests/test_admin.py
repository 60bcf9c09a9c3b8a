"""Tests para el panel de administracion.

Cubren la sesion de administrador, el disparo de sincronizaciones (manual y
cron), el estado y los logs, los cambios manuales de enfrentamientos, el
formato de playoffs y el reglamento.
"""

import time
from datetime import datetime
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from db.models import (
    SystemStatus, LogEntry, MatchupAdminOverride, PlayoffFormat, Season, Conference, Matchup,
    PlayoffBracket, TeamRecord
)
from ingestion.strategies import SyncRunner, SYNC_TASK_NAME
from web.app import app
from web.config import ADMIN_PASSWORD
from web.routes import admin
from web.utils import get_sleeper_client


@pytest.fixture
def client(db_session):
    """Cliente con su propia cookie de sesión."""
    return TestClient(app)


@pytest.fixture
def admin_client(client):
    response = client.post("/admin/login", data={"password": ADMIN_PASSWORD}, follow_redirects=False)
    assert response.status_code == 303
    return client


@pytest.fixture
def sync_calls(monkeypatch):
    """Sustituye el subproceso de sincronización y anota las llamadas."""
    calls = []
    monkeypatch.setattr(admin, "run_sync_task", lambda mode, extra_args=None: calls.append((mode, extra_args)))
    return calls


class TestAdminSession:
    """Login, logout y caducidad de la sesión."""

    def test_login_form_when_anonymous(self, client):
        response = client.get("/admin")
        assert response.status_code == 200
        assert 'name="password"' in response.text

    def test_wrong_password(self, client):
        response = client.post("/admin/login", data={"password": "nope"}, follow_redirects=False)
        assert response.status_code == 401
        assert "Contraseña incorrecta" in response.text

    def test_login_redirects_to_panel(self, client):
        response = client.post("/admin/login", data={"password": ADMIN_PASSWORD}, follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == "/admin"
        assert "Cerrar sesión" in client.get("/admin").text

    def test_panel_with_league(self, admin_client, league):
        text = admin_client.get("/admin").text
        assert "Alpha" in text
        assert "Roman" in text

    def test_logout(self, admin_client):
        response = admin_client.post("/admin/logout", follow_redirects=False)
        assert response.status_code == 303
        assert 'name="password"' in admin_client.get("/admin").text

    def test_session_expires(self, client, monkeypatch):
        """Un login de hace más de 8 horas ya no da acceso."""
        nine_hours_ago = time.time() - 9 * 3600
        monkeypatch.setattr(admin, "time", SimpleNamespace(time=lambda: nine_hours_ago))
        client.post("/admin/login", data={"password": ADMIN_PASSWORD}, follow_redirects=False)
        monkeypatch.undo()

        assert 'name="password"' in client.get("/admin").text

    def test_protected_endpoints_require_session(self, client):
        assert client.post("/admin/sync/weekly").status_code == 401
        assert client.get("/admin/logs").status_code == 401
        response = client.post("/admin/overrides/1/deactivate")
        assert response.status_code == 401
        assert response.json()["detail"] == "Se requiere sesión de administrador"


class TestManualSync:
    """POST /admin/sync/{mode}."""

    def test_starts_sync(self, admin_client, db_session, sync_calls):
        response = admin_client.post("/admin/sync/weekly?season=2025&week=3")
        assert response.status_code == 200
        assert response.json()["status"] == "success"
        assert sync_calls == [("weekly", ["--season", "2025", "--week", "3"])]

        status = db_session.query(SystemStatus).filter_by(task_name=SYNC_TASK_NAME).one()
        assert status.status == "running"
        assert status.progress == 0

    def test_without_arguments(self, admin_client, sync_calls):
        admin_client.post("/admin/sync/players")
        assert sync_calls == [("players", [])]

    def test_rejects_when_running(self, admin_client, db_session, sync_calls):
        db_session.add(SystemStatus(task_name=SYNC_TASK_NAME, status="running", progress=40))
        db_session.commit()

        response = admin_client.post("/admin/sync/full")
        assert response.json()["status"] == "error"
        assert sync_calls == []

    def test_unknown_mode(self, admin_client, sync_calls):
        assert admin_client.post("/admin/sync/everything").status_code == 400
        assert sync_calls == []


class TestCronSync:
    """POST /admin/sync/cron con token."""

    def test_token_not_configured(self, client, monkeypatch, sync_calls):
        monkeypatch.delenv("SECURE_TOKEN", raising=False)
        monkeypatch.delenv("CRON_API_KEY", raising=False)
        assert client.post("/admin/sync/cron").status_code == 500

    def test_invalid_token(self, client, monkeypatch, sync_calls):
        monkeypatch.setenv("SECURE_TOKEN", "s3cret")
        response = client.post("/admin/sync/cron", headers={"X-Secure-Token": "wrong"})
        assert response.status_code == 403
        assert sync_calls == []

    def test_valid_token_starts_weekly(self, client, monkeypatch, sync_calls):
        monkeypatch.setenv("SECURE_TOKEN", "s3cret")
        response = client.post("/admin/sync/cron", headers={"X-Secure-Token": "s3cret"})
        assert response.status_code == 200
        assert response.json()["status"] == "success"
        assert sync_calls == [("weekly", None)]

    def test_cron_key_header(self, client, monkeypatch, sync_calls):
        monkeypatch.delenv("SECURE_TOKEN", raising=False)
        monkeypatch.setenv("CRON_API_KEY", "cron-key")
        response = client.post("/admin/sync/cron", headers={"X-Cron-Key": "cron-key"})
        assert response.json()["status"] == "success"

    def test_ignored_when_running(self, client, db_session, monkeypatch, sync_calls):
        monkeypatch.setenv("SECURE_TOKEN", "s3cret")
        db_session.add(SystemStatus(task_name=SYNC_TASK_NAME, status="running", progress=10))
        db_session.commit()

        response = client.post("/admin/sync/cron", headers={"X-Secure-Token": "s3cret"})
        assert response.json()["status"] == "ignored"
        assert sync_calls == []


class TestStatusAndLogs:

    def test_idle_status(self, client):
        data = client.get("/admin/sync/status").json()
        assert data["status"] == "idle"
        assert data["progress"] == 0

    def test_running_status(self, client, db_session):
        db_session.add(SystemStatus(task_name=SYNC_TASK_NAME, status="running", progress=55,
                                    message="Enfrentamientos semana 3", last_run=datetime(2025, 10, 1, 12, 0)))
        db_session.commit()

        data = client.get("/admin/sync/status").json()
        assert data["status"] == "running"
        assert data["progress"] == 55
        assert data["message"] == "Enfrentamientos semana 3"
        assert data["last_run"].startswith("2025-10-01T12:00")

    def test_logs_are_chronological(self, admin_client, db_session):
        for minute, message in enumerate(["primero", "segundo", "tercero"]):
            db_session.add(LogEntry(timestamp=datetime(2099, 1, 1, 0, minute), level="INFO",
                                    module="gladiator.test", message=message))
        db_session.commit()

        logs = admin_client.get("/admin/logs?limit=2").json()
        assert [log["message"] for log in logs] == ["segundo", "tercero"]
        assert logs[0]["level"] == "INFO"


class TestRunSyncTask:
    """run_sync_task lanza el CLI como subproceso."""

    def _fake_popen(self, returncode, commands):
        class FakeProcess:
            def __init__(self, cmd, env=None):
                commands.append(cmd)
                self.returncode = returncode

            def wait(self):
                return self.returncode
        return FakeProcess

    def test_failed_exit_marks_status(self, db_session, monkeypatch):
        commands = []
        monkeypatch.setattr(admin.subprocess, "Popen", self._fake_popen(2, commands))
        admin.run_sync_task("weekly", ["--week", "3"])

        assert commands[0][1:] == ["-m", "ingestion.cli", "--mode", "weekly", "--week", "3"]
        status = db_session.query(SystemStatus).filter_by(task_name=SYNC_TASK_NAME).one()
        assert status.status == "failed"
        assert status.message == "ERROR: El CLI terminó con código 2"
        assert admin.active_processes == []

    def test_success_leaves_status(self, db_session, monkeypatch):
        monkeypatch.setattr(admin.subprocess, "Popen", self._fake_popen(0, []))
        admin.run_sync_task("records")
        assert db_session.query(SystemStatus).count() == 0


class TestOverrides:
    """Cambios manuales de enfrentamientos."""

    def _form(self, league, **extra):
        data = {
            "season_id": league.season_id,
            "week": 1,
            "conference_id": league.roman_id,
            "override_team1_id": league.gamma_id,
            "override_team2_id": league.alpha_id,
            "sleeper_matchup_id": "1",
            "override_reason": "Semana interconferencia",
        }
        data.update(extra)
        return data

    def test_create(self, admin_client, league, db_session):
        response = admin_client.post("/admin/overrides", data=self._form(league), follow_redirects=False)
        assert response.status_code == 303

        override = db_session.query(MatchupAdminOverride).one()
        assert override.is_active is True
        assert override.override_team1_id == league.gamma_id
        assert override.sleeper_matchup_id == 1
        assert override.original_team1_id is None
        assert override.override_reason == "Semana interconferencia"

    def test_new_override_deactivates_previous(self, admin_client, league, db_session):
        admin_client.post("/admin/overrides", data=self._form(league), follow_redirects=False)
        admin_client.post("/admin/overrides", data=self._form(league, override_team1_id=league.delta_id),
                          follow_redirects=False)

        overrides = db_session.query(MatchupAdminOverride).order_by(MatchupAdminOverride.id).all()
        assert [o.is_active for o in overrides] == [False, True]

    def test_other_week_stays_active(self, admin_client, league, db_session):
        admin_client.post("/admin/overrides", data=self._form(league), follow_redirects=False)
        admin_client.post("/admin/overrides", data=self._form(league, week=2), follow_redirects=False)

        overrides = db_session.query(MatchupAdminOverride).all()
        assert all(o.is_active for o in overrides)

    def test_same_team_rejected(self, admin_client, league):
        data = self._form(league, override_team1_id=league.alpha_id)
        assert admin_client.post("/admin/overrides", data=data).status_code == 400

    def test_invalid_week_rejected(self, admin_client, league):
        assert admin_client.post("/admin/overrides", data=self._form(league, week=0)).status_code == 400

    def test_unknown_team(self, admin_client, league):
        data = self._form(league, override_team1_id=9999)
        assert admin_client.post("/admin/overrides", data=data).status_code == 404

    def test_unknown_conference(self, admin_client, league, db_session):
        assert admin_client.post("/admin/overrides", data=self._form(league, conference_id=9999)).status_code == 404
        assert db_session.query(MatchupAdminOverride).count() == 0

    def test_conference_from_other_season(self, admin_client, league, db_session):
        old = Season(season_year='2024', season_name='2024 Season', is_current=False)
        db_session.add(old)
        db_session.flush()
        conference = Conference(conference_name='Roman', league_id='OLD1', season_id=old.id)
        db_session.add(conference)
        db_session.commit()

        data = self._form(league, conference_id=conference.id)
        assert admin_client.post("/admin/overrides", data=data).status_code == 400

    def test_unknown_original_team(self, admin_client, league, db_session):
        data = self._form(league, original_team1_id="9999")
        assert admin_client.post("/admin/overrides", data=data).status_code == 404
        assert db_session.query(MatchupAdminOverride).count() == 0

    def test_original_teams_saved(self, admin_client, league, db_session):
        data = self._form(league, original_team1_id=str(league.alpha_id), original_team2_id=str(league.beta_id))
        admin_client.post("/admin/overrides", data=data, follow_redirects=False)
        override = db_session.query(MatchupAdminOverride).one()
        assert (override.original_team1_id, override.original_team2_id) == (league.alpha_id, league.beta_id)

    def test_shown_on_matchups_page(self, admin_client, league):
        admin_client.post("/admin/overrides", data=self._form(league), follow_redirects=False)
        text = admin_client.get("/matchups").text
        assert "Gamma vs Alpha" in text

    def test_deactivate_and_delete(self, admin_client, league, db_session):
        admin_client.post("/admin/overrides", data=self._form(league), follow_redirects=False)
        override_id = db_session.query(MatchupAdminOverride).one().id

        response = admin_client.post(f"/admin/overrides/{override_id}/deactivate", follow_redirects=False)
        assert response.status_code == 303
        db_session.expire_all()
        assert db_session.get(MatchupAdminOverride, override_id).is_active is False

        admin_client.post(f"/admin/overrides/{override_id}/delete", follow_redirects=False)
        db_session.expire_all()
        assert db_session.query(MatchupAdminOverride).count() == 0

    def test_missing_override(self, admin_client, league):
        assert admin_client.post("/admin/overrides/9999/deactivate").status_code == 404
        assert admin_client.post("/admin/overrides/9999/delete").status_code == 404


class TestPlayoffFormat:

    def _form(self, league, **extra):
        data = {
            "season_id": league.season_id,
            "playoff_teams": 4,
            "week_14_byes": 2,
            "playoff_start_week": 15,
            "championship_week": 17,
            "reseed": "on",
        }
        data.update(extra)
        return data

    def test_create_and_update(self, admin_client, league, db_session):
        response = admin_client.post("/admin/playoff-format", data=self._form(league), follow_redirects=False)
        assert response.status_code == 303

        data = self._form(league, playoff_teams=2)
        del data["reseed"]
        admin_client.post("/admin/playoff-format", data=data, follow_redirects=False)

        formats = db_session.query(PlayoffFormat).all()
        assert len(formats) == 1
        assert formats[0].playoff_teams == 2
        assert formats[0].reseed is False
        assert formats[0].playoff_start_week == 15

    def test_changes_standings(self, admin_client, league):
        """Con 2 plazas solo entran los dos campeones de conferencia."""
        admin_client.post("/admin/playoff-format", data=self._form(league, playoff_teams=2, week_14_byes=0),
                          follow_redirects=False)
        rows = admin_client.get("/api/standings").json()["standings"]
        qualified = sorted(r["team_name"] for r in rows if r["playoff_eligible"])
        assert qualified == ["Alpha", "Delta"]

    def test_validation(self, admin_client, league):
        post = admin_client.post
        assert post("/admin/playoff-format", data=self._form(league, week_14_byes=5)).status_code == 400
        assert post("/admin/playoff-format", data=self._form(league, playoff_teams=-1)).status_code == 400
        assert post("/admin/playoff-format", data=self._form(league, championship_week=14)).status_code == 400
        assert post("/admin/playoff-format", data=self._form(league, season_id=9999)).status_code == 404


class TestCharter:

    def test_save_charter(self, admin_client, league, db_session):
        url = "https://example.com/docs/charter-2025.pdf"
        response = admin_client.post(f"/admin/seasons/{league.season_id}/charter",
                                     data={"charter_file_url": url}, follow_redirects=False)
        assert response.status_code == 303

        season = db_session.get(Season, league.season_id)
        db_session.refresh(season)
        assert season.charter_file_url == url
        assert season.charter_file_name == "charter-2025.pdf"
        assert season.charter_uploaded_at is not None
        assert "charter-2025.pdf" in admin_client.get("/rules").text

    def test_unknown_season(self, admin_client, league):
        response = admin_client.post("/admin/seasons/9999/charter", data={"charter_file_url": "https://x/y.pdf"})
        assert response.status_code == 404


class TestPlayoffBracket:
    """Generación, edición y avance del cuadro de playoffs."""

    @pytest.fixture
    def four_team_format(self, admin_client, league):
        data = {
            "season_id": league.season_id,
            "playoff_teams": 4,
            "week_14_byes": 0,
            "playoff_start_week": 15,
            "championship_week": 16,
            "reseed": "on",
        }
        admin_client.post("/admin/playoff-format", data=data, follow_redirects=False)

    def _generate(self, admin_client, league):
        return admin_client.post("/admin/playoff-bracket", data={"season_id": league.season_id},
                                 follow_redirects=False)

    def _rows(self, db_session, round_number=1):
        db_session.expire_all()
        return db_session.query(PlayoffBracket).filter_by(round=round_number)\
            .order_by(PlayoffBracket.matchup_number).all()

    def test_generate_from_seeds(self, admin_client, league, db_session, four_team_format):
        assert self._generate(admin_client, league).status_code == 303

        rows = self._rows(db_session)
        assert [(r.team1_id, r.team2_id) for r in rows] == [
            (league.alpha_id, league.gamma_id), (league.delta_id, league.beta_id)
        ]
        assert [(r.team1_seed, r.team2_seed) for r in rows] == [(1, 4), (2, 3)]
        assert {r.week for r in rows} == {15}
        assert rows[0].playoff_round_name == "Semifinales"
        assert "Semifinales · Semana 15" in admin_client.get("/standings").text

    def test_generate_replaces_previous(self, admin_client, league, db_session, four_team_format):
        self._generate(admin_client, league)
        self._generate(admin_client, league)
        db_session.expire_all()
        assert db_session.query(PlayoffBracket).count() == 2

    def test_top_seeds_get_byes(self, admin_client, league, db_session):
        """Con el formato por defecto (6 byes) los cuatro equipos descansan."""
        self._generate(admin_client, league)
        rows = self._rows(db_session)
        assert len(rows) == 4
        assert all(r.is_bye and r.winner_team_id == r.team1_id for r in rows)

    def test_edit_sets_winner(self, admin_client, league, db_session, four_team_format):
        self._generate(admin_client, league)
        first = self._rows(db_session)[0]

        response = admin_client.post(f"/admin/playoff-bracket/{first.id}", data={
            "team1_id": league.alpha_id, "team2_id": str(league.gamma_id),
            "team1_score": "101.5", "team2_score": "120.25",
        }, follow_redirects=False)
        assert response.status_code == 303

        edited = self._rows(db_session)[0]
        assert edited.winner_team_id == league.gamma_id
        assert edited.team2_score == 120.25
        assert edited.manual_override is True

    def test_edit_without_scores_clears_winner(self, admin_client, league, db_session, four_team_format):
        self._generate(admin_client, league)
        first = self._rows(db_session)[0]
        admin_client.post(f"/admin/playoff-bracket/{first.id}",
                          data={"team1_id": league.alpha_id, "team2_id": str(league.beta_id)})
        edited = self._rows(db_session)[0]
        assert edited.team2_id == league.beta_id
        assert edited.winner_team_id is None

    def test_edit_to_bye(self, admin_client, league, db_session, four_team_format):
        self._generate(admin_client, league)
        first = self._rows(db_session)[0]
        admin_client.post(f"/admin/playoff-bracket/{first.id}", data={"team1_id": league.alpha_id, "team2_id": ""})
        edited = self._rows(db_session)[0]
        assert edited.is_bye is True
        assert edited.team2_id is None
        assert edited.winner_team_id == league.alpha_id

    def test_edit_with_sleeper_scores(self, admin_client, league, db_session, four_team_format, make_client):
        """Los puntos se leen de la liga de cada equipo en la semana del cruce."""
        self._generate(admin_client, league)
        first = self._rows(db_session)[0]
        routes = {
            'league/L1/matchups/15': [{'roster_id': 1, 'matchup_id': 1, 'points': 130.2}],
            'league/L2/matchups/15': [{'roster_id': 1, 'matchup_id': 1, 'points': 101.0}],
        }
        app.dependency_overrides[get_sleeper_client] = lambda: make_client(routes)
        try:
            admin_client.post(f"/admin/playoff-bracket/{first.id}", data={
                "team1_id": league.alpha_id, "team2_id": str(league.gamma_id), "fetch_scores": "1",
            })
        finally:
            app.dependency_overrides.pop(get_sleeper_client, None)

        edited = self._rows(db_session)[0]
        assert (edited.team1_score, edited.team2_score) == (130.2, 101.0)
        assert edited.winner_team_id == league.alpha_id

    def test_edit_validation(self, admin_client, league, db_session, four_team_format):
        self._generate(admin_client, league)
        first = self._rows(db_session)[0]
        post = admin_client.post
        same = {"team1_id": league.alpha_id, "team2_id": str(league.alpha_id)}
        assert post(f"/admin/playoff-bracket/{first.id}", data=same).status_code == 400
        unknown = {"team1_id": 9999, "team2_id": str(league.alpha_id)}
        assert post(f"/admin/playoff-bracket/{first.id}", data=unknown).status_code == 404
        assert post("/admin/playoff-bracket/9999", data={"team1_id": league.alpha_id}).status_code == 404

    def test_advance_with_reseed(self, admin_client, league, db_session, four_team_format):
        self._generate(admin_client, league)
        first, second = self._rows(db_session)
        admin_client.post(f"/admin/playoff-bracket/{first.id}", data={
            "team1_id": league.alpha_id, "team2_id": str(league.gamma_id),
            "team1_score": "120", "team2_score": "100",
        })
        admin_client.post(f"/admin/playoff-bracket/{second.id}", data={
            "team1_id": league.delta_id, "team2_id": str(league.beta_id),
            "team1_score": "80", "team2_score": "90",
        })

        response = admin_client.post("/admin/playoff-bracket/advance", data={"season_id": league.season_id},
                                     follow_redirects=False)
        assert response.status_code == 303

        final = self._rows(db_session, round_number=2)
        assert len(final) == 1
        assert (final[0].team1_id, final[0].team2_id) == (league.alpha_id, league.beta_id)
        assert (final[0].team1_seed, final[0].team2_seed) == (1, 3)
        assert final[0].playoff_round_name == "Final"
        assert final[0].week == 16

    def test_advance_without_winners(self, admin_client, league, four_team_format):
        self._generate(admin_client, league)
        response = admin_client.post("/admin/playoff-bracket/advance", data={"season_id": league.season_id})
        assert response.status_code == 400
        assert "no tiene ganador" in response.json()["detail"]

    def test_advance_without_bracket(self, admin_client, league):
        response = admin_client.post("/admin/playoff-bracket/advance", data={"season_id": league.season_id})
        assert response.status_code == 400

    def test_generate_validation(self, admin_client, league, db_session):
        assert admin_client.post("/admin/playoff-bracket", data={"season_id": 9999}).status_code == 404

        empty = Season(season_year='2024', season_name='2024 Season', is_current=False)
        db_session.add(empty)
        db_session.commit()
        assert admin_client.post("/admin/playoff-bracket", data={"season_id": empty.id}).status_code == 400

    def test_requires_admin(self, client, league):
        assert client.post("/admin/playoff-bracket", data={"season_id": league.season_id}).status_code == 401


class TestManualCompletion:
    """Resultado fijado a mano para un enfrentamiento."""

    def _pending(self, db_session):
        return db_session.query(Matchup).filter_by(week=2, is_bye=False).one()

    def _complete(self, client, matchup_id, score1, score2):
        return client.post(f"/admin/matchups/{matchup_id}/complete",
                           data={"team1_score": score1, "team2_score": score2}, follow_redirects=False)

    def test_listed_on_panel(self, admin_client, league):
        text = admin_client.get("/admin").text
        assert "Resultados manuales" in text
        assert "Completar" in text

    def test_complete_updates_records(self, admin_client, league, db_session):
        matchup_id = self._pending(db_session).id
        assert self._complete(admin_client, matchup_id, "101.5", "99").status_code == 303

        db_session.expire_all()
        matchup = db_session.get(Matchup, matchup_id)
        assert matchup.matchup_status == 'complete'
        assert matchup.winning_team_id == league.alpha_id
        assert matchup.manually_completed is True
        assert matchup.manual_override is True

        alpha = db_session.query(TeamRecord).filter_by(team_id=league.alpha_id).one()
        assert (alpha.wins, alpha.losses) == (2, 0)
        assert alpha.points_for == 212.0
        beta = db_session.query(TeamRecord).filter_by(team_id=league.beta_id).one()
        assert (beta.wins, beta.losses) == (0, 2)

    def test_tie(self, admin_client, league, db_session):
        matchup_id = self._pending(db_session).id
        self._complete(admin_client, matchup_id, "100", "100")
        db_session.expire_all()
        assert db_session.get(Matchup, matchup_id).winning_team_id is None
        alpha = db_session.query(TeamRecord).filter_by(team_id=league.alpha_id).one()
        assert alpha.ties == 1

    def test_survives_weekly_sync(self, admin_client, league, db_session, make_client, sleeper_routes):
        matchup_id = self._pending(db_session).id
        self._complete(admin_client, matchup_id, "101.5", "99")

        routes = dict(sleeper_routes)
        routes['league/L1/matchups/2'] = [
            {'roster_id': 1, 'matchup_id': 1, 'points': 10.0},
            {'roster_id': 2, 'matchup_id': 1, 'points': 0},
        ]
        SyncRunner(make_client(routes), db_session).run('weekly', week=2)
        db_session.expire_all()

        matchup = db_session.get(Matchup, matchup_id)
        assert matchup.matchup_status == 'complete'
        assert (matchup.team1_score, matchup.team2_score) == (101.5, 99.0)
        alpha = db_session.query(TeamRecord).filter_by(team_id=league.alpha_id).one()
        assert alpha.wins == 2

    def test_interconference_records(self, admin_client, league, db_session):
        """Completar un cruce interconferencia actualiza el récord en ambas conferencias."""
        matchup = Matchup(
            conference_id=league.roman_id, season_id=league.season_id, week=3, sleeper_matchup_id=5,
            team1_id=league.beta_id, team2_id=league.gamma_id, matchup_status='pending'
        )
        db_session.add(matchup)
        db_session.commit()

        self._complete(admin_client, matchup.id, "88", "91.5")
        db_session.expire_all()

        gamma = db_session.query(TeamRecord).filter_by(team_id=league.gamma_id).one()
        assert (gamma.wins, gamma.losses) == (1, 1)
        beta = db_session.query(TeamRecord).filter_by(team_id=league.beta_id).one()
        assert (beta.wins, beta.losses) == (0, 2)

    def test_validation(self, admin_client, league, db_session):
        bye = Matchup(conference_id=league.roman_id, season_id=league.season_id, week=3,
                      team1_id=league.alpha_id, is_bye=True, matchup_status='pending')
        db_session.add(bye)
        db_session.commit()

        assert self._complete(admin_client, bye.id, "10", "0").status_code == 400
        assert self._complete(admin_client, 9999, "10", "0").status_code == 404
        matchup_id = self._pending(db_session).id
        assert self._complete(admin_client, matchup_id, "-1", "0").status_code == 400

    def test_requires_admin(self, client, league, db_session):
        matchup_id = self._pending(db_session).id
        assert self._complete(client, matchup_id, "10", "0").status_code == 401
