"""Modelos SQLAlchemy para la base de datos de la liga.

Este módulo define todos los modelos de datos (ORM) que representan
las tablas de la liga de fantasy: temporadas, conferencias (ligas de Sleeper),
equipos, enfrentamientos, récords, jugadores, draft y transacciones.
"""

from sqlalchemy import (
    Column, Integer, String, Float, ForeignKey, Boolean, DateTime,
    UniqueConstraint, Index, CheckConstraint, JSON
)
from sqlalchemy.orm import relationship, declarative_base
from datetime import datetime, timezone

Base = declarative_base()


def utc_now():
    """Retorna la fecha y hora actual en UTC (timezone-aware).

    Usado como default para campos created_at en los modelos.
    """
    return datetime.now(timezone.utc)


class Season(Base):
    """Modelo para temporadas de la liga."""
    __tablename__ = 'seasons'

    id = Column(Integer, primary_key=True, autoincrement=True)
    season_name = Column(String(50), nullable=False)
    season_year = Column(String(10), unique=True, nullable=False, comment='Año de la temporada (ej: 2025)')
    is_current = Column(Boolean, default=False, nullable=False)
    current_week = Column(Integer, nullable=True, comment='Última semana NFL conocida para la temporada')

    # Configuración de la liga (copiada desde Sleeper)
    scoring_settings = Column(JSON, nullable=True, comment='Puntuación por estadística')
    roster_positions = Column(JSON, nullable=True, comment='Lista de posiciones del lineup')

    # Reglamento
    charter_file_url = Column(String(500), nullable=True)
    charter_file_name = Column(String(255), nullable=True)
    charter_uploaded_at = Column(DateTime, nullable=True)

    # Auditoría
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    # Relaciones
    conferences = relationship('Conference', back_populates='season')
    playoff_formats = relationship('PlayoffFormat', back_populates='season')

    def __repr__(self):
        return f"<Season(id={self.id}, year='{self.season_year}')>"


class Conference(Base):
    """Modelo para conferencias. Cada conferencia es una liga de Sleeper."""
    __tablename__ = 'conferences'

    id = Column(Integer, primary_key=True, autoincrement=True)
    conference_name = Column(String(100), nullable=False)
    league_id = Column(String(30), unique=True, nullable=False, comment='ID de la liga en Sleeper')
    season_id = Column(Integer, ForeignKey('seasons.id'), nullable=False, index=True)
    draft_id = Column(String(30), unique=True, nullable=True, comment='ID del draft en Sleeper')
    status = Column(String(20), default='active', nullable=False, comment='Estado: active, completed')
    league_logo_url = Column(String(500), nullable=True)

    # Auditoría
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    # Relaciones
    season = relationship('Season', back_populates='conferences')
    team_links = relationship('TeamConference', back_populates='conference')

    def __repr__(self):
        return f"<Conference(id={self.id}, name='{self.conference_name}')>"


class Team(Base):
    """Modelo para equipos (un manager de Sleeper)."""
    __tablename__ = 'teams'

    id = Column(Integer, primary_key=True, autoincrement=True)
    team_name = Column(String(100), nullable=False)
    owner_name = Column(String(100), nullable=True)
    owner_id = Column(String(30), unique=True, nullable=False, comment='user_id de Sleeper del dueño')
    co_owner_name = Column(String(100), nullable=True)
    co_owner_id = Column(String(30), unique=True, nullable=True)
    team_logourl = Column(String(500), nullable=True)
    team_primarycolor = Column(String(20), nullable=True)
    team_secondarycolor = Column(String(20), nullable=True)

    # Auditoría
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    # Relaciones
    conference_links = relationship('TeamConference', back_populates='team')
    records = relationship('TeamRecord', back_populates='team')

    def __repr__(self):
        return f"<Team(id={self.id}, name='{self.team_name}')>"


class TeamConference(Base):
    """Relación equipo-conferencia con el roster_id de Sleeper."""
    __tablename__ = 'team_conferences_junction'

    id = Column(Integer, primary_key=True, autoincrement=True)
    team_id = Column(Integer, ForeignKey('teams.id'), nullable=False, index=True)
    conference_id = Column(Integer, ForeignKey('conferences.id'), nullable=False, index=True)
    roster_id = Column(Integer, nullable=False, comment='roster_id dentro de la liga de Sleeper')

    # Auditoría
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    # Relaciones
    team = relationship('Team', back_populates='conference_links')
    conference = relationship('Conference', back_populates='team_links')

    __table_args__ = (
        UniqueConstraint('conference_id', 'roster_id', name='uq_conference_roster'),
        UniqueConstraint('team_id', 'conference_id', name='uq_team_conference'),
    )

    def __repr__(self):
        return f"<TeamConference(team_id={self.team_id}, conference_id={self.conference_id}, roster_id={self.roster_id})>"


class Matchup(Base):
    """Modelo para enfrentamientos semanales.

    team2_id es nullable porque las semanas de descanso (bye) no tienen rival.
    Los marcadores son nullable hasta que la semana se sincroniza.
    """
    __tablename__ = 'matchups'

    id = Column(Integer, primary_key=True, autoincrement=True)
    conference_id = Column(Integer, ForeignKey('conferences.id'), nullable=False, index=True)
    season_id = Column(Integer, ForeignKey('seasons.id'), nullable=False, index=True)
    week = Column(Integer, nullable=False, index=True)
    sleeper_matchup_id = Column(Integer, nullable=True, comment='matchup_id de Sleeper dentro de la semana')

    team1_id = Column(Integer, ForeignKey('teams.id'), nullable=False)
    team2_id = Column(Integer, ForeignKey('teams.id'), nullable=True)
    team1_score = Column(Float, nullable=True)
    team2_score = Column(Float, nullable=True)
    winning_team_id = Column(Integer, ForeignKey('teams.id'), nullable=True, comment='None si empate o no finalizado')

    is_playoff = Column(Boolean, default=False, nullable=False)
    is_bye = Column(Boolean, default=False, nullable=False)
    manual_override = Column(Boolean, default=False, nullable=False)
    manually_completed = Column(Boolean, default=False, nullable=False, comment='Resultado fijado por el admin; la sync no lo toca')
    matchup_status = Column(String(20), default='pending', nullable=False, comment='Estado: pending, complete')
    notes = Column(String(500), nullable=True)

    # Auditoría
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    # Relaciones
    conference = relationship('Conference')
    team1 = relationship('Team', foreign_keys=[team1_id])
    team2 = relationship('Team', foreign_keys=[team2_id])

    __table_args__ = (
        CheckConstraint('week >= 1', name='check_matchup_week'),
        Index('idx_matchups_season_week', 'season_id', 'week'),
        Index('idx_matchups_conference_week', 'conference_id', 'week'),
    )

    def __repr__(self):
        return f"<Matchup(id={self.id}, week={self.week}, teams={self.team1_id}-{self.team2_id})>"

    @property
    def is_complete(self):
        """Retorna True si el enfrentamiento ya tiene resultado definitivo."""
        return self.matchup_status == 'complete'

    @property
    def is_tie(self):
        """Retorna True si el enfrentamiento terminó en empate."""
        return self.is_complete and not self.is_bye and self.winning_team_id is None


class TeamRecord(Base):
    """Récord agregado de un equipo por conferencia y temporada."""
    __tablename__ = 'team_records'

    id = Column(Integer, primary_key=True, autoincrement=True)
    team_id = Column(Integer, ForeignKey('teams.id'), nullable=False, index=True)
    conference_id = Column(Integer, ForeignKey('conferences.id'), nullable=False, index=True)
    season_id = Column(Integer, ForeignKey('seasons.id'), nullable=False, index=True)

    wins = Column(Integer, default=0)
    losses = Column(Integer, default=0)
    ties = Column(Integer, default=0)
    points_for = Column(Float, default=0)
    points_against = Column(Float, default=0)
    point_diff = Column(Float, default=0)

    # Auditoría
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    # Relaciones
    team = relationship('Team', back_populates='records')
    conference = relationship('Conference')

    __table_args__ = (
        UniqueConstraint('team_id', 'conference_id', 'season_id', name='uq_team_record'),
        CheckConstraint('wins >= 0', name='check_record_wins'),
        CheckConstraint('losses >= 0', name='check_record_losses'),
        CheckConstraint('ties >= 0', name='check_record_ties'),
    )

    def __repr__(self):
        return f"<TeamRecord(team_id={self.team_id}, {self.wins}-{self.losses}-{self.ties})>"


class Player(Base):
    """Modelo para jugadores de la NFL (catálogo de Sleeper)."""
    __tablename__ = 'players'

    id = Column(Integer, primary_key=True, autoincrement=True)
    sleeper_id = Column(String(20), unique=True, nullable=False, comment='player_id de Sleeper')
    player_name = Column(String(100), nullable=False)
    position = Column(String(10), nullable=True, index=True)
    nfl_team = Column(String(10), nullable=True, index=True)
    number = Column(Integer, nullable=True, comment='Dorsal')
    playing_status = Column(String(30), nullable=True, comment='Estado en Sleeper (Active, Inactive...)')
    injury_status = Column(String(30), nullable=True)
    age = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True, comment='Altura en pulgadas')
    weight = Column(Integer, nullable=True, comment='Peso en libras')
    years_exp = Column(Integer, nullable=True)
    college = Column(String(100), nullable=True)

    # Auditoría
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    __table_args__ = (
        Index('idx_players_name', 'player_name'),
    )

    def __repr__(self):
        return f"<Player(sleeper_id='{self.sleeper_id}', name='{self.player_name}')>"

    @property
    def is_injured(self):
        """Retorna True si el jugador tiene alguna designación de lesión."""
        return bool(self.injury_status)


class DraftResult(Base):
    """Selección del draft de una conferencia."""
    __tablename__ = 'draft_results'

    id = Column(Integer, primary_key=True, autoincrement=True)
    season_id = Column(Integer, ForeignKey('seasons.id'), nullable=False, index=True)
    conference_id = Column(Integer, ForeignKey('conferences.id'), nullable=False, index=True)
    draft_id = Column(String(30), nullable=False)
    round = Column(Integer, nullable=False)
    draft_slot = Column(Integer, nullable=False)
    pick_number = Column(Integer, nullable=False)
    owner_id = Column(String(30), nullable=True, comment='user_id de Sleeper que hizo la selección')
    roster_id = Column(Integer, nullable=True)
    sleeper_id = Column(String(20), nullable=False)
    player_name = Column(String(100), nullable=True)
    position = Column(String(10), nullable=True)
    nfl_team = Column(String(10), nullable=True)
    is_keeper = Column(Boolean, default=False, nullable=False)

    # Auditoría
    created_at = Column(DateTime, default=utc_now, nullable=False)

    conference = relationship('Conference')

    __table_args__ = (
        UniqueConstraint('draft_id', 'pick_number', name='uq_draft_pick'),
        CheckConstraint('round >= 1', name='check_draft_round'),
        CheckConstraint('pick_number >= 1', name='check_draft_pick_number'),
    )

    def __repr__(self):
        return f"<DraftResult(draft_id='{self.draft_id}', pick={self.pick_number}, player='{self.player_name}')>"


class MatchupAdminOverride(Base):
    """Cambio manual de equipos de un enfrentamiento hecho por un administrador."""
    __tablename__ = 'matchup_admin_overrides'

    id = Column(Integer, primary_key=True, autoincrement=True)
    season_id = Column(Integer, ForeignKey('seasons.id'), nullable=False, index=True)
    week = Column(Integer, nullable=False)
    conference_id = Column(Integer, ForeignKey('conferences.id'), nullable=False, index=True)
    original_team1_id = Column(Integer, ForeignKey('teams.id'), nullable=True)
    original_team2_id = Column(Integer, ForeignKey('teams.id'), nullable=True)
    override_team1_id = Column(Integer, ForeignKey('teams.id'), nullable=False)
    override_team2_id = Column(Integer, ForeignKey('teams.id'), nullable=False)
    override_reason = Column(String(255), nullable=True, comment='Ej: Semana interconferencia')
    is_active = Column(Boolean, default=True, nullable=False)
    sleeper_matchup_id = Column(Integer, nullable=True)
    admin_notes = Column(String(500), nullable=True)
    date_overridden = Column(DateTime, default=utc_now, nullable=True)
    overridden_by_admin_id = Column(String(50), nullable=True)

    # Auditoría
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    override_team1 = relationship('Team', foreign_keys=[override_team1_id])
    override_team2 = relationship('Team', foreign_keys=[override_team2_id])
    original_team1 = relationship('Team', foreign_keys=[original_team1_id])
    original_team2 = relationship('Team', foreign_keys=[original_team2_id])
    conference = relationship('Conference')

    __table_args__ = (
        Index('idx_override_lookup', 'season_id', 'week', 'conference_id', 'is_active'),
    )

    def __repr__(self):
        return f"<MatchupAdminOverride(id={self.id}, week={self.week}, active={self.is_active})>"


class PlayoffFormat(Base):
    """Formato de playoffs de una temporada."""
    __tablename__ = 'playoff_formats'

    id = Column(Integer, primary_key=True, autoincrement=True)
    season_id = Column(Integer, ForeignKey('seasons.id'), nullable=False, index=True)
    playoff_teams = Column(Integer, default=10, nullable=False)
    week_14_byes = Column(Integer, default=6, nullable=False, comment='Equipos con bye en primera ronda')
    reseed = Column(Boolean, default=True, nullable=False)
    playoff_start_week = Column(Integer, default=14, nullable=False)
    championship_week = Column(Integer, default=17, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Auditoría
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    season = relationship('Season', back_populates='playoff_formats')

    __table_args__ = (
        CheckConstraint('playoff_teams >= 0', name='check_playoff_teams'),
        CheckConstraint('week_14_byes >= 0', name='check_playoff_byes'),
        CheckConstraint('championship_week >= playoff_start_week', name='check_playoff_weeks'),
    )

    def __repr__(self):
        return f"<PlayoffFormat(season_id={self.season_id}, teams={self.playoff_teams})>"


class PlayoffBracket(Base):
    """Cruce del cuadro de playoffs."""
    __tablename__ = 'playoff_brackets'

    id = Column(Integer, primary_key=True, autoincrement=True)
    season_id = Column(Integer, ForeignKey('seasons.id'), nullable=False, index=True)
    round = Column(Integer, nullable=False)
    week = Column(Integer, nullable=False)
    team1_seed = Column(Integer, nullable=True)
    team2_seed = Column(Integer, nullable=True)
    team1_id = Column(Integer, ForeignKey('teams.id'), nullable=True)
    team2_id = Column(Integer, ForeignKey('teams.id'), nullable=True)
    winner_team_id = Column(Integer, ForeignKey('teams.id'), nullable=True)
    playoff_round_name = Column(String(50), nullable=True)
    is_bye = Column(Boolean, default=False, nullable=False)
    matchup_number = Column(Integer, nullable=True)
    team1_score = Column(Float, nullable=True)
    team2_score = Column(Float, nullable=True)
    manual_override = Column(Boolean, default=False, nullable=False)

    team1 = relationship('Team', foreign_keys=[team1_id])
    team2 = relationship('Team', foreign_keys=[team2_id])

    def __repr__(self):
        return f"<PlayoffBracket(season_id={self.season_id}, round={self.round}, match={self.matchup_number})>"


class TeamRoster(Base):
    """Jugador en el roster de un equipo en una semana concreta."""
    __tablename__ = 'team_rosters'

    id = Column(Integer, primary_key=True, autoincrement=True)
    team_id = Column(Integer, ForeignKey('teams.id'), nullable=False, index=True)
    season_id = Column(Integer, ForeignKey('seasons.id'), nullable=False, index=True)
    week = Column(Integer, nullable=False)
    sleeper_id = Column(String(20), nullable=False, index=True)
    status = Column(String(20), default='active', nullable=False, comment='Estado: active, bench, ir, taxi')
    is_starter = Column(Boolean, default=False, nullable=False)
    slot_position = Column(String(20), nullable=True, comment='Hueco del lineup (QB, FLEX...)')

    # Auditoría
    created_at = Column(DateTime, default=utc_now, nullable=False)

    team = relationship('Team')

    __table_args__ = (
        UniqueConstraint('team_id', 'season_id', 'week', 'sleeper_id', name='uq_team_roster_week_player'),
        Index('idx_team_roster_season_week', 'season_id', 'week'),
    )

    def __repr__(self):
        return f"<TeamRoster(team_id={self.team_id}, week={self.week}, sleeper_id='{self.sleeper_id}')>"


class Transaction(Base):
    """Transacción de Sleeper (traspaso, agente libre, waiver, comisionado)."""
    __tablename__ = 'transactions'

    id = Column(Integer, primary_key=True, autoincrement=True)
    season_id = Column(Integer, ForeignKey('seasons.id'), nullable=False, index=True)
    conference_id = Column(Integer, ForeignKey('conferences.id'), nullable=False, index=True)
    sleeper_transaction_id = Column(String(30), unique=True, nullable=False)
    type = Column(String(20), nullable=True, index=True, comment='trade, free_agent, waiver, commissioner')
    status = Column(String(20), nullable=True)
    week = Column(Integer, nullable=True, index=True)
    roster_ids = Column(JSON, nullable=True)
    data = Column(JSON, nullable=True, comment='Payload original de Sleeper')
    transaction_created_at = Column(DateTime, nullable=True)

    # Auditoría
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    conference = relationship('Conference')

    def __repr__(self):
        return f"<Transaction(id='{self.sleeper_transaction_id}', type='{self.type}', week={self.week})>"


class SystemStatus(Base):
    """Modelo para persistir el estado de tareas del sistema (ej: sincronización)."""
    __tablename__ = 'system_status'

    task_name = Column(String(50), primary_key=True)
    status = Column(String(20), default='idle', nullable=False,
                    comment='Estado: idle, running, completed, failed')
    progress = Column(Integer, default=0, nullable=False,
                     comment='Porcentaje de progreso (0-100)')
    message = Column(String(255), nullable=True,
                    comment='Mensaje descriptivo del paso actual')

    # Auditoría
    last_run = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    def __repr__(self):
        return f"<SystemStatus(task='{self.task_name}', status='{self.status}', progress={self.progress}%)>"


class LogEntry(Base):
    """Modelo para persistir logs del sistema en la base de datos."""
    __tablename__ = 'log_entries'

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(DateTime, default=utc_now, nullable=False, index=True)
    level = Column(String(20), nullable=False, index=True)
    module = Column(String(100), nullable=False)
    message = Column(String, nullable=False)
    traceback = Column(String, nullable=True)

    def __repr__(self):
        return f"<LogEntry(id={self.id}, level='{self.level}', module='{self.module}')>"
