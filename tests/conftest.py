"""
Pytest configuration and fixtures.

This file is automatically loaded by pytest and provides
shared fixtures for all tests.
"""

from datetime import date

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from rostermatch.db.models import Base, Player, PlayerTeam, Team
from rostermatch.players.dedup import PlayerDeduplicationService
from rostermatch.players.scoring import BALANCED_PROFILE


@pytest.fixture
def test_engine():
    """
    Create a clean in-memory SQLite engine for each test.

    pysqlite's own transaction handling defers BEGIN and breaks SAVEPOINT
    rollback, so the driver is put in autocommit mode and BEGIN is
    emitted by SQLAlchemy instead.
    """
    engine = create_engine("sqlite:///:memory:", echo=False)

    @event.listens_for(engine, "connect")
    def on_connect(dbapi_conn, connection_record):
        dbapi_conn.isolation_level = None

    @event.listens_for(engine, "begin")
    def on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(test_engine):
    """Create a database session for a test."""
    Session = sessionmaker(bind=test_engine)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def service(db_session):
    """Deduplication service using the default (balanced) profile."""
    return PlayerDeduplicationService(db_session, profile=BALANCED_PROFILE)


@pytest.fixture
def make_team(db_session):
    """Factory for committed teams."""
    counter = {"n": 0}

    def _make(name: str = None, code: str = None) -> Team:
        counter["n"] += 1
        team = Team(
            name=name or f"Team {counter['n']}",
            code=code or f"T{counter['n']}",
        )
        db_session.add(team)
        db_session.commit()
        return team

    return _make


@pytest.fixture
def make_player(db_session):
    """Factory for committed players."""

    def _make(first_name: str, last_name: str, **values) -> Player:
        player = Player(first_name=first_name, last_name=last_name, **values)
        db_session.add(player)
        db_session.commit()
        return player

    return _make


@pytest.fixture
def add_membership(db_session):
    """Factory for committed team memberships."""

    def _add(player: Player, team: Team, jersey_number=None, is_active=True) -> PlayerTeam:
        membership = PlayerTeam(
            player_id=player.id,
            team_id=team.id,
            jersey_number=jersey_number,
            is_active=is_active,
        )
        db_session.add(membership)
        db_session.commit()
        return membership

    return _add


@pytest.fixture
def jordan_smith(make_player):
    """A fully populated stored player."""
    return make_player(
        "Jordan",
        "Smith",
        email="jordan.smith@example.com",
        phone="(555) 010-2030",
        height="6'5\"",
        date_of_birth=date(2001, 4, 12),
        nationality="Canada",
    )
