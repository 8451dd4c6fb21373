"""
Database module for RosterMatch.

Provides SQLAlchemy ORM models and session management.

Usage:
    from rostermatch.db import get_session, Player

    with get_session() as session:
        players = session.query(Player).all()
"""

from rostermatch.db.models import (
    Base,
    Match,
    MatchPlayer,
    MatchStat,
    Player,
    PlayerTeam,
    Team,
)
from rostermatch.db.session import SessionLocal, get_engine, get_session

__all__ = [
    # Base
    "Base",
    # Models
    "Team",
    "Player",
    "PlayerTeam",
    "Match",
    "MatchPlayer",
    "MatchStat",
    # Session
    "get_session",
    "get_engine",
    "SessionLocal",
]
