"""
SQLAlchemy ORM models for RosterMatch.

The schema is the slice of the league database the deduplication engine
reads and rewrites. A player's history hangs off three tables (team
memberships, match roster entries and per-match stats), all of which a
merge has to move before the duplicate player row can go.

Tables:
- teams: Teams players are rostered on
- players: Canonical player records
- player_teams: Team memberships with jersey numbers
- matches: Scheduled and played matches
- match_players: Match roster entries
- match_stats: Per-player, per-match stat lines
"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# =============================================================================
# Team Models
# =============================================================================

class Team(Base):
    """A team that players can be rostered on."""
    __tablename__ = "teams"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(30), nullable=False, unique=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<Team(id={self.id}, code='{self.code}')>"


# =============================================================================
# Player Models
# =============================================================================

class Player(Base):
    """
    Canonical player record.

    Each person should have exactly one row here. New rows are only
    inserted after the matcher has decided the candidate is not already
    known (or the caller explicitly confirmed a potential duplicate).

    Height is free text because imports carry it in several encodings
    ("6'5\"", "77 inches", "6-5"); the height comparator parses it.
    """
    __tablename__ = "players"

    id: Mapped[int] = mapped_column(primary_key=True)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Unique when present, ignoring case (see uq_players_email_lower below)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    height: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    nationality: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    position: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        Index("idx_players_name", "first_name", "last_name"),
    )

    def __repr__(self) -> str:
        return f"<Player(id={self.id}, name='{self.first_name} {self.last_name}')>"


# Store-level backstop against double creation. Emails are compared
# case-insensitively everywhere else, so the constraint is on lower(email).
Index("uq_players_email_lower", func.lower(Player.email), unique=True)


class PlayerTeam(Base):
    """
    Team membership.

    A jersey number may only be held by one active membership per team.
    Leaving a team flips is_active and stamps left_at rather than deleting
    the row, so roster history survives.
    """
    __tablename__ = "player_teams"

    id: Mapped[int] = mapped_column(primary_key=True)
    player_id: Mapped[int] = mapped_column(ForeignKey("players.id", ondelete="CASCADE"))
    team_id: Mapped[int] = mapped_column(ForeignKey("teams.id", ondelete="CASCADE"))

    jersey_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    joined_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    left_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_player_teams_team_active", "team_id", "is_active"),
        Index("idx_player_teams_player_team", "player_id", "team_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<PlayerTeam(player={self.player_id}, team={self.team_id}, "
            f"jersey={self.jersey_number}, active={self.is_active})>"
        )


# =============================================================================
# Match Models
# =============================================================================

class Match(Base):
    """A match between two teams."""
    __tablename__ = "matches"

    id: Mapped[int] = mapped_column(primary_key=True)
    home_team_id: Mapped[int] = mapped_column(ForeignKey("teams.id"))
    away_team_id: Mapped[int] = mapped_column(ForeignKey("teams.id"))
    scheduled_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<Match(id={self.id}, home={self.home_team_id}, away={self.away_team_id})>"


class MatchPlayer(Base):
    """Match roster entry: a player dressed for a match."""
    __tablename__ = "match_players"

    id: Mapped[int] = mapped_column(primary_key=True)
    match_id: Mapped[int] = mapped_column(ForeignKey("matches.id", ondelete="CASCADE"))
    player_id: Mapped[int] = mapped_column(ForeignKey("players.id"))
    team_id: Mapped[int] = mapped_column(ForeignKey("teams.id"))
    jersey_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        UniqueConstraint("match_id", "player_id", "team_id", name="uq_match_player"),
        Index("idx_match_players_match_team", "match_id", "team_id"),
    )

    def __repr__(self) -> str:
        return f"<MatchPlayer(match={self.match_id}, player={self.player_id})>"


class MatchStat(Base):
    """Per-player stat line for one match."""
    __tablename__ = "match_stats"

    id: Mapped[int] = mapped_column(primary_key=True)
    match_id: Mapped[int] = mapped_column(ForeignKey("matches.id", ondelete="CASCADE"))
    player_id: Mapped[int] = mapped_column(ForeignKey("players.id"))
    team_id: Mapped[int] = mapped_column(ForeignKey("teams.id"))

    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rebounds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    assists: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    blocks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    steals: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    fouls: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    turnovers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    minutes_played: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        UniqueConstraint("match_id", "player_id", "team_id", name="uq_match_stat"),
        Index("idx_match_stats_player_team", "player_id", "team_id"),
    )

    # Columns folded together when two stat lines for one match are reconciled
    COUNTING_COLUMNS = (
        "points",
        "rebounds",
        "assists",
        "blocks",
        "steals",
        "fouls",
        "turnovers",
        "minutes_played",
    )

    def __repr__(self) -> str:
        return f"<MatchStat(match={self.match_id}, player={self.player_id}, pts={self.points})>"
