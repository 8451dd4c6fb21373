"""
Error taxonomy for the deduplication engine.

The web layer that sits on top of this package maps these onto status
codes: ConflictError subclasses to 409, NotFoundError to 404 and
StoreUnavailableError to 503.
"""

from typing import Optional


class DeduplicationError(Exception):
    """Base class for all errors raised by rostermatch."""
    pass


class StoreUnavailableError(DeduplicationError):
    """Raised when the player store cannot be reached. Never retried here."""
    pass


class NotFoundError(DeduplicationError):
    """Raised when a player or team id does not resolve to a record."""

    def __init__(self, kind: str, record_id: int):
        super().__init__(f"{kind} {record_id} not found")
        self.kind = kind
        self.record_id = record_id


class ConflictError(DeduplicationError):
    """Base class for operations rejected because of existing data."""
    pass


class SelfMergeError(ConflictError):
    """Raised when a player is merged into itself."""

    def __init__(self, player_id: int):
        super().__init__(f"Cannot merge player {player_id} into itself")
        self.player_id = player_id


class JerseyConflictError(ConflictError):
    """Raised when a jersey number is already active on a team."""

    def __init__(self, team_id: int, jersey_number: int):
        super().__init__(
            f"Jersey number {jersey_number} is already taken in team {team_id}"
        )
        self.team_id = team_id
        self.jersey_number = jersey_number


class EmailConflictError(ConflictError):
    """Raised when another player already uses an email address."""

    def __init__(self, email: Optional[str]):
        super().__init__(f"Player with email {email!r} already exists")
        self.email = email


class DuplicatePlayerError(ConflictError):
    """
    Raised when a create is rejected because the candidate matches a
    stored player.

    The MatchResult is attached so callers can show the existing player.
    """

    def __init__(self, match):
        player_id = match.player.id if match.player is not None else None
        super().__init__(
            f"Player already exists (id={player_id}, "
            f"{match.similarity_score:.2f}% similarity, {match.match_type.value})"
        )
        self.match = match
