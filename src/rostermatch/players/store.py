"""
Player store: the data-access capability the deduplication engine uses.

Wraps a SQLAlchemy session and exposes exactly the operations the matcher,
the roster import and the merge workflow need. Connectivity failures are
translated into StoreUnavailableError here and nowhere else, so the rest
of the engine never deals with driver exceptions.

Transactions:
    run_transaction() runs a unit of work inside a SAVEPOINT. If the unit
    raises, everything it did is rolled back and the exception propagates.
    Committing the outer transaction stays with the caller.
"""

import logging
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Callable, Iterator, Optional, TypeVar

from sqlalchemy import func, or_, select
from sqlalchemy.exc import DisconnectionError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.orm import Session

from rostermatch.db.models import MatchPlayer, MatchStat, Player, PlayerTeam, Team
from rostermatch.exceptions import EmailConflictError, StoreUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Player columns callers may set through insert() / update()
PLAYER_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "height",
    "date_of_birth",
    "nationality",
    "position",
)

# Driver-level failures that mean "the store is not reachable"
_UNAVAILABLE_ERRORS = (OperationalError, InterfaceError, DisconnectionError)


class PlayerStore:
    """
    Store capability over a SQLAlchemy session.

    Usage:
        store = PlayerStore(db_session)
        players = store.find_prefiltered("Jo", "Sm", email=None)
    """

    def __init__(self, db: Session):
        self.db = db

    # =========================================================================
    # Transactions
    # =========================================================================

    @contextmanager
    def _guard(self, action: str) -> Iterator[None]:
        """Translate connectivity failures into StoreUnavailableError."""
        try:
            yield
        except _UNAVAILABLE_ERRORS as e:
            logger.error("Player store unavailable during %s: %s", action, e)
            raise StoreUnavailableError(f"Player store unavailable during {action}") from e

    def run_transaction(self, unit_of_work: Callable[["PlayerStore"], T]) -> T:
        """
        Run unit_of_work(store) atomically.

        The unit runs inside a SAVEPOINT; any exception it raises rolls back
        every change it made and is re-raised unchanged.
        """
        with self._guard("transaction"):
            with self.db.begin_nested():
                result = unit_of_work(self)
                self.db.flush()
        return result

    def commit(self) -> None:
        with self._guard("commit"):
            self.db.commit()

    # =========================================================================
    # Player Lookups
    # =========================================================================

    def get_player(self, player_id: int) -> Optional[Player]:
        with self._guard("player lookup"):
            return self.db.get(Player, player_id)

    def get_team(self, team_id: int) -> Optional[Team]:
        with self._guard("team lookup"):
            return self.db.get(Team, team_id)

    def find_exact(self, first_name: str, last_name: str, date_of_birth: date) -> list[Player]:
        """
        Players with the same first and last name (case-insensitive) and
        date of birth, ordered by id.
        """
        query = (
            select(Player)
            .where(
                func.lower(Player.first_name) == first_name.strip().lower(),
                func.lower(Player.last_name) == last_name.strip().lower(),
                Player.date_of_birth == date_of_birth,
            )
            .order_by(Player.id)
        )
        with self._guard("exact lookup"):
            return list(self.db.scalars(query))

    def find_prefiltered(
        self,
        first_name: str,
        last_name: str,
        email: Optional[str] = None,
    ) -> list[Player]:
        """
        Cheap candidate query that bounds the fuzzy scoring loop.

        Matches players whose last name starts with the candidate's first two
        last-name characters, or whose first name starts with the first two
        first-name characters, or (when given) whose email matches exactly.
        A typo in the first two characters of both names is not recovered.
        """
        last_prefix = last_name.strip().lower()[:2]
        first_prefix = first_name.strip().lower()[:2]

        conditions = [
            func.lower(Player.last_name).startswith(last_prefix, autoescape=True),
            func.lower(Player.first_name).startswith(first_prefix, autoescape=True),
        ]
        if email and email.strip():
            conditions.append(func.lower(Player.email) == email.strip().lower())

        query = select(Player).where(or_(*conditions)).order_by(Player.id)
        with self._guard("prefilter lookup"):
            return list(self.db.scalars(query))

    def find_by_email(self, email: str) -> Optional[Player]:
        query = select(Player).where(func.lower(Player.email) == email.strip().lower())
        with self._guard("email lookup"):
            return self.db.scalars(query).first()

    # =========================================================================
    # Player Writes
    # =========================================================================

    def insert(self, **values: Any) -> Player:
        """
        Insert a player row and return it with its id assigned.

        Raises:
            EmailConflictError: If the unique email constraint rejects the row
        """
        _check_player_fields(values)
        player = Player(**values)
        with self._guard("insert"):
            try:
                with self.db.begin_nested():
                    self.db.add(player)
                    self.db.flush()
            except IntegrityError as e:
                raise EmailConflictError(values.get("email")) from e
        return player

    def update(self, player_id: int, patch: dict[str, Any]) -> Optional[Player]:
        """
        Apply a partial update. Returns None if the player does not exist.

        Raises:
            EmailConflictError: If the unique email constraint rejects the change
        """
        _check_player_fields(patch)
        player = self.get_player(player_id)
        if player is None:
            return None
        with self._guard("update"):
            try:
                with self.db.begin_nested():
                    for key, value in patch.items():
                        setattr(player, key, value)
                    self.db.flush()
            except IntegrityError as e:
                raise EmailConflictError(patch.get("email")) from e
        return player

    def delete_record(self, player: Player) -> None:
        with self._guard("delete"):
            self.db.delete(player)
            self.db.flush()

    # =========================================================================
    # Team Memberships
    # =========================================================================

    def list_memberships_for(self, player_id: int) -> list[PlayerTeam]:
        query = select(PlayerTeam).where(PlayerTeam.player_id == player_id).order_by(PlayerTeam.id)
        with self._guard("membership lookup"):
            return list(self.db.scalars(query))

    def find_active_membership(self, player_id: int, team_id: int) -> Optional[PlayerTeam]:
        query = select(PlayerTeam).where(
            PlayerTeam.player_id == player_id,
            PlayerTeam.team_id == team_id,
            PlayerTeam.is_active.is_(True),
        )
        with self._guard("membership lookup"):
            return self.db.scalars(query).first()

    def find_active_jersey(self, team_id: int, jersey_number: int) -> Optional[PlayerTeam]:
        """Active membership holding this jersey number on the team, if any."""
        query = select(PlayerTeam).where(
            PlayerTeam.team_id == team_id,
            PlayerTeam.jersey_number == jersey_number,
            PlayerTeam.is_active.is_(True),
        )
        with self._guard("jersey lookup"):
            return self.db.scalars(query).first()

    def add_membership(
        self,
        player_id: int,
        team_id: int,
        jersey_number: Optional[int],
    ) -> PlayerTeam:
        membership = PlayerTeam(
            player_id=player_id,
            team_id=team_id,
            jersey_number=jersey_number,
            is_active=True,
        )
        with self._guard("membership insert"):
            self.db.add(membership)
            self.db.flush()
        return membership

    def reassign_membership(self, membership: PlayerTeam, player_id: int) -> None:
        with self._guard("membership update"):
            membership.player_id = player_id
            self.db.flush()

    def deactivate_membership(self, membership: PlayerTeam) -> None:
        with self._guard("membership update"):
            membership.is_active = False
            membership.left_at = datetime.utcnow()
            self.db.flush()

    def delete_membership(self, membership: PlayerTeam) -> None:
        with self._guard("membership delete"):
            self.db.delete(membership)
            self.db.flush()

    # =========================================================================
    # Match History
    # =========================================================================

    def list_stats_for(self, player_id: int) -> list[MatchStat]:
        query = select(MatchStat).where(MatchStat.player_id == player_id).order_by(MatchStat.id)
        with self._guard("stat lookup"):
            return list(self.db.scalars(query))

    def reassign_stat(self, stat: MatchStat, player_id: int) -> None:
        with self._guard("stat update"):
            stat.player_id = player_id
            self.db.flush()

    def reconcile_stat(self, keep: MatchStat, duplicate: MatchStat) -> None:
        """
        Fold a duplicate stat line for the same match into keep.

        Both lines describe the same performance, so each counting column
        keeps the larger value. The duplicate line is deleted.
        """
        with self._guard("stat reconcile"):
            for column in MatchStat.COUNTING_COLUMNS:
                keep_value = getattr(keep, column)
                dup_value = getattr(duplicate, column)
                if dup_value is not None and (keep_value is None or dup_value > keep_value):
                    setattr(keep, column, dup_value)
            self.db.delete(duplicate)
            self.db.flush()

    def list_roster_entries_for(self, player_id: int) -> list[MatchPlayer]:
        query = select(MatchPlayer).where(MatchPlayer.player_id == player_id).order_by(MatchPlayer.id)
        with self._guard("roster lookup"):
            return list(self.db.scalars(query))

    def reassign_roster_entry(self, entry: MatchPlayer, player_id: int) -> None:
        with self._guard("roster update"):
            entry.player_id = player_id
            self.db.flush()

    def delete_roster_entry(self, entry: MatchPlayer) -> None:
        with self._guard("roster delete"):
            self.db.delete(entry)
            self.db.flush()


def _check_player_fields(values: dict[str, Any]) -> None:
    unknown = set(values) - set(PLAYER_FIELDS)
    if unknown:
        raise ValueError(f"Unknown player fields: {sorted(unknown)}")
