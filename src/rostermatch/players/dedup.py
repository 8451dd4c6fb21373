"""
Player deduplication service.

This is the core service for deciding whether an incoming player record
describes someone we already know. It handles:
- Classifying a candidate as an exact match, a potential duplicate or new
- Gating player creation on that classification
- Merging a duplicate player into a target player

The matching strategy:
1. Exact match - same first name, last name (case-insensitive) and date of
   birth. Only attempted when the candidate has a date of birth.
2. Fuzzy match - prefilter candidates by name prefix / email, score each
   with the weighted scorer and keep the best. At or above the profile's
   fuzzy threshold it is a potential duplicate.
3. Otherwise no match.

Ties on the best score go to the lowest player id, so repeated calls
against an unchanged store always return the same result.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable, Optional, Sequence, Union

from sqlalchemy.orm import Session

from rostermatch.db.models import Player
from rostermatch.exceptions import (
    DuplicatePlayerError,
    EmailConflictError,
    NotFoundError,
    SelfMergeError,
)
from rostermatch.players.fields import DATE_OF_BIRTH, FIRST_NAME, LAST_NAME
from rostermatch.players.scoring import ScoringProfile, profile_from_settings, score_player
from rostermatch.players.store import PlayerStore

if TYPE_CHECKING:
    from rostermatch.services.roster_import import RosterImportResult

logger = logging.getLogger(__name__)


class MatchType(str, Enum):
    """Classification of a candidate against the player store."""
    EXACT_MATCH = "EXACT_MATCH"
    POTENTIAL_DUPLICATE = "POTENTIAL_DUPLICATE"
    NO_MATCH = "NO_MATCH"


@dataclass
class CandidateInput:
    """
    An unsaved player record submitted for matching.

    Optional attributes use None for "not supplied". date_of_birth accepts
    a date, a datetime (the time part is dropped) or an ISO "YYYY-MM-DD"
    string.

    confirm_duplicate lets the caller override a POTENTIAL_DUPLICATE
    classification and create the player anyway.
    """
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    height: Optional[str] = None
    date_of_birth: Optional[Union[date, datetime, str]] = None
    nationality: Optional[str] = None
    position: Optional[str] = None
    confirm_duplicate: bool = False

    def __post_init__(self):
        if isinstance(self.date_of_birth, datetime):
            self.date_of_birth = self.date_of_birth.date()
        elif isinstance(self.date_of_birth, str):
            self.date_of_birth = date.fromisoformat(self.date_of_birth.strip())

    def player_values(self) -> dict[str, Any]:
        """Column values for inserting this candidate as a Player."""
        return {
            "first_name": self.first_name.strip(),
            "last_name": self.last_name.strip(),
            "email": self.email.strip() if self.email and self.email.strip() else None,
            "phone": self.phone,
            "height": self.height,
            "date_of_birth": self.date_of_birth,
            "nationality": self.nationality,
            "position": self.position,
        }


@dataclass(frozen=True)
class MatchResult:
    """
    Outcome of matching one candidate.

    Attributes:
        match_type: EXACT_MATCH, POTENTIAL_DUPLICATE or NO_MATCH
        player: The matched stored player (None for NO_MATCH)
        similarity_score: 0-100 (100 for exact, 0 for no match)
        matched_fields: Fields that reached their cutoff, for audit
    """
    match_type: MatchType
    player: Optional[Player]
    similarity_score: float
    matched_fields: tuple[str, ...] = ()

    @property
    def is_duplicate(self) -> bool:
        return self.match_type != MatchType.NO_MATCH

    @property
    def player_id(self) -> Optional[int]:
        return self.player.id if self.player is not None else None

    def __repr__(self) -> str:
        return (
            f"<MatchResult(type={self.match_type.value}, player={self.player_id}, "
            f"score={self.similarity_score:.2f})>"
        )


NO_MATCH_RESULT = MatchResult(
    match_type=MatchType.NO_MATCH,
    player=None,
    similarity_score=0.0,
)


class PlayerDeduplicationService:
    """
    Service for matching, creating and merging players.

    Every path that inserts a player should go through this service (or the
    roster import built on it) so new rows are always checked first.

    Usage:
        service = PlayerDeduplicationService(db_session)

        result = service.find_match(CandidateInput("Jordan", "Smith"))
        if result.match_type == MatchType.NO_MATCH:
            player = service.create_player(candidate)
    """

    def __init__(self, db: Session, profile: Optional[ScoringProfile] = None):
        """
        Initialize the deduplication service.

        Args:
            db: SQLAlchemy session for database operations
            profile: Scoring profile; defaults to the one selected in settings
        """
        self.db = db
        self.store = PlayerStore(db)
        self.profile = profile or profile_from_settings()

    # =========================================================================
    # Matching
    # =========================================================================

    def find_match(self, candidate: CandidateInput) -> MatchResult:
        """
        Classify a candidate against the player store.

        "No match" is a normal result, never an exception.

        Raises:
            StoreUnavailableError: If the store cannot be queried
        """
        # Step 1: exact match on name + date of birth
        if candidate.date_of_birth is not None:
            exact = self.store.find_exact(
                candidate.first_name, candidate.last_name, candidate.date_of_birth
            )
            if exact:
                player = exact[0]
                logger.info("Exact match found: player %s", player.id)
                return MatchResult(
                    match_type=MatchType.EXACT_MATCH,
                    player=player,
                    similarity_score=100.0,
                    matched_fields=(FIRST_NAME, LAST_NAME, DATE_OF_BIRTH),
                )

        # Step 2: fuzzy match over the prefiltered candidate set
        candidates = self.store.find_prefiltered(
            candidate.first_name, candidate.last_name, candidate.email
        )
        logger.debug(
            "Scoring %d prefiltered players for %s %s",
            len(candidates), candidate.first_name, candidate.last_name,
        )

        best_player: Optional[Player] = None
        best_score = None
        # Candidates arrive ordered by id; only a strictly better score
        # replaces the current best, so ties keep the lowest id
        for player in candidates:
            similarity = score_player(candidate, player, self.profile)
            if best_score is None or similarity.score > best_score.score:
                best_player = player
                best_score = similarity

        if best_score is not None and best_score.score >= self.profile.fuzzy_threshold:
            logger.warning(
                "Potential duplicate found: player %s (%.2f%% match)",
                best_player.id, best_score.score,
            )
            return MatchResult(
                match_type=MatchType.POTENTIAL_DUPLICATE,
                player=best_player,
                similarity_score=best_score.score,
                matched_fields=best_score.matched_fields,
            )

        # Step 3: no match
        return NO_MATCH_RESULT

    def find_matches_batch(self, candidates: Iterable[CandidateInput]) -> list[MatchResult]:
        """Match candidates in order; the result list is index-aligned with the input."""
        return [self.find_match(candidate) for candidate in candidates]

    # =========================================================================
    # Gated Writes
    # =========================================================================

    def create_player(self, candidate: CandidateInput) -> Player:
        """
        Create a standalone player if it is not already known.

        Raises:
            DuplicatePlayerError: On an exact match, or a potential duplicate
                the caller has not confirmed
            EmailConflictError: If another player already has the email
        """
        match = self.find_match(candidate)
        if match.match_type == MatchType.EXACT_MATCH or (
            match.match_type == MatchType.POTENTIAL_DUPLICATE
            and not candidate.confirm_duplicate
        ):
            logger.warning(
                "Duplicate player detected: %.2f%% match with player %s",
                match.similarity_score, match.player_id,
            )
            raise DuplicatePlayerError(match)

        def _create(store: PlayerStore) -> Player:
            if candidate.email and store.find_by_email(candidate.email):
                raise EmailConflictError(candidate.email)
            return store.insert(**candidate.player_values())

        player = self.store.run_transaction(_create)
        self.store.commit()
        logger.info("Created player %s (%s %s)", player.id, player.first_name, player.last_name)
        return player

    def update_player(self, player_id: int, patch: dict[str, Any]) -> Player:
        """
        Apply a partial update to a player.

        Raises:
            NotFoundError: If the player does not exist
            EmailConflictError: If the new email belongs to another player
            ValueError: If patch names a field players don't have
        """
        patch = dict(patch)
        if "email" in patch:
            # Blank clears the email, same as on create
            email = patch["email"]
            patch["email"] = email.strip() if email and email.strip() else None

        def _update(store: PlayerStore) -> Player:
            player = store.get_player(player_id)
            if player is None:
                raise NotFoundError("Player", player_id)

            new_email = patch.get("email")
            if new_email and new_email != player.email:
                owner = store.find_by_email(new_email)
                if owner is not None and owner.id != player_id:
                    raise EmailConflictError(new_email)

            return store.update(player_id, patch)

        player = self.store.run_transaction(_update)
        self.store.commit()
        return player

    def create_for_team(
        self,
        team_id: int,
        candidate: CandidateInput,
        jersey_number: Optional[int] = None,
    ) -> Player:
        """Create or link a player onto a team roster. See services.roster_import."""
        from rostermatch.services.roster_import import create_for_team

        return create_for_team(self, team_id, candidate, jersey_number)

    def bulk_import_for_team(
        self,
        team_id: int,
        candidates: Sequence[CandidateInput],
        jersey_numbers: Optional[Sequence[Optional[int]]] = None,
        cancel_event: Optional[Any] = None,
    ) -> "RosterImportResult":
        """Import a batch of players onto a team roster. See services.roster_import."""
        from rostermatch.services.roster_import import bulk_import_for_team

        return bulk_import_for_team(
            self, team_id, candidates, jersey_numbers=jersey_numbers, cancel_event=cancel_event
        )

    # =========================================================================
    # Merge
    # =========================================================================

    def merge_players(self, duplicate_id: int, target_id: int) -> Player:
        """
        Merge a duplicate player into a target player.

        Everything that references the duplicate moves to the target before
        the duplicate row is deleted:
        1. Active team memberships move, unless the target is already
           active on that team (then the duplicate's is deactivated)
        2. Stat lines move; a clash on the same match is reconciled
        3. Match roster entries move, unless the target is already on that
           match's roster (then the duplicate's entry is deleted)
        4. Remaining (inactive) memberships of the duplicate are deleted
        5. The duplicate player is deleted

        All five steps run in one transaction: on any failure nothing changes.

        Args:
            duplicate_id: Player to merge away (will be deleted)
            target_id: Player to keep

        Returns:
            The target player

        Raises:
            SelfMergeError: If both ids are the same
            NotFoundError: If either player doesn't exist
            StoreUnavailableError: If the store fails mid-merge (rolled back)
        """
        if duplicate_id == target_id:
            raise SelfMergeError(duplicate_id)

        def _merge(store: PlayerStore) -> Player:
            duplicate = store.get_player(duplicate_id)
            target = store.get_player(target_id)
            if duplicate is None:
                raise NotFoundError("Player", duplicate_id)
            if target is None:
                raise NotFoundError("Player", target_id)

            # Step 1: active team memberships
            target_teams = {
                m.team_id for m in store.list_memberships_for(target_id) if m.is_active
            }
            for membership in store.list_memberships_for(duplicate_id):
                if not membership.is_active:
                    continue
                if membership.team_id in target_teams:
                    store.deactivate_membership(membership)
                else:
                    store.reassign_membership(membership, target_id)
                    target_teams.add(membership.team_id)

            # Step 2: stat lines
            target_stats = {s.match_id: s for s in store.list_stats_for(target_id)}
            for stat in store.list_stats_for(duplicate_id):
                existing = target_stats.get(stat.match_id)
                if existing is None:
                    store.reassign_stat(stat, target_id)
                    target_stats[stat.match_id] = stat
                else:
                    store.reconcile_stat(existing, stat)

            # Step 3: match roster entries
            target_matches = {e.match_id for e in store.list_roster_entries_for(target_id)}
            for entry in store.list_roster_entries_for(duplicate_id):
                if entry.match_id in target_matches:
                    store.delete_roster_entry(entry)
                else:
                    store.reassign_roster_entry(entry, target_id)
                    target_matches.add(entry.match_id)

            # Step 4: leftover (inactive) memberships
            for membership in store.list_memberships_for(duplicate_id):
                store.delete_membership(membership)

            # Step 5: the duplicate itself
            store.delete_record(duplicate)
            return target

        target = self.store.run_transaction(_merge)
        self.store.commit()

        logger.info("Merged player %s into player %s", duplicate_id, target_id)
        return target
