"""
Roster import service - adds players to a team with deduplication.

Each incoming row is matched against the player store first and then
handled according to its classification:

- EXACT_MATCH: link the existing player to the team (if the jersey
  number is free; a taken jersey is a conflict and nothing is created)
- POTENTIAL_DUPLICATE: do not create anything, report the row for manual
  reconciliation - unless the row sets confirm_duplicate, in which case a
  new player is created
- NO_MATCH: create the player, subject to the email and jersey checks

Each row's create-or-link plus team assignment is one unit (a SAVEPOINT).
A bulk import keeps going past rows that fail a check; those rows land in
the result's errors list with their index. Store outages still abort the
call.

Usage:
    from rostermatch.services.roster_import import bulk_import_for_team

    with get_session() as session:
        service = PlayerDeduplicationService(session)
        result = bulk_import_for_team(service, team.id, candidates, jerseys)
        logger.info(result.summary())
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from rostermatch.db.models import Player
from rostermatch.exceptions import (
    ConflictError,
    DuplicatePlayerError,
    EmailConflictError,
    JerseyConflictError,
    NotFoundError,
)
from rostermatch.players.dedup import (
    CandidateInput,
    MatchResult,
    MatchType,
    PlayerDeduplicationService,
)
from rostermatch.players.store import PlayerStore

logger = logging.getLogger(__name__)

# Row statuses reported in RosterImportResult.records
STATUS_CREATED = "created"
STATUS_LINKED = "linked"
STATUS_DUPLICATE = "duplicate"
STATUS_ERROR = "error"


@dataclass
class ImportedRow:
    """Outcome of one imported row."""
    row_index: int
    match_type: MatchType
    similarity_score: float
    status: str
    player_id: Optional[int] = None
    jersey_number: Optional[int] = None


@dataclass
class RowError:
    """A row that failed a check and was skipped."""
    row_index: int
    message: str


@dataclass
class RosterImportResult:
    """Statistics and per-row outcomes from a roster import."""
    created: int = 0
    duplicates: int = 0
    linked: int = 0
    errors: list[RowError] = field(default_factory=list)
    # One entry per processed row, in input order
    records: list[ImportedRow] = field(default_factory=list)
    cancelled: bool = False

    def summary(self) -> str:
        """Return a human-readable summary of the import."""
        lines = [
            "Roster import complete:" if not self.cancelled else "Roster import cancelled:",
            f"  Rows processed:           {len(self.records)}",
            f"  Players created:          {self.created}",
            f"  Existing players linked:  {self.linked}",
            f"  Potential duplicates:     {self.duplicates}",
        ]
        if self.errors:
            lines.append(f"  Errors: {len(self.errors)}")
            for err in self.errors[:5]:
                lines.append(f"    - row {err.row_index}: {err.message}")
            if len(self.errors) > 5:
                lines.append(f"    ... and {len(self.errors) - 5} more")
        return "\n".join(lines)


def _ensure_jersey_free(store: PlayerStore, team_id: int, jersey_number: Optional[int]) -> None:
    if jersey_number is None:
        return
    if store.find_active_jersey(team_id, jersey_number) is not None:
        raise JerseyConflictError(team_id, jersey_number)


def _link_existing(
    store: PlayerStore,
    team_id: int,
    player: Player,
    jersey_number: Optional[int],
) -> None:
    """Put an existing player on the team; no-op if already active there."""
    if store.find_active_membership(player.id, team_id) is not None:
        logger.debug("Player %s already active on team %s", player.id, team_id)
        return
    _ensure_jersey_free(store, team_id, jersey_number)
    store.add_membership(player.id, team_id, jersey_number)


def _create_on_team(
    store: PlayerStore,
    team_id: int,
    candidate: CandidateInput,
    jersey_number: Optional[int],
) -> Player:
    _ensure_jersey_free(store, team_id, jersey_number)
    if candidate.email and store.find_by_email(candidate.email) is not None:
        raise EmailConflictError(candidate.email)
    player = store.insert(**candidate.player_values())
    store.add_membership(player.id, team_id, jersey_number)
    return player


def _apply_row(
    service: PlayerDeduplicationService,
    team_id: int,
    candidate: CandidateInput,
    jersey_number: Optional[int],
    row_index: int,
    match: MatchResult,
) -> ImportedRow:
    """
    Apply the classification policy to one row atomically.

    Raises:
        ConflictError: Jersey or email conflict (nothing from the row is kept)
    """
    row = ImportedRow(
        row_index=row_index,
        match_type=match.match_type,
        similarity_score=match.similarity_score,
        status=STATUS_ERROR,
        jersey_number=jersey_number,
    )

    if match.match_type == MatchType.POTENTIAL_DUPLICATE and not candidate.confirm_duplicate:
        row.status = STATUS_DUPLICATE
        row.player_id = match.player_id
        return row

    def _unit(store: PlayerStore) -> Player:
        if match.match_type == MatchType.EXACT_MATCH:
            _link_existing(store, team_id, match.player, jersey_number)
            return match.player
        return _create_on_team(store, team_id, candidate, jersey_number)

    player = service.store.run_transaction(_unit)
    row.player_id = player.id
    row.status = STATUS_LINKED if match.match_type == MatchType.EXACT_MATCH else STATUS_CREATED
    return row


def _require_team(service: PlayerDeduplicationService, team_id: int) -> None:
    if service.store.get_team(team_id) is None:
        raise NotFoundError("Team", team_id)


def create_for_team(
    service: PlayerDeduplicationService,
    team_id: int,
    candidate: CandidateInput,
    jersey_number: Optional[int] = None,
) -> Player:
    """
    Single-row roster import: same policy as the bulk import, but every
    rejection is raised instead of reported.

    Returns:
        The created or linked player

    Raises:
        NotFoundError: If the team doesn't exist
        JerseyConflictError: If the jersey number is already active on the team
        EmailConflictError: If a new player's email is already in use
        DuplicatePlayerError: If the candidate is an unconfirmed potential duplicate
    """
    _require_team(service, team_id)

    match = service.find_match(candidate)
    row = _apply_row(service, team_id, candidate, jersey_number, 0, match)
    if row.status == STATUS_DUPLICATE:
        raise DuplicatePlayerError(match)

    service.store.commit()
    logger.info(
        "Player %s %s on team %s (jersey %s)",
        row.player_id, row.status, team_id, jersey_number,
    )
    return service.store.get_player(row.player_id)


def bulk_import_for_team(
    service: PlayerDeduplicationService,
    team_id: int,
    candidates: Sequence[CandidateInput],
    jersey_numbers: Optional[Sequence[Optional[int]]] = None,
    cancel_event=None,
) -> RosterImportResult:
    """
    Import a list of candidates onto a team roster.

    Rows are processed sequentially in input order and result.records
    preserves that order. A row that fails the jersey or email check is
    added to result.errors and the import continues.

    Args:
        service: Deduplication service bound to the session to use
        team_id: Team to import onto
        candidates: Rows to import
        jersey_numbers: Jersey per row (None entries allowed), or None
        cancel_event: Optional object with is_set() (e.g. threading.Event),
                      checked between rows

    Returns:
        RosterImportResult with tallies, errors and per-row records

    Raises:
        NotFoundError: If the team doesn't exist
        ValueError: If jersey_numbers doesn't line up with candidates
        StoreUnavailableError: If the store fails
    """
    candidates = list(candidates)
    if jersey_numbers is None:
        jersey_numbers = [None] * len(candidates)
    elif len(jersey_numbers) != len(candidates):
        raise ValueError(
            f"Got {len(jersey_numbers)} jersey numbers for {len(candidates)} candidates"
        )

    logger.info("Bulk importing %d players for team %s", len(candidates), team_id)
    _require_team(service, team_id)

    result = RosterImportResult()

    for row_index, (candidate, jersey_number) in enumerate(zip(candidates, jersey_numbers)):
        if cancel_event is not None and cancel_event.is_set():
            result.cancelled = True
            logger.warning(
                "Roster import for team %s cancelled after %d of %d rows",
                team_id, row_index, len(candidates),
            )
            break

        match = service.find_match(candidate)
        try:
            row = _apply_row(service, team_id, candidate, jersey_number, row_index, match)
        except ConflictError as e:
            result.errors.append(RowError(row_index=row_index, message=str(e)))
            result.records.append(ImportedRow(
                row_index=row_index,
                match_type=match.match_type,
                similarity_score=match.similarity_score,
                status=STATUS_ERROR,
                player_id=match.player_id,
                jersey_number=jersey_number,
            ))
            logger.warning(
                "Row %d (%s %s) skipped: %s",
                row_index, candidate.first_name, candidate.last_name, e,
            )
            continue

        if row.status == STATUS_CREATED:
            result.created += 1
        elif row.status == STATUS_LINKED:
            result.linked += 1
        elif row.status == STATUS_DUPLICATE:
            result.duplicates += 1
        result.records.append(row)

    service.store.commit()
    logger.info(result.summary())
    return result
