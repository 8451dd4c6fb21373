"""
Scoring profiles and the weighted scorer.

A ScoringProfile bundles everything that calibrates the matcher: field
weights, the fuzzy threshold and the per-field cutoffs. Profiles are
injected into the matcher instead of living in module globals, so tests
and callers can swap them freely.

Two profiles ship:
- balanced (default): threshold 75, names/DOB/nationality heavy,
  three-state classification (EXACT / POTENTIAL / NONE)
- strict: threshold 98, email heavy, for callers that only want a
  duplicate / not-duplicate answer (MatchResult.is_duplicate)
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from rostermatch.config import Settings, settings as default_settings
from rostermatch.players.fields import (
    DATE_OF_BIRTH,
    EMAIL,
    EXACT_CUTOFF,
    FIELD_COMPARATORS,
    FIRST_NAME,
    HEIGHT,
    LAST_NAME,
    NATIONALITY,
    PHONE,
    TEXT_CUTOFF,
)

DEFAULT_FIELD_CUTOFFS: dict[str, float] = {
    FIRST_NAME: TEXT_CUTOFF,
    LAST_NAME: TEXT_CUTOFF,
    EMAIL: TEXT_CUTOFF,
    HEIGHT: TEXT_CUTOFF,
    NATIONALITY: TEXT_CUTOFF,
    PHONE: EXACT_CUTOFF,
    DATE_OF_BIRTH: EXACT_CUTOFF,
}


@dataclass(frozen=True)
class ScoringProfile:
    """
    Calibration for the weighted scorer and the matcher.

    Attributes:
        name: Profile name (for logs)
        weights: Weight per field; fields with weight 0 or missing are skipped
        fuzzy_threshold: Minimum weighted score (0-100) for a potential duplicate
        field_cutoffs: Score a field needs to be reported in matched_fields
    """
    name: str
    weights: dict[str, float]
    fuzzy_threshold: float
    field_cutoffs: dict[str, float] = field(
        default_factory=lambda: dict(DEFAULT_FIELD_CUTOFFS)
    )

    def __post_init__(self):
        unknown = set(self.weights) - set(FIELD_COMPARATORS)
        if unknown:
            raise ValueError(f"Unknown fields in weights: {sorted(unknown)}")
        if not 0.0 <= self.fuzzy_threshold <= 100.0:
            raise ValueError("fuzzy_threshold must be between 0 and 100")

    def with_threshold(self, fuzzy_threshold: float) -> "ScoringProfile":
        """Return a copy of this profile with a different fuzzy threshold."""
        return ScoringProfile(
            name=self.name,
            weights=dict(self.weights),
            fuzzy_threshold=fuzzy_threshold,
            field_cutoffs=dict(self.field_cutoffs),
        )

    def cutoff_for(self, field_name: str) -> float:
        return self.field_cutoffs.get(field_name, TEXT_CUTOFF)


BALANCED_PROFILE = ScoringProfile(
    name="balanced",
    weights={
        FIRST_NAME: 20,
        LAST_NAME: 20,
        DATE_OF_BIRTH: 20,
        NATIONALITY: 15,
        HEIGHT: 10,
        EMAIL: 10,
        PHONE: 5,
    },
    fuzzy_threshold=75.0,
)

STRICT_PROFILE = ScoringProfile(
    name="strict",
    weights={
        FIRST_NAME: 25,
        LAST_NAME: 25,
        EMAIL: 30,
        HEIGHT: 10,
        PHONE: 5,
        DATE_OF_BIRTH: 5,
    },
    fuzzy_threshold=98.0,
)

PROFILES: dict[str, ScoringProfile] = {
    BALANCED_PROFILE.name: BALANCED_PROFILE,
    STRICT_PROFILE.name: STRICT_PROFILE,
}


def get_profile(name: str, fuzzy_threshold: Optional[float] = None) -> ScoringProfile:
    """
    Look up a shipped profile by name, optionally overriding its threshold.

    Raises:
        KeyError: If no profile has that name
    """
    profile = PROFILES[name.lower()]
    if fuzzy_threshold is not None:
        profile = profile.with_threshold(fuzzy_threshold)
    return profile


def profile_from_settings(config: Optional[Settings] = None) -> ScoringProfile:
    """Build the profile selected by DEDUP_PROFILE / DEDUP_FUZZY_THRESHOLD."""
    config = config or default_settings
    return get_profile(config.dedup_profile, config.dedup_fuzzy_threshold)


@dataclass(frozen=True)
class SimilarityScore:
    """Weighted similarity of a candidate to one stored player."""
    score: float
    matched_fields: tuple[str, ...]


def score_player(
    candidate: Any,
    record: Any,
    profile: ScoringProfile = BALANCED_PROFILE,
) -> SimilarityScore:
    """
    Combine per-field scores into one weighted similarity percentage.

    For every field that is not neutral, score * weight is added to the
    total and weight to the total weight; the result is their ratio.
    Fields neither side populated therefore never move the score.

    Args:
        candidate: Anything with the player attributes (usually CandidateInput)
        record: Stored player (usually a Player row)
        profile: Weights, cutoffs and threshold to use

    Returns:
        SimilarityScore with the weighted score (0 if nothing was comparable)
        and the counted fields in profile order
    """
    total_score = 0.0
    total_weight = 0.0
    matched_fields: list[str] = []

    for field_name, weight in profile.weights.items():
        if weight <= 0:
            continue

        comparator = FIELD_COMPARATORS[field_name]
        result = comparator(
            getattr(candidate, field_name, None),
            getattr(record, field_name, None),
            profile.cutoff_for(field_name),
        )
        if result.neutral:
            continue

        total_score += result.score * weight
        total_weight += weight
        if result.counted:
            matched_fields.append(result.label)

    final_score = total_score / total_weight if total_weight > 0 else 0.0
    return SimilarityScore(score=final_score, matched_fields=tuple(matched_fields))
