"""
Player deduplication module.

Decides whether an incoming player record is someone we already know.

Key components:
- PlayerDeduplicationService: Matching, gated creation and merges
- ScoringProfile: Weights, cutoffs and threshold used for fuzzy matching
- compare / normalize: The string similarity kernel

The matching strategy (in priority order):
1. Exact name + date of birth match
2. Weighted fuzzy match over a prefiltered candidate set (>= threshold)
3. No match
"""

from rostermatch.players.dedup import (
    CandidateInput,
    MatchResult,
    MatchType,
    PlayerDeduplicationService,
)
from rostermatch.players.scoring import (
    BALANCED_PROFILE,
    STRICT_PROFILE,
    ScoringProfile,
    get_profile,
    score_player,
)
from rostermatch.players.similarity import compare, normalize

__all__ = [
    "PlayerDeduplicationService",
    "CandidateInput",
    "MatchResult",
    "MatchType",
    "ScoringProfile",
    "BALANCED_PROFILE",
    "STRICT_PROFILE",
    "get_profile",
    "score_player",
    "compare",
    "normalize",
]
