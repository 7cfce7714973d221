"""
Candidate filtering and selection.

Legality & color filtering (stage 1) and scored, quota-bounded
selection (stage 3) of the deck assembly pipeline.
"""

from commanderforge.filtering.candidate_pool import (
    CandidatePoolMetrics,
    filter_legal_candidates,
)
from commanderforge.filtering.scored_pool import (
    rank_cards,
    score_pool,
    select_candidates,
    theme_bonus,
)

__all__ = [
    "CandidatePoolMetrics",
    "filter_legal_candidates",
    "rank_cards",
    "score_pool",
    "select_candidates",
    "theme_bonus",
]
