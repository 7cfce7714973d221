"""
Legality & Color Filter - first stage of deck assembly.

Reduces the raw card pool to the cards a commander may legally run.

INVARIANTS:
- Filtering is monotonic (only removes cards, never adds)
- Same pool + commander → same result, in the same order
- Every returned card's color identity is a subset of the commander's
- Basic lands are never returned (the manabase adds them)
"""

import logging
from dataclasses import dataclass

from commanderforge.models.card import Card, Commander
from commanderforge.models.failure import InsufficientPoolError

logger = logging.getLogger(__name__)

COMMANDER_FORMAT = "commander"


@dataclass
class CandidatePoolMetrics:
    """Counts recorded per filter run."""

    total_cards: int = 0
    after_legality_filter: int = 0
    after_color_filter: int = 0
    final_pool_size: int = 0
    non_land_count: int = 0


def _filter_by_legality(cards: list[Card], commander: Commander) -> list[Card]:
    """Drop the commander itself, basic lands, and anything not legal in Commander."""
    return [
        card
        for card in cards
        if card.id != commander.card.id
        and card.name != commander.name
        and not card.is_basic_land
        and card.is_legal_in(COMMANDER_FORMAT)
    ]


def _filter_by_color(cards: list[Card], commander: Commander) -> list[Card]:
    """
    Filter by color identity.

    Colorless cards (empty identity) are a subset of every identity
    and always pass.
    """
    return [card for card in cards if commander.allows(card)]


def filter_legal_candidates(
    pool: list[Card],
    commander: Commander,
    min_pool_size: int = 60,
) -> list[Card]:
    """
    Build the legal candidate list for a commander.

    Non-basic lands are kept; they feed the manabase. Only non-land
    cards count towards the minimum pool size.

    Args:
        pool: Raw candidate cards
        commander: The deck's commander
        min_pool_size: Minimum number of legal non-land cards required

    Returns:
        Legal candidates in input order

    Raises:
        InsufficientPoolError: If fewer than min_pool_size non-land cards remain
    """
    metrics = CandidatePoolMetrics(total_cards=len(pool))

    candidates = _filter_by_legality(pool, commander)
    metrics.after_legality_filter = len(candidates)

    candidates = _filter_by_color(candidates, commander)
    metrics.after_color_filter = len(candidates)
    metrics.final_pool_size = len(candidates)
    metrics.non_land_count = sum(1 for card in candidates if not card.is_land)

    logger.info(
        "candidate_pool_built",
        extra={
            "commander": commander.name,
            "total": metrics.total_cards,
            "after_legality": metrics.after_legality_filter,
            "after_color": metrics.after_color_filter,
            "final": metrics.final_pool_size,
            "non_land": metrics.non_land_count,
        },
    )

    if metrics.non_land_count < min_pool_size:
        raise InsufficientPoolError(
            commander_name=commander.name,
            available=metrics.non_land_count,
            minimum=min_pool_size,
        )

    return candidates
