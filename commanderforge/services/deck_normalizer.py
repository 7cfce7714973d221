"""
Deck Size Normalizer - forces a card list to an exact count.

Used for every exact-count constraint in the pipeline: the initial
non-land slot budget and the non-land count left after the land count
is decided.

INVARIANTS:
- Result never exceeds target_count
- Protected categories are never trimmed
- Excluded categories (quota max 0) are never filled
- Protected categories are never filled past their quota max
- normalize(normalize(x)) == normalize(x)
- A short result is a warning, never an error
"""

import math
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from commanderforge.filtering.scored_pool import rank_cards
from commanderforge.models.card import Category, ScoredCard
from commanderforge.models.weights import WEIGHTED_CATEGORIES, Quota

DEFAULT_PROTECTED: frozenset[Category] = frozenset({Category.PLANESWALKER})

_CATEGORY_ORDER: tuple[Category, ...] = (*WEIGHTED_CATEGORIES, Category.OTHER)


@dataclass
class NormalizeResult:
    """Normalized cards plus any degradation warnings."""

    cards: list[ScoredCard]
    warnings: list[str] = field(default_factory=list)

    @property
    def is_short(self) -> bool:
        return bool(self.warnings)


def _order_index(category: Category) -> int:
    try:
        return _CATEGORY_ORDER.index(category)
    except ValueError:
        return len(_CATEGORY_ORDER)


# =============================================================================
# TRIM
# =============================================================================


def _keep_counts(counts: Mapping[Category, int], keep_total: int) -> dict[Category, int]:
    """
    Split keep_total across categories in proportion to their current share.

    Floors first; leftover slots go one at a time to the categories
    holding the most cards.
    """
    current_total = sum(counts.values())
    if current_total == 0:
        return {}

    keep = {c: math.floor(n * keep_total / current_total) for c, n in counts.items()}
    leftover = keep_total - sum(keep.values())
    by_size = sorted(counts, key=lambda c: (-counts[c], _order_index(c)))

    while leftover > 0:
        progressed = False
        for category in by_size:
            if leftover == 0:
                break
            if keep[category] < counts[category]:
                keep[category] += 1
                leftover -= 1
                progressed = True
        if not progressed:
            break
    return keep


def _trim(
    cards: Sequence[ScoredCard],
    target_count: int,
    protected: frozenset[Category],
    target_curve: Mapping[int, int] | None,
) -> list[ScoredCard]:
    protected_count = sum(1 for sc in cards if sc.category in protected)
    if protected_count > target_count:
        # Protected cards alone overflow the deck; nothing can stay exempt
        protected = frozenset()
        protected_count = 0

    trimmable = Counter(sc.category for sc in cards if sc.category not in protected)
    keep = _keep_counts(trimmable, target_count - protected_count)

    kept_ids: set[int] = set()
    for category, quota in keep.items():
        in_category = [sc for sc in cards if sc.category == category]
        for sc in rank_cards(in_category, target_curve)[:quota]:
            kept_ids.add(id(sc))

    return [sc for sc in cards if sc.category in protected or id(sc) in kept_ids]


# =============================================================================
# FILL
# =============================================================================


def _fill(
    cards: Sequence[ScoredCard],
    quotas: Mapping[Category, Quota],
    target_count: int,
    candidates: Iterable[ScoredCard],
    protected: frozenset[Category],
    target_curve: Mapping[int, int] | None,
) -> list[ScoredCard]:
    result = list(cards)
    used = {sc.name for sc in result}
    counts = Counter(sc.category for sc in result)

    allowed = {c for c, q in quotas.items() if not q.excluded}
    available = [
        sc
        for sc in rank_cards(candidates, target_curve)
        if not sc.card.is_land and sc.category in allowed
    ]

    def take(scored: ScoredCard) -> None:
        result.append(scored)
        used.add(scored.name)
        counts[scored.category] += 1

    # First restore each category towards its quota target
    for category, quota in quotas.items():
        for scored in available:
            if len(result) >= target_count or counts[category] >= quota.target:
                break
            if scored.category == category and scored.name not in used:
                take(scored)

    # Then any allowed category, best score first
    for scored in available:
        if len(result) >= target_count:
            break
        if scored.name in used:
            continue
        if scored.category in protected and counts[scored.category] >= quotas[scored.category].max:
            continue
        take(scored)

    return result


def normalize_deck_size(
    slate: Sequence[ScoredCard],
    quotas: Mapping[Category, Quota],
    target_count: int,
    candidates: Iterable[ScoredCard] = (),
    protected: frozenset[Category] = DEFAULT_PROTECTED,
    target_curve: Mapping[int, int] | None = None,
) -> NormalizeResult:
    """
    Trim or fill non-land cards to exactly target_count.

    Args:
        slate: Current non-land selection
        quotas: Quotas the selection was built from
        target_count: Exact number of cards wanted
        candidates: Scored pool to fill from (cards already in slate are skipped)
        protected: Categories exempt from trimming and capped when filling
        target_curve: Archetype curve used when ranking

    Returns:
        NormalizeResult with the cards and a warning if the count could not be reached
    """
    if len(slate) > target_count:
        return NormalizeResult(cards=_trim(slate, target_count, protected, target_curve))

    if len(slate) == target_count:
        return NormalizeResult(cards=list(slate))

    filled = _fill(slate, quotas, target_count, candidates, protected, target_curve)
    warnings: list[str] = []
    if len(filled) < target_count:
        warnings.append(
            f"unable to reach target size: {len(filled)} of {target_count} "
            "non-land cards available"
        )
    return NormalizeResult(cards=filled, warnings=warnings)
