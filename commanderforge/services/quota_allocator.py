"""
Quota Allocator - turns slider weights into per-category card counts.

INVARIANTS:
- Sum of all targets == slot_budget (whenever any proportional weight exists)
- Weight 0 → min = max = target = 0 (hard exclusion)
- min <= target <= max for every category
- Deterministic: ties always break by WEIGHTED_CATEGORIES order
"""

import math
from collections.abc import Mapping

from commanderforge.models.card import Category
from commanderforge.models.failure import InvalidWeightsError
from commanderforge.models.weights import WEIGHTED_CATEGORIES, CategoryWeights, Quota

# Flexibility around each proportional target
QUOTA_SLACK_BELOW = 2
QUOTA_SLACK_ABOVE = 3


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _pick_largest(targets: dict[Category, int], eligible: list[Category]) -> Category:
    """Category with the largest target; first in fixed order on ties."""
    best = eligible[0]
    for category in eligible[1:]:
        if targets[category] > targets[best]:
            best = category
    return best


def _pick_smallest(targets: dict[Category, int], eligible: list[Category]) -> Category:
    """Category with the smallest target; first in fixed order on ties."""
    best = eligible[0]
    for category in eligible[1:]:
        if targets[category] < targets[best]:
            best = category
    return best


def _reconcile(targets: dict[Category, int], weighted: list[Category], budget: int) -> None:
    """
    Nudge rounded targets until they sum to the budget exactly.

    Under: +1 to the largest. Over: -1 from the smallest that is still
    above 1. Only when every weighted category sits at 1 and the budget is
    still exceeded may a category drop to 0.
    """
    while sum(targets.values()) < budget:
        targets[_pick_largest(targets, weighted)] += 1

    while sum(targets.values()) > budget:
        reducible = [c for c in weighted if targets[c] > 1]
        if not reducible:
            reducible = [c for c in weighted if targets[c] > 0]
        targets[_pick_smallest(targets, reducible)] -= 1


def allocate_quotas(
    weights: CategoryWeights | Mapping[Category, int],
    slot_budget: int,
    absolute_category: Category | None = None,
    availability: Mapping[Category, int] | None = None,
) -> dict[Category, Quota]:
    """
    Allocate non-land slots across categories.

    Proportional categories get round(weight / total * budget). The
    optional absolute category takes its raw weight as an exact count,
    clamped to what is available and to the budget, and is left out of
    the proportional denominator.

    Args:
        weights: Slider weights 0-10 per category
        slot_budget: Non-land slots to fill
        absolute_category: Category whose weight is a literal card count
        availability: Cards available per category, used to clamp the absolute count

    Returns:
        Quota for every weighted category

    Raises:
        InvalidWeightsError: If slots remain but no proportional category has weight
    """
    raw = weights.as_mapping() if isinstance(weights, CategoryWeights) else dict(weights)
    quotas: dict[Category, Quota] = {}
    remaining = slot_budget

    if absolute_category is not None:
        count = raw.get(absolute_category, 0)
        if availability is not None:
            count = min(count, availability.get(absolute_category, 0))
        count = max(0, min(count, slot_budget))
        quotas[absolute_category] = Quota(min=count, max=count, target=count)
        remaining -= count

    proportional = [c for c in WEIGHTED_CATEGORIES if c != absolute_category]
    weighted = [c for c in proportional if raw.get(c, 0) > 0]
    total_weight = sum(raw[c] for c in weighted)

    if total_weight == 0 and remaining > 0:
        raise InvalidWeightsError(
            f"{remaining} non-land slots to fill but every proportional weight is 0"
        )

    targets: dict[Category, int] = {
        c: _round_half_up(raw[c] / total_weight * remaining) for c in weighted
    }
    if weighted:
        _reconcile(targets, weighted, remaining)

    for category in proportional:
        if category not in targets:
            quotas[category] = Quota(min=0, max=0, target=0)
            continue
        target = targets[category]
        quotas[category] = Quota(
            min=max(0, target - QUOTA_SLACK_BELOW),
            max=target + QUOTA_SLACK_ABOVE,
            target=target,
        )

    return {c: quotas[c] for c in WEIGHTED_CATEGORIES}
