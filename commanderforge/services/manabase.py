"""
Manabase Generator - land count and land selection.

INVARIANTS:
- build_manabase returns exactly constraints.land_count lands
- Every land's color identity is a subset of the commander's
- Only commander colors appear among basics (Wastes when colorless)
- Non-basic lands appear at most once
"""

import math
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from commanderforge.config import BASIC_LAND_SHARE, MAX_LAND_COUNT, MIN_LAND_COUNT
from commanderforge.filtering.scored_pool import rank_cards
from commanderforge.models.card import (
    COLOR_ORDER,
    Card,
    Color,
    Commander,
    ScoredCard,
    make_basic_land,
)

# Karsten's regression for Commander land counts
LAND_FORMULA_BASE = 31.42
LAND_FORMULA_CMC_FACTOR = 3.13
LAND_FORMULA_SUPPORT_FACTOR = 0.28

# Scorer tags counted as land-count support
PRODUCER_TAG = "ramp"
CANTRIP_TAG = "cantrip"
SEARCHER_TAG = "tutor"

_SYMBOL_PATTERN = re.compile(r"\{([^}]+)\}")
_COLOR_LETTERS = frozenset(color.value for color in Color)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class ManabaseConstraints:
    """Inputs that shape the manabase."""

    land_count: int
    nonbasic_pool: Sequence[ScoredCard] = field(default_factory=tuple)
    basic_share: float = BASIC_LAND_SHARE
    basic_land_price: float = 0.25


# =============================================================================
# LAND COUNT
# =============================================================================


def recommended_land_count(non_land_cards: Sequence[ScoredCard]) -> int:
    """
    Recommend a land count for the non-land cards.

    31.42 + 3.13 * average CMC - 0.28 * (mana producers + cantrips + searchers),
    clamped to 30-42 and rounded.
    """
    if non_land_cards:
        avg_cmc = sum(sc.card.cmc for sc in non_land_cards) / len(non_land_cards)
    else:
        avg_cmc = 0.0

    producers = sum(1 for sc in non_land_cards if PRODUCER_TAG in sc.tags)
    cantrips = sum(1 for sc in non_land_cards if CANTRIP_TAG in sc.tags)
    searchers = sum(1 for sc in non_land_cards if SEARCHER_TAG in sc.tags)

    raw = (
        LAND_FORMULA_BASE
        + LAND_FORMULA_CMC_FACTOR * avg_cmc
        - LAND_FORMULA_SUPPORT_FACTOR * (producers + cantrips + searchers)
    )
    return _round_half_up(max(MIN_LAND_COUNT, min(MAX_LAND_COUNT, raw)))


# =============================================================================
# COLOR PIPS
# =============================================================================


def _symbol_pips(symbol: str) -> dict[Color, float]:
    """
    Pips contributed by one mana symbol.

    {G} counts 1. Any symbol with a slash ({G/W}, {G/P}, {2/G}) counts
    0.5 for each color in it.
    """
    parts = symbol.upper().split("/")
    colors = [Color(p) for p in parts if p in _COLOR_LETTERS]
    if len(parts) == 1:
        return {colors[0]: 1.0} if colors else {}
    return {color: 0.5 for color in colors}


def count_color_pips(
    non_land_cards: Iterable[ScoredCard | Card],
    colors: Iterable[Color],
) -> dict[Color, int]:
    """
    Count colored mana symbols across the non-land cards.

    Half pips are summed first and rounded once per color at the end.

    Args:
        non_land_cards: Cards whose mana costs are counted
        colors: Colors to count (others are ignored)

    Returns:
        Color -> pip count
    """
    wanted = set(colors)
    totals: dict[Color, float] = {color: 0.0 for color in COLOR_ORDER if color in wanted}

    for item in non_land_cards:
        card = item.card if isinstance(item, ScoredCard) else item
        if card.is_land:
            continue
        for symbol in _SYMBOL_PATTERN.findall(card.mana_cost):
            for color, amount in _symbol_pips(symbol).items():
                if color in totals:
                    totals[color] += amount

    return {color: _round_half_up(amount) for color, amount in totals.items()}


# =============================================================================
# LAND SELECTION
# =============================================================================


def split_basics(total: int, colors: Sequence[Color], pips: dict[Color, int]) -> dict[Color, int]:
    """
    Split a number of basics across colors by pip share.

    Largest-remainder rounding keeps the sum exact; ties go to WUBRG order.
    Without any pips the split is even.
    """
    if not colors or total <= 0:
        return {}

    weights = {color: pips.get(color, 0) for color in colors}
    weight_total = sum(weights.values())
    if weight_total == 0:
        weights = {color: 1 for color in colors}
        weight_total = len(colors)

    exact = {color: total * weights[color] / weight_total for color in colors}
    counts = {color: math.floor(exact[color]) for color in colors}
    leftover = total - sum(counts.values())

    by_remainder = sorted(colors, key=lambda c: (-(exact[c] - counts[c]), COLOR_ORDER.index(c)))
    for color in by_remainder[:leftover]:
        counts[color] += 1
    return counts


def _pick_nonbasics(
    commander: Commander,
    pool: Sequence[ScoredCard],
    slots: int,
) -> list[Card]:
    """Best-ranked non-basic lands within the commander's colors."""
    picked: list[Card] = []
    seen: set[str] = set()
    for scored in rank_cards(pool):
        if len(picked) >= slots:
            break
        card = scored.card
        if not card.is_land or card.is_basic_land or card.name in seen:
            continue
        if not commander.allows(card):
            continue
        picked.append(card)
        seen.add(card.name)
    return picked


def build_manabase(
    commander: Commander,
    non_land_cards: Sequence[ScoredCard],
    constraints: ManabaseConstraints,
) -> list[Card]:
    """
    Build exactly constraints.land_count lands.

    Basics take basic_share of the slots, split by color pips. The rest go
    to the best non-basic lands in the pool; any slot still open gets
    another basic.

    Args:
        commander: Deck commander (fixes the allowed colors)
        non_land_cards: The deck's non-land cards (for pip counts)
        constraints: Land count and non-basic pool

    Returns:
        Lands, non-basics first then basics in WUBRG order
    """
    land_count = max(0, constraints.land_count)
    colors = [color for color in COLOR_ORDER if color in commander.color_identity]

    basic_target = min(land_count, _round_half_up(land_count * constraints.basic_share))
    nonbasics = _pick_nonbasics(commander, constraints.nonbasic_pool, land_count - basic_target)
    basics_needed = land_count - len(nonbasics)

    lands: list[Card] = list(nonbasics)
    if not colors:
        wastes = make_basic_land(None, constraints.basic_land_price)
        lands.extend([wastes] * basics_needed)
        return lands

    pips = count_color_pips(non_land_cards, colors)
    for color, count in split_basics(basics_needed, colors, pips).items():
        basic = make_basic_land(color, constraints.basic_land_price)
        lands.extend([basic] * count)
    return lands
