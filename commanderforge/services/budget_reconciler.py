"""
Budget Reconciler - brings a finished slate under price caps.

Runs after the manabase, so every change is a one-for-one replacement
(or a drop followed by a backfill) and the deck size never moves.

Order of operations:
1. Over-cap non-land card → cheapest-acceptable same-category substitute
2. No substitute → keep if synergy is high enough, otherwise drop and backfill
3. Over-cap non-basic land → basic land
4. Still over the total → swap the most expensive non-basic lands for basics
5. Still over → warning

INVARIANTS:
- len(slate) is unchanged
- Category counts are unchanged by substitutions
- Excluded categories stay excluded
"""

import logging
from collections import Counter
from collections.abc import Callable, Mapping, Sequence

from commanderforge.filtering.scored_pool import rank_cards
from commanderforge.models.card import (
    COLOR_ORDER,
    Card,
    Category,
    Commander,
    ScoredCard,
    make_basic_land,
)
from commanderforge.models.collaborators import PriceQuote
from commanderforge.models.deck import DeckSlate
from commanderforge.models.weights import Quota
from commanderforge.services.deck_normalizer import normalize_deck_size

logger = logging.getLogger(__name__)

PriceLookup = Callable[[Card], PriceQuote]

DEFAULT_KEEP_ANYWAY_THRESHOLD = 8.0


def _price(price_of: PriceLookup, card: Card) -> float:
    return price_of(card).amount


def _replacement_basic(slate: DeckSlate, commander: Commander | None, price: float) -> Card:
    """The basic land to add when a slot must go to a basic."""
    basics = Counter(land.name for land in slate.lands if land.is_basic_land)
    if basics:
        name = basics.most_common(1)[0][0]
        return next(land for land in slate.lands if land.name == name)
    if commander is not None:
        for color in COLOR_ORDER:
            if color in commander.color_identity:
                return make_basic_land(color, price)
    return make_basic_land(None, price)


def _find_substitute(
    original: ScoredCard,
    candidates: Sequence[ScoredCard],
    used_names: set[str],
    price_of: PriceLookup,
    per_card_cap: float,
) -> ScoredCard | None:
    """Best-ranked same-category candidate at or under the cap."""
    for candidate in candidates:
        if candidate.category != original.category or candidate.card.is_land:
            continue
        if candidate.name in used_names:
            continue
        if _price(price_of, candidate.card) <= per_card_cap:
            return candidate
    return None


def _enforce_per_card_cap(
    slate: DeckSlate,
    price_of: PriceLookup,
    per_card_cap: float,
    candidates: Sequence[ScoredCard],
    quotas: Mapping[Category, Quota] | None,
    commander: Commander | None,
    keep_anyway_threshold: float,
    basic_land_price: float,
    warnings: list[str],
) -> DeckSlate:
    ranked = rank_cards(candidates)
    used_names = slate.names()
    kept: list[ScoredCard] = []
    dropped = 0

    for scored in slate.non_land_cards:
        price = _price(price_of, scored.card)
        if price <= per_card_cap:
            kept.append(scored)
            continue

        substitute = _find_substitute(scored, ranked, used_names, price_of, per_card_cap)
        if substitute is not None:
            kept.append(substitute)
            used_names.add(substitute.name)
            logger.info(
                "budget_substitution",
                extra={
                    "original": scored.name,
                    "original_price": price,
                    "substitute": substitute.name,
                    "substitute_price": _price(price_of, substitute.card),
                },
            )
            continue

        if scored.total_score > keep_anyway_threshold:
            kept.append(scored)
            warnings.append(
                f"Kept {scored.name} (${price:.2f}) over the ${per_card_cap:.2f} per-card cap: "
                f"no cheaper {scored.category.value} alternative and synergy "
                f"{scored.total_score:.1f} is too high to lose"
            )
            continue

        dropped += 1
        logger.info("budget_drop", extra={"card": scored.name, "price": price})

    if dropped:
        affordable = [
            sc
            for sc in ranked
            if sc.name not in used_names and _price(price_of, sc.card) <= per_card_cap
        ]
        fill_quotas = quotas or {
            category: Quota(min=0, max=len(slate), target=0)
            for category in {sc.category for sc in candidates}
        }
        result = normalize_deck_size(
            kept,
            fill_quotas,
            len(slate.non_land_cards),
            candidates=affordable,
        )
        kept = result.cards

    lands: list[Card] = []
    for land in slate.lands:
        if not land.is_basic_land and _price(price_of, land) > per_card_cap:
            lands.append(_replacement_basic(slate, commander, basic_land_price))
            logger.info("budget_land_downgrade", extra={"card": land.name})
        else:
            lands.append(land)

    shortfall = len(slate.non_land_cards) - len(kept)
    if shortfall > 0:
        lands.extend([_replacement_basic(slate, commander, basic_land_price)] * shortfall)
        warnings.append(
            f"Budget left {shortfall} non-land slots without an affordable card; "
            "filled them with basic lands"
        )

    return DeckSlate(non_land_cards=kept, lands=lands)


def _enforce_total_cap(
    slate: DeckSlate,
    price_of: PriceLookup,
    total_budget_cap: float,
    commander: Commander | None,
    basic_land_price: float,
) -> DeckSlate:
    """Swap the priciest non-basic lands for basics until the total fits."""
    total = sum(_price(price_of, card) for card in slate.all_cards())
    if total <= total_budget_cap:
        return slate

    basic = _replacement_basic(slate, commander, basic_land_price)
    basic_price = _price(price_of, basic)
    lands = list(slate.lands)
    nonbasic_indexes = sorted(
        (i for i, land in enumerate(lands) if not land.is_basic_land),
        key=lambda i: (-_price(price_of, lands[i]), lands[i].name),
    )
    for index in nonbasic_indexes:
        if total <= total_budget_cap:
            break
        saving = _price(price_of, lands[index]) - basic_price
        if saving <= 0:
            break
        logger.info("budget_land_downgrade", extra={"card": lands[index].name})
        lands[index] = basic
        total -= saving

    return DeckSlate(non_land_cards=list(slate.non_land_cards), lands=lands)


def reconcile_budget(
    slate: DeckSlate,
    price_of: PriceLookup,
    per_card_cap: float | None,
    total_budget_cap: float | None,
    candidates: Sequence[ScoredCard] = (),
    quotas: Mapping[Category, Quota] | None = None,
    commander: Commander | None = None,
    keep_anyway_threshold: float = DEFAULT_KEEP_ANYWAY_THRESHOLD,
    basic_land_price: float = 0.25,
) -> tuple[DeckSlate, list[str]]:
    """
    Apply per-card and total price caps to a slate.

    Args:
        slate: Finished non-land cards and lands
        price_of: Price lookup for one card
        per_card_cap: Maximum price for any single card (None = no cap)
        total_budget_cap: Maximum total for the slate (None = no cap)
        candidates: Scored non-land pool for substitutions and backfill
        quotas: Category quotas; excluded categories are never backfilled
        commander: Commander, used to pick replacement basics
        keep_anyway_threshold: Over-cap cards scoring above this stay
        basic_land_price: Price assigned to new basic lands

    Returns:
        The reconciled slate and any budget warnings
    """
    warnings: list[str] = []

    if per_card_cap is not None:
        slate = _enforce_per_card_cap(
            slate,
            price_of,
            per_card_cap,
            candidates,
            quotas,
            commander,
            keep_anyway_threshold,
            basic_land_price,
            warnings,
        )

    if total_budget_cap is not None:
        slate = _enforce_total_cap(slate, price_of, total_budget_cap, commander, basic_land_price)
        total = sum(_price(price_of, card) for card in slate.all_cards())
        if total > total_budget_cap:
            warnings.append(
                f"Deck costs ${total:.2f}, over the ${total_budget_cap:.2f} budget, "
                "after replacing every affordable land with basics"
            )

    return slate, warnings
