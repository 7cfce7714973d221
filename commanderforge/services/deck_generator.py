"""
Deck generation orchestrator.

Runs the assembly stages in order for one commander:

    filter → allocate → select → normalize → manabase → budget

Each stage is a pure function of its inputs; the orchestrator owns the
working slate and the per-run event log. Cancellation is checked between
stages, never inside one.

INVARIANTS (on COMPLETED results):
- len(non_land_cards) + len(lands) == DECK_SIZE
- Every card's color identity is a subset of the commander's
- No non-basic card name appears twice
- No card from a zero-weight category appears
"""

import asyncio
import logging
from collections import Counter
from typing import Protocol

from pydantic import BaseModel, Field, field_validator

from commanderforge.config import DECK_SIZE, settings
from commanderforge.filtering.candidate_pool import filter_legal_candidates
from commanderforge.filtering.scored_pool import score_pool, select_candidates
from commanderforge.models.card import Card, Category, Commander, ScoredCard
from commanderforge.models.collaborators import CardRepository, PriceQuote, SynergyScorer
from commanderforge.models.deck import DeckSlate, GeneratedDeck, GenerationResult, GenerationStatus
from commanderforge.models.failure import CommanderNotFoundError, PriceLookupError
from commanderforge.models.policy import ARCHETYPE_CURVES, detect_archetype, get_power_policy
from commanderforge.models.weights import CategoryWeights
from commanderforge.services.budget_reconciler import reconcile_budget
from commanderforge.services.deck_normalizer import normalize_deck_size
from commanderforge.services.manabase import (
    ManabaseConstraints,
    build_manabase,
    recommended_land_count,
)
from commanderforge.services.pricing import ScryfallPriceService
from commanderforge.services.quota_allocator import allocate_quotas
from commanderforge.telemetry import EventLog

logger = logging.getLogger(__name__)

# Planeswalker slider is a literal card count, not a proportion
ABSOLUTE_CATEGORY = Category.PLANESWALKER

# A role this far under its policy target gets a warning
ROLE_SHORTFALL_TOLERANCE = 2

# Unselected candidates priced up front as budget substitutes, per deck slot
SUBSTITUTE_PREFETCH_FACTOR = 2


class CancellationToken(Protocol):
    """Anything with is_set(), e.g. asyncio.Event or threading.Event."""

    def is_set(self) -> bool: ...


class GenerationRequest(BaseModel):
    """User input for one deck generation."""

    commander: str = Field(..., min_length=1, description="Commander name or Scryfall id")
    weights: CategoryWeights = Field(default_factory=CategoryWeights)
    power_level: int = Field(default=5, ge=1, le=10)
    per_card_cap: float | None = Field(default=None, gt=0)
    total_budget: float | None = Field(default=None, gt=0)
    theme_keywords: list[str] = Field(default_factory=list)
    archetype: str | None = Field(
        default=None,
        description="Curve archetype; detected from the commander when omitted",
    )

    @field_validator("archetype")
    @classmethod
    def _known_archetype(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.lower()
        if value not in ARCHETYPE_CURVES:
            raise ValueError(f"archetype must be one of {sorted(ARCHETYPE_CURVES)}")
        return value


class _Run:
    """Mutable state of one pipeline run. Never shared between runs."""

    def __init__(self, cancel: CancellationToken | None):
        self.cancel = cancel
        self.events = EventLog()
        self.stages: list[str] = []
        self.warnings: list[str] = []

    def complete(self, stage: str, **fields: object) -> None:
        self.stages.append(stage)
        self.events.emit(stage, **fields)

    def warn(self, messages: list[str]) -> None:
        for message in messages:
            if message not in self.warnings:
                self.warnings.append(message)

    async def cancelled(self) -> bool:
        # Give other tasks a chance to set the token between stages
        await asyncio.sleep(0)
        return self.cancel is not None and self.cancel.is_set()

    def cancelled_result(self) -> GenerationResult:
        logger.info("generation_cancelled", extra={"stages_completed": list(self.stages)})
        return GenerationResult(
            status=GenerationStatus.CANCELLED,
            stages_completed=tuple(self.stages),
            events=self.events.events,
        )


def _role_report(
    non_land_cards: list[ScoredCard], power_level: int
) -> tuple[list[str], list[str]]:
    """Notes comparing role counts with the power policy, plus shortfall warnings."""
    policy = get_power_policy(power_level)
    found = Counter(tag for sc in non_land_cards for tag in sc.tags)
    notes: list[str] = []
    warnings: list[str] = []
    for role, target in policy.role_targets().items():
        notes.append(f"{role}: {found[role]}/{target}")
        if target - found[role] > ROLE_SHORTFALL_TOLERANCE:
            warnings.append(
                f"Only {found[role]} {role} cards found; power level {policy.level} "
                f"calls for {target}"
            )
    return notes, warnings


async def generate_deck(
    request: GenerationRequest,
    repository: CardRepository,
    scorer: SynergyScorer,
    price_service: ScryfallPriceService | None = None,
    cancel: CancellationToken | None = None,
    min_pool_size: int | None = None,
) -> GenerationResult:
    """
    Generate a 99-card deck around a commander.

    Args:
        request: Commander, weights, power level, budgets and themes
        repository: Card source
        scorer: Synergy scorer
        price_service: Live price source; the repository's prices are used without it
        cancel: Token checked between stages
        min_pool_size: Override for the minimum legal non-land pool

    Returns:
        GenerationResult, COMPLETED with a deck or CANCELLED with partial progress

    Raises:
        CommanderNotFoundError: If the commander is not in the repository
        InsufficientPoolError: If too few legal cards exist
        InvalidWeightsError: If the weights leave no fillable category
        PriceLookupError: If live pricing fails after retries on a budgeted request
    """
    run = _Run(cancel)

    commander_card = repository.find_card(request.commander)
    if commander_card is None:
        raise CommanderNotFoundError(request.commander)
    commander = Commander(commander_card)
    policy = get_power_policy(request.power_level)

    # --- 1. Legality & color ---------------------------------------------------
    pool = repository.legal_candidates(commander.color_identity)
    candidates = filter_legal_candidates(
        pool,
        commander,
        min_pool_size=settings.min_legal_pool_size if min_pool_size is None else min_pool_size,
    )
    run.complete("filter", commander=commander.name, pool=len(pool), legal=len(candidates))
    if await run.cancelled():
        return run.cancelled_result()

    # --- 2. Quotas -------------------------------------------------------------
    slot_budget = DECK_SIZE - policy.lands
    availability = Counter(card.category for card in candidates if not card.is_land)
    quotas = allocate_quotas(
        request.weights,
        slot_budget,
        absolute_category=ABSOLUTE_CATEGORY,
        availability=availability,
    )
    requested_walkers = request.weights.planeswalkers
    if quotas[ABSOLUTE_CATEGORY].target < requested_walkers:
        run.warn(
            [
                f"Requested {requested_walkers} planeswalkers; only "
                f"{quotas[ABSOLUTE_CATEGORY].target} available"
            ]
        )
    run.complete(
        "allocate",
        slot_budget=slot_budget,
        targets={c.value: q.target for c, q in quotas.items()},
    )
    if await run.cancelled():
        return run.cancelled_result()

    # --- 3. Score & select -----------------------------------------------------
    archetype = request.archetype or detect_archetype(commander)
    curve = ARCHETYPE_CURVES[archetype]
    scored = score_pool(candidates, commander, scorer, request.theme_keywords)
    non_land_pool = [sc for sc in scored if not sc.card.is_land]
    land_pool = [sc for sc in scored if sc.card.is_land]
    selected = select_candidates(non_land_pool, quotas, curve)
    run.complete("select", archetype=archetype, scored=len(scored), selected=len(selected))
    if await run.cancelled():
        return run.cancelled_result()

    # --- 4. Normalize to the slot budget --------------------------------------
    normalized = normalize_deck_size(
        selected, quotas, slot_budget, candidates=non_land_pool, target_curve=curve
    )
    run.warn(normalized.warnings)
    run.complete("normalize", target=slot_budget, cards=len(normalized.cards))
    if await run.cancelled():
        return run.cancelled_result()

    # --- 5. Manabase -----------------------------------------------------------
    land_count = recommended_land_count(normalized.cards)
    resized = normalize_deck_size(
        normalized.cards,
        quotas,
        DECK_SIZE - land_count,
        candidates=non_land_pool,
        target_curve=curve,
    )
    run.warn(resized.warnings)
    non_lands = resized.cards
    # Pool exhausted: basics cover the missing non-land slots
    land_slots = DECK_SIZE - len(non_lands)
    lands = build_manabase(
        commander,
        non_lands,
        ManabaseConstraints(
            land_count=land_slots,
            nonbasic_pool=land_pool,
            basic_land_price=settings.basic_land_price,
        ),
    )
    slate = DeckSlate(non_land_cards=non_lands, lands=lands)
    run.complete(
        "manabase",
        recommended_lands=land_count,
        lands=len(lands),
        basics=sum(1 for land in lands if land.is_basic_land),
    )
    if await run.cancelled():
        return run.cancelled_result()

    # --- 6. Budget -------------------------------------------------------------
    needs_prices = request.per_card_cap is not None or request.total_budget is not None
    live_prices = price_service is not None
    if price_service is not None:
        in_slate = slate.names()
        substitutes = [sc.card for sc in non_land_pool if sc.name not in in_slate]
        try:
            await price_service.prefetch(
                [commander.card, *slate.all_cards()]
                + (substitutes[: SUBSTITUTE_PREFETCH_FACTOR * len(slate)] if needs_prices else [])
            )
        except PriceLookupError as exc:
            # Without a budget the price is informational only
            if needs_prices:
                raise
            live_prices = False
            logger.warning(
                "live_prices_unavailable",
                extra={"card": exc.card_name, "attempts": exc.attempts},
            )
            run.warn(
                [
                    f"Live prices unavailable (lookup for '{exc.card_name}' failed); "
                    "total price uses local estimates"
                ]
            )

    def price_of(card: Card) -> PriceQuote:
        if live_prices and price_service is not None:
            return price_service.price_of(card)
        return repository.price_of(card)

    if needs_prices:
        remaining_budget = None
        if request.total_budget is not None:
            remaining_budget = request.total_budget - price_of(commander.card).amount
        slate, budget_warnings = reconcile_budget(
            slate,
            price_of,
            per_card_cap=request.per_card_cap,
            total_budget_cap=remaining_budget,
            candidates=non_land_pool,
            quotas=quotas,
            commander=commander,
            keep_anyway_threshold=settings.keep_anyway_threshold,
            basic_land_price=settings.basic_land_price,
        )
        run.warn(budget_warnings)
        run.complete("budget", warnings=len(budget_warnings))
        if await run.cancelled():
            return run.cancelled_result()

    # --- Assemble ----------------------------------------------------------------
    notes, role_warnings = _role_report(slate.non_land_cards, request.power_level)
    run.warn(role_warnings)
    notes = [f"archetype: {archetype}", f"lands: {len(slate.lands)}", *notes]

    total_price = price_of(commander.card).amount + sum(
        price_of(card).amount for card in slate.all_cards()
    )
    deck = GeneratedDeck(
        commander=commander,
        non_land_cards=tuple(slate.non_land_cards),
        lands=tuple(slate.lands),
        total_price=round(total_price, 2),
        warnings=tuple(run.warnings),
        notes=tuple(notes),
    )
    run.complete(
        "assembled",
        cards=deck.card_count,
        total_price=deck.total_price,
        warnings=len(deck.warnings),
    )

    return GenerationResult(
        status=GenerationStatus.COMPLETED,
        deck=deck,
        stages_completed=tuple(run.stages),
        events=run.events.events,
    )
