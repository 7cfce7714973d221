"""
CommanderForge services.

Deck assembly stages, the orchestrator, and the Scryfall-backed
collaborators (card repository, prices, synergy scoring).
"""

from commanderforge.services.budget_reconciler import reconcile_budget
from commanderforge.services.card_database import (
    ScryfallCardRepository,
    card_from_scryfall,
    download_card_database,
    get_card_repository,
    load_card_database,
)
from commanderforge.services.deck_generator import GenerationRequest, generate_deck
from commanderforge.services.deck_normalizer import NormalizeResult, normalize_deck_size
from commanderforge.services.manabase import (
    ManabaseConstraints,
    build_manabase,
    count_color_pips,
    recommended_land_count,
)
from commanderforge.services.pricing import RateLimitedQueue, ScryfallPriceService
from commanderforge.services.quota_allocator import allocate_quotas
from commanderforge.services.synergy import KeywordSynergyScorer

__all__ = [
    "GenerationRequest",
    "KeywordSynergyScorer",
    "ManabaseConstraints",
    "NormalizeResult",
    "RateLimitedQueue",
    "ScryfallCardRepository",
    "ScryfallPriceService",
    "allocate_quotas",
    "build_manabase",
    "card_from_scryfall",
    "count_color_pips",
    "download_card_database",
    "generate_deck",
    "get_card_repository",
    "load_card_database",
    "normalize_deck_size",
    "reconcile_budget",
    "recommended_land_count",
]
