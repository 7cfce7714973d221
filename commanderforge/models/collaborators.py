"""
Interfaces for the engine's external collaborators.

The engine never computes synergy or fetches prices itself; it consumes
these protocols. Default implementations live in commanderforge.services.
"""

from dataclasses import dataclass
from typing import Protocol

from commanderforge.models.card import Card, Color, Commander


@dataclass(frozen=True, slots=True)
class SynergyResult:
    """A scorer's verdict on one card for one commander."""

    value: float
    category_tags: frozenset[str] = frozenset()
    power_level: float = 5.0


@dataclass(frozen=True, slots=True)
class PriceQuote:
    """A price with where it came from ("scryfall", "estimate", "basic", "unknown")."""

    amount: float
    source: str


class SynergyScorer(Protocol):
    def score(self, card: Card, commander: Commander) -> SynergyResult: ...


class CardRepository(Protocol):
    def legal_candidates(self, color_identity: frozenset[Color]) -> list[Card]: ...

    def find_card(self, name_or_id: str) -> Card | None: ...

    def price_of(self, card: Card) -> PriceQuote: ...
