from collections import Counter
from dataclasses import dataclass, field
from enum import Enum

from commanderforge.models.card import Card, Category, Commander, ScoredCard
from commanderforge.telemetry import StageEvent


@dataclass
class DeckSlate:
    """
    The working selection owned by the orchestrator for one generation call.

    Non-land cards carry their scores; lands are plain cards and may repeat
    (basic lands only).
    """

    non_land_cards: list[ScoredCard] = field(default_factory=list)
    lands: list[Card] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.non_land_cards) + len(self.lands)

    def all_cards(self) -> list[Card]:
        return [sc.card for sc in self.non_land_cards] + list(self.lands)

    def names(self) -> set[str]:
        """Names of every card in the slate."""
        return {card.name for card in self.all_cards()}

    def category_counts(self) -> dict[Category, int]:
        return dict(Counter(sc.category for sc in self.non_land_cards))


@dataclass(frozen=True)
class GeneratedDeck:
    """
    The final deck: commander plus exactly 99 other cards.

    Constructed once per generation request; immutable after return.
    """

    commander: Commander
    non_land_cards: tuple[ScoredCard, ...]
    lands: tuple[Card, ...]
    total_price: float
    warnings: tuple[str, ...] = ()
    notes: tuple[str, ...] = ()

    @property
    def card_count(self) -> int:
        """Cards excluding the commander."""
        return len(self.non_land_cards) + len(self.lands)

    def land_breakdown(self) -> dict[str, int]:
        """Land name -> copies."""
        return dict(Counter(land.name for land in self.lands))


class GenerationStatus(str, Enum):
    """How a generation call ended."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class GenerationResult:
    """
    Outcome of one pipeline run.

    A cancelled run carries no deck, only the stages that finished.
    """

    status: GenerationStatus
    deck: GeneratedDeck | None = None
    stages_completed: tuple[str, ...] = ()
    events: tuple[StageEvent, ...] = ()

    @property
    def completed(self) -> bool:
        return self.status == GenerationStatus.COMPLETED
