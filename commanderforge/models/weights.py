from dataclasses import dataclass

from pydantic import BaseModel, Field

from commanderforge.models.card import Category

# Categories controlled by user sliders, in tie-break order
WEIGHTED_CATEGORIES: tuple[Category, ...] = (
    Category.CREATURE,
    Category.ARTIFACT,
    Category.ENCHANTMENT,
    Category.INSTANT,
    Category.SORCERY,
    Category.PLANESWALKER,
)


class CategoryWeights(BaseModel):
    """
    Slider weights per category, 0-10.

    A weight of 0 is a hard exclusion: no card of that category
    appears in the generated deck.
    """

    creatures: int = Field(default=5, ge=0, le=10)
    artifacts: int = Field(default=5, ge=0, le=10)
    enchantments: int = Field(default=5, ge=0, le=10)
    instants: int = Field(default=5, ge=0, le=10)
    sorceries: int = Field(default=5, ge=0, le=10)
    planeswalkers: int = Field(default=5, ge=0, le=10)

    def as_mapping(self) -> dict[Category, int]:
        """Weights keyed by category."""
        return {
            Category.CREATURE: self.creatures,
            Category.ARTIFACT: self.artifacts,
            Category.ENCHANTMENT: self.enchantments,
            Category.INSTANT: self.instants,
            Category.SORCERY: self.sorceries,
            Category.PLANESWALKER: self.planeswalkers,
        }


@dataclass(frozen=True, slots=True)
class Quota:
    """
    Card count bounds for one category.

    INVARIANT: min <= target <= max
    """

    min: int
    max: int
    target: int

    @property
    def excluded(self) -> bool:
        """True when the category may not appear at all."""
        return self.max == 0

    @property
    def is_exact(self) -> bool:
        return self.min == self.max == self.target
