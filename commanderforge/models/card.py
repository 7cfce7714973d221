from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Color(str, Enum):
    """The five colors of mana, in WUBRG order."""

    WHITE = "W"
    BLUE = "U"
    BLACK = "B"
    RED = "R"
    GREEN = "G"


COLOR_ORDER: tuple[Color, ...] = (Color.WHITE, Color.BLUE, Color.BLACK, Color.RED, Color.GREEN)


class Category(str, Enum):
    """Mutually exclusive card category derived from the type line."""

    CREATURE = "creature"
    ARTIFACT = "artifact"
    ENCHANTMENT = "enchantment"
    INSTANT = "instant"
    SORCERY = "sorcery"
    PLANESWALKER = "planeswalker"
    LAND = "land"
    OTHER = "other"


# Checked in order: an "Artifact Creature" is a creature,
# an "Artifact Land" is a land.
CATEGORY_PRIORITY: tuple[Category, ...] = (
    Category.LAND,
    Category.CREATURE,
    Category.PLANESWALKER,
    Category.ARTIFACT,
    Category.ENCHANTMENT,
    Category.INSTANT,
    Category.SORCERY,
)

BASIC_LAND_NAMES: dict[Color | None, str] = {
    Color.WHITE: "Plains",
    Color.BLUE: "Island",
    Color.BLACK: "Swamp",
    Color.RED: "Mountain",
    Color.GREEN: "Forest",
    None: "Wastes",
}


def categorize(type_line: str) -> Category:
    """Derive the card category from a type line (front face only)."""
    front = type_line.split("//")[0].lower()
    for category in CATEGORY_PRIORITY:
        if category.value in front:
            return category
    return Category.OTHER


def parse_colors(values: Any) -> frozenset[Color]:
    """Convert a list of color letters into a color set, ignoring unknown symbols."""
    colors: set[Color] = set()
    for value in values or []:
        if isinstance(value, Color):
            colors.add(value)
            continue
        try:
            colors.add(Color(str(value).upper()))
        except ValueError:
            continue
    return frozenset(colors)


@dataclass(frozen=True, slots=True)
class Card:
    """
    An immutable card record.

    Attributes:
        id: Stable identifier (Scryfall oracle id or synthetic for basics)
        name: Card name, unique per non-basic card
        mana_cost: Mana cost string, e.g. "{2}{G}{G}"
        cmc: Converted mana cost
        type_line: Full type line
        color_identity: Colors the card is restricted to
        category: Derived once from type_line
        price_estimate: Locally known price, if any
        legalities: Format name -> legality status
        oracle_text: Rules text
        popularity_rank: Lower is more popular (None when unknown)
    """

    id: str
    name: str
    mana_cost: str = ""
    cmc: float = 0.0
    type_line: str = ""
    color_identity: frozenset[Color] = frozenset()
    category: Category = Category.OTHER
    price_estimate: float | None = None
    legalities: dict[str, str] = field(default_factory=dict, compare=False, hash=False)
    oracle_text: str = ""
    popularity_rank: int | None = None

    @classmethod
    def create(cls, **kwargs: Any) -> "Card":
        """Build a card, deriving its category from the type line."""
        kwargs.setdefault("category", categorize(kwargs.get("type_line", "")))
        if "color_identity" in kwargs:
            kwargs["color_identity"] = parse_colors(kwargs["color_identity"])
        return cls(**kwargs)

    @property
    def is_basic_land(self) -> bool:
        """True for basic lands (no singleton restriction)."""
        type_line = self.type_line.lower()
        return "basic" in type_line and "land" in type_line

    @property
    def is_land(self) -> bool:
        return self.category == Category.LAND

    def is_legal_in(self, format_name: str = "commander") -> bool:
        return self.legalities.get(format_name) == "legal"


@dataclass(frozen=True, slots=True)
class ScoredCard:
    """
    A card with its synergy score for one commander.

    Produced from the external scorer; immutable once produced.
    """

    card: Card
    synergy_score: float
    category_tag_bonus: float = 0.0
    tags: frozenset[str] = frozenset()
    power_level: float = 5.0

    @property
    def name(self) -> str:
        return self.card.name

    @property
    def category(self) -> Category:
        return self.card.category

    @property
    def total_score(self) -> float:
        """Score used for ranking: synergy plus any tag bonus."""
        return self.synergy_score + self.category_tag_bonus


@dataclass(frozen=True, slots=True)
class Commander:
    """The commander card; anchor for color filtering and scoring."""

    card: Card

    @property
    def name(self) -> str:
        return self.card.name

    @property
    def color_identity(self) -> frozenset[Color]:
        return self.card.color_identity

    def allows(self, card: Card) -> bool:
        """Check the color identity subset rule."""
        return card.color_identity <= self.color_identity


def make_basic_land(color: Color | None, price: float = 0.25) -> Card:
    """Create a basic land card (Wastes for colorless)."""
    name = BASIC_LAND_NAMES[color]
    return Card(
        id=f"basic-{name.lower()}",
        name=name,
        type_line=f"Basic Land — {name}" if color is not None else "Basic Land",
        color_identity=frozenset({color}) if color is not None else frozenset(),
        category=Category.LAND,
        price_estimate=price,
        legalities={"commander": "legal"},
        oracle_text=f"({{T}}: Add {{{color.value if color else 'C'}}}.)",
    )
