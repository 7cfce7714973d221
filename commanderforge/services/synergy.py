"""
Keyword synergy scorer.

Default SynergyScorer: scores a card by the mechanics it shares with the
commander and tags the functional roles it fills. Any other scorer that
satisfies the SynergyScorer protocol can replace it.
"""

from commanderforge.models.card import Card, Category, Commander
from commanderforge.models.collaborators import SynergyResult

# Synergy patterns: (trigger_keyword, synergy_keywords)
SYNERGY_PATTERNS: list[tuple[str, list[str]]] = [
    # Sacrifice synergies
    (
        "sacrifice",
        ["dies", "leaves the battlefield", "blood token", "food token", "treasure token"],
    ),
    # Graveyard synergies
    (
        "graveyard",
        ["mill", "dies", "flashback", "escape", "unearth", "return target creature card"],
    ),
    # Token synergies
    ("token", ["create", "populate", "convoke"]),
    # Enchantment synergies
    ("enchantment", ["constellation", "enchantress", "aura"]),
    # Artifact synergies
    ("artifact", ["affinity", "improvise", "metalcraft", "equipment"]),
    # +1/+1 counter synergies
    ("+1/+1 counter", ["proliferate", "evolve", "adapt", "modify", "+1/+1 counter"]),
    # Life gain synergies
    ("life", ["lifelink", "gain life", "you gain"]),
    # Spell synergies
    ("instant", ["prowess", "magecraft", "storm", "instant"]),
    ("sorcery", ["prowess", "magecraft", "storm", "sorcery"]),
    # Combat synergies
    (
        "attack",
        ["haste", "double strike", "extra combat", "whenever a creature you control attacks"],
    ),
    # Land synergies
    ("landfall", ["landfall", "additional land", "search your library for a basic land"]),
]

# Functional role tags: (tag, phrases)
ROLE_PATTERNS: list[tuple[str, list[str]]] = [
    ("ramp", ["add {", "search your library for a basic land", "treasure token", "add one mana"]),
    ("draw", ["draw a card", "draw two cards", "draw three cards", "draws a card"]),
    ("tutor", ["search your library for a card", "search your library for an"]),
    (
        "removal",
        ["destroy target", "exile target", "counter target", "deals damage to target creature"],
    ),
    (
        "board_wipe",
        ["destroy all", "exile all", "all creatures get -", "damage to each creature"],
    ),
    ("protection", ["hexproof", "indestructible", "shroud", "protection from", "phase out"]),
]

# Cheap card draw counts as a cantrip for the land formula
CANTRIP_MAX_CMC = 2.0

MATCH_SCORE = 2.0
TRIBAL_SCORE = 2.0
ROLE_SCORE = 0.5
MAX_SCORE = 10.0


def role_tags(card: Card) -> frozenset[str]:
    """Functional roles a card fills, read from its rules text."""
    if card.is_land:
        return frozenset()

    oracle = card.oracle_text.lower()
    tags = {tag for tag, phrases in ROLE_PATTERNS if any(p in oracle for p in phrases)}
    if "draw" in tags and card.cmc <= CANTRIP_MAX_CMC:
        tags.add("cantrip")
    return frozenset(tags)


def _creature_types(card: Card) -> set[str]:
    """Subtypes after the dash of a creature type line."""
    front = card.type_line.split("//")[0]
    if "creature" not in front.lower() or "—" not in front:
        return set()
    return {t.lower() for t in front.split("—", 1)[1].split()}


def _power_from_rank(rank: int | None) -> float:
    """Rough power estimate from popularity (lower rank = more played)."""
    if rank is None:
        return 5.0
    if rank <= 100:
        return 9.0
    if rank <= 1000:
        return 7.0
    if rank <= 5000:
        return 5.0
    return 3.0


class KeywordSynergyScorer:
    """
    Scores cards by shared mechanic keywords with the commander.

    Stateless apart from a per-commander keyword cache; safe to share.
    """

    def __init__(self) -> None:
        self._keyword_cache: dict[str, frozenset[str]] = {}

    def commander_keywords(self, commander: Commander) -> frozenset[str]:
        """Synergy keywords triggered by the commander's text."""
        cached = self._keyword_cache.get(commander.card.id)
        if cached is not None:
            return cached

        oracle = commander.card.oracle_text.lower()
        type_line = commander.card.type_line.lower()
        keywords: set[str] = set()
        for trigger, related in SYNERGY_PATTERNS:
            if trigger in oracle or trigger in type_line:
                keywords.add(trigger)
                keywords.update(kw.lower() for kw in related)

        result = frozenset(keywords)
        self._keyword_cache[commander.card.id] = result
        return result

    def score(self, card: Card, commander: Commander) -> SynergyResult:
        oracle = card.oracle_text.lower()
        type_line = card.type_line.lower()

        keywords = self.commander_keywords(commander)
        matches = sum(1 for kw in keywords if kw in oracle or kw in type_line)
        value = matches * MATCH_SCORE

        if card.category == Category.CREATURE:
            shared = _creature_types(card) & _creature_types(commander.card)
            if shared:
                value += TRIBAL_SCORE

        tags = role_tags(card)
        value += ROLE_SCORE * len(tags - {"cantrip"})

        return SynergyResult(
            value=min(MAX_SCORE, value),
            category_tags=tags,
            power_level=_power_from_rank(card.popularity_rank),
        )
