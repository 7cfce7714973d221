"""
Scored Candidate Selector - scoring decides, quotas bound.

Cards are scored once per generation run against the commander, then the
best cards of each category are taken up to that category's quota target.

INVARIANTS:
- A category never receives more than its quota target
- Categories never substitute for each other here (the normalizer fills gaps)
- No two selected cards share a name
- Lands are never selected here; they bypass quotas
- Same pool + quotas → same selection (ties end on card name)
"""

from collections.abc import Callable, Iterable, Mapping
from functools import cmp_to_key

from commanderforge.config import THEME_KEYWORD_BONUS
from commanderforge.models.card import Card, Category, Commander, ScoredCard
from commanderforge.models.collaborators import SynergyScorer
from commanderforge.models.policy import curve_fit
from commanderforge.models.weights import Quota

# Scores closer than this are treated as equal and fall through to tie-breaks
SCORE_TOLERANCE = 0.1
CURVE_FIT_TOLERANCE = 1e-6
POWER_TOLERANCE = 0.1

# Rank used when a card has no popularity data
UNRANKED = 99999


# =============================================================================
# SCORING
# =============================================================================


def theme_bonus(card: Card, keywords: Iterable[str]) -> float:
    """
    Bonus for free-text theme keywords found on the card.

    Each keyword is matched case-insensitively against name, type line,
    and rules text, and counts once.
    """
    haystack = f"{card.name}\n{card.type_line}\n{card.oracle_text}".lower()
    matches = sum(1 for kw in keywords if kw.strip() and kw.strip().lower() in haystack)
    return matches * THEME_KEYWORD_BONUS


def score_pool(
    cards: Iterable[Card],
    commander: Commander,
    scorer: SynergyScorer,
    theme_keywords: Iterable[str] = (),
) -> list[ScoredCard]:
    """
    Score every candidate once.

    Args:
        cards: Legal candidates (lands included)
        commander: The commander to score against
        scorer: Synergy scoring collaborator
        theme_keywords: Optional free-text themes from the request

    Returns:
        ScoredCard per input card, in input order
    """
    keywords = [kw for kw in theme_keywords if kw.strip()]
    scored: list[ScoredCard] = []
    for card in cards:
        result = scorer.score(card, commander)
        scored.append(
            ScoredCard(
                card=card,
                synergy_score=max(0.0, result.value),
                category_tag_bonus=theme_bonus(card, keywords) if keywords else 0.0,
                tags=frozenset(result.category_tags),
                power_level=result.power_level,
            )
        )
    return scored


# =============================================================================
# RANKING
# =============================================================================


def _compare_within(a: float, b: float, tolerance: float) -> int:
    """-1 if a ranks first (higher), 1 if b does, 0 if equal within tolerance."""
    if abs(a - b) <= tolerance:
        return 0
    return -1 if a > b else 1


def _ranking_comparator(
    target_curve: Mapping[int, int] | None,
) -> Callable[[ScoredCard, ScoredCard], int]:
    curve = dict(target_curve) if target_curve else None

    def compare(a: ScoredCard, b: ScoredCard) -> int:
        result = _compare_within(a.total_score, b.total_score, SCORE_TOLERANCE)
        if result:
            return result

        if curve is not None:
            result = _compare_within(
                curve_fit(a.card.cmc, curve), curve_fit(b.card.cmc, curve), CURVE_FIT_TOLERANCE
            )
            if result:
                return result

        result = _compare_within(a.power_level, b.power_level, POWER_TOLERANCE)
        if result:
            return result

        rank_a = a.card.popularity_rank if a.card.popularity_rank is not None else UNRANKED
        rank_b = b.card.popularity_rank if b.card.popularity_rank is not None else UNRANKED
        if rank_a != rank_b:
            return -1 if rank_a < rank_b else 1

        if a.name != b.name:
            return -1 if a.name < b.name else 1
        return 0

    return compare


def rank_cards(
    cards: Iterable[ScoredCard],
    target_curve: Mapping[int, int] | None = None,
) -> list[ScoredCard]:
    """
    Order cards best first.

    Criteria, each consulted only when the previous ties:
    total score, curve-bucket fit, power level, popularity rank, name.
    """
    by_name = sorted(cards, key=lambda sc: sc.name)
    return sorted(by_name, key=cmp_to_key(_ranking_comparator(target_curve)))


# =============================================================================
# SELECTION
# =============================================================================


def select_candidates(
    pool: Iterable[ScoredCard],
    quotas: Mapping[Category, Quota],
    target_curve: Mapping[int, int] | None = None,
) -> list[ScoredCard]:
    """
    Take the best cards of each category up to its quota target.

    A category with fewer candidates than its target simply comes up
    short; the shortfall is left for the normalizer.

    Args:
        pool: Scored candidates
        quotas: Quota per category
        target_curve: Archetype curve used as the second ranking criterion

    Returns:
        Selected non-land cards, grouped in quota order, best first
    """
    by_category: dict[Category, list[ScoredCard]] = {}
    for scored in pool:
        if scored.card.is_land:
            continue
        by_category.setdefault(scored.category, []).append(scored)

    selected: list[ScoredCard] = []
    seen: set[str] = set()

    for category, quota in quotas.items():
        if quota.target <= 0:
            continue
        taken = 0
        for scored in rank_cards(by_category.get(category, []), target_curve):
            if taken >= quota.target:
                break
            if scored.name in seen:
                continue
            selected.append(scored)
            seen.add(scored.name)
            taken += 1

    return selected
