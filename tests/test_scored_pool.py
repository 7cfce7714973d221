"""
Tests for scoring, ranking and the Scored Candidate Selector.

These tests verify:
- Theme keywords add a bonus per matched keyword
- Ranking tie-breaks apply only when earlier criteria tie within tolerance
- Selection respects quota targets and never substitutes across categories
- Lands and duplicate names are never selected
"""

from commanderforge.filtering.scored_pool import (
    rank_cards,
    score_pool,
    select_candidates,
    theme_bonus,
)
from commanderforge.models.card import Category, Commander, ScoredCard
from commanderforge.models.weights import Quota
from factories import StaticScorer, build_card, build_pool, score_descending

C = Category


def _quota(target: int) -> Quota:
    if target == 0:
        return Quota(min=0, max=0, target=0)
    return Quota(min=max(0, target - 2), max=target + 3, target=target)


class TestScorePool:
    """Tests for score_pool and theme bonuses."""

    def test_scores_every_card_once(self, green_commander: Commander) -> None:
        cards = build_pool({C.CREATURE: 3, C.LAND: 2})
        scorer = StaticScorer(scores={"Creature 00": 4.0})

        scored = score_pool(cards, green_commander, scorer)

        assert scorer.calls == 5
        assert [sc.card for sc in scored] == cards
        assert scored[0].synergy_score == 4.0

    def test_negative_scores_clamped_to_zero(self, green_commander: Commander) -> None:
        cards = [build_card("Bad Card")]

        scored = score_pool(cards, green_commander, StaticScorer(default=-3.0))

        assert scored[0].synergy_score == 0.0

    def test_scorer_tags_are_carried(self, green_commander: Commander) -> None:
        cards = [build_card("Cultivate", type_line="Sorcery")]
        scorer = StaticScorer(tags={"Cultivate": {"ramp"}})

        scored = score_pool(cards, green_commander, scorer)

        assert scored[0].tags == frozenset({"ramp"})

    def test_theme_keywords_add_bonus_per_match(self, green_commander: Commander) -> None:
        cards = [
            build_card(
                "Elvish Archdruid", oracle_text="Other Elf creatures you control get +1/+1."
            ),
            build_card("Grizzly Bears", type_line="Creature — Bear"),
        ]

        scored = score_pool(cards, green_commander, StaticScorer(), ["elf", "+1/+1", "dragon"])

        assert scored[0].category_tag_bonus == 3.0
        assert scored[0].total_score == 4.0
        assert scored[1].category_tag_bonus == 0.0

    def test_theme_bonus_matches_name_and_type_case_insensitively(self) -> None:
        card = build_card("Elvish Mystic", type_line="Creature — Elf Druid")
        assert theme_bonus(card, ["ELVISH", "druid", "  "]) == 3.0


class TestRankCards:
    """Tests for the ranking comparator."""

    def test_higher_score_first(self) -> None:
        low = ScoredCard(card=build_card("A"), synergy_score=2.0)
        high = ScoredCard(card=build_card("B"), synergy_score=5.0)

        assert rank_cards([low, high]) == [high, low]

    def test_scores_within_tolerance_fall_through_to_curve_fit(self) -> None:
        """5.0 and 5.05 tie on score, so the better curve bucket wins."""
        curve = {0: 0, 1: 0, 2: 30, 3: 0, 4: 0, 5: 0, 6: 5}
        two_drop = ScoredCard(card=build_card("Two", cmc=2.0), synergy_score=5.0)
        seven_drop = ScoredCard(card=build_card("Seven", cmc=7.0), synergy_score=5.05)

        assert rank_cards([seven_drop, two_drop], curve)[0] is two_drop

    def test_power_level_then_popularity_then_name(self) -> None:
        strong = ScoredCard(card=build_card("Zed"), synergy_score=5.0, power_level=8.0)
        popular = ScoredCard(card=build_card("Yak", popularity_rank=10), synergy_score=5.0)
        unranked = ScoredCard(card=build_card("Ant"), synergy_score=5.0)
        also_unranked = ScoredCard(card=build_card("Bee"), synergy_score=5.0)

        ranked = rank_cards([also_unranked, unranked, popular, strong])

        assert [sc.name for sc in ranked] == ["Zed", "Yak", "Ant", "Bee"]

    def test_ranking_is_input_order_independent(self) -> None:
        cards = score_descending(build_pool({C.CREATURE: 6}))
        assert rank_cards(cards) == rank_cards(list(reversed(cards)))


class TestSelectCandidates:
    """Tests for quota-bounded selection."""

    def test_takes_best_up_to_target(self) -> None:
        pool = score_descending(build_pool({C.CREATURE: 10, C.INSTANT: 10}))
        quotas = {C.CREATURE: _quota(4), C.INSTANT: _quota(2)}

        selected = select_candidates(pool, quotas)

        names = [sc.name for sc in selected]
        assert names == [
            "Creature 00",
            "Creature 01",
            "Creature 02",
            "Creature 03",
            "Instant 00",
            "Instant 01",
        ]

    def test_short_category_is_not_substituted(self) -> None:
        """Two sorceries for a target of 5 leaves the gap open."""
        pool = score_descending(build_pool({C.CREATURE: 10, C.SORCERY: 2}))
        quotas = {C.CREATURE: _quota(3), C.SORCERY: _quota(5)}

        selected = select_candidates(pool, quotas)

        counts = {c: sum(1 for sc in selected if sc.category == c) for c in quotas}
        assert counts == {C.CREATURE: 3, C.SORCERY: 2}

    def test_only_creatures_when_other_weights_zero(self) -> None:
        pool = score_descending(
            build_pool({C.CREATURE: 70, C.ARTIFACT: 10, C.INSTANT: 10, C.PLANESWALKER: 3})
        )
        quotas = {
            C.CREATURE: _quota(60),
            C.ARTIFACT: _quota(0),
            C.ENCHANTMENT: _quota(0),
            C.INSTANT: _quota(0),
            C.SORCERY: _quota(0),
            C.PLANESWALKER: _quota(0),
        }

        selected = select_candidates(pool, quotas)

        assert len(selected) == 60
        assert {sc.category for sc in selected} == {C.CREATURE}

    def test_lands_are_never_selected(self) -> None:
        pool = score_descending(build_pool({C.LAND: 5, C.CREATURE: 2}))

        selected = select_candidates(pool, {C.CREATURE: _quota(5)})

        assert all(not sc.card.is_land for sc in selected)
        assert len(selected) == 2

    def test_duplicate_names_selected_once(self) -> None:
        first = ScoredCard(card=build_card("Llanowar Elves"), synergy_score=3.0)
        reprint = ScoredCard(card=build_card("Llanowar Elves"), synergy_score=2.0)
        other = ScoredCard(card=build_card("Fyndhorn Elves"), synergy_score=1.0)

        selected = select_candidates([first, reprint, other], {C.CREATURE: _quota(3)})

        assert [sc.name for sc in selected] == ["Llanowar Elves", "Fyndhorn Elves"]
