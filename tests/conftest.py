"""Shared card fixtures."""

from collections.abc import Callable

import pytest

from commanderforge.models.card import Card, Commander
from factories import build_card


@pytest.fixture
def make_card() -> Callable[..., Card]:
    """Factory for single test cards."""
    return build_card


@pytest.fixture
def green_commander() -> Commander:
    """Mono-green elf commander."""
    return Commander(
        build_card(
            "Marwyn, the Nurturer",
            type_line="Legendary Creature — Elf Druid",
            color_identity=["G"],
            cmc=3.0,
            mana_cost="{2}{G}",
            oracle_text=(
                "Whenever another Elf enters the battlefield under your control, "
                "put a +1/+1 counter on Marwyn, the Nurturer."
            ),
        )
    )


@pytest.fixture
def azorius_commander() -> Commander:
    """White-blue commander."""
    return Commander(
        build_card(
            "Hanna, Ship's Navigator",
            type_line="Legendary Creature — Human Artificer",
            color_identity=["W", "U"],
            cmc=3.0,
            mana_cost="{1}{W}{U}",
            oracle_text=(
                "{1}{W}{U}, {T}: Return target artifact or enchantment card "
                "from your graveyard to your hand."
            ),
        )
    )


@pytest.fixture
def colorless_commander() -> Commander:
    """Colorless commander."""
    return Commander(
        build_card(
            "Kozilek, the Great Distortion",
            type_line="Legendary Creature — Eldrazi",
            color_identity=[],
            cmc=10.0,
            mana_cost="{8}{C}{C}",
            oracle_text="When you cast this spell, if you have fewer than seven cards "
            "in hand, draw cards equal to the difference.",
        )
    )
