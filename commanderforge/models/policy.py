"""
Power-level policies and archetype mana curves.

A policy is a named preset of functional-role counts. Its land count fixes
the non-land slot budget handed to the quota allocator; its role counts are
checked against the finished deck.
"""

from dataclasses import dataclass

from commanderforge.models.card import Commander


@dataclass(frozen=True, slots=True)
class PowerPolicy:
    """Target role counts for one power level."""

    level: int
    lands: int
    ramp: int
    draw: int
    removal: int
    board_wipes: int
    tutors: int
    protection: int
    synergy: int
    avg_mv_target: float

    def role_targets(self) -> dict[str, int]:
        """Role tag -> target count, for roles the scorer tags."""
        return {
            "ramp": self.ramp,
            "draw": self.draw,
            "removal": self.removal,
            "board_wipe": self.board_wipes,
            "tutor": self.tutors,
            "protection": self.protection,
        }


POWER_POLICIES: dict[int, PowerPolicy] = {
    1: PowerPolicy(1, lands=38, ramp=10, draw=8, removal=5, board_wipes=2, tutors=0,
                   protection=2, synergy=34, avg_mv_target=3.8),
    2: PowerPolicy(2, lands=37, ramp=11, draw=9, removal=6, board_wipes=2, tutors=0,
                   protection=3, synergy=31, avg_mv_target=3.6),
    3: PowerPolicy(3, lands=37, ramp=12, draw=10, removal=7, board_wipes=3, tutors=1,
                   protection=3, synergy=26, avg_mv_target=3.4),
    4: PowerPolicy(4, lands=36, ramp=12, draw=11, removal=8, board_wipes=3, tutors=2,
                   protection=3, synergy=24, avg_mv_target=3.2),
    5: PowerPolicy(5, lands=36, ramp=13, draw=11, removal=8, board_wipes=3, tutors=3,
                   protection=4, synergy=21, avg_mv_target=3.0),
    6: PowerPolicy(6, lands=35, ramp=14, draw=12, removal=9, board_wipes=4, tutors=4,
                   protection=4, synergy=17, avg_mv_target=2.8),
    7: PowerPolicy(7, lands=34, ramp=15, draw=13, removal=10, board_wipes=4, tutors=5,
                   protection=4, synergy=14, avg_mv_target=2.6),
    8: PowerPolicy(8, lands=33, ramp=16, draw=14, removal=11, board_wipes=4, tutors=6,
                   protection=4, synergy=11, avg_mv_target=2.4),
    9: PowerPolicy(9, lands=32, ramp=17, draw=15, removal=12, board_wipes=3, tutors=8,
                   protection=4, synergy=8, avg_mv_target=2.2),
    10: PowerPolicy(10, lands=31, ramp=18, draw=16, removal=13, board_wipes=2, tutors=12,
                    protection=4, synergy=3, avg_mv_target=2.0),
}


def get_power_policy(power_level: float) -> PowerPolicy:
    """Get the policy for a power level, rounded and clamped to 1-10."""
    level = max(1, min(10, round(power_level)))
    return POWER_POLICIES[level]


# Ideal non-land distribution over CMC buckets 0..6 (6 = 6+)
ARCHETYPE_CURVES: dict[str, dict[int, int]] = {
    "aggro": {0: 2, 1: 12, 2: 18, 3: 14, 4: 8, 5: 5, 6: 6},
    "midrange": {0: 3, 1: 8, 2: 14, 3: 16, 4: 12, 5: 8, 6: 6},
    "control": {0: 4, 1: 6, 2: 12, 3: 14, 4: 10, 5: 8, 6: 11},
    "ramp": {0: 5, 1: 4, 2: 10, 3: 12, 4: 8, 5: 10, 6: 16},
    "combo": {0: 6, 1: 10, 2: 15, 3: 14, 4: 10, 5: 6, 6: 4},
}


def cmc_bucket(cmc: float) -> int:
    """Convert CMC to curve bucket (0-6, where 6 = 6+)."""
    if cmc <= 0:
        return 0
    return min(6, int(cmc))


def curve_fit(cmc: float, target_curve: dict[int, int]) -> float:
    """Share of the target curve that sits in this card's bucket (0-1)."""
    total = sum(target_curve.values())
    if total == 0:
        return 0.0
    return target_curve.get(cmc_bucket(cmc), 0) / total


def detect_archetype(commander: Commander) -> str:
    """
    Classify the commander's game plan from its rules text.

    Checked in order: aggro, control, ramp, combo; midrange otherwise.
    """
    text = commander.card.oracle_text.lower()
    cmc = commander.card.cmc

    if "haste" in text or "attack" in text or "combat damage" in text:
        return "aggro"
    if "counter" in text or "draw" in text or "instant" in text or "flash" in text:
        return "control"
    if ("land" in text and ("play" in text or "put" in text)) or "mana" in text or cmc >= 6:
        return "ramp"
    if "untap" in text or "copy" in text or "storm" in text or "cascade" in text:
        return "combo"
    return "midrange"
