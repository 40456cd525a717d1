from collections import Counter
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from doubles_league.config import TIER_THRESHOLDS


ERR_N_DIV_4 = "STRICT_MODE_REQUIRES_N_DIV_4"
ERR_MISSING_SEEDS = "MISSING_SEEDS"
ERR_INVALID_SEED = "INVALID_SEED"
ERR_DUPLICATE_ID = "DUPLICATE_PLAYER_ID"
ERR_FAIRNESS = "FAIRNESS_VALIDATION_FAILED"

TIERS = ("A", "B", "C")
TIER_COMBOS = ("AA", "AB", "AC", "BB", "BC", "CC")


@dataclass(frozen=True)
class Player:
    id: str
    seed: Optional[int]
    name: str = ""

    @property
    def label(self) -> str:
        return self.name or self.id


@dataclass(frozen=True)
class ScheduleError:
    code: str
    message: str


def _sample_names(players: Sequence[Player], limit: int = 5) -> str:
    names = [p.label for p in players[:limit]]
    suffix = " ..." if len(players) > limit else ""
    return ", ".join(names) + suffix


def validate_roster(players: Sequence[Player]) -> Optional[ScheduleError]:
    """Check the roster preconditions for strict mode.

    Returns the first failed precondition, or None when the roster is usable.
    Seeds are never defaulted: a player without one is an error.
    """

    n = len(players)
    if n == 0 or n % 4 != 0:
        return ScheduleError(
            ERR_N_DIV_4,
            f"Strict mode requires N divisible by 4 (e.g., 12, 16, 20). You provided {n}.",
        )

    dupes = [pid for pid, c in Counter(p.id for p in players).items() if c > 1]
    if dupes:
        return ScheduleError(ERR_DUPLICATE_ID, f"Player ids must be unique. Duplicated: {sorted(dupes)}")

    missing = [p for p in players if p.seed is None]
    if missing:
        return ScheduleError(
            ERR_MISSING_SEEDS,
            f"All players must have a seed for seeded strict mode. Missing: {_sample_names(missing)}",
        )

    # bool is an int subclass; True is not a seed
    bad = [p for p in players if isinstance(p.seed, bool) or not isinstance(p.seed, int) or p.seed < 1]
    if bad:
        return ScheduleError(
            ERR_INVALID_SEED,
            f"Seeds must be positive integers (1 = strongest). Invalid: "
            + ", ".join(f"{p.label}={p.seed!r}" for p in bad[:5]),
        )
    return None


def tier_for_seed(seed: int, thresholds: Tuple[int, int] = TIER_THRESHOLDS) -> str:
    a_max, b_max = thresholds
    if seed <= a_max:
        return "A"
    if seed <= b_max:
        return "B"
    return "C"


def tier_combo(t1: str, t2: str) -> str:
    return "".join(sorted((t1, t2)))


def roster_tiers(players: Sequence[Player], thresholds: Tuple[int, int] = TIER_THRESHOLDS) -> List[str]:
    return [tier_for_seed(int(p.seed), thresholds) for p in players]


def describe_tiers(thresholds: Tuple[int, int] = TIER_THRESHOLDS) -> str:
    a_max, b_max = thresholds
    return f"A=1-{a_max}, B={a_max + 1}-{b_max}, C={b_max + 1}+"
