from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from doubles_league.config import SchedulerConfig
from doubles_league.pairing import CostModel, OpponentCounts, Rounds, band_violations, count_3x_by_tier
from doubles_league.roster import ERR_FAIRNESS, Player, ScheduleError, describe_tiers


class ScheduleInvariantError(RuntimeError):
    """The engine produced a schedule that breaks its own structure."""


@dataclass
class PlayerStrength:
    id: str
    seed: int
    avg_opponent_seed: float
    matches_vs_top_quartile: int
    matches_vs_bottom_quartile: int


@dataclass
class ScheduleStats:
    max_opponent_repeat: int
    min_opponent_repeat: int
    opponent_count_histogram: Dict[int, int]
    cost: int
    total_3x_pairs: int
    count_3x_by_tier: Dict[str, int]
    seeded_3x_summary: Dict[str, int]
    per_player_strength_of_schedule: List[PlayerStrength] = field(default_factory=list)
    quality: Optional[str] = None
    band_violations: int = 0
    opponent_counts: Optional[OpponentCounts] = field(default=None, repr=False, compare=False)


def validate_schedule(rounds: Rounds, n: int) -> OpponentCounts:
    """Re-check the round structure from scratch and return fresh counts.

    Optimizer state is not trusted here; everything is derived from rounds.
    """

    if len(rounds) != n - 1:
        raise ScheduleInvariantError(f"expected {n - 1} rounds, got {len(rounds)}")
    for idx, week in enumerate(rounds):
        if len(week) != n // 4:
            raise ScheduleInvariantError(f"round {idx + 1} has {len(week)} matches (expected {n // 4})")
        seen = [p for match in week for team in match for p in team]
        if sorted(seen) != list(range(n)):
            raise ScheduleInvariantError(f"round {idx + 1} does not use every player exactly once")
    partners = partner_counts(rounds)
    if len(partners) != n * (n - 1) // 2 or any(c != 1 for c in partners.values()):
        raise ScheduleInvariantError("partner rotation broken: some pair does not partner exactly once")
    return OpponentCounts.from_rounds(rounds, n)


def fairness_error(counts: OpponentCounts, players: Sequence[Player]) -> Optional[ScheduleError]:
    violations = band_violations(counts)
    if not violations:
        return None
    i, j, c = violations[0]
    message = (
        f"Opponent count violation: {players[i].label} vs {players[j].label} "
        f"played {c} times (must be 1-3)."
    )
    if len(violations) > 1:
        message += f" {len(violations) - 1} other pair(s) are also out of range."
    return ScheduleError(ERR_FAIRNESS, message)


def _seed_norms(seeds: Sequence[int]) -> List[float]:
    # 1.0 = strongest seed in the roster, 0.0 = weakest
    hi, lo = max(seeds), min(seeds)
    if hi == lo:
        return [0.5] * len(seeds)
    return [(hi - s) / (hi - lo) for s in seeds]


def _band(norm: float, config: SchedulerConfig) -> str:
    if norm > config.seed_band_top:
        return "top"
    if norm < config.seed_band_low:
        return "low"
    return "mid"


_BAND_KEYS = {
    ("top", "top"): "top_top",
    ("mid", "top"): "top_mid",
    ("mid", "mid"): "mid_mid",
    ("low", "mid"): "mid_low",
    ("low", "low"): "low_low",
    ("low", "top"): "top_low",
}


def collect_stats(counts: OpponentCounts, players: Sequence[Player], tiers: Sequence[str],
                  cost_model: CostModel, config: SchedulerConfig,
                  quality: Optional[str] = None) -> ScheduleStats:
    n = counts.n
    seeds = [int(p.seed) for p in players]
    norms = _seed_norms(seeds)
    bands = [_band(x, config) for x in norms]

    histogram: Counter = Counter()
    seeded = {"total": 0, **{key: 0 for key in _BAND_KEYS.values()}}
    values = []
    for i, j, c in counts.iter_pairs():
        values.append(c)
        histogram[c] += 1
        if c == 3:
            seeded["total"] += 1
            seeded[_BAND_KEYS[tuple(sorted((bands[i], bands[j])))]] += 1

    strengths: List[PlayerStrength] = []
    for idx, p in enumerate(players):
        row = counts.m[idx]
        total = sum(row[o] for o in range(n) if o != idx)
        weighted = sum(seeds[o] * row[o] for o in range(n) if o != idx)
        vs_top = sum(row[o] for o in range(n) if o != idx and norms[o] > config.seed_band_top)
        vs_bottom = sum(row[o] for o in range(n) if o != idx and norms[o] < config.seed_band_low)
        strengths.append(PlayerStrength(
            id=p.id,
            seed=seeds[idx],
            avg_opponent_seed=round(weighted / total, 2) if total else 0.0,
            matches_vs_top_quartile=vs_top,
            matches_vs_bottom_quartile=vs_bottom,
        ))

    by_tier = count_3x_by_tier(counts, tiers)
    return ScheduleStats(
        max_opponent_repeat=max(values) if values else 0,
        min_opponent_repeat=min(values) if values else 0,
        opponent_count_histogram=dict(sorted(histogram.items())),
        cost=cost_model.total(counts),
        total_3x_pairs=histogram.get(3, 0),
        count_3x_by_tier=by_tier,
        seeded_3x_summary=seeded,
        per_player_strength_of_schedule=strengths,
        quality=quality,
        band_violations=len(band_violations(counts)),
        opponent_counts=counts.copy(),
    )


def schedule_outliers(stats: ScheduleStats, deviation: float) -> Tuple[List[str], List[str]]:
    """Players whose average opponent seed is well below (harder) or above (easier) the field."""
    sos = stats.per_player_strength_of_schedule
    if not sos:
        return [], []
    mean = sum(s.avg_opponent_seed for s in sos) / len(sos)
    harder = [s.id for s in sos if s.avg_opponent_seed < mean - deviation]
    easier = [s.id for s in sos if s.avg_opponent_seed > mean + deviation]
    return harder, easier


def build_explanation(stats: ScheduleStats, n: int, config: SchedulerConfig) -> str:
    by_tier = stats.count_3x_by_tier
    lines = [
        f"Generated strict mode schedule for {n} players.",
        "- Constraints: All hard constraints met (Partner rotation, No byes).",
        f"- Fairness: Opponent repeats bounded between {stats.min_opponent_repeat} and {stats.max_opponent_repeat}.",
        f"- Seed Logic: 3x repeats biased by Tier ({describe_tiers(config.tier_thresholds)}).",
        f"  (AA: {by_tier['AA']}, AC: {by_tier['AC']}, CC: {by_tier['CC']}).",
    ]
    if stats.quality == "hard_valid":
        lines.append("- Tier policy: A-C triple repeats outnumber A-A ones; a longer time budget may fix this.")
    harder, easier = schedule_outliers(stats, config.sos_deviation)
    if harder:
        lines.append(f"- Note: Players {', '.join(harder)} have a harder than average schedule.")
    if easier:
        lines.append(f"- Note: Players {', '.join(easier)} have an easier than average schedule.")
    return "\n".join(lines)


def strength_frame(stats: ScheduleStats) -> pd.DataFrame:
    rows = [vars(s) for s in stats.per_player_strength_of_schedule]
    columns = ["id", "seed", "avg_opponent_seed", "matches_vs_top_quartile", "matches_vs_bottom_quartile"]
    return pd.DataFrame(rows, columns=columns)


def opponent_matrix_frame(counts: OpponentCounts, players: Sequence[Player]) -> pd.DataFrame:
    ids = [p.id for p in players]
    return pd.DataFrame(counts.m, index=ids, columns=ids)


def partner_counts(rounds: Rounds) -> Counter:
    """How many times each unordered pair partnered (1 everywhere for a valid season)."""
    out: Counter = Counter()
    for week in rounds:
        for match in week:
            for team in match:
                out[tuple(sorted(team))] += 1
    return out
