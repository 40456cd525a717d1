import logging
import random
import time
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence, Union

from doubles_league.config import SchedulerConfig
from doubles_league.formatter import Fixture, format_fixtures, parse_start_date
from doubles_league.optimizer import FULLY_VALID, GLOBAL_BEST, optimize
from doubles_league.pairing import CostModel, is_tier_fair
from doubles_league.roster import Player, ScheduleError, roster_tiers, validate_roster
from doubles_league.stats import (
    ScheduleInvariantError,
    ScheduleStats,
    build_explanation,
    collect_stats,
    fairness_error,
    validate_schedule,
)
from doubles_league.wheel import build_partner_wheel


logger = logging.getLogger(__name__)


@dataclass
class StrictResult:
    ok: bool
    fixtures: Optional[List[List[Fixture]]] = None
    stats: Optional[ScheduleStats] = None
    explanation: Optional[str] = None
    error: Optional[ScheduleError] = None
    quality: Optional[str] = None


def generate_strict_schedule(
    players: Sequence[Player],
    start_date: Union[date, str],
    max_time_ms: Optional[int] = None,
    config: Optional[SchedulerConfig] = None,
    seed: Optional[int] = None,
) -> StrictResult:
    """Build a partner-perfect season with every opponent count in 1..3.

    Expected failures (bad roster, no schedule inside the 1..3 band within
    the time budget) come back as ``StrictResult(ok=False)``; a failed
    search still carries stats for inspection but never fixtures.
    ``seed`` makes the randomized search reproducible.
    """

    config = (config or SchedulerConfig()).validate()
    budget_ms = config.time_budget_ms if max_time_ms is None else int(max_time_ms)
    if budget_ms <= 0:
        raise ValueError("max_time_ms must be positive")
    deadline = time.monotonic() + budget_ms / 1000.0

    error = validate_roster(players)
    if error is not None:
        logger.info("roster rejected: %s", error.code)
        return StrictResult(ok=False, error=error)
    start = parse_start_date(start_date)

    n = len(players)
    tiers = roster_tiers(players, config.tier_thresholds)
    wheel = build_partner_wheel(n)
    cost_model = CostModel.from_config(tiers, config)
    outcome = optimize(wheel, cost_model, config, random.Random(seed), deadline)

    counts = validate_schedule(outcome.rounds, n)
    quality = None if outcome.quality == GLOBAL_BEST else outcome.quality
    stats = collect_stats(counts, players, tiers, cost_model, config, quality)

    error = fairness_error(counts, players)
    if error is not None:
        if quality is not None:
            raise ScheduleInvariantError(f"search reported {quality} but the band check failed: {error.message}")
        logger.warning("no hard-valid schedule within %d ms: %s", budget_ms, error.message)
        return StrictResult(ok=False, stats=stats, error=error)
    if quality is None:
        raise ScheduleInvariantError("search lost a hard-valid schedule it had evaluated")
    if quality == FULLY_VALID and not is_tier_fair(counts, tiers):
        raise ScheduleInvariantError("search reported fully_valid but A-C repeats exceed A-A")

    return StrictResult(
        ok=True,
        fixtures=format_fixtures(outcome.rounds, players, start),
        stats=stats,
        explanation=build_explanation(stats, n, config),
        quality=quality,
    )
