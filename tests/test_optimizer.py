import random
import time

from doubles_league.config import SchedulerConfig
from doubles_league.optimizer import (
    FULLY_VALID,
    GLOBAL_BEST,
    HARD_VALID,
    optimize,
    search_space_size,
)
from doubles_league.pairing import CostModel, OpponentCounts, is_hard_valid, is_tier_fair
from doubles_league.roster import roster_tiers
from doubles_league.stats import partner_counts
from doubles_league.wheel import build_partner_wheel


def _run(players, config, seed=1, budget_s=10.0):
    tiers = roster_tiers(players, config.tier_thresholds)
    wheel = build_partner_wheel(len(players))
    model = CostModel.from_config(tiers, config)
    outcome = optimize(wheel, model, config, random.Random(seed), time.monotonic() + budget_s)
    return outcome, tiers, wheel


def _partner_set(rounds):
    return {pair for pair, c in partner_counts(rounds).items() if c == 1}


def test_search_space_size_caps_early():
    assert search_space_size(build_partner_wheel(4), 10) == 1
    assert search_space_size(build_partner_wheel(8), 10_000) == 3 ** 7
    assert search_space_size(build_partner_wheel(12), 100) > 100


def test_four_players_is_forced_and_perfect(make_players):
    outcome, _, _ = _run(make_players(4), SchedulerConfig())
    assert outcome.exhaustive
    assert outcome.quality == FULLY_VALID
    assert outcome.cost == 0
    assert len(outcome.rounds) == 3
    assert all(len(week) == 1 for week in outcome.rounds)


def test_eight_players_exhaustive_finds_valid_schedule(make_players):
    players = make_players(8)
    outcome, tiers, wheel = _run(players, SchedulerConfig())
    assert outcome.exhaustive
    assert outcome.quality == FULLY_VALID
    counts = OpponentCounts.from_rounds(outcome.rounds, 8)
    assert is_hard_valid(counts)
    assert len(_partner_set(outcome.rounds)) == 28


def test_local_search_keeps_partners_and_meets_band(make_players):
    players = make_players(12)
    config = SchedulerConfig(exhaustive_limit=0)
    outcome, tiers, wheel = _run(players, config, seed=3)
    assert not outcome.exhaustive
    assert outcome.restarts >= 1
    assert outcome.quality in (FULLY_VALID, HARD_VALID)

    counts = OpponentCounts.from_rounds(outcome.rounds, 12)
    assert is_hard_valid(counts)
    if outcome.quality == FULLY_VALID:
        assert is_tier_fair(counts, tiers)
    # only the opponent grouping changed; partnerships are exactly the wheel's
    wheel_pairs = {tuple(sorted(p)) for pairs in wheel for p in pairs}
    assert _partner_set(outcome.rounds) == wheel_pairs
    for week, pairs in zip(outcome.rounds, wheel):
        assert sorted(tuple(sorted(t)) for m in week for t in m) == sorted(tuple(sorted(p)) for p in pairs)


def test_reported_cost_matches_recomputed_cost(make_players):
    players = make_players(12)
    config = SchedulerConfig(exhaustive_limit=0)
    outcome, tiers, _ = _run(players, config, seed=8)
    model = CostModel.from_config(tiers, config)
    assert model.total(OpponentCounts.from_rounds(outcome.rounds, 12)) == outcome.cost


def test_expired_deadline_returns_baseline_without_restarts(make_players):
    players = make_players(12)
    config = SchedulerConfig(exhaustive_limit=0)
    tiers = roster_tiers(players)
    outcome = optimize(build_partner_wheel(12), CostModel.from_config(tiers, config), config,
                       random.Random(0), time.monotonic() - 1.0)
    assert outcome.timed_out
    assert outcome.restarts == 0
    # the rotated default grouping repeats neighbours far too often
    assert outcome.quality == GLOBAL_BEST


def test_starved_search_keeps_restarting_until_the_deadline(make_players):
    players = make_players(20)
    config = SchedulerConfig(exhaustive_limit=0, max_restarts=1, max_iterations=1, swaps_per_round=1)
    started = time.monotonic()
    outcome, _, _ = _run(players, config, seed=7, budget_s=0.3)
    assert time.monotonic() - started >= 0.3
    assert outcome.timed_out
    # the restart cap does not apply while nothing in band has been found
    assert outcome.restarts > config.max_restarts
    assert outcome.quality == GLOBAL_BEST
    assert outcome.cost >= config.violation_cost


def test_restart_cap_applies_once_a_valid_schedule_is_held(make_players):
    players = make_players(12)
    config = SchedulerConfig(exhaustive_limit=0, max_restarts=1)
    outcome, _, _ = _run(players, config, seed=3, budget_s=30.0)
    assert outcome.quality in (FULLY_VALID, HARD_VALID)
    assert outcome.restarts >= 1
    assert not outcome.timed_out


def test_hard_valid_schedules_kept_above_violation_cost(make_players):
    players = make_players(8)
    config = SchedulerConfig(gap_cost=1000, violation_cost=5000)
    outcome, _, _ = _run(players, config)
    assert outcome.exhaustive
    assert outcome.quality in (FULLY_VALID, HARD_VALID)
    counts = OpponentCounts.from_rounds(outcome.rounds, 8)
    assert is_hard_valid(counts)
    # no schedule in band is this cheap, so the pick was made on the counts
    assert outcome.cost >= config.violation_cost
