import itertools
import logging
import random
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from doubles_league.config import SchedulerConfig
from doubles_league.pairing import (
    CostModel,
    Match,
    OpponentCounts,
    Rounds,
    copy_rounds,
    default_grouping,
    grouping_count,
    is_hard_valid,
    is_tier_fair,
    iter_groupings,
    random_grouping,
)
from doubles_league.wheel import PartnerPair


logger = logging.getLogger(__name__)

FULLY_VALID = "fully_valid"
HARD_VALID = "hard_valid"
GLOBAL_BEST = "global_best"


@dataclass
class Candidate:
    cost: int
    rounds: Rounds


@dataclass
class SearchOutcome:
    rounds: Rounds
    cost: int
    quality: str
    restarts: int = 0
    moves: int = 0
    timed_out: bool = False
    exhaustive: bool = False


class _Retention:
    """Best schedule seen at each quality level."""

    def __init__(self, tiers: Sequence[str]):
        self.tiers = tiers
        self.global_best: Optional[Candidate] = None
        self.hard_valid: Optional[Candidate] = None
        self.fully_valid: Optional[Candidate] = None

    def offer(self, rounds: Rounds, counts: OpponentCounts, cost: int) -> None:
        improves_global = self.global_best is None or cost < self.global_best.cost
        improves_hard = self.hard_valid is None or cost < self.hard_valid.cost
        improves_full = self.fully_valid is None or cost < self.fully_valid.cost
        if not (improves_global or improves_hard or improves_full):
            return

        # checked on the counts: a hard-valid schedule may still cost more than violation_cost
        hard = (improves_hard or improves_full) and is_hard_valid(counts)
        if not (improves_global or hard):
            return

        snapshot = copy_rounds(rounds)
        if improves_global:
            self.global_best = Candidate(cost, snapshot)
        if hard:
            if improves_hard:
                self.hard_valid = Candidate(cost, snapshot)
            if improves_full and is_tier_fair(counts, self.tiers):
                self.fully_valid = Candidate(cost, snapshot)

    def select(self) -> Tuple[Candidate, str]:
        if self.fully_valid is not None:
            return self.fully_valid, FULLY_VALID
        if self.hard_valid is not None:
            return self.hard_valid, HARD_VALID
        if self.global_best is None:
            raise RuntimeError("search finished without evaluating a single schedule")
        return self.global_best, GLOBAL_BEST


def search_space_size(wheel: Sequence[Sequence[PartnerPair]], cap: int) -> int:
    """Product of per-round groupings, stopping once it exceeds cap."""
    per_round = grouping_count(len(wheel[0]) // 2) if wheel else 1
    total = 1
    for _ in wheel:
        total *= per_round
        if total > cap:
            return total
    return total


def _replace_team(match: Match, slot: int, team: PartnerPair) -> Match:
    if slot == 0:
        return Match(team, match.team2)
    return Match(match.team1, team)


def _local_search(rounds: Rounds, counts: OpponentCounts, cost: int, cost_model: CostModel,
                  config: SchedulerConfig, rng: random.Random, deadline: float,
                  retention: _Retention) -> Tuple[int, int, bool]:
    """Swap teams between matches of one round until the restart stalls.

    Mutates rounds and counts in place; returns (cost, moves tried, timed_out).
    """

    num_rounds = len(rounds)
    per_round = len(rounds[0])
    threshold = config.uphill_threshold
    probability = config.uphill_probability
    check_every = config.deadline_check_interval
    restart_low = cost
    stall = 0
    moves = 0

    for iteration in range(1, config.max_iterations + 1):
        if iteration % check_every == 0 and time.monotonic() >= deadline:
            return cost, moves, True

        week = rounds[rng.randrange(num_rounds)]
        for _ in range(config.swaps_per_round):
            i1 = rng.randrange(per_round)
            i2 = rng.randrange(per_round - 1)
            if i2 >= i1:
                i2 += 1
            m1 = week[i1]
            m2 = week[i2]
            s1 = rng.randrange(2)
            s2 = rng.randrange(2)
            move1, stay1 = m1[s1], m1[1 - s1]
            move2, stay2 = m2[s2], m2[1 - s2]

            delta = cost_model.swap_delta(counts, stay1, move1, stay2, move2)
            moves += 1
            if delta < 0 or (delta < threshold and rng.random() < probability):
                counts.apply_swap(stay1, move1, stay2, move2)
                week[i1] = _replace_team(m1, s1, move2)
                week[i2] = _replace_team(m2, s2, move1)
                cost += delta

        if cost < restart_low:
            restart_low = cost
            stall = 0
            retention.offer(rounds, counts, cost)
            if cost == 0:
                break
        else:
            stall += 1
            if stall >= config.stall_iterations:
                break
    return cost, moves, False


def _exhaustive(wheel: Sequence[Sequence[PartnerPair]], cost_model: CostModel,
                deadline: float, retention: _Retention) -> Tuple[int, bool]:
    per_round_options: List[List[List[Match]]] = [list(iter_groupings(pairs)) for pairs in wheel]
    evaluated = 0
    for combo in itertools.product(*per_round_options):
        if evaluated % 64 == 0 and evaluated and time.monotonic() >= deadline:
            return evaluated, True
        rounds = [list(week) for week in combo]
        counts = OpponentCounts.from_rounds(rounds, cost_model.n)
        retention.offer(rounds, counts, cost_model.total(counts))
        evaluated += 1
    return evaluated, False


def optimize(wheel: Sequence[Sequence[PartnerPair]], cost_model: CostModel, config: SchedulerConfig,
             rng: random.Random, deadline: float) -> SearchOutcome:
    """Choose, per round, which partner pairs oppose each other.

    The wheel itself is never touched. Keeps the cheapest schedule at three
    levels (any, hard band met, hard band plus A-C <= A-A) and returns the
    best level reached. Without a hard-valid schedule the restarts go on
    until the deadline, so a failure always means the time ran out. A
    returned GLOBAL_BEST outcome is not a valid schedule; the caller must
    treat it as a failure.
    """

    if not wheel:
        raise ValueError("cannot optimize an empty partner wheel")
    n = cost_model.n
    retention = _Retention(cost_model.tiers)

    baseline = [default_grouping(pairs) for pairs in wheel]
    baseline_counts = OpponentCounts.from_rounds(baseline, n)
    retention.offer(baseline, baseline_counts, cost_model.total(baseline_counts))

    size = search_space_size(wheel, config.exhaustive_limit)
    if size <= config.exhaustive_limit:
        evaluated, timed_out = _exhaustive(wheel, cost_model, deadline, retention)
        chosen, quality = retention.select()
        logger.debug("exhaustive search over %d groupings: cost=%d quality=%s", evaluated, chosen.cost, quality)
        return SearchOutcome(copy_rounds(chosen.rounds), chosen.cost, quality,
                             moves=evaluated, timed_out=timed_out, exhaustive=True)

    per_round = len(wheel[0]) // 2
    restarts = 0
    total_moves = 0
    timed_out = False
    while retention.fully_valid is None:
        if time.monotonic() >= deadline:
            timed_out = True
            break
        # max_restarts only ends the search once a hard-valid schedule is held
        if restarts >= config.max_restarts and retention.hard_valid is not None:
            break
        restarts += 1
        rounds = [random_grouping(pairs, rng) for pairs in wheel]
        counts = OpponentCounts.from_rounds(rounds, n)
        cost = cost_model.total(counts)
        retention.offer(rounds, counts, cost)
        if per_round >= 2:
            cost, moves, timed_out = _local_search(rounds, counts, cost, cost_model, config, rng,
                                                   deadline, retention)
            total_moves += moves
        retention.offer(rounds, counts, cost)
        logger.debug("restart %d finished at cost %d (hard=%s, full=%s)", restarts, cost,
                     retention.hard_valid is not None, retention.fully_valid is not None)
        if timed_out:
            break

    chosen, quality = retention.select()
    logger.info("search finished: restarts=%d moves=%d cost=%d quality=%s timed_out=%s",
                restarts, total_moves, chosen.cost, quality, timed_out)
    return SearchOutcome(copy_rounds(chosen.rounds), chosen.cost, quality, restarts=restarts,
                         moves=total_moves, timed_out=timed_out)
