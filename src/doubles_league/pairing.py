import random
from typing import Dict, Iterator, List, NamedTuple, Sequence, Tuple

from doubles_league.config import COST_GAP, COST_VIOLATION, TIER_BIAS_WEIGHT, SchedulerConfig
from doubles_league.roster import TIER_COMBOS, TIERS, tier_combo
from doubles_league.wheel import PartnerPair


class Match(NamedTuple):
    team1: PartnerPair
    team2: PartnerPair


# rounds -> matches; Match/PartnerPair are immutable so a list-of-lists copy is a full snapshot
Rounds = List[List[Match]]


def copy_rounds(rounds: Rounds) -> Rounds:
    return [list(r) for r in rounds]


def opponent_pairs(match: Match) -> Iterator[Tuple[int, int]]:
    for p in match.team1:
        for q in match.team2:
            yield p, q


def grouping_count(matches_per_round: int) -> int:
    """Number of ways to group 2k partner-pairs into k matches: (2k-1)!!."""
    if matches_per_round < 0:
        raise ValueError("matches_per_round must be 0 or more")
    total = 1
    for odd in range(2 * matches_per_round - 1, 0, -2):
        total *= odd
    return total


def iter_groupings(pairs: Sequence[PartnerPair]) -> Iterator[List[Match]]:
    if len(pairs) % 2 != 0:
        raise ValueError(f"cannot group an odd number of partner pairs ({len(pairs)})")
    if not pairs:
        yield []
        return
    first, rest = pairs[0], list(pairs[1:])
    for idx, other in enumerate(rest):
        remaining = rest[:idx] + rest[idx + 1:]
        for tail in iter_groupings(remaining):
            yield [Match(first, other)] + tail


def default_grouping(pairs: Sequence[PartnerPair]) -> List[Match]:
    return [Match(pairs[i], pairs[i + 1]) for i in range(0, len(pairs) - 1, 2)]


def random_grouping(pairs: Sequence[PartnerPair], rng: random.Random) -> List[Match]:
    shuffled = list(pairs)
    rng.shuffle(shuffled)
    return default_grouping(shuffled)


class OpponentCounts:
    """Symmetric N x N matrix of how often two players were opponents."""

    def __init__(self, n: int):
        self.n = n
        self.m: List[List[int]] = [[0] * n for _ in range(n)]

    @classmethod
    def from_rounds(cls, rounds: Rounds, n: int) -> "OpponentCounts":
        counts = cls(n)
        for week in rounds:
            for match in week:
                counts.apply_match(match, 1)
        return counts

    def apply_match(self, match: Match, delta: int) -> None:
        m = self.m
        for p, q in opponent_pairs(match):
            m[p][q] += delta
            m[q][p] += delta

    def apply_swap(self, stay1: PartnerPair, move1: PartnerPair,
                   stay2: PartnerPair, move2: PartnerPair) -> None:
        # (stay1 v move1), (stay2 v move2) -> (stay1 v move2), (stay2 v move1)
        m = self.m
        for stay, out, inc in ((stay1, move1, move2), (stay2, move2, move1)):
            for p in stay:
                for q in out:
                    m[p][q] -= 1
                    m[q][p] -= 1
                for q in inc:
                    m[p][q] += 1
                    m[q][p] += 1

    def copy(self) -> "OpponentCounts":
        other = OpponentCounts(self.n)
        other.m = [row[:] for row in self.m]
        return other

    def get(self, i: int, j: int) -> int:
        return self.m[i][j]

    def iter_pairs(self) -> Iterator[Tuple[int, int, int]]:
        for i in range(self.n):
            row = self.m[i]
            for j in range(i + 1, self.n):
                yield i, j, row[j]


def band_violations(counts: OpponentCounts, low: int = 1, high: int = 3) -> List[Tuple[int, int, int]]:
    return [(i, j, c) for i, j, c in counts.iter_pairs() if c < low or c > high]


def is_hard_valid(counts: OpponentCounts) -> bool:
    return all(1 <= c <= 3 for _, _, c in counts.iter_pairs())


def count_3x_by_tier(counts: OpponentCounts, tiers: Sequence[str]) -> Dict[str, int]:
    out = {combo: 0 for combo in TIER_COMBOS}
    for i, j, c in counts.iter_pairs():
        if c == 3:
            out[tier_combo(tiers[i], tiers[j])] += 1
    return out


def is_tier_fair(counts: OpponentCounts, tiers: Sequence[str]) -> bool:
    """A-C triple meetings must not outnumber A-A ones."""
    by_tier = count_3x_by_tier(counts, tiers)
    return by_tier["AC"] <= by_tier["AA"]


class CostModel:
    """Per-pair opponent-count cost.

    count 2 is free; 1 and 3 pay the gap cost; 0 and 4+ pay the violation
    cost, growing with the distance from the band. A 3x repeat additionally
    pays tier_bias_weight per tier step between the two players.
    """

    def __init__(self, tiers: Sequence[str], gap_cost: int = COST_GAP,
                 violation_cost: int = COST_VIOLATION, tier_bias_weight: int = TIER_BIAS_WEIGHT):
        self.n = len(tiers)
        self.tiers = list(tiers)
        self.gap_cost = gap_cost
        self.violation_cost = violation_cost
        self.tier_bias_weight = tier_bias_weight
        rank = {t: idx for idx, t in enumerate(TIERS)}
        self._bias = [[tier_bias_weight * abs(rank[a] - rank[b]) for b in self.tiers] for a in self.tiers]

    @classmethod
    def from_config(cls, tiers: Sequence[str], config: SchedulerConfig) -> "CostModel":
        return cls(tiers, gap_cost=config.gap_cost, violation_cost=config.violation_cost,
                   tier_bias_weight=config.tier_bias_weight)

    def pair_cost(self, i: int, j: int, count: int) -> int:
        if count == 2:
            return 0
        if count == 1:
            return self.gap_cost
        if count == 3:
            return self.gap_cost + self._bias[i][j]
        if count <= 0:
            return self.violation_cost
        return self.violation_cost * (count - 2)

    def total(self, counts: OpponentCounts) -> int:
        return sum(self.pair_cost(i, j, c) for i, j, c in counts.iter_pairs())

    def swap_delta(self, counts: OpponentCounts, stay1: PartnerPair, move1: PartnerPair,
                   stay2: PartnerPair, move2: PartnerPair) -> int:
        """Cost change of swapping move1 and move2 between their matches.

        Only the 16 opponent pairs of the two matches change, and they are
        all distinct because the four teams are disjoint.
        """

        m = counts.m
        cost = self.pair_cost
        delta = 0
        for stay, out, inc in ((stay1, move1, move2), (stay2, move2, move1)):
            for p in stay:
                row = m[p]
                for q in out:
                    c = row[q]
                    delta += cost(p, q, c - 1) - cost(p, q, c)
                for q in inc:
                    c = row[q]
                    delta += cost(p, q, c + 1) - cost(p, q, c)
        return delta
