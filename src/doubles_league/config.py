from dataclasses import dataclass, fields, replace
from typing import Tuple


DEFAULT_TIME_BUDGET_MS = 5000

# Cost scale. Any pair outside the 1..3 band costs at least COST_VIOLATION,
# so a schedule is hard-valid exactly when its cost stays below it.
COST_GAP = 1000
COST_VIOLATION = 50_000_000
TIER_BIAS_WEIGHT = 40  # added per tier step for a 3x repeat (A-C = 2 steps)

# Seed <= 4 -> A, <= 8 -> B, else C
TIER_THRESHOLDS: Tuple[int, int] = (4, 8)

UPHILL_PROBABILITY = 0.05
UPHILL_THRESHOLD = 2000  # 2 -> 3 costs COST_GAP, so this must stay above it

MAX_RESTARTS = 5
MAX_ITERATIONS = 4000
STALL_ITERATIONS = 1200
SWAPS_PER_ROUND = 20
DEADLINE_CHECK_INTERVAL = 16

# Exact enumeration when the product of per-round groupings is this small
EXHAUSTIVE_LIMIT = 4096

SOS_DEVIATION = 1.0
SEED_BAND_TOP = 0.66
SEED_BAND_LOW = 0.33


@dataclass(frozen=True)
class SchedulerConfig:
    time_budget_ms: int = DEFAULT_TIME_BUDGET_MS
    gap_cost: int = COST_GAP
    violation_cost: int = COST_VIOLATION
    tier_bias_weight: int = TIER_BIAS_WEIGHT
    tier_thresholds: Tuple[int, int] = TIER_THRESHOLDS
    uphill_probability: float = UPHILL_PROBABILITY
    uphill_threshold: int = UPHILL_THRESHOLD
    max_restarts: int = MAX_RESTARTS
    max_iterations: int = MAX_ITERATIONS
    stall_iterations: int = STALL_ITERATIONS
    swaps_per_round: int = SWAPS_PER_ROUND
    deadline_check_interval: int = DEADLINE_CHECK_INTERVAL
    exhaustive_limit: int = EXHAUSTIVE_LIMIT
    sos_deviation: float = SOS_DEVIATION
    seed_band_top: float = SEED_BAND_TOP
    seed_band_low: float = SEED_BAND_LOW

    def validate(self) -> "SchedulerConfig":
        """Raise ValueError for settings the search cannot work with."""
        if self.time_budget_ms <= 0:
            raise ValueError("time_budget_ms must be positive")
        if self.gap_cost <= 0 or self.violation_cost <= 0:
            raise ValueError("gap_cost and violation_cost must be positive")
        if self.violation_cost <= self.gap_cost:
            raise ValueError("violation_cost must be larger than gap_cost")
        if self.tier_bias_weight < 0:
            raise ValueError("tier_bias_weight must be 0 or more")
        a_max, b_max = self.tier_thresholds
        if not (1 <= a_max <= b_max):
            raise ValueError(f"tier_thresholds must satisfy 1 <= A <= B, got {self.tier_thresholds}")
        if not (0.0 <= self.uphill_probability <= 1.0):
            raise ValueError("uphill_probability must be within 0..1")
        if self.uphill_threshold < 0:
            raise ValueError("uphill_threshold must be 0 or more")
        for name in ("max_restarts", "max_iterations", "stall_iterations",
                     "swaps_per_round", "deadline_check_interval"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.exhaustive_limit < 0:
            raise ValueError("exhaustive_limit must be 0 or more")
        if self.sos_deviation < 0:
            raise ValueError("sos_deviation must be 0 or more")
        if not (0.0 <= self.seed_band_low <= self.seed_band_top <= 1.0):
            raise ValueError("seed bands must satisfy 0 <= low <= top <= 1")
        return self

    def with_overrides(self, **overrides) -> "SchedulerConfig":
        # None means "keep the current value" so CLI options can pass through blindly.
        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ValueError(f"Unknown config fields: {unknown}")
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)
