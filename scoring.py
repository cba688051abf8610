"""
scoring.py

Gold-standard signal scoring shared by every phenomenon.

A phenomenon watches a fixed set of (usually four) criteria.  The number of
criteria met picks a rate from an ordered table, all criteria met selects the
kind's gold-standard rate, named veto factors subtract fixed penalties, and
the result is clamped to the kind's [floor, ceiling].  Scoring is pure and
deterministic; the only randomness is the single Bernoulli draw made by
`bernoulli()` once per lifecycle.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import math
from typing import Any, Iterable, Mapping

import numpy as np


def _clamp(value: float, lo: float, hi: float) -> float:
    low = min(float(lo), float(hi))
    high = max(float(lo), float(hi))
    return max(low, min(float(value), high))


def _safe_float(value: Any, default: float = 0.0) -> float:
    try:
        out = float(value)
    except (TypeError, ValueError):
        return float(default)
    if not math.isfinite(out):
        return float(default)
    return out


def _is_met(value: Any) -> bool:
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    return False


@dataclass(frozen=True)
class ScoringRubric:
    criteria: tuple[str, ...]
    base_rate: float
    gold_rate: float
    # met-count -> rate for partial subsets (the full set uses gold_rate)
    partial_rates: Mapping[int, float] = field(default_factory=dict)
    # veto name -> additive penalty (negative)
    veto_penalties: Mapping[str, float] = field(default_factory=dict)
    floor: float = 0.20
    ceiling: float = 0.90
    # criterion -> increment added to the table rate while short of gold
    signal_bonuses: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.criteria:
            raise ValueError("rubric needs at least one criterion")
        if len(set(self.criteria)) != len(self.criteria):
            raise ValueError(f"duplicate criteria in rubric: {self.criteria}")
        if self.floor > self.ceiling:
            raise ValueError(f"floor {self.floor} above ceiling {self.ceiling}")
        for count, rate in self.partial_rates.items():
            if not 0 <= int(count) < len(self.criteria):
                raise ValueError(f"partial rate for impossible count {count}")
            if rate > self.gold_rate:
                raise ValueError(f"partial rate {rate} exceeds gold rate {self.gold_rate}")
        ordered = [self.partial_rates[k] for k in sorted(self.partial_rates)]
        if any(b < a for a, b in zip(ordered, ordered[1:])):
            raise ValueError("partial rates must be non-decreasing in met count")
        for name, penalty in self.veto_penalties.items():
            if penalty > 0:
                raise ValueError(f"veto {name!r} must be a penalty, got {penalty}")
        for name, bonus in self.signal_bonuses.items():
            if name not in self.criteria:
                raise ValueError(f"bonus for unknown criterion {name!r}")
            if bonus < 0:
                raise ValueError(f"bonus for {name!r} must not be negative, got {bonus}")

    @property
    def criterion_count(self) -> int:
        return len(self.criteria)


@dataclass
class ScoreBreakdown:
    met_count: int
    criterion_count: int
    pre_veto_rate: float
    applied_vetoes: tuple[str, ...]
    veto_total: float
    probability: float
    bonus_total: float = 0.0

    @property
    def gold_standard(self) -> bool:
        return self.met_count >= self.criterion_count

    def to_status_dict(self) -> dict[str, Any]:
        return {
            "met_count": int(self.met_count),
            "criterion_count": int(self.criterion_count),
            "pre_veto_rate": round(float(self.pre_veto_rate), 4),
            "applied_vetoes": list(self.applied_vetoes),
            "veto_total": round(float(self.veto_total), 4),
            "bonus_total": round(float(self.bonus_total), 4),
            "probability": round(float(self.probability), 4),
            "gold_standard": self.gold_standard,
        }


def count_met(signals: Mapping[str, Any], criteria: Iterable[str]) -> int:
    return sum(1 for name in criteria if _is_met(signals.get(name)))


def rate_for_count(rubric: ScoringRubric, met: int, base_rate: float | None = None) -> float:
    """
    Table lookup for *met* criteria.  Never returns less than the base rate
    and never less than the entry for a smaller count, so turning one more
    signal on cannot lower the rate.
    """
    base = _safe_float(rubric.base_rate if base_rate is None else base_rate, rubric.floor)
    if met >= rubric.criterion_count:
        return float(rubric.gold_rate)
    best = base
    for count, rate in rubric.partial_rates.items():
        if int(count) <= met:
            best = max(best, _safe_float(rate, base))
    return min(best, float(rubric.gold_rate))


def score_breakdown(
    signals: Mapping[str, Any],
    rubric: ScoringRubric,
    vetoes: Iterable[str] = (),
    base_rate: float | None = None,
) -> ScoreBreakdown:
    met = count_met(signals, rubric.criteria)
    pre = rate_for_count(rubric, met, base_rate)
    bonus = 0.0
    if met < rubric.criterion_count:
        bonus = sum(_safe_float(b) for name, b in rubric.signal_bonuses.items() if _is_met(signals.get(name)))
        pre = min(pre + bonus, float(rubric.gold_rate))

    applied: list[str] = []
    total = 0.0
    for name in vetoes:
        if name in applied:
            continue
        penalty = rubric.veto_penalties.get(name)
        if penalty is None:
            continue
        applied.append(name)
        total += _safe_float(penalty)

    probability = _clamp(pre + total, rubric.floor, rubric.ceiling)
    return ScoreBreakdown(
        met_count=met,
        criterion_count=rubric.criterion_count,
        pre_veto_rate=pre,
        applied_vetoes=tuple(applied),
        veto_total=total,
        probability=probability,
        bonus_total=bonus,
    )


def score(
    signals: Mapping[str, Any],
    rubric: ScoringRubric,
    vetoes: Iterable[str] = (),
    base_rate: float | None = None,
) -> float:
    """Probability of the success branch for the given signal snapshot."""
    return score_breakdown(signals, rubric, vetoes, base_rate).probability


def bernoulli(probability: float, rng: np.random.Generator) -> bool:
    p = _clamp(_safe_float(probability), 0.0, 1.0)
    return bool(rng.random() < p)


# --------------------------- Rubrics ---------------------------

SHORT_SQUEEZE_RUBRIC = ScoringRubric(
    criteria=("has_parabolic_extension", "has_volume_climax", "has_borrow_plateau", "has_rsi_divergence"),
    base_rate=0.70,
    gold_rate=0.85,
    partial_rates={3: 0.80},
    veto_penalties={
        "gamma_squeeze": -0.40,
        "short_interest_rising": -0.20,
        "fundamental_catalyst": -0.50,
        "retail_momentum": -0.25,
    },
    floor=0.20,
    ceiling=0.90,
)

FOMO_RALLY_RUBRIC = ScoringRubric(
    criteria=("has_verticality", "has_retail_euphoria", "has_sentiment_divergence", "has_blow_off_volume"),
    base_rate=0.60,
    gold_rate=0.85,
    partial_rates={2: 0.70, 3: 0.80},
    veto_penalties={
        "gamma_loop": -0.35,
        "extended_mania": -0.25,
        "institutional_buying": -0.40,
        "short_squeeze_fuel": -0.20,
    },
    floor=0.25,
    ceiling=0.90,
)

LIQUIDITY_SWEEP_RUBRIC = ScoringRubric(
    criteria=("obvious_support", "false_breakout", "absorption_volume", "re_entry"),
    base_rate=0.45,
    gold_rate=0.85,
    partial_rates={2: 0.60, 3: 0.75},
    veto_penalties={
        "bear_market": -0.20,
        "sector_weakness": -0.15,
        "fundamental_issue": -0.25,
        "multiple_failures": -0.30,
    },
    floor=0.20,
    ceiling=0.90,
)

DEAD_CAT_BOUNCE_RUBRIC = ScoringRubric(
    criteria=("fib_retracement", "rising_volume", "higher_lows", "capitulation_volume"),
    base_rate=0.35,
    gold_rate=0.75,
    partial_rates={1: 0.45, 2: 0.55, 3: 0.65},
    veto_penalties={
        "eps_downgrade": -0.15,
        "sector_selloff": -0.10,
    },
    floor=0.15,
    ceiling=0.85,
)

EXECUTIVE_CHANGE_RUBRIC = ScoringRubric(
    criteria=("succession_integrity", "clean_audit", "volume_capitulation", "three_day_stabilization"),
    base_rate=0.15,
    gold_rate=0.85,
    signal_bonuses={"succession_integrity": 0.10, "clean_audit": 0.10, "volume_capitulation": 0.05},
    veto_penalties={
        "eight_k_red_flag": -0.20,
        "interim_only": -0.10,
    },
    floor=0.10,
    ceiling=0.90,
)

STRATEGIC_PIVOT_RUBRIC = ScoringRubric(
    criteria=("non_dilutive", "anchor_revenue", "insider_buy", "gap_fill"),
    base_rate=0.10,
    gold_rate=0.85,
    signal_bonuses={"non_dilutive": 0.05, "anchor_revenue": 0.05, "insider_buy": 0.10, "gap_fill": 0.05},
    veto_penalties={
        "declining_core_business": -0.15,
        "technical_language": -0.10,
    },
    floor=0.05,
    ceiling=0.90,
)

SHORT_REPORT_RUBRIC = ScoringRubric(
    criteria=("data_rebuttal", "auditor_confirmation", "insider_support", "short_interest_covering"),
    base_rate=0.35,
    gold_rate=0.85,
    partial_rates={1: 0.45, 2: 0.60, 3: 0.75},
    veto_penalties={
        "second_wave": -0.15,
        "third_wave": -0.15,
        "fourth_wave": -0.15,
    },
    floor=0.05,
    ceiling=0.90,
)

INSIDER_BUYING_RUBRIC = ScoringRubric(
    criteria=("cluster_buying", "open_market_code_p", "wealth_commitment", "executive_buyer"),
    base_rate=0.60,
    gold_rate=0.85,
    partial_rates={2: 0.70, 3: 0.78},
    veto_penalties={
        "routine_plan_purchase": -0.20,
        "single_buyer": -0.10,
    },
    floor=0.30,
    ceiling=0.90,
)

STOCK_SPLIT_RUBRIC = ScoringRubric(
    criteria=("mega_cap", "run_up", "otm_call_spike", "lower_high"),
    base_rate=0.60,
    gold_rate=0.87,
    veto_penalties={
        "new_product_launch": -0.25,
        "earnings_blowout": -0.30,
        "bull_market": -0.15,
        "sector_momentum": -0.10,
    },
    floor=0.25,
    ceiling=0.90,
)

INDEX_REBALANCE_RUBRIC = ScoringRubric(
    criteria=("tier_one_index", "run_up", "moc_spike", "t2_reversal"),
    base_rate=0.50,
    gold_rate=0.85,
    veto_penalties={
        "fundamental_news": -0.30,
        "bull_market": -0.15,
        "institutional_overhang": -0.20,
    },
    floor=0.20,
    ceiling=0.90,
)

NEWS_SHAKEOUT_RUBRIC = ScoringRubric(
    criteria=("transient_news", "volume_climax", "three_day_stabilization", "rsi_oversold"),
    base_rate=0.50,
    gold_rate=0.85,
    partial_rates={2: 0.65, 3: 0.75},
    veto_penalties={
        "terminal_news": -0.40,
        "no_volume_climax": -0.15,
        "failed_stabilization": -0.20,
        "sector_collapse": -0.25,
        "prior_downtrend": -0.10,
    },
    floor=0.10,
    ceiling=0.90,
)
