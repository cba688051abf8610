"""
market.py

Instrument model and the daily price-impact compositor.

Each day every instrument gets exactly one multiplicative update that blends
four terms:

  - convergence toward a sentiment-adjusted fair value
  - volatility noise
  - baseline trend
  - the transition effect accumulated by the active phenomenon today

While a phenomenon is active, noise, convergence and trend are damped so
the phenomenon's own effect dominates the day.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import math
from typing import TYPE_CHECKING, Any

import numpy as np

if TYPE_CHECKING:  # pragma: no cover
    from phenomena import PhenomenonState

log = logging.getLogger(__name__)

SENTIMENT_MIN = -0.8
SENTIMENT_MAX = 3.0
HISTORY_LIMIT = 60
RSI_PERIOD = 14


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


@dataclass
class ExpectedOutcome:
    """Price and delta a phenomenon promised for the next update."""

    price: float
    delta: float
    source: str = ""


@dataclass
class Instrument:
    symbol: str
    price: float
    base_price: float = 0.0
    name: str = ""
    sector: str = "general"
    previous_price: float = 0.0
    eps_modifier: float = 0.0
    sentiment_offset: float = 0.0
    volatility: float = 0.02
    volatility_boost: float = 0.0
    stability: float = 0.5
    trend: float = 0.0
    institutional_accumulation: float = 0.0
    volume: float = 1_000_000.0
    avg_volume: float = 1_000_000.0
    short_interest: float = 0.05
    days_to_cover: float = 2.0
    borrow_utilization: float = 0.30
    cost_to_borrow: float = 0.02
    rsi: float = 50.0
    price_history: list[float] = field(default_factory=list)
    phenomenon: PhenomenonState | None = None
    transition_effect: float = 0.0
    expected_outcome: ExpectedOutcome | None = None
    # Days since the last crash-type phenomenon ended (None = never).
    days_since_crash: int | None = None
    # kind -> days left before that kind may trigger here again
    cooldowns: dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.base_price <= 0:
            self.base_price = float(self.price)
        if self.previous_price <= 0:
            self.previous_price = float(self.price)
        if not self.price_history:
            self.price_history = [float(self.price)]

    @property
    def fair_value(self) -> float:
        return self.base_price * (1.0 + self.eps_modifier)

    @property
    def has_phenomenon(self) -> bool:
        return self.phenomenon is not None

    @property
    def day_change(self) -> float:
        if self.previous_price <= 0:
            return 0.0
        return (self.price - self.previous_price) / self.previous_price

    @property
    def volume_multiple(self) -> float:
        if self.avg_volume <= 0:
            return 1.0
        return self.volume / self.avg_volume

    def add_transition(self, delta: float) -> None:
        self.transition_effect += _safe_float(delta)

    def add_sentiment(self, delta: float) -> None:
        self.sentiment_offset = _clamp(self.sentiment_offset + _safe_float(delta), SENTIMENT_MIN, SENTIMENT_MAX)

    def expect(self, delta: float, source: str = "") -> None:
        """Register the delta the next compositor update should produce."""
        delta = _safe_float(delta)
        self.expected_outcome = ExpectedOutcome(
            price=self.price * (1.0 + delta),
            delta=delta,
            source=source,
        )

    def apply_split(self, ratio: float) -> None:
        """
        Restate every per-share figure for a *ratio*-for-1 split.  Share
        counts (volume) scale up, so the volume multiple is unchanged.
        """
        ratio = _safe_float(ratio, 1.0)
        if ratio <= 0:
            raise ValueError(f"split ratio must be positive, got {ratio}")
        self.price /= ratio
        self.previous_price /= ratio
        self.base_price /= ratio
        self.price_history = [p / ratio for p in self.price_history]
        self.volume *= ratio
        self.avg_volume *= ratio
        if self.expected_outcome is not None:
            self.expected_outcome.price /= ratio
        if self.phenomenon is not None:
            self.phenomenon.price_at_start /= ratio

    def to_status_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "sector": self.sector,
            "price": round(float(self.price), 4),
            "previous_price": round(float(self.previous_price), 4),
            "fair_value": round(float(self.fair_value), 4),
            "sentiment_offset": round(float(self.sentiment_offset), 4),
            "volatility_boost": round(float(self.volatility_boost), 4),
            "meme_multiplier": round(meme_multiplier(self), 4),
            "rsi": round(float(self.rsi), 2),
            "phenomenon": self.phenomenon.to_status_dict() if self.phenomenon else None,
        }


def meme_multiplier(instrument: Instrument) -> float:
    """0.3 for a rock-solid name (stability 1), 1.0 for a pure meme (stability 0)."""
    stability = _safe_float(getattr(instrument, "stability", 0.5), 0.5)
    stability = _clamp(stability, 0.0, 1.0)
    return 0.3 + (1.0 - stability) * 0.7


def compute_rsi(closes: list[float], period: int = RSI_PERIOD) -> float:
    """Simple-average RSI over the last *period* changes; 50 when undefined."""
    if len(closes) < 2:
        return 50.0
    arr = np.asarray(closes[-(period + 1):], dtype=float)
    diffs = np.diff(arr)
    gains = float(np.sum(diffs[diffs > 0]))
    losses = float(-np.sum(diffs[diffs < 0]))
    if gains == 0 and losses == 0:
        return 50.0
    if losses == 0:
        return 100.0
    rs = gains / losses
    return 100.0 - 100.0 / (1.0 + rs)


# --------------------------- Compositor ---------------------------


@dataclass(frozen=True)
class CompositorConfig:
    sentiment_decay: float = 0.98
    sentiment_decay_threshold: float = 0.01
    manipulation_weight: float = 0.15
    convergence_speed: float = 0.15
    convergence_speed_active: float = 0.05
    noise_damping_active: float = 0.3
    trend_coefficient: float = 0.05
    trend_damping_active: float = 0.3
    volatility_boost_decay: float = 0.9
    floor_fraction: float = 0.05
    floor_absolute: float = 1.0
    ceiling_multiple: float = 20.0
    expected_price_tolerance: float = 0.15   # fraction of the prior price
    expected_delta_tolerance: float = 0.15   # absolute difference in delta


@dataclass
class PriceUpdate:
    symbol: str
    old_price: float
    new_price: float
    noise: float
    correction: float
    trend: float
    transition: float
    clamped: bool = False
    outcome_mismatch: bool = False
    expected_delta: float | None = None

    @property
    def delta(self) -> float:
        if self.old_price <= 0:
            return 0.0
        return (self.new_price - self.old_price) / self.old_price

    def to_status_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "old_price": round(self.old_price, 4),
            "new_price": round(self.new_price, 4),
            "delta": round(self.delta, 6),
            "noise": round(self.noise, 6),
            "correction": round(self.correction, 6),
            "trend": round(self.trend, 6),
            "transition": round(self.transition, 6),
            "clamped": self.clamped,
            "outcome_mismatch": self.outcome_mismatch,
        }


def price_bounds(instrument: Instrument, cfg: CompositorConfig) -> tuple[float, float]:
    floor = max(cfg.floor_absolute, instrument.base_price * cfg.floor_fraction)
    ceiling = max(floor, instrument.base_price * cfg.ceiling_multiple)
    return floor, ceiling


def update_instrument(
    instrument: Instrument,
    rng: np.random.Generator,
    cfg: CompositorConfig = CompositorConfig(),
) -> PriceUpdate:
    """Apply one day's price update in place and return the breakdown."""
    old_price = _safe_float(instrument.price, instrument.base_price)
    active = instrument.phenomenon is not None

    sentiment = _clamp(_safe_float(instrument.sentiment_offset), SENTIMENT_MIN, SENTIMENT_MAX)
    if abs(sentiment) > cfg.sentiment_decay_threshold:
        sentiment *= cfg.sentiment_decay
    instrument.sentiment_offset = sentiment

    fair = instrument.fair_value
    target = fair * (1.0 + sentiment + _safe_float(instrument.institutional_accumulation) * cfg.manipulation_weight)
    deviation = (old_price - target) / target if target > 0 else 0.0

    eff_vol = _safe_float(instrument.volatility) * (1.0 + _safe_float(instrument.volatility_boost))
    noise = (float(rng.random()) - 0.5) * 2.0 * eff_vol
    if active:
        noise *= cfg.noise_damping_active

    speed = cfg.convergence_speed_active if active else cfg.convergence_speed
    correction = -deviation * speed

    trend = _safe_float(instrument.trend) * cfg.trend_coefficient
    if active:
        trend *= cfg.trend_damping_active

    transition = _safe_float(instrument.transition_effect)
    instrument.transition_effect = 0.0

    raw = old_price * (1.0 + noise + correction + trend + transition)
    floor, ceiling = price_bounds(instrument, cfg)
    new_price = _clamp(_safe_float(raw, old_price), floor, ceiling)

    instrument.previous_price = old_price
    instrument.price = new_price
    instrument.volatility_boost = _safe_float(instrument.volatility_boost) * cfg.volatility_boost_decay
    # volume drifts halfway back to average each day unless a phenomenon sets it again
    instrument.volume = instrument.avg_volume + (instrument.volume - instrument.avg_volume) * 0.5
    instrument.price_history.append(new_price)
    if len(instrument.price_history) > HISTORY_LIMIT:
        del instrument.price_history[: len(instrument.price_history) - HISTORY_LIMIT]
    instrument.rsi = compute_rsi(instrument.price_history)

    update = PriceUpdate(
        symbol=instrument.symbol,
        old_price=old_price,
        new_price=new_price,
        noise=noise,
        correction=correction,
        trend=trend,
        transition=transition,
        clamped=new_price != raw,
    )

    expected = instrument.expected_outcome
    if expected is not None:
        update.expected_delta = expected.delta
        price_gap = abs(new_price - expected.price)
        delta_gap = abs(update.delta - expected.delta)
        if price_gap > old_price * cfg.expected_price_tolerance and delta_gap > cfg.expected_delta_tolerance:
            update.outcome_mismatch = True
            log.warning(
                "%s: realized %.2f%% vs expected %.2f%% (%s)",
                instrument.symbol, update.delta * 100, expected.delta * 100, expected.source or "unknown",
            )
        instrument.expected_outcome = None

    log.debug(
        "%s: %.2f -> %.2f (noise=%.4f corr=%.4f trend=%.4f transition=%.4f)",
        instrument.symbol, old_price, new_price, noise, correction, trend, transition,
    )
    return update


def check_invariants(instrument: Instrument, cfg: CompositorConfig = CompositorConfig()) -> list[str]:
    violations: list[str] = []
    if not math.isfinite(instrument.price):
        violations.append(f"{instrument.symbol}: non-finite price {instrument.price}")
        return violations
    floor, ceiling = price_bounds(instrument, cfg)
    if instrument.price < floor - 1e-9 or instrument.price > ceiling + 1e-9:
        violations.append(f"{instrument.symbol}: price {instrument.price:.4f} outside [{floor:.4f}, {ceiling:.4f}]")
    if not SENTIMENT_MIN - 1e-9 <= instrument.sentiment_offset <= SENTIMENT_MAX + 1e-9:
        violations.append(f"{instrument.symbol}: sentiment {instrument.sentiment_offset:.4f} out of range")
    if instrument.phenomenon is not None:
        violations.extend(instrument.phenomenon.check_invariants())
    return violations
