"""
liquidity_sweep.py

Stop-loss hunt below an obvious support level (a "Wyckoff spring").

Timeline: sweep (1-3d) -> recovery (1-2d) -> continuation (5-15d).

Support is found from the last 20 closes: local minima (lower than two
neighbours on each side) that cluster within 2% of each other, sit below the
current price and no more than 15% under it.  Three or more touches make the
level "obvious", and only obvious levels within 5% of the price can be swept.

Gold standard (85%):
  1. obvious support (3+ touches)
  2. false breakout: the sweep closes 2%+ below support
  3. absorption volume: 3x+ average during the sweep
  4. re-entry: price reclaims support during the recovery

The outcome is decided once, on the re-entry day (or at the end of the
recovery if support is never reclaimed).
"""

from __future__ import annotations

from typing import Any

from phenomena import TERMINAL, PhaseEffect, PhenomenonMachine, uniform
from scoring import LIQUIDITY_SWEEP_RUBRIC

LOOKBACK_DAYS = 20
TOLERANCE_PCT = 0.02
MIN_TOUCHES = 2
OBVIOUS_TOUCHES = 3
MAX_DISTANCE = 0.05
MIN_PENETRATION = 0.02
ABSORPTION_VOLUME = 3.0

TARGET_GAIN = {
    "strong": 0.15,
    "moderate": 0.115,
    "weak": 0.08,
}


def detect_support_level(closes: list[float], price: float) -> dict[str, Any] | None:
    """
    Strongest support cluster under *price*, or None.

    Clusters are scored by touch count times proximity, so a level touched
    often and sitting just under the price wins.
    """
    if len(closes) < LOOKBACK_DAYS or price <= 0:
        return None
    history = [float(c) for c in closes[-LOOKBACK_DAYS:]]

    touches: list[float] = []
    for i in range(2, len(history) - 2):
        curr = history[i]
        if all(curr <= history[j] for j in (i - 2, i - 1, i + 1, i + 2)):
            touches.append(curr)
    if len(touches) < MIN_TOUCHES:
        return None

    tolerance = price * TOLERANCE_PCT
    clusters: list[list[float]] = []
    for touch in touches:
        for cluster in clusters:
            if abs(touch - sum(cluster) / len(cluster)) <= tolerance:
                cluster.append(touch)
                break
        else:
            clusters.append([touch])

    best = None
    best_score = -1.0
    for cluster in clusters:
        level = sum(cluster) / len(cluster)
        if len(cluster) < MIN_TOUCHES or not price * 0.85 < level < price:
            continue
        proximity = 1.0 - (price - level) / price
        score = len(cluster) * proximity
        if score > best_score:
            best, best_score = (level, len(cluster)), score
    if best is None:
        return None

    level, count = best
    return {
        "level": level,
        "touch_count": count,
        "strength": min(count / 2.0, 1.5),
        "distance": (price - level) / level,
        "is_obvious": count >= OBVIOUS_TOUCHES,
    }


def strength_for(touch_count: int) -> str:
    if touch_count >= 4:
        return "strong"
    if touch_count >= 3:
        return "moderate"
    return "weak"


class LiquiditySweepMachine(PhenomenonMachine):
    kind = "liquidity_sweep"
    phases = ("sweep", "recovery", "continuation", TERMINAL)
    transitions = {
        "sweep": ("recovery",),
        "recovery": ("continuation",),
        "continuation": (TERMINAL,),
    }
    initial_phase = "sweep"
    durations = {
        "sweep": (1, 3),
        "recovery": (1, 2),
        "continuation": (5, 15),
    }
    rubric = LIQUIDITY_SWEEP_RUBRIC
    daily_chance = 0.10

    def _support(self, instrument):
        return detect_support_level(instrument.price_history, instrument.price)

    def _eligible(self, instrument):
        support = self._support(instrument)
        return bool(support and support["is_obvious"] and support["distance"] <= MAX_DISTANCE)

    def trigger_chance(self, instrument):
        support = self._support(instrument)
        if not support:
            return 0.0
        if support["touch_count"] >= 4:
            return 0.15
        if support["touch_count"] >= 3:
            return 0.10
        return 0.05

    def _setup(self, instrument, state, rng, options):
        support = options.get("support") or self._support(instrument)
        if not support:
            raise ValueError(f"{instrument.symbol}: no support level to sweep")
        m = state.metrics
        m["support_level"] = float(support["level"])
        m["touch_count"] = int(support["touch_count"])
        m["sweep_low"] = float(instrument.price)
        m["penetration"] = 0.0
        m["volume_multiple"] = 1.0
        m["entry_signaled"] = False
        state.magnitude = strength_for(m["touch_count"])
        m["target_gain"] = TARGET_GAIN[state.magnitude]
        state.mark_signal("obvious_support", bool(support["is_obvious"]))

        if instrument.trend < 0:
            state.add_veto("bear_market")
        if instrument.eps_modifier < -0.05:
            state.add_veto("fundamental_issue")
        return self.event(
            state, "setup", "negative",
            support=m["support_level"], touch_count=m["touch_count"],
        )

    def _phase_effect(self, instrument, state, rng):
        m = state.metrics
        support = m["support_level"]

        if state.phase == "sweep":
            delta = -uniform(rng, 0.03, 0.08) if state.day_in_phase == 1 else -uniform(rng, 0.02, 0.08)
            m["volume_multiple"] = uniform(rng, 2.0, 6.0)
            instrument.volume = instrument.avg_volume * m["volume_multiple"]
            projected = instrument.price * (1.0 + delta)
            if projected < m["sweep_low"]:
                m["sweep_low"] = projected
                m["penetration"] = (support - projected) / support
            state.mark_signal("absorption_volume", m["volume_multiple"] >= ABSORPTION_VOLUME)
            event = None
            if state.day_in_phase == 1:
                event = self.event(
                    state, "sweep", "negative",
                    support=support, drop_pct=abs(delta) * 100, volume_multiple=m["volume_multiple"],
                )
            return PhaseEffect(delta=delta, sentiment=-0.02, volatility_boost=0.5, event=event)

        if state.phase == "recovery":
            delta = uniform(rng, 0.02, 0.05)
            event = None
            if not m["entry_signaled"] and instrument.price * (1.0 + delta) >= support:
                m["entry_signaled"] = True
                m["entry_price"] = instrument.price * (1.0 + delta)
                state.mark_signal("re_entry")
                self.decide(instrument, state, rng)
                event = self.event(
                    state, "reclaim", "positive",
                    support=support, gold_count=state.gold_standard_count,
                    probability_pct=(state.final_probability or 0.0) * 100,
                )
            return PhaseEffect(delta=delta, sentiment=0.01, event=event)

        if state.phase == "continuation":
            total = max(1, state.day_in_phase + state.days_remaining - 1)
            if state.outcome_will_succeed:
                day_factor = 1.0 - (state.day_in_phase / total) * 0.5
                delta = uniform(rng, 0.01, 0.03) * day_factor
                event = None
                gain = (instrument.price - state.price_at_start) / state.price_at_start
                if state.day_in_phase == total // 2 and gain >= m["target_gain"] * 0.75:
                    event = self.event(state, "continuation", "positive", gain_pct=gain * 100)
                return PhaseEffect(delta=delta, event=event)
            if state.day_in_phase == 1:
                delta = -uniform(rng, 0.005, 0.02)
                event = self.event(state, "failed", "negative", gold_count=state.gold_standard_count)
                return PhaseEffect(delta=delta, sentiment=-0.01, event=event)
            return PhaseEffect(delta=uniform(rng, -0.02, 0.01))

        return PhaseEffect()

    def _next_phase(self, instrument, state, rng):
        if state.phase == "sweep":
            state.mark_signal("false_breakout", state.metrics["penetration"] >= MIN_PENETRATION)
        elif state.phase == "recovery" and not state.outcome_decided:
            self.decide(instrument, state, rng)
        return super()._next_phase(instrument, state, rng)

    def _on_enter(self, instrument, state, rng):
        if state.phase != TERMINAL:
            return None
        change = (instrument.price / state.price_at_start - 1.0) * 100
        if state.outcome_will_succeed:
            event = self.event(state, "complete_success", "positive", change_pct=change)
            event.news_type = "recovery_complete"
        else:
            event = self.event(state, "complete_failure", "negative", change_pct=change)
            event.news_type = "crash_resolution"
        return event
