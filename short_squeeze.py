"""
short_squeeze.py

Forced short covering and the exhaustion reversal that follows.

Timeline: buildup (3-7d) -> squeeze (2-5d) -> climax (1d) -> reversal (3-5d).

Gold standard (85%): fade the exhaustion after the climax when
  1. parabolic extension (price up 100%+ from the start)
  2. volume climax (5x+ average)
  3. borrow-fee plateau (cost to borrow flattens at the peak)
  4. RSI divergence (RSI 85+ at the peak)

The reversal is decided once on climax day.  Squeeze risk (short interest,
days to cover, utilization, cost to borrow) sets the magnitude and the
candidate filter.
"""

from __future__ import annotations

from dataclasses import replace

from market import Instrument
from phenomena import TERMINAL, PhaseEffect, PhenomenonMachine, uniform
from scoring import SHORT_SQUEEZE_RUBRIC

# Higher weight = squeezes more likely to reverse cleanly in that sector.
SECTOR_WEIGHTS = {
    "biotech": 1.5,
    "software": 1.3,
    "retail": 1.2,
    "energy": 1.0,
    "financial": 0.8,
    "utility": 0.5,
}

PARABOLIC_GAIN = 1.00
VOLUME_CLIMAX = 5.0
RSI_THRESHOLD = 85.0
CANDIDATE_SCORE = 50


def squeeze_risk(instrument: Instrument) -> dict:
    """Risk score 0-100 from the four short-side metrics."""
    si = float(instrument.short_interest)
    dtc = float(instrument.days_to_cover)
    util = float(instrument.borrow_utilization)
    ctb = float(instrument.cost_to_borrow)

    score = 0
    if si >= 0.50:
        score += 40
    elif si >= 0.30:
        score += 30
    elif si >= 0.20:
        score += 15

    if dtc >= 10:
        score += 30
    elif dtc >= 5:
        score += 20
    elif dtc >= 3:
        score += 10

    if util >= 1.00:
        score += 20
    elif util >= 0.95:
        score += 15
    elif util >= 0.80:
        score += 5

    if ctb >= 1.00:
        score += 10
    elif ctb >= 0.50:
        score += 7
    elif ctb >= 0.20:
        score += 3

    return {
        "short_interest": si,
        "days_to_cover": dtc,
        "utilization": util,
        "cost_to_borrow": ctb,
        "risk_score": score,
        "is_candidate": score >= CANDIDATE_SCORE,
    }


def magnitude_for(risk_score: int) -> str:
    if risk_score >= 80:
        return "extreme"
    if risk_score >= 65:
        return "major"
    return "minor"


class ShortSqueezeMachine(PhenomenonMachine):
    kind = "short_squeeze"
    phases = ("buildup", "squeeze", "climax", "reversal", TERMINAL)
    transitions = {
        "buildup": ("squeeze",),
        "squeeze": ("climax",),
        "climax": ("reversal",),
        "reversal": (TERMINAL,),
    }
    initial_phase = "buildup"
    durations = {
        "buildup": (3, 7),
        "squeeze": (2, 5),
        "climax": (1, 1),
        "reversal": (3, 5),
    }
    rubric = SHORT_SQUEEZE_RUBRIC
    daily_chance = 0.02
    # Chance per day that shorts start piling into one quiet name.
    short_build_chance = 0.03

    def _eligible(self, instrument):
        return squeeze_risk(instrument)["is_candidate"]

    def prepare_day(self, instruments, rng):
        """Occasionally build short interest on a name with a light short book."""
        if float(rng.random()) >= self.short_build_chance:
            return []
        pool = [i for i in instruments if i.phenomenon is None and i.short_interest < 0.25]
        if not pool:
            return []
        target = pool[int(rng.integers(0, len(pool)))]
        target.short_interest = min(0.60, target.short_interest + uniform(rng, 0.15, 0.30))
        target.days_to_cover = max(target.days_to_cover, uniform(rng, 4.0, 12.0))
        target.borrow_utilization = min(1.0, max(target.borrow_utilization, uniform(rng, 0.80, 1.00)))
        target.cost_to_borrow = max(target.cost_to_borrow, uniform(rng, 0.10, 0.80))
        event = self.phase_event(
            "setup", "short_build", "neutral",
            short_interest_pct=target.short_interest * 100,
            days_to_cover=target.days_to_cover,
        )
        return [(target, event)]

    def _setup(self, instrument, state, rng, options):
        risk = options.get("risk") or squeeze_risk(instrument)
        state.magnitude = magnitude_for(int(risk["risk_score"]))
        state.metrics.update(risk)
        state.metrics["rsi"] = 50.0
        state.metrics["volume_multiple"] = 1.0
        state.metrics["highest_price"] = instrument.price

        weight = float(options.get("sector_weight", SECTOR_WEIGHTS.get(instrument.sector, 1.2)))
        base = min(SHORT_SQUEEZE_RUBRIC.gold_rate, max(0.50, SHORT_SQUEEZE_RUBRIC.gold_rate * weight))
        state.base_probability = base
        if instrument.stability < 0.2:
            state.add_veto("retail_momentum")
        return self.event(
            state, "buildup", "positive",
            short_interest_pct=risk["short_interest"] * 100,
            days_to_cover=risk["days_to_cover"],
        )

    def _rubric_for(self, state):
        base = state.base_probability
        return replace(
            SHORT_SQUEEZE_RUBRIC,
            base_rate=base,
            partial_rates={3: min(base + 0.10, SHORT_SQUEEZE_RUBRIC.gold_rate)},
        )

    def _phase_effect(self, instrument, state, rng):
        phase = state.phase
        m = state.metrics
        gain = (instrument.price - state.price_at_start) / state.price_at_start

        if phase == "buildup":
            m["volume_multiple"] = 1.0 + uniform(rng, 0.0, 1.5)
            m["rsi"] = min(75.0, 50.0 + state.day_in_phase * 5 + uniform(rng, 0.0, 5.0))
            m["short_interest"] *= 1.0 + uniform(rng, 0.0, 0.05)
            m["cost_to_borrow"] *= 1.0 + uniform(rng, 0.0, 0.10)
            instrument.volume = instrument.avg_volume * m["volume_multiple"]
            return PhaseEffect(delta=uniform(rng, 0.02, 0.05))

        if phase == "squeeze":
            progress = state.day_in_phase / max(1, state.day_in_phase + state.days_remaining - 1)
            m["volume_multiple"] = 3.0 + progress * 7.0 + uniform(rng, 0.0, 3.0)
            m["rsi"] = min(95.0, 75.0 + progress * 20.0 + uniform(rng, 0.0, 5.0))
            m["short_interest"] *= 1.0 - 0.10 - uniform(rng, 0.0, 0.15)
            instrument.volume = instrument.avg_volume * m["volume_multiple"]
            m["highest_price"] = max(m["highest_price"], instrument.price)
            state.mark_signal("has_parabolic_extension", gain >= PARABOLIC_GAIN)
            state.mark_signal("has_volume_climax", m["volume_multiple"] >= VOLUME_CLIMAX)
            event = None
            if state.day_in_phase == 1:
                event = self.event(state, "squeeze", "positive", gain_pct=gain * 100,
                                   volume_multiple=m["volume_multiple"])
            return PhaseEffect(delta=uniform(rng, 0.10, 0.25), volatility_boost=1.0, event=event)

        if phase == "climax":
            m["volume_multiple"] = uniform(rng, 8.0, 15.0)
            m["rsi"] = uniform(rng, 90.0, 100.0)
            m["cost_to_borrow"] *= 1.0 - uniform(rng, 0.0, 0.30)
            instrument.volume = instrument.avg_volume * m["volume_multiple"]
            m["price_at_climax"] = instrument.price
            m["highest_price"] = max(m["highest_price"], instrument.price)
            state.mark_signal("has_borrow_plateau")
            state.mark_signal("has_parabolic_extension", gain >= PARABOLIC_GAIN)
            state.mark_signal("has_volume_climax", m["volume_multiple"] >= VOLUME_CLIMAX)
            state.mark_signal("has_rsi_divergence", m["rsi"] >= RSI_THRESHOLD)
            self.decide(instrument, state, rng, rubric=self._rubric_for(state))

            if float(rng.random()) < 0.30:
                # shooting star: huge range, close near the open
                delta = uniform(rng, -0.05, 0.05)
            else:
                delta = uniform(rng, 0.15, 0.50)
            event = self.event(state, "climax", "neutral", volume_multiple=m["volume_multiple"], rsi=m["rsi"])
            return PhaseEffect(delta=delta, volatility_boost=1.5, event=event)

        if phase == "reversal":
            m["volume_multiple"] = max(2.0, m["volume_multiple"] * 0.7)
            m["rsi"] = max(20.0, m["rsi"] - 15.0 - uniform(rng, 0.0, 10.0))
            instrument.volume = instrument.avg_volume * m["volume_multiple"]
            if state.outcome_will_succeed:
                delta = uniform(rng, -0.15, -0.08)
                if state.is_gold_standard:
                    delta *= 1.3
                event = None
                if state.day_in_phase == 1:
                    peak = m.get("price_at_climax", instrument.price)
                    event = self.event(state, "reversal", "negative", gain_pct=gain * 100,
                                       off_peak_pct=(peak - instrument.price) / peak * 100 if peak else 0.0)
            else:
                delta = (float(rng.random()) - 0.4) * 0.08
                event = self.event(state, "reversal_failed", "neutral") if state.day_in_phase == 1 else None
            return PhaseEffect(delta=delta, event=event)

        return PhaseEffect()

    def _on_enter(self, instrument, state, rng):
        if state.phase == TERMINAL:
            change = (instrument.price - state.price_at_start) / state.price_at_start
            instrument.short_interest = max(0.02, state.metrics.get("short_interest", 0.05) * 0.5)
            return self.event(state, "complete", "neutral", change_pct=change * 100)
        return None
