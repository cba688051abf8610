"""
fomo_rally.py

Retail fear-of-missing-out rally and its blow-off top.

Timeline: buildup (5-10d) -> euphoria (3-5d) -> blow_off (1d) -> crash (5-10d).

Gold standard (85%): fade the blow-off when
  1. verticality: price 3+ standard deviations above its 20-day mean
  2. retail euphoria: put/call ratio at or below 0.40
  3. sentiment divergence: social mentions peak while price stalls
  4. blow-off volume: 3x+ average on the top

The crash is decided once on blow-off day.
"""

from __future__ import annotations

from market import Instrument
from phenomena import TERMINAL, PhaseEffect, PhenomenonMachine, uniform
from scoring import FOMO_RALLY_RUBRIC

DEVIATION_THRESHOLD = 3.0
PUT_CALL_THRESHOLD = 0.40
BLOW_OFF_VOLUME = 3.0


def _up_days(closes: list[float]) -> int:
    return sum(1 for a, b in zip(closes, closes[1:]) if b > a)


class FomoRallyMachine(PhenomenonMachine):
    kind = "fomo_rally"
    phases = ("buildup", "euphoria", "blow_off", "crash", TERMINAL)
    transitions = {
        "buildup": ("euphoria",),
        "euphoria": ("blow_off",),
        "blow_off": ("crash",),
        "crash": (TERMINAL,),
    }
    initial_phase = "buildup"
    durations = {
        "buildup": (5, 10),
        "euphoria": (3, 5),
        "blow_off": (1, 1),
        "crash": (5, 10),
    }
    rubric = FOMO_RALLY_RUBRIC
    daily_chance = 0.01
    cooldown_days = 30

    def _eligible(self, instrument: Instrument) -> bool:
        recent = instrument.price_history[-6:]
        if len(recent) < 4:
            return False
        return _up_days(recent) >= 3

    def _setup(self, instrument, state, rng, options):
        m = state.metrics
        m["social_mentions"] = float(options.get("social_mentions", uniform(rng, 1.0, 2.0)))
        m["price_deviation"] = float(options.get("price_deviation", uniform(rng, 0.5, 1.5)))
        m["put_call"] = float(options.get("put_call", 0.80))
        m["retail_pct"] = 0.20
        m["volume_multiple"] = 1.0
        m["peak_mentions"] = m["social_mentions"]

        score = 0
        if m["social_mentions"] >= 1.8:
            score += 30
        if m["price_deviation"] >= 1.0:
            score += 20
        if instrument.stability < 0.3:
            score += 30
        state.magnitude = "extreme" if score >= 80 else "major" if score >= 60 else "minor"

        if instrument.short_interest >= 0.20:
            state.add_veto("short_squeeze_fuel")
        if instrument.institutional_accumulation >= 0.30:
            state.add_veto("institutional_buying")
        return self.event(state, "buildup", "positive", mentions=m["social_mentions"])

    def _phase_effect(self, instrument, state, rng):
        m = state.metrics
        phase = state.phase

        if phase == "buildup":
            m["social_mentions"] *= 1.0 + uniform(rng, 0.0, 0.30)
            m["volume_multiple"] = 1.0 + uniform(rng, 0.0, 1.5)
            m["price_deviation"] = min(2.5, m["price_deviation"] + uniform(rng, 0.0, 0.3))
            m["put_call"] = max(0.50, m["put_call"] - uniform(rng, 0.0, 0.08))
            m["retail_pct"] = min(0.45, m["retail_pct"] + uniform(rng, 0.0, 0.05))
            instrument.volume = instrument.avg_volume * m["volume_multiple"]
            return PhaseEffect(delta=uniform(rng, 0.02, 0.05), sentiment=0.005)

        if phase == "euphoria":
            total = state.day_in_phase + state.days_remaining - 1
            progress = state.day_in_phase / max(1, total)
            m["social_mentions"] *= 1.3 + uniform(rng, 0.0, 0.5)
            m["peak_mentions"] = max(m["peak_mentions"], m["social_mentions"])
            m["volume_multiple"] = 2.0 + progress * 4.0 + uniform(rng, 0.0, 2.0)
            m["price_deviation"] = min(5.0, m["price_deviation"] + 0.3 + uniform(rng, 0.0, 0.4))
            m["put_call"] = max(0.25, m["put_call"] - uniform(rng, 0.0, 0.10))
            m["retail_pct"] = min(0.75, m["retail_pct"] + uniform(rng, 0.0, 0.10))
            instrument.volume = instrument.avg_volume * m["volume_multiple"]
            state.mark_signal("has_verticality", m["price_deviation"] >= DEVIATION_THRESHOLD)
            state.mark_signal("has_retail_euphoria", m["put_call"] <= PUT_CALL_THRESHOLD)
            event = None
            if state.day_in_phase == 1:
                event = self.event(state, "euphoria", "positive", mentions=m["social_mentions"],
                                   volume_multiple=m["volume_multiple"])
            return PhaseEffect(delta=uniform(rng, 0.05, 0.10), sentiment=0.01, volatility_boost=0.6, event=event)

        if phase == "blow_off":
            m["volume_multiple"] = uniform(rng, 5.0, 13.0)
            m["social_mentions"] *= 1.5 + uniform(rng, 0.0, 1.0)
            m["peak_mentions"] = max(m["peak_mentions"], m["social_mentions"])
            m["put_call"] = max(0.20, m["put_call"] - 0.10)
            instrument.volume = instrument.avg_volume * m["volume_multiple"]
            if state.metrics.get("buildup_days", 0) >= 9:
                state.add_veto("extended_mania")
            state.mark_signal("has_verticality", m["price_deviation"] >= DEVIATION_THRESHOLD)
            state.mark_signal("has_retail_euphoria", m["put_call"] <= PUT_CALL_THRESHOLD)
            state.mark_signal("has_sentiment_divergence")
            state.mark_signal("has_blow_off_volume", m["volume_multiple"] >= BLOW_OFF_VOLUME)
            self.decide(instrument, state, rng)
            event = self.event(state, "blow_off", "neutral", volume_multiple=m["volume_multiple"],
                               put_call=m["put_call"])
            return PhaseEffect(delta=uniform(rng, 0.0, 0.05), volatility_boost=1.0, event=event)

        if phase == "crash":
            m["social_mentions"] *= 0.8
            if state.outcome_will_succeed:
                delta = -uniform(rng, 0.03, 0.08)
                event = self.event(state, "crash", "negative") if state.day_in_phase == 1 else None
                return PhaseEffect(delta=delta, sentiment=-0.01, event=event)
            delta = uniform(rng, -0.01, 0.02)
            event = self.event(state, "plateau", "neutral") if state.day_in_phase == 1 else None
            return PhaseEffect(delta=delta, event=event)

        return PhaseEffect()

    def _on_enter(self, instrument, state, rng):
        if state.phase == "euphoria":
            state.metrics["buildup_days"] = state.day
        if state.phase == TERMINAL:
            change = (instrument.price - state.price_at_start) / state.price_at_start
            return self.event(state, "complete", "neutral", change_pct=change * 100)
        return None
