"""
dead_cat_bounce.py

Crash followed by one or more relief bounces.

Phases:
  crash -> bounce -> decline | consolidation | recovery
  decline -> bounce | consolidation
  consolidation -> recovery | bounce | complete
  recovery -> complete

The first bounce is usually a trap.  The outcome (real bottom vs. secular
decline) is decided once when the first bounce ends:

  success: bounce -> consolidation -> recovery -> complete
  failure: bounce -> decline -> bounce -> ... -> consolidation -> complete
           (each later bounce is weaker than the one before)

Gold standard: bounce retraces 61.8% of the crash, rising bounce volume,
higher lows held through the bounce, and capitulation volume on the crash.
"""

from __future__ import annotations

import math

from market import meme_multiplier
from phenomena import TERMINAL, PhaseEffect, PhenomenonMachine, randint, uniform
from scoring import DEAD_CAT_BOUNCE_RUBRIC

FIB_LEVEL = 0.618

# Share of the crash the first bounce takes back.  Capitulation selling
# leaves room for a deeper retracement.
FIRST_BOUNCE_RETRACE = (0.25, 0.55)
FIRST_BOUNCE_RETRACE_CAPITULATION = (0.45, 0.78)

# Later bounces by bounce number (2, 3+), total gain over the whole bounce.
BOUNCE_RANGES = {
    2: (0.06, 0.09),
    3: (0.03, 0.06),
}


def _per_day(total: float, days: int) -> float:
    """Daily delta that compounds to *total* over *days*."""
    days = max(1, int(days))
    return math.pow(1.0 + total, 1.0 / days) - 1.0


class DeadCatBounceMachine(PhenomenonMachine):
    kind = "dead_cat_bounce"
    phases = ("crash", "bounce", "decline", "consolidation", "recovery", TERMINAL)
    transitions = {
        "crash": ("bounce",),
        "bounce": ("decline", "consolidation", "recovery"),
        "decline": ("bounce", "consolidation"),
        "consolidation": ("recovery", "bounce", TERMINAL),
        "recovery": (TERMINAL,),
    }
    initial_phase = "crash"
    durations = {
        "crash": (2, 3),
        "bounce": (2, 3),
        "decline": (2, 4),
        "consolidation": (3, 6),
        "recovery": (5, 10),
    }
    rubric = DEAD_CAT_BOUNCE_RUBRIC
    daily_chance = 0.004

    def _setup(self, instrument, state, rng, options):
        drop = options.get("drop")
        if drop is None:
            drop = uniform(rng, 0.15, 0.30)
        drop = max(0.01, min(float(drop), 0.60))
        state.magnitude = "extreme" if drop >= 0.30 else "major" if drop >= 0.20 else "minor"
        state.metrics["drop"] = drop
        state.metrics["bounce_count"] = 0
        state.metrics["max_bounces"] = int(options.get("max_bounces") or randint(rng, 2, 3))

        volume_multiple = float(options.get("crash_volume", uniform(rng, 1.5, 5.0)))
        state.metrics["crash_volume"] = volume_multiple
        instrument.volume = instrument.avg_volume * volume_multiple
        state.mark_signal("capitulation_volume", volume_multiple >= 3.0)

        retrace = options.get("first_bounce_retrace")
        if retrace is None:
            lo, hi = FIRST_BOUNCE_RETRACE_CAPITULATION if volume_multiple >= 3.0 else FIRST_BOUNCE_RETRACE
            retrace = uniform(rng, lo, hi)
        state.metrics["first_bounce_retrace"] = max(0.0, min(float(retrace), 1.0))

        if instrument.eps_modifier < -0.05:
            state.add_veto("eps_downgrade")

        # Crash duration is fixed here so the daily delta compounds to the drop.
        state.days_remaining = self._sample_duration(instrument, state, "crash", rng)
        state.metrics["crash_daily"] = _per_day(-drop, state.days_remaining)
        return self.event(state, "crash", "negative", drop_pct=drop * 100)

    def _phase_effect(self, instrument, state, rng):
        meme = meme_multiplier(instrument)
        phase = state.phase

        if phase == "crash":
            return PhaseEffect(
                delta=state.metrics["crash_daily"],
                sentiment=-0.02 * meme,
                volatility_boost=0.5 * meme,
            )

        if phase == "bounce":
            if state.day_in_phase == 1:
                state.metrics["bounce_low"] = instrument.price
                state.metrics["bounce_held"] = True
                vol = uniform(rng, 0.8, 2.0)
                state.metrics["bounce_volume"] = vol
                instrument.volume = instrument.avg_volume * vol
                event = self.event(
                    state, "bounce", "positive",
                    bounce_number=state.metrics["bounce_count"],
                    bounce_pct=state.metrics["bounce_total"] * 100,
                )
            else:
                if instrument.price < state.metrics.get("bounce_low", instrument.price):
                    state.metrics["bounce_held"] = False
                event = None
            return PhaseEffect(delta=state.metrics["bounce_daily"], sentiment=0.01 * meme, event=event)

        if phase == "decline":
            delta = -uniform(rng, 0.03, 0.06) * min(meme, 1.5)
            event = self.event(state, "decline", "negative") if state.day_in_phase == 1 else None
            return PhaseEffect(delta=delta, sentiment=-0.01 * meme, event=event)

        if phase == "consolidation":
            return PhaseEffect(delta=uniform(rng, -0.005, 0.01))

        if phase == "recovery":
            delta = uniform(rng, 0.02, 0.04)
            event = self.event(state, "recovery", "positive") if state.day_in_phase == 1 else None
            return PhaseEffect(delta=delta, sentiment=0.01 * meme, event=event)

        return PhaseEffect()

    def _next_phase(self, instrument, state, rng):
        phase = state.phase
        if phase == "crash":
            return "bounce"
        if phase == "bounce":
            if state.metrics["bounce_count"] == 1:
                self._score_first_bounce(instrument, state)
                success = self.decide(instrument, state, rng)
                return "consolidation" if success else "decline"
            if state.metrics["bounce_count"] >= state.metrics["max_bounces"]:
                return "consolidation"
            return "decline"
        if phase == "decline":
            if state.metrics["bounce_count"] < state.metrics["max_bounces"]:
                return "bounce"
            return "consolidation"
        if phase == "consolidation":
            return "recovery" if state.outcome_will_succeed else TERMINAL
        return TERMINAL

    def _score_first_bounce(self, instrument, state) -> None:
        # the last bounce day's move is still pending in transition_effect
        close = instrument.price * (1.0 + instrument.transition_effect)
        start = state.price_at_start
        low = state.metrics.get("bounce_low", instrument.price)
        fallen = start - low
        retraced = (close - low) / fallen if fallen > 0 else 0.0
        state.metrics["retracement"] = retraced
        state.mark_signal("fib_retracement", retraced >= FIB_LEVEL)
        state.mark_signal("rising_volume", state.metrics.get("bounce_volume", 0.0) >= 1.2)
        state.mark_signal("higher_lows", bool(state.metrics.get("bounce_held")))

    def _on_enter(self, instrument, state, rng):
        if state.phase == "bounce":
            state.metrics["bounce_count"] += 1
            n = min(state.metrics["bounce_count"], 3)
            if n == 1:
                drop = state.metrics["drop"]
                total = state.metrics["first_bounce_retrace"] * drop / (1.0 - drop)
            else:
                lo, hi = BOUNCE_RANGES[n]
                total = uniform(rng, lo, hi)
            state.metrics["bounce_total"] = total
            state.metrics["bounce_daily"] = _per_day(total, state.days_remaining)
            return None
        if state.phase == TERMINAL:
            if state.outcome_will_succeed:
                event = self.event(state, "recovery_complete", "positive")
                event.news_type = "recovery_complete"
            else:
                event = self.event(state, "new_base", "negative")
                event.news_type = "crash_resolution"
            event.metrics["change_pct"] = (instrument.price / state.price_at_start - 1.0) * 100
            return event
        return None

    def _on_complete(self, instrument, state):
        instrument.days_since_crash = 0
