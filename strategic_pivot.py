"""
strategic_pivot.py

Company announces a move into a new business line.

Timeline: announcement (1-2d) -> execution_void (8-14d) -> resolution -> complete.

The announcement is almost always sold.  What happens after the "execution
void" (the weeks where nothing ships) depends on the pivot type:

  reactive     10%   desperate rebrand of a shrinking core business
  structural   30%   real reorganization, dilutive, long payback
  symbolic     65%   small, funded experiment with a named anchor customer
  gold         85%   all four signals: non-dilutive financing, anchor
                     revenue, insider buying, and the gap fills

Each signal met short of the full set adds a small increment to the
type's rate.  Insider buying can still show up early in the void.

The reversal is decided once when the void ends.
"""

from __future__ import annotations

from market import meme_multiplier
from phenomena import TERMINAL, PhaseEffect, PhenomenonMachine, randint, uniform, weighted_pick
from scoring import STRATEGIC_PIVOT_RUBRIC

PIVOT_TYPE_WEIGHTS = {
    "reactive": 0.15,
    "structural": 0.30,
    "symbolic": 0.35,
    "gold": 0.20,
}

REVERSAL_RATES = {
    "reactive": 0.10,
    "structural": 0.30,
    "symbolic": 0.65,
    "gold": 0.85,
}

ANNOUNCEMENT_IMPACT = {
    "reactive": (0.15, 0.25),
    "structural": (0.10, 0.18),
    "symbolic": (0.05, 0.10),
    "gold": (0.05, 0.10),
}

VOID_DRIFT = {
    "reactive": (-0.03, -0.01),
    "structural": (-0.02, 0.02),
    "symbolic": (-0.01, 0.01),
    "gold": (0.01, 0.04),
}

RESOLUTION_MOVE = {
    "reactive": (-0.05, 0.0),
    "structural": (-0.02, 0.05),
    "symbolic": (0.05, 0.12),
    "gold": (0.08, 0.15),
}

# chance that insiders buy on the open market during the quiet stretch
INSIDER_BUY_ODDS = {
    "reactive": 0.0,
    "structural": 0.10,
    "symbolic": 0.25,
    "gold": 1.0,
}

RESOLUTION_DAYS = {
    "reactive": (15, 30),
    "structural": (20, 40),
    "symbolic": (10, 18),
    "gold": (7, 14),
}

TARGET_MARKETS = (
    "artificial intelligence",
    "cloud infrastructure",
    "electric vehicles",
    "digital payments",
    "renewable energy",
    "biotech services",
)


class StrategicPivotMachine(PhenomenonMachine):
    kind = "strategic_pivot"
    phases = ("announcement", "execution_void", "resolution", TERMINAL)
    transitions = {
        "announcement": ("execution_void",),
        "execution_void": ("resolution",),
        "resolution": (TERMINAL,),
    }
    initial_phase = "announcement"
    durations = {
        "announcement": (1, 2),
        "execution_void": (8, 14),
    }
    rubric = STRATEGIC_PIVOT_RUBRIC
    daily_chance = 0.012

    def _setup(self, instrument, state, rng, options):
        pivot_type = options.get("pivot_type") or weighted_pick(rng, PIVOT_TYPE_WEIGHTS)
        if pivot_type not in PIVOT_TYPE_WEIGHTS:
            raise ValueError(f"unknown pivot type {pivot_type!r}")
        meme = meme_multiplier(instrument)
        m = state.metrics
        m["pivot_type"] = pivot_type
        m["target_market"] = options.get("target_market") or TARGET_MARKETS[int(rng.integers(0, len(TARGET_MARKETS)))]
        state.base_probability = REVERSAL_RATES[pivot_type]

        lo, hi = ANNOUNCEMENT_IMPACT[pivot_type]
        impact = uniform(rng, lo, hi) * meme
        m["impact"] = impact
        state.magnitude = "extreme" if impact >= 0.15 else "major" if impact >= 0.08 else "minor"

        if pivot_type == "gold":
            for name in state.criteria:
                state.mark_signal(name)
        elif pivot_type == "symbolic":
            state.mark_signal("non_dilutive", float(rng.random()) > 0.3)
            state.mark_signal("anchor_revenue", float(rng.random()) > 0.2)
            state.mark_signal("gap_fill", float(rng.random()) > 0.5)
        elif pivot_type == "structural":
            state.mark_signal("non_dilutive", float(rng.random()) > 0.5)

        if pivot_type == "reactive":
            state.add_veto("declining_core_business")
        if pivot_type in ("reactive", "structural"):
            state.add_veto("technical_language")

        state.days_remaining = self._sample_duration(instrument, state, "announcement", rng)
        m["announcement_daily"] = -impact / state.days_remaining
        return self.event(
            state, f"announcement_{pivot_type}", "negative",
            target_market=m["target_market"], drop_pct=impact * 100,
        )

    def _sample_duration(self, instrument, state, phase, rng):
        if phase == "resolution":
            lo, hi = RESOLUTION_DAYS[state.metrics["pivot_type"]]
            return randint(rng, lo, hi)
        return super()._sample_duration(instrument, state, phase, rng)

    def _phase_effect(self, instrument, state, rng):
        m = state.metrics
        pivot_type = m["pivot_type"]
        meme = meme_multiplier(instrument)

        if state.phase == "announcement":
            return PhaseEffect(delta=m["announcement_daily"], sentiment=-0.03 * meme, volatility_boost=0.4 * meme)

        if state.phase == "execution_void":
            lo, hi = VOID_DRIFT[pivot_type]
            delta = uniform(rng, lo, hi)
            if pivot_type == "symbolic" and state.day_in_phase % 3 == 0:
                delta = uniform(rng, 0.01, 0.03)
            if instrument.price >= state.price_at_start * 0.98:
                state.mark_signal("gap_fill")
            event = None
            sentiment = 0.0
            if state.day_in_phase == 1:
                event = self.event(state, "execution_void", "neutral", target_market=m["target_market"])
            elif state.day_in_phase == 2 and not state.signals.get("insider_buy"):
                if float(rng.random()) < INSIDER_BUY_ODDS[pivot_type]:
                    state.mark_signal("insider_buy")
                    m["insider_buyers"] = randint(rng, 1, 3)
                    sentiment = 0.01 * meme
                    event = self.event(
                        state, "insider_buy", "positive",
                        target_market=m["target_market"], insider_buyers=m["insider_buyers"],
                    )
            return PhaseEffect(delta=delta, sentiment=sentiment, event=event)

        if state.phase == "resolution":
            days = max(1, state.day_in_phase + state.days_remaining - 1)
            total = m["resolution_total"]
            delta = total * 0.4 if state.day_in_phase == 1 else total * 0.6 / max(1, days - 1)
            event = None
            if state.day_in_phase == 1:
                if state.outcome_will_succeed:
                    event = self.event(state, "traction", "positive", target_market=m["target_market"])
                else:
                    event = self.event(state, "doubts", "negative", target_market=m["target_market"])
            sentiment = (0.01 if state.outcome_will_succeed else -0.005) * meme
            return PhaseEffect(delta=delta, sentiment=sentiment, event=event)

        return PhaseEffect()

    def _next_phase(self, instrument, state, rng):
        if state.phase == "execution_void":
            self.decide(instrument, state, rng, base_rate=state.base_probability)
            lo, hi = RESOLUTION_MOVE[state.metrics["pivot_type"]]
            if state.outcome_will_succeed:
                total = max(abs(uniform(rng, lo, hi)), 0.02)
            else:
                total = -uniform(rng, 0.03, 0.08)
            state.metrics["resolution_total"] = total
        return super()._next_phase(instrument, state, rng)

    def _on_enter(self, instrument, state, rng):
        if state.phase != TERMINAL:
            return None
        change = (instrument.price / state.price_at_start - 1.0) * 100
        if state.outcome_will_succeed:
            event = self.event(state, "reversal_complete", "positive", change_pct=change)
            event.news_type = "recovery_complete"
        else:
            event = self.event(state, "new_base", "negative", change_pct=change)
            event.news_type = "crash_resolution"
        return event
