"""
executive_change.py

Unexpected CEO/CFO departure and the market's verdict on the succession.

Timeline: announcement (1-2d) -> stabilization (3-5d) -> resolution -> complete.

The departure type sets both the size of the announcement drop and the base
reversal rate:

  abrupt_no_successor   15%   "effective immediately", no named successor
  cfo_exit_clean        50%   CFO leaves, audit language clean
  planned_internal      70%   internal successor already named
  gold_standard         85%   named successor, clean 8-K, capitulation volume

Gold standard signals: succession integrity, clean audit language in the
8-K, 3x+ capitulation volume on the news, and three consecutive days that
hold the first day's low.  The reversal is decided once when stabilization
ends.
"""

from __future__ import annotations

from market import meme_multiplier
from phenomena import TERMINAL, PhaseEffect, PhenomenonMachine, randint, uniform, weighted_pick
from scoring import EXECUTIVE_CHANGE_RUBRIC

EXEC_TYPE_WEIGHTS = {
    "abrupt_no_successor": 0.15,
    "cfo_exit_clean": 0.25,
    "planned_internal": 0.35,
    "gold_standard": 0.25,
}

REVERSAL_RATES = {
    "abrupt_no_successor": 0.15,
    "cfo_exit_clean": 0.50,
    "planned_internal": 0.70,
    "gold_standard": 0.85,
}

# Total announcement drop (before the meme multiplier).
ANNOUNCEMENT_IMPACT = {
    "abrupt_no_successor": (0.15, 0.25),
    "cfo_exit_clean": (0.03, 0.08),
    "planned_internal": (0.05, 0.10),
    "gold_standard": (0.05, 0.10),
}

STABILIZATION_DRIFT = {
    "abrupt_no_successor": (-0.05, -0.02),
    "cfo_exit_clean": (-0.02, 0.01),
    "planned_internal": (-0.01, 0.02),
    "gold_standard": (0.00, 0.02),
}

# Total move over the resolution phase.
RESOLUTION_MOVE = {
    "abrupt_no_successor": (-0.10, -0.05),
    "cfo_exit_clean": (0.02, 0.05),
    "planned_internal": (0.05, 0.10),
    "gold_standard": (0.08, 0.15),
}

RESOLUTION_DAYS = {
    "abrupt_no_successor": (20, 40),
    "cfo_exit_clean": (30, 60),
    "planned_internal": (7, 14),
    "gold_standard": (7, 14),
}

# Probability that the 8-K reads clean, per type.
CLEAN_AUDIT_ODDS = {
    "abrupt_no_successor": 0.10,
    "cfo_exit_clean": 0.60,
    "planned_internal": 0.70,
    "gold_standard": 1.00,
}

ROLES = {
    "abrupt_no_successor": "CEO",
    "cfo_exit_clean": "CFO",
    "planned_internal": "CEO",
    "gold_standard": "CEO",
}

SUCCESSORS = (
    "Chief Operating Officer Dana Whitfield",
    "President Marcus Ortega",
    "EVP of Products Priya Raman",
    "Board Vice Chair Helen Strand",
)

VOLUME_CAPITULATION = 3.0
HOLD_DAYS = 3


class ExecutiveChangeMachine(PhenomenonMachine):
    kind = "executive_change"
    phases = ("announcement", "stabilization", "resolution", TERMINAL)
    transitions = {
        "announcement": ("stabilization",),
        "stabilization": ("resolution",),
        "resolution": (TERMINAL,),
    }
    initial_phase = "announcement"
    durations = {
        "announcement": (1, 2),
        "stabilization": (3, 5),
    }
    rubric = EXECUTIVE_CHANGE_RUBRIC
    daily_chance = 0.012

    def _setup(self, instrument, state, rng, options):
        exec_type = options.get("exec_type") or weighted_pick(rng, EXEC_TYPE_WEIGHTS)
        if exec_type not in EXEC_TYPE_WEIGHTS:
            raise ValueError(f"unknown executive change type {exec_type!r}")
        meme = meme_multiplier(instrument)
        m = state.metrics
        m["exec_type"] = exec_type
        m["role"] = ROLES[exec_type]
        state.base_probability = REVERSAL_RATES[exec_type]

        lo, hi = ANNOUNCEMENT_IMPACT[exec_type]
        impact = uniform(rng, lo, hi) * meme
        m["impact"] = impact
        state.magnitude = "extreme" if impact >= 0.15 else "major" if impact >= 0.08 else "minor"

        has_successor = exec_type in ("planned_internal", "gold_standard")
        if exec_type == "cfo_exit_clean":
            has_successor = float(rng.random()) < 0.5
        m["successor"] = SUCCESSORS[int(rng.integers(0, len(SUCCESSORS)))] if has_successor else ""
        state.mark_signal("succession_integrity", has_successor)
        if not has_successor:
            state.add_veto("interim_only")

        clean = options.get("clean_audit")
        if clean is None:
            clean = float(rng.random()) < CLEAN_AUDIT_ODDS[exec_type]
        m["eight_k"] = "clean" if clean else "red_flag" if exec_type == "abrupt_no_successor" else "vague"
        state.mark_signal("clean_audit", bool(clean))
        if m["eight_k"] == "red_flag":
            state.add_veto("eight_k_red_flag")

        default_volume = uniform(rng, 4.0, 8.0) if exec_type == "abrupt_no_successor" else uniform(rng, 1.5, 5.0)
        if exec_type == "gold_standard":
            default_volume = max(default_volume, VOLUME_CAPITULATION)
        volume_multiple = float(options.get("volume_multiple", default_volume))
        m["volume_multiple"] = volume_multiple
        instrument.volume = instrument.avg_volume * volume_multiple
        state.mark_signal("volume_capitulation", volume_multiple >= VOLUME_CAPITULATION)

        m["hold_days"] = 0
        state.days_remaining = self._sample_duration(instrument, state, "announcement", rng)
        m["announcement_daily"] = -impact / state.days_remaining
        return self.event(
            state, f"announcement_{exec_type}", "negative",
            role=m["role"], successor=m["successor"], drop_pct=impact * 100,
        )

    def _sample_duration(self, instrument, state, phase, rng):
        if phase == "resolution":
            lo, hi = RESOLUTION_DAYS[state.metrics["exec_type"]]
            return randint(rng, lo, hi)
        return super()._sample_duration(instrument, state, phase, rng)

    def _phase_effect(self, instrument, state, rng):
        m = state.metrics
        exec_type = m["exec_type"]
        meme = meme_multiplier(instrument)

        if state.phase == "announcement":
            return PhaseEffect(
                delta=m["announcement_daily"],
                sentiment=-0.03 * meme,
                volatility_boost=0.5 * meme,
            )

        if state.phase == "stabilization":
            self._track_low(instrument, state)
            lo, hi = STABILIZATION_DRIFT[exec_type]
            event = None
            if state.day_in_phase == 1:
                event = self.event(state, "stabilization", "neutral", low=m["day_one_low"])
            return PhaseEffect(delta=uniform(rng, lo, hi), event=event)

        if state.phase == "resolution":
            days = max(1, state.day_in_phase + state.days_remaining - 1)
            # the first session carries the bulk of the re-rating
            total = m["resolution_total"]
            delta = total * 0.4 if state.day_in_phase == 1 else total * 0.6 / max(1, days - 1)
            sentiment = (0.01 if state.outcome_will_succeed else -0.005) * meme
            event = None
            if state.day_in_phase == 1:
                template = "reversal" if state.outcome_will_succeed else "decline_continues"
                event = self.event(state, template, "positive" if state.outcome_will_succeed else "negative")
            return PhaseEffect(delta=delta, sentiment=sentiment, event=event)

        return PhaseEffect()

    def _track_low(self, instrument, state) -> None:
        """Each close at or above the first day's low extends the streak; a new low starts a new one."""
        m = state.metrics
        price = float(instrument.price)
        if "day_one_low" not in m or price < m["day_one_low"]:
            m["day_one_low"] = price
            m["hold_days"] = 1
        else:
            m["hold_days"] += 1
        state.mark_signal("three_day_stabilization", m["hold_days"] >= HOLD_DAYS)

    def _next_phase(self, instrument, state, rng):
        if state.phase == "stabilization":
            self.decide(instrument, state, rng, base_rate=state.base_probability)
            lo, hi = RESOLUTION_MOVE[state.metrics["exec_type"]]
            if state.outcome_will_succeed:
                total = abs(uniform(rng, lo, hi))
            else:
                total = -max(abs(lo) * 0.5 + float(rng.random()) * abs(lo) * 0.3, 0.04)
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
            event = self.event(state, "decline_complete", "negative", change_pct=change)
            event.news_type = "crash_resolution"
        return event
