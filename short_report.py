"""
short_report.py

Activist short-seller report: fraud allegations, company rebuttal, follow-up
waves, and the eventual verdict.

Timeline:
  initial_crash (1d) -> rebuttal_window (2-3d) -> base_building (5-14d)
  -> resolution (5-10d) -> complete

The report knocks 25-40% (x meme) off the price on day one.  During base
building the short seller may publish up to three follow-up waves, each a
fresh 10-20% hit and each a veto against the company.

Gold standard for the report being debunked (85%):
  1. data rebuttal: the company answers with numbers, not adjectives
  2. auditor confirmation: the auditor stands behind the filings
  3. insider support: insiders buy the dip on the open market
  4. short covering: short interest falls 20%+ from its peak

Success means debunked.  The outcome is decided once when the
investigation (resolution) starts and revealed on its last day.
"""

from __future__ import annotations

from market import meme_multiplier
from phenomena import TERMINAL, PhaseEffect, PhenomenonMachine, randint, uniform
from scoring import SHORT_REPORT_RUBRIC

REPORTERS = (
    "Iceberg Research",
    "Shadowfall Capital",
    "Viceroy Research",
    "Muddy Waters",
    "Hindenburg Research",
)

WAVE_VETOES = {2: "second_wave", 3: "third_wave", 4: "fourth_wave"}

FOLLOWUP_CHANCE = 0.75
AUDITOR_DAILY = 0.08
INSIDER_DAILY = 0.06
COVERING_THRESHOLD = 0.20


class ShortReportMachine(PhenomenonMachine):
    kind = "short_seller_report"
    phases = ("initial_crash", "rebuttal_window", "base_building", "resolution", TERMINAL)
    transitions = {
        "initial_crash": ("rebuttal_window",),
        "rebuttal_window": ("base_building",),
        "base_building": ("resolution",),
        "resolution": (TERMINAL,),
    }
    initial_phase = "initial_crash"
    durations = {
        "initial_crash": (1, 1),
        "rebuttal_window": (2, 3),
        "base_building": (5, 14),
        "resolution": (5, 10),
    }
    rubric = SHORT_REPORT_RUBRIC
    daily_chance = 0.002

    def _setup(self, instrument, state, rng, options):
        meme = meme_multiplier(instrument)
        m = state.metrics
        m["reporter"] = options.get("reporter") or REPORTERS[int(rng.integers(0, len(REPORTERS)))]
        m["wave"] = 1
        m["max_waves"] = int(options.get("max_waves") or randint(rng, 2, 4))
        drop = float(options.get("drop", uniform(rng, 0.25, 0.40))) * meme
        m["drop"] = drop
        m["auditor_clean"] = float(rng.random()) < 0.6
        state.magnitude = "extreme" if drop >= 0.30 else "major" if drop >= 0.15 else "minor"

        instrument.short_interest = min(0.60, instrument.short_interest + uniform(rng, 0.05, 0.15))
        m["peak_short_interest"] = instrument.short_interest
        instrument.volume = instrument.avg_volume * uniform(rng, 4.0, 10.0)
        return self.event(state, "initial", "negative", reporter=m["reporter"], drop_pct=drop * 100)

    def _phase_effect(self, instrument, state, rng):
        meme = meme_multiplier(instrument)
        m = state.metrics

        if state.phase == "initial_crash":
            return PhaseEffect(
                delta=-m["drop"],
                sentiment=-max(0.06, 0.12 * meme),
                volatility_boost=1.5 * meme,
            )

        if state.phase == "rebuttal_window":
            event = None
            sentiment = 0.0
            if state.day_in_phase == 1:
                sentiment = 0.06 * meme
                has_data = state.mark_signal("data_rebuttal", float(rng.random()) < 0.55)
                template = "rebuttal_data" if has_data else "denial"
                event = self.event(state, template, "positive", reporter=m["reporter"])
            return PhaseEffect(delta=uniform(rng, -0.02, 0.03), sentiment=sentiment, event=event)

        if state.phase == "base_building":
            return self._base_building(instrument, state, rng, meme)

        if state.phase == "resolution":
            if state.days_remaining > 1:
                event = None
                if state.day_in_phase == 1:
                    event = self.event(state, "investigation", "neutral", reporter=m["reporter"], wave=m["wave"])
                return PhaseEffect(delta=uniform(rng, -0.01, 0.01), event=event)
            return self._verdict(instrument, state, rng, meme)

        return PhaseEffect()

    def _base_building(self, instrument, state, rng, meme) -> PhaseEffect:
        m = state.metrics
        if state.day_in_phase in m.get("wave_days", ()):
            m["wave"] += 1
            state.add_veto(WAVE_VETOES.get(m["wave"], "fourth_wave"))
            damage = uniform(rng, 0.10, 0.20) * meme
            instrument.short_interest = min(0.60, instrument.short_interest * 1.1)
            m["peak_short_interest"] = max(m["peak_short_interest"], instrument.short_interest)
            event = self.event(state, "followup", "negative", reporter=m["reporter"], wave=m["wave"],
                               drop_pct=damage * 100)
            return PhaseEffect(delta=-damage, sentiment=-0.03 * meme, volatility_boost=meme, event=event)

        instrument.short_interest *= 1.0 - uniform(rng, 0.0, 0.06)
        covered = 1.0 - instrument.short_interest / m["peak_short_interest"]
        state.mark_signal("short_interest_covering", covered >= COVERING_THRESHOLD)

        event = None
        delta = uniform(rng, -0.02, 0.02)
        if m["auditor_clean"] and float(rng.random()) < AUDITOR_DAILY:
            if state.mark_signal("auditor_confirmation"):
                event = self.event(state, "auditor", "positive")
        elif float(rng.random()) < INSIDER_DAILY:
            if state.mark_signal("insider_support"):
                delta = uniform(rng, 0.01, 0.02)
                event = self.event(state, "insider_support", "positive")
        return PhaseEffect(delta=delta, event=event)

    def _verdict(self, instrument, state, rng, meme) -> PhaseEffect:
        m = state.metrics
        if state.outcome_will_succeed:
            move = uniform(rng, 0.10, 0.18) * meme
            event = self.event(state, "debunked", "positive", reporter=m["reporter"], wave=m["wave"])
            sentiment = 0.05 * meme
        else:
            move = -uniform(rng, 0.08, 0.12) * meme
            damage = (0.15 + m["wave"] * 0.05) * meme
            instrument.eps_modifier -= damage
            m["eps_damage"] = damage
            event = self.event(state, "vindicated", "negative", reporter=m["reporter"], wave=m["wave"])
            sentiment = -0.05 * meme
        event.news_type = "short_report_resolution"
        return PhaseEffect(delta=move, sentiment=sentiment, event=event)

    def _next_phase(self, instrument, state, rng):
        if state.phase == "base_building":
            self.decide(instrument, state, rng)
        return super()._next_phase(instrument, state, rng)

    def _on_enter(self, instrument, state, rng):
        if state.phase == "base_building":
            self._schedule_waves(state, rng)
        return None

    def _schedule_waves(self, state, rng) -> None:
        m = state.metrics
        extra = 0
        while m["wave"] + extra < m["max_waves"] and float(rng.random()) < FOLLOWUP_CHANCE:
            extra += 1
        days = list(range(2, state.days_remaining + 1))
        extra = min(extra, len(days))
        picked = rng.choice(days, size=extra, replace=False) if extra else []
        m["wave_days"] = sorted(int(d) for d in picked)
