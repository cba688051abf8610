"""
news_shakeout.py

Panic selling on a scary headline, a few days of basing, then either a
gap-filling recovery or a relapse.

Timeline: panic (1d) -> stabilization (2-3d) -> recovery (7-14d) -> complete
                                             -> relapse (5-10d)  -> complete

What matters most is the kind of news.  A transient scare (a litigation
rumor, a guidance miss) usually washes out; a terminal one (fraud, a
regulatory ban) usually does not, and carries a heavy veto.

Gold standard signals: transient news, a 5x+ volume climax on the panic
day, a stabilization whose last close is above both the close before it and
the panic close, and an oversold RSI.  The outcome is decided once when
stabilization ends.
"""

from __future__ import annotations

from market import meme_multiplier
from phenomena import TERMINAL, PhaseEffect, PhenomenonMachine, uniform
from scoring import NEWS_SHAKEOUT_RUBRIC

TRANSIENT_NEWS = {
    "litigation_rumor": "litigation rumor",
    "ceo_departure": "surprise CEO exit",
    "metric_miss": "user-metric miss",
    "macro_scare": "macro scare",
    "sector_rotation": "sector rotation",
    "analyst_downgrade": "analyst downgrade",
    "guidance_miss": "guidance miss",
}

TERMINAL_NEWS = {
    "fraud": "SEC accounting probe",
    "bankruptcy": "bankruptcy warning",
    "product_recall": "product recall",
    "major_contract_loss": "major contract loss",
    "regulatory_ban": "regulatory ban",
    "accounting_restatement": "accounting restatement",
}

TERMINAL_NEWS_ODDS = 0.20

PANIC_DROP = (0.08, 0.15)
PANIC_VOLUME = (3.0, 9.0)
STABILIZATION_DRIFT = {
    "transient": (-0.03, 0.02),
    "terminal": (-0.04, 0.005),
}
RECOVERY_DAILY = (0.01, 0.03)
RECOVERY_TAPER = 0.6
RELAPSE_FIRST_DAY = (-0.03, -0.01)
RELAPSE_DAILY = (-0.02, 0.01)

VOLUME_CLIMAX = 5.0
RSI_OVERSOLD = 25.0
SECTOR_COLLAPSE_ODDS = 0.05
PRIOR_DOWNTREND = -0.01


class NewsShakeoutMachine(PhenomenonMachine):
    kind = "news_shakeout"
    phases = ("panic", "stabilization", "recovery", "relapse", TERMINAL)
    transitions = {
        "panic": ("stabilization",),
        "stabilization": ("recovery", "relapse"),
        "recovery": (TERMINAL,),
        "relapse": (TERMINAL,),
    }
    initial_phase = "panic"
    durations = {
        "panic": (1, 1),
        "stabilization": (2, 3),
        "recovery": (7, 14),
        "relapse": (5, 10),
    }
    rubric = NEWS_SHAKEOUT_RUBRIC
    daily_chance = 0.008
    cooldown_days = 10

    def _setup(self, instrument, state, rng, options):
        news_type = options.get("news_type")
        if news_type is None:
            table = TERMINAL_NEWS if float(rng.random()) < TERMINAL_NEWS_ODDS else TRANSIENT_NEWS
            names = list(table)
            news_type = names[int(rng.integers(0, len(names)))]
        if news_type not in TRANSIENT_NEWS and news_type not in TERMINAL_NEWS:
            raise ValueError(f"unknown shakeout news type {news_type!r}")
        transient = news_type in TRANSIENT_NEWS

        m = state.metrics
        m["news_type"] = news_type
        m["news_label"] = TRANSIENT_NEWS.get(news_type) or TERMINAL_NEWS[news_type]
        m["news_class"] = "transient" if transient else "terminal"
        state.mark_signal("transient_news", transient)
        if not transient:
            state.add_veto("terminal_news")

        drop = float(options.get("drop", uniform(rng, *PANIC_DROP)))
        m["drop"] = drop
        state.magnitude = "major" if drop >= 0.12 else "minor"

        volume_multiple = float(options.get("volume_multiple", uniform(rng, *PANIC_VOLUME)))
        m["volume_multiple"] = volume_multiple
        instrument.volume = instrument.avg_volume * volume_multiple
        state.mark_signal("volume_climax", volume_multiple >= VOLUME_CLIMAX)
        if volume_multiple < VOLUME_CLIMAX:
            state.add_veto("no_volume_climax")

        if instrument.trend <= PRIOR_DOWNTREND:
            state.add_veto("prior_downtrend")
        if float(rng.random()) < SECTOR_COLLAPSE_ODDS:
            state.add_veto("sector_collapse")

        m["closes"] = []
        return self.event(state, "panic", "negative", news_label=m["news_label"], drop_pct=drop * 100)

    def _phase_effect(self, instrument, state, rng):
        m = state.metrics
        meme = meme_multiplier(instrument)

        if state.phase == "panic":
            return PhaseEffect(delta=-m["drop"], sentiment=-0.03 * meme, volatility_boost=0.6 * meme)

        if state.phase == "stabilization":
            m["closes"].append(float(instrument.price))
            event = None
            if state.day_in_phase == 1:
                state.mark_signal("rsi_oversold", instrument.rsi <= RSI_OVERSOLD)
                event = self.event(state, "stabilization", "neutral", news_label=m["news_label"])
            lo, hi = STABILIZATION_DRIFT[m["news_class"]]
            return PhaseEffect(delta=uniform(rng, lo, hi), event=event)

        if state.phase == "recovery":
            days = max(1, state.day_in_phase + state.days_remaining - 1)
            event = None
            if state.day_in_phase == 1:
                event = self.event(state, "recovery", "positive", news_label=m["news_label"])
            if instrument.price >= state.price_at_start:
                return PhaseEffect(delta=uniform(rng, -0.003, 0.005), event=event)
            progress = (state.day_in_phase - 1) / days
            delta = uniform(rng, *RECOVERY_DAILY) * (1.0 - RECOVERY_TAPER * progress)
            return PhaseEffect(delta=delta, sentiment=0.005 * meme, event=event)

        if state.phase == "relapse":
            if state.day_in_phase == 1:
                event = self.event(state, "relapse", "negative", news_label=m["news_label"])
                return PhaseEffect(delta=uniform(rng, *RELAPSE_FIRST_DAY), sentiment=-0.01 * meme, event=event)
            return PhaseEffect(delta=uniform(rng, *RELAPSE_DAILY))

        return PhaseEffect()

    def _next_phase(self, instrument, state, rng):
        if state.phase != "stabilization":
            return super()._next_phase(instrument, state, rng)
        m = state.metrics
        panic_close = m["closes"][0]
        # the last stabilization day's move is still pending in transition_effect
        closes = m["closes"] + [instrument.price * (1.0 + instrument.transition_effect)]
        last, before = closes[-1], closes[-2]
        state.mark_signal("three_day_stabilization", last > before and last > panic_close)
        if last < panic_close:
            state.add_veto("failed_stabilization")
        m["stabilization_close"] = last
        if self.decide(instrument, state, rng):
            return "recovery"
        return "relapse"

    def _on_enter(self, instrument, state, rng):
        if state.phase != TERMINAL:
            return None
        change = (instrument.price / state.price_at_start - 1.0) * 100
        label = state.metrics["news_label"]
        if state.outcome_will_succeed:
            event = self.event(state, "recovered", "positive", news_label=label, change_pct=change)
            event.news_type = "recovery_complete"
        else:
            event = self.event(state, "damage_done", "negative", news_label=label, change_pct=change)
            event.news_type = "crash_resolution"
        return event
