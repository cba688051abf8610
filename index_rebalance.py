"""
index_rebalance.py

Index addition or deletion: passive funds must trade the name at the close
on the effective date, and the move they force tends to reverse once that
demand is gone.

Timeline: announcement (1d) -> run_up (4-9d) -> effective_day (1d)
          -> reversal (3-5d) -> complete.

An addition runs the price up into the effective date and fades after it;
a deletion is the mirror image.  The index tier sets the size of the move
and the base reversal rate:

  tier_1  S&P 500, Russell 2000, Russell 1000   impact x1.5   reversal 78%
  tier_2  MSCI World, FTSE 100, Nasdaq 100      impact x1.2   reversal 65%
  tier_3  S&P MidCap 400, SmallCap 600, ETFs    impact x1.0   reversal 50%

Gold standard signals: a tier-1 index, a 5%+ run-up into the effective date,
a 20x+ market-on-close volume spike, and a T+2 close that has already given
ground.  The reversal is decided once on T+2.
"""

from __future__ import annotations

from market import meme_multiplier
from phenomena import TERMINAL, PhaseEffect, PhenomenonMachine, uniform, weighted_pick
from scoring import INDEX_REBALANCE_RUBRIC

INDEX_TIERS = {
    "tier_1": {
        "indices": ("S&P 500", "Russell 2000", "Russell 1000"),
        "impact": 1.5,
        "reversal_rate": 0.78,
    },
    "tier_2": {
        "indices": ("MSCI World", "FTSE 100", "Nasdaq 100"),
        "impact": 1.2,
        "reversal_rate": 0.65,
    },
    "tier_3": {
        "indices": ("S&P MidCap 400", "S&P SmallCap 600", "Sector SPDR ETF"),
        "impact": 1.0,
        "reversal_rate": 0.50,
    },
}

TIER_WEIGHTS = {"tier_1": 0.30, "tier_2": 0.35, "tier_3": 0.35}
ACTION_WEIGHTS = {"addition": 0.60, "deletion": 0.40}

# Magnitudes in the direction of the index flow.
ANNOUNCEMENT_MOVE = (0.02, 0.04)
RUN_UP_DAILY = (0.005, 0.015)
EFFECTIVE_DAY_MOVE = (0.01, 0.03)
REVERSAL_DAILY = (0.005, 0.015)
MOC_VOLUME = (8.0, 50.0)

RUN_UP_GOLD = 0.05
MOC_SPIKE = 20.0
DECISION_DAY = 2
FUNDAMENTAL_NEWS_EPS = 0.10
BULL_MARKET_TREND = 0.01
INSTITUTIONAL_OVERHANG_ODDS = 0.15


class IndexRebalanceMachine(PhenomenonMachine):
    kind = "index_rebalance"
    phases = ("announcement", "run_up", "effective_day", "reversal", TERMINAL)
    transitions = {
        "announcement": ("run_up",),
        "run_up": ("effective_day",),
        "effective_day": ("reversal",),
        "reversal": (TERMINAL,),
    }
    initial_phase = "announcement"
    durations = {
        "announcement": (1, 1),
        "run_up": (4, 9),
        "effective_day": (1, 1),
        "reversal": (3, 5),
    }
    rubric = INDEX_REBALANCE_RUBRIC
    daily_chance = 0.003
    cooldown_days = 90

    def _setup(self, instrument, state, rng, options):
        action = options.get("action") or weighted_pick(rng, ACTION_WEIGHTS)
        if action not in ACTION_WEIGHTS:
            raise ValueError(f"unknown index action {action!r}")
        tier = options.get("index_tier") or weighted_pick(rng, TIER_WEIGHTS)
        if tier not in INDEX_TIERS:
            raise ValueError(f"unknown index tier {tier!r}")
        tier_info = INDEX_TIERS[tier]
        indices = tier_info["indices"]

        m = state.metrics
        m["action"] = action
        m["index_tier"] = tier
        m["index"] = indices[int(rng.integers(0, len(indices)))]
        m["direction"] = 1 if action == "addition" else -1
        m["scale"] = tier_info["impact"] * meme_multiplier(instrument)
        state.base_probability = tier_info["reversal_rate"]
        state.magnitude = "major" if tier == "tier_1" else "minor"
        state.mark_signal("tier_one_index", tier == "tier_1")
        if options.get("moc_multiple") is not None:
            m["moc_multiple"] = float(options["moc_multiple"])

        if abs(instrument.eps_modifier) >= FUNDAMENTAL_NEWS_EPS:
            state.add_veto("fundamental_news")
        if action == "addition" and instrument.trend >= BULL_MARKET_TREND:
            state.add_veto("bull_market")
        if float(rng.random()) < INSTITUTIONAL_OVERHANG_ODDS:
            state.add_veto("institutional_overhang")

        return self.event(state, f"announce_{action}", self._flow_sentiment(state), index=m["index"])

    def _flow_sentiment(self, state):
        return "positive" if state.metrics["direction"] > 0 else "negative"

    def _phase_effect(self, instrument, state, rng):
        m = state.metrics
        sign = m["direction"]
        meme = meme_multiplier(instrument)

        if state.phase == "announcement":
            return PhaseEffect(delta=sign * uniform(rng, *ANNOUNCEMENT_MOVE) * m["scale"], sentiment=sign * 0.005 * meme)

        if state.phase == "run_up":
            event = None
            if state.day_in_phase == 2:
                event = self.event(state, f"run_up_{m['action']}", self._flow_sentiment(state), index=m["index"])
            return PhaseEffect(delta=sign * uniform(rng, *RUN_UP_DAILY) * m["scale"], event=event)

        if state.phase == "effective_day":
            run_up = (instrument.price / state.price_at_start - 1.0) * sign
            m["run_up_pct"] = run_up * 100
            state.mark_signal("run_up", run_up >= RUN_UP_GOLD)
            moc = float(m.get("moc_multiple") or uniform(rng, *MOC_VOLUME))
            m["moc_multiple"] = moc
            instrument.volume = instrument.avg_volume * moc
            state.mark_signal("moc_spike", moc >= MOC_SPIKE)
            event = self.event(
                state, "effective", self._flow_sentiment(state),
                index=m["index"], moc_multiple=moc, run_up_pct=abs(m["run_up_pct"]),
            )
            return PhaseEffect(
                delta=sign * uniform(rng, *EFFECTIVE_DAY_MOVE) * m["scale"],
                volatility_boost=0.3 * meme,
                event=event,
            )

        if state.phase == "reversal":
            return self._reversal(instrument, state, rng)

        return PhaseEffect()

    def _reversal(self, instrument, state, rng):
        m = state.metrics
        sign = m["direction"]
        if state.day_in_phase == 1:
            m["effective_close"] = float(instrument.price)
            return PhaseEffect(delta=-sign * uniform(rng, 0.0, 0.005))

        event = None
        if state.day_in_phase == DECISION_DAY:
            gave_ground = (instrument.price - m["effective_close"]) * sign < 0
            state.mark_signal("t2_reversal", gave_ground)
            self.decide(instrument, state, rng, base_rate=state.base_probability)
            if state.outcome_will_succeed:
                template = "fade" if sign > 0 else "rebound"
                event = self.event(state, template, "negative" if sign > 0 else "positive", index=m["index"])

        if state.outcome_will_succeed:
            return PhaseEffect(delta=-sign * uniform(rng, *REVERSAL_DAILY) * m["scale"], event=event)
        return PhaseEffect(delta=sign * uniform(rng, -0.002, 0.005), event=event)

    def _on_enter(self, instrument, state, rng):
        if state.phase != TERMINAL:
            return None
        m = state.metrics
        change = (instrument.price / state.price_at_start - 1.0) * 100
        if state.outcome_will_succeed:
            template = "reverted"
            ended_up = m["direction"] < 0
        else:
            template = "held"
            ended_up = m["direction"] > 0
        event = self.event(state, template, "positive" if ended_up else "negative", index=m["index"], change_pct=change)
        event.news_type = "recovery_complete" if ended_up else "crash_resolution"
        return event
