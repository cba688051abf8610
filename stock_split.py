"""
stock_split.py

Forward stock split: the retail run-up into the effective date and the
"sell the news" fade that usually follows.

Timeline: announcement (1d) -> run_up (4-9d) -> split_day (1d)
          -> post_split (4-8d) -> complete.

Only names trading at or above a tier's minimum price split.  The tier sets
the size of every move and the base reversal rate:

  mega_cap   >= 800   impact x1.5   reversal 82%
  large_cap  >= 400   impact x1.2   reversal 72%
  mid_cap    >= 100   impact x1.0   reversal 60%

The ratio adds retail hype on top (2:1 x1.0 up to 20:1 x2.5).  On the split
day every per-share figure is divided by the ratio before the day's move is
applied, so the headline move is the split-adjusted one.

Gold standard signals: mega-cap tier, a 15%+ run-up from the announcement,
3x+ out-of-the-money call volume into the split, and a lower high by T+3.
The fade is decided once on T+3.
"""

from __future__ import annotations

from dataclasses import dataclass

from market import meme_multiplier
from phenomena import TERMINAL, PhaseEffect, PhenomenonMachine, uniform
from scoring import STOCK_SPLIT_RUBRIC


@dataclass(frozen=True)
class StockTier:
    name: str
    min_price: float
    impact: float
    reversal_rate: float


# Highest first; the first tier whose minimum the price clears wins.
STOCK_TIERS: tuple[StockTier, ...] = (
    StockTier("mega_cap", 800.0, 1.5, 0.82),
    StockTier("large_cap", 400.0, 1.2, 0.72),
    StockTier("mid_cap", 100.0, 1.0, 0.60),
)

SPLIT_MIN_PRICE = min(t.min_price for t in STOCK_TIERS)

# ratio -> (retail appeal, hype multiplier)
SPLIT_RATIOS = {
    2: ("moderate", 1.0),
    3: ("high", 1.2),
    4: ("very_high", 1.4),
    5: ("very_high", 1.5),
    10: ("extreme", 2.0),
    20: ("extreme", 2.5),
}

# (min price, ratios a board would pick at that price), highest first
RATIO_CHOICES = (
    (1500.0, (10, 20)),
    (800.0, (4, 5, 10)),
    (0.0, (2, 3, 4)),
)

ANNOUNCEMENT_POP = (0.02, 0.05)
RUN_UP_DAILY = (0.01, 0.025)
EFFECTIVE_DAY_POP = (0.02, 0.06)
REVERSAL_DAILY = (-0.02, -0.008)
NO_REVERSAL_DRIFT = (-0.005, 0.01)
# T+1 and T+2 before the fade is known
EARLY_DRIFT = (-0.01, 0.008)

MAX_ANNOUNCEMENT_POP = 0.12
MAX_RUN_UP_DAILY = 0.05
MAX_EFFECTIVE_DAY_POP = 0.15
MAX_REVERSAL_DAILY = -0.05

RUN_UP_GOLD = 0.15
RUN_UP_EXTENDED = 0.20
RUN_UP_BONUS = 0.05
OTM_CALL_SPIKE = 3.0
DECISION_DAY = 3

EARNINGS_BLOWOUT_EPS = 0.10
BULL_MARKET_TREND = 0.01
NEW_PRODUCT_LAUNCH_ODDS = 0.10
SECTOR_MOMENTUM_ODDS = 0.15


def stock_tier(price: float) -> StockTier | None:
    for tier in STOCK_TIERS:
        if price >= tier.min_price:
            return tier
    return None


def classify_ratio(ratio: int) -> tuple[str, float]:
    """(retail appeal, hype multiplier) for a *ratio*-for-1 split."""
    if ratio not in SPLIT_RATIOS:
        raise ValueError(f"unsupported split ratio {ratio!r}")
    return SPLIT_RATIOS[ratio]


def ratio_options(price: float) -> tuple[int, ...]:
    for min_price, ratios in RATIO_CHOICES:
        if price >= min_price:
            return ratios
    return RATIO_CHOICES[-1][1]


class StockSplitMachine(PhenomenonMachine):
    kind = "stock_split"
    phases = ("announcement", "run_up", "split_day", "post_split", TERMINAL)
    transitions = {
        "announcement": ("run_up",),
        "run_up": ("split_day",),
        "split_day": ("post_split",),
        "post_split": (TERMINAL,),
    }
    initial_phase = "announcement"
    durations = {
        "announcement": (1, 1),
        "run_up": (4, 9),
        "split_day": (1, 1),
        "post_split": (4, 8),
    }
    rubric = STOCK_SPLIT_RUBRIC
    daily_chance = 0.004
    cooldown_days = 120

    def _eligible(self, instrument):
        return instrument.price >= SPLIT_MIN_PRICE

    def _setup(self, instrument, state, rng, options):
        tier = stock_tier(float(instrument.price))
        ratio = int(options.get("ratio") or 0)
        if not ratio:
            choices = ratio_options(float(instrument.price))
            ratio = int(choices[int(rng.integers(0, len(choices)))])
        appeal, hype = classify_ratio(ratio)
        meme = meme_multiplier(instrument)
        scale = tier.impact * hype * meme

        m = state.metrics
        m["tier"] = tier.name
        m["ratio"] = ratio
        m["ratio_name"] = f"{ratio}-for-1"
        m["appeal"] = appeal
        m["scale"] = scale
        state.base_probability = tier.reversal_rate
        state.magnitude = "extreme" if ratio >= 10 else "major" if ratio >= 4 else "minor"
        state.mark_signal("mega_cap", tier.name == "mega_cap")

        m["announcement_pop"] = min(uniform(rng, *ANNOUNCEMENT_POP) * scale, MAX_ANNOUNCEMENT_POP)
        m["otm_call_multiple"] = float(options.get("otm_call_multiple", uniform(rng, 1.5, 3.5) * hype))

        if instrument.eps_modifier >= EARNINGS_BLOWOUT_EPS:
            state.add_veto("earnings_blowout")
        if instrument.trend >= BULL_MARKET_TREND:
            state.add_veto("bull_market")
        if float(rng.random()) < NEW_PRODUCT_LAUNCH_ODDS:
            state.add_veto("new_product_launch")
        if float(rng.random()) < SECTOR_MOMENTUM_ODDS:
            state.add_veto("sector_momentum")

        return self.event(
            state, "announcement", "positive",
            ratio_name=m["ratio_name"], appeal=appeal.replace("_", " "),
        )

    def _phase_effect(self, instrument, state, rng):
        m = state.metrics
        meme = meme_multiplier(instrument)

        if state.phase == "announcement":
            return PhaseEffect(delta=m["announcement_pop"], sentiment=0.01 * meme, volatility_boost=0.2 * meme)

        if state.phase == "run_up":
            delta = min(uniform(rng, *RUN_UP_DAILY) * m["scale"], MAX_RUN_UP_DAILY)
            event = None
            if state.days_remaining == 1:
                event = self.event(state, "eve", "positive", ratio_name=m["ratio_name"])
            elif state.day_in_phase == 2:
                event = self.event(state, "run_up", "positive", ratio_name=m["ratio_name"])
            return PhaseEffect(delta=delta, sentiment=0.005 * meme, event=event)

        if state.phase == "split_day":
            return self._split(instrument, state, rng)

        if state.phase == "post_split":
            return self._post_split(instrument, state, rng)

        return PhaseEffect()

    def _split(self, instrument, state, rng):
        m = state.metrics
        meme = meme_multiplier(instrument)
        run_up = instrument.price / state.price_at_start - 1.0
        m["run_up_pct"] = run_up * 100
        state.mark_signal("run_up", run_up >= RUN_UP_GOLD)
        state.mark_signal("otm_call_spike", m["otm_call_multiple"] >= OTM_CALL_SPIKE)
        if run_up >= RUN_UP_EXTENDED:
            state.base_probability += RUN_UP_BONUS

        instrument.apply_split(m["ratio"])
        instrument.volume = instrument.avg_volume * uniform(rng, 3.0, 8.0)
        delta = min(uniform(rng, *EFFECTIVE_DAY_POP) * m["scale"], MAX_EFFECTIVE_DAY_POP)
        event = self.event(
            state, "split_day", "positive",
            ratio_name=m["ratio_name"], new_price=instrument.price,
            otm_call_multiple=m["otm_call_multiple"], run_up_pct=m["run_up_pct"],
        )
        return PhaseEffect(delta=delta, sentiment=0.01 * meme, volatility_boost=0.5 * meme, event=event)

    def _post_split(self, instrument, state, rng):
        m = state.metrics
        meme = meme_multiplier(instrument)
        price = float(instrument.price)
        if state.day_in_phase == 1:
            m["split_close"] = price
        else:
            m["post_split_high"] = max(m.get("post_split_high", 0.0), price)

        if state.day_in_phase < DECISION_DAY:
            return PhaseEffect(delta=uniform(rng, *EARLY_DRIFT))

        event = None
        if state.day_in_phase == DECISION_DAY:
            state.mark_signal("lower_high", m["post_split_high"] < m["split_close"])
            self.decide(instrument, state, rng, base_rate=state.base_probability)
            if state.outcome_will_succeed:
                event = self.event(state, "fade", "negative", ratio_name=m["ratio_name"])
            elif state.active_vetoes:
                event = self.event(state, "defies_fade", "neutral", ratio_name=m["ratio_name"])

        if state.outcome_will_succeed:
            delta = max(uniform(rng, *REVERSAL_DAILY) * m["scale"], MAX_REVERSAL_DAILY)
            return PhaseEffect(delta=delta, sentiment=-0.005 * meme, event=event)
        return PhaseEffect(delta=uniform(rng, *NO_REVERSAL_DRIFT), event=event)

    def _on_enter(self, instrument, state, rng):
        if state.phase != TERMINAL:
            return None
        change = (instrument.price / state.price_at_start - 1.0) * 100
        ratio_name = state.metrics["ratio_name"]
        if state.outcome_will_succeed:
            event = self.event(state, "faded", "negative", ratio_name=ratio_name, change_pct=change)
            event.news_type = "crash_resolution"
        else:
            event = self.event(state, "held", "positive", ratio_name=ratio_name, change_pct=change)
            event.news_type = "recovery_complete"
        return event
