"""
insider_buying.py

Insiders buying their own stock on the open market (SEC Form 4, code P).

Timeline: accumulating (3-7d) -> catalyst | fizzle (1-3d) -> complete.

Each Form 4 filing lifts sentiment a little; a cluster of buyers lifts it
more.  At the end of accumulation the engine decides whether the buying was
early to a real catalyst or just noise.

Gold standard (85%):
  1. cluster buying: 3+ distinct insiders
  2. open-market purchases (code P), not plan or option exercises
  3. wealth commitment: a purchase worth more than 10% of the buyer's holdings
  4. executive buyer: CEO, CFO or Chairman
"""

from __future__ import annotations

from market import meme_multiplier
from phenomena import TERMINAL, PhaseEffect, PhenomenonMachine, uniform, weighted_pick
from scoring import INSIDER_BUYING_RUBRIC

# Title -> signal weight; executives know the most.
TITLE_WEIGHTS = {
    "CEO": 1.5,
    "CFO": 1.4,
    "Chairman": 1.4,
    "COO": 1.2,
    "Director": 1.0,
    "VP": 0.9,
    "10% Owner": 0.8,
}

# (label, min, max, odds)
PURCHASE_SIZES = (
    ("small", 100_000, 500_000, 0.35),
    ("medium", 500_000, 2_000_000, 0.40),
    ("large", 2_000_000, 10_000_000, 0.20),
    ("massive", 10_000_000, 50_000_000, 0.05),
)

CLUSTER_MINIMUM = 3
WEALTH_THRESHOLD = 0.10
EXECUTIVE_WEIGHT = 1.4
RECENT_CRASH_DAYS = 30
CRASH_MULTIPLIER = 2.5
# Chance per accumulating day that another insider files.
FOLLOW_ON_BUY = 0.45


def _purchase(rng) -> tuple[str, float]:
    roll = float(rng.random())
    acc = 0.0
    for label, lo, hi, odds in PURCHASE_SIZES:
        acc += odds
        if roll < acc:
            return label, uniform(rng, lo, hi)
    label, lo, hi, _ = PURCHASE_SIZES[-1]
    return label, uniform(rng, lo, hi)


class InsiderBuyingMachine(PhenomenonMachine):
    kind = "insider_buying"
    phases = ("accumulating", "catalyst", "fizzle", TERMINAL)
    transitions = {
        "accumulating": ("catalyst", "fizzle"),
        "catalyst": (TERMINAL,),
        "fizzle": (TERMINAL,),
    }
    initial_phase = "accumulating"
    durations = {
        "accumulating": (3, 7),
        "catalyst": (1, 3),
        "fizzle": (1, 3),
    }
    rubric = INSIDER_BUYING_RUBRIC
    daily_chance = 0.005

    def trigger_chance(self, instrument):
        since = instrument.days_since_crash
        if since is not None and since <= RECENT_CRASH_DAYS:
            return self.daily_chance * CRASH_MULTIPLIER
        return self.daily_chance

    def _setup(self, instrument, state, rng, options):
        meme = meme_multiplier(instrument)
        state.metrics["buys"] = []
        state.metrics["plan_purchase"] = bool(options.get("plan_purchase", float(rng.random()) < 0.10))
        buy = self._record_buy(state, rng, options.get("title"))
        instrument.add_sentiment(0.03 * meme)
        return self.event(state, "buy", "positive", title=buy["title"], amount=buy["amount"])

    def _record_buy(self, state, rng, title: str | None = None) -> dict:
        m = state.metrics
        taken = {b["title"] for b in m["buys"]}
        pool = {t: w for t, w in TITLE_WEIGHTS.items() if t not in taken}
        if title is None:
            title = weighted_pick(rng, pool or TITLE_WEIGHTS)
        size, amount = _purchase(rng)
        buy = {
            "title": title,
            "weight": TITLE_WEIGHTS.get(title, 1.0),
            "size": size,
            "amount": amount,
            "wealth_pct": uniform(rng, 0.02, 0.25),
            "code": "M" if m["plan_purchase"] else "P",
        }
        m["buys"].append(buy)

        buyers = len(m["buys"])
        state.mark_signal("cluster_buying", buyers >= CLUSTER_MINIMUM)
        state.mark_signal("open_market_code_p", buy["code"] == "P")
        state.mark_signal("wealth_commitment", buy["wealth_pct"] > WEALTH_THRESHOLD)
        state.mark_signal("executive_buyer", buy["weight"] >= EXECUTIVE_WEIGHT)
        state.magnitude = "cluster" if buyers >= CLUSTER_MINIMUM else "multiple" if buyers > 1 else "single"
        return buy

    def _phase_effect(self, instrument, state, rng):
        meme = meme_multiplier(instrument)
        m = state.metrics

        if state.phase == "accumulating":
            event = None
            if state.day_in_phase > 1 and float(rng.random()) < FOLLOW_ON_BUY:
                buy = self._record_buy(state, rng)
                count = len(m["buys"])
                if count == CLUSTER_MINIMUM:
                    event = self.event(state, "cluster", "positive", buyers=count)
                else:
                    event = self.event(state, "buy", "positive", title=buy["title"], amount=buy["amount"])
            return PhaseEffect(delta=uniform(rng, 0.0, 0.01), sentiment=0.025 * meme, event=event)

        if state.phase == "catalyst":
            total = m["catalyst_move"]
            days = max(1, state.day_in_phase + state.days_remaining - 1)
            if state.day_in_phase == 1:
                event = self.event(state, "catalyst", "positive", buyers=len(m["buys"]), move_pct=total * 100)
                return PhaseEffect(delta=total * 0.6 if days > 1 else total, sentiment=0.08 * meme, event=event)
            return PhaseEffect(delta=total * 0.4 / max(1, days - 1))

        if state.phase == "fizzle":
            total = m["fizzle_move"]
            days = max(1, state.day_in_phase + state.days_remaining - 1)
            if state.day_in_phase == 1:
                event = self.event(state, "fizzle", "negative", buyers=len(m["buys"]))
                return PhaseEffect(delta=total * 0.6 if days > 1 else total, sentiment=-0.02 * meme, event=event)
            return PhaseEffect(delta=total * 0.4 / max(1, days - 1))

        return PhaseEffect()

    def _next_phase(self, instrument, state, rng):
        if state.phase != "accumulating":
            return TERMINAL
        if len(state.metrics["buys"]) == 1:
            state.add_veto("single_buyer")
        if state.metrics["plan_purchase"]:
            state.add_veto("routine_plan_purchase")
        meme = meme_multiplier(instrument)
        if self.decide(instrument, state, rng):
            state.metrics["catalyst_move"] = uniform(rng, 0.05, 0.10) * meme
            return "catalyst"
        state.metrics["fizzle_move"] = -uniform(rng, 0.03, 0.06)
        return "fizzle"
