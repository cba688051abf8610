"""
insider_selling.py

Form 4 sale filings.  Insiders sell for many reasons (taxes, a house,
diversification), so a single sale is noise: it makes a neutral headline
and does not move the price.  Three or more sales on one name inside 30
days is cluster selling and nudges sentiment down a little.

There is no lifecycle here.  Filings come out of prepare_day(); the machine
never holds phenomenon state and never triggers.
"""

from __future__ import annotations

import logging

from insider_buying import TITLE_WEIGHTS
from phenomena import TERMINAL, PhenomenonMachine, uniform

log = logging.getLogger(__name__)

# (label, min, max, odds)
SALE_SIZES = (
    ("small", 50_000, 250_000, 0.40),
    ("medium", 250_000, 1_000_000, 0.35),
    ("large", 1_000_000, 5_000_000, 0.20),
    ("massive", 5_000_000, 25_000_000, 0.05),
)

# (reason, odds); only the last one says anything about the business.
SALE_REASONS = (
    ("a pre-scheduled 10b5-1 plan", 0.35),
    ("tax obligations on vested shares", 0.25),
    ("portfolio diversification", 0.20),
    ("a personal purchase", 0.13),
    ("an undisclosed reason", 0.07),
)

SALE_CHANCE = 0.012
CLUSTER_WINDOW_DAYS = 30
CLUSTER_MINIMUM = 3
CLUSTER_SENTIMENT = -0.01


def _pick(rng, rows):
    roll = float(rng.random())
    acc = 0.0
    for row in rows:
        acc += row[-1]
        if roll < acc:
            return row
    return rows[-1]


class InsiderSellingMachine(PhenomenonMachine):
    kind = "insider_selling"
    phases = ("filing", TERMINAL)
    transitions = {"filing": (TERMINAL,)}
    initial_phase = "filing"
    daily_chance = 0.0

    def __init__(self, sale_chance: float = SALE_CHANCE) -> None:
        super().__init__()
        self.sale_chance = float(sale_chance)
        self.day = 0
        # symbol -> days on which a sale was filed
        self.sales: dict[str, list[int]] = {}

    def _eligible(self, instrument):
        return False

    def recent_sales(self, symbol: str) -> int:
        return len(self.sales.get(symbol, ()))

    def prepare_day(self, instruments, rng):
        self.day += 1
        cutoff = self.day - CLUSTER_WINDOW_DAYS
        for symbol in list(self.sales):
            kept = [d for d in self.sales[symbol] if d > cutoff]
            if kept:
                self.sales[symbol] = kept
            else:
                del self.sales[symbol]

        out = []
        for inst in instruments:
            if inst.phenomenon is not None or float(rng.random()) >= self.sale_chance:
                continue
            out.append((inst, self._file(inst, rng)))
        return out

    def _file(self, instrument, rng):
        titles = list(TITLE_WEIGHTS)
        title = titles[int(rng.integers(0, len(titles)))]
        size, lo, hi, _ = _pick(rng, SALE_SIZES)
        reason = _pick(rng, SALE_REASONS)[0]
        amount = uniform(rng, lo, hi)

        filed = self.sales.setdefault(instrument.symbol, [])
        filed.append(self.day)
        if len(filed) >= CLUSTER_MINIMUM:
            instrument.add_sentiment(CLUSTER_SENTIMENT)
            log.info("%s: cluster selling, %d sales in %d days", instrument.symbol, len(filed), CLUSTER_WINDOW_DAYS)
            return self.phase_event(
                "filing", "cluster", "neutral",
                sellers=len(filed), window_days=CLUSTER_WINDOW_DAYS, title=title, amount=amount,
            )
        return self.phase_event("filing", "sale", "neutral", title=title, amount=amount, size=size, reason=reason)
