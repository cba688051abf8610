"""Shared fixtures for the engine tests."""

from market import Instrument


class SequenceRng:
    """
    Scripted stand-in for numpy's Generator.  random() returns the scripted
    values in order, then *default* forever; integers() and choice() always
    take the lowest option.
    """

    def __init__(self, values=(), default=0.5):
        self.values = list(values)
        self.default = default
        self.calls = 0

    def random(self):
        self.calls += 1
        if self.values:
            return self.values.pop(0)
        return self.default

    def integers(self, low, high=None, size=None):
        if high is None:
            low, high = 0, low
        return low

    def choice(self, seq, size=None, replace=True):
        seq = list(seq)
        if size is None:
            return seq[0]
        return seq[:size]


# Three touches of ~95 support in the last 20 closes; last close 99.5.
SUPPORT_CLOSES = [
    100.0, 98.0, 95.0, 98.0, 100.0, 101.0, 99.0, 95.2, 99.0, 101.0,
    100.0, 98.0, 94.9, 98.0, 100.0, 102.0, 101.0, 100.0, 99.0, 99.5,
]


def make_instrument(symbol="TEST", price=100.0, **kw):
    return Instrument(symbol=symbol, price=price, **kw)


def eligible_instrument(kind, symbol="TEST"):
    """An instrument that passes *kind*'s eligibility rules."""
    if kind == "short_squeeze":
        return make_instrument(
            symbol, short_interest=0.55, days_to_cover=12.0,
            borrow_utilization=1.0, cost_to_borrow=1.2,
        )
    if kind == "fomo_rally":
        return make_instrument(symbol, price_history=[90.0, 92.0, 95.0, 97.0, 100.0])
    if kind == "liquidity_sweep":
        return make_instrument(symbol, price=99.5, price_history=list(SUPPORT_CLOSES))
    if kind == "stock_split":
        return make_instrument(symbol, price=900.0)
    return make_instrument(symbol)


def apply_transition(inst):
    """Move the price by exactly the accumulated transition effect (no noise)."""
    inst.previous_price = inst.price
    inst.price = inst.price * (1.0 + inst.transition_effect)
    inst.transition_effect = 0.0
    inst.price_history.append(inst.price)


def run_lifecycle(machine, inst, rng, limit=400, move_prices=True):
    """
    Advance *inst* until its phenomenon completes.  Returns (state, events)
    where events includes the trigger narrative.
    """
    state = inst.phenomenon
    events = []
    if state.pending_event is not None:
        events.append(state.pending_event)
        state.pending_event = None
    for _ in range(limit):
        result = machine.advance(inst, rng)
        events.extend(result.events)
        if move_prices:
            apply_transition(inst)
        if result.completed:
            return state, events
    raise AssertionError(f"{machine.kind} did not complete within {limit} days")
