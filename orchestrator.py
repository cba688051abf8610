"""
orchestrator.py

The daily tick.

    0. hard-cancel states whose kind was disabled
    1. each enabled kind, in PHENOMENON_ORDER: run its prepare_day hook,
       advance its active states, otherwise roll its trigger chance on
       eligible, untouched instruments
    2. one compositor update per instrument
    3. headlines for today's phenomenon events
    4. basic news for instruments no phenomenon touched today
    5. quiet-day item if nothing made the news, then timestamps and ids
    6. consistency checks (headline/price coupling, phase sentiment)

Order matters: a kind later in the list sees what earlier kinds did today.
A failing kind is logged and skipped for the day; the tick carries on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Callable, Iterable, Mapping

import numpy as np

import market
from config import BASIC_NEWS, EVENT_KINDS, PHENOMENON_ORDER, EngineSettings
from contracts import CouplingResult, verify_news_coupling, verify_phase_sentiment
from dead_cat_bounce import DeadCatBounceMachine
from executive_change import ExecutiveChangeMachine
from fomo_rally import FomoRallyMachine
from index_rebalance import IndexRebalanceMachine
from insider_buying import InsiderBuyingMachine
from insider_selling import InsiderSellingMachine
from liquidity_sweep import LiquiditySweepMachine
from market import CompositorConfig, Instrument, PriceUpdate, update_instrument
from news import BasicNewsGenerator, DailyNewsBook, NewsEmitter, NewsItem, quiet_day_item
from news_shakeout import NewsShakeoutMachine
from phenomena import AdvanceResult, NarrativeEvent, PhenomenonMachine, PhenomenonState, SimpleShockMachine
from short_report import ShortReportMachine
from short_squeeze import ShortSqueezeMachine
from stock_split import StockSplitMachine
from strategic_pivot import StrategicPivotMachine

log = logging.getLogger(__name__)

MACHINE_FACTORIES: dict[str, Callable[[], PhenomenonMachine]] = {
    "short_seller_report": ShortReportMachine,
    "insider_buying": InsiderBuyingMachine,
    "short_squeeze": ShortSqueezeMachine,
    "dead_cat_bounce": DeadCatBounceMachine,
    "news_shakeout": NewsShakeoutMachine,
    "executive_change": ExecutiveChangeMachine,
    "strategic_pivot": StrategicPivotMachine,
    "index_rebalance": IndexRebalanceMachine,
    "stock_split": StockSplitMachine,
    "fomo_rally": FomoRallyMachine,
    "liquidity_sweep": LiquiditySweepMachine,
    "insider_selling": InsiderSellingMachine,
}

# Direction of the one-day shock used when a kind falls back to SimpleShockMachine.
FALLBACK_DIRECTIONS = {
    "short_seller_report": -1,
    "insider_buying": 1,
    "short_squeeze": 1,
    "dead_cat_bounce": -1,
    "news_shakeout": -1,
    "executive_change": -1,
    "strategic_pivot": -1,
    "index_rebalance": 1,
    "stock_split": 1,
    "fomo_rally": 1,
    "liquidity_sweep": -1,
    "insider_selling": -1,
}


def build_machines(
    factories: Mapping[str, Callable[[], PhenomenonMachine] | None] | None = None,
) -> dict[str, PhenomenonMachine]:
    """
    One machine per kind.  A kind whose factory is missing or raises gets a
    SimpleShockMachine instead, so the engine always has a full set.
    """
    factories = MACHINE_FACTORIES if factories is None else factories
    machines: dict[str, PhenomenonMachine] = {}
    for kind in PHENOMENON_ORDER:
        factory = factories.get(kind)
        machine = None
        if factory is not None:
            try:
                machine = factory()
            except Exception:
                log.exception("%s: machine construction failed", kind)
        if machine is None or machine.kind != kind:
            log.warning("%s: using simple shock fallback", kind)
            machine = SimpleShockMachine(kind, FALLBACK_DIRECTIONS.get(kind, -1))
        machines[kind] = machine
    return machines


@dataclass
class LifecycleRecord:
    symbol: str
    kind: str
    phase_path: tuple[str, ...]
    succeeded: bool | None
    final_probability: float | None
    days: int


@dataclass
class DayReport:
    day: int
    news: list[NewsItem] = field(default_factory=list)
    updates: list[PriceUpdate] = field(default_factory=list)
    triggered: list[tuple[str, str]] = field(default_factory=list)
    completed: list[LifecycleRecord] = field(default_factory=list)
    cancelled: list[tuple[str, str]] = field(default_factory=list)
    failed_kinds: list[str] = field(default_factory=list)
    coupling: list[tuple[NewsItem, CouplingResult]] = field(default_factory=list)
    sentiment_violations: list[str] = field(default_factory=list)

    @property
    def coupling_failures(self) -> list[tuple[NewsItem, CouplingResult]]:
        return [(item, res) for item, res in self.coupling if not res.ok]

    def to_status_dict(self) -> dict[str, Any]:
        return {
            "day": self.day,
            "news": [item.to_status_dict() for item in self.news],
            "prices": {u.symbol: round(u.new_price, 4) for u in self.updates},
            "triggered": [list(t) for t in self.triggered],
            "completed": [
                {
                    "symbol": rec.symbol,
                    "kind": rec.kind,
                    "phase_path": list(rec.phase_path),
                    "succeeded": rec.succeeded,
                    "final_probability": rec.final_probability,
                    "days": rec.days,
                }
                for rec in self.completed
            ],
            "cancelled": [list(c) for c in self.cancelled],
            "failed_kinds": list(self.failed_kinds),
            "coupling_failures": [res.describe() for _, res in self.coupling_failures],
            "sentiment_violations": list(self.sentiment_violations),
        }


class EventOrchestrator:
    def __init__(
        self,
        instruments: Iterable[Instrument],
        settings: EngineSettings | None = None,
        rng: np.random.Generator | None = None,
        machines: Mapping[str, PhenomenonMachine] | None = None,
        emitter: NewsEmitter | None = None,
        content: Mapping[str, Mapping[str, Any]] | None = None,
        basic_news: BasicNewsGenerator | None = None,
        compositor: CompositorConfig = CompositorConfig(),
    ) -> None:
        self.instruments: list[Instrument] = list(instruments)
        symbols = [inst.symbol for inst in self.instruments]
        if len(set(symbols)) != len(symbols):
            raise ValueError("instrument symbols must be unique")
        self.settings = settings or EngineSettings()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.machines: dict[str, PhenomenonMachine] = dict(machines) if machines is not None else build_machines()
        self.emitter = emitter or NewsEmitter(content)
        self.basic_news = basic_news or BasicNewsGenerator(
            min_items=self.settings.basic_news_min_items,
            max_items=self.settings.basic_news_max_items,
            max_retries=self.settings.news_max_retries,
        )
        self.compositor = compositor
        self.enabled: dict[str, bool] = {kind: self.settings.is_enabled(kind) for kind in EVENT_KINDS}
        self.day = 0
        self.history: list[LifecycleRecord] = []

    # ---- configuration ----

    def is_enabled(self, kind: str) -> bool:
        return bool(self.enabled.get(kind, False))

    def set_enabled(self, kind: str, flag: bool) -> list[str]:
        """Toggle a kind.  Disabling hard-cancels its live states; returns the symbols cleared."""
        if kind not in EVENT_KINDS:
            raise ValueError(f"unknown event kind {kind!r}")
        self.enabled[kind] = bool(flag)
        if flag:
            return []
        return [sym for sym, _ in self._cancel_disabled()]

    def _cancel_disabled(self) -> list[tuple[str, str]]:
        cleared: list[tuple[str, str]] = []
        for inst in self.instruments:
            state = inst.phenomenon
            if state is None or self.is_enabled(state.kind):
                continue
            machine = self.machines.get(state.kind)
            if machine is None or not machine.cancel(inst):
                inst.phenomenon = None
            cleared.append((inst.symbol, state.kind))
        return cleared

    def instrument(self, symbol: str) -> Instrument:
        for inst in self.instruments:
            if inst.symbol == symbol:
                return inst
        raise KeyError(symbol)

    def trigger(self, kind: str, symbol: str, **options: Any) -> PhenomenonState | None:
        """
        Start *kind* on *symbol* now, outside the daily roll (tutorials,
        tests).  The trigger headline goes out with the next run_day().
        """
        machine = self.machines.get(kind)
        if machine is None:
            raise ValueError(f"unknown phenomenon kind {kind!r}")
        return machine.trigger(self.instrument(symbol), self.rng, options)

    # ---- the tick ----

    def run_day(self) -> DayReport:
        self.day += 1
        report = DayReport(day=self.day)
        report.cancelled.extend(self._cancel_disabled())
        self._housekeeping()

        events: list[tuple[Instrument, NarrativeEvent]] = []
        touched: set[str] = set()
        for kind in PHENOMENON_ORDER:
            if not self.is_enabled(kind):
                continue
            machine = self.machines.get(kind)
            if machine is None:
                continue
            try:
                self._run_kind(machine, report, events, touched)
            except Exception:
                log.exception("%s: daily pass failed on day %d, skipping", kind, self.day)
                report.failed_kinds.append(kind)

        for inst in self.instruments:
            report.updates.append(update_instrument(inst, self.rng, self.compositor))

        book = DailyNewsBook()
        for inst, event in events:
            book.add(self.emitter.emit(inst, event, self.rng))

        if self.is_enabled(BASIC_NEWS):
            self.basic_news.generate(self.instruments, book, self.rng, exclude=touched)

        if not len(book) and self.settings.quiet_day_news:
            book.add(quiet_day_item(self.rng))
        report.news = book.finalize(self.day, self.rng)

        self._verify(report)
        return report

    def run(self, days: int) -> list[DayReport]:
        return [self.run_day() for _ in range(max(0, int(days)))]

    def _housekeeping(self) -> None:
        for inst in self.instruments:
            for kind in list(inst.cooldowns):
                left = inst.cooldowns[kind] - 1
                if left > 0:
                    inst.cooldowns[kind] = left
                else:
                    del inst.cooldowns[kind]
            if inst.days_since_crash is not None:
                inst.days_since_crash += 1

    def _run_kind(
        self,
        machine: PhenomenonMachine,
        report: DayReport,
        events: list[tuple[Instrument, NarrativeEvent]],
        touched: set[str],
    ) -> None:
        for target, event in machine.prepare_day(self.instruments, self.rng):
            events.append((target, event))
            touched.add(target.symbol)

        for inst in self.instruments:
            state = inst.phenomenon
            if state is not None:
                if state.kind == machine.kind and inst.symbol not in touched:
                    self._advance(machine, inst, report, events)
                    touched.add(inst.symbol)
                continue
            if inst.symbol in touched or not machine.eligible(inst):
                continue
            if float(self.rng.random()) >= machine.trigger_chance(inst):
                continue
            if machine.trigger(inst, self.rng) is None:
                continue
            report.triggered.append((inst.symbol, machine.kind))
            self._advance(machine, inst, report, events)
            touched.add(inst.symbol)

    def _advance(
        self,
        machine: PhenomenonMachine,
        inst: Instrument,
        report: DayReport,
        events: list[tuple[Instrument, NarrativeEvent]],
    ) -> AdvanceResult:
        state = inst.phenomenon
        opening = state.pending_event if state is not None else None
        if state is not None:
            state.pending_event = None
        if opening is not None:
            events.append((inst, opening))

        result = machine.advance(inst, self.rng)
        events.extend((inst, event) for event in result.events)
        # the opening headline promises today's move too
        if opening is not None and not result.events and result.price_delta:
            inst.expect(result.price_delta, source=f"{machine.kind}:trigger")

        if result.completed and state is not None:
            record = LifecycleRecord(
                symbol=inst.symbol,
                kind=state.kind,
                phase_path=tuple(state.phase_history),
                succeeded=state.outcome_will_succeed,
                final_probability=state.final_probability,
                days=state.day,
            )
            report.completed.append(record)
            self.history.append(record)
        return result

    def _verify(self, report: DayReport) -> None:
        for inst in self.instruments:
            state = inst.phenomenon
            if state is None:
                continue
            problem = verify_phase_sentiment(state.kind, state.phase, inst.sentiment_offset)
            if problem:
                log.debug("%s: %s", inst.symbol, problem)
                report.sentiment_violations.append(f"{inst.symbol} {problem}")

        if not self.settings.coupling_check_enabled:
            return
        deltas = {u.symbol: u.delta for u in report.updates}
        for item in report.news:
            if item.related_symbol not in deltas:
                continue
            result = verify_news_coupling(item, deltas[item.related_symbol])
            if not result.checked:
                continue
            report.coupling.append((item, result))
            if not result.ok:
                log.warning("%s: headline/price mismatch on day %d: %r %s",
                            item.related_symbol, report.day, item.headline, result.describe())

    # ---- read-only views ----

    def snapshot(self) -> list[dict[str, Any]]:
        """Advisory view per instrument: active kind, phase, scorecard, decided probability."""
        out = []
        for inst in self.instruments:
            state = inst.phenomenon
            row: dict[str, Any] = {
                "symbol": inst.symbol,
                "price": round(float(inst.price), 4),
                "kind": None,
                "phase": None,
                "scorecard": {},
                "gold_standard_count": 0,
                "final_probability": None,
            }
            if state is not None:
                row.update(
                    kind=state.kind,
                    phase=state.phase,
                    scorecard=state.scorecard(),
                    gold_standard_count=int(state.gold_standard_count),
                    final_probability=state.final_probability,
                    active_vetoes=list(state.active_vetoes),
                )
            out.append(row)
        return out

    def to_status_dict(self) -> dict[str, Any]:
        return {
            "day": self.day,
            "enabled": dict(self.enabled),
            "instruments": [inst.to_status_dict() for inst in self.instruments],
            "completed_lifecycles": len(self.history),
        }

    def check_invariants(self) -> list[str]:
        violations: list[str] = []
        for inst in self.instruments:
            violations.extend(market.check_invariants(inst, self.compositor))
            state = inst.phenomenon
            if state is None:
                continue
            if state.kind not in self.machines:
                violations.append(f"{inst.symbol}: active state of unregistered kind {state.kind}")
            elif not self.is_enabled(state.kind):
                violations.append(f"{inst.symbol}: active state of disabled kind {state.kind}")
        return violations
