"""
phenomena.py

Generic multi-day phenomenon state machine.

Every phenomenon kind (dead-cat bounce, short squeeze, ...) is a subclass of
PhenomenonMachine that declares:

- its phases and the directed graph of allowed transitions
- per-phase duration ranges (sampled once on phase entry)
- the phase-local price/sentiment effect for each day
- where the outcome is decided (a single scored Bernoulli draw)

The machine never owns instrument state.  The only lifecycle record is the
PhenomenonState stored in the instrument's single `phenomenon` slot, so two
phenomena can never be active on one instrument at the same time.

Design goals:
- trigger() is side-effect free when the instrument is not eligible
- advance() is a no-op for instruments without a state of this kind
- signals only ever flip false -> true; the gold-standard count never drops
- the outcome is drawn once and is immutable afterwards
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import math
from typing import Any, Literal, Mapping

import numpy as np

from market import Instrument, meme_multiplier
from scoring import ScoreBreakdown, ScoringRubric, score_breakdown

log = logging.getLogger(__name__)

Sentiment = Literal["positive", "negative", "neutral"]
Direction = Literal["up", "down"]

TERMINAL = "complete"


# --------------------------- Sampling helpers ---------------------------


def uniform(rng: np.random.Generator, lo: float, hi: float) -> float:
    return float(lo) + (float(hi) - float(lo)) * float(rng.random())


def randint(rng: np.random.Generator, lo: int, hi: int) -> int:
    """Inclusive integer in [lo, hi]."""
    lo, hi = int(min(lo, hi)), int(max(lo, hi))
    return int(rng.integers(lo, hi + 1))


def weighted_pick(rng: np.random.Generator, weights: Mapping[str, float]) -> str:
    names = [k for k, w in weights.items() if w > 0]
    if not names:
        raise ValueError("weighted_pick needs at least one positive weight")
    total = sum(weights[k] for k in names)
    roll = float(rng.random()) * total
    acc = 0.0
    for name in names:
        acc += weights[name]
        if roll < acc:
            return name
    return names[-1]


# --------------------------- Records ---------------------------


@dataclass
class NarrativeEvent:
    """
    What happened today, in machine terms.  The NewsEmitter turns it into a
    headline by looking up `template` in the content tables.
    """

    kind: str
    phase: str
    template: str
    sentiment: Sentiment = "neutral"
    news_type: str = ""
    direction: Direction | None = None
    metrics: dict[str, Any] = field(default_factory=dict)


@dataclass
class PhenomenonState:
    kind: str
    phase: str
    price_at_start: float
    criteria: tuple[str, ...] = ()
    probability_floor: float = 0.0
    probability_ceiling: float = 1.0
    magnitude: str = ""
    day: int = 0
    day_in_phase: int = 0
    days_remaining: int = 0
    signals: dict[str, Any] = field(default_factory=dict)
    gold_standard_count: int = 0
    base_probability: float = 0.0
    final_probability: float | None = None
    outcome_decided: bool = False
    outcome_will_succeed: bool | None = None
    active_vetoes: list[str] = field(default_factory=list)
    phase_history: list[str] = field(default_factory=list)
    metrics: dict[str, Any] = field(default_factory=dict)
    # Outcome pinned by the caller (tutorials, tests); still scored, never drawn.
    forced_outcome: bool | None = None
    # Narrative produced by trigger(); the orchestrator emits and clears it.
    pending_event: NarrativeEvent | None = None

    def __setattr__(self, name: str, value: Any) -> None:
        current = self.__dict__
        if name == "outcome_will_succeed" and current.get("outcome_decided") and value != current.get(name):
            raise AttributeError(f"{self.kind}: outcome already decided")
        if name == "gold_standard_count" and value < current.get(name, 0):
            raise ValueError(f"{self.kind}: gold standard count cannot decrease")
        object.__setattr__(self, name, value)

    def mark_signal(self, name: str, value: Any = True) -> bool:
        """
        Set a signal.  Boolean signals only move false -> true.  Returns True
        when the call newly satisfied a criterion.
        """
        if isinstance(value, np.bool_):
            value = bool(value)
        if isinstance(value, bool):
            if self.signals.get(name) is True:
                return False
            if not value:
                self.signals.setdefault(name, False)
                return False
            self.signals[name] = True
            if name in self.criteria:
                self.gold_standard_count = min(self.gold_standard_count + 1, len(self.criteria))
                return True
            return False
        self.signals[name] = value
        return False

    def add_veto(self, name: str) -> None:
        if name not in self.active_vetoes:
            self.active_vetoes.append(name)

    def decide(self, probability: float, rng: np.random.Generator) -> bool:
        """Fix the outcome.  Only the first call draws; later calls return it."""
        if self.outcome_decided:
            return bool(self.outcome_will_succeed)
        p = float(probability)
        if not math.isfinite(p):
            p = self.probability_floor
        p = max(self.probability_floor, min(p, self.probability_ceiling))
        self.final_probability = p
        if self.forced_outcome is not None:
            outcome = bool(self.forced_outcome)
        else:
            outcome = bool(rng.random() < p)
        self.outcome_will_succeed = outcome
        self.outcome_decided = True
        return outcome

    @property
    def is_gold_standard(self) -> bool:
        return bool(self.criteria) and self.gold_standard_count >= len(self.criteria)

    def scorecard(self) -> dict[str, bool]:
        return {name: self.signals.get(name) is True for name in self.criteria}

    def to_status_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "phase": self.phase,
            "magnitude": self.magnitude,
            "day": int(self.day),
            "day_in_phase": int(self.day_in_phase),
            "days_remaining": int(self.days_remaining),
            "scorecard": self.scorecard(),
            "gold_standard_count": int(self.gold_standard_count),
            "criterion_count": len(self.criteria),
            "base_probability": round(float(self.base_probability), 4),
            "final_probability": (
                round(float(self.final_probability), 4) if self.final_probability is not None else None
            ),
            "outcome_decided": bool(self.outcome_decided),
            "active_vetoes": list(self.active_vetoes),
        }

    def check_invariants(self) -> list[str]:
        violations: list[str] = []
        tag = f"{self.kind}[{self.phase}]"
        met = sum(1 for name in self.criteria if self.signals.get(name) is True)
        if self.gold_standard_count > len(self.criteria):
            violations.append(f"{tag}: gold count {self.gold_standard_count} above {len(self.criteria)}")
        if self.gold_standard_count != met:
            violations.append(f"{tag}: gold count {self.gold_standard_count} != met signals {met}")
        if self.outcome_decided != (self.outcome_will_succeed is not None):
            violations.append(f"{tag}: outcome flag/value mismatch")
        if self.final_probability is not None:
            if not self.probability_floor - 1e-9 <= self.final_probability <= self.probability_ceiling + 1e-9:
                violations.append(f"{tag}: probability {self.final_probability:.4f} out of bounds")
        if self.phase != TERMINAL and self.days_remaining < 0:
            violations.append(f"{tag}: negative days remaining")
        return violations


@dataclass
class PhaseEffect:
    delta: float = 0.0
    sentiment: float = 0.0
    volatility_boost: float = 0.0
    event: NarrativeEvent | None = None


@dataclass
class AdvanceResult:
    symbol: str = ""
    kind: str = ""
    phase_before: str = ""
    phase_after: str = ""
    price_delta: float = 0.0
    events: list[NarrativeEvent] = field(default_factory=list)
    completed: bool = False

    @property
    def advanced(self) -> bool:
        return bool(self.kind)

    @property
    def event(self) -> NarrativeEvent | None:
        return self.events[0] if self.events else None


# --------------------------- Machine ---------------------------


class PhenomenonMachine:
    """Base class; subclasses fill in the class attributes and hooks."""

    kind: str = ""
    phases: tuple[str, ...] = ()
    transitions: Mapping[str, tuple[str, ...]] = {}
    initial_phase: str = ""
    # phase -> (min_days, max_days)
    durations: Mapping[str, tuple[int, int]] = {}
    rubric: ScoringRubric | None = None
    daily_chance: float = 0.0
    # days this kind stays dormant on an instrument after it completes there
    cooldown_days: int = 0

    def __init__(self, daily_chance: float | None = None) -> None:
        if daily_chance is not None:
            self.daily_chance = float(daily_chance)
        self._validate()

    def _validate(self) -> None:
        if not self.kind:
            raise ValueError(f"{type(self).__name__} has no kind")
        if self.initial_phase not in self.phases:
            raise ValueError(f"{self.kind}: initial phase {self.initial_phase!r} not declared")
        if TERMINAL not in self.phases:
            raise ValueError(f"{self.kind}: missing terminal phase")
        for src, targets in self.transitions.items():
            if src not in self.phases:
                raise ValueError(f"{self.kind}: transition from unknown phase {src!r}")
            for dst in targets:
                if dst not in self.phases:
                    raise ValueError(f"{self.kind}: transition to unknown phase {dst!r}")

    # ---- eligibility / trigger ----

    def eligible(self, instrument: Instrument) -> bool:
        if instrument.phenomenon is not None:
            return False
        if not math.isfinite(instrument.price) or instrument.price <= 0:
            return False
        if instrument.cooldowns.get(self.kind, 0) > 0:
            return False
        return self._eligible(instrument)

    def _eligible(self, instrument: Instrument) -> bool:
        return True

    def trigger_chance(self, instrument: Instrument) -> float:
        return self.daily_chance

    def trigger(
        self,
        instrument: Instrument,
        rng: np.random.Generator,
        options: Mapping[str, Any] | None = None,
    ) -> PhenomenonState | None:
        if not self.eligible(instrument):
            return None
        opts = dict(options or {})
        state = self._new_state(instrument, opts)
        event = self._setup(instrument, state, rng, opts)
        state.phase_history.append(state.phase)
        if state.days_remaining <= 0:
            state.days_remaining = self._sample_duration(instrument, state, state.phase, rng)
        state.pending_event = event
        instrument.phenomenon = state
        log.info(
            "%s: %s triggered (%s, %s for %d days)",
            instrument.symbol, self.kind, state.magnitude or "-", state.phase, state.days_remaining,
        )
        return state

    def _new_state(self, instrument: Instrument, options: Mapping[str, Any]) -> PhenomenonState:
        rubric = self.rubric
        forced = options.get("force_outcome")
        return PhenomenonState(
            kind=self.kind,
            phase=self.initial_phase,
            price_at_start=float(instrument.price),
            criteria=rubric.criteria if rubric else (),
            probability_floor=rubric.floor if rubric else 0.0,
            probability_ceiling=rubric.ceiling if rubric else 1.0,
            base_probability=rubric.base_rate if rubric else 0.0,
            active_vetoes=list(options.get("vetoes", ())),
            forced_outcome=None if forced is None else bool(forced),
        )

    def _setup(
        self,
        instrument: Instrument,
        state: PhenomenonState,
        rng: np.random.Generator,
        options: Mapping[str, Any],
    ) -> NarrativeEvent | None:
        """Classify, snapshot signals, apply any trigger-day impact."""
        return None

    # ---- advance ----

    def advance(self, instrument: Instrument, rng: np.random.Generator) -> AdvanceResult:
        state = instrument.phenomenon
        if state is None or state.kind != self.kind:
            return AdvanceResult(symbol=instrument.symbol)

        result = AdvanceResult(symbol=instrument.symbol, kind=self.kind, phase_before=state.phase)
        state.day += 1
        state.day_in_phase += 1

        effect = self._phase_effect(instrument, state, rng)
        if effect.delta:
            instrument.add_transition(effect.delta)
        if effect.sentiment:
            instrument.add_sentiment(effect.sentiment)
        if effect.volatility_boost:
            instrument.volatility_boost = max(instrument.volatility_boost, effect.volatility_boost)
        result.price_delta = effect.delta
        if effect.event is not None:
            result.events.append(effect.event)

        state.days_remaining -= 1
        if state.days_remaining <= 0:
            nxt = self._next_phase(instrument, state, rng)
            self._enter(instrument, state, nxt, rng)
            entry_event = self._on_enter(instrument, state, rng)
            if entry_event is not None:
                result.events.append(entry_event)
            if state.phase == TERMINAL:
                self._on_complete(instrument, state)
                if self.cooldown_days > 0:
                    instrument.cooldowns[self.kind] = self.cooldown_days
                instrument.phenomenon = None
                result.completed = True
                log.info(
                    "%s: %s complete after %d days (%s, p=%s)",
                    instrument.symbol, self.kind, state.day,
                    "success" if state.outcome_will_succeed else "failure",
                    f"{state.final_probability:.2f}" if state.final_probability is not None else "n/a",
                )

        if result.events and effect.delta:
            instrument.expect(effect.delta, source=f"{self.kind}:{result.phase_before}")
        result.phase_after = state.phase
        return result

    def _phase_effect(
        self, instrument: Instrument, state: PhenomenonState, rng: np.random.Generator,
    ) -> PhaseEffect:
        return PhaseEffect()

    def _next_phase(self, instrument: Instrument, state: PhenomenonState, rng: np.random.Generator) -> str:
        targets = self.transitions.get(state.phase, ())
        return targets[0] if targets else TERMINAL

    def _on_enter(
        self, instrument: Instrument, state: PhenomenonState, rng: np.random.Generator,
    ) -> NarrativeEvent | None:
        return None

    def _on_complete(self, instrument: Instrument, state: PhenomenonState) -> None:
        pass

    def _enter(self, instrument: Instrument, state: PhenomenonState, phase: str, rng: np.random.Generator) -> None:
        if phase not in self.transitions.get(state.phase, ()):
            raise ValueError(f"{self.kind}: illegal transition {state.phase} -> {phase}")
        log.debug("%s: %s %s -> %s", instrument.symbol, self.kind, state.phase, phase)
        state.phase = phase
        state.day_in_phase = 0
        state.phase_history.append(phase)
        state.days_remaining = 0 if phase == TERMINAL else self._sample_duration(instrument, state, phase, rng)

    def _sample_duration(
        self, instrument: Instrument, state: PhenomenonState, phase: str, rng: np.random.Generator,
    ) -> int:
        lo, hi = self.durations.get(phase, (1, 1))
        return max(1, randint(rng, lo, hi))

    # ---- scoring ----

    def decide(
        self,
        instrument: Instrument,
        state: PhenomenonState,
        rng: np.random.Generator,
        *,
        rubric: ScoringRubric | None = None,
        base_rate: float | None = None,
    ) -> bool:
        if state.outcome_decided:
            return bool(state.outcome_will_succeed)
        rubric = rubric or self.rubric
        if rubric is None:
            return state.decide(state.base_probability, rng)
        breakdown: ScoreBreakdown = score_breakdown(state.signals, rubric, state.active_vetoes, base_rate)
        state.probability_floor = rubric.floor
        state.probability_ceiling = rubric.ceiling
        outcome = state.decide(breakdown.probability, rng)
        log.info(
            "%s: %s decided %s (p=%.2f, %d/%d criteria, vetoes=%s)",
            instrument.symbol, self.kind, "success" if outcome else "failure",
            breakdown.probability, breakdown.met_count, breakdown.criterion_count,
            ",".join(breakdown.applied_vetoes) or "none",
        )
        return outcome

    # ---- cancellation ----

    def cancel(self, instrument: Instrument) -> bool:
        state = instrument.phenomenon
        if state is None or state.kind != self.kind:
            return False
        instrument.phenomenon = None
        log.info("%s: %s cancelled in %s", instrument.symbol, self.kind, state.phase)
        return True

    def prepare_day(
        self, instruments: list[Instrument], rng: np.random.Generator,
    ) -> list[tuple[Instrument, NarrativeEvent]]:
        """Pre-trigger housekeeping run once per day before any trigger roll."""
        return []

    def event(self, state: PhenomenonState, template: str, sentiment: Sentiment, **metrics: Any) -> NarrativeEvent:
        return self.phase_event(state.phase, template, sentiment, **metrics)

    def phase_event(self, phase: str, template: str, sentiment: Sentiment, **metrics: Any) -> NarrativeEvent:
        direction: Direction | None = None
        if sentiment == "positive":
            direction = "up"
        elif sentiment == "negative":
            direction = "down"
        return NarrativeEvent(
            kind=self.kind,
            phase=phase,
            template=f"{self.kind}.{template}",
            sentiment=sentiment,
            news_type=self.kind,
            direction=direction,
            metrics=metrics,
        )


# --------------------------- Legacy fallback ---------------------------


class SimpleShockMachine(PhenomenonMachine):
    """
    Two-phase stand-in for a kind whose dedicated machine is unavailable:
    one day of meme-scaled impact in the kind's usual direction, then done.
    """

    phases = ("impact", TERMINAL)
    transitions = {"impact": (TERMINAL,)}
    initial_phase = "impact"
    durations = {"impact": (1, 1)}

    def __init__(self, kind: str, direction: int = -1, daily_chance: float = 0.005) -> None:
        self.kind = kind
        self.direction = 1 if direction > 0 else -1
        super().__init__(daily_chance)

    def _phase_effect(self, instrument, state, rng):
        size = uniform(rng, 0.03, 0.08) * meme_multiplier(instrument)
        delta = size * self.direction
        sentiment: Sentiment = "positive" if delta > 0 else "negative"
        return PhaseEffect(
            delta=delta,
            event=NarrativeEvent(
                kind=self.kind,
                phase="impact",
                template="legacy.impact_up" if delta > 0 else "legacy.impact_down",
                sentiment=sentiment,
                news_type=self.kind,
                direction="up" if delta > 0 else "down",
                metrics={"move_pct": abs(delta) * 100},
            ),
        )
