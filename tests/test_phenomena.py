import unittest

from phenomena import (
    TERMINAL,
    PhaseEffect,
    PhenomenonMachine,
    PhenomenonState,
    SimpleShockMachine,
    randint,
    weighted_pick,
)
from scoring import ScoringRubric

from _fakes import SequenceRng, make_instrument

TWO_STEP_RUBRIC = ScoringRubric(criteria=("a", "b"), base_rate=0.5, gold_rate=0.8, floor=0.1, ceiling=0.9)


class TwoStepMachine(PhenomenonMachine):
    kind = "two_step"
    phases = ("first", "second", TERMINAL)
    transitions = {"first": ("second",), "second": (TERMINAL,)}
    initial_phase = "first"
    durations = {"first": (2, 2), "second": (1, 1)}
    rubric = TWO_STEP_RUBRIC
    cooldown_days = 5

    def _setup(self, instrument, state, rng, options):
        return self.event(state, "start", "neutral")

    def _phase_effect(self, instrument, state, rng):
        return PhaseEffect(delta=0.01, event=self.event(state, "tick", "positive"))

    def _next_phase(self, instrument, state, rng):
        if state.phase == "first":
            self.decide(instrument, state, rng)
        return super()._next_phase(instrument, state, rng)


class RogueMachine(TwoStepMachine):
    kind = "rogue"

    def _next_phase(self, instrument, state, rng):
        return "first"


class MachineLifecycleTests(unittest.TestCase):
    def test_trigger_installs_state(self):
        inst = make_instrument()
        state = TwoStepMachine().trigger(inst, SequenceRng())
        self.assertIs(inst.phenomenon, state)
        self.assertEqual(state.phase, "first")
        self.assertEqual(state.days_remaining, 2)
        self.assertEqual(state.phase_history, ["first"])
        self.assertEqual(state.pending_event.template, "two_step.start")

    def test_trigger_refused_when_slot_taken(self):
        inst = make_instrument()
        machine = TwoStepMachine()
        first = machine.trigger(inst, SequenceRng())
        self.assertIsNone(machine.trigger(inst, SequenceRng()))
        self.assertIsNone(SimpleShockMachine("other").trigger(inst, SequenceRng()))
        self.assertIs(inst.phenomenon, first)

    def test_advance_without_state_is_a_noop(self):
        inst = make_instrument()
        result = TwoStepMachine().advance(inst, SequenceRng())
        self.assertFalse(result.advanced)
        self.assertEqual(inst.transition_effect, 0.0)

    def test_advance_runs_to_completion(self):
        inst = make_instrument()
        machine = TwoStepMachine()
        state = machine.trigger(inst, SequenceRng())

        r1 = machine.advance(inst, SequenceRng())
        self.assertEqual((r1.phase_before, r1.phase_after), ("first", "first"))
        self.assertAlmostEqual(inst.transition_effect, 0.01)
        self.assertIsNotNone(inst.expected_outcome)

        r2 = machine.advance(inst, SequenceRng([0.2]))
        self.assertEqual(r2.phase_after, "second")
        self.assertTrue(state.outcome_decided)
        self.assertTrue(state.outcome_will_succeed)
        self.assertAlmostEqual(state.final_probability, 0.5)

        r3 = machine.advance(inst, SequenceRng())
        self.assertTrue(r3.completed)
        self.assertIsNone(inst.phenomenon)
        self.assertEqual(state.phase_history, ["first", "second", TERMINAL])
        self.assertEqual(inst.cooldowns["two_step"], 5)
        self.assertFalse(machine.eligible(inst))

    def test_illegal_transition_raises(self):
        inst = make_instrument()
        machine = RogueMachine()
        machine.trigger(inst, SequenceRng())
        machine.advance(inst, SequenceRng())
        with self.assertRaises(ValueError):
            machine.advance(inst, SequenceRng())

    def test_machine_without_terminal_is_rejected(self):
        class Broken(TwoStepMachine):
            kind = "broken"
            phases = ("first", "second")

        with self.assertRaises(ValueError):
            Broken()

    def test_cancel(self):
        inst = make_instrument()
        machine = TwoStepMachine()
        machine.trigger(inst, SequenceRng())
        self.assertFalse(SimpleShockMachine("other").cancel(inst))
        self.assertTrue(machine.cancel(inst))
        self.assertIsNone(inst.phenomenon)

    def test_forced_outcome_is_still_scored(self):
        inst = make_instrument()
        machine = TwoStepMachine()
        state = machine.trigger(inst, SequenceRng(), {"force_outcome": False, "vetoes": ["nope"]})
        state.mark_signal("a")
        state.mark_signal("b")
        machine.advance(inst, SequenceRng([0.0]))
        machine.advance(inst, SequenceRng([0.0]))
        self.assertFalse(state.outcome_will_succeed)
        self.assertAlmostEqual(state.final_probability, 0.8)


class StateTests(unittest.TestCase):
    def _state(self):
        return PhenomenonState(
            kind="two_step", phase="first", price_at_start=100.0,
            criteria=("a", "b"), probability_floor=0.1, probability_ceiling=0.9,
        )

    def test_signals_only_flip_false_to_true(self):
        state = self._state()
        self.assertTrue(state.mark_signal("a"))
        self.assertFalse(state.mark_signal("a", False))
        self.assertIs(state.signals["a"], True)
        self.assertEqual(state.gold_standard_count, 1)
        self.assertFalse(state.mark_signal("b", False))
        self.assertIs(state.signals["b"], False)
        self.assertFalse(state.mark_signal("other"))
        self.assertEqual(state.gold_standard_count, 1)
        state.mark_signal("volume", 3.5)
        self.assertEqual(state.scorecard(), {"a": True, "b": False})
        self.assertEqual(state.check_invariants(), [])

    def test_gold_count_cannot_decrease(self):
        state = self._state()
        state.mark_signal("a")
        with self.assertRaises(ValueError):
            state.gold_standard_count = 0

    def test_outcome_is_immutable(self):
        state = self._state()
        self.assertFalse(state.decide(0.9, SequenceRng([0.95])))
        self.assertFalse(state.decide(0.0, SequenceRng([0.0])))
        with self.assertRaises(AttributeError):
            state.outcome_will_succeed = True

    def test_probability_clamped_to_bounds(self):
        state = self._state()
        state.decide(float("nan"), SequenceRng([0.0]))
        self.assertAlmostEqual(state.final_probability, 0.1)
        other = self._state()
        other.decide(2.0, SequenceRng([0.0]))
        self.assertAlmostEqual(other.final_probability, 0.9)


class SimpleShockTests(unittest.TestCase):
    def test_one_day_impact_in_direction(self):
        inst = make_instrument(stability=0.5)
        machine = SimpleShockMachine("fomo_rally", direction=1)
        machine.trigger(inst, SequenceRng())
        result = machine.advance(inst, SequenceRng())
        self.assertTrue(result.completed)
        self.assertAlmostEqual(result.price_delta, 0.055 * 0.65)
        self.assertEqual(result.event.template, "legacy.impact_up")
        self.assertEqual(result.event.direction, "up")

    def test_down_shock(self):
        inst = make_instrument()
        machine = SimpleShockMachine("short_seller_report")
        machine.trigger(inst, SequenceRng())
        result = machine.advance(inst, SequenceRng())
        self.assertLess(inst.transition_effect, 0)
        self.assertEqual(result.event.template, "legacy.impact_down")


class SamplingTests(unittest.TestCase):
    def test_randint_is_inclusive_and_ordered(self):
        rng = SequenceRng()
        self.assertEqual(randint(rng, 5, 2), 2)

    def test_weighted_pick(self):
        self.assertEqual(weighted_pick(SequenceRng([0.0]), {"a": 0.0, "b": 1.0, "c": 1.0}), "b")
        self.assertEqual(weighted_pick(SequenceRng([0.99]), {"b": 1.0, "c": 1.0}), "c")
        with self.assertRaises(ValueError):
            weighted_pick(SequenceRng(), {"a": 0.0})


if __name__ == "__main__":
    unittest.main()
