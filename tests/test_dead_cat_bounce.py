import unittest

import numpy as np

from contracts import is_valid_phase_path
from dead_cat_bounce import DeadCatBounceMachine
from phenomena import TERMINAL

from _fakes import apply_transition, make_instrument, run_lifecycle


class DeadCatBounceTests(unittest.TestCase):
    def setUp(self):
        self.machine = DeadCatBounceMachine()
        self.rng = np.random.default_rng(7)

    def test_crash_then_partial_bounce(self):
        inst = make_instrument(price=100.0)
        state = self.machine.trigger(inst, self.rng, {"drop": 0.20, "crash_volume": 4.0})
        self.assertEqual(state.phase, "crash")
        self.assertEqual(state.magnitude, "major")
        self.assertAlmostEqual(state.pending_event.metrics["drop_pct"], 20.0)
        self.assertTrue(state.signals["capitulation_volume"])

        for _ in range(state.days_remaining):
            result = self.machine.advance(inst, self.rng)
            apply_transition(inst)
            self.assertNotEqual(result.phase_after, TERMINAL)
        self.assertEqual(state.phase, "bounce")
        self.assertAlmostEqual(inst.price, 80.0, places=6)

        crash_low = inst.price
        for _ in range(state.days_remaining):
            result = self.machine.advance(inst, self.rng)
            apply_transition(inst)
        recovered = inst.price / crash_low - 1.0
        self.assertGreaterEqual(recovered, 0.03)
        self.assertLessEqual(recovered, 0.20)
        self.assertIn(state.phase, ("decline", "consolidation"))
        self.assertTrue(state.outcome_decided)
        self.assertEqual(state.phase_history[:2], ["crash", "bounce"])

    def test_first_bounce_emits_positive_event(self):
        inst = make_instrument()
        state = self.machine.trigger(inst, self.rng, {"drop": 0.25})
        events = []
        while state.phase != "decline" and state.phase != "consolidation":
            events.extend(self.machine.advance(inst, self.rng).events)
            apply_transition(inst)
        bounce = [e for e in events if e.template == "dead_cat_bounce.bounce"]
        self.assertEqual(len(bounce), 1)
        self.assertEqual(bounce[0].sentiment, "positive")
        self.assertEqual(bounce[0].metrics["bounce_number"], 1)

    def test_failure_path_bounces_again_then_settles(self):
        inst = make_instrument()
        self.machine.trigger(inst, self.rng, {"drop": 0.2, "max_bounces": 2, "force_outcome": False})
        state, events = run_lifecycle(self.machine, inst, self.rng)
        self.assertEqual(
            state.phase_history,
            ["crash", "bounce", "decline", "bounce", "consolidation", TERMINAL],
        )
        self.assertTrue(is_valid_phase_path("dead_cat_bounce", state.phase_history))
        bounces = [e for e in events if e.template == "dead_cat_bounce.bounce"]
        self.assertEqual([e.metrics["bounce_number"] for e in bounces], [1, 2])
        self.assertLessEqual(bounces[1].metrics["bounce_pct"], 9.0)
        final = events[-1]
        self.assertEqual(final.template, "dead_cat_bounce.new_base")
        self.assertEqual(final.news_type, "crash_resolution")
        self.assertEqual(inst.days_since_crash, 0)
        self.assertLess(inst.price, 100.0)

    def test_success_path_recovers(self):
        inst = make_instrument()
        self.machine.trigger(inst, self.rng, {"drop": 0.2, "force_outcome": True})
        state, events = run_lifecycle(self.machine, inst, self.rng)
        self.assertEqual(state.phase_history, ["crash", "bounce", "consolidation", "recovery", TERMINAL])
        self.assertTrue(state.outcome_will_succeed)
        final = events[-1]
        self.assertEqual(final.template, "dead_cat_bounce.recovery_complete")
        self.assertEqual(final.news_type, "recovery_complete")
        self.assertEqual(final.sentiment, "positive")

    def test_unforced_lifecycles_follow_the_graph(self):
        for seed in range(20):
            rng = np.random.default_rng(seed)
            inst = make_instrument(stability=0.3)
            self.machine.trigger(inst, rng)
            state, _ = run_lifecycle(self.machine, inst, rng)
            self.assertTrue(is_valid_phase_path("dead_cat_bounce", state.phase_history), state.phase_history)
            self.assertIsNotNone(state.final_probability)
            self.assertGreaterEqual(state.final_probability, 0.15)
            self.assertLessEqual(state.final_probability, 0.85)
            self.assertEqual(state.check_invariants(), [])

    def _run_first_bounce(self, inst, rng):
        state = inst.phenomenon
        while state.phase in ("crash", "bounce"):
            self.machine.advance(inst, rng)
            apply_transition(inst)
        return state

    def test_deep_first_bounce_meets_the_fib_level(self):
        inst = make_instrument(price=100.0)
        self.machine.trigger(inst, self.rng, {"drop": 0.20, "crash_volume": 4.0, "first_bounce_retrace": 0.70})
        state = self._run_first_bounce(inst, self.rng)
        # 80 -> 80 + 0.70 * 20 once the last bounce day has closed
        self.assertAlmostEqual(inst.price, 94.0, places=6)
        self.assertAlmostEqual(state.metrics["retracement"], 0.70, places=6)
        self.assertTrue(state.signals["fib_retracement"])
        self.assertTrue(state.signals["capitulation_volume"])

    def test_shallow_first_bounce_misses_the_fib_level(self):
        inst = make_instrument(price=100.0)
        self.machine.trigger(inst, self.rng, {"drop": 0.20, "first_bounce_retrace": 0.40})
        state = self._run_first_bounce(inst, self.rng)
        self.assertAlmostEqual(state.metrics["retracement"], 0.40, places=6)
        self.assertFalse(state.signals["fib_retracement"])

    def test_capitulation_crashes_sometimes_retrace_to_fib(self):
        hits = 0
        for seed in range(20):
            rng = np.random.default_rng(seed)
            inst = make_instrument(price=100.0)
            self.machine.trigger(inst, rng, {"crash_volume": 4.0})
            state = self._run_first_bounce(inst, rng)
            self.assertLessEqual(state.metrics["retracement"], 0.78 + 1e-9)
            hits += bool(state.signals["fib_retracement"])
        self.assertGreater(hits, 0)

    def test_eps_downgrade_veto(self):
        inst = make_instrument(eps_modifier=-0.10)
        state = self.machine.trigger(inst, self.rng, {"drop": 0.2})
        self.assertIn("eps_downgrade", state.active_vetoes)


if __name__ == "__main__":
    unittest.main()
