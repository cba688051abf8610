import unittest

import numpy as np

from contracts import is_valid_phase_path
from executive_change import ExecutiveChangeMachine
from phenomena import TERMINAL

from _fakes import make_instrument, run_lifecycle


class ExecutiveChangeTests(unittest.TestCase):
    def setUp(self):
        self.machine = ExecutiveChangeMachine()
        self.rng = np.random.default_rng(11)

    def test_gold_standard_departure_reverses(self):
        inst = make_instrument(price=100.0)
        state = self.machine.trigger(
            inst, self.rng,
            {"exec_type": "gold_standard", "clean_audit": True, "force_outcome": True},
        )
        self.assertEqual(state.pending_event.template, "executive_change.announcement_gold_standard")
        self.assertTrue(state.signals["succession_integrity"])
        self.assertTrue(state.signals["clean_audit"])
        self.assertTrue(state.signals["volume_capitulation"])

        # no compositor: price holds, so the first-day low is never broken
        state, events = run_lifecycle(self.machine, inst, self.rng, move_prices=False)

        self.assertTrue(state.signals["three_day_stabilization"])
        self.assertEqual(state.gold_standard_count, 4)
        self.assertEqual(state.active_vetoes, [])
        self.assertAlmostEqual(state.final_probability, 0.85)
        self.assertTrue(state.outcome_will_succeed)
        self.assertEqual(state.phase_history, ["announcement", "stabilization", "resolution", TERMINAL])

        templates = [e.template for e in events]
        self.assertIn("executive_change.reversal", templates)
        reversal = events[templates.index("executive_change.reversal")]
        self.assertEqual(reversal.sentiment, "positive")
        final = events[-1]
        self.assertEqual(final.template, "executive_change.reversal_complete")
        self.assertEqual(final.sentiment, "positive")
        self.assertEqual(final.news_type, "recovery_complete")

    def test_gold_standard_scores_gold_without_forcing(self):
        inst = make_instrument()
        self.machine.trigger(inst, self.rng, {"exec_type": "gold_standard"})
        state, _ = run_lifecycle(self.machine, inst, self.rng, move_prices=False)
        self.assertAlmostEqual(state.final_probability, 0.85)

    def test_abrupt_exit_sinks_to_the_floor(self):
        inst = make_instrument()
        state = self.machine.trigger(
            inst, self.rng,
            {"exec_type": "abrupt_no_successor", "clean_audit": False, "volume_multiple": 5.0},
        )
        self.assertEqual(state.metrics["eight_k"], "red_flag")
        self.assertEqual(sorted(state.active_vetoes), ["eight_k_red_flag", "interim_only"])
        state, events = run_lifecycle(self.machine, inst, self.rng, move_prices=False)
        self.assertAlmostEqual(state.final_probability, 0.10)
        self.assertEqual(events[0].sentiment, "negative")
        self.assertIn(events[-1].template, ("executive_change.reversal_complete", "executive_change.decline_complete"))

    def test_new_low_restarts_the_streak(self):
        inst = make_instrument(price=100.0)
        state = self.machine.trigger(inst, self.rng, {"exec_type": "planned_internal"})
        state.phase = "stabilization"
        for price in (100.0, 101.0, 99.0, 100.0):
            inst.price = price
            self.machine._track_low(inst, state)
        self.assertEqual(state.metrics["day_one_low"], 99.0)
        self.assertEqual(state.metrics["hold_days"], 2)
        self.assertFalse(state.signals["three_day_stabilization"])
        inst.price = 99.5
        self.machine._track_low(inst, state)
        self.assertTrue(state.signals["three_day_stabilization"])

    def test_resolution_first_day_carries_the_bulk(self):
        inst = make_instrument()
        state = self.machine.trigger(inst, self.rng, {"exec_type": "planned_internal", "force_outcome": True})
        while state.phase != "resolution":
            self.machine.advance(inst, self.rng)
            inst.transition_effect = 0.0
        total = state.metrics["resolution_total"]
        result = self.machine.advance(inst, self.rng)
        self.assertAlmostEqual(result.price_delta, total * 0.4)
        self.assertEqual(result.event.template, "executive_change.reversal")

    def test_unknown_type_rejected(self):
        with self.assertRaises(ValueError):
            self.machine.trigger(make_instrument(), self.rng, {"exec_type": "hostile_takeover"})

    def test_random_types_follow_the_graph(self):
        for seed in range(15):
            rng = np.random.default_rng(seed)
            inst = make_instrument(stability=0.4)
            self.machine.trigger(inst, rng)
            state, _ = run_lifecycle(self.machine, inst, rng)
            self.assertTrue(is_valid_phase_path("executive_change", state.phase_history))
            self.assertEqual(state.check_invariants(), [])


if __name__ == "__main__":
    unittest.main()
