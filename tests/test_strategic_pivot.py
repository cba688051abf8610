import unittest
from unittest import mock

import numpy as np

from contracts import is_valid_phase_path
from phenomena import TERMINAL
import strategic_pivot
from strategic_pivot import StrategicPivotMachine

from _fakes import make_instrument, run_lifecycle


class StrategicPivotTests(unittest.TestCase):
    def setUp(self):
        self.machine = StrategicPivotMachine()
        self.rng = np.random.default_rng(9)

    def test_gold_pivot_scores_gold(self):
        inst = make_instrument()
        state = self.machine.trigger(
            inst, self.rng, {"pivot_type": "gold", "target_market": "cloud infrastructure"},
        )
        self.assertEqual(state.gold_standard_count, 4)
        self.assertEqual(state.pending_event.template, "strategic_pivot.announcement_gold")
        self.assertEqual(state.pending_event.metrics["target_market"], "cloud infrastructure")
        state, events = run_lifecycle(self.machine, inst, self.rng, move_prices=False)
        self.assertAlmostEqual(state.final_probability, 0.85)
        self.assertEqual(state.phase_history, ["announcement", "execution_void", "resolution", TERMINAL])
        templates = [e.template for e in events]
        self.assertIn("strategic_pivot.execution_void", templates)
        self.assertIn(templates[-1], ("strategic_pivot.reversal_complete", "strategic_pivot.new_base"))

    def test_reactive_pivot_is_vetoed_to_the_floor(self):
        inst = make_instrument()
        state = self.machine.trigger(inst, self.rng, {"pivot_type": "reactive"})
        self.assertEqual(state.active_vetoes, ["declining_core_business", "technical_language"])
        self.assertIn(state.magnitude, ("minor", "major", "extreme"))
        state, _ = run_lifecycle(self.machine, inst, self.rng, move_prices=False)
        self.assertAlmostEqual(state.final_probability, 0.05)

    def test_forced_traction(self):
        inst = make_instrument()
        self.machine.trigger(inst, self.rng, {"pivot_type": "symbolic", "force_outcome": True})
        state, events = run_lifecycle(self.machine, inst, self.rng)
        traction = [e for e in events if e.template == "strategic_pivot.traction"]
        self.assertEqual(len(traction), 1)
        self.assertEqual(traction[0].sentiment, "positive")
        self.assertGreater(state.metrics["resolution_total"], 0)
        self.assertEqual(events[-1].news_type, "recovery_complete")

    def test_insider_buy_during_the_void_lifts_the_odds(self):
        inst = make_instrument()
        with mock.patch.dict(strategic_pivot.INSIDER_BUY_ODDS, {"structural": 1.0}):
            state = self.machine.trigger(inst, self.rng, {"pivot_type": "structural"})
            self.assertFalse(state.signals.get("insider_buy"))
            state, events = run_lifecycle(self.machine, inst, self.rng, move_prices=False)
        self.assertTrue(state.signals["insider_buy"])
        buys = [e for e in events if e.template == "strategic_pivot.insider_buy"]
        self.assertEqual(len(buys), 1)
        self.assertEqual(buys[0].sentiment, "positive")
        self.assertEqual(buys[0].phase, "execution_void")
        self.assertIn(buys[0].metrics["insider_buyers"], (1, 2, 3))
        # 30% base, +10% insider buy, +5% gap fill, -10% technical language
        self.assertGreaterEqual(state.final_probability, 0.35 - 1e-9)

    def test_reactive_pivot_never_sees_insider_buying(self):
        for seed in range(10):
            rng = np.random.default_rng(seed)
            inst = make_instrument()
            self.machine.trigger(inst, rng, {"pivot_type": "reactive"})
            state, events = run_lifecycle(self.machine, inst, rng)
            self.assertFalse(state.signals.get("insider_buy"))
            self.assertNotIn("strategic_pivot.insider_buy", [e.template for e in events])

    def test_unknown_pivot_type(self):
        with self.assertRaises(ValueError):
            self.machine.trigger(make_instrument(), self.rng, {"pivot_type": "crypto"})

    def test_lifecycles_follow_the_graph(self):
        for seed in range(10):
            rng = np.random.default_rng(seed)
            inst = make_instrument()
            self.machine.trigger(inst, rng)
            state, _ = run_lifecycle(self.machine, inst, rng)
            self.assertTrue(is_valid_phase_path("strategic_pivot", state.phase_history))
            self.assertEqual(state.check_invariants(), [])


if __name__ == "__main__":
    unittest.main()
