import unittest

import numpy as np

from contracts import is_valid_phase_path
from news_shakeout import NewsShakeoutMachine
from phenomena import TERMINAL

from _fakes import SequenceRng, make_instrument, run_lifecycle


class NewsShakeoutTests(unittest.TestCase):
    def setUp(self):
        self.machine = NewsShakeoutMachine()

    def test_transient_scare_with_climax_volume_recovers(self):
        # rsi is not recomputed by the fakes, so the panic reading is set up front
        inst = make_instrument(price=100.0, stability=0.0, rsi=18.0)
        rng = SequenceRng(default=0.9)
        state = self.machine.trigger(
            inst, rng,
            {"news_type": "guidance_miss", "drop": 0.12, "volume_multiple": 6.0, "force_outcome": True},
        )
        self.assertEqual(state.pending_event.template, "news_shakeout.panic")
        self.assertTrue(state.signals["transient_news"])
        self.assertTrue(state.signals["volume_climax"])

        state, events = run_lifecycle(self.machine, inst, rng)

        self.assertTrue(state.signals["rsi_oversold"])
        self.assertTrue(state.signals["three_day_stabilization"])
        self.assertEqual(state.active_vetoes, [])
        self.assertAlmostEqual(state.final_probability, 0.85)
        self.assertEqual(state.phase_history, ["panic", "stabilization", "recovery", TERMINAL])
        templates = [e.template for e in events]
        self.assertEqual(templates[:3], ["news_shakeout.panic", "news_shakeout.stabilization", "news_shakeout.recovery"])
        self.assertEqual(events[1].sentiment, "neutral")
        self.assertEqual(events[-1].template, "news_shakeout.recovered")
        self.assertEqual(events[-1].news_type, "recovery_complete")
        self.assertGreater(inst.price, 88.0)

    def test_terminal_news_relapses_at_the_floor(self):
        inst = make_instrument(price=100.0)
        rng = SequenceRng()
        state = self.machine.trigger(inst, rng, {"news_type": "fraud", "drop": 0.10, "volume_multiple": 3.0})
        self.assertFalse(state.signals["transient_news"])

        state, events = run_lifecycle(self.machine, inst, rng)

        self.assertEqual(
            sorted(state.active_vetoes), ["failed_stabilization", "no_volume_climax", "terminal_news"],
        )
        self.assertFalse(state.signals.get("three_day_stabilization"))
        self.assertAlmostEqual(state.final_probability, 0.10)
        self.assertFalse(state.outcome_will_succeed)
        self.assertEqual(state.phase_history, ["panic", "stabilization", "relapse", TERMINAL])
        self.assertIn("news_shakeout.relapse", [e.template for e in events])
        self.assertEqual(events[-1].template, "news_shakeout.damage_done")
        self.assertEqual(events[-1].news_type, "crash_resolution")

    def test_panic_day_moves_by_the_drop(self):
        inst = make_instrument(price=100.0)
        self.machine.trigger(inst, SequenceRng(), {"news_type": "macro_scare", "drop": 0.09})
        result = self.machine.advance(inst, SequenceRng())
        self.assertAlmostEqual(result.price_delta, -0.09)
        self.assertEqual(inst.phenomenon.phase, "stabilization")

    def test_prior_downtrend_is_a_veto(self):
        state = self.machine.trigger(make_instrument(trend=-0.02), SequenceRng(), {"news_type": "metric_miss"})
        self.assertIn("prior_downtrend", state.active_vetoes)

    def test_unknown_news_type(self):
        with self.assertRaises(ValueError):
            self.machine.trigger(make_instrument(), SequenceRng(), {"news_type": "alien_invasion"})

    def test_random_shakeouts_follow_the_graph(self):
        for seed in range(15):
            rng = np.random.default_rng(seed)
            inst = make_instrument(stability=0.4)
            self.machine.trigger(inst, rng)
            state, _ = run_lifecycle(self.machine, inst, rng)
            self.assertTrue(is_valid_phase_path("news_shakeout", state.phase_history))
            self.assertEqual(state.check_invariants(), [])


if __name__ == "__main__":
    unittest.main()
