import unittest

import numpy as np

from contracts import is_valid_phase_path
from insider_buying import InsiderBuyingMachine
from phenomena import TERMINAL

from _fakes import SequenceRng, make_instrument, run_lifecycle


class InsiderBuyingTests(unittest.TestCase):
    def setUp(self):
        self.machine = InsiderBuyingMachine()

    def test_recent_crash_raises_trigger_chance(self):
        inst = make_instrument()
        self.assertAlmostEqual(self.machine.trigger_chance(inst), 0.005)
        inst.days_since_crash = 10
        self.assertAlmostEqual(self.machine.trigger_chance(inst), 0.0125)
        inst.days_since_crash = 45
        self.assertAlmostEqual(self.machine.trigger_chance(inst), 0.005)

    def test_executive_cluster_leads_to_catalyst(self):
        rng = SequenceRng(default=0.0)
        inst = make_instrument(stability=0.5)
        state = self.machine.trigger(inst, rng, {"title": "CEO", "plan_purchase": False})
        self.assertEqual(state.magnitude, "single")
        self.assertGreater(inst.sentiment_offset, 0)

        state, events = run_lifecycle(self.machine, inst, rng)
        self.assertEqual(
            [e.template for e in events],
            ["insider_buying.buy", "insider_buying.buy", "insider_buying.cluster", "insider_buying.catalyst"],
        )
        self.assertEqual([b["title"] for b in state.metrics["buys"]], ["CEO", "CFO", "Chairman"])
        self.assertEqual(state.magnitude, "cluster")
        self.assertEqual(state.scorecard(), {
            "cluster_buying": True,
            "open_market_code_p": True,
            "wealth_commitment": False,
            "executive_buyer": True,
        })
        self.assertAlmostEqual(state.final_probability, 0.78)
        self.assertEqual(state.phase_history, ["accumulating", "catalyst", TERMINAL])
        self.assertAlmostEqual(state.metrics["catalyst_move"], 0.05 * 0.65)

    def test_lone_plan_purchase_fizzles(self):
        rng = SequenceRng(default=0.9)
        inst = make_instrument()
        state = self.machine.trigger(inst, rng, {"title": "Director", "plan_purchase": True})
        self.assertEqual(state.metrics["buys"][0]["code"], "M")
        self.assertEqual(state.metrics["buys"][0]["size"], "large")

        state, events = run_lifecycle(self.machine, inst, rng)
        self.assertEqual(sorted(state.active_vetoes), ["routine_plan_purchase", "single_buyer"])
        self.assertAlmostEqual(state.final_probability, 0.30)
        self.assertFalse(state.outcome_will_succeed)
        self.assertEqual(state.phase_history, ["accumulating", "fizzle", TERMINAL])
        self.assertEqual(events[-1].template, "insider_buying.fizzle")
        self.assertEqual(events[-1].sentiment, "negative")

    def test_lifecycles_follow_the_graph(self):
        for seed in range(10):
            rng = np.random.default_rng(seed)
            inst = make_instrument()
            self.machine.trigger(inst, rng)
            state, _ = run_lifecycle(self.machine, inst, rng)
            self.assertTrue(is_valid_phase_path("insider_buying", state.phase_history))
            self.assertEqual(state.check_invariants(), [])


if __name__ == "__main__":
    unittest.main()
