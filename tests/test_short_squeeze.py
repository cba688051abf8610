import unittest

import numpy as np

from contracts import is_valid_phase_path
from phenomena import TERMINAL
from short_squeeze import ShortSqueezeMachine, magnitude_for, squeeze_risk

from _fakes import SequenceRng, apply_transition, eligible_instrument, make_instrument, run_lifecycle


class SqueezeRiskTests(unittest.TestCase):
    def test_crowded_short_book_scores_high(self):
        risk = squeeze_risk(eligible_instrument("short_squeeze"))
        self.assertEqual(risk["risk_score"], 100)
        self.assertTrue(risk["is_candidate"])
        self.assertEqual(magnitude_for(risk["risk_score"]), "extreme")

    def test_light_short_book_is_not_a_candidate(self):
        risk = squeeze_risk(make_instrument(short_interest=0.10))
        self.assertFalse(risk["is_candidate"])
        self.assertIsNone(ShortSqueezeMachine().trigger(make_instrument(), SequenceRng()))

    def test_magnitude_bands(self):
        self.assertEqual(magnitude_for(70), "major")
        self.assertEqual(magnitude_for(55), "minor")


class ShortSqueezeMachineTests(unittest.TestCase):
    def setUp(self):
        self.machine = ShortSqueezeMachine()
        self.rng = np.random.default_rng(3)

    def test_outcome_decided_on_climax_day(self):
        inst = eligible_instrument("short_squeeze")
        state = self.machine.trigger(inst, self.rng)
        self.assertEqual(state.pending_event.template, "short_squeeze.buildup")
        while state.phase != "climax":
            self.assertFalse(state.outcome_decided)
            self.machine.advance(inst, self.rng)
            apply_transition(inst)
        result = self.machine.advance(inst, self.rng)
        self.assertEqual(result.phase_before, "climax")
        self.assertEqual(result.phase_after, "reversal")
        self.assertEqual(result.event.template, "short_squeeze.climax")
        self.assertTrue(state.outcome_decided)
        self.assertTrue(state.signals["has_borrow_plateau"])
        self.assertGreaterEqual(state.final_probability, 0.2)
        self.assertLessEqual(state.final_probability, 0.9)

    def test_forced_reversal_fades_the_squeeze(self):
        inst = eligible_instrument("short_squeeze")
        self.machine.trigger(inst, self.rng, {"force_outcome": True})
        state, events = run_lifecycle(self.machine, inst, self.rng)
        self.assertEqual(state.phase_history, ["buildup", "squeeze", "climax", "reversal", TERMINAL])
        reversal = [e for e in events if e.template == "short_squeeze.reversal"]
        self.assertEqual(len(reversal), 1)
        self.assertEqual(reversal[0].sentiment, "negative")
        self.assertEqual(events[-1].template, "short_squeeze.complete")
        self.assertLess(inst.short_interest, 0.55)

    def test_sector_sets_base_probability(self):
        software = eligible_instrument("short_squeeze")
        software.sector = "software"
        self.assertAlmostEqual(self.machine.trigger(software, self.rng).base_probability, 0.85)

        utility = eligible_instrument("short_squeeze")
        utility.sector = "utility"
        state = self.machine.trigger(utility, self.rng)
        self.assertAlmostEqual(state.base_probability, 0.50)
        self.assertAlmostEqual(self.machine._rubric_for(state).partial_rates[3], 0.60)

    def test_meme_stock_gets_retail_momentum_veto(self):
        inst = eligible_instrument("short_squeeze")
        inst.stability = 0.1
        state = self.machine.trigger(inst, self.rng)
        self.assertIn("retail_momentum", state.active_vetoes)

    def test_prepare_day_builds_short_interest(self):
        light = make_instrument("LITE", short_interest=0.05)
        crowded = make_instrument("HEVY", short_interest=0.50)
        out = self.machine.prepare_day([crowded, light], SequenceRng([0.0]))
        self.assertEqual(len(out), 1)
        target, event = out[0]
        self.assertIs(target, light)
        self.assertEqual(event.template, "short_squeeze.short_build")
        self.assertGreater(light.short_interest, 0.05)
        self.assertEqual(crowded.short_interest, 0.50)

        self.assertEqual(self.machine.prepare_day([light], SequenceRng([0.5])), [])

    def test_lifecycles_follow_the_graph(self):
        for seed in range(10):
            rng = np.random.default_rng(seed)
            inst = eligible_instrument("short_squeeze")
            self.machine.trigger(inst, rng)
            state, _ = run_lifecycle(self.machine, inst, rng)
            self.assertTrue(is_valid_phase_path("short_squeeze", state.phase_history))
            self.assertEqual(state.check_invariants(), [])


if __name__ == "__main__":
    unittest.main()
