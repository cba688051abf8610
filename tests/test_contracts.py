import unittest

from contracts import (
    PHASE_SEQUENCES,
    classify_headline,
    is_valid_phase_path,
    verify_news_coupling,
    verify_phase_sentiment,
)
from news import NewsItem
from orchestrator import MACHINE_FACTORIES
from phenomena import TERMINAL


class HeadlineTests(unittest.TestCase):
    def test_first_category_wins(self):
        pattern, keyword = classify_headline("ACME CRASHES as support BREAKS DOWN")
        self.assertEqual(pattern.category, "bearish_strong")
        self.assertEqual(pattern.direction, -1)

    def test_case_insensitive(self):
        pattern, keyword = classify_headline("Acme rebounds off the lows")
        self.assertEqual(keyword, "REBOUNDS")
        self.assertEqual(pattern.direction, 1)

    def test_whole_words_only(self):
        self.assertIsNone(classify_headline("Shareholders vote on new board"))
        self.assertIsNone(classify_headline("Acme names new CFO"))
        self.assertIsNone(classify_headline(""))


class CouplingTests(unittest.TestCase):
    def test_no_keyword_is_unchecked(self):
        result = verify_news_coupling(NewsItem(headline="Acme names new CFO"), 0.20)
        self.assertFalse(result.checked)
        self.assertTrue(result.ok)
        self.assertEqual(result.describe(), "no directional keyword")

    def test_small_wrong_way_move_tolerated(self):
        item = NewsItem(headline="ACME SLIPS")
        self.assertTrue(verify_news_coupling(item, 0.01).ok)
        self.assertFalse(verify_news_coupling(item, 0.05).ok)
        self.assertTrue(verify_news_coupling(item, -0.05).ok)

    def test_strong_pattern_is_stricter(self):
        item = NewsItem(headline="ACME PLUNGES")
        result = verify_news_coupling(item, 0.025)
        self.assertFalse(result.ok)
        self.assertIn("WRONG DIRECTION", result.describe())

    def test_exempt_news_types(self):
        item = NewsItem(headline="ACME RECOVERY complete", news_type="recovery_complete")
        result = verify_news_coupling(item, -0.08)
        self.assertTrue(result.ok)
        self.assertTrue(result.exempt)
        self.assertIn("(exempt)", result.describe())

    def test_magnitude_is_advisory(self):
        item = NewsItem(headline="ACME SURGES")
        result = verify_news_coupling(item, 0.90)
        self.assertTrue(result.ok)
        self.assertFalse(result.magnitude_ok)
        self.assertTrue(verify_news_coupling(item, 0.05).magnitude_ok)


class PhasePathTests(unittest.TestCase):
    def test_valid_paths(self):
        self.assertTrue(is_valid_phase_path(
            "dead_cat_bounce", ["crash", "bounce", "decline", "bounce", "consolidation", TERMINAL],
        ))
        self.assertTrue(is_valid_phase_path("short_squeeze", ["buildup", "squeeze"]))

    def test_invalid_paths(self):
        self.assertFalse(is_valid_phase_path("short_squeeze", ["squeeze", "climax"]))
        self.assertFalse(is_valid_phase_path("fomo_rally", ["buildup", "blow_off"]))
        self.assertFalse(is_valid_phase_path("insider_buying", ["accumulating", "fizzle", TERMINAL, "catalyst"]))
        self.assertFalse(is_valid_phase_path("insider_buying", []))

    def test_unknown_kind(self):
        with self.assertRaises(ValueError):
            is_valid_phase_path("moon_mission", ["launch"])

    def test_tables_match_machines(self):
        self.assertEqual(set(PHASE_SEQUENCES), set(MACHINE_FACTORIES))
        for kind, factory in MACHINE_FACTORIES.items():
            machine = factory()
            graph = PHASE_SEQUENCES[kind]
            self.assertEqual(graph[None], (machine.initial_phase,), kind)
            self.assertEqual(set(graph) - {None}, set(machine.transitions), kind)
            for phase, targets in machine.transitions.items():
                self.assertEqual(set(graph[phase]), set(targets), f"{kind}.{phase}")


class PhaseSentimentTests(unittest.TestCase):
    def test_inside_band(self):
        self.assertIsNone(verify_phase_sentiment("dead_cat_bounce", "crash", -0.10))

    def test_outside_band(self):
        message = verify_phase_sentiment("dead_cat_bounce", "bounce", -0.05)
        self.assertIn("dead_cat_bounce[bounce]", message)

    def test_unconstrained_phase(self):
        self.assertIsNone(verify_phase_sentiment("fomo_rally", "euphoria", 2.0))
        self.assertIsNone(verify_phase_sentiment("executive_change", "resolution", -1.0))


if __name__ == "__main__":
    unittest.main()
