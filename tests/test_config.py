import os
import unittest
from unittest import mock

import config


class EnvTests(unittest.TestCase):
    def test_missing_or_empty_uses_default(self):
        with mock.patch.dict(os.environ, {"ENGINE_TEST_VALUE": ""}):
            self.assertEqual(config._env("ENGINE_TEST_VALUE", 7, int), 7)
        self.assertEqual(config._env("ENGINE_TEST_MISSING", "x"), "x")

    def test_casts(self):
        with mock.patch.dict(os.environ, {"A": "12", "B": "Yes", "C": "off"}):
            self.assertEqual(config._env("A", 0, int), 12)
            self.assertIs(config._env("B", False, bool), True)
            self.assertIs(config._env("C", True, bool), False)

    def test_bad_cast_falls_back(self):
        with mock.patch.dict(os.environ, {"A": "twelve"}):
            self.assertEqual(config._env("A", 3, int), 3)


class TierTests(unittest.TestCase):
    def test_presets(self):
        beginner = config.resolve_enabled_events("beginner")
        self.assertEqual(
            {k for k, v in beginner.items() if v}, {"short_seller_report", "insider_buying", "news_shakeout"},
        )
        intermediate = config.resolve_enabled_events("intermediate")
        self.assertTrue(all(intermediate[k] for k in config.PHENOMENON_ORDER if k not in config.NOISE))
        self.assertFalse(intermediate[config.BASIC_NEWS])
        self.assertFalse(intermediate["insider_selling"])
        advanced = config.resolve_enabled_events("advanced")
        self.assertTrue(advanced[config.BASIC_NEWS])
        self.assertTrue(advanced["insider_selling"])
        self.assertTrue(all(advanced[k] for k in config.EVENT_KINDS))
        self.assertFalse(any(config.resolve_enabled_events("none").values()))
        self.assertEqual(set(intermediate), set(config.EVENT_KINDS))

    def test_tier_name_is_normalized(self):
        self.assertEqual(config.resolve_enabled_events(" Beginner "), config.resolve_enabled_events("beginner"))

    def test_unknown_tier_falls_back(self):
        with self.assertLogs("config", level="WARNING"):
            enabled = config.resolve_enabled_events("expert")
        self.assertEqual(enabled, config.resolve_enabled_events("intermediate"))

    def test_overrides(self):
        with self.assertLogs("config", level="WARNING") as logs:
            enabled = config.resolve_enabled_events(
                "beginner", {"fomo_rally": True, "insider_buying": False, "moon_mission": True},
            )
        self.assertTrue(enabled["fomo_rally"])
        self.assertFalse(enabled["insider_buying"])
        self.assertNotIn("moon_mission", enabled)
        self.assertIn("moon_mission", logs.output[0])

    def test_parse_overrides(self):
        self.assertEqual(config._parse_overrides(""), {})
        self.assertEqual(config._parse_overrides('{"basic_news": true}'), {"basic_news": True})
        with self.assertLogs("config", level="WARNING"):
            self.assertEqual(config._parse_overrides("{not json"), {})
        with self.assertLogs("config", level="WARNING"):
            self.assertEqual(config._parse_overrides("[1, 2]"), {})


class SettingsTests(unittest.TestCase):
    def test_load_settings_overrides(self):
        settings = config.load_settings(quiet_day_news=False, basic_news_max_items=6)
        self.assertFalse(settings.quiet_day_news)
        self.assertEqual(settings.basic_news_max_items, 6)

    def test_is_enabled(self):
        settings = config.EngineSettings(enabled_events={"fomo_rally": True, "basic_news": False})
        self.assertTrue(settings.is_enabled("fomo_rally"))
        self.assertFalse(settings.is_enabled("basic_news"))
        self.assertFalse(settings.is_enabled("liquidity_sweep"))

    def test_default_settings_follow_intermediate(self):
        self.assertEqual(config.EngineSettings().enabled_events, config.resolve_enabled_events("intermediate"))


if __name__ == "__main__":
    unittest.main()
