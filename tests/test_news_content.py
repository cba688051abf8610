import unittest

import numpy as np

from contracts import classify_headline
from executive_change import EXEC_TYPE_WEIGHTS
from index_rebalance import ACTION_WEIGHTS, INDEX_TIERS
from insider_selling import InsiderSellingMachine
from news import NewsEmitter
from news_content import BASIC_NEWS_TABLES, PHENOMENON_NEWS, event_definitions
from news_shakeout import TERMINAL_NEWS, TRANSIENT_NEWS
from orchestrator import MACHINE_FACTORIES
from phenomena import SimpleShockMachine
from short_squeeze import ShortSqueezeMachine
from strategic_pivot import PIVOT_TYPE_WEIGHTS

from _fakes import SequenceRng, eligible_instrument, make_instrument, run_lifecycle

VARIANTS = {
    "executive_change": [{"exec_type": t} for t in EXEC_TYPE_WEIGHTS],
    "strategic_pivot": [{"pivot_type": t} for t in PIVOT_TYPE_WEIGHTS],
    "index_rebalance": [{"action": a} for a in ACTION_WEIGHTS],
    "news_shakeout": [{"news_type": t} for t in ("guidance_miss", "fraud")],
    "stock_split": [{"ratio": r} for r in (2, 4, 20)],
}

# Kinds that only ever speak through prepare_day().
FILING_ONLY = {"insider_selling"}


def _machine_events():
    """Every narrative event the machines produce over a spread of runs."""
    for kind, factory in MACHINE_FACTORIES.items():
        if kind in FILING_ONLY:
            continue
        machine = factory()
        for options in VARIANTS.get(kind, [{}]):
            for forced in (True, False):
                for seed in range(3):
                    rng = np.random.default_rng(seed)
                    inst = eligible_instrument(kind)
                    machine.trigger(inst, rng, dict(options, force_outcome=forced))
                    _, events = run_lifecycle(machine, inst, rng)
                    for event in events:
                        yield inst, event


class PhenomenonContentTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.events = list(_machine_events())

        build = ShortSqueezeMachine().prepare_day([make_instrument()], SequenceRng([0.0]))
        cls.events.extend(build)

        selling = InsiderSellingMachine(sale_chance=1.0)
        seller = make_instrument()
        for seed in range(3):
            cls.events.extend(selling.prepare_day([seller], np.random.default_rng(seed)))

        for direction in (1, -1):
            machine = SimpleShockMachine("fomo_rally", direction)
            inst = make_instrument()
            machine.trigger(inst, SequenceRng())
            cls.events.extend((inst, e) for e in machine.advance(inst, SequenceRng()).events)

    def test_every_emitted_template_renders(self):
        emitter = NewsEmitter()
        rng = np.random.default_rng(0)
        for inst, event in self.events:
            item = emitter.emit(inst, event, rng)
            self.assertIsNotNone(item, event.template)
            self.assertNotIn("{", item.headline)
            self.assertNotIn("{", item.description)

    def test_headline_keywords_agree_with_event_sentiment(self):
        for inst, event in self.events:
            for template in PHENOMENON_NEWS[event.template]["headlines"]:
                found = classify_headline(template)
                if event.sentiment == "neutral":
                    self.assertIsNone(found, template)
                elif found is not None:
                    expected = 1 if event.sentiment == "positive" else -1
                    self.assertEqual(found[0].direction, expected, template)

    def test_names_placed_in_headlines_carry_no_direction_keyword(self):
        names = list(TRANSIENT_NEWS.values()) + list(TERMINAL_NEWS.values())
        names += [name for tier in INDEX_TIERS.values() for name in tier["indices"]]
        for name in names:
            self.assertIsNone(classify_headline(name), name)

    def test_content_keys_name_known_kinds(self):
        kinds = set(MACHINE_FACTORIES) | {"legacy"}
        for template, entry in PHENOMENON_NEWS.items():
            self.assertIn(template.split(".", 1)[0], kinds)
            self.assertTrue(entry["headlines"], template)


class BasicContentTests(unittest.TestCase):
    def test_ids_unique(self):
        count = sum(len(entries) for pools in BASIC_NEWS_TABLES.values() for entries in pools.values())
        self.assertEqual(len(event_definitions()), count)

    def test_conflicts_name_known_events(self):
        defs = event_definitions()
        for entry in defs.values():
            for other in entry.get("conflicts_with", ()):
                self.assertIn(other, defs, entry["id"])

    def test_basic_headlines_carry_no_direction_keyword(self):
        for entry in event_definitions().values():
            self.assertIsNone(classify_headline(entry["headline"]), entry["headline"])


if __name__ == "__main__":
    unittest.main()
