import io
import json
import unittest
from contextlib import redirect_stdout
from unittest import mock

import numpy as np

import simulate


class ArgsTests(unittest.TestCase):
    def test_defaults(self):
        args = simulate.parse_args([])
        self.assertFalse(args.json)
        self.assertFalse(args.strict_invariants)

    def test_flags(self):
        args = simulate.parse_args(["--days", "5", "--seed", "9", "--tier", "beginner", "--json"])
        self.assertEqual(args.days, 5)
        self.assertEqual(args.seed, 9)
        self.assertEqual(args.tier, "beginner")
        self.assertTrue(args.json)


class InstrumentTests(unittest.TestCase):
    def test_demo_universe(self):
        instruments = simulate.build_instruments(np.random.default_rng(1))
        self.assertEqual([i.symbol for i in instruments], [row[0] for row in simulate.DEMO_UNIVERSE])
        for inst in instruments:
            self.assertEqual(len(inst.price_history), 30)
            self.assertAlmostEqual(inst.price_history[-1], inst.price)

    def test_json_universe(self):
        raw = json.dumps([{"symbol": "ZED", "price": 12.5, "stability": 0.9}])
        (inst,) = simulate.build_instruments(np.random.default_rng(1), raw)
        self.assertEqual(inst.symbol, "ZED")
        self.assertEqual(inst.base_price, 12.5)
        self.assertEqual(inst.stability, 0.9)

    def test_bad_json(self):
        with self.assertRaises(SystemExit):
            simulate.build_instruments(np.random.default_rng(1), "{oops")
        with self.assertRaises(SystemExit):
            simulate.build_instruments(np.random.default_rng(1), "[]")

    def test_unknown_instrument_field(self):
        raw = json.dumps([{"symbol": "ZED", "price": 12.5, "ticker_colour": "red"}])
        with self.assertRaises(SystemExit) as ctx:
            simulate.build_instruments(np.random.default_rng(1), raw)
        self.assertIn("ticker_colour", str(ctx.exception))

    def test_non_object_entry(self):
        with self.assertRaises(SystemExit):
            simulate.build_instruments(np.random.default_rng(1), json.dumps([5]))


class MainTests(unittest.TestCase):
    def test_json_run(self):
        out = io.StringIO()
        with mock.patch.object(simulate, "setup_logging"), redirect_stdout(out):
            code = simulate.main(["--days", "3", "--seed", "4", "--json"])
        self.assertEqual(code, 0)
        lines = out.getvalue().splitlines()
        self.assertEqual([json.loads(line)["day"] for line in lines], [1, 2, 3])


if __name__ == "__main__":
    unittest.main()
