#!/usr/bin/env python3
"""
simulate.py

Command-line driver: run the event engine for N days and print the news.

  python simulate.py --days 90 --seed 7 --tier advanced
  python simulate.py --days 30 --json > run.jsonl
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

import numpy as np

import config
from market import Instrument
from orchestrator import EventOrchestrator

logger = logging.getLogger(__name__)

# symbol, name, sector, price, stability, short interest, trend
DEMO_UNIVERSE = (
    ("APEX", "Apex Logistics", "software", 120.0, 0.70, 0.04, 0.01),
    ("BOLT", "Bolt Biotherapeutics", "biotech", 38.0, 0.25, 0.22, 0.0),
    ("CRWN", "Crown Retail Group", "retail", 54.0, 0.40, 0.12, -0.01),
    ("DYNE", "Dynamo Energy", "energy", 82.0, 0.60, 0.06, 0.0),
    ("FNDR", "Founders Financial", "financial", 145.0, 0.85, 0.03, 0.005),
    ("GLMR", "Glimmer Media", "software", 17.5, 0.10, 0.35, 0.02),
    ("HRTH", "Hearth Utilities", "utility", 64.0, 0.95, 0.02, 0.0),
    ("KITE", "Kite Robotics", "software", 230.0, 0.35, 0.18, 0.015),
    ("ORBT", "Orbital Semiconductor", "semiconductor", 860.0, 0.55, 0.03, 0.01),
)


def setup_logging() -> None:
    level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )


def _warm_history(inst: Instrument, rng: np.random.Generator, days: int = 30) -> None:
    """Give each name a short random-walk history so support and RSI have data."""
    price = inst.price
    closes = []
    for _ in range(days):
        price *= 1.0 + (float(rng.random()) - 0.5) * 2.0 * inst.volatility
        closes.append(price)
    # end exactly at the starting price
    scale = inst.price / closes[-1]
    inst.price_history = [c * scale for c in closes]


def build_instruments(rng: np.random.Generator, raw_json: str = "") -> list[Instrument]:
    if raw_json:
        try:
            rows = json.loads(raw_json)
        except ValueError as e:
            raise SystemExit(f"SIM_INSTRUMENTS_JSON is not valid JSON: {e}")
        if not isinstance(rows, list) or not rows:
            raise SystemExit("SIM_INSTRUMENTS_JSON must be a non-empty list of objects")
        try:
            instruments = [Instrument(**row) for row in rows]
        except TypeError as e:
            raise SystemExit(f"SIM_INSTRUMENTS_JSON has a bad instrument entry: {e}")
    else:
        instruments = [
            Instrument(
                symbol=sym, name=name, sector=sector, price=price,
                stability=stability, short_interest=si, trend=trend,
            )
            for sym, name, sector, price, stability, si, trend in DEMO_UNIVERSE
        ]
    for inst in instruments:
        if len(inst.price_history) < 2:
            _warm_history(inst, rng)
    return instruments


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Run the market event engine day by day")
    p.add_argument("--days", type=int, default=config.SIM_DAYS, help="Trading days to simulate")
    p.add_argument("--seed", type=int, default=config.SIM_SEED, help="RNG seed (0 = random)")
    p.add_argument("--tier", default=config.EVENT_TIER,
                   help="Event tier preset: " + ", ".join(sorted(config.EVENT_TIER_PRESETS)))
    p.add_argument("--json", action="store_true", default=False, help="Print one JSON day report per line")
    p.add_argument("--strict-invariants", action="store_true", default=False,
                   help="Stop at the first invariant violation")
    return p.parse_args(argv)


def _print_day(report) -> None:
    print(f"=== Day {report.day} ===")
    for item in report.news:
        tag = item.related_symbol or "MARKET"
        print(f"  [{tag:>6}] {item.headline}")
        if item.telltale:
            print(f"           {item.telltale}")
    for rec in report.completed:
        outcome = "success" if rec.succeeded else "failure"
        print(f"  -- {rec.symbol} {rec.kind} ended in {rec.days}d ({outcome}): {' > '.join(rec.phase_path)}")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging()

    seed = int(args.seed) or None
    rng = np.random.default_rng(seed)
    settings = config.load_settings(
        enabled_events=config.resolve_enabled_events(
            args.tier, config._parse_overrides(config.ENABLED_EVENTS_JSON),
        ),
    )
    engine = EventOrchestrator(build_instruments(rng, config.SIM_INSTRUMENTS_JSON), settings, rng)
    logger.info("simulating %d days (seed=%s, tier=%s)", args.days, seed if seed else "random", args.tier)

    mismatches = 0
    for _ in range(max(0, int(args.days))):
        report = engine.run_day()
        mismatches += len(report.coupling_failures)
        if args.json:
            print(json.dumps(report.to_status_dict(), sort_keys=True))
        else:
            _print_day(report)
        problems = engine.check_invariants()
        if problems:
            for problem in problems:
                logger.warning("invariant: %s", problem)
            if args.strict_invariants:
                return 1

    logger.info(
        "done: %d lifecycles completed, %d headline/price mismatches",
        len(engine.history), mismatches,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
