"""
config.py -- All tunable parameters for the market event engine.

Every value here is loaded from environment variables so a classroom
deployment (or a local .env file) can reshape the simulation without
touching code.

HOW TO READ THIS FILE:
  Each config value has a comment explaining:
    1. What it controls
    2. What happens if you raise/lower it
    3. The default and why it was chosen
"""

from __future__ import annotations

import os
import json as _json
import logging
from dataclasses import dataclass, field

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helper: read an env var with a typed default
# ---------------------------------------------------------------------------

def _env(name, default, cast=str):
    """
    Read an environment variable and cast it to the right type.
    If the var is missing or empty, return *default* (already the right type).
    """
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        # Special handling for booleans -- "true"/"1"/"yes" are all truthy
        if cast is bool:
            return raw.strip().lower() in ("true", "1", "yes")
        return cast(raw)
    except (ValueError, TypeError):
        return default


# ---------------------------------------------------------------------------
# Event kinds and tiers
# ---------------------------------------------------------------------------

# The phenomenon kinds, in the order the orchestrator runs them each
# day.  Order is significant: a later kind sees the mutations made by an
# earlier one in the same tick (a dead-cat crash triggered today blocks an
# executive change on the same instrument today).
PHENOMENON_ORDER: tuple[str, ...] = (
    "short_seller_report",
    "insider_buying",
    "short_squeeze",
    "dead_cat_bounce",
    "news_shakeout",
    "executive_change",
    "strategic_pivot",
    "index_rebalance",
    "stock_split",
    "fomo_rally",
    "liquidity_sweep",
    "insider_selling",
)

# Random daily headlines (EPS, sentiment, hybrid, market-wide).  They carry
# no educational telltale so they sit in the advanced tier.
BASIC_NEWS = "basic_news"

EVENT_KINDS: tuple[str, ...] = PHENOMENON_ORDER + (BASIC_NEWS,)

# Tier 1: clear telltales, predictable timelines.
TIER_1: tuple[str, ...] = ("short_seller_report", "insider_buying", "news_shakeout")

# Tier 2: clear signals with some complexity.
TIER_2: tuple[str, ...] = (
    "dead_cat_bounce",
    "short_squeeze",
    "fomo_rally",
    "executive_change",
    "strategic_pivot",
    "liquidity_sweep",
    "index_rebalance",
    "stock_split",
)

# Noise: no telltale to learn from, only things a trader has to tune out.
NOISE: tuple[str, ...] = ("insider_selling", BASIC_NEWS)

EVENT_TIER_PRESETS: dict[str, frozenset[str]] = {
    "beginner": frozenset(TIER_1),
    "intermediate": frozenset(TIER_1 + TIER_2),
    "advanced": frozenset(TIER_1 + TIER_2 + NOISE),
    "all": frozenset(EVENT_KINDS),
    "none": frozenset(),
}

# Which preset to start from.  "intermediate" enables every phenomenon with a
# telltale but keeps the noise kinds off so the narrative stays readable.
EVENT_TIER: str = _env("EVENT_TIER", "intermediate", str)

# Optional JSON object of per-kind overrides applied on top of the preset,
# e.g. '{"basic_news": true, "fomo_rally": false}'.
ENABLED_EVENTS_JSON: str = _env("ENABLED_EVENTS_JSON", "", str)

# ---------------------------------------------------------------------------
# Simulation
# ---------------------------------------------------------------------------

# Seed for the engine's random generator.  0 means "pick one from OS
# entropy".  Any other value makes a run exactly reproducible.
SIM_SEED: int = _env("SIM_SEED", 0, int)

# How many trading days simulate.py runs when --days is not given.
SIM_DAYS: int = _env("SIM_DAYS", 60, int)

# Instrument universe as a JSON list of objects.  Empty uses the built-in
# demo universe in simulate.py.
SIM_INSTRUMENTS_JSON: str = _env("SIM_INSTRUMENTS_JSON", "", str)

# ---------------------------------------------------------------------------
# News
# ---------------------------------------------------------------------------

# Number of basic headlines attempted per day (uniform in [min, max]).
# Raising max makes days noisier.
BASIC_NEWS_MIN_ITEMS: int = _env("BASIC_NEWS_MIN_ITEMS", 1, int)
BASIC_NEWS_MAX_ITEMS: int = _env("BASIC_NEWS_MAX_ITEMS", 3, int)

# How many alternate candidates a generator tries when its first pick
# conflicts with a headline already accepted today.  After this many
# rejections the generator gives up silently for the day.
NEWS_MAX_RETRIES: int = _env("NEWS_MAX_RETRIES", 5, int)

# Emit the educational "quiet day" item when nothing else made the news.
QUIET_DAY_NEWS: bool = _env("QUIET_DAY_NEWS", True, bool)

# ---------------------------------------------------------------------------
# Consistency checks
# ---------------------------------------------------------------------------

# Verify each directional headline against the realized same-day price
# delta and log a warning when they disagree.  Costs almost nothing.
COUPLING_CHECK_ENABLED: bool = _env("COUPLING_CHECK_ENABLED", True, bool)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

LOG_LEVEL: str = _env("LOG_LEVEL", "INFO", str)


# ---------------------------------------------------------------------------
# Resolved settings object
# ---------------------------------------------------------------------------

def resolve_enabled_events(tier: str, overrides: dict | None = None) -> dict[str, bool]:
    """
    Expand a tier preset into a per-kind toggle map, then apply overrides.

    Unknown tiers fall back to "intermediate"; unknown kinds in *overrides*
    are ignored with a warning.
    """
    preset = EVENT_TIER_PRESETS.get(str(tier or "").strip().lower())
    if preset is None:
        log.warning("unknown EVENT_TIER %r, using intermediate", tier)
        preset = EVENT_TIER_PRESETS["intermediate"]
    enabled = {kind: kind in preset for kind in EVENT_KINDS}
    for kind, flag in (overrides or {}).items():
        if kind not in enabled:
            log.warning("ignoring override for unknown event kind %r", kind)
            continue
        enabled[kind] = bool(flag)
    return enabled


def _parse_overrides(raw: str) -> dict:
    if not raw:
        return {}
    try:
        data = _json.loads(raw)
    except ValueError:
        log.warning("ENABLED_EVENTS_JSON is not valid JSON, ignoring")
        return {}
    if not isinstance(data, dict):
        log.warning("ENABLED_EVENTS_JSON must be an object, ignoring")
        return {}
    return data


@dataclass(frozen=True)
class EngineSettings:
    enabled_events: dict[str, bool] = field(
        default_factory=lambda: resolve_enabled_events("intermediate")
    )
    basic_news_min_items: int = 1
    basic_news_max_items: int = 3
    news_max_retries: int = 5
    quiet_day_news: bool = True
    coupling_check_enabled: bool = True

    def is_enabled(self, kind: str) -> bool:
        return bool(self.enabled_events.get(kind, False))


def load_settings(**overrides) -> EngineSettings:
    """Build EngineSettings from the module-level env values."""
    values = {
        "enabled_events": resolve_enabled_events(EVENT_TIER, _parse_overrides(ENABLED_EVENTS_JSON)),
        "basic_news_min_items": max(0, BASIC_NEWS_MIN_ITEMS),
        "basic_news_max_items": max(BASIC_NEWS_MIN_ITEMS, BASIC_NEWS_MAX_ITEMS),
        "news_max_retries": max(1, NEWS_MAX_RETRIES),
        "quiet_day_news": QUIET_DAY_NEWS,
        "coupling_check_enabled": COUPLING_CHECK_ENABLED,
    }
    values.update(overrides)
    return EngineSettings(**values)
