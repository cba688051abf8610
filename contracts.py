"""
contracts.py

Runtime consistency checks between what the news says and what prices do.

Two contracts:

1. News/price coupling: a headline carrying a directional keyword
   ("CRASHES", "REBOUNDS", ...) must be paired with a same-day price move
   in that direction, or at worst a small move the other way.  Items that
   announce an outcome decided earlier (resolution and completion reports)
   are exempt from the direction check.
2. Phase sentiment: while a phenomenon sits in a phase, the instrument's
   sentiment offset should stay in a phase-specific band.

Nothing here changes control flow.  The orchestrator logs failures; tests
assert on them.
"""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Any, Iterable, Mapping

from phenomena import TERMINAL

# News types that report an outcome decided on an earlier day.
EXEMPT_NEWS_TYPES = frozenset({
    "short_report_resolution",
    "crash_resolution",
    "recovery_complete",
})


@dataclass(frozen=True)
class HeadlinePattern:
    category: str
    keywords: tuple[str, ...]
    direction: int
    min_magnitude: float
    max_magnitude: float
    max_wrong_direction: float

    def search(self, headline: str) -> str | None:
        upper = headline.upper()
        for keyword in self.keywords:
            if re.search(r"\b" + re.escape(keyword) + r"\b", upper):
                return keyword
        return None


# Checked in order; the first category with a keyword hit wins.
HEADLINE_PATTERNS: tuple[HeadlinePattern, ...] = (
    HeadlinePattern(
        category="bearish_strong",
        keywords=("CRASHES", "PLUNGES", "COLLAPSES", "BREAKS DOWN", "BREAKDOWN", "CAPITULATES",
                  "TANKS", "CRATERS", "DECIMATED", "HAMMERED", "PLUMMETS", "TUMBLES",
                  "NOSEDIVES", "NEW LOWS", "FRAUD"),
        direction=-1,
        min_magnitude=0.03,
        max_magnitude=0.35,
        max_wrong_direction=0.02,
    ),
    HeadlinePattern(
        category="bearish_moderate",
        keywords=("FALLS", "DROPS", "DECLINES", "SLIPS", "WEAKENS", "FADES", "SELLS OFF",
                  "UNDER PRESSURE", "LOSES", "RETREATS", "SLIDES", "LOWER", "FAILS", "TRAP",
                  "DECLINE", "FIZZLES"),
        direction=-1,
        min_magnitude=0.005,
        max_magnitude=0.15,
        max_wrong_direction=0.03,
    ),
    HeadlinePattern(
        category="bullish_strong",
        keywords=("SURGES", "SOARS", "ROCKETS", "BREAKS OUT", "BREAKOUT", "EXPLODES",
                  "SKYROCKETS", "MOONS", "BLASTS OFF", "SPIKES"),
        direction=1,
        min_magnitude=0.03,
        max_magnitude=0.35,
        max_wrong_direction=0.02,
    ),
    HeadlinePattern(
        category="bullish_moderate",
        keywords=("RISES", "GAINS", "CLIMBS", "ADVANCES", "RALLIES", "RECOVERS", "BOUNCES",
                  "REBOUNDS", "STRENGTHENS", "HIGHER", "CONFIRMATION", "HOLDS", "RECOVERY",
                  "REVERSAL"),
        direction=1,
        min_magnitude=0.005,
        max_magnitude=0.15,
        max_wrong_direction=0.06,
    ),
)


def classify_headline(headline: str) -> tuple[HeadlinePattern, str] | None:
    """Return (pattern, keyword) for the first directional keyword found, else None."""
    if not headline:
        return None
    for pattern in HEADLINE_PATTERNS:
        keyword = pattern.search(headline)
        if keyword is not None:
            return pattern, keyword
    return None


@dataclass
class CouplingResult:
    checked: bool
    ok: bool = True
    category: str = ""
    keyword: str = ""
    delta: float = 0.0
    exempt: bool = False
    magnitude_ok: bool = True

    def describe(self) -> str:
        if not self.checked:
            return "no directional keyword"
        verdict = "ok" if self.ok else "WRONG DIRECTION"
        extra = " (exempt)" if self.exempt else ""
        return f"{self.keyword} [{self.category}] vs {self.delta * 100:+.2f}%: {verdict}{extra}"


def verify_news_coupling(item: Any, delta: float) -> CouplingResult:
    """
    Check one news item against its instrument's realized move for the day.

    *item* needs `headline` and `news_type` attributes (a NewsItem or any
    stand-in).  Magnitude is advisory: a move outside half the pattern's
    minimum to twice its maximum sets `magnitude_ok` but not `ok`.
    """
    found = classify_headline(getattr(item, "headline", "") or "")
    if found is None:
        return CouplingResult(checked=False, delta=float(delta))
    pattern, keyword = found
    delta = float(delta)
    magnitude = abs(delta)
    direction = 1 if delta >= 0 else -1
    direction_ok = direction == pattern.direction or magnitude <= pattern.max_wrong_direction
    exempt = getattr(item, "news_type", "") in EXEMPT_NEWS_TYPES
    magnitude_ok = pattern.min_magnitude * 0.5 <= magnitude <= pattern.max_magnitude * 2
    return CouplingResult(
        checked=True,
        ok=direction_ok or exempt,
        category=pattern.category,
        keyword=keyword,
        delta=delta,
        exempt=exempt and not direction_ok,
        magnitude_ok=magnitude_ok,
    )


# --------------------------- Phase sequences ---------------------------

# kind -> {phase: allowed next phases}; None is the pre-trigger state.
# Written out independently of the machine classes; test_contracts checks
# that the two agree.
PHASE_SEQUENCES: dict[str, dict[str | None, tuple[str, ...]]] = {
    "dead_cat_bounce": {
        None: ("crash",),
        "crash": ("bounce",),
        "bounce": ("decline", "consolidation", "recovery"),
        "decline": ("bounce", "consolidation"),
        "consolidation": ("recovery", "bounce", TERMINAL),
        "recovery": (TERMINAL,),
    },
    "short_squeeze": {
        None: ("buildup",),
        "buildup": ("squeeze",),
        "squeeze": ("climax",),
        "climax": ("reversal",),
        "reversal": (TERMINAL,),
    },
    "fomo_rally": {
        None: ("buildup",),
        "buildup": ("euphoria",),
        "euphoria": ("blow_off",),
        "blow_off": ("crash",),
        "crash": (TERMINAL,),
    },
    "strategic_pivot": {
        None: ("announcement",),
        "announcement": ("execution_void",),
        "execution_void": ("resolution",),
        "resolution": (TERMINAL,),
    },
    "executive_change": {
        None: ("announcement",),
        "announcement": ("stabilization",),
        "stabilization": ("resolution",),
        "resolution": (TERMINAL,),
    },
    "liquidity_sweep": {
        None: ("sweep",),
        "sweep": ("recovery",),
        "recovery": ("continuation",),
        "continuation": (TERMINAL,),
    },
    "short_seller_report": {
        None: ("initial_crash",),
        "initial_crash": ("rebuttal_window",),
        "rebuttal_window": ("base_building",),
        "base_building": ("resolution",),
        "resolution": (TERMINAL,),
    },
    "insider_buying": {
        None: ("accumulating",),
        "accumulating": ("catalyst", "fizzle"),
        "catalyst": (TERMINAL,),
        "fizzle": (TERMINAL,),
    },
    "news_shakeout": {
        None: ("panic",),
        "panic": ("stabilization",),
        "stabilization": ("recovery", "relapse"),
        "recovery": (TERMINAL,),
        "relapse": (TERMINAL,),
    },
    "index_rebalance": {
        None: ("announcement",),
        "announcement": ("run_up",),
        "run_up": ("effective_day",),
        "effective_day": ("reversal",),
        "reversal": (TERMINAL,),
    },
    "stock_split": {
        None: ("announcement",),
        "announcement": ("run_up",),
        "run_up": ("split_day",),
        "split_day": ("post_split",),
        "post_split": (TERMINAL,),
    },
    "insider_selling": {
        None: ("filing",),
        "filing": (TERMINAL,),
    },
}


def is_valid_phase_path(kind: str, path: Iterable[str]) -> bool:
    """True when *path* starts at the kind's first phase and only follows allowed edges."""
    graph = PHASE_SEQUENCES.get(kind)
    if graph is None:
        raise ValueError(f"unknown phenomenon kind {kind!r}")
    previous: str | None = None
    for phase in path:
        if previous == TERMINAL:
            return False
        if phase not in graph.get(previous, ()):
            return False
        previous = phase
    return previous is not None


# --------------------------- Phase sentiment ---------------------------

# kind -> phase -> (min, max) sentiment offset while in that phase.
PHASE_SENTIMENT_CONTRACTS: dict[str, Mapping[str, tuple[float, float]]] = {
    "short_seller_report": {
        "initial_crash": (-0.25, -0.05),
        "rebuttal_window": (-0.15, 0.03),
        "base_building": (-0.04, 0.04),
    },
    "dead_cat_bounce": {
        "crash": (-0.25, -0.05),
        "bounce": (0.02, 0.12),
        "decline": (-0.15, -0.01),
        "consolidation": (0.00, 0.04),
        "recovery": (0.02, 0.12),
    },
    "executive_change": {
        "announcement": (-0.25, -0.02),
        "stabilization": (-0.05, 0.03),
    },
    "strategic_pivot": {
        "announcement": (-0.25, -0.02),
    },
}


def verify_phase_sentiment(kind: str, phase: str, sentiment: float) -> str | None:
    """Violation message when *sentiment* is outside the phase's band, else None."""
    band = PHASE_SENTIMENT_CONTRACTS.get(kind, {}).get(phase)
    if band is None:
        return None
    lo, hi = band
    if lo <= sentiment <= hi:
        return None
    return f"{kind}[{phase}]: sentiment {sentiment * 100:+.2f}% outside {lo * 100:+.1f}%..{hi * 100:+.1f}%"
