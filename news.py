"""
news.py

Turns machine events into headlines and collects the day's news.

Three pieces:

- NewsEmitter: NarrativeEvent -> NewsItem, by template lookup in the
  phenomenon content table.  Missing content skips the item, never the day.
- DailyNewsBook: the append-only sink for one day.  Rejects items whose
  conflict list (or an accepted item's list) names each other for the same
  instrument, and duplicate headlines for the same instrument.
- BasicNewsGenerator: random EPS / sentiment / hybrid / market headlines for
  instruments not owned by an active phenomenon.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
import logging
from typing import Any, Iterable, Mapping

import numpy as np

from market import Instrument, meme_multiplier
from news_content import BASIC_NEWS_TABLES, PHENOMENON_NEWS, QUIET_DAY_NEWS
from phenomena import NarrativeEvent, randint

log = logging.getLogger(__name__)


@dataclass
class NewsItem:
    headline: str
    description: str = ""
    sentiment: str = "neutral"
    related_symbol: str | None = None
    news_type: str = ""
    phase: str = ""
    event_id: str = ""
    conflicts_with: tuple[str, ...] = ()
    is_market_wide: bool = False
    telltale: str = ""
    timestamp: str = ""
    item_id: str = ""
    # "up" / "down" for items that promise a move; None otherwise
    expected_direction: str | None = None
    magnitude: str = ""

    def to_status_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["conflicts_with"] = list(self.conflicts_with)
        return out


class _Fields(dict):
    """format_map() source that reports the missing key by name."""

    def __missing__(self, key):
        raise KeyError(key)


def _pick(rng: np.random.Generator | None, options: list) -> Any:
    if not options:
        return None
    if rng is None or len(options) == 1:
        return options[0]
    return options[int(rng.integers(0, len(options)))]


# --------------------------- Emitter ---------------------------


class NewsEmitter:
    def __init__(self, content: Mapping[str, Mapping[str, Any]] | None = None) -> None:
        self.content = PHENOMENON_NEWS if content is None else content

    def emit(
        self,
        instrument: Instrument,
        event: NarrativeEvent,
        rng: np.random.Generator | None = None,
    ) -> NewsItem | None:
        entry = self.content.get(event.template)
        if not entry:
            log.debug("%s: no news content for %s, skipping", instrument.symbol, event.template)
            return None

        fields = _Fields(event.metrics)
        fields.update(
            STOCK=instrument.symbol,
            NAME=instrument.name or instrument.symbol,
            KIND=event.kind.replace("_", " "),
        )
        try:
            headline = str(_pick(rng, list(entry.get("headlines") or ()))).format_map(fields)
            description = str(entry.get("description", "")).format_map(fields)
            telltale = str(entry.get("telltale", "")).format_map(fields)
        except (KeyError, ValueError, IndexError) as e:
            log.debug("%s: template %s not filled (%s), skipping", instrument.symbol, event.template, e)
            return None
        if not headline or headline == "None":
            return None

        state = instrument.phenomenon
        magnitude = state.magnitude if state is not None and state.kind == event.kind else ""
        return NewsItem(
            headline=headline,
            description=description,
            sentiment=event.sentiment,
            related_symbol=instrument.symbol,
            news_type=event.news_type or event.kind,
            phase=event.phase,
            event_id=event.template,
            conflicts_with=tuple(entry.get("conflicts_with", ())),
            telltale=telltale,
            expected_direction=event.direction,
            magnitude=magnitude,
        )


# --------------------------- Daily sink ---------------------------


class DailyNewsBook:
    def __init__(self) -> None:
        self.items: list[NewsItem] = []
        self.rejected = 0

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    def can_add(self, item: NewsItem, target: str | None = None) -> bool:
        """
        False when *item* conflicts with something already accepted today.

        Conflicts only count for the same instrument or where either side is
        market-wide (no symbol).  *target* defaults to the item's symbol.
        """
        target = target if target is not None else item.related_symbol
        for existing in self.items:
            same_scope = not target or not existing.related_symbol or target == existing.related_symbol
            if not same_scope:
                continue
            if existing.headline == item.headline:
                return False
            if item.event_id and existing.event_id:
                if existing.event_id in item.conflicts_with or item.event_id in existing.conflicts_with:
                    return False
        return True

    def add(self, item: NewsItem | None, target: str | None = None) -> bool:
        if item is None:
            return False
        if not self.can_add(item, target):
            self.rejected += 1
            log.debug("news rejected (conflict): %s", item.headline)
            return False
        self.items.append(item)
        return True

    def finalize(self, day: int, rng: np.random.Generator) -> list[NewsItem]:
        for item in self.items:
            item.timestamp = f"Day {day}"
            if not item.item_id:
                item.item_id = format(int(rng.integers(0, 2**36)), "09x")
        return list(self.items)


def quiet_day_item(rng: np.random.Generator, pool: list[dict] | None = None) -> NewsItem | None:
    entry = _pick(rng, list(QUIET_DAY_NEWS if pool is None else pool))
    if not entry:
        return None
    return NewsItem(
        headline=entry["headline"],
        description=entry.get("description", ""),
        is_market_wide=True,
        news_type="quiet_day",
        telltale=entry.get("telltale", ""),
    )


# --------------------------- Basic news ---------------------------


class BasicNewsGenerator:
    """
    Daily filler headlines.  They move fundamentals or sentiment but carry no
    telltale, so they only run when "basic_news" is enabled.
    """

    def __init__(
        self,
        content: Mapping[str, Mapping[str, list[dict]]] | None = None,
        min_items: int = 1,
        max_items: int = 3,
        max_retries: int = 5,
    ) -> None:
        self.content = BASIC_NEWS_TABLES if content is None else content
        self.min_items = max(0, int(min_items))
        self.max_items = max(self.min_items, int(max_items))
        self.max_retries = max(1, int(max_retries))

    def generate(
        self,
        instruments: Iterable[Instrument],
        book: DailyNewsBook,
        rng: np.random.Generator,
        exclude: Iterable[str] = (),
    ) -> list[NewsItem]:
        instruments = list(instruments)
        exclude = set(exclude)
        added: list[NewsItem] = []
        count = randint(rng, self.min_items, self.max_items) if self.max_items > 0 else 0
        for _ in range(count):
            roll = float(rng.random())
            if roll < 0.15:
                item = self._market(instruments, book, rng)
            elif roll < 0.40:
                side = "positive" if float(rng.random()) > 0.45 else "negative"
                item = self._company("eps_driven", side, instruments, book, rng, exclude)
            elif roll < 0.70:
                u = float(rng.random())
                side = "positive" if u < 0.35 else "negative" if u < 0.70 else "neutral"
                item = self._company("sentiment", side, instruments, book, rng, exclude)
            else:
                side = "positive" if float(rng.random()) > 0.5 else "negative"
                item = self._company("hybrid", side, instruments, book, rng, exclude)
            if item is not None:
                added.append(item)
        return added

    def _pool(self, category: str, side: str) -> list[dict]:
        return list(self.content.get(category, {}).get(side, ()))

    def _weighted(self, pool: list[dict], rng: np.random.Generator) -> dict:
        weights = np.array([float(e.get("weight", 1)) for e in pool], dtype=float)
        roll = float(rng.random()) * float(weights.sum())
        acc = 0.0
        for entry, w in zip(pool, weights):
            acc += float(w)
            if roll < acc:
                return entry
        return pool[-1]

    def _market(self, instruments, book, rng) -> NewsItem | None:
        side = "positive" if float(rng.random()) > 0.5 else "negative"
        pool = self._pool("market", side)
        if not pool:
            return None
        for _ in range(self.max_retries):
            entry = self._weighted(pool, rng)
            item = NewsItem(
                headline=entry["headline"],
                description=entry.get("description", ""),
                sentiment=side,
                is_market_wide=True,
                news_type="market",
                event_id=entry["id"],
                conflicts_with=tuple(entry.get("conflicts_with", ())),
            )
            if book.add(item):
                shock = float(entry.get("market_shock", 0.0))
                for inst in instruments:
                    inst.add_sentiment(shock)
                return item
        return None

    def _company(self, category, side, instruments, book, rng, exclude=frozenset()) -> NewsItem | None:
        pool = self._pool(category, side)
        eligible = [i for i in instruments if i.phenomenon is None and i.symbol not in exclude]
        if not pool or not eligible:
            return None
        inst = eligible[int(rng.integers(0, len(eligible)))]
        for _ in range(self.max_retries):
            entry = self._weighted(pool, rng)
            item = NewsItem(
                headline=entry["headline"].replace("{STOCK}", inst.symbol),
                description=entry.get("description", ""),
                sentiment=side,
                related_symbol=inst.symbol,
                news_type=category,
                event_id=entry["id"],
                conflicts_with=tuple(entry.get("conflicts_with", ())),
            )
            if book.add(item, inst.symbol):
                apply_news_effect(inst, entry)
                return item
        return None


def apply_news_effect(instrument: Instrument, entry: Mapping[str, Any]) -> None:
    """EPS impact moves fair value; sentiment shock is scaled by the meme multiplier."""
    eps = float(entry.get("eps_impact", 0.0))
    if eps:
        instrument.eps_modifier += eps
    shock = float(entry.get("sentiment_shock", 0.0))
    if shock:
        instrument.add_sentiment(shock * meme_multiplier(instrument))
    boost = float(entry.get("volatility_boost", 0.0))
    if boost:
        instrument.volatility_boost += boost
    log.debug(
        "%s: %s applied (eps=%+.3f sentiment=%+.3f)",
        instrument.symbol, entry.get("id", "?"), eps, shock,
    )
