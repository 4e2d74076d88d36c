"""
Financial Facts
===============
Loads the optional financial-facts table and joins company names to it.

The join is a best-effort heuristic: ``lookup_financials`` walks an
ordered list of key strategies, each deriving one candidate table key
from the (name, slug) pair, and returns the first record found.  Misses
are expected; a wrong hit is possible when two companies normalize to
the same key.
"""

import json
import logging
import os
import re
from typing import Callable, Optional

from rivalgraph.graph.normalization import slugify

logger = logging.getLogger(__name__)

KeyStrategy = Callable[[str, str], Optional[str]]


def load_financials(path: str) -> dict[str, dict]:
    """
    Return the ``entities`` mapping of the financial-facts document.

    A missing or unreadable file degrades to an empty table with a warning.
    """
    if not os.path.isfile(path):
        logger.warning("Financials file not found: %s (continuing without financial data)", path)
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as exc:
        logger.warning("Could not load financials file %s: %s", path, exc)
        return {}

    entities = data.get("entities") if isinstance(data, dict) else None
    if not isinstance(entities, dict):
        logger.warning("Financials file %s has no 'entities' mapping", path)
        return {}

    records = {key: record for key, record in entities.items() if isinstance(record, dict)}
    if len(records) != len(entities):
        logger.warning(
            "Ignoring %d malformed financial records in %s",
            len(entities) - len(records), path,
        )
    entities = records

    logger.info("Loaded financial data for %d entities", len(entities))
    return entities


# ── Key strategies ───────────────────────────────────────────────────

def _exact_slug(name: str, slug: str) -> Optional[str]:
    return slug


def _name_slug(name: str, slug: str) -> Optional[str]:
    return slugify(name)


def _strip_name_suffix(suffix: str) -> KeyStrategy:
    pattern = re.compile(re.escape(suffix) + r"$")

    def strategy(name: str, slug: str) -> Optional[str]:
        return pattern.sub("", slugify(name))

    return strategy


def _collapsed_slug(name: str, slug: str) -> Optional[str]:
    return re.sub(r"-+", "-", slug)


KEY_STRATEGIES: tuple[KeyStrategy, ...] = (
    _exact_slug,
    _name_slug,
    _strip_name_suffix("-inc"),
    _strip_name_suffix("-corp"),
    _strip_name_suffix("-llc"),
    _collapsed_slug,
)


def lookup_financials(
    table: dict[str, dict],
    name: str,
    slug: str,
    strategies: tuple[KeyStrategy, ...] = KEY_STRATEGIES,
) -> Optional[dict]:
    """Return the first table record any strategy's key hits, else None."""
    if not table:
        return None
    for strategy in strategies:
        key = strategy(name, slug)
        if key and isinstance(table.get(key), dict):
            return table[key]
    return None


def latest_year_figures(record: Optional[dict]) -> Optional[dict]:
    """
    Pick the numerically largest year of ``financials_by_year``.

    Returns ``{revenue, marketCap, revenueRaw, marketCapRaw}`` with absent
    figures as None, or None when the record has no usable history.
    """
    if not isinstance(record, dict):
        return None
    by_year = record.get("financials_by_year")
    if not isinstance(by_year, dict):
        return None

    years = [key for key in by_year if str(key).strip().isdecimal()]
    if not years:
        return None

    latest = by_year[max(years, key=lambda key: int(str(key).strip()))]
    if not isinstance(latest, dict):
        latest = {}
    return {
        "revenue": latest.get("revenue") or None,
        "marketCap": latest.get("market_cap") or None,
        "revenueRaw": latest.get("revenue_raw") or None,
        "marketCapRaw": latest.get("market_cap_raw") or None,
    }
