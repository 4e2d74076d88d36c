"""
Snapshot Loading
================
Reads the per-company competitor search files and validates them into
immutable ``Snapshot`` records.

Each file looks like::

    {
      "company": "Acme Corp", "ticker": "ACME", "year": 2024,
      "search_query": "...", "search_date": "2024-05-01",
      "context": "...", "sources": ["https://..."],
      "competitors": [{"name": "Widgets Inc", "notes": "rival"}]
    }

A malformed file aborts the whole run unless ``skip_invalid`` is set, in
which case it is logged and left out.
"""

import json
import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


class SnapshotError(ValueError):
    """Raised when a snapshot file cannot be parsed or is missing fields."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


@dataclass(frozen=True)
class CompetitorMention:
    name: str
    notes: str = ""


@dataclass(frozen=True)
class Snapshot:
    """One company's competitor search for one year."""
    company: str
    ticker: str
    year: int
    search_query: str | None = None
    search_date: str | None = None
    context: str = ""
    sources: tuple[str, ...] = ()
    competitors: tuple[CompetitorMention, ...] = ()
    path: str = field(default="", compare=False)


def load_snapshots(directory: str, skip_invalid: bool = False) -> list[Snapshot]:
    """
    Load every ``*.json`` file in ``directory`` in file-name order.

    Raises:
        FileNotFoundError: the directory does not exist.
        SnapshotError: a file is malformed and ``skip_invalid`` is False.
    """
    if not os.path.isdir(directory):
        raise FileNotFoundError(f"Competitor search directory not found: {directory}")

    file_names = sorted(f for f in os.listdir(directory) if f.endswith(".json"))
    logger.info("Processing %d JSON files from %s", len(file_names), directory)

    snapshots: list[Snapshot] = []
    for file_name in file_names:
        path = os.path.join(directory, file_name)
        try:
            snapshots.append(read_snapshot(path))
        except SnapshotError as exc:
            if not skip_invalid:
                raise
            logger.error("Skipping invalid snapshot %s", exc)
    return snapshots


def read_snapshot(path: str) -> Snapshot:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except ValueError as exc:
        # JSONDecodeError and UnicodeDecodeError
        raise SnapshotError(path, f"invalid JSON ({exc})") from exc
    return parse_snapshot(data, path)


def parse_snapshot(data: object, path: str = "<memory>") -> Snapshot:
    """Validate a decoded snapshot document."""
    if not isinstance(data, dict):
        raise SnapshotError(path, "top-level value must be an object")

    company = _required_str(data, "company", path)
    ticker = _required_str(data, "ticker", path)
    year = _parse_year(data.get("year"), path)

    raw_competitors = data.get("competitors") or []
    if not isinstance(raw_competitors, list):
        raise SnapshotError(path, "'competitors' must be a list")

    competitors: list[CompetitorMention] = []
    for i, raw in enumerate(raw_competitors):
        if not isinstance(raw, dict) or not isinstance(raw.get("name"), str):
            raise SnapshotError(path, f"competitor #{i} needs a string 'name'")
        competitors.append(CompetitorMention(name=raw["name"], notes=raw.get("notes") or ""))

    sources = data.get("sources") or []
    if not isinstance(sources, list):
        raise SnapshotError(path, "'sources' must be a list")

    return Snapshot(
        company=company,
        ticker=ticker,
        year=year,
        search_query=data.get("search_query"),
        search_date=data.get("search_date"),
        context=data.get("context") or "",
        sources=tuple(sources),
        competitors=tuple(competitors),
        path=path,
    )


def _required_str(data: dict, key: str, path: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise SnapshotError(path, f"missing or empty '{key}'")
    return value


def _parse_year(value: object, path: str) -> int:
    # bool is an int subclass; a JSON true is not a year
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value.strip())
    raise SnapshotError(path, f"'year' must be a number, got {value!r}")
