import json
import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from rivalgraph.graph.snapshots import CompetitorMention, Snapshot


def make_snapshot(company, ticker, year=2024, competitors=(), context="", path=""):
    """Build a Snapshot from ``(name, notes)`` pairs."""
    return Snapshot(
        company=company,
        ticker=ticker,
        year=year,
        search_query=f"{company} competitors",
        search_date=f"{year}-06-01",
        context=context,
        sources=(f"https://example.com/{ticker.lower()}",),
        competitors=tuple(CompetitorMention(name, notes) for name, notes in competitors),
        path=path,
    )


@pytest.fixture
def search_dir(tmp_path):
    directory = tmp_path / "competitor_searches"
    directory.mkdir()
    return directory


@pytest.fixture
def write_snapshot(search_dir):
    """Write a snapshot JSON file into the search directory and return its path."""

    def _write(file_name, company, ticker, year=2024, competitors=(), context=""):
        data = {
            "company": company,
            "ticker": ticker,
            "year": year,
            "search_query": f"{company} competitors",
            "search_date": "2024-06-01",
            "context": context,
            "sources": ["https://example.com"],
            "competitors": [{"name": name, "notes": notes} for name, notes in competitors],
        }
        path = search_dir / file_name
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write
