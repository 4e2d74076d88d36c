"""
Deduplication
=============
Folds non-canonical duplicates back into the entity that owns them.

Merging happens in two steps so the entity map is never mutated while it
is being scanned:

1. ``plan_merges`` reads the graph and returns an immutable list of
   ``MergeInstruction`` records.
2. ``apply_merges`` carries the duplicates' provenance over to the
   survivors and deletes the duplicates in one batch.

Plan passes
-----------
* **ticker** – an entity whose ticker belongs to a public company with a
  different slug, or which shares a ticker no public company holds with an
  entity created earlier.
* **variation** – an entity without a ticker whose name variations hit the
  variation index for a public company with a different slug.
"""

import logging
from dataclasses import dataclass

from rivalgraph.graph.entity_resolution import Entity, EntityGraph
from rivalgraph.graph.normalization import slug_variations

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MergeInstruction:
    slug: str          # duplicate, removed after the merge
    into: str          # surviving slug
    reason: str        # "ticker" | "variation"

    def to_dict(self) -> dict:
        return {"slug": self.slug, "into": self.into, "reason": self.reason}


def plan_merges(graph: EntityGraph) -> list[MergeInstruction]:
    """Compute every merge without touching the graph."""
    plan: list[MergeInstruction] = []
    planned: set[str] = set()

    # Pass A: shared tickers
    ticker_holders: dict[str, str] = {
        ticker: company.slug for ticker, company in graph.public_companies.items()
    }
    for slug, entity in graph.entities.items():
        if not entity.ticker:
            continue
        canonical = ticker_holders.setdefault(entity.ticker, slug)
        if canonical != slug:
            plan.append(MergeInstruction(slug=slug, into=canonical, reason="ticker"))
            planned.add(slug)

    # Pass B: name variations of a public company
    for slug, entity in graph.entities.items():
        if entity.ticker or slug in planned:
            continue
        for variation in slug_variations(entity.name):
            ticker = graph.slug_to_ticker.get(variation)
            if ticker is None:
                continue
            company = graph.public_companies.get(ticker)
            if company is not None and company.slug != slug:
                plan.append(MergeInstruction(slug=slug, into=company.slug, reason="variation"))
                planned.add(slug)
                break

    return plan


def apply_merges(graph: EntityGraph, plan: list[MergeInstruction]) -> list[str]:
    """
    Move each duplicate's mentions onto its survivor, then delete the
    duplicates.  Returns the removed slugs.
    """
    for instruction in plan:
        duplicate = graph.entities[instruction.slug]
        survivor = graph.entities[instruction.into]
        _merge_into(survivor, duplicate)
        logger.debug("Merged '%s' into '%s' (%s)", instruction.slug, instruction.into, instruction.reason)

    removed = [instruction.slug for instruction in plan]
    for slug in removed:
        del graph.entities[slug]
    graph.merges.extend(plan)

    if removed:
        logger.info("Removed %d duplicate entities", len(removed))
    return removed


def deduplicate(graph: EntityGraph) -> list[MergeInstruction]:
    plan = plan_merges(graph)
    apply_merges(graph, plan)
    return plan


def _merge_into(survivor: Entity, duplicate: Entity) -> None:
    for mention in duplicate.mentioned_by:
        survivor.add_mention(mention)
    # Public entities carry no free-text notes
    if not survivor.is_public:
        for year, entries in duplicate.notes.items():
            survivor.notes.setdefault(year, []).extend(entries)
