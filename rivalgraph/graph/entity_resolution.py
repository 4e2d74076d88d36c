"""
Entity Resolution
=================
Builds the canonical set of public companies from the snapshots and
resolves every competitor mention into that set or into a non-public
entity minted on first sight.

Resolution strategy
-------------------
For each competitor mention the first strategy that succeeds wins:

1. **Variation index** – any of the mention's ``slug_variations`` is a
   key of ``slug_to_ticker`` (e.g. ``amazoncom`` → ``amazon`` → AMZN).
2. **Direct slug** – ``slugify(mention)`` equals a public entity's slug.
3. **Financial ticker** – the financial-facts record found for the
   mention carries a ticker that is itself a public company.
4. **Non-public entity** – reuse the entity already holding
   ``slugify(mention)``, or mint one from the financial record (if any).

Only snapshot-backed companies are ever public; a financial record that
says ``ownership: public`` does not make a mentioned company public.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from rivalgraph.domain.ontology import ENTITY_TYPES, OWNERSHIP_TYPES
from rivalgraph.graph.financials import latest_year_figures, lookup_financials
from rivalgraph.graph.normalization import slug_variations, slugify
from rivalgraph.graph.snapshots import CompetitorMention, Snapshot

logger = logging.getLogger(__name__)


# ── Graph records ─────────────────────────────────────────────────────

@dataclass
class Mention:
    """A public company mentioning an entity in one year's search."""
    slug: str
    name: str
    ticker: Optional[str]
    year: int
    notes: str = ""

    def to_dict(self) -> dict:
        return {
            "slug": self.slug,
            "name": self.name,
            "ticker": self.ticker,
            "year": self.year,
            "notes": self.notes,
        }


@dataclass
class Entity:
    slug: str
    name: str
    ticker: Optional[str] = None
    is_public: bool = False
    entity_type: str = "unknown"
    ownership: Optional[str] = None
    parent_company: Optional[str] = None
    parent_slug: Optional[str] = None
    financials: Optional[dict] = None
    financials_by_year: Optional[dict] = None
    mentioned_by: list[Mention] = field(default_factory=list)
    competitors: list[dict] = field(default_factory=list)
    notes: dict[str, list[dict]] = field(default_factory=dict)      # non-public only
    years: dict[int, dict] = field(default_factory=dict)            # public only

    def add_mention(self, mention: Mention) -> bool:
        """Append unless the same (slug, year) is already recorded."""
        for existing in self.mentioned_by:
            if existing.slug == mention.slug and existing.year == mention.year:
                return False
        self.mentioned_by.append(mention)
        return True

    def add_competitor(self, other: "Entity") -> bool:
        if any(ref["slug"] == other.slug for ref in self.competitors):
            return False
        self.competitors.append(other.reference())
        return True

    def add_note(self, year: int, from_name: str, note: str) -> None:
        self.notes.setdefault(str(year), []).append({"from": from_name, "note": note})

    def reference(self) -> dict:
        """Lightweight view stored in another entity's competitor list."""
        return {
            "slug": self.slug,
            "name": self.name,
            "ticker": self.ticker,
            "isPublic": self.is_public,
            "entityType": self.entity_type,
            "parentSlug": self.parent_slug,
            "financials": self.financials,
            "financialsByYear": self.financials_by_year,
        }

    def to_dict(self) -> dict:
        data = {
            "slug": self.slug,
            "name": self.name,
            "ticker": self.ticker,
            "isPublic": self.is_public,
            "entityType": self.entity_type,
            "ownership": self.ownership,
            "parentCompany": self.parent_company,
            "parentSlug": self.parent_slug,
            "financials": self.financials,
            "financialsByYear": self.financials_by_year,
            "mentionedBy": [m.to_dict() for m in self.mentioned_by],
            "competitors": list(self.competitors),
        }
        if self.is_public:
            data["years"] = {str(year): info for year, info in sorted(self.years.items())}
        else:
            data["notes"] = {year: self.notes[year] for year in sorted(self.notes, key=int)}
        return data


@dataclass
class Relationship:
    """Directed "source names target as a competitor in year" edge."""
    source: str
    target: str
    year: int
    notes: str = ""

    def to_dict(self) -> dict:
        return {"source": self.source, "target": self.target, "year": self.year, "notes": self.notes}


@dataclass
class EntityGraph:
    """State threaded through resolution, deduplication and emission."""
    public_companies: dict[str, Entity] = field(default_factory=dict)     # ticker -> entity
    entities: dict[str, Entity] = field(default_factory=dict)             # slug -> entity
    slug_to_ticker: dict[str, str] = field(default_factory=dict)          # variation -> ticker
    relationships: list[Relationship] = field(default_factory=list)
    merges: list = field(default_factory=list)                            # applied MergeInstructions

    def public_by_variation(self, variations: list[str]) -> Optional[Entity]:
        for variation in variations:
            ticker = self.slug_to_ticker.get(variation)
            if ticker is not None:
                return self.public_companies.get(ticker)
        return None

    def bind_variation(self, variation: str, ticker: str) -> bool:
        """First writer wins; re-binding to the same ticker is a no-op."""
        bound = self.slug_to_ticker.setdefault(variation, ticker)
        return bound == ticker


# ── Entity resolver ──────────────────────────────────────────────────

class EntityResolver:
    """
    Owns an ``EntityGraph`` and fills it in two passes.

    Usage::

        resolver = EntityResolver(financials)
        resolver.register_public(snapshots)
        resolver.resolve_competitors()
        graph = resolver.graph
    """

    def __init__(self, financials: dict[str, dict] | None = None, graph: EntityGraph | None = None) -> None:
        self.financials = financials or {}
        self.graph = graph or EntityGraph()

    # ── public API ────────────────────────────────────────────────────

    def register_public(self, snapshots: list[Snapshot]) -> dict[str, Entity]:
        """First pass: one public entity per ticker, then the variation index."""
        graph = self.graph
        for snap in snapshots:
            company = graph.public_companies.get(snap.ticker)
            if company is None:
                company = self._new_public_entity(snap)
                graph.public_companies[snap.ticker] = company
                graph.entities[company.slug] = company
            elif snap.year in company.years:
                logger.warning(
                    "Duplicate snapshot for %s %d in %s (later file wins)",
                    snap.ticker, snap.year, snap.path,
                )

            company.years[snap.year] = {
                "query": snap.search_query,
                "date": snap.search_date,
                "context": snap.context,
                "sources": list(snap.sources),
                "competitors": [{"name": c.name, "notes": c.notes} for c in snap.competitors],
            }

        for ticker, company in graph.public_companies.items():
            for variation in slug_variations(company.name):
                graph.bind_variation(variation, ticker)
            graph.bind_variation(ticker.lower(), ticker)

        logger.info("Found %d public companies", len(graph.public_companies))
        logger.info("Built %d slug variations for matching", len(graph.slug_to_ticker))
        return graph.public_companies

    def resolve_competitors(self) -> list[Relationship]:
        """Second pass: resolve every mention of every public company, oldest year first."""
        for company in list(self.graph.public_companies.values()):
            for year in sorted(company.years):
                for raw in company.years[year]["competitors"]:
                    self.record_mention(company, year, CompetitorMention(raw["name"], raw["notes"]))
        return self.graph.relationships

    def resolve(self, name: str) -> Optional[Entity]:
        """Return the public entity ``name`` refers to, or None (strategies 1-3)."""
        graph = self.graph

        # 1. variation index
        entity = graph.public_by_variation(slug_variations(name))
        if entity is not None:
            return entity

        # 2. direct slug match
        slug = slugify(name)
        for company in graph.public_companies.values():
            if company.slug == slug:
                return company

        # 3. financial record pointing at a public ticker
        record = lookup_financials(self.financials, name, slug)
        ticker = record.get("ticker") if record else None
        if ticker and ticker in graph.public_companies:
            return graph.public_companies[ticker]

        return None

    def record_mention(self, company: Entity, year: int, competitor: CompetitorMention) -> Optional[Entity]:
        """Resolve one mention and record edge, provenance and notes."""
        target = self.resolve(competitor.name)
        if target is None:
            target = self._get_or_create_non_public(competitor.name)
            if target is None:
                logger.warning(
                    "Skipping competitor %r of %s (%d): name has no usable slug",
                    competitor.name, company.name, year,
                )
                return None

        self.graph.relationships.append(Relationship(
            source=company.slug,
            target=target.slug,
            year=year,
            notes=competitor.notes,
        ))
        target.add_mention(Mention(
            slug=company.slug,
            name=company.name,
            ticker=company.ticker,
            year=year,
            notes=competitor.notes,
        ))
        if not target.is_public:
            target.add_note(year, company.name, competitor.notes)
        company.add_competitor(target)
        return target

    # ── private helpers ───────────────────────────────────────────────

    def _new_public_entity(self, snap: Snapshot) -> Entity:
        slug = slugify(snap.company) or snap.ticker.lower()
        holder = self.graph.entities.get(slug)
        if holder is not None:
            disambiguated = f"{slug}-{snap.ticker.lower()}"
            logger.warning(
                "%s (%s) slugifies to '%s', already held by %s; using '%s'",
                snap.company, snap.ticker, slug, holder.ticker, disambiguated,
            )
            slug = disambiguated

        record = lookup_financials(self.financials, snap.company, slug)
        return Entity(
            slug=slug,
            name=snap.company,
            ticker=snap.ticker,
            is_public=True,
            entity_type=_record_type(record, "company"),
            ownership="public",
            parent_company=(record or {}).get("parent_company"),
            parent_slug=(record or {}).get("parent_slug"),
            financials=latest_year_figures(record),
            financials_by_year=(record or {}).get("financials_by_year"),
        )

    def _get_or_create_non_public(self, name: str) -> Optional[Entity]:
        slug = slugify(name)
        if not slug:
            return None
        existing = self.graph.entities.get(slug)
        if existing is not None:
            return existing

        record = lookup_financials(self.financials, name, slug) or {}
        entity_type = _record_type(record, "unknown")
        ownership = _record_ownership(record) or (None if entity_type == "product" else "private")
        entity = Entity(
            slug=slug,
            name=name,
            ticker=record.get("ticker") or None,
            is_public=False,
            entity_type=entity_type,
            ownership=ownership,
            parent_company=record.get("parent_company"),
            parent_slug=record.get("parent_slug"),
            financials=latest_year_figures(record),
            financials_by_year=record.get("financials_by_year"),
        )
        self.graph.entities[slug] = entity
        return entity


# ── Module-level helpers ─────────────────────────────────────────────

def _record_type(record: Optional[dict], default: str) -> str:
    entity_type = (record or {}).get("type")
    if entity_type in ENTITY_TYPES:
        return entity_type
    if entity_type:
        logger.warning("Unknown entity type %r in financial record; using '%s'", entity_type, default)
    return default


def _record_ownership(record: Optional[dict]) -> Optional[str]:
    ownership = (record or {}).get("ownership")
    if ownership in OWNERSHIP_TYPES:
        return ownership
    if ownership:
        logger.warning("Unknown ownership %r in financial record; ignoring it", ownership)
    return None
