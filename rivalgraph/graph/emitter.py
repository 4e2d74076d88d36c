"""
Artifact Emitter
================
Projects the deduplicated ``EntityGraph`` into the static files the
front-end loads:

* ``<output_dir>/index.json``         – meta + lightweight entity list + industries
* ``<output_dir>/public.json``        – same shape, public companies only
* ``<output_dir>/entities/<slug>.json`` – one full record per entity
* ``<bundle_path>`` (``data.js``)     – legacy bundle with everything

Everything is rendered to text first; only then is anything written.
Every file goes to a hidden temporary sibling and ``entities/`` to a
staging directory; only once all of them are on disk are they moved into
place with renames.  The pipeline owns ``entities/`` (stale files there
are dropped on each run) but nothing else in the output directory.
"""

import json
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass, field

from rivalgraph.domain.ontology import COMPANY_LIKE_TYPES
from rivalgraph.graph.entity_resolution import Entity, EntityGraph

logger = logging.getLogger(__name__)

INDEX_FILE_NAME = "index.json"
PUBLIC_INDEX_FILE_NAME = "public.json"
ENTITIES_DIR_NAME = "entities"
BUNDLE_VARIABLE = "COMPETITOR_DATA"


@dataclass
class Artifacts:
    """Serialized output, keyed the way it lands on disk."""
    meta: dict
    index: str
    public_index: str
    entities: dict[str, str] = field(default_factory=dict)   # slug -> JSON text
    bundle: str = ""


# ── Projections ──────────────────────────────────────────────────────

def build_meta(graph: EntityGraph, generated: str) -> dict:
    companies = products = unknown = with_financials = 0
    for entity in graph.entities.values():
        if entity.entity_type in COMPANY_LIKE_TYPES:
            companies += 1
        elif entity.entity_type == "product":
            products += 1
        else:
            unknown += 1
        if entity.financials and entity.financials.get("revenue"):
            with_financials += 1

    total = len(graph.entities)
    return {
        "generated": generated,
        "totalEntities": total,
        "publicCompanies": len(graph.public_companies),
        "privateEntities": total - len(graph.public_companies),
        "companies": companies,
        "products": products,
        "unknown": unknown,
        "withFinancials": with_financials,
        "totalRelationships": len(graph.relationships),
    }


def sorted_entities(graph: EntityGraph) -> list[Entity]:
    """Public companies first, then most-mentioned first; ties keep creation order."""
    return sorted(
        graph.entities.values(),
        key=lambda e: (not e.is_public, -len(e.mentioned_by)),
    )


def index_entry(entity: Entity) -> dict:
    financials = entity.financials or {}
    return {
        "slug": entity.slug,
        "name": entity.name,
        "ticker": entity.ticker or None,
        "isPublic": entity.is_public,
        "entityType": entity.entity_type,
        "parentSlug": entity.parent_slug or None,
        "mcap": financials.get("marketCapRaw") or 0,
        "rev": financials.get("revenueRaw") or 0,
        "mentions": len(entity.mentioned_by),
    }


# ── Rendering ────────────────────────────────────────────────────────

def _compact(data) -> str:
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


def render_bundle(meta: dict, entities: list[dict], relationships: list[dict],
                  industries: dict, merges: list[dict]) -> str:
    payload = {
        "meta": meta,
        "entities": entities,
        "relationships": relationships,
        "industries": industries,
        "merges": merges,
    }
    return (
        "// Auto-generated competitor data\n"
        f"// Generated: {meta['generated']}\n"
        f"const {BUNDLE_VARIABLE} = {json.dumps(payload, indent=2, ensure_ascii=False)};\n"
        "\n"
        f"if (typeof module !== 'undefined') module.exports = {BUNDLE_VARIABLE};\n"
    )


def render_artifacts(graph: EntityGraph, industries: dict[str, list[str]], generated: str) -> Artifacts:
    meta = build_meta(graph, generated)
    ordered = sorted_entities(graph)
    full_records = [entity.to_dict() for entity in ordered]
    index_entities = [index_entry(entity) for entity in ordered]
    public_entities = [entry for entry in index_entities if entry["isPublic"]]

    return Artifacts(
        meta=meta,
        index=_compact({"meta": meta, "entities": index_entities, "industries": industries}),
        public_index=_compact({"meta": meta, "entities": public_entities, "industries": industries}),
        entities={record["slug"]: _compact(record) for record in full_records},
        bundle=render_bundle(
            meta,
            full_records,
            [rel.to_dict() for rel in graph.relationships],
            industries,
            [merge.to_dict() for merge in graph.merges],
        ),
    )


# ── Writing ──────────────────────────────────────────────────────────

def write_artifacts(artifacts: Artifacts, output_dir: str, bundle_path: str) -> dict[str, int]:
    """
    Write ``artifacts`` and return ``{path: size_in_bytes}`` for the
    index files and the bundle.

    Only ``entities/``, the two index files and the bundle are touched;
    anything else under ``output_dir`` is left alone.
    """
    output_dir = os.path.abspath(output_dir)
    bundle_path = os.path.abspath(bundle_path)
    os.makedirs(output_dir, exist_ok=True)
    os.makedirs(os.path.dirname(bundle_path), exist_ok=True)

    files = {
        os.path.join(output_dir, INDEX_FILE_NAME): artifacts.index,
        os.path.join(output_dir, PUBLIC_INDEX_FILE_NAME): artifacts.public_index,
        bundle_path: artifacts.bundle,
    }
    entities_dir = os.path.join(output_dir, ENTITIES_DIR_NAME)

    staging = tempfile.mkdtemp(prefix=f".{ENTITIES_DIR_NAME}-", dir=output_dir)
    pending: dict[str, str] = {}    # final path -> temp path
    try:
        for slug, text in artifacts.entities.items():
            _write_text(os.path.join(staging, f"{slug}.json"), text)
        for path, text in files.items():
            pending[path] = _write_temp(path, text)

        # Everything is on disk; commit with renames only
        _swap_directory(staging, entities_dir)
        for path, tmp in pending.items():
            os.replace(tmp, path)
    except BaseException:
        shutil.rmtree(staging, ignore_errors=True)
        for tmp in pending.values():
            if os.path.exists(tmp):
                os.remove(tmp)
        raise

    sizes = {}
    for path in files:
        sizes[path] = os.path.getsize(path)
        logger.info("Written %s (%.1fKB)", path, sizes[path] / 1024)
    logger.info("Written %d entity files to %s", len(artifacts.entities), entities_dir)
    return sizes


def _write_text(path: str, text: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)


def _write_temp(path: str, text: str) -> str:
    """Write ``text`` to a hidden sibling of ``path`` and return its name."""
    fd, tmp = tempfile.mkstemp(prefix=f".{os.path.basename(path)}-", dir=os.path.dirname(path))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
    except BaseException:
        os.remove(tmp)
        raise
    return tmp


def _swap_directory(staging: str, target: str) -> None:
    """Replace ``target`` with ``staging``; restores the old directory on failure."""
    if not os.path.exists(target):
        os.rename(staging, target)
        return

    backup = tempfile.mkdtemp(prefix=f".{os.path.basename(target)}-old-", dir=os.path.dirname(target))
    os.rmdir(backup)
    os.rename(target, backup)
    try:
        os.rename(staging, target)
    except OSError:
        os.rename(backup, target)
        raise
    shutil.rmtree(backup)
