"""Tests for industry tagging, projections, rendering and atomic writing."""

import json
import os

import pytest

from conftest import make_snapshot
from rivalgraph.graph import emitter
from rivalgraph.graph.deduplication import deduplicate
from rivalgraph.graph.emitter import (
    build_meta,
    index_entry,
    render_artifacts,
    sorted_entities,
    write_artifacts,
)
from rivalgraph.graph.entity_resolution import EntityResolver
from rivalgraph.graph.industries import infer_industries

GENERATED = "2024-06-01T00:00:00.000Z"


def _graph():
    financials = {
        "acme": {"type": "company", "financials_by_year": {
            "2024": {"revenue": "$3B", "revenue_raw": 3e9, "market_cap": "$9B", "market_cap_raw": 9e9},
        }},
        "gizmo": {"type": "product"},
    }
    resolver = EntityResolver(financials)
    resolver.register_public([
        make_snapshot("Acme Corp", "ACME", 2024, [("Widgets Inc", "rival"), ("Gizmo", "product")],
                      context="Cloud hosting and endpoint security."),
        make_snapshot("Bolt", "BOLT", 2024, [("Widgets", "supplier"), ("Acme", "peer")],
                      context="Payroll for restaurants."),
        make_snapshot("Quiet", "QT", 2024, context="Nothing to see."),
    ])
    resolver.resolve_competitors()
    deduplicate(resolver.graph)
    return resolver.graph


def _bundle_payload(text):
    start = text.index("const COMPETITOR_DATA = ") + len("const COMPETITOR_DATA = ")
    end = text.index(";\n\nif (typeof module")
    return json.loads(text[start:end])


class TestIndustries:
    def test_substring_keywords(self):
        industries = infer_industries(_graph().public_companies)
        assert industries["acme"] == ["Cloud & Infrastructure", "Cybersecurity"]
        assert industries["bolt"] == ["HR & Payroll"]
        assert "quiet" not in industries

    def test_contexts_from_all_years_are_combined(self):
        resolver = EntityResolver()
        resolver.register_public([
            make_snapshot("Acme", "ACME", 2023, context="Clinical trials"),
            make_snapshot("Acme", "ACME", 2024, context="CRM suite"),
        ])
        industries = infer_industries(resolver.graph.public_companies)
        assert industries["acme"] == ["CRM & Marketing", "Healthcare & Life Sciences"]


class TestProjections:
    def test_meta_counts(self):
        meta = build_meta(_graph(), GENERATED)
        assert meta == {
            "generated": GENERATED,
            "totalEntities": 5,
            "publicCompanies": 3,
            "privateEntities": 2,
            "companies": 3,
            "products": 1,
            "unknown": 1,
            "withFinancials": 1,
            "totalRelationships": 4,
        }

    def test_public_first_then_by_mentions(self):
        slugs = [e.slug for e in sorted_entities(_graph())]
        assert slugs == ["acme", "bolt", "quiet", "widgets", "gizmo"]

    def test_index_entry(self):
        graph = _graph()
        assert index_entry(graph.entities["acme"]) == {
            "slug": "acme",
            "name": "Acme Corp",
            "ticker": "ACME",
            "isPublic": True,
            "entityType": "company",
            "parentSlug": None,
            "mcap": 9e9,
            "rev": 3e9,
            "mentions": 1,
        }
        assert index_entry(graph.entities["widgets"])["mcap"] == 0
        assert index_entry(graph.entities["widgets"])["mentions"] == 2


class TestRenderArtifacts:
    def test_index_and_public_index(self):
        graph = _graph()
        artifacts = render_artifacts(graph, infer_industries(graph.public_companies), GENERATED)
        index = json.loads(artifacts.index)
        public = json.loads(artifacts.public_index)
        assert [e["slug"] for e in index["entities"]] == ["acme", "bolt", "quiet", "widgets", "gizmo"]
        assert [e["slug"] for e in public["entities"]] == ["acme", "bolt", "quiet"]
        assert index["meta"] == public["meta"]
        assert public["industries"] == index["industries"]

    def test_entity_records(self):
        graph = _graph()
        artifacts = render_artifacts(graph, {}, GENERATED)
        assert sorted(artifacts.entities) == sorted(graph.entities)
        widgets = json.loads(artifacts.entities["widgets"])
        assert widgets["isPublic"] is False
        assert widgets["notes"]["2024"] == [
            {"from": "Acme Corp", "note": "rival"},
            {"from": "Bolt", "note": "supplier"},
        ]
        acme = json.loads(artifacts.entities["acme"])
        assert "notes" not in acme
        assert acme["years"]["2024"]["context"] == "Cloud hosting and endpoint security."
        assert [c["slug"] for c in acme["competitors"]] == ["widgets", "gizmo"]

    def test_bundle_wraps_everything(self):
        graph = _graph()
        artifacts = render_artifacts(graph, {"acme": ["Cybersecurity"]}, GENERATED)
        assert artifacts.bundle.startswith("// Auto-generated competitor data\n// Generated: 2024-06-01")
        assert artifacts.bundle.rstrip().endswith("module.exports = COMPETITOR_DATA;")
        payload = _bundle_payload(artifacts.bundle)
        assert set(payload) == {"meta", "entities", "relationships", "industries", "merges"}
        assert len(payload["relationships"]) == 4
        assert payload["industries"] == {"acme": ["Cybersecurity"]}

    def test_rendering_is_deterministic(self):
        first = render_artifacts(_graph(), {}, GENERATED)
        second = render_artifacts(_graph(), {}, GENERATED)
        assert first == second


class TestWriteArtifacts:
    def test_writes_all_files(self, tmp_path):
        artifacts = render_artifacts(_graph(), {}, GENERATED)
        out_dir = tmp_path / "data"
        bundle = tmp_path / "data.js"

        sizes = write_artifacts(artifacts, str(out_dir), str(bundle))

        assert (out_dir / "index.json").read_text(encoding="utf-8") == artifacts.index
        assert (out_dir / "public.json").read_text(encoding="utf-8") == artifacts.public_index
        assert sorted(os.listdir(out_dir / "entities")) == sorted(f"{s}.json" for s in artifacts.entities)
        assert bundle.read_text(encoding="utf-8") == artifacts.bundle
        assert sizes[str(bundle)] == bundle.stat().st_size

    def test_rewrite_drops_stale_entity_files(self, tmp_path):
        out_dir = tmp_path / "data"
        bundle = tmp_path / "data.js"
        write_artifacts(render_artifacts(_graph(), {}, GENERATED), str(out_dir), str(bundle))
        (out_dir / "entities" / "gone.json").write_text("{}", encoding="utf-8")

        write_artifacts(render_artifacts(_graph(), {}, GENERATED), str(out_dir), str(bundle))

        assert not (out_dir / "entities" / "gone.json").exists()
        assert sorted(os.listdir(tmp_path)) == ["data", "data.js"]

    def test_failure_keeps_previous_output(self, tmp_path, monkeypatch):
        out_dir = tmp_path / "data"
        bundle = tmp_path / "data.js"
        write_artifacts(render_artifacts(_graph(), {}, "old"), str(out_dir), str(bundle))
        old_index = (out_dir / "index.json").read_text(encoding="utf-8")
        old_bundle = bundle.read_text(encoding="utf-8")

        def broken_swap(staging, target):
            raise OSError("disk full")

        monkeypatch.setattr(emitter, "_swap_directory", broken_swap)
        with pytest.raises(OSError):
            write_artifacts(render_artifacts(_graph(), {}, "new"), str(out_dir), str(bundle))

        assert (out_dir / "index.json").read_text(encoding="utf-8") == old_index
        assert bundle.read_text(encoding="utf-8") == old_bundle
        assert sorted(os.listdir(tmp_path)) == ["data", "data.js"]
        assert sorted(os.listdir(out_dir)) == ["entities", "index.json", "public.json"]

    def test_unrelated_files_in_output_dir_survive(self, tmp_path):
        out_dir = tmp_path / "data"
        (out_dir / "competitor_searches").mkdir(parents=True)
        (out_dir / "competitor_searches" / "acme.json").write_text("{}", encoding="utf-8")
        (out_dir / "README.txt").write_text("keep me", encoding="utf-8")
        bundle = tmp_path / "data.js"

        for _ in range(2):
            write_artifacts(render_artifacts(_graph(), {}, GENERATED), str(out_dir), str(bundle))

        assert (out_dir / "competitor_searches" / "acme.json").read_text(encoding="utf-8") == "{}"
        assert (out_dir / "README.txt").read_text(encoding="utf-8") == "keep me"
        assert sorted(os.listdir(out_dir)) == [
            "README.txt", "competitor_searches", "entities", "index.json", "public.json",
        ]

    def test_bundle_inside_output_dir(self, tmp_path):
        out_dir = tmp_path / "data"
        bundle = out_dir / "data.js"
        artifacts = render_artifacts(_graph(), {}, GENERATED)

        write_artifacts(artifacts, str(out_dir), str(bundle))
        write_artifacts(artifacts, str(out_dir), str(bundle))

        assert bundle.read_text(encoding="utf-8") == artifacts.bundle
        assert sorted(os.listdir(out_dir)) == ["data.js", "entities", "index.json", "public.json"]

    def test_failed_file_replace_leaves_no_temp_files(self, tmp_path, monkeypatch):
        out_dir = tmp_path / "data"
        bundle = out_dir / "data.js"
        artifacts = render_artifacts(_graph(), {}, GENERATED)

        def broken_replace(src, dst):
            raise OSError("read-only")

        monkeypatch.setattr(emitter.os, "replace", broken_replace)
        with pytest.raises(OSError):
            write_artifacts(artifacts, str(out_dir), str(bundle))

        assert not [name for name in os.listdir(out_dir) if name.startswith(".")]
