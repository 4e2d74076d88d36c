"""
End-to-End Pipeline
===================
Reads every competitor search snapshot under ``COMPETITOR_SEARCH_DIR``
plus the optional financial-facts file, and chains all stages:
**load → resolve → deduplicate → emit**.

Usage (as a module)::

    from rivalgraph.pipeline import Pipeline
    summary = Pipeline().run()

Every run is a full recompute; nothing from a previous run is read back.
If loading, resolution or rendering fails, no output file is replaced.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Callable

from rivalgraph.core.config import settings
from rivalgraph.graph.deduplication import deduplicate
from rivalgraph.graph.emitter import ENTITIES_DIR_NAME, Artifacts, render_artifacts, write_artifacts
from rivalgraph.graph.entity_resolution import EntityGraph, EntityResolver
from rivalgraph.graph.financials import load_financials
from rivalgraph.graph.industries import infer_industries
from rivalgraph.graph.snapshots import load_snapshots

logger = logging.getLogger(__name__)


def iso_timestamp() -> str:
    """UTC time with millisecond precision, e.g. ``2024-05-01T12:00:00.000Z``."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


class Pipeline:
    """
    Orchestrates the full batch transform.

    Usage::

        pipeline = Pipeline()                       # locations from settings
        summary = pipeline.run()

        pipeline = Pipeline(search_dir="fixtures/searches", output_dir="/tmp/data",
                            bundle_path="/tmp/data.js")
        graph = pipeline.build_graph()              # no files written
    """

    def __init__(
        self,
        search_dir: str | None = None,
        financials_path: str | None = None,
        output_dir: str | None = None,
        bundle_path: str | None = None,
        skip_invalid: bool | None = None,
        clock: Callable[[], str] = iso_timestamp,
    ) -> None:
        self.search_dir = search_dir or settings.COMPETITOR_SEARCH_DIR
        self.financials_path = financials_path or settings.FINANCIALS_FILE
        self.output_dir = output_dir or settings.OUTPUT_DIR
        self.bundle_path = bundle_path or settings.LEGACY_BUNDLE_FILE
        self.skip_invalid = settings.SKIP_INVALID_SNAPSHOTS if skip_invalid is None else skip_invalid
        self.clock = clock

    def build_graph(self) -> EntityGraph:
        """Load inputs, resolve mentions and deduplicate.  Writes nothing."""
        snapshots = load_snapshots(self.search_dir, skip_invalid=self.skip_invalid)
        financials = load_financials(self.financials_path)

        resolver = EntityResolver(financials)
        resolver.register_public(snapshots)
        resolver.resolve_competitors()

        graph = resolver.graph
        deduplicate(graph)

        logger.info("Found %d total entities", len(graph.entities))
        logger.info("Found %d relationships", len(graph.relationships))
        return graph

    def render(self, graph: EntityGraph) -> Artifacts:
        industries = infer_industries(graph.public_companies)
        return render_artifacts(graph, industries, self.clock())

    def run(self) -> dict:
        """
        Run the whole pipeline and write every artifact.

        Returns the ``meta`` counts plus the paths written.
        """
        self.check_layout()
        graph = self.build_graph()
        artifacts = self.render(graph)
        sizes = write_artifacts(artifacts, self.output_dir, self.bundle_path)

        summary = {
            **artifacts.meta,
            "duplicatesRemoved": len(graph.merges),
            "entityFiles": len(artifacts.entities),
            "outputs": sizes,
        }
        logger.info("Pipeline complete: %s", {k: v for k, v in summary.items() if k != "outputs"})
        return summary


    def check_layout(self) -> None:
        """
        Refuse to run when an input or the bundle lives under the entity
        directory, which every run replaces wholesale.

        Raises:
            ValueError: naming the offending path.
        """
        owned = os.path.abspath(os.path.join(self.output_dir, ENTITIES_DIR_NAME))
        for label, path in (
            ("competitor search directory", self.search_dir),
            ("financials file", self.financials_path),
            ("bundle", self.bundle_path),
        ):
            path = os.path.abspath(path)
            if os.path.commonpath([path, owned]) == owned:
                raise ValueError(f"The {label} {path} is inside {owned}, which is rewritten on every run")
