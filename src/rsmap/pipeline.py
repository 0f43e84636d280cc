"""End-to-end index generation for one project directory."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from rsmap.annotations import AnnotationStore, load_annotations, reconcile_annotations, save_annotations
from rsmap.cache import CacheSnapshot, build_snapshot, load_snapshot, module_changed, save_snapshot
from rsmap.config import RsmapConfig
from rsmap.errors import IO_002, META_002, IndexIOError, MetadataError
from rsmap.metadata import resolve_crates
from rsmap.model import CrateInfo
from rsmap.parse import SourceParser
from rsmap.relationships import Relationships, extract_relationships
from rsmap.render import render_api_surface, render_lookup_index, render_overview, render_relationships
from rsmap.resolve import ResolutionWarning, resolve_crate

logger = logging.getLogger(__name__)

OVERVIEW_FILE = "overview.md"
API_SURFACE_FILE = "api-surface.md"
RELATIONSHIPS_FILE = "relationships.md"
LOOKUP_FILE = "index.json"


@dataclass
class GenerateResult:
    output_dir: Path
    crates: list[CrateInfo]
    relationships: Relationships
    snapshot: CacheSnapshot
    previous: CacheSnapshot | None
    annotations: AnnotationStore
    diagnostics: list[ResolutionWarning] = field(default_factory=list)
    changed_modules: list[str] = field(default_factory=list)
    written: list[Path] = field(default_factory=list)

    @property
    def pending_annotations(self) -> int:
        store = self.annotations
        return sum(entry.needs_attention for entry in [*store.modules.values(), *store.items.values()])


def generate(
    project_path: Path,
    config: RsmapConfig,
    no_cache: bool = False,
    parser: SourceParser | None = None,
) -> GenerateResult:
    """Resolve, analyse and write every index layer for ``project_path``.

    Raises:
        MetadataError: If the project has no usable crate targets.
        IndexIOError: If a crate root or an output file fails.
        ParseError: If a crate root has syntax errors.
        SerializationError: If the annotations file is corrupt.
    """
    project_path = project_path.resolve()
    output_dir = config.resolve_output_dir(project_path)
    parser = parser or SourceParser()

    targets = resolve_crates(project_path, use_cargo=config.use_cargo_metadata)
    if not targets:
        raise MetadataError(META_002, f"No lib, bin or proc-macro targets found in {project_path}")

    crates: list[CrateInfo] = []
    diagnostics: list[ResolutionWarning] = []
    for meta in targets:
        logger.info("Resolving crate %s (%s)", meta.name, meta.kind.value)
        crate, warnings = resolve_crate(meta, project_path, parser)
        crates.append(crate)
        diagnostics.extend(warnings)

    cache_path = output_dir / config.cache_file
    previous = None if no_cache else load_snapshot(cache_path)
    snapshot = build_snapshot(crates)
    baseline = previous if previous is not None else CacheSnapshot()
    changed = [path for path in snapshot.modules if module_changed(baseline, snapshot, path)]
    logger.info("%d of %d modules changed", len(changed), len(snapshot.modules))

    relationships = extract_relationships(
        crates,
        hotspot_min_modules=config.relationships.hotspot_min_modules,
        stoplist=config.relationships.type_stoplist,
    )

    annotations_path = output_dir / config.annotations_file
    annotations = reconcile_annotations(load_annotations(annotations_path), crates, previous, snapshot)

    layers = {
        OVERVIEW_FILE: render_overview(crates, annotations),
        API_SURFACE_FILE: render_api_surface(crates, annotations),
        RELATIONSHIPS_FILE: render_relationships(relationships, config.relationships.hotspot_min_modules),
        LOOKUP_FILE: render_lookup_index(crates),
    }
    written = [_write_output(output_dir / name, text) for name, text in layers.items()]

    save_annotations(annotations, annotations_path)
    save_snapshot(snapshot, cache_path)
    written.extend([annotations_path, cache_path])

    return GenerateResult(
        output_dir=output_dir,
        crates=crates,
        relationships=relationships,
        snapshot=snapshot,
        previous=previous,
        annotations=annotations,
        diagnostics=diagnostics,
        changed_modules=changed,
        written=written,
    )


def _write_output(path: Path, text: str) -> Path:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise IndexIOError(IO_002, f"Failed to write {path}: {exc}") from exc
    logger.debug("Wrote %s", path)
    return path


__all__ = ["GenerateResult", "generate"]
