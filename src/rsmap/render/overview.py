"""``overview.md``: crate facts and the module tree."""

from __future__ import annotations

from typing import Iterable

from rsmap.annotations import AnnotationStore
from rsmap.model import CrateInfo, Module
from rsmap.render.text import first_line, tree_entry


def module_description(module: Module, annotations: AnnotationStore) -> str:
    """First line of the module doc, else its annotation note, else empty."""
    description = first_line(module.doc_comment)
    if description:
        return description
    return first_line(annotations.module_note(module.path))


def render_overview(crates: Iterable[CrateInfo], annotations: AnnotationStore) -> str:
    lines: list[str] = []
    for crate in crates:
        lines.append(f"# Crate: {crate.name} ({crate.kind.value})")
        lines.append(f"Edition: {crate.edition}")
        lines.append(f"Version: {crate.version}")
        if crate.external_deps:
            lines.append(f"External deps: {', '.join(crate.external_deps)}")
        lines.append("")
        lines.append("## Module Tree")
        _write_tree(lines, crate.root_module, 0, annotations)
        lines.append("")
    return "\n".join(lines) + "\n" if lines else ""


def _write_tree(lines: list[str], module: Module, depth: int, annotations: AnnotationStore) -> None:
    lines.append(tree_entry(module.path, module_description(module, annotations), depth))
    for sub in module.submodules:
        _write_tree(lines, sub, depth + 1, annotations)
