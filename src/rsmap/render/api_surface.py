"""``api-surface.md``: every item signature, grouped per module."""

from __future__ import annotations

from typing import Iterable

from rsmap.annotations import AnnotationStore
from rsmap.model import CrateInfo, Item, ItemKind, Module, item_path

LEADING_SECTIONS: tuple[tuple[str, frozenset[ItemKind]], ...] = (
    ("Types", frozenset({ItemKind.STRUCT, ItemKind.ENUM, ItemKind.TYPE_ALIAS})),
    ("Traits", frozenset({ItemKind.TRAIT})),
    ("Functions", frozenset({ItemKind.FUNCTION})),
)
TRAILING_SECTIONS: tuple[tuple[str, frozenset[ItemKind]], ...] = (
    ("Constants", frozenset({ItemKind.CONST, ItemKind.STATIC})),
    ("Macros", frozenset({ItemKind.MACRO})),
    ("Re-exports", frozenset({ItemKind.USE})),
)


def render_api_surface(crates: Iterable[CrateInfo], annotations: AnnotationStore) -> str:
    parts: list[str] = []
    for crate in crates:
        parts.append(f"# Crate: {crate.name} ({crate.kind.value})\n\n")
        for module in crate.root_module.iter_modules():
            parts.append(_module_surface(module, annotations))
    return "".join(parts)


def impl_heading(item: Item) -> str:
    """``Impl Trait for Type`` or ``Impl Type``."""
    label = item.kind_label
    return "I" + label[1:]


def _module_surface(module: Module, annotations: AnnotationStore) -> str:
    parts = [f"# {module.path}\n", f"<!-- file: {module.file_path.as_posix()} -->\n\n"]

    def block(title: str, items: list[Item]) -> None:
        if not items:
            return
        parts.append(f"## {title}\n\n")
        parts.extend(_item_text(module.path, item, annotations) for item in items)
        parts.append("\n")

    for title, kinds in LEADING_SECTIONS:
        block(title, [item for item in module.items if item.kind in kinds])
    for item in module.items:
        if item.kind is ItemKind.IMPL:
            block(impl_heading(item), [item])
    for title, kinds in TRAILING_SECTIONS:
        block(title, [item for item in module.items if item.kind in kinds])

    parts.append("---\n\n")
    return "".join(parts)


def _item_text(module_path: str, item: Item, annotations: AnnotationStore) -> str:
    lines = [f"/// {line}" for line in (item.doc_comment or "").splitlines()]
    note = annotations.item_note(item_path(module_path, item))
    if note:
        lines.extend(f"// NOTE: {line}" for line in note.splitlines())
    lines.append(item.signature)
    return "\n".join(lines) + "\n\n"
