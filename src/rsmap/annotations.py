"""Human-authored notes on modules and items, kept across re-indexing.

Notes live in ``annotations.yaml`` keyed by module path and item path. The
store holds no digests; staleness is decided by comparing the previous and
current cache snapshots.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable

import yaml
from pydantic import BaseModel, Field, ValidationError

from rsmap.cache import CacheSnapshot, item_changed, module_changed
from rsmap.errors import IO_002, SERDE_001, IndexIOError, SerializationError
from rsmap.model import CrateInfo, item_path

logger = logging.getLogger(__name__)


class AnnotationEntry(BaseModel):
    note: str = ""
    stale: bool = False

    @property
    def needs_attention(self) -> bool:
        return self.stale or not self.note.strip()


class AnnotationStore(BaseModel):
    modules: dict[str, AnnotationEntry] = Field(default_factory=dict)
    items: dict[str, AnnotationEntry] = Field(default_factory=dict)

    def module_note(self, path: str) -> str | None:
        entry = self.modules.get(path)
        return entry.note if entry is not None and entry.note else None

    def item_note(self, path: str) -> str | None:
        entry = self.items.get(path)
        return entry.note if entry is not None and entry.note else None


def load_annotations(path: Path) -> AnnotationStore:
    """Read the store at ``path``; a missing file is an empty store.

    Raises:
        SerializationError: If the file exists but is not a valid store.
    """
    if not path.exists():
        return AnnotationStore()
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SerializationError(SERDE_001, f"Failed to read annotations file: {path}") from exc
    return _parse_store(content, str(path))


def _parse_store(content: str, origin: str) -> AnnotationStore:
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise SerializationError(SERDE_001, f"Invalid YAML in {origin}") from exc
    if data is None:
        return AnnotationStore()
    if not isinstance(data, dict):
        raise SerializationError(SERDE_001, f"{origin} must define a mapping.")
    try:
        return AnnotationStore.model_validate(data)
    except ValidationError as exc:
        raise SerializationError(SERDE_001, f"Invalid annotations in {origin}: {exc}") from exc


def dump_annotations(store: AnnotationStore) -> str:
    data = store.model_dump(mode="json")
    return yaml.safe_dump(data, sort_keys=True, allow_unicode=True, default_flow_style=False)


def save_annotations(store: AnnotationStore, path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dump_annotations(store), encoding="utf-8")
    except OSError as exc:
        raise IndexIOError(IO_002, f"Failed to write annotations {path}: {exc}") from exc


def _carry(existing: AnnotationEntry | None, changed: bool) -> AnnotationEntry:
    if existing is None:
        return AnnotationEntry()
    if changed and existing.note:
        return existing.model_copy(update={"stale": True})
    return existing


def reconcile_annotations(
    store: AnnotationStore,
    crates: Iterable[CrateInfo],
    old: CacheSnapshot | None,
    new: CacheSnapshot,
) -> AnnotationStore:
    """Return a store with exactly one entry per current module and item.

    Notes whose subject changed since ``old`` are flagged stale; notes on
    unchanged code are carried forward as they are; entries for paths that no
    longer exist are dropped. Without a previous snapshot every subject counts
    as changed.
    """
    previous = old if old is not None else CacheSnapshot()
    modules: dict[str, AnnotationEntry] = {}
    items: dict[str, AnnotationEntry] = {}

    for crate in crates:
        for module in crate.root_module.iter_modules():
            modules[module.path] = _carry(
                store.modules.get(module.path),
                module_changed(previous, new, module.path),
            )
            for item in module.items:
                key = item_path(module.path, item)
                items[key] = _carry(store.items.get(key), item_changed(previous, new, key))

    dropped = (len(store.modules) - len(set(store.modules) & set(modules))) + (
        len(store.items) - len(set(store.items) & set(items))
    )
    if dropped:
        logger.info("Dropped %d annotations for code that no longer exists", dropped)
    return AnnotationStore(modules=modules, items=items)


def export_for_annotation(store: AnnotationStore) -> str:
    """YAML document listing every entry that is empty or stale."""
    pending = AnnotationStore(
        modules={path: entry for path, entry in store.modules.items() if entry.needs_attention},
        items={path: entry for path, entry in store.items.items() if entry.needs_attention},
    )
    count = len(pending.modules) + len(pending.items)
    return f"# {count} items need descriptions\n" + dump_annotations(pending)


def _note_from(value: Any, key: str) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, dict) and isinstance(value.get("note", ""), str):
        return value.get("note", "")
    if value is None:
        return ""
    raise SerializationError(SERDE_001, f"Annotation for {key} must be a string or a mapping with a note")


def _merge_section(current: dict[str, AnnotationEntry], updates: Any, section: str) -> dict[str, AnnotationEntry]:
    if updates is None:
        return dict(current)
    if not isinstance(updates, dict):
        raise SerializationError(SERDE_001, f"'{section}' must be a mapping")
    merged = dict(current)
    for key, value in updates.items():
        note = _note_from(value, str(key))
        if key not in merged:
            logger.warning("Annotation for unknown %s entry %s", section, key)
        if not note.strip():
            continue
        merged[str(key)] = AnnotationEntry(note=note.strip(), stale=False)
    return merged


def import_annotations(store: AnnotationStore, text: str) -> AnnotationStore:
    """Merge notes from a YAML document, clearing their stale flags.

    Accepts ``path: note`` pairs or ``path: {note: ...}`` mappings under
    ``modules`` and ``items``. Blank notes leave the existing entry alone.

    Raises:
        SerializationError: If the document is not valid.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise SerializationError(SERDE_001, "Invalid YAML in annotation import") from exc
    if data is None:
        return store
    if not isinstance(data, dict):
        raise SerializationError(SERDE_001, "Annotation import must define a mapping.")
    return AnnotationStore(
        modules=_merge_section(store.modules, data.get("modules"), "modules"),
        items=_merge_section(store.items, data.get("items"), "items"),
    )


__all__ = [
    "AnnotationEntry",
    "AnnotationStore",
    "dump_annotations",
    "export_for_annotation",
    "import_annotations",
    "load_annotations",
    "reconcile_annotations",
    "save_annotations",
]
