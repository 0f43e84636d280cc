"""Hash snapshots of a resolved crate forest and the comparisons over them.

A snapshot is rebuilt from the full tree on every run and written as a full
overwrite. Old and new snapshots are only ever compared as wholes.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from rsmap.errors import IO_002, SERDE_002, IndexIOError, SerializationError
from rsmap.model import CrateInfo, item_path

logger = logging.getLogger(__name__)


class CacheFileEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    hash: str
    last_indexed: str


class CacheSnapshot(BaseModel):
    """File, module and item digests keyed by stable path strings."""

    model_config = ConfigDict(frozen=True)

    files: dict[str, CacheFileEntry] = Field(default_factory=dict)
    modules: dict[str, str] = Field(default_factory=dict)
    items: dict[str, str] = Field(default_factory=dict)


def build_snapshot(crates: Iterable[CrateInfo], now: datetime | None = None) -> CacheSnapshot:
    """Walk every crate once and record all digests.

    The first module seen for a file path owns its entry, so inline modules
    never overwrite their parent's record.
    """
    timestamp = (now or datetime.now(timezone.utc)).isoformat()
    files: dict[str, CacheFileEntry] = {}
    modules: dict[str, str] = {}
    items: dict[str, str] = {}

    for crate in crates:
        for module in crate.root_module.iter_modules():
            file_key = module.file_path.as_posix()
            if file_key not in files:
                files[file_key] = CacheFileEntry(hash=module.file_hash, last_indexed=timestamp)
            modules[module.path] = module.file_hash
            for item in module.items:
                items[item_path(module.path, item)] = item.content_hash

    return CacheSnapshot(files=files, modules=modules, items=items)


def file_unchanged(snapshot: CacheSnapshot, path: str, file_digest: str) -> bool:
    """True only when ``snapshot`` has an entry for ``path`` with an equal digest."""
    entry = snapshot.files.get(path)
    return entry is not None and entry.hash == file_digest


def _changed(old: dict[str, str], new: dict[str, str], key: str) -> bool:
    new_digest = new.get(key)
    if new_digest is None:
        return False
    old_digest = old.get(key)
    return old_digest is None or old_digest != new_digest


def module_changed(old: CacheSnapshot, new: CacheSnapshot, path: str) -> bool:
    return _changed(old.modules, new.modules, path)


def item_changed(old: CacheSnapshot, new: CacheSnapshot, path: str) -> bool:
    return _changed(old.items, new.items, path)


def load_snapshot(path: Path) -> CacheSnapshot | None:
    """Load a snapshot; any failure means there is no prior snapshot."""
    if not path.exists():
        logger.debug("No snapshot at %s", path)
        return None
    try:
        content = path.read_bytes()
    except OSError as exc:
        logger.warning("Could not read snapshot %s: %s", path, exc)
        return None
    try:
        return CacheSnapshot.model_validate_json(content)
    except ValidationError as exc:
        logger.warning("Ignoring corrupt snapshot %s (%d errors)", path, exc.error_count())
        return None


def save_snapshot(snapshot: CacheSnapshot, path: Path) -> None:
    """Overwrite ``path`` with ``snapshot``.

    Raises:
        SerializationError: If the snapshot cannot be encoded.
        IndexIOError: If the file cannot be written.
    """
    try:
        payload = json.dumps(snapshot.model_dump(mode="json"), indent=2, sort_keys=True)
    except (TypeError, ValueError) as exc:
        raise SerializationError(SERDE_002, f"Failed to encode snapshot: {exc}") from exc
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(payload + "\n", encoding="utf-8")
    except OSError as exc:
        raise IndexIOError(IO_002, f"Failed to write snapshot {path}: {exc}") from exc


__all__ = [
    "CacheFileEntry",
    "CacheSnapshot",
    "build_snapshot",
    "file_unchanged",
    "item_changed",
    "load_snapshot",
    "module_changed",
    "save_snapshot",
]
