"""``index.json``: item path to source location."""

from __future__ import annotations

import json
from typing import Any, Iterable

from rsmap.model import CrateInfo, item_path


def build_lookup_index(crates: Iterable[CrateInfo]) -> dict[str, dict[str, Any]]:
    index: dict[str, dict[str, Any]] = {}
    for crate in crates:
        for module in crate.root_module.iter_modules():
            for item in module.items:
                index[item_path(module.path, item)] = {
                    "file": item.file_path.as_posix(),
                    "line_start": item.line_start,
                    "line_end": item.line_end,
                    "kind": item.kind_label,
                    "visibility": item.visibility.value,
                }
    return dict(sorted(index.items()))


def render_lookup_index(crates: Iterable[CrateInfo]) -> str:
    return json.dumps(build_lookup_index(crates), indent=2) + "\n"
