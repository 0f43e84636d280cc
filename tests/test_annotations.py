from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from rsmap.annotations import (
    AnnotationEntry,
    AnnotationStore,
    export_for_annotation,
    import_annotations,
    load_annotations,
    reconcile_annotations,
    save_annotations,
)
from rsmap.cache import CacheSnapshot
from rsmap.errors import SERDE_001, SerializationError

from tests.helpers import make_crate, make_item, make_module


def _crate():
    sub = make_module("crate::a", items=(make_item("helper"),))
    return make_crate(make_module(items=(make_item("run"),), submodules=(sub,)))


def _snapshot(modules: dict[str, str], items: dict[str, str]) -> CacheSnapshot:
    return CacheSnapshot(modules=modules, items=items)


NEW = _snapshot({"crate": "r1", "crate::a": "a1"}, {"crate::run": "x1", "crate::a::helper": "h1"})


class TestReconcile:
    def test_new_subjects_get_empty_entries(self) -> None:
        store = reconcile_annotations(AnnotationStore(), [_crate()], None, NEW)
        assert set(store.modules) == {"crate", "crate::a"}
        assert set(store.items) == {"crate::run", "crate::a::helper"}
        assert all(entry == AnnotationEntry() for entry in store.items.values())

    def test_unchanged_notes_carry_forward_and_changed_go_stale(self) -> None:
        existing = AnnotationStore(
            modules={"crate::a": AnnotationEntry(note="Helpers")},
            items={
                "crate::run": AnnotationEntry(note="Entry point"),
                "crate::a::helper": AnnotationEntry(note="Does things"),
            },
        )
        old = _snapshot({"crate": "r1", "crate::a": "a0"}, {"crate::run": "x1", "crate::a::helper": "h0"})
        store = reconcile_annotations(existing, [_crate()], old, NEW)
        assert store.items["crate::run"] == AnnotationEntry(note="Entry point", stale=False)
        assert store.items["crate::a::helper"] == AnnotationEntry(note="Does things", stale=True)
        assert store.modules["crate::a"] == AnnotationEntry(note="Helpers", stale=True)

    def test_missing_old_snapshot_marks_notes_stale(self) -> None:
        existing = AnnotationStore(items={"crate::run": AnnotationEntry(note="Entry point")})
        store = reconcile_annotations(existing, [_crate()], None, NEW)
        assert store.items["crate::run"].stale

    def test_vanished_paths_are_dropped(self) -> None:
        existing = AnnotationStore(items={"crate::gone": AnnotationEntry(note="Old")})
        store = reconcile_annotations(existing, [_crate()], NEW, NEW)
        assert "crate::gone" not in store.items

    def test_stale_flag_survives_until_cleared(self) -> None:
        existing = AnnotationStore(items={"crate::run": AnnotationEntry(note="Entry", stale=True)})
        store = reconcile_annotations(existing, [_crate()], NEW, NEW)
        assert store.items["crate::run"].stale


class TestExportImport:
    def test_export_lists_empty_and_stale(self) -> None:
        store = AnnotationStore(
            modules={"crate": AnnotationEntry(note="Root")},
            items={
                "crate::run": AnnotationEntry(note="Entry", stale=True),
                "crate::a::helper": AnnotationEntry(),
            },
        )
        text = export_for_annotation(store)
        assert text.startswith("# 2 items need descriptions\n")
        data = yaml.safe_load(text)
        assert data["modules"] == {}
        assert set(data["items"]) == {"crate::run", "crate::a::helper"}

    def test_import_sets_notes_and_clears_stale(self, caplog: pytest.LogCaptureFixture) -> None:
        store = AnnotationStore(items={"crate::run": AnnotationEntry(note="Old", stale=True)})
        text = "items:\n  crate::run: New words\n  crate::other:\n    note: Unknown item\nmodules:\n  crate: ''\n"
        merged = import_annotations(store, text)
        assert merged.items["crate::run"] == AnnotationEntry(note="New words", stale=False)
        assert merged.items["crate::other"].note == "Unknown item"
        assert "crate" not in merged.modules
        assert "crate::other" in caplog.text

    @pytest.mark.parametrize("text", ["items: [unclosed", "- a\n- b\n", "items: 3\n", "items:\n  crate::run: [1, 2]\n"])
    def test_import_rejects_invalid_documents(self, text: str) -> None:
        with pytest.raises(SerializationError) as excinfo:
            import_annotations(AnnotationStore(), text)
        assert excinfo.value.code == SERDE_001


class TestPersistence:
    def test_round_trip_and_missing_file(self, tmp_path: Path) -> None:
        path = tmp_path / "index" / "annotations.yaml"
        assert load_annotations(path) == AnnotationStore()
        store = AnnotationStore(modules={"crate": AnnotationEntry(note="Root: the top")})
        save_annotations(store, path)
        assert load_annotations(path) == store

    def test_corrupt_file_is_an_error(self, tmp_path: Path) -> None:
        path = tmp_path / "annotations.yaml"
        path.write_text("modules: {crate: {stale: maybe-not}}\n", encoding="utf-8")
        with pytest.raises(SerializationError):
            load_annotations(path)
