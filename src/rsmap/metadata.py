"""Crate target discovery from ``cargo metadata`` or ``Cargo.toml``.

``cargo metadata`` is preferred because it knows about auto-discovered
targets and workspace inheritance. When cargo is not installed, or fails,
the manifest is read directly with ``tomllib``.
"""

from __future__ import annotations

import json
import logging
import subprocess
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from rsmap.errors import META_001, META_002, MetadataError
from rsmap.model import CrateKind

logger = logging.getLogger(__name__)

MANIFEST_NAME = "Cargo.toml"
DEFAULT_EDITION = "2015"
CARGO_TIMEOUT_SECONDS = 60


@dataclass(frozen=True, slots=True)
class CrateMetadata:
    """One lib, bin or proc-macro target of a workspace member."""

    name: str
    kind: CrateKind
    edition: str
    version: str
    root_file: Path
    manifest_dir: Path
    external_deps: tuple[str, ...] = ()


def resolve_crates(project_path: Path, use_cargo: bool = True) -> list[CrateMetadata]:
    """List the crate targets of the project at ``project_path``.

    Raises:
        MetadataError: If there is no readable manifest.
    """
    manifest = project_path / MANIFEST_NAME
    if not manifest.is_file():
        raise MetadataError(META_001, f"No {MANIFEST_NAME} found in {project_path}")

    if use_cargo:
        try:
            return _from_cargo(manifest)
        except (OSError, subprocess.SubprocessError, ValueError, KeyError) as exc:
            logger.info("cargo metadata unavailable (%s); reading %s directly", exc, manifest)
    return _from_manifest(manifest)


def _target_kind(kinds: list[str]) -> CrateKind | None:
    if "proc-macro" in kinds:
        return CrateKind.PROC_MACRO
    if "lib" in kinds or "rlib" in kinds:
        return CrateKind.LIB
    if "bin" in kinds:
        return CrateKind.BIN
    return None


def _from_cargo(manifest: Path) -> list[CrateMetadata]:
    result = subprocess.run(
        ["cargo", "metadata", "--format-version", "1", "--no-deps", "--manifest-path", str(manifest)],
        capture_output=True,
        text=True,
        check=True,
        timeout=CARGO_TIMEOUT_SECONDS,
    )
    metadata = json.loads(result.stdout)
    members = set(metadata["workspace_members"])

    crates: list[CrateMetadata] = []
    for package in metadata["packages"]:
        if package["id"] not in members:
            continue
        manifest_dir = Path(package["manifest_path"]).parent
        deps = tuple(dep["name"] for dep in package.get("dependencies", []) if dep.get("kind") is None)
        for target in package["targets"]:
            kind = _target_kind(target["kind"])
            if kind is None:
                continue
            crates.append(
                CrateMetadata(
                    name=target["name"],
                    kind=kind,
                    edition=str(package.get("edition", DEFAULT_EDITION)),
                    version=str(package["version"]),
                    root_file=Path(target["src_path"]),
                    manifest_dir=manifest_dir,
                    external_deps=deps,
                )
            )
    return crates


def _load_manifest(manifest: Path) -> dict[str, Any]:
    try:
        with manifest.open("rb") as handle:
            return tomllib.load(handle)
    except OSError as exc:
        raise MetadataError(META_002, f"Failed to read manifest: {manifest}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise MetadataError(META_002, f"Invalid TOML in {manifest}: {exc}") from exc


def _from_manifest(manifest: Path, workspace: dict[str, Any] | None = None) -> list[CrateMetadata]:
    data = _load_manifest(manifest)
    manifest_dir = manifest.parent
    inherited = workspace if workspace is not None else data.get("workspace", {}).get("package", {})

    crates: list[CrateMetadata] = []
    if "package" in data:
        crates.extend(_package_targets(data, manifest_dir, inherited))

    workspace_table = data.get("workspace")
    if workspace is None and isinstance(workspace_table, dict):
        excluded = {(manifest_dir / path).resolve() for path in workspace_table.get("exclude", [])}
        for pattern in workspace_table.get("members", []):
            for member_dir in sorted(manifest_dir.glob(pattern)):
                member_manifest = member_dir / MANIFEST_NAME
                if member_dir.resolve() in excluded or not member_manifest.is_file():
                    continue
                if member_dir.resolve() == manifest_dir.resolve():
                    continue
                crates.extend(_from_manifest(member_manifest, inherited))
    return crates


def _package_field(package: dict[str, Any], key: str, inherited: dict[str, Any], default: str) -> str:
    value = package.get(key, default)
    if isinstance(value, dict) and value.get("workspace"):
        value = inherited.get(key, default)
    return str(value)


def _dependency_names(data: dict[str, Any]) -> tuple[str, ...]:
    names = []
    for key, spec in data.get("dependencies", {}).items():
        if isinstance(spec, dict) and "package" in spec:
            names.append(str(spec["package"]))
        else:
            names.append(key)
    return tuple(names)


def _package_targets(data: dict[str, Any], manifest_dir: Path, inherited: dict[str, Any]) -> list[CrateMetadata]:
    package = data["package"]
    package_name = str(package.get("name", manifest_dir.name))
    edition = _package_field(package, "edition", inherited, DEFAULT_EDITION)
    version = _package_field(package, "version", inherited, "0.0.0")
    deps = _dependency_names(data)

    def target(name: str, kind: CrateKind, root: Path) -> CrateMetadata:
        return CrateMetadata(
            name=name,
            kind=kind,
            edition=edition,
            version=version,
            root_file=root,
            manifest_dir=manifest_dir,
            external_deps=deps,
        )

    targets: list[CrateMetadata] = []
    lib = data.get("lib")
    lib_path = manifest_dir / (lib.get("path", "src/lib.rs") if isinstance(lib, dict) else "src/lib.rs")
    if isinstance(lib, dict) or lib_path.is_file():
        lib = lib if isinstance(lib, dict) else {}
        kind = CrateKind.PROC_MACRO if lib.get("proc-macro") else CrateKind.LIB
        targets.append(target(str(lib.get("name", package_name.replace("-", "_"))), kind, lib_path))

    seen_roots: set[Path] = set()
    for entry in data.get("bin", []):
        name = str(entry["name"])
        default_path = "src/main.rs" if name == package_name else f"src/bin/{name}.rs"
        root = manifest_dir / entry.get("path", default_path)
        seen_roots.add(root)
        targets.append(target(name, CrateKind.BIN, root))

    if package.get("autobins", True):
        main_rs = manifest_dir / "src" / "main.rs"
        if main_rs.is_file() and main_rs not in seen_roots:
            targets.append(target(package_name, CrateKind.BIN, main_rs))
        for bin_file in sorted((manifest_dir / "src" / "bin").glob("*.rs")):
            if bin_file not in seen_roots:
                targets.append(target(bin_file.stem, CrateKind.BIN, bin_file))
    return targets


__all__ = ["CrateMetadata", "MANIFEST_NAME", "resolve_crates"]
