"""Resolve a crate's ``mod`` declarations into an immutable module tree.

The resolver starts at a crate root file, parses it, and follows every
non-test ``mod`` declaration. Inline modules are built from the nested parse
result without another read; external modules are located on disk by trying
the candidate file names in a fixed order. A submodule that cannot be found,
read or parsed is reported as a ``ResolutionWarning`` and left out of the
tree. Only failures on the root file are fatal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from rsmap.errors import IO_001, RESOLVE_001, IndexIOError, ParseError
from rsmap.hashing import digest, digest_lines
from rsmap.model import ROOT_MODULE_PATH, CrateInfo, Item, Module, Visibility, join_path
from rsmap.parse import ModuleDecl, ParsedItem, ParsedUnit, SourceParser

if TYPE_CHECKING:
    from rsmap.metadata import CrateMetadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ResolutionWarning:
    """A submodule that was skipped while building the tree."""

    module_path: str
    declared_in: Path
    message: str
    code: str = RESOLVE_001

    def __str__(self) -> str:
        return f"{self.module_path} (declared in {self.declared_in.as_posix()}): {self.message}"


@dataclass(frozen=True, slots=True)
class Resolution:
    root: Module
    diagnostics: tuple[ResolutionWarning, ...] = ()


@dataclass(frozen=True, slots=True)
class _SourceFile:
    """A file being walked: absolute path, project-relative path, bytes and digest."""

    path: Path
    relative: Path
    data: bytes
    file_hash: str


class ModuleResolver:
    """Builds module trees for crate roots under one project directory."""

    def __init__(self, project_root: Path, parser: SourceParser | None = None) -> None:
        self._project_root = project_root
        self._parser = parser or SourceParser()
        self._diagnostics: list[ResolutionWarning] = []

    def resolve(self, root_file: Path) -> Resolution:
        """Resolve the tree rooted at ``root_file``.

        Raises:
            IndexIOError: If the root file cannot be read.
            ParseError: If the root file has syntax errors.
        """
        if not root_file.is_absolute():
            root_file = self._project_root / root_file
        self._diagnostics = []

        try:
            data = root_file.read_bytes()
        except OSError as exc:
            raise IndexIOError(IO_001, f"Failed to read crate root: {root_file}") from exc
        source = _SourceFile(root_file, self._relative(root_file), data, digest(data))
        unit = self._parser.parse_unit(data, source.relative)

        root = self._build_module(
            path=ROOT_MODULE_PATH,
            source=source,
            unit=unit,
            visibility=Visibility.PUB,
            doc_comment=unit.inner_doc,
            is_inline=False,
            search_dirs=(root_file.parent,),
            ancestors=frozenset({root_file.resolve()}),
        )
        return Resolution(root=root, diagnostics=tuple(self._diagnostics))

    def _relative(self, path: Path) -> Path:
        try:
            return path.relative_to(self._project_root)
        except ValueError:
            return path

    def _warn(self, module_path: str, declared_in: Path, message: str) -> None:
        logger.warning("Skipping module %s: %s", module_path, message)
        self._diagnostics.append(ResolutionWarning(module_path, declared_in, message))

    def _build_module(
        self,
        path: str,
        source: _SourceFile,
        unit: ParsedUnit,
        visibility: Visibility,
        doc_comment: str | None,
        is_inline: bool,
        search_dirs: tuple[Path, ...],
        ancestors: frozenset[Path],
    ) -> Module:
        items = tuple(self._make_item(parsed, source) for parsed in unit.items)

        submodules: list[Module] = []
        for decl in unit.modules:
            child_path = join_path(path, decl.name)
            if decl.is_test:
                logger.debug("Pruning test-only module %s", child_path)
                continue
            if decl.body is not None:
                child = self._build_module(
                    path=child_path,
                    source=source,
                    unit=decl.body,
                    visibility=decl.visibility,
                    doc_comment=decl.doc_comment or decl.body.inner_doc,
                    is_inline=True,
                    search_dirs=tuple(directory / decl.name for directory in search_dirs),
                    ancestors=ancestors,
                )
            else:
                child = self._resolve_external(decl, child_path, source, search_dirs, ancestors)
            if child is not None:
                submodules.append(child)

        return Module(
            path=path,
            file_path=source.relative,
            file_hash=source.file_hash,
            doc_comment=doc_comment,
            visibility=visibility,
            items=items,
            submodules=tuple(submodules),
            use_statements=unit.use_paths,
            is_inline=is_inline,
        )

    def _resolve_external(
        self,
        decl: ModuleDecl,
        module_path: str,
        parent: _SourceFile,
        search_dirs: tuple[Path, ...],
        ancestors: frozenset[Path],
    ) -> Module | None:
        candidate = _find_backing_file(decl, search_dirs)
        if candidate is None:
            tried = ", ".join(self._relative(p).as_posix() for p in candidate_paths(decl, search_dirs))
            self._warn(module_path, parent.relative, f"no backing file for module '{decl.name}' (tried {tried})")
            return None

        relative = self._relative(candidate)
        if candidate.resolve() in ancestors:
            self._warn(module_path, parent.relative, f"{relative.as_posix()} is already an enclosing module")
            return None
        try:
            data = candidate.read_bytes()
        except OSError as exc:
            self._warn(module_path, parent.relative, f"failed to read {relative.as_posix()}: {exc}")
            return None
        try:
            unit = self._parser.parse_unit(data, relative)
        except ParseError as exc:
            self._warn(module_path, parent.relative, str(exc))
            return None

        if candidate.name == "mod.rs":
            child_dirs: tuple[Path, ...] = (candidate.parent,)
        else:
            child_dirs = (candidate.parent, candidate.parent / candidate.stem)

        return self._build_module(
            path=module_path,
            source=_SourceFile(candidate, relative, data, digest(data)),
            unit=unit,
            visibility=decl.visibility,
            doc_comment=unit.inner_doc or decl.doc_comment,
            is_inline=False,
            search_dirs=child_dirs,
            ancestors=ancestors | {candidate.resolve()},
        )

    def _make_item(self, parsed: ParsedItem, source: _SourceFile) -> Item:
        return Item(
            name=parsed.name,
            kind=parsed.kind,
            visibility=parsed.visibility,
            signature=parsed.signature,
            doc_comment=parsed.doc_comment,
            file_path=source.relative,
            line_start=parsed.line_start,
            line_end=parsed.line_end,
            content_hash=digest_lines(source.data, parsed.line_start, parsed.line_end),
            impl_info=parsed.impl_info,
        )


def candidate_paths(decl: ModuleDecl, search_dirs: tuple[Path, ...]) -> list[Path]:
    """Backing file candidates for an external module, in priority order.

    For a declaring file that is not ``mod.rs`` the search dirs are its own
    directory and then the directory named after its stem, so
    ``src/net.rs`` tries ``src/tcp.rs`` before ``src/net/tcp.rs``.
    """
    candidates: list[Path] = []
    if decl.path_override:
        candidates.append(search_dirs[0] / decl.path_override)
    for directory in search_dirs:
        candidates.append(directory / f"{decl.name}.rs")
        candidates.append(directory / decl.name / "mod.rs")
    return candidates


def _find_backing_file(decl: ModuleDecl, search_dirs: tuple[Path, ...]) -> Path | None:
    for candidate in candidate_paths(decl, search_dirs):
        if candidate.is_file():
            return candidate
        if decl.path_override and candidate == search_dirs[0] / decl.path_override:
            logger.debug("Path override %s for module %s does not exist", candidate, decl.name)
    return None


def resolve_module_tree(
    root_file: Path,
    project_root: Path,
    parser: SourceParser | None = None,
) -> Resolution:
    """Resolve the module tree of one crate root."""
    return ModuleResolver(project_root, parser).resolve(root_file)


def resolve_crate(
    meta: CrateMetadata,
    project_root: Path,
    parser: SourceParser | None = None,
) -> tuple[CrateInfo, tuple[ResolutionWarning, ...]]:
    """Resolve a crate target described by ``meta`` into a ``CrateInfo``."""
    resolution = resolve_module_tree(meta.root_file, project_root, parser)
    crate = CrateInfo(
        name=meta.name,
        kind=meta.kind,
        edition=meta.edition,
        version=meta.version,
        root_module=resolution.root,
        external_deps=tuple(meta.external_deps),
    )
    return crate, resolution.diagnostics


__all__ = [
    "ModuleResolver",
    "Resolution",
    "ResolutionWarning",
    "candidate_paths",
    "resolve_crate",
    "resolve_module_tree",
]
