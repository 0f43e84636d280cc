"""Data model shared by every rsmap component.

The crate -> module -> item tree is built once per run by the resolver and is
immutable afterwards: all classes are frozen dataclasses and sequences are
tuples. Children are owned by value and there are no parent back-pointers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterator

PATH_SEPARATOR = "::"
ROOT_MODULE_PATH = "crate"


class CrateKind(str, Enum):
    """Kind of compilation target a crate root belongs to."""

    LIB = "lib"
    BIN = "bin"
    PROC_MACRO = "proc-macro"


class Visibility(str, Enum):
    PUB = "pub"
    PUB_CRATE = "pub(crate)"
    PUB_SUPER = "pub(super)"
    PRIVATE = "private"

    @property
    def prefix(self) -> str:
        """Prefix used when printing a signature, empty for private items."""
        if self is Visibility.PRIVATE:
            return ""
        return f"{self.value} "


class ItemKind(str, Enum):
    FUNCTION = "function"
    STRUCT = "struct"
    ENUM = "enum"
    TRAIT = "trait"
    IMPL = "impl"
    TYPE_ALIAS = "type_alias"
    CONST = "const"
    STATIC = "static"
    MACRO = "macro"
    USE = "use"


@dataclass(frozen=True, slots=True)
class ImplInfo:
    """Payload carried by ``impl`` items only."""

    self_ty: str
    trait_name: str | None = None

    @property
    def label(self) -> str:
        if self.trait_name:
            return f"impl {self.trait_name} for {self.self_ty}"
        return f"impl {self.self_ty}"


@dataclass(frozen=True, slots=True)
class Item:
    """A top-level declaration inside a module."""

    name: str
    kind: ItemKind
    visibility: Visibility
    signature: str
    doc_comment: str | None
    file_path: Path
    line_start: int
    line_end: int
    content_hash: str
    impl_info: ImplInfo | None = None

    def __post_init__(self) -> None:
        if self.line_start < 1 or self.line_end < self.line_start:
            raise ValueError(
                f"Invalid line range {self.line_start}-{self.line_end} for item {self.name!r}"
            )
        if (self.kind is ItemKind.IMPL) != (self.impl_info is not None):
            raise ValueError(f"impl_info must be set on impl items only (item {self.name!r})")

    @property
    def kind_label(self) -> str:
        """Human readable kind, e.g. ``struct`` or ``impl Display for Value``."""
        if self.impl_info is not None:
            return self.impl_info.label
        return self.kind.value


@dataclass(frozen=True, slots=True)
class Module:
    """A Rust module, either backed by its own file or inline in its parent's."""

    path: str
    file_path: Path
    file_hash: str
    doc_comment: str | None = None
    visibility: Visibility = Visibility.PUB
    items: tuple[Item, ...] = ()
    submodules: tuple[Module, ...] = ()
    use_statements: tuple[str, ...] = ()
    is_inline: bool = False

    @property
    def short_name(self) -> str:
        return self.path.rsplit(PATH_SEPARATOR, 1)[-1]

    def iter_modules(self) -> Iterator[Module]:
        """Yield this module and all descendants, parents before children."""
        yield self
        for sub in self.submodules:
            yield from sub.iter_modules()

    def iter_items(self) -> Iterator[Item]:
        for module in self.iter_modules():
            yield from module.items


@dataclass(frozen=True, slots=True)
class CrateInfo:
    """A crate target with its resolved module tree."""

    name: str
    kind: CrateKind
    edition: str
    version: str
    root_module: Module
    external_deps: tuple[str, ...] = field(default_factory=tuple)


def join_path(parent: str, name: str) -> str:
    return f"{parent}{PATH_SEPARATOR}{name}"


def item_path(module_path: str, item: Item) -> str:
    """Stable key for an item: ``module::name``, or ``module::impl T for S``."""
    if item.impl_info is not None:
        return join_path(module_path, item.impl_info.label)
    return join_path(module_path, item.name)


def display_module_path(path: str) -> str:
    """Strip the ``crate::`` prefix; the root stays ``crate``."""
    prefix = ROOT_MODULE_PATH + PATH_SEPARATOR
    if path.startswith(prefix):
        return path[len(prefix) :]
    return path


__all__ = [
    "PATH_SEPARATOR",
    "ROOT_MODULE_PATH",
    "CrateInfo",
    "CrateKind",
    "ImplInfo",
    "Item",
    "ItemKind",
    "Module",
    "Visibility",
    "display_module_path",
    "item_path",
    "join_path",
]
