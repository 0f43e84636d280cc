"""Builders for model trees used across the test-suite."""

from __future__ import annotations

from pathlib import Path

from rsmap.hashing import digest
from rsmap.model import CrateInfo, CrateKind, ImplInfo, Item, ItemKind, Module, Visibility


def make_item(
    name: str,
    kind: ItemKind = ItemKind.FUNCTION,
    signature: str | None = None,
    content: str | None = None,
    file_path: str = "src/lib.rs",
    line_start: int = 1,
    line_end: int = 1,
    visibility: Visibility = Visibility.PUB,
    impl_info: ImplInfo | None = None,
) -> Item:
    signature = signature if signature is not None else f"pub fn {name}();"
    return Item(
        name=name,
        kind=kind,
        visibility=visibility,
        signature=signature,
        doc_comment=None,
        file_path=Path(file_path),
        line_start=line_start,
        line_end=line_end,
        content_hash=digest((content if content is not None else signature).encode()),
        impl_info=impl_info,
    )


def make_impl(self_ty: str, trait_name: str | None = None, signature: str | None = None) -> Item:
    info = ImplInfo(self_ty=self_ty, trait_name=trait_name)
    name = f"{trait_name} for {self_ty}" if trait_name else self_ty
    return make_item(
        name,
        kind=ItemKind.IMPL,
        signature=signature if signature is not None else f"{info.label} {{}}",
        visibility=Visibility.PRIVATE,
        impl_info=info,
    )


def make_module(
    path: str = "crate",
    items: tuple[Item, ...] = (),
    submodules: tuple[Module, ...] = (),
    use_statements: tuple[str, ...] = (),
    file_path: str | None = None,
    file_hash: str | None = None,
    doc_comment: str | None = None,
    is_inline: bool = False,
) -> Module:
    if file_path is None:
        file_path = "src/lib.rs" if path == "crate" else f"src/{path.split('::')[-1]}.rs"
    return Module(
        path=path,
        file_path=Path(file_path),
        file_hash=file_hash if file_hash is not None else digest(path.encode()),
        doc_comment=doc_comment,
        items=items,
        submodules=submodules,
        use_statements=use_statements,
        is_inline=is_inline,
    )


def make_crate(root: Module, name: str = "demo", external_deps: tuple[str, ...] = ()) -> CrateInfo:
    return CrateInfo(
        name=name,
        kind=CrateKind.LIB,
        edition="2021",
        version="0.1.0",
        root_module=root,
        external_deps=external_deps,
    )


def write_files(root: Path, files: dict[str, str]) -> Path:
    """Create ``files`` (relative path -> text) under ``root``."""
    for relative, text in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    return root
