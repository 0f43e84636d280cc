"""Rust source parsing using tree-sitter.

Turns raw source bytes into a flat list of items with body-stripped
signatures, the raw ``use`` paths of a file, and the ``mod`` declarations the
resolver walks. Nothing here touches the filesystem.

Usage:
    parser = SourceParser()
    unit = parser.parse_unit(source_bytes, Path("src/lib.rs"))
    for decl in unit.modules:
        ...
"""

from __future__ import annotations

import functools
import logging
import re
from dataclasses import dataclass
from pathlib import Path

import tree_sitter_rust as tsrust
from tree_sitter import Language, Node, Parser, Tree

from rsmap.errors import PARSE_001, ParseError
from rsmap.model import ImplInfo, ItemKind, Visibility

logger = logging.getLogger(__name__)

RUST_LANGUAGE = Language(tsrust.language())

_COMMENT_TYPES = frozenset({"line_comment", "block_comment"})
_ATTRIBUTE_TYPES = frozenset({"attribute_item", "inner_attribute_item"})
_PATH_NODE_TYPES = frozenset({"identifier", "scoped_identifier", "crate", "self", "super", "metavariable"})

_TRAILING_COMMA = re.compile(r",\s*\n\s*([)\]}])")
_OPEN_SPACE = re.compile(r"([(\[<])\s+")
_CLOSE_SPACE = re.compile(r"\s+([)\]>])")
_CFG_ATTR = re.compile(r"^cfg\s*\((?P<predicate>.*)\)$", re.DOTALL)
_NOT_PREDICATE = re.compile(r"not\s*\([^()]*\)")
_STRING_LITERAL = re.compile(r'"[^"]*"')
_PATH_ATTR = re.compile(r'^path\s*=\s*"(?P<path>.*)"$')
_DOC_ATTR = re.compile(r'^doc\s*=\s*"(?P<doc>.*)"$', re.DOTALL)


@dataclass(frozen=True, slots=True)
class ParsedItem:
    """An item as reported by the parser, before it is placed in a module."""

    name: str
    kind: ItemKind
    visibility: Visibility
    signature: str
    doc_comment: str | None
    line_start: int
    line_end: int
    impl_info: ImplInfo | None = None


@dataclass(frozen=True, slots=True)
class ModuleDecl:
    """A ``mod name;`` or ``mod name { ... }`` declaration."""

    name: str
    visibility: Visibility
    doc_comment: str | None
    line: int
    path_override: str | None = None
    is_test: bool = False
    body: ParsedUnit | None = None

    @property
    def is_inline(self) -> bool:
        return self.body is not None


@dataclass(frozen=True, slots=True)
class ParsedUnit:
    """Everything the resolver needs from one module body."""

    items: tuple[ParsedItem, ...]
    use_paths: tuple[str, ...]
    inner_doc: str | None
    modules: tuple[ModuleDecl, ...]


class SourceParser:
    """Parses Rust source into tree-sitter Trees and rsmap parse results."""

    def __init__(self) -> None:
        self._parser = Parser(RUST_LANGUAGE)

    def parse_bytes(self, source_bytes: bytes) -> Tree:
        """Parse raw bytes and return a tree-sitter Tree."""
        return self._parser.parse(source_bytes)

    def parse_unit(self, source_bytes: bytes, file_path: Path | str = "<memory>") -> ParsedUnit:
        """Parse a whole file into a ParsedUnit.

        Raises:
            ParseError: If the source contains syntax errors.
        """
        tree = self.parse_bytes(source_bytes)
        _raise_on_syntax_error(tree, file_path)
        root = tree.root_node
        return _build_unit(root, source_bytes, use_paths=tuple(_collect_use_paths(root, source_bytes)))

    def parse_items(self, source_bytes: bytes, file_path: Path | str = "<memory>") -> list[ParsedItem]:
        """Return the top-level items of a file in declaration order."""
        return list(self.parse_unit(source_bytes, file_path).items)

    def extract_import_paths(self, source_bytes: bytes) -> list[str]:
        """Return every ``use`` path in the file, expanded to full paths.

        Test-only uses and uses inside ``#[cfg(test)]`` modules are skipped. Syntax errors are
        tolerated; whatever tree-sitter recovered is used.
        """
        tree = self.parse_bytes(source_bytes)
        return _collect_use_paths(tree.root_node, source_bytes)


@functools.lru_cache(maxsize=1)
def _default_parser() -> SourceParser:
    return SourceParser()


def parse_items(source_bytes: bytes, file_path: Path | str = "<memory>") -> list[ParsedItem]:
    return _default_parser().parse_items(source_bytes, file_path)


def extract_import_paths(source_bytes: bytes) -> list[str]:
    return _default_parser().extract_import_paths(source_bytes)


# -- syntax errors -----------------------------------------------------------


def _raise_on_syntax_error(tree: Tree, file_path: Path | str) -> None:
    if not tree.root_node.has_error:
        return
    line = _first_error_line(tree.root_node)
    raise ParseError(PARSE_001, f"Syntax error in {file_path} near line {line}", line=line)


def _first_error_line(node: Node) -> int | None:
    stack = [node]
    while stack:
        current = stack.pop()
        if current.type == "ERROR" or current.is_missing:
            return current.start_point.row + 1
        if current.has_error:
            stack.extend(reversed(current.children))
    return None


# -- text helpers ------------------------------------------------------------


def _node_text(node: Node, source: bytes) -> str:
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


def _squash(text: str) -> str:
    text = _TRAILING_COMMA.sub(r" \1", text)
    text = " ".join(text.split())
    text = _OPEN_SPACE.sub(r"\1", text)
    return _CLOSE_SPACE.sub(r"\1", text)


def _clean_text(node: Node, source: bytes, end_byte: int | None = None) -> str:
    """Node text up to ``end_byte`` without comments or attributes, whitespace collapsed."""
    end = node.end_byte if end_byte is None else end_byte
    skipped: list[tuple[int, int]] = []
    stack = list(node.children)
    while stack:
        current = stack.pop()
        if current.start_byte >= end:
            continue
        if current.type in _COMMENT_TYPES or current.type in _ATTRIBUTE_TYPES:
            skipped.append((current.start_byte, min(current.end_byte, end)))
            continue
        stack.extend(current.children)

    parts: list[bytes] = []
    cursor = node.start_byte
    for start, stop in sorted(skipped):
        if start < cursor:
            continue
        parts.append(source[cursor:start])
        parts.append(b" ")
        cursor = stop
    parts.append(source[cursor:end])
    return _squash(b"".join(parts).decode("utf-8", errors="replace"))


def _compact(node: Node, source: bytes) -> str:
    return "".join(_node_text(node, source).split())


def _block(header: str, members: list[str]) -> str:
    if not members:
        return f"{header} {{}}"
    body = "\n".join(f"    {member}" for member in members)
    return f"{header} {{\n{body}\n}}"


# -- doc comments and attributes ---------------------------------------------


def _strip_doc_line(line: str) -> str:
    return line[1:] if line.startswith(" ") else line


def _block_doc_lines(inner: str) -> list[str]:
    lines = []
    for line in inner.splitlines():
        stripped = line.strip()
        if stripped.startswith("*"):
            stripped = stripped[1:]
        lines.append(_strip_doc_line(stripped).rstrip())
    return lines


def _doc_comment_lines(text: str, inner: bool) -> list[str] | None:
    """Doc lines carried by a comment, or None if it is a plain comment."""
    text = text.rstrip()
    line_marker, block_marker = ("//!", "/*!") if inner else ("///", "/**")
    if text.startswith(line_marker):
        if not inner and text.startswith("////"):
            return None
        return [_strip_doc_line(text[3:]).rstrip()]
    if text.startswith(block_marker) and text.endswith("*/") and len(text) > 4:
        if not inner and (text.startswith("/***") or text == "/**/"):
            return None
        return _block_doc_lines(text[3:-2])
    return None


def _attribute_body(text: str) -> str:
    text = text.strip()
    text = text[3:] if text.startswith("#![") else text[2:]
    return " ".join(text[:-1].split()) if text.endswith("]") else " ".join(text.split())


def _doc_attribute(attribute: str) -> str | None:
    match = _DOC_ATTR.match(attribute)
    if match is None:
        return None
    return match.group("doc").replace('\\"', '"').replace("\\n", "\n")


def _join_doc(lines: list[str]) -> str | None:
    doc = "\n".join(lines).strip()
    return doc or None


def _leading_trivia(node: Node, source: bytes) -> tuple[str | None, list[str]]:
    """Outer doc comment and attribute bodies attached in front of ``node``."""
    doc_chunks: list[list[str]] = []
    attributes: list[str] = []
    sibling = node.prev_sibling
    while sibling is not None and (sibling.type in _COMMENT_TYPES or sibling.type == "attribute_item"):
        text = _node_text(sibling, source)
        if sibling.type == "attribute_item":
            body = _attribute_body(text)
            doc = _doc_attribute(body)
            if doc is not None:
                doc_chunks.append(doc.splitlines())
            else:
                attributes.append(body)
        else:
            lines = _doc_comment_lines(text, inner=False)
            if lines is not None:
                doc_chunks.append(lines)
        sibling = sibling.prev_sibling
    doc_chunks.reverse()
    attributes.reverse()
    return _join_doc([line for chunk in doc_chunks for line in chunk]), attributes


def _inner_doc(container: Node, source: bytes) -> str | None:
    """``//!`` and ``#![doc = ...]`` text at the top of a file or inline module."""
    lines: list[str] = []
    for child in container.named_children:
        if child.type in _COMMENT_TYPES:
            doc = _doc_comment_lines(_node_text(child, source), inner=True)
            if doc is not None:
                lines.extend(doc)
        elif child.type == "inner_attribute_item":
            doc = _doc_attribute(_attribute_body(_node_text(child, source)))
            if doc is not None:
                lines.extend(doc.splitlines())
        else:
            break
    return _join_doc(lines)


def is_test_attribute(attribute: str) -> bool:
    """True for ``cfg(test)`` and cfg predicates that require ``test``."""
    match = _CFG_ATTR.match(attribute.strip())
    if match is None:
        return False
    predicate = _NOT_PREDICATE.sub("", _STRING_LITERAL.sub("", match.group("predicate")))
    return re.search(r"\btest\b", predicate) is not None


def _path_override(attributes: list[str]) -> str | None:
    for attribute in attributes:
        match = _PATH_ATTR.match(attribute)
        if match is not None:
            return match.group("path")
    return None


def _visibility(node: Node, source: bytes) -> Visibility:
    for child in node.children:
        if child.type == "visibility_modifier":
            text = _compact(child, source)
            if text == "pub":
                return Visibility.PUB
            if text == "pub(super)":
                return Visibility.PUB_SUPER
            # pub(crate), pub(in path) and pub(self) all stay inside the crate
            return Visibility.PUB_CRATE
    return Visibility.PRIVATE


# -- signatures --------------------------------------------------------------


def _head(node: Node, source: bytes) -> str:
    body = node.child_by_field_name("body")
    return _clean_text(node, source, body.start_byte if body is not None else None)


def _field_text(node: Node, field_name: str, source: bytes) -> str:
    child = node.child_by_field_name(field_name)
    return _clean_text(child, source) if child is not None else ""


def _function_signature(node: Node, source: bytes) -> str:
    head = _head(node, source)
    return head if head.endswith(";") else f"{head};"


def _const_signature(node: Node, source: bytes, visibility: Visibility) -> str:
    name = _field_text(node, "name", source)
    return f"{visibility.prefix}const {name}: {_field_text(node, 'type', source)};"


def _struct_signature(node: Node, source: bytes) -> str:
    body = node.child_by_field_name("body")
    if body is None or body.type != "field_declaration_list":
        text = _clean_text(node, source)
        return text if text.endswith(";") else f"{text};"
    fields = [
        f"{_clean_text(child, source)},"
        for child in body.named_children
        if child.type == "field_declaration"
    ]
    return _block(_clean_text(node, source, body.start_byte), fields)


def _enum_signature(node: Node, source: bytes) -> str:
    body = node.child_by_field_name("body")
    if body is None:
        return _clean_text(node, source)
    variants = [
        f"{_clean_text(child, source)},"
        for child in body.named_children
        if child.type == "enum_variant"
    ]
    return _block(_clean_text(node, source, body.start_byte), variants)


def _member_signatures(body: Node | None, source: bytes) -> list[str]:
    """Signatures of the members of a trait or impl body."""
    if body is None:
        return []
    members: list[str] = []
    for child in body.named_children:
        if child.type == "function_item":
            members.append(_function_signature(child, source))
        elif child.type in ("function_signature_item", "associated_type", "type_item"):
            members.append(_clean_text(child, source))
        elif child.type == "const_item":
            members.append(_const_signature(child, source, Visibility.PRIVATE))
    return members


def _container_signature(node: Node, source: bytes) -> str:
    body = node.child_by_field_name("body")
    header = _clean_text(node, source, body.start_byte if body is not None else None)
    return _block(header, _member_signatures(body, source))


def _impl_info(node: Node, source: bytes) -> ImplInfo:
    trait_node = node.child_by_field_name("trait")
    trait_name = _clean_text(trait_node, source) if trait_node is not None else None
    return ImplInfo(self_ty=_field_text(node, "type", source), trait_name=trait_name)


def _use_tree_name(node: Node | None, source: bytes) -> str:
    if node is None:
        return "*"
    if node.type == "use_as_clause":
        alias = node.child_by_field_name("alias")
        return _compact(alias, source) if alias is not None else _compact(node, source)
    if node.type == "scoped_use_list":
        path = node.child_by_field_name("path")
        return f"{_compact(path, source)}::{{...}}" if path is not None else "{...}"
    if node.type == "use_list":
        return "{...}"
    return _compact(node, source)


def _item_from_node(node: Node, source: bytes) -> ParsedItem | None:
    kind = node.type
    visibility = _visibility(node, source)
    impl_info = None

    if kind == "function_item":
        item_kind, signature = ItemKind.FUNCTION, _function_signature(node, source)
    elif kind == "struct_item":
        item_kind, signature = ItemKind.STRUCT, _struct_signature(node, source)
    elif kind == "enum_item":
        item_kind, signature = ItemKind.ENUM, _enum_signature(node, source)
    elif kind == "trait_item":
        item_kind, signature = ItemKind.TRAIT, _container_signature(node, source)
    elif kind == "impl_item":
        item_kind, signature = ItemKind.IMPL, _container_signature(node, source)
        impl_info = _impl_info(node, source)
        visibility = Visibility.PRIVATE
    elif kind == "type_item":
        item_kind, signature = ItemKind.TYPE_ALIAS, _clean_text(node, source)
    elif kind == "const_item":
        item_kind, signature = ItemKind.CONST, _const_signature(node, source, visibility)
    elif kind == "static_item":
        mutability = "mut " if any(c.type == "mutable_specifier" for c in node.children) else ""
        name = _field_text(node, "name", source)
        ty = _field_text(node, "type", source)
        item_kind, signature = ItemKind.STATIC, f"{visibility.prefix}static {mutability}{name}: {ty};"
    elif kind == "macro_definition":
        item_kind = ItemKind.MACRO
        signature = f"macro_rules! {_field_text(node, 'name', source)} {{ ... }}"
    elif kind == "use_declaration":
        if visibility is not Visibility.PUB:
            return None
        item_kind, signature = ItemKind.USE, _clean_text(node, source)
    else:
        return None

    doc_comment, attributes = _leading_trivia(node, source)
    if item_kind is ItemKind.MACRO:
        visibility = Visibility.PUB if "macro_export" in attributes else Visibility.PRIVATE

    if impl_info is not None:
        name = f"{impl_info.trait_name} for {impl_info.self_ty}" if impl_info.trait_name else impl_info.self_ty
    elif item_kind is ItemKind.USE:
        name = _use_tree_name(node.child_by_field_name("argument"), source)
    else:
        name = _field_text(node, "name", source)

    return ParsedItem(
        name=name,
        kind=item_kind,
        visibility=visibility,
        signature=signature,
        doc_comment=doc_comment,
        line_start=node.start_point.row + 1,
        line_end=node.end_point.row + 1,
        impl_info=impl_info,
    )


# -- use paths ---------------------------------------------------------------


def _join_use(prefix: str, path: str) -> str:
    if not prefix:
        return path
    if not path:
        return prefix
    return f"{prefix}::{path}"


def _expand_use_tree(node: Node, source: bytes, prefix: str, out: list[str]) -> None:
    kind = node.type
    if kind in _PATH_NODE_TYPES or kind == "use_wildcard":
        out.append(_join_use(prefix, _compact(node, source)))
    elif kind == "use_as_clause":
        path = node.child_by_field_name("path")
        if path is not None:
            _expand_use_tree(path, source, prefix, out)
    elif kind == "scoped_use_list":
        path = node.child_by_field_name("path")
        new_prefix = _join_use(prefix, _compact(path, source)) if path is not None else prefix
        use_list = node.child_by_field_name("list")
        if use_list is not None:
            _expand_use_tree(use_list, source, new_prefix, out)
    elif kind == "use_list":
        for child in node.named_children:
            if child.type not in _COMMENT_TYPES:
                _expand_use_tree(child, source, prefix, out)
    else:
        logger.debug("Ignoring unexpected use tree node %s", kind)


def _is_test_only(node: Node, source: bytes) -> bool:
    _, attributes = _leading_trivia(node, source)
    return any(is_test_attribute(attribute) for attribute in attributes)


def _collect_use_paths(container: Node, source: bytes) -> list[str]:
    paths: list[str] = []
    for child in container.named_children:
        if child.type == "use_declaration":
            if _is_test_only(child, source):
                continue
            argument = child.child_by_field_name("argument")
            if argument is not None:
                _expand_use_tree(argument, source, "", paths)
        elif child.type == "mod_item":
            body = child.child_by_field_name("body")
            if body is not None and not _is_test_only(child, source):
                paths.extend(_collect_use_paths(body, source))
    return paths


# -- units -------------------------------------------------------------------


def _module_decl(node: Node, source: bytes) -> ModuleDecl:
    doc_comment, attributes = _leading_trivia(node, source)
    body_node = node.child_by_field_name("body")
    return ModuleDecl(
        name=_field_text(node, "name", source),
        visibility=_visibility(node, source),
        doc_comment=doc_comment,
        line=node.start_point.row + 1,
        path_override=_path_override(attributes),
        is_test=any(is_test_attribute(attribute) for attribute in attributes),
        body=_build_unit(body_node, source, use_paths=()) if body_node is not None else None,
    )


def _build_unit(container: Node, source: bytes, use_paths: tuple[str, ...]) -> ParsedUnit:
    items: list[ParsedItem] = []
    modules: list[ModuleDecl] = []
    for child in container.named_children:
        if child.type == "mod_item":
            modules.append(_module_decl(child, source))
            continue
        item = _item_from_node(child, source)
        if item is not None:
            items.append(item)
    return ParsedUnit(
        items=tuple(items),
        use_paths=use_paths,
        inner_doc=_inner_doc(container, source),
        modules=tuple(modules),
    )


__all__ = [
    "RUST_LANGUAGE",
    "ModuleDecl",
    "ParsedItem",
    "ParsedUnit",
    "SourceParser",
    "extract_import_paths",
    "is_test_attribute",
    "parse_items",
]
