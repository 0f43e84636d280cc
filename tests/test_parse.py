"""Tests for the tree-sitter Rust parser."""

from __future__ import annotations

import pytest

from rsmap.errors import PARSE_001, ParseError
from rsmap.model import ItemKind, Visibility
from rsmap.parse import SourceParser, extract_import_paths, is_test_attribute, parse_items


def _items_by_name(parser: SourceParser, source: str) -> dict:
    return {item.name: item for item in parser.parse_items(source.encode())}


class TestFunctions:
    def test_signature_strips_body_and_keeps_doc(self, parser: SourceParser) -> None:
        source = (
            "/// Adds numbers.\n"
            "///\n"
            "/// Twice.\n"
            "pub fn add(a: i32, b: i32) -> i32 {\n"
            "    a + b\n"
            "}\n"
        )
        [item] = parser.parse_items(source.encode())
        assert item.name == "add"
        assert item.kind == ItemKind.FUNCTION
        assert item.visibility == Visibility.PUB
        assert item.signature == "pub fn add(a: i32, b: i32) -> i32;"
        assert item.doc_comment == "Adds numbers.\n\nTwice."
        assert (item.line_start, item.line_end) == (4, 6)

    def test_multiline_parameters_are_collapsed(self, parser: SourceParser) -> None:
        source = "pub(crate) fn long(\n    first: u8,\n    second: u8,\n) -> u8 {\n    first\n}\n"
        [item] = parser.parse_items(source.encode())
        assert item.visibility == Visibility.PUB_CRATE
        assert item.signature == "pub(crate) fn long(first: u8, second: u8) -> u8;"

    def test_private_and_pub_super(self, parser: SourceParser) -> None:
        items = _items_by_name(parser, "fn hidden() {}\npub(super) fn parent() {}\n")
        assert items["hidden"].visibility == Visibility.PRIVATE
        assert items["parent"].visibility == Visibility.PUB_SUPER

    def test_comments_and_attributes_removed_from_signature(self, parser: SourceParser) -> None:
        source = "#[inline]\npub fn f(/* ignored */ x: u8) -> u8 {\n    x\n}\n"
        [item] = parser.parse_items(source.encode())
        assert item.signature == "pub fn f(x: u8) -> u8;"
        assert item.line_start == 2

    def test_non_doc_comments_are_not_docs(self, parser: SourceParser) -> None:
        source = "// plain comment\n//// four slashes\npub fn f() {}\n"
        [item] = parser.parse_items(source.encode())
        assert item.doc_comment is None


class TestTypes:
    def test_struct_fields_one_per_line(self, parser: SourceParser) -> None:
        source = (
            "/// A point.\n"
            "#[derive(Debug)]\n"
            "pub struct Point {\n"
            "    /// X coordinate.\n"
            "    pub x: f64,\n"
            "    y: f64,\n"
            "}\n"
        )
        [item] = parser.parse_items(source.encode())
        assert item.kind == ItemKind.STRUCT
        assert item.doc_comment == "A point."
        assert item.signature == "pub struct Point {\n    pub x: f64,\n    y: f64,\n}"
        assert (item.line_start, item.line_end) == (3, 7)

    def test_tuple_and_unit_structs(self, parser: SourceParser) -> None:
        items = _items_by_name(parser, "pub struct Id(pub u64);\nstruct Marker;\n")
        assert items["Id"].signature == "pub struct Id(pub u64);"
        assert items["Marker"].signature == "struct Marker;"

    def test_enum_variants_one_per_line(self, parser: SourceParser) -> None:
        source = "pub enum Shape {\n    Circle { radius: f64 },\n    Square(f64),\n    Empty,\n}\n"
        [item] = parser.parse_items(source.encode())
        assert item.kind == ItemKind.ENUM
        assert item.signature == "pub enum Shape {\n    Circle { radius: f64 },\n    Square(f64),\n    Empty,\n}"

    def test_type_alias_const_static(self, parser: SourceParser) -> None:
        source = (
            "pub type Map = HashMap<String, u32>;\n"
            "pub const MAX: usize = 10;\n"
            "static mut COUNTER: u32 = 0;\n"
            "pub static NAME: &str = \"x\";\n"
        )
        items = _items_by_name(parser, source)
        assert items["Map"].kind == ItemKind.TYPE_ALIAS
        assert items["Map"].signature == "pub type Map = HashMap<String, u32>;"
        assert items["MAX"].signature == "pub const MAX: usize;"
        assert items["COUNTER"].kind == ItemKind.STATIC
        assert items["COUNTER"].signature == "static mut COUNTER: u32;"
        assert items["NAME"].signature == "pub static NAME: &str;"


class TestTraitsAndImpls:
    def test_trait_lists_member_signatures(self, parser: SourceParser) -> None:
        source = (
            "pub trait Shape: Clone {\n"
            "    type Output;\n"
            "    const SIDES: u32;\n"
            "    fn area(&self) -> f64;\n"
            "    fn describe(&self) -> String {\n"
            "        String::new()\n"
            "    }\n"
            "}\n"
        )
        [item] = parser.parse_items(source.encode())
        assert item.kind == ItemKind.TRAIT
        assert item.signature == (
            "pub trait Shape: Clone {\n"
            "    type Output;\n"
            "    const SIDES: u32;\n"
            "    fn area(&self) -> f64;\n"
            "    fn describe(&self) -> String;\n"
            "}"
        )

    def test_trait_impl(self, parser: SourceParser) -> None:
        source = (
            "impl<T: Clone> From<Vec<T>> for Stack<T> {\n"
            "    fn from(items: Vec<T>) -> Self {\n"
            "        Stack { items }\n"
            "    }\n"
            "}\n"
        )
        [item] = parser.parse_items(source.encode())
        assert item.kind == ItemKind.IMPL
        assert item.name == "From<Vec<T>> for Stack<T>"
        assert item.impl_info is not None
        assert item.impl_info.trait_name == "From<Vec<T>>"
        assert item.impl_info.self_ty == "Stack<T>"
        assert item.signature == "impl<T: Clone> From<Vec<T>> for Stack<T> {\n    fn from(items: Vec<T>) -> Self;\n}"

    def test_inherent_impl(self, parser: SourceParser) -> None:
        source = "impl Scope {\n    pub fn new() -> Self {\n        Scope {}\n    }\n    fn private(&self) {}\n}\n"
        [item] = parser.parse_items(source.encode())
        assert item.name == "Scope"
        assert item.impl_info is not None
        assert item.impl_info.trait_name is None
        assert item.signature == "impl Scope {\n    pub fn new() -> Self;\n    fn private(&self);\n}"


class TestMacrosAndUses:
    def test_exported_macro_is_public(self, parser: SourceParser) -> None:
        source = "#[macro_export]\nmacro_rules! shout {\n    ($e:expr) => { $e };\n}\nmacro_rules! quiet { () => {}; }\n"
        items = _items_by_name(parser, source)
        assert items["shout"].kind == ItemKind.MACRO
        assert items["shout"].visibility == Visibility.PUB
        assert items["shout"].signature == "macro_rules! shout { ... }"
        assert items["quiet"].visibility == Visibility.PRIVATE

    def test_only_pub_use_is_an_item(self, parser: SourceParser) -> None:
        source = (
            "use std::fmt;\n"
            "pub use crate::models::Value;\n"
            "pub use crate::models::{Expr, Scope};\n"
            "pub use self::inner::Thing as Alias;\n"
        )
        items = parser.parse_items(source.encode())
        assert [item.name for item in items] == ["crate::models::Value", "crate::models::{...}", "Alias"]
        assert all(item.kind == ItemKind.USE for item in items)
        assert items[0].signature == "pub use crate::models::Value;"

    def test_module_function_wrappers(self) -> None:
        assert [item.name for item in parse_items(b"fn a() {}\nfn b() {}\n")] == ["a", "b"]


class TestImportPaths:
    def test_use_trees_are_expanded(self) -> None:
        source = (
            "use std::collections::{HashMap, hash_map::Entry};\n"
            "use crate::models::*;\n"
            "use super::Thing as Other;\n"
            "mod inner {\n"
            "    use crate::utils::helper;\n"
            "}\n"
            "#[cfg(test)]\n"
            "mod tests {\n"
            "    use crate::testing::Fixture;\n"
            "}\n"
        )
        assert extract_import_paths(source.encode()) == [
            "std::collections::HashMap",
            "std::collections::hash_map::Entry",
            "crate::models::*",
            "super::Thing",
            "crate::utils::helper",
        ]

    def test_test_only_uses_are_skipped(self) -> None:
        source = (
            "#[cfg(test)]\n"
            "use crate::testutil::Mock;\n"
            "#[cfg(all(test, unix))] use crate::testutil::Unix;\n"
            "#[cfg(not(test))]\n"
            "use crate::models::Value;\n"
        )
        assert extract_import_paths(source.encode()) == ["crate::models::Value"]

    def test_no_uses(self) -> None:
        assert extract_import_paths(b"fn main() {}\n") == []


class TestParseUnit:
    SOURCE = (
        "//! Crate docs.\n"
        "//! Second line.\n"
        "/// Outer doc.\n"
        "pub mod a;\n"
        "#[path = \"custom/b_impl.rs\"]\n"
        "mod b;\n"
        "#[cfg(test)]\n"
        "mod tests;\n"
        "pub(crate) mod inline {\n"
        "    //! Inline inner.\n"
        "    use crate::a::Thing;\n"
        "    pub fn f() {}\n"
        "}\n"
        "pub fn top() {}\n"
    )

    def test_module_declarations(self, parser: SourceParser) -> None:
        unit = parser.parse_unit(self.SOURCE.encode())
        assert unit.inner_doc == "Crate docs.\nSecond line."
        assert [item.name for item in unit.items] == ["top"]

        a, b, tests, inline = unit.modules
        assert (a.name, a.visibility, a.doc_comment, a.is_inline) == ("a", Visibility.PUB, "Outer doc.", False)
        assert b.path_override == "custom/b_impl.rs"
        assert b.visibility == Visibility.PRIVATE
        assert tests.is_test
        assert inline.visibility == Visibility.PUB_CRATE
        assert inline.is_inline

    def test_inline_body_is_a_nested_unit(self, parser: SourceParser) -> None:
        unit = parser.parse_unit(self.SOURCE.encode())
        body = unit.modules[-1].body
        assert body is not None
        assert body.inner_doc == "Inline inner."
        assert [item.name for item in body.items] == ["f"]
        assert body.use_paths == ()
        assert "crate::a::Thing" in unit.use_paths

    def test_syntax_error_raises_with_line(self, parser: SourceParser) -> None:
        with pytest.raises(ParseError) as excinfo:
            parser.parse_unit(b"pub fn ok() {}\n\npub fn broken( {\n", "src/broken.rs")
        assert excinfo.value.code == PARSE_001
        assert excinfo.value.line is not None
        assert "src/broken.rs" in str(excinfo.value)


@pytest.mark.parametrize(
    ("attribute", "expected"),
    [
        ("cfg(test)", True),
        ("cfg(all(test, feature = \"slow\"))", True),
        ("cfg(not(test))", False),
        ("cfg(feature = \"test-utils\")", False),
        ("derive(Debug)", False),
    ],
)
def test_is_test_attribute(attribute: str, expected: bool) -> None:
    assert is_test_attribute(attribute) is expected
