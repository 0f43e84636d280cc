"""Cross-reference views derived from a resolved crate forest.

One walk over every module collects the raw facts; four views are then built
from them:

* trait implementation map (trait -> implementing types)
* conversion chains assembled from ``From<T>`` impls
* intra-crate module dependency graph from ``use`` paths
* type usage hotspots from item signatures

Everything works on syntactic facts only. Output ordering is deterministic.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable

from rsmap.model import PATH_SEPARATOR, ROOT_MODULE_PATH, CrateInfo, ItemKind, display_module_path

logger = logging.getLogger(__name__)

CHAIN_ARROW = " -> "
SUPER_MODULE = "super"
DEFAULT_HOTSPOT_MIN_MODULES = 3
DEFAULT_TYPE_STOPLIST: frozenset[str] = frozenset(
    {
        "Self",
        "String",
        "Vec",
        "Box",
        "Option",
        "Result",
        "Ok",
        "Err",
        "Some",
        "None",
        "HashMap",
        "HashSet",
        "BTreeMap",
        "BTreeSet",
        "Rc",
        "Arc",
        "Mutex",
        "RwLock",
        "Pin",
        "Cow",
        "PhantomData",
        "Where",
        "Fn",
        "FnMut",
        "FnOnce",
    }
)

_TOKEN_SPLIT = re.compile(r"[^\w]+")
_AROUND_OPENERS = re.compile(r"\s*(<|::)\s*")
_BEFORE_CLOSER = re.compile(r"\s+>")
_COMMA = re.compile(r"\s*,\s*")


@dataclass(frozen=True, slots=True)
class Relationships:
    """The four derived views, ready for rendering."""

    trait_impls: dict[str, tuple[str, ...]] = field(default_factory=dict)
    conversion_chains: tuple[str, ...] = ()
    module_deps: dict[str, tuple[str, ...]] = field(default_factory=dict)
    hotspots: tuple[tuple[str, int], ...] = ()


def normalize_type_name(name: str) -> str:
    """Canonical spelling of a type or trait name.

    Names with generic brackets have whitespace collapsed and removed around
    ``<``, ``>`` and ``::`` with commas spelled ``", "``. Other names are only
    trimmed.
    """
    name = name.strip()
    if "<" not in name:
        return name
    name = " ".join(name.split())
    name = _AROUND_OPENERS.sub(r"\1", name)
    name = _BEFORE_CLOSER.sub(">", name)
    return _COMMA.sub(", ", name)


def split_generic_args(args: str) -> list[str]:
    """Split a generic argument list on top-level commas."""
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for char in args:
        if char in "<([":
            depth += 1
        elif char in ">)]":
            depth -= 1
        if char == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    tail = "".join(current).strip()
    if tail or parts:
        parts.append(tail)
    return parts


def conversion_source(trait_name: str) -> str | None:
    """Source type of a ``From<T>`` trait name, or None for any other trait."""
    trait_name = normalize_type_name(trait_name)
    open_index = trait_name.find("<")
    if open_index == -1 or not trait_name.endswith(">"):
        return None
    base = trait_name[:open_index].strip()
    if base.rsplit(PATH_SEPARATOR, 1)[-1] != "From":
        return None
    args = split_generic_args(trait_name[open_index + 1 : -1])
    if len(args) != 1 or not args[0]:
        return None
    return args[0]


def build_conversion_chains(edges: Iterable[tuple[str, str]]) -> list[str]:
    """Assemble ``source -> target`` edges into maximal chains.

    Chains start at sources that are never targets and are followed
    depth-first, each node visited once across the whole assembly. A fork
    emits one chain per branch. Edges not covered by any emitted chain
    (cycles, or edges into an already visited node) are emitted alone.
    """
    unique_edges = sorted(set(edges))
    if not unique_edges:
        return []

    graph: dict[str, list[str]] = defaultdict(list)
    for source, target in unique_edges:
        graph[source].append(target)

    targets = {target for _, target in unique_edges}
    starts = sorted({source for source, _ in unique_edges} - targets)

    chains: list[list[str]] = []
    visited: set[str] = set()

    def follow(current: str, chain: list[str]) -> None:
        followed = False
        for nxt in graph.get(current, ()):
            if nxt in visited:
                continue
            followed = True
            visited.add(nxt)
            chain.append(nxt)
            follow(nxt, chain)
            chain.pop()
        if not followed and len(chain) > 1:
            chains.append(list(chain))

    for start in starts:
        visited.add(start)
        follow(start, [start])

    covered = {(chain[i], chain[i + 1]) for chain in chains for i in range(len(chain) - 1)}
    rendered = [CHAIN_ARROW.join(chain) for chain in chains]
    rendered.extend(
        f"{source}{CHAIN_ARROW}{target}" for source, target in unique_edges if (source, target) not in covered
    )
    return rendered


def internal_module_dependency(use_path: str) -> str | None:
    """Module a ``use`` path points into, or None for paths outside the crate."""
    crate_prefix = ROOT_MODULE_PATH + PATH_SEPARATOR
    if use_path.startswith(crate_prefix):
        parts = use_path[len(crate_prefix) :].split(PATH_SEPARATOR)
        if len(parts) >= 2:
            return PATH_SEPARATOR.join(parts[:-1])
        return parts[0] or None

    super_prefix = SUPER_MODULE + PATH_SEPARATOR
    if use_path.startswith(super_prefix):
        parts = use_path.split(PATH_SEPARATOR)
        if len(parts) <= 2:
            return SUPER_MODULE
        last = parts[-1]
        # Capitalized or glob: the last segment names items, not a module
        if last == "*" or last[:1].isupper():
            return PATH_SEPARATOR.join(parts[:-1])
        return use_path
    return None


def signature_type_names(signature: str, stoplist: frozenset[str] = DEFAULT_TYPE_STOPLIST) -> list[str]:
    """Capitalized identifiers in a signature, minus the stoplist."""
    return [
        token
        for token in _TOKEN_SPLIT.split(signature)
        if len(token) > 1 and token[0].isupper() and token not in stoplist
    ]


def extract_relationships(
    crates: Iterable[CrateInfo],
    *,
    hotspot_min_modules: int = DEFAULT_HOTSPOT_MIN_MODULES,
    stoplist: Iterable[str] = DEFAULT_TYPE_STOPLIST,
) -> Relationships:
    """Build all four views in a single walk of the forest."""
    stop = frozenset(stoplist)
    impls: dict[str, set[str]] = defaultdict(set)
    conversions: list[tuple[str, str]] = []
    deps: dict[str, set[str]] = {}
    type_modules: dict[str, set[tuple[str, str]]] = defaultdict(set)

    for crate in crates:
        for module in crate.root_module.iter_modules():
            module_key = display_module_path(module.path)
            module_deps = deps.setdefault(module_key, set())
            for use_path in module.use_statements:
                dependency = internal_module_dependency(use_path)
                if dependency and dependency != module_key:
                    module_deps.add(dependency)

            for item in module.items:
                for type_name in signature_type_names(item.signature, stop):
                    type_modules[type_name].add((crate.name, module.path))
                if item.kind is not ItemKind.IMPL or item.impl_info is None:
                    continue
                info = item.impl_info
                if info.trait_name is None:
                    continue
                self_ty = normalize_type_name(info.self_ty)
                impls[normalize_type_name(info.trait_name)].add(self_ty)
                source = conversion_source(info.trait_name)
                if source is not None:
                    conversions.append((source, self_ty))

    hotspots = sorted(
        ((name, len(modules)) for name, modules in type_modules.items() if len(modules) >= hotspot_min_modules),
        key=lambda entry: (-entry[1], entry[0]),
    )
    logger.debug(
        "Extracted %d traits, %d conversions, %d hotspots",
        len(impls),
        len(conversions),
        len(hotspots),
    )
    return Relationships(
        trait_impls={name: tuple(sorted(types)) for name, types in sorted(impls.items())},
        conversion_chains=tuple(build_conversion_chains(conversions)),
        module_deps={name: tuple(sorted(targets)) for name, targets in sorted(deps.items())},
        hotspots=tuple(hotspots),
    )


__all__ = [
    "CHAIN_ARROW",
    "DEFAULT_HOTSPOT_MIN_MODULES",
    "DEFAULT_TYPE_STOPLIST",
    "Relationships",
    "build_conversion_chains",
    "conversion_source",
    "extract_relationships",
    "internal_module_dependency",
    "normalize_type_name",
    "signature_type_names",
]
