"""``relationships.md``: the four cross-reference views."""

from __future__ import annotations

from rsmap.relationships import DEFAULT_HOTSPOT_MIN_MODULES, Relationships
from rsmap.render.text import aligned_rows, section


def render_relationships(
    relationships: Relationships,
    hotspot_min_modules: int = DEFAULT_HOTSPOT_MIN_MODULES,
) -> str:
    impl_rows = [(trait, ", ".join(types)) for trait, types in relationships.trait_impls.items()]
    dep_rows = [
        (module, ", ".join(deps) if deps else "(no internal deps)")
        for module, deps in relationships.module_deps.items()
    ]
    hotspot_rows = [(name, f"used in {count} modules") for name, count in relationships.hotspots]
    threshold = f"{hotspot_min_modules}+ modules"

    return "".join(
        [
            section("Trait Implementations", aligned_rows(impl_rows, " <- "), "(none found)"),
            section("Conversion Chains", list(relationships.conversion_chains), "(no From impls found)"),
            section("Module Dependencies", aligned_rows(dep_rows, " -> "), "(none found)"),
            section(
                f"Key Types (referenced from {threshold})",
                aligned_rows(hotspot_rows, " — "),
                f"(no types referenced from {threshold})",
            ),
        ]
    )
