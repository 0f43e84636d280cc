"""Renderers for the four index layers."""

from rsmap.render.api_surface import render_api_surface
from rsmap.render.lookup import build_lookup_index, render_lookup_index
from rsmap.render.overview import module_description, render_overview
from rsmap.render.relationships import render_relationships

__all__ = [
    "build_lookup_index",
    "module_description",
    "render_api_surface",
    "render_lookup_index",
    "render_overview",
    "render_relationships",
]
