"""Renderers for the planet page and the merged Atom feed."""

from planet_aggregation.output.atom import render_atom, write_atom
from planet_aggregation.output.html import render_html, write_html

__all__ = [
    "render_atom",
    "write_atom",
    "render_html",
    "write_html",
]
