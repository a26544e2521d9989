"""Resolve translation references inside page configurations.

The renderer consumes a page config whose widget settings carry literals; this
module produces that view by substituting every ``t:`` reference with the
merged translation value. Dangling references resolve to ``None`` and deciding
a fallback is left to the renderer.
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import typing as typ

from ..references import is_reference, path_of
from .tree import get_path

if typ.TYPE_CHECKING:
    from ..models import PageConfig


def resolve_node(node: typ.Any, merged: cabc.Mapping[str, typ.Any]) -> typ.Any:
    """Return a copy of ``node`` with every reference replaced by its merged value."""
    match node:
        case str() if is_reference(node):
            return get_path(merged, path_of(node))
        case cabc.Mapping():
            return {key: resolve_node(value, merged) for key, value in node.items()}
        case list() | tuple():
            return [resolve_node(item, merged) for item in node]
        case _:
            return node


def translate_page_config(
    page_config: PageConfig, merged: cabc.Mapping[str, typ.Any]
) -> PageConfig:
    """Return ``page_config`` with section and widget settings resolved."""
    sections = [
        dc.replace(
            section,
            settings=resolve_node(section.settings, merged),
            widgets=tuple(
                dc.replace(widget, settings=resolve_node(widget.settings, merged))
                for widget in section.widgets
            ),
        )
        for section in page_config.sections
    ]
    return dc.replace(page_config, sections=tuple(sections))


__all__ = ["resolve_node", "translate_page_config"]
