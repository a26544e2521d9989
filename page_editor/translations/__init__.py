"""Translation trees, their merged view, and reference resolution.

This subpackage owns the two source translation trees of the active locale
(the theme-wide *common* tree and the page's *template* tree), merges them
with template precedence, records which tree owns every leaf, and resolves
``t:`` references in page configurations against the merged view. The primary
entry point is :class:`TranslationMergeStore`.

Examples
--------
>>> from page_editor.translations import TranslationMergeStore
>>> store = TranslationMergeStore()
>>> store.load({"a": {"x": 1, "y": 2}}, {"a": {"y": 9}})
>>> store.merged["a"]
{'x': 1, 'y': 9}
"""

from .resolver import resolve_node, translate_page_config
from .store import (
    SavePlan,
    TranslationMergeStore,
    TranslationSource,
    build_provenance,
    section_root,
)
from .tree import deep_merge, delete_path, flatten_paths, get_path, set_path

__all__ = [
    "SavePlan",
    "TranslationMergeStore",
    "TranslationSource",
    "build_provenance",
    "deep_merge",
    "delete_path",
    "flatten_paths",
    "get_path",
    "resolve_node",
    "section_root",
    "set_path",
    "translate_page_config",
]
