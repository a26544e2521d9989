"""Editing core for template-driven storefront pages.

This package holds the state behind a visual page editor: the page
configuration tree, the two translation trees merged under template
precedence, the library of reusable sections, and the render-data staleness
machine. The ``page-editor`` console script drives the same stores against
JSON files.

Exports
-------
- ``PageConfigStore``: editable page configuration and selection.
- ``TranslationMergeStore``: common and template translation trees.
- ``SectionInstantiator``: stamps library sections into unique instances.
- ``EditorSession``: async load, refetch, and save flows.
- ``app``: Cyclopts application entry for subcommands.
- ``main``: Convenience function that invokes the Cyclopts app.

Examples
--------
>>> from page_editor import PageConfigStore, TranslationMergeStore
>>> translations = TranslationMergeStore()
>>> store = PageConfigStore(translations=translations, template_id="home")
>>> store.current.sections
()
"""

from __future__ import annotations

from .cli import app, main
from .instantiator import SectionInstantiator
from .session import EditorSession
from .store import PageConfigStore
from .translations import TranslationMergeStore

__all__ = [
    "EditorSession",
    "PageConfigStore",
    "SectionInstantiator",
    "TranslationMergeStore",
    "app",
    "main",
]
