"""Dual-source translation store with provenance tracking.

A page reads its strings from two trees: the *common* tree shared by every
template of a theme and the *template* tree scoped to the page being edited.
:class:`TranslationMergeStore` keeps both source trees, the merged read view
(template wins on collisions), and a provenance map recording which tree owns
each leaf path. Writes consult the provenance map so an edit lands in the tree
it was loaded from; the merged view is always recomputed from the two sources
and never patched directly.

Examples
--------
>>> store = TranslationMergeStore()
>>> store.load({"common": {"title": "Hi"}}, {"home": {"heading": "t:common.title"}})
>>> store.resolve_value("t:common.title")
'Hi'
>>> store.source_of(["common", "title"]).value
'common'
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import enum
import logging
import typing as typ

from .._constants import COMMON_TEMPLATE_ID, DEFAULT_LANGUAGE, SECTIONS_NAMESPACE
from ..api import EditorAPIError
from ..events import ChangeEmitter, EventKind, StoreEvent
from ..references import is_reference, join_path, path_of
from .tree import Tree, deep_merge, delete_path, flatten_paths, get_path, set_path

if typ.TYPE_CHECKING:
    from ..api import EditorAPIClient

logger = logging.getLogger(__name__)

_STORE_NAME = "translations"
_MISSING = object()


class TranslationSource(enum.Enum):
    """Which source tree owns a translation path."""

    COMMON = "common"
    TEMPLATE = "template"


def build_provenance(
    common: cabc.Mapping[str, typ.Any], template: cabc.Mapping[str, typ.Any]
) -> dict[str, TranslationSource]:
    """Map every leaf path to its owning tree; template entries overwrite common ones."""
    provenance: dict[str, TranslationSource] = {}
    for path in flatten_paths(common):
        provenance[join_path(path)] = TranslationSource.COMMON
    for path in flatten_paths(template):
        provenance[join_path(path)] = TranslationSource.TEMPLATE
    return provenance


def section_root(section_key: str, namespace: str | None = None) -> tuple[str, ...]:
    """Return the translation path under which a section's strings live."""
    if namespace:
        return (namespace, SECTIONS_NAMESPACE, section_key)
    return (SECTIONS_NAMESPACE, section_key)


@dc.dataclass(frozen=True, slots=True)
class SavePlan:
    """Snapshot of both translation trees taken when a save starts."""

    theme_id: str
    template_id: str
    language: str
    common: Tree
    template: Tree

    def send(self, client: EditorAPIClient) -> list[str]:
        """Save each tree independently and return the ids that failed.

        Only the snapshot is read, so this may run off the event loop.
        """
        failures: list[str] = []
        for tree_id, tree in (
            (COMMON_TEMPLATE_ID, self.common),
            (self.template_id, self.template),
        ):
            try:
                client.save_translation(self.theme_id, tree_id, self.language, tree)
            except EditorAPIError as exc:
                logger.error("Saving %s translations failed: %s", tree_id, exc)
                failures.append(tree_id)
        return failures


class TranslationMergeStore:
    """Own the common and template translation trees for the active locale."""

    def __init__(self, *, language: str = DEFAULT_LANGUAGE) -> None:
        self.language = language
        self.theme_id: str | None = None
        self.template_id: str | None = None
        self.common: Tree = {}
        self.template: Tree = {}
        self.merged: Tree = {}
        self.provenance: dict[str, TranslationSource] = {}
        self.has_unsaved_changes = False
        self.is_loading = False
        self.is_saving = False
        self.error: str | None = None
        self.events = ChangeEmitter()

    # Loading -----------------------------------------------------------------

    def load(
        self,
        common: cabc.Mapping[str, typ.Any] | None,
        template: cabc.Mapping[str, typ.Any] | None,
        language: str | None = None,
    ) -> None:
        """Replace both source trees and rebuild the merged view and provenance."""
        self.common = dict(common or {})
        self.template = dict(template or {})
        if language:
            self.language = language
        self.merged = deep_merge(self.common, self.template)
        self.provenance = build_provenance(self.common, self.template)
        self.has_unsaved_changes = False
        self._emit(EventKind.TRANSLATIONS_LOADED, language=self.language)

    def fetch(
        self,
        client: EditorAPIClient,
        theme_id: str,
        template_id: str,
        language: str,
    ) -> bool:
        """Load both trees through ``client``.

        Returns ``True`` on success. On failure the previous trees are kept,
        :attr:`error` is set, and ``False`` is returned.
        """
        self.is_loading = True
        self.error = None
        try:
            common = client.get_translation(theme_id, COMMON_TEMPLATE_ID, language)
            template = client.get_translation(theme_id, template_id, language)
        except EditorAPIError as exc:
            self._fail(str(exc) or "Failed to fetch translation")
            return False
        finally:
            self.is_loading = False
        self.theme_id = theme_id
        self.template_id = template_id
        self.load(common, template, language)
        return True

    # Reading -----------------------------------------------------------------

    def resolve(self, path: cabc.Sequence[str]) -> typ.Any:
        """Return the merged value at ``path``; dangling paths resolve to ``None``."""
        return get_path(self.merged, path)

    def resolve_value(self, value: typ.Any) -> typ.Any:
        """Resolve ``value`` when it is a reference, otherwise return it unchanged."""
        if is_reference(value):
            return self.resolve(path_of(value))
        return value

    def source_of(self, path: cabc.Sequence[str]) -> TranslationSource:
        """Return the tree that owns ``path``; unknown paths are template-scoped."""
        return self.provenance.get(join_path(path), TranslationSource.TEMPLATE)

    # Writing -----------------------------------------------------------------

    def update_translation(self, path: cabc.Sequence[str], value: typ.Any) -> None:
        """Write ``value`` into the tree that owns ``path``.

        Parameters
        ----------
        path : Sequence[str]
            Translation path segments, e.g. ``["common", "title"]``.
        value : Any
            New leaf value.

        Notes
        -----
        Paths absent from the provenance map are treated as template-scoped.
        The merged view is recomputed from both trees after the write.
        """
        segments = tuple(path)
        if not segments:
            logger.error("Refusing to update translation with an empty path")
            return
        source = self.source_of(segments)
        if source is TranslationSource.COMMON:
            self.common = set_path(self.common, segments, value)
        else:
            self.template = set_path(self.template, segments, value)
        self._retag(segments)
        self._refresh(EventKind.TRANSLATION_UPDATED, path=join_path(segments))

    def create_section_translations(
        self,
        section_key: str,
        values: cabc.Mapping[str, typ.Any],
        namespace: str | None = None,
    ) -> None:
        """Write a section's translation subtree into the template tree."""
        root = section_root(section_key, namespace)
        existing = get_path(self.template, root)
        subtree = deep_merge(existing if isinstance(existing, cabc.Mapping) else {}, values)
        self.template = set_path(self.template, root, subtree)
        self._retag(root)
        self._refresh(EventKind.TRANSLATION_UPDATED, path=join_path(root))

    def remove_section_translations(
        self, section_key: str, namespace: str | None = None
    ) -> None:
        """Delete a section's translation subtree from the template tree."""
        root = section_root(section_key, namespace)
        if get_path(self.template, root) is None:
            return
        self.template = delete_path(self.template, root)
        self._retag(root)
        self._refresh(EventKind.TRANSLATION_UPDATED, path=join_path(root))

    def set_language(self, language: str) -> None:
        """Switch the active locale; callers reload both trees afterwards."""
        self.language = language

    def clear_error(self) -> None:
        """Forget the last load or save error."""
        self.error = None

    # Saving ------------------------------------------------------------------

    def save(
        self,
        client: EditorAPIClient,
        theme_id: str | None = None,
        template_id: str | None = None,
    ) -> bool:
        """Persist both trees when there are unsaved changes.

        Each tree is saved independently. When either save fails the store
        records one error message and keeps :attr:`has_unsaved_changes` set so
        the caller can retry. Returns ``True`` when both trees were persisted.
        """
        if not self.has_unsaved_changes:
            return True
        plan = self.begin_save(theme_id, template_id)
        if plan is None:
            return False
        return self.finish_save(plan, plan.send(client))

    def begin_save(
        self, theme_id: str | None = None, template_id: str | None = None
    ) -> SavePlan | None:
        """Snapshot both trees for saving and mark the store as saving.

        Returns ``None`` and records an error when the theme or template id
        is unknown.
        """
        theme = theme_id or self.theme_id
        template_key = template_id or self.template_id
        if not theme or not template_key:
            self._fail("Cannot save translations without a theme and template id")
            return None
        self.is_saving = True
        self.error = None
        return SavePlan(
            theme_id=theme,
            template_id=template_key,
            language=self.language,
            common=self.common,
            template=self.template,
        )

    def finish_save(self, plan: SavePlan, failures: cabc.Sequence[str]) -> bool:
        """Record the outcome of sending ``plan``.

        The unsaved flag is only cleared when neither tree was replaced while
        the save was in flight; edits made meanwhile stay pending.
        """
        self.is_saving = False
        if failures:
            self._fail(f"Failed to save translations ({', '.join(failures)})")
            return False
        if self.common is plan.common and self.template is plan.template:
            self.has_unsaved_changes = False
        else:
            logger.debug("Translations changed during save; keeping unsaved flag")
        self._emit(EventKind.TRANSLATIONS_SAVED, language=plan.language)
        return True

    # Internals ---------------------------------------------------------------

    def _retag(self, prefix: tuple[str, ...]) -> None:
        """Recompute provenance for every path at or below ``prefix``."""
        key = join_path(prefix)
        nested = key + "."
        self.provenance = {
            path: source
            for path, source in self.provenance.items()
            if path != key and not path.startswith(nested)
        }
        for source, tree in (
            (TranslationSource.COMMON, self.common),
            (TranslationSource.TEMPLATE, self.template),
        ):
            node = get_path(tree, prefix, _MISSING)
            if node is _MISSING:
                continue
            if isinstance(node, cabc.Mapping):
                for path in flatten_paths(node, prefix):
                    self.provenance[join_path(path)] = source
            else:
                self.provenance[key] = source

    def _refresh(self, kind: EventKind, **detail: typ.Any) -> None:
        self.merged = deep_merge(self.common, self.template)
        self.has_unsaved_changes = True
        self._emit(kind, **detail)

    def _fail(self, message: str) -> None:
        logger.error(message)
        self.error = message
        self._emit(EventKind.ERROR, message=message)

    def _emit(self, kind: EventKind, **detail: typ.Any) -> None:
        self.events.emit(StoreEvent(kind, _STORE_NAME, detail))


__all__ = [
    "SavePlan",
    "TranslationMergeStore",
    "TranslationSource",
    "build_provenance",
    "section_root",
]
