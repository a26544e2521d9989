"""Editable page configuration with structural mutation operations.

:class:`PageConfigStore` owns the document tree of the page being edited:
ordered sections with ordered widgets, and the map of data sources those
widgets bind to. Every mutation builds a new :class:`~page_editor.models.PageConfig`
instead of changing the old one, so snapshots held by renderers stay valid.
Mutations that change the page's data requirements are staged in the pending
slot of the store's :class:`~page_editor.staleness.RenderDataCoordinator`
until render data has been refetched.

Missing sections, widgets, or data sources are logged and the operation does
nothing; no exception reaches the caller.

Examples
--------
>>> from page_editor.models import Section
>>> store = PageConfigStore()
>>> _ = store.add_section(Section(id="hero", type="hero-section"))
>>> store.current.section_ids(), store.selected_section_id
(['hero'], 'hero')
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import logging
import typing as typ

from .events import ChangeEmitter, EventKind, StoreEvent
from .instantiator import InstanceCollisionError, SectionInstantiator, section_translation_key
from .models import DataSource, PageConfig, Section, TemplateDocument, Widget
from .staleness import RenderDataCoordinator, RenderDataStatus

if typ.TYPE_CHECKING:
    from .library import LibraryRegistry
    from .staleness import CancellationToken, RefetchRequest
    from .translations import TranslationMergeStore

logger = logging.getLogger(__name__)

_STORE_NAME = "page"
_SECTION_FIELDS = frozenset(field.name for field in dc.fields(Section))
_WIDGET_FIELDS = frozenset(field.name for field in dc.fields(Widget))
_DATA_SOURCE_FIELDS = frozenset(field.name for field in dc.fields(DataSource))


class PageConfigStore:
    """Own the editable page configuration, selection, and render-data state."""

    def __init__(
        self,
        *,
        page_config: PageConfig | None = None,
        library: LibraryRegistry | None = None,
        instantiator: SectionInstantiator | None = None,
        translations: TranslationMergeStore | None = None,
        template_id: str | None = None,
    ) -> None:
        """Initialise the store.

        Parameters
        ----------
        page_config : PageConfig, optional
            Initial committed configuration.
        library : LibraryRegistry, optional
            Registry consulted by :meth:`add_section_from_library`.
        instantiator : SectionInstantiator, optional
            Stamps library blocks; defaults to one with random suffixes.
        translations : TranslationMergeStore, optional
            Translation store receiving section-scoped translations when
            sections are added from the library or removed.
        template_id : str, optional
            Translation namespace of the page being edited.
        """
        self.render = RenderDataCoordinator(page_config)
        self.library = library
        self.instantiator = instantiator or SectionInstantiator()
        self.translations = translations
        self.template_id = template_id
        self.metadata: dict[str, typ.Any] = {}
        self.layout: typ.Any = None
        self.selected_section_id: str | None = None
        self.selected_widget_id: str | None = None
        self.show_settings_panel = False
        self.expanded_sections: set[str] = set()
        self.events = ChangeEmitter()

    # Snapshots ---------------------------------------------------------------

    @property
    def page_config(self) -> PageConfig | None:
        """The committed configuration the current render data matches."""
        return self.render.committed

    @property
    def pending_page_config(self) -> PageConfig | None:
        """Edits waiting for a render-data refetch, if any."""
        return self.render.pending

    @property
    def current(self) -> PageConfig:
        """The newest configuration: pending when staged, committed otherwise."""
        return self.render.working or PageConfig()

    @property
    def status(self) -> RenderDataStatus:
        return self.render.status

    @property
    def render_data(self) -> dict[str, typ.Any] | None:
        return self.render.render_data

    # Loading -----------------------------------------------------------------

    def load_document(self, document: TemplateDocument | PageConfig) -> None:
        """Replace the page with ``document`` and reset selection and staleness."""
        if isinstance(document, TemplateDocument):
            self.metadata = dict(document.metadata)
            self.layout = document.layout
            self.template_id = document.template_id or self.template_id
            config = document.page_config
        else:
            config = document
        self.render.reset(config)
        self.selected_section_id = None
        self.selected_widget_id = None
        self.show_settings_panel = False
        self.expanded_sections = set()
        self._emit(EventKind.CONFIG_LOADED, sections=len(config.sections))

    def to_document(self) -> TemplateDocument:
        """Build the template document to save from the newest configuration."""
        return TemplateDocument(
            metadata=dict(self.metadata), page_config=self.current, layout=self.layout
        )

    # Sections ----------------------------------------------------------------

    def add_section(
        self,
        section: Section,
        insert_index: int | None = None,
        extra_data_sources: cabc.Mapping[str, DataSource] | None = None,
        *,
        stage: bool = False,
    ) -> PageConfig | None:
        """Insert ``section`` and select it.

        Parameters
        ----------
        section : Section
            Section to insert; its id must not exist on the page yet.
        insert_index : int, optional
            Target position. ``None`` and out-of-range values append.
        extra_data_sources : Mapping[str, DataSource], optional
            Data sources merged into the page's data-source map.
        stage : bool, optional
            Stage the result in the pending slot and mark render data stale.

        Returns
        -------
        PageConfig or None
            The new configuration, or ``None`` when the id already exists.
        """
        base = self.current
        if base.section_index(section.id) >= 0:
            logger.error("Section already exists with ID: %s", section.id)
            return None
        sections = list(base.sections)
        if insert_index is None or not 0 <= insert_index <= len(sections):
            insert_index = len(sections)
        sections.insert(insert_index, section)
        data_sources = {**base.data_sources, **(extra_data_sources or {})}
        config = dc.replace(base, sections=tuple(sections), data_sources=data_sources)
        self._commit(config, stage=stage)

        self.selected_section_id = section.id
        self.selected_widget_id = section.widgets[0].id if section.widgets else None
        self.show_settings_panel = True
        self.expanded_sections.add(section.id)
        self._emit(EventKind.SECTION_ADDED, id=section.id, index=insert_index)
        return config

    def add_section_from_library(
        self, library_key: str, insert_after_index: int | None = None
    ) -> Section | None:
        """Stamp the library block ``library_key`` into the page.

        The new section is inserted after ``insert_after_index`` (appended when
        ``None``), receives its own translation subtree when a translation
        store and template id are set, and marks render data stale. Sections
        bringing their own data sources are staged in the pending slot.
        Returns the inserted section, or ``None`` for unknown keys and when no
        collision-free instance id could be generated.
        """
        block = self.library.get(library_key) if self.library is not None else None
        if block is None:
            logger.error("Available section not found for key: %s", library_key)
            return None

        base = self.current
        namespace = self.template_id if self.translations is not None else None
        language = self.translations.language if self.translations is not None else "en"
        try:
            instance = self.instantiator.instantiate(
                block,
                template_id=namespace,
                language=language,
                taken_ids=base.section_ids(),
                taken_keys=base.data_sources.keys(),
            )
        except InstanceCollisionError as exc:
            logger.error("%s", exc)
            return None
        if self.translations is not None and instance.translations:
            self.translations.create_section_translations(
                instance.section_key,
                instance.translations,
                namespace=instance.translation_namespace,
            )

        count = len(base.sections)
        if insert_after_index is None:
            insert_index = count
        else:
            insert_index = min(max(insert_after_index + 1, 0), count)
        staged = bool(instance.extra_data_sources)
        self.add_section(
            instance.section, insert_index, instance.extra_data_sources, stage=staged
        )
        if not staged:
            self.render.mark_stale()
        return instance.section

    def update_section(
        self, section_id: str, updates: cabc.Mapping[str, typ.Any]
    ) -> PageConfig | None:
        """Shallow-merge ``updates`` into the fields of section ``section_id``."""
        base = self.current
        index = base.section_index(section_id)
        if index < 0:
            logger.error("Section not found with ID: %s", section_id)
            return None
        section = _merge_fields(base.sections[index], updates, _SECTION_FIELDS)
        if section is None:
            return None
        if section.id != section_id and base.section_index(section.id) >= 0:
            logger.error("Section already exists with ID: %s", section.id)
            return None
        config = _replace_section(base, index, section)
        self._commit(config)
        if self.selected_section_id == section_id:
            self.selected_section_id = section.id
        self._emit(EventKind.SECTION_UPDATED, id=section.id)
        return config

    def update_section_settings(
        self, section_id: str, key: str, value: typ.Any
    ) -> PageConfig | None:
        """Set one settings key of section ``section_id``."""
        section = self.current.find_section(section_id)
        if section is None:
            logger.error("Section not found with ID: %s", section_id)
            return None
        return self.update_section(section_id, {"settings": {**section.settings, key: value}})

    def remove_section(self, section_id: str) -> PageConfig | None:
        """Remove section ``section_id`` and clear the selection.

        Section-scoped translations of the section are removed from the
        translation store, and data sources no other section binds to are
        pruned; pruning stages the result for a render-data refetch.
        """
        base = self.current
        index = base.section_index(section_id)
        if index < 0:
            logger.error("Section not found with ID: %s", section_id)
            return None
        section = base.sections[index]

        if self.translations is not None and self.template_id:
            self.translations.remove_section_translations(
                section_translation_key(section_id), namespace=self.template_id
            )

        sections = base.sections[:index] + base.sections[index + 1 :]
        remaining = dc.replace(base, sections=sections)
        still_bound = remaining.bound_data_source_keys()
        orphaned = {
            widget.data_source_key
            for widget in section.widgets
            if widget.data_source_key
            and widget.data_source_key not in still_bound
            and widget.data_source_key in base.data_sources
        }
        data_sources = {
            key: source for key, source in base.data_sources.items() if key not in orphaned
        }
        config = dc.replace(remaining, data_sources=data_sources)
        self._commit(config, stage=bool(orphaned))

        self.selected_section_id = None
        self.selected_widget_id = None
        self.show_settings_panel = False
        self.expanded_sections.discard(section_id)
        self._emit(EventKind.SECTION_REMOVED, id=section_id, pruned=sorted(orphaned))
        return config

    def move_section(self, from_id: str, to_id: str) -> PageConfig | None:
        """Move section ``from_id`` to the position currently held by ``to_id``.

        Selection moves to ``to_id``, the section whose slot was targeted.
        """
        base = self.current
        from_index = base.section_index(from_id)
        to_index = base.section_index(to_id)
        if from_index < 0 or to_index < 0:
            logger.error("Cannot move section %s to %s: section not found", from_id, to_id)
            return None
        sections = list(base.sections)
        moved = sections.pop(from_index)
        sections.insert(to_index, moved)
        config = dc.replace(base, sections=tuple(sections))
        self._commit(config)
        self.selected_section_id = to_id
        self._emit(EventKind.SECTION_MOVED, id=from_id, index=to_index)
        return config

    def toggle_section_expansion(self, section_id: str) -> None:
        if section_id in self.expanded_sections:
            self.expanded_sections.discard(section_id)
        else:
            self.expanded_sections.add(section_id)

    # Widgets -----------------------------------------------------------------

    def update_widget(
        self, section_id: str, widget_id: str, updates: cabc.Mapping[str, typ.Any]
    ) -> PageConfig | None:
        """Shallow-merge ``updates`` into the fields of a widget."""
        located = self._locate_widget(section_id, widget_id)
        if located is None:
            return None
        base, section_index, widget_index = located
        section = base.sections[section_index]
        widget = _merge_fields(section.widgets[widget_index], updates, _WIDGET_FIELDS)
        if widget is None:
            return None
        if widget.id != widget_id and section.widget_index(widget.id) >= 0:
            logger.error("Widget already exists with ID: %s", widget.id)
            return None
        widgets = list(section.widgets)
        widgets[widget_index] = widget
        config = _replace_section(
            base, section_index, dc.replace(section, widgets=tuple(widgets))
        )
        self._commit(config)
        if self.selected_widget_id == widget_id and self.selected_section_id == section_id:
            self.selected_widget_id = widget.id
        self._emit(EventKind.WIDGET_UPDATED, section=section_id, id=widget.id)
        return config

    def update_widget_settings(
        self, section_id: str, widget_id: str, key: str, value: typ.Any
    ) -> PageConfig | None:
        """Set one settings key of a widget."""
        located = self._locate_widget(section_id, widget_id)
        if located is None:
            return None
        base, section_index, widget_index = located
        widget = base.sections[section_index].widgets[widget_index]
        return self.update_widget(
            section_id, widget_id, {"settings": {**widget.settings, key: value}}
        )

    def remove_widget(self, section_id: str, widget_id: str) -> PageConfig | None:
        """Remove a widget from its section and clear the widget selection."""
        located = self._locate_widget(section_id, widget_id)
        if located is None:
            return None
        base, section_index, widget_index = located
        section = base.sections[section_index]
        widgets = section.widgets[:widget_index] + section.widgets[widget_index + 1 :]
        config = _replace_section(base, section_index, dc.replace(section, widgets=widgets))
        self._commit(config)
        self.selected_widget_id = None
        self.show_settings_panel = False
        self._emit(EventKind.WIDGET_REMOVED, section=section_id, id=widget_id)
        return config

    # Data sources ------------------------------------------------------------

    def add_data_source(
        self,
        key: str,
        source_type: str,
        params: cabc.Mapping[str, typ.Any] | None = None,
        *,
        required: bool = False,
    ) -> PageConfig:
        """Register data source ``key``; an existing entry is replaced."""
        base = self.current
        source = DataSource(type=source_type, params=dict(params or {}), required=required)
        config = dc.replace(base, data_sources={**base.data_sources, key: source})
        self._commit(config)
        self._emit(EventKind.DATA_SOURCES_CHANGED, added=key)
        return config

    def update_data_source(
        self, key: str, updates: cabc.Mapping[str, typ.Any]
    ) -> PageConfig | None:
        """Merge ``updates`` into data source ``key`` and mark render data stale."""
        base = self.current
        current = base.data_sources.get(key)
        if current is None:
            logger.error("Data source not found with key: %s", key)
            return None
        source = _merge_fields(current, updates, _DATA_SOURCE_FIELDS)
        if source is None:
            return None
        config = dc.replace(base, data_sources={**base.data_sources, key: source})
        self._commit(config, stage=True)
        self._emit(EventKind.DATA_SOURCES_CHANGED, updated=key)
        return config

    def remove_data_source(self, key: str) -> PageConfig | None:
        """Remove data source ``key`` and unbind every widget that used it."""
        base = self.current
        if key not in base.data_sources:
            logger.error("Data source not found with key: %s", key)
            return None
        data_sources = {name: source for name, source in base.data_sources.items() if name != key}
        sections = tuple(
            dc.replace(
                section,
                widgets=tuple(
                    dc.replace(widget, data_source_key=None)
                    if widget.data_source_key == key
                    else widget
                    for widget in section.widgets
                ),
            )
            for section in base.sections
        )
        config = PageConfig(sections=sections, data_sources=data_sources)
        self._commit(config)
        self._emit(EventKind.DATA_SOURCES_CHANGED, removed=key)
        return config

    # Selection ---------------------------------------------------------------

    @property
    def selected_section(self) -> Section | None:
        return self.current.find_section(self.selected_section_id)

    @property
    def selected_widget(self) -> Widget | None:
        section = self.selected_section
        if section is None or self.selected_widget_id is None:
            return None
        index = section.widget_index(self.selected_widget_id)
        return section.widgets[index] if index >= 0 else None

    def select_section(self, section_id: str | None) -> None:
        """Select a section (or clear with ``None``); the widget selection resets."""
        if section_id is not None and self.current.section_index(section_id) < 0:
            logger.error("Section not found with ID: %s", section_id)
            return
        self.selected_section_id = section_id
        self.selected_widget_id = None
        self.show_settings_panel = section_id is not None
        self._emit(EventKind.SELECTION_CHANGED, section=section_id, widget=None)

    def select_widget(self, section_id: str, widget_id: str | None) -> None:
        """Select a widget; its section becomes the current section."""
        if widget_id is not None and self._locate_widget(section_id, widget_id) is None:
            return
        if widget_id is None and self.current.section_index(section_id) < 0:
            logger.error("Section not found with ID: %s", section_id)
            return
        self.selected_section_id = section_id
        self.selected_widget_id = widget_id
        self.show_settings_panel = True
        self._emit(EventKind.SELECTION_CHANGED, section=section_id, widget=widget_id)

    def clear_selection(self) -> None:
        self.selected_section_id = None
        self.selected_widget_id = None
        self.show_settings_panel = False
        self._emit(EventKind.SELECTION_CHANGED, section=None, widget=None)

    # Render data -------------------------------------------------------------

    def mark_stale(self) -> None:
        self.render.mark_stale()

    def begin_refetch(self) -> RefetchRequest | None:
        """Start a render-data refetch for the newest configuration."""
        return self.render.begin_refetch()

    def complete_refetch(
        self, token: CancellationToken, render_data: dict[str, typ.Any]
    ) -> bool:
        """Apply refetched render data unless the request was superseded."""
        applied = self.render.complete_refetch(token, render_data)
        if applied:
            self._emit(EventKind.RENDER_DATA_CHANGED, keys=sorted(render_data))
        return applied

    def fail_refetch(self, token: CancellationToken, message: str) -> bool:
        failed = self.render.fail_refetch(token, message)
        if failed:
            logger.error("Render data refetch failed: %s", message)
            self._emit(EventKind.ERROR, message=message)
        return failed

    # Internals ---------------------------------------------------------------

    def _locate_widget(
        self, section_id: str, widget_id: str
    ) -> tuple[PageConfig, int, int] | None:
        base = self.current
        section_index = base.section_index(section_id)
        if section_index < 0:
            logger.error("Section not found with ID: %s", section_id)
            return None
        widget_index = base.sections[section_index].widget_index(widget_id)
        if widget_index < 0:
            logger.error("Widget not found with ID: %s", widget_id)
            return None
        return base, section_index, widget_index

    def _commit(self, config: PageConfig, *, stage: bool = False) -> None:
        if stage:
            self.render.stage(config)
        else:
            self.render.apply(config)

    def _emit(self, kind: EventKind, **detail: typ.Any) -> None:
        self.events.emit(StoreEvent(kind, _STORE_NAME, detail))


_T = typ.TypeVar("_T", Section, Widget, DataSource)


def _merge_fields(
    target: _T, updates: cabc.Mapping[str, typ.Any], allowed: frozenset[str]
) -> _T | None:
    """Return ``target`` with ``updates`` applied, or ``None`` for unknown fields."""
    unknown = set(updates) - allowed
    if unknown:
        logger.error(
            "Unknown %s field(s): %s", type(target).__name__, ", ".join(sorted(unknown))
        )
        return None
    changes = dict(updates)
    if "widgets" in changes:
        changes["widgets"] = tuple(changes["widgets"])
    for mapping_field in ("settings", "params", "extra"):
        if mapping_field in changes:
            changes[mapping_field] = dict(changes[mapping_field] or {})
    return dc.replace(target, **changes)


def _replace_section(config: PageConfig, index: int, section: Section) -> PageConfig:
    sections = list(config.sections)
    sections[index] = section
    return dc.replace(config, sections=tuple(sections))


__all__ = ["PageConfigStore"]
