"""Change notification shared by the editor stores.

Both :class:`~page_editor.store.PageConfigStore` and
:class:`~page_editor.translations.store.TranslationMergeStore` own a
:class:`ChangeEmitter`. Rendering consumers subscribe to it and re-read the
store snapshot when an event arrives; the stores themselves are passed around
explicitly rather than living in module globals.

Examples
--------
>>> emitter = ChangeEmitter()
>>> seen = []
>>> unsubscribe = emitter.subscribe(seen.append)
>>> emitter.emit(StoreEvent(EventKind.SECTION_ADDED, "page", {"id": "hero"}))
>>> seen[0].kind.value
'section_added'
>>> unsubscribe()
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import enum
import logging
import typing as typ

logger = logging.getLogger(__name__)


class EventKind(enum.Enum):
    """Kinds of change a store can announce."""

    CONFIG_LOADED = "config_loaded"
    SECTION_ADDED = "section_added"
    SECTION_UPDATED = "section_updated"
    SECTION_REMOVED = "section_removed"
    SECTION_MOVED = "section_moved"
    WIDGET_UPDATED = "widget_updated"
    WIDGET_REMOVED = "widget_removed"
    DATA_SOURCES_CHANGED = "data_sources_changed"
    SELECTION_CHANGED = "selection_changed"
    RENDER_DATA_CHANGED = "render_data_changed"
    TRANSLATIONS_LOADED = "translations_loaded"
    TRANSLATION_UPDATED = "translation_updated"
    TRANSLATIONS_SAVED = "translations_saved"
    ERROR = "error"


@dc.dataclass(frozen=True, slots=True)
class StoreEvent:
    """A single change notification."""

    kind: EventKind
    store: str
    detail: cabc.Mapping[str, typ.Any] = dc.field(default_factory=dict)


Listener = cabc.Callable[[StoreEvent], None]


class ChangeEmitter:
    """Synchronous observer registry."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> cabc.Callable[[], None]:
        """Register ``listener`` and return a callable that removes it again."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: StoreEvent) -> None:
        """Deliver ``event`` to every listener registered at call time."""
        logger.debug("%s: %s %s", event.store, event.kind.value, dict(event.detail))
        for listener in list(self._listeners):
            listener(event)

    def __len__(self) -> int:
        return len(self._listeners)


__all__ = ["ChangeEmitter", "EventKind", "Listener", "StoreEvent"]
