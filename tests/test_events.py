"""Unit tests for the change emitter."""

from __future__ import annotations

from page_editor.events import ChangeEmitter, EventKind, StoreEvent


def test_listeners_may_unsubscribe_while_notified() -> None:
    """Listeners registered at emit time all run even if one unsubscribes."""
    emitter = ChangeEmitter()
    calls: list[str] = []
    unsubscribe_first = None

    def first(event: StoreEvent) -> None:
        calls.append("first")
        assert unsubscribe_first is not None
        unsubscribe_first()

    def second(event: StoreEvent) -> None:
        calls.append("second")

    unsubscribe_first = emitter.subscribe(first)
    emitter.subscribe(second)

    emitter.emit(StoreEvent(EventKind.SECTION_ADDED, "page"))
    emitter.emit(StoreEvent(EventKind.SECTION_REMOVED, "page"))

    assert calls == ["first", "second", "second"], f"unexpected call order {calls!r}"
    assert len(emitter) == 1, "expected one listener to remain"
