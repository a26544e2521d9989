"""Unit tests for the render-data staleness machine."""

from __future__ import annotations

from page_editor.models import PageConfig, Section
from page_editor.staleness import RenderDataCoordinator, RenderDataStatus

BASE = PageConfig(sections=(Section(id="a", type="x"),))
EDITED = PageConfig(sections=(Section(id="a", type="x"), Section(id="b", type="y")))


def test_reset_marks_loaded_config_stale() -> None:
    coordinator = RenderDataCoordinator()
    assert coordinator.status is RenderDataStatus.CLEAN

    coordinator.reset(BASE)

    assert coordinator.status is RenderDataStatus.STALE, (
        "expected a freshly loaded config to need render data"
    )
    assert coordinator.working is BASE


def test_staged_edit_is_promoted_after_refetch() -> None:
    """Pending edits become committed once their render data arrives."""
    coordinator = RenderDataCoordinator(BASE)
    coordinator.stage(EDITED)

    request = coordinator.begin_refetch()
    assert request is not None and request.page_config is EDITED
    assert coordinator.status is RenderDataStatus.REFETCHING

    assert coordinator.complete_refetch(request.token, {"k": [1]}) is True
    assert coordinator.committed is EDITED, "expected pending to be promoted"
    assert coordinator.pending is None
    assert coordinator.status is RenderDataStatus.CLEAN
    assert coordinator.render_data == {"k": [1]}


def test_late_result_from_superseded_refetch_is_dropped() -> None:
    """A second refetch cancels the first; the first result is ignored."""
    coordinator = RenderDataCoordinator(BASE)
    first = coordinator.begin_refetch()
    second = coordinator.begin_refetch()
    assert first is not None and second is not None

    assert first.token.cancelled is True, "expected the first token to be cancelled"
    assert coordinator.complete_refetch(first.token, {"old": True}) is False
    assert coordinator.render_data is None, "expected stale data not to be applied"
    assert coordinator.complete_refetch(second.token, {"new": True}) is True
    assert coordinator.render_data == {"new": True}


def test_marking_stale_mid_flight_cancels_refetch() -> None:
    coordinator = RenderDataCoordinator(BASE)
    request = coordinator.begin_refetch()
    assert request is not None

    coordinator.stage(EDITED)

    assert request.token.cancelled is True
    assert coordinator.complete_refetch(request.token, {}) is False
    assert coordinator.status is RenderDataStatus.STALE
    assert coordinator.pending is EDITED, "expected the newer edit to stay pending"


def test_plain_edit_while_pending_goes_to_pending() -> None:
    """Edits that do not need data follow the pending slot when it exists."""
    coordinator = RenderDataCoordinator(BASE)
    coordinator.apply(EDITED)
    assert coordinator.committed is EDITED and coordinator.pending is None

    coordinator.stage(BASE)
    coordinator.apply(EDITED)

    assert coordinator.pending is EDITED
    assert coordinator.committed is EDITED


def test_failed_refetch_returns_to_stale() -> None:
    coordinator = RenderDataCoordinator(BASE)
    request = coordinator.begin_refetch()
    assert request is not None

    assert coordinator.fail_refetch(request.token, "boom") is True
    assert coordinator.status is RenderDataStatus.STALE
    assert coordinator.error == "boom"


def test_cancel_on_teardown() -> None:
    coordinator = RenderDataCoordinator(BASE)
    request = coordinator.begin_refetch()
    assert request is not None

    coordinator.cancel()

    assert request.token.cancelled is True
    assert coordinator.status is RenderDataStatus.STALE
    assert RenderDataCoordinator().begin_refetch() is None, (
        "expected no refetch without a config"
    )
