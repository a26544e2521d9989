"""Render-data staleness tracking for the page config store.

Preview rendering needs data fetched for the data sources of a page config.
:class:`RenderDataCoordinator` keeps the two configuration slots the editor
works with (the *committed* config the current render data matches and a
*pending* config holding edits that still need a refetch), together with a
three-state status::

    CLEAN --edit--> STALE --begin_refetch--> REFETCHING --complete--> CLEAN
                      ^                          |
                      +---- edit / failure ------+

Every refetch receives a :class:`CancellationToken`. Starting a new refetch,
marking the config stale mid-flight, or tearing the editor down cancels the
outstanding token, and results delivered with a cancelled token are dropped.
"""

from __future__ import annotations

import dataclasses as dc
import enum
import logging
import typing as typ

if typ.TYPE_CHECKING:
    from .models import PageConfig

logger = logging.getLogger(__name__)


class RenderDataStatus(enum.Enum):
    """Whether the fetched render data matches the page config."""

    CLEAN = "clean"
    STALE = "stale"
    REFETCHING = "refetching"


class CancellationToken:
    """Flag an async flow checks after every suspension point."""

    __slots__ = ("_cancelled",)

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self._cancelled})"


@dc.dataclass(frozen=True, slots=True)
class RefetchRequest:
    """A render-data fetch the caller should perform."""

    token: CancellationToken
    page_config: PageConfig


class RenderDataCoordinator:
    """Two-slot committed/pending state machine with a staleness flag."""

    def __init__(self, committed: PageConfig | None = None) -> None:
        self.committed: PageConfig | None = committed
        self.pending: PageConfig | None = None
        self.status = RenderDataStatus.CLEAN
        self.render_data: dict[str, typ.Any] | None = None
        self.error: str | None = None
        self._inflight: CancellationToken | None = None

    @property
    def working(self) -> PageConfig | None:
        """The config edits apply to: pending when staged, committed otherwise."""
        return self.pending if self.pending is not None else self.committed

    @property
    def is_stale(self) -> bool:
        return self.status is not RenderDataStatus.CLEAN

    def reset(self, committed: PageConfig | None) -> None:
        """Replace the committed config, dropping pending edits and render data."""
        self.cancel()
        self.committed = committed
        self.pending = None
        self.render_data = None
        self.error = None
        self.status = RenderDataStatus.STALE if committed is not None else RenderDataStatus.CLEAN

    def apply(self, config: PageConfig) -> None:
        """Record an edit that does not change data requirements."""
        if self.pending is not None:
            self.pending = config
        else:
            self.committed = config

    def stage(self, config: PageConfig) -> None:
        """Record an edit that needs new render data before preview is accurate."""
        self.pending = config
        self.mark_stale()

    def mark_stale(self) -> None:
        """Flag the render data as outdated, cancelling any in-flight refetch."""
        if self._inflight is not None:
            logger.debug("Cancelling in-flight refetch superseded by a new edit")
            self._inflight.cancel()
            self._inflight = None
        self.status = RenderDataStatus.STALE

    def begin_refetch(self) -> RefetchRequest | None:
        """Start a refetch against the working config.

        Returns ``None`` when there is no config to fetch for. Any earlier
        in-flight request is cancelled first.
        """
        config = self.working
        if config is None:
            return None
        self.cancel()
        token = CancellationToken()
        self._inflight = token
        self.status = RenderDataStatus.REFETCHING
        self.error = None
        return RefetchRequest(token=token, page_config=config)

    def complete_refetch(
        self, token: CancellationToken, render_data: dict[str, typ.Any]
    ) -> bool:
        """Apply fetched render data unless ``token`` was superseded.

        On success the pending config (including edits made during the fetch
        that did not need new data) is promoted to committed and cleared.
        Returns ``True`` when the data was applied.
        """
        if token.cancelled or token is not self._inflight:
            logger.debug("Dropping render data from a superseded refetch")
            return False
        self._inflight = None
        self.render_data = render_data
        if self.pending is not None:
            self.committed = self.pending
            self.pending = None
        self.status = RenderDataStatus.CLEAN
        return True

    def fail_refetch(self, token: CancellationToken, message: str) -> bool:
        """Record a failed refetch; the config stays stale for a retry."""
        if token.cancelled or token is not self._inflight:
            return False
        self._inflight = None
        self.error = message
        self.status = RenderDataStatus.STALE
        return True

    def cancel(self) -> None:
        """Cancel any in-flight refetch."""
        if self._inflight is not None:
            self._inflight.cancel()
            self._inflight = None
        if self.status is RenderDataStatus.REFETCHING:
            self.status = RenderDataStatus.STALE


__all__ = [
    "CancellationToken",
    "RefetchRequest",
    "RenderDataCoordinator",
    "RenderDataStatus",
]
