"""Async orchestration of one editing session.

:class:`EditorSession` wires the page store, the translation store, and the
backend client together and runs the flows that leave the process: loading a
template with its translations and render data, refetching render data after
structural edits, and saving. Client calls block, so each runs in a worker
thread through :func:`asyncio.to_thread`; the stores are only touched from the
event loop.

Every load receives a :class:`~page_editor.staleness.CancellationToken`.
Starting another load or closing the session cancels it, and the flow checks
the token after each await so a superseded load never overwrites newer state.

Examples
--------
>>> import asyncio
>>> session = EditorSession(
...     client=client, theme_id="theme-1", merchant_name="acme"
... )  # doctest: +SKIP
>>> asyncio.run(session.load("home", "default"))  # doctest: +SKIP
True
"""

from __future__ import annotations

import asyncio
import collections.abc as cabc
import logging
import typing as typ

from ._constants import (
    COMMON_TEMPLATE_ID,
    DEFAULT_TEMPLATE_NAME,
    DEFAULT_TEMPLATE_TYPE,
    DEFAULT_TEMPLATE_VERSION,
)
from .api import EditorAPIClient, EditorAPIError
from .config import EditorConfigError
from .library import load_library
from .models import PageConfigError, TemplateDocument
from .staleness import CancellationToken
from .store import PageConfigStore
from .translations import TranslationMergeStore

if typ.TYPE_CHECKING:
    from .config import EditorConfig
    from .library import LibraryRegistry

logger = logging.getLogger(__name__)


class EditorSession:
    """Run the load, refetch, and save flows of one editor instance."""

    def __init__(
        self,
        *,
        client: EditorAPIClient,
        theme_id: str,
        merchant_name: str,
        route_context: cabc.Mapping[str, typ.Any] | None = None,
        library: LibraryRegistry | None = None,
        page: PageConfigStore | None = None,
        translations: TranslationMergeStore | None = None,
    ) -> None:
        self.client = client
        self.theme_id = theme_id
        self.merchant_name = merchant_name
        self.route_context: dict[str, typ.Any] = dict(route_context or {})
        self.translations = translations or TranslationMergeStore()
        self.page = page or PageConfigStore(
            library=library, translations=self.translations
        )
        if self.page.translations is None:
            self.page.translations = self.translations
        if library is not None and self.page.library is None:
            self.page.library = library
        self.error: str | None = None
        self._flow: CancellationToken | None = None

    @classmethod
    def from_config(
        cls,
        config: EditorConfig,
        *,
        route_context: cabc.Mapping[str, typ.Any] | None = None,
        client: EditorAPIClient | None = None,
    ) -> EditorSession:
        """Build a session from editor settings.

        Parameters
        ----------
        config : EditorConfig
            Settings providing the backend URL, timeout, theme, merchant,
            language, and library file.
        route_context : Mapping[str, Any], optional
            Route the template is loaded for.
        client : EditorAPIClient, optional
            Preconfigured client; defaults to one built from ``config``.

        Raises
        ------
        EditorConfigError
            If ``theme_id`` or ``merchant_name`` is not configured.
        """
        if not config.theme_id or not config.merchant_name:
            msg = "Editor sessions require 'theme_id' and 'merchant_name'."
            raise EditorConfigError(msg)
        library = load_library(config.library_path) if config.library_path else None
        return cls(
            client=client
            or EditorAPIClient(api_base=config.api_base, timeout=config.timeout),
            theme_id=config.theme_id,
            merchant_name=config.merchant_name,
            route_context=route_context,
            library=library,
            translations=TranslationMergeStore(language=config.language),
        )

    async def load(
        self, template_id: str, variant: str, language: str | None = None
    ) -> bool:
        """Load translations, then the template, then its render data.

        Parameters
        ----------
        template_id : str
            Template whose translation tree is loaded next to the common one.
        variant : str
            Template variant requested from the backend.
        language : str, optional
            Locale to load; defaults to the translation store's language.

        Returns
        -------
        bool
            ``True`` when every step completed for this (still current) load.
            ``False`` when a step failed or a newer load superseded this one.
        """
        token = self._start_flow()
        language = language or self.translations.language
        self.error = None
        self.translations.is_loading = True
        try:
            common = await asyncio.to_thread(
                self.client.get_translation, self.theme_id, COMMON_TEMPLATE_ID, language
            )
            if token.cancelled:
                return False
            template_tree = await asyncio.to_thread(
                self.client.get_translation, self.theme_id, template_id, language
            )
            if token.cancelled:
                return False
        except EditorAPIError as exc:
            if not token.cancelled:
                self._record_error(str(exc))
                self.translations.error = str(exc)
            return False
        finally:
            self.translations.is_loading = False

        self.translations.theme_id = self.theme_id
        self.translations.template_id = template_id
        self.translations.load(common, template_tree, language)

        try:
            payload = await asyncio.to_thread(
                self.client.get_template, self.merchant_name, self.route_context, variant
            )
            if token.cancelled:
                return False
            document = TemplateDocument.from_mapping(payload)
        except (EditorAPIError, PageConfigError) as exc:
            if not token.cancelled:
                self._record_error(str(exc))
            return False

        self.page.template_id = document.template_id or template_id
        self.page.load_document(document)
        if token.cancelled:
            return False
        return await self.refetch()

    async def refetch(self) -> bool:
        """Fetch render data for the newest page config.

        Returns ``True`` when the fetched data was applied. Results of a
        refetch superseded by a later edit or refetch are dropped.
        """
        request = self.page.begin_refetch()
        if request is None:
            return False
        try:
            render_data = await asyncio.to_thread(
                self.client.fetch_render_data,
                request.page_config.to_dict(),
                self.route_context,
                self.merchant_name,
            )
        except EditorAPIError as exc:
            self.page.fail_refetch(request.token, str(exc))
            return False
        return self.page.complete_refetch(request.token, render_data)

    async def refetch_if_stale(self) -> bool:
        """Refetch only when the render data no longer matches the page."""
        if not self.page.render.is_stale:
            return False
        return await self.refetch()

    async def save_translations(self) -> bool:
        """Persist both translation trees; see :meth:`TranslationMergeStore.save`.

        Only the backend calls run in a worker thread. Edits made while the
        save is in flight stay marked as unsaved.
        """
        if not self.translations.has_unsaved_changes:
            return True
        plan = self.translations.begin_save(self.theme_id, self.page.template_id)
        if plan is None:
            return False
        failures = await asyncio.to_thread(plan.send, self.client)
        return self.translations.finish_save(plan, failures)

    async def save_template(self) -> bool:
        """Persist the newest page config as the template document."""
        template_id = self.page.template_id
        if not template_id:
            self._record_error("Cannot save a template without a template id")
            return False
        document = self.page.to_document()
        metadata = {
            **document.metadata,
            "id": template_id,
            "brand": self.theme_id,
            "name": document.metadata.get("name") or DEFAULT_TEMPLATE_NAME,
            "type": document.metadata.get("type") or DEFAULT_TEMPLATE_TYPE,
            "version": document.metadata.get("version") or DEFAULT_TEMPLATE_VERSION,
        }
        if self.route_context:
            metadata["routeContext"] = dict(self.route_context)
        payload = {**document.to_dict(), "metadata": metadata}
        try:
            await asyncio.to_thread(
                self.client.save_template, self.theme_id, template_id, payload
            )
        except EditorAPIError as exc:
            self._record_error(str(exc))
            return False
        self.page.metadata = metadata
        logger.info("Saved template %s", template_id)
        return True

    def close(self) -> None:
        """Cancel the in-flight load and any render-data refetch."""
        if self._flow is not None:
            self._flow.cancel()
            self._flow = None
        self.page.render.cancel()

    def _start_flow(self) -> CancellationToken:
        if self._flow is not None:
            logger.debug("Cancelling superseded load flow")
            self._flow.cancel()
        token = CancellationToken()
        self._flow = token
        return token

    def _record_error(self, message: str) -> None:
        logger.error(message)
        self.error = message


__all__ = ["EditorSession"]
