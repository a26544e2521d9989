r"""HTTP client for the theme, template, and translation backend.

The editor core never persists anything itself; it reaches the backend through
the handful of endpoints wrapped here. Load calls are ``POST`` requests to the
editor routes, save calls are ``PUT`` requests to the versioned theme API, and
every failure surfaces as :class:`EditorAPIError`.

Example
-------
>>> from page_editor.api import EditorAPIClient
>>> client = EditorAPIClient(api_base="http://localhost:3000")  # doctest: +SKIP
>>> client.get_translation("theme-1", "common", "en")  # doctest: +SKIP
{'common': {'title': 'Hi'}}
"""

from __future__ import annotations

import collections.abc as cabc
import json
import logging
import typing as typ
from http import HTTPStatus

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

DEFAULT_API_BASE = "http://localhost:3000"
_USER_AGENT = "page-editor-core/0.1"

logger = logging.getLogger(__name__)


class EditorAPIError(RuntimeError):
    """Raised when the backend cannot be reached or answers with an error."""


def _build_session() -> requests.Session:
    """Return a session that retries idempotent requests on transient errors."""
    session = requests.Session()
    retry = Retry(
        total=3,
        connect=3,
        read=3,
        backoff_factor=0.5,
        status_forcelist=(500, 502, 503, 504),
        allowed_methods=("GET", "HEAD", "PUT"),
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


class EditorAPIClient:
    """Thin wrapper around the editor backend endpoints.

    The client centralises the base URL, headers, timeout, and error handling.
    It holds no editor state and can be shared by every store of a session.
    """

    def __init__(
        self,
        *,
        api_base: str = DEFAULT_API_BASE,
        session: requests.Session | None = None,
        timeout: float = 10.0,
    ) -> None:
        """Initialise the client.

        Parameters
        ----------
        api_base : str, optional
            Base URL of the backend. Defaults to ``DEFAULT_API_BASE``.
        session : requests.Session, optional
            Preconfigured session; defaults to one with a retry adapter.
        timeout : float, optional
            Per-request timeout in seconds. Defaults to ``10.0``.
        """
        self._api_base = api_base.rstrip("/") or DEFAULT_API_BASE
        self._session = session or _build_session()
        self.timeout = timeout
        self._headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "User-Agent": _USER_AGENT,
        }

    @property
    def api_base(self) -> str:
        """Normalised backend base URL."""
        return self._api_base

    def get_template(
        self,
        merchant_name: str,
        route_context: cabc.Mapping[str, typ.Any],
        variant: str,
    ) -> dict[str, typ.Any]:
        """Load a template document for ``merchant_name`` and ``route_context``."""
        payload = {
            "merchantName": merchant_name,
            "routeContext": dict(route_context),
            "variant": variant,
        }
        data = self._request("POST", "/editor/api/templates", "fetch template", payload)
        return _expect_mapping(data, "fetch template")

    def save_template(
        self,
        theme_id: str,
        template_id: str,
        document: cabc.Mapping[str, typ.Any],
    ) -> dict[str, typ.Any]:
        """Persist a template document and return the backend's save receipt."""
        path = f"/api/v1/themes/{theme_id}/templates/{template_id}"
        data = self._request("PUT", path, "save template", dict(document))
        return _expect_mapping(data, "save template")

    def get_translation(
        self, theme_id: str, template_id: str, language: str
    ) -> dict[str, typ.Any]:
        """Load one translation tree.

        ``template_id`` is either a real template id or ``"common"`` for the
        tree shared by every template of the theme. A missing tree is returned
        as an empty mapping.
        """
        payload = {"themeId": theme_id, "templateId": template_id, "language": language}
        data = self._request(
            "POST", "/editor/api/translations", "fetch translation", payload
        )
        if data is None:
            return {}
        return _expect_mapping(data, "fetch translation")

    def save_translation(
        self,
        theme_id: str,
        template_id: str,
        language: str,
        translations: cabc.Mapping[str, typ.Any],
    ) -> dict[str, typ.Any]:
        """Persist one translation tree."""
        path = f"/api/v1/themes/{theme_id}/translations/{template_id}/{language}"
        data = self._request(
            "PUT", path, "save translation", {"translations": dict(translations)}
        )
        if not isinstance(data, cabc.Mapping):
            return {"language": language, "templateId": template_id}
        return dict(data)

    def fetch_render_data(
        self,
        page_config: cabc.Mapping[str, typ.Any],
        route_context: cabc.Mapping[str, typ.Any] | None,
        merchant_name: str,
    ) -> dict[str, typ.Any]:
        """Fetch the render-data bag (keyed by data-source key) for a page config."""
        payload = {
            "pageConfig": dict(page_config),
            "routeContext": dict(route_context or {}),
            "merchantName": merchant_name,
        }
        data = self._request(
            "POST", "/editor/api/editor-data", "fetch editor data", payload, unwrap=False
        )
        return _expect_mapping(data, "fetch editor data")

    def _request(
        self,
        method: str,
        path: str,
        action: str,
        payload: cabc.Mapping[str, typ.Any],
        *,
        unwrap: bool = True,
    ) -> typ.Any:
        url = f"{self._api_base}{path}"
        logger.debug("%s %s", method, url)
        try:
            response = self._session.request(
                method,
                url,
                json=payload,
                headers=self._headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            msg = f"Failed to {action}: {exc}"
            raise EditorAPIError(msg) from exc

        if response.status_code >= HTTPStatus.BAD_REQUEST:
            snippet = response.text[:200]
            msg = f"Failed to {action}: status {response.status_code}: {snippet}"
            raise EditorAPIError(msg)

        try:
            body = response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            msg = f"Failed to {action}: response was not valid JSON"
            raise EditorAPIError(msg) from exc

        if unwrap and isinstance(body, cabc.Mapping) and "data" in body:
            return body["data"]
        return body


def _expect_mapping(data: object, action: str) -> dict[str, typ.Any]:
    if not isinstance(data, cabc.Mapping):
        msg = f"Failed to {action}: expected a JSON object"
        raise EditorAPIError(msg)
    return dict(data)


__all__ = ["DEFAULT_API_BASE", "EditorAPIClient", "EditorAPIError"]
