"""Unit tests for the backend HTTP client."""

from __future__ import annotations

import json
import typing as typ

import pytest
import requests

from page_editor.api import EditorAPIClient, EditorAPIError

if typ.TYPE_CHECKING:
    from pytest_mock import MockerFixture


def _session(mocker: MockerFixture, status: int = 200, body: typ.Any = None) -> typ.Any:
    session = mocker.Mock(spec=requests.Session)
    response = mocker.Mock()
    response.status_code = status
    response.text = json.dumps(body)
    response.json.return_value = body
    session.request.return_value = response
    return session


def test_get_template_posts_context_and_unwraps_data(mocker: MockerFixture) -> None:
    """Template loads are POSTed and the ``data`` envelope is removed."""
    session = _session(mocker, body={"data": {"metadata": {"id": "home"}, "sections": []}})
    client = EditorAPIClient(api_base="https://editor.invalid/", session=session)

    document = client.get_template("acme", {"path": "/"}, "default")

    assert document == {"metadata": {"id": "home"}, "sections": []}
    method, url = session.request.call_args.args
    assert (method, url) == ("POST", "https://editor.invalid/editor/api/templates"), (
        f"unexpected request target {method} {url}"
    )
    assert session.request.call_args.kwargs["json"] == {
        "merchantName": "acme",
        "routeContext": {"path": "/"},
        "variant": "default",
    }


def test_save_translation_puts_wrapped_tree(mocker: MockerFixture) -> None:
    session = _session(mocker, body={"success": True, "data": {"language": "en"}})
    client = EditorAPIClient(session=session)

    client.save_translation("theme-1", "common", "en", {"common": {"title": "Hi"}})

    method, url = session.request.call_args.args
    assert method == "PUT"
    assert url == "http://localhost:3000/api/v1/themes/theme-1/translations/common/en"
    assert session.request.call_args.kwargs["json"] == {
        "translations": {"common": {"title": "Hi"}}
    }, "expected the tree under a translations key"


def test_missing_translation_tree_is_empty(mocker: MockerFixture) -> None:
    session = _session(mocker, body={"data": None})
    client = EditorAPIClient(session=session)

    assert client.get_translation("theme-1", "home", "en") == {}


def test_render_data_is_returned_as_is(mocker: MockerFixture) -> None:
    """The editor-data endpoint has no envelope; ``data`` is a regular key."""
    session = _session(mocker, body={"data": [1], "grid_abc": []})
    client = EditorAPIClient(session=session)

    assert client.fetch_render_data({"sections": []}, None, "acme") == {
        "data": [1],
        "grid_abc": [],
    }


def test_http_errors_raise(mocker: MockerFixture) -> None:
    session = _session(mocker, status=500, body={"error": "boom"})
    client = EditorAPIClient(session=session)

    with pytest.raises(EditorAPIError, match="status 500"):
        client.save_template("theme-1", "home", {"metadata": {}})


def test_invalid_json_raises(mocker: MockerFixture) -> None:
    session = _session(mocker)
    session.request.return_value.json.side_effect = json.JSONDecodeError("x", "", 0)
    client = EditorAPIClient(session=session)

    with pytest.raises(EditorAPIError, match="not valid JSON"):
        client.get_translation("theme-1", "home", "en")


def test_transport_errors_raise(mocker: MockerFixture) -> None:
    session = mocker.Mock(spec=requests.Session)
    session.request.side_effect = requests.ConnectionError("refused")
    client = EditorAPIClient(session=session)

    with pytest.raises(EditorAPIError, match="fetch template: refused"):
        client.get_template("acme", {}, "default")
