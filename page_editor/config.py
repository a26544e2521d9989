"""Load editor settings from YAML into a typed dataclass.

The configuration file is optional. Every key has a default, so a missing
file yields :class:`EditorConfig` with defaults and CLI parameters (or their
``PAGE_EDITOR_*`` environment variables) fill in the rest::

    api_base: https://editor.example.com
    timeout: 15
    theme_id: theme-1
    merchant_name: acme
    language: en
    library_path: config/library.yaml
    log_level: INFO

Examples
--------
>>> from pathlib import Path
>>> from page_editor.config import load_editor_config
>>> load_editor_config(Path("missing.yaml")).language
'en'
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ
from pathlib import Path

from ruamel.yaml import YAML

from ._constants import DEFAULT_LANGUAGE
from .api import DEFAULT_API_BASE

DEFAULT_CONFIG = Path("config/editor.yaml")
DEFAULT_TIMEOUT = 10.0
DEFAULT_LOG_LEVEL = "WARNING"


class EditorConfigError(ValueError):
    """Raised when the editor configuration file is invalid."""


@dc.dataclass(slots=True)
class EditorConfig:
    """Settings shared by the CLI and embedding applications."""

    api_base: str = DEFAULT_API_BASE
    timeout: float = DEFAULT_TIMEOUT
    theme_id: str | None = None
    merchant_name: str | None = None
    language: str = DEFAULT_LANGUAGE
    library_path: Path | None = None
    log_level: str = DEFAULT_LOG_LEVEL


def load_editor_config(path: Path) -> EditorConfig:
    """Read the editor configuration at ``path``.

    Parameters
    ----------
    path : Path
        YAML file to read. A missing file is not an error.

    Returns
    -------
    EditorConfig
        Parsed settings; absent keys keep their defaults. A relative
        ``library_path`` is resolved against the configuration file's folder.

    Raises
    ------
    EditorConfigError
        If the file is not a mapping or a value has the wrong type.
    """
    if not path.exists():
        return EditorConfig()

    loader = YAML(typ="safe")
    loader.version = (1, 2)
    with path.open("r", encoding="utf-8") as handle:
        loaded = loader.load(handle) or {}
    if not isinstance(loaded, dict):
        msg = "Top-level editor configuration must be a mapping."
        raise EditorConfigError(msg)
    raw: dict[str, typ.Any] = dict(loaded)

    known = {field.name for field in dc.fields(EditorConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        msg = f"Unknown editor configuration key(s): {', '.join(unknown)}."
        raise EditorConfigError(msg)

    timeout = raw.get("timeout", DEFAULT_TIMEOUT)
    if isinstance(timeout, bool) or not isinstance(timeout, int | float) or timeout <= 0:
        msg = "Editor configuration 'timeout' must be a positive number."
        raise EditorConfigError(msg)

    library_path = raw.get("library_path")
    if library_path is not None:
        library_path = Path(str(library_path))
        if not library_path.is_absolute():
            library_path = path.parent / library_path

    return EditorConfig(
        api_base=str(raw.get("api_base") or DEFAULT_API_BASE),
        timeout=float(timeout),
        theme_id=_optional_str(raw.get("theme_id")),
        merchant_name=_optional_str(raw.get("merchant_name")),
        language=str(raw.get("language") or DEFAULT_LANGUAGE),
        library_path=library_path,
        log_level=str(raw.get("log_level") or DEFAULT_LOG_LEVEL).upper(),
    )


def _optional_str(value: object | None) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


__all__ = [
    "DEFAULT_CONFIG",
    "EditorConfig",
    "EditorConfigError",
    "load_editor_config",
]
