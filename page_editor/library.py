"""Read-only registry of reusable library sections.

Library sections are parametrised section stencils the editor stamps into a
page. Each entry carries its widgets (optionally with a
``dataSourceTemplate``), the settings schema the settings panel renders, and a
bundle of default translations keyed by language and dotted reference path.

The registry is normally loaded from a YAML file::

    hero:
      id: hero
      name: Hero banner
      type: hero-section
      widgets:
        - id: heading
          type: heading
          settings:
            text: t:sections.hero.heading
      defaultTranslations:
        en:
          sections.hero.heading: Welcome

Examples
--------
>>> from pathlib import Path
>>> from page_editor.library import load_library
>>> library = load_library(Path("config/library.yaml"))  # doctest: +SKIP
>>> library.get("hero").name  # doctest: +SKIP
'Hero banner'
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import typing as typ

from ruamel.yaml import YAML

if typ.TYPE_CHECKING:
    from pathlib import Path


class LibraryConfigError(ValueError):
    """Raised when the library registry file is invalid."""


@dc.dataclass(frozen=True, slots=True)
class DataSourceTemplate:
    """Stencil a widget uses to materialise its own data source."""

    type: str
    params: dict[str, typ.Any] = dc.field(default_factory=dict)
    required: bool = False


@dc.dataclass(frozen=True, slots=True)
class LibraryWidget:
    """Widget stencil inside a library section."""

    id: str
    type: str
    settings: dict[str, typ.Any] = dc.field(default_factory=dict)
    name: str | None = None
    data_source_template: DataSourceTemplate | None = None
    extra: dict[str, typ.Any] = dc.field(default_factory=dict)


@dc.dataclass(frozen=True, slots=True)
class LibraryBlock:
    """A reusable section template."""

    key: str
    id: str
    name: str
    type: str
    widgets: tuple[LibraryWidget, ...] = ()
    settings: dict[str, typ.Any] = dc.field(default_factory=dict)
    is_common: bool = False
    settings_schema: dict[str, typ.Any] = dc.field(default_factory=dict)
    default_translations: dict[str, dict[str, typ.Any]] = dc.field(default_factory=dict)


class LibraryRegistry:
    """Lookup of library blocks by key."""

    def __init__(self, blocks: cabc.Iterable[LibraryBlock] = ()) -> None:
        self._blocks: dict[str, LibraryBlock] = {block.key: block for block in blocks}

    def get(self, key: str) -> LibraryBlock | None:
        """Return the block registered under ``key`` or ``None``."""
        return self._blocks.get(key)

    def keys(self) -> list[str]:
        return list(self._blocks)

    def __contains__(self, key: object) -> bool:
        return key in self._blocks

    def __len__(self) -> int:
        return len(self._blocks)

    @classmethod
    def from_mapping(cls, payload: cabc.Mapping[str, typ.Any]) -> LibraryRegistry:
        """Build a registry from a mapping of library key to block payload."""
        blocks: list[LibraryBlock] = []
        for key, entry in payload.items():
            match entry:
                case dict():
                    blocks.append(_build_block(str(key), entry))
                case _:
                    msg = f"Library entry '{key}' must be a mapping."
                    raise LibraryConfigError(msg)
        return cls(blocks)


def load_library(path: Path) -> LibraryRegistry:
    """Load the library registry YAML file.

    Parameters
    ----------
    path : Path
        Filesystem path to the library YAML file.

    Returns
    -------
    LibraryRegistry
        Registry holding one :class:`LibraryBlock` per top-level key.

    Raises
    ------
    FileNotFoundError
        If ``path`` does not exist.
    LibraryConfigError
        If the file is not a mapping of valid library entries.
    """
    if not path.exists():
        msg = f"Library file '{path}' not found."
        raise FileNotFoundError(msg)
    loader = YAML(typ="safe")
    loader.version = (1, 2)
    with path.open("r", encoding="utf-8") as handle:
        loaded = loader.load(handle) or {}
    if not isinstance(loaded, dict):
        msg = "Top-level library YAML structure must be a mapping."
        raise LibraryConfigError(msg)
    return LibraryRegistry.from_mapping(loaded)


def _build_block(key: str, payload: cabc.Mapping[str, typ.Any]) -> LibraryBlock:
    block_id = payload.get("id") or key
    block_type = payload.get("type")
    if not block_type:
        msg = f"Library entry '{key}' requires a 'type'."
        raise LibraryConfigError(msg)
    widgets_raw = payload.get("widgets") or []
    if not isinstance(widgets_raw, list):
        msg = f"Library entry '{key}' widgets must be a list."
        raise LibraryConfigError(msg)
    defaults = payload.get("defaultTranslations") or {}
    if not isinstance(defaults, cabc.Mapping):
        msg = f"Library entry '{key}' defaultTranslations must be a mapping."
        raise LibraryConfigError(msg)
    return LibraryBlock(
        key=key,
        id=str(block_id),
        name=str(payload.get("name") or key),
        type=str(block_type),
        widgets=tuple(_build_widget(key, entry) for entry in widgets_raw),
        settings=dict(payload.get("settings") or {}),
        is_common=payload.get("isCommon") is True,
        settings_schema=dict(payload.get("settingsSchema") or {}),
        default_translations={
            str(language): dict(values or {}) for language, values in defaults.items()
        },
    )


def _build_widget(block_key: str, payload: object) -> LibraryWidget:
    match payload:
        case {"id": widget_id, "type": widget_type, **rest} if widget_id and widget_type:
            pass
        case _:
            msg = f"Library entry '{block_key}' widgets require an 'id' and a 'type'."
            raise LibraryConfigError(msg)
    stencil = rest.pop("dataSourceTemplate", None)
    name = rest.pop("name", None)
    settings = rest.pop("settings", None) or {}
    return LibraryWidget(
        id=str(widget_id),
        type=str(widget_type),
        settings=dict(settings),
        name=str(name) if name else None,
        data_source_template=_build_stencil(block_key, stencil) if stencil else None,
        extra=dict(rest),
    )


def _build_stencil(block_key: str, payload: object) -> DataSourceTemplate:
    match payload:
        case {"type": source_type, **rest} if source_type:
            return DataSourceTemplate(
                type=str(source_type),
                params=dict(rest.get("params") or {}),
                required=bool(rest.get("required", False)),
            )
        case _:
            msg = f"Library entry '{block_key}' has a dataSourceTemplate without 'type'."
            raise LibraryConfigError(msg)


__all__ = [
    "DataSourceTemplate",
    "LibraryBlock",
    "LibraryConfigError",
    "LibraryRegistry",
    "LibraryWidget",
    "load_library",
]
