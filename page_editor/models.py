"""Typed dataclasses describing editable page documents.

Page documents arrive from the backend as camelCase JSON. The builders in this
module turn them into frozen dataclasses (:class:`PageConfig`,
:class:`Section`, :class:`Widget`, :class:`DataSource`) and ``to_dict``
writes them back in the same wire shape. Keys the editor does not model are
kept in ``extra`` so a load/save cycle does not lose them.

Examples
--------
>>> config = PageConfig.from_mapping(
...     {"sections": [{"id": "hero", "type": "hero", "widgets": []}], "dataSources": {}}
... )
>>> config.section_ids()
['hero']
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import typing as typ

_SECTION_KEYS = frozenset({"id", "type", "name", "isCommon", "settings", "widgets"})
_WIDGET_KEYS = frozenset({"id", "type", "name", "settings", "dataSourceKey"})


class PageConfigError(ValueError):
    """Raised when a page document is malformed."""


@dc.dataclass(frozen=True, slots=True)
class DataSource:
    """A named fetch specification widgets can bind to."""

    type: str
    params: dict[str, typ.Any] = dc.field(default_factory=dict)
    required: bool = False

    @classmethod
    def from_mapping(cls, key: str, data: cabc.Mapping[str, typ.Any]) -> DataSource:
        source_type = data.get("type")
        if not source_type:
            msg = f"Data source '{key}' requires a 'type'."
            raise PageConfigError(msg)
        params = data.get("params") or {}
        if not isinstance(params, cabc.Mapping):
            msg = f"Data source '{key}' params must be a mapping."
            raise PageConfigError(msg)
        return cls(
            type=str(source_type),
            params=dict(params),
            required=bool(data.get("required", False)),
        )

    def to_dict(self) -> dict[str, typ.Any]:
        return {"type": self.type, "params": dict(self.params), "required": self.required}


@dc.dataclass(frozen=True, slots=True)
class Widget:
    """A widget placed inside a section."""

    id: str
    type: str
    settings: dict[str, typ.Any] = dc.field(default_factory=dict)
    name: str | None = None
    data_source_key: str | None = None
    extra: dict[str, typ.Any] = dc.field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: cabc.Mapping[str, typ.Any]) -> Widget:
        match data:
            case {"id": widget_id, "type": widget_type, **rest} if widget_id and widget_type:
                pass
            case _:
                msg = "Widgets require an 'id' and a 'type'."
                raise PageConfigError(msg)
        settings = rest.get("settings") or {}
        if not isinstance(settings, cabc.Mapping):
            msg = f"Widget '{widget_id}' settings must be a mapping."
            raise PageConfigError(msg)
        data_source_key = rest.get("dataSourceKey")
        return cls(
            id=str(widget_id),
            type=str(widget_type),
            settings=dict(settings),
            name=_optional_str(rest.get("name")),
            data_source_key=str(data_source_key) if data_source_key else None,
            extra={key: value for key, value in rest.items() if key not in _WIDGET_KEYS},
        )

    def to_dict(self) -> dict[str, typ.Any]:
        payload: dict[str, typ.Any] = {**self.extra, "id": self.id, "type": self.type}
        if self.name is not None:
            payload["name"] = self.name
        payload["settings"] = dict(self.settings)
        if self.data_source_key is not None:
            payload["dataSourceKey"] = self.data_source_key
        return payload


@dc.dataclass(frozen=True, slots=True)
class Section:
    """An ordered group of widgets rendered as one page block."""

    id: str
    type: str
    settings: dict[str, typ.Any] = dc.field(default_factory=dict)
    widgets: tuple[Widget, ...] = ()
    name: str | None = None
    is_common: bool = False
    extra: dict[str, typ.Any] = dc.field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: cabc.Mapping[str, typ.Any]) -> Section:
        match data:
            case {"id": section_id, "type": section_type, **rest} if section_id and section_type:
                pass
            case _:
                msg = "Sections require an 'id' and a 'type'."
                raise PageConfigError(msg)
        settings = rest.get("settings") or {}
        if not isinstance(settings, cabc.Mapping):
            msg = f"Section '{section_id}' settings must be a mapping."
            raise PageConfigError(msg)
        widgets_raw = rest.get("widgets") or []
        if not isinstance(widgets_raw, list):
            msg = f"Section '{section_id}' widgets must be a list."
            raise PageConfigError(msg)
        widgets = tuple(Widget.from_mapping(entry) for entry in widgets_raw)
        seen: set[str] = set()
        for widget in widgets:
            if widget.id in seen:
                msg = f"Section '{section_id}' has duplicate widget id '{widget.id}'."
                raise PageConfigError(msg)
            seen.add(widget.id)
        return cls(
            id=str(section_id),
            type=str(section_type),
            settings=dict(settings),
            widgets=widgets,
            name=_optional_str(rest.get("name")),
            is_common=rest.get("isCommon") is True,
            extra={key: value for key, value in rest.items() if key not in _SECTION_KEYS},
        )

    def to_dict(self) -> dict[str, typ.Any]:
        payload: dict[str, typ.Any] = {**self.extra, "id": self.id, "type": self.type}
        if self.name is not None:
            payload["name"] = self.name
        if self.is_common:
            payload["isCommon"] = True
        payload["settings"] = dict(self.settings)
        payload["widgets"] = [widget.to_dict() for widget in self.widgets]
        return payload

    def widget_index(self, widget_id: str) -> int:
        """Return the position of ``widget_id`` or ``-1`` when absent."""
        for index, widget in enumerate(self.widgets):
            if widget.id == widget_id:
                return index
        return -1


@dc.dataclass(frozen=True, slots=True)
class PageConfig:
    """Ordered sections plus the data sources their widgets bind to."""

    sections: tuple[Section, ...] = ()
    data_sources: dict[str, DataSource] = dc.field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: cabc.Mapping[str, typ.Any]) -> PageConfig:
        sections_raw = data.get("sections") or []
        if not isinstance(sections_raw, list):
            msg = "Page 'sections' must be a list."
            raise PageConfigError(msg)
        sources_raw = data.get("dataSources") or {}
        if not isinstance(sources_raw, cabc.Mapping):
            msg = "Page 'dataSources' must be a mapping."
            raise PageConfigError(msg)
        sections = tuple(Section.from_mapping(entry) for entry in sections_raw)
        ids = [section.id for section in sections]
        if len(ids) != len(set(ids)):
            msg = "Section ids must be unique within a page."
            raise PageConfigError(msg)
        data_sources = {
            str(key): DataSource.from_mapping(str(key), payload)
            for key, payload in sources_raw.items()
        }
        return cls(sections=sections, data_sources=data_sources)

    def to_dict(self) -> dict[str, typ.Any]:
        return {
            "sections": [section.to_dict() for section in self.sections],
            "dataSources": {
                key: source.to_dict() for key, source in self.data_sources.items()
            },
        }

    def section_ids(self) -> list[str]:
        return [section.id for section in self.sections]

    def section_index(self, section_id: str) -> int:
        """Return the position of ``section_id`` or ``-1`` when absent."""
        for index, section in enumerate(self.sections):
            if section.id == section_id:
                return index
        return -1

    def find_section(self, section_id: str | None) -> Section | None:
        if section_id is None:
            return None
        index = self.section_index(section_id)
        return self.sections[index] if index >= 0 else None

    def bound_data_source_keys(self) -> set[str]:
        """Return every data-source key some widget currently binds to."""
        return {
            widget.data_source_key
            for section in self.sections
            for widget in section.widgets
            if widget.data_source_key
        }


@dc.dataclass(frozen=True, slots=True)
class TemplateDocument:
    """A stored template: metadata, optional layout, and its page config."""

    metadata: dict[str, typ.Any]
    page_config: PageConfig
    layout: typ.Any = None

    @classmethod
    def from_mapping(cls, data: cabc.Mapping[str, typ.Any]) -> TemplateDocument:
        if not isinstance(data, cabc.Mapping):
            msg = "Template document must be a mapping."
            raise PageConfigError(msg)
        metadata = data.get("metadata") or {}
        if not isinstance(metadata, cabc.Mapping):
            msg = "Template 'metadata' must be a mapping."
            raise PageConfigError(msg)
        return cls(
            metadata=dict(metadata),
            page_config=PageConfig.from_mapping(data),
            layout=data.get("layout"),
        )

    @property
    def template_id(self) -> str | None:
        return _optional_str(self.metadata.get("id"))

    def to_dict(self) -> dict[str, typ.Any]:
        payload: dict[str, typ.Any] = {"metadata": dict(self.metadata)}
        if self.layout is not None:
            payload["layout"] = self.layout
        payload.update(self.page_config.to_dict())
        return payload


def _optional_str(value: object | None) -> str | None:
    """Return a stripped string value or None when empty."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


__all__ = [
    "DataSource",
    "PageConfig",
    "PageConfigError",
    "Section",
    "TemplateDocument",
    "Widget",
]
