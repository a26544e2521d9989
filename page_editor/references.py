"""Translation-key indirection helpers.

A settings value inside a page configuration either holds a literal or points
at a translation path with the ``t:`` prefix (``"t:common.title"``). The three
protocol functions (:func:`is_reference`, :func:`path_of`, and
:func:`to_reference`) are the only place that knows the wire format. Inside
the editor the distinction is modelled as the tagged variant
:class:`Literal` / :class:`Reference`; :func:`parse_value` and
:func:`serialize_value` convert at the page-config boundary.

Examples
--------
>>> from page_editor.references import is_reference, path_of, to_reference
>>> is_reference("t:common.title")
True
>>> path_of("t:common.title")
['common', 'title']
>>> to_reference(["sections", "hero_ab12cd", "heading"])
't:sections.hero_ab12cd.heading'
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import typing as typ

from ._constants import PATH_SEPARATOR, REFERENCE_PREFIX


def is_reference(value: object) -> bool:
    """Return ``True`` when ``value`` is a ``t:``-prefixed translation reference."""
    return isinstance(value, str) and value.startswith(REFERENCE_PREFIX)


def path_of(value: str) -> list[str]:
    """Return the translation path segments encoded in ``value``.

    Parameters
    ----------
    value : str
        A translation reference such as ``"t:home.hero.title"``.

    Returns
    -------
    list[str]
        Dot-separated path segments with the prefix stripped.

    Raises
    ------
    ValueError
        If ``value`` is not a translation reference.
    """
    if not is_reference(value):
        msg = f"Not a translation reference: {value!r}"
        raise ValueError(msg)
    return value[len(REFERENCE_PREFIX) :].split(PATH_SEPARATOR)


def to_reference(path: cabc.Iterable[str]) -> str:
    """Build the ``t:`` reference string for ``path``."""
    return REFERENCE_PREFIX + PATH_SEPARATOR.join(path)


def join_path(path: cabc.Iterable[str]) -> str:
    """Return the dotted key used by the provenance map for ``path``."""
    return PATH_SEPARATOR.join(path)


@dc.dataclass(frozen=True, slots=True)
class Literal:
    """A settings value stored directly in the page configuration."""

    value: typ.Any


@dc.dataclass(frozen=True, slots=True)
class Reference:
    """A settings value that defers to a translation path."""

    path: tuple[str, ...]

    @property
    def key(self) -> str:
        """Dotted form of the path."""
        return join_path(self.path)


SettingValue = Literal | Reference


def parse_value(value: object) -> SettingValue:
    """Classify a raw settings value as a :class:`Literal` or :class:`Reference`."""
    if is_reference(value):
        return Reference(tuple(path_of(typ.cast("str", value))))
    return Literal(value)


def serialize_value(value: SettingValue) -> typ.Any:
    """Convert a tagged value back into its stored page-config form."""
    match value:
        case Reference(path=path):
            return to_reference(path)
        case Literal(value=raw):
            return raw
        case _:  # pragma: no cover - exhaustive over SettingValue
            msg = f"Unsupported setting value: {value!r}"
            raise TypeError(msg)


def iter_references(node: object) -> cabc.Iterator[Reference]:
    """Yield every reference found while walking an arbitrary JSON value."""
    match node:
        case str() if is_reference(node):
            yield Reference(tuple(path_of(node)))
        case cabc.Mapping():
            for child in node.values():
                yield from iter_references(child)
        case list() | tuple():
            for child in node:
                yield from iter_references(child)
        case _:
            return


__all__ = [
    "Literal",
    "Reference",
    "SettingValue",
    "is_reference",
    "iter_references",
    "join_path",
    "parse_value",
    "path_of",
    "serialize_value",
    "to_reference",
]
