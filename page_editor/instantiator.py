"""Stamp library sections into fresh page sections.

Instantiating a library block produces a section nobody else shares: the block
id and every widget id receive a random instance suffix, every widget with a
``dataSourceTemplate`` gets its own data source keyed with the same suffix,
and section-scoped translation references are rewritten to point at a new
per-instance translation subtree seeded from the library's default strings.

Examples
--------
>>> from page_editor.library import LibraryBlock, LibraryWidget
>>> block = LibraryBlock(
...     key="hero",
...     id="hero",
...     name="Hero",
...     type="hero-section",
...     widgets=(LibraryWidget(id="heading", type="heading"),),
... )
>>> result = SectionInstantiator(token_factory=lambda: "abc123").instantiate(block)
>>> result.section.id, result.section.widgets[0].id
('hero-abc123', 'heading-abc123')
"""

from __future__ import annotations

import collections.abc as cabc
import copy
import dataclasses as dc
import logging
import re
import secrets
import typing as typ

from ._constants import (
    COMMON_NAMESPACE,
    DEFAULT_DATA_SOURCE_BASE,
    DEFAULT_LANGUAGE,
    INSTANCE_SUFFIX_ALPHABET,
    INSTANCE_SUFFIX_LENGTH,
    SECTIONS_NAMESPACE,
)
from .models import DataSource, Section, Widget
from .references import is_reference, iter_references, join_path, path_of, to_reference
from .translations.tree import Tree, get_path, set_path

if typ.TYPE_CHECKING:
    from .library import LibraryBlock, LibraryWidget

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^a-z0-9_]")
MAX_SUFFIX_ATTEMPTS = 8


class InstanceCollisionError(RuntimeError):
    """Raised when no collision-free instance suffix could be generated."""


def generate_suffix(length: int = INSTANCE_SUFFIX_LENGTH) -> str:
    """Return a random alphanumeric token for instance identifiers."""
    return "".join(secrets.choice(INSTANCE_SUFFIX_ALPHABET) for _ in range(length))


def section_translation_key(section_id: str) -> str:
    """Return the translation key of a section; hyphens are not valid there."""
    return section_id.replace("-", "_")


def sanitize_data_source_base(value: str) -> str:
    """Lower-case ``value`` and replace characters outside ``[a-z0-9_]``."""
    return _UNSAFE_KEY_CHARS.sub("_", value.lower())


def data_source_key(widget: LibraryWidget, suffix: str) -> str:
    """Return the data-source key a library widget materialises for ``suffix``."""
    base = widget.id or widget.name or DEFAULT_DATA_SOURCE_BASE
    return f"{sanitize_data_source_base(base)}_{suffix}"


def section_pattern_of(path: cabc.Sequence[str]) -> tuple[int, str] | None:
    """Locate the ``sections.<pattern>`` segment of a reference path.

    Returns the index of the ``sections`` segment and the pattern, or ``None``
    when the path is rooted at ``common`` or is not section-scoped. Both the
    bare ``sections.<pattern>.*`` and the namespaced
    ``<ns>.sections.<pattern>.*`` forms are recognised.
    """
    if not path or path[0] == COMMON_NAMESPACE:
        return None
    for index in (0, 1):
        if len(path) > index + 1 and path[index] == SECTIONS_NAMESPACE:
            return index, path[index + 1]
    return None


def remap_translation_keys(
    node: typ.Any,
    old_pattern: str,
    new_key: str,
    template_id: str | None,
) -> typ.Any:
    """Rewrite section-scoped references in ``node`` to a new section key.

    Parameters
    ----------
    node : Any
        Arbitrary JSON value (settings mapping, list, or scalar).
    old_pattern : str
        Section key the library block's references use.
    new_key : str
        Translation key of the new section instance.
    template_id : str or None
        Namespace the rewritten references are rooted at; ``None`` produces
        bare ``sections.<new_key>.*`` references.

    Returns
    -------
    Any
        A copy of ``node`` where every ``[<ns>.]sections.<old_pattern>.<rest>``
        reference now reads ``<template_id>.sections.<new_key>.<rest>``.
        References rooted at ``common`` and all other values pass through.
    """
    match node:
        case str() if is_reference(node):
            path = path_of(node)
            located = section_pattern_of(path)
            if located is None or located[1] != old_pattern:
                return node
            index, _ = located
            rest = path[index + 2 :]
            prefix = [template_id] if template_id else []
            return to_reference([*prefix, SECTIONS_NAMESPACE, new_key, *rest])
        case cabc.Mapping():
            return {
                key: remap_translation_keys(value, old_pattern, new_key, template_id)
                for key, value in node.items()
            }
        case list() | tuple():
            return [
                remap_translation_keys(item, old_pattern, new_key, template_id)
                for item in node
            ]
        case _:
            return node


def find_section_pattern(nodes: cabc.Iterable[typ.Any]) -> str | None:
    """Return the section key used by the first section-scoped reference found."""
    for node in nodes:
        for reference in iter_references(node):
            located = section_pattern_of(reference.path)
            if located is not None:
                return located[1]
    return None


def build_section_translations(
    nodes: cabc.Iterable[typ.Any],
    old_pattern: str,
    default_translations: cabc.Mapping[str, cabc.Mapping[str, typ.Any]],
    language: str = DEFAULT_LANGUAGE,
) -> Tree:
    """Collect default strings for every reference under ``old_pattern``.

    The returned tree is relative to the new section's translation root, so
    ``t:sections.hero.cta.label`` contributes ``{"cta": {"label": ...}}``.
    Values are looked up in ``default_translations[language]`` (falling back
    to English) by the reference's dotted path; missing values become empty
    strings so the new section never aliases the library's defaults.
    """
    defaults = (
        default_translations.get(language)
        or default_translations.get(DEFAULT_LANGUAGE)
        or {}
    )
    subtree: Tree = {}
    for node in nodes:
        for reference in iter_references(node):
            located = section_pattern_of(reference.path)
            if located is None or located[1] != old_pattern:
                continue
            index, _ = located
            rest = reference.path[index + 2 :]
            if not rest:
                continue
            source_value = defaults.get(join_path(reference.path))
            if source_value is None:
                source_value = get_path(defaults, reference.path)
            subtree = set_path(subtree, rest, "" if source_value is None else source_value)
    return subtree


@dc.dataclass(frozen=True, slots=True)
class InstantiatedSection:
    """Result of stamping a library block."""

    section: Section
    extra_data_sources: dict[str, DataSource]
    section_key: str
    translations: Tree = dc.field(default_factory=dict)
    translation_namespace: str | None = None


class SectionInstantiator:
    """Produce collision-free section instances from library blocks."""

    def __init__(
        self,
        *,
        token_factory: cabc.Callable[[], str] | None = None,
        max_attempts: int = MAX_SUFFIX_ATTEMPTS,
    ) -> None:
        self._token_factory = token_factory or generate_suffix
        self._max_attempts = max_attempts

    def instantiate(
        self,
        block: LibraryBlock,
        *,
        template_id: str | None = None,
        language: str = DEFAULT_LANGUAGE,
        taken_ids: cabc.Collection[str] = (),
        taken_keys: cabc.Collection[str] = (),
    ) -> InstantiatedSection:
        """Stamp ``block`` into a new section.

        Parameters
        ----------
        block : LibraryBlock
            Library section to copy.
        template_id : str or None, optional
            Template namespace for the instance's translations. Section
            references are only remapped when this is set and the block is
            not common.
        language : str, optional
            Language whose library defaults seed the new translations.
        taken_ids : Collection[str], optional
            Section ids already present on the page.
        taken_keys : Collection[str], optional
            Data-source keys already present on the page.

        Returns
        -------
        InstantiatedSection
            The new section, its data sources, and its translation subtree.

        Raises
        ------
        InstanceCollisionError
            If every generated suffix collided with ``taken_ids`` or
            ``taken_keys``.
        """
        suffix = self._pick_suffix(block, taken_ids, taken_keys)
        section_id = f"{block.id}-{suffix}"
        section_key = section_translation_key(section_id)

        extra_data_sources: dict[str, DataSource] = {}
        widgets: list[Widget] = []
        for library_widget in block.widgets:
            widget = Widget(
                id=f"{library_widget.id}-{suffix}",
                type=library_widget.type,
                settings=copy.deepcopy(dict(library_widget.settings)),
                name=library_widget.name,
                extra=copy.deepcopy(dict(library_widget.extra)),
            )
            stencil = library_widget.data_source_template
            if stencil is not None:
                key = data_source_key(library_widget, suffix)
                extra_data_sources[key] = DataSource(
                    type=stencil.type,
                    params=copy.deepcopy(dict(stencil.params)),
                    required=stencil.required,
                )
                widget = dc.replace(widget, data_source_key=key)
            widgets.append(widget)

        section = Section(
            id=section_id,
            type=block.type,
            settings=copy.deepcopy(dict(block.settings)),
            widgets=tuple(widgets),
            name=block.name,
            is_common=block.is_common,
        )

        translations: Tree = {}
        if not block.is_common and template_id:
            nodes = [section.settings, *(widget.settings for widget in section.widgets)]
            old_pattern = find_section_pattern(nodes)
            if old_pattern is not None:
                translations = build_section_translations(
                    nodes, old_pattern, block.default_translations, language
                )
                section = dc.replace(
                    section,
                    settings=remap_translation_keys(
                        section.settings, old_pattern, section_key, template_id
                    ),
                    widgets=tuple(
                        dc.replace(
                            widget,
                            settings=remap_translation_keys(
                                widget.settings, old_pattern, section_key, template_id
                            ),
                        )
                        for widget in section.widgets
                    ),
                )

        logger.debug(
            "Instantiated library block %s as %s with %d data source(s)",
            block.key,
            section_id,
            len(extra_data_sources),
        )
        return InstantiatedSection(
            section=section,
            extra_data_sources=extra_data_sources,
            section_key=section_key,
            translations=translations,
            translation_namespace=template_id if translations else None,
        )

    def _pick_suffix(
        self,
        block: LibraryBlock,
        taken_ids: cabc.Collection[str],
        taken_keys: cabc.Collection[str],
    ) -> str:
        for _ in range(self._max_attempts):
            suffix = self._token_factory()
            if f"{block.id}-{suffix}" in taken_ids:
                continue
            keys = {
                data_source_key(widget, suffix)
                for widget in block.widgets
                if widget.data_source_template is not None
            }
            if keys & set(taken_keys):
                continue
            return suffix
        msg = f"Could not generate a unique instance id for library block '{block.key}'."
        raise InstanceCollisionError(msg)


__all__ = [
    "InstanceCollisionError",
    "InstantiatedSection",
    "SectionInstantiator",
    "build_section_translations",
    "data_source_key",
    "find_section_pattern",
    "generate_suffix",
    "remap_translation_keys",
    "sanitize_data_source_base",
    "section_pattern_of",
    "section_translation_key",
]
