"""Unit tests for the translation reference protocol."""

from __future__ import annotations

import pytest

from page_editor.references import (
    Literal,
    Reference,
    is_reference,
    iter_references,
    parse_value,
    path_of,
    serialize_value,
    to_reference,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("t:common.title", True),
        ("t:", True),
        ("title", False),
        ("T:common.title", False),
        (None, False),
        (42, False),
        (["t:common.title"], False),
    ],
)
def test_is_reference_only_accepts_prefixed_strings(value: object, expected: bool) -> None:
    """Only strings starting with ``t:`` count as references."""
    assert is_reference(value) is expected, (
        f"expected is_reference({value!r}) to be {expected}"
    )


def test_path_of_splits_segments() -> None:
    """The dotted path after the prefix becomes a segment list."""
    assert path_of("t:sections.hero_ab12cd.cta.label") == [
        "sections",
        "hero_ab12cd",
        "cta",
        "label",
    ], "expected the reference path to be split on dots"


def test_path_of_rejects_literals() -> None:
    """Plain strings are not references and cannot be split."""
    with pytest.raises(ValueError, match="Not a translation reference"):
        path_of("common.title")


def test_to_reference_inverts_path_of() -> None:
    """Building a reference from a parsed path yields the original string."""
    reference = "t:home.hero.title"
    assert to_reference(path_of(reference)) == reference, (
        "expected to_reference(path_of(x)) to reproduce x"
    )


def test_parse_value_tags_references_and_literals() -> None:
    """Stored values are classified into the tagged variant and back."""
    reference = parse_value("t:common.title")
    literal = parse_value("#ffffff")

    assert reference == Reference(("common", "title")), (
        f"expected a Reference for a t: string, got {reference!r}"
    )
    assert reference.key == "common.title", "expected the dotted key of the path"
    assert literal == Literal("#ffffff"), f"expected a Literal, got {literal!r}"
    assert serialize_value(reference) == "t:common.title", (
        "expected references to serialise back to the t: string"
    )
    assert serialize_value(literal) == "#ffffff", "expected literals to pass through"


def test_iter_references_walks_nested_values() -> None:
    """References nested in mappings and lists are all discovered."""
    settings = {
        "title": "t:sections.hero.title",
        "items": [{"label": "t:sections.hero.items.one"}, "plain"],
        "count": 3,
    }

    found = [reference.key for reference in iter_references(settings)]

    assert found == ["sections.hero.title", "sections.hero.items.one"], (
        f"expected both nested references in document order, got {found!r}"
    )
