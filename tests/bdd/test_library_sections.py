"""Behaviour tests for stamping library sections into a page.

The scenarios drive ``PageConfigStore.add_section_from_library`` against an
in-memory library registry and check insert positions, selection, and the
independence of repeated instances.

Usage
-----
Run ``pytest tests/bdd/test_library_sections.py -v``.
"""

from __future__ import annotations

import typing as typ
from pathlib import Path

import pytest
from pytest_bdd import given, scenarios, then, when

from page_editor.library import DataSourceTemplate, LibraryBlock, LibraryRegistry, LibraryWidget
from page_editor.models import PageConfig, Section
from page_editor.store import PageConfigStore

FEATURE_FILE = Path(__file__).resolve().parents[2] / "features" / "library_sections.feature"
scenarios(FEATURE_FILE)

ScenarioState = dict[str, typ.Any]

HERO = LibraryBlock(
    key="hero",
    id="hero",
    name="Hero",
    type="hero-section",
    widgets=(
        LibraryWidget(
            id="grid",
            type="product-list",
            data_source_template=DataSourceTemplate(type="collection"),
        ),
    ),
)


@pytest.fixture
def scenario_state() -> ScenarioState:
    """Share mutable scenario data across pytest-bdd steps."""
    return {}


@given("an empty page with the hero library section")
def given_empty_page(scenario_state: ScenarioState) -> None:
    scenario_state["store"] = PageConfigStore(library=LibraryRegistry([HERO]))


@given("a page with 3 sections and the hero library section")
def given_three_sections(scenario_state: ScenarioState) -> None:
    store = PageConfigStore(library=LibraryRegistry([HERO]))
    store.load_document(
        PageConfig(sections=tuple(Section(id=name, type="text") for name in "abc"))
    )
    scenario_state["store"] = store


@when("the hero section is added without an insert position")
def when_added_default(scenario_state: ScenarioState) -> None:
    store = typ.cast("PageConfigStore", scenario_state["store"])
    scenario_state["added"] = [store.add_section_from_library("hero", None)]


@when("the hero section is added after index 1")
def when_added_after(scenario_state: ScenarioState) -> None:
    store = typ.cast("PageConfigStore", scenario_state["store"])
    scenario_state["added"] = [store.add_section_from_library("hero", 1)]


@when("the hero section is added twice")
def when_added_twice(scenario_state: ScenarioState) -> None:
    store = typ.cast("PageConfigStore", scenario_state["store"])
    scenario_state["added"] = [
        store.add_section_from_library("hero"),
        store.add_section_from_library("hero"),
    ]


@then("the page has 1 section")
def then_one_section(scenario_state: ScenarioState) -> None:
    store = typ.cast("PageConfigStore", scenario_state["store"])
    assert len(store.current.sections) == 1


@then("the page has 4 sections")
def then_four_sections(scenario_state: ScenarioState) -> None:
    store = typ.cast("PageConfigStore", scenario_state["store"])
    assert len(store.current.sections) == 4, (
        f"expected exactly one more section, got {store.current.section_ids()!r}"
    )


@then("the new section is at index 0")
def then_index_zero(scenario_state: ScenarioState) -> None:
    _assert_new_section_at(scenario_state, 0)


@then("the new section is at index 2")
def then_index_two(scenario_state: ScenarioState) -> None:
    _assert_new_section_at(scenario_state, 2)


@then("the new section is selected")
def then_selected(scenario_state: ScenarioState) -> None:
    store = typ.cast("PageConfigStore", scenario_state["store"])
    section = typ.cast("Section", scenario_state["added"][0])
    assert store.selected_section_id == section.id


@then("the earlier sections keep their relative order")
def then_relative_order(scenario_state: ScenarioState) -> None:
    store = typ.cast("PageConfigStore", scenario_state["store"])
    section = typ.cast("Section", scenario_state["added"][0])
    remaining = [sid for sid in store.current.section_ids() if sid != section.id]
    assert remaining == ["a", "b", "c"], f"unexpected order {remaining!r}"


@then("the two sections have different ids")
def then_distinct_ids(scenario_state: ScenarioState) -> None:
    first, second = typ.cast("list[Section]", scenario_state["added"])
    assert first.id != second.id, "expected distinct section ids"


@then("the two sections use different data source keys")
def then_distinct_keys(scenario_state: ScenarioState) -> None:
    store = typ.cast("PageConfigStore", scenario_state["store"])
    first, second = typ.cast("list[Section]", scenario_state["added"])
    first_key = first.widgets[0].data_source_key
    second_key = second.widgets[0].data_source_key
    assert first_key != second_key, "expected distinct data source keys"
    assert {first_key, second_key} <= store.current.data_sources.keys()


def _assert_new_section_at(scenario_state: ScenarioState, index: int) -> None:
    store = typ.cast("PageConfigStore", scenario_state["store"])
    section = typ.cast("Section", scenario_state["added"][0])
    assert section is not None, "expected the library section to be added"
    assert store.current.section_index(section.id) == index, (
        f"expected the new section at {index}, got {store.current.section_ids()!r}"
    )
