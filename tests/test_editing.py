"""Unit tests for routing settings edits."""

from __future__ import annotations

import pytest

from page_editor.editing import EditTarget, apply_setting_edit
from page_editor.models import PageConfig, Section, Widget
from page_editor.store import PageConfigStore
from page_editor.translations import TranslationMergeStore


@pytest.fixture
def stores() -> tuple[PageConfigStore, TranslationMergeStore]:
    translations = TranslationMergeStore()
    translations.load({"common": {"title": "Hi"}}, {"home": {"body": "Text"}})
    page = PageConfigStore(translations=translations, template_id="home")
    page.load_document(
        PageConfig(
            sections=(
                Section(
                    id="hero",
                    type="hero",
                    settings={"title": "t:common.title", "color": "red"},
                    widgets=(Widget(id="w", type="text", settings={"text": "t:home.body"}),),
                ),
            )
        )
    )
    return page, translations


def test_reference_field_edits_translation(
    stores: tuple[PageConfigStore, TranslationMergeStore],
) -> None:
    """Editing a referenced field changes the owning tree, not the page."""
    page, translations = stores

    target = apply_setting_edit(page, translations, "hero", None, "title", "Hello")

    assert target is EditTarget.TRANSLATION
    assert translations.common["common"]["title"] == "Hello", (
        "expected the common tree to receive the edit"
    )
    assert page.current.sections[0].settings["title"] == "t:common.title", (
        "expected the page to keep its reference"
    )


def test_widget_reference_field_edits_template_tree(
    stores: tuple[PageConfigStore, TranslationMergeStore],
) -> None:
    page, translations = stores

    target = apply_setting_edit(page, translations, "hero", "w", "text", "New body")

    assert target is EditTarget.TRANSLATION
    assert translations.template["home"]["body"] == "New body"


def test_literal_field_edits_page(
    stores: tuple[PageConfigStore, TranslationMergeStore],
) -> None:
    page, translations = stores

    target = apply_setting_edit(page, translations, "hero", None, "color", "blue")

    assert target is EditTarget.PAGE
    assert page.current.sections[0].settings["color"] == "blue"
    assert translations.has_unsaved_changes is False


def test_missing_targets_are_ignored(
    stores: tuple[PageConfigStore, TranslationMergeStore],
) -> None:
    page, translations = stores

    assert apply_setting_edit(page, translations, "nope", None, "k", 1) is EditTarget.NONE
    assert apply_setting_edit(page, translations, "hero", "nope", "k", 1) is EditTarget.NONE
