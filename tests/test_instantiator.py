"""Unit tests for stamping library sections into page sections."""

from __future__ import annotations

import dataclasses as dc
import itertools

import pytest

from page_editor.instantiator import (
    InstanceCollisionError,
    SectionInstantiator,
    build_section_translations,
    generate_suffix,
    remap_translation_keys,
    sanitize_data_source_base,
)
from page_editor.library import DataSourceTemplate, LibraryBlock, LibraryWidget


def _fixed(*tokens: str) -> SectionInstantiator:
    values = iter(tokens)
    return SectionInstantiator(token_factory=lambda: next(values))


@pytest.fixture
def hero_block() -> LibraryBlock:
    return LibraryBlock(
        key="hero",
        id="hero",
        name="Hero",
        type="hero-section",
        settings={"title": "t:sections.hero.title", "shared": "t:common.brand"},
        widgets=(
            LibraryWidget(
                id="heading",
                type="heading",
                settings={"text": "t:sections.hero.heading"},
            ),
            LibraryWidget(
                id="Product Grid",
                type="product-list",
                settings={"title": "t:sections.hero.products.title", "columns": 3},
                data_source_template=DataSourceTemplate(
                    type="collection", params={"handle": "featured"}
                ),
            ),
        ),
        default_translations={
            "en": {
                "sections.hero.title": "Hero",
                "sections.hero.heading": "Welcome",
            },
            "fr": {"sections.hero.title": "Bannière"},
        },
    )


def test_generate_suffix_is_alphanumeric() -> None:
    suffix = generate_suffix()
    assert len(suffix) == 6 and suffix.isalnum(), f"unexpected suffix {suffix!r}"


def test_sanitize_data_source_base() -> None:
    assert sanitize_data_source_base("Product Grid-2") == "product_grid_2"


def test_instantiate_suffixes_ids_and_materialises_data_sources(
    hero_block: LibraryBlock,
) -> None:
    """Every id gets the shared suffix and stencils become data sources."""
    result = _fixed("abc123").instantiate(hero_block)

    section = result.section
    assert section.id == "hero-abc123", f"unexpected section id {section.id!r}"
    assert [widget.id for widget in section.widgets] == [
        "heading-abc123",
        "Product Grid-abc123",
    ]
    assert result.extra_data_sources.keys() == {"product_grid_abc123"}, (
        f"unexpected data source keys {sorted(result.extra_data_sources)!r}"
    )
    source = result.extra_data_sources["product_grid_abc123"]
    assert (source.type, source.params, source.required) == (
        "collection",
        {"handle": "featured"},
        False,
    )
    assert section.widgets[1].data_source_key == "product_grid_abc123"
    assert section.widgets[0].data_source_key is None
    assert result.section_key == "hero_abc123"


def test_instantiate_without_template_keeps_references(hero_block: LibraryBlock) -> None:
    """Without a template namespace nothing is remapped."""
    result = _fixed("abc123").instantiate(hero_block)

    assert result.section.settings["title"] == "t:sections.hero.title"
    assert result.translations == {}, "expected no translations to be generated"
    assert result.translation_namespace is None


def test_instantiate_remaps_section_references(hero_block: LibraryBlock) -> None:
    """Section references move to the instance subtree; common ones stay."""
    result = _fixed("abc123").instantiate(hero_block, template_id="home")

    section = result.section
    assert section.settings == {
        "title": "t:home.sections.hero_abc123.title",
        "shared": "t:common.brand",
    }, f"unexpected remapped section settings {section.settings!r}"
    assert section.widgets[0].settings["text"] == "t:home.sections.hero_abc123.heading"
    assert section.widgets[1].settings["columns"] == 3, "expected literals untouched"
    assert result.translations == {
        "title": "Hero",
        "heading": "Welcome",
        "products": {"title": ""},
    }, f"unexpected seeded translations {result.translations!r}"
    assert result.translation_namespace == "home"


def test_instantiate_seeds_requested_language(hero_block: LibraryBlock) -> None:
    result = _fixed("abc123").instantiate(hero_block, template_id="home", language="fr")

    assert result.translations["title"] == "Bannière"
    assert result.translations["heading"] == "", (
        "expected strings missing from the language bundle to be empty"
    )


def test_common_blocks_keep_their_references(hero_block: LibraryBlock) -> None:
    """Shared sections read the same strings on every page."""
    common = dc.replace(hero_block, is_common=True)

    result = _fixed("abc123").instantiate(common, template_id="home")

    assert result.section.settings["title"] == "t:sections.hero.title"
    assert result.translations == {}


def test_instantiate_retries_on_collision(hero_block: LibraryBlock) -> None:
    """A suffix clashing with an existing id or key is regenerated."""
    result = _fixed("aaaaaa", "bbbbbb", "cccccc").instantiate(
        hero_block,
        taken_ids={"hero-aaaaaa"},
        taken_keys={"product_grid_bbbbbb"},
    )

    assert result.section.id == "hero-cccccc", (
        f"expected the third suffix to be used, got {result.section.id!r}"
    )


def test_instantiate_gives_up_after_bounded_retries(hero_block: LibraryBlock) -> None:
    instantiator = SectionInstantiator(
        token_factory=itertools.repeat("aaaaaa").__next__, max_attempts=3
    )

    with pytest.raises(InstanceCollisionError, match="hero"):
        instantiator.instantiate(hero_block, taken_ids={"hero-aaaaaa"})


def test_instances_of_same_block_do_not_share_state(hero_block: LibraryBlock) -> None:
    """Two instantiations yield disjoint ids, keys, and settings objects."""
    instantiator = SectionInstantiator()
    first = instantiator.instantiate(hero_block, template_id="home")
    second = instantiator.instantiate(
        hero_block,
        template_id="home",
        taken_ids={first.section.id},
        taken_keys=first.extra_data_sources.keys(),
    )

    assert first.section.id != second.section.id
    assert not first.extra_data_sources.keys() & second.extra_data_sources.keys()
    assert first.section.settings is not second.section.settings
    assert first.section.settings["title"] != second.section.settings["title"]


def test_nested_settings_and_params_are_copied_per_instance() -> None:
    """Nested objects of a common block are never shared with its instances."""
    block = LibraryBlock(
        key="footer",
        id="footer",
        name="Footer",
        type="footer",
        is_common=True,
        settings={"links": [{"label": "t:common.about"}]},
        widgets=(
            LibraryWidget(
                id="grid",
                type="product-list",
                settings={"layout": {"columns": 3}},
                data_source_template=DataSourceTemplate(
                    type="collection", params={"filter": {"tags": ["sale"]}}
                ),
            ),
        ),
    )

    result = _fixed("abc123").instantiate(block)
    widget = result.section.widgets[0]
    widget.settings["layout"]["columns"] = 4
    result.section.settings["links"].append({"label": "extra"})
    result.extra_data_sources["grid_abc123"].params["filter"]["tags"].append("new")

    assert block.widgets[0].settings == {"layout": {"columns": 3}}
    assert block.settings == {"links": [{"label": "t:common.about"}]}
    assert block.widgets[0].data_source_template is not None
    assert block.widgets[0].data_source_template.params == {
        "filter": {"tags": ["sale"]}
    }, "expected the library stencil to stay untouched"


def test_remap_recognises_namespaced_references() -> None:
    """Both bare and namespaced section references are rewritten."""
    node = {
        "a": "t:sections.hero.title",
        "b": "t:home.sections.hero.cta",
        "c": "t:sections.other.title",
        "d": 5,
    }

    assert remap_translation_keys(node, "hero", "hero_x1", "home") == {
        "a": "t:home.sections.hero_x1.title",
        "b": "t:home.sections.hero_x1.cta",
        "c": "t:sections.other.title",
        "d": 5,
    }
    assert remap_translation_keys("t:sections.hero.title", "hero", "hero_x1", None) == (
        "t:sections.hero_x1.title"
    ), "expected a bare reference without a template namespace"


def test_build_section_translations_reads_nested_defaults() -> None:
    """Defaults may be keyed by dotted path or nested by segment."""
    subtree = build_section_translations(
        [{"title": "t:sections.hero.title"}],
        "hero",
        {"en": {"sections": {"hero": {"title": "Nested"}}}},
    )

    assert subtree == {"title": "Nested"}, f"unexpected subtree {subtree!r}"
