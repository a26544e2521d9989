"""Cyclopts CLI entrypoint for editing page documents offline.

The ``page-editor`` console script drives the editor core against JSON files
instead of the backend: stamping library sections into a template document,
printing the translated page config a renderer would receive, and editing a
translation in whichever tree owns it. Every parameter can also be supplied
through a ``PAGE_EDITOR_*`` environment variable.

Examples
--------
Add a hero section after the first section of ``home.json``:

>>> from page_editor.cli import app
>>> app.run(
...     ["add-section", "--document", "home.json", "--key", "hero", "--after", "0"]
... )  # doctest: +SKIP

Update a common string:

>>> app.run(
...     ["set-translation", "--common", "common.json", "--template", "home-tr.json",
...      "common.title", "Welcome"]
... )  # doctest: +SKIP
"""

from __future__ import annotations

import json
import typing as typ
from pathlib import Path

import cyclopts
from cyclopts import App, Parameter

from ._constants import PATH_SEPARATOR
from .config import DEFAULT_CONFIG, load_editor_config
from .library import load_library
from .logging_config import setup_logging
from .models import TemplateDocument
from .store import PageConfigStore
from .translations import TranslationMergeStore, translate_page_config

DEFAULT_LIBRARY = Path("config/library.yaml")

app = App(name="page-editor", config=cyclopts.config.Env("PAGE_EDITOR_", command=False))  # type: ignore[unknown-argument]


def _format_path(path: Path) -> str:
    """Return a cwd-relative path when possible, otherwise the absolute path."""
    if path.is_absolute():
        try:
            return str(path.relative_to(Path.cwd()))
        except ValueError:  # pragma: no cover - fallback for different roots
            return str(path)
    return str(path)


def _read_json(path: Path) -> typ.Any:
    if not path.exists():
        msg = f"File '{path}' not found."
        raise FileNotFoundError(msg)
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def _read_tree(path: Path | None) -> dict[str, typ.Any]:
    """Read a translation tree; a missing option means an empty tree."""
    if path is None:
        return {}
    loaded = _read_json(path)
    if not isinstance(loaded, dict):
        msg = f"Translation file '{path}' must contain a JSON object."
        raise TypeError(msg)
    return loaded


def _write_json(path: Path, payload: typ.Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    print(f"wrote {_format_path(path)}")


@app.command(help="Insert a library section into a template document.")
def add_section(
    *,
    document: typ.Annotated[
        Path, Parameter(help="Template document JSON", env_var="PAGE_EDITOR_DOCUMENT")
    ],
    key: typ.Annotated[
        str, Parameter(help="Library key of the section to add", env_var="PAGE_EDITOR_KEY")
    ],
    library: typ.Annotated[
        Path | None,
        Parameter(help="Library registry YAML", env_var="PAGE_EDITOR_LIBRARY"),
    ] = None,
    after: typ.Annotated[
        int | None,
        Parameter(help="Insert after this section index (default: append)"),
    ] = None,
    translations: typ.Annotated[
        Path | None,
        Parameter(
            help="Template translation tree JSON receiving the section's strings",
            env_var="PAGE_EDITOR_TRANSLATIONS",
        ),
    ] = None,
    template_id: typ.Annotated[
        str | None,
        Parameter(help="Override the template id from the document metadata"),
    ] = None,
    output: typ.Annotated[
        Path | None, Parameter(help="Write the document here instead of in place")
    ] = None,
    config: typ.Annotated[
        Path, Parameter(help="Path to editor config", env_var="PAGE_EDITOR_CONFIG")
    ] = DEFAULT_CONFIG,
    log_level: typ.Annotated[
        str | None, Parameter(help="Log level", env_var="PAGE_EDITOR_LOG_LEVEL")
    ] = None,
) -> None:
    """Stamp library section ``key`` into ``document``.

    Parameters
    ----------
    document : Path
        Template document to edit.
    key : str
        Library key of the section to instantiate.
    library : Path or None, optional
        Library registry; defaults to the configured ``library_path`` or
        ``config/library.yaml``.
    after : int or None, optional
        Index of the section the new one follows; appended when omitted.
    translations : Path or None, optional
        Template translation tree. When given, the new section's translation
        references are remapped and its default strings written to this file.
    template_id : str or None, optional
        Translation namespace; defaults to the document's ``metadata.id``.
    output : Path or None, optional
        Destination for the edited document; defaults to ``document``.
    config : Path, optional
        Editor configuration file.
    log_level : str or None, optional
        Overrides the configured log level.

    Raises
    ------
    KeyError
        If ``key`` is not in the library.
    """
    settings = load_editor_config(config)
    setup_logging(log_level or settings.log_level)
    registry = load_library(library or settings.library_path or DEFAULT_LIBRARY)
    if key not in registry:
        msg = f"Unknown library section '{key}'. Available: {', '.join(registry.keys())}"
        raise KeyError(msg)

    template_document = TemplateDocument.from_mapping(_read_json(document))
    translation_store = None
    if translations is not None:
        translation_store = TranslationMergeStore(language=settings.language)
        translation_store.load({}, _read_tree(translations) if translations.exists() else {})

    store = PageConfigStore(library=registry, translations=translation_store)
    store.load_document(template_document)
    if template_id:
        store.template_id = template_id

    section = store.add_section_from_library(key, after)
    if section is None:  # pragma: no cover - guarded by the registry check above
        return
    _write_json(output or document, store.to_document().to_dict())
    if translation_store is not None and translations is not None:
        _write_json(translations, translation_store.template)
    print(f"added {section.id}")


@app.command(help="Print a template's page config with translations resolved.")
def resolve(
    *,
    document: typ.Annotated[
        Path, Parameter(help="Template document JSON", env_var="PAGE_EDITOR_DOCUMENT")
    ],
    common: typ.Annotated[
        Path | None,
        Parameter(help="Common translation tree JSON", env_var="PAGE_EDITOR_COMMON"),
    ] = None,
    template: typ.Annotated[
        Path | None,
        Parameter(help="Template translation tree JSON", env_var="PAGE_EDITOR_TEMPLATE"),
    ] = None,
    output: typ.Annotated[
        Path | None, Parameter(help="Write the resolved config here instead of stdout")
    ] = None,
) -> None:
    """Substitute every translation reference in ``document``.

    Dangling references become ``null`` in the output.
    """
    template_document = TemplateDocument.from_mapping(_read_json(document))
    store = TranslationMergeStore()
    store.load(_read_tree(common), _read_tree(template))
    resolved = translate_page_config(template_document.page_config, store.merged)
    if output is None:
        print(json.dumps(resolved.to_dict(), indent=2, ensure_ascii=False))
    else:
        _write_json(output, resolved.to_dict())


@app.command(help="Set a translation in whichever tree owns its path.")
def set_translation(
    path: typ.Annotated[str, Parameter(help="Dotted translation path")],
    value: typ.Annotated[str, Parameter(help="New translated text")],
    *,
    common: typ.Annotated[
        Path, Parameter(help="Common translation tree JSON", env_var="PAGE_EDITOR_COMMON")
    ],
    template: typ.Annotated[
        Path,
        Parameter(help="Template translation tree JSON", env_var="PAGE_EDITOR_TEMPLATE"),
    ],
) -> None:
    """Write ``value`` at ``path``; only the owning tree's file changes.

    Paths present in neither tree are created in the template tree.
    """
    store = TranslationMergeStore()
    common_tree = _read_tree(common) if common.exists() else {}
    template_tree = _read_tree(template) if template.exists() else {}
    store.load(common_tree, template_tree)
    segments = [segment for segment in path.split(PATH_SEPARATOR) if segment]
    if not segments:
        msg = "Translation path must not be empty."
        raise ValueError(msg)
    store.update_translation(segments, value)
    if store.common != common_tree:
        _write_json(common, store.common)
    if store.template != template_tree:
        _write_json(template, store.template)


def main() -> None:
    """Invoke the Cyclopts application behind the ``page-editor`` command."""
    app()


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
