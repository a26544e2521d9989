"""Route settings edits to the page config or the translation store.

A settings field either holds a literal, which lives in the page config, or a
``t:`` reference, whose text lives in a translation tree. The settings panel
does not care which: it calls :func:`apply_setting_edit` with the new value
and the edit lands where the current value is stored. Reference fields keep
their reference in the page config and only the translation changes.
"""

from __future__ import annotations

import enum
import logging
import typing as typ

from .references import Reference, parse_value

if typ.TYPE_CHECKING:
    from .store import PageConfigStore
    from .translations import TranslationMergeStore

logger = logging.getLogger(__name__)


class EditTarget(enum.Enum):
    """Where a settings edit was written."""

    PAGE = "page"
    TRANSLATION = "translation"
    NONE = "none"


def apply_setting_edit(
    page: PageConfigStore,
    translations: TranslationMergeStore | None,
    section_id: str,
    widget_id: str | None,
    key: str,
    value: typ.Any,
) -> EditTarget:
    """Apply an edit of the settings field ``key``.

    Parameters
    ----------
    page : PageConfigStore
        Store holding the page configuration.
    translations : TranslationMergeStore or None
        Store holding the translation trees. Without one, every edit is
        written into the page config.
    section_id : str
        Section owning the field.
    widget_id : str or None
        Widget owning the field; ``None`` edits the section's own settings.
    key : str
        Settings key being edited.
    value : Any
        New value as entered by the user.

    Returns
    -------
    EditTarget
        The store the value was written to, or ``EditTarget.NONE`` when the
        section or widget does not exist.
    """
    section = page.current.find_section(section_id)
    if section is None:
        logger.error("Section not found with ID: %s", section_id)
        return EditTarget.NONE
    if widget_id is None:
        settings = section.settings
    else:
        index = section.widget_index(widget_id)
        if index < 0:
            logger.error("Widget not found with ID: %s", widget_id)
            return EditTarget.NONE
        settings = section.widgets[index].settings

    match parse_value(settings.get(key)):
        case Reference(path=path) if translations is not None:
            translations.update_translation(path, value)
            return EditTarget.TRANSLATION
        case _ if widget_id is None:
            page.update_section_settings(section_id, key, value)
        case _:
            page.update_widget_settings(section_id, widget_id, key, value)
    return EditTarget.PAGE


__all__ = ["EditTarget", "apply_setting_edit"]
