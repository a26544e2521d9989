"""Common literal values used across page_editor.

These constants keep the indirection prefix, translation namespaces, and
identifier conventions centralized so the stores, the instantiator, and tests
import the same values without drifting. Intended for internal use within the
page_editor package.

Examples
--------
>>> from page_editor import _constants
>>> _constants.REFERENCE_PREFIX + "common.title"
't:common.title'
>>> _constants.COMMON_TEMPLATE_ID
'common'
"""

REFERENCE_PREFIX = "t:"
PATH_SEPARATOR = "."

COMMON_TEMPLATE_ID = "common"
COMMON_NAMESPACE = "common"
SECTIONS_NAMESPACE = "sections"

DEFAULT_LANGUAGE = "en"

INSTANCE_SUFFIX_LENGTH = 6
INSTANCE_SUFFIX_ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
DEFAULT_DATA_SOURCE_BASE = "dataSource"

DEFAULT_TEMPLATE_VERSION = "1.0.0"
DEFAULT_TEMPLATE_NAME = "Template"
DEFAULT_TEMPLATE_TYPE = "page"
