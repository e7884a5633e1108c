"""Typed settings persisted in a single XML file.

Each variable has a name, a type (``boolean``, ``string``, ``int`` ...), a
current value and a default it can be reverted to. The file heals itself:
broken or unsupported files are backed up and recreated, and legacy flat
files are condensed into one group per type.
"""

__version__ = "1.1.0"

from .document import FORMAT_VERSION, LEGACY_FORMAT_VERSION, SettingsDocument
from .errors import (
    InvalidVariableNameError,
    SettingsFormatError,
    SettingsLockedError,
    UnknownTypeError,
    ValueTypeError,
    VariableTypeMismatchError,
    XmlSettingsError,
)
from .store import XmlSettings
from .value_types import VALUE_TYPES, ValueType, get_value_type

__all__ = [
    "__version__",
    "FORMAT_VERSION",
    "LEGACY_FORMAT_VERSION",
    "SettingsDocument",
    "XmlSettings",
    "VALUE_TYPES",
    "ValueType",
    "get_value_type",
    "XmlSettingsError",
    "InvalidVariableNameError",
    "SettingsFormatError",
    "SettingsLockedError",
    "UnknownTypeError",
    "ValueTypeError",
    "VariableTypeMismatchError",
]
