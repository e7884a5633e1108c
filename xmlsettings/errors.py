"""Exceptions raised by the settings store."""

from __future__ import annotations


class XmlSettingsError(Exception):
    """Base class for all settings errors."""


class InvalidVariableNameError(XmlSettingsError, ValueError):
    """Raised when a variable name cannot be used as an XML tag."""


class UnknownTypeError(XmlSettingsError, ValueError):
    """Raised for a type tag that is not in the value type registry."""


class ValueTypeError(XmlSettingsError, ValueError):
    """Raised when a value does not fit the declared type (kind or range)."""


class VariableTypeMismatchError(XmlSettingsError, TypeError):
    """Raised when a typed accessor hits a variable stored with another type."""

    def __init__(self, name: str, expected: str, actual: str) -> None:
        super().__init__(f"variable {name!r} is stored as {actual!r}, not {expected!r}")
        self.name = name
        self.expected = expected
        self.actual = actual


class SettingsLockedError(XmlSettingsError):
    """Raised when mutating a settings file whose lock flag is set."""


class SettingsFormatError(XmlSettingsError):
    """A loaded file is malformed or uses an unsupported format version."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


__all__ = [
    "XmlSettingsError",
    "InvalidVariableNameError",
    "UnknownTypeError",
    "ValueTypeError",
    "VariableTypeMismatchError",
    "SettingsLockedError",
    "SettingsFormatError",
]
