"""Value types that can be stored in a settings file.

Each type group in the XML body is named after one of the tags below. A
:class:`ValueType` knows how to turn the element text into a Python value and
back, and which Python values are acceptable.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .errors import UnknownTypeError, ValueTypeError


_FLOAT_WORDS = {
    "infinity": math.inf,
    "+infinity": math.inf,
    "-infinity": -math.inf,
    "nan": math.nan,
}

# Complement of the XML 1.0 ``Char`` production.
_NON_XML_CHAR_RE = re.compile(r"[^\t\n\r\x20-\uD7FF\uE000-\uFFFD\U00010000-\U0010FFFF]")


@dataclass(frozen=True)
class ValueType:
    tag: str
    python_type: type
    zero: Any
    minimum: Optional[int] = None
    maximum: Optional[int] = None

    @property
    def label(self) -> str:
        """Tag with an upper-cased first letter (``int`` -> ``Int``)."""
        return self.tag[:1].upper() + self.tag[1:]

    def validate(self, value: Any) -> Any:
        """Return ``value`` normalised for this type or raise :class:`ValueTypeError`."""
        if self.python_type is bool:
            if not isinstance(value, bool):
                raise ValueTypeError(f"{self.tag} expects a bool, got {type(value).__name__}")
            return value

        if self.python_type is str:
            if not isinstance(value, str):
                raise ValueTypeError(f"{self.tag} expects a str, got {type(value).__name__}")
            bad = _NON_XML_CHAR_RE.search(value)
            if bad is not None:
                raise ValueTypeError(
                    f"{self.tag} value contains {bad.group()!r} at {bad.start()}, "
                    "which cannot be stored in XML"
                )
            return value

        # bool is an int subclass; never accept it as a number
        if isinstance(value, bool):
            raise ValueTypeError(f"{self.tag} does not accept bool values")

        if self.python_type is float:
            if not isinstance(value, (int, float)):
                raise ValueTypeError(f"{self.tag} expects a number, got {type(value).__name__}")
            try:
                return float(value)
            except OverflowError:
                raise ValueTypeError(f"{value} is too large for {self.tag}") from None

        if not isinstance(value, int):
            raise ValueTypeError(f"{self.tag} expects an int, got {type(value).__name__}")
        if self.minimum is not None and value < self.minimum:
            raise ValueTypeError(f"{value} is below the {self.tag} minimum {self.minimum}")
        if self.maximum is not None and value > self.maximum:
            raise ValueTypeError(f"{value} is above the {self.tag} maximum {self.maximum}")
        return int(value)

    def format(self, value: Any) -> str:
        value = self.validate(value)
        if self.python_type is bool:
            return "True" if value else "False"
        if self.python_type is float:
            if math.isnan(value):
                return "NaN"
            if math.isinf(value):
                return "Infinity" if value > 0 else "-Infinity"
            return repr(value)
        return str(value)

    def parse(self, text: Optional[str]) -> Any:
        """Parse element text. Raises ``ValueError`` when the text is unreadable."""
        if self.python_type is str:
            return text or ""

        raw = (text or "").strip()
        if self.python_type is bool:
            lowered = raw.lower()
            if lowered == "true":
                return True
            if lowered == "false":
                return False
            raise ValueError(f"not a boolean: {text!r}")

        if self.python_type is float:
            word = _FLOAT_WORDS.get(raw.lower())
            if word is not None:
                return word
            return float(raw)

        return self.validate(int(raw))


def _int_type(tag: str, bits: int, signed: bool) -> ValueType:
    if signed:
        lo, hi = -(2 ** (bits - 1)), 2 ** (bits - 1) - 1
    else:
        lo, hi = 0, 2**bits - 1
    return ValueType(tag=tag, python_type=int, zero=0, minimum=lo, maximum=hi)


# Ordered: this is also the order used when listing supported types.
VALUE_TYPES: Dict[str, ValueType] = {
    vt.tag: vt
    for vt in (
        ValueType(tag="boolean", python_type=bool, zero=False),
        ValueType(tag="string", python_type=str, zero=""),
        _int_type("byte", 8, signed=False),
        _int_type("sbyte", 8, signed=True),
        _int_type("short", 16, signed=True),
        _int_type("ushort", 16, signed=False),
        _int_type("int", 32, signed=True),
        _int_type("uint", 32, signed=False),
        _int_type("long", 64, signed=True),
        _int_type("ulong", 64, signed=False),
        ValueType(tag="double", python_type=float, zero=0.0),
    )
}


def get_value_type(tag: str) -> ValueType:
    try:
        return VALUE_TYPES[str(tag).strip().lower()]
    except KeyError:
        raise UnknownTypeError(f"unknown value type {tag!r}; expected one of {sorted(VALUE_TYPES)}") from None


def is_value_type(tag: str) -> bool:
    return tag in VALUE_TYPES


__all__ = ["ValueType", "VALUE_TYPES", "get_value_type", "is_value_type"]
