from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Dict, Optional, Union

from . import __version__
from .document import (
    DEFAULT_ATTR,
    FORMAT_VERSION,
    SettingsDocument,
    check_variable_name,
    find_group,
    find_variable,
    format_version,
    is_locked,
    iter_variables,
    set_locked,
)
from .errors import SettingsLockedError, VariableTypeMismatchError
from .value_types import ValueType, get_value_type

logger = logging.getLogger(__name__)


class XmlSettings:
    """Typed, named settings persisted in a single XML file.

    Every call reads the file from disk (healing or migrating it when needed)
    and every mutation writes the whole file back. Nothing is cached between
    calls, so several instances on the same path always agree.

    ``revert_to_default_on_fail`` controls what a reader does when the stored
    text cannot be parsed for the variable's type: revert the variable to its
    default (and return that), or just return the type's zero value.
    """

    def __init__(self, settings_path: Union[str, Path], revert_to_default_on_fail: bool = True) -> None:
        self.document = SettingsDocument(settings_path)
        self.revert_on_fail = bool(revert_to_default_on_fail)
        self.document.load()

    def __repr__(self) -> str:
        return f"XmlSettings({str(self.path)!r}, revert_to_default_on_fail={self.revert_on_fail})"

    @property
    def path(self) -> Path:
        return self.document.path

    # Versions ------------------------------------------------------------
    def get_version(self) -> str:
        return __version__

    def get_latest_supported_formatting_version(self) -> str:
        return FORMAT_VERSION

    def get_file_format_version(self) -> str:
        return format_version(self.document.load().getroot())

    # Internals -----------------------------------------------------------
    def _load_for_write(self) -> ET.ElementTree:
        tree = self.document.load()
        if is_locked(tree.getroot()):
            raise SettingsLockedError(f"settings file {self.path} is locked")
        return tree

    def _read_value(self, tree: ET.ElementTree, var: ET.Element, vt: ValueType) -> Any:
        try:
            return vt.parse(var.text)
        except ValueError as exc:
            logger.warning("Cannot read %s variable %r from %s: %s", vt.tag, var.tag, self.path, exc)

        if not self.revert_on_fail or is_locked(tree.getroot()):
            return vt.zero

        default_text = var.get(DEFAULT_ATTR, "")
        var.text = default_text
        self.document.save(tree)
        logger.info("Reverted %r to its default %r", var.tag, default_text)
        try:
            return vt.parse(default_text)
        except ValueError:
            logger.warning("Default of %r is unreadable too; returning %r", var.tag, vt.zero)
            return vt.zero

    # Generic accessors ---------------------------------------------------
    def add(self, var_name: str, type_tag: str, default_value: Any) -> bool:
        """Declare a variable. Returns False if the name is already taken."""
        check_variable_name(var_name)
        vt = get_value_type(type_tag)
        text = vt.format(default_value)

        tree = self._load_for_write()
        root = tree.getroot()
        if find_variable(root, var_name) is not None:
            return False

        group = find_group(root, vt.tag)
        if group is None:
            group = ET.SubElement(root, vt.tag)
        var = ET.SubElement(group, var_name, {DEFAULT_ATTR: text})
        var.text = text
        self.document.save(tree)
        logger.debug("Added %s variable %r (default %r)", vt.tag, var_name, text)
        return True

    def set(self, var_name: str, value: Any) -> bool:
        """Set a variable using its stored type. Returns False if it does not exist."""
        check_variable_name(var_name)
        tree = self._load_for_write()
        found = find_variable(tree.getroot(), var_name)
        if found is None:
            return False
        group, var = found
        var.text = get_value_type(group.tag).format(value)
        self.document.save(tree)
        return True

    def read(self, var_name: str) -> Any:
        """Return the current value, or None if the variable does not exist."""
        check_variable_name(var_name)
        tree = self.document.load()
        found = find_variable(tree.getroot(), var_name)
        if found is None:
            return None
        group, var = found
        return self._read_value(tree, var, get_value_type(group.tag))

    def get_default(self, var_name: str) -> Any:
        check_variable_name(var_name)
        found = find_variable(self.document.load().getroot(), var_name)
        if found is None:
            return None
        group, var = found
        try:
            return get_value_type(group.tag).parse(var.get(DEFAULT_ATTR))
        except ValueError:
            return None

    def revert_to_default(self, var_name: str) -> bool:
        check_variable_name(var_name)
        tree = self._load_for_write()
        found = find_variable(tree.getroot(), var_name)
        if found is None:
            return False
        _, var = found
        var.text = var.get(DEFAULT_ATTR, "")
        self.document.save(tree)
        return True

    def remove_variable(self, var_name: str) -> bool:
        check_variable_name(var_name)
        tree = self._load_for_write()
        root = tree.getroot()
        found = find_variable(root, var_name)
        if found is None:
            return False
        group, var = found
        group.remove(var)
        if len(group) == 0:
            root.remove(group)
        self.document.save(tree)
        logger.debug("Removed variable %r", var_name)
        return True

    def does_variable_exist(self, var_name: str) -> bool:
        check_variable_name(var_name)
        return find_variable(self.document.load().getroot(), var_name) is not None

    def get_var_type(self, var_name: str) -> Optional[str]:
        """Type of a variable with its first letter upper-cased (``"Int"``), or None."""
        check_variable_name(var_name)
        found = find_variable(self.document.load().getroot(), var_name)
        if found is None:
            return None
        return get_value_type(found[0].tag).label

    def list_variables(self) -> Dict[str, str]:
        """Map of variable name -> type tag, in file order."""
        root = self.document.load().getroot()
        return {var.tag: group.tag for group, var in iter_variables(root)}

    # Lock / reset --------------------------------------------------------
    def is_locked(self) -> bool:
        return is_locked(self.document.load().getroot())

    def lock(self) -> None:
        self._set_lock(True)

    def unlock(self) -> None:
        self._set_lock(False)

    def _set_lock(self, locked: bool) -> None:
        tree = self.document.load()
        root = tree.getroot()
        if is_locked(root) == locked:
            return
        set_locked(root, locked)
        self.document.save(tree)
        logger.info("%s settings file %s", "Locked" if locked else "Unlocked", self.path)

    def reset(self) -> None:
        """Back up the current file and start over with an empty one."""
        self.document.reset()

    # Typed accessors -----------------------------------------------------
    def _set_typed(self, var_name: str, type_tag: str, value: Any) -> bool:
        check_variable_name(var_name)
        vt = get_value_type(type_tag)
        text = vt.format(value)

        tree = self._load_for_write()
        found = find_variable(tree.getroot(), var_name)
        if found is None:
            return False
        group, var = found
        if group.tag != vt.tag:
            raise VariableTypeMismatchError(var_name, vt.tag, group.tag)
        var.text = text
        self.document.save(tree)
        return True

    def _read_typed(self, var_name: str, type_tag: str) -> Any:
        check_variable_name(var_name)
        vt = get_value_type(type_tag)
        tree = self.document.load()
        found = find_variable(tree.getroot(), var_name)
        if found is None:
            return vt.zero
        group, var = found
        if group.tag != vt.tag:
            raise VariableTypeMismatchError(var_name, vt.tag, group.tag)
        return self._read_value(tree, var, vt)

    def add_boolean(self, var_name: str, default_value: bool) -> bool:
        return self.add(var_name, "boolean", default_value)

    def add_string(self, var_name: str, default_value: str) -> bool:
        return self.add(var_name, "string", default_value)

    def add_byte(self, var_name: str, default_value: int) -> bool:
        return self.add(var_name, "byte", default_value)

    def add_sbyte(self, var_name: str, default_value: int) -> bool:
        return self.add(var_name, "sbyte", default_value)

    def add_short(self, var_name: str, default_value: int) -> bool:
        return self.add(var_name, "short", default_value)

    def add_ushort(self, var_name: str, default_value: int) -> bool:
        return self.add(var_name, "ushort", default_value)

    def add_int(self, var_name: str, default_value: int) -> bool:
        return self.add(var_name, "int", default_value)

    def add_uint(self, var_name: str, default_value: int) -> bool:
        return self.add(var_name, "uint", default_value)

    def add_long(self, var_name: str, default_value: int) -> bool:
        return self.add(var_name, "long", default_value)

    def add_ulong(self, var_name: str, default_value: int) -> bool:
        return self.add(var_name, "ulong", default_value)

    def add_double(self, var_name: str, default_value: float) -> bool:
        return self.add(var_name, "double", default_value)

    def set_boolean(self, var_name: str, value: bool) -> bool:
        return self._set_typed(var_name, "boolean", value)

    def set_string(self, var_name: str, value: str) -> bool:
        return self._set_typed(var_name, "string", value)

    def set_byte(self, var_name: str, value: int) -> bool:
        return self._set_typed(var_name, "byte", value)

    def set_sbyte(self, var_name: str, value: int) -> bool:
        return self._set_typed(var_name, "sbyte", value)

    def set_short(self, var_name: str, value: int) -> bool:
        return self._set_typed(var_name, "short", value)

    def set_ushort(self, var_name: str, value: int) -> bool:
        return self._set_typed(var_name, "ushort", value)

    def set_int(self, var_name: str, value: int) -> bool:
        return self._set_typed(var_name, "int", value)

    def set_uint(self, var_name: str, value: int) -> bool:
        return self._set_typed(var_name, "uint", value)

    def set_long(self, var_name: str, value: int) -> bool:
        return self._set_typed(var_name, "long", value)

    def set_ulong(self, var_name: str, value: int) -> bool:
        return self._set_typed(var_name, "ulong", value)

    def set_double(self, var_name: str, value: float) -> bool:
        return self._set_typed(var_name, "double", value)

    def read_boolean(self, var_name: str) -> bool:
        return self._read_typed(var_name, "boolean")

    def read_string(self, var_name: str) -> str:
        return self._read_typed(var_name, "string")

    def read_byte(self, var_name: str) -> int:
        return self._read_typed(var_name, "byte")

    def read_sbyte(self, var_name: str) -> int:
        return self._read_typed(var_name, "sbyte")

    def read_short(self, var_name: str) -> int:
        return self._read_typed(var_name, "short")

    def read_ushort(self, var_name: str) -> int:
        return self._read_typed(var_name, "ushort")

    def read_int(self, var_name: str) -> int:
        return self._read_typed(var_name, "int")

    def read_uint(self, var_name: str) -> int:
        return self._read_typed(var_name, "uint")

    def read_long(self, var_name: str) -> int:
        return self._read_typed(var_name, "long")

    def read_ulong(self, var_name: str) -> int:
        return self._read_typed(var_name, "ulong")

    def read_double(self, var_name: str) -> float:
        return self._read_typed(var_name, "double")


__all__ = ["XmlSettings"]
