"""XML settings file: loading, healing, format migration and saving.

Layout of a current (``1.1``) file::

    <body formatVersion="1.1" locked="false">
      <int>
        <retries default="3">5</retries>
      </int>
    </body>

Legacy ``1.0`` files carry no root attributes and wrap every variable in its
own type node, so a file may contain many ``<int>`` siblings. Loading such a
file condenses it into one group per type and stamps the current version.

A file that cannot be used at all (broken XML, wrong root, unknown type group,
a format version newer than :data:`FORMAT_VERSION`) is copied to a timestamped
backup, deleted, and recreated empty. Nothing is deleted before the backup has
been written.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import time
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple, Union

from packaging.version import InvalidVersion, Version

from .errors import InvalidVariableNameError, SettingsFormatError
from .value_types import is_value_type

logger = logging.getLogger(__name__)

FORMAT_VERSION = "1.1"
LEGACY_FORMAT_VERSION = "1.0"

ROOT_TAG = "body"
VERSION_ATTR = "formatVersion"
LOCKED_ATTR = "locked"
DEFAULT_ATTR = "default"

_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9._-]*")


def check_variable_name(name: str) -> str:
    """Return ``name`` if it can be used as an element tag, else raise."""
    if not isinstance(name, str) or not _NAME_RE.fullmatch(name):
        raise InvalidVariableNameError(f"invalid variable name {name!r}")
    if name.lower().startswith("xml"):
        raise InvalidVariableNameError(f"variable names may not start with 'xml': {name!r}")
    return name


def format_version(root: ET.Element) -> str:
    return root.get(VERSION_ATTR) or LEGACY_FORMAT_VERSION


def is_locked(root: ET.Element) -> bool:
    return (root.get(LOCKED_ATTR) or "").strip().lower() == "true"


def set_locked(root: ET.Element, locked: bool) -> None:
    root.set(LOCKED_ATTR, "true" if locked else "false")


def iter_variables(root: ET.Element) -> Iterator[Tuple[ET.Element, ET.Element]]:
    """Yield ``(group, variable)`` pairs in document order."""
    for group in root:
        for var in group:
            yield group, var


def find_variable(root: ET.Element, name: str) -> Optional[Tuple[ET.Element, ET.Element]]:
    for group, var in iter_variables(root):
        if var.tag == name:
            return group, var
    return None


def find_group(root: ET.Element, tag: str) -> Optional[ET.Element]:
    for group in root:
        if group.tag == tag:
            return group
    return None


def _check_structure(root: ET.Element) -> None:
    if root.tag != ROOT_TAG:
        raise SettingsFormatError(f"root element is <{root.tag}>, expected <{ROOT_TAG}>")

    raw = root.get(VERSION_ATTR)
    if raw is not None:
        try:
            version = Version(raw)
        except InvalidVersion:
            raise SettingsFormatError(f"unreadable format version {raw!r}") from None
        if version > Version(FORMAT_VERSION):
            raise SettingsFormatError(
                f"format version {raw} is newer than the supported {FORMAT_VERSION}"
            )

    for group in root:
        if not is_value_type(group.tag):
            raise SettingsFormatError(f"unknown type group <{group.tag}>")
        for var in group:
            if len(var):
                raise SettingsFormatError(f"variable <{var.tag}> has child elements")


def condense(root: ET.Element) -> bool:
    """Merge same-typed groups into one and stamp the current format version.

    Duplicate variable names keep their first occurrence. A variable without a
    default takes its current value as default. Returns True if the tree was
    changed.
    """
    changed = False
    groups: Dict[str, ET.Element] = {}
    seen: Dict[str, str] = {}

    for group in list(root):
        target = groups.setdefault(group.tag, group)
        for var in list(group):
            if var.tag in seen:
                logger.warning(
                    "Dropping duplicate variable %r in <%s> (first defined in <%s>)",
                    var.tag,
                    group.tag,
                    seen[var.tag],
                )
                group.remove(var)
                changed = True
                continue
            seen[var.tag] = group.tag
            if var.get(DEFAULT_ATTR) is None:
                var.set(DEFAULT_ATTR, var.text or "")
                changed = True
            if target is not group:
                group.remove(var)
                target.append(var)
        if target is not group:
            root.remove(group)
            changed = True

    for group in list(root):
        if len(group) == 0:
            root.remove(group)
            changed = True

    if root.get(VERSION_ATTR) != FORMAT_VERSION:
        root.set(VERSION_ATTR, FORMAT_VERSION)
        changed = True
    if root.get(LOCKED_ATTR) is None:
        set_locked(root, False)
        changed = True
    return changed


class SettingsDocument:
    """Owns one settings file on disk."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def create(self) -> ET.ElementTree:
        root = ET.Element(ROOT_TAG, {VERSION_ATTR: FORMAT_VERSION, LOCKED_ATTR: "false"})
        tree = ET.ElementTree(root)
        self.save(tree)
        logger.info("Created settings file %s", self.path)
        return tree

    def load(self) -> ET.ElementTree:
        """Load the file, healing or migrating it as needed."""
        if not self.path.exists():
            return self.create()

        try:
            tree = ET.parse(self.path)
            root = tree.getroot()
            _check_structure(root)
        except (ET.ParseError, SettingsFormatError, LookupError, UnicodeError) as exc:
            logger.warning("Settings file %s is unusable (%s); recreating it", self.path, exc)
            return self.reset()

        old_version = format_version(root)
        if condense(root):
            if old_version != FORMAT_VERSION:
                logger.info(
                    "Migrated settings file %s from format %s to %s",
                    self.path,
                    old_version,
                    FORMAT_VERSION,
                )
            else:
                logger.info("Condensed settings file %s", self.path)
            self.save(tree)
        return tree

    def save(self, tree: ET.ElementTree) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")

        ET.indent(tree, space="  ")
        data = ET.tostring(tree.getroot(), encoding="utf-8", xml_declaration=True)
        # ElementTree leaves CR raw in text; the parser would fold it into LF
        data = data.replace(b"\r", b"&#13;")

        try:
            tmp.write_bytes(data)
            os.replace(tmp, self.path)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise

    def backup(self) -> Path:
        """Copy the current file next to itself as ``<name>.bak.<timestamp>``."""
        ts = time.strftime("%Y%m%d_%H%M%S")
        bak = self.path.with_name(f"{self.path.name}.bak.{ts}")
        n = 0
        while bak.exists():
            n += 1
            bak = self.path.with_name(f"{self.path.name}.bak.{ts}.{n}")
        shutil.copy2(self.path, bak)
        logger.warning("Backed up settings file %s to %s", self.path, bak)
        return bak

    def reset(self) -> ET.ElementTree:
        """Back up (if present), delete and recreate the file."""
        if self.path.exists():
            self.backup()
            self.path.unlink()
        return self.create()


__all__ = [
    "FORMAT_VERSION",
    "LEGACY_FORMAT_VERSION",
    "SettingsDocument",
    "check_variable_name",
    "condense",
    "find_group",
    "find_variable",
    "format_version",
    "is_locked",
    "iter_variables",
    "set_locked",
]
