from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path

import pytest

from xmlsettings.document import (
    FORMAT_VERSION,
    SettingsDocument,
    check_variable_name,
    condense,
    find_variable,
    format_version,
    is_locked,
)
from xmlsettings.errors import InvalidVariableNameError

LEGACY_FILE = """<?xml version="1.0" encoding="UTF-8"?>
<body>
  <boolean><darkMode default="True">False</darkMode></boolean>
  <int><retries default="3">5</retries></int>
  <boolean><sound default="False">True</sound></boolean>
  <int><timeout default="30">30</timeout></int>
</body>
"""


def _backups(path: Path) -> list:
    return sorted(path.parent.glob(path.name + ".bak.*"))


def test_missing_file_is_created(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "settings.xml"
    doc = SettingsDocument(path)
    root = doc.load().getroot()

    assert path.is_file()
    assert root.tag == "body"
    assert format_version(root) == FORMAT_VERSION
    assert not is_locked(root)
    assert len(root) == 0


def test_legacy_file_is_condensed(tmp_path: Path) -> None:
    path = tmp_path / "settings.xml"
    path.write_text(LEGACY_FILE, encoding="utf-8")

    root = SettingsDocument(path).load().getroot()

    assert [g.tag for g in root] == ["boolean", "int"]
    assert [v.tag for v in root[0]] == ["darkMode", "sound"]
    assert [v.tag for v in root[1]] == ["retries", "timeout"]
    assert find_variable(root, "retries")[1].text == "5"

    # migration is written back and does not need a backup
    on_disk = ET.parse(path).getroot()
    assert on_disk.get("formatVersion") == FORMAT_VERSION
    assert len(on_disk.findall("int")) == 1
    assert not _backups(path)


def test_condense_duplicates_and_missing_defaults() -> None:
    root = ET.fromstring(
        "<body>"
        "<int><a>1</a></int>"
        "<string><a default='x'>y</a></string>"
        "<string/>"
        "</body>"
    )
    assert condense(root) is True
    assert [g.tag for g in root] == ["int"]
    assert root[0][0].get("default") == "1"
    assert condense(root) is False


@pytest.mark.parametrize(
    "content",
    [
        "{not xml",
        "",
        "<settings/>",
        "<body formatVersion='9.0'/>",
        "<body formatVersion='banana'/>",
        "<body formatVersion='1.1'><color><x default='1'>1</x></color></body>",
        "<body formatVersion='1.1'><int><x default='1'><y/></x></int></body>",
    ],
)
def test_unusable_file_is_backed_up_and_recreated(tmp_path: Path, content: str) -> None:
    path = tmp_path / "settings.xml"
    path.write_text(content, encoding="utf-8")

    root = SettingsDocument(path).load().getroot()

    assert len(root) == 0
    assert format_version(root) == FORMAT_VERSION
    baks = _backups(path)
    assert len(baks) == 1
    assert baks[0].read_text(encoding="utf-8") == content


def test_backup_names_do_not_collide(tmp_path: Path) -> None:
    path = tmp_path / "settings.xml"
    doc = SettingsDocument(path)
    doc.create()

    first = doc.backup()
    second = doc.backup()
    assert first != second
    assert len(_backups(path)) == 2


def test_backup_failure_keeps_original(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "settings.xml"
    path.write_text("{broken", encoding="utf-8")

    def _fail(*args, **kwargs):
        raise PermissionError("no space for backup")

    monkeypatch.setattr("xmlsettings.document.shutil.copy2", _fail)
    with pytest.raises(PermissionError):
        SettingsDocument(path).load()
    assert path.read_text(encoding="utf-8") == "{broken"


def test_save_is_atomic_and_indented(tmp_path: Path) -> None:
    path = tmp_path / "settings.xml"
    doc = SettingsDocument(path)
    tree = doc.load()
    group = ET.SubElement(tree.getroot(), "string")
    var = ET.SubElement(group, "name", {"default": ""})
    var.text = "  spaced  "
    doc.save(tree)

    assert not (tmp_path / "settings.xml.tmp").exists()
    text = path.read_text(encoding="utf-8")
    assert text.startswith("<?xml")
    assert "\n  <string>" in text
    assert find_variable(doc.load().getroot(), "name")[1].text == "  spaced  "


@pytest.mark.parametrize("name", ["", "1abc", "has space", "xmlThing", "XMLthing", "a<b", "abc\n"])
def test_invalid_variable_names(name: str) -> None:
    with pytest.raises(InvalidVariableNameError):
        check_variable_name(name)


def test_valid_variable_names() -> None:
    for name in ("a", "_private", "window.width", "max-items", "v2"):
        assert check_variable_name(name) == name


def test_unknown_encoding_is_backed_up_and_recreated(tmp_path: Path) -> None:
    path = tmp_path / "settings.xml"
    content = '<?xml version="1.0" encoding="bogus-enc"?><body/>'
    path.write_text(content, encoding="utf-8")

    root = SettingsDocument(path).load().getroot()

    assert len(root) == 0
    assert format_version(root) == FORMAT_VERSION
    assert len(_backups(path)) == 1


def test_current_version_with_split_groups_is_condensed(tmp_path: Path) -> None:
    path = tmp_path / "settings.xml"
    path.write_text(
        '<?xml version="1.0" encoding="utf-8"?>'
        '<body formatVersion="1.1" locked="false">'
        '<int><a default="1">1</a></int>'
        '<string><s default="x">y</s></string>'
        '<int><b default="2">3</b></int>'
        "</body>",
        encoding="utf-8",
    )

    SettingsDocument(path).load()

    on_disk = ET.parse(path).getroot()
    assert [g.tag for g in on_disk] == ["int", "string"]
    assert [v.tag for v in on_disk.find("int")] == ["a", "b"]
    assert not _backups(path)


def test_failed_save_removes_temp_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "settings.xml"
    doc = SettingsDocument(path)
    tree = doc.load()
    before = path.read_bytes()
    ET.SubElement(ET.SubElement(tree.getroot(), "int"), "n", {"default": "1"}).text = "1"

    def _fail(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("xmlsettings.document.os.replace", _fail)
    with pytest.raises(OSError):
        doc.save(tree)

    assert not (tmp_path / "settings.xml.tmp").exists()
    assert path.read_bytes() == before
