"""Command line interface for inspecting and editing settings files."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .document import check_variable_name
from .errors import SettingsLockedError
from .log_utils import setup_logging
from .paths import default_settings_path
from .store import XmlSettings
from .value_types import VALUE_TYPES, get_value_type

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FALSE = 1
EXIT_USAGE = 2
EXIT_LOCKED = 3


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="xmlsettings", description="Inspect and edit typed XML settings files.")
    ap.add_argument("--file", type=str, default=None, help="Settings file (default: ~/.xmlsettings/settings.xml)")
    ap.add_argument("--verbose", "-v", action="store_true", help="Log debug output to stderr")
    ap.add_argument("--log-file", type=str, default=None)
    ap.add_argument(
        "--no-revert",
        action="store_true",
        help="Do not revert unreadable values to their default when reading",
    )
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    sub = ap.add_subparsers(dest="command", required=True)

    sub.add_parser("show", help="List all variables")
    sub.add_parser("check", help="Load (and heal) the file, print its format version")
    sub.add_parser("lock", help="Make the file read-only for this tool and the library")
    sub.add_parser("unlock")
    sub.add_parser("reset", help="Back up the file and recreate it empty")

    for name in ("get", "revert", "remove", "type"):
        p = sub.add_parser(name)
        p.add_argument("name")

    p = sub.add_parser("set")
    p.add_argument("name")
    p.add_argument("value")

    p = sub.add_parser("add")
    p.add_argument("name")
    p.add_argument("type", choices=list(VALUE_TYPES))
    p.add_argument("default")

    return ap


def _show(store: XmlSettings) -> int:
    print(f"file: {store.path}")
    print(f"format: {store.get_file_format_version()}  locked: {store.is_locked()}")
    for name, tag in store.list_variables().items():
        vt = get_value_type(tag)
        value = vt.format(store.read(name))
        default = store.get_default(name)
        default_txt = vt.format(default) if default is not None else "?"
        print(f"{name:24s} {tag:8s} {value!r}  (default={default_txt!r})")
    return EXIT_OK


def _run(store: XmlSettings, args: argparse.Namespace) -> int:
    cmd = args.command

    if cmd == "show":
        return _show(store)

    if cmd == "check":
        print(store.get_file_format_version())
        return EXIT_OK

    if cmd == "lock":
        store.lock()
        return EXIT_OK

    if cmd == "unlock":
        store.unlock()
        return EXIT_OK

    if cmd == "reset":
        store.reset()
        return EXIT_OK

    if cmd == "add":
        vt = get_value_type(args.type)
        if not store.add(args.name, vt.tag, vt.parse(args.default)):
            print(f"variable {args.name!r} already exists", file=sys.stderr)
            return EXIT_FALSE
        return EXIT_OK

    check_variable_name(args.name)
    tag = store.list_variables().get(args.name)
    if tag is None:
        print(f"variable {args.name!r} does not exist", file=sys.stderr)
        return EXIT_FALSE
    vt = get_value_type(tag)

    if cmd == "get":
        print(vt.format(store.read(args.name)))
    elif cmd == "type":
        print(store.get_var_type(args.name))
    elif cmd == "set":
        store.set(args.name, vt.parse(args.value))
    elif cmd == "revert":
        store.revert_to_default(args.name)
    elif cmd == "remove":
        store.remove_variable(args.name)
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    setup_logging(verbose=args.verbose, log_file=args.log_file)

    path = args.file or str(default_settings_path())
    try:
        store = XmlSettings(path, revert_to_default_on_fail=not args.no_revert)
        return _run(store, args)
    except SettingsLockedError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_LOCKED
    except ValueError as e:
        logger.debug("Rejected command %s", args.command, exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return EXIT_USAGE


if __name__ == "__main__":
    raise SystemExit(main())
