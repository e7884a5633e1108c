"""Default locations used by the command line tool."""

from __future__ import annotations

import os
from pathlib import Path

HOME_ENV_VAR = "XMLSETTINGS_HOME"


def default_settings_home() -> Path:
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".xmlsettings"


def default_settings_path(filename: str = "settings.xml") -> Path:
    return default_settings_home() / filename
