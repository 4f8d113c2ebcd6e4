"""Centralized helpers for resolving the timetracker configuration directory."""
from __future__ import annotations

import logging
import os
import platform
from pathlib import Path
from typing import Mapping, Optional

from services.errors import DestinationIOError

LOGGER = logging.getLogger(__name__)

QUALIFIER = "dev"
ORGANIZATION = "sintheta"
APPLICATION = "timetracker"


def resolve_config_dir(
    system: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> Path:
    """Return the per-user configuration directory for the timetracker.

    Linux:   ``$XDG_CONFIG_HOME/timetracker`` (``~/.config/timetracker``)
    macOS:   ``~/Library/Application Support/dev.sintheta.timetracker``
    Windows: ``%APPDATA%\\sintheta\\timetracker\\config``
    """

    system = (system or platform.system()).lower()
    environ = os.environ if environ is None else environ
    home = Path(home) if home is not None else Path.home()

    if system == "darwin":
        return home / "Library" / "Application Support" / f"{QUALIFIER}.{ORGANIZATION}.{APPLICATION}"

    if system == "windows":
        appdata = environ.get("APPDATA")
        base = Path(appdata) if appdata else home / "AppData" / "Roaming"
        return base / ORGANIZATION / APPLICATION / "config"

    xdg = environ.get("XDG_CONFIG_HOME")
    # Relative XDG paths are invalid per the basedir spec
    base = Path(xdg) if xdg and Path(xdg).is_absolute() else home / ".config"
    return base / APPLICATION


def ensure_config_dir(path: Optional[Path] = None) -> Path:
    """Return *path* (or the resolved config dir), creating it if needed."""

    directory = Path(path) if path is not None else resolve_config_dir()
    if directory.is_dir():
        return directory

    LOGGER.info("Creating configuration directory %s", directory)
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise DestinationIOError(f"Could not create directory '{directory}': {exc}") from exc
    return directory
