"""
lodestone.paths
---------------

Platform-aware default locations and small path helpers.

Responsibilities
- Detect the default Minecraft game directory and its ``mods`` folder.
- Provide the default folder where registry ("module") files are kept.
- List registry files in a modules folder.
- Join user-supplied output filenames onto a folder without allowing traversal.

Usage
-----
from lodestone.paths import default_mods_dir, find_modules

mods = default_mods_dir()
modules = find_modules()
"""

from __future__ import annotations

import os
import platform
from pathlib import Path
from typing import *


def safe_join(folder: Path, filename: str) -> Path:
    """
    Return folder / filename (Path) and ensure filename is a single file (no path separators).
    """
    filename = filename or ""
    # Prevent directory traversal in filename
    filename = filename.replace("\\", "/")
    basename = os.path.basename(filename)
    if not basename or basename in (".", ".."):
        raise ValueError("Empty filename cannot be resolved into a path")
    return Path(folder) / basename


def default_minecraft_dir() -> Path:
    """
    Return the platform-default Minecraft game directory.

    Windows: %APPDATA%\\.minecraft
    macOS: ~/Library/Application Support/minecraft
    Linux: ~/.minecraft

    If the usual environment variables are not set, falls back to user home + '.minecraft'.
    """
    system = platform.system()
    home = Path.home()
    if system == "Windows":
        appdata = os.getenv("APPDATA")
        if appdata:
            return Path(appdata) / ".minecraft"
        return home / ".minecraft"
    elif system == "Darwin":
        return home / "Library" / "Application Support" / "minecraft"
    else:
        # Linux, BSD, etc.
        return home / ".minecraft"


def default_mods_dir(game_dir: Optional[Path] = None) -> Path:
    """The ``mods`` folder of `game_dir` (defaults to the platform Minecraft directory)."""
    return Path(game_dir or default_minecraft_dir()) / "mods"


def default_modules_dir(game_dir: Optional[Path] = None) -> Path:
    """Folder holding registry files: ``<game dir>/lodestone/modules``."""
    return Path(game_dir or default_minecraft_dir()) / "lodestone" / "modules"


def find_modules(directory: Optional[Path] = None) -> List[Path]:
    """
    Return the ``*.json`` registry files directly inside `directory`, sorted by name.

    Uses `default_modules_dir()` when no directory is given. A missing directory yields [].
    """
    directory = Path(directory).expanduser() if directory else default_modules_dir()
    if not directory.is_dir():
        return []
    return sorted((p for p in directory.iterdir() if p.suffix == ".json" and p.is_file()), key=lambda p: p.name)
