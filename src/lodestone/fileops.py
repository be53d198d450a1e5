"""
lodestone.fileops
-----------------

File operations used by the registry and the tag-gated bulk operations:

- atomic_write: write bytes / text chunks atomically to a file (temp -> fsync -> replace)
- remove_file: remove a single file if it still exists
- move_file: rename a file into place, falling back to copy-then-delete across filesystems

Notes:
- None of these helpers retry. A file that vanished before the call is reported, not an error.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path
from typing import *

from .exceptions import FileAccessError

# Utility helpers
def _fsync_fileobj(fp) -> None:
    """
    Flush and fsync a file object. Ignore on platforms where fsync is unsupported.
    """
    try:
        fp.flush()
        os.fsync(fp.fileno())
    except (OSError, AttributeError, ValueError):
        pass


# atomic_write
def atomic_write(dest_path: Path,
                 data: Optional[Union[bytes, str]] = None,
                 chunks: Optional[Iterable[Union[bytes, str]]] = None,
                 *,
                 encoding: str = "utf-8",
                 tmp_suffix: Optional[str] = None) -> Path:
    """
    Atomically write `data` or an iterable `chunks` to `dest_path`.

    Behavior:
      - Creates destination directory if missing.
      - Writes to a temporary file in the same directory (ensures atomic os.replace).
      - Flushes and fsyncs file before replacing.
      - str data/chunks are encoded with `encoding`.

    Parameters
    ----------
    dest_path : Path
        Final destination path for the file.
    data : Optional[bytes | str]
        Whole content to write. If provided, `chunks` must be None.
    chunks : Optional[Iterable[bytes | str]]
        Iterable yielding chunks (e.g. lines). If provided, `data` must be None.
    encoding : str
        Encoding used for str content.
    tmp_suffix : Optional[str]
        Optional suffix appended to temp filename.

    Returns
    -------
    Path
        The final destination path.

    Raises
    ------
    ValueError
        If neither `data` nor `chunks` provided or both provided.
    FileAccessError
        On I/O errors during write or replace.
    """
    dest_path = Path(dest_path)
    if (data is None and chunks is None) or (data is not None and chunks is not None):
        raise ValueError("Provide exactly one of `data` or `chunks`.")

    parts = [data] if data is not None else chunks
    tmp = None
    try:
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=str(dest_path.parent), suffix=(tmp_suffix or ".tmp"))
        tmp = Path(tmp_name)
        with os.fdopen(fd, "wb") as f:
            for chunk in parts:
                if not chunk:
                    continue
                f.write(chunk.encode(encoding) if isinstance(chunk, str) else chunk)
            _fsync_fileobj(f)
        os.replace(str(tmp), str(dest_path))
        return dest_path
    except OSError as exc:
        if tmp is not None and tmp.exists():
            tmp.unlink()
        raise FileAccessError(f"Failed to write file: {exc.strerror or exc}", path=dest_path) from exc


# remove_file
def remove_file(path: Path) -> bool:
    """
    Remove `path` if it is an existing file.

    Returns
    -------
    bool
        True if the file was removed, False if it no longer existed.

    Raises
    ------
    FileAccessError
        If removal fails for any other reason (permissions, path is a directory, ...).
    """
    path = Path(path)
    if not path.is_file():
        return False
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as exc:
        raise FileAccessError(f"Failed to delete file: {exc.strerror or exc}", path=path) from exc
    return True


# move_file
def move_file(src: Path, dest: Path) -> bool:
    """
    Move `src` to `dest`, overwriting an existing `dest`.

    Strategy:
      1. os.replace(src, dest) (atomic rename on the same filesystem).
      2. On failure (e.g. cross-device), copy src -> dest with metadata, then delete src.

    Returns
    -------
    bool
        True if moved, False if `src` no longer existed.

    Raises
    ------
    FileAccessError
        If both the rename and the copy fallback fail.
    """
    src = Path(src)
    dest = Path(dest)
    if not src.is_file():
        return False
    try:
        os.replace(str(src), str(dest))
        return True
    except FileNotFoundError as exc:
        if not src.exists():
            return False
        raise FileAccessError("Destination directory does not exist", path=dest.parent) from exc
    except OSError:
        pass

    # fallback: copy then delete the source
    try:
        shutil.copy2(str(src), str(dest))
        src.unlink()
    except FileNotFoundError:
        return False
    except OSError as exc:
        raise FileAccessError(f"Failed to move file: {exc.strerror or exc}", path=src) from exc
    return True
