"""
lodestone.operations
--------------------

Tag-gated bulk operations over the jars of a scanned directory.

Every operation takes the scanned directory, the scan's archive -> identifier mapping,
the registry and a tag. An archive matches when its filename is in the mapping, the
mapped identifier is in the registry and the recorded tag equals the requested one;
identifiers unknown to the registry never match, not even ``Tag.UNKNOWN``.

Each operation checks that a matching file still exists right before acting on it and
silently skips files that have disappeared since the scan. None of them asks for
confirmation: callers must confirm destructive operations (delete) themselves.
"""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path
from typing import *

from tqdm import tqdm

from .exceptions import FileAccessError, UserInputError
from .fileops import atomic_write, move_file, remove_file
from .registry import Registry
from .types_models import Operation, Tag

logger = logging.getLogger(__name__)


def _coerce_tag(tag: Union[Tag, str]) -> Tag:
    return tag if isinstance(tag, Tag) else Tag.parse(tag)


def iter_matching(directory: Union[str, Path],
                  archive_to_identifier: Mapping[str, str],
                  registry: Registry,
                  tag: Union[Tag, str]) -> Iterator[Path]:
    """
    Yield the path of every archive whose resolved tag equals `tag`, in mapping order.

    Existence on disk is not checked here.
    """
    tag = _coerce_tag(tag)
    directory = Path(directory)
    for filename, mod_id in archive_to_identifier.items():
        if registry.tag_of(mod_id) is tag:
            yield directory / filename


def bundle_tagged(directory: Union[str, Path],
                  archive_to_identifier: Mapping[str, str],
                  registry: Registry,
                  tag: Union[Tag, str],
                  output: Union[str, Path],
                  *,
                  compression: int = zipfile.ZIP_DEFLATED,
                  progress: bool = False) -> int:
    """
    Create (or overwrite) the zip archive `output` containing every matching jar.

    Each jar is stored under its own filename with its bytes unchanged.

    Returns
    -------
    int
        Number of jars bundled.
    """
    output = Path(output)
    matches = list(iter_matching(directory, archive_to_identifier, registry, tag))
    count = 0
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(output, "w", compression=compression) as zf:
            for path in tqdm(matches, desc="Bundling", unit="jar", disable=not progress):
                if not path.is_file():
                    continue
                try:
                    zf.write(path, arcname=path.name)
                except FileNotFoundError:
                    continue
                count += 1
    except OSError as exc:
        raise FileAccessError(f"Failed to write bundle: {exc.strerror or exc}", path=output) from exc
    logger.info("Bundled %d %s mods into %s", count, _coerce_tag(tag).value, output)
    return count


def delete_tagged(directory: Union[str, Path],
                  archive_to_identifier: Mapping[str, str],
                  registry: Registry,
                  tag: Union[Tag, str],
                  *,
                  progress: bool = False) -> int:
    """
    Permanently delete every matching jar that still exists.

    Returns
    -------
    int
        Number of files deleted.
    """
    matches = list(iter_matching(directory, archive_to_identifier, registry, tag))
    count = 0
    for path in tqdm(matches, desc="Deleting", unit="jar", disable=not progress):
        if remove_file(path):
            count += 1
    logger.info("Deleted %d %s mods from %s", count, _coerce_tag(tag).value, directory)
    return count


def list_tagged(directory: Union[str, Path],
                archive_to_identifier: Mapping[str, str],
                registry: Registry,
                tag: Union[Tag, str],
                output: Union[str, Path]) -> int:
    """
    Write the filename of every matching jar that still exists to the text file `output`,
    one per line, replacing any existing file.

    Returns
    -------
    int
        Number of names written.
    """
    names = [path.name for path in iter_matching(directory, archive_to_identifier, registry, tag) if path.is_file()]
    atomic_write(Path(output), chunks=[f"{name}\n" for name in names])
    logger.info("Listed %d %s mods in %s", len(names), _coerce_tag(tag).value, output)
    return len(names)


def move_tagged(directory: Union[str, Path],
                archive_to_identifier: Mapping[str, str],
                registry: Registry,
                tag: Union[Tag, str],
                destination: Union[str, Path],
                *,
                progress: bool = False) -> int:
    """
    Move every matching jar that still exists into `destination` (created if absent).

    Same-named files already in `destination` are overwritten.

    Returns
    -------
    int
        Number of files moved.
    """
    destination = Path(destination)
    try:
        destination.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FileAccessError(f"Cannot create destination: {exc.strerror or exc}", path=destination) from exc
    matches = list(iter_matching(directory, archive_to_identifier, registry, tag))
    count = 0
    for path in tqdm(matches, desc="Moving", unit="jar", disable=not progress):
        if move_file(path, destination / path.name):
            count += 1
    logger.info("Moved %d %s mods to %s", count, _coerce_tag(tag).value, destination)
    return count


def run_operation(operation: Union[Operation, str],
                  directory: Union[str, Path],
                  archive_to_identifier: Mapping[str, str],
                  registry: Registry,
                  tag: Union[Tag, str],
                  target: Optional[Union[str, Path]] = None,
                  **kwargs: Any) -> int:
    """
    Dispatch to the bulk operation named by `operation`.

    `target` is the output archive (bundle), output text file (list) or destination
    directory (move); it is ignored for delete. Extra keyword arguments are passed
    through (`compression`, `progress`) where the operation accepts them.
    """
    op = operation if isinstance(operation, Operation) else Operation.parse(operation)
    if op.needs_target and not target:
        raise UserInputError(f"Operation {op.value!r} needs a target path")
    if op is Operation.BUNDLE:
        return bundle_tagged(directory, archive_to_identifier, registry, tag, target, **kwargs)
    if op is Operation.DELETE:
        kwargs.pop("compression", None)
        return delete_tagged(directory, archive_to_identifier, registry, tag, **kwargs)
    if op is Operation.LIST:
        return list_tagged(directory, archive_to_identifier, registry, tag, target)
    kwargs.pop("compression", None)
    return move_tagged(directory, archive_to_identifier, registry, tag, target, **kwargs)
