"""
lodestone.inspector
-------------------

Extract a mod's identity from the loader manifest embedded in a jar.

Recognised manifest dialects (matched by entry-name suffix):

- ``mods.toml``       Forge, or NeoForge when the file mentions neoforge / neo-forge
- ``fabric.mod.json`` Fabric
- ``mcmod.info``      legacy Forge (JSON array, or a version-2 ``{"modList": [...]}`` document)

Entries are visited in the archive's stored order and the first entry whose name
ends with a recognised suffix decides the result; later entries are never read.
"""

from __future__ import annotations

import json
import logging
import tomllib
import zipfile
import zlib
from pathlib import Path
from typing import *

from .exceptions import ArchiveFormatError, FileAccessError, ManifestError
from .types_models import DetectionResult, LoaderFamily
from .utils import decode_text, normalize_version

logger = logging.getLogger(__name__)

ManifestParser = Callable[[bytes], Tuple[str, LoaderFamily, Optional[str]]]


def _require_id(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value:
        raise ValueError(f"manifest has no usable {field_name!r} field")
    return value


def _parse_mods_toml(data: bytes) -> Tuple[str, LoaderFamily, Optional[str]]:
    text = decode_text(data)
    doc = tomllib.loads(text)
    mods = doc.get("mods")
    if not isinstance(mods, list) or not mods or not isinstance(mods[0], dict):
        raise ValueError("manifest has no [[mods]] table")
    first = mods[0]
    mod_id = _require_id(first.get("modId"), "modId")
    raw_version = first.get("version")
    if raw_version is None:
        raw_version = first.get("modVersion")
    lowered = text.lower()
    if "neoforge" in lowered or "neo-forge" in lowered:
        loader = LoaderFamily.NEOFORGE
    else:
        loader = LoaderFamily.FORGE
    return mod_id, loader, normalize_version(raw_version)


def _parse_fabric_mod_json(data: bytes) -> Tuple[str, LoaderFamily, Optional[str]]:
    doc = json.loads(decode_text(data), strict=False)
    if not isinstance(doc, dict):
        raise ValueError("fabric.mod.json must be a JSON object")
    mod_id = _require_id(doc.get("id"), "id")
    return mod_id, LoaderFamily.FABRIC, normalize_version(doc.get("version"))


def _parse_mcmod_info(data: bytes) -> Tuple[str, LoaderFamily, Optional[str]]:
    doc = json.loads(decode_text(data), strict=False)
    # version 2 files wrap the list: {"modListVersion": 2, "modList": [...]}
    if isinstance(doc, dict):
        doc = doc.get("modList")
    if not isinstance(doc, list) or not doc or not isinstance(doc[0], dict):
        raise ValueError("mcmod.info must be a non-empty JSON array of objects")
    first = doc[0]
    mod_id = _require_id(first.get("modid"), "modid")
    return mod_id, LoaderFamily.FORGE, normalize_version(first.get("version"))


# Ordered dispatch table: manifest suffix -> parser
MANIFEST_DIALECTS: Tuple[Tuple[str, ManifestParser], ...] = (
    ("mods.toml", _parse_mods_toml),
    ("fabric.mod.json", _parse_fabric_mod_json),
    ("mcmod.info", _parse_mcmod_info),
)


class ArchiveInspector:
    """
    Detects mod identity inside archives using an ordered manifest dialect table.

    Parameters
    ----------
    dialects : Optional[Sequence[Tuple[str, ManifestParser]]]
        Ordered (suffix, parser) pairs. Defaults to MANIFEST_DIALECTS. A parser takes
        the raw entry bytes and returns (mod_id, loader family, version or None),
        raising ValueError when the content is malformed.
    """

    def __init__(self, dialects: Optional[Sequence[Tuple[str, ManifestParser]]] = None):
        self.dialects = tuple(dialects) if dialects is not None else MANIFEST_DIALECTS

    def find_manifest(self, names: Iterable[str]) -> Optional[Tuple[str, ManifestParser]]:
        """Return (entry name, parser) for the first name ending with a recognised suffix."""
        for name in names:
            if name.endswith("/"):
                continue
            for suffix, parser in self.dialects:
                if name.endswith(suffix):
                    return name, parser
        return None

    def parse(self, entry_name: str, data: bytes, *, archive: Optional[Union[str, Path]] = None) -> DetectionResult:
        """
        Parse manifest bytes with the dialect selected by `entry_name`.

        Raises
        ------
        ManifestError
            If the name is not a recognised manifest or the content does not parse.
        """
        match = self.find_manifest([entry_name])
        if match is None:
            raise ManifestError("Not a recognised manifest name", path=archive, entry=entry_name)
        _, parser = match
        try:
            mod_id, loader, version = parser(data)
        except ValueError as exc:
            # covers UnicodeDecodeError, JSONDecodeError and TOMLDecodeError
            raise ManifestError(f"Malformed manifest: {exc}", path=archive, entry=entry_name) from exc
        return DetectionResult(mod_id=mod_id, loader=loader, version=version, manifest=entry_name)

    def inspect(self, path: Union[str, Path]) -> Optional[DetectionResult]:
        """
        Open one archive and return its DetectionResult, or None if no manifest is present.

        Raises
        ------
        FileAccessError
            If the archive cannot be opened or read.
        ArchiveFormatError
            If the file is not a readable zip container.
        ManifestError
            If the first matching manifest entry fails to parse.
        """
        path = Path(path)
        try:
            with zipfile.ZipFile(path, "r") as zf:
                # read by ZipInfo, not by name; entry names may repeat
                info = next((i for i in zf.infolist() if self.find_manifest([i.filename])), None)
                if info is None:
                    logger.debug("%s: no recognised manifest", path.name)
                    return None
                entry_name = info.filename
                data = zf.read(info)
        except (zipfile.BadZipFile, zipfile.LargeZipFile, zlib.error, EOFError, NotImplementedError,
                RuntimeError) as exc:
            # RuntimeError: encrypted entry, no password
            raise ArchiveFormatError(f"Unreadable archive: {exc}", path=path) from exc
        except OSError as exc:
            raise FileAccessError(f"Cannot read archive: {exc.strerror or exc}", path=path) from exc

        result = self.parse(entry_name, data, archive=path)
        logger.debug("%s: %s %s %s (from %s)", path.name, result.mod_id, result.loader.value, result.version, entry_name)
        return result

    __call__ = inspect


_default_inspector = ArchiveInspector()


def find_manifest(names: Iterable[str]) -> Optional[Tuple[str, ManifestParser]]:
    return _default_inspector.find_manifest(names)


def parse_manifest(entry_name: str, data: bytes, *, archive: Optional[Union[str, Path]] = None) -> DetectionResult:
    return _default_inspector.parse(entry_name, data, archive=archive)


def inspect_archive(path: Union[str, Path]) -> Optional[DetectionResult]:
    """Inspect `path` with the default dialect table."""
    return _default_inspector.inspect(path)
