"""
lodestone.registry
------------------

Registry ("module") of expected mod identities.

A registry file is a JSON document:

    {
      "header": {"module_name": str, "module_version": number, "module_author": str},
      "mods": {"<modId>": {"mod_version": str, "mod_tag": "Client", "mod_type": "Fabric"}, ...}
    }

Responsibilities
- Load / save registry files (no schema migration: the shape must match exactly).
- Edit operations that each perform one load -> mutate -> save cycle on the backing file.
- Fetch a registry document over HTTP and export unknown mods as a submission file.

Usage
-----
from lodestone.registry import Registry, add_mod
registry = Registry.load("modules/default.json")
entry = registry.get("create")
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import *

import requests

from .exceptions import FileAccessError, RegistryParseError, UserInputError, map_http_status
from .fileops import atomic_write
from .types_models import ClassificationRecord, LoaderFamily, ModEntry, Tag
from .utils import decode_text, session_factory

logger = logging.getLogger(__name__)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class Registry:
    """
    Header metadata plus a mapping of mod identifier -> ModEntry.

    Identifiers are kept in sorted order so listings and saved files are deterministic.
    """

    def __init__(self,
                 name: str,
                 version: Union[int, float] = 1,
                 author: str = "",
                 mods: Optional[Mapping[str, ModEntry]] = None):
        self.name = name
        self.version = version
        self.author = author
        self._mods: Dict[str, ModEntry] = dict(sorted((mods or {}).items()))

    # Mapping helpers
    def get(self, mod_id: str) -> Optional[ModEntry]:
        return self._mods.get(mod_id)

    def tag_of(self, mod_id: str) -> Optional[Tag]:
        """Tag recorded for `mod_id`, or None when the identifier is unknown."""
        entry = self._mods.get(mod_id)
        return entry.tag if entry else None

    def set(self, mod_id: str, entry: ModEntry) -> None:
        self._mods[mod_id] = entry
        self._mods = dict(sorted(self._mods.items()))

    def remove(self, mod_id: str) -> ModEntry:
        return self._mods.pop(mod_id)

    def items(self) -> List[Tuple[str, ModEntry]]:
        return list(self._mods.items())

    @property
    def mods(self) -> Dict[str, ModEntry]:
        """Read-only copy of the identifier -> entry mapping."""
        return dict(self._mods)

    def __contains__(self, mod_id: object) -> bool:
        return mod_id in self._mods

    def __iter__(self) -> Iterator[str]:
        return iter(self._mods)

    def __len__(self) -> int:
        return len(self._mods)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Registry):
            return NotImplemented
        return (self.name, self.version, self.author, self._mods) == (other.name, other.version, other.author, other._mods)

    def __repr__(self) -> str:
        return f"<Registry name={self.name!r} version={self.version!r} author={self.author!r} mods={len(self._mods)}>"

    # Serialization
    @classmethod
    def from_dict(cls, data: Any, *, source: Optional[str] = None) -> "Registry":
        """
        Build a Registry from a parsed registry document.

        Raises
        ------
        RegistryParseError
            If the document does not have the exact expected shape.
        """
        if not isinstance(data, dict):
            raise RegistryParseError("Registry document must be a JSON object", path=source)
        header = data.get("header")
        mods = data.get("mods")
        if not isinstance(header, dict):
            raise RegistryParseError("Registry is missing its 'header' object", path=source)
        if not isinstance(mods, dict):
            raise RegistryParseError("Registry is missing its 'mods' object", path=source)

        name = header.get("module_name")
        version = header.get("module_version")
        author = header.get("module_author")
        if not isinstance(name, str):
            raise RegistryParseError("header.module_name must be a string", path=source)
        if not _is_number(version):
            raise RegistryParseError("header.module_version must be a number", path=source)
        if not isinstance(author, str):
            raise RegistryParseError("header.module_author must be a string", path=source)

        entries: Dict[str, ModEntry] = {}
        for mod_id, raw in mods.items():
            if not isinstance(raw, dict):
                raise RegistryParseError(f"Entry for {mod_id!r} must be an object", path=source)
            try:
                entries[mod_id] = ModEntry.from_dict(raw)
            except KeyError as exc:
                raise RegistryParseError(f"Entry for {mod_id!r} is missing field {exc.args[0]!r}", path=source) from exc
            except (ValueError, TypeError) as exc:
                raise RegistryParseError(f"Entry for {mod_id!r} is invalid: {exc}", path=source) from exc
        return cls(name=name, version=version, author=author, mods=entries)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "header": {
                "module_name": self.name,
                "module_version": self.version,
                "module_author": self.author,
            },
            "mods": {mod_id: entry.to_dict() for mod_id, entry in self._mods.items()},
        }

    # Persistence
    @classmethod
    def load(cls, path: Union[str, Path]) -> "Registry":
        """
        Read a registry file.

        Raises
        ------
        FileAccessError
            If the file is missing or unreadable.
        RegistryParseError
            If the content is not valid JSON or not a registry document.
        """
        path = Path(path)
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise FileAccessError(f"Cannot read registry: {exc.strerror or exc}", path=path) from exc
        try:
            data = json.loads(decode_text(raw))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise RegistryParseError(f"Malformed registry file: {exc}", path=path) from exc
        registry = cls.from_dict(data, source=str(path))
        logger.debug("Loaded registry %r (%d mods) from %s", registry.name, len(registry), path)
        return registry

    def save(self, path: Union[str, Path]) -> Path:
        """Write the registry to `path`, replacing any existing file."""
        text = json.dumps(self.to_dict(), indent=4) + "\n"
        dest = atomic_write(Path(path), data=text)
        logger.debug("Saved registry %r (%d mods) to %s", self.name, len(self), dest)
        return dest


# Edit operations: each one is a full load -> mutate -> save cycle
def add_mod(path: Union[str, Path], mod_id: str, entry: ModEntry) -> Registry:
    """
    Add a new identifier to the registry file at `path`.

    Raises UserInputError if the identifier already exists.
    """
    registry = Registry.load(path)
    if mod_id in registry:
        raise UserInputError(f"Mod {mod_id!r} already exists in registry", path=path)
    registry.set(mod_id, entry)
    registry.save(path)
    logger.info("Added %s to registry %s", mod_id, path)
    return registry


def update_mod(path: Union[str, Path],
               mod_id: str,
               *,
               version: Optional[str] = None,
               tag: Optional[Tag] = None,
               loader: Optional[LoaderFamily] = None) -> Registry:
    """
    Change one or more fields of an existing identifier in the registry file at `path`.

    Fields left as None keep their recorded value. Raises UserInputError if the
    identifier is unknown.
    """
    registry = Registry.load(path)
    current = registry.get(mod_id)
    if current is None:
        raise UserInputError(f"Mod {mod_id!r} is not in registry", path=path)
    registry.set(mod_id, ModEntry(
        version=current.version if version is None else version,
        tag=current.tag if tag is None else tag,
        loader=current.loader if loader is None else loader,
    ))
    registry.save(path)
    logger.info("Updated %s in registry %s", mod_id, path)
    return registry


def remove_mod(path: Union[str, Path], mod_id: str) -> Registry:
    """Remove an identifier from the registry file at `path`."""
    registry = Registry.load(path)
    if mod_id not in registry:
        raise UserInputError(f"Mod {mod_id!r} is not in registry", path=path)
    registry.remove(mod_id)
    registry.save(path)
    logger.info("Removed %s from registry %s", mod_id, path)
    return registry


# Remote fetch
def fetch_registry(url: str,
                   *,
                   session: Optional[requests.Session] = None,
                   timeout: float = 15.0) -> Registry:
    """
    Download and parse a registry document.

    Parameters
    ----------
    url : str
        http(s) URL of a registry JSON file.
    session : Optional[requests.Session]
        Session to use; defaults to one built by `session_factory()` (with retries).
    timeout : float
        Per-request timeout in seconds.

    Raises
    ------
    RemoteRegistryError
        On an HTTP error status.
    FileAccessError
        On network/transport failures.
    RegistryParseError
        If the payload is not a registry document.
    """
    if not isinstance(url, str) or not url.startswith(("http://", "https://")):
        raise UserInputError("Registry URL must be an http/https URL", path=url)
    sess = session or session_factory()
    try:
        resp = sess.get(url, timeout=timeout)
    except requests.RequestException as exc:
        raise FileAccessError(f"Network error fetching registry: {exc}", path=url) from exc
    if resp.status_code >= 400:
        raise map_http_status(resp.status_code, resp.reason or "", url)
    try:
        data = json.loads(decode_text(resp.content))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise RegistryParseError(f"Malformed registry payload: {exc}", path=url) from exc
    registry = Registry.from_dict(data, source=url)
    logger.info("Fetched registry %r (%d mods) from %s", registry.name, len(registry), url)
    return registry


# Submission export
def export_unknown(records: Iterable[ClassificationRecord],
                   path: Union[str, Path],
                   *,
                   name: str,
                   author: str = "",
                   version: Union[int, float] = 1) -> int:
    """
    Write every identified-but-unknown mod in `records` as a registry file at `path`.

    Entries carry the detected version (empty string when none was detected), the
    detected loader family and tag Unknown, ready to be tagged and sent to a module
    author. Returns the number of mods written.
    """
    submission = Registry(name=name, version=version, author=author)
    for record in records:
        if record.known or record.mod_id in submission:
            continue
        submission.set(record.mod_id, ModEntry(
            version=record.detection.version or "",
            tag=Tag.UNKNOWN,
            loader=record.detection.loader,
        ))
    submission.save(path)
    logger.info("Exported %d unknown mods to %s", len(submission), path)
    return len(submission)
