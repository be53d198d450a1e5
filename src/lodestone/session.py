"""
lodestone.session
-----------------

One explicit session object holding everything a front end works with between calls:
the loaded registry, the selected directory and tag, the last scan and a log of actions.

Calls must follow the order load registry -> scan directory -> run operation; calling
out of order raises SessionStateError instead of silently doing nothing.

Usage
-----
from lodestone.session import Session

s = Session(progress=True)
s.load_registry("modules/default.json")
s.select_directory("~/.minecraft/mods")
result = s.scan()
s.select_tag("client")
s.run("move", "~/client-only")
s.run("delete", confirmation="DELETE")
"""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path
from typing import *
from urllib.parse import urlparse

import requests

from .exceptions import FileAccessError, SessionStateError, UserInputError
from .inspector import ArchiveInspector
from .operations import run_operation
from .paths import default_mods_dir, default_modules_dir, safe_join
from .reconciler import classify, scan
from .registry import Registry, add_mod, export_unknown, fetch_registry, update_mod
from .types_models import LoaderFamily, ModEntry, Operation, ScanResult, ScanSummary, Tag
from .utils import logger_setup

logger = logging.getLogger(__name__)

DELETE_CONFIRMATION = "DELETE"


class Session:
    """
    Session state threaded through a front end's calls.

    Parameters
    ----------
    strict_scan : bool
        Abort a scan on the first archive that fails instead of skipping it.
    progress : bool
        Show tqdm progress bars for scans and bulk operations.
    bundle_compression : int
        zipfile compression constant used when bundling.
    modules_dir : Optional[Path | str]
        Where fetched registries are saved (defaults to `paths.default_modules_dir()`).
    log_level : Optional[int]
        If set, configure the ``lodestone`` logger with a console handler at this level.
    log_to_file : Optional[str]
        If set, also log to this file.
    inspector : Optional[ArchiveInspector]
        Inspector used by scans.
    """

    def __init__(self,
                 *,
                 strict_scan: bool = False,
                 progress: bool = False,
                 bundle_compression: int = zipfile.ZIP_DEFLATED,
                 modules_dir: Optional[Union[Path, str]] = None,
                 log_level: Optional[int] = None,
                 log_to_file: Optional[str] = None,
                 inspector: Optional[ArchiveInspector] = None):
        self.strict_scan = bool(strict_scan)
        self.progress = bool(progress)
        self.bundle_compression = bundle_compression
        self.modules_dir = Path(modules_dir).expanduser() if modules_dir else default_modules_dir()
        self.inspector = inspector or ArchiveInspector()
        if log_level is not None or log_to_file:
            logger_setup("lodestone", level=log_level if log_level is not None else logging.INFO,
                         log_to_file=log_to_file)

        self.registry_path: Optional[Path] = None
        self.registry: Optional[Registry] = None
        self.directory: Optional[Path] = None
        self.tag: Optional[Tag] = None
        self.result: Optional[ScanResult] = None
        self.log: List[str] = []

    def _note(self, msg: str, *args: Any) -> None:
        text = msg % args if args else msg
        self.log.append(text)
        logger.info(text)

    # Registry
    def load_registry(self, path: Union[Path, str]) -> Registry:
        """
        Load the registry at `path`. On failure the previous registry stays loaded.

        Loading a registry discards the previous scan.
        """
        path = Path(path).expanduser()
        registry = Registry.load(path)
        self.registry, self.registry_path = registry, path
        self.result = None
        self._note("Loaded module %r v%s by %s (%d mods)", registry.name, registry.version, registry.author, len(registry))
        return registry

    def load_registry_url(self,
                          url: str,
                          save_to: Optional[Union[Path, str]] = None,
                          *,
                          http: Optional[requests.Session] = None) -> Registry:
        """
        Fetch a registry over HTTP, save it locally and load it.

        `save_to` defaults to the URL's filename inside `modules_dir`.
        """
        registry = fetch_registry(url, session=http)
        if save_to is None:
            name = Path(urlparse(url).path).name or "registry.json"
            save_to = safe_join(self.modules_dir, name if name.endswith(".json") else f"{name}.json")
        registry.save(Path(save_to))
        return self.load_registry(save_to)

    def reload_registry(self) -> Registry:
        """Re-read the current registry file and reclassify the last scan against it."""
        if self.registry_path is None:
            raise SessionStateError("No registry loaded")
        self.registry = Registry.load(self.registry_path)
        if self.result is not None:
            self._reclassify()
        self._note("Reloaded module %r (%d mods)", self.registry.name, len(self.registry))
        return self.registry

    def _reclassify(self) -> None:
        records = [classify(r.filename, r.detection, self.registry) for r in self.result.records]
        self.result.records = records
        self.result.summary = ScanSummary(
            found=self.result.summary.found,
            identified=len(records),
            matched=sum(1 for r in records if r.full_match),
        )

    def tag_mod(self,
                mod_id: str,
                tag: Union[Tag, str],
                *,
                version: Optional[str] = None,
                loader: Optional[Union[LoaderFamily, str]] = None) -> Registry:
        """
        Record `tag` for `mod_id` in the registry file and reload it.

        Unknown identifiers are added using the version and loader detected by the last
        scan unless given explicitly; known identifiers get their fields updated.
        """
        if self.registry is None or self.registry_path is None:
            raise SessionStateError("Load a registry before tagging mods")
        tag = tag if isinstance(tag, Tag) else Tag.parse(tag)
        if loader is not None and not isinstance(loader, LoaderFamily):
            loader = LoaderFamily.parse(loader)

        if mod_id in self.registry:
            update_mod(self.registry_path, mod_id, version=version, tag=tag, loader=loader)
        else:
            record = self.result.record_for(mod_id) if self.result else None
            if record is None and (version is None or loader is None):
                raise UserInputError(f"Mod {mod_id!r} was not detected; give its version and loader")
            add_mod(self.registry_path, mod_id, ModEntry(
                version=version if version is not None else (record.detection.version or ""),
                tag=tag,
                loader=loader if loader is not None else record.detection.loader,
            ))
        self._note("Tagged %s as %s", mod_id, tag.value)
        return self.reload_registry()

    # Directory / tag / scan
    def select_directory(self, path: Optional[Union[Path, str]] = None) -> Path:
        """Select the directory to scan (defaults to the Minecraft mods folder)."""
        directory = Path(path).expanduser() if path else default_mods_dir()
        if not directory.is_dir():
            raise FileAccessError("Not a directory", path=directory)
        if directory != self.directory:
            self.result = None
        self.directory = directory
        self._note("Selected directory %s", directory)
        return directory

    def select_tag(self, tag: Union[Tag, str]) -> Tag:
        self.tag = tag if isinstance(tag, Tag) else Tag.parse(tag)
        self._note("Selected tag %s", self.tag.value)
        return self.tag

    def scan(self) -> ScanResult:
        """Scan the selected directory against the loaded registry."""
        if self.registry is None:
            raise SessionStateError("Load a registry before scanning")
        if self.directory is None:
            raise SessionStateError("Select a directory before scanning")
        result = scan(self.directory, self.registry, strict=self.strict_scan,
                      progress=self.progress, inspector=self.inspector)
        self.result = result
        self._note("Found %d jars, identified %d, fully matched %d",
                   result.summary.found, result.summary.identified, result.summary.matched)
        for filename, error in result.failures:
            self._note("Skipped %s: %s", filename, error)
        return result

    # Operations
    def run(self,
            operation: Union[Operation, str],
            target: Optional[Union[Path, str]] = None,
            *,
            tag: Optional[Union[Tag, str]] = None,
            confirmation: Optional[str] = None) -> int:
        """
        Run a tag-gated bulk operation on the last scan.

        Parameters
        ----------
        operation : Operation | str
            bundle, delete, list or move.
        target : Optional[Path | str]
            Output archive, output text file or destination directory.
        tag : Optional[Tag | str]
            Tag to act on; defaults to the selected tag.
        confirmation : Optional[str]
            Must equal DELETE_CONFIRMATION for delete.

        Returns
        -------
        int
            Number of files acted on.
        """
        op = operation if isinstance(operation, Operation) else Operation.parse(operation)
        if self.registry is None:
            raise SessionStateError("Load a registry before running operations")
        if self.result is None:
            raise SessionStateError("Scan a directory before running operations")
        if tag is not None:
            self.select_tag(tag)
        if self.tag is None:
            raise SessionStateError("Select a tag before running operations")
        if op is Operation.DELETE and confirmation != DELETE_CONFIRMATION:
            raise UserInputError(f"Deletion not confirmed; type {DELETE_CONFIRMATION} to confirm")

        kwargs: Dict[str, Any] = {}
        if op is not Operation.LIST:
            kwargs["progress"] = self.progress
        if op is Operation.BUNDLE:
            kwargs["compression"] = self.bundle_compression
        target_path = Path(target).expanduser() if target else None
        count = run_operation(op, self.result.directory, self.result.archive_to_identifier,
                              self.registry, self.tag, target_path, **kwargs)
        self._note("%s: %d %s mods", op.value.capitalize(), count, self.tag.value)
        return count

    def export_unknown(self, path: Union[Path, str], *, name: Optional[str] = None, author: str = "") -> int:
        """Write the last scan's unknown mods to a registry-format submission file."""
        if self.result is None:
            raise SessionStateError("Scan a directory before exporting unknown mods")
        count = export_unknown(self.result.records, Path(path).expanduser(),
                               name=name or f"{self.registry.name} submissions", author=author)
        self._note("Exported %d unknown mods to %s", count, path)
        return count

    @property
    def summary(self) -> Optional[ScanSummary]:
        return self.result.summary if self.result else None
