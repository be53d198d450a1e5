"""
lodestone.reconciler
--------------------

Directory scan: inspect every candidate jar and reconcile its detected identity
against a registry.

A record is a full match only when the identifier is in the registry, a version
was detected, the detected version string equals the recorded one exactly and the
detected loader family equals the recorded one. Tags play no part in matching.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import *

from tqdm import tqdm

from .exceptions import ArchiveFormatError, FileAccessError, ParseError
from .inspector import ArchiveInspector
from .registry import Registry
from .types_models import ClassificationRecord, DetectionResult, ModEntry, ScanResult
from .utils import compare_versions

logger = logging.getLogger(__name__)

CANDIDATE_SUFFIX = ".jar"


def list_candidates(directory: Union[str, Path]) -> List[Path]:
    """
    Return files directly under `directory` whose extension is exactly ``.jar``, sorted by name.

    Raises
    ------
    FileAccessError
        If the directory is missing, not a directory or cannot be listed.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise FileAccessError("Not a directory", path=directory)
    try:
        entries = list(directory.iterdir())
    except OSError as exc:
        raise FileAccessError(f"Cannot list directory: {exc.strerror or exc}", path=directory) from exc
    return sorted((p for p in entries if p.suffix == CANDIDATE_SUFFIX and p.is_file()), key=lambda p: p.name)


def is_full_match(detection: DetectionResult, entry: Optional[ModEntry]) -> bool:
    """Full-match rule: known id, detected version present and equal, same loader family."""
    if entry is None or detection.version is None:
        return False
    return detection.version == entry.version and detection.loader == entry.loader


def classify(filename: str, detection: DetectionResult, registry: Registry) -> ClassificationRecord:
    """Build the ClassificationRecord for one identified archive."""
    entry = registry.get(detection.mod_id)
    return ClassificationRecord(
        filename=filename,
        detection=detection,
        entry=entry,
        full_match=is_full_match(detection, entry),
        version_status=compare_versions(detection.version, entry.version) if entry else None,
    )


def scan(directory: Union[str, Path],
         registry: Registry,
         *,
         strict: bool = False,
         progress: bool = False,
         inspector: Optional[ArchiveInspector] = None) -> ScanResult:
    """
    Scan `directory` and classify every jar against `registry`.

    Parameters
    ----------
    directory : str | Path
        Directory whose direct ``.jar`` children are inspected.
    registry : Registry
        Registry to reconcile against.
    strict : bool
        If True, the first archive that fails (malformed manifest, corrupt container,
        unreadable file) aborts the whole scan and the error propagates. If False the
        archive is logged, recorded in `ScanResult.failures` and skipped.
    progress : bool
        Show a tqdm progress bar.
    inspector : Optional[ArchiveInspector]
        Inspector to use (defaults to the standard dialect table).

    Returns
    -------
    ScanResult
        Records, summary counts and the archive -> identifier mapping.
    """
    inspector = inspector or ArchiveInspector()
    candidates = list_candidates(directory)
    result = ScanResult(directory=str(directory))
    result.summary.found = len(candidates)

    for path in tqdm(candidates, desc="Scanning", unit="jar", disable=not progress):
        try:
            detection = inspector.inspect(path)
        except (ParseError, ArchiveFormatError, FileAccessError) as exc:
            if strict:
                raise
            logger.warning("Skipping %s: %s", path.name, exc)
            result.failures.append((path.name, str(exc)))
            continue
        if detection is None:
            continue

        result.archive_to_identifier[path.name] = detection.mod_id
        record = classify(path.name, detection, registry)
        result.records.append(record)
        result.summary.identified += 1
        if record.full_match:
            result.summary.matched += 1

    logger.info("Scanned %s: %d found, %d identified, %d fully matched, %d failed",
                directory, result.summary.found, result.summary.identified,
                result.summary.matched, len(result.failures))
    return result
