"""
lodestone package initializer.

This file exposes the high-level public API for the package:
 - Session (load registry -> scan directory -> run tag-gated operation)
 - Registry and its edit helpers
 - scan / inspect_archive (detection and reconciliation)
 - the bulk operations (bundle / delete / list / move)
 - exceptions (module with custom exceptions)

Implementation notes:
 - Avoid heavy work at import time.
"""

__all__ = [
    "Session", "Registry", "ArchiveInspector", "scan", "inspect_archive",
    "bundle_tagged", "delete_tagged", "list_tagged", "move_tagged", "run_operation",
    "add_mod", "update_mod", "remove_mod", "fetch_registry", "export_unknown",
    "Tag", "LoaderFamily", "Operation", "ModEntry", "DetectionResult",
    "ClassificationRecord", "ScanSummary", "ScanResult", "exceptions", "__version__",
]

# package version (update as you release)
__version__ = "0.1.0"

# re-export exceptions for convenience
from . import exceptions
from .exceptions import *  # noqa: F401,F403

from .types_models import (
    Tag, LoaderFamily, Operation, ModEntry, DetectionResult,
    ClassificationRecord, ScanSummary, ScanResult,
)
from .registry import Registry, add_mod, update_mod, remove_mod, fetch_registry, export_unknown
from .inspector import ArchiveInspector, inspect_archive
from .reconciler import scan
from .operations import bundle_tagged, delete_tagged, list_tagged, move_tagged, run_operation
from .session import Session
