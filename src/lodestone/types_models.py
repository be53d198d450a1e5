"""
types_models.py

Typed dataclasses and enums shared by the registry, inspector, reconciler and operations.

Purpose
-------
- Provide typed, documented containers for registry entries, detection results and scan output.
- Supply `from_dict()` / `to_dict()` helpers that speak the registry file's wire names.
- Keep enum parsing (user input vs. registry file) in one place.

Notes
-----
- Wire values of `Tag` and `LoaderFamily` are the capitalised names used in registry files
  ("Client", "NeoForge", ...). Registry parsing is exact; user input parsing is case-insensitive.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Tuple
from enum import Enum

from .exceptions import UserInputError


# Enums
class Tag(Enum):
    """
    Side classification of a mod as recorded in a registry.

    Attributes:
        UNKNOWN:Side not known.
        CLIENT:Only needed on the client.
        SERVER:Only needed on the server.
        BOTH:Needed on both sides.
    """
    UNKNOWN = "Unknown"
    CLIENT = "Client"
    SERVER = "Server"
    BOTH = "Both"

    @classmethod
    def parse(cls, text: str) -> "Tag":
        """Return the tag for a case-insensitive name, raising UserInputError if invalid."""
        for item in cls:
            if item.value.lower() == str(text).strip().lower():
                return item
        raise UserInputError(f"Invalid tag {text!r}; expected one of {', '.join(cls.names())}")

    @classmethod
    def names(cls) -> List[str]:
        return [item.value for item in cls]


class LoaderFamily(Enum):
    """
    Mod-loading runtime a mod targets.

    Attributes:
        UNKNOWN:Loader not known.
        FORGE:Forge (mods.toml or legacy mcmod.info).
        NEOFORGE:NeoForge (mods.toml mentioning neoforge).
        FABRIC:Fabric (fabric.mod.json).
        QUILT:Quilt.
    """
    UNKNOWN = "Unknown"
    FORGE = "Forge"
    NEOFORGE = "NeoForge"
    FABRIC = "Fabric"
    QUILT = "Quilt"

    @classmethod
    def parse(cls, text: str) -> "LoaderFamily":
        """Return the loader family for a case-insensitive name, raising UserInputError if invalid."""
        for item in cls:
            if item.value.lower() == str(text).strip().lower():
                return item
        raise UserInputError(f"Invalid loader {text!r}; expected one of {', '.join(i.value for i in cls)}")


class Operation(Enum):
    """Tag-gated bulk operations."""
    BUNDLE = "bundle"
    DELETE = "delete"
    LIST = "list"
    MOVE = "move"

    @classmethod
    def parse(cls, text: str) -> "Operation":
        """Return the operation for a case-insensitive name, raising UserInputError if invalid."""
        for item in cls:
            if item.value == str(text).strip().lower():
                return item
        raise UserInputError(f"Invalid operation {text!r}; expected one of {', '.join(i.value for i in cls)}")

    @property
    def needs_target(self) -> bool:
        """Whether the operation requires a target path (output file or destination directory)."""
        return self is not Operation.DELETE


# Registry entries
@dataclass(frozen=True)
class ModEntry:
    """
    Expected identity of one mod in a registry.

    Attributes
    ----------
    version : str
        Free-form version string; compared verbatim against detected versions.
    tag : Tag
        Side classification.
    loader : LoaderFamily
        Loader family the registry expects.
    """
    version: str
    tag: Tag = Tag.UNKNOWN
    loader: LoaderFamily = LoaderFamily.UNKNOWN

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ModEntry":
        """
        Build from a registry `mods` value. Raises KeyError/ValueError/TypeError on a
        malformed shape; the registry loader translates those into RegistryParseError.
        """
        version = d["mod_version"]
        if not isinstance(version, str):
            raise TypeError(f"mod_version must be a string, got {type(version).__name__}")
        return cls(version=version, tag=Tag(d["mod_tag"]), loader=LoaderFamily(d["mod_type"]))

    def to_dict(self) -> Dict[str, Any]:
        return {"mod_version": self.version, "mod_tag": self.tag.value, "mod_type": self.loader.value}


# Detection / classification
@dataclass(frozen=True)
class DetectionResult:
    """
    Identity extracted from one manifest inside an archive.

    Attributes
    ----------
    mod_id : str
        Mod identifier reported by the manifest.
    loader : LoaderFamily
        Loader family implied by the manifest dialect.
    version : Optional[str]
        Normalized version text, None when the manifest has no usable version.
    manifest : Optional[str]
        Name of the archive entry the identity was read from.
    """
    mod_id: str
    loader: LoaderFamily
    version: Optional[str] = None
    manifest: Optional[str] = None


@dataclass
class ClassificationRecord:
    """Outcome of reconciling one archive against the registry."""
    filename: str
    detection: DetectionResult
    entry: Optional[ModEntry] = None
    full_match: bool = False
    version_status: Optional[str] = None

    @property
    def mod_id(self) -> str:
        return self.detection.mod_id

    @property
    def known(self) -> bool:
        """True when the detected identifier exists in the registry."""
        return self.entry is not None

    @property
    def matched_version(self) -> Optional[str]:
        return self.entry.version if self.entry else None

    @property
    def matched_tag(self) -> Optional[Tag]:
        return self.entry.tag if self.entry else None

    @property
    def matched_loader(self) -> Optional[LoaderFamily]:
        return self.entry.loader if self.entry else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "mod_id": self.detection.mod_id,
            "detected_loader": self.detection.loader.value,
            "detected_version": self.detection.version,
            "matched_version": self.matched_version,
            "matched_tag": self.matched_tag.value if self.matched_tag else None,
            "matched_loader": self.matched_loader.value if self.matched_loader else None,
            "full_match": self.full_match,
            "version_status": self.version_status,
        }


@dataclass
class ScanSummary:
    """Aggregate counts for one scan."""
    found: int = 0
    identified: int = 0
    matched: int = 0


@dataclass
class ScanResult:
    """
    Everything one directory scan produces.

    Attributes
    ----------
    directory : str
        Directory that was scanned.
    records : List[ClassificationRecord]
        One record per identified archive, in filename order.
    summary : ScanSummary
        Candidate / identified / full-match counts.
    archive_to_identifier : Dict[str, str]
        Filename -> detected mod identifier for every identified archive, known or not.
    failures : List[Tuple[str, str]]
        (filename, error message) for archives skipped by a non-strict scan.
    """
    directory: str
    records: List[ClassificationRecord] = field(default_factory=list)
    summary: ScanSummary = field(default_factory=ScanSummary)
    archive_to_identifier: Dict[str, str] = field(default_factory=dict)
    failures: List[Tuple[str, str]] = field(default_factory=list)

    def unknown_records(self) -> List[ClassificationRecord]:
        """Records whose identifier is absent from the registry."""
        return [r for r in self.records if not r.known]

    def record_for(self, mod_id: str) -> Optional[ClassificationRecord]:
        """First record detected with `mod_id`, or None."""
        for record in self.records:
            if record.mod_id == mod_id:
                return record
        return None
