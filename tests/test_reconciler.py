import json
from pathlib import Path

import pytest

from lodestone.exceptions import ArchiveFormatError, FileAccessError, ManifestError
from lodestone.reconciler import list_candidates, scan
from lodestone.registry import Registry
from lodestone.types_models import LoaderFamily, ModEntry, Tag


@pytest.fixture
def create_registry():
    return Registry("test", 1, "me", {"create": ModEntry("0.5.8", Tag.CLIENT, LoaderFamily.FABRIC)})


def test_full_match(tmp_path: Path, fabric_jar, create_registry):
    """Verify identical id, version and loader give a full match."""
    fabric_jar(tmp_path / "create.jar", "create", "0.5.8")
    result = scan(tmp_path, create_registry)
    (record,) = result.records
    assert record.full_match is True
    assert record.filename == "create.jar"
    assert record.matched_tag is Tag.CLIENT
    assert record.version_status == "match"
    assert (result.summary.found, result.summary.identified, result.summary.matched) == (1, 1, 1)


def test_version_mismatch(tmp_path: Path, fabric_jar, create_registry):
    """Verify a different version is identified and matched but not a full match."""
    fabric_jar(tmp_path / "create.jar", "create", "0.5.9")
    result = scan(tmp_path, create_registry)
    (record,) = result.records
    assert record.known
    assert record.matched_version == "0.5.8"
    assert record.matched_loader is LoaderFamily.FABRIC
    assert record.full_match is False
    assert record.version_status == "newer"
    assert result.summary.matched == 0


def test_loader_mismatch(tmp_path: Path, make_jar, create_registry):
    """Verify the same id and version under another loader is not a full match."""
    make_jar(tmp_path / "create-forge.jar", [("META-INF/mods.toml", '[[mods]]\nmodId="create"\nversion="0.5.8"\n')])
    (record,) = scan(tmp_path, create_registry).records
    assert record.detection.loader is LoaderFamily.FORGE
    assert record.full_match is False


def test_missing_version_is_never_full_match(tmp_path: Path, make_jar, create_registry):
    """Verify a manifest without version cannot fully match."""
    make_jar(tmp_path / "create.jar", [("fabric.mod.json", json.dumps({"id": "create"}))])
    (record,) = scan(tmp_path, create_registry).records
    assert record.full_match is False
    assert record.version_status is None


def test_unknown_identifier(tmp_path: Path, fabric_jar, create_registry):
    """Verify an unknown id is identified and mapped but never matched."""
    fabric_jar(tmp_path / "sodium.jar", "sodium", "0.5.3")
    result = scan(tmp_path, create_registry)
    (record,) = result.records
    assert not record.known
    assert record.matched_version is None and record.matched_tag is None and record.matched_loader is None
    assert result.archive_to_identifier == {"sodium.jar": "sodium"}
    assert result.summary.identified == 1
    assert result.summary.matched == 0
    assert result.unknown_records() == [record]


def test_no_manifest_is_excluded(tmp_path: Path, make_jar, create_registry):
    """Verify archives without a manifest count as found only."""
    make_jar(tmp_path / "lib.jar", [("a.class", b"\x00")])
    result = scan(tmp_path, create_registry)
    assert result.records == []
    assert result.archive_to_identifier == {}
    assert (result.summary.found, result.summary.identified) == (1, 0)


def test_candidates_require_lowercase_jar_extension(tmp_path: Path, fabric_jar):
    """Verify only direct children named *.jar are candidates."""
    fabric_jar(tmp_path / "b.jar", "b")
    fabric_jar(tmp_path / "Thing.JAR", "thing")
    fabric_jar(tmp_path / "a.jar.disabled", "a")
    (tmp_path / "nested").mkdir()
    fabric_jar(tmp_path / "nested" / "c.jar", "c")
    (tmp_path / "dir.jar").mkdir()
    fabric_jar(tmp_path / "a.jar", "a")
    assert [p.name for p in list_candidates(tmp_path)] == ["a.jar", "b.jar"]


def test_missing_directory(tmp_path: Path, create_registry):
    """Verify scanning a missing directory raises FileAccessError."""
    with pytest.raises(FileAccessError):
        scan(tmp_path / "absent", create_registry)


def test_mixed_directory_summary(mods_dir: Path, registry_file: Path):
    """Verify counts and mapping over the shared mods fixture."""
    result = scan(mods_dir, Registry.load(registry_file))
    assert (result.summary.found, result.summary.identified, result.summary.matched) == (5, 4, 3)
    assert list(result.archive_to_identifier.items()) == [
        ("create-0.5.8.jar", "create"),
        ("jei-15.2.0.jar", "jei"),
        ("lithium-0.11.2.jar", "lithium"),
        ("sodium-0.5.3.jar", "sodium"),
    ]


def test_failures_are_skipped_by_default(tmp_path: Path, fabric_jar, make_jar, create_registry):
    """Verify a malformed or corrupt archive is skipped and reported."""
    fabric_jar(tmp_path / "create.jar", "create", "0.5.8")
    make_jar(tmp_path / "bad.jar", [("fabric.mod.json", "{oops")])
    (tmp_path / "corrupt.jar").write_bytes(b"garbage")
    result = scan(tmp_path, create_registry)
    assert result.summary.found == 3
    assert result.summary.identified == 1
    assert [name for name, _ in result.failures] == ["bad.jar", "corrupt.jar"]
    assert "bad.jar" not in result.archive_to_identifier


def test_encrypted_archive_is_skipped(tmp_path: Path, fabric_jar, encrypted_jar, create_registry):
    """Verify an encrypted manifest is recorded as a failure, or aborts a strict scan."""
    fabric_jar(tmp_path / "create.jar", "create", "0.5.8")
    encrypted_jar(tmp_path / "locked.jar")
    result = scan(tmp_path, create_registry)
    assert result.summary.found == 2
    assert result.summary.matched == 1
    assert [name for name, _ in result.failures] == ["locked.jar"]
    with pytest.raises(ArchiveFormatError):
        scan(tmp_path, create_registry, strict=True)


def test_strict_scan_aborts(tmp_path: Path, fabric_jar, make_jar, create_registry):
    """Verify strict mode propagates the first failure."""
    fabric_jar(tmp_path / "a-create.jar", "create", "0.5.8")
    make_jar(tmp_path / "b-bad.jar", [("mcmod.info", "[")])
    with pytest.raises(ManifestError):
        scan(tmp_path, create_registry, strict=True)

    (tmp_path / "b-bad.jar").write_bytes(b"garbage")
    with pytest.raises(ArchiveFormatError):
        scan(tmp_path, create_registry, strict=True)
