import json
from pathlib import Path

import pytest

from lodestone.exceptions import ArchiveFormatError, ManifestError
from lodestone.inspector import ArchiveInspector, find_manifest, inspect_archive, parse_manifest
from lodestone.types_models import LoaderFamily

FORGE_TOML = """
modLoader="javafml"
loaderVersion="[47,)"
license="MIT"

[[mods]]
modId="jei"
version="15.2.0.27"
displayName="Just Enough Items"

[[dependencies.jei]]
modId="forge"
mandatory=true
versionRange="[47,)"
"""

NEOFORGE_TOML = """
modLoader="javafml"
loaderVersion="[1,)"

[[mods]]
modId="ae2"
version="19.0.1"

[[dependencies.ae2]]
modId="neoforge"
type="required"
"""


def test_fabric_manifest(tmp_path: Path, fabric_jar):
    """Verify fabric.mod.json yields id, version and the Fabric loader."""
    jar = fabric_jar(tmp_path / "create.jar", "create", "0.5.8")
    result = inspect_archive(jar)
    assert result.mod_id == "create"
    assert result.version == "0.5.8"
    assert result.loader is LoaderFamily.FABRIC
    assert result.manifest == "fabric.mod.json"


def test_forge_mods_toml(tmp_path: Path, make_jar):
    """Verify mods.toml without neoforge mentions is detected as Forge."""
    jar = make_jar(tmp_path / "jei.jar", [("META-INF/mods.toml", FORGE_TOML)])
    result = inspect_archive(jar)
    assert (result.mod_id, result.loader, result.version) == ("jei", LoaderFamily.FORGE, "15.2.0.27")


def test_neoforge_mods_toml(tmp_path: Path, make_jar):
    """Verify neoforge.mods.toml content mentioning neoforge is NeoForge."""
    jar = make_jar(tmp_path / "ae2.jar", [("META-INF/neoforge.mods.toml", NEOFORGE_TOML)])
    result = inspect_archive(jar)
    assert (result.mod_id, result.loader, result.version) == ("ae2", LoaderFamily.NEOFORGE, "19.0.1")


def test_neo_forge_spelling_is_case_insensitive():
    """Verify the hyphenated, mixed-case spelling also selects NeoForge."""
    data = b'[[mods]]\nmodId="x"\nversion="1"\ndescription="Built for Neo-Forge"\n'
    assert parse_manifest("META-INF/mods.toml", data).loader is LoaderFamily.NEOFORGE


def test_mods_toml_mod_version_fallback():
    """Verify modVersion is used when version is absent."""
    data = b'[[mods]]\nmodId="old"\nmodVersion="2.1"\n'
    assert parse_manifest("META-INF/mods.toml", data).version == "2.1"


@pytest.mark.parametrize("raw, expected", [
    ("3", "3"),
    ("1.5", "1.5"),
    ('"${file.jarVersion}"', "${file.jarVersion}"),
    ("true", None),
    ("1e20", "100000000000000000000"),
    ("2.5e-3", "0.0025"),
    ("inf", None),
])
def test_mods_toml_version_normalization(raw, expected):
    """Verify numeric versions become decimal text and strings are kept verbatim."""
    data = f'[[mods]]\nmodId="m"\nversion={raw}\n'.encode("utf-8")
    assert parse_manifest("META-INF/mods.toml", data).version == expected


def test_fabric_numeric_version():
    """Verify a numeric fabric version is converted to text."""
    data = json.dumps({"id": "num", "version": 2}).encode("utf-8")
    assert parse_manifest("fabric.mod.json", data).version == "2"


def test_missing_version_is_none():
    """Verify a manifest without a version yields version None."""
    data = json.dumps({"id": "nover"}).encode("utf-8")
    assert parse_manifest("fabric.mod.json", data).version is None


def test_legacy_mcmod_info(tmp_path: Path, make_jar):
    """Verify a top-level mcmod.info array is read as Forge."""
    info = json.dumps([{"modid": "journeymap", "version": "5.4.9"}, {"modid": "other"}])
    jar = make_jar(tmp_path / "jm.jar", [("mcmod.info", info)])
    result = inspect_archive(jar)
    assert (result.mod_id, result.loader, result.version) == ("journeymap", LoaderFamily.FORGE, "5.4.9")


def test_mcmod_info_mod_list_document():
    """Verify version-2 mcmod.info documents are unwrapped."""
    data = json.dumps({"modListVersion": 2, "modList": [{"modid": "ic2", "version": 2.2}]}).encode("utf-8")
    result = parse_manifest("mcmod.info", data)
    assert (result.mod_id, result.version) == ("ic2", "2.2")


def test_mcmod_info_with_control_characters():
    """Verify raw newlines inside legacy JSON strings do not fail parsing."""
    data = b'[{"modid": "legacy", "version": "1.0", "description": "line one\nline two"}]'
    assert parse_manifest("mcmod.info", data).mod_id == "legacy"


def test_no_manifest_returns_none(tmp_path: Path, make_jar):
    """Verify an archive without a recognised manifest has no identity."""
    jar = make_jar(tmp_path / "lib.jar", [("META-INF/MANIFEST.MF", "Manifest-Version: 1.0\n")])
    assert inspect_archive(jar) is None


def test_first_manifest_wins(tmp_path: Path, make_jar):
    """Verify only the earliest matching entry in stored order is used."""
    jar = make_jar(tmp_path / "multi.jar", [
        ("fabric.mod.json", json.dumps({"id": "multi-fabric", "version": "1"})),
        ("META-INF/mods.toml", FORGE_TOML),
    ])
    assert inspect_archive(jar).mod_id == "multi-fabric"

    jar = make_jar(tmp_path / "multi2.jar", [
        ("META-INF/mods.toml", FORGE_TOML),
        ("fabric.mod.json", json.dumps({"id": "multi-fabric", "version": "1"})),
    ])
    assert inspect_archive(jar).mod_id == "jei"


def test_entries_after_first_match_are_not_read(tmp_path: Path, make_jar):
    """Verify a malformed later manifest does not affect detection."""
    jar = make_jar(tmp_path / "ok.jar", [
        ("fabric.mod.json", json.dumps({"id": "good", "version": "1"})),
        ("mcmod.info", "{broken"),
    ])
    assert inspect_archive(jar).mod_id == "good"


@pytest.mark.parametrize("name, content", [
    ("fabric.mod.json", "{not json"),
    ("fabric.mod.json", "[]"),
    ("fabric.mod.json", '{"version": "1"}'),
    ("META-INF/mods.toml", "modId = = broken"),
    ("META-INF/mods.toml", 'modLoader="javafml"\n'),
    ("META-INF/mods.toml", '[[mods]]\nversion="1"\n'),
    ("mcmod.info", "[]"),
    ("mcmod.info", '[{"name": "no id"}]'),
])
def test_malformed_manifest_raises(tmp_path: Path, make_jar, name, content):
    """Verify a matched but unparseable manifest raises ManifestError."""
    jar = make_jar(tmp_path / "bad.jar", [(name, content)])
    with pytest.raises(ManifestError) as info:
        inspect_archive(jar)
    assert info.value.entry == name
    assert info.value.path == str(jar)


def test_corrupt_archive(tmp_path: Path):
    """Verify a non-zip file raises ArchiveFormatError."""
    jar = tmp_path / "corrupt.jar"
    jar.write_bytes(b"this is not a zip file")
    with pytest.raises(ArchiveFormatError):
        inspect_archive(jar)


def test_encrypted_manifest_entry(tmp_path: Path, encrypted_jar):
    """Verify an encrypted manifest entry raises ArchiveFormatError."""
    jar = encrypted_jar(tmp_path / "locked.jar")
    with pytest.raises(ArchiveFormatError) as info:
        inspect_archive(jar)
    assert info.value.path == str(jar)


@pytest.mark.filterwarnings("ignore:Duplicate name")
def test_duplicate_manifest_names_use_first_entry(tmp_path: Path, make_jar):
    """Verify the first of two same-named manifest entries is the one parsed."""
    jar = make_jar(tmp_path / "dup.jar", [
        ("fabric.mod.json", json.dumps({"id": "first", "version": "1"})),
        ("fabric.mod.json", json.dumps({"id": "second", "version": "2"})),
    ])
    result = inspect_archive(jar)
    assert (result.mod_id, result.version) == ("first", "1")


def test_find_manifest_skips_directories():
    """Verify directory entries are never treated as manifests."""
    assert find_manifest(["mcmod.info/", "a/b.txt"]) is None
    name, _ = find_manifest(["a/b.txt", "nested/fabric.mod.json"])
    assert name == "nested/fabric.mod.json"


def test_custom_dialect_table(tmp_path: Path, make_jar):
    """Verify an inspector restricted to one dialect ignores the others."""
    only_fabric = ArchiveInspector([d for d in ArchiveInspector().dialects if d[0] == "fabric.mod.json"])
    jar = make_jar(tmp_path / "forge.jar", [("META-INF/mods.toml", FORGE_TOML)])
    assert only_fabric(jar) is None
