import json
import zipfile
from pathlib import Path

import pytest


def _write_jar(path: Path, entries):
    """Write a zip at `path` with (name, content) entries in the given order."""
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in entries:
            zf.writestr(name, content)
    return path


def _fabric_manifest(mod_id, version):
    return json.dumps({"schemaVersion": 1, "id": mod_id, "version": version})


def _mark_encrypted(path: Path):
    """Set the 'encrypted' general-purpose flag bit on every local and central header."""
    raw = bytearray(path.read_bytes())
    for signature, flag_offset in ((b"PK\x03\x04", 6), (b"PK\x01\x02", 8)):
        pos = raw.find(signature)
        while pos != -1:
            raw[pos + flag_offset] |= 0x01
            pos = raw.find(signature, pos + 4)
    path.write_bytes(bytes(raw))
    return path


@pytest.fixture
def make_jar():
    return _write_jar


@pytest.fixture
def encrypted_jar():
    def _make(path: Path, mod_id: str = "locked"):
        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_STORED) as zf:
            zf.writestr("fabric.mod.json", _fabric_manifest(mod_id, "1.0.0"))
        return _mark_encrypted(path)
    return _make


@pytest.fixture
def fabric_jar():
    def _make(path: Path, mod_id: str, version="1.0.0"):
        return _write_jar(path, [
            ("assets/icon.png", b"\x89PNG"),
            ("fabric.mod.json", _fabric_manifest(mod_id, version)),
        ])
    return _make


@pytest.fixture
def registry_doc():
    return {
        "header": {"module_name": "default", "module_version": 1.2, "module_author": "lodestone"},
        "mods": {
            "create": {"mod_version": "0.5.8", "mod_tag": "Client", "mod_type": "Fabric"},
            "jei": {"mod_version": "15.2.0", "mod_tag": "Client", "mod_type": "Forge"},
            "lithium": {"mod_version": "0.11.2", "mod_tag": "Server", "mod_type": "Fabric"},
            "mystery": {"mod_version": "1", "mod_tag": "Unknown", "mod_type": "Unknown"},
        },
    }


@pytest.fixture
def registry_file(tmp_path: Path, registry_doc):
    path = tmp_path / "modules" / "default.json"
    path.parent.mkdir()
    path.write_text(json.dumps(registry_doc), encoding="utf-8")
    return path


@pytest.fixture
def mods_dir(tmp_path: Path, fabric_jar):
    """Three classified jars (two Client, one Server), one unknown mod and one plain zip."""
    d = tmp_path / "mods"
    d.mkdir()
    fabric_jar(d / "create-0.5.8.jar", "create", "0.5.8")
    fabric_jar(d / "sodium-0.5.3.jar", "sodium", "0.5.3")
    fabric_jar(d / "lithium-0.11.2.jar", "lithium", "0.11.2")
    _write_jar(d / "jei-15.2.0.jar", [
        ("META-INF/MANIFEST.MF", "Manifest-Version: 1.0\n"),
        ("META-INF/mods.toml", 'modLoader="javafml"\n[[mods]]\nmodId="jei"\nversion="15.2.0"\n'),
    ])
    _write_jar(d / "library.jar", [("com/example/Lib.class", b"\xca\xfe\xba\xbe")])
    return d
