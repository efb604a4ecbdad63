"""
Tests for version metadata extraction and resource-assembly detection.
"""

from types import SimpleNamespace

import pefile
import pytest

from assembly_crawler.engines.static import metadata
from assembly_crawler.engines.static.metadata import (
    DEFAULT_VERSION,
    is_resource_file,
    read_version_metadata,
)

from conftest import build_pe_image


def _fixed_info(file_version=(1, 2, 3, 4), product_version=(1, 2, 0, 0)):
    fv, pv = file_version, product_version
    return SimpleNamespace(
        FileVersionMS=(fv[0] << 16) | fv[1],
        FileVersionLS=(fv[2] << 16) | fv[3],
        ProductVersionMS=(pv[0] << 16) | pv[1],
        ProductVersionLS=(pv[2] << 16) | pv[3],
    )


def _file_info(strings: dict[str, str]):
    table = SimpleNamespace(entries={k.encode(): v.encode() for k, v in strings.items()})
    string_info = SimpleNamespace(Key=b"StringFileInfo", StringTable=[table])
    var_info = SimpleNamespace(Key=b"VarFileInfo", Var=[])
    return [[string_info, var_info]]


def fake_pe_factory(fixed=None, strings=None, resource_error=False):
    """Build a stand-in for pefile.PE exposing only the version resource."""

    class FakePE:
        closed = False

        def __init__(self, name=None, fast_load=False):
            self.name = name

        def parse_data_directories(self, directories=None):
            if resource_error:
                raise pefile.PEFormatError("corrupt resource directory")
            if fixed is not None:
                self.VS_FIXEDFILEINFO = [fixed]
            if strings is not None:
                self.FileInfo = _file_info(strings)

        def close(self):
            FakePE.closed = True

    return FakePE


class TestIsResourceFile:
    """Satellite assembly detection."""

    @pytest.mark.parametrize("path", [
        "/app/bin/Foo.resources.dll",
        "/app/bin/de/Foo.Resources.DLL",
        "/app/bin/1033/Foo.dll",
        "/app/bin/2052/Bar.exe",
    ])
    def test_resource_paths(self, path):
        assert is_resource_file(path) is True

    @pytest.mark.parametrize("path", [
        "/app/bin/Foo.dll",
        "/app/1033/bin/Foo.dll",       # locale folder must be the direct parent
        "/app/bin/9999/Foo.dll",       # not a locale ID in the list
        "/app/bin/Foo.resources.exe",
    ])
    def test_non_resource_paths(self, path):
        assert is_resource_file(path) is False


class TestReadVersionMetadata:
    """Version resource parsing through pefile."""

    def test_full_version_resource(self, tmp_path, monkeypatch):
        path = tmp_path / "Contoso.Core.dll"
        path.write_bytes(b"MZ")
        fake = fake_pe_factory(
            fixed=_fixed_info((4, 8, 3761, 0)),
            strings={
                "Assembly Version": "4.0.0.0",
                "FileVersion": "4.8.3761.0 built by: NET48REL1",
                "InternalName": "Contoso.Core.dll",
            },
        )
        monkeypatch.setattr(metadata.pefile, "PE", fake)

        meta = read_version_metadata(path)

        assert meta.assembly_name == "Contoso.Core"
        assert meta.assembly_version == "4.0.0.0"
        assert meta.file_version == "4.8.3761.0"
        assert meta.file_version_string == "4.8.3761.0 built by: NET48REL1"
        assert fake.closed is True

    def test_product_version_when_no_assembly_version(self, tmp_path, monkeypatch):
        path = tmp_path / "Lib.dll"
        path.write_bytes(b"MZ")
        monkeypatch.setattr(metadata.pefile, "PE", fake_pe_factory(
            fixed=_fixed_info((2, 1, 0, 7), (2, 1, 0, 0)),
            strings={"OriginalFilename": "Lib.Renamed.dll"},
        ))

        meta = read_version_metadata(path)

        assert meta.assembly_name == "Lib.Renamed"
        assert meta.assembly_version == "2.1.0.0"
        assert meta.file_version == "2.1.0.7"
        assert meta.file_version_string == "2.1.0.7"

    def test_strings_without_fixed_info(self, tmp_path, monkeypatch):
        path = tmp_path / "Strings.dll"
        path.write_bytes(b"MZ")
        monkeypatch.setattr(metadata.pefile, "PE", fake_pe_factory(
            strings={"Assembly Version": "1.0.0.0"},
        ))

        meta = read_version_metadata(path)

        assert meta.assembly_name == "Strings"
        assert meta.assembly_version == "1.0.0.0"
        assert meta.file_version == DEFAULT_VERSION
        assert meta.file_version_string == DEFAULT_VERSION

    def test_no_version_resource(self, tmp_path, monkeypatch):
        path = tmp_path / "Bare.exe"
        path.write_bytes(b"MZ")
        monkeypatch.setattr(metadata.pefile, "PE", fake_pe_factory())

        meta = read_version_metadata(path)

        assert meta.assembly_name == "Bare"
        assert meta.assembly_version is None
        assert meta.file_version is None
        assert meta.file_version_string is None

    def test_corrupt_resource_directory(self, tmp_path, monkeypatch):
        path = tmp_path / "Broken.dll"
        path.write_bytes(b"MZ")
        fake = fake_pe_factory(resource_error=True)
        monkeypatch.setattr(metadata.pefile, "PE", fake)

        meta = read_version_metadata(path)

        assert meta.assembly_name == "Broken"
        assert meta.assembly_version is None
        assert fake.closed is True

    def test_not_a_pe_file(self, tmp_path):
        path = tmp_path / "Text.dll"
        path.write_bytes(b"plain text, no DOS header" * 10)

        meta = read_version_metadata(path)

        assert meta.assembly_name == "Text"
        assert meta.file_version is None

    def test_synthetic_image_without_version_resource(self, tmp_path):
        path = tmp_path / "Synthetic.Lib.dll"
        path.write_bytes(build_pe_image())

        meta = read_version_metadata(path)

        assert meta.assembly_name == "Synthetic.Lib"
        assert meta.assembly_version is None
        assert meta.file_version is None

    def test_missing_file_raises_oserror(self, tmp_path):
        with pytest.raises(OSError):
            read_version_metadata(tmp_path / "gone.dll")
