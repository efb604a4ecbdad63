"""
Shared fixtures: synthetic PE images and directory trees.
"""

import struct
from pathlib import Path

import pytest

from assembly_crawler.engines.crawl.model import AssemblyInfo

PE32 = 0x10B
PE32_PLUS = 0x20B


def build_pe_image(
    magic: int = PE32,
    cli_rva: int = 0x2008,
    machine: int = 0x14C,
    pe_pointer: int = 0x80,
    pointer_field: int | None = None,
    size: int = 512,
) -> bytes:
    """
    Build a minimal PE image with only the fields the header parser reads.

    Args:
        magic: Optional header magic (PE32 or PE32+)
        cli_rva: RVA stored in data directory 15 (0 = native image)
        machine: IMAGE_FILE_MACHINE_* code
        pe_pointer: Where the PE signature is written
        pointer_field: Value stored at 0x3C (defaults to pe_pointer)
        size: Total image size
    """
    data = bytearray(size)
    data[0:2] = b"MZ"
    struct.pack_into("<I", data, 0x3C, pe_pointer if pointer_field is None else pointer_field)

    struct.pack_into("<I", data, pe_pointer, 0x00004550)
    struct.pack_into("<H", data, pe_pointer + 4, machine)
    struct.pack_into("<H", data, pe_pointer + 20, 0xE0 if magic == PE32 else 0xF0)
    struct.pack_into("<H", data, pe_pointer + 22, 0x2102)

    optional_header = pe_pointer + 24
    struct.pack_into("<H", data, optional_header, magic)
    rva_count_offset = optional_header + (92 if magic == PE32 else 108)
    struct.pack_into("<I", data, rva_count_offset, 16)

    cli_offset = pe_pointer + (232 if magic == PE32 else 248)
    struct.pack_into("<I", data, cli_offset, cli_rva)

    return bytes(data)


def make_entity(
    name="a.dll",
    folder="/app",
    managed=True,
    assembly_name=None,
    assembly_version="1.0.0.0",
    file_version="1.0.0.0",
    size=1024,
    machine="I386",
    resource=False,
    file_version_string=None,
) -> AssemblyInfo:
    """Build an AssemblyInfo without touching the filesystem."""
    return AssemblyInfo(
        path=folder,
        file_name=name,
        full_path=f"{folder}/{name}",
        file_size_bytes=size,
        is_managed=managed,
        machine_type=machine,
        is_resource=resource,
        assembly_name=(assembly_name or name.rsplit(".", 1)[0]) if managed else None,
        assembly_version=assembly_version if managed else None,
        file_version=file_version if managed else None,
        file_version_string=(file_version_string or file_version) if managed else None,
    )


@pytest.fixture
def write_file(tmp_path):
    """Write bytes to a path relative to tmp_path, creating parents."""
    def _write(relative: str, data: bytes) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path

    return _write
