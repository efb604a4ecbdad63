"""
PE header inspection for managed/native classification.

Reads only the handful of header fields needed to answer two questions about
an image on disk:

- Is it a managed (CLI) image?  True when the 15th data-directory entry
  (the CLI header) has a nonzero RVA.
- Which CPU architecture does the file header declare?

See https://learn.microsoft.com/en-us/windows/win32/debug/pe-format

Both checks work on any seekable binary stream and never read past its end.
Malformed or truncated images resolve to sentinel values; filesystem errors
(vanished file, permission denied) propagate as OSError.
"""

from __future__ import annotations

import logging
import os
import struct
from contextlib import contextmanager
from dataclasses import dataclass
from typing import BinaryIO, Iterator

logger = logging.getLogger(__name__)

# DOS header field holding the offset of the PE signature (e_lfanew)
PE_POINTER_OFFSET = 0x3C
DEFAULT_PE_POINTER = 0x80
MIN_IMAGE_SIZE = 64

# Room needed after the PE pointer for the following structures:
#     24 byte PE Signature & File Header
#     28 byte Standard Fields         (24 bytes for PE32+)
#     68 byte NT Fields               (88 bytes for PE32+)
# >= 128 byte Data Dictionary Table
PE_HEADER_ROOM = 256

PE_SIGNATURE = 0x00004550  # 'PE\0\0'
FILE_HEADER_SIZE = 20

PE32_MAGIC = 0x10B
PE32_PLUS_MAGIC = 0x20B

# Offset of the CLI header RVA (data directory 15) from the PE signature
CLI_HEADER_RVA_OFFSET = {
    PE32_MAGIC: 232,
    PE32_PLUS_MAGIC: 248,
}

NOT_AVAILABLE = "N/A"
MISSING_DEFINITIONS = "MissingDefinitions"

# IMAGE_FILE_MACHINE_* constants
MACHINE_TYPES: dict[int, str] = {
    0x0: "UNKNOWN",
    0x1D3: "AM33",
    0x8664: "AMD64",
    0x1C0: "ARM",
    0xAA64: "ARM64",
    0x1C4: "ARMNT",
    0xEBC: "EBC",
    0x14C: "I386",
    0x200: "IA64",
    0x6232: "LOONGARCH32",
    0x6264: "LOONGARCH64",
    0x9041: "M32R",
    0x266: "MIPS16",
    0x366: "MIPSFPU",
    0x466: "MIPSFPU16",
    0x1F0: "POWERPC",
    0x1F1: "POWERPCFP",
    0x166: "R4000",
    0x5032: "RISCV32",
    0x5064: "RISCV64",
    0x5128: "RISCV128",
    0x1A2: "SH3",
    0x1A3: "SH3DSP",
    0x1A6: "SH4",
    0x1A8: "SH5",
    0x1C2: "THUMB",
    0x169: "WCEMIPSV2",
}

ImageSource = str | os.PathLike | BinaryIO


@dataclass(frozen=True)
class HeaderInfo:
    """Result of a single header inspection."""
    is_managed: bool
    machine_type: str


class _HeaderReader:
    """Bounds-checked little-endian reads from a seekable stream."""

    def __init__(self, stream: BinaryIO):
        self.stream = stream
        self.length = stream.seek(0, os.SEEK_END)

    def _read(self, offset: int, size: int, fmt: str) -> int | None:
        if offset < 0 or offset + size > self.length:
            return None
        self.stream.seek(offset)
        data = self.stream.read(size)
        if len(data) != size:
            return None
        return struct.unpack(fmt, data)[0]

    def read_u16(self, offset: int) -> int | None:
        return self._read(offset, 2, "<H")

    def read_u32(self, offset: int) -> int | None:
        return self._read(offset, 4, "<I")


@contextmanager
def _open_image(source: ImageSource) -> Iterator[BinaryIO]:
    """Yield a binary stream for a path or an already-open stream."""
    if isinstance(source, (str, os.PathLike)):
        with open(source, "rb") as f:
            yield f
    else:
        yield source


def _locate_pe_header(reader: _HeaderReader) -> int | None:
    """
    Find and validate the PE signature.

    Returns:
        Offset of the PE signature, or None if the image is too short,
        the pointer leaves too little room, or the signature is wrong.
    """
    if reader.length < MIN_IMAGE_SIZE:
        return None

    pe_pointer = reader.read_u32(PE_POINTER_OFFSET)
    if pe_pointer is None:
        return None
    if pe_pointer == 0:
        pe_pointer = DEFAULT_PE_POINTER

    if pe_pointer > reader.length - PE_HEADER_ROOM:
        return None

    if reader.read_u32(pe_pointer) != PE_SIGNATURE:
        return None

    return pe_pointer


def _is_managed(reader: _HeaderReader) -> bool:
    pe_pointer = _locate_pe_header(reader)
    if pe_pointer is None:
        return False

    # Optional header magic follows the signature and the file header
    magic = reader.read_u16(pe_pointer + 4 + FILE_HEADER_SIZE)
    if magic not in CLI_HEADER_RVA_OFFSET:
        return False

    cli_header_rva = reader.read_u32(pe_pointer + CLI_HEADER_RVA_OFFSET[magic])
    return bool(cli_header_rva)


def _machine_type(reader: _HeaderReader) -> str:
    pe_pointer = _locate_pe_header(reader)
    if pe_pointer is None:
        return NOT_AVAILABLE

    machine = reader.read_u16(pe_pointer + 4)
    if machine is None:
        return NOT_AVAILABLE
    return machine_type_name(machine)


def machine_type_name(code: int) -> str:
    """Map an IMAGE_FILE_MACHINE_* code to its symbolic name."""
    return MACHINE_TYPES.get(code, MISSING_DEFINITIONS)


def is_managed_image(source: ImageSource) -> bool:
    """
    Check whether an image carries a CLI header.

    Args:
        source: File path or seekable binary stream

    Returns:
        True if the image is a well-formed PE whose CLI header RVA is nonzero

    Raises:
        OSError: If the file cannot be opened or read
    """
    with _open_image(source) as stream:
        return _is_managed(_HeaderReader(stream))


def machine_type(source: ImageSource) -> str:
    """
    Get the architecture declared in an image's file header.

    Args:
        source: File path or seekable binary stream

    Returns:
        Symbolic machine name, "N/A" for malformed or short images,
        "MissingDefinitions" for unrecognized codes

    Raises:
        OSError: If the file cannot be opened or read
    """
    with _open_image(source) as stream:
        return _machine_type(_HeaderReader(stream))


def inspect_header(source: ImageSource) -> HeaderInfo:
    """
    Answer both header questions with a single open of the image.

    Raises:
        OSError: If the file cannot be opened or read
    """
    with _open_image(source) as stream:
        reader = _HeaderReader(stream)
        info = HeaderInfo(
            is_managed=_is_managed(reader),
            machine_type=_machine_type(reader),
        )

    logger.debug(f"Header of {source!r}: managed={info.is_managed}, machine={info.machine_type}")
    return info
