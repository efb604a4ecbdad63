"""
Identity and version metadata for managed images.

Version numbers come from the image's VS_VERSIONINFO resource, parsed with
pefile. Managed compilers write an "Assembly Version" entry into the
StringFileInfo table alongside the usual FileVersion/InternalName entries,
which is enough to identify an assembly without decoding CLI metadata tables.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

import pefile

logger = logging.getLogger(__name__)

RESOURCE_SUFFIX = ".resources.dll"

# Locale IDs used as satellite-assembly folder names
LOCALE_DIRECTORIES = frozenset({
    "1028", "1029", "1031", "1033", "1036", "1040", "1041",
    "1042", "1045", "1046", "1049", "1055", "2052", "3082",
})

DEFAULT_VERSION = "0.0.0.0"
IMAGE_EXTENSIONS = (".dll", ".exe")


@dataclass(frozen=True)
class VersionMetadata:
    """Identity and version information of a managed image."""
    assembly_name: str
    assembly_version: str | None = None
    file_version: str | None = None
    file_version_string: str | None = None


def is_resource_file(file_path: str | os.PathLike) -> bool:
    """
    Check whether a file is a satellite/resource assembly.

    True if the name ends with ".resources.dll" (any case) or the file sits
    directly inside a locale-ID folder such as "1033".
    """
    path = Path(file_path)
    return (
        path.name.lower().endswith(RESOURCE_SUFFIX)
        or path.parent.name in LOCALE_DIRECTORIES
    )


def _format_version(ms: int, ls: int) -> str:
    return f"{ms >> 16}.{ms & 0xFFFF}.{ls >> 16}.{ls & 0xFFFF}"


def _decode(value) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="ignore").strip("\x00").strip()
    return str(value).strip()


def _read_string_table(pe: pefile.PE) -> dict[str, str]:
    """Flatten every StringFileInfo table into one dict (first value wins)."""
    strings: dict[str, str] = {}

    for file_info in getattr(pe, "FileInfo", None) or []:
        # pefile >= 2019 nests one list per VS_VERSIONINFO entry
        blocks = file_info if isinstance(file_info, list) else [file_info]
        for block in blocks:
            if _decode(getattr(block, "Key", b"")) != "StringFileInfo":
                continue
            for table in getattr(block, "StringTable", []):
                for key, value in table.entries.items():
                    text = _decode(value)
                    if text:
                        strings.setdefault(_decode(key), text)

    return strings


def _strip_image_extension(name: str) -> str:
    if name.lower().endswith(IMAGE_EXTENSIONS):
        return name[:-4]
    return name


def read_version_metadata(file_path: str | os.PathLike) -> VersionMetadata:
    """
    Read identity and version metadata of a managed image.

    Args:
        file_path: Path to an image already known to be managed

    Returns:
        VersionMetadata; versions are None when the image has no usable
        version resource

    Raises:
        OSError: If the file cannot be opened or read
    """
    path = Path(file_path)
    fallback_name = _strip_image_extension(path.name)

    try:
        pe = pefile.PE(str(path), fast_load=True)
    except pefile.PEFormatError as e:
        logger.warning(f"Cannot parse version resource of {path}: {e}")
        return VersionMetadata(assembly_name=fallback_name)

    try:
        pe.parse_data_directories(directories=[
            pefile.DIRECTORY_ENTRY["IMAGE_DIRECTORY_ENTRY_RESOURCE"]
        ])

        file_version = None
        product_version = None
        fixed_info = getattr(pe, "VS_FIXEDFILEINFO", None)
        if fixed_info:
            entry = fixed_info[0]
            file_version = _format_version(entry.FileVersionMS, entry.FileVersionLS)
            product_version = _format_version(entry.ProductVersionMS, entry.ProductVersionLS)

        strings = _read_string_table(pe)
    except pefile.PEFormatError as e:
        logger.warning(f"Malformed resource directory in {path}: {e}")
        return VersionMetadata(assembly_name=fallback_name)
    finally:
        pe.close()

    if file_version is None and not strings:
        logger.debug(f"No version resource in {path}")
        return VersionMetadata(assembly_name=fallback_name)

    internal_name = strings.get("InternalName") or strings.get("OriginalFilename")
    assembly_name = _strip_image_extension(internal_name) if internal_name else fallback_name

    file_version = file_version or DEFAULT_VERSION
    return VersionMetadata(
        assembly_name=assembly_name,
        assembly_version=strings.get("Assembly Version") or product_version or DEFAULT_VERSION,
        file_version=file_version,
        file_version_string=strings.get("FileVersion") or file_version,
    )
