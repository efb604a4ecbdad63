"""
Entity model for crawled files.

One AssemblyInfo per discovered file, populated in a single classification
pass at crawl time and frozen afterwards. EntityTable is the complete result
of one crawl.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path
from typing import Any

from assembly_crawler.engines.static.metadata import is_resource_file, read_version_metadata
from assembly_crawler.engines.static.pe_header import inspect_header
from assembly_crawler.utils.structured_errors import StructuredError


@dataclass(frozen=True)
class AssemblyInfo:
    """Descriptive record of one file found by a crawl."""

    path: str
    file_name: str
    full_path: str
    file_size_bytes: int
    is_managed: bool
    machine_type: str
    is_resource: bool
    assembly_name: str | None = None
    assembly_version: str | None = None
    file_version: str | None = None
    file_version_string: str | None = None

    @classmethod
    def from_file(cls, file_path: str | Path) -> "AssemblyInfo":
        """
        Classify a file: size, header, resource status and, for managed
        images, version metadata.

        Raises:
            OSError: If the file vanished or cannot be read
        """
        path = Path(file_path)
        size = path.stat().st_size
        header = inspect_header(path)

        metadata = read_version_metadata(path) if header.is_managed else None

        return cls(
            path=str(path.parent),
            file_name=path.name,
            full_path=str(path),
            file_size_bytes=size,
            is_managed=header.is_managed,
            machine_type=header.machine_type,
            is_resource=is_resource_file(path),
            assembly_name=metadata.assembly_name if metadata else None,
            assembly_version=metadata.assembly_version if metadata else None,
            file_version=metadata.file_version if metadata else None,
            file_version_string=metadata.file_version_string if metadata else None,
        )

    @property
    def identity_name(self) -> str:
        """Assembly name for managed images, file name otherwise."""
        if self.is_managed and self.assembly_name:
            return self.assembly_name
        return self.file_name

    @property
    def version_sort_key(self) -> str:
        # Text concatenation, so "9.0" sorts above "10.0"
        return f"{self.assembly_version or ''}{self.file_version or ''}"

    @cached_property
    def fingerprint(self) -> str:
        """Structural hash of version info, size and machine type."""
        parts = (
            str(self.is_managed),
            self.assembly_version or "",
            self.file_version or "",
            self.file_version_string or "",
            str(self.file_size_bytes),
            self.machine_type,
        )
        return hashlib.sha1("\x1f".join(parts).encode("utf-8")).hexdigest()  # nosec B324

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "file_name": self.file_name,
            "full_path": self.full_path,
            "file_size_bytes": self.file_size_bytes,
            "is_managed": self.is_managed,
            "machine_type": self.machine_type,
            "is_resource": self.is_resource,
            "assembly_name": self.assembly_name,
            "assembly_version": self.assembly_version,
            "file_version": self.file_version,
            "file_version_string": self.file_version_string,
            "fingerprint": self.fingerprint,
        }


@dataclass(frozen=True)
class CrawlFailure:
    """A file skipped because it could not be read."""
    full_path: str
    error: StructuredError


@dataclass(frozen=True)
class EntityTable:
    """
    Result of one crawl.

    Entities are kept in discovery order. The four name-grouped views
    (all/managed, sorted/unsorted) are computed on first access.
    """

    root: str
    entities: tuple[AssemblyInfo, ...] = ()
    failures: tuple[CrawlFailure, ...] = ()
    files_discovered: int = 0
    cancelled: bool = False
    elapsed_seconds: float = 0.0

    @cached_property
    def managed_entities(self) -> tuple[AssemblyInfo, ...]:
        return tuple(e for e in self.entities if e.is_managed)

    def groups(self, managed_only: bool = False, sort: bool = True) -> dict[str, list[AssemblyInfo]]:
        """Name groups for the requested view."""
        if managed_only:
            return self.managed_assemblies if sort else self.managed_unsorted_assemblies
        return self.all_assemblies if sort else self.all_unsorted_assemblies

    @cached_property
    def all_assemblies(self) -> dict[str, list[AssemblyInfo]]:
        from assembly_crawler.engines.crawl.grouping import group_by_name
        return group_by_name(self.entities, sort=True)

    @cached_property
    def all_unsorted_assemblies(self) -> dict[str, list[AssemblyInfo]]:
        from assembly_crawler.engines.crawl.grouping import group_by_name
        return group_by_name(self.entities, sort=False)

    @cached_property
    def managed_assemblies(self) -> dict[str, list[AssemblyInfo]]:
        from assembly_crawler.engines.crawl.grouping import group_by_name
        return group_by_name(self.managed_entities, sort=True)

    @cached_property
    def managed_unsorted_assemblies(self) -> dict[str, list[AssemblyInfo]]:
        from assembly_crawler.engines.crawl.grouping import group_by_name
        return group_by_name(self.managed_entities, sort=False)

    @property
    def total_size_bytes(self) -> int:
        return sum(e.file_size_bytes for e in self.entities)

    def summary(self) -> dict[str, Any]:
        return {
            "root": self.root,
            "files_discovered": self.files_discovered,
            "files_processed": len(self.entities),
            "managed": len(self.managed_entities),
            "resources": sum(1 for e in self.entities if e.is_resource),
            "failures": len(self.failures),
            "distinct_names": len(self.all_assemblies),
            "distinct_managed_names": len(self.managed_assemblies),
            "total_size_bytes": self.total_size_bytes,
            "cancelled": self.cancelled,
            "elapsed_seconds": round(self.elapsed_seconds, 2),
        }
