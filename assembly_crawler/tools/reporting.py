"""
Duplicate report generation tools.

Provides views over a crawl's name groups:
- Instance-count summary (how many names have 1, 2, ... N copies)
- Names with exactly N copies
- Per-name detail bucketed by fingerprint
- Per-name summary CSV and per-file detail CSV with duplicate statistics
"""

import csv
import logging
from collections import Counter
from pathlib import Path
from typing import Any, TextIO

from fastmcp import FastMCP

from assembly_crawler.engines.crawl.grouping import bucket_by_fingerprint
from assembly_crawler.engines.crawl.model import AssemblyInfo
from assembly_crawler.engines.session import CrawlSessionManager
from assembly_crawler.utils.config import get_output_dir
from assembly_crawler.utils.formatters import format_bytes
from assembly_crawler.utils.security import (
    PathTraversalError,
    sanitize_output_path,
    validate_numeric_range,
)
from assembly_crawler.utils.structured_errors import (
    NameNotFoundError,
    StructuredBaseError,
    create_name_not_found_error,
    create_output_path_error,
    create_parameter_error,
)

logger = logging.getLogger(__name__)

NameGroups = dict[str, list[AssemblyInfo]]

SUMMARY_CSV_HEADER = ["FileName", "Count", "TotalSizeBytes", "IsManaged"]

DETAIL_CSV_HEADER = [
    "Label",
    "FileName",
    "IsManaged",
    "IsResource",
    "MachineType",
    "FileVersion",
    "FileSizeKB",
    "FullPath",
    "RelativeFolder",
    "Assembly",
    "AssemblyVersion",
    "MachineTypeDuplicates",
    "SizeReductionOnMachineTypeDuplicate (KB)",
    "FileVersionDuplicates",
    "SizeReductionOnFileVersionDuplicate (KB)",
]


# =============================================================================
# Report views
# =============================================================================


def count_by_instances(groups: NameGroups, max_count: int) -> tuple[dict[int, int], int]:
    """
    Count names by number of copies.

    Args:
        groups: Name groups of a crawl
        max_count: Largest copy count reported individually

    Returns:
        ({copies: names} for copies 1..max_count that occur,
         number of names with more than max_count copies)
    """
    sizes = Counter(len(members) for members in groups.values())
    counts = {i: sizes[i] for i in range(1, max_count + 1) if sizes[i]}
    more = sum(n for size, n in sizes.items() if size > max_count)
    return counts, more


def names_with_count(groups: NameGroups, count: int) -> list[str]:
    """Names that have exactly `count` copies, in group order."""
    return [name for name, members in groups.items() if len(members) == count]


def describe_name_group(groups: NameGroups, name: str, managed_only: bool = True) -> list[dict[str, Any]]:
    """
    Fingerprint buckets of one name group.

    Args:
        groups: Name groups of a crawl
        name: Identity name, matched case-insensitively
        managed_only: Only used to describe a missing name

    Returns:
        One dict per bucket, in bucket order

    Raises:
        NameNotFoundError: If no group has this name
    """
    members = groups.get(name.strip().lower()) if name else None
    if not members:
        raise NameNotFoundError(
            create_name_not_found_error(name, managed_only, list(groups.keys()))
        )

    buckets = []
    for fingerprint, entities in bucket_by_fingerprint(members).items():
        first = entities[0]
        buckets.append({
            "fingerprint": fingerprint,
            "name": first.identity_name,
            "assembly_version": first.assembly_version,
            "file_version": first.file_version,
            "machine_type": first.machine_type,
            "count": len(entities),
            "size_bytes": first.file_size_bytes,
            "total_bytes": first.file_size_bytes * len(entities),
            "paths": [e.path for e in entities],
        })
    return buckets


def write_summary_csv(groups: NameGroups, stream: TextIO) -> int:
    """
    Write one row per name: file name, copies, total size, managed flag.

    Returns:
        Number of rows written (excluding the header)
    """
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(SUMMARY_CSV_HEADER)

    for members in groups.values():
        first = members[0]
        writer.writerow([
            first.file_name,
            len(members),
            sum(e.file_size_bytes for e in members),
            first.is_managed,
        ])

    return len(groups)


def _relative_folder(path: str, root: str) -> str:
    return path[len(root):] if path.startswith(root) else path


def write_detail_csv(groups: NameGroups, stream: TextIO, root: str, label: str = "") -> int:
    """
    Write one row per file with duplicate statistics for its name group.

    Within a group rows are ordered by machine type, then file-version
    string. A file counts as reclaimable only when the row directly before it
    has the same machine type (and, for the file-version column, the same
    file-version string), so non-adjacent duplicates are not credited.

    Returns:
        Number of rows written (excluding the header)
    """
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(DETAIL_CSV_HEADER)
    rows = 0

    for members in groups.values():
        items = sorted(members, key=lambda e: (e.machine_type, e.file_version_string or ""))
        machine_type_counts = Counter(e.machine_type for e in members)
        file_version_counts = Counter((e.machine_type, e.file_version_string) for e in members)

        last_machine_type = None
        last_file_version = None

        for item in items:
            size_kb = item.file_size_bytes // 1024
            machine_reduction = size_kb
            version_reduction = size_kb
            if item.machine_type != last_machine_type:
                machine_reduction = 0
                version_reduction = 0
            elif item.file_version_string != last_file_version:
                version_reduction = 0

            last_machine_type = item.machine_type
            last_file_version = item.file_version_string

            writer.writerow([
                label,
                item.file_name,
                item.is_managed,
                item.is_resource,
                item.machine_type,
                item.file_version_string or "",
                size_kb,
                item.full_path,
                _relative_folder(item.path, root),
                item.assembly_name if item.is_managed else "N/A",
                item.assembly_version if item.is_managed else "N/A",
                machine_type_counts[item.machine_type],
                machine_reduction,
                file_version_counts[(item.machine_type, item.file_version_string)],
                version_reduction,
            ])
            rows += 1

    return rows


def resolve_report_path(filename: str) -> Path:
    """
    Place a report file inside the configured output directory.

    Raises:
        StructuredBaseError: If the name escapes the output directory
    """
    output_dir = get_output_dir()
    output_dir.mkdir(parents=True, exist_ok=True)
    try:
        return sanitize_output_path(output_dir / filename, output_dir)
    except (PathTraversalError, ValueError) as e:
        raise StructuredBaseError(create_output_path_error(filename, str(e)))


# =============================================================================
# MCP tools
# =============================================================================


def register_reporting_tools(app: FastMCP, session_manager: CrawlSessionManager) -> None:
    """
    Register duplicate reporting tools with the MCP server.

    Args:
        app: FastMCP application instance
        session_manager: Holder of crawl results
    """

    @app.tool()
    def get_instance_counts(
        max_count: int = 5,
        managed_only: bool = True,
        session_id: str | None = None,
    ) -> str:
        """
        Count how many names have 1, 2, ... max_count copies.

        Args:
            max_count: Largest copy count listed individually
            managed_only: Only consider managed assemblies
            session_id: Crawl session (defaults to the active one)

        Returns:
            Copy-count summary
        """
        try:
            validate_numeric_range(max_count, 1, 10_000, "max_count")
            groups = session_manager.get_table(session_id).groups(managed_only)
            counts, more = count_by_instances(groups, max_count)

            result = f"**Instance counts ({'managed only' if managed_only else 'all files'})**\n\n"
            for copies, names in counts.items():
                result += f"- Items with {copies} instance(s): {names}\n"
            result += f"- Items with more than {max_count} instance(s): {more}\n"
            return result

        except (TypeError, ValueError) as e:
            return create_parameter_error("max_count", max_count, str(e)).to_user_message()
        except StructuredBaseError as e:
            return str(e)
        except Exception as e:
            logger.error(f"get_instance_counts failed: {e}")
            return f"Error counting instances: {e}"

    @app.tool()
    def get_duplicate_sets(
        count: int,
        managed_only: bool = True,
        session_id: str | None = None,
    ) -> str:
        """
        List names that have exactly `count` copies.

        Args:
            count: Number of copies
            managed_only: Only consider managed assemblies
            session_id: Crawl session (defaults to the active one)

        Returns:
            Matching names
        """
        try:
            validate_numeric_range(count, 1, 1_000_000, "count")
            groups = session_manager.get_table(session_id).groups(managed_only)
            names = names_with_count(groups, count)

            result = f"**{len(names)} items found for target count {count}**\n\n"
            for name in names:
                result += f"- {groups[name][0].identity_name}\n"
            return result

        except (TypeError, ValueError) as e:
            return create_parameter_error("count", count, str(e)).to_user_message()
        except StructuredBaseError as e:
            return str(e)
        except Exception as e:
            logger.error(f"get_duplicate_sets failed: {e}")
            return f"Error listing duplicate sets: {e}"

    @app.tool()
    def get_assembly_name_detail(
        name: str,
        managed_only: bool = True,
        session_id: str | None = None,
    ) -> str:
        """
        Show every copy of one name, grouped into identical-fingerprint buckets.

        Args:
            name: Assembly name (managed) or file name (native), any case
            managed_only: Only consider managed assemblies
            session_id: Crawl session (defaults to the active one)

        Returns:
            Buckets with version, size and locations
        """
        try:
            groups = session_manager.get_table(session_id).groups(managed_only)
            buckets = describe_name_group(groups, name, managed_only)
            total = sum(b["count"] for b in buckets)

            result = f"**'{name}' has {total} instances in {len(buckets)} distinct builds**\n\n"
            for bucket in buckets:
                result += (
                    f"### {bucket['name']} av: {bucket['assembly_version']}, "
                    f"fv: {bucket['file_version']}, ct: {bucket['count']}\n"
                )
                result += (
                    f"Size: {bucket['size_bytes']:,} bytes, "
                    f"total: {bucket['total_bytes']:,} bytes ({format_bytes(bucket['total_bytes'])})\n\n"
                )
                for path in bucket["paths"]:
                    result += f"- `{path}`\n"
                result += "\n"
            return result

        except StructuredBaseError as e:
            return str(e)
        except Exception as e:
            logger.error(f"get_assembly_name_detail failed: {e}")
            return f"Error describing '{name}': {e}"

    @app.tool()
    def export_summary_csv(
        filename: str,
        managed_only: bool = True,
        session_id: str | None = None,
    ) -> str:
        """
        Write a per-name summary CSV (file name, copies, total size, managed).

        Args:
            filename: File name inside the report output directory
            managed_only: Only consider managed assemblies
            session_id: Crawl session (defaults to the active one)

        Returns:
            Path of the written report
        """
        try:
            groups = session_manager.get_table(session_id).groups(managed_only)
            report_path = resolve_report_path(filename)
            with open(report_path, "w", encoding="utf-8", newline="") as f:
                rows = write_summary_csv(groups, f)

            logger.info(f"Summary report saved to: {report_path}")
            return f"Summary CSV written: {report_path} ({rows} names)"

        except StructuredBaseError as e:
            return str(e)
        except OSError as e:
            logger.error(f"export_summary_csv failed: {e}")
            return create_output_path_error(filename, str(e)).to_user_message()

    @app.tool()
    def export_detail_csv(
        filename: str,
        managed_only: bool = True,
        label: str = "",
        session_id: str | None = None,
    ) -> str:
        """
        Write a per-file CSV with machine-type and file-version duplicate stats.

        Args:
            filename: File name inside the report output directory
            managed_only: Only consider managed assemblies
            label: Value for the Label column (e.g. product version)
            session_id: Crawl session (defaults to the active one)

        Returns:
            Path of the written report
        """
        try:
            table = session_manager.get_table(session_id)
            groups = table.groups(managed_only, sort=False)
            report_path = resolve_report_path(filename)
            with open(report_path, "w", encoding="utf-8", newline="") as f:
                rows = write_detail_csv(groups, f, table.root, label)

            logger.info(f"Detail report saved to: {report_path}")
            return f"Detail CSV written: {report_path} ({rows} files)"

        except StructuredBaseError as e:
            return str(e)
        except OSError as e:
            logger.error(f"export_detail_csv failed: {e}")
            return create_output_path_error(filename, str(e)).to_user_message()
