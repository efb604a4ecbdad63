"""
Output formatting utilities for crawl results.
"""

from typing import Any


def format_bytes(num_bytes: int) -> str:
    """
    Format byte count as human-readable string.

    Args:
        num_bytes: Number of bytes

    Returns:
        Formatted string (e.g., "1.5 MB")
    """
    size = float(num_bytes)
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if size < 1024.0:
            return f"{size:.1f} {unit}"
        size /= 1024.0
    return f"{size:.1f} PB"


def truncate_string(s: str, max_length: int = 100) -> str:
    """
    Truncate a string with ellipsis.

    Args:
        s: String to truncate
        max_length: Maximum length

    Returns:
        Truncated string
    """
    if len(s) <= max_length:
        return s
    return s[:max_length - 3] + "..."


def format_crawl_summary(summary: dict[str, Any], session_id: str | None = None) -> str:
    """Format EntityTable.summary() for display."""
    title = "Crawl cancelled" if summary.get("cancelled") else "Crawl complete"
    result = f"**{title}: {summary['root']}**\n\n"

    if session_id:
        result += f"- Session: `{session_id}`\n"
    result += f"- Files: {summary['files_processed']:,} of {summary['files_discovered']:,} processed\n"
    result += f"- Managed: {summary['managed']:,}\n"
    result += f"- Resource assemblies: {summary['resources']:,}\n"
    result += f"- Distinct names: {summary['distinct_names']:,} ({summary['distinct_managed_names']:,} managed)\n"
    result += f"- Total size: {format_bytes(summary['total_size_bytes'])}\n"
    result += f"- Elapsed: {summary['elapsed_seconds']:.1f}s\n"

    if summary.get("failures"):
        result += f"- Unreadable files: {summary['failures']:,}\n"

    return result


def format_failures(failures: list[dict], limit: int = 20) -> str:
    """
    Format crawl failures for display.

    Args:
        failures: List of StructuredError dicts with a file_path in debug_info
        limit: Maximum number to display
    """
    if not failures:
        return ""

    result = "\n**Skipped files**\n\n"
    for failure in failures[:limit]:
        path = failure.get("debug_info", {}).get("file_path", "?")
        result += f"- `{truncate_string(path)}` [{failure['error']}] {failure.get('reason') or ''}\n"

    if len(failures) > limit:
        result += f"\n*Showing {limit} of {len(failures)} failures*\n"

    return result
