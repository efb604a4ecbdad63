"""
Crawl and inspection MCP tools.

Provides directory crawling into sessions, cancellation of a running crawl,
and ad hoc inspection of a single image.
"""

import logging
from pathlib import Path

from fastmcp import FastMCP

from assembly_crawler.engines.crawl.model import AssemblyInfo
from assembly_crawler.engines.session import CrawlSessionManager
from assembly_crawler.utils.formatters import format_bytes, format_crawl_summary, format_failures
from assembly_crawler.utils.security import validate_numeric_range
from assembly_crawler.utils.structured_errors import (
    FileReadError,
    StructuredBaseError,
    create_file_read_error,
    create_parameter_error,
)

logger = logging.getLogger(__name__)

MAX_WORKERS_LIMIT = 64


def inspect_file(file_path: str) -> AssemblyInfo:
    """
    Classify a single file outside of any crawl.

    Raises:
        FileReadError: If the file is missing or unreadable
    """
    try:
        return AssemblyInfo.from_file(Path(file_path).expanduser())
    except OSError as e:
        raise FileReadError(create_file_read_error(file_path, e))


def register_crawl_tools(app: FastMCP, session_manager: CrawlSessionManager) -> None:
    """
    Register crawl tools with the MCP server.

    Args:
        app: FastMCP application instance
        session_manager: Holder of crawl results
    """

    @app.tool()
    def crawl_directory(
        root_path: str,
        max_workers: int | None = None,
        session_id: str | None = None,
    ) -> str:
        """
        Crawl a directory tree and classify every file.

        Replaces the results stored in the session. Without session_id a new
        session is started and becomes the active one.

        Args:
            root_path: Directory to crawl
            max_workers: Worker threads (defaults to ASSEMBLY_CRAWLER_MAX_WORKERS)
            session_id: Existing session to re-crawl into

        Returns:
            Crawl summary
        """
        if max_workers is not None:
            try:
                validate_numeric_range(max_workers, 1, MAX_WORKERS_LIMIT, "max_workers")
            except (TypeError, ValueError) as e:
                return create_parameter_error("max_workers", max_workers, str(e)).to_user_message()

        try:
            session_id, table = session_manager.crawl(
                root_path, session_id=session_id, max_workers=max_workers
            )

            result = format_crawl_summary(table.summary(), session_id)
            result += format_failures([f.error.to_dict() for f in table.failures])
            result += """
**Next Steps:**
- `get_instance_counts(max_count)` - How many names have N copies
- `get_duplicate_sets(count)` - Names with exactly N copies
- `get_assembly_name_detail(name)` - Identical builds of one name
"""
            return result

        except StructuredBaseError as e:
            return str(e)
        except Exception as e:
            logger.error(f"crawl_directory failed: {e}")
            return f"Error crawling {root_path}: {e}"

    @app.tool()
    def cancel_crawl(session_id: str | None = None) -> str:
        """
        Stop a running crawl; files processed so far are kept.

        Args:
            session_id: Session to cancel (defaults to the active one)
        """
        try:
            if session_manager.cancel(session_id):
                return "Cancellation requested; the crawl will return the files processed so far."
            return "No crawl is running in this session."
        except StructuredBaseError as e:
            return str(e)

    @app.tool()
    def list_crawl_sessions() -> str:
        """List crawl sessions, newest first."""
        sessions = session_manager.list_sessions()
        if not sessions:
            return "No crawl sessions. Run crawl_directory(root_path) first."

        result = f"**Crawl sessions: {len(sessions)}**\n\n"
        for s in sessions:
            flags = []
            if s["active"]:
                flags.append("active")
            if s["running"]:
                flags.append("running")
            suffix = f" ({', '.join(flags)})" if flags else ""
            result += f"- `{s['session_id']}`{suffix}: {s['root'] or 'no results'}, {s['files']:,} files\n"
        return result

    @app.tool()
    def inspect_assembly(file_path: str) -> str:
        """
        Classify one file: managed or native, machine type, version metadata.

        Args:
            file_path: Path to the file

        Returns:
            File classification
        """
        try:
            info = inspect_file(file_path)

            result = f"**{info.file_name}**\n\n"
            result += f"- Path: `{info.full_path}`\n"
            result += f"- Size: {info.file_size_bytes:,} bytes ({format_bytes(info.file_size_bytes)})\n"
            result += f"- Managed: {info.is_managed}\n"
            result += f"- Machine type: {info.machine_type}\n"
            result += f"- Resource assembly: {info.is_resource}\n"
            if info.is_managed:
                result += f"- Assembly name: {info.assembly_name}\n"
                result += f"- Assembly version: {info.assembly_version}\n"
                result += f"- File version: {info.file_version}\n"
                result += f"- File version string: {info.file_version_string}\n"
            result += f"- Fingerprint: `{info.fingerprint}`\n"
            return result

        except StructuredBaseError as e:
            return str(e)
        except Exception as e:
            logger.error(f"inspect_assembly failed: {e}")
            return f"Error inspecting {file_path}: {e}"
