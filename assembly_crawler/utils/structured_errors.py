"""
Structured error messages with actionable suggestions.

Provides rich error information for crawl and report consumers including:
- Error codes for programmatic handling
- Human-readable messages
- Actionable suggestions for resolution
- Debug information for troubleshooting
"""

from __future__ import annotations

import errno
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """
    Standard error codes for assembly-crawler operations.

    Naming convention: CATEGORY_SPECIFIC_ERROR
    """

    # Crawl root errors
    PATH_NOT_FOUND = "PATH_NOT_FOUND"
    PATH_NOT_DIRECTORY = "PATH_NOT_DIRECTORY"

    # Per-file I/O errors
    FILE_VANISHED = "FILE_VANISHED"
    FILE_ACCESS_DENIED = "FILE_ACCESS_DENIED"
    FILE_READ_FAILED = "FILE_READ_FAILED"

    # Session/result errors
    NO_CRAWL_RESULTS = "NO_CRAWL_RESULTS"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    NAME_NOT_FOUND = "NAME_NOT_FOUND"

    # Report output errors
    OUTPUT_PATH_INVALID = "OUTPUT_PATH_INVALID"

    # Parameter errors
    PARAMETER_INVALID = "PARAMETER_INVALID"

    # General errors
    OPERATION_FAILED = "OPERATION_FAILED"


@dataclass
class StructuredError:
    """
    Rich error information with actionable suggestions.

    Attributes:
        error: Error code for programmatic handling
        message: Human-readable error description
        reason: Explanation of why the error occurred
        suggestions: List of actionable steps to resolve the error
        debug_info: Additional debugging information
    """

    error: ErrorCode
    message: str
    reason: str | None = None
    suggestions: list[str] = field(default_factory=list)
    debug_info: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.error.value,
            "message": self.message,
            "reason": self.reason,
            "suggestions": self.suggestions,
            "debug_info": self.debug_info,
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to formatted JSON string."""
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def to_user_message(self) -> str:
        """
        Format error for human-readable display.

        Returns:
            Multi-line string suitable for display to users
        """
        lines = [
            f"Error [{self.error.value}]: {self.message}",
        ]

        if self.reason:
            lines.append(f"Reason: {self.reason}")

        if self.suggestions:
            lines.append("\nSuggested actions:")
            for i, suggestion in enumerate(self.suggestions, 1):
                lines.append(f"  {i}. {suggestion}")

        if self.debug_info:
            lines.append("\nDebug information:")
            for key, value in self.debug_info.items():
                lines.append(f"  {key}: {value}")

        return "\n".join(lines)

    def __str__(self) -> str:
        """Return user-friendly message."""
        return self.to_user_message()


class StructuredBaseError(Exception):
    """
    Exception that wraps a StructuredError.

    Allows raising structured errors as exceptions while maintaining
    all error information.
    """

    def __init__(self, structured_error: StructuredError):
        self.structured_error = structured_error
        super().__init__(structured_error.to_user_message())

    @property
    def code(self) -> ErrorCode:
        return self.structured_error.error

    def to_dict(self) -> dict[str, Any]:
        """Get the underlying structured error as a dictionary."""
        return self.structured_error.to_dict()

    def to_json(self, indent: int = 2) -> str:
        """Get the underlying structured error as JSON."""
        return self.structured_error.to_json(indent)


class PathNotFoundError(StructuredBaseError):
    """Crawl root does not exist or is not a directory."""


class FileReadError(StructuredBaseError):
    """A single file could not be opened or read."""


class NoCrawlResultsError(StructuredBaseError):
    """No crawl has been run for the requested session."""


class NameNotFoundError(StructuredBaseError):
    """The requested identity name is not present in the crawl results."""


# =============================================================================
# Suggestion Mappings - Predefined suggestions for common error scenarios
# =============================================================================

PATH_SUGGESTIONS = {
    "not_found": [
        "Check the path for typos and make sure it is absolute",
        "Verify the drive or network share is mounted",
        "Use forward slashes or escaped backslashes on Windows",
    ],
    "not_directory": [
        "Pass the directory that contains the assemblies, not a single file",
        "Use inspect_assembly(file_path) to examine one file",
    ],
}

FILE_SUGGESTIONS = {
    "vanished": [
        "The file was removed or renamed while the crawl was running",
        "Re-run the crawl once the directory is no longer changing",
    ],
    "access_denied": [
        "Run the crawl with an account that can read the file",
        "Check whether another process holds an exclusive lock on the file",
    ],
    "read_failed": [
        "The file may live on an unreliable or disconnected volume",
        "Check the system log for I/O errors on the device",
    ],
}

SESSION_SUGGESTIONS = {
    "no_results": [
        "Run crawl_directory(root_path) first",
        "Use list_crawl_sessions() to see which sessions hold results",
    ],
    "name_not_found": [
        "Names are matched case-insensitively against assembly or file names",
        "Use get_duplicate_sets(count) to list the names present in the crawl",
        "Try managed_only=False if the file is a native image",
    ],
}


# =============================================================================
# Error Factory Functions
# =============================================================================


def create_path_not_found_error(root_path: str) -> StructuredError:
    """Create error for a crawl root that does not exist."""
    return StructuredError(
        error=ErrorCode.PATH_NOT_FOUND,
        message=f"Path not found: '{root_path}'",
        reason="The directory to crawl does not exist",
        suggestions=PATH_SUGGESTIONS["not_found"],
        debug_info={"root_path": root_path},
    )


def create_path_not_directory_error(root_path: str) -> StructuredError:
    """Create error for a crawl root that is not a directory."""
    return StructuredError(
        error=ErrorCode.PATH_NOT_DIRECTORY,
        message=f"Not a directory: '{root_path}'",
        reason="Crawling requires a directory root",
        suggestions=PATH_SUGGESTIONS["not_directory"],
        debug_info={"root_path": root_path},
    )


def classify_os_error(exc: OSError) -> ErrorCode:
    """
    Classify an OSError raised while reading a file.

    Args:
        exc: The exception raised by open/read/stat

    Returns:
        The most appropriate ErrorCode for this error
    """
    if isinstance(exc, FileNotFoundError) or exc.errno == errno.ENOENT:
        return ErrorCode.FILE_VANISHED
    if isinstance(exc, PermissionError) or exc.errno in (errno.EACCES, errno.EPERM):
        return ErrorCode.FILE_ACCESS_DENIED
    return ErrorCode.FILE_READ_FAILED


def create_file_read_error(file_path: str, exc: OSError) -> StructuredError:
    """Create error for a file that could not be read during a crawl."""
    code = classify_os_error(exc)
    suggestions = {
        ErrorCode.FILE_VANISHED: FILE_SUGGESTIONS["vanished"],
        ErrorCode.FILE_ACCESS_DENIED: FILE_SUGGESTIONS["access_denied"],
    }.get(code, FILE_SUGGESTIONS["read_failed"])

    return StructuredError(
        error=code,
        message=f"Failed to read '{file_path}'",
        reason=exc.strerror or str(exc),
        suggestions=suggestions,
        debug_info={
            "file_path": file_path,
            "errno": exc.errno,
            "exception": type(exc).__name__,
        },
    )


def create_no_crawl_results_error(session_id: str | None = None) -> StructuredError:
    """Create error for a report requested before any crawl."""
    if session_id:
        return StructuredError(
            error=ErrorCode.SESSION_NOT_FOUND,
            message=f"Crawl session not found: '{session_id}'",
            reason="No crawl results are stored under this session ID",
            suggestions=SESSION_SUGGESTIONS["no_results"],
            debug_info={"session_id": session_id},
        )

    return StructuredError(
        error=ErrorCode.NO_CRAWL_RESULTS,
        message="Must crawl a directory first",
        reason="No crawl session is active",
        suggestions=SESSION_SUGGESTIONS["no_results"],
    )


def create_name_not_found_error(
    name: str,
    managed_only: bool,
    known_names: list[str] | None = None,
) -> StructuredError:
    """Create error for an identity name missing from the crawl results."""
    debug_info: dict[str, Any] = {
        "requested_name": name,
        "managed_only": managed_only,
    }
    if known_names:
        debug_info["known_names"] = known_names[:10]  # Limit to 10

    return StructuredError(
        error=ErrorCode.NAME_NOT_FOUND,
        message=f"Invalid assembly name or name not found: '{name}'",
        reason="No crawled file has this assembly or file name",
        suggestions=SESSION_SUGGESTIONS["name_not_found"],
        debug_info=debug_info,
    )


def create_output_path_error(output_path: str, detail: str) -> StructuredError:
    """Create error for a report path that cannot be written."""
    return StructuredError(
        error=ErrorCode.OUTPUT_PATH_INVALID,
        message=f"Cannot write report to '{output_path}'",
        reason=detail,
        suggestions=[
            "Pass a bare file name; reports are written to the configured output directory",
            "Set ASSEMBLY_CRAWLER_OUTPUT_DIR to change where reports go",
        ],
        debug_info={"output_path": output_path},
    )


def create_parameter_error(
    param_name: str,
    provided_value: Any,
    expected: str,
    valid_values: list[Any] | None = None,
) -> StructuredError:
    """Create error for invalid parameter value."""
    suggestions = [
        f"Provide a valid value for '{param_name}'",
        f"Expected: {expected}",
    ]
    if valid_values:
        suggestions.append(f"Valid options: {', '.join(str(v) for v in valid_values)}")

    return StructuredError(
        error=ErrorCode.PARAMETER_INVALID,
        message=f"Invalid value for parameter '{param_name}'",
        reason=f"Got '{provided_value}', expected {expected}",
        suggestions=suggestions,
        debug_info={
            "parameter": param_name,
            "provided": provided_value,
            "expected": expected,
            "valid_values": valid_values,
        },
    )
