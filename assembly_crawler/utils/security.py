"""Security utilities for input validation and sanitization."""

from pathlib import Path

from assembly_crawler.utils.structured_errors import (
    PathNotFoundError,
    create_path_not_directory_error,
    create_path_not_found_error,
)


class SecurityError(Exception):
    """Base exception for security-related errors."""
    pass


class PathTraversalError(SecurityError):
    """Raised when path traversal attempt is detected."""
    pass


def sanitize_crawl_root(root_path: str | Path) -> Path:
    """
    Resolve and validate the root directory of a crawl.

    Args:
        root_path: User-supplied directory path

    Returns:
        Validated absolute path

    Raises:
        PathNotFoundError: If the path is empty, missing or not a directory
    """
    if not str(root_path).strip():
        raise PathNotFoundError(create_path_not_found_error(str(root_path)))

    try:
        path = Path(root_path).expanduser().resolve()
    except (OSError, RuntimeError):
        raise PathNotFoundError(create_path_not_found_error(str(root_path)))

    if not path.exists():
        raise PathNotFoundError(create_path_not_found_error(str(root_path)))

    if not path.is_dir():
        raise PathNotFoundError(create_path_not_directory_error(str(root_path)))

    return path


def validate_numeric_range(
    value: int,
    min_val: int,
    max_val: int,
    param_name: str = "value"
) -> int:
    """
    Validate numeric value is within acceptable range.

    Args:
        value: Value to validate
        min_val: Minimum allowed value (inclusive)
        max_val: Maximum allowed value (inclusive)
        param_name: Parameter name for error messages

    Returns:
        Validated value

    Raises:
        TypeError: If value is not an integer
        ValueError: If value is outside range
    """
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{param_name} must be an integer, got {type(value).__name__}")

    if value < min_val or value > max_val:
        raise ValueError(
            f"{param_name} must be between {min_val} and {max_val}, got {value}"
        )

    return value


def sanitize_output_path(output_path: Path, allowed_dir: Path) -> Path:
    """
    Sanitize output path to prevent directory traversal.

    Args:
        output_path: Requested output path
        allowed_dir: Base directory for outputs

    Returns:
        Validated path within allowed directory

    Raises:
        PathTraversalError: If path is outside allowed directory
        ValueError: If path is invalid
    """
    try:
        abs_path = output_path.resolve()
        abs_allowed = allowed_dir.resolve()
    except (OSError, RuntimeError) as e:
        raise ValueError(f"Invalid path: {e}")

    if not abs_path.is_relative_to(abs_allowed):
        raise PathTraversalError(f"Output path must be within {abs_allowed}")

    if abs_path == abs_allowed:
        raise ValueError("Output path must name a file, not the output directory")

    if not abs_path.parent.exists():
        raise ValueError(f"Parent directory does not exist: {abs_path.parent}")

    for parent in abs_path.parents:
        if parent == abs_allowed:
            break
        if parent.is_symlink():
            raise PathTraversalError("Symlinks not allowed in output path")

    return abs_path
