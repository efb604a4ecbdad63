"""
Configuration management with .env file support.

Loads configuration from:
1. .env file in project root (if exists)
2. Environment variables (override .env)

Usage:
    from assembly_crawler.utils.config import get_config_int
    workers = get_config_int("ASSEMBLY_CRAWLER_MAX_WORKERS", 4)
"""

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

# Configuration cache
_config_cache: dict[str, str] = {}
_env_loaded = False

DEFAULT_MAX_WORKERS = 4
DEFAULT_OUTPUT_DIR = Path.home() / ".assembly_crawler_output" / "reports"


def _find_env_file() -> Path | None:
    """Find .env file by searching up from the package, then the working directory."""
    current = Path(__file__).resolve().parent

    # Search up to 4 levels (utils -> package -> project root -> parent)
    for _ in range(4):
        env_file = current / ".env"
        if env_file.is_file():
            return env_file
        if current.parent == current:
            break
        current = current.parent

    cwd_env = Path.cwd() / ".env"
    if cwd_env.is_file():
        return cwd_env

    return None


def _parse_env_file(env_path: Path) -> dict[str, str]:
    """
    Parse a .env file into a dictionary.

    Supports KEY=value, quoted values, `export KEY=value`, comments and
    empty lines.
    """
    config = {}

    try:
        lines = env_path.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        logger.warning(f"Failed to read .env file {env_path}: {e}")
        return config

    for line_num, raw_line in enumerate(lines, 1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        if line.startswith("export "):
            line = line[len("export "):].lstrip()

        if "=" not in line:
            logger.warning(f".env line {line_num}: Invalid format (no '=')")
            continue

        key, _, value = line.partition("=")
        key = key.strip()
        value = value.strip()

        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]

        if key:
            config[key] = value

    return config


def load_env():
    """Load configuration from .env file (once per process)."""
    global _env_loaded, _config_cache

    if _env_loaded:
        return

    env_file = _find_env_file()
    if env_file:
        logger.info(f"Loading configuration from: {env_file}")
        _config_cache = _parse_env_file(env_file)
        logger.debug(f"Loaded {len(_config_cache)} config values from .env")
    else:
        _config_cache = {}
        logger.debug("No .env file found")

    _env_loaded = True


def get_config(key: str, default: str | None = None) -> str | None:
    """
    Get a configuration value.

    Checks environment variables first, then .env file.

    Args:
        key: Configuration key name
        default: Default value if not found

    Returns:
        Configuration value or default
    """
    env_value = os.environ.get(key)
    if env_value is not None:
        return env_value

    load_env()
    return _config_cache.get(key, default)


def get_config_bool(key: str, default: bool = False) -> bool:
    """Get a boolean configuration value."""
    value = get_config(key)
    if value is None:
        return default
    return value.strip().lower() in ("true", "1", "yes", "on")


def get_config_int(key: str, default: int = 0) -> int:
    """Get an integer configuration value."""
    value = get_config(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Config {key}={value!r} is not an integer, using {default}")
        return default


def get_max_workers() -> int:
    """Default size of the crawl worker pool (at least 1)."""
    return max(1, get_config_int("ASSEMBLY_CRAWLER_MAX_WORKERS", DEFAULT_MAX_WORKERS))


def get_output_dir() -> Path:
    """Directory CSV reports are written into."""
    value = get_config("ASSEMBLY_CRAWLER_OUTPUT_DIR")
    return Path(value).expanduser() if value else DEFAULT_OUTPUT_DIR


def get_log_level() -> str:
    """Logging level name, falling back to INFO for unknown values."""
    level = (get_config("ASSEMBLY_CRAWLER_LOG_LEVEL") or "INFO").upper()
    if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        return "INFO"
    return level


# Available configuration keys
CONFIG_KEYS = {
    "ASSEMBLY_CRAWLER_MAX_WORKERS": "Worker threads used to read files during a crawl (default: 4)",
    "ASSEMBLY_CRAWLER_LOG_LEVEL": "Logging level (DEBUG, INFO, WARNING, ERROR)",
    "ASSEMBLY_CRAWLER_OUTPUT_DIR": "Directory CSV reports are written into",
    "ASSEMBLY_CRAWLER_FOLLOW_SYMLINKS": "Descend into symlinked directories while crawling (default: false)",
}


def get_config_status() -> dict[str, dict]:
    """
    Get status of all configuration keys.

    Returns:
        Dict with key -> {set: bool, source: str, value: str}
    """
    load_env()
    status = {}

    for key in CONFIG_KEYS:
        env_value = os.environ.get(key)
        file_value = _config_cache.get(key)

        if env_value is not None:
            status[key] = {"set": True, "source": "environment", "value": env_value}
        elif file_value is not None:
            status[key] = {"set": True, "source": ".env file", "value": file_value}
        else:
            status[key] = {"set": False, "source": None, "value": None}

    return status
