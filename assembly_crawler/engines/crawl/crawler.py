"""
Directory crawler.

Walks a root directory, classifies every regular file into an AssemblyInfo
and returns the complete result as an EntityTable. Files are read inline or
on a bounded thread pool; either way the table lists entities in discovery
order, so its contents never depend on which worker finished first.
"""

import logging
import os
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from assembly_crawler.engines.crawl.model import AssemblyInfo, CrawlFailure, EntityTable
from assembly_crawler.utils.config import get_config_bool, get_max_workers
from assembly_crawler.utils.security import sanitize_crawl_root
from assembly_crawler.utils.structured_errors import (
    ErrorCode,
    StructuredError,
    create_file_read_error,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def discover_files(
    root: Path,
    follow_symlinks: bool = False,
    errors: list[OSError] | None = None,
) -> list[Path]:
    """
    List every regular file under root.

    Directories and files are visited in sorted name order so discovery
    order is stable across runs. When following symlinks, each physical
    directory is listed once, so a link back to an ancestor cannot repeat
    files.

    Args:
        root: Directory to walk
        follow_symlinks: Descend into symlinked directories
        errors: Receives the OSError of each directory that could not be listed
    """
    files: list[Path] = []
    visited: set[tuple[int, int]] = set()

    def _on_error(err: OSError) -> None:
        logger.warning(f"Cannot list {err.filename}: {err.strerror}")
        if errors is not None:
            errors.append(err)

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error, followlinks=follow_symlinks):
        if follow_symlinks:
            try:
                st = os.stat(dirpath)
            except OSError as e:
                _on_error(e)
                dirnames.clear()
                continue
            if (st.st_dev, st.st_ino) in visited:
                logger.debug(f"Skipping already visited directory {dirpath}")
                dirnames.clear()
                continue
            visited.add((st.st_dev, st.st_ino))

        dirnames.sort()
        for filename in sorted(filenames):
            full_path = Path(dirpath) / filename
            if full_path.is_file():
                files.append(full_path)

    return files


class DirectoryCrawler:
    """Builds one EntityTable per crawl of a directory tree."""

    def __init__(self, max_workers: int | None = None, follow_symlinks: bool | None = None):
        """
        Initialize crawler.

        Args:
            max_workers: Threads used to read files; 1 reads inline.
                         Defaults to ASSEMBLY_CRAWLER_MAX_WORKERS.
            follow_symlinks: Descend into symlinked directories.
                             Defaults to ASSEMBLY_CRAWLER_FOLLOW_SYMLINKS.
        """
        self.max_workers = max(1, max_workers or get_max_workers())
        if follow_symlinks is None:
            follow_symlinks = get_config_bool("ASSEMBLY_CRAWLER_FOLLOW_SYMLINKS", False)
        self.follow_symlinks = follow_symlinks

    def _process_file(
        self,
        file_path: Path,
        cancel_event: threading.Event | None,
    ) -> AssemblyInfo | CrawlFailure | None:
        """Classify one file. Returns None if the crawl was cancelled first."""
        if cancel_event is not None and cancel_event.is_set():
            return None

        try:
            return AssemblyInfo.from_file(file_path)
        except OSError as e:
            logger.warning(f"Skipping {file_path}: {e}")
            return CrawlFailure(str(file_path), create_file_read_error(str(file_path), e))
        except Exception as e:
            logger.error(f"Unexpected error classifying {file_path}: {e}")
            return CrawlFailure(
                str(file_path),
                StructuredError(
                    error=ErrorCode.OPERATION_FAILED,
                    message=f"Failed to classify '{file_path}'",
                    reason=str(e),
                    debug_info={"file_path": str(file_path), "exception": type(e).__name__},
                ),
            )

    def crawl(
        self,
        root_path: str | Path,
        cancel_event: threading.Event | None = None,
        progress: ProgressCallback | None = None,
    ) -> EntityTable:
        """
        Crawl a directory tree.

        Args:
            root_path: Directory to crawl
            cancel_event: Set to stop processing further files; the table
                          then holds the files processed so far
            progress: Called with (processed, total) after each file

        Returns:
            EntityTable for this crawl

        Raises:
            PathNotFoundError: If root_path is missing or not a directory
        """
        root = sanitize_crawl_root(root_path)
        start_time = time.time()

        walk_errors: list[OSError] = []
        files = discover_files(root, self.follow_symlinks, walk_errors)
        total = len(files)
        logger.info(f"Crawling {root}: {total} files with {self.max_workers} worker(s)")

        results: list[AssemblyInfo | CrawlFailure | None] = [None] * total

        if self.max_workers == 1 or total <= 1:
            for index, file_path in enumerate(files):
                if cancel_event is not None and cancel_event.is_set():
                    break
                results[index] = self._process_file(file_path, None)
                if progress:
                    progress(index + 1, total)
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                future_to_index = {
                    executor.submit(self._process_file, file_path, cancel_event): index
                    for index, file_path in enumerate(files)
                }

                completed = 0
                for future in as_completed(future_to_index):
                    result = future.result()
                    if result is None:
                        continue
                    results[future_to_index[future]] = result
                    completed += 1
                    if progress:
                        progress(completed, total)

        entities = tuple(r for r in results if isinstance(r, AssemblyInfo))
        listing_failures = [
            CrawlFailure(str(err.filename or root), create_file_read_error(str(err.filename or root), err))
            for err in walk_errors
        ]
        failures = tuple(listing_failures) + tuple(r for r in results if isinstance(r, CrawlFailure))
        # Only a crawl that actually skipped files counts as cancelled
        cancelled = any(r is None for r in results)
        elapsed = time.time() - start_time

        if cancelled:
            logger.info(f"Crawl of {root} cancelled after {len(entities)} of {total} files")
        logger.info(
            f"Crawled {root} in {elapsed:.1f}s: {len(entities)} files, "
            f"{sum(1 for e in entities if e.is_managed)} managed, {len(failures)} failed"
        )

        return EntityTable(
            root=str(root),
            entities=entities,
            failures=failures,
            files_discovered=total,
            cancelled=cancelled,
            elapsed_seconds=elapsed,
        )


def crawl(
    root_path: str | Path,
    max_workers: int | None = None,
    cancel_event: threading.Event | None = None,
    progress: ProgressCallback | None = None,
) -> EntityTable:
    """
    Crawl a directory tree with a one-off DirectoryCrawler.

    Raises:
        PathNotFoundError: If root_path is missing or not a directory
    """
    return DirectoryCrawler(max_workers=max_workers).crawl(
        root_path, cancel_event=cancel_event, progress=progress
    )
