"""
Crawl session management.

A session holds the result of the most recent crawl run in it. Running a new
crawl replaces the session's table wholesale; there is no incremental
re-crawl. The manager is created by the caller (the MCP server) and passed to
whatever needs it, so there is no process-wide "last crawl" state.
"""

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field

from assembly_crawler.engines.crawl.crawler import DirectoryCrawler, ProgressCallback
from assembly_crawler.engines.crawl.model import EntityTable
from assembly_crawler.utils.security import sanitize_crawl_root
from assembly_crawler.utils.structured_errors import (
    NoCrawlResultsError,
    create_no_crawl_results_error,
)

logger = logging.getLogger(__name__)


@dataclass
class CrawlSession:
    """One crawl session and its current result."""
    session_id: str
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)
    table: EntityTable | None = None
    running: bool = False
    cancel_event: threading.Event = field(default_factory=threading.Event)


class CrawlSessionManager:
    """
    Tracks crawl sessions and the active one.

    Key features:
    - Explicit sessions: every result is stored under a session ID
    - Active session: tools without a session_id use the latest one
    - Cancellation: a running crawl can be stopped from another thread
    """

    def __init__(self, crawler: DirectoryCrawler | None = None):
        self.crawler = crawler or DirectoryCrawler()
        self.sessions: dict[str, CrawlSession] = {}
        self.active_session_id: str | None = None
        self._lock = threading.Lock()

    def start_session(self) -> str:
        """Create an empty session and make it active."""
        session_id = str(uuid.uuid4())
        with self._lock:
            self.sessions[session_id] = CrawlSession(session_id=session_id)
            self.active_session_id = session_id
        logger.info(f"Started crawl session {session_id[:8]}...")
        return session_id

    def _get_session(self, session_id: str | None) -> CrawlSession:
        session_id = session_id or self.active_session_id
        session = self.sessions.get(session_id) if session_id else None
        if session is None:
            raise NoCrawlResultsError(create_no_crawl_results_error(session_id))
        return session

    def crawl(
        self,
        root_path: str,
        session_id: str | None = None,
        max_workers: int | None = None,
        progress: ProgressCallback | None = None,
    ) -> tuple[str, EntityTable]:
        """
        Crawl root_path and store the result in a session.

        Args:
            root_path: Directory to crawl
            session_id: Session to replace; None starts a new one
            max_workers: Override the crawler's worker count
            progress: Called with (processed, total) after each file

        Returns:
            (session_id, table)

        Raises:
            PathNotFoundError: If root_path is missing or not a directory
            NoCrawlResultsError: If session_id names an unknown session
        """
        sanitize_crawl_root(root_path)
        if session_id is None:
            session_id = self.start_session()
        session = self._get_session(session_id)

        crawler = self.crawler
        if max_workers is not None and max_workers != crawler.max_workers:
            crawler = DirectoryCrawler(max_workers=max_workers, follow_symlinks=crawler.follow_symlinks)

        session.cancel_event = threading.Event()
        session.running = True
        try:
            table = crawler.crawl(root_path, cancel_event=session.cancel_event, progress=progress)
        finally:
            session.running = False

        with self._lock:
            session.table = table
            session.updated_at = time.time()
            self.active_session_id = session_id

        return session_id, table

    def cancel(self, session_id: str | None = None) -> bool:
        """
        Signal a running crawl to stop.

        Returns:
            True if a crawl was running and has been signalled
        """
        session = self._get_session(session_id)
        if not session.running:
            return False
        session.cancel_event.set()
        logger.info(f"Cancellation requested for session {session.session_id[:8]}...")
        return True

    def get_table(self, session_id: str | None = None) -> EntityTable:
        """
        Get the crawl result of a session (the active one by default).

        Raises:
            NoCrawlResultsError: If the session is unknown or has no crawl yet
        """
        session = self._get_session(session_id)
        if session.table is None:
            raise NoCrawlResultsError(create_no_crawl_results_error())
        return session.table

    def list_sessions(self) -> list[dict]:
        """Summaries of all sessions, newest first."""
        rows = []
        for session in sorted(self.sessions.values(), key=lambda s: s.updated_at, reverse=True):
            rows.append({
                "session_id": session.session_id,
                "active": session.session_id == self.active_session_id,
                "running": session.running,
                "root": session.table.root if session.table else None,
                "files": len(session.table.entities) if session.table else 0,
                "updated_at": session.updated_at,
            })
        return rows
