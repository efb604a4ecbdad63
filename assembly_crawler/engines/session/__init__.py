"""Session management for crawl results."""

from assembly_crawler.engines.session.crawl_session import CrawlSession, CrawlSessionManager

__all__ = ["CrawlSession", "CrawlSessionManager"]
