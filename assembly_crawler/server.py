"""
Assembly Crawler MCP Server.

Provides tools for inventorying managed and native images under a directory:
- Crawl a tree and classify each file by its PE header
- Inspect a single file ad hoc
- Count, list and detail duplicate copies
- Export summary and detail CSV reports
"""

import logging

from fastmcp import FastMCP

from assembly_crawler.engines.crawl.crawler import DirectoryCrawler
from assembly_crawler.engines.session import CrawlSessionManager
from assembly_crawler.tools.crawl_tools import register_crawl_tools
from assembly_crawler.tools.reporting import register_reporting_tools
from assembly_crawler.utils.config import get_config_status, get_log_level, get_output_dir

# Configure logging
logging.basicConfig(
    level=getattr(logging, get_log_level()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def create_app(session_manager: CrawlSessionManager | None = None) -> FastMCP:
    """
    Build the MCP application with all tools registered.

    Args:
        session_manager: Holder of crawl results; a new one by default

    Returns:
        FastMCP application
    """
    app = FastMCP("assembly-crawler")
    session_manager = session_manager or CrawlSessionManager(DirectoryCrawler())

    register_crawl_tools(app, session_manager)
    register_reporting_tools(app, session_manager)

    @app.tool()
    def diagnose_setup() -> str:
        """Show the effective configuration of the crawler."""
        result = "**Assembly Crawler configuration**\n\n"
        result += f"- Worker threads: {session_manager.crawler.max_workers}\n"
        result += f"- Follow symlinks: {session_manager.crawler.follow_symlinks}\n"
        result += f"- Report directory: `{get_output_dir()}`\n\n"
        for key, status in get_config_status().items():
            source = status["source"] or "default"
            result += f"- `{key}`: {status['value'] if status['set'] else '(unset)'} [{source}]\n"
        return result

    return app


def main():
    """Run the MCP server."""
    logger.info("Starting Assembly Crawler MCP Server...")
    app = create_app()
    logger.info(f"Report Directory: {get_output_dir()}")

    # Run the FastMCP server (handles stdio automatically)
    app.run()


if __name__ == "__main__":
    main()
