"""
Test suite for the Assembly Crawler MCP server and crawl tools.
"""

import os

import pytest
from fastmcp import FastMCP

from assembly_crawler.engines.crawl.crawler import DirectoryCrawler
from assembly_crawler.engines.session import CrawlSessionManager
from assembly_crawler.tools.crawl_tools import inspect_file, register_crawl_tools
from assembly_crawler.utils.structured_errors import ErrorCode, FileReadError

from conftest import PE32_PLUS, build_pe_image


class FakeApp:
    """Captures functions registered with @app.tool()."""

    def __init__(self):
        self.tools = {}

    def tool(self):
        def decorator(fn):
            self.tools[fn.__name__] = fn
            return fn
        return decorator


def _crawl_tools():
    manager = CrawlSessionManager(DirectoryCrawler(max_workers=1, follow_symlinks=False))
    app = FakeApp()
    register_crawl_tools(app, manager)
    return app.tools, manager


class TestCreateApp:
    """Server construction."""

    def test_create_app(self):
        """Test the app is built with the given session manager."""
        from assembly_crawler.server import create_app

        app = create_app(CrawlSessionManager(DirectoryCrawler(max_workers=1)))

        assert isinstance(app, FastMCP)
        assert app.name == "assembly-crawler"


class TestInspectFile:
    """Ad hoc single-file inspection."""

    def test_inspect_native(self, tmp_path):
        """Test classification of a native image."""
        path = tmp_path / "native.dll"
        path.write_bytes(build_pe_image(magic=PE32_PLUS, cli_rva=0, machine=0xAA64))

        info = inspect_file(str(path))

        assert info.is_managed is False
        assert info.machine_type == "ARM64"

    def test_inspect_missing(self, tmp_path):
        """Test a missing file raises a structured error."""
        with pytest.raises(FileReadError) as exc_info:
            inspect_file(str(tmp_path / "missing.dll"))
        assert exc_info.value.code == ErrorCode.FILE_VANISHED


class TestCrawlTools:
    """MCP crawl tool wrappers."""

    def test_registered(self):
        """Test all crawl tools are registered."""
        tools, _ = _crawl_tools()
        assert set(tools) == {"crawl_directory", "cancel_crawl", "list_crawl_sessions", "inspect_assembly"}

    def test_crawl_directory(self, tmp_path, write_file):
        """Test crawling stores a session and reports a summary."""
        write_file("bin/native.dll", build_pe_image(cli_rva=0))
        write_file("bin/readme.txt", b"text")
        tools, manager = _crawl_tools()

        result = tools["crawl_directory"](str(tmp_path))

        assert "Crawl complete" in result
        assert "Files: 2 of 2 processed" in result
        assert manager.active_session_id in result
        assert len(manager.get_table().entities) == 2

    def test_crawl_missing_directory(self, tmp_path):
        """Test a missing root returns a structured message."""
        tools, manager = _crawl_tools()

        result = tools["crawl_directory"](str(tmp_path / "nope"))

        assert "PATH_NOT_FOUND" in result
        assert manager.sessions == {}

    def test_crawl_rejects_bad_workers(self, tmp_path):
        """Test max_workers is range-checked."""
        tools, _ = _crawl_tools()
        assert "PARAMETER_INVALID" in tools["crawl_directory"](str(tmp_path), max_workers=0)

    def test_crawl_error_not_reported_as_parameter(self, tmp_path, monkeypatch):
        """Test a ValueError from the crawl itself is not blamed on max_workers."""
        tools, manager = _crawl_tools()

        def fail(*args, **kwargs):
            raise ValueError("boom")

        monkeypatch.setattr(manager, "crawl", fail)

        result = tools["crawl_directory"](str(tmp_path), max_workers=2)

        assert "PARAMETER_INVALID" not in result
        assert f"Error crawling {tmp_path}: boom" in result

    def test_crawl_reports_unlistable_directory(self, tmp_path, write_file, monkeypatch):
        """Test a directory the walk could not list shows up as a skipped entry."""
        write_file("a.bin", b"x")
        real_walk = os.walk

        def walk(top, onerror=None, followlinks=False):
            onerror(PermissionError(13, "Permission denied", str(tmp_path / "secret")))
            yield from real_walk(top, onerror=onerror, followlinks=followlinks)

        monkeypatch.setattr(os, "walk", walk)
        tools, _ = _crawl_tools()

        result = tools["crawl_directory"](str(tmp_path))

        assert "Skipped files" in result
        assert "FILE_ACCESS_DENIED" in result
        assert "Unreadable files: 1" in result

    def test_cancel_without_running_crawl(self, tmp_path):
        """Test cancel on an idle session."""
        tools, _ = _crawl_tools()
        tools["crawl_directory"](str(tmp_path))
        assert "No crawl is running" in tools["cancel_crawl"]()

    def test_cancel_without_session(self):
        """Test cancel before any crawl."""
        tools, _ = _crawl_tools()
        assert "NO_CRAWL_RESULTS" in tools["cancel_crawl"]()

    def test_list_sessions(self, tmp_path):
        """Test session listing."""
        tools, _ = _crawl_tools()
        assert "No crawl sessions" in tools["list_crawl_sessions"]()

        tools["crawl_directory"](str(tmp_path))

        result = tools["list_crawl_sessions"]()
        assert "Crawl sessions: 1" in result
        assert "active" in result

    def test_inspect_assembly(self, tmp_path):
        """Test the single-file report."""
        path = tmp_path / "lib.dll"
        path.write_bytes(build_pe_image(cli_rva=0, machine=0x8664))
        tools, _ = _crawl_tools()

        result = tools["inspect_assembly"](str(path))

        assert "**lib.dll**" in result
        assert "Managed: False" in result
        assert "Machine type: AMD64" in result
        assert "Fingerprint:" in result

    def test_inspect_assembly_missing(self, tmp_path):
        """Test a missing file returns a structured message."""
        tools, _ = _crawl_tools()
        assert "FILE_VANISHED" in tools["inspect_assembly"](str(tmp_path / "none.dll"))
