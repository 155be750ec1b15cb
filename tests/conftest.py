"""
Shared fixtures.

Browser-backed tests need Playwright's Chromium; they are skipped when it is
not installed. End-to-end tests run against the static fixture site in
tests/site, served from a background thread.
"""

import functools
import threading
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest
import pytest_asyncio

from audit.config import Settings

SITE_DIR = Path(__file__).parent / "site"


def _chromium_installed() -> bool:
    try:
        from playwright.sync_api import sync_playwright

        with sync_playwright() as p:
            return Path(p.chromium.executable_path).exists()
    except Exception:
        return False


# Resolved at collection time, before any event loop is running
CHROMIUM_AVAILABLE = _chromium_installed()


class _QuietHandler(SimpleHTTPRequestHandler):
    def log_message(self, format, *args):
        pass


@pytest.fixture(scope="session")
def chromium():
    if not CHROMIUM_AVAILABLE:
        pytest.skip("Playwright Chromium is not installed")


@pytest.fixture(scope="session")
def site_server():
    """Base URL of the fixture target site."""
    handler = functools.partial(_QuietHandler, directory=str(SITE_DIR))
    server = ThreadingHTTPServer(("127.0.0.1", 0), handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


@pytest.fixture
def fast_settings(site_server, tmp_path):
    """Settings pointed at the fixture site with every wait shortened."""
    return Settings(
        scan_url=f"{site_server}/app/scanning.html",
        front_door_url=site_server,
        page_load_timeout=15,
        scan_timeout=5,
        scan_poll_interval=0.1,
        settle_delay=0.1,
        popup_form_timeout=2,
        generic_form_timeout=2,
        navigation_timeout=5,
        report_timeout=5,
        report_poll_interval=0.1,
        debug_dir=str(tmp_path),
    )


@pytest_asyncio.fixture
async def browser(chromium):
    from playwright.async_api import async_playwright

    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=True)
        yield browser
        await browser.close()


@pytest_asyncio.fixture
async def context(browser):
    context = await browser.new_context()
    yield context
    await context.close()


@pytest_asyncio.fixture
async def page(context):
    return await context.new_page()
