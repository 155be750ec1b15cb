"""
Browser bootstrap: one Chromium instance and one context per session.

Detection countermeasures are applied to the context explicitly, so every
page the session opens (including popup tabs) inherits them and nothing
leaks between sessions.
"""

import logging

from playwright.async_api import async_playwright
from playwright_stealth import Stealth

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
    "--disable-blink-features=AutomationControlled",
]

WEBDRIVER_MASK = """
Object.defineProperty(navigator, 'webdriver', { get: () => false });
"""


class BrowserHandle:
    """Owns the playwright driver, browser and context for a single session."""

    def __init__(self, playwright, browser, context):
        self.playwright = playwright
        self.browser = browser
        self.context = context

    async def close(self):
        try:
            await self.context.close()
        finally:
            try:
                await self.browser.close()
            finally:
                await self.playwright.stop()


async def apply_countermeasures(context):
    await Stealth().apply_stealth_async(context)
    await context.add_init_script(WEBDRIVER_MASK)


def attach_page_logging(page):
    """Forward browser console output and uncaught page errors to the log."""
    page.on("console", lambda msg: logger.debug("[browser] %s: %s", msg.type.upper(), msg.text))
    page.on("pageerror", lambda err: logger.warning("[browser] Page error: %s", err))


async def open_context(settings) -> BrowserHandle:
    """Launch Chromium and build a context with a realistic identity."""
    playwright = await async_playwright().start()
    try:
        browser = await playwright.chromium.launch(
            headless=settings.headless,
            args=LAUNCH_ARGS,
        )
    except Exception:
        await playwright.stop()
        raise

    try:
        context = await browser.new_context(
            viewport={"width": settings.viewport_width, "height": settings.viewport_height},
            user_agent=settings.user_agent,
        )
        await apply_countermeasures(context)
    except Exception:
        await browser.close()
        await playwright.stop()
        raise

    logger.info("[browser] Launched Chromium (headless=%s)", settings.headless)
    return BrowserHandle(playwright, browser, context)
