"""
Best-effort troubleshooting artifacts: page screenshots, a network log and
the rebranded markup. Written to fixed filenames in the debug directory and
overwritten on every run. Nothing here may raise into the session.
"""

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

TIMEOUT_SNAPSHOT = "debug-timeout.png"
NO_BUTTON_SNAPSHOT = "debug-no-button.png"
NO_POPUP_SNAPSHOT = "debug-no-popup.png"
FORM_FILLED_SNAPSHOT = "debug-form-filled.png"
NAVIGATION_TIMEOUT_SNAPSHOT = "debug-navigation-timeout.png"
REPORT_TIMEOUT_SNAPSHOT = "debug-report-wait-timeout.png"
BEFORE_SCRAPE_SNAPSHOT = "debug-before-scrape.png"
NETWORK_LOG = "debug-network.txt"
REBRANDED_HTML = "debug-rebranded.html"

MAX_BODY_CHARS = 500


class Diagnostics:
    def __init__(self, debug_dir: str = ".", enabled: bool = True):
        self.debug_dir = Path(debug_dir)
        self.enabled = enabled

    def path(self, name: str) -> Path:
        return self.debug_dir / name

    async def snapshot(self, page, name: str, full_page: bool = True):
        """Save a screenshot of the page. Failures are logged, never raised."""
        if not self.enabled or page is None:
            return
        try:
            await page.screenshot(path=str(self.path(name)), full_page=full_page)
            logger.info("[diagnostics] Saved %s", name)
        except Exception as e:
            logger.warning("[diagnostics] Screenshot %s failed: %s", name, e)

    def write_html(self, html: str):
        if not self.enabled:
            return
        try:
            self.path(REBRANDED_HTML).write_text(html, encoding="utf-8")
            logger.info("[diagnostics] Saved %s for inspection", REBRANDED_HTML)
        except Exception as e:
            logger.warning("[diagnostics] Writing %s failed: %s", REBRANDED_HTML, e)

    def _append_network(self, line: str):
        if not self.enabled:
            return
        try:
            with open(self.path(NETWORK_LOG), "a", encoding="utf-8") as f:
                f.write(line)
        except Exception as e:
            logger.warning("[diagnostics] Appending to %s failed: %s", NETWORK_LOG, e)

    def log_request(self, method: str, url: str, headers: dict):
        self._append_network(f"[REQUEST] {method} {url} Headers: {json.dumps(headers)}\n")

    def log_error_response(self, status: int, url: str, body: str):
        logger.info("[network] %s %s", status, url)
        self._append_network(
            f"[NETWORK ERROR] {status} {url} Body: {body[:MAX_BODY_CHARS]}\n"
        )
