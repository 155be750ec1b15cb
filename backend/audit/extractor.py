"""
Report extraction: serialize the rendered report and every style rule the
page uses, in a single evaluation so markup and styles come from the same
page state.
"""

import logging

from audit.errors import ExtractionError
from audit.models import ExtractionResult

logger = logging.getLogger(__name__)

# Elements that don't survive outside the live page (scripts, overlays, chat, share bars)
DENYLIST = [
    "script",
    "style",
    ".cookie-banner",
    ".popup",
    ".modal",
    ".chat-widget",
    ".side-cta-box-responsive",
    ".w-nav-overlay",
    ".toc-toggle-header",
    ".ShareWidget_share-banner__MrfZJ",
    ".audit-side-cta-desktop",
    ".BgDotImage_bg-dot-image__KDBCM",
]

EXTRACT_SCRIPT = """(denylist) => {
    const container = document.querySelector('#__next') ||
        document.querySelector('.page-wrapper')?.parentElement ||
        document.body;

    // Clone so the live page is left alone
    const clone = container.cloneNode(true);
    clone.querySelectorAll(denylist).forEach(el => el.remove());
    const html = clone.innerHTML;

    let styles = '';
    for (const sheet of Array.from(document.styleSheets)) {
        try {
            for (const rule of Array.from(sheet.cssRules || sheet.rules)) {
                styles += rule.cssText + '\\n';
            }
        } catch (e) {
            // Cross-origin stylesheets refuse cssRules access
        }
    }
    document.querySelectorAll('style').forEach(tag => {
        styles += tag.innerHTML + '\\n';
    });

    return { html, styles };
}"""


async def extract_report(page, denylist=None) -> ExtractionResult:
    denylist = denylist or DENYLIST
    try:
        data = await page.evaluate(EXTRACT_SCRIPT, ", ".join(denylist))
    except Exception as e:
        raise ExtractionError(f"Failed to extract report content: {e}") from e

    logger.info("[extract] Scraped %d chars of HTML, %d chars of CSS",
                len(data["html"]), len(data["styles"]))
    return ExtractionResult(html=data["html"], styles=data["styles"])
