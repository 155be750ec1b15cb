"""
PDF rendering for an extracted report: wraps the markup in a branded shell,
inlines the collected styles and prints it with headless Chromium.
"""

import html as html_lib
import logging
from datetime import date

from playwright.async_api import async_playwright

from audit.config import get_settings
from audit.errors import PdfRenderError

logger = logging.getLogger(__name__)


def build_document(report_html: str, styles: str, user_info=None, settings=None) -> str:
    """Standalone HTML page: cover band, report body and footer."""
    settings = settings or get_settings()
    company = html_lib.escape(settings.company_name)

    prepared_for = ""
    if user_info is not None and user_info.full_name:
        who = html_lib.escape(user_info.full_name)
        if user_info.job_title:
            who += f", {html_lib.escape(user_info.job_title)}"
        prepared_for = f'<p class="audit-cover__for">Prepared for {who}</p>'

    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{company} Website Audit</title>
<style>
{styles}
</style>
<style>
    .audit-cover {{
        background: linear-gradient(135deg, {settings.primary_color}, {settings.secondary_color});
        color: #ffffff;
        font-family: {settings.font_family};
        padding: 32px 40px;
    }}
    .audit-cover img {{ max-height: 56px; }}
    .audit-cover h1 {{ margin: 16px 0 4px; font-size: 28px; }}
    .audit-cover__for, .audit-cover__date {{ margin: 2px 0; color: {settings.accent_color}; }}
    .audit-footer {{
        border-top: 2px solid {settings.primary_color};
        font-family: {settings.font_family};
        font-size: 12px;
        padding: 16px 40px;
        text-align: center;
    }}
</style>
</head>
<body>
<header class="audit-cover">
    <img src="{html_lib.escape(settings.logo_url)}" alt="{company}">
    <h1>Website Audit Report</h1>
    {prepared_for}
    <p class="audit-cover__date">{date.today():%B %d, %Y}</p>
</header>
<main class="audit-report">
{report_html}
</main>
<footer class="audit-footer">&copy; {date.today().year} {company}. All rights reserved.</footer>
</body>
</html>"""


async def render_pdf(report_html: str, styles: str, user_info=None, *, settings=None) -> bytes:
    """Render the report to PDF bytes. Raises PdfRenderError on any failure."""
    settings = settings or get_settings()
    document = build_document(report_html, styles, user_info, settings)

    try:
        async with async_playwright() as p:
            browser = await p.chromium.launch(headless=True, args=["--no-sandbox"])
            try:
                page = await browser.new_page()
                await page.set_content(
                    document,
                    wait_until="networkidle",
                    timeout=settings.page_load_timeout * 1000,
                )
                pdf = await page.pdf(
                    format=settings.pdf_format,
                    print_background=settings.pdf_print_background,
                    margin=settings.pdf_margin,
                )
            finally:
                await browser.close()
    except Exception as e:
        raise PdfRenderError(f"PDF rendering failed: {e}") from e

    logger.info("[pdf] Rendered %d bytes", len(pdf))
    return pdf
