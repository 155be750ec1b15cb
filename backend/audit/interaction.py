"""
Interaction driver: clicking controls and filling forms on markup we don't own.

Controls are located with an ordered list of strategies, most specific first.
The first strategy that finds something clicks it and the rest are skipped.
"""

import logging

logger = logging.getLogger(__name__)


# === LOCATE-AND-CLICK STRATEGIES ===

class SelectorStrategy:
    """Click the first element matching a CSS selector."""

    script = """(selector) => {
        const el = document.querySelector(selector);
        if (!el) return false;
        el.click();
        return true;
    }"""

    def __init__(self, selector: str, name: str | None = None):
        self.selector = selector
        self.name = name or f"selector {selector}"

    @property
    def arg(self):
        return self.selector

    async def try_click(self, page) -> bool:
        return bool(await page.evaluate(self.script, self.arg))


class TextStrategy(SelectorStrategy):
    """Click the first candidate element whose text contains a phrase (case-insensitive)."""

    script = """([candidates, text]) => {
        const elements = Array.from(document.querySelectorAll(candidates));
        const match = elements.find(el =>
            el.textContent && el.textContent.toLowerCase().includes(text)
        );
        if (!match) return false;
        match.click();
        return true;
    }"""

    def __init__(self, text: str, candidates: str = 'a, button, div[role="button"]',
                 name: str | None = None):
        self.text = text.lower()
        self.candidates = candidates
        self.name = name or f'text "{text}"'

    @property
    def arg(self):
        return [self.candidates, self.text]


class ContainerStrategy(SelectorStrategy):
    """Click the first actionable child inside a container."""

    script = """([container, child]) => {
        const section = document.querySelector(container);
        if (!section) return false;
        const btn = section.querySelector(child);
        if (!btn) return false;
        btn.click();
        return true;
    }"""

    def __init__(self, container: str, child: str = "a, button", name: str | None = None):
        self.container = container
        self.child = child
        self.name = name or f"first {child} in {container}"

    @property
    def arg(self):
        return [self.container, self.child]


UNLOCK_STRATEGIES = [
    SelectorStrategy(".FinalCta_button__4cCPh", name="final CTA button class"),
    TextStrategy("access full report", name='text "access full report"'),
    ContainerStrategy(".FinalCta_cta-content__a__vk", name="unlock section button"),
]


async def locate_and_click(page, strategies) -> str | None:
    """Try each strategy in order. Returns the name of the one that clicked, or None."""
    for strategy in strategies:
        try:
            clicked = await strategy.try_click(page)
        except Exception as e:
            logger.debug("[interact] Strategy %s failed: %s", strategy.name, e)
            clicked = False
        if clicked:
            return strategy.name
    return None


# === FORMS ===

LEAD_FORM_SELECTORS = [".popup-form-fields", "form"]

POPULATE_SCRIPT = """([container, fields]) => {
    const form = document.querySelector(container);
    if (!form) return [];

    const filled = [];
    for (const [name, value] of Object.entries(fields)) {
        const input = form.querySelector(`input[name="${name}"]`);
        if (!input) continue;
        input.focus();
        input.value = value;
        // Framework-managed inputs ignore a bare value assignment
        input.dispatchEvent(new Event('input', { bubbles: true }));
        input.dispatchEvent(new Event('change', { bubbles: true }));
        filled.push(name);
    }
    return filled;
}"""

SUBMIT_SCRIPT = """(container) => {
    const form = document.querySelector(container);
    if (!form) return null;
    const submitButton = form.querySelector('button[type="submit"]');
    if (submitButton) {
        submitButton.click();
        return 'button';
    }
    form.dispatchEvent(new Event('submit', { bubbles: true, cancelable: true }));
    return 'event';
}"""


async def wait_for_form(page, selectors, timeouts) -> str | None:
    """Wait for each container selector to become visible, in order.

    Returns the first selector that showed up, or None if none did.
    """
    for selector, timeout in zip(selectors, timeouts):
        try:
            await page.wait_for_selector(selector, state="visible", timeout=timeout * 1000)
            return selector
        except Exception:
            logger.info("[interact] Form %s not visible within %ss", selector, timeout)
    return None


async def populate_form(page, container: str, fields: dict[str, str]) -> list[str]:
    """Fill inputs by name inside container. A missing container fills nothing."""
    filled = await page.evaluate(POPULATE_SCRIPT, [container, fields])
    logger.info("[interact] Filled %d field(s) in %s: %s", len(filled), container, filled)
    return filled


async def submit_form(page, container: str) -> str | None:
    """Submit via the native submit button, else a synthetic submit event."""
    return await page.evaluate(SUBMIT_SCRIPT, container)
