"""
Completion poller: evaluate a predicate against the live page on an interval
until it reports done or a deadline passes.

A predicate reports one of three ticks. ERROR (an error banner is visible)
is deliberately handled like CONTINUE: the target site flashes transient
error banners during long scans, so the poller keeps waiting until the
deadline instead of aborting.

Open question: SCAN_READY checks the error banner before the completion
signals. An ERROR tick never shortens or lengthens the poll by itself, but
a banner that is still on screen when the "access full report" control
appears holds completion back until the banner goes away.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class Tick(str, Enum):
    CONTINUE = "continue"
    DONE = "done"
    ERROR = "error"


class PollStatus(str, Enum):
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"


@dataclass
class PollResult:
    status: PollStatus
    ticks: int
    elapsed: float

    @property
    def completed(self) -> bool:
        return self.status is PollStatus.COMPLETED


Predicate = Callable[[object], Awaitable[Tick]]
Observer = Callable[[int, float, Tick], None]


# === PAGE PREDICATES ===

# Error banner is checked first: while it is showing the scan never counts as done.
SCAN_READY = """() => {
    const scoreElement = document.querySelector('.report-score, [class*="score"], [data-color]');
    const reportContent = document.querySelector('.improvements-box, .report-main-content');

    const buttons = Array.from(document.querySelectorAll('button, a, div[role="button"], .button'));
    const accessButton = buttons.find(btn =>
        btn.textContent && btn.textContent.toLowerCase().includes('access full report')
    );

    const errorMsg = document.querySelector('.error-message, .alert-danger');
    if (errorMsg) return 'ERROR';

    if (accessButton) return true;

    return !!(scoreElement && reportContent);
}"""

REPORT_READY = """() => {
    const loading = Array.from(document.querySelectorAll('h3'))
        .find(h3 => h3.textContent.includes('Loading Report'));
    if (loading) return false;

    const hasImprovements = document.querySelectorAll(
        '.improvements-box, [class*="improvement"], .report-main-content'
    ).length > 0;

    const scoreEl = document.querySelector('.report-score');
    const hasScore = !!(scoreEl && scoreEl.textContent.trim().length > 0);

    return hasImprovements || hasScore;
}"""


def js_predicate(script: str) -> Predicate:
    """Wrap a page-evaluated function returning true / false / 'ERROR'."""

    async def predicate(page) -> Tick:
        value = await page.evaluate(script)
        if value == "ERROR":
            return Tick.ERROR
        if value is True:
            return Tick.DONE
        return Tick.CONTINUE

    return predicate


class ProgressLogger:
    """Poll observer that logs every Nth tick, plus every error tick."""

    def __init__(self, label: str, every: int = 5):
        self.label = label
        self.every = every

    def __call__(self, tick: int, elapsed: float, outcome: Tick):
        if outcome is Tick.ERROR:
            logger.info("[poll] %s: error indicator on page, still waiting (%ds elapsed)",
                        self.label, int(elapsed))
        elif tick % self.every == 0:
            logger.info("[poll] %s... (%ds elapsed)", self.label, int(elapsed))


async def poll(
    page,
    predicate: Predicate,
    *,
    interval: float,
    timeout: float,
    observer: Observer | None = None,
) -> PollResult:
    start = time.monotonic()
    deadline = start + timeout
    ticks = 0

    while True:
        ticks += 1
        try:
            budget = max(deadline - time.monotonic(), 0) + interval
            outcome = await asyncio.wait_for(predicate(page), timeout=budget)
        except Exception as e:
            # Evaluation fails transiently while the page re-renders or navigates
            logger.debug("[poll] Predicate evaluation failed: %s", e)
            outcome = Tick.CONTINUE

        elapsed = time.monotonic() - start
        if observer is not None:
            observer(ticks, elapsed, outcome)

        if outcome is Tick.DONE:
            return PollResult(PollStatus.COMPLETED, ticks, elapsed)

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return PollResult(PollStatus.TIMED_OUT, ticks, time.monotonic() - start)
        await asyncio.sleep(min(interval, remaining))
