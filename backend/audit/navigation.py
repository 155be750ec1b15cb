"""
Navigation race: after submitting the lead form the site either opens the
report in a new tab, navigates the current tab, or rewrites the URL in
place. All three waits are armed before the submit and the first to settle
decides which page the session continues on.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class NavigationWinner(str, Enum):
    POPUP = "popup"
    NAVIGATION = "navigation"
    URL_CHANGE = "url_change"
    NONE = "none"


@dataclass
class NavigationResult:
    winner: NavigationWinner
    page: object

    @property
    def observed(self) -> bool:
        return self.winner is not NavigationWinner.NONE


class NavigationRace:
    """Async context manager around the action that should trigger navigation.

        async with NavigationRace(context, page, timeout=60) as race:
            await submit_form(page, selector)
        result = await race.result()
    """

    def __init__(self, context, page, timeout: float):
        self.context = context
        self.page = page
        self.timeout = timeout
        self._tasks: dict[asyncio.Task, NavigationWinner] = {}

    async def __aenter__(self):
        timeout_ms = self.timeout * 1000
        original_url = self.page.url

        waiters = {
            NavigationWinner.POPUP: self.context.wait_for_event("page", timeout=timeout_ms),
            NavigationWinner.NAVIGATION: self._wait_for_navigation(timeout_ms),
            NavigationWinner.URL_CHANGE: self.page.wait_for_function(
                "(originalUrl) => window.location.href !== originalUrl",
                arg=original_url,
                timeout=timeout_ms,
            ),
        }
        for winner, coro in waiters.items():
            task = asyncio.create_task(coro, name=f"navigation-race-{winner.value}")
            self._tasks[task] = winner

        # Let every waiter register its listener before the action runs
        await asyncio.sleep(0)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is not None:
            await self._abandon(set(self._tasks))
        return False

    async def _wait_for_navigation(self, timeout_ms: float):
        page = self.page
        await page.wait_for_event(
            "framenavigated",
            predicate=lambda frame: frame == page.main_frame,
            timeout=timeout_ms,
        )
        await page.wait_for_load_state("networkidle", timeout=timeout_ms)

    async def result(self) -> NavigationResult:
        pending = set(self._tasks)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout

        try:
            while pending:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    break
                done, pending = await asyncio.wait(
                    pending, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
                )
                settled = []
                for task in done:
                    if task.exception() is not None:
                        logger.debug("[navigation] %s waiter gave up: %s",
                                     self._tasks[task].value, task.exception())
                    else:
                        settled.append(task)
                if settled:
                    # Same-tick ties go to the popup, then navigation, then URL change
                    order = list(NavigationWinner)
                    task = min(settled, key=lambda t: order.index(self._tasks[t]))
                    return await self._resolve(self._tasks[task], task.result())
        finally:
            await self._abandon(pending)

        return NavigationResult(NavigationWinner.NONE, self.page)

    async def _resolve(self, winner: NavigationWinner, value) -> NavigationResult:
        if winner is NavigationWinner.POPUP:
            new_page = value
            logger.info("[navigation] New tab detected, switching to it")
            await new_page.bring_to_front()
            logger.info("[navigation] Switched to new tab: %s", new_page.url)
            return NavigationResult(winner, new_page)

        logger.info("[navigation] %s detected on current tab: %s", winner.value, self.page.url)
        return NavigationResult(winner, self.page)

    async def _abandon(self, tasks):
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
