"""
Session orchestrator: runs one audit end to end against the target site.

    Initializing -> Navigating -> AwaitingScan -> Unlocking -> SubmittingLead
    -> AwaitingNavigation -> AwaitingReport -> Extracting -> Done

Any exception moves the session to Failed. Soft failures (unlock control
missing, lead form missing, no navigation observed, report render timeout)
are recorded on the result and the session keeps going. The browsing
context is closed exactly once on every exit path.
"""

import logging

from audit.browser import attach_page_logging, open_context as launch_context
from audit.config import get_settings
from audit.diagnostics import (
    BEFORE_SCRAPE_SNAPSHOT,
    FORM_FILLED_SNAPSHOT,
    NAVIGATION_TIMEOUT_SNAPSHOT,
    NO_BUTTON_SNAPSHOT,
    NO_POPUP_SNAPSHOT,
    REPORT_TIMEOUT_SNAPSHOT,
    TIMEOUT_SNAPSHOT,
    Diagnostics,
)
from audit.errors import (
    AuditError,
    InteractionNotFound,
    NavigationError,
    ReportRenderTimeout,
    ScanTimeout,
    UnclassifiedError,
)
from audit.extractor import extract_report
from audit.headers import HeaderRewriter
from audit.interaction import (
    LEAD_FORM_SELECTORS,
    UNLOCK_STRATEGIES,
    locate_and_click,
    populate_form,
    submit_form,
    wait_for_form,
)
from audit.models import (
    ExtractionResult,
    ScanRequest,
    SessionResult,
    SessionState,
    SoftFailure,
    UserInfo,
)
from audit.navigation import NavigationRace
from audit.poller import REPORT_READY, SCAN_READY, ProgressLogger, js_predicate, poll
from audit.rebrand import Rebrander

logger = logging.getLogger(__name__)

# Settings attribute bounding each waiting phase
PHASE_TIMEOUTS = {
    SessionState.NAVIGATING: "page_load_timeout",
    SessionState.AWAITING_SCAN: "scan_timeout",
    SessionState.UNLOCKING: "settle_delay",
    SessionState.AWAITING_NAVIGATION: "navigation_timeout",
    SessionState.AWAITING_REPORT: "report_timeout",
}


class AuditSession:
    def __init__(self, request: ScanRequest, user_info: UserInfo, settings,
                 open_context=None, diagnostics: Diagnostics | None = None):
        self.request = request
        self.user_info = user_info
        self.settings = settings
        self.open_context = open_context or launch_context
        self.diagnostics = diagnostics or Diagnostics(
            settings.debug_dir, enabled=settings.diagnostics_enabled
        )

        self.state = SessionState.INITIALIZING
        self.states: list[SessionState] = []
        self.soft_failures: list[SoftFailure] = []
        self.handle = None
        self.page = None
        self.form_selector = LEAD_FORM_SELECTORS[0]
        self._closed = False

    # ------------------------------------------------------------------
    # State bookkeeping
    # ------------------------------------------------------------------

    def _enter(self, state: SessionState):
        self.state = state
        self.states.append(state)
        logger.info("[session %s] %s", self.request.correlation_id, state.value)

    def _timeout(self, state: SessionState | None = None) -> float:
        return getattr(self.settings, PHASE_TIMEOUTS[state or self.state])

    def _record_soft(self, failure: SoftFailure, reason: str):
        self.soft_failures.append(failure)
        logger.warning("[session] Continuing despite %s: %s", failure.value, reason)

    async def _soft(self, phase, failure: SoftFailure):
        try:
            await phase
        except (InteractionNotFound, ReportRenderTimeout) as e:
            self._record_soft(failure, str(e))

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def run(self) -> SessionResult:
        extraction = None
        error = None
        try:
            extraction = await self._run_phases()
            self._enter(SessionState.DONE)
        except AuditError as e:
            error = e
        except Exception as e:
            logger.exception("[session] Unexpected error in %s", self.state.value)
            error = UnclassifiedError(str(e) or type(e).__name__)
        finally:
            await self._close()

        if error is not None:
            self._enter(SessionState.FAILED)
            logger.error("[session] Failed with %s: %s", error.kind, error)
            return SessionResult(
                success=False,
                error=str(error),
                error_type=error.kind,
                correlation_id=self.request.correlation_id,
                soft_failures=self.soft_failures,
                states=self.states,
            )

        return SessionResult(
            success=True,
            html=extraction.html,
            styles=extraction.styles,
            correlation_id=self.request.correlation_id,
            soft_failures=self.soft_failures,
            states=self.states,
        )

    async def _run_phases(self) -> ExtractionResult:
        self._enter(SessionState.INITIALIZING)
        await self._initialize()

        self._enter(SessionState.NAVIGATING)
        await self._navigate()

        self._enter(SessionState.AWAITING_SCAN)
        await self._await_scan()

        self._enter(SessionState.UNLOCKING)
        await self._soft(self._unlock(), SoftFailure.UNLOCK_CONTROL_NOT_FOUND)

        self._enter(SessionState.SUBMITTING_LEAD)
        await self._soft(self._find_lead_form(), SoftFailure.LEAD_FORM_NOT_FOUND)
        await self._fill_lead_form()
        race = NavigationRace(
            self.handle.context, self.page,
            timeout=self._timeout(SessionState.AWAITING_NAVIGATION),
        )
        async with race:
            await self._submit_lead_form()

        self._enter(SessionState.AWAITING_NAVIGATION)
        await self._await_navigation(race)

        self._enter(SessionState.AWAITING_REPORT)
        await self._soft(self._await_report(), SoftFailure.REPORT_RENDER_TIMEOUT)

        self._enter(SessionState.EXTRACTING)
        return await self._extract()

    async def _close(self):
        if self._closed or self.handle is None:
            return
        self._closed = True
        try:
            await self.handle.close()
        except Exception as e:
            logger.warning("[session] Closing browser failed: %s", e)

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    async def _initialize(self):
        self.rebrander = Rebrander.from_settings(self.settings)
        self.handle = await self.open_context(self.settings)
        context = self.handle.context

        await HeaderRewriter(self.settings, self.diagnostics).install(context)
        context.on("page", attach_page_logging)
        self.page = await context.new_page()

    async def _navigate(self):
        url = self.request.scan_url(self.settings.scan_url)
        logger.info("[session] Navigating to scan URL: %s", url)
        try:
            await self.page.goto(url, wait_until="networkidle", timeout=self._timeout() * 1000)
        except Exception as e:
            raise NavigationError(f"Failed to load scan page {url}: {e}") from e

    async def _await_scan(self):
        timeout = self._timeout()
        result = await poll(
            self.page,
            js_predicate(SCAN_READY),
            interval=self.settings.scan_poll_interval,
            timeout=timeout,
            observer=ProgressLogger("Waiting for scan completion"),
        )
        if not result.completed:
            await self.diagnostics.snapshot(self.page, TIMEOUT_SNAPSHOT)
            raise ScanTimeout(
                f"Scan did not complete after waiting {timeout:g} seconds. "
                "The scan service is very slow or unavailable."
            )
        logger.info("[session] Scan completed after %d checks", result.ticks)

    async def _unlock(self):
        await self.page.wait_for_timeout(self._timeout() * 1000)

        strategy = await locate_and_click(self.page, UNLOCK_STRATEGIES)
        if strategy is None:
            await self.diagnostics.snapshot(self.page, NO_BUTTON_SNAPSHOT)
            raise InteractionNotFound('Could not find the "Access full report" control')
        logger.info("[session] Clicked unlock control via strategy: %s", strategy)

    async def _find_lead_form(self):
        popup, *fallbacks = LEAD_FORM_SELECTORS
        selector = await wait_for_form(self.page, [popup], [self.settings.popup_form_timeout])
        if selector is None:
            # Captured before the fallback so the page state at the miss is kept
            await self.diagnostics.snapshot(self.page, NO_POPUP_SNAPSHOT)
            selector = await wait_for_form(
                self.page, fallbacks, [self.settings.generic_form_timeout] * len(fallbacks)
            )
        if selector is None:
            raise InteractionNotFound("No lead form appeared")
        self.form_selector = selector

    async def _fill_lead_form(self):
        info = self.user_info.with_defaults(self.settings)
        await populate_form(self.page, self.form_selector, info.form_fields())
        await self.diagnostics.snapshot(self.page, FORM_FILLED_SNAPSHOT, full_page=False)

    async def _submit_lead_form(self):
        try:
            how = await submit_form(self.page, self.form_selector)
        except Exception as e:
            # A same-tab navigation can tear down the evaluation context mid-call
            logger.warning("[session] Submit evaluation interrupted: %s", e)
            return
        logger.info("[session] Submitted lead form (%s)", how or "no form")

    async def _await_navigation(self, race: NavigationRace):
        result = await race.result()
        if not result.observed:
            # Content may have loaded in place; carry on with the current page
            await self.diagnostics.snapshot(self.page, NAVIGATION_TIMEOUT_SNAPSHOT)
            self._record_soft(
                SoftFailure.NAVIGATION_NOT_OBSERVED,
                f"no new tab or navigation within {race.timeout:g}s",
            )
            return
        self.page = result.page

    async def _await_report(self):
        timeout = self._timeout()
        result = await poll(
            self.page,
            js_predicate(REPORT_READY),
            interval=self.settings.report_poll_interval,
            timeout=timeout,
            observer=ProgressLogger("Waiting for report content", every=10),
        )
        if not result.completed:
            await self.diagnostics.snapshot(self.page, REPORT_TIMEOUT_SNAPSHOT)
            raise ReportRenderTimeout(f"Report did not finish rendering within {timeout:g} seconds")
        logger.info("[session] Report content loaded")

    async def _extract(self) -> ExtractionResult:
        await self.diagnostics.snapshot(self.page, BEFORE_SCRAPE_SNAPSHOT)
        extraction = await extract_report(self.page)

        html = self.rebrander.apply(extraction.html)
        self.diagnostics.write_html(html)
        return ExtractionResult(html=html, styles=extraction.styles)


async def run_session(website_url: str, industry: str, goal: str, user_info=None, *,
                      settings=None, open_context=None) -> SessionResult:
    """Run one audit session. Never raises; failures come back as success=False."""
    settings = settings or get_settings()
    try:
        request = ScanRequest(website_url=website_url, industry=industry, goal=goal)
        if isinstance(user_info, dict):
            user_info = UserInfo(**user_info)
    except Exception as e:
        return SessionResult(success=False, error=str(e), error_type="UnclassifiedError")

    session = AuditSession(
        request,
        user_info or UserInfo(),
        settings,
        open_context=open_context,
    )
    return await session.run()
