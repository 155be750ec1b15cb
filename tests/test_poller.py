"""Tests for the completion poller. Most use fake predicates; TestScanReady runs in Chromium."""

import asyncio
import logging
import time

import pytest

from audit.poller import SCAN_READY, PollStatus, ProgressLogger, Tick, js_predicate, poll


def scripted(*ticks, then=Tick.CONTINUE):
    """Predicate that replays ticks in order, then repeats `then` forever."""
    remaining = list(ticks)
    calls = []

    async def predicate(page):
        calls.append(time.monotonic())
        if remaining:
            outcome = remaining.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        return then

    predicate.calls = calls
    return predicate


class TestPoll:
    @pytest.mark.asyncio
    async def test_returns_immediately_on_first_done(self) -> None:
        predicate = scripted(Tick.DONE)
        start = time.monotonic()
        result = await poll(None, predicate, interval=5, timeout=60)

        assert result.status is PollStatus.COMPLETED
        assert result.ticks == 1
        assert time.monotonic() - start < 1

    @pytest.mark.asyncio
    async def test_completes_on_later_tick(self) -> None:
        predicate = scripted(Tick.CONTINUE, Tick.CONTINUE, Tick.DONE)
        result = await poll(None, predicate, interval=0.01, timeout=5)

        assert result.completed
        assert result.ticks == 3

    @pytest.mark.asyncio
    async def test_times_out_within_one_interval_of_deadline(self) -> None:
        interval, timeout = 0.2, 0.5
        start = time.monotonic()
        result = await poll(None, scripted(), interval=interval, timeout=timeout)
        elapsed = time.monotonic() - start

        assert result.status is PollStatus.TIMED_OUT
        assert elapsed >= timeout
        assert elapsed <= timeout + interval + 0.1

    @pytest.mark.asyncio
    async def test_error_tick_does_not_abort(self) -> None:
        result = await poll(None, scripted(then=Tick.ERROR), interval=0.05, timeout=0.3)
        assert result.status is PollStatus.TIMED_OUT

    @pytest.mark.asyncio
    async def test_error_tick_does_not_change_completion_time(self) -> None:
        plain = scripted(Tick.CONTINUE, Tick.CONTINUE, Tick.CONTINUE, Tick.DONE)
        with_errors = scripted(Tick.CONTINUE, Tick.ERROR, Tick.ERROR, Tick.DONE)

        a = await poll(None, plain, interval=0.02, timeout=5)
        b = await poll(None, with_errors, interval=0.02, timeout=5)

        assert a.completed and b.completed
        assert a.ticks == b.ticks == 4

    @pytest.mark.asyncio
    async def test_predicate_exception_counts_as_continue(self) -> None:
        predicate = scripted(RuntimeError("Execution context was destroyed"), Tick.DONE)
        result = await poll(None, predicate, interval=0.01, timeout=5)

        assert result.completed
        assert result.ticks == 2

    @pytest.mark.asyncio
    async def test_hanging_predicate_is_bounded(self) -> None:
        async def hangs(page):
            await asyncio.sleep(30)
            return Tick.DONE

        start = time.monotonic()
        result = await poll(None, hangs, interval=0.1, timeout=0.3)

        assert result.status is PollStatus.TIMED_OUT
        assert time.monotonic() - start < 1

    @pytest.mark.asyncio
    async def test_observer_sees_every_tick(self) -> None:
        seen = []
        await poll(
            None,
            scripted(Tick.CONTINUE, Tick.ERROR, Tick.DONE),
            interval=0.01,
            timeout=5,
            observer=lambda tick, elapsed, outcome: seen.append((tick, outcome)),
        )
        assert seen == [(1, Tick.CONTINUE), (2, Tick.ERROR), (3, Tick.DONE)]


class TestJsPredicate:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "value, expected",
        [(True, Tick.DONE), (False, Tick.CONTINUE), ("ERROR", Tick.ERROR), (None, Tick.CONTINUE)],
    )
    async def test_maps_page_values(self, value, expected) -> None:
        class FakePage:
            async def evaluate(self, script):
                return value

        assert await js_predicate("() => true")(FakePage()) is expected


class TestProgressLogger:
    def test_logs_every_nth_tick(self, caplog) -> None:
        observer = ProgressLogger("Waiting for scan", every=5)
        with caplog.at_level(logging.INFO, logger="audit.poller"):
            for tick in range(1, 11):
                observer(tick, float(tick), Tick.CONTINUE)

        assert len(caplog.records) == 2

    def test_always_logs_error_ticks(self, caplog) -> None:
        observer = ProgressLogger("Waiting for scan", every=5)
        with caplog.at_level(logging.INFO, logger="audit.poller"):
            observer(1, 1.0, Tick.ERROR)

        assert "error indicator" in caplog.text


_BANNER_AND_CTA = """
<div class="error-message">Something went wrong</div>
<a href="#">Access Full Report</a>
"""


class TestScanReady:
    @pytest.mark.asyncio
    async def test_banner_is_reported_before_completion(self, page) -> None:
        await page.set_content(_BANNER_AND_CTA)
        assert await js_predicate(SCAN_READY)(page) is Tick.ERROR

    @pytest.mark.asyncio
    async def test_completes_once_banner_clears(self, page) -> None:
        await page.set_content(_BANNER_AND_CTA)
        await page.evaluate(
            "setTimeout(() => document.querySelector('.error-message').remove(), 300)"
        )

        result = await poll(page, js_predicate(SCAN_READY), interval=0.1, timeout=5)

        assert result.completed
        assert result.ticks > 1
