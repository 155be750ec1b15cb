"""Tests for request interception and network diagnostics."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from audit.config import Settings
from audit.diagnostics import NETWORK_LOG, Diagnostics
from audit.headers import HeaderRewriter, rewrite_request

_SETTINGS = Settings(
    front_door_url="https://foresight.flowninja.com",
    target_api_marker="web-stagingv2",
)
_API = "https://web-stagingv2.example.net/api"


def _route(method: str, url: str, headers: dict | None = None):
    route = MagicMock()
    route.request = SimpleNamespace(method=method, url=url, headers=headers or {})
    route.continue_ = AsyncMock()
    return route


class TestRewriteRequest:
    def test_other_hosts_pass_through(self) -> None:
        assert rewrite_request("GET", "https://cdn.example.com/app.js", {}, _SETTINGS) is None

    def test_forces_origin_and_referer(self) -> None:
        overrides = rewrite_request(
            "POST", f"{_API}/scan", {"origin": "null", "x-token": "abc"}, _SETTINGS
        )
        assert overrides.headers == {
            "origin": "https://foresight.flowninja.com",
            "referer": "https://foresight.flowninja.com/",
            "x-token": "abc",
        }
        assert overrides.url is None

    def test_report_get_goes_to_short(self) -> None:
        overrides = rewrite_request("GET", f"{_API}/report/ab12-cd34", {}, _SETTINGS)
        assert overrides.url == f"{_API}/report/ab12-cd34/short"

    @pytest.mark.parametrize(
        "method, url",
        [
            ("POST", f"{_API}/report/ab12-cd34"),
            ("GET", f"{_API}/report/ab12-cd34/short"),
            ("GET", f"{_API}/report/AB12"),
            ("GET", f"{_API}/reports/ab12"),
        ],
    )
    def test_short_redirect_is_narrow(self, method, url) -> None:
        overrides = rewrite_request(method, url, {}, _SETTINGS)
        assert overrides is not None
        assert overrides.url is None


class TestHeaderRewriter:
    @pytest.mark.asyncio
    async def test_untouched_request_continues_plainly(self, tmp_path) -> None:
        rewriter = HeaderRewriter(_SETTINGS, Diagnostics(str(tmp_path)))
        route = _route("GET", "https://example.com/")
        await rewriter.handle(route)
        route.continue_.assert_awaited_once_with()

    @pytest.mark.asyncio
    async def test_api_request_continues_with_headers(self, tmp_path) -> None:
        rewriter = HeaderRewriter(_SETTINGS, Diagnostics(str(tmp_path)))
        route = _route("POST", f"{_API}/scan", {"accept": "*/*"})
        await rewriter.handle(route)

        _, kwargs = route.continue_.call_args
        assert kwargs["headers"]["origin"] == "https://foresight.flowninja.com"
        assert "url" not in kwargs

    @pytest.mark.asyncio
    async def test_report_request_continues_with_new_url(self, tmp_path) -> None:
        rewriter = HeaderRewriter(_SETTINGS, Diagnostics(str(tmp_path)))
        route = _route("GET", f"{_API}/report/xyz")
        await rewriter.handle(route)

        _, kwargs = route.continue_.call_args
        assert kwargs["url"] == f"{_API}/report/xyz/short"

    def test_api_requests_are_logged(self, tmp_path) -> None:
        rewriter = HeaderRewriter(_SETTINGS, Diagnostics(str(tmp_path)))
        rewriter.on_request(SimpleNamespace(method="GET", url=f"{_API}/x", headers={"a": "1"}))
        rewriter.on_request(SimpleNamespace(method="GET", url="https://example.com/", headers={}))

        log = (tmp_path / NETWORK_LOG).read_text()
        assert log == f'[REQUEST] GET {_API}/x Headers: {{"a": "1"}}\n'

    @pytest.mark.asyncio
    async def test_error_responses_logged_with_truncated_body(self, tmp_path) -> None:
        rewriter = HeaderRewriter(_SETTINGS, Diagnostics(str(tmp_path)))
        response = SimpleNamespace(status=405, url=f"{_API}/report/x", text=AsyncMock(return_value="e" * 900))
        await rewriter.on_response(response)

        log = (tmp_path / NETWORK_LOG).read_text()
        assert log.startswith(f"[NETWORK ERROR] 405 {_API}/report/x Body: ")
        assert log.count("e" * 500) == 1
        assert "e" * 501 not in log

    @pytest.mark.asyncio
    async def test_unreadable_body(self, tmp_path) -> None:
        rewriter = HeaderRewriter(_SETTINGS, Diagnostics(str(tmp_path)))
        response = SimpleNamespace(
            status=500, url="https://example.com/", text=AsyncMock(side_effect=RuntimeError("gone"))
        )
        await rewriter.on_response(response)
        assert "[Could not read body]" in (tmp_path / NETWORK_LOG).read_text()

    @pytest.mark.asyncio
    async def test_successful_responses_not_logged(self, tmp_path) -> None:
        rewriter = HeaderRewriter(_SETTINGS, Diagnostics(str(tmp_path)))
        await rewriter.on_response(SimpleNamespace(status=200, url=_API, text=AsyncMock()))
        assert not (tmp_path / NETWORK_LOG).exists()

    def test_diagnostics_write_failure_is_swallowed(self, tmp_path) -> None:
        rewriter = HeaderRewriter(_SETTINGS, Diagnostics(str(tmp_path / "missing" / "dir")))
        rewriter.on_request(SimpleNamespace(method="GET", url=_API, headers={}))
