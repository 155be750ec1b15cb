"""
Request interception for the target site's backend API.

Every request the browser makes goes through HeaderRewriter.handle. Calls to
the backend API (matched by a host marker) get their Origin/Referer forced to
the public front door, which the backend checks. Everything else passes
through untouched.

One named exception: the backend answers the full report endpoint
GET /report/<id> with a 405, but serves the same data at /report/<id>/short.
That single request is redirected. It is a workaround for one routing quirk,
not a rule for other endpoints.
"""

import logging
import re
from dataclasses import dataclass

from playwright.async_api import Request, Response, Route

logger = logging.getLogger(__name__)

SHORT_REPORT_PATTERN = re.compile(r"/report/[a-z0-9-]+$")


@dataclass
class RequestOverrides:
    headers: dict
    url: str | None = None


def rewrite_request(method: str, url: str, headers: dict, settings) -> RequestOverrides | None:
    """Decide how an outgoing request should be continued. None means pass-through."""
    if settings.target_api_marker not in url:
        return None

    front_door = settings.front_door_url.rstrip("/")
    new_headers = {
        **headers,
        "origin": front_door,
        "referer": front_door + "/",
    }

    if method == "GET" and SHORT_REPORT_PATTERN.search(url):
        return RequestOverrides(headers=new_headers, url=url + "/short")
    return RequestOverrides(headers=new_headers)


class HeaderRewriter:
    """Route handler plus request/response listeners for one browsing context."""

    def __init__(self, settings, diagnostics):
        self.settings = settings
        self.diagnostics = diagnostics

    async def install(self, context):
        await context.route("**/*", self.handle)
        context.on("request", self.on_request)
        context.on("response", self.on_response)

    async def handle(self, route: Route):
        request = route.request
        overrides = rewrite_request(request.method, request.url, request.headers, self.settings)

        if overrides is None:
            await route.continue_()
        elif overrides.url:
            logger.info("[intercept] Redirecting main report request to /short: %s", request.url)
            await route.continue_(url=overrides.url, headers=overrides.headers)
        else:
            await route.continue_(headers=overrides.headers)

    def on_request(self, request: Request):
        if self.settings.target_api_marker in request.url:
            self.diagnostics.log_request(request.method, request.url, request.headers)

    async def on_response(self, response: Response):
        if response.status < 400:
            return
        try:
            body = await response.text()
        except Exception:
            body = "[Could not read body]"
        self.diagnostics.log_error_response(response.status, response.url, body)
