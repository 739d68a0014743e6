"""aiohttp adapter for the rewrite engine.

RewriteHandler wraps a downstream aiohttp handler:

    engine = load_engine("redirects.yml")
    app.router.add_route("*", "/{path:.*}", engine.handler(router))

Redirect decisions are answered directly, internal rewrites and host
normalization forward a cloned request, anything else reaches the
downstream handler untouched.
"""

from __future__ import annotations

import html
from collections.abc import Awaitable, Callable, Mapping
from http import HTTPStatus
from typing import TYPE_CHECKING

import structlog
from aiohttp import hdrs, web

from redirex.core.request import RequestView
from redirex.rewrite.engine import RewriteAction

if TYPE_CHECKING:
    from redirex.rewrite.engine import RewriteEngine

logger = structlog.get_logger()

NextHandler = Callable[[web.Request], Awaitable[web.StreamResponse]]

HTML_CONTENT_TYPE = "text/html; charset=utf-8"


def status_text(status: int) -> str:
    """Reason phrase for status, or "" for unknown codes."""
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""


def request_view(request: web.Request) -> RequestView:
    """Build the engine's request view from an aiohttp request."""
    return RequestView(
        method=request.method,
        host=request.host,
        path=request.path,
        query=request.rel_url.raw_query_string,
        tls=request.secure,
        raw_path=request.rel_url.raw_path,
    )


def redirect_response(
    request: web.Request,
    location: str,
    status: int,
    headers: Mapping[str, str] | None = None,
) -> web.Response:
    """Build a redirect response.

    Sets Location; adds an HTML content type for GET and HEAD unless one
    was preset, and a short HTML link body for GET only.
    """
    response_headers = dict(headers or {})
    had_content_type = any(key.lower() == "content-type" for key in response_headers)

    response_headers[hdrs.LOCATION] = location
    if not had_content_type and request.method in (hdrs.METH_GET, hdrs.METH_HEAD):
        response_headers[hdrs.CONTENT_TYPE] = HTML_CONTENT_TYPE

    body = None
    if not had_content_type and request.method == hdrs.METH_GET:
        escaped = html.escape(location).replace("&#x27;", "&#39;")
        link = f'<a href="{escaped}">{status_text(status)}</a>.\n'
        body = (link + "\n").encode("utf-8")

    return web.Response(status=status, body=body, headers=response_headers)


def misdirected_response(message: str) -> web.Response:
    """421 Misdirected Request with the error as plain text."""
    return web.Response(
        status=HTTPStatus.MISDIRECTED_REQUEST,
        text=f"{message}\n",
        content_type="text/plain",
        charset="utf-8",
        headers={"X-Content-Type-Options": "nosniff"},
    )


def forward_request(request: web.Request, view: RequestView) -> web.Request:
    """Clone request with the view's (possibly rewritten) URL and host."""
    changes: dict[str, str] = {"rel_url": view.request_uri()}
    if view.effective_host() != request.host:
        changes["host"] = view.effective_host()
    if view.scheme and view.scheme != request.scheme:
        changes["scheme"] = view.scheme
    return request.clone(**changes)


class RewriteHandler:
    """Runs the rewrite engine before next_handler.

    Register the bound `handle` coroutine as the route handler.
    """

    def __init__(self, engine: RewriteEngine, next_handler: NextHandler) -> None:
        self.engine = engine
        self.next_handler = next_handler

    async def handle(self, request: web.Request) -> web.StreamResponse:
        view = request_view(request)
        result = self.engine.process(view)

        if result.action is RewriteAction.REDIRECT:
            return redirect_response(request, result.location or "/", result.status or 302)

        if result.action is RewriteAction.MISDIRECTED:
            logger.warning(
                "Rewrite target rejected",
                path=request.path,
                rule=result.rule.line if result.rule else None,
                error=result.error,
            )
            return misdirected_response(result.error or "misdirected request")

        if result.action is RewriteAction.REWRITE or result.host_changed:
            request = forward_request(request, view)

        return await self.next_handler(request)
