"""Rewrite server: aiohttp application with the engine in front of a handler."""

from __future__ import annotations

import asyncio

import structlog
from aiohttp import web

from redirex.core.config import ServerSettings
from redirex.rewrite.engine import RewriteEngine
from redirex.server.handler import NextHandler

logger = structlog.get_logger()


async def echo_handler(request: web.Request) -> web.Response:
    """Report the request as the downstream application sees it."""
    return web.json_response(
        {
            "method": request.method,
            "host": request.host,
            "path": request.path,
            "query": request.query_string,
            "format": request.query.get("format", "text"),
        }
    )


class SubdomainRouter:
    """Dispatches on the subdomain part of the Host header.

    Requests for the root domain (including www traffic that the engine
    normalized to the root host) go to the root handler; "<name>.<root>"
    goes to the handler registered for name, anything else is a 404.
    """

    def __init__(self, root_domain: str, root_handler: NextHandler = echo_handler) -> None:
        # Root domain including the port, e.g. "mydomain.com:8080".
        self.root_domain = root_domain
        self._root_handler = root_handler
        self._subdomains: dict[str, NextHandler] = {}

    def handle_subdomain(self, subdomain: str, handler: NextHandler) -> None:
        self._subdomains[subdomain] = handler

    async def __call__(self, request: web.Request) -> web.StreamResponse:
        subdomain = request.host.removesuffix(self.root_domain)
        if len(subdomain) > 1 and subdomain != self.root_domain:
            handler = self._subdomains.get(subdomain.removesuffix("."))
            if handler is None:
                raise web.HTTPNotFound(text="Not found")
            return await handler(request)
        return await self._root_handler(request)


def create_app(engine: RewriteEngine, downstream: NextHandler | None = None) -> web.Application:
    """Create an application routing every request through the engine.

    Args:
        engine: The rewrite engine.
        downstream: Handler receiving requests that are not redirected.
            Defaults to echo_handler.
    """
    app = web.Application()
    app.router.add_route("*", "/{path:.*}", engine.handler(downstream or echo_handler))
    return app


async def run_server(
    engine: RewriteEngine,
    settings: ServerSettings,
    downstream: NextHandler | None = None,
) -> None:
    """Serve the rewrite application until cancelled."""
    host, port = settings.parse_bind()
    runner = web.AppRunner(create_app(engine, downstream))
    await runner.setup()
    try:
        site = web.TCPSite(runner, host, port)
        await site.start()
        logger.info(
            "Rewrite server started",
            host=host,
            port=port,
            rules=len(engine.rules),
            primary_subdomain=engine.primary_subdomain or None,
        )
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()
        logger.info("Rewrite server stopped")
