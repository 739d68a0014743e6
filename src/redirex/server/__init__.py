"""aiohttp integration for the rewrite engine."""

from redirex.server.app import SubdomainRouter, create_app, echo_handler, run_server
from redirex.server.handler import (
    RewriteHandler,
    forward_request,
    misdirected_response,
    redirect_response,
    request_view,
)

__all__ = [
    "RewriteHandler",
    "SubdomainRouter",
    "create_app",
    "echo_handler",
    "forward_request",
    "misdirected_response",
    "redirect_response",
    "request_view",
    "run_server",
]
