"""Redirex - rule based request rewriting for aiohttp services."""

__version__ = "0.1.0"

from redirex.core.config import RewriteOptions, load_options
from redirex.core.request import RequestView
from redirex.rewrite.engine import RewriteAction, RewriteEngine, RewriteResult, load_engine

__all__ = [
    "__version__",
    "RequestView",
    "RewriteAction",
    "RewriteEngine",
    "RewriteOptions",
    "RewriteResult",
    "load_engine",
    "load_options",
]
