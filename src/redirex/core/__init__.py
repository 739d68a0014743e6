"""Core."""

from .config import RewriteOptions, ServerSettings, load_config_from_file, load_options
from .exceptions import (
    ConfigError,
    InvalidPatternError,
    InvalidStatusCodeError,
    MalformedLineError,
    RedirectLoopError,
    RedirexError,
    RuleCompileError,
    TargetParseError,
    format_error_for_user,
)
from .request import SCHEME_HTTP, SCHEME_HTTPS, RequestView

__all__ = [
    "ConfigError",
    "InvalidPatternError",
    "InvalidStatusCodeError",
    "MalformedLineError",
    "RedirectLoopError",
    "RedirexError",
    "RequestView",
    "RewriteOptions",
    "RuleCompileError",
    "SCHEME_HTTP",
    "SCHEME_HTTPS",
    "ServerSettings",
    "TargetParseError",
    "format_error_for_user",
    "load_config_from_file",
    "load_options",
]
