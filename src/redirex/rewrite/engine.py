"""Redirex Rewrite Engine.

Per-request entry point. For each request the engine:

1. Runs the subdomain canonicalizer (may end the request with a 301).
2. Evaluates compiled rules in declaration order; the first match wins and
   either redirects, or rewrites the request target internally.
3. Otherwise lets the request pass through untouched.

Example:
    engine = RewriteEngine.from_options(RewriteOptions(
        redirect_match=["301 /seo/(.*) /$1"],
        primary_subdomain="www",
    ))

    result = engine.process(RequestView(host="www.mydomain.com", path="/seo/about"))
    result.action    # RewriteAction.REDIRECT
    result.location  # "/about"

The engine holds an immutable EngineConfig and is safe to share between
concurrent requests; only the per-request RequestView is mutated.
"""

from __future__ import annotations

import posixpath
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from http import HTTPStatus
from pathlib import Path
from typing import TYPE_CHECKING, Any
from urllib.parse import unquote, urljoin, urlsplit

import structlog

from redirex.core.config import RewriteOptions
from redirex.core.exceptions import TargetParseError
from redirex.core.request import RequestView
from redirex.domains.canonical import (
    CanonicalOutcome,
    SubdomainCanonicalizer,
    is_canonicalizable,
    normalize_primary_subdomain,
)
from redirex.domains.resolver import DomainResolver
from redirex.rewrite.rules import CompiledRule, compile_rules

if TYPE_CHECKING:
    from aiohttp import web

    NextHandler = Callable[[web.Request], Awaitable[web.StreamResponse]]

logger = structlog.get_logger()

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


class RewriteAction(Enum):
    """Outcome of processing one request."""

    REDIRECT = "redirect"
    REWRITE = "rewrite"
    PASSTHROUGH = "passthrough"
    MISDIRECTED = "misdirected"


@dataclass
class RewriteResult:
    """Decision produced by RewriteEngine.process()."""

    action: RewriteAction
    status: int | None = None
    """Response status for REDIRECT (rule code or 301) and MISDIRECTED (421)."""

    location: str | None = None
    """Location header value for REDIRECT."""

    target: str | None = None
    """New request URI for REWRITE."""

    rule: CompiledRule | None = None
    subject: str | None = None
    error: str | None = None
    host_changed: bool = False
    """The canonicalizer changed the request host."""

    @property
    def is_terminal(self) -> bool:
        """True when a response is sent instead of calling the next handler."""
        return self.action in (RewriteAction.REDIRECT, RewriteAction.MISDIRECTED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action.value,
            "status": self.status,
            "location": self.location,
            "target": self.target,
            "rule": self.rule.line if self.rule else None,
            "subject": self.subject,
            "error": self.error,
            "host_changed": self.host_changed,
        }


@dataclass(frozen=True)
class EngineConfig:
    """Compiled, immutable engine configuration."""

    rules: tuple[CompiledRule, ...] = field(default_factory=tuple)
    primary_subdomain: str = ""
    debug: bool = False

    @classmethod
    def from_options(cls, options: RewriteOptions) -> EngineConfig:
        """Compile options into an engine configuration.

        Raises:
            RuleCompileError: If any rule line is invalid.
        """
        return cls(
            rules=compile_rules(options.redirect_match),
            primary_subdomain=normalize_primary_subdomain(options.primary_subdomain),
            debug=options.debug,
        )


def _clean_path(path: str) -> str:
    cleaned = posixpath.normpath(path)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def resolve_redirect_location(current_path: str, target: str) -> str:
    """Resolve a path-rule redirect target the way a standard redirect does.

    Targets with a scheme or host are returned as-is. Relative targets are
    resolved against the directory of the current path; the path is then
    cleaned, keeping any trailing slash.

    Examples:
        >>> resolve_redirect_location("/seo/about", "/about")
        '/about'
        >>> resolve_redirect_location("/docs/v1/page", "intro")
        '/docs/v1/intro'
    """
    parts = urlsplit(target)
    if parts.scheme or parts.netloc:
        return target

    if not target.startswith("/"):
        old_path = current_path or "/"
        old_dir = old_path[: old_path.rfind("/") + 1]
        target = old_dir + target

    path, sep, query = target.partition("?")
    trailing = path.endswith("/")
    path = _clean_path(path)
    if trailing and not path.endswith("/"):
        path += "/"
    return path + sep + query


def parse_rewrite_target(target: str) -> tuple[str, str, str, str]:
    """Validate an internal-rewrite target as a URI reference.

    Returns:
        Tuple of (scheme, netloc, path, query).

    Raises:
        TargetParseError: If the target contains control characters,
            invalid percent escapes, or a malformed host/port.
    """
    if any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in target):
        raise TargetParseError(target, "invalid control character in URL")
    bad = _BAD_ESCAPE.search(target)
    if bad:
        raise TargetParseError(target, f"invalid URL escape {target[bad.start() : bad.start() + 3]!r}")
    try:
        parts = urlsplit(target)
        parts.port  # noqa: B018 - validates the port
    except ValueError as e:
        raise TargetParseError(target, str(e)) from e
    return parts.scheme, parts.netloc, parts.path, parts.query


def apply_rewrite_target(view: RequestView, target: str) -> str:
    """Replace the view's URL with target, resolved against the current URI.

    Returns:
        The new request URI.

    Raises:
        TargetParseError: If target is not a valid URI reference.
    """
    scheme, netloc, _, _ = parse_rewrite_target(target)
    if scheme or netloc:
        resolved = target
    else:
        resolved = urljoin(view.request_uri(), target)

    parts = urlsplit(resolved)
    if parts.scheme:
        view.scheme = parts.scheme
    if parts.netloc:
        view.set_host(parts.netloc)
    view.raw_path = parts.path or "/"
    view.path = unquote(view.raw_path)
    view.query = parts.query
    return view.request_uri()


class RewriteEngine:
    """Evaluates the canonical subdomain policy and rewrite rules per request.

    Build one at startup with from_options() or from_file(); it is
    immutable afterwards.
    """

    def __init__(
        self,
        config: EngineConfig,
        resolver: DomainResolver | None = None,
        domain_validator: Callable[[str], bool] = is_canonicalizable,
    ) -> None:
        self.config = config
        self._canonicalizer = SubdomainCanonicalizer(
            config.primary_subdomain,
            resolver=resolver,
            domain_validator=domain_validator,
        )
        self._logger = logger.bind(component="rewrite")

    @classmethod
    def from_options(
        cls, options: RewriteOptions, resolver: DomainResolver | None = None
    ) -> RewriteEngine:
        """Create an engine from options.

        Raises:
            RuleCompileError: If any rule line is invalid.
        """
        return cls(EngineConfig.from_options(options), resolver=resolver)

    @classmethod
    def from_file(cls, path: str | Path) -> RewriteEngine:
        """Load options from a YAML, JSON or TOML file and build an engine."""
        return cls.from_options(RewriteOptions.from_file(path))

    @property
    def rules(self) -> tuple[CompiledRule, ...]:
        return self.config.rules

    @property
    def primary_subdomain(self) -> str:
        return self.config.primary_subdomain

    def set_logger(self, bound_logger: Any) -> RewriteEngine:
        """Replace the logger used for debug and warning output."""
        self._logger = bound_logger
        return self

    def _debug(self, event: str, **kwargs: Any) -> None:
        if self.config.debug:
            self._logger.debug(event, **kwargs)

    def process(self, view: RequestView) -> RewriteResult:
        """Decide what to do with one request.

        The view is mutated in place when the host is canonicalized or a
        rule rewrites the request internally.

        Args:
            view: The request view.

        Returns:
            RewriteResult with the action to take.
        """
        host_changed = False

        if self._canonicalizer.enabled:
            hostport = view.effective_host()
            canonical = self._canonicalizer.apply(view)
            self._debug("Begin request", host=hostport, root=canonical.root)

            if canonical.outcome is CanonicalOutcome.SKIPPED:
                self._debug(
                    "Primary subdomain set but no redirect sent, domain is a loopback?",
                    primary_subdomain=self.primary_subdomain,
                )
            elif canonical.outcome is CanonicalOutcome.REDIRECT:
                self._debug("Redirecting from root domain", host=canonical.host)
                return RewriteResult(
                    action=RewriteAction.REDIRECT,
                    status=canonical.status,
                    location=canonical.location,
                    host_changed=True,
                )
            elif canonical.outcome is CanonicalOutcome.NORMALIZED:
                self._debug("Request host modified, proceeding without redirect", host=canonical.host)
                host_changed = True

        for rule in self.config.rules:
            subject = view.path if rule.is_relative else view.absolute_url()
            target = rule.match_and_replace(subject)
            if target is None:
                continue

            if target == subject:
                self._logger.warning("Source and target URLs match", subject=subject, rule=rule.line)
                return RewriteResult(
                    action=RewriteAction.PASSTHROUGH,
                    rule=rule,
                    subject=subject,
                    host_changed=host_changed,
                )

            if rule.is_internal_rewrite:
                original = view.request_uri()
                try:
                    new_uri = apply_rewrite_target(view, target)
                except TargetParseError as e:
                    self._debug("Rewrite target rejected", target=target, error=str(e))
                    return RewriteResult(
                        action=RewriteAction.MISDIRECTED,
                        status=int(HTTPStatus.MISDIRECTED_REQUEST),
                        rule=rule,
                        subject=subject,
                        error=str(e),
                        host_changed=host_changed,
                    )
                self._debug("No redirect, handling request", original=original, rewritten=new_uri)
                return RewriteResult(
                    action=RewriteAction.REWRITE,
                    target=new_uri,
                    rule=rule,
                    subject=subject,
                    host_changed=host_changed,
                )

            if rule.is_relative:
                location = resolve_redirect_location(view.path, target)
                self._debug("Path redirect", source=subject, target=location)
            else:
                # The subject already carried scheme, host and query.
                location = target
                self._debug("Full redirect", source=subject, target=location)

            return RewriteResult(
                action=RewriteAction.REDIRECT,
                status=rule.status_code,
                location=location,
                rule=rule,
                subject=subject,
                host_changed=host_changed,
            )

        return RewriteResult(action=RewriteAction.PASSTHROUGH, host_changed=host_changed)

    def handler(self, next_handler: NextHandler) -> NextHandler:
        """Wrap an aiohttp handler so every request goes through the engine.

        Usage:
            app.router.add_route("*", "/{path:.*}", engine.handler(router))
        """
        from redirex.server.handler import RewriteHandler

        return RewriteHandler(self, next_handler).handle


def load_engine(path: str | Path) -> RewriteEngine:
    """Load an options file and build an engine.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigError: If the file cannot be decoded or validated.
        RuleCompileError: If any rule line is invalid.
    """
    return RewriteEngine.from_file(path)
