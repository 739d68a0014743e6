"""Redirex Subdomain Canonicalizer.

Forces root-domain traffic onto one primary subdomain:

    mydomain.com:8080/about      -> 301 http://www.mydomain.com:8080/about
    www.mydomain.com:8080/about  -> host presented as mydomain.com:8080
    test.mydomain.com:8080/about -> untouched

Loopback hosts (and IP literals) are never canonicalized; use a virtual
host entry when testing locally.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from http import HTTPStatus

from redirex.core.request import RequestView
from redirex.domains.resolver import (
    LOCALHOST,
    DomainResolver,
    default_resolver,
    get_port,
    is_ip_address,
)


class CanonicalOutcome(Enum):
    """What the canonicalizer did to a request."""

    DISABLED = "disabled"
    SKIPPED = "skipped"
    REDIRECT = "redirect"
    NORMALIZED = "normalized"
    UNCHANGED = "unchanged"


@dataclass
class CanonicalResult:
    """Result of canonicalizing one request."""

    outcome: CanonicalOutcome
    root: str = ""
    subdomain: str = ""
    host: str = ""
    location: str | None = None
    status: int | None = None

    @property
    def is_terminal(self) -> bool:
        """True when a redirect must be sent and processing must stop."""
        return self.outcome is CanonicalOutcome.REDIRECT


def normalize_primary_subdomain(value: str | None) -> str:
    """Append the label separator: "www" -> "www.". Empty stays empty."""
    if value and not value.endswith("."):
        return value + "."
    return value or ""


def is_canonicalizable(root: str) -> bool:
    """Default domain validator: loopback and IP roots are left alone."""
    return not root.endswith(LOCALHOST) and not is_ip_address(root)


class SubdomainCanonicalizer:
    """Redirects bare root-domain requests to the primary subdomain."""

    def __init__(
        self,
        primary_subdomain: str,
        resolver: DomainResolver | None = None,
        domain_validator: Callable[[str], bool] = is_canonicalizable,
    ) -> None:
        self.primary_subdomain = normalize_primary_subdomain(primary_subdomain)
        self._resolver = resolver or default_resolver()
        self._domain_validator = domain_validator

    @property
    def enabled(self) -> bool:
        return bool(self.primary_subdomain)

    def apply(self, view: RequestView) -> CanonicalResult:
        """Canonicalize the view's host in place.

        Args:
            view: The request view; its host is rewritten on REDIRECT and
                NORMALIZED outcomes.

        Returns:
            CanonicalResult describing the outcome. On REDIRECT, `location`
            is the absolute URL to send with a 301.
        """
        if not self.enabled:
            return CanonicalResult(outcome=CanonicalOutcome.DISABLED)

        hostport = view.effective_host()
        root = self._resolver.root_domain(hostport)

        if not self._domain_validator(root):
            return CanonicalResult(outcome=CanonicalOutcome.SKIPPED, root=root, host=hostport)

        root += get_port(hostport)
        subdomain = hostport.removesuffix(root)

        if subdomain == "":
            new_host = self.primary_subdomain + root
            view.set_host(new_host)
            return CanonicalResult(
                outcome=CanonicalOutcome.REDIRECT,
                root=root,
                subdomain=subdomain,
                host=new_host,
                location=view.absolute_url(),
                status=int(HTTPStatus.MOVED_PERMANENTLY),
            )

        if subdomain == self.primary_subdomain:
            root_host = hostport.removeprefix(subdomain)
            view.set_host(root_host)
            return CanonicalResult(
                outcome=CanonicalOutcome.NORMALIZED,
                root=root,
                subdomain=subdomain,
                host=root_host,
            )

        return CanonicalResult(
            outcome=CanonicalOutcome.UNCHANGED, root=root, subdomain=subdomain, host=hostport
        )
