"""Redirex Domain Handling.

Root domain lookup and primary subdomain canonicalization.

Usage:
    from redirex.domains import SubdomainCanonicalizer, root_domain

    root_domain("www.example.co.uk:8080")  # "example.co.uk"

    canonicalizer = SubdomainCanonicalizer("www")
    result = canonicalizer.apply(view)
"""

from redirex.domains.canonical import (
    CanonicalOutcome,
    CanonicalResult,
    SubdomainCanonicalizer,
    is_canonicalizable,
    normalize_primary_subdomain,
)
from redirex.domains.resolver import (
    LOCALHOST,
    DomainResolver,
    default_resolver,
    get_port,
    is_ip_address,
    is_loopback,
    root_domain,
    split_host_port,
    strip_port,
)

__all__ = [
    "LOCALHOST",
    "CanonicalOutcome",
    "CanonicalResult",
    "DomainResolver",
    "SubdomainCanonicalizer",
    "default_resolver",
    "get_port",
    "is_canonicalizable",
    "is_ip_address",
    "is_loopback",
    "normalize_primary_subdomain",
    "root_domain",
    "split_host_port",
    "strip_port",
]
