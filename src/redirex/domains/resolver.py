"""Redirex Domain Resolver.

Host/port string handling and registrable-domain (eTLD+1) lookup.
All host arithmetic used by subdomain canonicalization lives here so the
public suffix data source can change without touching the engine.

Examples:
    >>> root_domain("www.mydomain.com:8080")
    'mydomain.com'
    >>> root_domain("127.0.0.1:8080")
    'localhost'
    >>> get_port("mydomain.com:8080")
    ':8080'
"""

from __future__ import annotations

from functools import lru_cache
from ipaddress import ip_address

import tldextract

LOCALHOST = "localhost"

LOOPBACK_HOSTS = frozenset(
    {
        "localhost",
        "127.0.0.1",
        "0.0.0.0",
        "::1",
        "[::1]",
        "0:0:0:0:0:0:0:0",
        "0:0:0:0:0:0:0:1",
    }
)


def split_host_port(hostport: str) -> tuple[str, str]:
    """Split "host:port" or "[host]:port" into host and port.

    Args:
        hostport: Host with a port suffix.

    Returns:
        Tuple of (host, port). Brackets around IPv6 hosts are removed.

    Raises:
        ValueError: If there is no port, or the address is ambiguous.

    Examples:
        >>> split_host_port("example.com:80")
        ('example.com', '80')
        >>> split_host_port("[::1]:8080")
        ('::1', '8080')
    """
    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0:
            raise ValueError(f"missing ']' in address: {hostport}")
        rest = hostport[end + 1 :]
        if not rest.startswith(":"):
            raise ValueError(f"missing port in address: {hostport}")
        host, port = hostport[1:end], rest[1:]
    else:
        colons = hostport.count(":")
        if colons == 0:
            raise ValueError(f"missing port in address: {hostport}")
        if colons > 1:
            raise ValueError(f"too many colons in address: {hostport}")
        host, port = hostport.split(":", 1)

    if "[" in host or "]" in host or "[" in port or "]" in port:
        raise ValueError(f"unexpected bracket in address: {hostport}")
    return host, port


def strip_port(hostport: str) -> str:
    """Return the host part of hostport, or hostport itself if it has no port."""
    try:
        host, _ = split_host_port(hostport)
    except ValueError:
        return hostport
    return host


def get_port(hostport: str) -> str:
    """Return the ":port" suffix of hostport, or "" if there is none.

    Examples:
        >>> get_port("mydomain.com:8080")
        ':8080'
        >>> get_port("mydomain.com")
        ''
    """
    if hostport.startswith("["):
        end = hostport.find("]:")
        return hostport[end + 1 :] if end > 0 else ""
    index = hostport.find(":")
    if index > 0:
        return hostport[index:]
    return ""


def is_loopback(host: str) -> bool:
    """Check if host (without port) is one of the loopback spellings."""
    return host in LOOPBACK_HOSTS


def is_ip_address(host: str) -> bool:
    """Check if host (without port) is an IPv4 or IPv6 literal."""
    try:
        ip_address(host.strip("[]"))
    except ValueError:
        return False
    return True


class DomainResolver:
    """Computes registrable root domains from host[:port] strings.

    Uses the public suffix snapshot bundled with tldextract (ICANN and
    private sections). No network fetch is ever attempted.
    """

    def __init__(self, extractor: tldextract.TLDExtract | None = None) -> None:
        self._extract = extractor or tldextract.TLDExtract(
            cache_dir=None,
            suffix_list_urls=(),
            include_psl_private_domains=True,
        )

    def registrable_domain(self, host: str) -> str | None:
        """Return the eTLD+1 of host, or None if it cannot be derived.

        Hosts under a TLD missing from the list follow the implicit "*"
        rule: the last label is treated as the public suffix.
        """
        if not host or host.startswith(".") or host.endswith(".") or ".." in host:
            return None
        if is_ip_address(host):
            return None

        parts = self._extract(host)
        if not parts.suffix:
            labels = host.split(".")
            if len(labels) < 2:
                return None
            return ".".join(labels[-2:])
        if not parts.domain:
            return None

        domain = f"{parts.domain}.{parts.suffix}"
        tail = host[-len(domain) :]
        # Keep the caller's casing so suffix trimming on hostport lines up.
        if tail.lower() == domain.lower():
            return tail
        return domain

    def root_domain(self, hostport: str) -> str:
        """Return the root domain of hostport.

        Loopback hosts return the literal "localhost". If no registrable
        domain can be derived the host is returned unchanged.
        """
        host = strip_port(hostport)
        if is_loopback(host):
            return LOCALHOST
        return self.registrable_domain(host) or host


@lru_cache(maxsize=1)
def default_resolver() -> DomainResolver:
    """Shared resolver backed by the bundled public suffix snapshot."""
    return DomainResolver()


def root_domain(hostport: str) -> str:
    """Return the root domain of hostport using the default resolver."""
    return default_resolver().root_domain(hostport)
