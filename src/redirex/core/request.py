"""Minimal per-request view consumed by the rewrite engine."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote, unquote, urlsplit

SCHEME_HTTP = "http"
SCHEME_HTTPS = "https"

# Characters left unescaped when rebuilding a path for the request URI.
_PATH_SAFE = "/:@!$&'()*+,;=-._~%"


@dataclass
class RequestView:
    """Mutable view of one inbound request.

    `host` is the transport-reported Host value; `url_host` is only set
    when the request line carried an absolute URL (or after the engine
    changed the host). `path` is decoded; `raw_path`, when known, is the
    path exactly as received.
    """

    method: str = "GET"
    host: str = ""
    path: str = "/"
    query: str = ""
    scheme: str = ""
    tls: bool = False
    url_host: str = ""
    raw_path: str | None = None

    def effective_host(self) -> str:
        return self.url_host or self.host

    def effective_scheme(self) -> str:
        if self.scheme:
            return self.scheme
        return SCHEME_HTTPS if self.tls else SCHEME_HTTP

    def escaped_path(self) -> str:
        if self.raw_path is not None and unquote(self.raw_path) == self.path:
            return self.raw_path
        return quote(self.path, safe=_PATH_SAFE)

    def request_uri(self) -> str:
        """Path plus "?query" when a query is present."""
        path = self.escaped_path() or "/"
        if self.query:
            return f"{path}?{self.query}"
        return path

    def absolute_url(self) -> str:
        """Full "scheme://host[:port]/path?query" form of the request."""
        return f"{self.effective_scheme()}://{self.effective_host()}{self.request_uri()}"

    def set_host(self, host: str) -> None:
        self.host = host
        self.url_host = host

    @classmethod
    def from_url(cls, url: str, method: str = "GET") -> RequestView:
        """Build a view from an absolute URL such as "http://example.com/a?b=1"."""
        parts = urlsplit(url)
        return cls(
            method=method.upper(),
            host=parts.netloc,
            path=unquote(parts.path) or "/",
            query=parts.query,
            scheme=parts.scheme,
            tls=parts.scheme == SCHEME_HTTPS,
            raw_path=parts.path or "/",
        )
