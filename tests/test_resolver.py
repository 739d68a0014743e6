"""Tests for host parsing and root domain lookup."""

from __future__ import annotations

import pytest

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


class TestSplitHostPort:
    """Test host/port splitting."""

    def test_host_and_port(self):
        assert split_host_port("example.com:80") == ("example.com", "80")

    def test_ipv6(self):
        assert split_host_port("[::1]:8080") == ("::1", "8080")

    def test_empty_port(self):
        assert split_host_port("example.com:") == ("example.com", "")

    @pytest.mark.parametrize("hostport", ["example.com", "::1", "[::1]", "[::1:8080", "a:b:c"])
    def test_invalid(self, hostport):
        with pytest.raises(ValueError):
            split_host_port(hostport)

    def test_strip_port(self):
        assert strip_port("example.com:8080") == "example.com"
        assert strip_port("example.com") == "example.com"
        assert strip_port("[::1]:8080") == "::1"


class TestGetPort:
    """Test port suffix extraction."""

    @pytest.mark.parametrize(
        "hostport,expected",
        [
            ("mydomain.com:8080", ":8080"),
            ("mydomain.com", ""),
            ("[::1]:8080", ":8080"),
            ("[::1]", ""),
            ("", ""),
        ],
    )
    def test_get_port(self, hostport, expected):
        assert get_port(hostport) == expected


class TestHostChecks:
    """Test loopback and IP detection."""

    @pytest.mark.parametrize(
        "host",
        ["localhost", "127.0.0.1", "0.0.0.0", "::1", "[::1]", "0:0:0:0:0:0:0:1"],
    )
    def test_loopback(self, host):
        assert is_loopback(host) is True

    def test_not_loopback(self):
        assert is_loopback("example.com") is False
        assert is_loopback("127.0.0.2") is False

    def test_ip_address(self):
        assert is_ip_address("10.0.0.1") is True
        assert is_ip_address("2001:db8::1") is True
        assert is_ip_address("[2001:db8::1]") is True
        assert is_ip_address("example.com") is False


class TestRootDomain:
    """Test registrable domain lookup."""

    @pytest.mark.parametrize(
        "hostport,expected",
        [
            ("mydomain.com", "mydomain.com"),
            ("www.mydomain.com:8080", "mydomain.com"),
            ("a.b.c.mydomain.com", "mydomain.com"),
            ("www.example.co.uk", "example.co.uk"),
            ("example.co.uk:443", "example.co.uk"),
            ("user.github.io", "user.github.io"),
            ("app.example.notarealtld", "example.notarealtld"),
        ],
    )
    def test_registrable_domain(self, hostport, expected):
        assert root_domain(hostport) == expected

    @pytest.mark.parametrize(
        "hostport",
        ["localhost", "localhost:8080", "127.0.0.1:8080", "0.0.0.0:80", "[::1]:8080", "::1"],
    )
    def test_loopback_is_localhost(self, hostport):
        assert root_domain(hostport) == LOCALHOST

    @pytest.mark.parametrize(
        "hostport,expected",
        [
            ("192.168.1.10:8080", "192.168.1.10"),
            ("[2001:db8::1]:8080", "2001:db8::1"),
            ("intranet", "intranet"),
            ("com", "com"),
            ("bad..host.com", "bad..host.com"),
        ],
    )
    def test_fallback_returns_host(self, hostport, expected):
        assert root_domain(hostport) == expected

    def test_preserves_case(self):
        """Test that the caller's casing survives the lookup."""
        assert root_domain("WWW.MyDomain.COM") == "MyDomain.COM"

    def test_default_resolver_is_shared(self):
        assert default_resolver() is default_resolver()

    def test_custom_resolver(self):
        resolver = DomainResolver()
        assert resolver.root_domain("shop.example.com:9000") == "example.com"
        assert resolver.registrable_domain("127.0.0.1") is None
