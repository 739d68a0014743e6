"""Tests for the rule compiler and template expansion."""

from __future__ import annotations

import re

import pytest

from redirex.core.exceptions import (
    InvalidPatternError,
    InvalidStatusCodeError,
    MalformedLineError,
    RedirectLoopError,
    RuleCompileError,
)
from redirex.rewrite.rules import (
    CompiledRule,
    MatchScope,
    RuleMode,
    compile_rule,
    compile_rules,
    expand_template,
)


class TestCompileRule:
    """Test compile_rule parsing."""

    def test_path_redirect_rule(self) -> None:
        """Test a relative redirect rule."""
        rule = compile_rule("301 /seo/(.*) /$1")
        assert rule.status_code == 301
        assert rule.pattern.pattern == "/seo/(.*)"
        assert rule.target == "/$1"
        assert rule.scope is MatchScope.PATH
        assert rule.mode is RuleMode.REDIRECT
        assert rule.is_relative is True
        assert rule.is_internal_rewrite is False
        assert rule.line == "301 /seo/(.*) /$1"

    def test_url_rule(self) -> None:
        """Test that patterns not starting with / match the full URL."""
        rule = compile_rule(r"301 ^http://test\.(.*) http://newtest.$1")
        assert rule.scope is MatchScope.URL
        assert rule.is_relative is False

    def test_zero_code_is_internal_rewrite(self) -> None:
        """Test that code 0 marks an internal rewrite."""
        rule = compile_rule(r"0 /(.*)\.(json|xml) /$1?format=$2")
        assert rule.status_code == 0
        assert rule.mode is RuleMode.REWRITE
        assert rule.is_internal_rewrite is True

    def test_zero_padded_code(self) -> None:
        """Test that all-zero codes are still internal rewrites."""
        rule = compile_rule("000 /a /b")
        assert rule.status_code == 0
        assert rule.is_internal_rewrite is True

    def test_surrounding_whitespace_is_stripped(self) -> None:
        """Test that leading and trailing whitespace is ignored."""
        rule = compile_rule("  302 /old /new \n")
        assert rule.status_code == 302
        assert rule.target == "/new"

    @pytest.mark.parametrize(
        "line",
        [
            "",
            "301",
            "301 /a",
            "301 /a /b /c",
            "301  /a /b",
        ],
    )
    def test_malformed_lines(self, line: str) -> None:
        """Test that anything but three single-space separated tokens fails."""
        with pytest.raises(MalformedLineError) as exc_info:
            compile_rule(line)
        assert "redirect match: invalid line" in str(exc_info.value)
        assert exc_info.value.line == line

    def test_non_digit_status_code(self) -> None:
        """Test that the offending character and position are reported."""
        with pytest.raises(InvalidStatusCodeError) as exc_info:
            compile_rule("30x /a /b")
        error = exc_info.value
        assert error.position == 2
        assert error.char == "x"
        assert str(error) == "redirect match: status code digits: 30x [2:x]"

    def test_negative_status_code_rejected(self) -> None:
        """Test that a minus sign is not a digit."""
        with pytest.raises(InvalidStatusCodeError) as exc_info:
            compile_rule("-1 /a /b")
        assert exc_info.value.position == 0
        assert exc_info.value.char == "-"

    def test_invalid_pattern(self) -> None:
        """Test that regex syntax errors fail compilation."""
        with pytest.raises(InvalidPatternError) as exc_info:
            compile_rule("301 /a(b /c")
        assert exc_info.value.pattern == "/a(b"

    def test_loop_detected(self) -> None:
        """Test that a target matched by its own pattern is rejected."""
        with pytest.raises(RedirectLoopError) as exc_info:
            compile_rule("301 /(.*) /new/$1")
        assert "loop detected" in str(exc_info.value)
        assert exc_info.value.target == "/new/$1"

    def test_pattern_matching_empty_string_always_loops(self) -> None:
        """Test that a pattern able to match nothing is a loop."""
        with pytest.raises(RedirectLoopError):
            compile_rule("301 x* /y")

    def test_errors_are_rule_compile_errors(self) -> None:
        """Test the shared base class."""
        for line in ("bad", "3a1 /a /b", "301 [ /b", "301 /a /a"):
            with pytest.raises(RuleCompileError):
                compile_rule(line)


class TestCompileRules:
    """Test compiling rule lists."""

    def test_preserves_order(self) -> None:
        """Test that rules keep declaration order."""
        rules = compile_rules(["301 /a /b", "302 /c /d", "0 /e /f"])
        assert [rule.status_code for rule in rules] == [301, 302, 0]
        assert isinstance(rules, tuple)

    def test_empty(self) -> None:
        """Test an empty rule list."""
        assert compile_rules([]) == ()

    def test_first_error_aborts(self) -> None:
        """Test that one bad line fails the whole set."""
        with pytest.raises(InvalidStatusCodeError):
            compile_rules(["301 /a /b", "abc /c /d", "301 /e"])


class TestMatchAndReplace:
    """Test applying a compiled rule to a subject."""

    def test_seo_rule(self) -> None:
        """Test stripping a path prefix."""
        rule = compile_rule("301 /seo/(.*) /$1")
        assert rule.match_and_replace("/seo/about") == "/about"

    def test_docs_rule(self) -> None:
        """Test a rule without back-references."""
        rule = compile_rule("301 /docs/v12(.*) /docs")
        assert rule.match_and_replace("/docs/v12/hello") == "/docs"

    def test_format_rule(self) -> None:
        """Test a two group rewrite into a query string."""
        rule = compile_rule(r"0 /(.*)\.(json|xml) /$1?format=$2")
        assert rule.match_and_replace("/users.json") == "/users?format=json"
        assert rule.match_and_replace("/feed.xml") == "/feed?format=xml"

    def test_url_rule(self) -> None:
        """Test a full URL rule keeps the rest of the URL."""
        rule = compile_rule(r"301 ^http://test\.(.*) http://newtest.$1")
        result = rule.match_and_replace("http://test.mydomain.com:8080/about?x=1")
        assert result == "http://newtest.mydomain.com:8080/about?x=1"

    def test_no_match(self) -> None:
        """Test that a non-matching subject returns None."""
        rule = compile_rule("301 /seo/(.*) /$1")
        assert rule.match_and_replace("/about") is None

    def test_unanchored_match_keeps_surrounding_text(self) -> None:
        """Test that unmatched text around the match is kept."""
        rule = compile_rule("301 /old/ /new/")
        assert rule.match_and_replace("/base/old/page") == "/base/new/page"

    def test_every_match_replaced(self) -> None:
        """Test that all non-overlapping matches are replaced."""
        rule = compile_rule("301 /a- /b-")
        assert rule.match_and_replace("/a-/a-x") == "/b-/b-x"

    def test_empty_match_after_match_skipped(self) -> None:
        """Test that (.*) expands once, not once more at the end."""
        rule = CompiledRule(301, re.compile("(.*)"), "[$1]", MatchScope.URL, RuleMode.REDIRECT)
        assert rule.match_and_replace("abc") == "[abc]"

    def test_empty_matches_between_characters(self) -> None:
        """Test empty matches at every position."""
        rule = CompiledRule(301, re.compile("x*"), "-", MatchScope.URL, RuleMode.REDIRECT)
        assert rule.match_and_replace("abc") == "-a-b-c-"

    def test_empty_result_is_no_match(self) -> None:
        """Test that an empty produced target counts as no match."""
        rule = CompiledRule(301, re.compile("^/a$"), "", MatchScope.PATH, RuleMode.REDIRECT)
        assert rule.match_and_replace("/a") is None

    @pytest.mark.parametrize(
        "line,expected",
        [
            ("301 /a /b", True),
            ("308 /a /b", True),
            ("0 /a /b", True),
            ("1 /a /b", False),
            ("200 /a /b", False),
            ("1000 /a /b", False),
        ],
    )
    def test_has_redirect_status(self, line: str, expected: bool) -> None:
        """Test that only 3xx codes and internal rewrites are flagged as usable."""
        assert compile_rule(line).has_redirect_status is expected

    def test_to_dict(self) -> None:
        """Test dictionary form."""
        data = compile_rule("301 /seo/(.*) /$1").to_dict()
        assert data == {
            "line": "301 /seo/(.*) /$1",
            "status_code": 301,
            "pattern": "/seo/(.*)",
            "target": "/$1",
            "scope": "path",
            "mode": "redirect",
        }


class TestExpandTemplate:
    """Test $-style back-reference expansion."""

    @pytest.fixture
    def match(self) -> re.Match[str]:
        result = re.search(r"(?P<first>[a-z]+)-(\d+)(z)?", "abc-12")
        assert result is not None
        return result

    @pytest.mark.parametrize(
        "template,expected",
        [
            ("$1", "abc"),
            ("$2", "12"),
            ("${1}", "abc"),
            ("${2}x", "12x"),
            ("$first", "abc"),
            ("${first}/", "abc/"),
            ("/$1/$2", "/abc/12"),
            ("$$1", "$1"),
            ("$9", ""),
            ("$3", ""),
            ("$01", ""),
            ("$2x", ""),
            ("$missing", ""),
            ("cost$", "cost$"),
            ("a$-b", "a$-b"),
            ("${1", "${1"),
            ("no refs", "no refs"),
        ],
    )
    def test_expansion(self, match: re.Match[str], template: str, expected: str) -> None:
        """Test template expansion cases."""
        assert expand_template(template, match) == expected

    def test_group_zero(self, match: re.Match[str]) -> None:
        """Test that $0 is the whole match."""
        assert expand_template("$0", match) == "abc-12"
