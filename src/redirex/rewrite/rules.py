"""Redirex Rule Compiler.

Compiles one-line redirect rules of the form::

    <STATUS_CODE> <PATTERN> <TARGET>

into immutable CompiledRule instances.

- STATUS_CODE: ASCII digits only. 0 means "internal rewrite", no response
  is sent and the request continues with the rewritten target.
- PATTERN: a regular expression. A leading "/" makes it a path matcher,
  anything else is matched against the full absolute URL.
- TARGET: replacement template with $1, ${1}, $name and ${name}
  back-references ($$ is a literal dollar).

Example:
    rule = compile_rule("301 /seo/(.*) /$1")
    rule.match_and_replace("/seo/about")  # "/about"
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from redirex.core.exceptions import (
    InvalidPatternError,
    InvalidStatusCodeError,
    MalformedLineError,
    RedirectLoopError,
)


class MatchScope(Enum):
    """What a rule pattern is matched against."""

    PATH = "path"
    URL = "url"


class RuleMode(Enum):
    """How a matching rule is applied."""

    REDIRECT = "redirect"
    REWRITE = "rewrite"


@dataclass(frozen=True)
class CompiledRule:
    """A compiled redirect/rewrite rule.

    Scope and mode are derived once at compile time and never re-inferred
    from the pattern string while serving requests.
    """

    status_code: int
    pattern: re.Pattern[str]
    target: str
    scope: MatchScope
    mode: RuleMode
    line: str = ""

    @property
    def is_relative(self) -> bool:
        """True when the rule matches against the request path only."""
        return self.scope is MatchScope.PATH

    @property
    def is_internal_rewrite(self) -> bool:
        """True when the rule rewrites the request without responding."""
        return self.mode is RuleMode.REWRITE

    @property
    def has_redirect_status(self) -> bool:
        """False for redirect rules whose code is not a 3xx status."""
        return self.is_internal_rewrite or 300 <= self.status_code <= 399

    def match_and_replace(self, subject: str) -> str | None:
        """Apply the rule to a subject string.

        Every match of the pattern in the subject is replaced with the
        expanded target template. An empty match right after a previous
        match is not replaced, so "(.*)" expands once, not twice.

        Args:
            subject: Request path or absolute URL, depending on scope.

        Returns:
            The produced target, or None if the pattern does not match or
            the replacement is empty.
        """
        out: list[str] = []
        last = 0
        previous_end = -1
        for match in self.pattern.finditer(subject):
            start, end = match.span()
            if start == end == previous_end:
                continue
            out.append(subject[last:start])
            out.append(expand_template(self.target, match))
            last = previous_end = end

        if not out:
            return None
        out.append(subject[last:])
        return "".join(out) or None

    def to_dict(self) -> dict[str, Any]:
        """Convert rule to dictionary for display and serialization."""
        return {
            "line": self.line,
            "status_code": self.status_code,
            "pattern": self.pattern.pattern,
            "target": self.target,
            "scope": self.scope.value,
            "mode": self.mode.value,
        }


def _is_name_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def _extract_name(template: str, start: int) -> tuple[str, int] | None:
    """Read a back-reference name starting right after a "$".

    Returns the name and the index just past it (past the closing brace for
    the ${name} form), or None when no valid name follows.
    """
    i = start
    brace = i < len(template) and template[i] == "{"
    if brace:
        i += 1
    name_start = i
    while i < len(template) and _is_name_char(template[i]):
        i += 1
    if i == name_start:
        return None
    name = template[name_start:i]
    if brace:
        if i >= len(template) or template[i] != "}":
            return None
        i += 1
    return name, i


def _group_value(match: re.Match[str], name: str) -> str:
    if name.isascii() and name.isdigit():
        # Leading zeros are not group indexes.
        if len(name) > 1 and name[0] == "0":
            return ""
        index = int(name)
        if index > match.re.groups:
            return ""
        return match.group(index) or ""
    if name in match.re.groupindex:
        return match.group(name) or ""
    return ""


def expand_template(template: str, match: re.Match[str]) -> str:
    """Expand $-style back-references in a target template.

    A name is the longest run of letters, digits and underscores after the
    "$"; wrap it in braces to delimit it ("${1}x"). Unknown or unmatched
    groups expand to "". A "$" not followed by a valid name is kept as-is.

    Args:
        template: The rule target.
        match: The pattern match providing the groups.

    Returns:
        The expanded string.
    """
    out: list[str] = []
    i = 0
    while i < len(template):
        dollar = template.find("$", i)
        if dollar < 0:
            out.append(template[i:])
            break
        out.append(template[i:dollar])
        i = dollar + 1

        if i < len(template) and template[i] == "$":
            out.append("$")
            i += 1
            continue

        extracted = _extract_name(template, i)
        if extracted is None:
            out.append("$")
            continue
        name, i = extracted
        out.append(_group_value(match, name))
    return "".join(out)


def compile_rule(line: str) -> CompiledRule:
    """Compile a single rule line.

    Any all-digit CODE is accepted. Codes outside 3xx compile but are sent
    as-is, and non three-digit codes cannot form a valid status line; see
    CompiledRule.has_redirect_status.

    Args:
        line: Rule of form "CODE PATTERN TARGET", tokens separated by
            single spaces.

    Returns:
        The compiled rule.

    Raises:
        MalformedLineError: If the line is not exactly three tokens.
        InvalidStatusCodeError: If CODE contains a non-digit.
        InvalidPatternError: If PATTERN is not a valid regular expression.
        RedirectLoopError: If PATTERN matches TARGET itself.
    """
    parts = line.strip().split(" ")
    if len(parts) != 3 or not all(parts):
        raise MalformedLineError(line)

    code_str, pattern, target = parts

    for position, ch in enumerate(code_str):
        if not ("0" <= ch <= "9"):
            raise InvalidStatusCodeError(line, code_str, position, ch)
    code = int(code_str)

    try:
        regex = re.compile(pattern)
    except re.error as e:
        raise InvalidPatternError(line, pattern, str(e)) from e

    if regex.search(target):
        raise RedirectLoopError(line, pattern, target)

    return CompiledRule(
        status_code=code,
        pattern=regex,
        target=target,
        scope=MatchScope.PATH if pattern[0] == "/" else MatchScope.URL,
        mode=RuleMode.REWRITE if code <= 0 else RuleMode.REDIRECT,
        line=line,
    )


def compile_rules(lines: Iterable[str]) -> tuple[CompiledRule, ...]:
    """Compile rule lines in declaration order.

    The first invalid line aborts compilation.

    Raises:
        RuleCompileError: For the first line that fails to compile.
    """
    return tuple(compile_rule(line) for line in lines)
