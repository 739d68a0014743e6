"""Redirex exception hierarchy.

Compile-time errors (raised while building an engine from rule lines) are
fatal: an engine never starts with a partially valid rule set. The only
runtime failure, an unparsable internal-rewrite target, is reported to the
client as a 421 response and never escapes the request.
"""

from __future__ import annotations


class RedirexError(Exception):
    """Base class for all redirex errors."""


class ConfigError(RedirexError, ValueError):
    """Options file could not be read, decoded or validated."""


class RuleCompileError(RedirexError, ValueError):
    """A rule line could not be compiled."""

    def __init__(self, message: str, line: str) -> None:
        super().__init__(message)
        self.line = line


class MalformedLineError(RuleCompileError):
    """Rule line does not split into exactly CODE PATTERN TARGET."""

    def __init__(self, line: str) -> None:
        super().__init__(f"redirect match: invalid line: {line}", line)


class InvalidStatusCodeError(RuleCompileError):
    """Status code token contains a non-digit character."""

    def __init__(self, line: str, code: str, position: int, char: str) -> None:
        super().__init__(
            f"redirect match: status code digits: {code} [{position}:{char}]", line
        )
        self.code = code
        self.position = position
        self.char = char


class InvalidPatternError(RuleCompileError):
    """Pattern token is not a valid regular expression."""

    def __init__(self, line: str, pattern: str, reason: str) -> None:
        super().__init__(f"redirect match: invalid pattern: {pattern}: {reason}", line)
        self.pattern = pattern


class RedirectLoopError(RuleCompileError):
    """Rule target would be matched again by its own pattern."""

    def __init__(self, line: str, pattern: str, target: str) -> None:
        super().__init__(
            f"redirect match: loop detected: pattern: {pattern} vs target: {target}", line
        )
        self.pattern = pattern
        self.target = target


class TargetParseError(RedirexError, ValueError):
    """Internal-rewrite target is not a valid URI reference."""

    def __init__(self, target: str, reason: str) -> None:
        super().__init__(f"parse {target!r}: {reason}")
        self.target = target
        self.reason = reason


def format_error_for_user(error: BaseException) -> str:
    """Render an error as a single line suitable for terminal output."""
    if isinstance(error, RuleCompileError):
        return f"{error} (line: {error.line!r})"
    if isinstance(error, RedirexError):
        return str(error)
    return f"{type(error).__name__}: {error}"
