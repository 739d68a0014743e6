"""Redirex Rewrite Rules.

Features:
- One-line "CODE PATTERN TARGET" rules compiled at startup
- Path and full-URL matching
- External redirects and internal rewrites
- First matching rule wins
"""

from redirex.rewrite.engine import (
    EngineConfig,
    RewriteAction,
    RewriteEngine,
    RewriteResult,
    apply_rewrite_target,
    load_engine,
    parse_rewrite_target,
    resolve_redirect_location,
)
from redirex.rewrite.rules import (
    CompiledRule,
    MatchScope,
    RuleMode,
    compile_rule,
    compile_rules,
    expand_template,
)

__all__ = [
    "CompiledRule",
    "EngineConfig",
    "MatchScope",
    "RewriteAction",
    "RewriteEngine",
    "RewriteResult",
    "RuleMode",
    "apply_rewrite_target",
    "compile_rule",
    "compile_rules",
    "expand_template",
    "load_engine",
    "parse_rewrite_target",
    "resolve_redirect_location",
]
