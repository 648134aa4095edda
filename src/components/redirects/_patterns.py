"""
Pattern compilation and matching.

Pattern syntax:
- ":name*"  named wildcard, captures zero or more chars including "/"
- ":name"   parameter, captures one or more chars excluding "/"
- "*"       bare wildcard, captured as "_splat0", "_splat1", ... left to right

Everything else is literal text. Patterns are tokenized left to right and
the literal segments are escaped, so user text never becomes regex syntax.
Compiled patterns are memoized by raw pattern text; the owner clears the
memo whenever the rule table changes.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

TOKEN_RE = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)(\*)?|\*")

SPLAT_PREFIX = "_splat"
SPLAT_ALIAS = "splat"


@dataclass(frozen=True)
class CompiledPattern:
    """Anchored matcher plus parameter metadata for one pattern string."""

    pattern: str
    regex: re.Pattern[str]
    group_names: tuple[str, ...]
    param_names: tuple[str, ...]
    wildcard_params: tuple[str, ...]
    star_positions: tuple[int, ...]


def compile_pattern(pattern: str) -> CompiledPattern:
    """Compile a pattern string without consulting any cache."""
    parts: list[str] = []
    group_names: list[str] = []
    param_names: list[str] = []
    wildcard_params: list[str] = []
    star_positions: list[int] = []

    pos = 0
    for token in TOKEN_RE.finditer(pattern):
        parts.append(re.escape(pattern[pos : token.start()]))
        pos = token.end()

        name, star = token.group(1), token.group(2)
        if name is None:
            name = f"{SPLAT_PREFIX}{len(star_positions)}"
            star_positions.append(token.start())
            parts.append("(.*)")
        elif star:
            if name not in wildcard_params:
                wildcard_params.append(name)
            parts.append("(.*)")
        else:
            parts.append("([^/]+)")

        group_names.append(name)
        if name not in param_names:
            param_names.append(name)

    parts.append(re.escape(pattern[pos:]))

    return CompiledPattern(
        pattern=pattern,
        regex=re.compile(r"\A" + "".join(parts) + r"\Z", re.IGNORECASE),
        group_names=tuple(group_names),
        param_names=tuple(param_names),
        wildcard_params=tuple(wildcard_params),
        star_positions=tuple(star_positions),
    )


class PatternCompiler:
    """Memoizing compiler; one instance per RedirectService."""

    def __init__(self) -> None:
        self._compiled: dict[str, CompiledPattern] = {}

    def __len__(self) -> int:
        return len(self._compiled)

    def compile(self, pattern: str) -> CompiledPattern:
        cached = self._compiled.get(pattern)
        if cached is not None:
            return cached

        compiled = compile_pattern(pattern)
        self._compiled[pattern] = compiled
        logger.debug("Compiled and cached pattern %s (cache size %d)", pattern, len(self._compiled))
        return compiled

    def match(self, candidate: str, pattern: str) -> dict[str, str] | None:
        """
        Match candidate against pattern.

        Returns captured params (empty string for groups that captured
        nothing), or None when the pattern does not match. Any "_splatN"
        binding is mirrored into "splat", which holds the last one.
        """
        compiled = self.compile(pattern)
        found = compiled.regex.match(candidate)
        if found is None:
            return None

        params: dict[str, str] = {}
        for name, value in zip(compiled.group_names, found.groups(), strict=True):
            params[name] = value or ""
            if name.startswith(SPLAT_PREFIX):
                params[SPLAT_ALIAS] = params[name]
        return params

    def clear(self) -> int:
        """Forget every compiled pattern; returns how many were dropped."""
        size = len(self._compiled)
        self._compiled.clear()
        logger.info("Pattern cache cleared (%d patterns)", size)
        return size
