"""
L1 Domain — Extension identifier parsing (pure).

Turns ``<kind>:<name>[@<version>]`` tokens into ``ExtensionRequest``
objects. Never consults the registry: an identifier can be well-formed
and still name an extension nobody knows about.
"""

from __future__ import annotations

import re

from extinstall.core.errors import UsageError
from extinstall.core.models.extension import STABLE_CHANNEL, ExtensionRequest

GRAMMAR = "<kind>:<name>[@<version>]"
KINDS = ("builtin", "pecl")

# gd, pdo_mysql; never foo__bar or _foo
_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9]*(?:_[A-Za-z][A-Za-z0-9]*)*$")
_VERSION_RE = re.compile(r"^\d+\.\d+\.\d+$")


def parse_identifier(token: str) -> ExtensionRequest:
    """Parse one identifier.

    Raises:
        UsageError: The token is malformed; the message names it and
            the expected grammar.
    """
    problem = _problem(token)
    if problem:
        raise UsageError([problem])

    kind, rest = token.split(":", 1)
    name, _, version = rest.partition("@")
    if version == STABLE_CHANNEL:
        version = ""
    return ExtensionRequest(kind=kind, name=name, version=version or None)


def parse_identifiers(tokens: list[str]) -> list[ExtensionRequest]:
    """Parse every token, preserving order.

    All tokens are checked before anything is reported, so one
    ``UsageError`` lists every malformed identifier.

    Raises:
        UsageError: Empty input, or one or more malformed tokens.
    """
    if not tokens:
        raise UsageError([f"At least one extension identifier is required ({GRAMMAR})"])

    problems = [p for p in (_problem(t) for t in tokens) if p]
    if problems:
        raise UsageError(problems)

    return [parse_identifier(t) for t in tokens]


def _problem(token: str) -> str | None:
    """Describe what is wrong with ``token``, or ``None`` if it is valid."""
    kind, sep, rest = token.partition(":")
    if not sep:
        return f"'{token}': expected {GRAMMAR}"
    if kind not in KINDS:
        return f"'{token}': unknown kind '{kind}' (expected one of: {', '.join(KINDS)})"

    name, at, version = rest.partition("@")
    if not _NAME_RE.match(name):
        return f"'{token}': invalid extension name '{name}'"
    if not at:
        return None

    if kind == "builtin":
        return f"'{token}': builtin extensions do not take a version"
    if version != STABLE_CHANNEL and not _VERSION_RE.match(version):
        return f"'{token}': invalid version '{version}' (expected '{STABLE_CHANNEL}' or MAJOR.MINOR.PATCH)"
    return None
