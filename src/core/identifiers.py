# src/core/identifiers.py — v1
"""Identifier extraction from raw input lines.

Input lines are either a bare token (``john-doe-123``) or a URL whose last
path segment is the token (``https://example.com/in/john-doe-123/?trk=x``).
Lines that yield no usable token are dropped.
"""

from __future__ import annotations

import re
from urllib.parse import unquote, urlsplit

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*://")
_WHITESPACE_RE = re.compile(r"\s")


def normalize_identifier(line: str) -> str | None:
    """Extract the identifier from one raw input line.

    Returns:
        The normalized identifier, or None when the line is blank, a
        ``#`` comment, or contains no valid token.
    """
    text = line.strip()
    if not text or text.startswith("#"):
        return None

    if _SCHEME_RE.match(text) or "/" in text:
        if not _SCHEME_RE.match(text):
            # Scheme-less URL such as "example.com/in/abc"
            text = "//" + text if "." in text.split("/", 1)[0] else text
        path = urlsplit(text).path
        segments = [s for s in path.split("/") if s]
        if not segments:
            return None
        text = unquote(segments[-1]).strip()

    if not text or _WHITESPACE_RE.search(text):
        return None
    return text


def parse_identifiers(content: str) -> list[str]:
    """Parse an input list into unique identifiers, first occurrence order."""
    seen: set[str] = set()
    result: list[str] = []
    for line in content.splitlines():
        identifier = normalize_identifier(line)
        if identifier is None or identifier in seen:
            continue
        seen.add(identifier)
        result.append(identifier)
    return result


def parse_ledger_lines(content: str) -> list[str]:
    """Parse a ledger file: one identifier per line, blank lines ignored.

    Duplicates are kept; callers reconcile with set semantics.
    """
    return [line.strip() for line in content.splitlines() if line.strip()]
