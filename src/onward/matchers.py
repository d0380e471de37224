"""Matcher evaluation for ``on(...)`` clauses.

A matcher is one of:
- a string template such as ``"users/:id"`` (each ``:name`` captures one segment)
- a compiled ``re.Pattern`` matched against one leading path segment
- the ``segment`` sentinel, which consumes any single segment
- a callable predicate, called with no arguments
- anything else, taken for its truth value (``True``, ``False``, ``None``)

Examples:
    >>> template_pattern("users/:id")
    'users/([^/]+)'

    >>> template_pattern("v1.:format")
    'v1\\\\.([^/]+)'
"""

import re
from collections.abc import Callable
from functools import lru_cache
from typing import Any

from onward.captures import CaptureStack
from onward.cursor import PathCursor

SEGMENT = r"([^/]+)"

_PLACEHOLDER = re.compile(r":\w+")

# Leading global flags such as "(?i)" are only valid at the start of a regex
_GLOBAL_FLAGS = re.compile(r"\A(?:\(\?[aiLmsux]+\))+")

type Matcher = str | re.Pattern | AnySegment | Callable[[], Any] | bool | None


class AnySegment:
    """Sentinel matching any one path segment."""

    def __repr__(self):
        return "segment"


segment = AnySegment()


@lru_cache(maxsize=512)
def template_pattern(template: str) -> str:
    """Turns a segment template into a regular expression fragment.

    Literal text is escaped and every ``:name`` placeholder becomes a group
    capturing one path segment.
    """
    parts = []
    position = 0
    for placeholder in _PLACEHOLDER.finditer(template):
        parts.append(re.escape(template[position:placeholder.start()]))
        parts.append(SEGMENT)
        position = placeholder.end()

    parts.append(re.escape(template[position:]))
    return "".join(parts)


def pattern_source(pattern: re.Pattern) -> str:
    """Source of ``pattern`` without its leading global flags, which ``pattern.flags`` already holds."""
    return _GLOBAL_FLAGS.sub("", pattern.pattern)


def consume(cursor: PathCursor, captures: CaptureStack, pattern: str, flags: int = 0) -> bool:
    values = cursor.consume(pattern, flags)
    if values is None:
        return False

    captures.push(*values)
    return True


def evaluate(matcher: Matcher, cursor: PathCursor, captures: CaptureStack) -> bool:
    match matcher:
        case bool():
            return matcher

        case str():
            return consume(cursor, captures, template_pattern(matcher))

        case re.Pattern():
            return consume(cursor, captures, pattern_source(matcher), matcher.flags)

        case AnySegment():
            return consume(cursor, captures, SEGMENT)

        case _ if callable(matcher):
            return bool(matcher())

        case _:
            return bool(matcher)
