"""Path cursor used while matching a request path.

The cursor splits the request path into the part already consumed by matchers
and the part still to be matched. ``consumed + remaining`` always equals the
path the cursor was created with.
"""

import contextlib
import re
from collections.abc import Iterator
from dataclasses import dataclass
from functools import lru_cache
from typing import Any


@lru_cache(maxsize=512)
def anchor(pattern: str, flags: int = 0) -> re.Pattern:
    """Compiles ``pattern`` so it only matches a whole leading path segment.

    The segment must be followed by a ``/`` or by the end of the path, so
    ``user`` never matches ``/users``.
    """
    return re.compile(rf"\A/({pattern})(/|\Z)", flags)


@dataclass
class PathCursor:
    consumed: str = ""
    remaining: str = ""

    @classmethod
    def from_scope(cls, scope) -> "PathCursor":
        root_path = scope.get("root_path", "")
        path = scope.get("path", "")
        if root_path and path.startswith(root_path):
            path = path[len(root_path):]

        return cls(root_path, path)

    @property
    def path(self) -> str:
        return self.consumed + self.remaining

    def consume(self, pattern: str, flags: int = 0) -> list[Any] | None:
        """Consumes one leading segment matching ``pattern``.

        Returns the values of the capturing groups inside ``pattern`` on success,
        or ``None`` (leaving the cursor untouched) when the pattern does not match.
        """
        match = anchor(pattern, flags).match(self.remaining)
        if not match:
            return None

        segment, *captures, separator = match.groups()
        self.consumed += f"/{segment}"
        self.remaining = separator + self.remaining[match.end():]
        return captures

    def snapshot(self) -> tuple[str, str]:
        return self.consumed, self.remaining

    def restore(self, snapshot: tuple[str, str]):
        self.consumed, self.remaining = snapshot

    @contextlib.contextmanager
    def attempt(self) -> Iterator["PathCursor"]:
        """Restores the cursor when the block exits, however it exits."""
        snapshot = self.snapshot()
        try:
            yield self
        finally:
            self.restore(snapshot)

    def copy(self) -> "PathCursor":
        return PathCursor(self.consumed, self.remaining)
