from collections.abc import Iterator
from typing import Any


class CaptureStack:
    """Values bound by the matchers of the clause currently being evaluated.

    Values keep the order the matchers ran in, so they line up with the
    positional parameters of the clause body.
    """

    def __init__(self):
        self._values: list[Any] = []

    def reset(self):
        self._values.clear()

    def push(self, *values: Any):
        self._values.extend(values)

    def snapshot(self) -> tuple[Any, ...]:
        return tuple(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._values)

    def __repr__(self):
        return f"<CaptureStack {self._values!r}>"
