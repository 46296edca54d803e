"""Fresh state names for compiled rule sets."""

from __future__ import annotations

import itertools


class NameGenerator:
    """Monotonic name source, injected into compilers.

    Share one instance between compilations whose programs get merged so their
    generated states cannot collide; separate instances are independent.
    """

    def __init__(self, prefix: str = "q", start: int = 1) -> None:
        self.prefix = prefix
        self._counter = itertools.count(start)

    def fresh(self) -> str:
        return f"{self.prefix}{next(self._counter)}"
