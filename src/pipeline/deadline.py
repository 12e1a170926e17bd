"""Caller-supplied time budget for one extraction."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable


class ExtractionTimeout(Exception):
    """Raised inside a pass when its deadline expires."""

    def __init__(self, seconds: float) -> None:
        super().__init__(f"deadline of {seconds} seconds expired")
        self.seconds = seconds


class Deadline:
    def __init__(
        self, seconds: float, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.seconds = seconds
        self._clock = clock
        self._expires_at = clock() + seconds

    def expired(self) -> bool:
        return self._clock() >= self._expires_at

    def check(self) -> None:
        if self.expired():
            raise ExtractionTimeout(self.seconds)


__all__ = ["Deadline", "ExtractionTimeout"]
