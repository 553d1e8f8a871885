from __future__ import annotations

import time


def wait(seconds: float) -> None:
    if seconds > 0:
        time.sleep(seconds)


class RateLimiter:
    """Fixed pause between consecutive requests; the first one goes out at once."""

    def __init__(self, delay_s: float) -> None:
        self.delay_s = delay_s
        self._started = False

    def wait(self) -> None:
        if self._started:
            wait(self.delay_s)
        self._started = True
