from __future__ import annotations

DEFAULT_INTERVAL_MS = 4000


class RateLimiter:
    """Admit at most one frame per interval; dropped frames leave the reference untouched."""

    def __init__(self, interval_ms: int = DEFAULT_INTERVAL_MS) -> None:
        self.interval_ms = interval_ms
        self._last_admitted_ms: float | None = None

    @property
    def last_admitted_ms(self) -> float | None:
        return self._last_admitted_ms

    def admit(self, now_ms: float) -> bool:
        if self._last_admitted_ms is not None and now_ms - self._last_admitted_ms < self.interval_ms:
            return False
        self._last_admitted_ms = now_ms
        return True

    def reset(self) -> None:
        self._last_admitted_ms = None
