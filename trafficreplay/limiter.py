"""Rate limiting wrapper for input and output plugins."""

from __future__ import annotations

import random
import threading
import time
from typing import Any, Callable, Optional

_NANOS_PER_SECOND = 1_000_000_000


def _atoi(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        return 0


def parse_limit_options(options: str) -> tuple[int, bool]:
    """Parse ``"10"`` (requests per second) or ``"10%"`` (percentage)."""
    n = options.find("%")
    if n > 0:
        return _atoi(options[:n]), True
    return _atoi(options), False


class Limiter:
    """Drops messages passing through a plugin to keep within a limit.

    Plugins exposing a ``speed_factor`` attribute pace themselves: a
    percentage limit sets that factor instead of dropping messages.
    """

    def __init__(
        self,
        plugin: Any,
        options: str,
        rng: Optional[random.Random] = None,
        clock: Callable[[], int] = time.monotonic_ns,
    ) -> None:
        self.plugin = plugin
        self.limit, self.is_percent = parse_limit_options(options)
        self._rng = rng or random.Random()
        self._clock = clock
        self._lock = threading.Lock()
        self._current_rps = 0
        self._current_time = clock()
        if self._self_paced():
            plugin.speed_factor = self.limit / 100

    def _self_paced(self) -> bool:
        return self.is_percent and hasattr(self.plugin, "speed_factor")

    def is_limited(self) -> bool:
        """Return whether the next message should be dropped."""
        if self._self_paced():
            return False
        if self.is_percent:
            return self.limit <= self._rng.randrange(100)
        with self._lock:
            now = self._clock()
            if now - self._current_time > _NANOS_PER_SECOND:
                self._current_time = now
                self._current_rps = 0
            if self._current_rps >= self.limit:
                return True
            self._current_rps += 1
            return False

    def plugin_write(self, msg: Any) -> int:
        """Pass a message to the wrapped plugin unless it is limited."""
        if self.is_limited():
            return 0
        writer = getattr(self.plugin, "plugin_write", None)
        if writer is None:
            raise BrokenPipeError("plugin is not writable")
        return writer(msg)

    def plugin_read(self) -> Any:
        """Read a message from the wrapped plugin; ``None`` when it is limited."""
        reader = getattr(self.plugin, "plugin_read", None)
        if reader is None:
            raise BrokenPipeError("plugin is not readable")
        msg = reader()
        if self.is_limited():
            return None
        return msg

    def close(self) -> None:
        """Close the wrapped plugin if it can be closed."""
        closer = getattr(self.plugin, "close", None)
        if closer is not None:
            closer()

    def __str__(self) -> str:
        return f"Limiting {self.plugin} to: {self.limit} (isPercent: {str(self.is_percent).lower()})"