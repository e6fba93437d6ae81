"""In-process single-flight guard for sync passes."""

from __future__ import annotations

import threading
from dataclasses import dataclass

__all__ = [
    "SingleFlightGuard",
]


@dataclass(slots=True)
class _FlightState:
    running: bool = False
    pending: bool = False


class SingleFlightGuard:
    """Allow one holder per key and remember requests that arrive meanwhile.

    A caller that wins :meth:`try_begin` must eventually call :meth:`finish`
    (or :meth:`abort`). :meth:`finish` answers ``True`` when one or more
    requests arrived during the pass, in which case the caller keeps the key
    and runs exactly one more pass.

    Example:
        >>> guard = SingleFlightGuard()
        >>> guard.try_begin("datasets")
        True
        >>> guard.try_begin("datasets")
        False
        >>> guard.finish("datasets")
        True
        >>> guard.finish("datasets")
        False
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._states: dict[str, _FlightState] = {}

    def try_begin(self, key: str) -> bool:
        """Take ``key`` if free; otherwise mark a follow-up as pending."""

        with self._lock:
            state = self._states.setdefault(key, _FlightState())
            if state.running:
                state.pending = True
                return False
            state.running = True
            return True

    def finish(self, key: str) -> bool:
        """End the current pass; ``True`` means run one follow-up pass."""

        with self._lock:
            state = self._states.setdefault(key, _FlightState())
            if state.pending:
                state.pending = False
                state.running = True
                return True
            state.running = False
            return False

    def abort(self, key: str) -> None:
        """Release ``key`` and drop any pending follow-up."""

        with self._lock:
            self._states.pop(key, None)

    def is_running(self, key: str) -> bool:
        with self._lock:
            state = self._states.get(key)
            return bool(state and state.running)

    def has_pending(self, key: str) -> bool:
        with self._lock:
            state = self._states.get(key)
            return bool(state and state.pending)
