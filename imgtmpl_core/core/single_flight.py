from __future__ import annotations

import threading
from typing import Callable, Generic, TypeVar


T = TypeVar("T")


class _Call(Generic[T]):
    def __init__(self) -> None:
        self.done = threading.Event()
        self.value: T | None = None
        self.error: BaseException | None = None
        self.waiters = 0


class SingleFlight(Generic[T]):
    """Collapses concurrent calls for the same key into one execution.

    The first caller for a key runs `fn`; callers arriving while it is in flight
    block on the call's completion event and share its value or exception. Once
    the call finishes the key is forgotten, so a later call runs `fn` again.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._calls: dict[str, _Call[T]] = {}

    def do(self, key: str, fn: Callable[[], T]) -> tuple[T, bool]:
        """Return `(value, shared)`; `shared` is True when other callers received the same result."""
        with self._lock:
            call = self._calls.get(key)
            if call is not None:
                call.waiters += 1
                leader = False
            else:
                call = _Call()
                self._calls[key] = call
                leader = True

        if not leader:
            call.done.wait()
            if call.error is not None:
                raise call.error
            return call.value, True  # type: ignore[return-value]

        try:
            call.value = fn()
        except BaseException as exc:
            call.error = exc
            raise
        finally:
            with self._lock:
                del self._calls[key]
                shared = call.waiters > 0
            call.done.set()
        return call.value, shared

    def in_flight(self, key: str) -> bool:
        with self._lock:
            return key in self._calls
