"""Observable state cell and one-shot slot used by the flows to publish snapshots"""

import logging
from typing import Callable, Generic, List, Optional, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


class Subscription:
    """Handle returned by subscribe(); unsubscribing twice is harmless"""

    def __init__(self, cancel: Callable[[], None]):
        self._cancel: Optional[Callable[[], None]] = cancel

    @property
    def active(self) -> bool:
        return self._cancel is not None

    def unsubscribe(self) -> None:
        if self._cancel is not None:
            cancel, self._cancel = self._cancel, None
            cancel()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.unsubscribe()


class Listeners(Generic[T]):
    """Ordered callback list; a failing callback is logged and does not stop the others"""

    def __init__(self) -> None:
        self._callbacks: List[Callable[[T], None]] = []

    def add(self, callback: Callable[[T], None]) -> Subscription:
        self._callbacks.append(callback)
        return Subscription(lambda: self._remove(callback))

    def _remove(self, callback: Callable[[T], None]) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def clear(self) -> None:
        self._callbacks.clear()

    def __len__(self) -> int:
        return len(self._callbacks)

    def notify(self, value: T) -> None:
        for callback in list(self._callbacks):
            try:
                callback(value)
            except Exception:
                logger.exception("Listener %r failed", callback)


class StateCell(Generic[T]):
    """
    Single mutable reference to an immutable snapshot.

    Every set() replaces the whole snapshot, so readers never observe a
    half-applied update. Subscribers get the current value right away and
    then every replacement.
    """

    def __init__(self, initial: T):
        self._value = initial
        self._listeners: Listeners[T] = Listeners()

    def current(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        self._value = value
        self._listeners.notify(value)

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        subscription = self._listeners.add(callback)
        callback(self._value)
        return subscription

    def close(self) -> None:
        self._listeners.clear()

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners)


class OneShot(Generic[T]):
    """Pending-value slot with take-and-clear semantics (at-most-once delivery)"""

    def __init__(self) -> None:
        self._value: Optional[T] = None

    @property
    def pending(self) -> bool:
        return self._value is not None

    def offer(self, value: T) -> None:
        self._value = value

    def take(self) -> Optional[T]:
        value, self._value = self._value, None
        return value
