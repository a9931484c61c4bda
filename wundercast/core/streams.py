"""Observable values for wiring the weather pipeline to its consumers."""

import asyncio
import inspect
from typing import Any, Callable, Generic, TypeVar

from wundercast.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

_MISSING: Any = object()


class Stream(Generic[T]):
    """A named sequence of values with a current value.

    Subscribers get the current value on subscription (when there is one)
    followed by every later emission. Listeners may be plain callables or
    coroutine functions; coroutines are scheduled on the running loop.
    """

    def __init__(self, name: str, initial: T = _MISSING):
        self.name = name
        self._value = initial
        self._listeners: list[Callable[[T], Any]] = []
        self._tasks: set[asyncio.Task] = set()

    @property
    def has_value(self) -> bool:
        return self._value is not _MISSING

    @property
    def value(self) -> T:
        """Current value.

        Raises:
            LookupError: If nothing has been emitted and there is no initial value
        """
        if self._value is _MISSING:
            raise LookupError(f"Stream '{self.name}' has no value yet")
        return self._value

    def subscribe(self, listener: Callable[[T], Any], skip_current: bool = False) -> Callable[[], None]:
        """Register a listener.

        Args:
            listener: Called with each value
            skip_current: Do not replay the current value to this listener

        Returns:
            Callable that removes the listener
        """
        if not callable(listener):
            raise ValueError("Listener must be callable")

        self._listeners.append(listener)
        if not skip_current and self.has_value:
            self._deliver(listener, self._value)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, value: T) -> None:
        """Set the current value and push it to every listener."""
        self._value = value
        for listener in list(self._listeners):
            self._deliver(listener, value)

    def skip(self, count: int) -> "Stream[T]":
        """Derived stream that drops the first ``count`` values this stream delivers."""
        derived: Stream[T] = Stream(f"{self.name}.skip({count})")
        remaining = count

        def forward(value: T) -> None:
            nonlocal remaining
            if remaining > 0:
                remaining -= 1
                return
            derived.emit(value)

        self.subscribe(forward)
        return derived

    def _deliver(self, listener: Callable[[T], Any], value: T) -> None:
        try:
            result = listener(value)
            if inspect.iscoroutine(result):
                task = asyncio.get_running_loop().create_task(self._safe_task(result))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
        except Exception:
            logger.exception("stream_listener_failed", stream=self.name)

    async def _safe_task(self, coro) -> None:
        try:
            await coro
        except Exception:
            logger.exception("stream_async_listener_failed", stream=self.name)
