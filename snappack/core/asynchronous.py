"""Deferred single-value production awaited with a bounded wait."""

from __future__ import annotations

import asyncio
from concurrent.futures import Future
from dataclasses import dataclass
import threading
from typing import Any, Awaitable, Callable, Generic, TypeVar

from snappack.core.exceptions import ProductionFailedError, ProductionTimeoutError

T = TypeVar("T")
U = TypeVar("U")


class Delivery(Generic[T]):
    """Single-value channel handed to an ``Async`` producer.

    The first delivery wins. Anything delivered after the channel was closed
    (timeout elapsed) or after a first value is discarded.
    """

    __slots__ = ("_event", "_lock", "_closed", "_value", "_error")

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._closed = False
        self._value: T | None = None
        self._error: BaseException | None = None

    def __call__(self, value: T | None) -> None:
        with self._lock:
            if self._closed or self._event.is_set():
                return
            self._value = value
            self._event.set()

    def fail(self, error: BaseException) -> None:
        with self._lock:
            if self._closed or self._event.is_set():
                return
            self._error = error
            self._event.set()

    @property
    def delivered(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> T:
        """Block until a value arrives or ``timeout`` seconds elapse."""
        arrived = self._event.wait(timeout)
        with self._lock:
            self._closed = True
            if not arrived and not self._event.is_set():
                raise ProductionTimeoutError(
                    f"Snapshot was not produced within {timeout:g} seconds"
                )
            if self._error is not None:
                raise ProductionFailedError(
                    f"Couldn't snapshot value: {self._error.__class__.__name__}: {self._error}"
                ) from self._error
            if self._value is None:
                raise ProductionFailedError("Couldn't snapshot value")
            return self._value


class _MappedDelivery(Generic[T, U]):
    __slots__ = ("_target", "_transform")

    def __init__(self, target: Delivery[U], transform: Callable[[T], U]) -> None:
        self._target = target
        self._transform = transform

    def __call__(self, value: T | None) -> None:
        if value is None:
            self._target(None)
            return
        try:
            mapped = self._transform(value)
        except Exception as error:
            self._target.fail(error)
            return
        self._target(mapped)

    def fail(self, error: BaseException) -> None:
        self._target.fail(error)


@dataclass(frozen=True, slots=True)
class Async(Generic[T]):
    """A deferred value.

    ``run`` receives a delivery callback. The producer calls it exactly once,
    with the value (or ``None`` when production failed), either synchronously
    or later from any thread. ``callback.fail(error)`` reports an exception.
    """

    run: Callable[[Any], None]

    @classmethod
    def value(cls, value: T) -> "Async[T]":
        return cls(run=lambda callback: callback(value))

    @classmethod
    def from_callable(cls, producer: Callable[[], T]) -> "Async[T]":
        """Produce lazily on the awaiting thread."""

        def run(callback: Any) -> None:
            try:
                produced = producer()
            except Exception as error:
                callback.fail(error)
                return
            callback(produced)

        return cls(run=run)

    @classmethod
    def from_future(cls, future: "Future[T]") -> "Async[T]":
        def run(callback: Any) -> None:
            def _done(done: "Future[T]") -> None:
                if done.cancelled():
                    callback(None)
                    return
                error = done.exception()
                if error is not None:
                    callback.fail(error)
                    return
                callback(done.result())

            future.add_done_callback(_done)

        return cls(run=run)

    @classmethod
    def from_awaitable(cls, factory: Callable[[], Awaitable[T]]) -> "Async[T]":
        """Run a coroutine on a daemon worker thread with its own event loop.

        ``factory`` is called on the worker so each run gets a fresh awaitable.
        """

        def run(callback: Any) -> None:
            def _worker() -> None:
                async def _main() -> T:
                    return await factory()

                try:
                    produced = asyncio.run(_main())
                except Exception as error:
                    callback.fail(error)
                    return
                callback(produced)

            threading.Thread(target=_worker, name="snapshot-producer", daemon=True).start()

        return cls(run=run)

    def map(self, transform: Callable[[T], U]) -> "Async[U]":
        return Async(run=lambda callback: self.run(_MappedDelivery(callback, transform)))

    def flat_map(self, transform: Callable[[T], "Async[U]"]) -> "Async[U]":
        def run(callback: Any) -> None:
            def _chain(value: T | None) -> None:
                if value is None:
                    callback(None)
                    return
                try:
                    following = transform(value)
                except Exception as error:
                    callback.fail(error)
                    return
                try:
                    following.run(callback)
                except Exception as error:
                    callback.fail(error)

            _chain.fail = callback.fail  # type: ignore[attr-defined]
            self.run(_chain)

        return Async(run=run)


def await_value(deferred: Async[T], *, timeout: float) -> T:
    """Run ``deferred`` and wait up to ``timeout`` seconds for its value.

    Raises:
        ProductionTimeoutError: No value arrived in time.
        ProductionFailedError: The producer raised or delivered ``None``.
    """
    delivery: Delivery[T] = Delivery()
    try:
        deferred.run(delivery)
    except Exception as error:
        delivery.fail(error)
    return delivery.wait(timeout)
