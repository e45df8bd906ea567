from __future__ import annotations

import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable, TypeVar

T = TypeVar("T")

__all__ = ["FutureTimeoutError", "call_with_deadline"]


def call_with_deadline(
    func: Callable[..., T], timeout_s: float, *args: Any, name: str = "probe"
) -> T:
    """Run ``func(*args)`` on its own daemon thread and wait at most ``timeout_s``.

    Raises ``FutureTimeoutError`` when the call has not finished in time. The
    thread is left to finish on its own; nothing else waits on it, so a hung call
    never holds up another service's check.
    """
    future: Future[T] = Future()

    def target() -> None:
        future.set_running_or_notify_cancel()
        try:
            future.set_result(func(*args))
        except Exception as exc:
            future.set_exception(exc)

    threading.Thread(target=target, name=name, daemon=True).start()
    return future.result(timeout=timeout_s)
