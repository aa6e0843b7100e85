"""A single background thread that runs queued tasks in order."""

from __future__ import annotations

import queue
import threading
from typing import Any, Callable, Optional

_STOP = object()


class ThreadWorker:
    """Runs tasks one after another on its own thread until closed.

    The first exception a task raises is re-raised by :meth:`close`; later
    tasks still run.
    """

    def __init__(self) -> None:
        self._tasks: queue.SimpleQueue[Any] = queue.SimpleQueue()
        self._lock = threading.Lock()
        self._closed = False
        self._error: Optional[BaseException] = None
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def add_task(self, func: Callable[..., Any], *args: Any) -> None:
        """Queue ``func(*args)`` to run on the worker thread."""
        with self._lock:
            if self._closed:
                raise RuntimeError("Worker is closed.")
            self._tasks.put((func, args))

    def close(self) -> None:
        """Run the tasks already queued, then stop the thread and wait for it."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._tasks.put(_STOP)
        self._thread.join()
        if self._error is not None:
            error, self._error = self._error, None
            raise error

    def __enter__(self) -> ThreadWorker:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _run(self) -> None:
        while True:
            item = self._tasks.get()
            if item is _STOP:
                return
            func, args = item
            try:
                func(*args)
            except BaseException as exc:  # noqa: BLE001 - reported by close()
                if self._error is None:
                    self._error = exc