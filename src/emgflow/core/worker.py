"""Background thread that owns an :class:`EmgPipeline`."""

from __future__ import annotations

from collections import deque
from concurrent.futures import Future
import logging
import threading
from typing import Any, Callable, Deque, Optional, Tuple

from .models import PipelineSnapshot
from .pipeline import EmgPipeline

__all__ = ["PipelineWorker"]

logger = logging.getLogger(__name__)

_NOTIFY = "notify"
_CALL = "call"

Item = Tuple[Any, ...]


class _Inbox:
    """
    FIFO shared by the transport/UI threads and the worker.

    Notifications are bounded: when ``maxsize`` of them are queued the oldest
    notification is dropped. Commands are never dropped and keep their place
    relative to notifications, so a disconnect is processed after the data
    that arrived before it.
    """

    def __init__(self, maxsize: int) -> None:
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        self.maxsize = int(maxsize)
        self._items: Deque[Item] = deque()
        self._notifications = 0
        self._cond = threading.Condition()

    def put_notification(self, item: Item) -> bool:
        """Queue ``item``; return True when an older notification was dropped."""
        dropped = False
        with self._cond:
            if self._notifications >= self.maxsize:
                for idx, queued in enumerate(self._items):
                    if queued[0] == _NOTIFY:
                        del self._items[idx]
                        break
                self._notifications -= 1
                dropped = True
            self._items.append(item)
            self._notifications += 1
            self._cond.notify()
        return dropped

    def put_command(self, item: Item) -> None:
        with self._cond:
            self._items.append(item)
            self._cond.notify()

    def get(self, timeout: float) -> Optional[Item]:
        with self._cond:
            if not self._items:
                self._cond.wait(timeout)
            if not self._items:
                return None
            item = self._items.popleft()
            if item[0] == _NOTIFY:
                self._notifications -= 1
            return item

    def wake(self) -> None:
        with self._cond:
            self._cond.notify_all()

    def drain(self) -> list[Item]:
        with self._cond:
            items = list(self._items)
            self._items.clear()
            self._notifications = 0
            return items

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)


class PipelineWorker:
    """
    Run an :class:`EmgPipeline` on one daemon thread.

    Producers call :meth:`on_notification` from the transport callback; it
    never blocks. Control methods return :class:`~concurrent.futures.Future`
    objects resolved on the worker thread, e.g.
    ``worker.stop_recording().result()`` is the export text. The loop wakes at
    least every ``poll_interval_s`` to tick the pipeline, so a calibration
    countdown ends even when the sensor goes quiet.
    """

    def __init__(
        self,
        pipeline: EmgPipeline,
        *,
        queue_size: int | None = None,
        poll_interval_s: float | None = None,
        name: str = "emgflow-pipeline",
    ) -> None:
        cfg = pipeline.config
        self.pipeline = pipeline
        self.poll_interval_s = max(0.001, float(poll_interval_s if poll_interval_s is not None else cfg.poll_interval_s))
        self._inbox = _Inbox(queue_size if queue_size is not None else cfg.queue_size)
        self._name = name
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._snapshot_lock = threading.Lock()
        self._snapshot = pipeline.snapshot()
        self._dropped = 0
        self._dropped_lock = threading.Lock()

    # ---------------------------------------------------------------- thread
    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()
        logger.debug("Pipeline worker %s started", self._name)

    def stop(self, join: bool = True, timeout: float | None = 2.0) -> None:
        self._stop_event.set()
        self._inbox.wake()
        if join and self._thread is not None:
            self._thread.join(timeout=timeout)
        self._thread = None

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # -------------------------------------------------------------- producer
    def on_notification(self, payload: bytes, arrival_time: float) -> None:
        if self._inbox.put_notification((_NOTIFY, bytes(payload), float(arrival_time))):
            with self._dropped_lock:
                self._dropped += 1

    @property
    def dropped(self) -> int:
        with self._dropped_lock:
            return self._dropped

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        """Run ``fn(*args, **kwargs)`` on the worker thread."""
        future: Future = Future()
        if self._stop_event.is_set():
            future.set_exception(RuntimeError("pipeline worker is stopped"))
            return future
        self._inbox.put_command((_CALL, future, fn, args, kwargs))
        return future

    def on_connected(self) -> Future:
        return self.submit(self.pipeline.on_connected)

    def on_disconnected(self) -> Future:
        return self.submit(self.pipeline.on_disconnected)

    def start_recording(self) -> Future:
        return self.submit(self.pipeline.start_recording)

    def stop_recording(self) -> Future:
        return self.submit(self.pipeline.stop_recording)

    def start_calibration(self) -> Future:
        return self.submit(self.pipeline.start_calibration)

    def end_calibration(self) -> Future:
        return self.submit(self.pipeline.end_calibration)

    def reset(self) -> Future:
        """Reset the pipeline and the queue-drop counter on the worker thread."""
        return self.submit(self._reset)

    def _reset(self) -> None:
        self.pipeline.reset()
        with self._dropped_lock:
            self._dropped = 0

    # --------------------------------------------------------------- readers
    def latest_snapshot(self) -> PipelineSnapshot:
        with self._snapshot_lock:
            return self._snapshot

    # ------------------------------------------------------------------ loop
    def _handle(self, item: Item) -> None:
        if item[0] == _NOTIFY:
            _, payload, arrival_time = item
            self.pipeline.on_notification(payload, arrival_time)
            return
        _, future, fn, args, kwargs = item
        if not future.set_running_or_notify_cancel():
            return
        try:
            result = fn(*args, **kwargs)
        except Exception as exc:
            logger.exception("Pipeline command %s failed", getattr(fn, "__name__", fn))
            future.set_exception(exc)
        else:
            future.set_result(result)

    def _publish(self) -> None:
        with self._dropped_lock:
            self.pipeline.stats.queue_drops = self._dropped
        snapshot = self.pipeline.snapshot()
        with self._snapshot_lock:
            self._snapshot = snapshot

    def _run(self) -> None:
        while not self._stop_event.is_set():
            item = self._inbox.get(self.poll_interval_s)
            if item is not None:
                self._handle(item)
            self.pipeline.tick()
            self._publish()

        for item in self._inbox.drain():
            if item[0] == _CALL:
                future = item[1]
                if not future.done():
                    future.set_exception(RuntimeError("pipeline worker stopped before the command ran"))
        logger.debug("Pipeline worker %s stopped", self._name)
