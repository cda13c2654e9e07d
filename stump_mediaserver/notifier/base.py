import asyncio
import inspect
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Sequence, Union

from ..events import BookEvent, MediaServerEventListener, SeriesEvent
from .changes import LibraryChanges

logger = logging.getLogger(__name__)

Event = Union[BookEvent, SeriesEvent]


class EventNotifier(ABC):
    """
    Owns one background task that watches Stump for changes and relays them
    to listeners.

    start() and stop() only toggle the session flag under a lock. The task
    checks the flag at every checkpoint (loop top, message receive, sleep),
    so events may still be delivered briefly after stop() returns.
    """

    mode = "unknown"

    def __init__(
        self,
        listeners: Iterable[MediaServerEventListener],
        listener_timeout: Optional[float] = None,
    ):
        self.listeners: List[MediaServerEventListener] = list(listeners)
        self.listener_timeout = listener_timeout
        self.status = "stopped"
        self.last_event_at: Optional[float] = None
        self._lock = threading.Lock()
        self._active = False
        self._task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._generation = 0
        self._wakeup = asyncio.Event()

    @property
    def is_active(self) -> bool:
        with self._lock:
            return self._active

    def start(self):
        """Schedules the background task on the running loop. No-op when already active."""
        loop = asyncio.get_running_loop()
        with self._lock:
            if self._active:
                return
            self._active = True
            self._generation += 1
            self._loop = loop
            if self._task is not None and not self._task.done():
                # Previous task has not reached its checkpoint yet, it simply carries on.
                logger.info(f"Resuming Stump event notifier ({self.mode})")
                return
            self.status = "starting"
            self._task = loop.create_task(
                self._run_guarded(self._generation), name=f"stump-events-{self.mode}"
            )
        logger.info(f"Starting Stump event notifier ({self.mode})")

    def stop(self):
        """Clears the session flag and wakes a sleeping task. Safe to call from any thread."""
        with self._lock:
            was_active = self._active
            self._active = False
            loop = self._loop
        if loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(self._wakeup.set)
        else:
            self._wakeup.set()
        if was_active:
            logger.info(f"Stopping Stump event notifier ({self.mode})")

    async def join(self):
        """Waits for the background task to reach a checkpoint and exit."""
        task = self._task
        while task is not None:
            await task
            # A restart during wind-down hands over to a new task
            task = self._task

    def health(self) -> dict:
        return {
            "mode": self.mode,
            "active": self.is_active,
            "status": self.status,
            "last_event_at": self.last_event_at,
        }

    @abstractmethod
    async def _run(self):
        ...

    async def _run_guarded(self, generation: int):
        try:
            await self._run()
        except Exception as e:
            logger.error(f"Stump event notifier crashed: {e}", exc_info=True)
        finally:
            crashed = False
            with self._lock:
                self._task = None
                if self._active and self._generation != generation:
                    # start() was called while the loop was winding down
                    self._task = asyncio.get_running_loop().create_task(
                        self._run_guarded(self._generation), name=f"stump-events-{self.mode}"
                    )
                elif self._active:
                    # Exited on its own while active, i.e. crashed
                    self._active = False
                    crashed = True
            if crashed:
                logger.error(f"Stump event notifier ({self.mode}) exited unexpectedly, not restarting")
                self.status = "failed"
            elif self._task is None and self.status != "failed":
                self.status = "stopped"

    def _deactivate(self):
        with self._lock:
            self._active = False

    async def _sleep(self, delay: float):
        """Sleeps for `delay` seconds or until stop() is called."""
        if not self.is_active:
            return
        self._wakeup.clear()
        try:
            await asyncio.wait_for(self._wakeup.wait(), timeout=max(0.0, delay))
        except asyncio.TimeoutError:
            pass

    # Fan-out

    async def notify_books_added(self, events: Sequence[BookEvent]):
        await self._fan_out("on_books_added", events)

    async def notify_series_deleted(self, events: Sequence[SeriesEvent]):
        await self._fan_out("on_series_deleted", events)

    async def _emit_changes(self, changes: LibraryChanges):
        if changes.added_books:
            await self.notify_books_added(changes.added_books)
        if changes.removed_series:
            await self.notify_series_deleted(changes.removed_series)

    async def _fan_out(self, method: str, events: Sequence[Event]):
        if not events:
            return
        self.last_event_at = time.time()
        batch = list(events)
        for listener in self.listeners:
            try:
                result = getattr(listener, method)(batch)
                if inspect.isawaitable(result):
                    if self.listener_timeout is not None:
                        await asyncio.wait_for(result, self.listener_timeout)
                    else:
                        await result
            except asyncio.TimeoutError:
                logger.warning(
                    f"Listener {type(listener).__name__} timed out after {self.listener_timeout}s "
                    f"in {method}: {_describe(batch)}"
                )
            except Exception:
                logger.warning(
                    f"Error notifying listener {type(listener).__name__} in {method}: {_describe(batch)}",
                    exc_info=True,
                )


def _describe(events: Sequence[Event]) -> str:
    parts = []
    for event in events:
        if isinstance(event, BookEvent):
            parts.append(f"book {event.book_id} (series {event.series_id}, library {event.library_id})")
        else:
            parts.append(f"series {event.series_id} (library {event.library_id})")
    return ", ".join(parts)
