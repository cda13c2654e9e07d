import logging
from typing import Iterable, Optional

from ..config import settings
from ..events import MediaServerEventListener
from .base import EventNotifier
from .changes import LibraryChangeDetector

logger = logging.getLogger(__name__)


class PollingEventNotifier(EventNotifier):
    """Periodically enumerates every library and reports media that appeared since the last sweep."""

    mode = "polling"

    def __init__(
        self,
        client,
        listeners: Iterable[MediaServerEventListener],
        detector: Optional[LibraryChangeDetector] = None,
        interval: Optional[float] = None,
        listener_timeout: Optional[float] = None,
    ):
        super().__init__(listeners, listener_timeout)
        self.client = client
        self.detector = detector or LibraryChangeDetector(client)
        self.interval = settings.POLL_INTERVAL_SECONDS if interval is None else interval

    async def poll_once(self):
        async for changes in self.detector.poll():
            await self._emit_changes(changes)

    async def _run(self):
        logger.info(f"Polling Stump for changes every {self.interval}s")
        while self.is_active:
            self.status = "polling"
            await self.poll_once()
            if not self.is_active:
                break
            self.status = "idle"
            await self._sleep(self.interval)
