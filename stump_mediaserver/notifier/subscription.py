import asyncio
import json
import logging
from typing import Iterable, Optional
from urllib.parse import urlsplit, urlunsplit

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed

from ..auth import StumpAuthProvider, auth_headers
from ..clients import queries
from ..clients.stump_client import GRAPHQL_PATH
from ..config import settings
from ..events import BookEvent, MediaServerEventListener
from .backoff import CircuitBreaker, ExponentialBackoff
from .base import EventNotifier
from .changes import LibraryChangeDetector

logger = logging.getLogger(__name__)

SUBSCRIPTION_ID = "1"


def subscription_url(base_url: str) -> str:
    """http(s)://host[:port][/prefix] -> ws(s)://host[:port][/prefix]/api/graphql"""
    parts = urlsplit(base_url.rstrip('/'))
    scheme = "wss" if parts.scheme == "https" else "ws"
    path = parts.path.rstrip('/') + '/' + GRAPHQL_PATH
    return urlunsplit((scheme, parts.netloc, path, "", ""))


def parse_created_media(read_event: dict) -> Optional[BookEvent]:
    """Returns a BookEvent for a complete CreatedMedia event, None for anything else."""
    if read_event.get("__typename") != "CreatedMedia":
        return None

    media_id = read_event.get("id")
    series_id = read_event.get("seriesId")
    library_id = read_event.get("libraryId")
    logger.debug(f"Created media: {media_id} in series: {series_id}, library: {library_id}")

    if media_id is None or series_id is None or library_id is None:
        return None
    return BookEvent(library_id=str(library_id), series_id=str(series_id), book_id=str(media_id))


class SubscriptionEventNotifier(EventNotifier):
    """
    Listens to Stump's `readEvents` GraphQL subscription over a websocket
    (graphql-ws envelopes: connection_init -> start -> data/error/complete).

    Lost sessions are retried with exponential backoff. When a fallback
    change detector is given, an open circuit switches the task to polling
    until the breaker lets a reconnect attempt through again. The detector
    is also run at startup and after every acknowledged connection, so
    media created while no subscription was live is reported by the diff.
    """

    def __init__(
        self,
        base_url: str,
        auth_provider: StumpAuthProvider,
        listeners: Iterable[MediaServerEventListener],
        backoff: Optional[ExponentialBackoff] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        fallback: Optional[LibraryChangeDetector] = None,
        poll_interval: Optional[float] = None,
        receive_timeout: Optional[float] = None,
        listener_timeout: Optional[float] = None,
        connect=ws_connect,
    ):
        super().__init__(listeners, listener_timeout)
        self.url = subscription_url(base_url)
        self.auth_provider = auth_provider
        self.backoff = backoff or ExponentialBackoff.from_settings()
        self.circuit = circuit_breaker or CircuitBreaker.from_settings("stump-subscription")
        self.fallback = fallback
        self.poll_interval = settings.POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval
        self.receive_timeout = receive_timeout or settings.SUBSCRIPTION_RECEIVE_TIMEOUT_SECONDS
        self.connect = connect
        self._push_enabled = True

    @property
    def mode(self) -> str:
        return "auto" if self.fallback is not None else "subscription"

    def health(self) -> dict:
        health = super().health()
        health["circuit"] = self.circuit.get_status()
        health["reconnect_attempt"] = self.backoff.attempt
        return health

    async def _run(self):
        if self.fallback is not None:
            # Baseline for the fallback, so whatever appears before push is up is still diffed
            await self._catch_up()

        while self.is_active:
            if self.fallback is not None and (not self._push_enabled or not self.circuit.allow_request()):
                await self._poll_fallback()
                continue

            try:
                await self._run_session()
            except ConnectionClosed as e:
                logger.warning(f"Stump subscription connection closed: {e}")
            except Exception as e:
                logger.error(f"Stump subscription failed: {e}", exc_info=True)

            if not self.is_active:
                break

            self.circuit.record_failure()
            if self.backoff.exhausted:
                logger.error(f"Giving up on Stump subscription after {self.backoff.attempt} reconnect attempts")
                if self.fallback is None:
                    self.status = "failed"
                    self._deactivate()
                    break
                self._push_enabled = False
                continue

            if self.fallback is not None and self.circuit.is_open:
                continue

            delay = self.backoff.next_delay()
            self.status = "degraded" if self.circuit.is_open else "reconnecting"
            logger.info(f"Reconnecting to Stump in {delay:.1f}s (attempt {self.backoff.attempt})")
            await self._sleep(delay)

    async def _run_session(self):
        self.status = "connecting"
        logger.info(f"Connecting to Stump subscription at {self.url}")
        async with self.connect(self.url, additional_headers=auth_headers(self.auth_provider)) as ws:
            await ws.send(json.dumps({"type": "connection_init"}))
            await ws.send(json.dumps({
                "id": SUBSCRIPTION_ID,
                "type": "start",
                "payload": {"query": queries.READ_EVENTS_SUBSCRIPTION},
            }))

            while self.is_active:
                try:
                    message = await asyncio.wait_for(ws.recv(), timeout=self.receive_timeout)
                except asyncio.TimeoutError:
                    continue
                if not isinstance(message, str):
                    continue
                if not await self.handle_message(message):
                    return

    async def handle_message(self, message: str) -> bool:
        """
        Handles one text frame. Returns False when the server ended the subscription.
        A message that cannot be decoded is logged and skipped.
        """
        event = None
        acknowledged = False
        try:
            envelope = json.loads(message)
            kind = envelope.get("type")

            if kind == "data":
                payload = envelope.get("payload") or {}
                read_event = (payload.get("data") or {}).get("readEvents")
                if read_event:
                    event = parse_created_media(read_event)
            elif kind == "connection_ack":
                self._on_connected()
                acknowledged = True
            elif kind == "error":
                logger.warning(f"Stump subscription error: {envelope.get('payload')}")
            elif kind == "complete":
                logger.info("Stump completed the subscription")
                return False
            elif kind == "connection_error":
                logger.error(f"Stump rejected the subscription: {envelope.get('payload')}")
                return False
        except Exception:
            logger.warning(f"Failed to handle subscription message: {message}", exc_info=True)
            return True

        if acknowledged and self.fallback is not None:
            # Media created while no session was subscribed is only visible to a diff
            await self._catch_up()
        if event is not None:
            await self.notify_books_added([event])
        return True

    def _on_connected(self):
        if self.status != "connected":
            logger.info("Stump subscription established")
        self.status = "connected"
        self.backoff.reset()
        self.circuit.record_success()

    async def _poll_fallback(self):
        if self.status != "degraded":
            logger.warning("Stump subscription unavailable, falling back to polling")
        self.status = "degraded"
        await self._catch_up()
        await self._sleep(self.poll_interval)

    async def _catch_up(self):
        async for changes in self.fallback.poll():
            await self._emit_changes(changes)
