import logging
from typing import Iterable, Optional

from ..clients.stump_client import StumpClient
from ..config import settings
from ..events import MediaServerEventListener
from .base import EventNotifier
from .changes import LibraryChangeDetector
from .polling import PollingEventNotifier
from .subscription import SubscriptionEventNotifier

logger = logging.getLogger(__name__)

EVENT_MODES = ("auto", "subscription", "polling")


def create_event_notifier(
    client: StumpClient,
    listeners: Iterable[MediaServerEventListener],
    mode: Optional[str] = None,
) -> EventNotifier:
    """
    Picks the notifier strategy once, at construction time:

    subscription - push only, reconnecting forever (or up to RECONNECT_MAX_ATTEMPTS)
    polling      - periodic enumeration and diffing
    auto         - push, degrading to polling while the subscription circuit is open
    """
    mode = (mode or settings.EVENTS_MODE).lower()
    if mode not in EVENT_MODES:
        raise ValueError(f"Unknown EVENTS_MODE {mode!r}, expected one of {', '.join(EVENT_MODES)}")

    listeners = list(listeners)
    if mode == "polling":
        return PollingEventNotifier(client, listeners, listener_timeout=settings.LISTENER_TIMEOUT_SECONDS)

    fallback = LibraryChangeDetector(client) if mode == "auto" else None
    return SubscriptionEventNotifier(
        client.base_url,
        client.auth_provider,
        listeners,
        fallback=fallback,
        listener_timeout=settings.LISTENER_TIMEOUT_SECONDS,
    )


__all__ = [
    "EVENT_MODES",
    "EventNotifier",
    "LibraryChangeDetector",
    "PollingEventNotifier",
    "SubscriptionEventNotifier",
    "create_event_notifier",
]
