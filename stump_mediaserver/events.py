import logging
from typing import List
from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class BookEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    library_id: str
    series_id: str
    book_id: str


class SeriesEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    library_id: str
    series_id: str


class MediaServerEventListener:
    """
    Receives change notifications from a media server.

    Every method defaults to a no-op so listeners only override what they
    care about. Stump currently only reports added books (and, when
    polling, removed series); the remaining hooks exist for other backends.
    """

    async def on_books_added(self, events: List[BookEvent]):
        pass

    async def on_books_deleted(self, events: List[BookEvent]):
        pass

    async def on_series_changed(self, events: List[SeriesEvent]):
        pass

    async def on_series_deleted(self, events: List[SeriesEvent]):
        pass


class LoggingEventListener(MediaServerEventListener):
    async def on_books_added(self, events: List[BookEvent]):
        for event in events:
            logger.info(f"Book added: {event.book_id} (series {event.series_id}, library {event.library_id})")

    async def on_series_deleted(self, events: List[SeriesEvent]):
        for event in events:
            logger.info(f"Series removed: {event.series_id} (library {event.library_id})")
