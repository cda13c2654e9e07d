import logging
from typing import AsyncIterator, Dict, Iterable, List, Optional, Set
from pydantic import BaseModel, Field

from ..config import settings
from ..events import BookEvent, SeriesEvent

logger = logging.getLogger(__name__)


class LibrarySnapshot(BaseModel):
    media: Dict[str, BookEvent] = Field(default_factory=dict)  # media id -> identifiers
    series_ids: Set[str] = Field(default_factory=set)


class LibraryChanges(BaseModel):
    library_id: str
    added_books: List[BookEvent] = Field(default_factory=list)
    removed_series: List[SeriesEvent] = Field(default_factory=list)


class SeenMediaStore:
    """Last successfully enumerated snapshot per library. Memory only."""

    def __init__(self):
        self._snapshots: Dict[str, LibrarySnapshot] = {}

    def get(self, library_id: str) -> Optional[LibrarySnapshot]:
        return self._snapshots.get(library_id)

    def replace(self, library_id: str, snapshot: LibrarySnapshot):
        self._snapshots[library_id] = snapshot

    def retain(self, library_ids: Iterable[str]):
        keep = set(library_ids)
        for library_id in list(self._snapshots):
            if library_id not in keep:
                logger.info(f"Library {library_id} is gone, dropping its snapshot")
                del self._snapshots[library_id]


class LibraryChangeDetector:
    """
    Turns full library listings into "what appeared since last time".

    The first successful enumeration of a library is only recorded as a
    baseline. A snapshot is replaced only after the whole library was read,
    so a failure halfway leaves the previous state untouched.
    """

    def __init__(
        self,
        client,
        store: Optional[SeenMediaStore] = None,
        page_size: Optional[int] = None,
        detect_removed_series: Optional[bool] = None,
    ):
        self.client = client
        self.store = store if store is not None else SeenMediaStore()
        self.page_size = page_size or settings.POLL_PAGE_SIZE
        self.detect_removed_series = (
            settings.POLL_DETECT_REMOVED_SERIES if detect_removed_series is None else detect_removed_series
        )

    async def poll(self) -> AsyncIterator[LibraryChanges]:
        """Checks every library, yielding changes per library. Failures are logged and skipped."""
        try:
            libraries = await self.client.get_libraries()
        except Exception as e:
            logger.error(f"Failed to fetch Stump libraries: {e}", exc_info=True)
            return

        self.store.retain(library.id for library in libraries)
        for library in libraries:
            try:
                changes = await self.detect(library.id)
            except Exception as e:
                logger.error(f"Failed to check Stump library {library.id} for changes: {e}", exc_info=True)
                continue
            yield changes

    async def detect(self, library_id: str) -> LibraryChanges:
        current = await self.snapshot(library_id)
        previous = self.store.get(library_id)
        self.store.replace(library_id, current)

        if previous is None:
            logger.info(
                f"Recorded baseline for library {library_id}: "
                f"{len(current.media)} media in {len(current.series_ids)} series"
            )
            return LibraryChanges(library_id=library_id)

        added = [event for media_id, event in current.media.items() if media_id not in previous.media]
        removed: List[SeriesEvent] = []
        if self.detect_removed_series:
            removed = [
                SeriesEvent(library_id=library_id, series_id=series_id)
                for series_id in sorted(previous.series_ids - current.series_ids)
            ]

        if added or removed:
            logger.info(f"Library {library_id}: {len(added)} new media, {len(removed)} removed series")
        else:
            logger.debug(f"No changes in library {library_id}")
        return LibraryChanges(library_id=library_id, added_books=added, removed_series=removed)

    async def snapshot(self, library_id: str) -> LibrarySnapshot:
        snapshot = LibrarySnapshot()
        page = 1
        while True:
            series_page = await self.client.get_series_page(library_id, page, self.page_size)
            for series in series_page.content:
                snapshot.series_ids.add(series.id)
                for media in await self.client.get_all_media(series.id):
                    snapshot.media[media.id] = BookEvent(
                        library_id=media.library_id or library_id,
                        series_id=media.series_id,
                        book_id=media.id,
                    )
            if not series_page.has_next or not series_page.content:
                break
            # Never request past the reported last page
            if series_page.total_pages is not None and page >= series_page.total_pages:
                break
            page += 1
        return snapshot
