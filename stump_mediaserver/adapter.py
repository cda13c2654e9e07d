import logging
from datetime import date
from pathlib import PurePath
from typing import List, Optional

from .clients.stump_client import StumpClient
from .domain import (
    Image,
    MediaServerAuthor,
    MediaServerBook,
    MediaServerBookMetadata,
    MediaServerBookMetadataUpdate,
    MediaServerBookThumbnail,
    MediaServerClient,
    MediaServerLibrary,
    MediaServerSeries,
    MediaServerSeriesMetadata,
    MediaServerSeriesMetadataUpdate,
    MediaServerSeriesThumbnail,
    Page,
    SeriesStatus,
    WebLink,
)
from .exceptions import StumpError
from .models import (
    StumpLibrary,
    StumpMedia,
    StumpMediaMetadata,
    StumpMediaMetadataInput,
    StumpSeries,
    StumpSeriesMetadata,
    StumpSeriesMetadataInput,
)

logger = logging.getLogger(__name__)

# Stump has a single generated cover per series/media
DEFAULT_THUMBNAIL_ID = "default"

_STATUS_FROM_STUMP = {
    "ongoing": SeriesStatus.ONGOING,
    "completed": SeriesStatus.COMPLETED,
    "cancelled": SeriesStatus.ABANDONED,
    "abandoned": SeriesStatus.ABANDONED,
    "hiatus": SeriesStatus.HIATUS,
    "ended": SeriesStatus.ENDED,
}

_STATUS_TO_STUMP = {
    SeriesStatus.ONGOING: "ongoing",
    SeriesStatus.COMPLETED: "completed",
    SeriesStatus.ABANDONED: "cancelled",
    SeriesStatus.HIATUS: "hiatus",
    SeriesStatus.ENDED: "ended",
}

_AUTHOR_ROLES = [
    ("writers", "WRITER"),
    ("pencillers", "PENCILLER"),
    ("inkers", "INKER"),
    ("colorists", "COLORIST"),
    ("letterers", "LETTERER"),
    ("editors", "EDITOR"),
]


class StumpMediaServerClientAdapter(MediaServerClient):
    def __init__(self, client: StumpClient):
        self.client = client

    async def get_series(self, series_id: str) -> MediaServerSeries:
        return to_media_server_series(await self.client.get_series(series_id))

    async def get_series_page(self, library_id: str, page_number: int) -> Page[MediaServerSeries]:
        page = await self.client.get_series_page(library_id, page_number)
        return Page[MediaServerSeries](
            content=[to_media_server_series(series) for series in page.content],
            page_number=page.current_page,
            total_elements=page.total_elements,
            total_pages=page.total_pages,
        )

    async def get_series_thumbnail(self, series_id: str) -> Optional[Image]:
        try:
            return await self.client.get_series_cover(series_id)
        except StumpError as e:
            logger.debug(f"No cover for series {series_id}: {e}")
            return None

    async def get_series_thumbnails(self, series_id: str) -> List[MediaServerSeriesThumbnail]:
        if await self.get_series_thumbnail(series_id) is None:
            return []
        return [MediaServerSeriesThumbnail(id=DEFAULT_THUMBNAIL_ID, series_id=series_id, type="generated", selected=True)]

    async def get_book(self, book_id: str) -> MediaServerBook:
        return to_media_server_book(await self.client.get_media_with_series(book_id))

    async def get_books(self, series_id: str) -> List[MediaServerBook]:
        return [to_media_server_book(media) for media in await self.client.get_all_media(series_id)]

    async def get_book_thumbnails(self, book_id: str) -> List[MediaServerBookThumbnail]:
        if await self.get_book_thumbnail(book_id) is None:
            return []
        return [MediaServerBookThumbnail(id=DEFAULT_THUMBNAIL_ID, book_id=book_id, type="generated", selected=True)]

    async def get_book_thumbnail(self, book_id: str) -> Optional[Image]:
        try:
            return await self.client.get_media_cover(book_id)
        except StumpError as e:
            logger.debug(f"No cover for book {book_id}: {e}")
            return None

    async def get_library(self, library_id: str) -> MediaServerLibrary:
        return to_media_server_library(await self.client.get_library(library_id))

    async def get_libraries(self) -> List[MediaServerLibrary]:
        return [to_media_server_library(library) for library in await self.client.get_libraries()]

    async def update_series_metadata(self, series_id: str, metadata: MediaServerSeriesMetadataUpdate):
        await self.client.update_series_metadata(series_id, to_stump_series_metadata_input(metadata))

    async def delete_series_thumbnail(self, series_id: str, thumbnail_id: str):
        logger.debug(f"Stump cannot delete series thumbnails, ignoring {thumbnail_id} for series {series_id}")

    async def update_book_metadata(self, book_id: str, metadata: MediaServerBookMetadataUpdate):
        await self.client.update_media_metadata(book_id, to_stump_media_metadata_input(metadata))

    async def delete_book_thumbnail(self, book_id: str, thumbnail_id: str):
        logger.debug(f"Stump cannot delete media thumbnails, ignoring {thumbnail_id} for book {book_id}")

    async def reset_book_metadata(self, book_id: str, book_name: str, book_number: Optional[int]):
        logger.debug(f"Stump has no metadata reset, ignoring reset of book {book_id}")

    async def reset_series_metadata(self, series_id: str, series_name: str):
        logger.debug(f"Stump has no metadata reset, ignoring reset of series {series_id}")

    async def upload_series_thumbnail(
        self, series_id: str, thumbnail: Image, selected: bool = False, lock: bool = False
    ) -> Optional[MediaServerSeriesThumbnail]:
        # Stump does not return thumbnail metadata after upload
        await self.client.upload_series_cover(series_id, thumbnail)
        return None

    async def upload_book_thumbnail(
        self, book_id: str, thumbnail: Image, selected: bool = False, lock: bool = False
    ) -> Optional[MediaServerBookThumbnail]:
        await self.client.upload_media_cover(book_id, thumbnail)
        return None

    async def refresh_metadata(self, library_id: str, series_id: str):
        await self.client.scan_series(series_id)


# Stump -> domain

def to_media_server_library(library: StumpLibrary) -> MediaServerLibrary:
    return MediaServerLibrary(id=library.id, name=library.name, roots=[library.path])


def to_media_server_series(series: StumpSeries) -> MediaServerSeries:
    if series.metadata is not None:
        metadata = to_series_metadata(series.metadata, series)
    else:
        metadata = default_series_metadata(series)
    return MediaServerSeries(
        id=series.id,
        library_id=series.library_id,
        name=series.name,
        books_count=series.media_count,
        metadata=metadata,
        url=series.path,
    )


def to_series_metadata(metadata: StumpSeriesMetadata, series: StumpSeries) -> MediaServerSeriesMetadata:
    return MediaServerSeriesMetadata(
        status=_STATUS_FROM_STUMP.get((metadata.status or "").lower(), SeriesStatus.ONGOING),
        title=metadata.title or series.name,
        title_sort=series.name,
        summary=metadata.summary or "",
        publisher=metadata.publisher,
        age_rating=metadata.age_rating,
        genres=metadata.genres,
        authors=[MediaServerAuthor(name=name, role="WRITER") for name in metadata.writers],
        links=[WebLink(label=link, url=link) for link in metadata.links],
    )


def default_series_metadata(series: StumpSeries) -> MediaServerSeriesMetadata:
    return MediaServerSeriesMetadata(
        title=series.name,
        title_sort=series.name,
        summary=series.description or "",
        total_book_count=series.media_count if series.media_count > 0 else None,
    )


def to_media_server_book(media: StumpMedia) -> MediaServerBook:
    number = int(media.metadata.number) if media.metadata and media.metadata.number is not None else media.series_position
    if media.metadata is not None:
        metadata = to_book_metadata(media.metadata)
    else:
        metadata = default_book_metadata(media)
    return MediaServerBook(
        id=media.id,
        series_id=media.series_id,
        library_id=media.library_id,
        series_title=media.series.resolved_name if media.series else "Unknown Series",
        name=PurePath(media.path).stem or media.name,
        url=media.path,
        number=number,
        metadata=metadata,
    )


def to_book_metadata(metadata: StumpMediaMetadata) -> MediaServerBookMetadata:
    authors = [
        MediaServerAuthor(name=name, role=role)
        for field, role in _AUTHOR_ROLES
        for name in getattr(metadata, field)
    ]
    number = _format_number(metadata.number)
    return MediaServerBookMetadata(
        title=metadata.title or "",
        summary=metadata.summary,
        number=number or "0",
        number_sort=number,
        release_date=_release_date(metadata.year, metadata.month, metadata.day),
        authors=authors,
        tags=metadata.genres,
        isbn=metadata.identifier_isbn,
        links=[WebLink(label=link, url=link) for link in metadata.links],
    )


def default_book_metadata(media: StumpMedia) -> MediaServerBookMetadata:
    position = str(media.series_position) if media.series_position is not None else "0"
    return MediaServerBookMetadata(
        title=media.name,
        summary=media.description,
        number=position,
        number_sort=position,
    )


def _format_number(number: Optional[float]) -> Optional[str]:
    if number is None:
        return None
    return str(int(number)) if float(number).is_integer() else str(number)


def _release_date(year: Optional[int], month: Optional[int], day: Optional[int]) -> Optional[date]:
    if year is None:
        return None
    try:
        return date(year, month or 1, day or 1)
    except ValueError:
        return None


# domain -> Stump

def _names_with_role(authors, role: str) -> Optional[List[str]]:
    # None leaves the field untouched on update
    if authors is None:
        return None
    return [author.name for author in authors if author.role == role]


def _link_urls(links) -> Optional[List[str]]:
    return [link.url for link in links] if links is not None else None


def to_stump_series_metadata_input(metadata: MediaServerSeriesMetadataUpdate) -> StumpSeriesMetadataInput:
    return StumpSeriesMetadataInput(
        title=metadata.title.name if metadata.title else None,
        summary=metadata.summary,
        publisher=metadata.publisher,
        status=_STATUS_TO_STUMP.get(metadata.status) if metadata.status else None,
        age_rating=metadata.age_rating,
        genres=metadata.genres,
        writers=_names_with_role(metadata.authors, "WRITER"),
        links=_link_urls(metadata.links),
    )


def to_stump_media_metadata_input(metadata: MediaServerBookMetadataUpdate) -> StumpMediaMetadataInput:
    number = None
    if metadata.number is not None:
        try:
            number = float(metadata.number)
        except ValueError:
            number = None
    release = metadata.release_date
    return StumpMediaMetadataInput(
        title=metadata.title,
        summary=metadata.summary,
        number=number,
        year=release.year if release else None,
        month=release.month if release else None,
        day=release.day if release else None,
        genres=metadata.tags,
        writers=_names_with_role(metadata.authors, "WRITER"),
        pencillers=_names_with_role(metadata.authors, "PENCILLER"),
        inkers=_names_with_role(metadata.authors, "INKER"),
        colorists=_names_with_role(metadata.authors, "COLORIST"),
        letterers=_names_with_role(metadata.authors, "LETTERER"),
        editors=_names_with_role(metadata.authors, "EDITOR"),
        links=_link_urls(metadata.links),
        identifier_isbn=metadata.isbn,
    )
