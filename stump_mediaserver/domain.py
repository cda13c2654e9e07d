"""
Vendor-neutral media server model. Backend adapters translate their own
records into these types so the host application never sees Stump shapes.
"""
from abc import ABC, abstractmethod
from datetime import date
from enum import Enum
from typing import Generic, List, Optional, Set, TypeVar
from pydantic import BaseModel, Field

T = TypeVar("T")


class SeriesStatus(str, Enum):
    ENDED = "ENDED"
    ONGOING = "ONGOING"
    ABANDONED = "ABANDONED"
    HIATUS = "HIATUS"
    COMPLETED = "COMPLETED"


class ReadingDirection(str, Enum):
    LEFT_TO_RIGHT = "LEFT_TO_RIGHT"
    RIGHT_TO_LEFT = "RIGHT_TO_LEFT"
    VERTICAL = "VERTICAL"
    WEBTOON = "WEBTOON"


class Image(BaseModel):
    data: bytes
    mime_type: Optional[str] = None


class WebLink(BaseModel):
    label: str
    url: str


class MediaServerAuthor(BaseModel):
    name: str
    role: str


class MediaServerAlternativeTitle(BaseModel):
    label: str
    title: str


class SeriesTitle(BaseModel):
    name: str
    type: Optional[str] = None
    language: Optional[str] = None


class MediaServerLibrary(BaseModel):
    id: str
    name: str
    roots: List[str] = Field(default_factory=list)


class MediaServerSeriesMetadata(BaseModel):
    status: SeriesStatus = SeriesStatus.ONGOING
    title: str
    title_sort: str
    alternative_titles: List[MediaServerAlternativeTitle] = Field(default_factory=list)
    summary: str = ""
    reading_direction: Optional[ReadingDirection] = None
    publisher: Optional[str] = None
    alternative_publishers: Set[str] = Field(default_factory=set)
    age_rating: Optional[int] = None
    language: Optional[str] = None
    genres: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    total_book_count: Optional[int] = None
    authors: List[MediaServerAuthor] = Field(default_factory=list)
    release_year: Optional[int] = None
    links: List[WebLink] = Field(default_factory=list)

    status_lock: bool = False
    title_lock: bool = False
    title_sort_lock: bool = False
    summary_lock: bool = False
    reading_direction_lock: bool = False
    publisher_lock: bool = False
    age_rating_lock: bool = False
    language_lock: bool = False
    genres_lock: bool = False
    tags_lock: bool = False
    total_book_count_lock: bool = False
    authors_lock: bool = False
    release_year_lock: bool = False
    alternative_titles_lock: bool = False
    links_lock: bool = False


class MediaServerSeries(BaseModel):
    id: str
    library_id: str
    name: str
    books_count: Optional[int] = None
    metadata: MediaServerSeriesMetadata
    url: Optional[str] = None
    deleted: bool = False


class MediaServerBookMetadata(BaseModel):
    title: str
    summary: Optional[str] = None
    number: str
    number_sort: Optional[str] = None
    release_date: Optional[date] = None
    authors: List[MediaServerAuthor] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    isbn: Optional[str] = None
    links: List[WebLink] = Field(default_factory=list)

    title_lock: bool = False
    summary_lock: bool = False
    number_lock: bool = False
    number_sort_lock: bool = False
    release_date_lock: bool = False
    authors_lock: bool = False
    tags_lock: bool = False
    isbn_lock: bool = False
    links_lock: bool = False


class MediaServerBook(BaseModel):
    id: str
    series_id: str
    library_id: Optional[str] = None
    series_title: str
    name: str
    url: str
    number: Optional[int] = None
    oneshot: bool = False
    metadata: MediaServerBookMetadata
    deleted: bool = False


class MediaServerSeriesThumbnail(BaseModel):
    id: str
    series_id: str
    type: Optional[str] = None
    selected: bool = False


class MediaServerBookThumbnail(BaseModel):
    id: str
    book_id: str
    type: Optional[str] = None
    selected: bool = False


class MediaServerSeriesMetadataUpdate(BaseModel):
    status: Optional[SeriesStatus] = None
    title: Optional[SeriesTitle] = None
    title_sort: Optional[SeriesTitle] = None
    alternative_titles: Optional[List[SeriesTitle]] = None
    summary: Optional[str] = None
    reading_direction: Optional[ReadingDirection] = None
    publisher: Optional[str] = None
    alternative_publishers: Optional[Set[str]] = None
    age_rating: Optional[int] = None
    language: Optional[str] = None
    genres: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    total_book_count: Optional[int] = None
    authors: Optional[List[MediaServerAuthor]] = None
    release_year: Optional[int] = None
    links: Optional[List[WebLink]] = None


class MediaServerBookMetadataUpdate(BaseModel):
    title: Optional[str] = None
    summary: Optional[str] = None
    number: Optional[str] = None
    number_sort: Optional[float] = None
    release_date: Optional[date] = None
    authors: Optional[List[MediaServerAuthor]] = None
    tags: Optional[List[str]] = None
    isbn: Optional[str] = None
    links: Optional[List[WebLink]] = None


class Page(BaseModel, Generic[T]):
    content: List[T]
    page_number: Optional[int] = None
    total_pages: Optional[int] = None
    total_elements: Optional[int] = None


class MediaServerClient(ABC):
    """Operations the host application needs from any media server backend."""

    @abstractmethod
    async def get_series(self, series_id: str) -> MediaServerSeries: ...

    @abstractmethod
    async def get_series_page(self, library_id: str, page_number: int) -> Page[MediaServerSeries]: ...

    @abstractmethod
    async def get_series_thumbnail(self, series_id: str) -> Optional[Image]: ...

    @abstractmethod
    async def get_series_thumbnails(self, series_id: str) -> List[MediaServerSeriesThumbnail]: ...

    @abstractmethod
    async def get_book(self, book_id: str) -> MediaServerBook: ...

    @abstractmethod
    async def get_books(self, series_id: str) -> List[MediaServerBook]: ...

    @abstractmethod
    async def get_book_thumbnails(self, book_id: str) -> List[MediaServerBookThumbnail]: ...

    @abstractmethod
    async def get_book_thumbnail(self, book_id: str) -> Optional[Image]: ...

    @abstractmethod
    async def get_library(self, library_id: str) -> MediaServerLibrary: ...

    @abstractmethod
    async def get_libraries(self) -> List[MediaServerLibrary]: ...

    @abstractmethod
    async def update_series_metadata(self, series_id: str, metadata: MediaServerSeriesMetadataUpdate): ...

    @abstractmethod
    async def delete_series_thumbnail(self, series_id: str, thumbnail_id: str): ...

    @abstractmethod
    async def update_book_metadata(self, book_id: str, metadata: MediaServerBookMetadataUpdate): ...

    @abstractmethod
    async def delete_book_thumbnail(self, book_id: str, thumbnail_id: str): ...

    @abstractmethod
    async def reset_book_metadata(self, book_id: str, book_name: str, book_number: Optional[int]): ...

    @abstractmethod
    async def reset_series_metadata(self, series_id: str, series_name: str): ...

    @abstractmethod
    async def upload_series_thumbnail(
        self, series_id: str, thumbnail: Image, selected: bool = False, lock: bool = False
    ) -> Optional[MediaServerSeriesThumbnail]: ...

    @abstractmethod
    async def upload_book_thumbnail(
        self, book_id: str, thumbnail: Image, selected: bool = False, lock: bool = False
    ) -> Optional[MediaServerBookThumbnail]: ...

    @abstractmethod
    async def refresh_metadata(self, library_id: str, series_id: str): ...
