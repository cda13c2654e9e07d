from datetime import datetime
from typing import Annotated, Any, Dict, Generic, List, Optional, TypeVar, Union
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")

# Stump sends null for empty list fields on older servers
StringList = Annotated[List[str], BeforeValidator(lambda v: v or [])]


class StumpModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StumpTag(StumpModel):
    id: str
    name: str


class StumpThumbnailConfig(StumpModel):
    format: str = "WEBP"
    quality: Optional[float] = 85


class StumpLibraryConfig(StumpModel):
    convert_rar_to_zip: bool = False
    hard_delete_conversions: bool = False
    generate_file_hashes: bool = False
    process_metadata: bool = True
    thumbnail_config: Optional[StumpThumbnailConfig] = None


class StumpLibrary(StumpModel):
    id: str
    name: str
    description: Optional[str] = None
    path: str
    status: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    tags: List[StumpTag] = Field(default_factory=list)
    config: Optional[StumpLibraryConfig] = None


class StumpSeriesMetadata(StumpModel):
    series_id: Optional[str] = None
    age_rating: Optional[int] = None
    booktype: Optional[str] = None
    comicid: Optional[int] = None
    description_formatted: Optional[str] = None
    imprint: Optional[str] = None
    meta_type: Optional[str] = None
    publication_run: Optional[str] = None
    publisher: Optional[str] = None
    status: Optional[str] = None
    summary: Optional[str] = None
    title: Optional[str] = None
    total_issues: Optional[int] = None
    volume: Optional[int] = None
    year: Optional[int] = None
    characters: StringList = Field(default_factory=list)
    genres: StringList = Field(default_factory=list)
    links: StringList = Field(default_factory=list)
    writers: StringList = Field(default_factory=list)


class StumpSeries(StumpModel):
    id: str
    name: str
    description: Optional[str] = None
    path: str
    status: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    library_id: str
    media_count: int = 0
    tags: List[StumpTag] = Field(default_factory=list)
    metadata: Optional[StumpSeriesMetadata] = None


class StumpMediaMetadata(StumpModel):
    id: Union[int, str, None] = None
    media_id: Optional[str] = None
    age_rating: Optional[int] = None
    format: Optional[str] = None
    day: Optional[int] = None
    language: Optional[str] = None
    month: Optional[int] = None
    notes: Optional[str] = None
    number: Optional[float] = None
    page_count: Optional[int] = None
    publisher: Optional[str] = None
    series: Optional[str] = None
    series_group: Optional[str] = None
    story_arc: Optional[str] = None
    story_arc_number: Optional[float] = None
    summary: Optional[str] = None
    title: Optional[str] = None
    title_sort: Optional[str] = None
    volume: Optional[int] = None
    year: Optional[int] = None
    identifier_isbn: Optional[str] = None
    writers: StringList = Field(default_factory=list)
    genres: StringList = Field(default_factory=list)
    characters: StringList = Field(default_factory=list)
    colorists: StringList = Field(default_factory=list)
    cover_artists: StringList = Field(default_factory=list)
    editors: StringList = Field(default_factory=list)
    inkers: StringList = Field(default_factory=list)
    letterers: StringList = Field(default_factory=list)
    links: StringList = Field(default_factory=list)
    pencillers: StringList = Field(default_factory=list)
    teams: StringList = Field(default_factory=list)


class StumpMediaSeriesSelection(StumpModel):
    id: str
    name: str
    resolved_name: str
    metadata: Optional[StumpSeriesMetadata] = None


class StumpMedia(StumpModel):
    id: str
    name: str
    description: Optional[str] = None
    path: str
    size: int = 0
    extension: Optional[str] = None
    pages: int = 0
    status: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    series_id: str
    library_id: Optional[str] = None
    hash: Optional[str] = None
    series_position: Optional[int] = None
    metadata: Optional[StumpMediaMetadata] = None
    series: Optional[StumpMediaSeriesSelection] = None


class StumpMediaWithSeries(StumpMedia):
    series: StumpMediaSeriesSelection


class StumpPaginationInfo(StumpModel):
    total_pages: int
    total_items: Optional[int] = None
    current_page: int
    page_size: int
    page_offset: Optional[int] = None
    zero_based: Optional[bool] = None


class StumpPage(BaseModel, Generic[T]):
    content: List[T]
    total_pages: Optional[int] = None
    total_elements: Optional[int] = None
    current_page: int
    page_size: int
    has_next: bool
    has_previous: bool

    @classmethod
    def from_nodes(cls, nodes: List[T], page_info: Optional[StumpPaginationInfo], page: int, page_size: int):
        """Builds a page, falling back to the requested page when the server sent no page info."""
        if page_info is None:
            return cls(
                content=nodes,
                current_page=page,
                page_size=page_size,
                has_next=False,
                has_previous=False,
            )
        # Page 0 only exists in zero-based numbering, where the last page is total_pages - 1
        zero_based = page_info.zero_based if page_info.zero_based is not None else page_info.current_page == 0
        last_page = page_info.total_pages - 1 if zero_based else page_info.total_pages
        return cls(
            content=nodes,
            total_pages=page_info.total_pages,
            total_elements=page_info.total_items,
            current_page=page_info.current_page,
            page_size=page_info.page_size,
            has_next=page_info.current_page < last_page,
            has_previous=page_info.current_page > 0,
        )


# GraphQL envelopes

class StumpGraphQLRequest(BaseModel):
    query: str
    variables: Dict[str, Any] = Field(default_factory=dict)


class StumpGraphQLErrorEntry(BaseModel):
    message: str
    path: Optional[List[Union[str, int]]] = None
    extensions: Optional[Dict[str, Any]] = None


class StumpGraphQLResponse(BaseModel):
    data: Optional[Dict[str, Any]] = None
    errors: Optional[List[StumpGraphQLErrorEntry]] = None


# Mutation inputs

class StumpSeriesMetadataInput(StumpModel):
    age_rating: Optional[int] = None
    booktype: Optional[str] = None
    characters: Optional[List[str]] = None
    comicid: Optional[int] = None
    genres: Optional[List[str]] = None
    imprint: Optional[str] = None
    links: Optional[List[str]] = None
    meta_type: Optional[str] = None
    publisher: Optional[str] = None
    status: Optional[str] = None
    summary: Optional[str] = None
    title: Optional[str] = None
    volume: Optional[int] = None
    writers: Optional[List[str]] = None


class StumpMediaMetadataInput(StumpModel):
    title: Optional[str] = None
    title_sort: Optional[str] = None
    series: Optional[str] = None
    number: Optional[float] = None
    volume: Optional[int] = None
    summary: Optional[str] = None
    notes: Optional[str] = None
    genres: Optional[List[str]] = None
    year: Optional[int] = None
    month: Optional[int] = None
    day: Optional[int] = None
    writers: Optional[List[str]] = None
    pencillers: Optional[List[str]] = None
    inkers: Optional[List[str]] = None
    colorists: Optional[List[str]] = None
    letterers: Optional[List[str]] = None
    cover_artists: Optional[List[str]] = None
    editors: Optional[List[str]] = None
    publisher: Optional[str] = None
    links: Optional[List[str]] = None
    characters: Optional[List[str]] = None
    teams: Optional[List[str]] = None
    page_count: Optional[int] = None
    age_rating: Optional[int] = None
    language: Optional[str] = None
    identifier_isbn: Optional[str] = None
