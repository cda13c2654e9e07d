import base64
import logging
import httpx
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar
from pydantic import BaseModel, ValidationError, field_validator
from ..auth import StumpAuthProvider, StumpApiKeyAuthProvider, auth_headers
from ..config import settings
from ..domain import Image
from ..exceptions import (
    StumpAuthenticationError,
    StumpEmptyResponseError,
    StumpGraphQLError,
    StumpHTTPError,
    StumpResourceNotFoundError,
    StumpTransportError,
)
from ..models import (
    StumpGraphQLRequest,
    StumpGraphQLResponse,
    StumpLibrary,
    StumpMedia,
    StumpMediaMetadataInput,
    StumpMediaWithSeries,
    StumpModel,
    StumpPage,
    StumpPaginationInfo,
    StumpSeries,
    StumpSeriesMetadataInput,
)
from ..rate_limiter import RateLimiter
from . import queries

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R", bound=BaseModel)

GRAPHQL_PATH = "api/graphql"


class _NodesResponse(StumpModel, Generic[T]):
    nodes: List[T]


class _PagedResponse(StumpModel, Generic[T]):
    nodes: List[T]
    page_info: Optional[StumpPaginationInfo] = None

    @field_validator("page_info", mode="before")
    @classmethod
    def _empty_page_info(cls, value):
        # Non-offset pagination leaves the inline fragment empty
        return value or None


class _GetLibrariesResponse(StumpModel):
    libraries: _NodesResponse[StumpLibrary]


class _GetLibraryResponse(StumpModel):
    library_by_id: Optional[StumpLibrary] = None


class _GetSeriesResponse(StumpModel):
    series: _PagedResponse[StumpSeries]


class _GetSeriesDetailResponse(StumpModel):
    series_by_id: Optional[StumpSeries] = None


class _GetMediaResponse(StumpModel):
    media: _PagedResponse[StumpMedia]


class _GetAllMediaResponse(StumpModel):
    media: _NodesResponse[StumpMedia]


class _GetMediaDetailResponse(StumpModel):
    media_by_id: Optional[StumpMedia] = None


class _GetMediaWithSeriesResponse(StumpModel):
    media_by_id: Optional[StumpMediaWithSeries] = None


class _ScanSeriesResponse(StumpModel):
    scan_series: bool


class StumpClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        auth_provider: Optional[StumpAuthProvider] = None,
        rate_limiter: Optional[RateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.STUMP_BASE_URL).rstrip('/') + '/'
        self.auth_provider = auth_provider or StumpApiKeyAuthProvider(settings.STUMP_API_KEY)
        self.updates_rate_limiter = rate_limiter or RateLimiter(
            settings.UPDATE_RATE_LIMIT_EVENTS,
            settings.UPDATE_RATE_LIMIT_INTERVAL_SECONDS,
        )
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=settings.REQUEST_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def close(self):
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    # Libraries

    async def get_libraries(self) -> List[StumpLibrary]:
        response = await self._query(
            queries.GET_LIBRARIES,
            {"pagination": queries.unpaginated()},
            _GetLibrariesResponse,
        )
        return response.libraries.nodes

    async def get_library(self, library_id: str) -> StumpLibrary:
        response = await self._query(queries.GET_LIBRARY, {"id": library_id}, _GetLibraryResponse)
        if response.library_by_id is None:
            raise StumpResourceNotFoundError(f"Library not found: {library_id}")
        return response.library_by_id

    async def scan_library(self, library_id: str):
        await self._execute(queries.SCAN_LIBRARY, {"id": library_id})
        logger.info(f"Requested scan of Stump library {library_id}")

    # Series

    async def get_series_page(self, library_id: str, page: int = 1, page_size: int = 500) -> StumpPage[StumpSeries]:
        response = await self._query(
            queries.GET_SERIES,
            {
                "filter": {"libraryId": {"eq": library_id}},
                "pagination": queries.offset_pagination(page, page_size),
            },
            _GetSeriesResponse,
        )
        return StumpPage[StumpSeries].from_nodes(
            response.series.nodes, response.series.page_info, page, page_size
        )

    async def get_series(self, series_id: str) -> StumpSeries:
        response = await self._query(queries.GET_SERIES_DETAIL, {"id": series_id}, _GetSeriesDetailResponse)
        if response.series_by_id is None:
            raise StumpResourceNotFoundError(f"Series not found: {series_id}")
        return response.series_by_id

    async def update_series_metadata(self, series_id: str, metadata: StumpSeriesMetadataInput):
        await self.updates_rate_limiter.acquire()
        await self._execute(
            queries.UPDATE_SERIES_METADATA,
            {"id": series_id, "input": metadata.model_dump(by_alias=True, exclude_none=True)},
        )
        logger.info(f"Updated metadata of Stump series {series_id}")

    async def scan_series(self, series_id: str) -> bool:
        response = await self._query(queries.SCAN_SERIES, {"id": series_id}, _ScanSeriesResponse)
        return response.scan_series

    # Media

    async def get_media_page(self, series_id: str, page: int = 1, page_size: int = 500) -> StumpPage[StumpMedia]:
        response = await self._query(
            queries.GET_MEDIA,
            {
                "filter": {"seriesId": {"eq": series_id}},
                "pagination": queries.offset_pagination(page, page_size),
            },
            _GetMediaResponse,
        )
        return StumpPage[StumpMedia].from_nodes(
            response.media.nodes, response.media.page_info, page, page_size
        )

    async def get_all_media(self, series_id: str) -> List[StumpMedia]:
        response = await self._query(
            queries.GET_ALL_MEDIA,
            {
                "filter": {"seriesId": {"eq": series_id}},
                "pagination": queries.unpaginated(),
            },
            _GetAllMediaResponse,
        )
        return response.media.nodes

    async def get_media(self, media_id: str) -> StumpMedia:
        response = await self._query(queries.GET_MEDIA_DETAIL, {"id": media_id}, _GetMediaDetailResponse)
        if response.media_by_id is None:
            raise StumpResourceNotFoundError(f"Media not found: {media_id}")
        return response.media_by_id

    async def get_media_with_series(self, media_id: str) -> StumpMediaWithSeries:
        response = await self._query(queries.GET_MEDIA_WITH_SERIES, {"id": media_id}, _GetMediaWithSeriesResponse)
        if response.media_by_id is None:
            raise StumpResourceNotFoundError(f"Media not found: {media_id}")
        return response.media_by_id

    async def update_media_metadata(self, media_id: str, metadata: StumpMediaMetadataInput):
        await self.updates_rate_limiter.acquire()
        await self._execute(
            queries.UPDATE_MEDIA_METADATA,
            {"id": media_id, "input": metadata.model_dump(by_alias=True, exclude_none=True)},
        )
        logger.info(f"Updated metadata of Stump media {media_id}")

    # Covers

    async def get_series_cover(self, series_id: str) -> Image:
        return await self._get_cover(f"api/v2/series/{series_id}/thumbnail", "Series")

    async def get_media_cover(self, media_id: str) -> Image:
        return await self._get_cover(f"api/v2/media/{media_id}/thumbnail", "Media")

    async def upload_series_cover(self, series_id: str, cover: Image):
        await self.updates_rate_limiter.acquire()
        await self._execute(
            queries.UPLOAD_SERIES_COVER,
            {"id": series_id, "image": base64.b64encode(cover.data).decode("ascii")},
        )
        logger.info(f"Uploaded cover for Stump series {series_id}")

    async def upload_media_cover(self, media_id: str, cover: Image):
        await self.updates_rate_limiter.acquire()
        await self._execute(
            queries.UPLOAD_MEDIA_COVER,
            {"id": media_id, "image": base64.b64encode(cover.data).decode("ascii")},
        )
        logger.info(f"Uploaded cover for Stump media {media_id}")

    # Transport

    def _headers(self) -> Dict[str, str]:
        return auth_headers(self.auth_provider)

    async def _get_cover(self, path: str, kind: str) -> Image:
        try:
            resp = await self.client.get(path, headers=self._headers())
        except httpx.TransportError as e:
            raise StumpTransportError(f"{kind} cover request failed: {e}") from e

        if resp.status_code == 404:
            raise StumpResourceNotFoundError(f"{kind} cover not found")
        _raise_for_status(resp, f"{kind} cover request")
        return Image(data=resp.content, mime_type=resp.headers.get("content-type"))

    async def _execute(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Runs a query or mutation and returns the `data` object.
        GraphQL errors win over partial data.
        """
        request = StumpGraphQLRequest(query=query, variables=variables or {})
        try:
            resp = await self.client.post(GRAPHQL_PATH, json=request.model_dump(), headers=self._headers())
        except httpx.TransportError as e:
            raise StumpTransportError(f"GraphQL request failed: {e}") from e

        _raise_for_status(resp, "GraphQL request")

        try:
            envelope = StumpGraphQLResponse.model_validate(resp.json())
        except ValueError as e:
            raise StumpGraphQLError(f"Malformed GraphQL response: {e}") from e

        if envelope.errors:
            messages = [error.message for error in envelope.errors]
            raise StumpGraphQLError(f"GraphQL errors: {', '.join(messages)}", messages)

        if envelope.data is None:
            raise StumpEmptyResponseError("GraphQL response data is null")
        return envelope.data

    async def _query(self, query: str, variables: Dict[str, Any], response_type: Type[R]) -> R:
        data = await self._execute(query, variables)
        try:
            return response_type.model_validate(data)
        except ValidationError as e:
            raise StumpGraphQLError(f"Unexpected GraphQL response shape: {e}") from e


def _raise_for_status(resp: httpx.Response, what: str):
    if resp.is_success:
        return
    message = f"{what} failed with status {resp.status_code}"
    if resp.status_code in (401, 403):
        raise StumpAuthenticationError(message, resp.status_code)
    raise StumpHTTPError(message, resp.status_code)
