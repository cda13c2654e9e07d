import unittest
from datetime import date

from stump_mediaserver.adapter import (
    StumpMediaServerClientAdapter,
    to_media_server_book,
    to_media_server_series,
    to_stump_media_metadata_input,
    to_stump_series_metadata_input,
)
from stump_mediaserver.domain import (
    Image,
    MediaServerAuthor,
    MediaServerBookMetadataUpdate,
    MediaServerSeriesMetadataUpdate,
    SeriesStatus,
    SeriesTitle,
)
from stump_mediaserver.exceptions import StumpResourceNotFoundError
from stump_mediaserver.models import (
    StumpLibrary,
    StumpMedia,
    StumpMediaMetadata,
    StumpMediaSeriesSelection,
    StumpMediaWithSeries,
    StumpPage,
    StumpSeries,
    StumpSeriesMetadata,
)


def make_series(**kwargs):
    fields = dict(id="s1", name="Saga", path="/comics/Saga", library_id="lib", media_count=3)
    fields.update(kwargs)
    return StumpSeries(**fields)


class FakeClient:
    def __init__(self):
        self.scanned = []
        self.series_updates = []
        self.media_updates = []
        self.uploads = []
        self.covers = {}

    async def get_libraries(self):
        return [StumpLibrary(id="lib", name="Comics", path="/comics")]

    async def get_series_page(self, library_id, page=1, page_size=500):
        return StumpPage[StumpSeries](
            content=[make_series()], total_pages=1, total_elements=1,
            current_page=page, page_size=page_size, has_next=False, has_previous=False,
        )

    async def get_media_with_series(self, media_id):
        return StumpMediaWithSeries(
            id=media_id, name="Saga 001", path="/comics/Saga/Saga 001.cbz", series_id="s1", library_id="lib",
            series=StumpMediaSeriesSelection(id="s1", name="Saga", resolved_name="Saga"),
        )

    async def get_series_cover(self, series_id):
        if series_id not in self.covers:
            raise StumpResourceNotFoundError("Series cover not found")
        return self.covers[series_id]

    async def get_media_cover(self, media_id):
        raise StumpResourceNotFoundError("Media cover not found")

    async def update_series_metadata(self, series_id, metadata):
        self.series_updates.append((series_id, metadata))

    async def update_media_metadata(self, media_id, metadata):
        self.media_updates.append((media_id, metadata))

    async def upload_series_cover(self, series_id, cover):
        self.uploads.append((series_id, cover))

    async def scan_series(self, series_id):
        self.scanned.append(series_id)
        return True


class TestMapping(unittest.TestCase):
    def test_series_with_metadata(self):
        series = make_series(metadata=StumpSeriesMetadata(
            title="Saga (2012)", status="Cancelled", summary="Space opera", writers=["Brian K. Vaughan"],
            genres=None,
        ))

        result = to_media_server_series(series)

        self.assertEqual(result.metadata.title, "Saga (2012)")
        self.assertEqual(result.metadata.status, SeriesStatus.ABANDONED)
        self.assertEqual(result.metadata.genres, [])
        self.assertEqual(result.metadata.authors, [MediaServerAuthor(name="Brian K. Vaughan", role="WRITER")])
        self.assertEqual(result.books_count, 3)

    def test_series_without_metadata(self):
        result = to_media_server_series(make_series(description="From the folder"))

        self.assertEqual(result.metadata.title, "Saga")
        self.assertEqual(result.metadata.summary, "From the folder")
        self.assertEqual(result.metadata.total_book_count, 3)
        self.assertEqual(result.metadata.status, SeriesStatus.ONGOING)

    def test_book_from_metadata(self):
        media = StumpMedia(
            id="m1", name="Saga 001", path="/comics/Saga/Saga 001.cbz", series_id="s1", series_position=7,
            metadata=StumpMediaMetadata(
                title="Chapter One", number=1.0, year=2012, month=3,
                writers=["Brian K. Vaughan"], pencillers=["Fiona Staples"],
            ),
        )

        book = to_media_server_book(media)

        self.assertEqual(book.name, "Saga 001")
        self.assertEqual(book.number, 1)
        self.assertEqual(book.series_title, "Unknown Series")
        self.assertEqual(book.metadata.number, "1")
        self.assertEqual(book.metadata.release_date, date(2012, 3, 1))
        self.assertEqual([a.role for a in book.metadata.authors], ["WRITER", "PENCILLER"])

    def test_book_without_metadata_uses_position(self):
        media = StumpMedia(id="m1", name="Saga 001", path="/comics/Saga/Saga 001.cbz", series_id="s1", series_position=4)

        book = to_media_server_book(media)

        self.assertEqual(book.number, 4)
        self.assertEqual(book.metadata.number, "4")
        self.assertEqual(book.metadata.title, "Saga 001")

    def test_series_update_input(self):
        update = MediaServerSeriesMetadataUpdate(
            title=SeriesTitle(name="Saga"),
            status=SeriesStatus.ABANDONED,
            authors=[MediaServerAuthor(name="Brian K. Vaughan", role="WRITER"),
                     MediaServerAuthor(name="Fiona Staples", role="PENCILLER")],
        )

        result = to_stump_series_metadata_input(update).model_dump(by_alias=True, exclude_none=True)

        self.assertEqual(result, {"title": "Saga", "status": "cancelled", "writers": ["Brian K. Vaughan"]})

    def test_book_update_input(self):
        update = MediaServerBookMetadataUpdate(number="12.5", release_date=date(2013, 6, 2), isbn="978-1607066019")

        result = to_stump_media_metadata_input(update).model_dump(by_alias=True, exclude_none=True)

        self.assertEqual(result, {
            "number": 12.5, "year": 2013, "month": 6, "day": 2, "identifierIsbn": "978-1607066019",
        })

    def test_book_update_ignores_non_numeric_number(self):
        self.assertIsNone(to_stump_media_metadata_input(MediaServerBookMetadataUpdate(number="1a")).number)


class TestAdapter(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.client = FakeClient()
        self.adapter = StumpMediaServerClientAdapter(self.client)

    async def test_libraries_and_pages(self):
        libraries = await self.adapter.get_libraries()
        self.assertEqual(libraries[0].roots, ["/comics"])

        page = await self.adapter.get_series_page("lib", 1)
        self.assertEqual(page.page_number, 1)
        self.assertEqual(page.content[0].id, "s1")

    async def test_book_lookup(self):
        book = await self.adapter.get_book("m1")
        self.assertEqual(book.series_title, "Saga")
        self.assertEqual(book.library_id, "lib")

    async def test_missing_thumbnails(self):
        self.assertIsNone(await self.adapter.get_series_thumbnail("s1"))
        self.assertEqual(await self.adapter.get_series_thumbnails("s1"), [])
        self.assertEqual(await self.adapter.get_book_thumbnails("m1"), [])

    async def test_present_thumbnail(self):
        self.client.covers["s1"] = Image(data=b"img", mime_type="image/webp")
        thumbnails = await self.adapter.get_series_thumbnails("s1")
        self.assertEqual([t.id for t in thumbnails], ["default"])
        self.assertTrue(thumbnails[0].selected)

    async def test_updates_go_through_client(self):
        await self.adapter.update_series_metadata("s1", MediaServerSeriesMetadataUpdate(summary="New"))
        await self.adapter.update_book_metadata("m1", MediaServerBookMetadataUpdate(title="New"))
        await self.adapter.upload_series_thumbnail("s1", Image(data=b"img"))

        self.assertEqual(self.client.series_updates[0][1].summary, "New")
        self.assertEqual(self.client.media_updates[0][1].title, "New")
        self.assertEqual(self.client.uploads[0][0], "s1")

    async def test_refresh_scans_series(self):
        await self.adapter.refresh_metadata("lib", "s1")
        self.assertEqual(self.client.scanned, ["s1"])

    async def test_unsupported_operations_are_noops(self):
        await self.adapter.delete_series_thumbnail("s1", "default")
        await self.adapter.delete_book_thumbnail("m1", "default")
        await self.adapter.reset_series_metadata("s1", "Saga")
        await self.adapter.reset_book_metadata("m1", "Saga 001", 1)
        self.assertEqual(self.client.series_updates, [])


if __name__ == '__main__':
    unittest.main()
