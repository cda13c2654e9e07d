"""GraphQL documents sent to Stump."""

LIBRARY_FIELDS = """
    id
    name
    description
    path
    status
    createdAt
    updatedAt
    tags {
        id
        name
    }
    config {
        convertRarToZip
        hardDeleteConversions
        generateFileHashes
        processMetadata
        thumbnailConfig {
            format
            quality
        }
    }
"""

SERIES_METADATA_FIELDS = """
    seriesId
    ageRating
    booktype
    comicid
    comicImage
    descriptionFormatted
    imprint
    metaType
    publicationRun
    publisher
    status
    summary
    title
    totalIssues
    volume
    year
    characters
    collects {
        series
        comicid
        issueid
        issues
    }
    genres
    links
    writers
"""

SERIES_FIELDS = """
    id
    name
    description
    path
    status
    createdAt
    updatedAt
    libraryId
    mediaCount
    tags {
        id
        name
    }
    metadata {
""" + SERIES_METADATA_FIELDS + """
    }
"""

MEDIA_METADATA_FIELDS = """
    id
    mediaId
    ageRating
    format
    day
    language
    month
    notes
    number
    pageCount
    publisher
    series
    seriesGroup
    storyArc
    storyArcNumber
    summary
    title
    titleSort
    volume
    year
    identifierIsbn
    writers
    genres
    characters
    colorists
    coverArtists
    editors
    inkers
    letterers
    links
    pencillers
    teams
"""

MEDIA_FIELDS = """
    id
    name
    path
    size
    extension
    pages
    status
    createdAt
    updatedAt
    seriesId
    libraryId
    hash
    seriesPosition
    metadata {
""" + MEDIA_METADATA_FIELDS + """
    }
"""

PAGE_INFO_FIELDS = """
    pageInfo {
        ... on OffsetPaginationInfo {
            totalPages
            totalItems
            currentPage
            pageSize
            pageOffset
            zeroBased
        }
    }
"""

GET_LIBRARIES = """
query GetLibraries($pagination: Pagination!) {
    libraries(pagination: $pagination) {
        nodes {
""" + LIBRARY_FIELDS + """
        }
    }
}
"""

GET_LIBRARY = """
query GetLibrary($id: ID!) {
    libraryById(id: $id) {
""" + LIBRARY_FIELDS + """
    }
}
"""

SCAN_LIBRARY = """
mutation ScanLibrary($id: ID!) {
    scanLibrary(id: $id)
}
"""

GET_SERIES = """
query GetSeries($filter: SeriesFilterInput!, $pagination: Pagination!) {
    series(filter: $filter, pagination: $pagination) {
        nodes {
""" + SERIES_FIELDS + """
        }
""" + PAGE_INFO_FIELDS + """
    }
}
"""

GET_SERIES_DETAIL = """
query GetSeriesDetail($id: ID!) {
    seriesById(id: $id) {
""" + SERIES_FIELDS + """
    }
}
"""

UPDATE_SERIES_METADATA = """
mutation UpdateSeriesMetadata($id: ID!, $input: SeriesMetadataInput!) {
    updateSeriesMetadata(id: $id, input: $input) {
        id
    }
}
"""

SCAN_SERIES = """
mutation ScanSeries($id: ID!) {
    scanSeries(id: $id)
}
"""

GET_MEDIA = """
query GetMedia($filter: MediaFilterInput!, $pagination: Pagination!) {
    media(filter: $filter, pagination: $pagination) {
        nodes {
""" + MEDIA_FIELDS + """
            series {
                id
                name
                resolvedName
            }
        }
""" + PAGE_INFO_FIELDS + """
    }
}
"""

GET_ALL_MEDIA = """
query GetAllMedia($filter: MediaFilterInput!, $pagination: Pagination!) {
    media(filter: $filter, pagination: $pagination) {
        nodes {
""" + MEDIA_FIELDS + """
            series {
                id
                name
                resolvedName
            }
        }
    }
}
"""

GET_MEDIA_DETAIL = """
query GetMediaDetail($id: ID!) {
    mediaById(id: $id) {
""" + MEDIA_FIELDS + """
    }
}
"""

GET_MEDIA_WITH_SERIES = """
query GetMediaWithSeries($id: ID!) {
    mediaById(id: $id) {
""" + MEDIA_FIELDS + """
        series {
            id
            name
            resolvedName
            metadata {
""" + SERIES_METADATA_FIELDS + """
            }
        }
    }
}
"""

UPDATE_MEDIA_METADATA = """
mutation UpdateMediaMetadata($id: ID!, $input: MediaMetadataInput!) {
    updateMediaMetadata(id: $id, input: $input) {
        id
    }
}
"""

UPLOAD_SERIES_COVER = """
mutation UploadSeriesCover($id: ID!, $image: String!) {
    uploadSeriesThumbnailBase64(id: $id, image: $image) {
        id
    }
}
"""

UPLOAD_MEDIA_COVER = """
mutation UploadMediaCover($id: ID!, $image: String!) {
    uploadMediaThumbnailBase64(id: $id, image: $image) {
        id
    }
}
"""

# Stump emits more events than these, but new media is the only one acted upon.
# There is no event yet for deleted media or series.
READ_EVENTS_SUBSCRIPTION = """
subscription ReadEvents {
    readEvents {
        __typename
        ... on CreatedMedia {
            id
            seriesId
            libraryId
        }
    }
}
"""


def unpaginated():
    return {"none": {"unpaginated": True}}


def offset_pagination(page: int, page_size: int):
    return {"offset": {"page": page, "pageSize": page_size}}
