"""
Hosted image helpers: URL transform profiles and remote retrieval.

Registration images live on the image host (Cloudinary). Before embedding
them into an export we ask the host for a variant that the output format
handles well (PNG for archival documents, JPEG for spreadsheets, a small JPEG
thumbnail for the PDF roster), then download and sanity check the bytes.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

import requests

from . import config
from .errors import FetchError, InvalidImageFormat

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b'\x89PNG'
JPEG_SIGNATURE = b'\xff\xd8'

UPLOAD_MARKER = 'upload'


class TransformProfile(str, Enum):
    ARCHIVE_PNG = "archive-png"
    SPREADSHEET_RASTER = "spreadsheet-raster"
    REPORT_THUMBNAIL = "report-thumbnail"


class PlaceholderReason(str, Enum):
    MISSING_REFERENCE = "missing-reference"
    FETCH_FAILED = "fetch-failed"
    INVALID_FORMAT = "invalid-format"
    RENDER_FAILED = "render-failed"


def _profile_transform(profile: TransformProfile, raster_format: str = 'jpg', max_width: int = 800) -> str:
    """Build the transform segment and the format directive it forces"""
    if profile == TransformProfile.ARCHIVE_PNG:
        return 'f_png,fl_force_strip,q_auto:good,w_800'
    if profile == TransformProfile.SPREADSHEET_RASTER:
        return f'f_{raster_format},fl_force_strip,q_auto:good,w_{int(max_width)},c_limit'
    if profile == TransformProfile.REPORT_THUMBNAIL:
        return 'f_jpg,fl_force_strip,q_auto:eco,w_300,h_200,c_fit'
    raise ValueError(f"Unknown transform profile: {profile}")


def _format_directive(transform: str) -> str:
    return transform.split(',', 1)[0]


def _merge_transform(segment: str, transform: str) -> str:
    """Prefix ``segment`` with ``transform`` unless it already has the target format.

    Any other ``f_`` directive in the segment is dropped so the forced format wins.
    """
    directive = _format_directive(transform)
    tokens = segment.split(',')
    if directive in tokens:
        return segment
    kept = [token for token in tokens if not token.startswith('f_')]
    return ','.join([transform] + kept)


def transform_url(url: str, profile, raster_format: str = 'jpg', max_width: int = 800,
                  image_host: Optional[str] = None) -> str:
    """Rewrite a hosted image URL so the host serves the variant for ``profile``.

    URLs from other hosts, URLs without the ``upload`` path marker and anything
    that does not parse are returned untouched.

    Args:
        url: Stored image URL
        profile: TransformProfile (or its string value)
        raster_format: Output format for the spreadsheet profile ('jpg' or 'png')
        max_width: Width cap for the spreadsheet profile
        image_host: Host to match, defaults to config.IMAGE_HOST
    """
    if not url:
        return url
    try:
        profile = TransformProfile(profile)
        parts = urlsplit(url)
    except ValueError:
        return url

    host = image_host or config.IMAGE_HOST
    if not parts.hostname or host not in parts.hostname:
        return url

    segments = parts.path.split('/')
    if UPLOAD_MARKER not in segments:
        return url
    marker_index = segments.index(UPLOAD_MARKER)
    head = segments[:marker_index + 1]
    rest = segments[marker_index + 1:]

    transform = _profile_transform(profile, raster_format, max_width)
    has_ops = bool(rest) and bool(rest[0]) and not rest[0].startswith('v')
    if has_ops:
        rest[0] = _merge_transform(rest[0], transform)
    else:
        rest.insert(0, transform)

    path = '/'.join(head + rest)
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, parts.fragment))


def sniff_image_format(data: bytes) -> Optional[str]:
    """Return 'png' or 'jpeg' based on the leading bytes, None otherwise"""
    if not data:
        return None
    if data[:4] == PNG_SIGNATURE:
        return 'png'
    if data[:2] == JPEG_SIGNATURE:
        return 'jpeg'
    return None


class ImageFetcher:
    """Downloads hosted images and checks they are PNG or JPEG.

    One fetcher is shared by the app; each thread gets its own
    ``requests.Session`` unless a session is injected.
    """

    def __init__(self, timeout: Optional[float] = None, session: Optional[requests.Session] = None,
                 max_bytes: Optional[int] = None):
        self.timeout = timeout if timeout is not None else config.IMAGE_FETCH_TIMEOUT
        self.max_bytes = max_bytes if max_bytes is not None else config.MAX_IMAGE_BYTES
        self._session = session
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        if self._session is not None:
            return self._session
        session = getattr(self._local, 'session', None)
        if session is None:
            session = self._local.session = requests.Session()
        return session

    def _read_body(self, response, url: str) -> bytes:
        chunks = []
        size = 0
        for chunk in response.iter_content(chunk_size=64 * 1024):
            size += len(chunk)
            if size > self.max_bytes:
                raise FetchError(f"Image at {url} exceeds {self.max_bytes} bytes")
            chunks.append(chunk)
        return b''.join(chunks)

    def fetch(self, url: str) -> bytes:
        try:
            response = self.session.get(url, timeout=self.timeout, stream=True)
        except requests.RequestException as e:
            raise FetchError(f"Image request failed for {url}: {e}")

        try:
            if not 200 <= response.status_code < 400:
                raise FetchError(f"Image request for {url} returned HTTP {response.status_code}")
            data = self._read_body(response, url)
        except requests.RequestException as e:
            raise FetchError(f"Image download failed for {url}: {e}")
        finally:
            response.close()

        if sniff_image_format(data) is None:
            raise InvalidImageFormat(f"Image at {url} is not a valid PNG/JPEG")
        return data


@dataclass
class ImageResult:
    """Outcome of loading one image for embedding.

    Exactly one of ``data`` and ``reason`` is set.
    """
    data: Optional[bytes] = None
    reason: Optional[PlaceholderReason] = None
    url: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.data is not None

    @classmethod
    def placeholder(cls, reason: PlaceholderReason, url: Optional[str] = None) -> 'ImageResult':
        return cls(data=None, reason=reason, url=url)


def load_image(url: Optional[str], profile, fetcher: ImageFetcher, **transform_options) -> ImageResult:
    """Transform and fetch ``url``; failures come back as placeholders.

    A missing reference never touches the network.
    """
    if not url:
        return ImageResult.placeholder(PlaceholderReason.MISSING_REFERENCE)

    target = transform_url(url, profile, **transform_options)
    try:
        return ImageResult(data=fetcher.fetch(target), url=target)
    except InvalidImageFormat as e:
        logger.warning("Skipping image: %s", e)
        return ImageResult.placeholder(PlaceholderReason.INVALID_FORMAT, target)
    except FetchError as e:
        logger.warning("Skipping image: %s", e)
        return ImageResult.placeholder(PlaceholderReason.FETCH_FAILED, target)
