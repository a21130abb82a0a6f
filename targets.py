"""Turning the request parameter into a target, and deciding how to serve it."""
from __future__ import annotations
import re
import posixpath
from enum import Enum
from typing import NamedTuple, Optional
from urllib.parse import quote, urlparse

from proxy_errors import MissingTarget, UnsupportedTarget

ABSOLUTE_URL = re.compile(r'^[a-zA-Z][a-zA-Z0-9+.\-]*://')
HTTP_URL = re.compile(r'^https?://', re.IGNORECASE)

IMAGE_EXTENSIONS = {'.png', '.jpg', '.jpeg', '.gif', '.webp', '.svg', '.ico', '.bmp', '.avif', '.tif', '.tiff'}
VIDEO_EXTENSIONS = {'.mp4', '.webm', '.ogv', '.mov', '.m4v', '.mkv'}
AUDIO_EXTENSIONS = {'.mp3', '.wav', '.ogg', '.oga', '.m4a', '.flac', '.aac', '.opus'}
STYLE_EXTENSIONS = {'.css'}
SCRIPT_EXTENSIONS = {'.js', '.mjs'}
FONT_EXTENSIONS = {'.woff', '.woff2', '.ttf', '.otf', '.eot'}

ASSET_EXTENSIONS = frozenset(
    IMAGE_EXTENSIONS | VIDEO_EXTENSIONS | AUDIO_EXTENSIONS
    | STYLE_EXTENSIONS | SCRIPT_EXTENSIONS | FONT_EXTENSIONS
)


class AssetClass(Enum):
    ASSET = 'asset'
    DOCUMENT = 'document'


class Target(NamedTuple):
    url: str
    page_origin: str


def page_origin_of(url: str) -> str:
    p = urlparse(url)
    return f'{p.scheme}://{p.netloc}'


def resolve_target(raw: Optional[str], search_template: str) -> Target:
    """
    Map the raw (already percent-decoded) parameter to an absolute URL.
    Anything that is not scheme://... is a search term for the default site.
    Only http and https targets are rendered.
    """
    value = (raw or '').strip()
    if not value:
        raise MissingTarget('Missing target: pass a URL or search term as the query parameter')

    if ABSOLUTE_URL.match(value):
        if not HTTP_URL.match(value):
            scheme = value.split(':', 1)[0]
            raise UnsupportedTarget(f'Unsupported target scheme: {scheme}')
        url = value
    else:
        url = search_template.format(quote(value, safe=''))

    return Target(url=url, page_origin=page_origin_of(url))


def classify(url: str) -> AssetClass:
    # urlparse drops ?query and #fragment; a bad netloc only means "not an asset"
    try:
        path = urlparse(url).path
    except ValueError:
        return AssetClass.DOCUMENT
    ext = posixpath.splitext(path)[1].lower()
    return AssetClass.ASSET if ext in ASSET_EXTENSIONS else AssetClass.DOCUMENT
