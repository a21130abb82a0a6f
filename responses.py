from __future__ import annotations
import logging
from typing import Optional

import requests
from flask import Response

from proxy_errors import AssetFetchError, ProxyError
from proxy_settings import Settings

logger = logging.getLogger(__name__)

CHUNK_SIZE = 65536

STRIPPED_HEADERS = {
    'content-security-policy',
    'content-security-policy-report-only',
    'x-frame-options',
    'cross-origin-resource-policy',
    'cross-origin-embedder-policy',
    'cross-origin-opener-policy',
}

# kept from the upstream asset response besides Content-Type
PASSTHROUGH_HEADERS = {
    'cache-control',
    'etag',
    'last-modified',
    'expires',
    'accept-ranges',
    'content-range',
}

CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Methods': 'GET, OPTIONS',
    'Access-Control-Allow-Headers': '*',
    'Cross-Origin-Resource-Policy': 'cross-origin',
}


def document_response(html: str) -> Response:
    return Response(html, status=200, content_type='text/html; charset=utf-8')


def error_response(error: ProxyError) -> Response:
    return Response(str(error), status=error.status, content_type='text/plain; charset=utf-8')


def fetch_asset(url: str, settings: Settings, range_header: Optional[str] = None) -> requests.Response:
    headers = {'User-Agent': settings.USER_AGENT}
    if range_header:
        headers['Range'] = range_header
    try:
        resp = requests.get(url, headers=headers, stream=True, timeout=settings.ASSET_TIMEOUT_SEC)
    except requests.exceptions.RequestException as e:
        raise AssetFetchError(f'Asset fetch failed for {url}: {e}') from e
    return resp


def asset_response(upstream: requests.Response) -> Response:
    """Pipe an upstream asset to the client with permissive cross-origin headers."""

    def generate():
        try:
            for chunk in upstream.iter_content(chunk_size=CHUNK_SIZE):
                if chunk:
                    yield chunk
        except requests.exceptions.RequestException as e:
            # headers are already sent; the truncated body is the error signal
            logger.warning('asset stream from %s broke off: %s', upstream.url, e)
        finally:
            upstream.close()

    content_type = upstream.headers.get('Content-Type') or 'application/octet-stream'
    resp = Response(generate(), status=upstream.status_code, content_type=content_type)
    for name, value in upstream.headers.items():
        lname = name.lower()
        if lname in STRIPPED_HEADERS or lname not in PASSTHROUGH_HEADERS:
            continue
        resp.headers[name] = value
    for name, value in CORS_HEADERS.items():
        resp.headers[name] = value
    # a client disconnect closes the response before the generator finishes
    resp.call_on_close(upstream.close)
    return resp
