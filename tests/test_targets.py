import pytest

from proxy_errors import MissingTarget, UnsupportedTarget
from targets import AssetClass, classify, resolve_target

TEMPLATE = 'https://en.wikipedia.org/wiki/{}'


@pytest.mark.parametrize('raw', [None, '', '   '])
def test_missing_target(raw):
    with pytest.raises(MissingTarget):
        resolve_target(raw, TEMPLATE)


def test_absolute_url_passes_through():
    target = resolve_target('https://example.com/a/b?c=1', TEMPLATE)
    assert target.url == 'https://example.com/a/b?c=1'
    assert target.page_origin == 'https://example.com'


def test_scheme_is_case_insensitive():
    assert resolve_target('HTTP://example.com/', TEMPLATE).url == 'HTTP://example.com/'


@pytest.mark.parametrize('raw', [
    'file:///etc/passwd',
    'ftp://files.example.com/a.txt',
    'chrome://settings/',
])
def test_non_http_schemes_are_rejected(raw):
    with pytest.raises(UnsupportedTarget) as exc:
        resolve_target(raw, TEMPLATE)
    assert exc.value.status == 400


def test_search_term_maps_to_default_site():
    target = resolve_target('Turing', TEMPLATE)
    assert target.url == 'https://en.wikipedia.org/wiki/Turing'
    assert target.page_origin == 'https://en.wikipedia.org'


def test_search_term_is_percent_encoded():
    target = resolve_target('Alan Turing/test', TEMPLATE)
    assert target.url == 'https://en.wikipedia.org/wiki/Alan%20Turing%2Ftest'


def test_page_origin_keeps_port():
    assert resolve_target('http://localhost:3000/x', TEMPLATE).page_origin == 'http://localhost:3000'


@pytest.mark.parametrize('url', [
    'https://x.org/photo.jpg',
    'https://x.org/PHOTO.JPG',
    'https://x.org/a/style.css',
    'https://x.org/app.js?v=3',
    'https://x.org/font.woff2#iefix',
    'https://x.org/clip.mp4',
    'https://x.org/song.mp3',
    'photo.jpg',
])
def test_assets(url):
    assert classify(url) is AssetClass.ASSET


@pytest.mark.parametrize('url', [
    'https://x.org/',
    'https://x.org/wiki/Turing',
    'https://x.org/index.html',
    'https://x.org/search?q=a.png',
    'https://x.org/page.php',
])
def test_documents(url):
    assert classify(url) is AssetClass.DOCUMENT


def test_classification_ignores_query_string():
    assert classify('a.png?x=1') == classify('a.png')
