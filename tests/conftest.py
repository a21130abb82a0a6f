from unittest.mock import MagicMock

import pytest
from requests.structures import CaseInsensitiveDict

import rendering


class FakePlaywright:
    """Stands in for sync_playwright() down to the page object."""

    def __init__(self, content='<html><head></head><body></body></html>', goto_error=None, final_url=None):
        self.pw = MagicMock()
        self.browser = self.pw.chromium.launch.return_value
        self.context = self.browser.new_context.return_value
        self.page = self.context.new_page.return_value
        self.page.content.return_value = content
        self.page.screenshot.return_value = b'\x89PNG fake'
        self.page.url = 'about:blank'

        def goto(url, **kwargs):
            if goto_error is not None:
                raise goto_error
            # final_url plays the part of a server-side redirect
            self.page.url = final_url or url

        self.page.goto.side_effect = goto
        self.factory = MagicMock()
        self.factory.return_value.start.return_value = self.pw


@pytest.fixture
def fake_playwright(monkeypatch):
    def install(**kwargs):
        fake = FakePlaywright(**kwargs)
        monkeypatch.setattr(rendering, 'sync_playwright', fake.factory)
        return fake
    return install


def _make_upstream(body=b'data', status=200, headers=None, url='https://x.org/photo.jpg'):
    upstream = MagicMock()
    upstream.status_code = status
    upstream.url = url
    upstream.headers = CaseInsensitiveDict(headers or {})
    upstream.iter_content.return_value = iter([body])
    return upstream


@pytest.fixture
def make_upstream():
    return _make_upstream
