"""
Headless Chromium rendering sessions.

One session per request: launch, navigate, run scripts in the page,
serialize, tear down. open_session() guarantees the teardown.
"""
from __future__ import annotations
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from playwright.sync_api import sync_playwright
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from proxy_errors import NavigationError, NavigationTimeout
from proxy_settings import Settings

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    '--no-sandbox',
    '--disable-setuid-sandbox',
    '--disable-dev-shm-usage',
    '--disable-gpu',
]


@dataclass(frozen=True)
class RenderOptions:
    wait_until: str = 'networkidle'
    timeout_ms: int = 15000
    user_agent: Optional[str] = None
    locale: Optional[str] = None
    headless: bool = True
    viewport: Optional[dict] = None

    @classmethod
    def from_settings(cls, settings: Settings, viewport: Optional[dict] = None) -> 'RenderOptions':
        return cls(
            wait_until=settings.RENDER_WAIT_UNTIL,
            timeout_ms=settings.RENDER_TIMEOUT_MS,
            user_agent=settings.USER_AGENT or None,
            locale=settings.LOCALE or None,
            headless=settings.RENDER_HEADLESS,
            viewport=viewport,
        )


class RenderSession:
    def __init__(self, options: RenderOptions):
        self.options = options
        self._playwright = None
        self._browser = None
        self._page = None
        self.closed = False

    def open(self, url: str) -> 'RenderSession':
        opts = self.options
        try:
            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(headless=opts.headless, args=LAUNCH_ARGS)
            context_kwargs = {}
            if opts.user_agent:
                context_kwargs['user_agent'] = opts.user_agent
            if opts.locale:
                context_kwargs['locale'] = opts.locale
            if opts.viewport:
                context_kwargs['viewport'] = opts.viewport
            context = self._browser.new_context(**context_kwargs)
            self._page = context.new_page()
            self._page.goto(url, wait_until=opts.wait_until, timeout=opts.timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout(f'Timed out after {opts.timeout_ms} ms loading {url}: {e.message}') from e
        except PlaywrightError as e:
            raise NavigationError(f'Failed to load {url}: {e.message}') from e
        return self

    @property
    def url(self) -> str:
        """Address of the document actually rendered, after redirects."""
        return self._page.url

    def execute(self, script: str, *args):
        """Evaluate script in the page; with args, script must be a function expression."""
        try:
            if args:
                return self._page.evaluate(script, args[0] if len(args) == 1 else list(args))
            return self._page.evaluate(script)
        except PlaywrightError as e:
            raise NavigationError(f'Script failed in page: {e.message}') from e

    def snapshot(self) -> str:
        try:
            return self._page.content()
        except PlaywrightError as e:
            raise NavigationError(f'Could not serialize page: {e.message}') from e

    def screenshot(self) -> bytes:
        try:
            return self._page.screenshot(type='png')
        except PlaywrightError as e:
            raise NavigationError(f'Screenshot failed: {e.message}') from e

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            if self._browser is not None:
                self._browser.close()
        except PlaywrightError as e:
            logger.warning('browser close failed: %s', e)
        finally:
            if self._playwright is not None:
                self._playwright.stop()


@contextmanager
def open_session(url: str, options: RenderOptions) -> Iterator[RenderSession]:
    session = RenderSession(options)
    try:
        yield session.open(url)
    finally:
        session.close()
