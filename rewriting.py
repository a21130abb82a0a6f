from __future__ import annotations
import re
from typing import Optional
from urllib.parse import quote, unquote, urljoin, urlparse

from proxy_errors import RewriteInputMalformed

CSS_URL = re.compile(r'''url\(\s*(['"]?)(https?://[^'")\s]+)\1\s*\)''', re.IGNORECASE)


def encode_url(url: str) -> str:
    return quote(url, safe='')


class Rewriter:
    """
    Maps URL references found in a page onto the proxy's own origin.

    proxy_origin may be '' in which case proxied URLs are root-relative
    ('/?q=...'). Both the absolute and the root-relative form count as
    already proxied, so rewrite() never wraps a URL twice.
    """

    def __init__(self, proxy_origin: str, param: str, page_origin: str):
        self.proxy_origin = proxy_origin.rstrip('/')
        self.param = param
        self.page_origin = page_origin
        self.path_prefix = f'/?{param}='
        self.prefix = f'{self.proxy_origin}{self.path_prefix}'

    def is_proxied(self, value: str) -> bool:
        return value.startswith(self.prefix) or value.startswith(self.path_prefix)

    def proxy(self, absolute: str) -> str:
        try:
            parsed = urlparse(absolute)
        except ValueError as e:
            raise RewriteInputMalformed(f'{absolute!r}: {e}') from e
        if not parsed.netloc:
            raise RewriteInputMalformed(f'{absolute!r}: no host')
        return self.prefix + encode_url(absolute)

    def rewrite(self, value: Optional[str]) -> Optional[str]:
        if not value or not value.strip():
            return value
        ref = value.strip()
        if self.is_proxied(ref):
            return value
        if ref.startswith('//'):
            return self.proxy('https:' + ref)
        if ref.startswith('/'):
            try:
                absolute = urljoin(self.page_origin + '/', ref)
            except ValueError as e:
                raise RewriteInputMalformed(f'{ref!r}: {e}') from e
            return self.proxy(absolute)
        if ref[:7].lower() == 'http://' or ref[:8].lower() == 'https://':
            return self.proxy(ref)
        # mailto:, javascript:, data:, #fragment, path-relative
        return value

    def unproxy(self, value: str) -> Optional[str]:
        for p in (self.prefix, self.path_prefix):
            if value.startswith(p):
                return unquote(value[len(p):].split('&', 1)[0])
        return None

    def _rewrite_candidate(self, url: str) -> str:
        try:
            return self.rewrite(url)
        except RewriteInputMalformed:
            return url

    def rewrite_srcset(self, value: Optional[str]) -> Optional[str]:
        """
        Rewrite every candidate URL of a srcset list.

        Candidates are split the way browsers split them: the URL runs to
        the next whitespace (a trailing comma ends it too), so commas inside
        a URL stay put. Separators and descriptors are copied verbatim.
        """
        if not value or not value.strip():
            return value
        out = []
        pos, n = 0, len(value)
        while pos < n:
            start = pos
            while pos < n and (value[pos].isspace() or value[pos] == ','):
                pos += 1
            out.append(value[start:pos])
            if pos >= n:
                break

            start = pos
            while pos < n and not value[pos].isspace():
                pos += 1
            url = value[start:pos]
            stripped = url.rstrip(',')
            if stripped != url:
                # "a.png," has no descriptors; the commas separate
                pos -= len(url) - len(stripped)
                out.append(self._rewrite_candidate(stripped))
                continue
            out.append(self._rewrite_candidate(url))

            start = pos
            depth = 0
            while pos < n:
                c = value[pos]
                if c == '(':
                    depth += 1
                elif c == ')' and depth:
                    depth -= 1
                elif c == ',' and not depth:
                    break
                pos += 1
            out.append(value[start:pos])
        return ''.join(out)

    def rewrite_css_urls(self, css: Optional[str]) -> Optional[str]:
        if not css or 'url(' not in css.lower():
            return css

        def _replace(m):
            try:
                return f'url("{self.rewrite(m.group(2))}")'
            except RewriteInputMalformed:
                return m.group(0)

        return CSS_URL.sub(_replace, css)
