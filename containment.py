from __future__ import annotations
import logging
from typing import Optional

from bs4 import BeautifulSoup

from proxy_errors import RewriteInputMalformed
from rewriting import Rewriter
from runtime_patch import LAZY_SRC_ATTRS

logger = logging.getLogger(__name__)

# element kind -> attributes holding a plain URL
TAG_URL_ATTRS = {
    'a': ('href',),
    'form': ('action',),
    'img': ('src',),
    'link': ('href',),
    'script': ('src',),
    'iframe': ('src',),
    'video': ('src', 'poster'),
    'audio': ('src',),
    'source': ('src',),
    'embed': ('src',),
    'track': ('src',),
}

SRCSET_TAGS = ('img', 'source')


def _rewrite_attr(tag, attr: str, rewriter: Rewriter) -> Optional[str]:
    """Rewrite one attribute value; a malformed reference is left as it was."""
    value = tag.get(attr)
    try:
        return rewriter.rewrite(value)
    except RewriteInputMalformed as e:
        logger.debug('skipping <%s %s>: %s', tag.name, attr, e)
        return value


def _contain_lazy_images(soup: BeautifulSoup, rewriter: Rewriter) -> None:
    for img in soup.find_all('img'):
        # a blank placeholder is dropped without touching the real src
        for attr in LAZY_SRC_ATTRS:
            if img.has_attr(attr):
                if img[attr].strip():
                    img['src'] = _rewrite_attr(img, attr, rewriter)
                del img[attr]
        if img.has_attr('data-srcset'):
            if img['data-srcset'].strip():
                img['srcset'] = rewriter.rewrite_srcset(img['data-srcset'])
            del img['data-srcset']


def _contain_tag_attrs(soup: BeautifulSoup, rewriter: Rewriter) -> None:
    for tag_name, attrs in TAG_URL_ATTRS.items():
        for t in soup.find_all(tag_name):
            for attr in attrs:
                if t.has_attr(attr):
                    t[attr] = _rewrite_attr(t, attr, rewriter)


def _contain_srcsets(soup: BeautifulSoup, rewriter: Rewriter) -> None:
    for t in soup.find_all(SRCSET_TAGS, srcset=True):
        t['srcset'] = rewriter.rewrite_srcset(t['srcset'])


def _contain_styles(soup: BeautifulSoup, rewriter: Rewriter) -> None:
    for t in soup.find_all(style=True):
        t['style'] = rewriter.rewrite_css_urls(t['style'])


def _drop_escape_hatches(soup: BeautifulSoup) -> None:
    # <base> would re-point relative URLs at the origin, and a meta CSP
    # would block loads from the proxy origin
    for base in soup.find_all('base'):
        base.decompose()
    for meta in soup.find_all('meta', attrs={'http-equiv': True}):
        if meta['http-equiv'].strip().lower().startswith('content-security-policy'):
            meta.decompose()


def inject_script(soup: BeautifulSoup, source: str) -> None:
    script = soup.new_tag('script')
    script.string = source
    if soup.head:
        soup.head.insert(0, script)
    elif soup.html:
        soup.html.insert(0, script)
    else:
        soup.insert(0, script)


def contain(html: str, rewriter: Rewriter, runtime_patch: Optional[str] = None) -> str:
    """
    Rewrite every URL-bearing site of a rendered document onto the proxy.

    Lazy placeholders go first so their values land in src before the
    generic src pass; the rewrite is idempotent so the overlap is harmless.
    """
    soup = BeautifulSoup(html, 'html.parser')

    _drop_escape_hatches(soup)
    _contain_lazy_images(soup, rewriter)
    _contain_tag_attrs(soup, rewriter)
    _contain_srcsets(soup, rewriter)
    _contain_styles(soup, rewriter)

    if runtime_patch:
        inject_script(soup, runtime_patch)

    return str(soup)
