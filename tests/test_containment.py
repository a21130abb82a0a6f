from bs4 import BeautifulSoup

from containment import contain
from rewriting import Rewriter

ORIGIN = 'https://en.wikipedia.org'


def _rw():
    return Rewriter('', 'q', ORIGIN)


def _soup(html):
    return BeautifulSoup(contain(html, _rw()), 'html.parser')


def test_lazy_image_moves_into_src():
    soup = _soup('<img data-src="https://cdn.x/y.png">')
    img = soup.find('img')
    assert img['src'] == '/?q=https%3A%2F%2Fcdn.x%2Fy.png'
    assert not img.has_attr('data-src')


def test_blank_lazy_placeholder_keeps_real_src():
    soup = _soup('<img src="https://a.x/real.png" data-src="" data-lazy-src="  " data-srcset=" " srcset="https://a.x/r.png 2x">')
    img = soup.find('img')
    assert img['src'] == _rw().rewrite('https://a.x/real.png')
    assert img['srcset'] == _rw().rewrite('https://a.x/r.png') + ' 2x'
    for attr in ('data-src', 'data-lazy-src', 'data-srcset'):
        assert not img.has_attr(attr)


def test_lazy_srcset_moves_into_srcset():
    soup = _soup('<img src="/a.png" data-srcset="/a.png 1x, /b.png 2x">')
    img = soup.find('img')
    assert not img.has_attr('data-srcset')
    assert img['srcset'] == '/?q=https%3A%2F%2Fen.wikipedia.org%2Fa.png 1x, /?q=https%3A%2F%2Fen.wikipedia.org%2Fb.png 2x'


def test_links_forms_and_sources():
    html = """
    <html><head>
      <link rel="stylesheet" href="//w.org/s.css">
      <script src="/load.js"></script>
    </head><body>
      <a href="https://example.com/page">x</a>
      <a href="#top">top</a>
      <a href="mailto:a@b.c">mail</a>
      <form action="/search"></form>
      <iframe src="https://frame.x/"></iframe>
      <video src="https://v.x/a.mp4" poster="https://v.x/p.jpg"><source src="https://v.x/b.webm"></video>
      <audio src="/a.mp3"></audio>
    </body></html>
    """
    rw = _rw()
    soup = _soup(html)
    assert soup.find('link')['href'] == rw.rewrite('https://w.org/s.css')
    assert soup.find('script')['src'] == rw.rewrite(ORIGIN + '/load.js')
    hrefs = [a['href'] for a in soup.find_all('a')]
    assert hrefs == [rw.rewrite('https://example.com/page'), '#top', 'mailto:a@b.c']
    assert soup.find('form')['action'] == rw.rewrite(ORIGIN + '/search')
    assert soup.find('iframe')['src'] == rw.rewrite('https://frame.x/')
    video = soup.find('video')
    assert video['src'] == rw.rewrite('https://v.x/a.mp4')
    assert video['poster'] == rw.rewrite('https://v.x/p.jpg')
    assert soup.find('source')['src'] == rw.rewrite('https://v.x/b.webm')
    assert soup.find('audio')['src'] == rw.rewrite(ORIGIN + '/a.mp3')


def test_no_absolute_href_survives():
    html = '<a href="http://a.x/">a</a><a href="https://b.x/">b</a><link href="https://c.x/c.css">'
    soup = _soup(html)
    for t in soup.find_all(href=True):
        assert not t['href'].startswith('http')


def test_inline_style_url():
    soup = _soup('<div style="color:red;background:url(https://cdn.x/bg.png)">x</div>')
    assert soup.find('div')['style'] == 'color:red;background:url("/?q=https%3A%2F%2Fcdn.x%2Fbg.png")'


def test_srcset_on_picture_source():
    soup = _soup('<picture><source srcset="https://a.x/1.webp 1x, https://a.x/2.webp 2x"></picture>')
    rw = _rw()
    assert soup.find('source')['srcset'] == (
        rw.rewrite('https://a.x/1.webp') + ' 1x, ' + rw.rewrite('https://a.x/2.webp') + ' 2x'
    )


def test_already_proxied_values_are_kept():
    proxied = '/?q=https%3A%2F%2Fcdn.x%2Fy.png'
    soup = _soup(f'<img src="{proxied}" srcset="{proxied} 2x"><a href="{proxied}">x</a>')
    assert soup.find('img')['src'] == proxied
    assert soup.find('img')['srcset'] == proxied + ' 2x'
    assert soup.find('a')['href'] == proxied


def test_malformed_reference_is_skipped():
    soup = _soup('<a href="http://[::1">bad</a><a href="https://ok.x/">ok</a>')
    a_bad, a_ok = soup.find_all('a')
    assert a_bad['href'] == 'http://[::1'
    assert a_ok['href'] == _rw().rewrite('https://ok.x/')


def test_base_and_meta_csp_removed():
    html = ('<html><head><base href="https://en.wikipedia.org/">'
            '<meta http-equiv="Content-Security-Policy" content="default-src \'self\'">'
            '<meta charset="utf-8"></head><body></body></html>')
    soup = _soup(html)
    assert soup.find('base') is None
    assert soup.find('meta', attrs={'http-equiv': True}) is None
    assert soup.find('meta', charset=True) is not None


def test_runtime_patch_injected_first_in_head():
    html = '<html><head><title>t</title><script>var a=1;</script></head><body></body></html>'
    soup = BeautifulSoup(contain(html, _rw(), runtime_patch='window.__x = 1;'), 'html.parser')
    first = soup.head.find_all(True)[0]
    assert first.name == 'script'
    assert first.string == 'window.__x = 1;'
