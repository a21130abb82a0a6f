"""
JavaScript patches run inside the rendered page.

The page's own network entry points (fetch, XMLHttpRequest.open, image src
assignment, the MediaWiki script loader) are wrapped so that URLs created
after the static rewrite still point back at the proxy, and a
MutationObserver rewrites elements inserted later on.

build_patch() gives a function expression for RenderSession.execute(script,
config); build_inline_patch() gives the same code as a self-invoking script
for embedding into the served document.
"""
from __future__ import annotations
import json

from rewriting import Rewriter

LAZY_SRC_ATTRS = ('data-src', 'data-lazy-src', 'data-original')

PATCH_SOURCE = r"""
(cfg) => {
  const w = window;
  const LAZY = %(lazy)s;
  const ABSOLUTE = /^https?:\/\//i;

  // the root-relative form resolves against whatever origin serves the page
  const here = (w.location && w.location.origin && w.location.origin !== 'null')
    ? w.location.origin + cfg.pathPrefix : null;

  const isProxied = (u) => u.startsWith(cfg.prefix) || u.startsWith(cfg.pathPrefix) ||
    (here !== null && u.startsWith(here));

  const rewrite = (u) => {
    if (typeof u !== 'string') return u;
    const ref = u.trim();
    if (!ref || isProxied(ref)) return u;
    let abs = null;
    if (ref.startsWith('//')) abs = 'https:' + ref;
    else if (ref.startsWith('/')) abs = cfg.pageOrigin + ref;
    else if (ABSOLUTE.test(ref)) abs = ref;
    if (abs === null) return u;
    return cfg.prefix + encodeURIComponent(abs);
  };

  const asString = (u) => (w.URL && u instanceof w.URL) ? String(u) : u;

  // same candidate split as the browser: URLs end at whitespace or a
  // trailing comma, separators and descriptors are kept as written
  const rewriteSrcset = (v) => {
    let out = '';
    let pos = 0;
    const n = v.length;
    const isSpace = (c) => /\s/.test(c);
    while (pos < n) {
      let start = pos;
      while (pos < n && (isSpace(v[pos]) || v[pos] === ',')) pos++;
      out += v.slice(start, pos);
      if (pos >= n) break;

      start = pos;
      while (pos < n && !isSpace(v[pos])) pos++;
      const url = v.slice(start, pos);
      const stripped = url.replace(/,+$/, '');
      if (stripped !== url) {
        pos -= url.length - stripped.length;
        out += rewrite(stripped);
        continue;
      }
      out += rewrite(url);

      start = pos;
      let depth = 0;
      while (pos < n) {
        const c = v[pos];
        if (c === '(') depth++;
        else if (c === ')' && depth) depth--;
        else if (c === ',' && !depth) break;
        pos++;
      }
      out += v.slice(start, pos);
    }
    return out;
  };

  if (!w.__proxyFetchPatched && typeof w.fetch === 'function') {
    w.__proxyFetchPatched = true;
    const origFetch = w.fetch;
    w.fetch = function (input, init) {
      if (w.Request && input instanceof w.Request) {
        // Request.url is always absolute; a same-origin one was relative
        let target = input.url;
        const origin = w.location ? w.location.origin : 'null';
        if (origin !== 'null' && target.startsWith(origin + '/') && !isProxied(target)) {
          target = target.slice(origin.length);
        }
        target = rewrite(target);
        if (target !== input.url) {
          const req = input;
          const copyInit = (body) => ({
            method: req.method,
            headers: req.headers,
            body: body,
            credentials: req.credentials,
            cache: req.cache,
            redirect: req.redirect,
            signal: req.signal,
          });
          if (req.method === 'GET' || req.method === 'HEAD') {
            input = new w.Request(target, copyInit(undefined));
          } else {
            // a streamed body cannot be handed over, so buffer it first
            const self = this;
            return req.clone().arrayBuffer().then((body) =>
              origFetch.call(self, new w.Request(target, copyInit(body)), init));
          }
        }
      } else {
        input = asString(input);
        if (typeof input === 'string' && ABSOLUTE.test(input)) input = rewrite(input);
      }
      return origFetch.call(this, input, init);
    };
  }

  if (!w.__proxyXhrPatched && w.XMLHttpRequest) {
    w.__proxyXhrPatched = true;
    const origOpen = w.XMLHttpRequest.prototype.open;
    w.XMLHttpRequest.prototype.open = function (method, url, ...rest) {
      url = asString(url);
      if (typeof url === 'string' && ABSOLUTE.test(url)) url = rewrite(url);
      return origOpen.call(this, method, url, ...rest);
    };
  }

  if (!w.__proxyImagePatched && w.HTMLImageElement) {
    const desc = Object.getOwnPropertyDescriptor(w.HTMLImageElement.prototype, 'src');
    if (desc && desc.set && desc.get) {
      w.__proxyImagePatched = true;
      Object.defineProperty(w.HTMLImageElement.prototype, 'src', {
        configurable: true,
        enumerable: desc.enumerable,
        get: function () { return desc.get.call(this); },
        set: function (value) {
          value = asString(value);
          if (typeof value === 'string' && ABSOLUTE.test(value)) value = rewrite(value);
          desc.set.call(this, value);
        },
      });
    }
  }

  if (!w.__proxyLoaderPatched && w.mw && w.mw.loader && typeof w.mw.loader.load === 'function') {
    w.__proxyLoaderPatched = true;
    const origLoad = w.mw.loader.load;
    w.mw.loader.load = function (modules, type) {
      // mw.loader.load takes a URL when the string starts with / or //
      if (typeof modules === 'string' && /^(https?:)?\/?\//i.test(modules)) {
        const isCss = type === 'text/css';
        const el = document.createElement(isCss ? 'link' : 'script');
        if (isCss) {
          el.rel = 'stylesheet';
          el.href = rewrite(modules);
        } else {
          el.async = true;
          el.src = rewrite(modules);
        }
        document.head.appendChild(el);
        return;
      }
      return origLoad.apply(this, arguments);
    };
  }

  const fixAttr = (el, name) => {
    const v = el.getAttribute(name);
    if (v && !isProxied(v)) {
      const r = rewrite(v);
      if (r !== v) el.setAttribute(name, r);
    }
  };

  const fixElement = (el) => {
    if (el.nodeType !== 1) return;
    if (el.tagName === 'IMG') {
      for (const name of LAZY) {
        if (!el.hasAttribute(name)) continue;
        const lazy = el.getAttribute(name);
        if (lazy.trim()) el.setAttribute('src', rewrite(lazy));
        el.removeAttribute(name);
      }
      if (el.hasAttribute('data-srcset')) {
        const lazySet = el.getAttribute('data-srcset');
        if (lazySet.trim()) el.setAttribute('srcset', rewriteSrcset(lazySet));
        el.removeAttribute('data-srcset');
      }
      fixAttr(el, 'src');
    } else {
      if (el.hasAttribute('src')) fixAttr(el, 'src');
      if (el.hasAttribute('href')) fixAttr(el, 'href');
    }
    const set = el.getAttribute('srcset');
    if (set) {
      const r = rewriteSrcset(set);
      if (r !== set) el.setAttribute('srcset', r);
    }
  };

  if (!w.__proxyObserverInstalled && w.MutationObserver && document.documentElement) {
    w.__proxyObserverInstalled = true;
    new MutationObserver((mutations) => {
      for (const m of mutations) {
        for (const node of m.addedNodes) {
          if (node.nodeType !== 1) continue;
          fixElement(node);
          node.querySelectorAll('[src],[href],[srcset],[data-srcset],' +
            LAZY.map((a) => '[' + a + ']').join(',')).forEach(fixElement);
        }
      }
    }).observe(document.documentElement, { childList: true, subtree: true });
  }

  return true;
}
"""


def build_patch() -> str:
    return PATCH_SOURCE % {'lazy': json.dumps(list(LAZY_SRC_ATTRS))}


def patch_config(rewriter: Rewriter) -> dict:
    return {
        'prefix': rewriter.prefix,
        'pathPrefix': rewriter.path_prefix,
        'pageOrigin': rewriter.page_origin,
    }


def build_inline_patch(config: dict) -> str:
    # '</' inside a <script> body would end the element early
    cfg = json.dumps(config).replace('</', '<\\/')
    return f'({build_patch().strip()})({cfg});'
