from flask import Flask, request, Response
import logging

import rendering
import runtime_patch
from containment import contain
from proxy_errors import ProxyError
from proxy_settings import load_settings
from responses import asset_response, document_response, error_response, fetch_asset
from rewriting import Rewriter
from targets import AssetClass, classify, page_origin_of, resolve_target

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config['SETTINGS'] = load_settings()

SCREENSHOT_VIEWPORT = {'width': 1366, 'height': 768}


def _settings():
    return app.config['SETTINGS']


def _rendered_origin(session, target) -> str:
    # redirects move the document; about:blank and error pages keep the request's origin
    final_url = session.url or ''
    if final_url.lower().startswith(('http://', 'https://')):
        return page_origin_of(final_url)
    return target.page_origin


def render_document(target, settings) -> str:
    options = rendering.RenderOptions.from_settings(settings)

    with rendering.open_session(target.url, options) as session:
        rewriter = Rewriter(settings.PROXY_ORIGIN, settings.PROXY_PARAM, _rendered_origin(session, target))
        config = runtime_patch.patch_config(rewriter)
        session.execute(runtime_patch.build_patch(), config)
        html = session.snapshot()

    inline = runtime_patch.build_inline_patch(config) if settings.EMBED_RUNTIME_PATCH else None
    return contain(html, rewriter, runtime_patch=inline)


@app.route('/')
def proxy():
    settings = _settings()
    try:
        target = resolve_target(request.args.get(settings.PROXY_PARAM), settings.DEFAULT_SITE_TEMPLATE)
        kind = classify(target.url)
        logger.info('%s %s', kind.value, target.url)

        if kind is AssetClass.ASSET:
            upstream = fetch_asset(target.url, settings, request.headers.get('Range'))
            return asset_response(upstream)

        return document_response(render_document(target, settings))
    except ProxyError as e:
        logger.warning('proxy request failed (%s): %s', e.status, e)
        return error_response(e)


@app.route('/screenshot')
def screenshot():
    settings = _settings()
    try:
        target = resolve_target(request.args.get('url'), settings.DEFAULT_SITE_TEMPLATE)
        options = rendering.RenderOptions.from_settings(settings, viewport=SCREENSHOT_VIEWPORT)
        with rendering.open_session(target.url, options) as session:
            png = session.screenshot()
    except ProxyError as e:
        logger.warning('screenshot failed (%s): %s', e.status, e)
        return error_response(e)
    return Response(png, content_type='image/png')


def run():
    settings = _settings()
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    app.run(host=settings.HOST, port=settings.PORT, threaded=True)


if __name__ == '__main__':
    run()
