from __future__ import annotations
import os
from pathlib import Path
from dataclasses import dataclass
from dotenv import load_dotenv

DEFAULT_USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/124.0 Safari/537.36'
)


def _getenv_bool(name: str, default: bool) -> bool:
    v = os.getenv(name, str(default)).strip().lower()
    return v in ('1', 'true', 'yes', 'y', 'on')


@dataclass(frozen=True)
class Settings:
    # proxy
    PROXY_ORIGIN: str = ''
    PROXY_PARAM: str = 'q'
    DEFAULT_SITE_TEMPLATE: str = 'https://en.wikipedia.org/wiki/{}'

    # rendering
    RENDER_WAIT_UNTIL: str = 'networkidle'
    RENDER_TIMEOUT_MS: int = 15000
    RENDER_HEADLESS: bool = True
    USER_AGENT: str = DEFAULT_USER_AGENT
    LOCALE: str = 'en-US'
    EMBED_RUNTIME_PATCH: bool = True

    # assets
    ASSET_TIMEOUT_SEC: int = 15

    # server
    HOST: str = '0.0.0.0'
    PORT: int = 8080
    LOG_LEVEL: str = 'INFO'


def load_settings() -> Settings:
    env_path = Path(__file__).resolve().parent / '.env'
    if env_path.exists():
        load_dotenv(dotenv_path=env_path)
    else:
        load_dotenv()

    return Settings(
        PROXY_ORIGIN=os.getenv('PROXY_ORIGIN', '').strip().rstrip('/'),
        PROXY_PARAM=os.getenv('PROXY_PARAM', 'q').strip() or 'q',
        DEFAULT_SITE_TEMPLATE=os.getenv(
            'DEFAULT_SITE_TEMPLATE', 'https://en.wikipedia.org/wiki/{}'
        ).strip(),
        RENDER_WAIT_UNTIL=os.getenv('RENDER_WAIT_UNTIL', 'networkidle').strip(),
        RENDER_TIMEOUT_MS=int(os.getenv('RENDER_TIMEOUT_MS', '15000')),
        RENDER_HEADLESS=_getenv_bool('RENDER_HEADLESS', True),
        USER_AGENT=os.getenv('USER_AGENT', DEFAULT_USER_AGENT).strip(),
        LOCALE=os.getenv('LOCALE', 'en-US').strip(),
        EMBED_RUNTIME_PATCH=_getenv_bool('EMBED_RUNTIME_PATCH', True),
        ASSET_TIMEOUT_SEC=int(os.getenv('ASSET_TIMEOUT_SEC', '15')),
        HOST=os.getenv('HOST', '0.0.0.0').strip(),
        PORT=int(os.getenv('PORT', '8080')),
        LOG_LEVEL=os.getenv('LOG_LEVEL', 'INFO').strip().upper(),
    )
