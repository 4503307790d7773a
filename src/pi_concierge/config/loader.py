"""Load config from PI_CONCIERGE_CONFIG_PATH or return default.

``load_config()`` is memoised with ``functools.lru_cache`` so the file is read
and parsed at most once per process.  Call ``load_config.cache_clear()`` to
force a re-read (useful in tests and when ``PI_CONCIERGE_CONFIG_PATH`` changes
at runtime).
"""

from __future__ import annotations

import functools
import json
import logging
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from .schema import ConciergeConfig, DEFAULT_CONFIG

logger = logging.getLogger(__name__)


class _Env(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PI_CONCIERGE_", extra="ignore")
    config_path: Optional[str] = None


_env: Optional[_Env] = None


def _get_env() -> _Env:
    global _env
    if _env is None:
        _env = _Env()
    return _env


@functools.lru_cache(maxsize=1)
def load_config() -> ConciergeConfig:
    """Load config from PI_CONCIERGE_CONFIG_PATH if set and present; else return DEFAULT_CONFIG.

    A file that exists but is not valid JSON, or does not validate, raises.
    """
    path = _get_env().config_path
    if not path or not path.strip():
        return DEFAULT_CONFIG
    p = Path(path).expanduser().resolve()
    if not p.is_file():
        logger.warning("Config file %s not found; using defaults", p)
        return DEFAULT_CONFIG
    data = json.loads(p.read_text(encoding="utf-8"))
    return ConciergeConfig.model_validate(data)
