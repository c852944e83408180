# src/remotejobs/config.py
"""
Runtime settings, read from the environment (and a .env file if present).

Every value has a working default, so `remote-jobs refresh` runs with an
empty environment against a local SQLite file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv

from remotejobs.clients.http import DEFAULT_MAX_ATTEMPTS
from remotejobs.io.cache import DEFAULT_CHUNK_SIZE
from remotejobs.io.sql import DEFAULT_DATABASE_URL
from remotejobs.sources.remoteco import REMOTECO_FEED
from remotejobs.sources.remoteok import REMOTEOK_API
from remotejobs.sources.remotive import REMOTIVE_API
from remotejobs.sources.weworkremotely import WWR_FEEDS


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    chunk_size: int = DEFAULT_CHUNK_SIZE
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    refresh_timeout: float = 300.0
    remoteok_url: str = REMOTEOK_API
    remotive_url: str = REMOTIVE_API
    wwr_feed_urls: Tuple[str, ...] = WWR_FEEDS
    remoteco_feed_url: str = REMOTECO_FEED
    log_level: str = "INFO"


def _int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def _float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if not value > 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def _urls(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(name, "")
    urls = tuple(u.strip() for u in raw.split(",") if u.strip())
    return urls or default


def load_settings(env_file: Optional[str] = None) -> Settings:
    load_dotenv(env_file, override=False)
    return Settings(
        database_url=os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL,
        chunk_size=_int("CACHE_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
        max_attempts=_int("RETRY_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS),
        refresh_timeout=_float("REFRESH_TIMEOUT_SECONDS", 300.0),
        remoteok_url=os.getenv("REMOTEOK_API_URL") or REMOTEOK_API,
        remotive_url=os.getenv("REMOTIVE_API_URL") or REMOTIVE_API,
        wwr_feed_urls=_urls("WWR_FEED_URLS", WWR_FEEDS),
        remoteco_feed_url=os.getenv("REMOTECO_FEED_URL") or REMOTECO_FEED,
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
