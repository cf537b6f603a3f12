"""
FastAPI dependencies for the storefront application.

The token storage backend is chosen once from the settings; request handlers
only ever see the TokenStore interface.
"""

import logging
from functools import lru_cache
from pathlib import Path

import requests
from fastapi import Depends, Request

from storefront.core.etsy_client import EtsyClient
from storefront.core.oauth import OAuthFlow, make_refresher
from storefront.core.settings import EtsySettings, StorageBackend
from storefront.storage.base import TokenStore
from storefront.storage.cookie import CookieTokenStore
from storefront.storage.file import FileTokenStore
from storefront.storage.redis_store import RedisTokenStore

# Setup logger
logger = logging.getLogger("dependencies")


@lru_cache()
def get_settings() -> EtsySettings:
    """
    Get the settings for the storefront application.
    """
    settings = EtsySettings()  # Reads Etsy-related vars from .env
    logger.info(
        "get_settings returning EtsySettings with environment: %s, token storage: %s",
        settings.environment,
        settings.token_storage.value,
    )
    return settings


@lru_cache()
def get_http_session() -> requests.Session:
    """
    Shared HTTP session for Etsy API and token endpoint calls.
    """
    return requests.Session()


def resolve_storage_backend(settings: EtsySettings) -> StorageBackend:
    """
    Pick the configured backend, falling back to file storage when the
    configured one is missing its secret or connection URL.
    """
    backend = settings.token_storage
    if backend == StorageBackend.COOKIE and not settings.jwt_secret:
        logger.error("TOKEN_STORAGE=cookie requires JWT_SECRET, falling back to file storage")
        return StorageBackend.FILE
    if backend == StorageBackend.REDIS and not settings.redis_url:
        logger.error("TOKEN_STORAGE=redis requires REDIS_URL, falling back to file storage")
        return StorageBackend.FILE
    return backend


@lru_cache()
def get_shared_token_store() -> TokenStore:
    """
    Process-wide token store for the file and Redis backends.
    """
    settings = get_settings()
    backend = resolve_storage_backend(settings)
    refresher = make_refresher(settings, session=get_http_session())

    if backend == StorageBackend.REDIS:
        logger.info("Using Redis token storage with key prefix %s", settings.redis_key_prefix)
        return RedisTokenStore.from_url(
            settings.redis_url, key_prefix=settings.redis_key_prefix, refresher=refresher
        )

    logger.info("Using file token storage in %s", Path(settings.token_dir).resolve())
    return FileTokenStore(settings.token_dir, refresher=refresher)


def get_token_store(request: Request, settings: EtsySettings = Depends(get_settings)) -> TokenStore:
    """
    Injection method to get the token store for the current request.

    The store is also kept on ``request.state`` so the cookie middleware can
    write pending cookies onto whatever response the handler returns.
    """
    store: TokenStore
    if resolve_storage_backend(settings) == StorageBackend.COOKIE:
        store = CookieTokenStore(
            request.cookies,
            secret=settings.jwt_secret,
            secure=settings.is_production,
            refresher=make_refresher(settings, session=get_http_session()),
        )
    else:
        store = get_shared_token_store()
    request.state.token_store = store
    return store


def get_oauth_flow(
    store: TokenStore = Depends(get_token_store),
    settings: EtsySettings = Depends(get_settings),
) -> OAuthFlow:
    """
    Injection method to get the OAuth flow controller.
    """
    return OAuthFlow(settings, store, session=get_http_session())


def get_etsy_client(
    store: TokenStore = Depends(get_token_store),
    settings: EtsySettings = Depends(get_settings),
) -> EtsyClient:
    """
    Injection method to get the Etsy client.
    """
    return EtsyClient(settings, store, session=get_http_session())
