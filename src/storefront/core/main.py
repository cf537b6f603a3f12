"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Callable

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from storefront.api.v1 import products, social
from storefront.core.dependencies import get_settings, resolve_storage_backend
from storefront.plugins.etsy import create_etsy_router

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("api")


# Request tracing middleware
class RequestTracingMiddleware(BaseHTTPMiddleware):
    """Request tracing middleware."""

    async def dispatch(self, request: Request, call_next: Callable) -> Any:
        logger.info("Request: %s %s", request.method, request.url.path)
        response = await call_next(request)
        logger.info("Response status: %s", response.status_code)
        return response


class TokenCookieMiddleware(BaseHTTPMiddleware):
    """Write cookies queued by a cookie token store onto the response."""

    async def dispatch(self, request: Request, call_next: Callable) -> Any:
        response = await call_next(request)
        store = getattr(request.state, "token_store", None)
        if store is not None:
            store.flush(response)
        return response


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan for the FastAPI application."""
    settings = get_settings()
    if not settings.is_configured:
        logger.warning("ETSY_API_KEY or ETSY_SHOP_ID not set - products will be empty")
    logger.info("Token storage backend: %s", resolve_storage_backend(settings).value)
    yield


settings = get_settings()

app = FastAPI(
    title="Storefront API",
    description="Etsy-backed product API for the jewelry storefront",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(TokenCookieMiddleware)

# Add request tracing middleware
app.add_middleware(RequestTracingMiddleware)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Include routers
app.include_router(create_etsy_router())
app.include_router(products.router)
app.include_router(social.router)


@app.get("/")
async def root() -> dict:
    """Root endpoint."""
    return {"message": "Welcome to the Storefront API"}
