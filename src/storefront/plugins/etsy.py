"""Etsy plugin module.

This module provides the admin endpoints for connecting the Etsy shop:
starting the OAuth flow, handling Etsy's callback, reporting the
authentication status and logging out. Only the shop owner uses these
endpoints; customers never see the OAuth flow.
"""

import html
import logging
from urllib.parse import urlencode

import anyio
from fastapi import APIRouter, Depends, status
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from storefront.core.dependencies import get_oauth_flow, get_token_store
from storefront.core.errors import ConfigurationError, OAuthErrorKind, OAuthFlowError, StorageError
from storefront.core.oauth import OAuthFlow, describe_error
from storefront.storage.base import TokenStore

# Setup module-level logger
logger = logging.getLogger("etsy")

SUCCESS_PAGE = "/admin/oauth/success"
ERROR_PAGE = "/admin/oauth/error"


def error_redirect(kind: str, description: str | None = None) -> RedirectResponse:
    """Redirect to the admin error page with the error code and detail."""
    params = {"error": kind}
    if description is not None:
        params["description"] = description
    return RedirectResponse(f"{ERROR_PAGE}?{urlencode(params)}", status_code=status.HTTP_302_FOUND)


def render_page(title: str, body: str) -> str:
    return (
        "<!DOCTYPE html><html><head><meta charset='utf-8'>"
        f"<title>{html.escape(title)}</title></head>"
        f"<body><main>{body}</main></body></html>"
    )


def create_etsy_router() -> APIRouter:
    """Create a router for the Etsy OAuth admin endpoints."""

    router = APIRouter()

    @router.get("/api/admin/oauth/start", response_model=None)
    async def start_oauth(
        flow: OAuthFlow = Depends(get_oauth_flow),
    ) -> RedirectResponse | JSONResponse:
        """Initiate OAuth flow."""
        try:
            auth_url = await anyio.to_thread.run_sync(flow.start)
        except ConfigurationError as e:
            logger.error("OAuth start error: %s", e)
            return JSONResponse({"error": str(e)}, status_code=500)
        except StorageError as e:
            logger.error("OAuth start error: %s", e)
            return JSONResponse(
                {"error": "Failed to start OAuth flow", "details": str(e)}, status_code=500
            )

        logger.info("Auth URL: %s...", auth_url[:100])
        return RedirectResponse(auth_url, status_code=status.HTTP_302_FOUND)

    @router.get("/api/admin/oauth/callback")
    async def oauth_callback(
        code: str | None = None,
        state: str | None = None,
        error: str | None = None,
        error_description: str | None = None,
        flow: OAuthFlow = Depends(get_oauth_flow),
    ) -> RedirectResponse:
        """
        Handle OAuth callback from Etsy.

        Validates the state, exchanges the code for tokens with the stored
        PKCE verifier and saves the tokens.

        Args:
            code (str | None): The authorization code from Etsy.
            state (str | None): The state parameter from the initial request.
            error (str | None): Error code when the owner denied access.
            error_description (str | None): Detail for ``error``.
        """
        logger.info("OAuth callback received: code=%s... state=%s", (code or "")[:5], bool(state))
        try:
            await anyio.to_thread.run_sync(flow.handle_callback, code, state, error, error_description)
        except OAuthFlowError as e:
            logger.error("OAuth callback failed: %s", e)
            if e.kind in (OAuthErrorKind.MISSING_PARAMETERS.value, OAuthErrorKind.INVALID_STATE.value):
                return error_redirect(e.kind)
            return error_redirect(e.kind, e.description or "")
        except StorageError as e:
            logger.error("Could not save OAuth tokens: %s", e)
            return error_redirect(OAuthErrorKind.TOKEN_EXCHANGE_FAILED.value, str(e))
        except Exception as e:
            logger.exception("Unexpected OAuth callback error: %s", e)
            return error_redirect(OAuthErrorKind.TOKEN_EXCHANGE_FAILED.value, str(e))

        logger.info("OAuth flow completed successfully")
        return RedirectResponse(SUCCESS_PAGE, status_code=status.HTTP_302_FOUND)

    @router.get("/api/admin/oauth/status")
    async def oauth_status(flow: OAuthFlow = Depends(get_oauth_flow)) -> dict:
        """Check OAuth authentication status."""
        return await anyio.to_thread.run_sync(flow.status)

    @router.delete("/api/admin/oauth/status")
    async def oauth_logout(flow: OAuthFlow = Depends(get_oauth_flow)) -> dict:
        """Logout - clear OAuth tokens."""
        await anyio.to_thread.run_sync(flow.logout)
        return {"success": True, "message": "OAuth tokens cleared"}

    @router.get("/api/admin/storage/test")
    async def storage_test(store: TokenStore = Depends(get_token_store)) -> dict:
        """Check that the token storage backend is reachable."""
        connected = await anyio.to_thread.run_sync(store.ping)
        return {"backend": store.backend.value, "connected": connected}

    @router.get(SUCCESS_PAGE, response_class=HTMLResponse)
    async def oauth_success_page() -> str:
        """Page shown after a successful authorization."""
        return render_page(
            "Etsy connected",
            "<h1>Etsy connected</h1><p>The shop is connected; products are loaded from Etsy.</p>",
        )

    @router.get(ERROR_PAGE, response_class=HTMLResponse)
    async def oauth_error_page(error: str | None = None, description: str | None = None) -> str:
        """Page shown when the authorization failed."""
        info = describe_error(error, description)
        body = (
            f"<h1>{html.escape(info.title)}</h1>"
            f"<p>{html.escape(info.description)}</p>"
            f"<p><strong>Solution:</strong> {html.escape(info.solution)}</p>"
        )
        if description and error != OAuthErrorKind.TOKEN_EXCHANGE_FAILED.value:
            body += f"<pre>{html.escape(description)}</pre>"
        body += "<p><a href='/api/admin/oauth/start'>Try again</a></p>"
        return render_page(info.title, body)

    return router
