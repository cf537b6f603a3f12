"""
Etsy OAuth 2.0 authorization code flow with PKCE.

The flow is admin-only: the shop owner authorizes once, the tokens are kept in
the configured token store and refreshed on demand.

    IDLE -> AUTHORIZING -> CALLBACK_RECEIVED -> TOKEN_EXCHANGED -> AUTHENTICATED

AUTHORIZING and AUTHENTICATED are visible in the store (pending state,
saved tokens); every failure exits with an OAuthFlowError.
"""

import logging
from enum import Enum
from functools import partial
from typing import Any, Callable, NamedTuple, Optional, Sequence
from urllib.parse import urlencode

import requests

from storefront.core.errors import ConfigurationError, OAuthErrorKind, OAuthFlowError
from storefront.core.models import OAuthState, OAuthTokens, TokenUpdate
from storefront.core.pkce import CODE_CHALLENGE_METHOD, generate_pkce, generate_state
from storefront.core.settings import ETSY_OAUTH_CONNECT_URL, ETSY_OAUTH_TOKEN_URL, EtsySettings
from storefront.storage.base import DEFAULT_EXPIRES_IN_SECONDS, Refresher, TokenStore

logger = logging.getLogger("oauth")

REQUEST_TIMEOUT = 15

REQUIRED_SCOPES = ("shops_r", "listings_r")

SCOPE_DESCRIPTIONS = {
    "shops_r": "View shop information",
    "listings_r": "View products and collections",
    "shops_w": "Edit shop information",
    "listings_w": "Edit products",
}


class FlowPhase(str, Enum):
    IDLE = "idle"
    AUTHORIZING = "authorizing"
    AUTHENTICATED = "authenticated"


class ErrorInfo(NamedTuple):
    title: str
    description: str
    solution: str


ERROR_MESSAGES = {
    OAuthErrorKind.ACCESS_DENIED.value: ErrorInfo(
        "Access denied",
        "The authorization request was cancelled.",
        "Start again and grant the application access.",
    ),
    OAuthErrorKind.INVALID_REQUEST.value: ErrorInfo(
        "Invalid request",
        "The OAuth configuration contains an error.",
        "Check that all API settings are correct.",
    ),
    OAuthErrorKind.INVALID_STATE.value: ErrorInfo(
        "Security check failed",
        "The state check failed (CSRF) or the request expired.",
        "Start again. If the problem persists, clear the browser cache.",
    ),
    OAuthErrorKind.MISSING_PARAMETERS.value: ErrorInfo(
        "Missing parameters",
        "Etsy did not return all required values.",
        "Restart the OAuth flow.",
    ),
    OAuthErrorKind.TOKEN_EXCHANGE_FAILED.value: ErrorInfo(
        "Token exchange failed",
        "Exchanging the authorization code for tokens failed.",
        "Check that the API key is configured correctly.",
    ),
}


def describe_error(kind: Optional[str], description: Optional[str] = None) -> ErrorInfo:
    """Map an error code to the text shown on the admin error page."""
    info = ERROR_MESSAGES.get(kind or OAuthErrorKind.UNKNOWN.value)
    if info is not None:
        return info
    return ErrorInfo(
        "Unknown error",
        description or "An unexpected error occurred.",
        "Try again. If the problem persists, get in touch.",
    )


def validate_scopes(scopes: Sequence[str]) -> bool:
    """True when every scope the site needs has been granted."""
    return all(scope in scopes for scope in REQUIRED_SCOPES)


def build_authorization_url(
    client_id: str,
    redirect_uri: str,
    scopes: Sequence[str],
    state: str,
    code_challenge: str,
) -> str:
    """Build the Etsy authorization URL the admin is redirected to."""
    params = {
        "response_type": "code",
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "scope": " ".join(scopes),
        "state": state,
        "code_challenge": code_challenge,
        "code_challenge_method": CODE_CHALLENGE_METHOD,
    }
    return f"{ETSY_OAUTH_CONNECT_URL}?{urlencode(params)}"


def _post_token_request(
    form: dict[str, str],
    kind: OAuthErrorKind,
    session: Optional[requests.Session],
) -> dict[str, Any]:
    http = session or requests
    try:
        response = http.post(ETSY_OAUTH_TOKEN_URL, data=form, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        raise OAuthFlowError(kind, f"Token endpoint unreachable: {e}") from e

    if not response.ok:
        raise OAuthFlowError(kind, f"Token endpoint returned {response.status_code}: {response.text}")

    try:
        data = response.json()
        if not data.get("access_token"):
            raise ValueError("no access_token in response")
        data["expires_in"] = int(data.get("expires_in", DEFAULT_EXPIRES_IN_SECONDS))
    except (TypeError, ValueError, AttributeError) as e:
        raise OAuthFlowError(kind, f"Unexpected token response: {e}") from e
    return data


def exchange_code_for_tokens(
    settings: EtsySettings,
    code: str,
    redirect_uri: str,
    code_verifier: str,
    session: Optional[requests.Session] = None,
) -> dict[str, Any]:
    """
    Exchange an authorization code for tokens.

    Returns:
        dict[str, Any]: Token response with access_token, refresh_token,
        expires_in and token_type.

    Raises:
        OAuthFlowError: token_exchange_failed on any non-2xx or network error.
    """
    logger.info("Exchanging authorization code for tokens")
    return _post_token_request(
        {
            "grant_type": "authorization_code",
            "client_id": settings.client_id,
            "code": code,
            "redirect_uri": redirect_uri,
            "code_verifier": code_verifier,
        },
        OAuthErrorKind.TOKEN_EXCHANGE_FAILED,
        session,
    )


def refresh_access_token(
    settings: EtsySettings,
    refresh_token: str,
    session: Optional[requests.Session] = None,
) -> TokenUpdate:
    """
    Obtain a new access token with the refresh token.

    Raises:
        OAuthFlowError: token_refresh_failed when Etsy rejects the refresh.
    """
    if not settings.client_id:
        raise OAuthFlowError(OAuthErrorKind.TOKEN_REFRESH_FAILED, "ETSY_API_KEY not configured")

    data = _post_token_request(
        {
            "grant_type": "refresh_token",
            "client_id": settings.client_id,
            "refresh_token": refresh_token,
        },
        OAuthErrorKind.TOKEN_REFRESH_FAILED,
        session,
    )
    return TokenUpdate(
        access_token=data["access_token"],
        refresh_token=data.get("refresh_token") or None,
        expires_in=data["expires_in"],
        token_type=data.get("token_type") or "Bearer",
    )


def make_refresher(settings: EtsySettings, session: Optional[requests.Session] = None) -> Refresher:
    """Bind the settings so a token store can refresh on its own."""
    return partial(refresh_access_token, settings, session=session)


class OAuthFlow:
    """
    Drive the authorization flow against a token store.

    Args:
        settings (EtsySettings): Etsy credentials and site URL.
        store (TokenStore): Where state and tokens are kept.
        session (requests.Session | None): HTTP session for the token endpoint.
        clock (Callable[[], int] | None): Epoch-millisecond clock, the store's by default.
    """

    def __init__(
        self,
        settings: EtsySettings,
        store: TokenStore,
        session: Optional[requests.Session] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self.settings = settings
        self.store = store
        self.session = session
        self.clock = clock or store.clock

    def start(self) -> str:
        """
        Begin an authorization attempt.

        Returns:
            str: The Etsy authorization URL to redirect to.

        Raises:
            ConfigurationError: If ETSY_API_KEY is not set.
        """
        if not self.settings.client_id:
            raise ConfigurationError("ETSY_API_KEY not configured")

        pkce = generate_pkce()
        oauth_state = OAuthState(
            state=generate_state(),
            code_verifier=pkce.verifier,
            code_challenge=pkce.challenge,
            redirect_uri=self.settings.redirect_uri,
            scopes=list(REQUIRED_SCOPES),
            created_at=self.clock(),
        )
        self.store.save_oauth_state(oauth_state)

        url = build_authorization_url(
            client_id=self.settings.client_id,
            redirect_uri=oauth_state.redirect_uri,
            scopes=oauth_state.scopes,
            state=oauth_state.state,
            code_challenge=oauth_state.code_challenge,
        )
        logger.info(
            "Starting OAuth flow: redirect_uri=%s scopes=%s",
            oauth_state.redirect_uri,
            oauth_state.scopes,
        )
        return url

    def handle_callback(
        self,
        code: Optional[str],
        state: Optional[str],
        error: Optional[str] = None,
        error_description: Optional[str] = None,
    ) -> OAuthTokens:
        """
        Complete the flow from Etsy's redirect.

        Returns:
            OAuthTokens: The saved tokens.

        Raises:
            OAuthFlowError: With the provider's error code, missing_parameters,
                invalid_state or token_exchange_failed.
        """
        if error:
            logger.error("OAuth error from Etsy: %s %s", error, error_description)
            raise OAuthFlowError(error, error_description)

        if not code or not state:
            logger.error("Missing OAuth parameters: code=%s state=%s", bool(code), bool(state))
            raise OAuthFlowError(OAuthErrorKind.MISSING_PARAMETERS)

        oauth_state = self.store.load_and_validate_oauth_state(state)
        if oauth_state is None:
            logger.error("Invalid OAuth state")
            raise OAuthFlowError(OAuthErrorKind.INVALID_STATE)

        try:
            if not self.settings.client_id:
                raise OAuthFlowError(
                    OAuthErrorKind.TOKEN_EXCHANGE_FAILED, "ETSY_API_KEY not configured"
                )
            data = exchange_code_for_tokens(
                self.settings,
                code=code,
                redirect_uri=oauth_state.redirect_uri,
                code_verifier=oauth_state.code_verifier,
                session=self.session,
            )
            tokens = self.store.save_tokens(
                TokenUpdate(
                    access_token=data["access_token"],
                    refresh_token=data.get("refresh_token"),
                    expires_at=self.clock() + data["expires_in"] * 1000,
                    token_type=data.get("token_type") or "Bearer",
                    scopes=oauth_state.scopes,
                )
            )
        finally:
            self.store.clear_oauth_state()

        logger.info("OAuth flow completed for user %s", tokens.user_id)
        return tokens

    def logout(self) -> None:
        self.store.clear_all_oauth_data()

    def phase(self) -> FlowPhase:
        if self.store.has_valid_authentication():
            return FlowPhase.AUTHENTICATED
        if self.store.has_oauth_state():
            return FlowPhase.AUTHORIZING
        return FlowPhase.IDLE

    def status(self) -> dict[str, Any]:
        """Authentication summary for the admin status endpoint."""
        tokens = self.store.load_tokens()
        return {
            "authenticated": self.store.has_valid_authentication(),
            "hasTokens": tokens is not None,
            "tokenValid": self.store.are_tokens_valid(),
            "hasRefreshToken": bool(tokens and tokens.refresh_token),
            "userId": tokens.user_id if tokens else None,
            "scopes": tokens.scopes if tokens else [],
            "expiresAt": tokens.expires_at if tokens else None,
            "updatedAt": tokens.updated_at if tokens else None,
        }
