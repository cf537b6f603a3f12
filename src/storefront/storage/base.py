"""
Token store interface shared by every storage backend.

The store holds a single slot for the shop owner's Etsy tokens and a single
slot for the pending authorization state. Backends only implement raw record
I/O; merging, validation and refresh are implemented once here.
"""

import logging
import re
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, Union

from pydantic import ValidationError

from storefront.core.errors import OAuthErrorKind, OAuthFlowError, StorageError
from storefront.core.models import OAuthState, OAuthTokens, TokenUpdate
from storefront.core.settings import StorageBackend

logger = logging.getLogger("storage")

STATE_MAX_AGE_MS = 15 * 60 * 1000
TOKENS_TTL_SECONDS = 7 * 24 * 60 * 60
STATE_TTL_SECONDS = 15 * 60
DEFAULT_EXPIRES_IN_SECONDS = 3600

_USER_ID_PREFIX = re.compile(r"^(\d+)\.")

Refresher = Callable[[str], TokenUpdate]


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


def user_id_from_access_token(access_token: str) -> Optional[str]:
    """Etsy access tokens start with the numeric user id, e.g. ``12345678.abc``."""
    match = _USER_ID_PREFIX.match(access_token or "")
    return match.group(1) if match else None


class TokenStore(ABC):
    """
    Persist the Etsy OAuth tokens and the transient OAuth state.

    Args:
        refresher (Refresher | None): Exchanges a refresh token for a new token
            update; raises OAuthFlowError on failure.
        clock (Callable[[], int]): Returns the current time in epoch milliseconds.
    """

    backend: StorageBackend

    def __init__(
        self,
        refresher: Optional[Refresher] = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.refresher = refresher
        self.clock = clock

    # Raw record I/O implemented by the backends. Reads never raise.

    @abstractmethod
    def _read_tokens(self) -> Optional[dict[str, Any]]: ...

    @abstractmethod
    def _write_tokens(self, data: dict[str, Any]) -> None: ...

    @abstractmethod
    def _delete_tokens(self) -> None: ...

    @abstractmethod
    def _read_state(self) -> Optional[dict[str, Any]]: ...

    @abstractmethod
    def _write_state(self, data: dict[str, Any]) -> None: ...

    @abstractmethod
    def _delete_state(self) -> None: ...

    def flush(self, response: Any) -> None:
        """Push pending writes onto the outgoing response."""

    def ping(self) -> bool:
        """Check that the backing store is reachable."""
        return True

    def save_tokens(self, update: Union[TokenUpdate, dict[str, Any]]) -> OAuthTokens:
        """
        Merge a partial token record into the stored one.

        Fields that are not supplied keep their stored value, so a refresh that
        does not rotate the refresh token keeps the old one.

        Args:
            update (TokenUpdate | dict): Fields to store.

        Returns:
            OAuthTokens: The record as saved.
        """
        if isinstance(update, dict):
            update = TokenUpdate(**update)

        now = self.clock()
        existing = self.load_tokens()

        if update.expires_at is not None:
            expires_at = update.expires_at
        elif update.expires_in is not None:
            expires_at = now + update.expires_in * 1000
        elif existing is not None:
            expires_at = existing.expires_at
        else:
            expires_at = now + DEFAULT_EXPIRES_IN_SECONDS * 1000

        access_token = update.access_token or (existing.access_token if existing else "")
        updated_at = now
        if existing is not None and updated_at <= existing.updated_at:
            updated_at = existing.updated_at + 1

        tokens = OAuthTokens(
            access_token=access_token,
            refresh_token=update.refresh_token or (existing.refresh_token if existing else ""),
            expires_at=expires_at,
            token_type=update.token_type or "Bearer",
            user_id=update.user_id
            or (existing.user_id if existing else None)
            or user_id_from_access_token(access_token),
            scopes=update.scopes
            if update.scopes is not None
            else (existing.scopes if existing else []),
            created_at=existing.created_at if existing else now,
            updated_at=updated_at,
        )
        self._write_tokens(tokens.model_dump())
        logger.info("OAuth tokens saved to %s storage", self.backend.value)
        return tokens

    def load_tokens(self) -> Optional[OAuthTokens]:
        """Load the stored tokens, None when absent, cleared or unreadable."""
        data = self._read_tokens()
        if not data:
            return None
        try:
            return OAuthTokens.model_validate(data)
        except ValidationError as e:
            logger.warning("Could not load OAuth tokens: %s", e)
            return None

    def are_tokens_valid(self) -> bool:
        """True when an access token exists and has not expired."""
        tokens = self.load_tokens()
        return self._is_unexpired(tokens)

    def _is_unexpired(self, tokens: Optional[OAuthTokens]) -> bool:
        if tokens is None or not tokens.access_token:
            return False
        return self.clock() < tokens.expires_at

    def has_valid_authentication(self) -> bool:
        """True when the access token is valid or can be refreshed."""
        tokens = self.load_tokens()
        if tokens is None:
            return False
        return self._is_unexpired(tokens) or bool(tokens.refresh_token)

    def get_valid_access_token(self) -> Optional[str]:
        """
        Return a usable access token, refreshing it once if it has expired.

        Returns:
            str | None: The access token, or None when there is no way to get one.
        """
        tokens = self.load_tokens()
        if tokens is None:
            return None

        if self._is_unexpired(tokens):
            return tokens.access_token

        if not tokens.refresh_token:
            logger.info("Access token expired and no refresh token available")
            return None

        try:
            refreshed = self.refresh_tokens()
        except (OAuthFlowError, StorageError) as e:
            logger.error("Failed to refresh token: %s", e)
            return None
        except Exception as e:
            logger.exception("Unexpected error while refreshing token: %s", e)
            return None
        return refreshed.access_token or None

    def refresh_tokens(self) -> OAuthTokens:
        """
        Refresh the access token and store the result.

        Raises:
            OAuthFlowError: If there is nothing to refresh or Etsy rejects the refresh.
        """
        tokens = self.load_tokens()
        if tokens is None or not tokens.refresh_token:
            raise OAuthFlowError(OAuthErrorKind.TOKEN_REFRESH_FAILED, "No refresh token available")
        if self.refresher is None:
            raise OAuthFlowError(OAuthErrorKind.TOKEN_REFRESH_FAILED, "No token refresher configured")

        logger.info("Refreshing OAuth token from %s storage", self.backend.value)
        update = self.refresher(tokens.refresh_token)
        update.scopes = tokens.scopes
        return self.save_tokens(update)

    def save_oauth_state(self, state: OAuthState) -> None:
        """Store the state of a new authorization attempt, replacing any previous one."""
        self._write_state(state.model_dump())
        logger.info("OAuth state saved to %s storage", self.backend.value)

    def load_and_validate_oauth_state(self, state_param: str) -> Optional[OAuthState]:
        """
        Load the pending OAuth state and check it against the callback parameter.

        Args:
            state_param (str): The ``state`` query parameter of the callback.

        Returns:
            OAuthState | None: The stored state, or None when it is missing,
            does not match or is older than 15 minutes.
        """
        data = self._read_state()
        if not data:
            logger.warning("No OAuth state found in %s storage", self.backend.value)
            return None
        try:
            state = OAuthState.model_validate(data)
        except ValidationError as e:
            logger.warning("Could not load OAuth state: %s", e)
            return None

        if state.state != state_param:
            logger.warning("OAuth state mismatch - possible CSRF attack")
            return None

        if self.clock() - state.created_at > STATE_MAX_AGE_MS:
            logger.warning("OAuth state expired")
            return None

        return state

    def has_oauth_state(self) -> bool:
        """True while an authorization attempt is pending."""
        return bool(self._read_state())

    def clear_oauth_state(self) -> None:
        self._delete_state()

    def clear_all_oauth_data(self) -> None:
        """Forget the tokens and any pending state (logout)."""
        self._delete_tokens()
        self._delete_state()
        logger.info("All OAuth data cleared from %s storage", self.backend.value)
