"""Domain exceptions for the storefront application."""

from enum import Enum
from typing import Optional


class OAuthErrorKind(str, Enum):
    """Error codes shown to the admin on the OAuth error page."""

    ACCESS_DENIED = "access_denied"
    INVALID_REQUEST = "invalid_request"
    INVALID_STATE = "invalid_state"
    MISSING_PARAMETERS = "missing_parameters"
    TOKEN_EXCHANGE_FAILED = "token_exchange_failed"
    TOKEN_REFRESH_FAILED = "token_refresh_failed"
    UNKNOWN = "unknown"


class ConfigurationError(Exception):
    """Raised when a required setting (API key, shop id, secret) is missing."""


class OAuthFlowError(Exception):
    """
    Raised when a step of the OAuth flow fails.

    Attributes:
        kind (str): Error code; one of OAuthErrorKind or a code reported by Etsy.
        description (str | None): Human readable detail.
    """

    def __init__(self, kind: str, description: Optional[str] = None) -> None:
        self.kind = kind.value if isinstance(kind, OAuthErrorKind) else kind
        self.description = description
        super().__init__(f"{self.kind}: {description}" if description else self.kind)


class StorageError(Exception):
    """Raised when a token store cannot write to its backing store."""
