"""
Settings for the storefront application.
"""

from enum import Enum

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

ETSY_API_BASE_URL = "https://openapi.etsy.com/v3"
ETSY_OAUTH_CONNECT_URL = "https://www.etsy.com/oauth/connect"
ETSY_OAUTH_TOKEN_URL = "https://api.etsy.com/v3/public/oauth/token"
ETSY_OAUTH_CALLBACK_PATH = "/api/admin/oauth/callback"
INSTAGRAM_API_BASE_URL = "https://graph.instagram.com"

load_dotenv()


class StorageBackend(Enum):
    """
    Token storage backend for the storefront application.
    """

    FILE = "file"
    COOKIE = "cookie"
    REDIS = "redis"


class EtsySettings(BaseSettings):
    """
    Settings for the Etsy API, the OAuth token storage and the newsletter/Instagram integrations.
    """

    etsy_api_key: str = ""
    etsy_shop_id: str = ""
    site_url: str = "http://localhost:8000"
    environment: str = "development"
    token_storage: StorageBackend = StorageBackend.FILE
    token_dir: str = "."
    jwt_secret: str = ""
    redis_url: str = ""
    redis_key_prefix: str = "lanina"
    cors_origins: str = "http://localhost:3000"
    mailchimp_api_key: str = ""
    mailchimp_audience_id: str = ""
    mailchimp_server_prefix: str = ""
    instagram_access_token: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def client_id(self) -> str:
        """Etsy uses the API keystring as the OAuth client id."""
        return self.etsy_api_key

    @property
    def redirect_uri(self) -> str:
        """Callback URL registered with Etsy for this deployment."""
        return f"{self.site_url.rstrip('/')}{ETSY_OAUTH_CALLBACK_PATH}"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_configured(self) -> bool:
        """True when both the API key and the shop id are set."""
        return bool(self.etsy_api_key and self.etsy_shop_id)

    @property
    def is_mailchimp_configured(self) -> bool:
        return bool(self.mailchimp_api_key and self.mailchimp_audience_id and self.mailchimp_server_prefix)

    @property
    def allowed_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]
