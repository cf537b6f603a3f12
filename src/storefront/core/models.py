"""
Data models for OAuth state, stored tokens, Etsy payloads and storefront products.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Category(str, Enum):
    """Store categories shown on the site."""

    RINGS = "rings"
    NECKLACES = "necklaces"
    EARRINGS = "earrings"
    BRACELETS = "bracelets"


class OAuthState(BaseModel):
    """
    Transient state of a single authorization attempt.

    Attributes:
        state (str): CSRF nonce echoed back by Etsy on the callback.
        code_verifier (str): PKCE verifier, never sent to the browser.
        code_challenge (str): PKCE challenge sent with the authorization request.
        redirect_uri (str): Callback URL used for the attempt.
        scopes (list[str]): Requested permission set.
        created_at (int): Creation time in epoch milliseconds.
    """

    state: str
    code_verifier: str
    code_challenge: str
    redirect_uri: str
    scopes: List[str] = Field(default_factory=list)
    created_at: int


class OAuthTokens(BaseModel):
    """
    The single active set of Etsy OAuth credentials.

    Attributes:
        access_token (str): Bearer credential for the Etsy API.
        refresh_token (str): Credential used to obtain a new access token.
        expires_at (int): Access token expiry in epoch milliseconds.
        token_type (str): Always "Bearer".
        user_id (str | None): Etsy user id, the numeric prefix of the access token.
        scopes (list[str]): Granted permission set.
        created_at (int): First save, epoch milliseconds.
        updated_at (int): Last save, epoch milliseconds.
    """

    access_token: str
    refresh_token: str = ""
    expires_at: int
    token_type: str = "Bearer"
    user_id: Optional[str] = None
    scopes: List[str] = Field(default_factory=list)
    created_at: int
    updated_at: int


class TokenUpdate(BaseModel):
    """Partial token record merged into the stored one by ``save_tokens``."""

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None
    expires_in: Optional[int] = None
    token_type: Optional[str] = None
    user_id: Optional[str] = None
    scopes: Optional[List[str]] = None


class EtsyPrice(BaseModel):
    amount: int
    divisor: int = 100
    currency_code: str = "EUR"


class EtsyImage(BaseModel):
    model_config = ConfigDict(extra="allow")

    listing_image_id: Optional[int] = None
    url_570xN: str = ""
    url_fullxfull: str = ""


class EtsyListing(BaseModel):
    """Active listing as returned by the Etsy Open API v3."""

    model_config = ConfigDict(extra="allow")

    listing_id: int
    title: str
    description: str = ""
    state: str = "active"
    quantity: int = 0
    url: str = ""
    num_favorers: int = 0
    tags: List[str] = Field(default_factory=list)
    materials: List[str] = Field(default_factory=list)
    price: EtsyPrice
    taxonomy_id: Optional[int] = None
    created_timestamp: int = 0
    images: List[EtsyImage] = Field(default_factory=list)


class EtsyShop(BaseModel):
    """Shop record as returned by the Etsy Open API v3."""

    model_config = ConfigDict(extra="allow")

    shop_id: int
    shop_name: str
    title: Optional[str] = None
    announcement: Optional[str] = None
    currency_code: str = "EUR"
    url: str = ""
    listing_active_count: int = 0
    is_vacation: bool = False


class TaxonomyNode(BaseModel):
    """Seller taxonomy node flattened with the names of its ancestors."""

    id: int
    name: str
    path: List[str] = Field(default_factory=list)


class Product(BaseModel):
    """
    Storefront product derived from an Etsy listing.

    Serialized in camelCase for the front end.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    price: float
    currency: str
    image: str
    images: List[str] = Field(default_factory=list)
    category: Category
    description: str = ""
    is_new: bool = False
    is_bestseller: bool = False
    in_stock: bool = False
    quantity: int = 0
    etsy_url: str = ""
    etsy_listing_id: int
    tags: List[str] = Field(default_factory=list)
