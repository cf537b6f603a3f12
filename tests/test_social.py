"""Test the newsletter signup and the Instagram feed."""

from unittest.mock import MagicMock, patch

import pytest
import requests
from fastapi.testclient import TestClient

from storefront.api.v1.social import get_instagram_cache
from storefront.core.dependencies import get_settings
from storefront.core.instagram import (
    FALLBACK_POSTS,
    get_instagram_posts,
    get_instagram_posts_with_fallback,
)
from storefront.core.main import app
from storefront.core.newsletter import subscribe_to_newsletter


def http_response(status: int = 200, payload=None) -> MagicMock:
    response = MagicMock()
    response.ok = 200 <= status < 300
    response.status_code = status
    response.json.return_value = payload
    return response


POST = {
    "id": "17900000000000001",
    "media_type": "IMAGE",
    "media_url": "https://scontent.cdninstagram.com/a.jpg",
    "permalink": "https://www.instagram.com/p/abc/",
    "caption": "Nieuwe armbanden",
    "timestamp": "2025-06-01T10:00:00+0000",
}


@pytest.fixture
def social_settings(settings):
    settings.mailchimp_api_key = "mc-key"
    settings.mailchimp_audience_id = "list123"
    settings.mailchimp_server_prefix = "us21"
    settings.instagram_access_token = "ig-token"
    return settings


@pytest.fixture
def session() -> MagicMock:
    mock = MagicMock(spec=requests.Session)
    mock.post.return_value = http_response(200, {"id": "member"})
    mock.get.return_value = http_response(200, {"data": [POST]})
    return mock


class TestNewsletter:
    """Mailchimp signup."""

    def test_subscribe(self, social_settings, session: MagicMock) -> None:
        result = subscribe_to_newsletter(social_settings, " visitor@example.com ", session)

        assert result.success is True
        args, kwargs = session.post.call_args
        assert args[0] == "https://us21.api.mailchimp.com/3.0/lists/list123/members"
        assert kwargs["headers"] == {"Authorization": "apikey mc-key"}
        assert kwargs["json"]["email_address"] == "visitor@example.com"
        assert kwargs["json"]["status"] == "pending"

    def test_not_configured(self, settings, session: MagicMock) -> None:
        result = subscribe_to_newsletter(settings, "visitor@example.com", session)
        assert result.success is False
        assert result.error == "Missing configuration"
        session.post.assert_not_called()

    @pytest.mark.parametrize("email", ["not-an-email", "a@b", "two words@example.com"])
    def test_invalid_email(self, social_settings, session: MagicMock, email: str) -> None:
        result = subscribe_to_newsletter(social_settings, email, session)
        assert result.error == "Invalid email format"
        session.post.assert_not_called()

    def test_member_exists(self, social_settings, session: MagicMock) -> None:
        session.post.return_value = http_response(400, {"title": "Member Exists", "detail": "..."})
        result = subscribe_to_newsletter(social_settings, "visitor@example.com", session)
        assert result.success is False
        assert result.error == "Member already exists"

    def test_invalid_resource(self, social_settings, session: MagicMock) -> None:
        session.post.return_value = http_response(
            400, {"title": "Invalid Resource", "detail": "looks fake"}
        )
        result = subscribe_to_newsletter(social_settings, "visitor@example.com", session)
        assert result.error == "looks fake"

    def test_unexpected_error_body(self, social_settings, session: MagicMock) -> None:
        response = http_response(500)
        response.json.side_effect = ValueError("not json")
        session.post.return_value = response
        result = subscribe_to_newsletter(social_settings, "visitor@example.com", session)
        assert result.success is False
        assert result.error == "Unknown error"

    def test_network_error(self, social_settings, session: MagicMock) -> None:
        session.post.side_effect = requests.ConnectionError("unreachable")
        result = subscribe_to_newsletter(social_settings, "visitor@example.com", session)
        assert result.success is False
        assert "unreachable" in result.error


class TestInstagram:
    """Instagram feed with fallback posts."""

    def test_get_posts(self, social_settings, session: MagicMock) -> None:
        posts = get_instagram_posts(social_settings, limit=4, session=session)

        assert [p.id for p in posts] == ["17900000000000001"]
        args, kwargs = session.get.call_args
        assert args[0] == "https://graph.instagram.com/me/media"
        assert kwargs["params"]["limit"] == 4
        assert kwargs["params"]["access_token"] == "ig-token"

    def test_no_token(self, settings, session: MagicMock) -> None:
        assert get_instagram_posts(settings, session=session) == []
        session.get.assert_not_called()

    @pytest.mark.parametrize(
        "response",
        [http_response(400), http_response(200, {"data": [{"id": "1"}]}), http_response(200, [])],
    )
    def test_bad_responses_give_no_posts(self, social_settings, session, response) -> None:
        session.get.return_value = response
        assert get_instagram_posts(social_settings, session=session) == []

    def test_network_error(self, social_settings, session: MagicMock) -> None:
        session.get.side_effect = requests.Timeout("timed out")
        assert get_instagram_posts(social_settings, session=session) == []

    def test_fallback(self, settings, session: MagicMock) -> None:
        posts = get_instagram_posts_with_fallback(settings, limit=1, session=session)
        assert posts == FALLBACK_POSTS[:1]


@pytest.fixture
def client(social_settings, session):
    app.dependency_overrides[get_settings] = lambda: social_settings
    get_instagram_cache.cache_clear()
    with patch("storefront.api.v1.social.get_http_session", return_value=session):
        yield TestClient(app)
    app.dependency_overrides.clear()
    get_instagram_cache.cache_clear()


def test_newsletter_endpoint(client: TestClient) -> None:
    response = client.post("/api/newsletter", json={"email": "visitor@example.com"})
    assert response.status_code == 200
    assert response.json()["success"] is True


def test_newsletter_endpoint_requires_email(client: TestClient, session: MagicMock) -> None:
    response = client.post("/api/newsletter", json={})
    assert response.status_code == 400
    assert response.json()["success"] is False
    session.post.assert_not_called()


def test_newsletter_endpoint_rejected(client: TestClient, session: MagicMock) -> None:
    session.post.return_value = http_response(400, {"title": "Member Exists"})
    response = client.post("/api/newsletter", json={"email": "visitor@example.com"})
    assert response.status_code == 400
    assert response.json()["error"] == "Member already exists"


def test_instagram_endpoint(client: TestClient) -> None:
    body = client.get("/api/instagram").json()
    assert body["success"] is True
    assert body["count"] == 1
    assert body["posts"][0]["permalink"] == "https://www.instagram.com/p/abc/"


def test_instagram_endpoint_falls_back(client: TestClient, session: MagicMock) -> None:
    session.get.return_value = http_response(500)
    body = client.get("/api/instagram").json()
    assert body["success"] is True
    assert [p["id"] for p in body["posts"]] == [p.id for p in FALLBACK_POSTS]
