"""
Newsletter signup through the Mailchimp Marketing API.

Subscriptions are created as ``pending`` so Mailchimp sends the double opt-in
mail. Every failure is reported in the result, nothing is raised.
"""

import logging
import re
from typing import Optional

import requests
from pydantic import BaseModel

from storefront.core.settings import EtsySettings

logger = logging.getLogger("newsletter")

REQUEST_TIMEOUT = 15
SUBSCRIBER_TAGS = ["Website", "Homepage"]

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class SubscribeResult(BaseModel):
    """
    Outcome of a signup attempt.

    Attributes:
        success (bool): True when Mailchimp accepted the address.
        message (str): Text shown to the visitor.
        error (str | None): Technical reason, for logs and debugging.
    """

    success: bool
    message: str
    error: Optional[str] = None


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_PATTERN.match(email))


def members_url(settings: EtsySettings) -> str:
    return (
        f"https://{settings.mailchimp_server_prefix}.api.mailchimp.com/3.0"
        f"/lists/{settings.mailchimp_audience_id}/members"
    )


def subscribe_to_newsletter(
    settings: EtsySettings,
    email: str,
    session: Optional[requests.Session] = None,
) -> SubscribeResult:
    """
    Add an email address to the Mailchimp audience.

    Args:
        settings (EtsySettings): Mailchimp key, audience id and server prefix.
        email (str): Address entered by the visitor.
        session (requests.Session | None): HTTP session.

    Returns:
        SubscribeResult: Whether the signup went through and what to tell the visitor.
    """
    if not settings.is_mailchimp_configured:
        logger.error("Mailchimp settings not configured")
        return SubscribeResult(
            success=False,
            message="The newsletter service is temporarily unavailable.",
            error="Missing configuration",
        )

    email = email.strip()
    if not is_valid_email(email):
        return SubscribeResult(
            success=False,
            message="Please enter a valid email address.",
            error="Invalid email format",
        )

    http = session or requests
    try:
        response = http.post(
            members_url(settings),
            headers={"Authorization": f"apikey {settings.mailchimp_api_key}"},
            json={"email_address": email, "status": "pending", "tags": SUBSCRIBER_TAGS},
            timeout=REQUEST_TIMEOUT,
        )
    except requests.RequestException as e:
        logger.error("Mailchimp request failed: %s", e)
        return SubscribeResult(
            success=False,
            message="Could not reach the newsletter service. Please try again later.",
            error=str(e),
        )

    if response.ok:
        logger.info("Newsletter signup created")
        return SubscribeResult(
            success=True,
            message="Thank you! Check your inbox to confirm your subscription.",
        )

    try:
        data = response.json()
    except ValueError:
        data = {}
    title = data.get("title") if isinstance(data, dict) else None
    detail = data.get("detail") if isinstance(data, dict) else None
    logger.warning("Mailchimp rejected signup: %s %s", response.status_code, title)

    if title == "Member Exists":
        return SubscribeResult(
            success=False,
            message="You are already subscribed to our newsletter!",
            error="Member already exists",
        )
    if title == "Invalid Resource":
        return SubscribeResult(
            success=False,
            message="This email address does not seem to be valid.",
            error=detail,
        )
    return SubscribeResult(
        success=False,
        message="Something went wrong. Please try again later.",
        error=detail or "Unknown error",
    )
