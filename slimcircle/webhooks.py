"""
Clerk webhook verification and user-record mirroring.
"""

from __future__ import annotations

import json
import logging
from typing import Mapping, Optional

from svix.webhooks import Webhook, WebhookVerificationError

from slimcircle.db import DocumentStore
from slimcircle.identity_provider import to_clerk_user
from shared.firebase_constants import USERS_COLLECTION
from shared.types import ClerkUserData
from shared.utils import iso_now

logger = logging.getLogger(__name__)

SVIX_HEADERS = ("svix-id", "svix-timestamp", "svix-signature")


class WebhookRejected(Exception):
    """The delivery cannot be verified or decoded."""


class WebhookMisconfigured(Exception):
    """The signing secret cannot be used to verify deliveries."""


def verify_event(secret: str, body: bytes, headers: Mapping[str, str]) -> dict:
    """
    Checks the Svix signature of `body` and returns the decoded event.

    Raises:
        WebhookRejected: Missing headers, a bad signature or an undecodable body.
        WebhookMisconfigured: The secret is not a valid Svix signing secret.
    """
    svix_headers = {name: headers.get(name) for name in SVIX_HEADERS}
    missing = [name for name, value in svix_headers.items() if not value]
    if missing:
        raise WebhookRejected(f"Missing headers: {', '.join(missing)}")
    try:
        webhook = Webhook(secret)
    except (ValueError, RuntimeError) as e:
        raise WebhookMisconfigured(str(e)) from e
    try:
        webhook.verify(body, svix_headers)
    except WebhookVerificationError as e:
        raise WebhookRejected(str(e)) from e

    try:
        event = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise WebhookRejected(f"Body is not JSON: {e}") from e
    if not isinstance(event, dict):
        raise WebhookRejected("Body is not a JSON object")
    return event


def _user_fields(user: ClerkUserData, now: str) -> dict:
    return {
        "email": user.primary_email,
        "firstName": user.first_name or "",
        "lastName": user.last_name or "",
        "name": user.full_name,
        "imageUrl": user.image_url or "",
        "role": user.role.value,
        "updatedAt": now,
    }


def ingest_user_event(store: DocumentStore, event: dict) -> Optional[str]:
    """
    Applies a verified Clerk event to the users collection.

    Returns the event type when it changed a record, None when ignored.
    """
    event_type = event.get("type")
    data = event.get("data") or {}

    if event_type == "user.created":
        user = to_clerk_user(data)
        now = iso_now()
        store.set(
            USERS_COLLECTION,
            user.id,
            {"id": user.id, **_user_fields(user, now), "createdAt": now},
        )
    elif event_type == "user.updated":
        user = to_clerk_user(data)
        store.set(USERS_COLLECTION, user.id, _user_fields(user, iso_now()), merge=True)
    elif event_type == "user.deleted":
        user_id = data.get("id")
        if not user_id:
            logger.info("Ignoring user.deleted without an id")
            return None
        store.delete(USERS_COLLECTION, user_id)
    else:
        logger.info("Ignoring webhook event %s", event_type)
        return None

    logger.info("Applied %s webhook", event_type)
    return event_type
