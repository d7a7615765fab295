"""
Coach directory for the admin console.
"""

from __future__ import annotations

from slimcircle.identity_provider import IdentityProvider
from shared.constants import COACH_LIST_LIMIT
from shared.types import ClerkUserData, UserRole


def coach_summary(user: ClerkUserData) -> dict:
    return {
        "id": user.id,
        "email": user.primary_email,
        "firstName": user.first_name or "",
        "lastName": user.last_name or "",
        "name": user.full_name or "Unnamed Coach",
        "imageUrl": user.image_url or "",
        "role": UserRole.COACH.value,
    }


def list_coaches(provider: IdentityProvider, limit: int = COACH_LIST_LIMIT) -> list[dict]:
    """
    Users whose public metadata role is `coach`, sorted by display name.

    Only the first `limit` directory users are inspected.
    """
    coaches = [
        coach_summary(user)
        for user in provider.list_users(limit=limit)
        if user.public_metadata.get("role") == UserRole.COACH.value
    ]
    return sorted(coaches, key=lambda coach: coach["name"].lower())
