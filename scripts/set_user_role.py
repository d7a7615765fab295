"""
CLI helper to set a user's role in Clerk public metadata.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from slimcircle.config import get_settings
from slimcircle.identity_provider import ClerkIdentityProvider, IdentityProviderError
from shared.types import UserRole

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Set a SlimCircle user's role")
    parser.add_argument("--email", required=True, help="Email address of the user")
    parser.add_argument(
        "--role",
        required=True,
        choices=[role.value for role in UserRole],
        help="Role to assign",
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)

    settings = get_settings()
    if not settings.clerk_secret_key:
        logger.error("CLERK_SECRET_KEY is not set")
        return 1
    provider = ClerkIdentityProvider(
        secret_key=settings.clerk_secret_key,
        api_url=settings.clerk_api_url,
        jwks_url=settings.clerk_jwks_url,
    )

    try:
        user = provider.find_user_by_email(args.email)
        if user is None:
            logger.error("No user found with email %s", args.email)
            return 1
        provider.set_role(user.id, UserRole(args.role))
    except IdentityProviderError as e:
        logger.error("Role update failed: %s", e)
        return 1

    logger.info("Set role of %s (%s) to %s", args.email, user.id, args.role)
    return 0


if __name__ == "__main__":
    sys.exit(main())
