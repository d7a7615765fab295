"""
Chat service abstraction for Stream Chat plus the global-channel bootstrap.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

from stream_chat import StreamChat

from shared.types import ClerkUserData

logger = logging.getLogger(__name__)

CHANNEL_TYPE = "messaging"


class ChatService(Protocol):
    """Operations the API needs from the chat backend."""

    def upsert_user(self, user_id: str, name: str, image: Optional[str] = None) -> None:
        ...

    def create_channel(self, channel_id: str, created_by_id: str, data: dict) -> None:
        ...

    def add_members(self, channel_id: str, user_ids: list[str]) -> None:
        ...


class ChannelNotFoundError(Exception):
    pass


@dataclass
class InMemoryChatService:
    """Test double for chat interactions."""

    users: Dict[str, dict] = field(default_factory=dict)
    channels: Dict[str, dict] = field(default_factory=dict)

    def upsert_user(self, user_id: str, name: str, image: Optional[str] = None) -> None:
        self.users[user_id] = {"id": user_id, "name": name, "image": image}

    def create_channel(self, channel_id: str, created_by_id: str, data: dict) -> None:
        channel = self.channels.setdefault(
            channel_id, {"data": {}, "members": [], "created_by_id": created_by_id}
        )
        channel["data"].update(data)

    def add_members(self, channel_id: str, user_ids: list[str]) -> None:
        channel = self.channels.get(channel_id)
        if channel is None:
            raise ChannelNotFoundError(channel_id)
        for user_id in user_ids:
            if user_id not in channel["members"]:
                channel["members"].append(user_id)

    def reset(self) -> None:
        self.users.clear()
        self.channels.clear()


class StreamChatService:
    """Stream Chat server-side client."""

    def __init__(self, api_key: str, api_secret: str):
        if not api_key or not api_secret:
            raise ValueError("Stream API key and secret must be defined")
        self.client = StreamChat(api_key=api_key, api_secret=api_secret)

    def upsert_user(self, user_id: str, name: str, image: Optional[str] = None) -> None:
        user = {"id": user_id, "name": name}
        if image:
            user["image"] = image
        self.client.upsert_user(user)

    def create_channel(self, channel_id: str, created_by_id: str, data: dict) -> None:
        # Channel creation is idempotent on Stream's side.
        channel = self.client.channel(CHANNEL_TYPE, channel_id, data)
        channel.create(created_by_id)

    def add_members(self, channel_id: str, user_ids: list[str]) -> None:
        self.client.channel(CHANNEL_TYPE, channel_id).add_members(user_ids)


@dataclass
class GlobalChannels:
    announcements: str
    social_corner: str
    share_wins: str


def display_name(user: ClerkUserData) -> str:
    return user.full_name or "User"


def _try_join(
    chat: ChatService,
    channel_id: str,
    user_id: str,
    create_data: Optional[dict] = None,
) -> bool:
    try:
        if create_data is not None:
            chat.create_channel(channel_id, created_by_id=user_id, data=create_data)
        chat.add_members(channel_id, [user_id])
    except Exception as e:
        # Missing channels and existing memberships are expected here.
        logger.warning("Could not join %s to channel %s: %s", user_id, channel_id, e)
        return False
    return True


def join_global_channels(
    chat: ChatService,
    user: ClerkUserData,
    channels: GlobalChannels,
) -> dict[str, bool]:
    """
    Registers `user` with the chat service and adds them to the global channels.

    Upsert failures propagate. Each channel join is attempted independently;
    a failed join is logged and reported as False in the returned mapping.
    """
    chat.upsert_user(user.id, display_name(user), user.image_url or None)
    return {
        channels.announcements: _try_join(chat, channels.announcements, user.id),
        channels.social_corner: _try_join(chat, channels.social_corner, user.id),
        channels.share_wins: _try_join(
            chat,
            channels.share_wins,
            user.id,
            create_data={"name": "Share your wins"},
        ),
    }


def setup_global_channels(
    chat: ChatService, admin_user_id: str, channels: GlobalChannels
) -> dict[str, str]:
    """Creates the announcements and social corner channels."""
    chat.create_channel(
        channels.announcements,
        created_by_id=admin_user_id,
        data={"name": "Announcements", "is_announcements": True},
    )
    chat.create_channel(
        channels.social_corner,
        created_by_id=admin_user_id,
        data={"name": "Social Corner", "is_social_corner": True},
    )
    return {
        "announcements": channels.announcements,
        "socialCorner": channels.social_corner,
    }
