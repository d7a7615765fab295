"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from slimcircle.chat import ChatService, GlobalChannels, InMemoryChatService, StreamChatService
from slimcircle.config import get_settings
from slimcircle.db import DocumentStore, FirestoreDocumentStore, InMemoryDocumentStore
from slimcircle.identity_provider import (
    ClerkIdentityProvider,
    IdentityProvider,
    InMemoryIdentityProvider,
)

_document_store: DocumentStore | None = None
_identity_provider: IdentityProvider | None = None
_chat_service: ChatService | None = None


def get_document_store() -> DocumentStore:
    """
    Return a singleton document store so in-memory state persists across requests.
    """
    global _document_store
    if _document_store:
        return _document_store

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.firebase_project_id:
        _document_store = InMemoryDocumentStore()
    else:
        _document_store = FirestoreDocumentStore(settings.firebase_project_id)
    return _document_store


def get_identity_provider() -> IdentityProvider:
    global _identity_provider
    if _identity_provider:
        return _identity_provider

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.clerk_secret_key:
        _identity_provider = InMemoryIdentityProvider()
    else:
        _identity_provider = ClerkIdentityProvider(
            secret_key=settings.clerk_secret_key,
            api_url=settings.clerk_api_url,
            jwks_url=settings.clerk_jwks_url,
        )
    return _identity_provider


def get_chat_service() -> ChatService:
    global _chat_service
    if _chat_service:
        return _chat_service

    settings = get_settings()
    if (
        settings.use_in_memory_backends
        or not settings.stream_api_key
        or not settings.stream_api_secret
    ):
        _chat_service = InMemoryChatService()
    else:
        _chat_service = StreamChatService(
            api_key=settings.stream_api_key,
            api_secret=settings.stream_api_secret,
        )
    return _chat_service


def get_global_channels() -> GlobalChannels:
    settings = get_settings()
    return GlobalChannels(
        announcements=settings.announcements_channel_id,
        social_corner=settings.social_corner_channel_id,
        share_wins=settings.share_wins_channel_id,
    )


def reset_backends() -> None:
    """Drop the cached clients; the next request builds fresh ones."""
    global _document_store, _identity_provider, _chat_service
    _document_store = None
    _identity_provider = None
    _chat_service = None
