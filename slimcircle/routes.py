"""
HTTP routes for the SlimCircle API.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.concurrency import run_in_threadpool

from slimcircle import coaches, discover, identity, polls, webhooks
from slimcircle.auth import Caller, get_current_user, get_optional_user, require_admin
from slimcircle.chat import (
    ChatService,
    GlobalChannels,
    join_global_channels,
    setup_global_channels,
)
from slimcircle.config import get_settings
from slimcircle.db import DocumentStore
from slimcircle.dependencies import (
    get_chat_service,
    get_document_store,
    get_global_channels,
    get_identity_provider,
)
from slimcircle.errors import BadRequest, NotFound, Unauthorized, failure_message
from slimcircle.identity_provider import IdentityProvider
from slimcircle.schemas import (
    AddOptionRequest,
    CreatePollRequest,
    SaveIdentityRequest,
    ValidateIdentityRequest,
    VoteRequest,
)
from shared.json_utils import convert_keys
from shared.poll_convert import option_to_dict, poll_to_dict
from shared.types import PollSettings

logger = logging.getLogger(__name__)

router = APIRouter()


def _voter(provider: IdentityProvider, user_id: str) -> polls.Voter:
    user = provider.get_user(user_id)
    return polls.Voter(
        user_id=user_id,
        name=user.full_name or user.username or None,
        image=user.image_url or None,
    )


# Polls


@router.post("/polls", status_code=201)
def create_poll(
    payload: CreatePollRequest,
    caller: Caller = Depends(get_current_user),
    store: DocumentStore = Depends(get_document_store),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    if not payload.question or not payload.question.strip():
        raise BadRequest("Question is required")
    if not payload.options or len(payload.options) < 2:
        raise BadRequest("At least 2 options are required")
    if not payload.channel_id:
        raise BadRequest("Channel ID is required")
    option_texts = [opt.text for opt in payload.options if opt.text and opt.text.strip()]
    if len(option_texts) < 2:
        raise BadRequest("At least 2 valid options are required")

    settings = PollSettings()
    if payload.settings:
        settings.active_till = payload.settings.active_till
        if payload.settings.anonymous is not None:
            settings.anonymous = payload.settings.anonymous
        settings.multiple_answers = bool(payload.settings.multiple_answers)
        settings.participants_can_add_options = bool(
            payload.settings.participants_can_add_options
        )

    with failure_message("Failed to create poll"):
        poll = polls.create_poll(
            store,
            creator=_voter(provider, caller.user_id),
            channel_id=payload.channel_id,
            question=payload.question,
            option_texts=option_texts,
            settings=settings,
        )
    return {"poll": poll_to_dict(poll, include_id=True)}


@router.get("/polls")
def get_poll(
    poll_id: Optional[str] = Query(default=None, alias="id"),
    caller: Caller = Depends(get_current_user),
    store: DocumentStore = Depends(get_document_store),
):
    if not poll_id:
        raise BadRequest("Poll ID is required")
    with failure_message("Failed to fetch poll"):
        poll = polls.get_poll(store, poll_id)
    return {
        "poll": {
            **poll_to_dict(poll, include_id=True),
            "userVotes": polls.user_votes(poll, caller.user_id),
        }
    }


@router.post("/polls/add-option", status_code=201)
def add_poll_option(
    payload: AddOptionRequest,
    caller: Caller = Depends(get_current_user),
    store: DocumentStore = Depends(get_document_store),
):
    if not payload.poll_id:
        raise BadRequest("Poll ID is required")
    if not payload.option_text or not payload.option_text.strip():
        raise BadRequest("Option text is required")
    with failure_message("Failed to add option"):
        option = polls.add_option(store, payload.poll_id, payload.option_text)
    return {"option": option_to_dict(option)}


@router.post("/polls/vote")
def vote(
    payload: VoteRequest,
    caller: Caller = Depends(get_current_user),
    store: DocumentStore = Depends(get_document_store),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    if not payload.poll_id:
        raise BadRequest("Poll ID is required")
    if not payload.option_ids:
        raise BadRequest("At least one option must be selected")
    with failure_message("Failed to vote"):
        poll = polls.get_poll(store, payload.poll_id)
        # Voter profiles are only stored on named polls.
        if poll.settings.anonymous:
            voter = polls.Voter(user_id=caller.user_id)
        else:
            voter = _voter(provider, caller.user_id)
        polls.cast_vote(store, payload.poll_id, voter, payload.option_ids)
    return {"success": True}


# Chat


@router.post("/chat/join-global-channels")
def join_channels(
    caller: Caller = Depends(get_current_user),
    provider: IdentityProvider = Depends(get_identity_provider),
    chat: ChatService = Depends(get_chat_service),
    channels: GlobalChannels = Depends(get_global_channels),
):
    with failure_message("Failed to join channels"):
        user = provider.get_user(caller.user_id)
        joined = join_global_channels(chat, user, channels)
    logger.info("User %s joined global channels: %s", caller.user_id, joined)
    return {"success": True}


@router.post("/chat/setup-global-channels")
def setup_channels(
    caller: Caller = Depends(require_admin),
    chat: ChatService = Depends(get_chat_service),
    channels: GlobalChannels = Depends(get_global_channels),
):
    with failure_message("Failed to setup channels"):
        created = setup_global_channels(chat, caller.user_id, channels)
    return {"success": True, "channels": created}


@router.get("/chat/setup-global-channels")
def get_channel_ids(channels: GlobalChannels = Depends(get_global_channels)):
    return {
        "channels": {
            "announcements": channels.announcements,
            "socialCorner": channels.social_corner,
            "shareWins": channels.share_wins,
        }
    }


# Discover


@router.get("/discover/articles")
def list_articles(store: DocumentStore = Depends(get_document_store)):
    with failure_message("Failed to fetch articles"):
        articles = discover.list_articles(store)
    return {"articles": articles}


@router.get("/discover/articles/{article_id}")
def get_article(article_id: str, store: DocumentStore = Depends(get_document_store)):
    with failure_message("Failed to fetch article"):
        article = discover.get_article(store, article_id)
    if article is None:
        raise NotFound("Article not found")
    return {"article": article}


@router.get("/discover/categories")
def list_categories(store: DocumentStore = Depends(get_document_store)):
    with failure_message("Failed to fetch categories"):
        categories = discover.list_categories(store)
    return {"categories": categories}


# Admin


@router.get("/admin/coaches")
def list_coaches(
    caller: Caller = Depends(require_admin),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    with failure_message("Failed to fetch coaches"):
        result = coaches.list_coaches(provider)
    return {"coaches": result}


# Identity


@router.post("/identity/save")
def save_identity(
    payload: SaveIdentityRequest,
    caller: Caller = Depends(get_current_user),
    store: DocumentStore = Depends(get_document_store),
):
    if not payload.statement or not payload.statement.strip():
        raise BadRequest("Identity statement is required")
    with failure_message("Failed to save identity"):
        saved = identity.save_identity_statement(store, caller.user_id, payload.statement)
    return {"success": True, "identity": saved.identity, "setAt": saved.set_at}


@router.post("/identity/validate")
def validate_identity(
    payload: ValidateIdentityRequest,
    caller: Optional[Caller] = Depends(get_optional_user),
):
    if caller is None and not payload.guest_session_id:
        raise Unauthorized()
    if not payload.statement or not payload.statement.strip():
        raise BadRequest("Identity statement is required")
    result = identity.validate_commitment_statement(payload.statement.strip())
    return convert_keys(result.as_dict(), "snake_to_camel")


# Webhooks


@router.post("/webhooks/clerk")
async def clerk_webhook(
    request: Request, store: DocumentStore = Depends(get_document_store)
):
    secret = get_settings().clerk_webhook_secret
    if not secret:
        logger.error("CLERK_WEBHOOK_SECRET is not configured")
        return Response(status_code=500)

    body = await request.body()
    try:
        event = webhooks.verify_event(secret, body, request.headers)
    except webhooks.WebhookRejected as e:
        logger.warning("Rejected Clerk webhook: %s", e)
        return Response(status_code=400)
    except webhooks.WebhookMisconfigured as e:
        logger.error("CLERK_WEBHOOK_SECRET is invalid: %s", e)
        return Response(status_code=500)

    event_type = event.get("type")
    try:
        await run_in_threadpool(webhooks.ingest_user_event, store, event)
    except Exception:
        logger.exception("Failed to apply Clerk webhook %s", event_type)
        return Response(status_code=500)
    return Response(status_code=200)
