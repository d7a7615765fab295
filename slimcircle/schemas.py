"""
Pydantic request schemas for the SlimCircle API.

Payload fields are optional at the schema level; handlers check presence so
that each route reports its own validation message in a fixed order.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts camelCase JSON keys as sent by the web client."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PollOptionInput(CamelModel):
    text: Optional[str] = None


class PollSettingsInput(CamelModel):
    active_till: Optional[str] = None
    anonymous: Optional[bool] = None
    multiple_answers: Optional[bool] = None
    participants_can_add_options: Optional[bool] = None


class CreatePollRequest(CamelModel):
    question: Optional[str] = None
    options: Optional[list[PollOptionInput]] = None
    settings: Optional[PollSettingsInput] = None
    channel_id: Optional[str] = None


class AddOptionRequest(CamelModel):
    poll_id: Optional[str] = None
    option_text: Optional[str] = None


class VoteRequest(CamelModel):
    poll_id: Optional[str] = None
    option_ids: Optional[list[str]] = None


class SaveIdentityRequest(CamelModel):
    statement: Optional[str] = None


class ValidateIdentityRequest(CamelModel):
    statement: Optional[str] = None
    guest_session_id: Optional[str] = None
