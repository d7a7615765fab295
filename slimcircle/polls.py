"""
Chat poll operations: create, read, vote and add-option.

Mutations of an existing poll run through `DocumentStore.run_transaction`, so
the validation below always sees the document it is about to update and two
concurrent writers cannot overwrite each other's changes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from slimcircle.db import DocumentStore
from slimcircle.errors import ApiError
from shared.constants import DEFAULT_POLL_DURATION_HOURS, OPTION_ID_PREFIX
from shared.firebase_constants import POLLS_COLLECTION
from shared.json_utils import format_timestamp, parse_timestamp
from shared.poll_convert import dict_to_poll, option_to_dict, poll_to_dict, vote_to_dict
from shared.types import Poll, PollOption, PollSettings, PollVote
from shared.utils import get_unique_id, iso_now, utc_now

logger = logging.getLogger(__name__)


class PollError(ApiError):
    status_code = 400


class PollNotFound(PollError):
    status_code = 404

    def __init__(self):
        super().__init__("Poll not found")


class PollClosed(PollError):
    def __init__(self):
        super().__init__("Poll is closed")


class PollExpired(PollError):
    def __init__(self):
        super().__init__("Poll has expired")


class AddOptionNotAllowed(PollError):
    status_code = 403

    def __init__(self):
        super().__init__("This poll does not allow adding options")


class DuplicateOption(PollError):
    def __init__(self):
        super().__init__("This option already exists")


@dataclass
class Voter:
    user_id: str
    name: Optional[str] = None
    image: Optional[str] = None


def generate_option_id() -> str:
    return get_unique_id(OPTION_ID_PREFIX)


def _normalize_text(text: str) -> str:
    return text.strip().lower()


def ensure_open(poll: Poll, now: Optional[datetime] = None) -> None:
    """Raises PollClosed / PollExpired unless the poll still accepts changes."""
    if poll.closed_at:
        raise PollClosed()
    if poll.settings.active_till:
        active_till = parse_timestamp(poll.settings.active_till)
        if active_till is not None and active_till < (now or utc_now()):
            raise PollExpired()


def _new_option_id(poll: Poll) -> str:
    # Regenerate on the (improbable) clash with an id already on this poll.
    existing = {opt.id for opt in poll.options}
    option_id = generate_option_id()
    while option_id in existing:
        option_id = generate_option_id()
    return option_id


def add_option(store: DocumentStore, poll_id: str, option_text: str) -> PollOption:
    """
    Appends a participant-supplied option to a poll.

    `poll_id` and `option_text` must already be checked for presence. The
    option text is stored trimmed; its vote count starts at zero.
    """
    text = option_text.strip()

    def _mutate(data: Optional[dict]):
        if data is None:
            raise PollNotFound()
        poll = dict_to_poll(poll_id, data)
        if not poll.settings.participants_can_add_options:
            raise AddOptionNotAllowed()
        ensure_open(poll)
        normalized = _normalize_text(text)
        if any(_normalize_text(opt.text) == normalized for opt in poll.options):
            raise DuplicateOption()

        option = PollOption(id=_new_option_id(poll), text=text)
        updates = {
            "options": [option_to_dict(opt) for opt in poll.options]
            + [option_to_dict(option)],
            f"votesByOption.{option.id}": 0,
        }
        return updates, option

    option = store.run_transaction(POLLS_COLLECTION, poll_id, _mutate)
    logger.info("Added option %s to poll %s", option.id, poll_id)
    return option


def create_poll(
    store: DocumentStore,
    *,
    creator: Voter,
    channel_id: str,
    question: str,
    option_texts: list[str],
    settings: Optional[PollSettings] = None,
) -> Poll:
    """Creates a poll. Blank option texts are dropped; callers validate counts."""
    now = utc_now()
    settings = settings or PollSettings()
    if not settings.active_till:
        settings.active_till = format_timestamp(
            now + timedelta(hours=DEFAULT_POLL_DURATION_HOURS)
        )

    options: list[PollOption] = []
    for text in option_texts:
        if text and text.strip():
            option = PollOption(id=generate_option_id(), text=text.strip())
            while any(opt.id == option.id for opt in options):
                option.id = generate_option_id()
            options.append(option)

    poll = Poll(
        id="",
        channel_id=channel_id,
        question=question.strip(),
        options=options,
        settings=settings,
        created_by_user_id=creator.user_id,
        created_by_user_name=creator.name,
        created_by_user_image=creator.image,
        created_at=format_timestamp(now),
        votes_by_option={opt.id: 0 for opt in options},
    )
    poll.id = store.add(POLLS_COLLECTION, poll_to_dict(poll))
    logger.info("Created poll %s in channel %s", poll.id, channel_id)
    return poll


def get_poll(store: DocumentStore, poll_id: str) -> Poll:
    data = store.get(POLLS_COLLECTION, poll_id)
    if data is None:
        raise PollNotFound()
    return dict_to_poll(poll_id, data)


def user_votes(poll: Poll, user_id: str) -> list[str]:
    return [vote.option_id for vote in poll.votes if vote.user_id == user_id]


def cast_vote(
    store: DocumentStore, poll_id: str, voter: Voter, option_ids: list[str]
) -> list[str]:
    """
    Records `voter`'s selection and returns the option ids they now hold.

    Single-answer polls replace any previous vote. Multiple-answer polls make
    the voter's selection equal to `option_ids`, removing deselected options.
    Unknown option ids are ignored as long as one valid id remains.
    """

    def _mutate(data: Optional[dict]):
        if data is None:
            raise PollNotFound()
        poll = dict_to_poll(poll_id, data)
        ensure_open(poll)

        known = {opt.id for opt in poll.options}
        selected = list(dict.fromkeys(opt_id for opt_id in option_ids if opt_id in known))
        if not selected:
            raise PollError("Invalid option selected")
        if not poll.settings.multiple_answers and len(selected) > 1:
            raise PollError("This poll only allows one answer")

        previous = user_votes(poll, voter.user_id)
        if poll.settings.multiple_answers:
            removed = [opt_id for opt_id in previous if opt_id not in selected]
            added = [opt_id for opt_id in selected if opt_id not in previous]
        else:
            removed = previous
            added = selected

        votes = [
            vote
            for vote in poll.votes
            if not (vote.user_id == voter.user_id and vote.option_id in removed)
        ]
        now = iso_now()
        for opt_id in added:
            vote = PollVote(option_id=opt_id, user_id=voter.user_id, created_at=now)
            if not poll.settings.anonymous:
                vote.user_name = voter.name
                vote.user_image = voter.image
            votes.append(vote)

        votes_by_option = {opt_id: 0 for opt_id in known}
        for vote in votes:
            votes_by_option[vote.option_id] = votes_by_option.get(vote.option_id, 0) + 1

        updates = {
            "votes": [vote_to_dict(vote) for vote in votes],
            "votesByOption": votes_by_option,
            "totalVotes": len(votes),
        }
        held = [opt_id for opt_id in previous if opt_id not in removed] + added
        return updates, held

    held = store.run_transaction(POLLS_COLLECTION, poll_id, _mutate)
    logger.info("Recorded vote by %s on poll %s", voter.user_id, poll_id)
    return held
