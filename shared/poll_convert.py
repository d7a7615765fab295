# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

from typing import Any, Optional

from shared.types import Poll, PollOption, PollSettings, PollVote


def _get_value(data: dict, *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def _to_option(data: dict) -> PollOption:
    return PollOption(
        id=_get_value(data, "id") or "",
        text=_get_value(data, "text") or "",
    )


def _to_settings(data: dict | None) -> PollSettings:
    data = data or {}
    anonymous = _get_value(data, "anonymous")
    return PollSettings(
        active_till=_get_value(data, "activeTill", "active_till"),
        anonymous=True if anonymous is None else bool(anonymous),
        multiple_answers=bool(_get_value(data, "multipleAnswers", "multiple_answers")),
        participants_can_add_options=bool(
            _get_value(
                data, "participantsCanAddOptions", "participants_can_add_options"
            )
        ),
    )


def _to_vote(data: dict) -> PollVote:
    return PollVote(
        option_id=_get_value(data, "optionId", "option_id") or "",
        user_id=_get_value(data, "userId", "user_id") or "",
        created_at=_get_value(data, "createdAt", "created_at") or "",
        user_name=_get_value(data, "userName", "user_name"),
        user_image=_get_value(data, "userImage", "user_image"),
    )


def dict_to_poll(poll_id: str, data: dict) -> Poll:
    """Builds a Poll from a stored `chatPolls` document."""
    votes_by_option = _get_value(data, "votesByOption", "votes_by_option") or {}
    return Poll(
        id=poll_id,
        channel_id=_get_value(data, "channelId", "channel_id") or "",
        question=_get_value(data, "question") or "",
        options=[_to_option(opt) for opt in _get_value(data, "options") or []],
        settings=_to_settings(_get_value(data, "settings")),
        created_by_user_id=_get_value(data, "createdByUserId", "created_by_user_id")
        or "",
        created_at=_get_value(data, "createdAt", "created_at") or "",
        votes=[_to_vote(vote) for vote in _get_value(data, "votes") or []],
        votes_by_option={key: int(value) for key, value in votes_by_option.items()},
        total_votes=int(_get_value(data, "totalVotes", "total_votes") or 0),
        created_by_user_name=_get_value(
            data, "createdByUserName", "created_by_user_name"
        ),
        created_by_user_image=_get_value(
            data, "createdByUserImage", "created_by_user_image"
        ),
        closed_at=_get_value(data, "closedAt", "closed_at"),
    )


def option_to_dict(option: PollOption) -> dict:
    return {"id": option.id, "text": option.text}


def vote_to_dict(vote: PollVote) -> dict:
    data = {
        "optionId": vote.option_id,
        "userId": vote.user_id,
        "createdAt": vote.created_at,
    }
    if vote.user_name is not None:
        data["userName"] = vote.user_name
    if vote.user_image is not None:
        data["userImage"] = vote.user_image
    return data


def poll_to_dict(poll: Poll, include_id: bool = False) -> dict:
    """Serializes a Poll into its camelCase document form.

    Optional fields are omitted rather than written as nulls, which keeps
    `closedAt` absent on open polls.
    """
    data = {
        "channelId": poll.channel_id,
        "question": poll.question,
        "options": [option_to_dict(opt) for opt in poll.options],
        "settings": {
            "activeTill": poll.settings.active_till,
            "anonymous": poll.settings.anonymous,
            "multipleAnswers": poll.settings.multiple_answers,
            "participantsCanAddOptions": poll.settings.participants_can_add_options,
        },
        "createdByUserId": poll.created_by_user_id,
        "createdAt": poll.created_at,
        "votes": [vote_to_dict(vote) for vote in poll.votes],
        "votesByOption": dict(poll.votes_by_option),
        "totalVotes": poll.total_votes,
    }
    optional: dict[str, Optional[str]] = {
        "createdByUserName": poll.created_by_user_name,
        "createdByUserImage": poll.created_by_user_image,
        "closedAt": poll.closed_at,
    }
    data.update({key: value for key, value in optional.items() if value is not None})
    if include_id:
        data = {"id": poll.id, **data}
    return data
