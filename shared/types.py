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

from enum import StrEnum
from dataclasses import dataclass, field
from typing import Dict, List, Optional


class UserRole(StrEnum):
    USER = "user"
    EDITOR = "editor"
    COACH = "coach"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


ADMIN_ROLES = frozenset({UserRole.ADMIN, UserRole.SUPER_ADMIN})


def parse_role(value: Optional[str]) -> UserRole:
    """Maps a raw role claim to a UserRole, defaulting to USER."""
    try:
        return UserRole(value)
    except ValueError:
        return UserRole.USER


@dataclass
class EmailAddress:
    email_address: str


@dataclass
class ClerkUserData:
    """User payload as returned by the Clerk API and carried by its webhooks."""

    id: str
    email_addresses: List[EmailAddress] = field(default_factory=list)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None
    image_url: Optional[str] = None
    public_metadata: Dict[str, object] = field(default_factory=dict)

    @property
    def primary_email(self) -> str:
        return self.email_addresses[0].email_address if self.email_addresses else ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @property
    def role(self) -> UserRole:
        return parse_role(self.public_metadata.get("role"))


@dataclass
class IdentityHistoryEntry:
    statement: str
    set_at: str


@dataclass
class PollOption:
    id: str
    text: str


@dataclass
class PollSettings:
    active_till: Optional[str] = None  # ISO datetime string
    anonymous: bool = True
    multiple_answers: bool = False
    participants_can_add_options: bool = False


@dataclass
class PollVote:
    option_id: str
    user_id: str
    created_at: str
    user_name: Optional[str] = None
    user_image: Optional[str] = None


@dataclass
class Poll:
    """A chat poll as stored in the `chatPolls` collection.

    `votes_by_option` is keyed by option id, so polls are not run through
    `convert_keys`: option ids must survive (de)serialization untouched.
    """

    id: str
    channel_id: str
    question: str
    options: List[PollOption]
    settings: PollSettings
    created_by_user_id: str
    created_at: str
    votes: List[PollVote] = field(default_factory=list)
    votes_by_option: Dict[str, int] = field(default_factory=dict)
    total_votes: int = 0
    created_by_user_name: Optional[str] = None
    created_by_user_image: Optional[str] = None
    closed_at: Optional[str] = None
