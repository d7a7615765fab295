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

import re
from datetime import datetime, timezone
from typing import Any, Iterable, Literal

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")

TIMESTAMP_FIELDS = ("publishedAt", "createdAt", "updatedAt")


def _snake_to_camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _camel_to_snake(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def convert_keys(
    data: Any, direction: Literal["snake_to_camel", "camel_to_snake"]
) -> Any:
    """
    Recursively converts dictionary keys between snake_case and camelCase.

    Lists are walked element by element; non-container values are returned
    unchanged.
    """
    convert = _snake_to_camel if direction == "snake_to_camel" else _camel_to_snake
    if isinstance(data, dict):
        return {
            convert(key) if isinstance(key, str) else key: convert_keys(value, direction)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [convert_keys(item, direction) for item in data]
    return data


def format_timestamp(value: datetime) -> str:
    """Formats a datetime as an ISO-8601 UTC string with milliseconds and `Z`."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(value: str) -> datetime | None:
    """Parses an ISO-8601 string. Naive values are taken as UTC; bad input gives None."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_timestamps(
    data: dict, fields: Iterable[str] = TIMESTAMP_FIELDS
) -> dict:
    """
    Returns a copy of `data` with datetime-valued fields rendered as strings.

    Firestore hands timestamps back as datetime subclasses; string values and
    missing fields pass through untouched.
    """
    normalized = dict(data)
    for name in fields:
        value = normalized.get(name)
        if isinstance(value, datetime):
            normalized[name] = format_timestamp(value)
    return normalized
