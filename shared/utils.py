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

import random
import string
import time
from datetime import datetime, timezone

from shared.json_utils import format_timestamp

_ID_ALPHABET = string.ascii_lowercase + string.digits


def get_unique_id(prefix: str, suffix_length: int = 9) -> str:
    """
    Returns `<prefix>_<epoch millis>_<random base36 suffix>`.

    Collisions are improbable but not impossible; callers that need a
    guarantee must check against existing ids.
    """
    suffix = "".join(random.choices(_ID_ALPHABET, k=suffix_length))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_now() -> str:
    return format_timestamp(utc_now())
