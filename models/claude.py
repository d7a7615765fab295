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

import json
import logging
import re
import time

import anthropic

from models import api_config

logger = logging.getLogger(__name__)

QUERY_RESPONSE_MAX_OUTPUT_TOKENS = 512

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


class ClaudeInvalidResponseException(Exception):
    pass


def call_predict(
    query: str,
    model: str | None = None,
    api_key: str | None = None,
    max_tokens: int = QUERY_RESPONSE_MAX_OUTPUT_TOKENS,
) -> str:
    """Sends a single user message to Claude and returns the text reply."""
    client = anthropic.Anthropic(api_key=api_key or api_config.DEFAULT_API_KEY)

    start_time = time.time()
    message = client.messages.create(
        model=model or api_config.DEFAULT_MODEL,
        max_tokens=max_tokens,
        temperature=0,
        messages=[{"role": "user", "content": query}],
    )
    logger.info("Claude call took %.2fs", time.time() - start_time)

    text = "".join(block.text for block in message.content if block.type == "text")
    if not text:
        raise ClaudeInvalidResponseException()
    return text


def extract_json_object(response_text: str) -> dict:
    """
    Pulls the first-to-last brace span out of a model reply and parses it.

    Raises:
        ClaudeInvalidResponseException: If no JSON object can be parsed.
    """
    match = _JSON_OBJECT.search(response_text)
    if not match:
        raise ClaudeInvalidResponseException("No JSON object in response")
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ClaudeInvalidResponseException(str(e)) from e
    if not isinstance(parsed, dict):
        raise ClaudeInvalidResponseException("Response JSON is not an object")
    return parsed
