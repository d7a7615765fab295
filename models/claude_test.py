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

import unittest
from types import SimpleNamespace
from unittest.mock import patch

from models import claude


class ClaudeTest(unittest.TestCase):

    @patch("models.claude.anthropic.Anthropic")
    def test_call_predict_joins_text_blocks(self, mock_anthropic):
        mock_anthropic.return_value.messages.create.return_value = SimpleNamespace(
            content=[
                SimpleNamespace(type="text", text='{"is_valid": '),
                SimpleNamespace(type="tool_use", text=None),
                SimpleNamespace(type="text", text="true}"),
            ]
        )
        result = claude.call_predict("prompt", model="claude-test", api_key="key")

        self.assertEqual(result, '{"is_valid": true}')
        mock_anthropic.assert_called_once_with(api_key="key")
        kwargs = mock_anthropic.return_value.messages.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "claude-test")
        self.assertEqual(kwargs["temperature"], 0)
        self.assertEqual(kwargs["messages"], [{"role": "user", "content": "prompt"}])

    @patch("models.claude.anthropic.Anthropic")
    def test_call_predict_empty_reply(self, mock_anthropic):
        mock_anthropic.return_value.messages.create.return_value = SimpleNamespace(
            content=[]
        )
        with self.assertRaises(claude.ClaudeInvalidResponseException):
            claude.call_predict("prompt", api_key="key")

    def test_extract_json_object(self):
        text = 'Here you go:\n```json\n{"is_valid": false, "issues": ["vague"]}\n```'
        self.assertEqual(
            claude.extract_json_object(text), {"is_valid": False, "issues": ["vague"]}
        )

    def test_extract_json_object_failures(self):
        for text in ("no json here", "{not: valid}"):
            with self.subTest(text=text):
                with self.assertRaises(claude.ClaudeInvalidResponseException):
                    claude.extract_json_object(text)


if __name__ == "__main__":
    unittest.main()
