import unittest
from unittest.mock import MagicMock, patch

import anthropic
import openai

from models.anthropic_provider import AnthropicProvider
from models.base import LLMProviderError
from models.openai_provider import OpenAIProvider


class OpenAIProviderTests(unittest.TestCase):
    def setUp(self):
        self.provider = OpenAIProvider(api_key="test-key", model="gpt-test")
        self.provider._client = MagicMock()
        self.create = self.provider._client.chat.completions.create

    def respond(self, content):
        response = MagicMock()
        response.choices = [MagicMock(message=MagicMock(content=content))]
        response.usage.model_dump.return_value = {"total_tokens": 12}
        self.create.return_value = response

    def test_complete_json_mode(self):
        self.respond('  {"cards": []}  ')
        completion = self.provider.complete("sys", "user", json_mode=True, max_tokens=99)

        self.assertEqual(completion.text, '{"cards": []}')
        self.assertEqual(completion.model, "gpt-test")
        self.assertEqual(completion.total_tokens, 12)
        kwargs = self.create.call_args.kwargs
        self.assertEqual(kwargs["response_format"], {"type": "json_object"})
        self.assertEqual(kwargs["max_tokens"], 99)
        self.assertEqual(
            kwargs["messages"],
            [{"role": "system", "content": "sys"}, {"role": "user", "content": "user"}],
        )

    def test_plain_text_has_no_response_format(self):
        self.respond("hello")
        self.provider.complete("sys", "user")
        self.assertNotIn("response_format", self.create.call_args.kwargs)

    def test_empty_content(self):
        self.respond("")
        with self.assertRaises(LLMProviderError) as ctx:
            self.provider.complete("sys", "user")
        self.assertEqual(str(ctx.exception), "No content in AI response")

    def test_api_error(self):
        self.create.side_effect = openai.OpenAIError("rate limited")
        with self.assertRaises(LLMProviderError):
            self.provider.complete("sys", "user")

    @patch("models.api_config.DEFAULT_OPENAI_API_KEY", None)
    def test_missing_key(self):
        provider = OpenAIProvider(api_key=None)
        with self.assertRaises(LLMProviderError) as ctx:
            provider.complete("sys", "user")
        self.assertEqual(str(ctx.exception), "OpenAI API key not configured")


class AnthropicProviderTests(unittest.TestCase):
    def setUp(self):
        self.provider = AnthropicProvider(api_key="test-key", model="claude-test")
        self.provider._client = MagicMock()
        self.create = self.provider._client.messages.create

    def test_complete(self):
        response = MagicMock()
        response.content = [MagicMock(text=" preview text ")]
        response.usage.input_tokens = 10
        response.usage.output_tokens = 5
        self.create.return_value = response

        completion = self.provider.complete("sys", "user", max_tokens=500)

        self.assertEqual(completion.text, "preview text")
        self.assertEqual(
            completion.usage,
            {"input_tokens": 10, "output_tokens": 5, "total_tokens": 15},
        )
        kwargs = self.create.call_args.kwargs
        self.assertEqual(kwargs["system"], "sys")
        self.assertEqual(kwargs["messages"], [{"role": "user", "content": "user"}])
        self.assertEqual(kwargs["max_tokens"], 500)

    def test_api_error(self):
        self.create.side_effect = anthropic.AnthropicError("overloaded")
        with self.assertRaises(LLMProviderError):
            self.provider.complete("sys", "user")

    def test_empty_content(self):
        self.create.return_value = MagicMock(content=[])
        with self.assertRaises(LLMProviderError):
            self.provider.complete("sys", "user")

    @patch("models.api_config.DEFAULT_ANTHROPIC_API_KEY", None)
    def test_missing_key(self):
        with self.assertRaises(LLMProviderError):
            AnthropicProvider(api_key=None).complete("sys", "user")


if __name__ == "__main__":
    unittest.main()
