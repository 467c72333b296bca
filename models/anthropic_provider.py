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

"""Anthropic Claude messages provider."""

import logging
import time
from typing import Optional

import anthropic
from anthropic import Anthropic

from models import api_config
from models.base import Completion, LLMProvider, LLMProviderError

logger = logging.getLogger(__name__)


class AnthropicProvider(LLMProvider):
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = api_config.DEFAULT_ANTHROPIC_MODEL,
    ):
        self.api_key = api_key or api_config.DEFAULT_ANTHROPIC_API_KEY
        self.model = model
        self._client = Anthropic(api_key=self.api_key) if self.api_key else None

    @property
    def name(self) -> str:
        return "anthropic"

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        max_tokens: int = api_config.GENERATION_MAX_OUTPUT_TOKENS,
        temperature: float = api_config.DEFAULT_TEMPERATURE,
        json_mode: bool = False,
        model: Optional[str] = None,
    ) -> Completion:
        # Claude has no JSON mode; callers ask for JSON in the prompt and parse.
        if self._client is None:
            raise LLMProviderError("Anthropic API key not configured")

        model = model or self.model
        start_time = time.time()
        try:
            response = self._client.messages.create(
                model=model,
                max_tokens=max_tokens,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
                temperature=temperature,
            )
        except anthropic.AnthropicError as e:
            logger.error("Claude API error: %s", e)
            raise LLMProviderError(f"Claude API error: {e}") from e
        logger.info("Claude call (%s) took %.2fs", model, time.time() - start_time)

        content = response.content[0].text if response.content else None
        if not content:
            raise LLMProviderError("No content in AI response")

        usage = {}
        if response.usage:
            usage = {
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
                "total_tokens": response.usage.input_tokens
                + response.usage.output_tokens,
            }
        return Completion(text=content.strip(), model=model, usage=usage)
