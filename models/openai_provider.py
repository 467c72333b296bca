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

"""OpenAI chat completions provider."""

import logging
import time
from typing import Optional

import openai
from openai import OpenAI

from models import api_config
from models.base import Completion, LLMProvider, LLMProviderError

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProvider):
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = api_config.DEFAULT_OPENAI_MODEL,
    ):
        self.api_key = api_key or api_config.DEFAULT_OPENAI_API_KEY
        self.model = model
        self._client = OpenAI(api_key=self.api_key) if self.api_key else None

    @property
    def name(self) -> str:
        return "openai"

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
        if self._client is None:
            raise LLMProviderError("OpenAI API key not configured")

        model = model or self.model
        kwargs = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        start_time = time.time()
        try:
            response = self._client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
                **kwargs,
            )
        except openai.OpenAIError as e:
            logger.error("OpenAI API error: %s", e)
            raise LLMProviderError(f"OpenAI API error: {e}") from e
        logger.info("OpenAI call (%s) took %.2fs", model, time.time() - start_time)

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise LLMProviderError("No content in AI response")

        usage = response.usage.model_dump() if response.usage else {}
        return Completion(text=content.strip(), model=model, usage=usage)
