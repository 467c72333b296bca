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

"""Abstract base class for LLM providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from models import api_config


class LLMProviderError(Exception):
    pass


@dataclass
class Completion:
    text: str
    model: str
    usage: dict = field(default_factory=dict)

    @property
    def total_tokens(self) -> int:
        return int(self.usage.get("total_tokens") or 0)


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
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
        """
        Send one system/user prompt pair and return the model's text.

        Raises:
            LLMProviderError: missing credentials, API failure or empty output.
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name for logging (e.g., 'openai', 'anthropic')."""
        pass
