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

import os

DEFAULT_OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY")
DEFAULT_ANTHROPIC_API_KEY = os.environ.get("ANTHROPIC_API_KEY")

DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_ANTHROPIC_MODEL = "claude-3-5-sonnet-20241022"

DEFAULT_TEMPERATURE = 0.7
GENERATION_MAX_OUTPUT_TOKENS = 4000
STRATEGY_CARDS_MAX_OUTPUT_TOKENS = 3000
PREVIEW_MAX_OUTPUT_TOKENS = 500
CONTEXT_SUMMARY_MAX_OUTPUT_TOKENS = 1500
