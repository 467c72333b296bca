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
from typing import Any, Literal

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def snake_to_camel(value: str) -> str:
    head, *rest = value.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def camel_to_snake(value: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", value).lower()


def convert_keys(
    obj: Any, direction: Literal["snake_to_camel", "camel_to_snake"]
) -> Any:
    """Recursively converts dictionary keys between snake_case and camelCase."""
    convert = snake_to_camel if direction == "snake_to_camel" else camel_to_snake
    if isinstance(obj, dict):
        return {
            convert(k) if isinstance(k, str) else k: convert_keys(v, direction)
            for k, v in obj.items()
        }
    if isinstance(obj, list):
        return [convert_keys(item, direction) for item in obj]
    return obj
