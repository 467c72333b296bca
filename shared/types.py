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

from enum import StrEnum

# Mirrors the cards_card_type_check constraint in migrations/001_card_type_check.sql.
CARD_TYPES = (
    "strategic-context",
    "strategicContext",
    "vision",
    "value-proposition",
    "valuePropositions",
    "personas",
    "customer-journey",
    "swot-analysis",
    "competitive-analysis",
    "okrs",
    "problem-statement",
    "workstreams",
    "epics",
    "features",
    "business-model",
    "risk-assessment",
    "roadmap",
    "prd",
    "trd",
    "technical-requirements",
    "kpis",
    "financial-projections",
    "cost-driver",
    "revenue-driver",
    "task-list",
    "task",
    "template",
)


def is_valid_card_type(card_type: str | None) -> bool:
    return card_type in CARD_TYPES


class Priority(StrEnum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


def normalise_priority(value) -> str:
    """Map loose model output such as "high" or 3 onto a Priority value."""
    value = str(value or "").strip().capitalize()
    return value if value in set(Priority) else Priority.MEDIUM.value


class IntelligenceCategory(StrEnum):
    MARKET = "market"
    COMPETITOR = "competitor"
    TRENDS = "trends"
    TECHNOLOGY = "technology"
    STAKEHOLDER = "stakeholder"
    CONSUMER = "consumer"
    RISK = "risk"
    OPPORTUNITIES = "opportunities"


class IntelligenceStatus(StrEnum):
    ACTIVE = "active"
    SAVED = "saved"
    ARCHIVED = "archived"


class ScheduleFrequency(StrEnum):
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"


class OptimizationLevel(StrEnum):
    MAXIMUM_QUALITY = "maximum_quality"
    BALANCED = "balanced"
    MAXIMUM_SAVINGS = "maximum_savings"


class TriggerType(StrEnum):
    SCHEDULED = "scheduled"
    MANUAL = "manual"


class ExecutionStatus(StrEnum):
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


DEFAULT_GROUP_COLOR = "#3B82F6"
DEFAULT_GENERATION_OPTIONS = {"count": 3, "style": "comprehensive"}
