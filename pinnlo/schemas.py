"""
Pydantic request schemas for the PINNLO API.

Bodies are accepted in camelCase (as sent by the web client) or snake_case.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from shared.types import (
    IntelligenceCategory,
    IntelligenceStatus,
    OptimizationLevel,
    Priority,
    ScheduleFrequency,
)


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    def changes(self) -> dict:
        """Fields the client actually sent, keyed by field name."""
        return self.model_dump(mode="json", exclude_unset=True)


class UserData(ApiModel):
    id: str
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    profile_image_url: str = ""


class UpsertUserRequest(ApiModel):
    user_data: UserData


class StrategyData(ApiModel):
    title: Optional[str] = None
    client: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    blueprint_configuration: Optional[dict] = None


class CreateStrategyRequest(ApiModel):
    strategy_data: StrategyData = Field(default_factory=StrategyData)


class CardCreate(ApiModel):
    # Unknown keys (e.g. blueprintFields) are folded into card_data.
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    strategy_id: int
    card_type: Optional[str] = None
    title: Optional[str] = None
    description: str = ""
    priority: Priority = Priority.MEDIUM
    confidence_level: str = "Medium"
    priority_rationale: str = ""
    confidence_rationale: str = ""
    strategic_alignment: str = ""
    tags: list[str] = Field(default_factory=list)
    relationships: list[Any] = Field(default_factory=list)
    card_data: dict = Field(default_factory=dict)
    metadata: dict = Field(default_factory=dict)


class CardUpdate(ApiModel):
    card_type: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[Priority] = None
    confidence_level: Optional[str] = None
    priority_rationale: Optional[str] = None
    confidence_rationale: Optional[str] = None
    strategic_alignment: Optional[str] = None
    tags: Optional[list[str]] = None
    relationships: Optional[list[Any]] = None
    card_data: Optional[dict] = None
    metadata: Optional[dict] = None


class TemplateCardCreate(ApiModel):
    title: str = "Untitled Card"
    description: str = ""
    card_type: str = "template"
    priority: str = "medium"
    card_data: dict = Field(default_factory=dict)


class TemplateCardUpdate(ApiModel):
    title: Optional[str] = None
    description: Optional[str] = None
    card_type: Optional[str] = None
    priority: Optional[str] = None
    card_data: Optional[dict] = None


class IntelligenceCardCreate(ApiModel):
    category: IntelligenceCategory
    title: str = Field(..., min_length=1)
    summary: str = Field(..., min_length=1)
    intelligence_content: str = Field(..., min_length=1)
    key_findings: list[str] = Field(default_factory=list)
    source_reference: Optional[str] = None
    credibility_score: Optional[int] = Field(default=None, ge=1, le=10)
    relevance_score: Optional[int] = Field(default=None, ge=1, le=10)
    relevant_blueprint_pages: list[str] = Field(default_factory=list)
    strategic_implications: Optional[str] = None
    recommended_actions: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    status: IntelligenceStatus = IntelligenceStatus.ACTIVE


class IntelligenceCardUpdate(ApiModel):
    category: Optional[IntelligenceCategory] = None
    title: Optional[str] = None
    summary: Optional[str] = None
    intelligence_content: Optional[str] = None
    key_findings: Optional[list[str]] = None
    source_reference: Optional[str] = None
    credibility_score: Optional[int] = Field(default=None, ge=1, le=10)
    relevance_score: Optional[int] = Field(default=None, ge=1, le=10)
    relevant_blueprint_pages: Optional[list[str]] = None
    strategic_implications: Optional[str] = None
    recommended_actions: Optional[str] = None
    tags: Optional[list[str]] = None
    status: Optional[IntelligenceStatus] = None


class GroupCreate(ApiModel):
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None


class GroupUpdate(ApiModel):
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None


class GroupCardsRequest(ApiModel):
    card_ids: Optional[list[str]] = None


class GenerateRequest(ApiModel):
    system_prompt: Optional[str] = None
    user_prompt: Optional[str] = None


class ClaudeGenerateRequest(GenerateRequest):
    is_preview: bool = False


class ExecutiveSummaryRequest(ApiModel):
    strategy_id: int
    blueprint_type: Optional[str] = None
    regenerate: bool = False


class EditModeRequest(ApiModel):
    card_id: Optional[str] = None
    blueprint_type: Optional[str] = None
    card_title: Optional[str] = None
    strategy_id: Optional[int] = None
    existing_fields: dict = Field(default_factory=dict)


class TextProcessingRequest(ApiModel):
    text: Optional[str] = None
    context: Optional[str] = None
    type: Optional[str] = None
    target_category: Optional[IntelligenceCategory] = None
    target_groups: list[str] = Field(default_factory=list)


class UrlProcessingRequest(ApiModel):
    url: Optional[str] = None
    context: Optional[str] = None
    target_category: Optional[IntelligenceCategory] = None
    target_groups: list[str] = Field(default_factory=list)


class SessionUpdateRequest(ApiModel):
    session_id: Optional[str] = None
    updates: dict = Field(default_factory=dict)


class GenerateCardsRequest(ApiModel):
    context_summary: Optional[str] = None
    target_blueprint: Optional[str] = None
    generation_options: dict = Field(default_factory=dict)
    existing_cards: list[dict] = Field(default_factory=list)
    strategy_id: Optional[int] = None


class CommitRequest(ApiModel):
    session_id: Optional[str] = None
    selected_cards: Optional[list[dict]] = None


class ContextSummaryRequest(ApiModel):
    session_id: Optional[str] = None
    blueprint_cards: list[dict] = Field(default_factory=list)
    intelligence_cards: list[dict] = Field(default_factory=list)
    intelligence_groups: list[dict] = Field(default_factory=list)
    strategy_name: Optional[str] = None


class Feature(ApiModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    description: str = ""


class TechnicalRequirementRequest(ApiModel):
    strategy_id: Optional[int] = None
    features: Optional[list[Feature]] = None
    options: dict = Field(default_factory=dict)


class CommitTrdRequest(ApiModel):
    trd_id: Optional[str] = None


class RuleCreate(ApiModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    automation_enabled: bool = False
    schedule_frequency: str = ScheduleFrequency.DAILY.value
    intelligence_categories: list[IntelligenceCategory] = Field(default_factory=list)
    target_groups: list[str] = Field(default_factory=list)
    max_cards_per_run: int = Field(default=5, ge=1, le=50)
    optimization_level: OptimizationLevel = OptimizationLevel.BALANCED
    next_run_at: Optional[float] = None


class RuleUpdate(ApiModel):
    name: Optional[str] = None
    description: Optional[str] = None
    automation_enabled: Optional[bool] = None
    schedule_frequency: Optional[str] = None
    intelligence_categories: Optional[list[IntelligenceCategory]] = None
    target_groups: Optional[list[str]] = None
    max_cards_per_run: Optional[int] = Field(default=None, ge=1, le=50)
    optimization_level: Optional[OptimizationLevel] = None
    next_run_at: Optional[float] = None


class SystemPromptUpdate(ApiModel):
    system_prompt: Optional[str] = None
    context_config: Optional[dict] = None
    card_creator_preview_prompt: Optional[str] = None
    card_creator_generation_prompt: Optional[str] = None
    card_creator_config: Optional[dict] = None


class McpInvokeRequest(ApiModel):
    tool: str = Field(..., min_length=1)
    arguments: dict = Field(default_factory=dict)
