"""
Database abstraction for Postgres and an in-memory test implementation.

Every read and write is scoped by the caller's user id; row-level security
in the hosted database enforces the same rule for direct clients.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import asdict, dataclass, field, fields
from typing import Dict, Iterable, Optional, Protocol, Type, TypeVar

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    delete,
    func,
    select,
)
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from shared.types import (
    DEFAULT_GENERATION_OPTIONS,
    DEFAULT_GROUP_COLOR,
    ExecutionStatus,
    IntelligenceStatus,
    OptimizationLevel,
    ScheduleFrequency,
    TriggerType,
)

SESSION_TTL_SECONDS = 24 * 60 * 60

# Fields callers may never overwrite through an update.
_IMMUTABLE_FIELDS = {"id", "user_id", "created_at"}

R = TypeVar("R")


def timestamp() -> float:
    return time.time()


def new_id() -> str:
    return uuid.uuid4().hex


class _Record:
    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class UserRecord(_Record):
    id: str
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    profile_image_url: str = ""
    created_at: float = field(default_factory=timestamp)
    updated_at: float = field(default_factory=timestamp)


@dataclass
class StrategyRecord(_Record):
    user_id: str
    title: str = "Untitled Strategy"
    client: str = ""
    description: str = ""
    status: str = "draft"
    progress: int = 0
    blueprint_configuration: dict = field(default_factory=dict)
    id: Optional[int] = None
    created_at: float = field(default_factory=timestamp)
    updated_at: float = field(default_factory=timestamp)


@dataclass
class CardRecord(_Record):
    strategy_id: int
    user_id: str
    card_type: str
    title: str
    description: str = ""
    priority: str = "Medium"
    confidence_level: str = "Medium"
    priority_rationale: str = ""
    confidence_rationale: str = ""
    strategic_alignment: str = ""
    tags: list = field(default_factory=list)
    relationships: list = field(default_factory=list)
    card_data: dict = field(default_factory=dict)
    metadata: dict = field(default_factory=dict)
    id: str = field(default_factory=new_id)
    created_at: float = field(default_factory=timestamp)
    updated_at: float = field(default_factory=timestamp)


@dataclass
class TemplateCardRecord(_Record):
    user_id: str
    title: str = "Untitled Card"
    description: str = ""
    card_type: str = "template"
    priority: str = "medium"
    card_data: dict = field(default_factory=dict)
    id: str = field(default_factory=new_id)
    created_at: float = field(default_factory=timestamp)
    updated_at: float = field(default_factory=timestamp)


@dataclass
class IntelligenceCardRecord(_Record):
    user_id: str
    category: str
    title: str
    summary: str
    intelligence_content: str
    key_findings: list = field(default_factory=list)
    source_reference: Optional[str] = None
    credibility_score: Optional[int] = None
    relevance_score: Optional[int] = None
    relevant_blueprint_pages: list = field(default_factory=list)
    strategic_implications: Optional[str] = None
    recommended_actions: Optional[str] = None
    tags: list = field(default_factory=list)
    status: str = IntelligenceStatus.ACTIVE.value
    id: str = field(default_factory=new_id)
    created_at: float = field(default_factory=timestamp)
    updated_at: float = field(default_factory=timestamp)


@dataclass
class IntelligenceGroupRecord(_Record):
    user_id: str
    name: str
    description: Optional[str] = None
    color: str = DEFAULT_GROUP_COLOR
    card_count: int = 0
    last_used_at: float = field(default_factory=timestamp)
    id: str = field(default_factory=new_id)
    created_at: float = field(default_factory=timestamp)
    updated_at: float = field(default_factory=timestamp)


@dataclass
class GroupMemberRecord(_Record):
    group_id: str
    intelligence_card_id: str
    added_by: str
    position: int
    added_at: float = field(default_factory=timestamp)


@dataclass
class AutomationRuleRecord(_Record):
    user_id: str
    name: str
    description: str = ""
    automation_enabled: bool = False
    schedule_frequency: str = ScheduleFrequency.DAILY.value
    intelligence_categories: list = field(default_factory=list)
    target_groups: list = field(default_factory=list)
    max_cards_per_run: int = 5
    optimization_level: str = OptimizationLevel.BALANCED.value
    next_run_at: Optional[float] = None
    last_run_at: Optional[float] = None
    created_by_user_id: Optional[str] = None
    id: str = field(default_factory=new_id)
    created_at: float = field(default_factory=timestamp)
    updated_at: float = field(default_factory=timestamp)


@dataclass
class AutomationExecutionRecord(_Record):
    rule_id: str
    user_id: str
    trigger_type: str = TriggerType.SCHEDULED.value
    status: str = ExecutionStatus.QUEUED.value
    cards_created: int = 0
    tokens_used: int = 0
    error_message: Optional[str] = None
    started_at: float = field(default_factory=timestamp)
    completed_at: Optional[float] = None
    processing_time_ms: Optional[int] = None
    id: str = field(default_factory=new_id)


@dataclass
class SystemPromptRecord(_Record):
    agent_type: str
    system_prompt: str = ""
    context_config: dict = field(default_factory=dict)
    card_creator_preview_prompt: Optional[str] = None
    card_creator_generation_prompt: Optional[str] = None
    card_creator_config: dict = field(default_factory=dict)
    id: str = field(default_factory=new_id)
    created_at: float = field(default_factory=timestamp)
    updated_at: float = field(default_factory=timestamp)


@dataclass
class CreatorSessionRecord(_Record):
    user_id: str
    strategy_id: int
    current_step: int = 1
    completed_steps: list = field(default_factory=list)
    selected_blueprint_cards: list = field(default_factory=list)
    selected_intelligence_cards: list = field(default_factory=list)
    context_summary: Optional[str] = None
    target_blueprint: Optional[str] = None
    generation_options: dict = field(
        default_factory=lambda: dict(DEFAULT_GENERATION_OPTIONS)
    )
    generated_cards: list = field(default_factory=list)
    expires_at: float = field(default_factory=lambda: timestamp() + SESSION_TTL_SECONDS)
    id: str = field(default_factory=new_id)
    created_at: float = field(default_factory=timestamp)
    updated_at: float = field(default_factory=timestamp)


@dataclass
class CreatorHistoryRecord(_Record):
    user_id: str
    strategy_id: int
    action_type: str
    session_id: Optional[str] = None
    action_data: dict = field(default_factory=dict)
    id: str = field(default_factory=new_id)
    created_at: float = field(default_factory=timestamp)


@dataclass
class ExecutiveSummaryRecord(_Record):
    """One stored summary per (strategy, blueprint, user)."""

    strategy_id: int
    blueprint_id: str
    user_id: str
    summary_data: dict = field(default_factory=dict)
    cards_count: int = 0
    generated_at: float = field(default_factory=timestamp)
    id: str = field(default_factory=new_id)
    created_at: float = field(default_factory=timestamp)
    updated_at: float = field(default_factory=timestamp)


def _updatable(record_cls: Type, updates: dict) -> dict:
    names = {f.name for f in fields(record_cls)} - _IMMUTABLE_FIELDS
    return {k: v for k, v in updates.items() if k in names}


class DbClient(Protocol):
    """Interface for database access."""

    # Users
    def get_user(self, user_id: str) -> Optional[UserRecord]:
        ...

    def upsert_user(self, user: UserRecord) -> UserRecord:
        ...

    # Strategies
    def create_strategy(self, strategy: StrategyRecord) -> StrategyRecord:
        ...

    def list_strategies(self, user_id: str) -> list[StrategyRecord]:
        ...

    def get_strategy(self, strategy_id: int, user_id: str) -> Optional[StrategyRecord]:
        ...

    def update_strategy(
        self, strategy_id: int, user_id: str, updates: dict
    ) -> Optional[StrategyRecord]:
        ...

    def delete_strategy(self, strategy_id: int, user_id: str) -> bool:
        ...

    # Cards
    def create_cards(self, cards: list[CardRecord]) -> list[CardRecord]:
        ...

    def list_cards(
        self, strategy_id: int, card_type: Optional[str] = None
    ) -> list[CardRecord]:
        ...

    def get_card(self, card_id: str, user_id: str) -> Optional[CardRecord]:
        ...

    def update_card(
        self, card_id: str, user_id: str, updates: dict
    ) -> Optional[CardRecord]:
        ...

    def delete_card(self, card_id: str, user_id: str) -> bool:
        ...

    # Template cards
    def create_template_card(self, card: TemplateCardRecord) -> TemplateCardRecord:
        ...

    def list_template_cards(self, user_id: str) -> list[TemplateCardRecord]:
        ...

    def update_template_card(
        self, card_id: str, user_id: str, updates: dict
    ) -> Optional[TemplateCardRecord]:
        ...

    def delete_template_card(self, card_id: str, user_id: str) -> bool:
        ...

    # Intelligence cards
    def create_intelligence_cards(
        self, cards: list[IntelligenceCardRecord]
    ) -> list[IntelligenceCardRecord]:
        ...

    def list_intelligence_cards(
        self,
        user_id: str,
        *,
        category: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[IntelligenceCardRecord]:
        ...

    def get_intelligence_card(
        self, card_id: str, user_id: str
    ) -> Optional[IntelligenceCardRecord]:
        ...

    def update_intelligence_card(
        self, card_id: str, user_id: str, updates: dict
    ) -> Optional[IntelligenceCardRecord]:
        ...

    def delete_intelligence_card(self, card_id: str, user_id: str) -> bool:
        ...

    # Intelligence groups
    def create_group(self, group: IntelligenceGroupRecord) -> IntelligenceGroupRecord:
        ...

    def list_groups(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> list[IntelligenceGroupRecord]:
        ...

    def get_group(self, group_id: str, user_id: str) -> Optional[IntelligenceGroupRecord]:
        ...

    def update_group(
        self, group_id: str, user_id: str, updates: dict
    ) -> Optional[IntelligenceGroupRecord]:
        ...

    def delete_group(self, group_id: str, user_id: str) -> bool:
        ...

    def list_group_members(self, group_id: str) -> list[GroupMemberRecord]:
        ...

    def add_group_cards(
        self, group_id: str, card_ids: Iterable[str], added_by: str
    ) -> int:
        ...

    def remove_group_cards(self, group_id: str, card_ids: Iterable[str]) -> int:
        ...

    # Automation
    def create_rule(self, rule: AutomationRuleRecord) -> AutomationRuleRecord:
        ...

    def list_rules(
        self, user_id: str, automation_only: bool = False
    ) -> list[AutomationRuleRecord]:
        ...

    def get_rule(
        self, rule_id: str, user_id: Optional[str] = None
    ) -> Optional[AutomationRuleRecord]:
        ...

    def update_rule(
        self, rule_id: str, updates: dict, user_id: Optional[str] = None
    ) -> Optional[AutomationRuleRecord]:
        ...

    def delete_rule(self, rule_id: str, user_id: str) -> bool:
        ...

    def list_due_rules(self, now: float) -> list[AutomationRuleRecord]:
        ...

    def create_execution(
        self, execution: AutomationExecutionRecord
    ) -> AutomationExecutionRecord:
        ...

    def get_execution(self, execution_id: str) -> Optional[AutomationExecutionRecord]:
        ...

    def update_execution(
        self, execution_id: str, updates: dict
    ) -> Optional[AutomationExecutionRecord]:
        ...

    def list_executions(
        self, user_id: str, rule_id: Optional[str] = None, limit: Optional[int] = None
    ) -> list[AutomationExecutionRecord]:
        ...

    # System prompts
    def save_system_prompt(self, prompt: SystemPromptRecord) -> SystemPromptRecord:
        ...

    def list_system_prompts(
        self, agent_type: Optional[str] = None
    ) -> list[SystemPromptRecord]:
        ...

    def update_system_prompt(
        self, prompt_id: str, updates: dict
    ) -> Optional[SystemPromptRecord]:
        ...

    # Strategy creator
    def create_session(self, session: CreatorSessionRecord) -> CreatorSessionRecord:
        ...

    def get_active_session(
        self, user_id: str, strategy_id: int, now: float
    ) -> Optional[CreatorSessionRecord]:
        ...

    def get_session(self, session_id: str, user_id: str) -> Optional[CreatorSessionRecord]:
        ...

    def update_session(
        self, session_id: str, user_id: str, updates: dict
    ) -> Optional[CreatorSessionRecord]:
        ...

    def delete_session(self, session_id: str, user_id: str) -> bool:
        ...

    def add_history(self, entry: CreatorHistoryRecord) -> CreatorHistoryRecord:
        ...

    def list_history(
        self, user_id: str, strategy_id: Optional[int] = None
    ) -> list[CreatorHistoryRecord]:
        ...

    # Executive summaries
    def get_executive_summary(
        self, strategy_id: int, blueprint_id: str, user_id: str
    ) -> Optional[ExecutiveSummaryRecord]:
        ...

    def upsert_executive_summary(
        self, summary: ExecutiveSummaryRecord
    ) -> ExecutiveSummaryRecord:
        ...


def _apply_updates(record, updates: dict):
    for key, value in _updatable(type(record), updates).items():
        setattr(record, key, value)
    if hasattr(record, "updated_at"):
        record.updated_at = timestamp()
    return record


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.users: Dict[str, UserRecord] = {}
        self.strategies: Dict[int, StrategyRecord] = {}
        self.cards: Dict[str, CardRecord] = {}
        self.template_cards: Dict[str, TemplateCardRecord] = {}
        self.intelligence_cards: Dict[str, IntelligenceCardRecord] = {}
        self.groups: Dict[str, IntelligenceGroupRecord] = {}
        self.group_members: Dict[tuple[str, str], GroupMemberRecord] = {}
        self.rules: Dict[str, AutomationRuleRecord] = {}
        self.executions: Dict[str, AutomationExecutionRecord] = {}
        self.system_prompts: Dict[str, SystemPromptRecord] = {}
        self.sessions: Dict[str, CreatorSessionRecord] = {}
        self.history: Dict[str, CreatorHistoryRecord] = {}
        self.executive_summaries: Dict[tuple[int, str, str], ExecutiveSummaryRecord] = {}
        self._next_strategy_id = 1

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.__init__()

    # Users
    def get_user(self, user_id: str) -> Optional[UserRecord]:
        return self.users.get(user_id)

    def upsert_user(self, user: UserRecord) -> UserRecord:
        existing = self.users.get(user.id)
        if existing:
            user.created_at = existing.created_at
        user.updated_at = timestamp()
        self.users[user.id] = user
        return user

    # Strategies
    def create_strategy(self, strategy: StrategyRecord) -> StrategyRecord:
        strategy.id = self._next_strategy_id
        self._next_strategy_id += 1
        self.strategies[strategy.id] = strategy
        return strategy

    def list_strategies(self, user_id: str) -> list[StrategyRecord]:
        items = [s for s in self.strategies.values() if s.user_id == user_id]
        return sorted(items, key=lambda s: s.created_at, reverse=True)

    def get_strategy(self, strategy_id: int, user_id: str) -> Optional[StrategyRecord]:
        strategy = self.strategies.get(strategy_id)
        if strategy and strategy.user_id == user_id:
            return strategy
        return None

    def update_strategy(
        self, strategy_id: int, user_id: str, updates: dict
    ) -> Optional[StrategyRecord]:
        strategy = self.get_strategy(strategy_id, user_id)
        if not strategy:
            return None
        return _apply_updates(strategy, updates)

    def delete_strategy(self, strategy_id: int, user_id: str) -> bool:
        if not self.get_strategy(strategy_id, user_id):
            return False
        del self.strategies[strategy_id]
        for card_id in [c.id for c in self.cards.values() if c.strategy_id == strategy_id]:
            del self.cards[card_id]
        for session_id in [
            s.id for s in self.sessions.values() if s.strategy_id == strategy_id
        ]:
            del self.sessions[session_id]
        for key in [k for k in self.executive_summaries if k[0] == strategy_id]:
            del self.executive_summaries[key]
        return True

    # Cards
    def create_cards(self, cards: list[CardRecord]) -> list[CardRecord]:
        for card in cards:
            self.cards[card.id] = card
        return cards

    def list_cards(
        self, strategy_id: int, card_type: Optional[str] = None
    ) -> list[CardRecord]:
        items = [
            c
            for c in self.cards.values()
            if c.strategy_id == strategy_id
            and (card_type is None or c.card_type == card_type)
        ]
        return sorted(items, key=lambda c: c.updated_at, reverse=True)

    def get_card(self, card_id: str, user_id: str) -> Optional[CardRecord]:
        card = self.cards.get(card_id)
        if card and card.user_id == user_id:
            return card
        return None

    def update_card(
        self, card_id: str, user_id: str, updates: dict
    ) -> Optional[CardRecord]:
        card = self.get_card(card_id, user_id)
        if not card:
            return None
        return _apply_updates(card, updates)

    def delete_card(self, card_id: str, user_id: str) -> bool:
        if not self.get_card(card_id, user_id):
            return False
        del self.cards[card_id]
        return True

    # Template cards
    def create_template_card(self, card: TemplateCardRecord) -> TemplateCardRecord:
        self.template_cards[card.id] = card
        return card

    def list_template_cards(self, user_id: str) -> list[TemplateCardRecord]:
        items = [c for c in self.template_cards.values() if c.user_id == user_id]
        return sorted(items, key=lambda c: c.created_at, reverse=True)

    def update_template_card(
        self, card_id: str, user_id: str, updates: dict
    ) -> Optional[TemplateCardRecord]:
        card = self.template_cards.get(card_id)
        if not card or card.user_id != user_id:
            return None
        return _apply_updates(card, updates)

    def delete_template_card(self, card_id: str, user_id: str) -> bool:
        card = self.template_cards.get(card_id)
        if not card or card.user_id != user_id:
            return False
        del self.template_cards[card_id]
        return True

    # Intelligence cards
    def create_intelligence_cards(
        self, cards: list[IntelligenceCardRecord]
    ) -> list[IntelligenceCardRecord]:
        for card in cards:
            self.intelligence_cards[card.id] = card
        return cards

    def list_intelligence_cards(
        self,
        user_id: str,
        *,
        category: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[IntelligenceCardRecord]:
        needle = search.lower() if search else None
        items = []
        for card in self.intelligence_cards.values():
            if card.user_id != user_id:
                continue
            if category and card.category != category:
                continue
            if status and card.status != status:
                continue
            if needle and needle not in card.title.lower() and needle not in (
                card.summary or ""
            ).lower():
                continue
            items.append(card)
        items.sort(key=lambda c: c.created_at, reverse=True)
        return items[offset : offset + limit]

    def get_intelligence_card(
        self, card_id: str, user_id: str
    ) -> Optional[IntelligenceCardRecord]:
        card = self.intelligence_cards.get(card_id)
        if card and card.user_id == user_id:
            return card
        return None

    def update_intelligence_card(
        self, card_id: str, user_id: str, updates: dict
    ) -> Optional[IntelligenceCardRecord]:
        card = self.get_intelligence_card(card_id, user_id)
        if not card:
            return None
        return _apply_updates(card, updates)

    def delete_intelligence_card(self, card_id: str, user_id: str) -> bool:
        if not self.get_intelligence_card(card_id, user_id):
            return False
        del self.intelligence_cards[card_id]
        affected = {g for (g, c) in self.group_members if c == card_id}
        for group_id in affected:
            del self.group_members[(group_id, card_id)]
            self._refresh_group_count(group_id)
        return True

    # Intelligence groups
    def create_group(self, group: IntelligenceGroupRecord) -> IntelligenceGroupRecord:
        self.groups[group.id] = group
        return group

    def list_groups(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> list[IntelligenceGroupRecord]:
        items = [g for g in self.groups.values() if g.user_id == user_id]
        items.sort(key=lambda g: g.last_used_at, reverse=True)
        return items[offset : offset + limit]

    def get_group(self, group_id: str, user_id: str) -> Optional[IntelligenceGroupRecord]:
        group = self.groups.get(group_id)
        if group and group.user_id == user_id:
            return group
        return None

    def update_group(
        self, group_id: str, user_id: str, updates: dict
    ) -> Optional[IntelligenceGroupRecord]:
        group = self.get_group(group_id, user_id)
        if not group:
            return None
        return _apply_updates(group, updates)

    def delete_group(self, group_id: str, user_id: str) -> bool:
        if not self.get_group(group_id, user_id):
            return False
        del self.groups[group_id]
        for key in [k for k in self.group_members if k[0] == group_id]:
            del self.group_members[key]
        return True

    def list_group_members(self, group_id: str) -> list[GroupMemberRecord]:
        items = [m for (g, _), m in self.group_members.items() if g == group_id]
        return sorted(items, key=lambda m: m.position)

    def add_group_cards(
        self, group_id: str, card_ids: Iterable[str], added_by: str
    ) -> int:
        members = self.list_group_members(group_id)
        position = (members[-1].position if members else 0) + 1
        added = 0
        for card_id in card_ids:
            key = (group_id, card_id)
            if key in self.group_members:
                continue
            self.group_members[key] = GroupMemberRecord(
                group_id=group_id,
                intelligence_card_id=card_id,
                added_by=added_by,
                position=position,
            )
            position += 1
            added += 1
        self._refresh_group_count(group_id, touch=True)
        return added

    def remove_group_cards(self, group_id: str, card_ids: Iterable[str]) -> int:
        removed = 0
        for card_id in card_ids:
            if self.group_members.pop((group_id, card_id), None):
                removed += 1
        self._refresh_group_count(group_id)
        return removed

    def _refresh_group_count(self, group_id: str, touch: bool = False) -> None:
        group = self.groups.get(group_id)
        if not group:
            return
        group.card_count = sum(1 for (g, _) in self.group_members if g == group_id)
        if touch:
            group.last_used_at = timestamp()
        group.updated_at = timestamp()

    # Automation
    def create_rule(self, rule: AutomationRuleRecord) -> AutomationRuleRecord:
        self.rules[rule.id] = rule
        return rule

    def list_rules(
        self, user_id: str, automation_only: bool = False
    ) -> list[AutomationRuleRecord]:
        items = [
            r
            for r in self.rules.values()
            if r.user_id == user_id and (not automation_only or r.automation_enabled)
        ]
        return sorted(items, key=lambda r: r.updated_at, reverse=True)

    def get_rule(
        self, rule_id: str, user_id: Optional[str] = None
    ) -> Optional[AutomationRuleRecord]:
        rule = self.rules.get(rule_id)
        if rule and (user_id is None or rule.user_id == user_id):
            return rule
        return None

    def update_rule(
        self, rule_id: str, updates: dict, user_id: Optional[str] = None
    ) -> Optional[AutomationRuleRecord]:
        rule = self.get_rule(rule_id, user_id)
        if not rule:
            return None
        return _apply_updates(rule, updates)

    def delete_rule(self, rule_id: str, user_id: str) -> bool:
        if not self.get_rule(rule_id, user_id):
            return False
        del self.rules[rule_id]
        return True

    def list_due_rules(self, now: float) -> list[AutomationRuleRecord]:
        return [
            r
            for r in self.rules.values()
            if r.automation_enabled and r.next_run_at is not None and r.next_run_at <= now
        ]

    def create_execution(
        self, execution: AutomationExecutionRecord
    ) -> AutomationExecutionRecord:
        self.executions[execution.id] = execution
        return execution

    def get_execution(self, execution_id: str) -> Optional[AutomationExecutionRecord]:
        return self.executions.get(execution_id)

    def update_execution(
        self, execution_id: str, updates: dict
    ) -> Optional[AutomationExecutionRecord]:
        execution = self.executions.get(execution_id)
        if not execution:
            return None
        return _apply_updates(execution, updates)

    def list_executions(
        self, user_id: str, rule_id: Optional[str] = None, limit: Optional[int] = None
    ) -> list[AutomationExecutionRecord]:
        items = [
            e
            for e in self.executions.values()
            if e.user_id == user_id and (rule_id is None or e.rule_id == rule_id)
        ]
        items.sort(key=lambda e: e.started_at, reverse=True)
        return items[:limit] if limit else items

    # System prompts
    def save_system_prompt(self, prompt: SystemPromptRecord) -> SystemPromptRecord:
        self.system_prompts[prompt.id] = prompt
        return prompt

    def list_system_prompts(
        self, agent_type: Optional[str] = None
    ) -> list[SystemPromptRecord]:
        items = [
            p
            for p in self.system_prompts.values()
            if agent_type is None or p.agent_type == agent_type
        ]
        return sorted(items, key=lambda p: p.agent_type)

    def update_system_prompt(
        self, prompt_id: str, updates: dict
    ) -> Optional[SystemPromptRecord]:
        prompt = self.system_prompts.get(prompt_id)
        if not prompt:
            return None
        return _apply_updates(prompt, updates)

    # Strategy creator
    def create_session(self, session: CreatorSessionRecord) -> CreatorSessionRecord:
        self.sessions[session.id] = session
        return session

    def get_active_session(
        self, user_id: str, strategy_id: int, now: float
    ) -> Optional[CreatorSessionRecord]:
        candidates = [
            s
            for s in self.sessions.values()
            if s.user_id == user_id
            and s.strategy_id == strategy_id
            and s.expires_at >= now
        ]
        candidates.sort(key=lambda s: s.created_at, reverse=True)
        return candidates[0] if candidates else None

    def get_session(self, session_id: str, user_id: str) -> Optional[CreatorSessionRecord]:
        session = self.sessions.get(session_id)
        if session and session.user_id == user_id:
            return session
        return None

    def update_session(
        self, session_id: str, user_id: str, updates: dict
    ) -> Optional[CreatorSessionRecord]:
        session = self.get_session(session_id, user_id)
        if not session:
            return None
        return _apply_updates(session, updates)

    def delete_session(self, session_id: str, user_id: str) -> bool:
        if not self.get_session(session_id, user_id):
            return False
        del self.sessions[session_id]
        return True

    def add_history(self, entry: CreatorHistoryRecord) -> CreatorHistoryRecord:
        self.history[entry.id] = entry
        return entry

    def list_history(
        self, user_id: str, strategy_id: Optional[int] = None
    ) -> list[CreatorHistoryRecord]:
        items = [
            h
            for h in self.history.values()
            if h.user_id == user_id and (strategy_id is None or h.strategy_id == strategy_id)
        ]
        return sorted(items, key=lambda h: h.created_at)

    # Executive summaries
    def get_executive_summary(
        self, strategy_id: int, blueprint_id: str, user_id: str
    ) -> Optional[ExecutiveSummaryRecord]:
        return self.executive_summaries.get((strategy_id, blueprint_id, user_id))

    def upsert_executive_summary(
        self, summary: ExecutiveSummaryRecord
    ) -> ExecutiveSummaryRecord:
        key = (summary.strategy_id, summary.blueprint_id, summary.user_id)
        existing = self.executive_summaries.get(key)
        if existing:
            summary.id = existing.id
            summary.created_at = existing.created_at
        summary.updated_at = timestamp()
        self.executive_summaries[key] = summary
        return summary


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, nullable=False, default="")
    first_name = Column(String, nullable=False, default="")
    last_name = Column(String, nullable=False, default="")
    profile_image_url = Column(String, nullable=False, default="")
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class StrategyRow(Base):
    __tablename__ = "strategies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    client = Column(String, nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    status = Column(String, nullable=False, default="draft")
    progress = Column(Integer, nullable=False, default=0)
    blueprint_configuration = Column(JSON, nullable=False)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class CardRow(Base):
    __tablename__ = "cards"

    id = Column(String, primary_key=True)
    strategy_id = Column(Integer, nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    card_type = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    priority = Column(String, nullable=False)
    confidence_level = Column(String, nullable=False)
    priority_rationale = Column(Text, nullable=False, default="")
    confidence_rationale = Column(Text, nullable=False, default="")
    strategic_alignment = Column(Text, nullable=False, default="")
    tags = Column(JSON, nullable=False)
    relationships = Column(JSON, nullable=False)
    card_data = Column(JSON, nullable=False)
    card_metadata = Column("metadata", JSON, nullable=False)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class TemplateCardRow(Base):
    __tablename__ = "template_cards"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    card_type = Column(String, nullable=False)
    priority = Column(String, nullable=False)
    card_data = Column(JSON, nullable=False)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class IntelligenceCardRow(Base):
    __tablename__ = "intelligence_cards"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    category = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    summary = Column(Text, nullable=False)
    intelligence_content = Column(Text, nullable=False)
    key_findings = Column(JSON, nullable=False)
    source_reference = Column(String, nullable=True)
    credibility_score = Column(Integer, nullable=True)
    relevance_score = Column(Integer, nullable=True)
    relevant_blueprint_pages = Column(JSON, nullable=False)
    strategic_implications = Column(Text, nullable=True)
    recommended_actions = Column(Text, nullable=True)
    tags = Column(JSON, nullable=False)
    status = Column(String, nullable=False, index=True)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class IntelligenceGroupRow(Base):
    __tablename__ = "intelligence_groups"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String, nullable=False)
    card_count = Column(Integer, nullable=False, default=0)
    last_used_at = Column(Float, nullable=False)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class GroupMemberRow(Base):
    __tablename__ = "intelligence_group_cards"

    group_id = Column(String, primary_key=True)
    intelligence_card_id = Column(String, primary_key=True)
    added_by = Column(String, nullable=False)
    position = Column(Integer, nullable=False)
    added_at = Column(Float, nullable=False)


class AutomationRuleRow(Base):
    __tablename__ = "ai_generation_rules"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    automation_enabled = Column(Boolean, nullable=False, default=False)
    schedule_frequency = Column(String, nullable=False)
    intelligence_categories = Column(JSON, nullable=False)
    target_groups = Column(JSON, nullable=False)
    max_cards_per_run = Column(Integer, nullable=False)
    optimization_level = Column(String, nullable=False)
    next_run_at = Column(Float, nullable=True, index=True)
    last_run_at = Column(Float, nullable=True)
    created_by_user_id = Column(String, nullable=True)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class AutomationExecutionRow(Base):
    __tablename__ = "ai_automation_executions"

    id = Column(String, primary_key=True)
    rule_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    trigger_type = Column(String, nullable=False)
    status = Column(String, nullable=False)
    cards_created = Column(Integer, nullable=False, default=0)
    tokens_used = Column(Integer, nullable=False, default=0)
    error_message = Column(Text, nullable=True)
    started_at = Column(Float, nullable=False)
    completed_at = Column(Float, nullable=True)
    processing_time_ms = Column(Integer, nullable=True)


class SystemPromptRow(Base):
    __tablename__ = "ai_system_prompts"

    id = Column(String, primary_key=True)
    agent_type = Column(String, nullable=False, index=True)
    system_prompt = Column(Text, nullable=False, default="")
    context_config = Column(JSON, nullable=False)
    card_creator_preview_prompt = Column(Text, nullable=True)
    card_creator_generation_prompt = Column(Text, nullable=True)
    card_creator_config = Column(JSON, nullable=False)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class CreatorSessionRow(Base):
    __tablename__ = "strategy_creator_sessions"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    strategy_id = Column(Integer, nullable=False, index=True)
    current_step = Column(Integer, nullable=False, default=1)
    completed_steps = Column(JSON, nullable=False)
    selected_blueprint_cards = Column(JSON, nullable=False)
    selected_intelligence_cards = Column(JSON, nullable=False)
    context_summary = Column(Text, nullable=True)
    target_blueprint = Column(String, nullable=True)
    generation_options = Column(JSON, nullable=False)
    generated_cards = Column(JSON, nullable=False)
    expires_at = Column(Float, nullable=False)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class CreatorHistoryRow(Base):
    __tablename__ = "strategy_creator_history"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    strategy_id = Column(Integer, nullable=False)
    session_id = Column(String, nullable=True)
    action_type = Column(String, nullable=False)
    action_data = Column(JSON, nullable=False)
    created_at = Column(Float, nullable=False)


class ExecutiveSummaryRow(Base):
    __tablename__ = "executive_summaries"
    __table_args__ = (UniqueConstraint("strategy_id", "blueprint_id", "user_id"),)

    id = Column(String, primary_key=True)
    strategy_id = Column(Integer, nullable=False, index=True)
    blueprint_id = Column(String, nullable=False)
    user_id = Column(String, nullable=False, index=True)
    summary_data = Column(JSON, nullable=False)
    cards_count = Column(Integer, nullable=False, default=0)
    generated_at = Column(Float, nullable=False)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


# Record field -> mapped attribute, where the ORM needs a different name.
_ROW_ATTRS = {"metadata": "card_metadata"}


def _row_attr(name: str) -> str:
    return _ROW_ATTRS.get(name, name)


def _to_record(row, record_cls: Type[R]) -> R:
    return record_cls(
        **{f.name: getattr(row, _row_attr(f.name)) for f in fields(record_cls)}
    )


def _to_row(record, row_cls):
    values = {_row_attr(f.name): getattr(record, f.name) for f in fields(record)}
    if values.get("id") is None:
        values.pop("id", None)
    return row_cls(**values)


def _set_row(row, record_cls: Type, updates: dict) -> None:
    for key, value in _updatable(record_cls, updates).items():
        setattr(row, _row_attr(key), value)
    if hasattr(row, "updated_at"):
        row.updated_at = timestamp()


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    # Generic helpers
    def _insert(self, records: list, row_cls, record_cls):
        with self.Session() as session:
            rows = [_to_row(r, row_cls) for r in records]
            session.add_all(rows)
            session.commit()
            for row in rows:
                session.refresh(row)
            return [_to_record(row, record_cls) for row in rows]

    def _get_owned(self, session: Session, row_cls, row_id, user_id: Optional[str]):
        row = session.get(row_cls, row_id)
        if row is None or (user_id is not None and row.user_id != user_id):
            return None
        return row

    def _update_owned(self, row_cls, record_cls, row_id, user_id, updates: dict):
        with self.Session() as session:
            row = self._get_owned(session, row_cls, row_id, user_id)
            if row is None:
                return None
            _set_row(row, record_cls, updates)
            session.commit()
            session.refresh(row)
            return _to_record(row, record_cls)

    def _delete_owned(self, row_cls, row_id, user_id) -> bool:
        with self.Session() as session:
            row = self._get_owned(session, row_cls, row_id, user_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True

    def _list(self, stmt, record_cls):
        with self.Session() as session:
            rows = session.execute(stmt).scalars().all()
            return [_to_record(row, record_cls) for row in rows]

    # Users
    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            return _to_record(row, UserRecord) if row else None

    def upsert_user(self, user: UserRecord) -> UserRecord:
        with self.Session() as session:
            row = session.get(UserRow, user.id)
            if row:
                row.email = user.email
                row.first_name = user.first_name
                row.last_name = user.last_name
                row.profile_image_url = user.profile_image_url
                row.updated_at = timestamp()
            else:
                row = _to_row(user, UserRow)
                session.add(row)
            session.commit()
            session.refresh(row)
            return _to_record(row, UserRecord)

    # Strategies
    def create_strategy(self, strategy: StrategyRecord) -> StrategyRecord:
        return self._insert([strategy], StrategyRow, StrategyRecord)[0]

    def list_strategies(self, user_id: str) -> list[StrategyRecord]:
        stmt = (
            select(StrategyRow)
            .where(StrategyRow.user_id == user_id)
            .order_by(StrategyRow.created_at.desc())
        )
        return self._list(stmt, StrategyRecord)

    def get_strategy(self, strategy_id: int, user_id: str) -> Optional[StrategyRecord]:
        with self.Session() as session:
            row = self._get_owned(session, StrategyRow, strategy_id, user_id)
            return _to_record(row, StrategyRecord) if row else None

    def update_strategy(
        self, strategy_id: int, user_id: str, updates: dict
    ) -> Optional[StrategyRecord]:
        return self._update_owned(
            StrategyRow, StrategyRecord, strategy_id, user_id, updates
        )

    def delete_strategy(self, strategy_id: int, user_id: str) -> bool:
        with self.Session() as session:
            row = self._get_owned(session, StrategyRow, strategy_id, user_id)
            if row is None:
                return False
            session.execute(delete(CardRow).where(CardRow.strategy_id == strategy_id))
            session.execute(
                delete(CreatorSessionRow).where(
                    CreatorSessionRow.strategy_id == strategy_id
                )
            )
            session.execute(
                delete(ExecutiveSummaryRow).where(
                    ExecutiveSummaryRow.strategy_id == strategy_id
                )
            )
            session.delete(row)
            session.commit()
            return True

    # Cards
    def create_cards(self, cards: list[CardRecord]) -> list[CardRecord]:
        return self._insert(cards, CardRow, CardRecord)

    def list_cards(
        self, strategy_id: int, card_type: Optional[str] = None
    ) -> list[CardRecord]:
        stmt = select(CardRow).where(CardRow.strategy_id == strategy_id)
        if card_type:
            stmt = stmt.where(CardRow.card_type == card_type)
        return self._list(stmt.order_by(CardRow.updated_at.desc()), CardRecord)

    def get_card(self, card_id: str, user_id: str) -> Optional[CardRecord]:
        with self.Session() as session:
            row = self._get_owned(session, CardRow, card_id, user_id)
            return _to_record(row, CardRecord) if row else None

    def update_card(
        self, card_id: str, user_id: str, updates: dict
    ) -> Optional[CardRecord]:
        return self._update_owned(CardRow, CardRecord, card_id, user_id, updates)

    def delete_card(self, card_id: str, user_id: str) -> bool:
        return self._delete_owned(CardRow, card_id, user_id)

    # Template cards
    def create_template_card(self, card: TemplateCardRecord) -> TemplateCardRecord:
        return self._insert([card], TemplateCardRow, TemplateCardRecord)[0]

    def list_template_cards(self, user_id: str) -> list[TemplateCardRecord]:
        stmt = (
            select(TemplateCardRow)
            .where(TemplateCardRow.user_id == user_id)
            .order_by(TemplateCardRow.created_at.desc())
        )
        return self._list(stmt, TemplateCardRecord)

    def update_template_card(
        self, card_id: str, user_id: str, updates: dict
    ) -> Optional[TemplateCardRecord]:
        return self._update_owned(
            TemplateCardRow, TemplateCardRecord, card_id, user_id, updates
        )

    def delete_template_card(self, card_id: str, user_id: str) -> bool:
        return self._delete_owned(TemplateCardRow, card_id, user_id)

    # Intelligence cards
    def create_intelligence_cards(
        self, cards: list[IntelligenceCardRecord]
    ) -> list[IntelligenceCardRecord]:
        return self._insert(cards, IntelligenceCardRow, IntelligenceCardRecord)

    def list_intelligence_cards(
        self,
        user_id: str,
        *,
        category: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[IntelligenceCardRecord]:
        stmt = select(IntelligenceCardRow).where(IntelligenceCardRow.user_id == user_id)
        if category:
            stmt = stmt.where(IntelligenceCardRow.category == category)
        if status:
            stmt = stmt.where(IntelligenceCardRow.status == status)
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(
                func.lower(IntelligenceCardRow.title).like(pattern)
                | func.lower(IntelligenceCardRow.summary).like(pattern)
            )
        stmt = (
            stmt.order_by(IntelligenceCardRow.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return self._list(stmt, IntelligenceCardRecord)

    def get_intelligence_card(
        self, card_id: str, user_id: str
    ) -> Optional[IntelligenceCardRecord]:
        with self.Session() as session:
            row = self._get_owned(session, IntelligenceCardRow, card_id, user_id)
            return _to_record(row, IntelligenceCardRecord) if row else None

    def update_intelligence_card(
        self, card_id: str, user_id: str, updates: dict
    ) -> Optional[IntelligenceCardRecord]:
        return self._update_owned(
            IntelligenceCardRow, IntelligenceCardRecord, card_id, user_id, updates
        )

    def delete_intelligence_card(self, card_id: str, user_id: str) -> bool:
        with self.Session() as session:
            row = self._get_owned(session, IntelligenceCardRow, card_id, user_id)
            if row is None:
                return False
            group_ids = session.execute(
                select(GroupMemberRow.group_id).where(
                    GroupMemberRow.intelligence_card_id == card_id
                )
            ).scalars().all()
            session.execute(
                delete(GroupMemberRow).where(
                    GroupMemberRow.intelligence_card_id == card_id
                )
            )
            session.delete(row)
            for group_id in group_ids:
                self._refresh_group_count(session, group_id)
            session.commit()
            return True

    # Intelligence groups
    def create_group(self, group: IntelligenceGroupRecord) -> IntelligenceGroupRecord:
        return self._insert([group], IntelligenceGroupRow, IntelligenceGroupRecord)[0]

    def list_groups(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> list[IntelligenceGroupRecord]:
        stmt = (
            select(IntelligenceGroupRow)
            .where(IntelligenceGroupRow.user_id == user_id)
            .order_by(IntelligenceGroupRow.last_used_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return self._list(stmt, IntelligenceGroupRecord)

    def get_group(self, group_id: str, user_id: str) -> Optional[IntelligenceGroupRecord]:
        with self.Session() as session:
            row = self._get_owned(session, IntelligenceGroupRow, group_id, user_id)
            return _to_record(row, IntelligenceGroupRecord) if row else None

    def update_group(
        self, group_id: str, user_id: str, updates: dict
    ) -> Optional[IntelligenceGroupRecord]:
        return self._update_owned(
            IntelligenceGroupRow, IntelligenceGroupRecord, group_id, user_id, updates
        )

    def delete_group(self, group_id: str, user_id: str) -> bool:
        with self.Session() as session:
            row = self._get_owned(session, IntelligenceGroupRow, group_id, user_id)
            if row is None:
                return False
            session.execute(
                delete(GroupMemberRow).where(GroupMemberRow.group_id == group_id)
            )
            session.delete(row)
            session.commit()
            return True

    def list_group_members(self, group_id: str) -> list[GroupMemberRecord]:
        stmt = (
            select(GroupMemberRow)
            .where(GroupMemberRow.group_id == group_id)
            .order_by(GroupMemberRow.position.asc())
        )
        return self._list(stmt, GroupMemberRecord)

    def add_group_cards(
        self, group_id: str, card_ids: Iterable[str], added_by: str
    ) -> int:
        with self.Session() as session:
            existing = set(
                session.execute(
                    select(GroupMemberRow.intelligence_card_id).where(
                        GroupMemberRow.group_id == group_id
                    )
                ).scalars()
            )
            max_position = session.execute(
                select(func.max(GroupMemberRow.position)).where(
                    GroupMemberRow.group_id == group_id
                )
            ).scalar()
            position = (max_position or 0) + 1
            added = 0
            now = timestamp()
            for card_id in card_ids:
                if card_id in existing:
                    continue
                session.add(
                    GroupMemberRow(
                        group_id=group_id,
                        intelligence_card_id=card_id,
                        added_by=added_by,
                        position=position,
                        added_at=now,
                    )
                )
                existing.add(card_id)
                position += 1
                added += 1
            session.flush()
            self._refresh_group_count(session, group_id, touch=True)
            session.commit()
            return added

    def remove_group_cards(self, group_id: str, card_ids: Iterable[str]) -> int:
        card_ids = list(card_ids)
        with self.Session() as session:
            result = session.execute(
                delete(GroupMemberRow).where(
                    GroupMemberRow.group_id == group_id,
                    GroupMemberRow.intelligence_card_id.in_(card_ids),
                )
            )
            self._refresh_group_count(session, group_id)
            session.commit()
            return result.rowcount or 0

    def _refresh_group_count(
        self, session: Session, group_id: str, touch: bool = False
    ) -> None:
        group = session.get(IntelligenceGroupRow, group_id)
        if group is None:
            return
        group.card_count = session.execute(
            select(func.count())
            .select_from(GroupMemberRow)
            .where(GroupMemberRow.group_id == group_id)
        ).scalar_one()
        now = timestamp()
        if touch:
            group.last_used_at = now
        group.updated_at = now

    # Automation
    def create_rule(self, rule: AutomationRuleRecord) -> AutomationRuleRecord:
        return self._insert([rule], AutomationRuleRow, AutomationRuleRecord)[0]

    def list_rules(
        self, user_id: str, automation_only: bool = False
    ) -> list[AutomationRuleRecord]:
        stmt = select(AutomationRuleRow).where(AutomationRuleRow.user_id == user_id)
        if automation_only:
            stmt = stmt.where(AutomationRuleRow.automation_enabled.is_(True))
        return self._list(
            stmt.order_by(AutomationRuleRow.updated_at.desc()), AutomationRuleRecord
        )

    def get_rule(
        self, rule_id: str, user_id: Optional[str] = None
    ) -> Optional[AutomationRuleRecord]:
        with self.Session() as session:
            row = self._get_owned(session, AutomationRuleRow, rule_id, user_id)
            return _to_record(row, AutomationRuleRecord) if row else None

    def update_rule(
        self, rule_id: str, updates: dict, user_id: Optional[str] = None
    ) -> Optional[AutomationRuleRecord]:
        return self._update_owned(
            AutomationRuleRow, AutomationRuleRecord, rule_id, user_id, updates
        )

    def delete_rule(self, rule_id: str, user_id: str) -> bool:
        return self._delete_owned(AutomationRuleRow, rule_id, user_id)

    def list_due_rules(self, now: float) -> list[AutomationRuleRecord]:
        stmt = select(AutomationRuleRow).where(
            AutomationRuleRow.automation_enabled.is_(True),
            AutomationRuleRow.next_run_at.is_not(None),
            AutomationRuleRow.next_run_at <= now,
        )
        return self._list(stmt, AutomationRuleRecord)

    def create_execution(
        self, execution: AutomationExecutionRecord
    ) -> AutomationExecutionRecord:
        return self._insert(
            [execution], AutomationExecutionRow, AutomationExecutionRecord
        )[0]

    def get_execution(self, execution_id: str) -> Optional[AutomationExecutionRecord]:
        with self.Session() as session:
            row = session.get(AutomationExecutionRow, execution_id)
            return _to_record(row, AutomationExecutionRecord) if row else None

    def update_execution(
        self, execution_id: str, updates: dict
    ) -> Optional[AutomationExecutionRecord]:
        return self._update_owned(
            AutomationExecutionRow,
            AutomationExecutionRecord,
            execution_id,
            None,
            updates,
        )

    def list_executions(
        self, user_id: str, rule_id: Optional[str] = None, limit: Optional[int] = None
    ) -> list[AutomationExecutionRecord]:
        stmt = select(AutomationExecutionRow).where(
            AutomationExecutionRow.user_id == user_id
        )
        if rule_id:
            stmt = stmt.where(AutomationExecutionRow.rule_id == rule_id)
        stmt = stmt.order_by(AutomationExecutionRow.started_at.desc())
        if limit:
            stmt = stmt.limit(limit)
        return self._list(stmt, AutomationExecutionRecord)

    # System prompts
    def save_system_prompt(self, prompt: SystemPromptRecord) -> SystemPromptRecord:
        return self._insert([prompt], SystemPromptRow, SystemPromptRecord)[0]

    def list_system_prompts(
        self, agent_type: Optional[str] = None
    ) -> list[SystemPromptRecord]:
        stmt = select(SystemPromptRow)
        if agent_type:
            stmt = stmt.where(SystemPromptRow.agent_type == agent_type)
        return self._list(stmt.order_by(SystemPromptRow.agent_type), SystemPromptRecord)

    def update_system_prompt(
        self, prompt_id: str, updates: dict
    ) -> Optional[SystemPromptRecord]:
        return self._update_owned(
            SystemPromptRow, SystemPromptRecord, prompt_id, None, updates
        )

    # Strategy creator
    def create_session(self, session: CreatorSessionRecord) -> CreatorSessionRecord:
        return self._insert([session], CreatorSessionRow, CreatorSessionRecord)[0]

    def get_active_session(
        self, user_id: str, strategy_id: int, now: float
    ) -> Optional[CreatorSessionRecord]:
        stmt = (
            select(CreatorSessionRow)
            .where(
                CreatorSessionRow.user_id == user_id,
                CreatorSessionRow.strategy_id == strategy_id,
                CreatorSessionRow.expires_at >= now,
            )
            .order_by(CreatorSessionRow.created_at.desc())
            .limit(1)
        )
        found = self._list(stmt, CreatorSessionRecord)
        return found[0] if found else None

    def get_session(self, session_id: str, user_id: str) -> Optional[CreatorSessionRecord]:
        with self.Session() as session:
            row = self._get_owned(session, CreatorSessionRow, session_id, user_id)
            return _to_record(row, CreatorSessionRecord) if row else None

    def update_session(
        self, session_id: str, user_id: str, updates: dict
    ) -> Optional[CreatorSessionRecord]:
        return self._update_owned(
            CreatorSessionRow, CreatorSessionRecord, session_id, user_id, updates
        )

    def delete_session(self, session_id: str, user_id: str) -> bool:
        return self._delete_owned(CreatorSessionRow, session_id, user_id)

    def add_history(self, entry: CreatorHistoryRecord) -> CreatorHistoryRecord:
        return self._insert([entry], CreatorHistoryRow, CreatorHistoryRecord)[0]

    def list_history(
        self, user_id: str, strategy_id: Optional[int] = None
    ) -> list[CreatorHistoryRecord]:
        stmt = select(CreatorHistoryRow).where(CreatorHistoryRow.user_id == user_id)
        if strategy_id is not None:
            stmt = stmt.where(CreatorHistoryRow.strategy_id == strategy_id)
        return self._list(
            stmt.order_by(CreatorHistoryRow.created_at.asc()), CreatorHistoryRecord
        )

    # Executive summaries
    def _summary_stmt(self, strategy_id: int, blueprint_id: str, user_id: str):
        return select(ExecutiveSummaryRow).where(
            ExecutiveSummaryRow.strategy_id == strategy_id,
            ExecutiveSummaryRow.blueprint_id == blueprint_id,
            ExecutiveSummaryRow.user_id == user_id,
        )

    def get_executive_summary(
        self, strategy_id: int, blueprint_id: str, user_id: str
    ) -> Optional[ExecutiveSummaryRecord]:
        found = self._list(
            self._summary_stmt(strategy_id, blueprint_id, user_id),
            ExecutiveSummaryRecord,
        )
        return found[0] if found else None

    def upsert_executive_summary(
        self, summary: ExecutiveSummaryRecord
    ) -> ExecutiveSummaryRecord:
        with self.Session() as session:
            row = session.execute(
                self._summary_stmt(
                    summary.strategy_id, summary.blueprint_id, summary.user_id
                )
            ).scalar_one_or_none()
            if row:
                row.summary_data = summary.summary_data
                row.cards_count = summary.cards_count
                row.generated_at = summary.generated_at
                row.updated_at = timestamp()
            else:
                row = _to_row(summary, ExecutiveSummaryRow)
                session.add(row)
            session.commit()
            session.refresh(row)
            return _to_record(row, ExecutiveSummaryRecord)
