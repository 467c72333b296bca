"""
Prompt-building tools exposed by the MCP server.

Each tool returns an MCP content result whose single text item is a JSON
document `{"success": true, "prompts": {"system": ..., "user": ...}, ...}`.
The caller runs the prompts against its own LLM provider.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from shared.blueprints import BLUEPRINTS, Blueprint
from shared.types import IntelligenceCategory, OptimizationLevel

logger = logging.getLogger(__name__)

INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

_CARD_CONTENT_LIMIT = 600


class ToolError(Exception):
    def __init__(self, message: str, code: int = INTERNAL_ERROR):
        super().__init__(message)
        self.code = code


@dataclass
class Tool:
    name: str
    description: str
    input_schema: dict
    handler: Callable[[dict], dict]

    def describe(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }

    def required(self) -> List[str]:
        return list(self.input_schema.get("required", []))


def _text_result(payload: dict) -> dict:
    return {"content": [{"type": "text", "text": json.dumps(payload)}]}


def _prompt_result(system: str, user: str, **extra: Any) -> dict:
    return _text_result(
        {"success": True, "prompts": {"system": system, "user": user}, **extra}
    )


def _bullets(items: Any) -> str:
    if not items:
        return "None provided"
    if isinstance(items, str):
        return items
    return ", ".join(str(item) for item in items)


def _describe_fields(blueprint: Blueprint) -> str:
    if not blueprint.fields:
        return "- (no blueprint-specific fields)"
    lines = []
    for f in blueprint.fields:
        line = f"- {f.id} ({f.type}{', required' if f.required else ''}): {f.description or f.name}"
        if f.options:
            line += f" Options: {', '.join(f.options)}."
        lines.append(line)
    return "\n".join(lines)


def _summarise_card(card: dict) -> str:
    title = card.get("title") or "Untitled"
    card_type = card.get("card_type") or card.get("cardType") or "card"
    description = (card.get("description") or "").strip()
    if len(description) > _CARD_CONTENT_LIMIT:
        description = description[:_CARD_CONTENT_LIMIT] + "..."
    return f"- [{card_type}] {title}: {description}"


def generate_context_summary(args: dict) -> dict:
    context = args.get("context") or {}
    if not isinstance(context, dict):
        raise ToolError("context must be an object", INVALID_PARAMS)

    system = (
        "You are a strategic planning expert. Create a concise summary of the "
        "business context."
    )
    sections = []
    if args.get("strategyName"):
        sections.append(f"Strategy: {args['strategyName']}")
    if context:
        sections.append(
            f"Business Context: {context.get('businessContext') or 'Not specified'}"
        )
        sections.append(f"Goals: {_bullets(context.get('goals'))}")
        sections.append(f"Challenges: {_bullets(context.get('challenges'))}")
        sections.append(f"Constraints: {_bullets(context.get('constraints'))}")
    blueprint_cards = args.get("blueprintCards") or []
    if blueprint_cards:
        sections.append(
            "Existing strategy cards:\n" + "\n".join(_summarise_card(c) for c in blueprint_cards)
        )
    intelligence_cards = args.get("intelligenceCards") or []
    if intelligence_cards:
        sections.append(
            "Market intelligence:\n"
            + "\n".join(
                f"- {c.get('title')}: {c.get('summary') or ''}" for c in intelligence_cards
            )
        )
    groups = args.get("intelligenceGroups") or []
    if groups:
        sections.append(
            "Intelligence groups: "
            + ", ".join(
                str(g.get("name") or g.get("id")) if isinstance(g, dict) else str(g)
                for g in groups
            )
        )
    if not sections:
        raise ToolError("Provide context or cards to summarise", INVALID_PARAMS)
    user = (
        "Summarize this business context:\n\n"
        + "\n".join(sections)
        + "\n\nProvide a clear, actionable summary in 2-3 paragraphs."
    )
    return _prompt_result(system, user)


def generate_strategy_cards(args: dict) -> dict:
    blueprint_id = args["targetBlueprint"]
    blueprint = BLUEPRINTS.get(blueprint_id)
    if blueprint is None:
        raise ToolError(f"Unknown blueprint: {blueprint_id}", INVALID_PARAMS)

    options = args.get("generationOptions") or {}
    count = int(options.get("count") or 3)
    style = options.get("style") or "comprehensive"
    existing = args.get("existingCards") or []

    system = (
        "You are a strategic planning expert. Generate strategy cards based on "
        f"the provided context. Each card is a {blueprint.name} ({blueprint.description}). "
        'Respond with a JSON object of the form {"cards": [...]}.'
    )
    user_parts = [
        f"Based on this context summary, generate exactly {count} {blueprint.name} cards "
        f"in a {style} style.",
        f"Context: {args['contextSummary']}",
        "Each card must contain: title, description, priority (high|medium|low), "
        "keyPoints (array of strings), tags (array of strings), and blueprintFields "
        "with these fields:",
        _describe_fields(blueprint),
    ]
    if existing:
        user_parts.append(
            "Avoid duplicating these existing cards:\n"
            + "\n".join(_summarise_card(c) for c in existing)
        )
    return _prompt_result(
        system, "\n\n".join(user_parts), blueprint=blueprint.id, count=count
    )


_INTERVIEW_MARKERS = re.compile(r"\b(q:|a:|question:|answer:)", re.IGNORECASE)
INTERVIEW_MIN_CARDS = 10
TEXT_MIN_CARDS = 3
_LONG_TEXT_CHARS = 2000
_URL_CONTENT_LIMIT = 10000

_INTELLIGENCE_FIELDS = (
    "- title: specific, actionable title (max 100 chars)\n"
    "- summary: concise overview (max 200 chars)\n"
    "- intelligence_content: detailed analysis (max 1000 chars)\n"
    "- key_findings: array of 3-5 specific bullet points\n"
    "- strategic_implications: brief strategic impact\n"
    "- recommended_actions: specific actionable recommendations\n"
    "- credibility_score: integer 1-10 based on source quality\n"
    "- relevance_score: integer 1-10 based on strategic importance\n"
    "- tags: array of keywords\n"
    f"- category: one of {', '.join(c.value for c in IntelligenceCategory)}"
)


def is_interview(text: str, text_type: str | None = None) -> bool:
    """Transcripts get a deeper extraction pass than other text."""
    lowered = text.lower()
    return (
        text_type == "interview"
        or "interviewer" in lowered
        or "interviewee" in lowered
        or bool(_INTERVIEW_MARKERS.search(text))
        or len(text) > _LONG_TEXT_CHARS
    )


def process_intelligence_text(args: dict) -> dict:
    text = args["text"]
    text_type = args.get("type") or "general"
    context = args.get("context")
    interview = is_interview(text, args.get("type"))
    target = INTERVIEW_MIN_CARDS if interview else TEXT_MIN_CARDS

    if interview:
        system = (
            "You are a strategic analyst extracting context-rich insights from "
            f"interview transcripts. Extract at least {target} distinct insights. "
            "Do not repeat an insight in different words. Use the stakeholder's own "
            "words as evidence, and where obvious insights run out include ones that "
            "are implied but not stated."
        )
        body = f"--- INTERVIEW TRANSCRIPT ---\n{text}\n--- END TRANSCRIPT ---"
        ask = f"Analyze this interview transcript and extract at least {target} strategic insights."
    else:
        system = (
            "You are an expert intelligence analyst. Process raw text content and "
            "extract structured, actionable intelligence insights."
        )
        body = f"--- TEXT CONTENT ---\n{text}\n--- END CONTENT ---"
        ask = f"Process the following {text_type} content and extract {target}-5 intelligence cards."

    parts = [ask, body]
    if context:
        parts.append(f"Additional Context: {context}")
    parts.append("For each insight create a JSON object with these fields:\n" + _INTELLIGENCE_FIELDS)
    parts.append('Respond with a JSON object of the form {"cards": [...]}.')
    return _prompt_result(
        system,
        "\n\n".join(parts),
        isInterview=interview,
        targetCards=target,
        processingType=text_type,
    )


def analyze_url(args: dict) -> dict:
    url = args["url"]
    content = (args.get("content") or "")[:_URL_CONTENT_LIMIT]
    system = (
        "You are a strategic analyst working inside a business planning platform. "
        "Analyze web content and extract 5-7 distinct intelligence insights. Focus on "
        "facts, data points, competitive moves, emerging technology, risks and "
        "opportunities, and weigh the credibility of the source."
    )
    user = (
        f"Analyze this web page content:\n\n"
        f"URL: {url}\n"
        f"Title: {args.get('title') or 'N/A'}\n"
        f"Description: {args.get('description') or 'N/A'}\n"
        f"Context: {args.get('context') or 'General strategic intelligence extraction'}\n"
        f"Target Category: {args.get('targetCategory') or 'Auto-detect'}\n\n"
        f"Content:\n{content or '(page content unavailable)'}\n\n"
        "For each insight create a JSON object with these fields:\n"
        + _INTELLIGENCE_FIELDS
        + '\n\nRespond with a JSON object of the form {"cards": [...]}.'
    )
    return _prompt_result(system, user, url=url)


_OPTIMIZATION_GUIDANCE = {
    OptimizationLevel.MAXIMUM_QUALITY: "Provide comprehensive, detailed analysis with high-quality insights.",
    OptimizationLevel.BALANCED: "Provide good quality insights with balanced detail.",
    OptimizationLevel.MAXIMUM_SAVINGS: "Provide concise, focused insights optimized for efficiency.",
}


def generate_automation_intelligence(args: dict) -> dict:
    categories = args.get("categories") or [IntelligenceCategory.MARKET.value]
    unknown = [c for c in categories if c not in set(IntelligenceCategory)]
    if unknown:
        raise ToolError(f"Unknown intelligence categories: {', '.join(unknown)}", INVALID_PARAMS)
    max_cards = int(args.get("maxCards") or 5)
    level = args.get("optimizationLevel") or OptimizationLevel.BALANCED.value
    guidance = _OPTIMIZATION_GUIDANCE.get(level)
    if guidance is None:
        raise ToolError(f"Unknown optimization level: {level}", INVALID_PARAMS)

    logger.info(
        "Building automation prompts for user %s rule %s", args["userId"], args["ruleId"]
    )
    system = (
        "You are a strategic intelligence analyst producing briefing cards for a "
        "strategy team. " + guidance + ' Respond with a JSON object of the form {"cards": [...]}.'
    )
    user = (
        f"Generate exactly {max_cards} intelligence cards. "
        f"Focus on {', '.join(categories)} intelligence.\n\n"
        "Each card must contain: category (one of "
        f"{', '.join(c.value for c in IntelligenceCategory)}), title, summary, "
        "intelligence_content, key_findings (array of strings), "
        "strategic_implications, recommended_actions, credibility_score (1-10), "
        "relevance_score (1-10), and tags (array of strings)."
    )
    return _prompt_result(
        system,
        user,
        ruleId=args["ruleId"],
        maxCards=max_cards,
        triggerType=args.get("triggerType") or "scheduled",
    )


def generate_executive_summary(args: dict) -> dict:
    cards = args["cards"]
    if not isinstance(cards, list) or not cards:
        raise ToolError("cards must be a non-empty array", INVALID_PARAMS)
    blueprint_type = args.get("blueprint_type") or "strategy"

    system = (
        "You are a senior strategy consultant writing for executives. Identify "
        "the themes running through the material and what they mean for the "
        'business. Respond with a JSON object: {"themes": [string], '
        '"implications": [string], "summary": string}.'
    )
    user = (
        f"Write an executive summary of these {len(cards)} {blueprint_type} cards:\n\n"
        + "\n".join(_summarise_card(c) for c in cards)
        + "\n\nGive 3-5 themes, 3-5 implications, and a summary of at most two paragraphs."
    )
    return _prompt_result(system, user, cardCount=len(cards))


def generate_edit_mode_content(args: dict) -> dict:
    blueprint_type = args["blueprintType"]
    blueprint = BLUEPRINTS.get(blueprint_type)
    if blueprint is None:
        raise ToolError(f"Unknown blueprint: {blueprint_type}", INVALID_PARAMS)

    existing = args.get("existingFields") or {}
    if not isinstance(existing, dict):
        raise ToolError("existingFields must be an object", INVALID_PARAMS)
    context_cards = args.get("contextCards") or []
    system = (
        f"You are an expert in writing {blueprint.name} content for business "
        "strategy documents. Respond with a JSON object keyed by field id. Also "
        "include description, strategicAlignment and tags (array of strings)."
    )
    parts = [
        f'Generate content for a {blueprint.name} card titled "{args["cardTitle"]}".',
        f"Fields:\n{_describe_fields(blueprint)}",
    ]
    if context_cards:
        parts.append(
            "Relevant Context:\n" + "\n".join(_summarise_card(c) for c in context_cards)
        )
    if any(str(v).strip() for v in existing.values() if v is not None):
        parts.append(
            "Existing content to enhance (improve and expand, don't just repeat):\n"
            + json.dumps(existing, indent=2)
        )
        parts.append(
            "Fill every empty field, add detail to the existing ones, and keep all "
            "fields coherent with each other."
        )
    else:
        parts.append(
            "Generate comprehensive content for all fields. Be specific, actionable "
            "and relevant to the card title."
        )
    return _prompt_result(
        system,
        "\n\n".join(parts),
        cardId=args["cardId"],
        blueprintType=blueprint.id,
        contextCardsUsed=len(context_cards),
    )


_TRD_SECTIONS = (
    "Executive Summary",
    "System Architecture",
    "Feature-Specific Requirements",
    "Data Architecture",
    "API Specifications",
    "Security Requirements",
    "Performance & Scalability",
    "Infrastructure Requirements",
    "Testing Strategy",
    "Implementation Guidelines",
)

_TRD_OPTIONS = {
    "includeArchitecture": "System Architecture",
    "includeDataModels": "Data Models & Database Schema",
    "includeAPIs": "API Specifications",
    "includeSecurityRequirements": "Security Requirements",
}

TECHNICAL_REQUIREMENT_CONFIG = {"temperature": 0.3, "max_tokens": 4000}
TASK_LIST_CONFIG = {"temperature": 0.3, "max_tokens": 6000}


def generate_technical_requirement(args: dict) -> dict:
    features = args["features"]
    if not isinstance(features, list) or not features or not all(
        isinstance(f, dict) and f.get("name") for f in features
    ):
        raise ToolError("features must be an array of objects with a name", INVALID_PARAMS)
    options = args.get("options") or {}
    strategy = args.get("strategyContext") or {}

    system = (
        "You are a senior technical architect who turns business features into "
        "technical requirements documents. Be specific and actionable, and cover "
        "architecture, data models, APIs, security, performance, error handling, "
        "testing and deployment. Format the response as a structured document."
    )
    feature_list = "\n".join(
        f"- **{f['name']}**: {f.get('description') or ''}" for f in features
    )
    if strategy:
        strategy_info = (
            f"Strategy: {strategy.get('title') or 'Untitled'}\n"
            f"{strategy.get('description') or ''}"
        )
        related = strategy.get("cards") or []
        strategy_info += "\n\nRelated Cards:\n" + (
            "\n".join(_summarise_card(c) for c in related) if related else "None"
        )
    else:
        strategy_info = "No strategy context provided"
    included = [label for key, label in _TRD_OPTIONS.items() if options.get(key) is not False]
    user = (
        f"Generate comprehensive technical requirements for the following features:\n\n"
        f"{feature_list}\n\n**Project Context:**\n{strategy_info}\n\n"
        f"**Requirements to Include:** {', '.join(included) or 'Core requirements only'}\n\n"
        f"**Output Format:** {options.get('format') or 'comprehensive'}\n\n"
        "Cover these sections in order:\n"
        + "\n".join(f"{i}. {name}" for i, name in enumerate(_TRD_SECTIONS, 1))
    )
    return _prompt_result(
        system,
        user,
        config=dict(TECHNICAL_REQUIREMENT_CONFIG),
        metadata={
            "features": [f["name"] for f in features],
            "featureCount": len(features),
        },
    )


_TASK_CATEGORIES = (
    ("infrastructure", "Infrastructure & Foundation", "INFRA"),
    ("security", "Security & Authentication", "SEC"),
    ("data", "Database & Data Management", "DATA"),
    ("realtime", "Real-Time & Collaboration", "RT"),
    ("frontend", "Frontend & User Experience", "FE"),
    ("api", "API & Integration", "API"),
    ("testing", "Testing & Quality Assurance", "QA"),
    ("monitoring", "Monitoring & Observability", "MON"),
    ("documentation", "Documentation & Knowledge Transfer", "DOC"),
)


def commit_trd_to_task_list(args: dict) -> dict:
    trd_title = args["trdTitle"]
    categories = "\n".join(
        f"{i}. {name} (id {cid}; task ids {prefix}-001, {prefix}-002, ...)"
        for i, (cid, name, prefix) in enumerate(_TASK_CATEGORIES, 1)
    )
    system = (
        "You are a senior technical project manager who converts Technical "
        "Requirements Documents into implementation task lists. Every task must be "
        "completable in 1-5 days, carry acceptance criteria and a definition of "
        "done, have a story point estimate on the 1-13 scale, and list the tasks it "
        "blocks or is blocked by.\n\n"
        f"Use these categories:\n{categories}\n\n"
        "Return a JSON object with this structure:\n"
        '{"taskListMetadata": {"name": string, "status": "Not Started", '
        '"priority": string, "estimatedEffort": number, "totalTasks": number}, '
        '"categories": [{"id": string, "name": string, "estimatedEffort": number, '
        '"taskCount": number}], '
        '"tasks": [{"taskId": string, "title": string, "category": string, '
        '"priority": string, "effort": number, "status": "Not Started", '
        '"description": {"objective": string, "businessValue": string, '
        '"technicalContext": string}, '
        '"acceptanceCriteria": [{"criterion": string, "status": "Not Started"}], '
        '"dependencies": {"blocks": [string], "blockedBy": [string], "related": [string]}, '
        '"technicalImplementation": {"approach": string, '
        '"filesToCreate": [{"path": string, "status": "Not Started"}]}, '
        '"definitionOfDone": [string]}]}'
    )
    user = (
        "Convert this Technical Requirements Document into an implementation task list:\n\n"
        f"**TRD Title:** {trd_title}\n**TRD ID:** {args['trdId']}\n\n"
        f"**TRD Content:**\n{json.dumps(args.get('trdContent') or {}, indent=2)}\n\n"
        "Create 15-25 tasks spread across all categories. Derive every task from the "
        "TRD content, give 2-5 testable acceptance criteria, name the files to "
        "create, and make each task specific enough to pick up without questions."
    )
    return _prompt_result(
        system,
        user,
        config=dict(TASK_LIST_CONFIG),
        metadata={"trdId": args["trdId"], "trdTitle": trd_title},
    )


def _schema(properties: dict, required: List[str]) -> dict:
    return {"type": "object", "properties": properties, "required": required}


_STRING = {"type": "string"}
_STRINGS = {"type": "array", "items": {"type": "string"}}

TOOLS: Dict[str, Tool] = {
    tool.name: tool
    for tool in [
        Tool(
            "generate_context_summary",
            "Generate context summary for strategy creation",
            _schema(
                {
                    "context": {"type": "object"},
                    "strategyName": _STRING,
                    "blueprintCards": {"type": "array"},
                    "intelligenceCards": {"type": "array"},
                    "intelligenceGroups": {"type": "array"},
                },
                [],
            ),
            generate_context_summary,
        ),
        Tool(
            "generate_strategy_cards",
            "Generate strategy cards for a blueprint from a context summary",
            _schema(
                {
                    "contextSummary": _STRING,
                    "targetBlueprint": _STRING,
                    "generationOptions": {"type": "object"},
                    "existingCards": {"type": "array"},
                },
                ["contextSummary", "targetBlueprint"],
            ),
            generate_strategy_cards,
        ),
        Tool(
            "process_intelligence_text",
            "Process raw text into intelligence insights",
            _schema({"text": _STRING, "context": _STRING, "type": _STRING}, ["text"]),
            process_intelligence_text,
        ),
        Tool(
            "analyze_url",
            "Analyze a URL and extract intelligence",
            _schema(
                {
                    "url": _STRING,
                    "context": _STRING,
                    "title": _STRING,
                    "description": _STRING,
                    "content": _STRING,
                    "targetCategory": _STRING,
                },
                ["url"],
            ),
            analyze_url,
        ),
        Tool(
            "generate_automation_intelligence",
            "Generate intelligence cards based on automation rules",
            _schema(
                {
                    "userId": _STRING,
                    "ruleId": _STRING,
                    "categories": _STRINGS,
                    "maxCards": {"type": "number"},
                    "targetGroups": _STRINGS,
                    "optimizationLevel": {
                        "type": "string",
                        "enum": [level.value for level in OptimizationLevel],
                    },
                    "triggerType": {"type": "string", "enum": ["scheduled", "manual"]},
                },
                ["userId", "ruleId"],
            ),
            generate_automation_intelligence,
        ),
        Tool(
            "generate_executive_summary",
            "Summarise a set of strategy cards for executives",
            _schema({"cards": {"type": "array"}, "blueprint_type": _STRING}, ["cards"]),
            generate_executive_summary,
        ),
        Tool(
            "generate_edit_mode_content",
            "Generate content for all fields in a card",
            _schema(
                {
                    "cardId": _STRING,
                    "blueprintType": _STRING,
                    "cardTitle": _STRING,
                    "strategyId": _STRING,
                    "userId": _STRING,
                    "existingFields": {"type": "object"},
                    "contextCards": {"type": "array"},
                },
                ["cardId", "blueprintType", "cardTitle", "userId"],
            ),
            generate_edit_mode_content,
        ),
        Tool(
            "generate_technical_requirement",
            "Generate a technical requirements document for product features",
            _schema(
                {
                    "strategyContext": {"type": "object"},
                    "features": {"type": "array"},
                    "options": {"type": "object"},
                },
                ["features"],
            ),
            generate_technical_requirement,
        ),
        Tool(
            "commit_trd_to_task_list",
            "Break a technical requirements document into implementation tasks",
            _schema(
                {
                    "trdId": _STRING,
                    "trdTitle": _STRING,
                    "trdContent": {"type": "object"},
                    "strategyId": _STRING,
                    "userId": _STRING,
                },
                ["trdId", "trdTitle"],
            ),
            commit_trd_to_task_list,
        ),
    ]
}


def list_tools() -> List[dict]:
    return [tool.describe() for tool in TOOLS.values()]


def call_tool(name: str, arguments: dict | None) -> dict:
    """Validate arguments and run a tool. Raises ToolError with a JSON-RPC code."""
    tool = TOOLS.get(name)
    if tool is None:
        raise ToolError(f"Unknown tool: {name}", INVALID_PARAMS)
    arguments = arguments or {}
    missing = [key for key in tool.required() if arguments.get(key) in (None, "")]
    if missing:
        raise ToolError(f"Missing required arguments: {', '.join(missing)}", INVALID_PARAMS)
    try:
        return tool.handler(arguments)
    except ToolError:
        raise
    except Exception as e:
        logger.exception("Tool %s failed", name)
        raise ToolError(f"Tool {name} failed: {e}") from e
