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

"""Blueprint registry: the card templates a strategy can be built from."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class BlueprintField:
    id: str
    name: str
    type: str
    required: bool = False
    description: str = ""
    options: Optional[List[str]] = None


@dataclass
class Blueprint:
    id: str
    name: str
    description: str
    category: str
    fields: List[BlueprintField] = field(default_factory=list)
    id_prefix: Optional[str] = None

    @property
    def prefix(self) -> str:
        """Prefix used for ids of generated preview cards."""
        if self.id_prefix:
            return self.id_prefix
        letters = "".join(ch for ch in self.id if ch.isalpha())
        return letters[:3].upper()

    def required_fields(self) -> List[str]:
        return [f.id for f in self.fields if f.required]


CORE_STRATEGY = "Core Strategy"
RESEARCH = "Research & Analysis"
PLANNING = "Planning & Execution"
MEASUREMENT = "Measurement"
ORGANISATION = "Organisation"
DEVELOPMENT = "Development"


_BLUEPRINTS: List[Blueprint] = [
    Blueprint(
        id="strategicContext",
        name="Strategic Context",
        description="Define the strategic context and foundation for your strategy",
        category=CORE_STRATEGY,
        id_prefix="SC",
        fields=[
            BlueprintField("marketContext", "Market Context", "textarea", True,
                           "Overview of the market environment and conditions"),
            BlueprintField("competitiveLandscape", "Competitive Landscape", "textarea", True,
                           "Analysis of competitors and competitive dynamics"),
            BlueprintField("keyTrends", "Key Trends", "array", False,
                           "Important trends affecting your strategy"),
            BlueprintField("stakeholders", "Stakeholders", "array", True,
                           "Important stakeholders for this strategic context"),
            BlueprintField("constraints", "Constraints", "array", False,
                           "Limitations or constraints that affect strategy"),
            BlueprintField("opportunities", "Opportunities", "array", False,
                           "Key opportunities identified in this context"),
            BlueprintField("timeframe", "Timeframe", "enum", True,
                           "Timeframe for this strategic context",
                           ["3 months", "6 months", "1 year", "2-3 years", "3+ years"]),
        ],
    ),
    Blueprint(
        id="vision",
        name="Vision Statement",
        description="Articulate the long-term vision and direction",
        category=CORE_STRATEGY,
        id_prefix="VIS",
        fields=[
            BlueprintField("visionType", "Vision Type", "enum", True,
                           "What kind of vision is this?",
                           ["Company", "Product", "Team", "Initiative"]),
            BlueprintField("timeHorizon", "Time Horizon", "text", True,
                           "When should this vision be realised?"),
            BlueprintField("guidingPrinciples", "Guiding Principles", "array", False,
                           "Principles that shape decisions toward the vision"),
            BlueprintField("inspirationSource", "Inspiration", "textarea", False,
                           "What inspired this vision?"),
        ],
    ),
    Blueprint(
        id="valuePropositions",
        name="Value Proposition",
        description="Define the value delivered to customers",
        category=CORE_STRATEGY,
        id_prefix="VP",
        fields=[
            BlueprintField("customerSegment", "Customer Segment", "text", True,
                           "Who is this value proposition for?"),
            BlueprintField("problemSolved", "Problem Solved", "textarea", True,
                           "Which customer problem does this address?"),
            BlueprintField("gainCreated", "Gain Created", "textarea", True,
                           "What benefit does the customer receive?"),
            BlueprintField("alternativeSolutions", "Alternatives", "array", False,
                           "How do customers solve this today?"),
            BlueprintField("differentiator", "Differentiator", "textarea", False,
                           "Why is this better than the alternatives?"),
        ],
    ),
    Blueprint(
        id="personas",
        name="Personas",
        description="Define detailed user personas and customer segments",
        category=RESEARCH,
        id_prefix="PER",
        fields=[
            BlueprintField("personaType", "Persona Type", "enum", True,
                           "What type of persona is this?",
                           ["Primary", "Secondary", "Anti-Persona"]),
            BlueprintField("demographics", "Demographics", "object", True,
                           "Age, location, role, income, etc."),
            BlueprintField("psychographics", "Psychographics", "object", False,
                           "Values, interests, lifestyle, personality traits"),
            BlueprintField("goals", "Goals & Motivations", "array", True,
                           "What are they trying to achieve?"),
            BlueprintField("painPoints", "Pain Points", "array", True,
                           "What frustrates or blocks them?"),
            BlueprintField("behaviors", "Behaviors", "array", False,
                           "How do they currently solve problems?"),
            BlueprintField("preferredChannels", "Preferred Channels", "array", False,
                           "How do they prefer to communicate/engage?"),
            BlueprintField("influences", "Influences", "array", False,
                           "Who or what influences their decisions?"),
        ],
    ),
    Blueprint(
        id="customer-journey",
        name="Customer Journey",
        description="Map the stages customers move through",
        category=RESEARCH,
    ),
    Blueprint(
        id="swot-analysis",
        name="SWOT Analysis",
        description="Strengths, weaknesses, opportunities and threats",
        category=RESEARCH,
        id_prefix="SWOT",
    ),
    Blueprint(
        id="competitive-analysis",
        name="Competitive Analysis",
        description="Compare positioning against competitors",
        category=RESEARCH,
    ),
    Blueprint(
        id="market-insight",
        name="Market Insight",
        description="Capture a discrete observation about the market",
        category=RESEARCH,
    ),
    Blueprint(
        id="experiment",
        name="Experiment",
        description="Hypothesis-driven tests to validate assumptions",
        category=RESEARCH,
    ),
    Blueprint(
        id="okrs",
        name="OKRs",
        description="Define objectives and key results for goal tracking",
        category=PLANNING,
        id_prefix="OKR",
        fields=[
            BlueprintField("objectiveType", "Objective Type", "enum", True,
                           "What level is this objective for?",
                           ["Company", "Team", "Individual", "Product"]),
            BlueprintField("timeframe", "Timeframe", "enum", True,
                           "Duration for this OKR",
                           ["Quarter", "Half-Year", "Annual"]),
            BlueprintField("objective", "Objective", "textarea", True,
                           "The qualitative goal you want to accomplish"),
            BlueprintField("keyResults", "Key Results", "array", True,
                           "Measurable outcomes that indicate objective success"),
            BlueprintField("currentProgress", "Current Progress", "number", False,
                           "Current completion percentage"),
            BlueprintField("owner", "Owner", "text", True,
                           "Person or team responsible for this OKR"),
            BlueprintField("dependencies", "Dependencies", "array", False,
                           "What other OKRs or initiatives does this depend on?"),
            BlueprintField("risks", "Risks", "array", False,
                           "What could prevent achieving this objective?"),
        ],
    ),
    Blueprint(
        id="problem-statement",
        name="Problem Statement",
        description="Define and validate key problems to solve",
        category=PLANNING,
        id_prefix="PS",
        fields=[
            BlueprintField("whoIsAffected", "Who Is Affected", "text", True,
                           "Who experiences this problem?"),
            BlueprintField("coreProblem", "Core Problem", "textarea", True,
                           "What is the fundamental problem to solve?"),
            BlueprintField("rootCause", "Root Cause", "textarea", True,
                           "The underlying cause of the problem"),
            BlueprintField("impactOfProblem", "Impact", "textarea", True,
                           "Consequences if this problem remains unsolved"),
            BlueprintField("evidence", "Evidence", "textarea", True,
                           "What evidence supports the existence of this problem?"),
            BlueprintField("solutionHypothesis", "Solution Hypothesis", "textarea", False,
                           "Early thoughts on potential solutions"),
            BlueprintField("validated", "Validated", "boolean", False,
                           "Has this problem been validated with users/data?"),
        ],
    ),
    Blueprint(
        id="workstreams",
        name="Workstream",
        description="Parallel streams of delivery work",
        category=PLANNING,
    ),
    Blueprint(
        id="epics",
        name="Epic",
        description="Large bodies of work broken into features",
        category=PLANNING,
    ),
    Blueprint(
        id="features",
        name="Feature",
        description="Product features with detailed specifications and user stories",
        category=PLANNING,
        id_prefix="FEAT",
        fields=[
            BlueprintField("epicId", "Epic", "text", False,
                           "Which epic does this feature support?"),
            BlueprintField("linkedPersona", "Linked Persona", "text", True,
                           "Who is the primary user of this feature?"),
            BlueprintField("problemItSolves", "Problem It Solves", "textarea", True,
                           "The specific problem this feature solves"),
            BlueprintField("userStories", "User Stories", "object", True,
                           "User stories in format: As a [user], I want [goal] so that [benefit]"),
            BlueprintField("acceptanceCriteria", "Acceptance Criteria", "object", True,
                           "Specific criteria that must be met for feature completion"),
            BlueprintField("priorityLevel", "Priority Level", "enum", True,
                           "MoSCoW prioritization level",
                           ["Must Have", "Should Have", "Nice to Have", "Won't Have"]),
            BlueprintField("estimation", "Estimation", "text", False,
                           "Development effort estimation"),
        ],
    ),
    Blueprint(
        id="business-model",
        name="Business Model",
        description="How the strategy creates and captures value",
        category=PLANNING,
    ),
    Blueprint(
        id="risk-assessment",
        name="Risk Assessment",
        description="Identify and mitigate strategic risks",
        category=PLANNING,
    ),
    Blueprint(
        id="roadmap",
        name="Roadmap",
        description="Sequence initiatives over time",
        category=PLANNING,
    ),
    Blueprint(
        id="kpis",
        name="KPIs & Metrics",
        description="Measures used to track strategy performance",
        category=MEASUREMENT,
    ),
    Blueprint(
        id="financial-projections",
        name="Financial Projections",
        description="Revenue, cost and investment forecasts",
        category=MEASUREMENT,
    ),
    Blueprint(
        id="cost-driver",
        name="Cost Driver",
        description="Factors that drive the cost base",
        category=MEASUREMENT,
    ),
    Blueprint(
        id="revenue-driver",
        name="Revenue Driver",
        description="Factors that drive revenue",
        category=MEASUREMENT,
    ),
    Blueprint(
        id="organisation",
        name="Organisation",
        description="Organisation structure and ownership",
        category=ORGANISATION,
    ),
    Blueprint(
        id="team",
        name="Team",
        description="Teams responsible for delivery",
        category=ORGANISATION,
    ),
    Blueprint(
        id="prd",
        name="Product Requirements Document (PRD)",
        description="Product requirements for a feature set",
        category=DEVELOPMENT,
    ),
    Blueprint(
        id="trd",
        name="Technical Requirements Document",
        description="Technical requirements and architecture decisions",
        category=DEVELOPMENT,
    ),
    Blueprint(
        id="technical-requirements",
        name="Technical Requirement",
        description="A single technical requirement",
        category=DEVELOPMENT,
    ),
    Blueprint(
        id="template",
        name="Template",
        description="Free-form card used for testing new blueprints",
        category="Templates",
    ),
]

BLUEPRINTS: Dict[str, Blueprint] = {bp.id: bp for bp in _BLUEPRINTS}


def get_blueprint(blueprint_id: str) -> Blueprint:
    """Return the blueprint for `blueprint_id`, raising KeyError if unknown."""
    return BLUEPRINTS[blueprint_id]


def list_blueprints(category: Optional[str] = None) -> List[Blueprint]:
    if category is None:
        return list(BLUEPRINTS.values())
    return [bp for bp in BLUEPRINTS.values() if bp.category == category]
