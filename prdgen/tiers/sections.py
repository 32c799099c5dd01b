"""Ordered catalogue of Tier-3 document sections."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

from ..models import ClientQuestion
from ..prompting.constants import TIER3_SYSTEM_PREAMBLE
from .responses import load_json_object, parse_questions, require_keys


@dataclass(frozen=True)
class SectionSpec:
    """One independently generated section of the detailed stratum."""

    name: str
    title: str
    response_key: str
    instructions: str
    uses_prior: bool = False

    @property
    def system_prompt(self) -> str:
        return f"{TIER3_SYSTEM_PREAMBLE} You are writing the \"{self.title}\" section."

    def parse(self, text: str) -> Tuple[Any, List[ClientQuestion]]:
        payload = load_json_object(text)
        require_keys(payload, (self.response_key,))
        questions = parse_questions(payload.get("questions"), default_field=self.name)
        return payload[self.response_key], questions


def _section(name: str, title: str, instructions: str, *, key: str | None = None, uses_prior: bool = False) -> SectionSpec:
    return SectionSpec(
        name=name,
        title=title,
        response_key=key or name,
        instructions=instructions,
        uses_prior=uses_prior,
    )


DEFAULT_SECTIONS: Tuple[SectionSpec, ...] = (
    _section(
        "goalsAndSuccessCriteria",
        "Goals and Success Criteria",
        "List business and user goals with measurable success metrics (KPI, target, timeframe).",
    ),
    _section(
        "mvpScope",
        "MVP Scope",
        "Split features into inScope, outOfScope and futureConsiderations, grounded in the screens and endpoints that exist.",
    ),
    _section(
        "assumptions",
        "Assumptions",
        "Group assumptions under technical, operational, financial and legal.",
    ),
    _section(
        "dependencies",
        "Dependencies",
        "List external services, third-party APIs, internal modules and the features that depend on them.",
    ),
    _section(
        "roleDefinition",
        "Roles and Access",
        "Define user roles, their permissions and the screens or endpoints each can reach.",
    ),
    _section(
        "productRequirements",
        "Product Requirements",
        "Write functional requirements per feature, each with Given/When/Then acceptance criteria and a priority.",
    ),
    _section(
        "criticalUserFlows",
        "Critical User Flows",
        "Describe the most important end-to-end flows as ordered steps referencing real screens and endpoints.",
    ),
    _section(
        "technicalRequirements",
        "Technical Requirements",
        "Cover architecture, integrations, data storage and API requirements consistent with the detected stack.",
    ),
    _section(
        "nonFunctionalRequirements",
        "Non-Functional Requirements",
        "Cover performance, security, accessibility, reliability and scalability with measurable targets.",
    ),
    _section(
        "riskManagement",
        "Risk Management",
        "List risks with likelihood, impact and mitigation.",
        key="risks",
    ),
    _section(
        "competitiveAnalysis",
        "Competitive Analysis",
        "Name likely competitors or alternatives, their strengths and weaknesses, and this product's differentiators.",
    ),
    _section(
        "deliveryTimeline",
        "Delivery Timeline",
        "Propose phases with milestones, deliverables and rough durations.",
    ),
    _section(
        "openQuestions",
        "Open Questions",
        "List unresolved product decisions with an owner and the impact of leaving them open.",
        uses_prior=True,
    ),
    _section(
        "executiveSummary",
        "Executive Summary",
        "Summarize the product, its audience, scope and key risks in a few paragraphs drawn from the sections already written.",
        uses_prior=True,
    ),
)

SECTIONS_BY_NAME: Dict[str, SectionSpec] = {section.name: section for section in DEFAULT_SECTIONS}


def select_sections(
    sections: Sequence[SectionSpec], skip: Sequence[str] = ()
) -> List[SectionSpec]:
    skipped = set(skip)
    return [section for section in sections if section.name not in skipped]


__all__ = ["DEFAULT_SECTIONS", "SECTIONS_BY_NAME", "SectionSpec", "select_sections"]
