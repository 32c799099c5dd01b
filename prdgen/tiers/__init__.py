"""Generation tiers: deterministic facts, strategic fields, detailed sections."""

from .sections import DEFAULT_SECTIONS, SECTIONS_BY_NAME, SectionSpec, select_sections
from .tier1 import FactExtractor, Tier1Result, build_skeleton, derive_project_name
from .tier2 import Tier2Orchestrator, Tier2Result
from .tier3 import SectionFailure, Tier3Orchestrator, Tier3Result

__all__ = [
    "DEFAULT_SECTIONS",
    "FactExtractor",
    "SECTIONS_BY_NAME",
    "SectionFailure",
    "SectionSpec",
    "Tier1Result",
    "Tier2Orchestrator",
    "Tier2Result",
    "Tier3Orchestrator",
    "Tier3Result",
    "build_skeleton",
    "derive_project_name",
    "select_sections",
]
