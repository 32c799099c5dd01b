"""Prompt templates and builders for the generation tiers."""

from .builder import FittedPrompt, PromptBuilder
from .constants import STRATEGIC_FIELDS, TIER2_SYSTEM_PROMPT, TIER3_SYSTEM_PREAMBLE

__all__ = [
    "FittedPrompt",
    "PromptBuilder",
    "STRATEGIC_FIELDS",
    "TIER2_SYSTEM_PROMPT",
    "TIER3_SYSTEM_PREAMBLE",
]
