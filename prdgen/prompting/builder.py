"""Renders tier prompts from Jinja2 templates and fits them to a token ceiling."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from ..budget import chunk, estimate_tokens, total_tokens
from ..errors import PromptBudgetError
from ..evidence import summarize_facts
from ..models import EvidenceDocument, PrdDocument


@dataclass
class FittedPrompt:
    """System and user prompt whose combined estimate is under the ceiling."""

    system: str
    user: str
    evidence: List[EvidenceDocument] = field(default_factory=list)
    estimated_tokens: int = 0
    ceiling: int = 0


class PromptBuilder:
    """Assembles tier prompts from templates and the document aggregate."""

    def __init__(self, templates_dir: Path | None = None) -> None:
        self.templates_dir = templates_dir or Path(__file__).with_name("templates")
        self._env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
            undefined=StrictUndefined,
        )
        self._env.filters["tojson_pretty"] = _to_json

    def render(self, template: str, **context: Any) -> str:
        return self._env.get_template(template).render(**context).strip() + "\n"

    def document_context(self, document: PrdDocument, *, detailed_facts: bool) -> Dict[str, Any]:
        """Template variables shared by every tier prompt."""
        return {
            "project_name": document.project.name,
            "stack": list(document.facts.stack),
            "facts_summary": summarize_facts(document.facts, detailed=detailed_facts),
            "strategic": document.strategic,
            "detailed": document.detailed,
        }

    def fit(
        self,
        template: str,
        *,
        system: str,
        evidence: Sequence[EvidenceDocument],
        ceiling: int,
        context: Mapping[str, Any],
    ) -> FittedPrompt:
        """Render ``template`` with as much ordered evidence as ``ceiling`` allows.

        Evidence is chunked greedily; template overhead (headings, separators)
        is measured after rendering and the evidence budget shrinks by any
        excess until the full prompt fits.
        """
        base_user = self.render(template, evidence=[], **context)
        base_tokens = estimate_tokens(system) + estimate_tokens(base_user)
        if base_tokens > ceiling:
            raise PromptBudgetError(
                f"Prompt without evidence needs ~{base_tokens} tokens, above the {ceiling} ceiling",
                estimated_tokens=base_tokens,
                ceiling=ceiling,
            )

        budget = ceiling - base_tokens
        while True:
            selected = chunk(evidence, budget) if budget > 0 else []
            user = self.render(template, evidence=selected, **context)
            estimated = estimate_tokens(system) + estimate_tokens(user)
            if estimated <= ceiling or not selected:
                return FittedPrompt(
                    system=system,
                    user=user,
                    evidence=selected,
                    estimated_tokens=estimated,
                    ceiling=ceiling,
                )
            budget = min(budget, total_tokens(selected)) - (estimated - ceiling)


def _to_json(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False, sort_keys=True, default=str)


__all__ = ["FittedPrompt", "PromptBuilder"]
