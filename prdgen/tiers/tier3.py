"""Tier-3: detailed sections, generated one at a time.

A section that fails is logged and left out of the detailed stratum; the
batch carries on with the next one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from ..config import Settings
from ..errors import PipelineCancelled, PrdGenError, TierFailedError
from ..llm.client import CompletionClient
from ..logging import get_logger
from ..merge import merge_sections
from ..models import ClientQuestion, EvidenceDocument, PrdDocument
from ..prompting.builder import FittedPrompt, PromptBuilder
from ..retry import Fatal, Ok, RetryExecutor
from ..runtime import CancellationToken, ProgressReporter
from .sections import DEFAULT_SECTIONS, SectionSpec, select_sections

TEMPLATE = "section_user.j2"


@dataclass
class SectionFailure:
    section: str
    error: str
    attempts: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"section": self.section, "error": self.error, "attempts": self.attempts}


@dataclass
class Tier3Result:
    document: PrdDocument
    questions: List[ClientQuestion] = field(default_factory=list)
    succeeded: List[str] = field(default_factory=list)
    failed: List[SectionFailure] = field(default_factory=list)


class Tier3Orchestrator:
    """Runs the ordered section catalogue against the completion service."""

    def __init__(
        self,
        client: CompletionClient,
        settings: Settings,
        *,
        executor: RetryExecutor | None = None,
        builder: PromptBuilder | None = None,
        sections: Sequence[SectionSpec] = DEFAULT_SECTIONS,
    ) -> None:
        self.client = client
        self.settings = settings
        self.executor = executor or RetryExecutor()
        self.builder = builder or PromptBuilder()
        self.sections = tuple(sections)
        self.logger = get_logger("tier3")

    async def run(
        self,
        document: PrdDocument,
        evidence: Sequence[EvidenceDocument],
        *,
        progress: ProgressReporter | None = None,
        cancel_token: CancellationToken | None = None,
        skip_sections: Sequence[str] = (),
    ) -> Tier3Result:
        reporter = progress or ProgressReporter()
        snapshot = document.clone()
        skip = tuple(skip_sections) + tuple(self.settings.skip_sections)
        selected = select_sections(self.sections, skip)
        total = len(selected)

        generated: Dict[str, Any] = {}
        questions: List[ClientQuestion] = []
        failed: List[SectionFailure] = []

        for index, section in enumerate(selected):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            reporter.report(
                round(100 * index / total) if total else 0,
                f"Generating {section.title} ({index + 1}/{total})",
            )
            try:
                content, section_questions = await self._generate(
                    section, snapshot, evidence, generated, cancel_token
                )
            except PipelineCancelled:
                raise
            except PrdGenError as exc:
                attempts = getattr(exc, "attempts", 0)
                self.logger.error("Section %s failed: %s", section.name, exc)
                failed.append(SectionFailure(section.name, str(exc), attempts))
                continue
            generated[section.name] = content
            questions.extend(section_questions)
            self.logger.info("Section %s generated", section.name)

        merged = merge_sections(snapshot, generated)
        merged.metadata["sectionsGenerated"] = list(generated)
        merged.metadata["sectionsFailed"] = [failure.section for failure in failed]
        reporter.report(100, f"Detailed sections complete ({len(generated)}/{total})")
        if failed:
            self.logger.warning(
                "%d of %d sections failed: %s",
                len(failed),
                total,
                ", ".join(failure.section for failure in failed),
            )
        return Tier3Result(
            document=merged,
            questions=questions,
            succeeded=list(generated),
            failed=failed,
        )

    async def _generate(
        self,
        section: SectionSpec,
        document: PrdDocument,
        evidence: Sequence[EvidenceDocument],
        prior: Dict[str, Any],
        cancel_token: CancellationToken | None,
    ) -> tuple[Any, List[ClientQuestion]]:
        prompt = self._fit(section, document, evidence, prior)
        self.logger.debug(
            "Section %s prompt: ~%d tokens, %d evidence documents",
            section.name,
            prompt.estimated_tokens,
            len(prompt.evidence),
        )

        async def _operation() -> str:
            return await self.client.complete(
                prompt.system,
                prompt.user,
                json_response=True,
                temperature=self.settings.tier3_temperature,
            )

        outcome = await self.executor.execute(
            _operation,
            self.settings.retry_policy,
            cancel_token=cancel_token,
            label=f"section {section.name}",
        )
        if isinstance(outcome, Fatal):
            raise TierFailedError(
                str(outcome.error),
                attempts=outcome.attempts,
                estimated_tokens=prompt.estimated_tokens,
                cause=outcome.error,
            ) from outcome.error
        if not isinstance(outcome, Ok):
            raise TierFailedError(
                f"Unexpected outcome {outcome!r}",
                attempts=0,
                estimated_tokens=prompt.estimated_tokens,
            )
        return section.parse(outcome.value)

    def _fit(
        self,
        section: SectionSpec,
        document: PrdDocument,
        evidence: Sequence[EvidenceDocument],
        prior: Dict[str, Any],
    ) -> FittedPrompt:
        context = self.builder.document_context(document, detailed_facts=True)
        context.update(
            section_title=section.title,
            instructions=section.instructions,
            prior_sections=dict(prior) if section.uses_prior else {},
            response_key=section.response_key,
        )
        return self.builder.fit(
            TEMPLATE,
            system=section.system_prompt,
            evidence=evidence,
            ceiling=self.settings.tier3_max_tokens,
            context=context,
        )


__all__ = ["SectionFailure", "Tier3Orchestrator", "Tier3Result"]
