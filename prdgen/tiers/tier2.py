"""Tier-2: strategic fields from facts plus evidence, under a hard deadline.

States: preparing -> calling(full evidence) -> done, or on deadline
calling(half the evidence) -> done (degraded) or failed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from ..budget import halve
from ..config import Settings
from ..errors import DeadlineExceededError, MalformedResponseError, TierFailedError
from ..llm.client import CompletionClient
from ..logging import get_logger
from ..merge import merge_strategic
from ..models import ClientQuestion, EvidenceDocument, PrdDocument
from ..prompting.builder import FittedPrompt, PromptBuilder
from ..prompting.constants import STRATEGIC_FIELDS, TIER2_SYSTEM_PROMPT
from ..retry import Deadline, Fatal, Ok, Outcome, RetryExecutor, race_deadline
from ..runtime import CancellationToken, ProgressReporter
from .responses import load_json_object, parse_questions, require_keys

REQUIRED_KEYS = ("updatedJson", "questionsForClient")
TEMPLATE = "tier2_user.j2"


@dataclass
class Tier2Result:
    document: PrdDocument
    questions: List[ClientQuestion] = field(default_factory=list)
    degraded: bool = False
    calls: int = 1
    estimated_tokens: int = 0
    evidence_used: int = 0


class Tier2Orchestrator:
    """Drives the strategic generation call with one degrade-and-retry cycle."""

    def __init__(
        self,
        client: CompletionClient,
        settings: Settings,
        *,
        executor: RetryExecutor | None = None,
        builder: PromptBuilder | None = None,
    ) -> None:
        self.client = client
        self.settings = settings
        self.executor = executor or RetryExecutor()
        self.builder = builder or PromptBuilder()
        self.logger = get_logger("tier2")

    async def run(
        self,
        document: PrdDocument,
        evidence: Sequence[EvidenceDocument],
        *,
        progress: ProgressReporter | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> Tier2Result:
        reporter = progress or ProgressReporter()
        snapshot = document.clone()
        reporter.report(0, "Preparing strategic analysis")

        prompt = self._fit(snapshot, evidence)
        reporter.report(
            20,
            f"Evidence chunked: {len(prompt.evidence)} of {len(evidence)} documents "
            f"(~{prompt.estimated_tokens} tokens)",
        )

        reporter.report(50, "Generating strategic fields")
        outcome = await self._call(prompt, cancel_token)
        calls = 1
        degraded = False

        if isinstance(outcome, Deadline):
            self.logger.warning(
                "Timeout with full evidence after %gs (~%d tokens, %d documents); retrying with reduced evidence",
                outcome.timeout,
                prompt.estimated_tokens,
                len(prompt.evidence),
            )
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            prompt = self._fit(snapshot, halve(prompt.evidence))
            reporter.report(60, f"Retrying with reduced evidence ({len(prompt.evidence)} documents)")
            outcome = await self._call(prompt, cancel_token)
            calls = 2
            degraded = True
            if isinstance(outcome, Deadline):
                raise DeadlineExceededError(
                    timeout=outcome.timeout,
                    attempts=calls,
                    estimated_tokens=prompt.estimated_tokens,
                )

        if isinstance(outcome, Fatal):
            raise TierFailedError(
                f"Strategic generation failed after {outcome.attempts} attempts: {outcome.error}",
                attempts=outcome.attempts,
                estimated_tokens=prompt.estimated_tokens,
                cause=outcome.error,
            ) from outcome.error
        if not isinstance(outcome, Ok):
            raise TierFailedError(
                f"Unexpected outcome from strategic generation: {outcome!r}",
                attempts=calls,
                estimated_tokens=prompt.estimated_tokens,
            )

        updated, questions = self._parse(outcome.value)
        merged = merge_strategic(snapshot, updated)
        if degraded:
            merged.metadata["tier2Degraded"] = True
        reporter.report(100, "Strategic fields merged")
        self.logger.info(
            "Strategic generation complete (%d questions%s)",
            len(questions),
            ", degraded evidence" if degraded else "",
        )
        return Tier2Result(
            document=merged,
            questions=questions,
            degraded=degraded,
            calls=calls,
            estimated_tokens=prompt.estimated_tokens,
            evidence_used=len(prompt.evidence),
        )

    def _fit(self, document: PrdDocument, evidence: Sequence[EvidenceDocument]) -> FittedPrompt:
        context = self.builder.document_context(document, detailed_facts=False)
        context["strategic_fields"] = list(STRATEGIC_FIELDS)
        context["max_questions"] = self.settings.tier2_max_questions
        return self.builder.fit(
            TEMPLATE,
            system=TIER2_SYSTEM_PROMPT,
            evidence=evidence,
            ceiling=self.settings.tier2_max_tokens,
            context=context,
        )

    async def _call(self, prompt: FittedPrompt, cancel_token: CancellationToken | None) -> Outcome:
        async def _operation() -> str:
            return await self.client.complete(
                prompt.system,
                prompt.user,
                json_response=True,
                temperature=self.settings.tier2_temperature,
                timeout=self.settings.tier2_deadline,
            )

        work = self.executor.execute(
            _operation,
            self.settings.retry_policy,
            cancel_token=cancel_token,
            label="strategic generation",
        )
        return await race_deadline(work, self.settings.tier2_deadline)

    def _parse(self, text: str) -> tuple[Dict[str, Any], List[ClientQuestion]]:
        payload = load_json_object(text)
        require_keys(payload, REQUIRED_KEYS)
        updated = payload["updatedJson"]
        if not isinstance(updated, dict):
            raise MalformedResponseError("'updatedJson' must be an object")
        questions = parse_questions(
            payload["questionsForClient"],
            default_field="strategic",
            limit=self.settings.tier2_max_questions,
        )
        return updated, questions


__all__ = ["REQUIRED_KEYS", "Tier2Orchestrator", "Tier2Result"]
