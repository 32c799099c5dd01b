"""End-to-end pipeline: facts, evidence, strategic tier, detailed tier, assembly."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .config import ConfigError, PrdGenConfig, Settings, load_config, resolve_settings
from .evidence import MODES, EvidenceCollector
from .llm import CompletionClient, LLMRunner, RunnerCompletionClient
from .logging import get_logger
from .merge import assemble
from .models import ClientQuestion, PrdDocument, QuestionLog
from .prompting.builder import PromptBuilder
from .retry import RetryExecutor
from .runtime import CancellationToken, ProgressCallback, ProgressReporter
from .tiers.sections import DEFAULT_SECTIONS, SectionSpec
from .tiers.tier1 import FactExtractor, Tier1Result, build_skeleton, utc_timestamp
from .tiers.tier2 import Tier2Orchestrator
from .tiers.tier3 import SectionFailure, Tier3Orchestrator


@dataclass
class PipelineResult:
    """Final document and the ordered question log of one run."""

    document: PrdDocument
    questions: List[ClientQuestion] = field(default_factory=list)
    generated_at: str = ""
    degraded: bool = False
    failed_sections: List[SectionFailure] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return assemble(self.document, self.questions, generated_at=self.generated_at)


class Orchestrator:
    """Coordinates a generation run as a sequence of tiers."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        extractor: FactExtractor | None = None,
        collector: EvidenceCollector | None = None,
        client: CompletionClient | None = None,
        executor: RetryExecutor | None = None,
        prompt_builder: PromptBuilder | None = None,
        sections: Sequence[SectionSpec] = DEFAULT_SECTIONS,
    ) -> None:
        self._settings = settings
        self.extractor = extractor or FactExtractor()
        self.collector = collector or EvidenceCollector(mode="full", scanner=self.extractor.scanner)
        self._client = client
        self.executor = executor or RetryExecutor()
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.sections = tuple(sections)
        self.logger = get_logger("orchestrator")

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def scan(self, path: str | Path) -> Tier1Result:
        """Run Tier-1 only; no completion service is involved."""
        repo_path = Path(path).expanduser().resolve()
        settings = self._resolve_settings(repo_path)
        return self.extractor.extract(repo_path, enabled=settings.detectors or None)

    async def generate(
        self,
        path: str | Path,
        *,
        brief_text: str | None = None,
        progress: ProgressCallback | ProgressReporter | None = None,
        cancel_token: CancellationToken | None = None,
        tier1_only: bool = False,
        skip_sections: Sequence[str] = (),
    ) -> PipelineResult:
        repo_path = Path(path).expanduser().resolve()
        reporter = progress if isinstance(progress, ProgressReporter) else ProgressReporter(progress)
        token = cancel_token or CancellationToken()

        reporter.report(10, "Analyzing repository structure")
        settings = self._resolve_settings(repo_path)
        self.logger.info("Starting generation for %s", repo_path)
        tier1 = self.extractor.extract(repo_path, enabled=settings.detectors or None)
        document = build_skeleton(tier1)
        questions = QuestionLog()
        reporter.report(40, f"Extracted facts from {tier1.file_count} files")
        token.raise_if_cancelled()

        if tier1_only:
            document.metadata["tiersCompleted"] = ["tier1"]
            reporter.report(100, "Technical facts extracted")
            return self._result(document, questions)

        evidence = self.collector.collect(repo_path, brief_text=brief_text, facts=tier1.facts)
        strategic_types = MODES["tier2"]
        strategic_evidence = [doc for doc in evidence if strategic_types is None or doc.type in strategic_types]
        reporter.report(50, f"Collected {len(evidence)} evidence documents")
        token.raise_if_cancelled()

        client = self._resolve_client(settings)
        tier2 = Tier2Orchestrator(client, settings, executor=self.executor, builder=self.prompt_builder)
        try:
            strategic = await tier2.run(
                document,
                strategic_evidence,
                progress=reporter.scaled(50, 60),
                cancel_token=token,
            )
        except Exception as exc:
            self._log_exception("Strategic generation failed", exc)
            raise
        document = strategic.document
        questions.extend(strategic.questions)
        token.raise_if_cancelled()

        reporter.report(70, "Generating detailed sections")
        tier3 = Tier3Orchestrator(
            client,
            settings,
            executor=self.executor,
            builder=self.prompt_builder,
            sections=self.sections,
        )
        detailed = await tier3.run(
            document,
            evidence,
            progress=reporter.scaled(70, 90),
            cancel_token=token,
            skip_sections=skip_sections,
        )
        document = detailed.document
        questions.extend(detailed.questions)
        document.metadata["tiersCompleted"] = ["tier1", "tier2", "tier3"]

        result = self._result(document, questions, degraded=strategic.degraded, failed=detailed.failed)
        reporter.report(100, "Document assembled")
        self.logger.info(
            "Generation complete: %d detailed sections, %d questions",
            len(detailed.succeeded),
            len(result.questions),
        )
        return result

    def run(self, path: str | Path, **kwargs: Any) -> PipelineResult:
        """Synchronous wrapper around :meth:`generate`."""
        return asyncio.run(self.generate(path, **kwargs))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _result(
        self,
        document: PrdDocument,
        questions: QuestionLog,
        *,
        degraded: bool = False,
        failed: Optional[List[SectionFailure]] = None,
    ) -> PipelineResult:
        generated_at = utc_timestamp()
        document.metadata["generatedAt"] = generated_at
        return PipelineResult(
            document=document,
            questions=list(questions.snapshot()),
            generated_at=generated_at,
            degraded=degraded,
            failed_sections=list(failed or []),
        )

    def _resolve_settings(self, repo_path: Path) -> Settings:
        if self._settings is not None:
            return self._settings
        return resolve_settings(self._load_config(repo_path))

    def _resolve_client(self, settings: Settings) -> CompletionClient:
        if self._client is None:
            self._client = RunnerCompletionClient(LLMRunner.from_settings(settings))
        return self._client

    def _load_config(self, repo_path: Path) -> PrdGenConfig:
        try:
            return load_config(repo_path)
        except ConfigError as exc:
            self.logger.warning("Ignoring unreadable configuration: %s", exc)
            return PrdGenConfig(root=repo_path)

    def _log_exception(self, message: str, exc: Exception) -> None:
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.exception("%s: %s", message, exc)
        else:
            self.logger.error("%s: %s", message, exc)


__all__ = ["Orchestrator", "PipelineResult"]
