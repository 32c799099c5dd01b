"""Tests for the prompt builder."""

from __future__ import annotations

import random
from pathlib import Path

import pytest

from prdgen.budget import estimate_tokens
from prdgen.errors import PromptBudgetError
from prdgen.models import EvidenceDocument
from prdgen.prompting.builder import PromptBuilder
from prdgen.prompting.constants import STRATEGIC_FIELDS, TIER2_SYSTEM_PROMPT
from tests._fixtures.fake_client import sample_document, sample_evidence


@pytest.fixture
def simple_builder(tmp_path: Path) -> PromptBuilder:
    templates = tmp_path / "templates"
    templates.mkdir()
    (templates / "simple.j2").write_text(
        "Header for {{ project_name }}\n"
        "{% for doc in evidence %}\n"
        "### {{ doc.title }}\n"
        "{{ doc.content }}\n"
        "{% endfor %}\n",
        encoding="utf-8",
    )
    return PromptBuilder(templates)


def test_tier2_template_renders_document_context() -> None:
    builder = PromptBuilder()
    context = builder.document_context(sample_document(), detailed_facts=False)
    context.update(strategic_fields=list(STRATEGIC_FIELDS), max_questions=7)

    prompt = builder.fit(
        "tier2_user.j2",
        system=TIER2_SYSTEM_PROMPT,
        evidence=[],
        ceiling=10_000,
        context=context,
    )

    assert prompt.user.startswith("Project: Acme\nDetected stack: react\n")
    assert "(no supporting documents were provided)" in prompt.user
    assert "at most 7 entries" in prompt.user
    assert prompt.estimated_tokens == estimate_tokens(TIER2_SYSTEM_PROMPT) + estimate_tokens(prompt.user)


def test_fit_keeps_all_evidence_when_it_fits(simple_builder: PromptBuilder) -> None:
    evidence = sample_evidence(3, size=20)

    prompt = simple_builder.fit("simple.j2", system="sys", evidence=evidence, ceiling=5_000, context={"project_name": "Acme"})

    assert prompt.evidence == evidence
    assert all(document.title in prompt.user for document in evidence)
    assert prompt.ceiling == 5_000


def test_fit_raises_when_fixed_prompt_exceeds_ceiling(simple_builder: PromptBuilder) -> None:
    with pytest.raises(PromptBudgetError) as info:
        simple_builder.fit("simple.j2", system="s" * 700, evidence=[], ceiling=100, context={"project_name": "Acme"})

    assert info.value.ceiling == 100
    assert info.value.estimated_tokens > 100


@pytest.mark.parametrize("seed", range(8))
def test_fit_never_exceeds_ceiling_and_preserves_order(simple_builder: PromptBuilder, seed: int) -> None:
    rng = random.Random(seed)
    evidence = [
        EvidenceDocument(
            id=f"doc-{index}",
            type="repo_docs",
            title=f"Doc {index}",
            content="word " * rng.randint(10, 600),
        )
        for index in range(rng.randint(1, 12))
    ]
    ceiling = rng.randint(200, 1_500)

    prompt = simple_builder.fit("simple.j2", system="system", evidence=evidence, ceiling=ceiling, context={"project_name": "Acme"})

    assert prompt.estimated_tokens <= ceiling
    assert [document.id for document in prompt.evidence] == [document.id for document in evidence[: len(prompt.evidence)]]
    for kept, original in zip(prompt.evidence, evidence):
        assert original.content.startswith(kept.content.split("\n\n[Content truncated", 1)[0])
