"""Tests for the detailed section tier."""

from __future__ import annotations

import asyncio
import json

import pytest

from prdgen.config import Settings
from prdgen.errors import PipelineCancelled
from prdgen.retry import RetryExecutor
from prdgen.runtime import CancellationToken, ProgressReporter
from prdgen.tiers.sections import SectionSpec
from prdgen.tiers.tier3 import Tier3Orchestrator
from tests._fixtures.fake_client import ScriptedClient, no_sleep, sample_document, sample_evidence

SECTIONS = (
    SectionSpec("alpha", "Alpha", "alpha", "Write alpha."),
    SectionSpec("beta", "Beta", "beta", "Write beta."),
    SectionSpec("gamma", "Gamma", "gamma", "Write gamma."),
    SectionSpec("delta", "Delta", "delta", "Write delta."),
    SectionSpec("summary", "Summary", "summary", "Summarize.", uses_prior=True),
)


def _section_of(system: str) -> str:
    for section in SECTIONS:
        if f'"{section.title}" section' in system:
            return section.name
    raise AssertionError(f"Unexpected system prompt: {system}")


def _responder(failing: set[str] = frozenset()):
    def respond(system: str, _user: str):
        name = _section_of(system)
        if name in failing:
            return ValueError(f"{name} exploded")
        return json.dumps({name: {"text": f"{name} content"}, "questions": [f"Question about {name}?"]})

    return respond


def _orchestrator(client: ScriptedClient, **overrides) -> Tier3Orchestrator:
    return Tier3Orchestrator(
        client,
        Settings(**overrides),
        executor=RetryExecutor(sleep=no_sleep),
        sections=SECTIONS,
    )


def test_failed_section_is_isolated() -> None:
    client = ScriptedClient(responder=_responder({"gamma"}))
    document = sample_document()

    result = asyncio.run(_orchestrator(client).run(document, sample_evidence(2)))

    assert list(result.document.detailed) == ["alpha", "beta", "delta", "summary"]
    assert result.document.detailed["alpha"] == {"text": "alpha content"}
    assert result.succeeded == ["alpha", "beta", "delta", "summary"]
    assert [(failure.section, failure.attempts) for failure in result.failed] == [("gamma", 1)]
    assert "gamma exploded" in result.failed[0].error
    assert [question.field for question in result.questions] == ["alpha", "beta", "delta", "summary"]
    assert result.document.metadata["sectionsFailed"] == ["gamma"]
    assert result.document.metadata["sectionsGenerated"] == ["alpha", "beta", "delta", "summary"]
    assert result.document.facts is document.facts
    assert document.detailed == {}
    assert len(client.calls) == 5


def test_malformed_section_is_recorded_as_failure() -> None:
    def respond(system: str, user: str):
        if _section_of(system) == "beta":
            return json.dumps({"wrongKey": {}})
        return _responder()(system, user)

    client = ScriptedClient(responder=respond)

    result = asyncio.run(_orchestrator(client).run(sample_document(), []))

    assert [failure.section for failure in result.failed] == ["beta"]
    assert "beta" not in result.document.detailed
    assert len(client.calls) == 5


def test_skip_sections_from_argument_and_settings() -> None:
    client = ScriptedClient(responder=_responder())
    seen: list[int] = []

    result = asyncio.run(
        _orchestrator(client, skip_sections=("delta",)).run(
            sample_document(),
            [],
            skip_sections=["alpha"],
            progress=ProgressReporter(lambda percent, _message: seen.append(percent)),
        )
    )

    assert result.succeeded == ["beta", "gamma", "summary"]
    assert [_section_of(call.system) for call in client.calls] == ["beta", "gamma", "summary"]
    assert seen == [0, 33, 67, 100]


def test_prior_sections_only_reach_sections_that_use_them() -> None:
    client = ScriptedClient(responder=_responder())

    asyncio.run(_orchestrator(client).run(sample_document(), []))

    prompts = {_section_of(call.system): call.user for call in client.calls}
    assert "Sections already written" not in prompts["beta"]
    assert "Sections already written" in prompts["summary"]
    assert "delta content" in prompts["summary"]
    assert all(call.options["timeout"] is None for call in client.calls)


def test_cancellation_stops_between_sections() -> None:
    token = CancellationToken()

    def respond(system: str, user: str):
        if _section_of(system) == "beta":
            token.cancel("user request")
        return _responder()(system, user)

    client = ScriptedClient(responder=respond)

    with pytest.raises(PipelineCancelled, match="user request"):
        asyncio.run(_orchestrator(client).run(sample_document(), [], cancel_token=token))

    assert [_section_of(call.system) for call in client.calls] == ["alpha", "beta"]


def test_section_named_like_a_fact_cannot_replace_facts() -> None:
    sections = (SectionSpec("screens", "Screens", "screens", "Describe the screens."),)
    client = ScriptedClient([json.dumps({"screens": "HIJACKED"})])
    document = sample_document()
    tier3 = Tier3Orchestrator(client, Settings(), executor=RetryExecutor(sleep=no_sleep), sections=sections)

    result = asyncio.run(tier3.run(document, sample_evidence(1)))

    serialized = result.document.to_dict()
    assert serialized["screens"] == document.to_dict()["screens"]
    assert [screen["name"] for screen in serialized["screens"]] == ["Dashboard"]
