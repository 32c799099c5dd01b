"""Tests for prdgen.budget."""

from __future__ import annotations

import random

import pytest

from prdgen.budget import (
    MIN_TRUNCATION_TOKENS,
    chunk,
    estimate_tokens,
    halve,
    summarize_evidence,
    total_tokens,
    truncate_document,
)
from prdgen.models import EvidenceDocument


def _doc(index: int, length: int) -> EvidenceDocument:
    return EvidenceDocument(
        id=f"doc-{index}",
        type="repo_docs",
        title=f"Doc {index}",
        content="x" * length,
    )


def test_estimate_tokens_rounds_up() -> None:
    assert estimate_tokens("") == 0
    assert estimate_tokens("abc") == 1
    assert estimate_tokens("a" * 7) == 2
    assert estimate_tokens("a" * 8) == 3


def test_chunk_keeps_everything_that_fits() -> None:
    documents = [_doc(1, 350), _doc(2, 350)]

    selected = chunk(documents, 1000)

    assert selected == documents


def test_chunk_truncates_first_overflowing_document_and_stops() -> None:
    documents = [_doc(1, 700), _doc(2, 7000), _doc(3, 70)]

    selected = chunk(documents, 1000)

    assert [document.id for document in selected] == ["doc-1", "doc-2"]
    assert selected[0] is documents[0]
    truncated = selected[1]
    assert "[Content truncated - " in truncated.content
    assert "characters omitted to fit token budget]" in truncated.content
    assert total_tokens(selected) <= 1000
    # Inputs are untouched.
    assert documents[1].content == "x" * 7000


def test_chunk_skips_truncation_when_little_budget_remains() -> None:
    documents = [_doc(1, 3150), _doc(2, 7000)]

    selected = chunk(documents, 950)

    assert [document.id for document in selected] == ["doc-1"]
    assert 950 - total_tokens(selected) <= MIN_TRUNCATION_TOKENS


def test_chunk_with_zero_budget_returns_nothing() -> None:
    assert chunk([_doc(1, 10)], 0) == []


def test_truncate_document_returns_none_when_marker_does_not_fit() -> None:
    assert truncate_document(_doc(1, 5000), 5) is None


def test_truncate_document_returns_original_when_within_budget() -> None:
    document = _doc(1, 35)
    assert truncate_document(document, 10) is document


@pytest.mark.parametrize("seed", range(25))
def test_chunk_never_exceeds_budget_and_preserves_order(seed: int) -> None:
    rng = random.Random(seed)
    documents = [_doc(index, rng.randint(0, 20_000)) for index in range(rng.randint(0, 12))]
    budget = rng.randint(0, 12_000)

    selected = chunk(documents, budget)

    assert total_tokens(selected) <= budget
    ids = [document.id for document in selected]
    assert ids == [document.id for document in documents[: len(selected)]]
    # Every kept document except possibly the last is unchanged.
    for kept, original in zip(selected[:-1], documents):
        assert kept is original


def test_halve_takes_first_half_rounded_down() -> None:
    documents = [_doc(index, 10) for index in range(5)]

    assert [document.id for document in halve(documents)] == ["doc-0", "doc-1"]
    assert halve([]) == []
    assert halve(documents[:1]) == []


def test_summarize_evidence_lists_titles_with_previews() -> None:
    documents = [
        EvidenceDocument(id="a", type="repo_readme", title="README", content="Hello\nworld"),
        EvidenceDocument(id="b", type="repo_docs", title="Long", content="y" * 600),
    ]

    summary = summarize_evidence(documents)

    lines = summary.splitlines()
    assert lines[0] == "1. [repo_readme] README: Hello world"
    assert lines[1].startswith("2. [repo_docs] Long: ")
    assert lines[1].endswith(" ...")
