import asyncio

import pytest
from conftest import FailingIndex

from quiz_matcher.coarse_retriever import CoarseRetriever
from quiz_matcher.exceptions import ValidationError
from quiz_matcher.models import MatchOptions, MatchType
from quiz_matcher.orchestrator import HybridOrchestrator, validate_options
from quiz_matcher.question_store import InMemoryQuestionStore
from quiz_matcher.search_index import InMemorySearchIndex


def build_orchestrator(records, settings, index=None, with_store=True):
    index = index if index is not None else InMemorySearchIndex(records)
    store = InMemoryQuestionStore(records) if with_store else None
    return HybridOrchestrator(CoarseRetriever(index, settings), store=store, settings=settings)


def test_exact_question_scenario(sample_records, test_settings):
    orchestrator = build_orchestrator(sample_records, test_settings)

    result = asyncio.run(
        orchestrator.match_single("Chức năng của thiết bị đầu vào?", ["Nhập dữ liệu", "Xuất dữ liệu"])
    )

    assert result.has_match
    assert result.match_type == MatchType.EXACT
    assert result.confidence_score == 1.0
    assert result.best_match.record.id == "q1"
    assert result.best_match.record.correct_answer_texts == ["Nhập dữ liệu"]
    assert result.error is None


def test_no_overlap_scenario(sample_records, test_settings):
    orchestrator = build_orchestrator(sample_records, test_settings)

    result = asyncio.run(orchestrator.match_single("Thủ đô của Pháp là gì?", ["Paris", "Lyon"]))

    assert not result.has_match
    assert result.best_match is None
    assert result.match_type == MatchType.PARTIAL
    assert result.confidence_score < 0.7


def test_failing_index_degrades_to_no_match(sample_records, test_settings):
    orchestrator = build_orchestrator(sample_records, test_settings, index=FailingIndex(), with_store=False)

    result = asyncio.run(orchestrator.match_single("Chức năng của thiết bị đầu vào?", ["Nhập dữ liệu"]))

    assert not result.has_match
    assert result.confidence_score == 0.0
    assert result.all_matches == []
    assert result.error is None
    assert result.original_question == "Chức năng của thiết bị đầu vào?"


def test_store_fallback_when_index_fails(sample_records, test_settings):
    orchestrator = build_orchestrator(sample_records, test_settings, index=FailingIndex())

    result = asyncio.run(
        orchestrator.match_single(
            "Chức năng của thiết bị đầu vào?",
            ["Nhập dữ liệu"],
            MatchOptions(course_id="course-1"),
        )
    )

    assert result.has_match
    assert result.best_match.record.id == "q1"


def test_store_only_when_coarse_index_disabled(sample_records, test_settings):
    orchestrator = build_orchestrator(sample_records, test_settings, index=FailingIndex())

    result = asyncio.run(
        orchestrator.match_single(
            "Bộ nhớ RAM dùng để làm gì?",
            options=MatchOptions(course_id="course-1", use_coarse_index=False),
        )
    )

    assert orchestrator.coarse_retriever.search_index.calls == 0
    assert result.best_match.record.id == "q2"


def test_candidates_are_not_duplicated(sample_records, test_settings):
    orchestrator = build_orchestrator(sample_records, test_settings)
    options = MatchOptions(course_id="course-1", max_results=10, threshold=0.0)

    result = asyncio.run(orchestrator.match_single("Chức năng của thiết bị đầu vào?", options=options))
    ids = [match.record.id for match in result.all_matches]
    assert sorted(ids) == ["q1", "q2", "q3"]


@pytest.mark.parametrize(
    "options",
    [MatchOptions(threshold=1.5), MatchOptions(threshold=-0.1), MatchOptions(max_results=0), MatchOptions(coarse_size=0)],
)
def test_invalid_options(options):
    with pytest.raises(ValidationError):
        validate_options(options)


def test_match_rejects_invalid_threshold(sample_records, test_settings):
    orchestrator = build_orchestrator(sample_records, test_settings)
    with pytest.raises(ValidationError):
        asyncio.run(orchestrator.match_single("CPU là gì?", options=MatchOptions(threshold=2.0)))
