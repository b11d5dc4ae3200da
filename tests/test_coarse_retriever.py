import asyncio

from conftest import FailingIndex, PrefixIndex, SlowIndex

from quiz_matcher.coarse_retriever import CoarseRetriever
from quiz_matcher.config import Settings
from quiz_matcher.models import CandidateQuestion
from quiz_matcher.search_index import InMemorySearchIndex

QUESTION = "<p>Chức năng của thiết bị đầu vào?</p>"


def test_failing_index_returns_empty(test_settings):
    index = FailingIndex()
    retriever = CoarseRetriever(index, test_settings)

    assert asyncio.run(retriever.retrieve(QUESTION, "it02.059")) == []
    # index lỗi -> không thử tiếp các pattern còn lại
    assert index.calls == 1


def test_slow_index_times_out(test_settings):
    retriever = CoarseRetriever(SlowIndex(delay=1.0), test_settings)
    assert asyncio.run(retriever.retrieve(QUESTION)) == []


def test_no_index():
    assert asyncio.run(CoarseRetriever(None).retrieve(QUESTION)) == []


def test_empty_question_skips_search(test_settings):
    index = PrefixIndex(None, [])
    assert asyncio.run(CoarseRetriever(index, test_settings).retrieve("<p> </p>")) == []
    assert index.prefixes == []


def test_course_pattern_fallback(test_settings):
    hit = CandidateQuestion(id="q1", question_text="Chức năng của thiết bị đầu vào?")
    index = PrefixIndex("it02", [hit])

    candidates = asyncio.run(CoarseRetriever(index, test_settings).retrieve(QUESTION, "it02.059"))

    assert [candidate.id for candidate in candidates] == ["q1"]
    assert index.prefixes == ["it02.059", "it02"]


def test_course_pattern_fallback_disabled():
    hit = CandidateQuestion(id="q1", question_text="Chức năng của thiết bị đầu vào?")
    index = PrefixIndex("it02", [hit])
    settings = Settings(course_pattern_fallback=False)

    assert asyncio.run(CoarseRetriever(index, settings).retrieve(QUESTION, "it02.059")) == []
    assert index.prefixes == ["it02.059"]


def test_no_course_code_searches_without_prefix(test_settings):
    hit = CandidateQuestion(id="q1", question_text="Chức năng của thiết bị đầu vào?")
    index = PrefixIndex(None, [hit])

    candidates = asyncio.run(CoarseRetriever(index, test_settings).retrieve(QUESTION))
    assert len(candidates) == 1
    assert index.prefixes == [None]


def test_in_memory_index_prefix_is_case_insensitive(test_settings, sample_records):
    retriever = CoarseRetriever(InMemorySearchIndex(sample_records), test_settings)

    candidates = asyncio.run(retriever.retrieve(QUESTION, "it02"))
    assert candidates[0].id == "q1"
    assert candidates[0].relevance_score > 0

    assert asyncio.run(retriever.retrieve(QUESTION, "CS101")) == []
