import asyncio
from typing import List, Optional

import pytest

from quiz_matcher.config import Settings
from quiz_matcher.exceptions import SearchIndexUnavailableError
from quiz_matcher.models import CandidateQuestion, StoredQuestionRecord


def make_record(
    record_id: str,
    question_text: str,
    answer_texts: List[str],
    correct_answer_texts: Optional[List[str]] = None,
    course_id: str = "course-1",
    course_code: Optional[str] = "IT02.059",
    explanation_text: Optional[str] = None,
) -> StoredQuestionRecord:
    return StoredQuestionRecord(
        id=record_id,
        course_id=course_id,
        course_code=course_code,
        question_text=question_text,
        answer_texts=answer_texts,
        correct_answer_texts=correct_answer_texts or [],
        explanation_text=explanation_text,
    )


class FailingIndex:
    """Search index luôn lỗi"""

    def __init__(self):
        self.calls = 0

    async def search(self, text, course_prefix=None, size=20):
        self.calls += 1
        raise SearchIndexUnavailableError("connection refused")

    async def index_record(self, record):
        raise SearchIndexUnavailableError("connection refused")

    async def close(self):
        return None


class SlowIndex:
    def __init__(self, delay: float = 1.0):
        self.delay = delay

    async def search(self, text, course_prefix=None, size=20):
        await asyncio.sleep(self.delay)
        return []

    async def index_record(self, record):
        return None

    async def close(self):
        return None


class PrefixIndex:
    """Chỉ trả kết quả khi course prefix khớp `hit_prefix`, ghi lại các prefix đã gọi"""

    def __init__(self, hit_prefix: Optional[str], candidates: List[CandidateQuestion]):
        self.hit_prefix = hit_prefix
        self.candidates = candidates
        self.prefixes = []

    async def search(self, text, course_prefix=None, size=20):
        self.prefixes.append(course_prefix)
        if course_prefix == self.hit_prefix:
            return self.candidates[:size]
        return []

    async def index_record(self, record):
        return None

    async def close(self):
        return None


@pytest.fixture
def test_settings():
    return Settings(
        use_elasticsearch=False,
        search_timeout_seconds=0.05,
        item_timeout_seconds=0.5,
        course_pattern_fallback=True,
    )


@pytest.fixture
def sample_records():
    return [
        make_record(
            "q1",
            "<p>Chức năng của thiết bị đầu vào?</p>",
            ["Nhập dữ liệu", "Xuất dữ liệu", "Lưu trữ dữ liệu"],
            ["Nhập dữ liệu"],
        ),
        make_record(
            "q2",
            "Bộ nhớ RAM dùng để làm gì?",
            ["Lưu trữ tạm thời", "Lưu trữ vĩnh viễn"],
            ["Lưu trữ tạm thời"],
            explanation_text="RAM là bộ nhớ truy cập ngẫu nhiên, mất dữ liệu khi tắt máy",
        ),
        make_record(
            "q3",
            "Thiết bị nào sau đây là thiết bị đầu vào",
            ["Bàn phím", "Màn hình", "Máy in", "Loa"],
            ["Bàn phím"],
        ),
    ]
