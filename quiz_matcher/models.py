"""
Data model dùng chung giữa các component: input câu hỏi, record đã lưu,
candidate, kết quả match và kết quả bulk.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from quiz_matcher.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MatchType(str, Enum):
    EXACT = "exact"
    ENHANCED_KEYWORD = "enhanced_keyword"
    PARTIAL = "partial"
    QUESTION = "question"
    ANSWER = "answer"
    EXPLANATION = "explanation"
    COMBINED = "combined"


class DedupRule(str, Enum):
    EXACT = "exact"
    QUESTION_AND_ANSWERS = "question_and_answers"
    QUESTION_AND_CORRECT_ANSWERS = "question_and_correct_answers"
    WEIGHTED_OVERALL = "weighted_overall"
    NONE = "none"


class QueryQuestion(BaseModel):
    """Câu hỏi vừa scrape, chưa biết đáp án"""
    question_text: str
    answer_texts: List[str] = Field(default_factory=list)


class QueryQuestionWithAnswers(QueryQuestion):
    """Câu hỏi kèm đáp án đúng - input cho luồng ingestion"""
    correct_answer_texts: List[str] = Field(default_factory=list)
    explanation_text: Optional[str] = None
    course_code: Optional[str] = None


class StoredQuestionRecord(BaseModel):
    id: str
    course_id: str
    course_code: Optional[str] = None
    question_text: str
    answer_texts: List[str] = Field(default_factory=list)
    correct_answer_texts: List[str] = Field(default_factory=list)
    explanation_text: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None


class CandidateQuestion(BaseModel):
    """Candidate từ search index (hoặc từ store) để fine ranker chấm điểm"""
    id: str
    course_id: Optional[str] = None
    course_code: Optional[str] = None
    question_text: str = ""
    answer_texts: List[str] = Field(default_factory=list)
    correct_answer_texts: List[str] = Field(default_factory=list)
    explanation_text: Optional[str] = None
    relevance_score: float = 0.0

    @classmethod
    def from_record(cls, record: StoredQuestionRecord, relevance_score: float = 0.0) -> "CandidateQuestion":
        return cls(
            id=record.id,
            course_id=record.course_id,
            course_code=record.course_code,
            question_text=record.question_text,
            answer_texts=list(record.answer_texts),
            correct_answer_texts=list(record.correct_answer_texts),
            explanation_text=record.explanation_text,
            relevance_score=relevance_score,
        )


class MatchCandidate(BaseModel):
    record: CandidateQuestion
    question_similarity: float = Field(0.0, ge=0.0, le=1.0)
    answer_set_similarity: float = Field(0.0, ge=0.0, le=1.0)
    explanation_similarity: Optional[float] = Field(None, ge=0.0, le=1.0)
    weighted_score: float = Field(0.0, ge=0.0, le=1.0)
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    match_type: MatchType = MatchType.ENHANCED_KEYWORD
    explanation: str = ""
    retrieval_rank: int = 0


class MatchResult(BaseModel):
    question_index: int = 0
    original_question: str = ""
    original_answers: List[str] = Field(default_factory=list)
    best_match: Optional[MatchCandidate] = None
    all_matches: List[MatchCandidate] = Field(default_factory=list)
    confidence_score: float = Field(0.0, ge=0.0, le=1.0)
    match_type: MatchType = MatchType.PARTIAL
    has_match: bool = False
    error: Optional[str] = None

    @classmethod
    def no_match(cls, question: QueryQuestion, question_index: int = 0, error: Optional[str] = None) -> "MatchResult":
        return cls(
            question_index=question_index,
            original_question=question.question_text,
            original_answers=list(question.answer_texts),
            error=error,
        )


class MatchOptions(BaseModel):
    threshold: float = Field(default_factory=lambda: settings.default_threshold)
    max_results: int = Field(default_factory=lambda: settings.default_max_results)
    coarse_size: int = Field(default_factory=lambda: settings.default_coarse_size)
    use_coarse_index: bool = True
    fuzzy: bool = False
    course_code: Optional[str] = None
    course_id: Optional[str] = None


class BulkOptions(MatchOptions):
    """Options cho bulk_match; concurrency None = dùng settings.bulk_concurrency"""
    concurrency: Optional[int] = None


class BulkResult(BaseModel):
    total_questions: int
    matched_questions: int
    average_confidence: float
    processing_time_ms: int
    results: List[MatchResult]
    errors: Optional[List[str]] = None


class DedupDecision(BaseModel):
    is_duplicate: bool
    rule: DedupRule = DedupRule.NONE
    matched_record: Optional[StoredQuestionRecord] = None
    question_similarity: float = 0.0
    answer_set_similarity: float = 0.0
    correct_answer_similarity: float = 0.0
    overall_score: float = 0.0


class UpsertItemResult(BaseModel):
    """Kết quả ingest của một câu hỏi, cùng vị trí với input"""
    index: int
    record: Optional[StoredQuestionRecord] = None
    merged: bool = False
    rule: DedupRule = DedupRule.NONE
    error: Optional[str] = None


class UpsertBatchResult(BaseModel):
    # một phần tử cho mỗi input, None khi câu hỏi đó lỗi
    records: List[Optional[StoredQuestionRecord]] = Field(default_factory=list)
    items: List[UpsertItemResult] = Field(default_factory=list)
    created: int = 0
    merged: int = 0
    errors: List[str] = Field(default_factory=list)
