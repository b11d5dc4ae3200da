from typing import List, Optional, Sequence
import logging
import time

from quiz_matcher.coarse_retriever import CoarseRetriever
from quiz_matcher.config import Settings, settings as default_settings
from quiz_matcher.exceptions import ValidationError
from quiz_matcher.keyword_matcher import EnhancedKeywordMatcher
from quiz_matcher.models import CandidateQuestion, MatchOptions, MatchResult, QueryQuestion
from quiz_matcher.question_store import QuestionStore

logger = logging.getLogger(__name__)


def validate_options(options: MatchOptions) -> None:
    if not 0.0 <= options.threshold <= 1.0:
        raise ValidationError(f"Invalid threshold: {options.threshold}. Must be between 0.0 and 1.0")
    if options.max_results < 1:
        raise ValidationError(f"Invalid max_results: {options.max_results}. Must be >= 1")
    if options.coarse_size < 1:
        raise ValidationError(f"Invalid coarse_size: {options.coarse_size}. Must be >= 1")


class HybridOrchestrator:
    """
    Hybrid search = Coarse Retriever (search index) + Enhanced Keyword Matcher

    Luồng cho mỗi câu hỏi:
    1. Normalize + lấy candidate thô từ search index (recall)
    2. Nếu không dùng index hoặc index trả về ít candidate và có course_id
       -> bổ sung record của course từ store
    3. Fine ranking (precision) + gate theo threshold
    Mọi lỗi phụ thuộc đều degrade về "không match": điền sai đáp án còn tệ
    hơn không điền.
    """

    def __init__(
        self,
        coarse_retriever: CoarseRetriever,
        matcher: Optional[EnhancedKeywordMatcher] = None,
        store: Optional[QuestionStore] = None,
        settings: Settings = default_settings,
    ):
        self.coarse_retriever = coarse_retriever
        self.matcher = matcher or EnhancedKeywordMatcher(settings)
        self.store = store
        self.settings = settings

    async def _store_candidates(self, course_id: str) -> List[CandidateQuestion]:
        try:
            records = await self.store.find_by_course(course_id, self.settings.dedup_pool_size)
        except Exception as e:
            logger.warning(f"Question store read failed for course {course_id}: {e}, skipping store fallback")
            return []
        return [CandidateQuestion.from_record(record) for record in records]

    async def collect_candidates(self, question: QueryQuestion, options: MatchOptions) -> List[CandidateQuestion]:
        candidates: List[CandidateQuestion] = []
        if options.use_coarse_index:
            candidates = await self.coarse_retriever.retrieve(
                question.question_text, options.course_code, options.coarse_size
            )

        needs_fallback = not options.use_coarse_index or len(candidates) < options.max_results
        if self.store is not None and options.course_id and needs_fallback:
            seen = {candidate.id for candidate in candidates}
            for candidate in await self._store_candidates(options.course_id):
                if candidate.id not in seen:
                    seen.add(candidate.id)
                    candidates.append(candidate)

        return candidates

    async def match(
        self,
        question: QueryQuestion,
        options: Optional[MatchOptions] = None,
        question_index: int = 0,
    ) -> MatchResult:
        options = options or MatchOptions()
        validate_options(options)

        start_time = time.time()
        candidates = await self.collect_candidates(question, options)
        retrieved_time = time.time()

        result = self.matcher.rank(
            question,
            candidates,
            threshold=options.threshold,
            max_results=options.max_results,
            fuzzy=options.fuzzy,
            question_index=question_index,
        )

        logger.debug(
            f"Question {question_index}: {len(candidates)} candidates "
            f"(retrieval {retrieved_time - start_time:.3f}s, ranking {time.time() - retrieved_time:.3f}s) "
            f"-> confidence {result.confidence_score:.3f}, has_match={result.has_match}"
        )
        return result

    async def match_single(
        self,
        question_text: str,
        answer_texts: Optional[Sequence[str]] = None,
        options: Optional[MatchOptions] = None,
    ) -> MatchResult:
        question = QueryQuestion(question_text=question_text, answer_texts=list(answer_texts or []))
        return await self.match(question, options)
