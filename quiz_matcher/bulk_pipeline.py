"""
Bulk Pipeline - chạy nhiều câu hỏi trong một request

- bulk_match: auto-fill đáp án, fan-out song song (giới hạn bởi semaphore),
  kết quả trả về đúng thứ tự input
- bulk_search: precision search của admin trên record đã lưu của một course
- bulk_deduplicate_upsert: ingest câu hỏi kèm đáp án, merge vào record trùng
  hoặc tạo record mới

Lỗi của từng câu hỏi chỉ ảnh hưởng câu hỏi đó: ghi vào result.error và
danh sách errors của batch, các câu còn lại vẫn chạy.
"""

from typing import Dict, List, Optional, Sequence, Tuple
import asyncio
import logging
import time
import uuid

from quiz_matcher.config import Settings, settings as default_settings
from quiz_matcher.dedup import DedupDecider
from quiz_matcher.exceptions import ItemProcessingError, SearchIndexUnavailableError, ValidationError
from quiz_matcher.models import (
    BulkOptions,
    BulkResult,
    MatchResult,
    QueryQuestion,
    QueryQuestionWithAnswers,
    StoredQuestionRecord,
    UpsertBatchResult,
    UpsertItemResult,
)
from quiz_matcher.orchestrator import HybridOrchestrator, validate_options
from quiz_matcher.precision_search import PrecisionSearchScorer
from quiz_matcher.question_store import QuestionStore
from quiz_matcher.search_index import SearchIndex

logger = logging.getLogger(__name__)


def summarize(results: List[MatchResult], errors: List[str], start_time: float) -> BulkResult:
    """Gộp kết quả từng câu thành BulkResult"""
    matched = sum(1 for result in results if result.has_match)
    confidences = [result.best_match.confidence if result.best_match else 0.0 for result in results]
    average = sum(confidences) / len(confidences) if confidences else 0.0
    return BulkResult(
        total_questions=len(results),
        matched_questions=matched,
        average_confidence=average,
        processing_time_ms=int((time.time() - start_time) * 1000),
        results=results,
        errors=errors or None,
    )


def merge_record(existing: StoredQuestionRecord, item: QueryQuestionWithAnswers) -> StoredQuestionRecord:
    """
    Merge câu hỏi mới vào record trùng: giữ question/answers đã lưu,
    chỉ thay correct answers / explanation khi bản mới có giá trị.
    """
    update = {}
    if item.correct_answer_texts:
        update["correct_answer_texts"] = list(item.correct_answer_texts)
    if item.explanation_text:
        update["explanation_text"] = item.explanation_text
    if not existing.course_code and item.course_code:
        update["course_code"] = item.course_code
    return existing.model_copy(update=update, deep=True)


class BulkPipeline:
    def __init__(
        self,
        orchestrator: HybridOrchestrator,
        store: Optional[QuestionStore] = None,
        search_index: Optional[SearchIndex] = None,
        precision_scorer: Optional[PrecisionSearchScorer] = None,
        settings: Settings = default_settings,
    ):
        self.orchestrator = orchestrator
        self.store = store
        self.search_index = search_index
        self.precision_scorer = precision_scorer or PrecisionSearchScorer(settings)
        self.settings = settings

    async def _match_item(
        self,
        semaphore: asyncio.Semaphore,
        index: int,
        question: QueryQuestion,
        options: BulkOptions,
    ) -> Tuple[MatchResult, Optional[str]]:
        async with semaphore:
            try:
                result = await asyncio.wait_for(
                    self.orchestrator.match(question, options, question_index=index),
                    timeout=self.settings.item_timeout_seconds,
                )
                return result, None
            except asyncio.TimeoutError:
                message = f"timed out after {self.settings.item_timeout_seconds}s"
            except Exception as e:
                message = str(e) or e.__class__.__name__

        error = str(ItemProcessingError(index, message))
        logger.error(f"❌ {error}")
        return MatchResult.no_match(question, index, error=message), error

    async def bulk_match(self, questions: Sequence[QueryQuestion], options: Optional[BulkOptions] = None) -> BulkResult:
        """
        Match nhiều câu hỏi song song (tối đa `concurrency` câu cùng lúc)

        Raises:
            ValidationError: batch rỗng hoặc options không hợp lệ
        """
        if not questions:
            raise ValidationError("Questions array cannot be empty")
        options = options or BulkOptions()
        validate_options(options)

        concurrency = max(1, options.concurrency or self.settings.bulk_concurrency)
        semaphore = asyncio.Semaphore(concurrency)

        start_time = time.time()
        logger.info(f"🔍 Bulk matching {len(questions)} questions (concurrency={concurrency})")

        # gather giữ thứ tự input
        outcomes = await asyncio.gather(
            *(self._match_item(semaphore, index, question, options) for index, question in enumerate(questions))
        )
        results = [result for result, _ in outcomes]
        errors = [error for _, error in outcomes if error]

        summary = summarize(results, errors, start_time)
        logger.info(
            f"✅ Bulk match done: {summary.matched_questions}/{summary.total_questions} matched, "
            f"avg confidence {summary.average_confidence:.3f}, {summary.processing_time_ms}ms"
        )
        return summary

    async def bulk_search(
        self,
        questions: Sequence[QueryQuestion],
        course_id: str,
        threshold: Optional[float] = None,
        max_results: Optional[int] = None,
    ) -> BulkResult:
        """Precision search trên toàn bộ record (tối đa dedup_pool_size) của course"""
        if not questions:
            raise ValidationError("Questions array cannot be empty")
        if not course_id or not course_id.strip():
            raise ValidationError("course_id is required")
        threshold = self.settings.default_threshold if threshold is None else threshold
        if not 0.0 <= threshold <= 1.0:
            raise ValidationError(f"Invalid threshold: {threshold}. Must be between 0.0 and 1.0")
        if max_results is not None and max_results < 1:
            raise ValidationError(f"Invalid max_results: {max_results}. Must be >= 1")
        if self.store is None:
            raise ValidationError("Bulk search requires a question store")

        start_time = time.time()
        records = await self.store.find_by_course(course_id, self.settings.dedup_pool_size)
        logger.info(f"🔍 Bulk search: {len(questions)} questions against {len(records)} records of course {course_id}")

        results: List[MatchResult] = []
        errors: List[str] = []
        for index, question in enumerate(questions):
            try:
                results.append(self.precision_scorer.search(question, records, threshold, max_results, index))
            except Exception as e:
                error = str(ItemProcessingError(index, str(e)))
                logger.error(f"❌ {error}")
                errors.append(error)
                results.append(MatchResult.no_match(question, index, error=str(e)))

        return summarize(results, errors, start_time)

    async def _index(self, record: StoredQuestionRecord) -> None:
        if self.search_index is None:
            return
        try:
            await self.search_index.index_record(record)
        except SearchIndexUnavailableError as e:
            # store là nguồn chính, index sẽ được sync lại sau
            logger.warning(f"⚠️ Could not index question {record.id}: {e}")

    async def bulk_deduplicate_upsert(
        self,
        questions: Sequence[QueryQuestionWithAnswers],
        course_id: str,
    ) -> UpsertBatchResult:
        """
        Ingest câu hỏi kèm đáp án vào course

        Pool so sánh = tối đa dedup_pool_size record mới nhất của course, đọc
        một lần; record tạo trong batch được thêm vào decider để các câu trùng
        nhau trong cùng batch gộp lại. Ghi tuần tự theo thứ tự input.
        """
        if not questions:
            raise ValidationError("Questions array cannot be empty")
        if not course_id or not course_id.strip():
            raise ValidationError("course_id is required")
        if self.store is None:
            raise ValidationError("Bulk upsert requires a question store")

        pool = await self.store.find_by_course(course_id, self.settings.dedup_pool_size)
        decider = DedupDecider(pool, self.settings)
        logger.info(f"📥 Upserting {len(questions)} questions into course {course_id} (pool: {len(pool)} records)")

        result = UpsertBatchResult()
        # record đã merge trong batch này, để lần merge sau dùng bản mới nhất
        latest: Dict[str, StoredQuestionRecord] = {}

        for index, item in enumerate(questions):
            item_result = UpsertItemResult(index=index)
            try:
                decision = decider.decide(item)
                if decision.is_duplicate:
                    existing = latest.get(decision.matched_record.id, decision.matched_record)
                    saved = await self.store.upsert(merge_record(existing, item))
                    latest[saved.id] = saved
                    logger.debug(f"Question {index}: merged into {saved.id} ({decision.rule.value})")
                else:
                    record = StoredQuestionRecord(
                        id=str(uuid.uuid4()),
                        course_id=course_id,
                        course_code=item.course_code,
                        question_text=item.question_text,
                        answer_texts=list(item.answer_texts),
                        correct_answer_texts=list(item.correct_answer_texts),
                        explanation_text=item.explanation_text,
                    )
                    saved = await self.store.upsert(record)
                    decider.add(saved)

                # đã ghi xuống store -> giữ record kể cả khi index lỗi sau đó
                item_result.record = saved
                item_result.merged = decision.is_duplicate
                item_result.rule = decision.rule
                await self._index(saved)

                if decision.is_duplicate:
                    result.merged += 1
                else:
                    result.created += 1
            except Exception as e:
                item_result.error = str(e) or e.__class__.__name__
                error = str(ItemProcessingError(index, item_result.error))
                logger.error(f"❌ {error}")
                result.errors.append(error)

            result.items.append(item_result)
            result.records.append(item_result.record if item_result.error is None else None)

        logger.info(f"✅ Upsert done: {result.created} created, {result.merged} merged, {len(result.errors)} errors")
        return result
