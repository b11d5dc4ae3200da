"""
Enhanced Keyword Matcher - fine ranking cho candidate từ search index

Với mỗi candidate:
1. Exact question (sau normalize) -> confidence 1.0, exact
2. Có đáp án trùng khớp tuyệt đối -> confidence 0.9, exact
3. Còn lại: 0.6 * question cosine + 0.4 * answer-set similarity,
   confidence cap ở 0.95 (keyword matching không bao giờ chắc chắn 100%)
"""

from typing import List, Optional, Sequence, Tuple
import logging

from quiz_matcher.config import Settings, settings as default_settings
from quiz_matcher.models import CandidateQuestion, MatchCandidate, MatchResult, MatchType, QueryQuestion
from quiz_matcher.similarity import ENHANCED_MIN_LENGTH, answer_set_similarity, question_similarity, weighted_score
from quiz_matcher.text_normalizer import normalize_answers, normalize_text

logger = logging.getLogger(__name__)


class EnhancedKeywordMatcher:
    def __init__(self, settings: Settings = default_settings):
        self.settings = settings

    @staticmethod
    def normalize_query(question: QueryQuestion) -> Tuple[str, List[str]]:
        return normalize_text(question.question_text), normalize_answers(question.answer_texts)

    def weighted_score(self, question_sim: float, answer_sim: float) -> float:
        return weighted_score([question_sim, answer_sim], [self.settings.question_weight, self.settings.answer_weight])

    def score_candidate(
        self,
        query_question: str,
        query_answers: Sequence[str],
        candidate: CandidateQuestion,
        retrieval_rank: int = 0,
        fuzzy: bool = False,
    ) -> MatchCandidate:
        """Chấm điểm một candidate với query đã normalize"""
        candidate_question = normalize_text(candidate.question_text)
        candidate_answers = normalize_answers(candidate.answer_texts)

        question_sim = question_similarity(
            query_question,
            candidate_question,
            min_length=ENHANCED_MIN_LENGTH,
            fuzzy=fuzzy,
            short_text_max_length=self.settings.short_text_max_length,
        )
        answer_sim = answer_set_similarity(query_answers, candidate_answers, min_length=ENHANCED_MIN_LENGTH)

        # Exact question
        if query_question and query_question == candidate_question:
            return MatchCandidate(
                record=candidate,
                question_similarity=1.0,
                answer_set_similarity=answer_sim,
                weighted_score=1.0,
                confidence=1.0,
                match_type=MatchType.EXACT,
                explanation="Exact question match (100%)",
                retrieval_rank=retrieval_rank,
            )

        # Exact answer
        candidate_answer_set = set(candidate_answers)
        for answer in query_answers:
            if answer in candidate_answer_set:
                confidence = self.settings.exact_answer_confidence
                return MatchCandidate(
                    record=candidate,
                    question_similarity=question_sim,
                    answer_set_similarity=answer_sim,
                    weighted_score=confidence,
                    confidence=confidence,
                    match_type=MatchType.EXACT,
                    explanation=f'Exact answer match: "{answer}"',
                    retrieval_rank=retrieval_rank,
                )

        final_score = self.weighted_score(question_sim, answer_sim)
        logger.debug(
            f"Enhanced similarity: question={question_sim:.3f} answers={answer_sim:.3f} "
            f"final={final_score:.3f} | {query_question[:50]} <> {candidate_question[:50]}"
        )

        return MatchCandidate(
            record=candidate,
            question_similarity=question_sim,
            answer_set_similarity=answer_sim,
            weighted_score=final_score,
            confidence=min(final_score, self.settings.keyword_confidence_cap),
            match_type=MatchType.ENHANCED_KEYWORD,
            explanation=(
                f"Question: {question_sim * 100:.1f}%, Answers: {answer_sim * 100:.1f}%, "
                f"Final: {final_score * 100:.1f}%"
            ),
            retrieval_rank=retrieval_rank,
        )

    def rank(
        self,
        question: QueryQuestion,
        candidates: Sequence[CandidateQuestion],
        threshold: Optional[float] = None,
        max_results: Optional[int] = None,
        fuzzy: bool = False,
        question_index: int = 0,
    ) -> MatchResult:
        """
        Chấm điểm toàn bộ candidate, sort giảm dần theo weighted_score
        (giữ thứ tự retrieval khi bằng điểm), gate theo threshold.
        """
        threshold = self.settings.default_threshold if threshold is None else threshold
        max_results = max_results or self.settings.default_max_results

        result = MatchResult.no_match(question, question_index)
        if not candidates:
            return result

        query_question, query_answers = self.normalize_query(question)
        scored = [
            self.score_candidate(query_question, query_answers, candidate, rank, fuzzy)
            for rank, candidate in enumerate(candidates)
        ]
        # sorted() stable -> tie giữ thứ tự retrieval
        scored = sorted(scored, key=lambda match: match.weighted_score, reverse=True)

        best = scored[0]
        result.confidence_score = best.confidence
        result.all_matches = [match for match in scored if match.confidence >= threshold][:max_results]
        result.has_match = best.confidence >= threshold
        if result.has_match:
            result.best_match = best
            result.match_type = best.match_type

        return result
