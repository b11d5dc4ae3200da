"""
Precision search cho admin (bulk search trên record đã lưu của một course)

Khác với luồng auto-fill (EnhancedKeywordMatcher), điểm ở đây dành cho người
đọc: 0.5*question + 0.3*answer (+ 0.2*explanation nếu explanation > 0.7),
match type theo field trội nhất.
"""

from typing import List, Optional, Sequence

from quiz_matcher.config import Settings, settings as default_settings
from quiz_matcher.models import CandidateQuestion, MatchCandidate, MatchResult, MatchType, QueryQuestion, StoredQuestionRecord
from quiz_matcher.similarity import GENERAL_MIN_LENGTH, answer_set_similarity, clamp, cosine
from quiz_matcher.text_normalizer import normalize_answers, normalize_text


class PrecisionSearchScorer:
    def __init__(self, settings: Settings = default_settings):
        self.settings = settings

    def weighted_score(self, question_sim: float, answer_sim: float, explanation_sim: float = 0.0) -> float:
        s = self.settings
        score = question_sim * s.precision_question_weight + answer_sim * s.precision_answer_weight
        if explanation_sim > s.explanation_gate:
            score += explanation_sim * s.explanation_weight
        return clamp(score)

    def classify(self, question_sim: float, answer_sim: float, explanation_sim: float) -> MatchType:
        s = self.settings
        if question_sim > s.dominant_field_threshold:
            return MatchType.QUESTION
        if answer_sim > s.dominant_field_threshold:
            return MatchType.ANSWER
        if explanation_sim > s.explanation_gate:
            return MatchType.EXPLANATION
        return MatchType.COMBINED

    def score(
        self,
        query_question: str,
        query_answers: Sequence[str],
        record: StoredQuestionRecord,
        retrieval_rank: int = 0,
    ) -> MatchCandidate:
        record_question = normalize_text(record.question_text)
        record_answers = normalize_answers(record.answer_texts)

        question_sim = cosine(query_question, record_question, GENERAL_MIN_LENGTH)
        answer_sim = answer_set_similarity(query_answers, record_answers, GENERAL_MIN_LENGTH)

        explanation_sim: Optional[float] = None
        if record.explanation_text:
            explanation_sim = cosine(query_question, normalize_text(record.explanation_text), GENERAL_MIN_LENGTH)

        score = self.weighted_score(question_sim, answer_sim, explanation_sim or 0.0)
        return MatchCandidate(
            record=CandidateQuestion.from_record(record),
            question_similarity=question_sim,
            answer_set_similarity=answer_sim,
            explanation_similarity=explanation_sim,
            weighted_score=score,
            confidence=score,
            match_type=self.classify(question_sim, answer_sim, explanation_sim or 0.0),
            explanation=f"Similarity: {round(score * 100)}%",
            retrieval_rank=retrieval_rank,
        )

    def search(
        self,
        question: QueryQuestion,
        records: Sequence[StoredQuestionRecord],
        threshold: float,
        max_results: Optional[int] = None,
        question_index: int = 0,
    ) -> MatchResult:
        """Chấm toàn bộ record, giữ các match >= threshold, giảm dần theo điểm"""
        query_question = normalize_text(question.question_text)
        query_answers = normalize_answers(question.answer_texts)

        scored = [self.score(query_question, query_answers, record, rank) for rank, record in enumerate(records)]
        scored = sorted(scored, key=lambda match: match.weighted_score, reverse=True)
        matches: List[MatchCandidate] = [match for match in scored if match.confidence >= threshold]
        if max_results is not None:
            matches = matches[:max_results]

        result = MatchResult.no_match(question, question_index)
        result.all_matches = matches
        if scored:
            result.confidence_score = scored[0].confidence
        if matches:
            result.best_match = matches[0]
            result.has_match = True
            result.match_type = matches[0].match_type
        return result
