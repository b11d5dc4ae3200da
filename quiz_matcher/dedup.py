"""
Dedup Decider - quyết định câu hỏi mới có trùng với record đã lưu không

Luật theo thứ tự ưu tiên (luật đầu tiên đúng sẽ thắng):
1. Question + answer-set (đã normalize) trùng khớp tuyệt đối
2. question > 0.7 và answer-set > 0.7
3. question > 0.8 và correct-answer > 0.6
4. 0.6*question + 0.3*answer-set + 0.1*correct-answer > 0.85

Chỉ luật 1 là lossless; ngưỡng 2-4 lấy từ settings.
"""

from typing import List, Optional, Sequence, Tuple
import logging

import numpy as np

from quiz_matcher.config import Settings, settings as default_settings
from quiz_matcher.fingerprint import FingerprintIndex
from quiz_matcher.models import DedupDecision, DedupRule, QueryQuestionWithAnswers, StoredQuestionRecord
from quiz_matcher.similarity import GENERAL_MIN_LENGTH, answer_set_similarity, clamp, cosine, similarity_to_corpus
from quiz_matcher.text_normalizer import normalize_answers, normalize_text

logger = logging.getLogger(__name__)

# Sai số giữa cosine của scikit-learn và cosine() thuần
PREFILTER_EPSILON = 1e-9


class DedupDecider:
    def __init__(self, pool: Sequence[StoredQuestionRecord] = (), settings: Settings = default_settings):
        self.settings = settings
        self._records: List[StoredQuestionRecord] = []
        self._questions: List[str] = []
        self._answers: List[List[str]] = []
        self._correct_answers: List[List[str]] = []
        self._fingerprints = FingerprintIndex()
        for record in pool:
            self.add(record)

    def __len__(self) -> int:
        return len(self._records)

    def add(self, record: StoredQuestionRecord) -> None:
        """Thêm record vào tập so sánh của decider (không ghi gì xuống store)"""
        self._records.append(record)
        self._questions.append(normalize_text(record.question_text))
        self._answers.append(normalize_answers(record.answer_texts))
        self._correct_answers.append(normalize_answers(record.correct_answer_texts))
        self._fingerprints.add(record)

    def overall_score(self, question_sim: float, answer_sim: float, correct_sim: float) -> float:
        s = self.settings
        return clamp(
            question_sim * s.dedup_overall_question_weight
            + answer_sim * s.dedup_overall_answer_weight
            + correct_sim * s.dedup_overall_correct_weight
        )

    def min_question_similarity(self) -> float:
        """Question similarity tối thiểu để luật 2-4 còn có thể đúng"""
        s = self.settings
        bounds = [s.dedup_question_answer_threshold, s.dedup_question_correct_threshold]
        if s.dedup_overall_question_weight > 0:
            rest = s.dedup_overall_answer_weight + s.dedup_overall_correct_weight
            bounds.append((s.dedup_overall_threshold - rest) / s.dedup_overall_question_weight)
        else:
            bounds.append(0.0)
        return clamp(min(bounds))

    def apply_rules(self, question_sim: float, answer_sim: float, correct_sim: float) -> DedupRule:
        """Luật 2-4 cho một cặp câu hỏi"""
        s = self.settings
        if question_sim > s.dedup_question_answer_threshold and answer_sim > s.dedup_answer_threshold:
            return DedupRule.QUESTION_AND_ANSWERS
        if question_sim > s.dedup_question_correct_threshold and correct_sim > s.dedup_correct_threshold:
            return DedupRule.QUESTION_AND_CORRECT_ANSWERS
        if self.overall_score(question_sim, answer_sim, correct_sim) > s.dedup_overall_threshold:
            return DedupRule.WEIGHTED_OVERALL
        return DedupRule.NONE

    def _shortlist(self, question: str) -> List[int]:
        """Index các record có question similarity đủ cao, giảm dần"""
        if not self._records:
            return []
        scores = similarity_to_corpus(question, self._questions, GENERAL_MIN_LENGTH)
        bound = self.min_question_similarity() - PREFILTER_EPSILON
        indices = np.flatnonzero(scores > bound)
        # argsort stable trên -score -> bằng điểm giữ thứ tự pool (mới nhất trước)
        order = np.argsort(-scores[indices], kind="stable")
        return [int(i) for i in indices[order]]

    def _pair_similarities(
        self, index: int, question: str, answers: List[str], correct_answers: List[str]
    ) -> Tuple[float, float, float]:
        question_sim = cosine(question, self._questions[index], GENERAL_MIN_LENGTH)
        answer_sim = answer_set_similarity(answers, self._answers[index], GENERAL_MIN_LENGTH)
        correct_sim = answer_set_similarity(correct_answers, self._correct_answers[index], GENERAL_MIN_LENGTH)
        return question_sim, answer_sim, correct_sim

    def decide(self, item: QueryQuestionWithAnswers) -> DedupDecision:
        # Luật 1: fingerprint + xác nhận bằng so sánh chuỗi
        exact = self._fingerprints.find_exact(item.question_text, item.answer_texts)
        if exact is not None:
            return DedupDecision(
                is_duplicate=True,
                rule=DedupRule.EXACT,
                matched_record=exact,
                question_similarity=1.0,
                answer_set_similarity=1.0,
                correct_answer_similarity=answer_set_similarity(
                    normalize_answers(item.correct_answer_texts),
                    normalize_answers(exact.correct_answer_texts),
                ),
                overall_score=1.0,
            )

        question = normalize_text(item.question_text)
        answers = normalize_answers(item.answer_texts)
        correct_answers = normalize_answers(item.correct_answer_texts)

        best: Optional[DedupDecision] = None
        closest: Optional[DedupDecision] = None
        for index in self._shortlist(question):
            question_sim, answer_sim, correct_sim = self._pair_similarities(index, question, answers, correct_answers)
            rule = self.apply_rules(question_sim, answer_sim, correct_sim)
            decision = DedupDecision(
                is_duplicate=rule != DedupRule.NONE,
                rule=rule,
                matched_record=self._records[index] if rule != DedupRule.NONE else None,
                question_similarity=question_sim,
                answer_set_similarity=answer_sim,
                correct_answer_similarity=correct_sim,
                overall_score=self.overall_score(question_sim, answer_sim, correct_sim),
            )
            if decision.is_duplicate:
                if best is None or decision.overall_score > best.overall_score:
                    best = decision
            elif closest is None or decision.overall_score > closest.overall_score:
                closest = decision

        if best is not None:
            logger.debug(
                f"Duplicate ({best.rule.value}) of {best.matched_record.id}: "
                f"q={best.question_similarity:.3f} a={best.answer_set_similarity:.3f} "
                f"c={best.correct_answer_similarity:.3f}"
            )
            return best

        return closest or DedupDecision(is_duplicate=False)
