"""
Fingerprint Hasher - hash nội dung đã normalize để dò duplicate chính xác O(1)

Fingerprint chỉ là bước dò đầu tiên trong phạm vi một course, luôn được xác
nhận lại bằng so sánh chuỗi trước khi coi là duplicate.
"""

import hashlib
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from quiz_matcher.text_normalizer import normalize_answers, normalize_text

FIELD_SEPARATOR = "\x1f"


def canonical_content(question_text: Optional[str], answer_texts: Optional[Sequence[str]]) -> Tuple[str, str]:
    """(normalized question, normalized answers join) - giữ thứ tự đáp án"""
    question = normalize_text(question_text)
    answers = FIELD_SEPARATOR.join(normalize_answers(answer_texts))
    return question, answers


def fingerprint(question_text: Optional[str], answer_texts: Optional[Sequence[str]]) -> str:
    """SHA-256 hex digest của question ⊕ answer-set đã normalize"""
    question, answers = canonical_content(question_text, answer_texts)
    payload = f"{question}{FIELD_SEPARATOR}{answers}".encode("utf-8")
    return hashlib.sha256(payload).hexdigest()


class FingerprintIndex:
    """Map fingerprint -> records của một course"""

    def __init__(self, records: Iterable = ()):
        self._buckets: Dict[str, List[Tuple[Tuple[str, str], object]]] = {}
        for record in records:
            self.add(record)

    def add(self, record) -> str:
        content = canonical_content(record.question_text, record.answer_texts)
        key = fingerprint(record.question_text, record.answer_texts)
        self._buckets.setdefault(key, []).append((content, record))
        return key

    def find_exact(self, question_text: Optional[str], answer_texts: Optional[Sequence[str]]):
        """Trả về record trùng khớp tuyệt đối hoặc None"""
        key = fingerprint(question_text, answer_texts)
        content = canonical_content(question_text, answer_texts)
        for stored_content, record in self._buckets.get(key, []):
            if stored_content == content:
                return record
        return None

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._buckets.values())
