"""
Similarity Scorer

- cosine trên term-frequency vector (enhanced: token > 2 ký tự, dedup: không lọc)
- edit-distance similarity cho chuỗi ngắn
- answer-set similarity đối xứng (best match A->B, B->A rồi lấy trung bình)

Mọi giá trị trả về nằm trong [0, 1]. Input là text đã normalize.
"""

import math
from collections import Counter
from typing import List, Sequence

import numpy as np
from rapidfuzz.distance import Levenshtein
from sklearn.feature_extraction.text import CountVectorizer
from sklearn.metrics.pairwise import cosine_similarity as sk_cosine_similarity

from quiz_matcher.text_normalizer import term_frequencies, tokenize

ENHANCED_MIN_LENGTH = 3
GENERAL_MIN_LENGTH = 1


def clamp(value: float) -> float:
    if value != value:  # NaN
        return 0.0
    return min(1.0, max(0.0, float(value)))


def tf_cosine(tf1: Counter, tf2: Counter) -> float:
    """Cosine giữa hai TF vector; vector rỗng -> 0"""
    if not tf1 or not tf2:
        return 0.0

    common = sorted(set(tf1) & set(tf2))
    if not common:
        return 0.0

    dot = sum(tf1[token] * tf2[token] for token in common)
    norm1 = sum(count * count for count in tf1.values())
    norm2 = sum(count * count for count in tf2.values())
    # sqrt(n1*n2) thay vì sqrt(n1)*sqrt(n2) để cosine(a, a) == 1.0 chính xác
    return clamp(dot / math.sqrt(norm1 * norm2))


def cosine(text1: str, text2: str, min_length: int = GENERAL_MIN_LENGTH) -> float:
    if not text1 or not text2:
        return 0.0
    return tf_cosine(term_frequencies(text1, min_length), term_frequencies(text2, min_length))


def edit_distance_similarity(text1: str, text2: str) -> float:
    """1 - levenshtein / max(len)"""
    if not text1 or not text2:
        return 0.0
    return clamp(Levenshtein.normalized_similarity(text1, text2))


def question_similarity(
    text1: str,
    text2: str,
    min_length: int = ENHANCED_MIN_LENGTH,
    fuzzy: bool = False,
    short_text_max_length: int = 64,
) -> float:
    """
    Similarity giữa hai câu hỏi đã normalize.

    Mặc định chỉ dùng cosine. Với fuzzy=True và cả hai chuỗi đều ngắn,
    lấy max(cosine, edit-distance) vì cosine quá thô với câu ngắn/gõ sai.
    """
    score = cosine(text1, text2, min_length)
    if fuzzy and text1 and text2 and max(len(text1), len(text2)) <= short_text_max_length:
        score = max(score, edit_distance_similarity(text1, text2))
    return score


def pairwise_matrix(texts1: Sequence[str], texts2: Sequence[str], min_length: int = GENERAL_MIN_LENGTH) -> np.ndarray:
    """Ma trận cosine len(texts1) x len(texts2)"""
    tfs1 = [term_frequencies(text, min_length) for text in texts1]
    tfs2 = [term_frequencies(text, min_length) for text in texts2]
    matrix = np.zeros((len(tfs1), len(tfs2)), dtype=float)
    for i, tf1 in enumerate(tfs1):
        for j, tf2 in enumerate(tfs2):
            matrix[i, j] = tf_cosine(tf1, tf2)
    return matrix


def answer_set_similarity(
    answers1: Sequence[str],
    answers2: Sequence[str],
    min_length: int = GENERAL_MIN_LENGTH,
) -> float:
    """
    Similarity giữa hai tập đáp án, không phụ thuộc thứ tự.

    Với mỗi đáp án bên A lấy best match bên B, lấy trung bình; làm ngược lại
    B->A; kết quả là trung bình hai chiều.
    """
    answers1 = [answer for answer in answers1 if answer]
    answers2 = [answer for answer in answers2 if answer]
    if not answers1 or not answers2:
        return 0.0

    matrix = pairwise_matrix(answers1, answers2, min_length)
    forward = float(matrix.max(axis=1).mean())
    backward = float(matrix.max(axis=0).mean())
    return clamp((forward + backward) / 2)


def similarity_to_corpus(query: str, corpus: Sequence[str], min_length: int = GENERAL_MIN_LENGTH) -> np.ndarray:
    """
    Cosine giữa một query và cả corpus trong một lần tính ma trận (scikit-learn).

    Dùng để lọc nhanh pool record khi dedup; giá trị cuối cùng vẫn được tính
    lại bằng cosine() cho các candidate qua vòng lọc.
    """
    scores = np.zeros(len(corpus), dtype=float)
    if not query or not corpus:
        return scores

    query_tokens = tokenize(query, min_length)
    if not query_tokens:
        return scores

    vectorizer = CountVectorizer(analyzer=lambda text: tokenize(text, min_length))
    matrix = vectorizer.fit_transform([query, *corpus])

    scores = sk_cosine_similarity(matrix[0], matrix[1:]).ravel()
    return np.clip(scores, 0.0, 1.0)


def weighted_score(components: List[float], weights: List[float]) -> float:
    """Tổng có trọng số, clamp về [0, 1]"""
    return clamp(sum(component * weight for component, weight in zip(components, weights)))
