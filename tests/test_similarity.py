import math

import pytest

from quiz_matcher.similarity import (
    ENHANCED_MIN_LENGTH,
    answer_set_similarity,
    clamp,
    cosine,
    edit_distance_similarity,
    question_similarity,
    similarity_to_corpus,
    weighted_score,
)

QUESTIONS = [
    "chuc nang cua thiet bi dau vao?",
    "thiet bi nao sau day la thiet bi dau vao",
    "bo nho ram dung de lam gi?",
    "cpu la gi",
]


@pytest.mark.parametrize("text", QUESTIONS)
def test_cosine_self_similarity_is_one(text):
    assert cosine(text, text) == 1.0


def test_cosine_is_symmetric():
    for a in QUESTIONS:
        for b in QUESTIONS:
            assert cosine(a, b) == cosine(b, a)


def test_cosine_known_value():
    # thiet(2) bi(2) + 6 token chung / thêm "cua may tinh"
    a = "thiet bi nao sau day la thiet bi dau vao"
    b = "thiet bi nao sau day la thiet bi dau vao cua may tinh"
    assert cosine(a, b) == pytest.approx(14 / math.sqrt(14 * 17))


def test_cosine_no_overlap_and_empty():
    assert cosine("cpu la gi", "bo nho ram") == 0.0
    assert cosine("", "cpu") == 0.0


def test_cosine_min_length_ignores_short_tokens():
    assert cosine("la gi", "la gi", ENHANCED_MIN_LENGTH) == 0.0
    assert cosine("cpu la gi", "cpu", ENHANCED_MIN_LENGTH) == 1.0


def test_answer_set_similarity_is_order_independent():
    assert answer_set_similarity(["ram", "rom"], ["rom", "ram"]) == 1.0


def test_answer_set_similarity_partial():
    # forward 1.0, backward (1 + 0) / 2
    assert answer_set_similarity(["ram"], ["ram", "rom"]) == pytest.approx(0.75)


def test_answer_set_similarity_empty():
    assert answer_set_similarity([], ["ram"]) == 0.0
    assert answer_set_similarity(["", ""], ["ram"]) == 0.0


def test_edit_distance_similarity():
    assert edit_distance_similarity("abc", "abd") == pytest.approx(2 / 3)
    assert edit_distance_similarity("", "abc") == 0.0


def test_fuzzy_question_similarity_for_short_typos():
    plain = question_similarity("cpu la gi", "cpu la gii")
    fuzzy = question_similarity("cpu la gi", "cpu la gii", fuzzy=True)
    assert plain == pytest.approx(1 / math.sqrt(2))
    assert fuzzy == pytest.approx(0.9)


def test_fuzzy_skipped_for_long_texts():
    a = "thiet bi nao sau day la thiet bi dau vao"
    b = "thiet bi nao sau day la thiet bi dau ra"
    assert question_similarity(a, b, fuzzy=True, short_text_max_length=10) == question_similarity(a, b)


def test_similarity_to_corpus_matches_cosine():
    query = "thiet bi nao sau day la thiet bi dau vao"
    corpus = QUESTIONS + [""]
    scores = similarity_to_corpus(query, corpus)
    assert len(scores) == len(corpus)
    for score, text in zip(scores, corpus):
        assert score == pytest.approx(cosine(query, text))


def test_similarity_to_corpus_empty_query():
    assert list(similarity_to_corpus("", QUESTIONS)) == [0.0] * len(QUESTIONS)
    assert len(similarity_to_corpus("cpu", [])) == 0


def test_scores_in_unit_interval():
    assert clamp(1.5) == 1.0
    assert clamp(-0.1) == 0.0
    assert clamp(float("nan")) == 0.0
    assert weighted_score([1.0, 1.0], [0.6, 0.6]) == 1.0
