import pytest

from quiz_matcher.text_normalizer import (
    extract_question_text,
    fold_diacritics,
    normalize_answers,
    normalize_keywords,
    normalize_text,
    tokenize,
)


def test_normalize_strips_html_and_diacritics():
    assert normalize_text("<p>Chức năng của <b>thiết bị</b> đầu vào?</p>") == "chuc nang cua thiet bi dau vao?"


def test_normalize_unescapes_entities_before_stripping_tags():
    assert normalize_text("&lt;b&gt;RAM&lt;/b&gt; là gì") == "ram la gi"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("a. Bộ nhớ RAM", "bo nho ram"),
        ("B) Ổ cứng", "o cung"),
        ("1. Bàn phím", "ban phim"),
        ("a. b) Máy in", "may in"),
    ],
)
def test_normalize_removes_enumeration_prefix(raw, expected):
    assert normalize_text(raw) == expected


def test_normalize_collapses_whitespace():
    assert normalize_text("  Thiết   bị\n\tđầu  vào  ") == "thiet bi dau vao"


@pytest.mark.parametrize("empty", [None, ""])
def test_normalize_empty_input(empty):
    assert normalize_text(empty) == ""


@pytest.mark.parametrize(
    "raw",
    [
        "<p>Chức năng của <b>thiết bị</b> đầu vào?</p>",
        "a. b) Máy in",
        "&amp;lt;i&amp;gt;Đáp án&amp;lt;/i&amp;gt;",
        "Tom &amp; Jerry",
        "ĐẠI HỌC   Bách Khoa",
    ],
)
def test_normalize_is_idempotent(raw):
    once = normalize_text(raw)
    assert normalize_text(once) == once


def test_fold_diacritics_covers_vietnamese_vowels():
    assert fold_diacritics("ăâđêôơư") == "aadeoou"
    assert fold_diacritics("ỳýỵỷỹ") == "yyyyy"


def test_normalize_keywords_drops_short_tokens_and_punctuation():
    assert normalize_keywords("Chức năng của CPU là gì?") == "chuc nang cua cpu"


def test_normalize_answers_keeps_order_and_drops_empty():
    assert normalize_answers(["a. RAM", "", None, "ROM"]) == ["ram", "rom"]
    assert normalize_answers(None) == []


def test_tokenize_min_length():
    assert tokenize("cpu la gi", 3) == ["cpu"]
    assert tokenize("cpu, la-gi", 1) == ["cpu", "la", "gi"]


def test_extract_question_text_keeps_diacritics():
    assert extract_question_text("<p>Chức năng&nbsp;của <b>CPU</b></p>") == "Chức năng của CPU"
    assert extract_question_text(None) == ""
