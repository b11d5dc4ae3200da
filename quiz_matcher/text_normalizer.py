"""
Text Normalizer - chuẩn hóa text câu hỏi/đáp án scrape từ HTML

Pipeline: unescape HTML entity -> bỏ tag -> lowercase -> bỏ dấu tiếng Việt
-> gộp khoảng trắng -> trim -> bỏ prefix đánh số ("a.", "b) ").
Toàn bộ là pure function, không raise.
"""

import html
import re
import unicodedata
from collections import Counter
from typing import Iterable, List, Optional

TAG_PATTERN = re.compile(r"<[^>]*>")
WHITESPACE_PATTERN = re.compile(r"\s+")
PUNCTUATION_PATTERN = re.compile(r"[^\w\s]")
TOKEN_SPLIT_PATTERN = re.compile(r"[\W_]+")
# "a. ", "b) ", "1. ", "12) "
ENUMERATION_PREFIX_PATTERN = re.compile(r"^(?:[a-z]|\d{1,2})\s?[.)]\s+")

# Bảng bỏ dấu cố định
VIETNAMESE_DIACRITICS = {
    "a": "àáạảãâầấậẩẫăằắặẳẵ",
    "e": "èéẹẻẽêềếệểễ",
    "i": "ìíịỉĩ",
    "o": "òóọỏõôồốộổỗơờớợởỡ",
    "u": "ùúụủũưừứựửữ",
    "y": "ỳýỵỷỹ",
    "d": "đ",
}

_FOLDING_TABLE = str.maketrans(
    {char: base for base, chars in VIETNAMESE_DIACRITICS.items() for char in chars}
)

KEYWORD_MIN_LENGTH = 3


def _unescape(text: str) -> str:
    # &amp;lt; -> &lt; -> <
    for _ in range(3):
        unescaped = html.unescape(text)
        if unescaped == text:
            break
        text = unescaped
    return text


def strip_html(text: str) -> str:
    """Bỏ tag HTML, thay bằng khoảng trắng"""
    return TAG_PATTERN.sub(" ", text)


def fold_diacritics(text: str) -> str:
    """Bỏ dấu tiếng Việt theo bảng cố định (input đã lowercase)"""
    return text.translate(_FOLDING_TABLE)


def collapse_whitespace(text: str) -> str:
    return WHITESPACE_PATTERN.sub(" ", text).strip()


def strip_enumeration_prefix(text: str) -> str:
    # Bỏ lặp để normalize idempotent ("a. b) ..." )
    while True:
        stripped = ENUMERATION_PREFIX_PATTERN.sub("", text, count=1).strip()
        if stripped == text:
            return text
        text = stripped


def _normalize_once(text: str) -> str:
    text = unicodedata.normalize("NFC", text)
    text = _unescape(text)
    text = strip_html(text)
    text = text.lower()
    text = fold_diacritics(text)
    text = collapse_whitespace(text)
    return strip_enumeration_prefix(text)


def normalize_text(text: Optional[str]) -> str:
    """
    Chuẩn hóa text để so sánh

    Args:
        text: Raw HTML-ish string, có thể None

    Returns:
        Plain text đã lowercase, bỏ dấu, gộp khoảng trắng
    """
    if not text:
        return ""

    result = _normalize_once(str(text))

    # Bỏ dấu có thể sinh ra entity mới ("&ạmp;" -> "&amp;")
    for _ in range(3):
        if "&" not in result:
            break
        again = _normalize_once(result)
        if again == result:
            break
        result = again

    return result


def normalize_keywords(text: Optional[str]) -> str:
    """Biến thể keyword: normalize + bỏ dấu câu + bỏ token <= 2 ký tự"""
    normalized = normalize_text(text)
    if not normalized:
        return ""

    normalized = PUNCTUATION_PATTERN.sub(" ", normalized)
    words = [word for word in normalized.split() if len(word) >= KEYWORD_MIN_LENGTH]
    return " ".join(words)


def normalize_answers(answers: Optional[Iterable[Optional[str]]]) -> List[str]:
    """Normalize danh sách đáp án, giữ nguyên thứ tự, bỏ đáp án rỗng"""
    if not answers:
        return []
    normalized = (normalize_text(answer) for answer in answers)
    return [answer for answer in normalized if answer]


def tokenize(text: str, min_length: int = 1) -> List[str]:
    """Tách token theo khoảng trắng/dấu câu, giữ token có độ dài >= min_length"""
    if not text:
        return []
    return [token for token in TOKEN_SPLIT_PATTERN.split(text) if len(token) >= min_length]


def term_frequencies(text: str, min_length: int = 1) -> Counter:
    """TF vector: token -> số lần xuất hiện"""
    return Counter(tokenize(text, min_length))


def extract_question_text(question_html: Optional[str]) -> str:
    """Plain text (còn dấu) dùng làm free-text query cho search index"""
    if not question_html:
        return ""
    text = _unescape(unicodedata.normalize("NFC", str(question_html)))
    return collapse_whitespace(strip_html(text))
