import re
from typing import List, Optional

SEPARATOR_PATTERN = re.compile(r"[.\-_]")
TRAILING_DIGITS_PATTERN = re.compile(r"\d+$")
NON_ALPHANUMERIC_PATTERN = re.compile(r"[^0-9A-Za-z]")


def expand_course_code(course_code: Optional[str]) -> List[str]:
    """
    Sinh các prefix pattern cho một course code, theo thứ tự chèn, không trùng.

    Ví dụ: "it02.059" -> ["it02.059", "it02", "it02.", "IT02.059", "it02059"]
    (code gốc, cắt tại dấu phân cách đầu tiên, bỏ số cuối, uppercase,
    chỉ giữ chữ/số). Consumer tự quyết định ngữ nghĩa prefix/wildcard.
    """
    if not course_code or not course_code.strip():
        return []

    code = course_code.strip()
    candidates = [
        code,
        SEPARATOR_PATTERN.split(code, maxsplit=1)[0],
        TRAILING_DIGITS_PATTERN.sub("", code),
        code.upper(),
        NON_ALPHANUMERIC_PATTERN.sub("", code),
    ]

    return list(dict.fromkeys(pattern for pattern in candidates if pattern))
