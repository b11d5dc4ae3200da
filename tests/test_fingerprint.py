from conftest import make_record

from quiz_matcher.fingerprint import FingerprintIndex, fingerprint


def test_fingerprint_uses_normalized_content():
    assert fingerprint("<b>RAM</b> là gì?", ["a. Bộ nhớ"]) == fingerprint("ram la gi?", ["bo nho"])


def test_fingerprint_is_sha256_hex():
    key = fingerprint("cpu la gi", ["ram"])
    assert len(key) == 64
    int(key, 16)


def test_fingerprint_depends_on_answer_order():
    assert fingerprint("cpu la gi", ["ram", "rom"]) != fingerprint("cpu la gi", ["rom", "ram"])


def test_fingerprint_separates_question_and_answers():
    assert fingerprint("cpu la", ["gi"]) != fingerprint("cpu", ["la gi"])


def test_index_find_exact():
    record = make_record("q1", "Chức năng của thiết bị đầu vào?", ["Nhập dữ liệu", "Xuất dữ liệu"])
    index = FingerprintIndex([record])

    assert len(index) == 1
    assert index.find_exact("<p>chức năng của THIẾT BỊ đầu vào?</p>", ["nhập dữ liệu", "xuất dữ liệu"]) is record
    assert index.find_exact("Chức năng của thiết bị đầu vào?", ["Nhập dữ liệu"]) is None
