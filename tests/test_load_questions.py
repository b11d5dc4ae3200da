import pandas as pd

from load_questions import rows_to_questions


def test_rows_to_questions():
    df = pd.DataFrame(
        [
            {
                "question": "Chức năng của thiết bị đầu vào?",
                "answers": "Nhập dữ liệu | Xuất dữ liệu",
                "correct_answers": "Nhập dữ liệu",
                "explanation": None,
                "course_code": "IT02.059",
            },
            {"question": None, "answers": "A|B", "correct_answers": None, "explanation": None, "course_code": None},
        ]
    )

    questions = rows_to_questions(df)

    assert len(questions) == 1
    assert questions[0].answer_texts == ["Nhập dữ liệu", "Xuất dữ liệu"]
    assert questions[0].correct_answer_texts == ["Nhập dữ liệu"]
    assert questions[0].explanation_text is None
    assert questions[0].course_code == "IT02.059"


def test_rows_without_optional_columns():
    df = pd.DataFrame([{"question": "CPU là gì?", "answers": "Bộ xử lý|Bộ nhớ"}])

    questions = rows_to_questions(df)

    assert questions[0].correct_answer_texts == []
    assert questions[0].course_code is None
