#!/usr/bin/env python3
"""
Question Loader - nạp ngân hàng câu hỏi từ Excel/CSV vào question store + search index

File cần có cột 'question' và 'answers' (các đáp án cách nhau bởi '|').
Cột tùy chọn: 'correct_answers' (cách nhau bởi '|'), 'explanation', 'course_code'.
Câu hỏi trùng (theo luật dedup) được merge vào record đã có thay vì tạo mới.

Usage:
    python load_questions.py data/questions.xlsx COURSE_ID
    python load_questions.py data/questions.csv COURSE_ID --test "Chức năng của thiết bị đầu vào?"
"""

import asyncio
import os
import sys
from typing import List, Optional

import pandas as pd

from quiz_matcher.bulk_pipeline import BulkPipeline
from quiz_matcher.coarse_retriever import CoarseRetriever
from quiz_matcher.config import settings
from quiz_matcher.exceptions import SearchIndexUnavailableError
from quiz_matcher.models import MatchOptions, QueryQuestionWithAnswers
from quiz_matcher.orchestrator import HybridOrchestrator
from quiz_matcher.question_store import InMemoryQuestionStore
from quiz_matcher.search_index import ElasticsearchSearchIndex, InMemorySearchIndex

REQUIRED_COLUMNS = ("question", "answers")


def _cell(row, column: str) -> Optional[str]:
    if column not in row.index:
        return None
    value = str(row[column]).strip()
    if value.lower() in ["nan", "none", ""]:
        return None
    return value


def _split(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split("|") if part.strip()]


def rows_to_questions(df: pd.DataFrame) -> List[QueryQuestionWithAnswers]:
    """Chuyển DataFrame thành danh sách câu hỏi, bỏ qua dòng không có question"""
    questions = []
    for idx, row in df.iterrows():
        question_text = _cell(row, "question")
        if not question_text:
            print(f"⚠️  Skipping row {idx}: empty question")
            continue
        questions.append(
            QueryQuestionWithAnswers(
                question_text=question_text,
                answer_texts=_split(_cell(row, "answers")),
                correct_answer_texts=_split(_cell(row, "correct_answers")),
                explanation_text=_cell(row, "explanation"),
                course_code=_cell(row, "course_code"),
            )
        )
    return questions


def read_table(path: str) -> pd.DataFrame:
    if path.lower().endswith(".csv"):
        return pd.read_csv(path)
    return pd.read_excel(path)


class QuestionLoader:
    def __init__(self, pipeline: BulkPipeline):
        self.pipeline = pipeline

    async def load_file(self, path: str, course_id: str) -> bool:
        """
        Load file vào course

        Args:
            path (str): Đường dẫn file .xlsx/.xls/.csv
            course_id (str): Course nhận câu hỏi
        """
        if not os.path.exists(path):
            print(f"❌ File not found at: {path}")
            return False

        print(f"📁 Loading questions from: {path}")
        df = await asyncio.get_event_loop().run_in_executor(None, lambda: read_table(path))
        print(f"📊 Loaded {len(df)} rows")

        missing = [column for column in REQUIRED_COLUMNS if column not in df.columns]
        if missing:
            print(f"❌ File must contain columns: {', '.join(REQUIRED_COLUMNS)} (missing: {', '.join(missing)})")
            return False

        questions = rows_to_questions(df)
        if not questions:
            print("❌ No valid questions found")
            return False

        print(f"🔄 Upserting {len(questions)} questions into course '{course_id}'...")
        result = await self.pipeline.bulk_deduplicate_upsert(questions, course_id)

        print(f"✅ Created: {result.created} | Merged: {result.merged} | Errors: {len(result.errors)}")
        for error in result.errors[:10]:
            print(f"   - {error}")

        print("\n📊 Sample records:")
        saved = [record for record in result.records if record is not None]
        for i, record in enumerate(saved[:3]):
            print(f"  {i+1}. {record.question_text[:60]}")
            print(f"     Correct: {', '.join(record.correct_answer_texts)[:60]}")
        return True


async def build_pipeline() -> BulkPipeline:
    store = InMemoryQuestionStore()
    if settings.use_elasticsearch:
        search_index = ElasticsearchSearchIndex(settings=settings)
        try:
            await search_index.ensure_index()
        except SearchIndexUnavailableError as e:
            print(f"⚠️ Elasticsearch unavailable, questions will not be indexed: {e}")
    else:
        search_index = InMemorySearchIndex()

    orchestrator = HybridOrchestrator(CoarseRetriever(search_index, settings), store=store, settings=settings)
    return BulkPipeline(orchestrator, store=store, search_index=search_index, settings=settings)


async def main(argv: List[str]):
    if len(argv) < 2:
        print(__doc__)
        return

    path, course_id = argv[0], argv[1]
    test_query = argv[argv.index("--test") + 1] if "--test" in argv[:-1] else None

    print("🚀 Loading question bank...")
    print("=" * 60)

    pipeline = await build_pipeline()
    try:
        success = await pipeline_load(pipeline, path, course_id)
        if success and test_query:
            print(f"\n🧪 Testing match for '{test_query}'...")
            result = await pipeline.orchestrator.match_single(
                test_query, options=MatchOptions(course_id=course_id)
            )
            if result.has_match:
                best = result.best_match
                print(f"  ✅ {best.record.question_text[:80]}")
                print(f"     Confidence: {best.confidence:.3f} ({best.match_type.value}) - {best.explanation}")
            else:
                print(f"  ❌ No match (best confidence: {result.confidence_score:.3f})")
    finally:
        if pipeline.search_index is not None:
            await pipeline.search_index.close()

    if not success:
        print("\n❌ Failed to load questions!")


async def pipeline_load(pipeline: BulkPipeline, path: str, course_id: str) -> bool:
    loader = QuestionLoader(pipeline)
    try:
        return await loader.load_file(path, course_id)
    except Exception as e:
        print(f"❌ Error loading questions: {e}")
        import traceback
        traceback.print_exc()
        return False


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1:]))
