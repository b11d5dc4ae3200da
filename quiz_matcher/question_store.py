"""
QuestionStore - contract với storage bên ngoài + implementation in-memory

Storage thật (Postgres...) nằm ngoài engine; engine chỉ đọc theo course và
ghi lại qua upsert khi merge duplicate. Uniqueness constraint chống race
"hai ingest cùng quyết định không trùng" là việc của store thật.
"""

import asyncio
from typing import Dict, List, Optional, Protocol

from quiz_matcher.models import StoredQuestionRecord, utcnow


class QuestionStore(Protocol):
    async def find_by_course(self, course_id: str, limit: int = 1000) -> List[StoredQuestionRecord]:
        ...

    async def upsert(self, record: StoredQuestionRecord) -> StoredQuestionRecord:
        ...

    async def find_by_id(self, record_id: str) -> Optional[StoredQuestionRecord]:
        ...


class InMemoryQuestionStore:
    """Store trong bộ nhớ cho dev server và test"""

    def __init__(self, records: Optional[List[StoredQuestionRecord]] = None):
        self._records: Dict[str, StoredQuestionRecord] = {}
        self._lock = asyncio.Lock()
        for record in records or []:
            self._records[record.id] = record

    async def find_by_course(self, course_id: str, limit: int = 1000) -> List[StoredQuestionRecord]:
        """Record của course, mới nhất trước, tối đa `limit`"""
        records = [record for record in self._records.values() if record.course_id == course_id]
        records.sort(key=lambda record: record.created_at, reverse=True)
        return [record.model_copy(deep=True) for record in records[:limit]]

    async def upsert(self, record: StoredQuestionRecord) -> StoredQuestionRecord:
        async with self._lock:
            if record.id in self._records:
                stored = record.model_copy(update={"updated_at": utcnow()}, deep=True)
            else:
                stored = record.model_copy(deep=True)
            self._records[stored.id] = stored
            return stored.model_copy(deep=True)

    async def find_by_id(self, record_id: str) -> Optional[StoredQuestionRecord]:
        record = self._records.get(record_id)
        return record.model_copy(deep=True) if record else None

    async def count(self) -> int:
        return len(self._records)
