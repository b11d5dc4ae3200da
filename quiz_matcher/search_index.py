"""
SearchIndex - full-text/fuzzy index bên ngoài dùng cho coarse retrieval

- SearchIndex: contract mà CoarseRetriever dùng
- ElasticsearchSearchIndex: adapter Elasticsearch (async client)
- InMemorySearchIndex: scoring token-overlap đơn giản cho dev/test

Adapter raise SearchIndexUnavailableError khi index lỗi/không tương thích;
việc degrade về danh sách rỗng là trách nhiệm của CoarseRetriever.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol

from elasticsearch import ApiError, AsyncElasticsearch, TransportError

from quiz_matcher.config import Settings, settings as default_settings
from quiz_matcher.exceptions import SearchIndexUnavailableError
from quiz_matcher.models import CandidateQuestion, StoredQuestionRecord
from quiz_matcher.text_normalizer import normalize_keywords

logger = logging.getLogger(__name__)

QUESTIONS_INDEX_SETTINGS = {
    "settings": {
        "number_of_shards": 1,
        "number_of_replicas": 0,
        "analysis": {
            "analyzer": {
                "vietnamese_folding": {
                    "type": "custom",
                    "tokenizer": "standard",
                    "filter": ["lowercase", "asciifolding"],
                }
            }
        },
    },
    "mappings": {
        "properties": {
            "question_id": {"type": "keyword"},
            "course_id": {"type": "keyword"},
            "course_code": {"type": "keyword"},
            "question_text": {
                "type": "text",
                "analyzer": "vietnamese_folding",
                "fields": {"keyword": {"type": "keyword", "ignore_above": 256}},
            },
            "answers_text": {"type": "text", "analyzer": "vietnamese_folding"},
            "correct_answers_text": {"type": "text", "analyzer": "vietnamese_folding"},
            "explanation_text": {"type": "text", "analyzer": "vietnamese_folding"},
            "created_at": {"type": "date"},
        }
    },
}


class SearchIndex(Protocol):
    async def search(self, text: str, course_prefix: Optional[str] = None, size: int = 20) -> List[CandidateQuestion]:
        ...

    async def index_record(self, record: StoredQuestionRecord) -> None:
        ...

    async def ensure_index(self) -> None:
        ...

    async def close(self) -> None:
        ...


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, list):
        return [str(item) for item in value if item is not None]
    return [str(value)]


def record_to_document(record: StoredQuestionRecord) -> Dict[str, Any]:
    return {
        "question_id": record.id,
        "course_id": record.course_id,
        "course_code": record.course_code or "",
        "question_text": record.question_text,
        "answers_text": list(record.answer_texts),
        "correct_answers_text": list(record.correct_answer_texts),
        "explanation_text": record.explanation_text,
        "created_at": record.created_at.isoformat(),
    }


def hit_to_candidate(hit: Dict[str, Any]) -> CandidateQuestion:
    source = hit.get("_source", {})
    return CandidateQuestion(
        id=str(source.get("question_id") or hit.get("_id")),
        course_id=source.get("course_id"),
        course_code=source.get("course_code"),
        question_text=source.get("question_text") or "",
        answer_texts=_as_list(source.get("answers_text")),
        correct_answer_texts=_as_list(source.get("correct_answers_text")),
        explanation_text=source.get("explanation_text"),
        relevance_score=float(hit.get("_score") or 0.0),
    )


class ElasticsearchSearchIndex:
    def __init__(self, client: Optional[AsyncElasticsearch] = None, settings: Settings = default_settings):
        self.settings = settings
        self.index_name = settings.questions_index

        if client is None:
            auth = None
            if settings.elasticsearch_username and settings.elasticsearch_password:
                auth = (settings.elasticsearch_username, settings.elasticsearch_password)
            client = AsyncElasticsearch(
                settings.elasticsearch_url,
                basic_auth=auth,
                request_timeout=settings.search_timeout_seconds,
                max_retries=3,
            )
        self.client = client

    async def ensure_index(self) -> None:
        """Tạo index nếu chưa có"""
        try:
            exists = await self.client.indices.exists(index=self.index_name)
            if not exists:
                await self.client.indices.create(index=self.index_name, **QUESTIONS_INDEX_SETTINGS)
                logger.info(f"Index {self.index_name} created successfully")
            else:
                logger.info(f"Index {self.index_name} already exists")
        except (ApiError, TransportError) as e:
            raise SearchIndexUnavailableError(f"Failed to initialize index {self.index_name}: {e}") from e

    def build_query(self, text: str, course_prefix: Optional[str] = None) -> Dict[str, Any]:
        fuzziness = self.settings.search_fuzziness
        query: Dict[str, Any] = {
            "bool": {
                "should": [
                    {
                        "match": {
                            "question_text": {
                                "query": text,
                                "fuzziness": fuzziness,
                                "operator": "or",
                                "minimum_should_match": "70%",
                                "boost": 2.0,
                            }
                        }
                    },
                    {"match": {"answers_text": {"query": text, "fuzziness": fuzziness, "boost": 1.5}}},
                    {"match": {"explanation_text": {"query": text, "fuzziness": fuzziness, "boost": 1.2}}},
                ],
                "minimum_should_match": 1,
            }
        }

        if course_prefix:
            # "IT02" khớp "IT02", "IT02.059", "it02-023"...
            query["bool"]["filter"] = [
                {"prefix": {"course_code": {"value": course_prefix, "case_insensitive": True}}}
            ]

        return query

    async def search(self, text: str, course_prefix: Optional[str] = None, size: int = 20) -> List[CandidateQuestion]:
        try:
            response = await self.client.search(
                index=self.index_name,
                query=self.build_query(text, course_prefix),
                sort=[{"_score": {"order": "desc"}}],
                size=size,
            )
        except (ApiError, TransportError) as e:
            raise SearchIndexUnavailableError(f"Search failed: {e}") from e

        return [hit_to_candidate(hit) for hit in response["hits"]["hits"]]

    async def index_record(self, record: StoredQuestionRecord) -> None:
        try:
            await self.client.index(index=self.index_name, id=record.id, document=record_to_document(record))
        except (ApiError, TransportError) as e:
            raise SearchIndexUnavailableError(f"Failed to index question {record.id}: {e}") from e

    async def close(self) -> None:
        await self.client.close()


class InMemorySearchIndex:
    """
    Index trong bộ nhớ: điểm = số keyword chung (đã normalize) giữa query và
    question/answers/explanation, boost giống query Elasticsearch.
    """

    FIELD_BOOSTS = {"question": 2.0, "answers": 1.5, "explanation": 1.2}

    def __init__(self, records: Optional[List[StoredQuestionRecord]] = None):
        self._records: Dict[str, StoredQuestionRecord] = {}
        for record in records or []:
            self._records[record.id] = record

    async def index_record(self, record: StoredQuestionRecord) -> None:
        self._records[record.id] = record

    def _score(self, query_words: set, record: StoredQuestionRecord) -> float:
        fields = {
            "question": record.question_text,
            "answers": " ".join(record.answer_texts),
            "explanation": record.explanation_text or "",
        }
        score = 0.0
        for field, text in fields.items():
            overlap = query_words & set(normalize_keywords(text).split())
            score += len(overlap) * self.FIELD_BOOSTS[field]
        return score

    async def search(self, text: str, course_prefix: Optional[str] = None, size: int = 20) -> List[CandidateQuestion]:
        query_words = set(normalize_keywords(text).split())
        if not query_words:
            return []

        prefix = course_prefix.lower() if course_prefix else None
        scored = []
        for record in self._records.values():
            if prefix and not (record.course_code or "").lower().startswith(prefix):
                continue
            score = self._score(query_words, record)
            if score > 0:
                scored.append((score, record))

        scored.sort(key=lambda item: item[0], reverse=True)
        return [CandidateQuestion.from_record(record, relevance_score=score) for score, record in scored[:size]]

    async def ensure_index(self) -> None:
        return None

    async def close(self) -> None:
        return None
