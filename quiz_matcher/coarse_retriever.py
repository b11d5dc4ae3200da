from typing import List, Optional
import asyncio
import logging
import time

from quiz_matcher.config import Settings, settings as default_settings
from quiz_matcher.course_patterns import expand_course_code
from quiz_matcher.models import CandidateQuestion
from quiz_matcher.search_index import SearchIndex
from quiz_matcher.text_normalizer import extract_question_text

logger = logging.getLogger(__name__)


class CoarseRetriever:
    """
    Bước 1 của hybrid search: lấy candidate thô từ search index (ưu tiên recall)

    Index lỗi, không tương thích hoặc timeout -> log warning và trả về list
    rỗng, pipeline chạy tiếp với 0 candidate thay vì dừng.
    """

    def __init__(self, search_index: Optional[SearchIndex], settings: Settings = default_settings):
        self.search_index = search_index
        self.settings = settings

    async def _search_once(self, query_text: str, course_prefix: Optional[str], size: int) -> Optional[List[CandidateQuestion]]:
        """None nghĩa là index lỗi (khác với 0 kết quả)"""
        try:
            return await asyncio.wait_for(
                self.search_index.search(query_text, course_prefix, size),
                timeout=self.settings.search_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Search index timed out after {self.settings.search_timeout_seconds}s, falling back to empty results")
        except Exception as e:
            logger.warning(f"Search index failed: {e}, falling back to empty results")
        return None

    async def retrieve(
        self,
        question_html: str,
        course_code: Optional[str] = None,
        size: Optional[int] = None,
    ) -> List[CandidateQuestion]:
        """
        Args:
            question_html: Câu hỏi gốc (HTML) - chỉ lấy plain text làm query
            course_code: Course code để lọc prefix, None = không lọc
            size: Số candidate tối đa

        Returns:
            Candidate theo thứ tự relevance giảm dần của index
        """
        if self.search_index is None:
            return []

        query_text = extract_question_text(question_html)
        if not query_text:
            return []

        size = size or self.settings.default_coarse_size
        patterns = expand_course_code(course_code) or [None]
        if not self.settings.course_pattern_fallback:
            patterns = patterns[:1]

        start_time = time.time()
        candidates: List[CandidateQuestion] = []
        for pattern in patterns:
            if pattern is not None:
                logger.debug(f"🔍 Searching with courseCode prefix: \"{pattern}*\"")
            results = await self._search_once(query_text, pattern, size)
            if results is None:
                return []
            candidates = results
            if candidates:
                break

        logger.debug(f"Coarse retrieval: {len(candidates)} candidates in {time.time() - start_time:.3f}s")
        return candidates
