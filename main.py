import time

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from typing import List, Optional
from quiz_matcher.bulk_pipeline import BulkPipeline
from quiz_matcher.coarse_retriever import CoarseRetriever
from quiz_matcher.config import settings
from quiz_matcher.exceptions import SearchIndexUnavailableError, ValidationError
from quiz_matcher.models import (
    BulkOptions,
    BulkResult,
    MatchOptions,
    MatchResult,
    QueryQuestion,
    QueryQuestionWithAnswers,
    StoredQuestionRecord,
    UpsertBatchResult,
)
from quiz_matcher.orchestrator import HybridOrchestrator
from quiz_matcher.question_store import InMemoryQuestionStore
from quiz_matcher.search_index import ElasticsearchSearchIndex, InMemorySearchIndex
import uvicorn
from contextlib import asynccontextmanager
import logging

# Cấu hình logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
    ]
)
logger = logging.getLogger(__name__)

# Global variables để store instances
question_store = None
search_index = None
orchestrator = None
pipeline = None

# Define lifespan context manager for startup/shutdown events
@asynccontextmanager
async def lifespan(app: FastAPI):
    global question_store, search_index, orchestrator, pipeline

    print("🚀 Initializing Question Matching components...")

    question_store = InMemoryQuestionStore()

    if settings.use_elasticsearch:
        print(f"🔄 Connecting to Elasticsearch at {settings.elasticsearch_url}...")
        search_index = ElasticsearchSearchIndex(settings=settings)
        try:
            await search_index.ensure_index()
            print(f"✅ Elasticsearch index '{settings.questions_index}' ready")
        except SearchIndexUnavailableError as e:
            # vẫn chạy được: coarse retrieval trả về rỗng, fallback sang store
            print(f"⚠️ Elasticsearch unavailable: {e}")
    else:
        print("⚠️ Elasticsearch disabled - using in-memory search index")
        search_index = InMemorySearchIndex()

    orchestrator = HybridOrchestrator(
        CoarseRetriever(search_index, settings),
        store=question_store,
        settings=settings,
    )
    pipeline = BulkPipeline(orchestrator, store=question_store, search_index=search_index, settings=settings)

    print("✅ Question Matching service is ready!")

    yield

    print("🔄 Shutting down application...")
    if search_index is not None:
        await search_index.close()
    print("✅ Application shutdown complete")

# Initialize FastAPI with lifespan
app = FastAPI(title="Question Matching API", lifespan=lifespan)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

class MatchRequest(BaseModel):
    question_text: str
    answer_texts: List[str] = Field(default_factory=list)
    options: MatchOptions = Field(default_factory=MatchOptions)

class BulkMatchRequest(BaseModel):
    questions: List[QueryQuestion]
    options: BulkOptions = Field(default_factory=BulkOptions)

class BulkSearchRequest(BaseModel):
    questions: List[QueryQuestion]
    course_id: str
    threshold: Optional[float] = None
    max_results: Optional[int] = None

class BulkUpsertRequest(BaseModel):
    questions: List[QueryQuestionWithAnswers]
    course_id: str

@app.get("/health")
async def health_check():
    """
    Health check endpoint for production monitoring
    """
    if pipeline is None:
        return {"status": "unhealthy", "error": "Pipeline not initialized"}

    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": "1.0.0",
        "services": {
            "question_store": "running",
            "search_index": "elasticsearch" if settings.use_elasticsearch else "in-memory",
            "stored_questions": await question_store.count(),
        }
    }

@app.post("/match", response_model=MatchResult)
async def match(request: MatchRequest):
    """
    Tìm câu hỏi đã lưu khớp với một câu hỏi vừa scrape.
    Input: {"question_text": "...", "answer_texts": ["..."], "options": {"threshold": 0.7}}
    """
    try:
        return await orchestrator.match_single(request.question_text, request.answer_texts, request.options)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error matching question: {e}")
        raise HTTPException(status_code=500, detail=f"Error matching question: {str(e)}")

@app.post("/bulk-match", response_model=BulkResult)
async def bulk_match(request: BulkMatchRequest):
    """Auto-fill đáp án cho nhiều câu hỏi, kết quả theo đúng thứ tự input"""
    try:
        return await pipeline.bulk_match(request.questions, request.options)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error in bulk match: {e}")
        raise HTTPException(status_code=500, detail=f"Error in bulk match: {str(e)}")

@app.post("/bulk-search", response_model=BulkResult)
async def bulk_search(request: BulkSearchRequest):
    """Precision search cho admin trên các câu hỏi đã lưu của một course"""
    try:
        return await pipeline.bulk_search(
            request.questions, request.course_id, request.threshold, request.max_results
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error in bulk search: {e}")
        raise HTTPException(status_code=500, detail=f"Error in bulk search: {str(e)}")

@app.post("/questions/bulk-upsert", response_model=UpsertBatchResult)
async def bulk_upsert(request: BulkUpsertRequest):
    """Ingest câu hỏi kèm đáp án: merge vào câu trùng hoặc tạo mới"""
    try:
        return await pipeline.bulk_deduplicate_upsert(request.questions, request.course_id)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error in bulk upsert: {e}")
        raise HTTPException(status_code=500, detail=f"Error in bulk upsert: {str(e)}")

@app.get("/questions/{question_id}", response_model=StoredQuestionRecord)
async def get_question(question_id: str):
    """Get a stored question by id"""
    record = await question_store.find_by_id(question_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Question not found: {question_id}")
    return record

if __name__ == "__main__":
    try:
        print("🔥 Starting Question Matching Server...")
        uvicorn.run(
            "main:app",
            host="0.0.0.0",
            port=8000,
            reload=False,
            log_level="info"
        )
    except KeyboardInterrupt:
        print("\n🛑 Server stopped by user")
    except Exception as e:
        print(f"❌ Error starting server: {e}")
        import traceback
        traceback.print_exc()
