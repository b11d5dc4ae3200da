from pydantic import Field
from pydantic_settings import BaseSettings
from typing import Optional
import os
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    """Settings for the matching engine"""
    # Elasticsearch settings (coarse index)
    use_elasticsearch: bool = os.getenv("USE_ELASTICSEARCH", "False").lower() == "true"
    elasticsearch_url: str = os.getenv("ELASTICSEARCH_URL", "http://localhost:9200")
    elasticsearch_username: Optional[str] = os.getenv("ELASTICSEARCH_USERNAME")
    elasticsearch_password: Optional[str] = os.getenv("ELASTICSEARCH_PASSWORD")
    questions_index: str = os.getenv("QUESTIONS_INDEX", "questions")
    search_fuzziness: str = os.getenv("SEARCH_FUZZINESS", "AUTO")

    # Matching defaults
    default_threshold: float = float(os.getenv("DEFAULT_THRESHOLD", "0.7"))
    default_coarse_size: int = int(os.getenv("DEFAULT_COARSE_SIZE", "20"))
    default_max_results: int = int(os.getenv("DEFAULT_MAX_RESULTS", "5"))
    course_pattern_fallback: bool = os.getenv("COURSE_PATTERN_FALLBACK", "True").lower() == "true"

    # Fine ranker weights (answer auto-fill)
    question_weight: float = float(os.getenv("QUESTION_WEIGHT", "0.6"))
    answer_weight: float = float(os.getenv("ANSWER_WEIGHT", "0.4"))
    keyword_confidence_cap: float = float(os.getenv("KEYWORD_CONFIDENCE_CAP", "0.95"))
    # exact match không bao giờ dưới 0.9
    exact_answer_confidence: float = Field(
        float(os.getenv("EXACT_ANSWER_CONFIDENCE", "0.9")), ge=0.9, le=1.0, validate_default=True
    )
    short_text_max_length: int = int(os.getenv("SHORT_TEXT_MAX_LENGTH", "64"))

    # Precision bulk search weights (admin search)
    precision_question_weight: float = float(os.getenv("PRECISION_QUESTION_WEIGHT", "0.5"))
    precision_answer_weight: float = float(os.getenv("PRECISION_ANSWER_WEIGHT", "0.3"))
    explanation_weight: float = float(os.getenv("EXPLANATION_WEIGHT", "0.2"))
    explanation_gate: float = float(os.getenv("EXPLANATION_GATE", "0.7"))
    dominant_field_threshold: float = float(os.getenv("DOMINANT_FIELD_THRESHOLD", "0.8"))

    # Dedup thresholds - chưa được đo precision/recall, chỉnh qua env
    dedup_question_answer_threshold: float = float(os.getenv("DEDUP_QUESTION_ANSWER_THRESHOLD", "0.7"))
    dedup_answer_threshold: float = float(os.getenv("DEDUP_ANSWER_THRESHOLD", "0.7"))
    dedup_question_correct_threshold: float = float(os.getenv("DEDUP_QUESTION_CORRECT_THRESHOLD", "0.8"))
    dedup_correct_threshold: float = float(os.getenv("DEDUP_CORRECT_THRESHOLD", "0.6"))
    dedup_overall_threshold: float = float(os.getenv("DEDUP_OVERALL_THRESHOLD", "0.85"))
    dedup_overall_question_weight: float = float(os.getenv("DEDUP_OVERALL_QUESTION_WEIGHT", "0.6"))
    dedup_overall_answer_weight: float = float(os.getenv("DEDUP_OVERALL_ANSWER_WEIGHT", "0.3"))
    dedup_overall_correct_weight: float = float(os.getenv("DEDUP_OVERALL_CORRECT_WEIGHT", "0.1"))
    dedup_pool_size: int = int(os.getenv("DEDUP_POOL_SIZE", "1000"))

    # Bulk pipeline
    bulk_concurrency: int = int(os.getenv("BULK_CONCURRENCY", "4"))
    item_timeout_seconds: float = float(os.getenv("ITEM_TIMEOUT_SECONDS", "30"))
    search_timeout_seconds: float = float(os.getenv("SEARCH_TIMEOUT_SECONDS", "10"))

    class Config:
        env_file = ".env"

settings = Settings()
