"""
Centralized configuration management for DocSearch.

All environment variables and settings are managed here so the index,
the query pipeline and the collaborators read the same knobs.
"""

from functools import lru_cache
from typing import Optional, Dict, Any
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Centralized settings for DocSearch.

    All configuration is loaded from environment variables with sensible defaults.
    Uses Pydantic for validation and type safety.
    """

    # === Application Settings ===
    app_name: str = Field(default="DocSearch", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Optional[str] = Field(default=None, description="Optional log file path")

    # === Concept Extraction (LLM) Settings ===
    gemini_api_key: Optional[str] = Field(default=None, description="Google Gemini API key", validation_alias="GEMINI_API_KEY")
    default_llm_model: str = Field(default="gemini-2.0-flash", description="Model used for intent/entity extraction")
    concept_extraction_timeout: float = Field(default=5.0, gt=0, description="Timeout for one extraction call in seconds")

    # === Index Settings ===
    index_max_documents: int = Field(default=1000, ge=1, description="Documents indexed by a full build")

    # === Search Settings ===
    semantic_threshold: float = Field(default=0.3, ge=0.0, le=1.0, description="Minimum concept-vector similarity")
    semantic_limit: int = Field(default=20, ge=1, description="Semantic candidates kept per query")
    default_max_results: int = Field(default=20, ge=1, description="Default page size")
    max_results_limit: int = Field(default=100, ge=1, description="Largest page size a caller may request")
    highlight_max_chars: int = Field(default=200, ge=10, description="Highlight snippet budget")
    max_suggestions: int = Field(default=5, ge=0, description="Related keyword suggestions per response")

    # === Personalization Settings ===
    history_size: int = Field(default=100, ge=1, description="Search history entries kept per user")
    personal_terms_limit: int = Field(default=3, ge=0, description="Frequent history terms used to bias a query")

    # === Monitoring Settings ===
    enable_metrics: bool = Field(default=True, description="Enable metrics collection")
    metrics_max_history: int = Field(default=1000, description="Points kept per metric")

    # === Logging Configuration ===
    @property
    def logging_config(self) -> Dict[str, Any]:
        """Get logging configuration."""
        return {
            'level': self.log_level,
            'file': self.log_file,
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        }

    # === Monitoring Configuration ===
    @property
    def monitoring_config(self) -> Dict[str, Any]:
        """Get monitoring configuration."""
        return {
            'enabled': self.enable_metrics,
            'max_history': self.metrics_max_history,
            'retention_seconds': 3600
        }

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are only loaded once per application lifecycle.
    """
    return Settings()
