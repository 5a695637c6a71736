"""
Configuration for the Clinical Analyzer service.

GOVERNANCE:
- Generated content is for medical education only
- Generator credentials come from the environment, never from code
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # API settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_base_url: str = "http://localhost:8000"

    # Generator endpoint (OpenAI-compatible chat completions)
    generator_base_url: str = "https://api.openai.com/v1"
    generator_api_key: str = ""
    generator_model: str = "gpt-4o-mini"
    content_model: str = "gpt-4o"
    generator_timeout: float = 30.0
    generator_temperature: float = 0.7

    # Logging
    log_level: str = "INFO"

    # Demo settings
    demo_learner_id: str = "demo_learner"
    demo_reviewer_id: str = "demo_reviewer"
    demo_reviewer_name: str = "Dr. Demo Reviewer"
    demo_reviewer_email: str = "reviewer@example.edu"

    model_config = {"env_prefix": "CLINICAL_ANALYZER_"}


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
