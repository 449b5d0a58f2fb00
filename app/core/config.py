from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Literal, Optional


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore")

    app_name: str = "Social Post Sentiment Analyzer"
    # If ALLOWED_ORIGINS env is provided, it should be a JSON array.
    # Example: ["http://localhost:8501", "http://127.0.0.1:8501"]
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    # Model provider credentials. Left optional so a missing key is
    # reported on every request instead of failing at import.
    openai_api_key: Optional[str] = None
    llm_model: str = "gpt-4o-mini"
    llm_temperature: float = 0.2

    # Front-end -> proxy
    api_base_url: str = "http://localhost:8080"
    request_timeout: float = 120.0

    # Run shape
    batch_size: int = Field(default=25, ge=1)
    max_posts: int = Field(default=500, ge=1)
    analysis_mode: Literal["batch", "per_post"] = "batch"
    post_attempts: int = Field(default=2, ge=1)
    model_insights: bool = False


settings = Settings()
