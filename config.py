"""
Configuration management for the Medical Document Explainer
"""
from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application Configuration
    app_name: str = "Medical Document Explainer"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 1

    # Security Configuration
    allowed_hosts: str = "*"
    cors_origins: str = "*"

    # AI Gateway Configuration (OpenRouter-compatible chat completions)
    openrouter_api_key: Optional[str] = None
    llm_model: str = "google/gemini-2.5-flash"
    llm_base_url: str = "https://openrouter.ai/api/v1/chat/completions"
    request_timeout_seconds: int = 120
    enable_web_search: bool = True
    web_search_max_results: int = 5

    # Sampling temperatures per operation
    reformat_temperature: float = 0.2
    translate_temperature: float = 0.3
    glossary_temperature: float = 0.2
    answer_temperature: float = 0.6

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = "structured"
    log_file: Optional[str] = None

    # Upload Configuration
    max_file_size_mb: int = 50

    # Report Configuration
    print_delay_ms: int = 500
    report_title: str = "Medical Document Report"

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
