from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "localhost"
    db_port: int = 5432
    db_database: str = "parte"
    db_username: str = "parte"
    db_password: str = "secret"
    db_pool_max_size: int = 10

    max_job_attempts: int = 3
    job_poll_interval_seconds: int = 5
    job_retry_backoff_seconds: int = 60

    media_root: Path = Path("/app/storage/media")
    temp_root: Path = Path("/app/storage/temp")

    vision_text_provider: str = "abacusai/gemini-3-flash"
    vision_text_fallback: str = ""
    vision_photo_provider: str = "abacusai/gemini-3-flash"
    vision_photo_fallback: str = ""

    gemini_api_key: str = ""
    gemini_model: str = "gemini-3-flash-preview"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_timeout_seconds: int = 60

    zhipuai_api_key: str = ""
    zhipuai_model: str = "glm-4.6v-flash"
    zhipuai_base_url: str = "https://open.bigmodel.cn/api/paas/v4"
    zhipuai_timeout_seconds: int = 90

    anthropic_api_key: str = ""
    anthropic_model: str = "claude-3-5-sonnet-20241022"
    anthropic_base_url: str = "https://api.anthropic.com/v1"
    anthropic_version: str = "2023-06-01"
    anthropic_max_tokens: int = 2048
    anthropic_timeout_seconds: int = 60

    abacusai_api_key: str = ""
    abacusai_model: str = "gemini-3-flash"
    abacusai_base_url: str = "https://routellm.abacus.ai/v1"
    abacusai_timeout_seconds: int = 90

    ocr_languages: str = "ces+pol+eng"
    ocr_page_segmentation_mode: int = 3
    ocr_timeout_seconds: int = 60

    download_timeout_seconds: int = 30
    download_max_retries: int = 3
    download_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
    )

    extract_portraits: bool = True
