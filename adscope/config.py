from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    host: str = "127.0.0.1"
    port: int = 9000
    log_level: str = "INFO"

    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    gemini_poll_interval: float = 2.0
    gemini_poll_attempts: int = 60

    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-5"
    anthropic_api_url: str = "https://api.anthropic.com/v1/messages"
    copy_max_tokens: int = 1024
    copy_max_retries: int = 3

    # Uploads are staged here for the duration of one request
    staging_dir: Path = Path("tmp")
    staging_dir_fixed: bool = False
    # Set by restricted hosts where only /tmp is writable
    vercel: str | None = None
    aws_lambda_function_name: str | None = None

    results_file: Path = Path("saved_results.json")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
