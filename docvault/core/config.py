from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_namespace: str = "docvault"

    # Хранилище графа: memory - для разработки и тестов, sql - локальная реплика
    store_backend: str = Field("memory", pattern="^(memory|sql)$")
    database_url: str = "sqlite+aiosqlite:///./docvault.db"
    database_echo: bool = False
    propagation_delay: float = 0.0
    list_timeout: float = 2.0

    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    access_token_minutes: int = 60

    kdf_iterations: int = 100_000

    retry_max_attempts: int = 4
    retry_base_delay: float = 0.1
    retry_backoff_multiplier: float = 2.0
    retry_substrings: List[str] = ["not initialized", "not ready"]

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_prefix": "DOCVAULT_", "extra": "ignore"}

    def retry_options(self) -> dict:
        """Параметры retry_with_backoff из настроек"""
        return {
            "max_attempts": self.retry_max_attempts,
            "base_delay": self.retry_base_delay,
            "backoff_multiplier": self.retry_backoff_multiplier,
            "retryable_substrings": tuple(self.retry_substrings),
        }


settings = Settings()
