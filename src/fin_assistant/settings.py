"""Настройки приложения (env + `.env`)."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Значение из `.env.example`: ключ формально задан, но фактически не настроен.
PLACEHOLDER_API_KEY = "sk-your_openai_api_key_here"


class Settings(BaseSettings):
    """Pydantic-настройки (всё, что обычно лежит в `.env`)."""
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_env: str = Field(default="local", validation_alias="APP_ENV")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    redis_url: str = Field(default="redis://redis:6379/0", validation_alias="REDIS_URL")

    default_provider: str = Field(default="openai", validation_alias="DEFAULT_PROVIDER")

    openai_base_url: str = Field(default="https://api.openai.com", validation_alias="OPENAI_BASE_URL")
    openai_api_key: str | None = Field(default=None, validation_alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", validation_alias="OPENAI_MODEL")
    openai_timeout_seconds: float = Field(default=30.0, validation_alias="OPENAI_TIMEOUT_SECONDS")
    openai_temperature: float = Field(default=0.7, validation_alias="OPENAI_TEMPERATURE")
    openai_max_tokens: int = Field(default=1000, validation_alias="OPENAI_MAX_TOKENS")

    ai_queries_per_month: int = Field(default=0, validation_alias="AI_QUERIES_PER_MONTH")

    @property
    def monthly_query_limit(self) -> int | None:
        """Лимит запросов в месяц (`None` = без лимита)."""
        return self.ai_queries_per_month if self.ai_queries_per_month > 0 else None


_settings: Settings | None = None


def get_settings() -> Settings:
    """Ленивая загрузка настроек (один раз на процесс)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Сбрасывает кэш настроек (нужно тестам и CLI после смены env)."""
    global _settings
    _settings = None
