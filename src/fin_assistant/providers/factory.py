"""Фабрика провайдеров (с кэшем инстансов на процесс)."""

from fin_assistant.providers.base import ProviderClient
from fin_assistant.providers.mock import MockProvider
from fin_assistant.providers.openai_compat import OpenAICompatibleProvider
from fin_assistant.settings import PLACEHOLDER_API_KEY, Settings, get_settings

_cache: dict[str, ProviderClient] = {}


def get_provider(name: str) -> ProviderClient:
    """Возвращает провайдера по имени (`mock`, `openai`)."""
    cached = _cache.get(name)
    if cached is not None:
        return cached

    if name == "mock":
        p = MockProvider()
        _cache[name] = p
        return p
    if name == "openai":
        p = OpenAICompatibleProvider()
        _cache[name] = p
        return p
    raise ValueError(f"Unknown provider: {name}")


def clear_provider_cache() -> None:
    _cache.clear()


class SettingsConfigProvider:
    """Проверка "провайдер настроен" по текущим настройкам (без сети)."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings

    @property
    def provider_name(self) -> str:
        return (self._settings or get_settings()).default_provider

    def is_provider_configured(self) -> bool:
        settings = self._settings or get_settings()
        if settings.default_provider == "mock":
            return True
        if settings.default_provider == "openai":
            key = settings.openai_api_key
            return bool(key) and key != PLACEHOLDER_API_KEY
        return False
