from collections.abc import Iterator

import pytest

from fin_assistant.providers.factory import clear_provider_cache
from fin_assistant.settings import reset_settings
from tests.fakes import FakeRedis


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in ("OPENAI_API_KEY", "DEFAULT_PROVIDER", "AI_QUERIES_PER_MONTH", "OPENAI_BASE_URL"):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    clear_provider_cache()
    yield
    reset_settings()
    clear_provider_cache()
