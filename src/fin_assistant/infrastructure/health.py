"""Readiness-проверки (Redis)."""

import redis


def check_readiness(r: redis.Redis) -> None:
    """Бросает исключение, если Redis недоступен."""
    r.ping()
