"""Учёт AI-запросов пользователя за календарный месяц (Redis hash)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

import redis
import structlog
from fastapi import HTTPException

log = structlog.get_logger()

# Месяц + запас, чтобы ключ пережил границу месяца по любому часовому поясу.
USAGE_TTL_SECONDS = 40 * 24 * 3600


@dataclass(frozen=True)
class UsageSnapshot:
    query_count: int
    tokens_used: int
    limit: int | None
    percentage: float

    def as_dict(self) -> dict:
        return {
            "query_count": self.query_count,
            "tokens_used": self.tokens_used,
            "limit": self.limit,
            "percentage": self.percentage,
        }


def _month_key(user_id: str, now: datetime) -> str:
    return f"ai_usage:{user_id}:{now.strftime('%Y%m')}"


def get_usage(
    r: redis.Redis,
    user_id: str,
    limit: int | None,
    now: datetime | None = None,
) -> UsageSnapshot:
    """Текущее потребление за месяц (нет записи = нули)."""
    now = now or datetime.now(UTC)
    raw = r.hgetall(_month_key(user_id, now)) or {}
    query_count = int(raw.get("query_count") or 0)
    tokens_used = int(raw.get("tokens_used") or 0)
    if limit is None:
        percentage = 0.0
    elif limit <= 0:
        percentage = 100.0
    else:
        percentage = min(query_count / limit * 100, 100.0)
    return UsageSnapshot(
        query_count=query_count,
        tokens_used=tokens_used,
        limit=limit,
        percentage=percentage,
    )


def can_make_call(
    r: redis.Redis,
    user_id: str,
    limit: int | None,
    now: datetime | None = None,
) -> bool:
    if limit is None:
        return True
    return get_usage(r, user_id, limit, now).query_count < limit


def enforce_monthly_quota(
    r: redis.Redis,
    user_id: str,
    limit: int | None,
    now: datetime | None = None,
) -> None:
    """Проверяет месячный лимит и кидает 429, если он исчерпан."""
    if not can_make_call(r, user_id, limit, now):
        log.info("ai_quota_exhausted", user_id=user_id, limit=limit)
        raise HTTPException(status_code=429, detail="Monthly AI query limit reached")


def record_call(
    r: redis.Redis,
    user_id: str,
    tokens_used: int,
    now: datetime | None = None,
) -> None:
    """Засчитывает один успешный запрос и его токены."""
    now = now or datetime.now(UTC)
    key = _month_key(user_id, now)
    pipe = r.pipeline()
    pipe.hincrby(key, "query_count", 1)
    pipe.hincrby(key, "tokens_used", max(0, int(tokens_used)))
    pipe.expire(key, USAGE_TTL_SECONDS)
    pipe.execute()
    log.info("ai_usage_recorded", user_id=user_id, tokens_used=tokens_used)
