"""Эндпоинты AI-ассистента (`/v1/assistant/*`)."""

import redis
import structlog
from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel, Field

from fin_assistant.infrastructure.redis import get_redis
from fin_assistant.providers.factory import SettingsConfigProvider
from fin_assistant.services.context import FinancialContext
from fin_assistant.services.gateway import CompletionGateway, build_gateway
from fin_assistant.services.insights import generate_insights
from fin_assistant.services.usage import enforce_monthly_quota, get_usage, record_call
from fin_assistant.settings import get_settings

router = APIRouter()
log = structlog.get_logger()


class CompletionRequest(BaseModel):
    prompt: str = Field(min_length=1)
    context: FinancialContext | None = None
    system_prompt: str | None = None


class InsightsRequest(BaseModel):
    context: FinancialContext


def get_gateway() -> CompletionGateway:
    return build_gateway(get_settings())


def _check_quota(r: redis.Redis, user_id: str | None) -> None:
    """Лимит по пользователю. Redis недоступен => пропускаем (fail open)."""
    if not user_id:
        return
    structlog.contextvars.bind_contextvars(user_id=user_id)
    try:
        enforce_monthly_quota(r, user_id, get_settings().monthly_query_limit)
    except redis.RedisError as e:
        log.error("ai_quota_check_failed", err_type=type(e).__name__, err=str(e))


def _record_usage(r: redis.Redis, user_id: str | None, tokens_used: int) -> None:
    """Учёт после успешного вызова; ошибка Redis не должна терять ответ."""
    if not user_id:
        return
    try:
        record_call(r, user_id, tokens_used)
    except redis.RedisError as e:
        log.error(
            "ai_usage_record_failed",
            tokens_used=tokens_used,
            err_type=type(e).__name__,
            err=str(e),
        )


@router.post("/assistant/complete")
def complete(
    body: CompletionRequest,
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    gateway: CompletionGateway = Depends(get_gateway),
    r: redis.Redis = Depends(get_redis),
) -> dict:
    """Вопрос ассистенту. Ошибки провайдера приходят как 200 + `error`."""
    _check_quota(r, x_user_id)
    result = gateway.complete(body.prompt, context=body.context, system_prompt=body.system_prompt)
    if result.ok:
        _record_usage(r, x_user_id, result.tokens_used)
    return result.as_dict()


@router.post("/assistant/insights")
def insights(
    body: InsightsRequest,
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    gateway: CompletionGateway = Depends(get_gateway),
    r: redis.Redis = Depends(get_redis),
) -> dict:
    """Структурированные инсайты; `insights: null`, если AI не смог."""
    _check_quota(r, x_user_id)
    result = generate_insights(gateway, body.context)
    if result.completion.ok:
        _record_usage(r, x_user_id, result.completion.tokens_used)
    return result.as_dict()


@router.get("/assistant/usage")
def usage(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    r: redis.Redis = Depends(get_redis),
) -> dict:
    """Потребление за текущий месяц."""
    if not x_user_id:
        raise HTTPException(status_code=400, detail="X-User-Id header is required")
    try:
        snapshot = get_usage(r, x_user_id, get_settings().monthly_query_limit)
    except redis.RedisError as e:
        log.error("ai_usage_read_failed", user_id=x_user_id, err=str(e))
        raise HTTPException(status_code=503, detail="Usage storage unavailable") from e
    return snapshot.as_dict()


@router.get("/assistant/status")
def status() -> dict:
    """Настроен ли провайдер (для UI: показывать ли ассистента)."""
    config = SettingsConfigProvider(get_settings())
    return {"configured": config.is_provider_configured(), "provider": config.provider_name}
