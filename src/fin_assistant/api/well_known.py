"""Служебные эндпоинты: health/ready/metrics."""

import redis
from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from fin_assistant.infrastructure.health import check_readiness
from fin_assistant.infrastructure.redis import get_redis
from fin_assistant.metrics import registry

router = APIRouter()


@router.get("/healthz")
def healthz() -> dict:
    """Простой healthcheck: процесс жив."""
    return {"status": "ok"}


@router.get("/readyz")
def readyz(r: redis.Redis = Depends(get_redis)) -> dict:
    """Readiness: проверяем Redis."""
    check_readiness(r)
    return {"status": "ready"}


@router.get("/metrics")
def metrics() -> Response:
    """Prometheus метрики."""
    data = generate_latest(registry)
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
