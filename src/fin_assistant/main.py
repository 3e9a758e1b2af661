"""FastAPI приложение (роутеры + логирование)."""

import uuid

import structlog
from fastapi import FastAPI, Request

from fin_assistant import __version__
from fin_assistant.api.v1 import router as v1_router
from fin_assistant.api.well_known import router as well_known_router
from fin_assistant.infrastructure.logging import configure_logging


def create_app() -> FastAPI:
    """Собирает FastAPI приложение."""
    configure_logging()

    app = FastAPI(title="Finance Assistant", version=__version__)

    @app.middleware("http")
    async def bind_request_context(request: Request, call_next):
        # Все логи запроса (gateway, usage) получают request_id/path.
        structlog.contextvars.clear_contextvars()
        request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex
        structlog.contextvars.bind_contextvars(request_id=request_id, path=request.url.path)
        response = await call_next(request)
        response.headers["X-Request-Id"] = request_id
        return response

    app.include_router(well_known_router)
    app.include_router(v1_router, prefix="/v1")
    return app


app = create_app()
