"""v1 роутер: собирает эндпоинты в один APIRouter."""

from fastapi import APIRouter

from fin_assistant.api.v1_assistant import router as assistant_router

router = APIRouter()
router.include_router(assistant_router)
