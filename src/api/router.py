from fastapi import APIRouter

from src.api.endpoints import edit, health

router = APIRouter()
router.include_router(health.router, tags=["health"])
router.include_router(edit.router, tags=["edit"])
