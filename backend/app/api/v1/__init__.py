from fastapi import APIRouter

from backend.app.api.v1 import regeneration

router = APIRouter(prefix="/api/v1")

router.include_router(regeneration.router, prefix="/regeneration", tags=["regeneration"])

__all__ = ["router"]
