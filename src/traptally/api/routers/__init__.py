"""API routers."""

from fastapi import APIRouter

from traptally.api.routers import auth, sync

api_router = APIRouter(prefix="/api")
api_router.include_router(sync.router)
api_router.include_router(auth.router)

__all__ = ["api_router"]
