from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.admin_api import router as admin_router
from app.api.auth_api import router as auth_router
from app.api.content_api import router as content_router
from app.api.dependencies import require_database_ready
from app.api.topics_api import router as topics_router
from app.api.users_api import router as users_router

router = APIRouter(dependencies=[Depends(require_database_ready)])

# Include sub-routers
router.include_router(auth_router, prefix="/auth", tags=["auth"])
router.include_router(topics_router, prefix="/topics", tags=["topics"])
router.include_router(users_router, prefix="/users", tags=["users"])
router.include_router(content_router, prefix="/content", tags=["content"])
router.include_router(admin_router, prefix="/admin", tags=["admin"])
