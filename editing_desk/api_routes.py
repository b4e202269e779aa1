from __future__ import annotations
from fastapi import APIRouter
from editing_desk.routes.analyze import router as analyze_router
from editing_desk.routes.health import router as health_router
from editing_desk.routes.identity import router as identity_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(analyze_router)
router.include_router(identity_router)
