from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
def health(request: Request):
    settings = request.app.state.settings
    return {
        "status": "ok",
        "has_gemini_key": bool(settings.GEMINI_API_KEY),
        "model": settings.llm_model,
    }
