from __future__ import annotations

from fastapi import APIRouter, Request

from editing_desk.schemas.inputs import IdentityResponse

router = APIRouter(tags=["identity"])


@router.get("/identity", response_model=IdentityResponse)
def identity(request: Request):
    bootstrap = request.app.state.identity
    return IdentityResponse(
        user_id=bootstrap.current_identity,
        ready=bootstrap.ready,
        state=bootstrap.state,
        app_id=request.app.state.settings.APP_ID,
    )
