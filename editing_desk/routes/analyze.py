from __future__ import annotations

import logging
from typing import Literal

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from editing_desk.schemas.analysis import AnalysisResult, HEADLINE_COUNT_MAX, HEADLINE_COUNT_MIN
from editing_desk.schemas.inputs import AnalysisResponse, AnalyzeTextRequest, ErrorResponse
from editing_desk.services.errors import (
    ConfigurationError,
    EmptyResponse,
    FileConversionFailure,
    MalformedJson,
    NoInput,
    PipelineError,
    SafetyBlocked,
    TransportFailure,
)
from editing_desk.services.image_loader import load_image_upload
from editing_desk.services.markup import render_annotations
from editing_desk.services.prompt_builder import AnalysisRequest
from editing_desk.services.session import EditingSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analyze", tags=["analyze"])

_STATUS = {
    NoInput: 400,
    FileConversionFailure: 400,
    SafetyBlocked: 422,
    MalformedJson: 502,
    EmptyResponse: 502,
    TransportFailure: 502,
    ConfigurationError: 500,
}

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def get_session(request: Request) -> EditingSession:
    return request.app.state.session


def _error_response(e: PipelineError) -> JSONResponse:
    status = _STATUS.get(type(e), 500)
    if isinstance(e, TransportFailure):
        logger.error("Analysis failed (%s) after %d attempts: %s", e.kind, e.attempts, e)
    elif isinstance(e, MalformedJson):
        logger.error("Analysis failed (%s): %s; raw excerpt %r", e.kind, e.reason, (e.raw or "")[:400])
    elif isinstance(e, ConfigurationError):
        logger.error("Analysis unavailable: %s", e.detail)
    else:
        logger.warning("Analysis failed (%s): %s", e.kind, e.detail)
    body = ErrorResponse(error=e.kind, detail=e.describe())
    return JSONResponse(status_code=status, content=body.model_dump())


def _unexpected_response(e: Exception) -> JSONResponse:
    logger.exception("Unexpected error during analysis")
    body = ErrorResponse(error="internal_error", detail=f"Analysis failed: {type(e).__name__}")
    return JSONResponse(status_code=500, content=body.model_dump())


def _ok(result: AnalysisResult, headline_count: int) -> AnalysisResponse:
    return AnalysisResponse(
        result=result,
        annotated_html=render_annotations(result.annotated_text),
        headline_count=headline_count,
    )


@router.post("/text", response_model=AnalysisResponse, response_model_by_alias=False, responses=_ERROR_RESPONSES)
def analyze_text(payload: AnalyzeTextRequest, session: EditingSession = Depends(get_session)):
    request = AnalysisRequest(raw_text=payload.text, headline_count=payload.headline_count)
    try:
        result = session.submit(request)
    except PipelineError as e:
        return _error_response(e)
    except Exception as e:
        return _unexpected_response(e)
    return _ok(result, request.headline_count)


@router.post("/image", response_model=AnalysisResponse, response_model_by_alias=False, responses=_ERROR_RESPONSES)
async def analyze_image(
    request: Request,
    file: UploadFile = File(...),
    headline_count: int = Form(10, ge=HEADLINE_COUNT_MIN, le=HEADLINE_COUNT_MAX),
    text: str = Form(""),
    session: EditingSession = Depends(get_session),
):
    max_bytes = request.app.state.settings.max_image_bytes
    try:
        raw = await file.read()
        image = load_image_upload(file.filename or "upload", file.content_type, raw, max_bytes=max_bytes)
        analysis_request = AnalysisRequest(raw_text=text, image=image, headline_count=headline_count)
        result = await run_in_threadpool(session.submit, analysis_request)
    except PipelineError as e:
        return _error_response(e)
    except Exception as e:
        return _unexpected_response(e)
    return _ok(result, headline_count)


@router.post(
    "/refresh/{kind}",
    response_model=AnalysisResponse,
    response_model_by_alias=False,
    responses=_ERROR_RESPONSES,
)
def refresh(kind: Literal["headlines", "corrections"], session: EditingSession = Depends(get_session)):
    try:
        result = session.refresh(kind)
    except PipelineError as e:
        return _error_response(e)
    except Exception as e:
        return _unexpected_response(e)
    return _ok(result, session.last_request.headline_count)


@router.get("/current", response_model=AnalysisResponse, response_model_by_alias=False)
def current(session: EditingSession = Depends(get_session)):
    result = session.current
    if result is None:
        raise HTTPException(status_code=404, detail="No analysis yet")
    return _ok(result, session.last_request.headline_count)
