from pydantic import BaseModel, Field
from typing import Literal

from editing_desk.schemas.analysis import AnalysisResult, HEADLINE_COUNT_MAX, HEADLINE_COUNT_MIN

class AnalyzeTextRequest(BaseModel):
    text: str = ""  # empty text is reported as no_input, not a validation error
    headline_count: int = Field(default=10, ge=HEADLINE_COUNT_MIN, le=HEADLINE_COUNT_MAX)

class AnalysisResponse(BaseModel):
    result: AnalysisResult
    annotated_html: str = ""
    headline_count: int

class ErrorResponse(BaseModel):
    error: str
    detail: str

class IdentityResponse(BaseModel):
    user_id: str | None = None
    ready: bool = False
    state: Literal["pending", "ready", "failed", "disabled"] = "pending"
    app_id: str
