from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

HEADLINE_COUNT_MIN = 5
HEADLINE_COUNT_MAX = 25
HEADLINE_COUNT_CHOICES = (5, 10, 15, 20, 25)

ERROR_MARKER_CLASS = "error-highlight"
CORRECTION_MARKER_CLASS = "correction-suggestion"


class Correction(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    original_error: str = Field(alias="originalError")
    corrected_text: str = Field(alias="correctedText")


class HeadlinePair(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    headline: str = Field(alias="headlineHindi")
    subheadline: str = Field(alias="subheadlineHindi")


class AnalysisResult(BaseModel):
    """
    Parsed model output. Validated from the wire names (aliases) and dumped
    with the Python names for the page.
    """

    model_config = ConfigDict(populate_by_name=True)

    annotated_text: str = Field(alias="textWithErrorsHighlighted")
    corrections: list[Correction] = Field(default_factory=list)
    headlines: list[HeadlinePair] = Field(default_factory=list, alias="headlinesAndSubheadlines")

    @field_validator("corrections", "headlines", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return [] if v is None else v


# Structured output schema declared to the model (Gemini OpenAPI subset).
RESPONSE_SCHEMA: dict = {
    "type": "OBJECT",
    "properties": {
        "textWithErrorsHighlighted": {
            "type": "STRING",
            "description": (
                "The original text structure, but with errors replaced by: "
                f"<span class='{ERROR_MARKER_CLASS}'>OriginalWord</span> "
                f"<span class='{CORRECTION_MARKER_CLASS}'>[SuggestedWord]</span>"
            ),
        },
        "corrections": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "originalError": {"type": "STRING", "description": "The erroneous word or phrase as written."},
                    "correctedText": {"type": "STRING", "description": "The suggested correction."},
                },
                "required": ["originalError", "correctedText"],
            },
        },
        "headlinesAndSubheadlines": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "headlineHindi": {"type": "STRING", "description": "A catchy, journalistic headline written in Hindi."},
                    "subheadlineHindi": {"type": "STRING", "description": "A concise, supporting subheadline written in Hindi."},
                },
                "required": ["headlineHindi", "subheadlineHindi"],
            },
        },
    },
    "required": ["textWithErrorsHighlighted", "corrections", "headlinesAndSubheadlines"],
}
