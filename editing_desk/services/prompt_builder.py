from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

from google.genai import types

from editing_desk.schemas.analysis import (
    CORRECTION_MARKER_CLASS,
    ERROR_MARKER_CLASS,
    HEADLINE_COUNT_MAX,
    HEADLINE_COUNT_MIN,
    RESPONSE_SCHEMA,
)
from editing_desk.services.errors import NoInput
from editing_desk.services.image_loader import ImageInput

SYSTEM_INSTRUCTION = (
    "You are a world-class language model specializing in editorial analysis and "
    "multilingual (Hindi) content creation. Your output MUST be valid JSON according "
    "to the provided schema."
)

TRANSCRIBE_DIRECTIVE = (
    "First, transcribe the text from this image accurately. Once transcribed, "
    "perform the following analysis on the transcribed text: "
)

IMAGE_ARTICLE_PLACEHOLDER = "(the article is the text transcribed from the attached image)"


@dataclass(frozen=True)
class AnalysisRequest:
    raw_text: str = ""
    image: Optional[ImageInput] = None
    headline_count: int = 10

    def __post_init__(self):
        if not (HEADLINE_COUNT_MIN <= int(self.headline_count) <= HEADLINE_COUNT_MAX):
            raise ValueError(
                f"headline_count must be between {HEADLINE_COUNT_MIN} and {HEADLINE_COUNT_MAX}, "
                f"got {self.headline_count}"
            )

    @property
    def has_input(self) -> bool:
        return self.image is not None or bool((self.raw_text or "").strip())


@dataclass(frozen=True)
class AnalysisPayload:
    model: str
    instruction: str
    headline_count: int
    image: Optional[ImageInput] = None
    system_instruction: str = SYSTEM_INSTRUCTION
    response_schema: dict = field(default_factory=lambda: RESPONSE_SCHEMA)
    response_mime_type: str = "application/json"
    temperature: float = 0.4
    max_output_tokens: int = 8192

    def contents(self) -> List[types.Content]:
        parts = [types.Part.from_text(text=self.instruction)]
        if self.image is not None:
            parts.append(types.Part.from_bytes(data=self.image.data, mime_type=self.image.mime_type))
        return [types.Content(role="user", parts=parts)]

    def config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            system_instruction=self.system_instruction,
            response_mime_type=self.response_mime_type,
            response_schema=self.response_schema,
            temperature=self.temperature,
            max_output_tokens=self.max_output_tokens,
        )

    def describe(self) -> dict[str, Any]:
        """Loggable summary (no image bytes)."""
        return {
            "model": self.model,
            "headline_count": self.headline_count,
            "instruction_chars": len(self.instruction),
            "image_mime_type": self.image.mime_type if self.image else None,
            "image_bytes": len(self.image.data) if self.image else 0,
        }


def build_instruction(article_text: str, headline_count: int) -> str:
    return (
        "You are a professional newspaper editor and language analyst. "
        "Your task is to analyze the provided article text.\n"
        "1. **Inline Correction**: Identify grammatical, spelling, and minor factual errors. "
        "Return the ORIGINAL text, but for every error, replace the erroneous word/phrase with a "
        "combined HTML structure. This structure MUST contain the original error, followed "
        "immediately by the suggestion enclosed in square brackets, all wrapped in distinct spans "
        "for styling. The structure should be:\n"
        f'`<span class="{ERROR_MARKER_CLASS}">OriginalError</span> '
        f'<span class="{CORRECTION_MARKER_CLASS}">[Correction]</span>`\n'
        "Ensure that the structure is properly inserted inline. Use the Hindi example: 'पेंडिंग' "
        f'should become \'<span class="{ERROR_MARKER_CLASS}">पेंडिंग</span> '
        f'<span class="{CORRECTION_MARKER_CLASS}">[लंबित]</span>\'.\n'
        "2. **Corrections List**: List every error you marked, in the order it appears, as "
        "originalError / correctedText pairs.\n"
        f"3. **Hindi Headlines**: Provide exactly {headline_count} sets of catchy, journalistic "
        "headlines and subheadlines written *exclusively* in **Hindi**.\n"
        f"4. **Article Text**: {article_text}"
    )


def build_payload(
    request: AnalysisRequest,
    model: str,
    temperature: float = 0.4,
    max_output_tokens: int = 8192,
) -> AnalysisPayload:
    """
    Turn an AnalysisRequest into the payload sent to the model.
    Raises NoInput when there is neither text nor an image; nothing is sent in that case.
    """
    if not request.has_input:
        raise NoInput("neither article text nor an image was provided")

    if request.image is not None:
        instruction = TRANSCRIBE_DIRECTIVE + build_instruction(IMAGE_ARTICLE_PLACEHOLDER, request.headline_count)
    else:
        instruction = build_instruction(request.raw_text, request.headline_count)

    return AnalysisPayload(
        model=model,
        instruction=instruction,
        headline_count=request.headline_count,
        image=request.image,
        temperature=temperature,
        max_output_tokens=max_output_tokens,
    )
