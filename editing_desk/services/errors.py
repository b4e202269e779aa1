from __future__ import annotations

from typing import Optional


class PipelineError(Exception):
    """
    Base for every terminal outcome of an analysis submission that is not a result.
    `attempts` is the number of outbound calls made before the error was raised.
    """

    kind = "pipeline_error"
    user_message = "Analysis failed."

    def __init__(self, detail: str = "", attempts: int = 0):
        super().__init__(detail or self.user_message)
        self.detail = detail
        self.attempts = attempts

    def describe(self) -> str:
        return self.user_message


class NoInput(PipelineError):
    kind = "no_input"
    user_message = "Please paste text or select an image to analyze."


class FileConversionFailure(PipelineError):
    kind = "file_conversion_failure"
    user_message = "Failed to read the selected image. Please choose a JPEG, PNG or WebP photo."

    def describe(self) -> str:
        return f"{self.user_message} ({self.detail})" if self.detail else self.user_message


class TransportFailure(PipelineError):
    kind = "transport_failure"
    user_message = "The editing service could not be reached."

    def __init__(self, message: str = "", status: Optional[int] = None, attempts: int = 0):
        super().__init__(message, attempts=attempts)
        self.status = status
        self.message = message

    def __str__(self) -> str:
        status = f"HTTP {self.status}" if self.status is not None else "network error"
        return f"{status}: {self.message}" if self.message else status

    def describe(self) -> str:
        base = f"Analysis failed after {self.attempts} attempts." if self.attempts else "Analysis failed."
        if self.status is not None:
            return f"{base} {self.user_message} (HTTP {self.status})"
        return f"{base} {self.user_message}"


class ConfigurationError(PipelineError):
    kind = "configuration_error"
    user_message = "The editing service is not configured. Ask an administrator to set GEMINI_API_KEY."


class SafetyBlocked(PipelineError):
    kind = "safety_blocked"
    user_message = "AI output was blocked due to safety settings. Please adjust the input text."


class EmptyResponse(PipelineError):
    kind = "empty_response"
    user_message = "AI returned no JSON content. The prompt might be too complex or the model failed."

    def describe(self) -> str:
        if self.attempts > 1:
            return f"Analysis failed after {self.attempts} attempts. {self.user_message}"
        return self.user_message


class MalformedJson(PipelineError):
    kind = "malformed_json"
    user_message = "The AI response could not be read. Please try again."

    def __init__(self, raw: str, reason: str = "", attempts: int = 0):
        super().__init__(reason or "response is not valid analysis JSON", attempts=attempts)
        self.raw = raw
        self.reason = reason
