"""Error taxonomy of the document chat core.

Callers branch on the exception class (and on ProviderError.kind), never on
raw provider strings. Provider failures are classified exactly once, at the
LLM gateway / client boundary, via classify_provider_error().
"""

import re
from enum import Enum


class ChatCoreError(Exception):
    """Base class for all errors raised by the chat core."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ChatCoreError):
    """The caller sent an incomplete or invalid request (missing query, fileId, ...)."""

    status_code = 400


class NotFoundError(ChatCoreError):
    """A file or session is absent or not owned by the caller."""

    status_code = 404


class ExtractionError(ChatCoreError):
    """A file could not be read or parsed into text."""

    status_code = 422

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path
        self.suggestion = "Please re-upload the file in a supported format (txt, md, pdf, docx)."


class ConfigurationError(ChatCoreError):
    """A required credential or setting is missing."""

    status_code = 500


class StructuredOutputError(ChatCoreError):
    """A model reply did not contain valid JSON with the required keys."""

    status_code = 502


class ClientRequestError(ChatCoreError):
    """A backend HTTP request returned a non-success status."""

    status_code = 502

    def __init__(self, message: str, status: int | None = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


class ProviderErrorKind(str, Enum):
    INVALID_API_KEY = "invalid_api_key"
    RATE_LIMITED = "rate_limited"
    CONTENT_BLOCKED = "content_blocked"
    QUOTA_EXCEEDED = "quota_exceeded"
    UNKNOWN = "unknown"


_USER_MESSAGES: dict[ProviderErrorKind, str] = {
    ProviderErrorKind.INVALID_API_KEY: "AI service configuration error: invalid or missing API key.",
    ProviderErrorKind.RATE_LIMITED: "AI service is currently experiencing high traffic. Please wait a moment and try again.",
    ProviderErrorKind.CONTENT_BLOCKED: "Your request was blocked by content filters. Please try rephrasing your question.",
    ProviderErrorKind.QUOTA_EXCEEDED: "AI service quota exceeded. Please try again later or check your API usage limits.",
    ProviderErrorKind.UNKNOWN: "AI service error. Please try again or contact support if the issue persists.",
}


class ProviderError(ChatCoreError):
    """A classified failure of an LLM, embedding or web-search backend."""

    def __init__(self, kind: ProviderErrorKind, detail: str = ""):
        self.kind = kind
        self.detail = detail
        message = _USER_MESSAGES[kind]
        if kind == ProviderErrorKind.UNKNOWN and detail:
            message = f"AI service error: {detail}"
        super().__init__(message)

    @property
    def status_code(self) -> int:  # type: ignore[override]
        if self.kind in (ProviderErrorKind.RATE_LIMITED, ProviderErrorKind.QUOTA_EXCEEDED):
            return 429
        return 502


# Order matters: quota errors often also mention "rate" or "429".
_KIND_PATTERNS: list[tuple[ProviderErrorKind, re.Pattern]] = [
    (ProviderErrorKind.QUOTA_EXCEEDED, re.compile(r"quota|resource[_ ]exhausted|billing", re.I)),
    (ProviderErrorKind.INVALID_API_KEY, re.compile(r"api[_ -]?key|unauthori[sz]ed|permission[_ ]denied|status 401|status 403", re.I)),
    (ProviderErrorKind.RATE_LIMITED, re.compile(r"rate[_ -]?limit|too many requests|status 429", re.I)),
    (ProviderErrorKind.CONTENT_BLOCKED, re.compile(r"blocked|safety|finish reason: (?:safety|recitation)", re.I)),
]


def classify_provider_error(error: BaseException) -> ProviderError:
    """Map an arbitrary provider exception onto the coarse ProviderError kinds.

    Args:
        error (BaseException): The raw exception raised by a client.

    Returns:
        ProviderError: The classified error. Already-classified errors are returned unchanged.
    """
    if isinstance(error, ProviderError):
        return error
    text = str(error)
    if isinstance(error, ClientRequestError):
        text = f"{text} {error.body}"
    for kind, pattern in _KIND_PATTERNS:
        if pattern.search(text):
            return ProviderError(kind, detail=str(error))
    return ProviderError(ProviderErrorKind.UNKNOWN, detail=str(error) or error.__class__.__name__)
