from pydantic import BaseModel

from shared.models.websearch import WebSearchResult


class ChatSource(BaseModel):
    title: str
    type: str = "document"
    url: str | None = None


class ChatMetadata(BaseModel):
    search_type: str
    sources: list[ChatSource] = []
    score: float | None = None


class ChatAnswer(BaseModel):
    message: str
    metadata: ChatMetadata | None = None


class SubQueryResult(BaseModel):
    query: str
    results: list[WebSearchResult] = []
    success: bool
    error: str | None = None
    rate_limited: bool = False


class DeepSearchResult(BaseModel):
    summary: str
    sources: list[ChatSource] = []
    confidence: float = 0.0
    search_queries: list[str] = []
    search_results: list[SubQueryResult] = []
