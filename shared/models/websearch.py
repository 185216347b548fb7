from pydantic import BaseModel


class WebSearchResult(BaseModel):
    title: str
    url: str
    snippet: str = ""


class WebSearchResponse(BaseModel):
    query: str
    provider: str = ""
    results: list[WebSearchResult] = []
    rate_limited: bool = False
    error: str | None = None
