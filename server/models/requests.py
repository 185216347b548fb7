from pydantic import BaseModel, Field


class HistoryTurn(BaseModel):
    role: str
    content: str


class StandardChatRequest(BaseModel):
    owner_id: str
    query: str
    history: list[HistoryTurn] = []
    system_prompt: str | None = None


class RagChatRequest(BaseModel):
    owner_id: str
    query: str
    file_id: str | None = None
    allow_deep_search: bool = False


class DeepSearchRequest(BaseModel):
    owner_id: str
    query: str
    history: list[HistoryTurn] = []


class AgenticRequest(BaseModel):
    owner_id: str
    query: str


class ContentRequest(BaseModel):
    owner_id: str
    file_id: str
    title: str | None = Field(default=None, description="Overrides the file name as title.")
