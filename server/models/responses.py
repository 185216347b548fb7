from pydantic import BaseModel

from shared.models.chat import ChatAnswer, ChatSource


class ChatResponse(BaseModel):
    message: str
    search_type: str
    sources: list[ChatSource] = []
    score: float | None = None

    @classmethod
    def from_answer(cls, answer: ChatAnswer) -> "ChatResponse":
        metadata = answer.metadata
        return cls(
            message=answer.message,
            search_type=metadata.search_type if metadata else "standard",
            sources=metadata.sources if metadata else [],
            score=metadata.score if metadata else None,
        )


class FileResponse(BaseModel):
    file_id: str
    original_name: str
    mime_type: str | None
    size: int


class ErrorResponse(BaseModel):
    error: str
    message: str
    kind: str | None = None
