from pydantic import BaseModel, Field


class RetrievalMetadata(BaseModel):
    source: str
    file_id: str
    user_id: str
    chunk_id: str


class RetrievalResult(BaseModel):
    content: str
    metadata: RetrievalMetadata
    score: float = Field(ge=0.0, le=1.0)
