from pydantic import BaseModel, ConfigDict, field_validator


class Chunk(BaseModel):
    """One trimmed, non-empty fragment of a source document."""

    model_config = ConfigDict(frozen=True)

    text: str
    source_id: str
    chunk_sequence: str
    chunk_index: int
    owner_id: str = ""
    file_id: str = ""

    @field_validator("text")
    @classmethod
    def _text_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("chunk text must not be empty")
        return value


class IngestionRequest(BaseModel):
    owner_id: str
    file_id: str
    original_name: str
    mime_type: str | None = None


class IngestionResult(BaseModel):
    file_id: str
    chunks_added: int
