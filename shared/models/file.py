from pydantic import BaseModel


class FileRecord(BaseModel):
    """A stored upload, as persisted by the file layer."""

    file_id: str
    owner_id: str
    path: str
    original_name: str
    mime_type: str | None = None
    size: int = 0
