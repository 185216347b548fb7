"""VectorPoint model: metadata stored alongside each vector chunk in a RAG backend."""

from pydantic import BaseModel


class VectorPoint(BaseModel):
    """Metadata payload stored alongside each vector chunk in a RAG backend.

    The owner_id and file_id fields are the only filter keys used for
    retrieval and bulk deletion, and are therefore mandatory.

    Attributes:
        chunk_text:   Trimmed text content of this chunk.
        source:       Display name of the source document (e.g. "notes.pdf").
        chunk_id:     Deterministic chunk sequence id ("<source>_chunk_<n>").
        chunk_index:  Zero-based position of this chunk within the document.
        owner_id:     User that owns the document; used for access isolation.
        file_id:      File record the chunk was extracted from.
    """

    chunk_text: str
    source: str
    chunk_id: str
    chunk_index: int
    owner_id: str
    file_id: str
