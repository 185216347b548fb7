"""Overlapping fixed-window text chunker with word-boundary trimming."""

from shared.helper.HelperConfig import HelperConfig
from shared.models.chunk import Chunk

CHUNK_SIZE = 512     # characters per window
CHUNK_OVERLAP = 100  # characters shared by consecutive windows


class TextChunker:
    def __init__(self, helper_config: HelperConfig | None = None, chunk_size: int | None = None, chunk_overlap: int | None = None):
        if helper_config is not None:
            chunk_size = chunk_size or int(helper_config.get_number_val("CHUNK_SIZE", default=CHUNK_SIZE))
            chunk_overlap = chunk_overlap if chunk_overlap is not None else int(helper_config.get_number_val("CHUNK_OVERLAP", default=CHUNK_OVERLAP))
        self.chunk_size = chunk_size or CHUNK_SIZE
        self.chunk_overlap = CHUNK_OVERLAP if chunk_overlap is None else chunk_overlap
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive.")
        if not 0 <= self.chunk_overlap < self.chunk_size:
            raise ValueError("chunk_overlap must be >= 0 and smaller than chunk_size.")

    def split_windows(self, text: str) -> list[tuple[int, str]]:
        """Split text into (start_offset, raw_window) pairs.

        A window whose right edge falls inside the text is cut back to its last
        space, unless that space is the window's first character. The next
        window starts `chunk_overlap` characters before the end of the current
        one; if that would not move forward it starts right at the end. The
        window that reaches the end of the text is the last one.
        """
        if not isinstance(text, str) or not text.strip():
            return []

        windows: list[tuple[int, str]] = []
        start = 0
        while start < len(text):
            end = min(start + self.chunk_size, len(text))
            window = text[start:end]
            if end < len(text):
                last_space = window.rfind(" ")
                if last_space > 0:
                    window = window[:last_space]
            windows.append((start, window))

            actual_end = start + len(window)
            if actual_end >= len(text):
                break
            next_start = actual_end - self.chunk_overlap
            if next_start <= start:
                next_start = actual_end
            start = next_start
        return windows

    def chunk(self, text: str, source_name: str, owner_id: str = "", file_id: str = "") -> list[Chunk]:
        """Split text into trimmed, non-empty chunks tagged with their source.

        Args:
            text (str): The full document text.
            source_name (str): Display name of the document, used in chunk ids.
            owner_id (str): Owning user.
            file_id (str): Owning file record.

        Returns:
            list[Chunk]: Ordered chunks; empty for empty or whitespace-only text.
        """
        chunks: list[Chunk] = []
        for index, (_, window) in enumerate(self.split_windows(text)):
            trimmed = window.strip()
            if not trimmed:
                continue
            chunks.append(
                Chunk(
                    text=trimmed,
                    source_id=source_name,
                    chunk_sequence=f"{source_name}_chunk_{index}",
                    chunk_index=index,
                    owner_id=owner_id,
                    file_id=file_id,
                )
            )
        return chunks
