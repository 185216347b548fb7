"""Plain-text extraction for uploaded documents (txt, md, pdf, docx)."""

import asyncio
import os
import zipfile

from docx import Document
from docx.opc.exceptions import PackageNotFoundError
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from shared.exceptions.errors import ExtractionError
from shared.helper.HelperConfig import HelperConfig

_TEXT_EXTENSIONS = (".txt", ".md", ".markdown", ".csv", ".log")

_MIME_TO_EXTENSION: dict[str, str] = {
    "text/plain": ".txt",
    "text/markdown": ".md",
    "text/csv": ".csv",
    "application/pdf": ".pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
}


class HelperExtractor:
    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self.pdf_max_pages = int(helper_config.get_number_val("PDF_MAX_PAGES", default=20))

    ##########################################
    ################ GETTER ##################
    ##########################################

    def resolve_extension(self, path: str, mime_type: str | None = None) -> str:
        """Pick the parser key for a file: its extension, else the declared media type."""
        ext = os.path.splitext(path)[1].lower()
        if ext:
            return ext
        return _MIME_TO_EXTENSION.get((mime_type or "").split(";")[0].strip().lower(), "")

    ##########################################
    ################ CORE ####################
    ##########################################

    async def extract(self, path: str, mime_type: str | None = None) -> str:
        """Extract plain text from a file without blocking the event loop.

        Args:
            path (str): Path of the stored file.
            mime_type (str | None): Declared media type, used when the path has no extension.

        Returns:
            str: The extracted text. Empty for a recognised but empty file.

        Raises:
            ExtractionError: If the file is missing, unsupported or cannot be parsed.
        """
        if not os.path.isfile(path):
            raise ExtractionError(f"File not found: {os.path.basename(path)}", path=path)

        ext = self.resolve_extension(path, mime_type)
        if ext in _TEXT_EXTENSIONS:
            reader = self._read_text
        elif ext == ".pdf":
            reader = self._read_pdf
        elif ext == ".docx":
            reader = self._read_docx
        else:
            raise ExtractionError(f"Unsupported file type '{ext or mime_type or 'unknown'}'.", path=path)

        text = await asyncio.to_thread(reader, path)
        self.logging.debug("Extracted %d characters from %s.", len(text), os.path.basename(path))
        return text

    ##########################################
    ############### READERS ##################
    ##########################################

    def _read_text(self, path: str) -> str:
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                return f.read()
        except OSError as e:
            raise ExtractionError(f"Could not read text file: {e}", path=path) from e

    def _read_pdf(self, path: str) -> str:
        try:
            reader = PdfReader(path)
            pages = reader.pages[: self.pdf_max_pages]
            return "\n".join((page.extract_text() or "") for page in pages).strip()
        except (PdfReadError, OSError, ValueError) as e:
            raise ExtractionError(f"Could not parse PDF: {e}", path=path) from e

    def _read_docx(self, path: str) -> str:
        try:
            doc = Document(path)
        except (PackageNotFoundError, zipfile.BadZipFile, OSError, ValueError, KeyError) as e:
            raise ExtractionError(f"Could not parse DOCX: {e}", path=path) from e
        return "\n".join(p.text for p in doc.paragraphs).strip()
