"""Ingestion pipeline: extract → chunk → tag → index.

ingest() always appends to the vector index. Callers that answer questions
go through ensure_file_is_loaded(), which runs ingest() at most once per
file and process.
"""

import asyncio

from services.chunking.TextChunker import TextChunker
from services.files.FileRegistry import FileRegistry
from services.ingestion.IngestionTracker import IngestionTracker
from services.vector_index.VectorIndexService import VectorIndexService
from shared.exceptions.errors import ExtractionError
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperExtractor import HelperExtractor
from shared.models.chunk import IngestionRequest, IngestionResult


class IngestionService:
    def __init__(
        self,
        helper_config: HelperConfig,
        extractor: HelperExtractor,
        chunker: TextChunker,
        vector_index: VectorIndexService,
        file_registry: FileRegistry,
        tracker: IngestionTracker | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._extractor = extractor
        self._chunker = chunker
        self._vector_index = vector_index
        self._files = file_registry
        self.tracker = tracker or IngestionTracker()
        self._background: set[asyncio.Task] = set()

    ##########################################
    ################ CORE ####################
    ##########################################

    async def ingest(self, file_path: str, request: IngestionRequest, raise_on_extraction_error: bool = False) -> IngestionResult:
        """Index one file.

        Args:
            file_path (str): Path of the stored file.
            request (IngestionRequest): Owner, file id, display name and media type.
            raise_on_extraction_error (bool): Propagate extraction failures instead of
                reporting zero chunks.

        Returns:
            IngestionResult: How many chunks were added.
        """
        try:
            text = await self._extractor.extract(file_path, request.mime_type)
        except ExtractionError as e:
            if raise_on_extraction_error:
                raise
            self.logging.warning("Extraction failed for '%s' (%s): %s", request.original_name, request.file_id, e.message)
            return IngestionResult(file_id=request.file_id, chunks_added=0)

        chunks = self._chunker.chunk(text, request.original_name, owner_id=request.owner_id, file_id=request.file_id)
        if not chunks:
            self.logging.info("File '%s' (%s) produced no chunks.", request.original_name, request.file_id)
            return IngestionResult(file_id=request.file_id, chunks_added=0)

        added = await self._vector_index.insert(chunks)
        self.logging.info("Ingested '%s' (%s): %d chunks.", request.original_name, request.file_id, added, color="green")
        return IngestionResult(file_id=request.file_id, chunks_added=added)

    async def ensure_file_is_loaded(self, file_id: str, owner_id: str) -> None:
        """Make sure a file's chunks are indexed before it is queried.

        Concurrent calls for the same file share one ingestion. Failures
        propagate and leave the file unloaded so a later call retries.

        Raises:
            NotFoundError: If the file is absent or not owned by the caller.
            ExtractionError: If the file cannot be read.
            ProviderError: If embedding or indexing fails.
        """
        record = self._files.get_file_or_raise(file_id, owner_id)
        if self.tracker.is_loaded(file_id):
            return
        request = IngestionRequest(
            owner_id=record.owner_id,
            file_id=record.file_id,
            original_name=record.original_name,
            mime_type=record.mime_type,
        )
        started = await self.tracker.run_once(
            file_id,
            lambda: self.ingest(record.path, request, raise_on_extraction_error=True),
        )
        if not started:
            self.logging.debug("File %s already loaded or loading; joined existing ingestion.", file_id)

    def ingest_detached(self, file_path: str, request: IngestionRequest) -> asyncio.Task:
        """Schedule best-effort ingestion after an upload; failures are logged only."""

        async def _run() -> None:
            try:
                await self.tracker.run_once(request.file_id, lambda: self.ingest(file_path, request, raise_on_extraction_error=True))
            except Exception as e:
                self.logging.error("Background ingestion of '%s' (%s) failed: %s", request.original_name, request.file_id, e)

        task = asyncio.create_task(_run())
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def delete_file(self, file_id: str) -> None:
        """Remove a file's vectors and forget that it was loaded.

        An ingestion still running for the file is awaited first, so its
        points are written before the delete and removed with the rest.
        """
        pending = self.tracker.forget(file_id)
        if pending is not None:
            # asyncio.wait does not re-raise the ingestion error
            await asyncio.wait({pending})
            self.logging.debug("Waited for in-flight ingestion of %s before deleting it.", file_id)
        await self._vector_index.delete_by_file(file_id)
