"""Vector index service.

Embeds chunks through the configured EmbedClient and stores them in the
configured RAG backend with a VectorPoint payload. Searches embed the query
text and filter on owner_id / file_id before ranking.
"""

import asyncio
import uuid

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.exceptions.errors import ChatCoreError, ProviderError, classify_provider_error
from shared.helper.HelperConfig import HelperConfig
from shared.models.chunk import Chunk
from shared.models.retrieval import RetrievalMetadata, RetrievalResult

UPSERT_BATCH_SIZE = 100 # max points per upsert call
EMBED_BATCH_SIZE = 64   # max texts per embedding request


def make_point_id(file_id: str, chunk_index: int) -> str:
    """Build a deterministic UUID5 point ID for a chunk.

    The same file chunk always maps to the same point ID, so re-ingesting a
    file overwrites its points instead of duplicating them.
    """
    return str(uuid.uuid5(uuid.NAMESPACE_OID, f"{file_id}:{chunk_index}"))


class VectorIndexService:
    def __init__(
        self,
        helper_config: HelperConfig,
        rag_client: RAGClientInterface,
        embed_client: EmbedClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._rag = rag_client
        self._embed = embed_client
        self._collection_ready = False
        self._collection_lock = asyncio.Lock()

    ##########################################
    ############### COLLECTION ###############
    ##########################################

    async def _ensure_collection(self, vector_size: int) -> None:
        if self._collection_ready:
            return
        async with self._collection_lock:
            if not self._collection_ready:
                await self._rag.do_ensure_collection(vector_size=vector_size, distance=self._embed.embed_distance)
                self._collection_ready = True

    async def _collection_exists(self) -> bool:
        if not self._collection_ready:
            self._collection_ready = await self._rag.do_existence_check()
        return self._collection_ready

    ##########################################
    ################ CORE ####################
    ##########################################

    async def insert(self, chunks: list[Chunk]) -> int:
        """Embed and store a batch of chunks.

        Args:
            chunks (list[Chunk]): Chunks tagged with owner_id and file_id.

        Returns:
            int: Number of points written.

        Raises:
            ValueError: If a chunk is missing its owner_id or file_id.
            ProviderError: If the embedding or storage backend fails.
        """
        if not chunks:
            return 0
        for chunk in chunks:
            if not chunk.owner_id or not chunk.file_id:
                raise ValueError(f"Chunk '{chunk.chunk_sequence}' is missing owner_id or file_id.")

        try:
            return await self._embed_and_store(chunks)
        except ChatCoreError:
            raise
        except Exception as e:
            raise self._classify("Indexing", e) from e

    async def _embed_and_store(self, chunks: list[Chunk]) -> int:
        vectors: list[list[float]] = []
        for batch_start in range(0, len(chunks), EMBED_BATCH_SIZE):
            batch = chunks[batch_start: batch_start + EMBED_BATCH_SIZE]
            vectors.extend(await self._embed.do_embed([chunk.text for chunk in batch]))

        await self._ensure_collection(vector_size=len(vectors[0]))

        points: list[dict] = []
        for chunk, vector in zip(chunks, vectors):
            payload = VectorPoint(
                chunk_text=chunk.text,
                source=chunk.source_id,
                chunk_id=chunk.chunk_sequence,
                chunk_index=chunk.chunk_index,
                owner_id=chunk.owner_id,
                file_id=chunk.file_id,
            )
            points.append({
                "id": make_point_id(chunk.file_id, chunk.chunk_index),
                "vector": vector,
                "payload": payload.model_dump(),
            })

        # upsert in batches to avoid oversized requests
        for batch_start in range(0, len(points), UPSERT_BATCH_SIZE):
            await self._rag.do_upsert_points(points[batch_start: batch_start + UPSERT_BATCH_SIZE])

        self.logging.info("Indexed %d chunks for file %s.", len(points), chunks[0].file_id)
        return len(points)

    async def delete_by_file(self, file_id: str) -> None:
        """Remove every stored chunk of a file."""
        try:
            if not await self._collection_exists():
                return
            await self._rag.do_delete_points_by_filter({"file_id": file_id})
        except ChatCoreError:
            raise
        except Exception as e:
            raise self._classify("Vector deletion", e) from e
        self.logging.info("Deleted vectors for file %s.", file_id)

    async def search(self, query: str, limit: int = 5, owner_id: str | None = None, file_id: str | None = None) -> list[RetrievalResult]:
        """Similarity search restricted to an owner and/or file.

        Args:
            query (str): Natural language query.
            limit (int): Exact upper bound on the number of results.
            owner_id (str | None): Only return chunks of this user.
            file_id (str | None): Only return chunks of this file.

        Returns:
            list[RetrievalResult]: Results ordered by descending score, scores clamped to [0, 1].

        Raises:
            ProviderError: If the embedding or storage backend fails.
        """
        if limit <= 0 or not query.strip():
            return []

        conditions: dict[str, str] = {}
        if owner_id:
            conditions["owner_id"] = owner_id
        if file_id:
            conditions["file_id"] = file_id

        try:
            if not await self._collection_exists():
                return []
            vector = (await self._embed.do_embed(query))[0]
            hits = await self._rag.do_search(vector=vector, limit=limit, conditions=conditions or None)
        except ChatCoreError:
            raise
        except Exception as e:
            raise self._classify("Vector search", e) from e

        results = [self._to_result(hit) for hit in hits[:limit]]
        results.sort(key=lambda r: r.score, reverse=True)
        self.logging.debug("Vector search returned %d results (owner=%s, file=%s).", len(results), owner_id, file_id)
        return results

    async def count(self) -> int:
        """Total number of stored chunks."""
        if not await self._collection_exists():
            return 0
        return await self._rag.do_count()

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _classify(self, what: str, error: Exception) -> ProviderError:
        classified = classify_provider_error(error)
        self.logging.error("%s failed (%s): %s", what, classified.kind.value, error)
        return classified

    @staticmethod
    def _to_result(hit: dict) -> RetrievalResult:
        payload = hit.get("payload", {})
        return RetrievalResult(
            content=payload.get("chunk_text", ""),
            metadata=RetrievalMetadata(
                source=payload.get("source", ""),
                file_id=str(payload.get("file_id", "")),
                user_id=str(payload.get("owner_id", "")),
                chunk_id=payload.get("chunk_id", ""),
            ),
            score=min(1.0, max(0.0, float(hit.get("score", 0.0)))),
        )
