import httpx
import pytest

from services.vector_index.VectorIndexService import VectorIndexService, make_point_id
from shared.exceptions.errors import ProviderError, ProviderErrorKind
from shared.models.chunk import Chunk


def _chunk(text: str, index: int, owner: str = "u1", file: str = "f1", source: str = "doc.txt") -> Chunk:
    return Chunk(text=text, source_id=source, chunk_sequence=f"{source}_chunk_{index}", chunk_index=index, owner_id=owner, file_id=file)


class TestVectorIndex:
    async def test_search_without_collection_is_empty(self, vector_index):
        assert await vector_index.search("anything") == []
        assert await vector_index.count() == 0

    async def test_insert_and_rank(self, vector_index):
        await vector_index.insert([
            _chunk("apples oranges bananas fruit salad", 0),
            _chunk("engines pistons crankshaft gearbox", 1),
            _chunk("apples orchards harvest season", 2),
        ])
        results = await vector_index.search("apples oranges bananas fruit salad", limit=3)
        assert results[0].content == "apples oranges bananas fruit salad"
        assert results[0].score == pytest.approx(1.0, abs=1e-5)
        scores = [r.score for r in results]
        assert scores == sorted(scores, reverse=True)
        assert all(0.0 <= s <= 1.0 for s in scores)

    async def test_filters_apply_before_limit(self, vector_index):
        await vector_index.insert([_chunk("shared words here", i, owner="u1", file="f1") for i in range(4)])
        await vector_index.insert([_chunk("shared words here", i, owner="u2", file="f2") for i in range(4)])

        results = await vector_index.search("shared words here", limit=3, owner_id="u2")
        assert len(results) == 3
        assert {r.metadata.user_id for r in results} == {"u2"}

        results = await vector_index.search("shared words here", limit=10, owner_id="u1", file_id="f2")
        assert results == []

    async def test_metadata_round_trip(self, vector_index):
        await vector_index.insert([_chunk("solar panel output", 0, source="report.pdf")])
        [result] = await vector_index.search("solar panel output", limit=5)
        assert result.metadata.source == "report.pdf"
        assert result.metadata.file_id == "f1"
        assert result.metadata.chunk_id == "report.pdf_chunk_0"

    async def test_delete_by_file(self, vector_index):
        await vector_index.insert([_chunk("alpha beta", 0, file="f1"), _chunk("alpha beta", 0, file="f2")])
        assert await vector_index.count() == 2
        await vector_index.delete_by_file("f1")
        assert await vector_index.count() == 1
        results = await vector_index.search("alpha beta", limit=5)
        assert [r.metadata.file_id for r in results] == ["f2"]

    async def test_reinsert_overwrites_points(self, vector_index):
        chunks = [_chunk("gamma delta", 0), _chunk("epsilon zeta", 1)]
        await vector_index.insert(chunks)
        await vector_index.insert(chunks)
        assert await vector_index.count() == 2

    async def test_untagged_chunk_rejected(self, vector_index):
        with pytest.raises(ValueError):
            await vector_index.insert([_chunk("no owner", 0, owner="")])

    def test_point_ids_are_deterministic(self):
        assert make_point_id("f1", 3) == make_point_id("f1", 3)
        assert make_point_id("f1", 3) != make_point_id("f1", 4)


class BrokenEmbedClient:
    embed_distance = "Cosine"

    def __init__(self, error: Exception):
        self.error = error

    async def do_embed(self, texts):
        raise self.error


class TestBackendFailures:
    async def test_embedding_failure_on_insert_is_classified(self, helper_config, rag_client):
        index = VectorIndexService(helper_config, rag_client=rag_client, embed_client=BrokenEmbedClient(httpx.ConnectError("connection refused")))
        with pytest.raises(ProviderError) as exc_info:
            await index.insert([_chunk("alpha", 0)])
        assert exc_info.value.kind == ProviderErrorKind.UNKNOWN
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    async def test_embedding_failure_on_search_is_classified(self, helper_config, rag_client, vector_index):
        await vector_index.insert([_chunk("alpha beta", 0)])
        index = VectorIndexService(helper_config, rag_client=rag_client, embed_client=BrokenEmbedClient(ValueError("429 Too Many Requests")))
        with pytest.raises(ProviderError) as exc_info:
            await index.search("alpha")
        assert exc_info.value.kind == ProviderErrorKind.RATE_LIMITED
