"""Shared fixtures: configuration, scripted LLM, deterministic embedder, canned web search."""

import logging
import re
import zlib
from typing import Callable

import pytest

from services.chunking.TextChunker import TextChunker
from services.files.FileRegistry import FileRegistry
from services.ingestion.IngestionService import IngestionService
from services.llm_gateway.LLMGateway import LLMGateway
from services.vector_index.VectorIndexService import VectorIndexService
from shared.clients.rag.memory.RAGClientMemory import RAGClientMemory
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperExtractor import HelperExtractor
from shared.logging.logging_setup import ColorLogger
from shared.models.websearch import WebSearchResponse, WebSearchResult

EMBED_DIM = 64
_WORD_RE = re.compile(r"[a-z0-9]+")


class FakeLLMClient:
    """Answers from a script: a handler callable, a queue of replies, or a default."""

    chat_model = "fake-chat"
    reasoning_model = "fake-reasoning"

    def __init__(self, replies: list[str] | None = None, handler: Callable[[str], str] | None = None, error: Exception | None = None):
        self.replies = list(replies or [])
        self.handler = handler
        self.error = error
        self.calls: list[dict] = []

    async def do_generate(self, prompt, model=None, system_instruction=None, history=None):
        self.calls.append({"prompt": prompt, "model": model, "system_instruction": system_instruction, "history": history})
        if self.error is not None:
            raise self.error
        if self.handler is not None:
            return self.handler(prompt)
        if self.replies:
            return self.replies.pop(0)
        return "fake answer"

    async def boot(self):
        pass

    async def close(self):
        pass


class FakeEmbedClient:
    """Hashed bag-of-words vectors: texts with the same words point the same way."""

    embed_distance = "Cosine"

    def __init__(self):
        self.calls: list[list[str]] = []

    async def do_embed(self, texts):
        texts = [texts] if isinstance(texts, str) else list(texts)
        self.calls.append(texts)
        vectors = []
        for text in texts:
            vector = [0.0] * EMBED_DIM
            for word in _WORD_RE.findall(text.lower()):
                vector[zlib.crc32(word.encode()) % EMBED_DIM] += 1.0
            vectors.append(vector)
        return vectors

    async def boot(self):
        pass

    async def close(self):
        pass


class FakeWebSearchClient:
    """Returns canned responses per query; a query mapped to an exception raises it."""

    def __init__(self, responses: dict | None = None):
        self.responses = responses or {}
        self.queries: list[str] = []

    async def do_search(self, query, kind="text", options=None):
        self.queries.append(query)
        outcome = self.responses.get(query)
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, WebSearchResponse):
            return outcome
        return WebSearchResponse(query=query, provider="fake", results=outcome or [])

    async def boot(self):
        pass

    async def close(self):
        pass


def make_results(prefix: str, count: int) -> list[WebSearchResult]:
    return [
        WebSearchResult(title=f"{prefix} result {i}", url=f"https://example.com/{prefix}/{i}", snippet=f"{prefix} snippet {i}")
        for i in range(count)
    ]


@pytest.fixture
def logger():
    return ColorLogger(logging.getLogger("docchat.tests"))


@pytest.fixture
def config_overrides(tmp_path):
    return {
        "ROOT_DIR": str(tmp_path),
        "DEEP_SEARCH_DELAY_SECONDS": "0",
        "APP_API_KEY": "test-key",
    }


@pytest.fixture
def helper_config(logger, config_overrides):
    return HelperConfig(logger=logger, overrides=config_overrides)


@pytest.fixture
def fake_llm():
    return FakeLLMClient()


@pytest.fixture
def gateway(helper_config, fake_llm):
    return LLMGateway(helper_config, fake_llm)


@pytest.fixture
def embed_client():
    return FakeEmbedClient()


@pytest.fixture
def rag_client(helper_config):
    return RAGClientMemory(helper_config)


@pytest.fixture
def vector_index(helper_config, rag_client, embed_client):
    return VectorIndexService(helper_config, rag_client=rag_client, embed_client=embed_client)


@pytest.fixture
def file_registry(helper_config, tmp_path):
    return FileRegistry(helper_config, upload_dir=str(tmp_path / "uploads"))


@pytest.fixture
def ingestion(helper_config, vector_index, file_registry):
    return IngestionService(
        helper_config,
        extractor=HelperExtractor(helper_config),
        chunker=TextChunker(helper_config),
        vector_index=vector_index,
        file_registry=file_registry,
    )
