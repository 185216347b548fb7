import json

import httpx
import pytest

from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.llm.gemini.LLMClientGemini import LLMClientGemini
from shared.clients.llm.ollama.LLMClientOllama import LLMClientOllama
from shared.clients.rag.qdrant.RAGClientQdrant import RAGClientQdrant
from shared.clients.websearch.duckduckgo.WebSearchClientDuckduckgo import (
    WebSearchClientDuckduckgo,
    parse_ddg_html,
    parse_ddg_lite,
)
from shared.exceptions.errors import ClientRequestError, ConfigurationError
from shared.helper.HelperConfig import HelperConfig

LITE_PAGE = """
<table>
<tr><td><a rel="nofollow" href="//duckduckgo.com/l/?uddg=https%3A%2F%2Fdocs.python.org%2F3%2F&amp;rut=abc" class='result-link'>Python <b>Docs</b></a></td></tr>
<tr><td class='result-snippet'>The official Python &amp; library documentation.</td></tr>
<tr><td><a rel="nofollow" href="https://duckduckgo.com/y.js?ad_domain=example.com" class='result-link'>Sponsored</a></td></tr>
<tr><td class='result-snippet'>An ad.</td></tr>
<tr><td><a class="result-link" href="https://realpython.com/">Real Python</a></td></tr>
<tr><td class="result-snippet">Tutorials.</td></tr>
</table>
"""

HTML_PAGE = """
<div class="result"><a class="result__a" href="https://example.org/a">Example A</a>
<a class="result__snippet" href="https://example.org/a">Snippet <b>A</b></a></div>
"""


def _config(logger, **overrides):
    return HelperConfig(logger=logger, overrides=overrides)


def _mock(client, handler):
    client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestDuckDuckGoParsing:
    def test_lite_unwraps_redirects_and_drops_ads(self):
        results = parse_ddg_lite(LITE_PAGE, 10)
        assert [r.url for r in results] == ["https://docs.python.org/3/", "https://realpython.com/"]
        assert results[0].title == "Python Docs"
        assert results[0].snippet == "The official Python & library documentation."
        assert results[1].snippet == "Tutorials."

    def test_lite_respects_max_results(self):
        assert len(parse_ddg_lite(LITE_PAGE, 1)) == 1

    def test_html_page(self):
        [result] = parse_ddg_html(HTML_PAGE, 5)
        assert (result.title, result.url, result.snippet) == ("Example A", "https://example.org/a", "Snippet A")


class TestDuckDuckGoClient:
    async def test_lite_search(self, logger):
        client = WebSearchClientDuckduckgo(_config(logger))
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, text=LITE_PAGE)

        _mock(client, handler)
        response = await client.do_search("python docs", options={"region": "de-de"})
        assert response.provider == "duckduckgo_lite"
        assert len(response.results) == 2
        assert seen[0].url.params["q"] == "python docs"
        assert seen[0].url.params["kl"] == "de-de"
        assert "Mozilla" in seen[0].headers["user-agent"]

    async def test_falls_back_to_html(self, logger):
        client = WebSearchClientDuckduckgo(_config(logger))

        def handler(request):
            if request.method == "GET":
                return httpx.Response(200, text="<html>nothing</html>")
            return httpx.Response(200, text=HTML_PAGE)

        _mock(client, handler)
        response = await client.do_search("example")
        assert response.provider == "duckduckgo_html"
        assert [r.title for r in response.results] == ["Example A"]

    async def test_rate_limit_is_reported(self, logger):
        client = WebSearchClientDuckduckgo(_config(logger))
        _mock(client, lambda request: httpx.Response(202, text="anomaly"))
        response = await client.do_search("python")
        assert response.rate_limited is True
        assert response.results == []

    async def test_transport_error_is_reported(self, logger):
        client = WebSearchClientDuckduckgo(_config(logger))

        def handler(request):
            raise httpx.ConnectError("offline", request=request)

        _mock(client, handler)
        response = await client.do_search("python")
        assert response.error == "offline"

    async def test_unsupported_kind(self, logger):
        client = WebSearchClientDuckduckgo(_config(logger))
        response = await client.do_search("python", kind="images")
        assert response.error and response.results == []


class TestLLMClients:
    def test_gemini_requires_api_key(self, logger, monkeypatch):
        monkeypatch.delenv("LLM_GEMINI_API_KEY", raising=False)
        with pytest.raises(ConfigurationError):
            LLMClientGemini(_config(logger))

    def test_gemini_payload_and_models(self, logger):
        client = LLMClientGemini(_config(logger, LLM_GEMINI_API_KEY="k", LLM_REASONING_MODEL="gemini-exp"))
        assert client.chat_model == "gemini-1.5-flash"
        assert client.reasoning_model == "gemini-exp"
        payload = client.get_generate_payload(
            "question", "gemini-1.5-flash", system_instruction="sys",
            history=[{"role": "assistant", "content": "earlier"}, {"role": "user", "content": ""}],
        )
        assert payload["contents"] == [
            {"role": "model", "parts": [{"text": "earlier"}]},
            {"role": "user", "parts": [{"text": "question"}]},
        ]
        assert payload["systemInstruction"] == {"parts": [{"text": "sys"}]}

    def test_gemini_blocked_responses(self, logger):
        client = LLMClientGemini(_config(logger, LLM_GEMINI_API_KEY="k"))
        with pytest.raises(ValueError, match="blocked"):
            client.extract_generated_text({"promptFeedback": {"blockReason": "SAFETY"}})
        with pytest.raises(ValueError, match="blocked"):
            client.extract_generated_text({"candidates": [{"content": {"parts": []}, "finishReason": "SAFETY"}]})
        text = client.extract_generated_text({"candidates": [{"content": {"parts": [{"text": "a"}, {"text": "b"}]}}]})
        assert text == "ab"

    async def test_gemini_generate_round_trip(self, logger):
        client = LLMClientGemini(_config(logger, LLM_GEMINI_API_KEY="secret"))
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": " hi "}]}}]})

        _mock(client, handler)
        assert await client.do_generate("hello") == "hi"
        assert seen[0].url.path == "/v1beta/models/gemini-1.5-flash:generateContent"
        assert seen[0].headers["x-goog-api-key"] == "secret"

    async def test_error_status_raises(self, logger):
        client = LLMClientOllama(_config(logger, LLM_OLLAMA_BASE_URL="http://ollama:11434"))
        _mock(client, lambda request: httpx.Response(500, text="model not loaded"))
        with pytest.raises(ClientRequestError) as exc_info:
            await client.do_generate("hello")
        assert exc_info.value.status == 500
        assert "model not loaded" in exc_info.value.body

    async def test_request_before_boot(self, logger):
        client = LLMClientOllama(_config(logger, LLM_OLLAMA_BASE_URL="http://ollama:11434"))
        with pytest.raises(ClientRequestError):
            await client.do_generate("hello")

    def test_ollama_payload(self, logger):
        client = LLMClientOllama(_config(logger, LLM_OLLAMA_BASE_URL="http://ollama:11434"))
        payload = client.get_generate_payload("q", "llama3.1:8b", system_instruction="sys", history=[{"role": "bot", "content": "a"}])
        assert [m["role"] for m in payload["messages"]] == ["system", "assistant", "user"]
        assert payload["stream"] is False


class TestManagers:
    def test_selects_configured_engine(self, logger):
        config = _config(logger, LLM_ENGINE="ollama", LLM_OLLAMA_BASE_URL="http://ollama:11434")
        assert isinstance(LLMClientManager(config).get_client(), LLMClientOllama)

    def test_unknown_engine(self, logger):
        with pytest.raises(ValueError):
            LLMClientManager(_config(logger, LLM_ENGINE="nonexistent"))

    async def test_embed_manager_and_batch(self, logger):
        config = _config(logger, EMBED_ENGINE="ollama", EMBED_OLLAMA_BASE_URL="http://ollama:11434")
        client = EmbedClientManager(config).get_client()

        def handler(request):
            body = json.loads(request.content)
            return httpx.Response(200, json={"embeddings": [[float(len(t))] for t in body["input"]]})

        _mock(client, handler)
        assert await client.do_embed(["a", "bcd"]) == [[1.0], [3.0]]
        assert await client.do_embed([]) == []


class TestQdrantClient:
    async def test_search_sends_filter(self, logger):
        client = RAGClientQdrant(_config(logger, RAG_QDRANT_BASE_URL="http://qdrant:6333"))
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"result": [{"id": "p1", "score": 0.9, "payload": {"chunk_text": "x"}}]})

        _mock(client, handler)
        hits = await client.do_search([0.1, 0.2], limit=3, conditions={"owner_id": "u1", "file_id": "f1"})
        assert hits == [{"id": "p1", "score": 0.9, "payload": {"chunk_text": "x"}}]
        must = seen[0]["filter"]["must"]
        assert {"key": "owner_id", "match": {"value": "u1"}} in must
        assert seen[0]["limit"] == 3

    async def test_delete_requires_filter(self, logger):
        client = RAGClientQdrant(_config(logger, RAG_QDRANT_BASE_URL="http://qdrant:6333"))
        _mock(client, lambda request: httpx.Response(200, json={"result": {}}))
        with pytest.raises(ValueError):
            await client.do_delete_points_by_filter({})
