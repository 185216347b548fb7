import pytest

from conftest import FakeLLMClient, FakeWebSearchClient, make_results
from services.deep_search.DeepSearchService import DeepSearchService
from services.llm_gateway.LLMGateway import LLMGateway
from shared.exceptions.errors import ProviderError
from shared.models.websearch import WebSearchResponse


def _service(helper_config, llm, web):
    return DeepSearchService(helper_config, LLMGateway(helper_config, llm), web)


class TestDeepSearch:
    async def test_partial_failure_still_synthesizes(self, helper_config):
        llm = FakeLLMClient(replies=['```json\n{"searchQueries": ["first", "second", "third"]}\n```', "synthesized"])
        web = FakeWebSearchClient({"first": RuntimeError("connection reset"), "second": make_results("s", 4)})

        result = await _service(helper_config, llm, web).perform_search("my question", [])

        assert web.queries == ["first", "second"]
        assert [o.success for o in result.search_results] == [False, True]
        assert result.search_results[0].error == "connection reset"
        assert result.summary == "synthesized"
        assert len(result.sources) == 4
        assert result.confidence > 0
        assert "s snippet 0" in llm.calls[1]["prompt"]

    async def test_stops_after_enough_results(self, helper_config):
        llm = FakeLLMClient(replies=['{"searchQueries": ["first", "second"]}', "done"])
        web = FakeWebSearchClient({"first": make_results("f", 4), "second": make_results("s", 4)})

        result = await _service(helper_config, llm, web).perform_search("q", [])

        assert web.queries == ["first"]
        assert len(result.search_results) == 1

    async def test_rate_limited_query_is_unsuccessful(self, helper_config):
        llm = FakeLLMClient(replies=['{"searchQueries": ["first", "second"]}', "answer"])
        web = FakeWebSearchClient({
            "first": WebSearchResponse(query="first", rate_limited=True, error="rate limited (status 202)"),
            "second": make_results("s", 1),
        })

        result = await _service(helper_config, llm, web).perform_search("q", [])

        first = result.search_results[0]
        assert first.success is False and first.rate_limited is True
        assert result.search_results[1].success is True

    async def test_no_results_gives_fixed_message(self, helper_config):
        llm = FakeLLMClient(replies=['{"searchQueries": ["first"]}'])
        web = FakeWebSearchClient({})

        result = await _service(helper_config, llm, web).perform_search("  obscure topic ", [])

        assert result.summary == 'I couldn\'t find sufficient search results for "obscure topic". Please try rephrasing your question.'
        assert result.sources == []
        assert result.confidence == 0
        assert len(llm.calls) == 1

    async def test_unparseable_decomposition_uses_raw_query(self, helper_config):
        llm = FakeLLMClient(replies=["I would search for several things.", "answer"])
        web = FakeWebSearchClient({"raw question": make_results("r", 1)})

        result = await _service(helper_config, llm, web).perform_search("raw question", [])

        assert web.queries == ["raw question"]
        assert result.search_queries == ["raw question"]

    async def test_decomposition_uses_reasoning_tier(self, helper_config):
        llm = FakeLLMClient(replies=['{"searchQueries": ["a"]}', "answer"])
        web = FakeWebSearchClient({"a": make_results("a", 1)})
        await _service(helper_config, llm, web).perform_search("q", [{"role": "user", "content": "earlier turn"}])
        assert llm.calls[0]["model"] == "fake-reasoning"
        assert "earlier turn" in llm.calls[0]["prompt"]

    async def test_synthesis_failure_is_classified(self, helper_config):
        def handler(prompt):
            if "search queries" in prompt:
                return '{"searchQueries": ["a"]}'
            raise RuntimeError("429 Too Many Requests")

        llm = FakeLLMClient(handler=handler)
        web = FakeWebSearchClient({"a": make_results("a", 1)})
        with pytest.raises(ProviderError) as exc_info:
            await _service(helper_config, llm, web).perform_search("q", [])
        assert exc_info.value.kind.value == "rate_limited"
        assert exc_info.value.status_code == 429
