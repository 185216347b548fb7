"""Deep search: decompose a question, search the web, synthesize an answer.

Sub-queries run strictly one after another with a fixed delay between them
to stay below search-engine rate limits.
"""

import asyncio

from services.llm_gateway.LLMGateway import LLMGateway
from services.llm_gateway.ModelSelection import TaskType
from shared.clients.websearch.WebSearchClientInterface import WebSearchClientInterface
from shared.exceptions.errors import StructuredOutputError
from shared.helper.HelperConfig import HelperConfig
from shared.models.chat import ChatSource, DeepSearchResult, SubQueryResult
from shared.models.websearch import WebSearchResult

MAX_SUB_QUERIES = 2
ENOUGH_RESULTS = 3


class DeepSearchService:
    def __init__(self, helper_config: HelperConfig, gateway: LLMGateway, web_search: WebSearchClientInterface):
        self.logging = helper_config.get_logger()
        self._gateway = gateway
        self._web_search = web_search
        self.delay_seconds = helper_config.get_number_val("DEEP_SEARCH_DELAY_SECONDS", default=3.0)

    ##########################################
    ################ CORE ####################
    ##########################################

    async def perform_search(self, query: str, history: list[dict] | None = None) -> DeepSearchResult:
        """Answer a question from live web results.

        Args:
            query (str): The user question.
            history (list[dict] | None): Prior turns, used as decomposition context.

        Returns:
            DeepSearchResult: Synthesized summary, web sources and per-sub-query outcomes.

        Raises:
            ProviderError: If synthesis fails. Search failures never raise.
        """
        query = query.strip()
        self.logging.info("Deep search for '%s'.", query)
        sub_queries = (await self.decompose_query(query, history))[:MAX_SUB_QUERIES]

        outcomes: list[SubQueryResult] = []
        for i, sub_query in enumerate(sub_queries):
            if i > 0 and self.delay_seconds > 0:
                await asyncio.sleep(self.delay_seconds)
            try:
                response = await self._web_search.do_search(sub_query, "text")
                outcomes.append(SubQueryResult(
                    query=sub_query,
                    results=response.results,
                    success=not response.error and not response.rate_limited,
                    error=response.error,
                    rate_limited=response.rate_limited,
                ))
                if len(response.results) > ENOUGH_RESULTS:
                    break
            except Exception as e:
                self.logging.error("Web search for '%s' failed: %s", sub_query, e)
                outcomes.append(SubQueryResult(query=sub_query, results=[], success=False, error=str(e)))

        all_results = [result for outcome in outcomes for result in outcome.results]
        self.logging.debug("Deep search collected %d results from %d sub-queries.", len(all_results), len(outcomes))
        if not all_results:
            return DeepSearchResult(
                summary=f"I couldn't find sufficient search results for \"{query}\". Please try rephrasing your question.",
                sources=[],
                confidence=0.0,
                search_queries=sub_queries,
                search_results=outcomes,
            )

        summary = await self._synthesize(query, all_results)
        return DeepSearchResult(
            summary=summary,
            sources=self._to_sources(all_results),
            confidence=round(min(1.0, len(all_results) / 5), 2),
            search_queries=sub_queries,
            search_results=outcomes,
        )

    async def decompose_query(self, query: str, history: list[dict] | None = None) -> list[str]:
        """Split a question into focused web search queries; the raw query is the fallback."""
        recent = "\n".join(f"{turn.get('role', 'user')}: {turn.get('content', '')}" for turn in (history or [])[-4:])
        prompt = (
            "You are a research assistant. Break the user's question down into focused web search queries.\n"
            + (f"Conversation so far:\n{recent}\n" if recent else "")
            + f"Question: \"{query}\"\n\n"
            "Respond ONLY with a JSON object of the form:\n"
            '{"coreQuestion": "...", "searchQueries": ["...", "..."], "context": "...", "expectedResultTypes": ["..."]}'
        )
        try:
            data = await self._gateway.generate_structured(prompt, required_keys=("searchQueries",), task_type=TaskType.REASONING)
        except StructuredOutputError as e:
            self.logging.warning("Query decomposition returned no usable JSON (%s); searching the raw query.", e.message)
            return [query]
        queries = [q.strip() for q in data.get("searchQueries") or [] if isinstance(q, str) and q.strip()]
        return queries or [query]

    ##########################################
    ################ HELPER ##################
    ##########################################

    async def _synthesize(self, query: str, results: list[WebSearchResult]) -> str:
        context = "\n\n".join(f"Source: {r.title} ({r.url})\nSnippet: {r.snippet or 'No snippet'}" for r in results)
        prompt = f"Based on the following search results, provide a concise answer to the query: \"{query}\".\n\nContext:\n{context}"
        return await self._gateway.generate_text(prompt, TaskType.REASONING)

    @staticmethod
    def _to_sources(results: list[WebSearchResult]) -> list[ChatSource]:
        seen: set[str] = set()
        sources = []
        for result in results:
            if result.url in seen:
                continue
            seen.add(result.url)
            sources.append(ChatSource(title=result.title or result.url, type="web", url=result.url))
        return sources
