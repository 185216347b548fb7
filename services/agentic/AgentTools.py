"""The five tools the agentic executor can call.

Every tool takes the resolved plan arguments plus the caller's user id and
returns plain text that is appended to the execution transcript.
"""

from typing import Awaitable, Callable

from services.files.FileRegistry import FileRegistry
from services.llm_gateway.LLMGateway import LLMGateway
from services.vector_index.VectorIndexService import VectorIndexService
from shared.clients.websearch.WebSearchClientInterface import WebSearchClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperExtractor import HelperExtractor

WEB_SEARCH = "web_search"
FILE_SEARCH = "file_search"
READ_FILE = "read_file"
SUMMARIZE = "summarize"
GENERATE_REPORT = "generate_report"

TOOL_DESCRIPTIONS = {
    WEB_SEARCH: "(query): Searches the web for information.",
    FILE_SEARCH: "(query, userId): Searches user's documents for information.",
    READ_FILE: "(fileId): Reads the full content of a user's file.",
    SUMMARIZE: "(text): Summarizes a block of text.",
    GENERATE_REPORT: "(content): Generates a formal report from content.",
}

TOP_RESULTS = 3
EXCERPT_CHARS = 200

ToolFunc = Callable[[list[str], str], Awaitable[str]]


def _first(args: list[str]) -> str:
    return args[0] if args else ""


class AgentTools:
    def __init__(
        self,
        helper_config: HelperConfig,
        gateway: LLMGateway,
        web_search: WebSearchClientInterface,
        vector_index: VectorIndexService,
        file_registry: FileRegistry,
        extractor: HelperExtractor,
    ):
        self.logging = helper_config.get_logger()
        self._gateway = gateway
        self._web_search = web_search
        self._vector_index = vector_index
        self._files = file_registry
        self._extractor = extractor
        self.search_limit = int(helper_config.get_number_val("RAG_TOP_K", default=5))

    def get_tools(self) -> dict[str, ToolFunc]:
        return {
            WEB_SEARCH: self.web_search,
            FILE_SEARCH: self.file_search,
            READ_FILE: self.read_file,
            SUMMARIZE: self.summarize,
            GENERATE_REPORT: self.generate_report,
        }

    ##########################################
    ################# TOOLS ##################
    ##########################################

    async def web_search(self, args: list[str], user_id: str) -> str:
        response = await self._web_search.do_search(", ".join(args), "text")
        if response.error and not response.results:
            raise RuntimeError(f"Web search failed: {response.error}")
        return "\n\n".join(
            f"Title: {r.title}\nURL: {r.url}\nSnippet: {r.snippet}" for r in response.results[:TOP_RESULTS]
        )

    async def file_search(self, args: list[str], user_id: str) -> str:
        # always scoped to the caller, whatever the plan passed as user argument
        results = await self._vector_index.search(_first(args), limit=self.search_limit, owner_id=user_id)
        return "\n\n".join(
            f"Source: {r.metadata.source}\nContent: {r.content[:EXCERPT_CHARS]}..." for r in results[:TOP_RESULTS]
        )

    async def read_file(self, args: list[str], user_id: str) -> str:
        record = self._files.get_file(_first(args), user_id)
        if record is None:
            return "Error: File not found."
        return await self._extractor.extract(record.path, record.mime_type)

    async def summarize(self, args: list[str], user_id: str) -> str:
        summary = await self._gateway.generate_summary(", ".join(args))
        return summary.text

    async def generate_report(self, args: list[str], user_id: str) -> str:
        return await self._gateway.generate_report(", ".join(args), "Generated Report")
