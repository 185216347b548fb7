"""Wires clients and services together for the HTTP surface."""

from services.agentic.AgentTools import AgentTools
from services.agentic.TaskExecutor import TaskExecutor
from services.chat.ChatService import ChatService
from services.chunking.TextChunker import TextChunker
from services.content.ContentService import ContentService
from services.deep_search.DeepSearchService import DeepSearchService
from services.files.FileRegistry import FileRegistry
from services.ingestion.IngestionService import IngestionService
from services.llm_gateway.LLMGateway import LLMGateway
from services.mindmap.MindMapBuilder import MindMapBuilder
from services.vector_index.VectorIndexService import VectorIndexService
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.websearch.WebSearchClientInterface import WebSearchClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperExtractor import HelperExtractor


class AppServices:
    def __init__(
        self,
        helper_config: HelperConfig,
        llm_client: LLMClientInterface,
        embed_client: EmbedClientInterface,
        rag_client: RAGClientInterface,
        web_search_client: WebSearchClientInterface,
        upload_dir: str | None = None,
    ):
        self.clients = [llm_client, embed_client, rag_client, web_search_client]

        self.extractor = HelperExtractor(helper_config)
        self.files = FileRegistry(helper_config, upload_dir=upload_dir)
        self.vector_index = VectorIndexService(helper_config, rag_client=rag_client, embed_client=embed_client)
        self.ingestion = IngestionService(
            helper_config,
            extractor=self.extractor,
            chunker=TextChunker(helper_config),
            vector_index=self.vector_index,
            file_registry=self.files,
        )
        self.gateway = LLMGateway(helper_config, llm_client)
        self.deep_search = DeepSearchService(helper_config, self.gateway, web_search_client)
        tools = AgentTools(
            helper_config,
            gateway=self.gateway,
            web_search=web_search_client,
            vector_index=self.vector_index,
            file_registry=self.files,
            extractor=self.extractor,
        )
        self.chat = ChatService(
            helper_config,
            gateway=self.gateway,
            vector_index=self.vector_index,
            ingestion=self.ingestion,
            deep_search=self.deep_search,
            task_executor=TaskExecutor(helper_config, self.gateway, tools),
        )
        self.content = ContentService(
            helper_config,
            gateway=self.gateway,
            mind_map_builder=MindMapBuilder(helper_config, self.gateway),
            file_registry=self.files,
            extractor=self.extractor,
        )

    async def boot(self) -> None:
        for client in self.clients:
            await client.boot()

    async def close(self) -> None:
        for client in self.clients:
            await client.close()
