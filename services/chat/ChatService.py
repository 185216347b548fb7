"""Chat entry points for the four answer modes: standard, RAG, deep search, agentic.

The RAG mode answers from a single document only when the best retrieved
chunk scores strictly above the confidence threshold. Below it the request
either falls back to a deep web search or returns a fixed apology.
"""

from services.agentic.TaskExecutor import TaskExecutor
from services.deep_search.DeepSearchService import DeepSearchService
from services.ingestion.IngestionService import IngestionService
from services.llm_gateway.LLMGateway import LLMGateway
from services.llm_gateway.ModelSelection import TaskType
from services.vector_index.VectorIndexService import VectorIndexService
from shared.exceptions.errors import ValidationError
from shared.helper.HelperConfig import HelperConfig
from shared.models.chat import ChatAnswer, ChatMetadata, ChatSource
from shared.models.retrieval import RetrievalResult

RAG_CONFIDENCE_THRESHOLD = 0.65
RAG_TOP_K = 5

NO_FILE_MESSAGE = "Please select a file to chat with from the 'My Files' list before asking a question in RAG mode."
LOW_CONFIDENCE_MESSAGE = (
    "I couldn't find a confident answer for that in your document. "
    "Please try rephrasing your question or asking something else about the file."
)


class ChatService:
    def __init__(
        self,
        helper_config: HelperConfig,
        gateway: LLMGateway,
        vector_index: VectorIndexService,
        ingestion: IngestionService,
        deep_search: DeepSearchService,
        task_executor: TaskExecutor,
    ):
        self.logging = helper_config.get_logger()
        self._gateway = gateway
        self._vector_index = vector_index
        self._ingestion = ingestion
        self._deep_search = deep_search
        self._task_executor = task_executor
        self.confidence_threshold = helper_config.get_number_val("RAG_CONFIDENCE_THRESHOLD", default=RAG_CONFIDENCE_THRESHOLD)
        self.top_k = int(helper_config.get_number_val("RAG_TOP_K", default=RAG_TOP_K))

    ##########################################
    ################ MODES ###################
    ##########################################

    async def answer_standard(self, query: str, history: list[dict] | None = None, system_prompt: str | None = None) -> ChatAnswer:
        self._require_query(query)
        message = await self._gateway.generate_chat_response(query, history=history, system_prompt=system_prompt)
        return ChatAnswer(message=message, metadata=ChatMetadata(search_type="standard"))

    async def answer_rag(self, query: str, owner_id: str, file_id: str | None, allow_deep_search: bool = False) -> ChatAnswer:
        """Answer a question from one uploaded document behind the confidence gate.

        Args:
            query (str): The user question.
            owner_id (str): The caller; retrieval never crosses owners.
            file_id (str | None): The document to ask about.
            allow_deep_search (bool): Fall back to a web deep search on low confidence.

        Returns:
            ChatAnswer: search_type is one of rag, rag_error, deep_search_fallback, rag_fallback.

        Raises:
            NotFoundError: If the file is absent or not owned by the caller.
            ExtractionError: If the file cannot be read while loading it.
            ProviderError: If generation fails.
        """
        self._require_query(query)
        if not file_id:
            return ChatAnswer(message=NO_FILE_MESSAGE, metadata=ChatMetadata(search_type="rag_error", sources=[]))

        await self._ingestion.ensure_file_is_loaded(file_id, owner_id)
        chunks = await self._vector_index.search(query, limit=self.top_k, owner_id=owner_id, file_id=file_id)
        best_score = chunks[0].score if chunks else None

        if self.is_context_sufficient(chunks):
            self.logging.info("RAG answer for file %s (top score %.3f).", file_id, best_score)
            context = "\n\n".join(chunk.content for chunk in chunks)
            answer = await self._gateway.generate_text(self.build_rag_prompt(query, context), TaskType.CHAT)
            return ChatAnswer(
                message=answer,
                metadata=ChatMetadata(search_type="rag", sources=self.format_sources(chunks), score=best_score),
            )

        self.logging.info("RAG context for file %s below threshold (top score %s).", file_id, best_score)
        if allow_deep_search:
            result = await self._deep_search.perform_search(query, [])
            return ChatAnswer(
                message=result.summary,
                metadata=ChatMetadata(search_type="deep_search_fallback", sources=result.sources, score=best_score),
            )
        return ChatAnswer(message=LOW_CONFIDENCE_MESSAGE, metadata=ChatMetadata(search_type="rag_fallback", sources=[], score=best_score))

    async def answer_deep_search(self, query: str, history: list[dict] | None = None) -> ChatAnswer:
        self._require_query(query)
        result = await self._deep_search.perform_search(query, history or [])
        return ChatAnswer(message=result.summary, metadata=ChatMetadata(search_type="deep_search", sources=result.sources))

    async def answer_agentic(self, query: str, owner_id: str) -> ChatAnswer:
        self._require_query(query)
        outcome = await self._task_executor.execute_task(query, owner_id)
        return ChatAnswer(message=outcome.answer, metadata=ChatMetadata(search_type="agentic"))

    ##########################################
    ################ HELPER ##################
    ##########################################

    def is_context_sufficient(self, chunks: list[RetrievalResult]) -> bool:
        # strict comparison: a top score equal to the threshold is not enough
        return bool(chunks) and chunks[0].score > self.confidence_threshold

    @staticmethod
    def build_rag_prompt(query: str, context: str) -> str:
        return (
            "You are an expert assistant. Answer the user's question based ONLY on the following context. "
            "If the answer is not in the context, say \"I could not find an answer in the provided documents.\"\n\n"
            "Context:\n"
            "---\n"
            f"{context}\n"
            "---\n\n"
            f"Question: \"{query}\"\n\n"
            "Answer:"
        )

    @staticmethod
    def format_sources(chunks: list[RetrievalResult]) -> list[ChatSource]:
        seen: set[str] = set()
        sources = []
        for chunk in chunks:
            if chunk.metadata.source in seen:
                continue
            seen.add(chunk.metadata.source)
            sources.append(ChatSource(title=chunk.metadata.source, type="document"))
        return sources

    @staticmethod
    def _require_query(query: str) -> None:
        if not query or not query.strip():
            raise ValidationError("Query is required.")
