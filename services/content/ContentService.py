"""Document-derived content: mind maps, reports, presentations and podcast scripts.

These operations never raise on model failure. A failed or malformed
generation is logged with its classified kind and replaced by a degraded
but valid structure.
"""

from services.files.FileRegistry import FileRegistry
from services.llm_gateway.LLMGateway import LLMGateway
from services.mindmap.MindMapBuilder import MindMapBuilder
from shared.exceptions.errors import ChatCoreError, ProviderError
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperExtractor import HelperExtractor
from shared.models.content import GeneratedDocument, PodcastScript, PodcastSegment

EXCERPT_CHARS = 1500

FALLBACK_PODCAST = [
    PodcastSegment(speaker="Host A", text="Sorry, we could not generate the podcast script today.", duration=10),
    PodcastSegment(speaker="Host B", text="Let us move on to another topic!", duration=10),
]


class ContentService:
    def __init__(
        self,
        helper_config: HelperConfig,
        gateway: LLMGateway,
        mind_map_builder: MindMapBuilder,
        file_registry: FileRegistry,
        extractor: HelperExtractor,
    ):
        self.logging = helper_config.get_logger()
        self._gateway = gateway
        self._mind_maps = mind_map_builder
        self._files = file_registry
        self._extractor = extractor

    async def load_document(self, file_id: str, owner_id: str) -> tuple[str, str]:
        """Return (text, title) of an owned file.

        Raises:
            NotFoundError: If the file is absent or not owned by the caller.
            ExtractionError: If the file cannot be read.
        """
        record = self._files.get_file_or_raise(file_id, owner_id)
        text = await self._extractor.extract(record.path, record.mime_type)
        return text, record.original_name

    ##########################################
    ############### CONTENT ##################
    ##########################################

    async def generate_mind_map(self, document_text: str, title: str = "Document") -> dict:
        return await self._mind_maps.build(document_text, title)

    async def generate_report(self, document_text: str, title: str = "Generated Report") -> GeneratedDocument:
        try:
            content = await self._gateway.generate_report(document_text, title)
            return GeneratedDocument(title=title, content=content)
        except ChatCoreError as e:
            self._log_failure("Report", e)
        excerpt = document_text[:EXCERPT_CHARS].strip() or "No content available."
        content = (
            f"# {title}\n\n"
            "## Executive Summary\n\n"
            "An automatic report could not be generated. The source content is shown below.\n\n"
            "## Source Excerpt\n\n"
            f"{excerpt}\n"
        )
        return GeneratedDocument(title=title, content=content, degraded=True)

    async def generate_presentation(self, document_text: str, title: str = "Presentation") -> GeneratedDocument:
        try:
            content = await self._gateway.generate_presentation(document_text, title)
            return GeneratedDocument(title=title, content=content)
        except ChatCoreError as e:
            self._log_failure("Presentation", e)
        lead = document_text.strip().split("\n", 1)[0][:120] or "No content available."
        content = f"## Slide 1: {title}\n\n- {lead}\n- An outline could not be generated automatically.\n"
        return GeneratedDocument(title=title, content=content, degraded=True)

    async def generate_podcast_script(self, document_text: str, title: str = "Document") -> PodcastScript:
        try:
            segments = await self._gateway.generate_podcast_script(document_text, title)
            return PodcastScript(title=title, segments=segments)
        except ChatCoreError as e:
            self._log_failure("Podcast script", e)
        return PodcastScript(title=title, segments=[s.model_copy() for s in FALLBACK_PODCAST], degraded=True)

    def _log_failure(self, what: str, error: ChatCoreError) -> None:
        if isinstance(error, ProviderError):
            self.logging.warning("%s generation failed (%s); returning fallback.", what, error.kind.value)
        else:
            self.logging.warning("%s generation failed: %s; returning fallback.", what, error.message)
