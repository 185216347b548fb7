"""Single entry point for every model call.

The gateway picks the model tier for a task, sends the request through the
configured LLM client and turns every provider failure into a classified
ProviderError. It never replaces a failure with canned text; degraded
fallbacks live in the content service.
"""

import json
from typing import Any, Iterable

from services.llm_gateway.ModelSelection import ModelSelection, ModelTier, TaskType, select_model
from services.llm_gateway.StructuredOutput import parse_structured
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.exceptions.errors import ProviderError, ProviderErrorKind, StructuredOutputError, classify_provider_error
from shared.helper.HelperConfig import HelperConfig
from shared.models.content import PodcastSegment, Summary
from shared.models.mindmap import MindMap

DEFAULT_SYSTEM_PROMPT = (
    "You are an expert AI assistant specialized in providing accurate, helpful, and comprehensive responses. \n"
    "Follow these guidelines:\n"
    "1. Provide factual, well-reasoned answers\n"
    "2. If you're uncertain about something, clearly state your uncertainty\n"
    "3. Use the provided context when available and relevant\n"
    "4. Be thorough but concise in your explanations\n"
    "5. Maintain a helpful and professional tone"
)

SUMMARY_CONTENT_LIMIT = 4000
PODCAST_MIN_SEGMENTS = 8


class LLMGateway:
    def __init__(self, helper_config: HelperConfig, llm_client: LLMClientInterface):
        self.logging = helper_config.get_logger()
        self._client = llm_client

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_model_for(self, selection: ModelSelection) -> str:
        if selection.tier == ModelTier.REASONING:
            return self._client.reasoning_model
        return self._client.chat_model

    ##########################################
    ################ CORE ####################
    ##########################################

    async def _generate(
        self,
        prompt: str,
        task_type: TaskType | str,
        system_instruction: str | None = None,
        history: list[dict] | None = None,
        routing_text: str | None = None,
    ) -> str:
        selection = select_model(task_type, routing_text if routing_text is not None else prompt)
        model = self.get_model_for(selection)
        self.logging.debug("Generating with %s (task %s routed as %s).", model, selection.requested.value, selection.routed.value)
        try:
            text = await self._client.do_generate(prompt, model=model, system_instruction=system_instruction, history=history)
        except ProviderError:
            raise
        except Exception as e:
            error = classify_provider_error(e)
            self.logging.error("LLM request failed (%s): %s", error.kind.value, e)
            raise error from e
        if not text:
            raise ProviderError(ProviderErrorKind.UNKNOWN, detail="Empty response from language model.")
        return text

    async def generate_text(self, prompt: str, task_type: TaskType | str = TaskType.CHAT) -> str:
        """Plain single-turn generation.

        Raises:
            ProviderError: On any provider failure, classified.
        """
        return await self._generate(prompt, task_type)

    async def generate_chat_response(
        self,
        message: str,
        history: list[dict] | None = None,
        system_prompt: str | None = None,
        context: list[dict] | None = None,
    ) -> str:
        """Multi-turn chat with optional document context.

        Args:
            message (str): The new user message.
            history (list[dict] | None): Prior turns as {"role", "content"} records.
            system_prompt (str | None): Overrides the default assistant prompt.
            context (list[dict] | None): Documents as {"source", "content"} records,
                appended to the system prompt.
        """
        system = system_prompt or DEFAULT_SYSTEM_PROMPT
        if context:
            system = f"{system}\n\nContext:\n{self.build_context(context)}"
        turns = [
            {"role": LLMClientInterface.normalize_role(turn.get("role", "")), "content": turn.get("content", "")}
            for turn in (history or [])
            if turn.get("content")
        ]
        return await self._generate(message, TaskType.CHAT, system_instruction=system, history=turns, routing_text=message)

    @staticmethod
    def build_context(context: list[dict]) -> str:
        return "\n\n".join(f"Document: {doc.get('source', 'Unknown')}\n{doc.get('content', '')}" for doc in context)

    async def generate_structured(
        self,
        prompt: str,
        required_keys: Iterable[str] = (),
        task_type: TaskType | str = TaskType.REASONING,
        expect: str | None = "object",
    ) -> Any:
        """Generate and parse a JSON reply.

        Raises:
            ProviderError: On provider failure.
            StructuredOutputError: If the reply holds no valid JSON with the required keys.
        """
        text = await self._generate(prompt, task_type)
        return parse_structured(text, required_keys=required_keys, expect=expect)

    ##########################################
    ############### CONTENT ##################
    ##########################################

    async def generate_summary(self, content: str, style: str = "concise", focus: str | None = None, length: str = "medium") -> Summary:
        prompt = (
            f"You are an expert summarizer. Generate a {style} summary of the following document:\n"
            f"{content[:SUMMARY_CONTENT_LIMIT]}...\n\n"
            "Requirements:\n"
            "- Type: summary\n"
            f"- Style: {style}\n"
            f"- Focus: {focus or 'main points'}\n"
            f"- Length: {length}\n\n"
            "Respond ONLY with a JSON object of the form:\n"
            '{"text": "...", "keyPoints": ["..."], "sentiment": "positive|neutral|negative", '
            '"confidence": 0.0, "metadata": {"wordCount": 0, "readingTime": 0, "topics": ["..."]}}'
        )
        data = await self.generate_structured(prompt, required_keys=("text", "keyPoints"), task_type=TaskType.SUMMARY)
        try:
            return Summary.model_validate(data)
        except ValueError as e:
            raise StructuredOutputError(f"Invalid summary structure: {e}") from e

    async def generate_report(self, content: str, title: str = "Generated Report") -> str:
        prompt = (
            "Generate a comprehensive, structured report based on the following content. "
            "The report should have a title, an executive summary, a table of contents, "
            "and several detailed sections with headers and bullet points. The content for the report is:\n"
            "---\n"
            f"Title: {title}\n"
            f"Content:\n{content}\n"
            "---\n"
            "Provide the full report content in a structured Markdown format."
        )
        return await self._generate(prompt, TaskType.REPORT)

    async def generate_presentation(self, content: str, title: str = "Presentation") -> str:
        prompt = (
            "Generate a concise presentation outline based on the following content. "
            "The outline should be structured with slide titles and bullet points for each slide. "
            "Start with a title slide and end with a summary slide.\n"
            "---\n"
            f"Title: {title}\n"
            f"Content:\n{content}\n"
            "---\n"
            "Provide the outline in Markdown, one '## Slide N: <title>' header per slide."
        )
        return await self._generate(prompt, TaskType.PRESENTATION)

    async def generate_podcast_script(self, content: str, title: str = "Document") -> list[PodcastSegment]:
        """Two-host dialogue script about a document.

        The document is summarized first and the script is written from the
        summary. Scripts with fewer than eight segments are rejected.

        Raises:
            ProviderError: On provider failure.
            StructuredOutputError: If the script is not a valid segment list.
        """
        summary = await self.generate_summary(content, style="conversational")
        prompt = (
            f"Create an engaging podcast script discussing the document \"{title}\" between two hosts, "
            "Host A and Host B, based on this summary:\n"
            f"{summary.text}\n\n"
            f"Key points:\n" + "\n".join(f"- {point}" for point in summary.key_points) + "\n\n"
            "Requirements:\n"
            "- ALL DIALOGUE MUST BE IN ENGLISH\n"
            "- 8 to 12 segments, alternating between Host A and Host B\n"
            "- Each segment has a speaker, the spoken text, an estimated duration in seconds and a focus topic\n\n"
            "Respond ONLY with a JSON array of the form:\n"
            '[{"speaker": "Host A", "text": "...", "duration": 30, "focus": "..."}]'
        )
        data = await self.generate_structured(prompt, task_type=TaskType.CREATIVE, expect="array")
        try:
            segments = [PodcastSegment.model_validate(item) for item in data]
        except ValueError as e:
            raise StructuredOutputError(f"Invalid podcast segment: {e}") from e
        if len(segments) < PODCAST_MIN_SEGMENTS:
            raise StructuredOutputError(f"Podcast script has {len(segments)} segments, expected at least {PODCAST_MIN_SEGMENTS}.")
        return segments

    async def generate_mind_map(self, content: str, title: str = "Document") -> MindMap:
        example = {
            "nodes": [
                {"id": "1", "position": {"x": 250, "y": 5}, "data": {"label": "Main Topic"}},
                {"id": "2", "position": {"x": 100, "y": 100}, "data": {"label": "Subtopic"}},
            ],
            "edges": [{"id": "e1-2", "source": "1", "target": "2"}],
        }
        prompt = (
            "You are an expert in creating mind maps. Based on the following content from the document titled "
            f"\"{title}\", generate a hierarchical mind map. The mind map should have a central root node "
            "representing the main topic, with branches for key concepts and sub-concepts.\n"
            "Each node needs an id, a position {x, y} and data.label. Place the root at {\"x\": 250, \"y\": 5}. "
            "Each edge needs an id, a source and a target node id.\n"
            f"Respond ONLY with a JSON object like: {json.dumps(example)}\n\n"
            f"Content:\n{content}"
        )
        data = await self.generate_structured(prompt, required_keys=("nodes", "edges"), task_type=TaskType.MINDMAP)
        try:
            return MindMap.model_validate(data)
        except ValueError as e:
            raise StructuredOutputError(f"Invalid mind map structure: {e}") from e
