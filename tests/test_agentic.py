from conftest import FakeLLMClient, FakeWebSearchClient, make_results
from services.agentic.AgentTools import AgentTools
from services.agentic.PlanParser import parse_plan
from services.agentic.TaskExecutor import TaskExecutor
from services.llm_gateway.LLMGateway import LLMGateway
from shared.helper.HelperExtractor import HelperExtractor
from shared.models.chunk import IngestionRequest

PLAN = """Here is my plan:
1. web_search("python asyncio tutorial")
2. summarize($previous)
3. Respond to the user with the summary.
"""


def _executor(helper_config, llm, web, vector_index, file_registry):
    gateway = LLMGateway(helper_config, llm)
    tools = AgentTools(helper_config, gateway, web, vector_index, file_registry, HelperExtractor(helper_config))
    return TaskExecutor(helper_config, gateway, tools)


class TestPlanParser:
    def test_parses_calls_and_keeps_other_lines(self):
        plan = parse_plan(PLAN)
        assert [(s.tool, s.args) for s in plan.steps] == [
            ("web_search", ["python asyncio tutorial"]),
            ("summarize", ["$previous"]),
        ]
        assert plan.unparsed_lines == ["Here is my plan:", "3. Respond to the user with the summary."]

    def test_splits_and_unquotes_arguments(self):
        plan = parse_plan("file_search('budget 2024', userId)")
        assert plan.steps[0].args == ["budget 2024", "userId"]

    def test_empty_output(self):
        plan = parse_plan("")
        assert plan.steps == [] and plan.unparsed_lines == []


class TestTaskExecutor:
    async def test_pipes_previous_results(self, helper_config, vector_index, file_registry):
        summary_json = '{"text": "asyncio in short", "keyPoints": ["event loop"]}'
        llm = FakeLLMClient(replies=[PLAN, summary_json, "final answer"])
        web = FakeWebSearchClient({"python asyncio tutorial": make_results("py", 5)})

        outcome = await _executor(helper_config, llm, web, vector_index, file_registry).execute_task("teach me asyncio", "u1")

        assert outcome.answer == "final answer"
        assert [o.tool for o in outcome.outcomes] == ["web_search", "summarize"]
        # the summarize step received the web results gathered so far
        assert "Title: py result 0" in llm.calls[1]["prompt"]
        assert outcome.transcript.count("Title: ") == 3
        assert "Result from summarize: asyncio in short" in outcome.transcript
        synthesis_prompt = llm.calls[2]["prompt"]
        assert synthesis_prompt.startswith("Based on the following plan execution results")
        assert "Original Request: teach me asyncio" in synthesis_prompt
        assert all(call["model"] == "fake-reasoning" for call in (llm.calls[0], llm.calls[2]))

    async def test_tool_failure_is_recorded(self, helper_config, vector_index, file_registry):
        llm = FakeLLMClient(replies=['web_search("x")\nread_file("nope")\nlaunch_rocket(now)', "answer"])
        web = FakeWebSearchClient({"x": RuntimeError("network down")})

        outcome = await _executor(helper_config, llm, web, vector_index, file_registry).execute_task("q", "u1")

        assert "Error executing web_search: network down" in outcome.transcript
        assert "Result from read_file: Error: File not found." in outcome.transcript
        # unknown tools are skipped
        assert [o.tool for o in outcome.outcomes] == ["web_search", "read_file"]
        assert outcome.answer == "answer"

    async def test_file_search_is_scoped_to_caller(self, helper_config, ingestion, vector_index, file_registry):
        for owner in ("u1", "u2"):
            record = await file_registry.store_upload(owner, f"{owner}.txt", f"secret plans of {owner} ".encode() * 10, "text/plain")
            await ingestion.ingest(record.path, IngestionRequest(owner_id=owner, file_id=record.file_id, original_name=f"{owner}.txt"))

        llm = FakeLLMClient(replies=["file_search(secret plans, u2)", "answer"])
        outcome = await _executor(helper_config, llm, FakeWebSearchClient(), vector_index, file_registry).execute_task("q", "u1")

        assert "Source: u1.txt" in outcome.transcript
        assert "u2.txt" not in outcome.transcript

    async def test_read_file_returns_text_for_owner(self, helper_config, vector_index, file_registry):
        record = await file_registry.store_upload("u1", "notes.txt", b"meeting notes", "text/plain")
        llm = FakeLLMClient(replies=[f"read_file({record.file_id})", "answer"])

        outcome = await _executor(helper_config, llm, FakeWebSearchClient(), vector_index, file_registry).execute_task("q", "u1")

        assert "Result from read_file: meeting notes" in outcome.transcript

    async def test_user_id_argument_is_resolved(self):
        from shared.models.plan import PlanStep

        step = PlanStep(tool="file_search", args=["budget", "userId", "$last"])
        assert TaskExecutor.resolve_args(step, "u7", "so far") == ["budget", "u7", "so far"]
