"""Single-pass plan, execute, synthesize loop over the agent tools."""

from enum import Enum

from services.agentic.AgentTools import TOOL_DESCRIPTIONS, AgentTools
from services.agentic.PlanParser import parse_plan
from services.llm_gateway.LLMGateway import LLMGateway
from services.llm_gateway.ModelSelection import TaskType
from shared.helper.HelperConfig import HelperConfig
from shared.models.plan import AgenticOutcome, PlanStep, StepOutcome


class ExecutorState(str, Enum):
    PLANNING = "planning"
    EXECUTING = "executing"
    SYNTHESIZING = "synthesizing"
    DONE = "done"


class TaskExecutor:
    def __init__(self, helper_config: HelperConfig, gateway: LLMGateway, tools: AgentTools):
        self.logging = helper_config.get_logger()
        self._gateway = gateway
        self._tools = tools

    ##########################################
    ################ PROMPTS #################
    ##########################################

    @staticmethod
    def build_plan_prompt(user_query: str) -> str:
        tool_lines = "\n".join(f"- {name}{description}" for name, description in TOOL_DESCRIPTIONS.items())
        return (
            "You are a helpful assistant with access to the following tools:\n"
            f"{tool_lines}\n\n"
            "Based on the user's request, formulate a step-by-step plan using these tools. "
            "Each step should be a single tool call. The final step should be to respond to the user.\n"
            f"User Request: {user_query}\n"
            "Plan:"
        )

    @staticmethod
    def build_synthesis_prompt(user_query: str, transcript: str) -> str:
        return (
            "Based on the following plan execution results, provide a final, comprehensive answer to the user's original request.\n"
            f"Original Request: {user_query}\n"
            f"Results: {transcript}\n"
            "Final Answer:"
        )

    ##########################################
    ################ CORE ####################
    ##########################################

    @staticmethod
    def resolve_args(step: PlanStep, user_id: str, transcript: str) -> list[str]:
        """Replace the literal `userId` with the caller and `$...` references with the transcript so far."""
        resolved = []
        for arg in step.args:
            if arg == "userId":
                resolved.append(user_id)
            elif arg.startswith("$"):
                resolved.append(transcript)
            else:
                resolved.append(arg)
        return resolved

    async def execute_task(self, user_query: str, user_id: str) -> AgenticOutcome:
        """Plan once, run every recognised step in order, then synthesize a final answer.

        Tool failures are recorded in the transcript and never abort the run.

        Raises:
            ProviderError: If planning or synthesis fails.
        """
        state = ExecutorState.PLANNING
        self.logging.info("Agentic task for user %s: %s", user_id, state.value)
        plan_text = await self._gateway.generate_text(self.build_plan_prompt(user_query), TaskType.REASONING)
        plan = parse_plan(plan_text)
        if plan.unparsed_lines:
            self.logging.debug("Planner output had %d lines without a tool call.", len(plan.unparsed_lines))

        state = ExecutorState.EXECUTING
        tools = self._tools.get_tools()
        transcript = ""
        outcomes: list[StepOutcome] = []
        for step in plan.steps:
            tool = tools.get(step.tool)
            if tool is None:
                self.logging.debug("Skipping unknown tool '%s'.", step.tool)
                continue
            args = self.resolve_args(step, user_id, transcript)
            self.logging.info("Executing tool %s with %d args.", step.tool, len(args))
            try:
                result = await tool(args, user_id)
                transcript += f"\n\nResult from {step.tool}: {result}"
                outcomes.append(StepOutcome(tool=step.tool, args=step.args, success=True, output=result))
            except Exception as e:
                message = getattr(e, "message", None) or str(e)
                self.logging.error("Error executing tool %s: %s", step.tool, message)
                transcript += f"\n\nError executing {step.tool}: {message}"
                outcomes.append(StepOutcome(tool=step.tool, args=step.args, success=False, output=message))

        state = ExecutorState.SYNTHESIZING
        self.logging.debug("Agentic task %s after %d steps.", state.value, len(outcomes))
        answer = await self._gateway.generate_text(self.build_synthesis_prompt(user_query, transcript), TaskType.REASONING)

        state = ExecutorState.DONE
        self.logging.info("Agentic task %s.", state.value)
        return AgenticOutcome(answer=answer, plan=plan, outcomes=outcomes, transcript=transcript)
