from pydantic import BaseModel


class PlanStep(BaseModel):
    tool: str
    args: list[str] = []


class ParsedPlan(BaseModel):
    """Steps recognised in the planner output, plus the non-empty lines that were not."""

    steps: list[PlanStep] = []
    unparsed_lines: list[str] = []


class StepOutcome(BaseModel):
    tool: str
    args: list[str] = []
    success: bool
    output: str = ""


class AgenticOutcome(BaseModel):
    answer: str
    plan: ParsedPlan
    outcomes: list[StepOutcome] = []
    transcript: str = ""
