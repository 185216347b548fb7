import re

from shared.models.plan import ParsedPlan, PlanStep

_STEP_RE = re.compile(r"(\w+)\((.*)\)")
_QUOTE_EDGES_RE = re.compile(r"^['\"]|['\"]$")


def parse_plan(plan_text: str) -> ParsedPlan:
    """Scan planner output line by line for `tool(arg, ...)` calls.

    Each line contributes at most one step. Arguments are split on commas,
    trimmed and stripped of one surrounding quote on each side. Non-empty
    lines without a call are returned as unparsed lines.
    """
    steps: list[PlanStep] = []
    unparsed: list[str] = []
    for line in (plan_text or "").split("\n"):
        match = _STEP_RE.search(line)
        if match is None:
            if line.strip():
                unparsed.append(line.strip())
            continue
        args = [_QUOTE_EDGES_RE.sub("", arg.strip()) for arg in match.group(2).split(",")]
        steps.append(PlanStep(tool=match.group(1), args=args))
    return ParsedPlan(steps=steps, unparsed_lines=unparsed)
