"""Task-type → model-tier routing.

select_model() is a pure function so routing can be asserted without any
network access.
"""

from enum import Enum
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict


class TaskType(str, Enum):
    CHAT = "chat"
    REASONING = "reasoning"
    TECHNICAL = "technical"
    CREATIVE = "creative"
    MINDMAP = "mindmap"
    SUMMARY = "summary"
    REPORT = "report"
    PRESENTATION = "presentation"


class ModelTier(str, Enum):
    CHAT = "chat"            # fast, cheap
    REASONING = "reasoning"  # higher capability


TASK_TIER_TABLE = MappingProxyType({
    TaskType.CHAT: ModelTier.CHAT,
    TaskType.REASONING: ModelTier.REASONING,
    TaskType.TECHNICAL: ModelTier.REASONING,
    TaskType.CREATIVE: ModelTier.CHAT,
    TaskType.MINDMAP: ModelTier.REASONING,
    TaskType.SUMMARY: ModelTier.REASONING,
    TaskType.REPORT: ModelTier.REASONING,
    TaskType.PRESENTATION: ModelTier.CHAT,
})

_TECHNICAL_KEYWORDS = ("code", "technical")
_CREATIVE_KEYWORDS = ("creative", "story")


class ModelSelection(BaseModel):
    model_config = ConfigDict(frozen=True)

    requested: TaskType
    routed: TaskType
    tier: ModelTier


def select_model(task_type: TaskType | str, prompt: str = "") -> ModelSelection:
    """Route a request to a model tier.

    Chat requests mentioning code or technical topics are routed as technical,
    chat requests asking for something creative or a story as creative. Every
    other task type keeps its own route.

    Args:
        task_type (TaskType | str): The task tag, e.g. "chat" or TaskType.REPORT.
        prompt (str): The user prompt; only inspected for chat requests.

    Returns:
        ModelSelection: The requested and routed task type plus the resulting tier.

    Raises:
        ValueError: If the task tag is unknown.
    """
    requested = TaskType(task_type)
    routed = requested
    if requested == TaskType.CHAT:
        lowered = (prompt or "").lower()
        if any(keyword in lowered for keyword in _TECHNICAL_KEYWORDS):
            routed = TaskType.TECHNICAL
        elif any(keyword in lowered for keyword in _CREATIVE_KEYWORDS):
            routed = TaskType.CREATIVE
    return ModelSelection(requested=requested, routed=routed, tier=TASK_TIER_TABLE[routed])
