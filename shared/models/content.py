from pydantic import BaseModel, Field


class SummaryMetadata(BaseModel):
    word_count: int = Field(default=0, alias="wordCount")
    reading_time: float = Field(default=0, alias="readingTime")
    topics: list[str] = []

    model_config = {"populate_by_name": True}


class Summary(BaseModel):
    text: str
    key_points: list[str] = Field(default_factory=list, alias="keyPoints")
    sentiment: str = "neutral"
    confidence: float = 0.0
    metadata: SummaryMetadata = Field(default_factory=SummaryMetadata)

    model_config = {"populate_by_name": True}


class PodcastSegment(BaseModel):
    speaker: str
    text: str
    duration: float = 0
    focus: str | None = None


class GeneratedDocument(BaseModel):
    """A Markdown report or presentation outline."""

    title: str
    content: str
    degraded: bool = False


class PodcastScript(BaseModel):
    title: str
    segments: list[PodcastSegment]
    degraded: bool = False
