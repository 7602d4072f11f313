"""
Data models for the ReadTube service.
"""
import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError


class SummaryStyle(str, Enum):
    """Layouts the summarizer can produce."""
    BULLET_POINTS = "bullet-points"
    PARAGRAPH = "paragraph"
    KEY_INSIGHTS = "key-insights"


class Language(str, Enum):
    """Languages with dedicated prompt templates."""
    EN = "en"
    PL = "pl"


class SummaryOptions(BaseModel):
    """Options for one summarization call."""
    style: SummaryStyle = SummaryStyle.PARAGRAPH
    max_length: int = Field(default=2500, ge=500, le=5000)
    language: Language = Language.EN


class SummaryRecord(BaseModel):
    """A generated summary as stored in ``Video.summary``."""
    summary: str
    generated_at: Optional[datetime.datetime] = None
    style: Optional[SummaryStyle] = None
    max_length: Optional[int] = None
    language: Optional[Language] = None
    model: Optional[str] = None

    @classmethod
    def from_stored(cls, raw: Optional[str]) -> Optional["SummaryRecord"]:
        """
        Rebuild a record from the stored column value.

        Values written before summaries carried metadata are plain text;
        those come back as a record with only ``summary`` set.
        """
        if not raw or not raw.strip():
            return None
        try:
            record = cls.model_validate_json(raw)
        except ValidationError:
            record = cls(summary=raw)
        return record if record.summary.strip() else None

    def to_stored(self) -> str:
        return self.model_dump_json()


class VideoMetadata(BaseModel):
    """Descriptive metadata for a YouTube video."""
    video_id: str
    title: str
    channel_name: str = ""
    duration_seconds: Optional[int] = None
    thumbnail: str = ""
    description: Optional[str] = None
    view_count: Optional[int] = None
    published_at: Optional[datetime.datetime] = None

    model_config = {"from_attributes": True}


class SearchDuration(str, Enum):
    """YouTube's video length buckets."""
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


class UploadDate(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class SearchOrder(str, Enum):
    RELEVANCE = "relevance"
    DATE = "date"
    VIEW_COUNT = "viewCount"


class SearchQuery(BaseModel):
    """One page of a YouTube video search."""
    query: str = Field(min_length=1, max_length=200)
    max_results: int = Field(default=20, ge=1, le=50)
    page_token: Optional[str] = None
    duration: Optional[SearchDuration] = None
    upload_date: Optional[UploadDate] = None
    order: SearchOrder = SearchOrder.RELEVANCE


class SearchPage(BaseModel):
    """Videos found by a search, in YouTube's order."""
    results: List[VideoMetadata] = Field(default_factory=list)
    next_page_token: Optional[str] = None
    total_results: int = 0


class TranscriptRequest(BaseModel):
    """What the transcript sources need to know about one fetch."""
    video_id: str
    language: Optional[str] = None
    user_token: Optional[str] = None

    @property
    def watch_url(self) -> str:
        return f"https://www.youtube.com/watch?v={self.video_id}"


class TranscriptResult(BaseModel):
    """Text returned by the first transcript source that succeeded."""
    text: str
    source: str


class Identity(BaseModel):
    """Caller identity as asserted by the hosted identity provider."""
    subject: str
    email: Optional[str] = None
    name: Optional[str] = None
