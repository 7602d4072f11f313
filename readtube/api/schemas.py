"""
Request and response models for the HTTP API.

JSON bodies use camelCase; Python code uses the snake_case field names.
"""

import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from readtube.models.schemas import (
    Language,
    SearchDuration,
    SearchOrder,
    SearchQuery,
    SummaryOptions,
    SummaryStyle,
    UploadDate,
)
from readtube.utils.helpers import extract_video_id


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _video_id(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    video_id = extract_video_id(value)
    if not video_id:
        raise ValueError("must be a YouTube video ID or link")
    return video_id


VideoId = Annotated[str, AfterValidator(_video_id)]


class SummaryOptionsBody(CamelModel):
    style: SummaryStyle = SummaryStyle.PARAGRAPH
    max_length: int = Field(default=2500, ge=500, le=5000)
    language: Language = Language.EN

    def options(self) -> SummaryOptions:
        return SummaryOptions(style=self.style, max_length=self.max_length, language=self.language)


class TranscribeRequest(CamelModel):
    """Model for transcript requests."""
    video_id: VideoId
    language: Optional[str] = Field(default=None, max_length=10)


class SummarizeRequest(SummaryOptionsBody):
    """Model for summary requests. Needs a transcript, a video ID, or both."""
    transcript: Optional[str] = Field(default=None, min_length=1)
    video_id: Optional[VideoId] = None

    @field_validator("transcript")
    @classmethod
    def transcript_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("must not be blank")
        return value

    @model_validator(mode="after")
    def transcript_or_video(self) -> "SummarizeRequest":
        if self.transcript is None and self.video_id is None:
            raise ValueError("transcript or videoId is required")
        return self


class AnalyzeRequest(SummaryOptionsBody):
    """Model for one-shot transcribe and summarize requests."""
    video_id: VideoId


class LibrarySaveRequest(CamelModel):
    video_id: VideoId
    title: str = Field(min_length=1, max_length=255)
    transcript: str = Field(min_length=1)
    summary: Optional[str] = None
    channel_name: Optional[str] = Field(default=None, max_length=255)
    thumbnail: Optional[str] = Field(default=None, max_length=512)
    duration_seconds: Optional[int] = Field(default=None, ge=0)
    description: Optional[str] = None


class ChatRequest(CamelModel):
    """Model for chat requests."""
    video_id: VideoId
    question: str = Field(min_length=3, max_length=1000)
    language: Optional[Language] = None
    session_id: Optional[str] = Field(default=None, max_length=50)

    @field_validator("question")
    @classmethod
    def question_long_enough(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 3:
            raise ValueError("must be at least 3 characters")
        return value


class TranscribeResponse(CamelModel):
    transcript: str
    cached: bool
    method: str


class SummarizeResponse(CamelModel):
    summary: str
    generated_at: Optional[datetime.datetime] = None
    cached: bool


class AnalyzeResponse(CamelModel):
    video_id: str
    title: str
    summary: str
    generated_at: Optional[datetime.datetime] = None
    cached: bool
    method: str


class VideoResponse(CamelModel):
    """Model for video metadata responses."""
    video_id: str
    title: str
    channel_name: str = ""
    duration_seconds: Optional[int] = None
    duration: str = ""
    thumbnail: str = ""
    description: Optional[str] = None
    view_count: Optional[int] = None
    published_at: Optional[datetime.datetime] = None
    has_transcript: bool = False
    has_summary: bool = False


class LibraryVideo(CamelModel):
    video_id: str
    title: str
    channel_name: str = ""
    thumbnail: str = ""
    duration_seconds: Optional[int] = None
    duration: str = ""
    description: Optional[str] = None
    transcript: Optional[str] = None
    summary: Optional[str] = None
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_more: bool


class LibraryResponse(CamelModel):
    videos: List[LibraryVideo]
    pagination: Pagination


class ChatResponse(CamelModel):
    """Model for chat responses."""
    answer: str
    session_id: str


class UsageEntry(CamelModel):
    video_id: str
    video_title: str
    video_duration: Optional[int] = None
    minutes_used: int
    created_at: Optional[datetime.datetime] = None


class PaymentEntry(CamelModel):
    amount: int
    currency: str
    status: str
    minutes_purchased: int
    created_at: Optional[datetime.datetime] = None
    completed_at: Optional[datetime.datetime] = None


class UsageResponse(CamelModel):
    user: Dict[str, Any]
    usage: Dict[str, Any]
    recent_usage: List[UsageEntry]
    payments: List[PaymentEntry]
    stats: Dict[str, Any]


class CheckoutResponse(CamelModel):
    session_id: str
    url: str


class SearchFilters(CamelModel):
    duration: Optional[SearchDuration] = None
    upload_date: Optional[UploadDate] = None
    sort_by: SearchOrder = SearchOrder.RELEVANCE


class SearchRequest(CamelModel):
    """Model for YouTube search requests."""
    query: str = Field(min_length=1, max_length=200)
    filters: SearchFilters = Field(default_factory=SearchFilters)
    max_results: int = Field(default=20, ge=1, le=50)
    page_token: Optional[str] = Field(default=None, max_length=200)

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    def to_query(self) -> SearchQuery:
        return SearchQuery(
            query=self.query,
            max_results=self.max_results,
            page_token=self.page_token,
            duration=self.filters.duration,
            upload_date=self.filters.upload_date,
            order=self.filters.sort_by,
        )


class SearchResult(CamelModel):
    video_id: str
    title: str
    channel_name: str = ""
    thumbnail: str = ""
    duration_seconds: Optional[int] = None
    duration: str = ""
    view_count: Optional[int] = None
    published_at: Optional[datetime.datetime] = None
    description: Optional[str] = None


class SearchResponse(CamelModel):
    results: List[SearchResult]
    next_page_token: Optional[str] = None
    total_results: int


class SearchHistoryEntry(CamelModel):
    id: int
    query: str
    result_count: int
    created_at: Optional[datetime.datetime] = None


class SearchHistoryResponse(CamelModel):
    searches: List[SearchHistoryEntry]
    total: int


class FavoriteRequest(CamelModel):
    video_id: VideoId
    action: Literal["add", "remove"]


class FavoriteEntry(CamelModel):
    id: int
    video_id: str
    video: LibraryVideo
    added_at: Optional[datetime.datetime] = None


class FavoritesResponse(CamelModel):
    favorites: List[FavoriteEntry]
