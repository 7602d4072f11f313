"""
API routes for transcripts, summaries, video details, search and chat.
"""

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from readtube.api.dependencies import (
    Services,
    get_current_user,
    get_services,
    get_youtube_token,
    require_chat,
    require_search,
)
from readtube.api.schemas import (
    AnalyzeRequest,
    AnalyzeResponse,
    ChatRequest,
    ChatResponse,
    SearchRequest,
    SearchResponse,
    SearchResult,
    SummarizeRequest,
    SummarizeResponse,
    TranscribeRequest,
    TranscribeResponse,
    VideoResponse,
)
from readtube.core.chat import VideoChat
from readtube.core.search import VideoSearch
from readtube.core.text import format_clock
from readtube.db import crud
from readtube.db.database import get_db
from readtube.db.models import User
from readtube.utils.error_handling import InvalidRequestError, NotFoundError
from readtube.utils.helpers import is_valid_video_id
from readtube.utils.logger import logging

router = APIRouter(prefix="/api/v1", tags=["videos"])


@router.post("/transcribe", response_model=TranscribeResponse)
async def transcribe_video(
    body: TranscribeRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
    youtube_token: Optional[str] = Depends(get_youtube_token),
):
    """
    Return the transcript of a video.

    - Serves the stored transcript when there is one
    - Otherwise runs the fallback chain and stores the result
    - Charges the video's minutes against the caller's quota either way
    """
    result = await services.pipeline.transcribe(
        db, user, body.video_id, language=body.language, user_token=youtube_token
    )
    return TranscribeResponse(
        transcript=result["transcript"],
        cached=result["cached"],
        method=result["method"],
    )


@router.post("/summarize", response_model=SummarizeResponse)
async def summarize_transcript(
    body: SummarizeRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    """
    Summarize a transcript.

    With a ``videoId`` a stored summary is returned as-is. A new summary is
    written back only when it was made from the transcript this server
    fetched for that video.
    """
    logging.info(f"Summary requested by user {user.id} for {body.video_id or 'raw transcript'}")
    result = await services.pipeline.summarize(
        db, body.options(), transcript=body.transcript, video_id=body.video_id
    )
    return SummarizeResponse(**result)


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze_video(
    body: AnalyzeRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
    youtube_token: Optional[str] = Depends(get_youtube_token),
):
    """Transcribe and summarize a video in one request."""
    result = await services.pipeline.analyze(
        db, user, body.video_id, body.options(), user_token=youtube_token
    )
    return AnalyzeResponse(**result)


@router.get("/videos/{video_id}", response_model=VideoResponse)
async def get_video_details(
    video_id: str = Path(..., description="YouTube video ID"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    """Get metadata for a video, from the database when it has been seen before."""
    if not is_valid_video_id(video_id):
        raise InvalidRequestError("Invalid YouTube video ID.")

    video = crud.get_fetched_video(db, video_id)
    if video is not None and video.duration_seconds is not None:
        info = {
            "title": video.title,
            "channel_name": video.channel_name or "",
            "duration_seconds": video.duration_seconds,
            "thumbnail": video.thumbnail or "",
            "description": video.description,
            "view_count": video.view_count,
            "published_at": video.published_at,
        }
    else:
        metadata = await services.pipeline.describe(video_id)
        info = metadata.model_dump(exclude={"video_id"})

    return VideoResponse(
        video_id=video_id,
        duration=format_clock(info["duration_seconds"]),
        has_transcript=bool(video is not None and video.transcript),
        has_summary=crud.get_cached_summary(db, video_id) is not None,
        **info,
    )


@router.post("/chat", response_model=ChatResponse)
def chat_with_video(
    body: ChatRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    chat: VideoChat = Depends(require_chat),
):
    """Answer a question about a stored video using its transcript as context."""
    video = crud.get_visible_video(db, user.id, body.video_id)
    if video is None or not (video.transcript or "").strip():
        raise NotFoundError("This video has not been transcribed yet. Analyze it first.")

    result = chat.answer(
        db,
        video,
        user.id,
        body.question,
        language=body.language.value if body.language else None,
        session_id=body.session_id,
    )
    return ChatResponse(answer=result["answer"], session_id=result["session_id"])


@router.post("/search", response_model=SearchResponse)
async def search_videos(
    body: SearchRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    search: VideoSearch = Depends(require_search),
):
    """Search YouTube for videos and keep the search in the caller's history."""
    page = await asyncio.to_thread(search.search, body.to_query())
    results = [
        SearchResult(duration=format_clock(video.duration_seconds), **video.model_dump())
        for video in page.results
    ]
    crud.record_search(db, user.id, body.query, [r.model_dump(by_alias=True) for r in results])
    return SearchResponse(
        results=results,
        next_page_token=page.next_page_token,
        total_results=page.total_results,
    )
