"""
The video processing pipeline shared by every endpoint.

Metadata lookup, duration gate, quota check, read-through transcript cache,
fallback chain and usage logging for transcripts; read-through summary cache,
summarizer and write-back for summaries.
"""

import asyncio
import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from readtube.config import config
from readtube.core.fallback import TranscriptFetcher
from readtube.core.metadata import VideoMetadataClient
from readtube.core.summarizer import TranscriptSummarizer
from readtube.core.text import minutes_for
from readtube.db import crud
from readtube.db.models import User, Video
from readtube.models.schemas import SummaryOptions, SummaryRecord, TranscriptRequest, VideoMetadata
from readtube.utils.error_handling import (
    InvalidRequestError,
    NotFoundError,
    QuotaExceeded,
    ServiceNotConfigured,
    SummarizationFailed,
    UpstreamServiceError,
)
from readtube.utils.logger import logging


def _metadata_from_row(video: Video) -> VideoMetadata:
    return VideoMetadata(
        video_id=video.id,
        title=video.title,
        channel_name=video.channel_name or "",
        duration_seconds=video.duration_seconds,
        thumbnail=video.thumbnail or "",
        description=video.description,
        view_count=video.view_count,
        published_at=video.published_at,
    )


class VideoPipeline:
    """Transcribe and summarize videos with caching and quota accounting."""

    def __init__(
        self,
        metadata: VideoMetadataClient,
        transcripts: TranscriptFetcher,
        summarizer: Optional[TranscriptSummarizer] = None,
        enforce_quota: bool = config.ENFORCE_QUOTA,
        metadata_timeout: int = config.METADATA_TIMEOUT,
        summary_timeout: int = config.LLM_TIMEOUT,
    ):
        self.metadata = metadata
        self.transcripts = transcripts
        self.summarizer = summarizer
        self.enforce_quota = enforce_quota
        self.metadata_timeout = metadata_timeout
        self.summary_timeout = summary_timeout

    async def describe(self, video_id: str) -> VideoMetadata:
        """Look up video metadata in a worker thread, bounded by a timeout."""
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.metadata.get, video_id), timeout=self.metadata_timeout
            )
        except asyncio.TimeoutError:
            logging.warning(f"Metadata lookup for {video_id} timed out")
            raise UpstreamServiceError("YouTube did not respond in time.")

    async def _known_metadata(self, db: Session, video_id: str) -> VideoMetadata:
        video = crud.get_fetched_video(db, video_id)
        if video is not None and video.duration_seconds is not None:
            return _metadata_from_row(video)
        return await self.describe(video_id)

    def check_quota(self, user: User, duration_seconds: Optional[int]) -> int:
        """
        Return the minutes a video costs.

        Raises:
            QuotaExceeded: Quota is enforced and the user has too few minutes left
        """
        required = minutes_for(duration_seconds)
        remaining = user.remaining_minutes
        if self.enforce_quota and remaining < required:
            logging.info(
                f"Quota denied for user {user.id}: {required} min required, {remaining} min left"
            )
            raise QuotaExceeded(remaining, required)
        return required

    async def transcribe(
        self,
        db: Session,
        user: User,
        video_id: str,
        language: Optional[str] = None,
        user_token: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Deliver a transcript for a video and log the usage.

        Returns:
            Dict with ``transcript``, ``cached``, ``method`` and ``metadata``
        """
        info = await self._known_metadata(db, video_id)
        self.transcripts.check_duration(info.duration_seconds)
        required = self.check_quota(user, info.duration_seconds)

        transcript = crud.get_cached_transcript(db, video_id)
        if transcript is not None:
            method = crud.get_fetched_video(db, video_id).transcript_source
            cached = True
            logging.info(f"Transcript cache hit for {video_id}")
        else:
            result = await self.transcripts.fetch(
                TranscriptRequest(video_id=video_id, language=language, user_token=user_token),
                duration_seconds=info.duration_seconds,
            )
            transcript = result.text
            method = result.source
            cached = False
            crud.upsert_video(
                db,
                video_id,
                title=info.title,
                channel_name=info.channel_name,
                duration_seconds=info.duration_seconds,
                thumbnail=info.thumbnail,
                description=info.description,
                view_count=info.view_count,
                published_at=info.published_at,
                transcript=transcript,
                transcript_source=method,
                # a summary saved from a client upload does not describe this transcript
                summary=None,
            )

        crud.append_usage(db, user, video_id, info.title, info.duration_seconds, required)
        return {"transcript": transcript, "cached": cached, "method": method, "metadata": info}

    async def summarize(
        self,
        db: Session,
        options: SummaryOptions,
        transcript: Optional[str] = None,
        video_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Summarize a transcript, serving and filling the per-video summary cache.

        Returns:
            Dict with ``summary``, ``generated_at`` and ``cached``
        """
        if video_id:
            stored = crud.get_cached_summary(db, video_id)
            if stored is not None:
                logging.info(f"Summary cache hit for {video_id}")
                return {"summary": stored.summary, "generated_at": stored.generated_at, "cached": True}

        if transcript is None:
            if not video_id:
                raise InvalidRequestError("Provide a transcript or a videoId.")
            transcript = crud.get_cached_transcript(db, video_id)
            if transcript is None:
                raise NotFoundError("No transcript is stored for this video. Transcribe it first.")

        if self.summarizer is None:
            raise ServiceNotConfigured("Summarization is not configured on this server.")

        try:
            text = await asyncio.wait_for(
                asyncio.to_thread(self.summarizer.summarize, transcript, options),
                timeout=self.summary_timeout,
            )
        except asyncio.TimeoutError:
            logging.warning(f"Summarization timed out after {self.summary_timeout}s")
            raise SummarizationFailed("The summarization service did not respond in time.")

        record = SummaryRecord(
            summary=text,
            generated_at=datetime.datetime.now(datetime.timezone.utc),
            style=options.style,
            max_length=options.max_length,
            language=options.language,
            model=self.summarizer.model,
        )
        if video_id:
            # only a summary of the server's own transcript is shared
            if crud.get_cached_transcript(db, video_id) == transcript:
                crud.store_summary(db, video_id, record)
            else:
                logging.info(f"Not caching summary for {video_id}: transcript was supplied by the caller")

        return {"summary": record.summary, "generated_at": record.generated_at, "cached": False}

    async def analyze(
        self,
        db: Session,
        user: User,
        video_id: str,
        options: SummaryOptions,
        user_token: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Transcribe and summarize a video in one call."""
        video = crud.get_fetched_video(db, video_id)
        stored = crud.get_cached_summary(db, video_id)
        if video is not None and stored is not None:
            logging.info(f"Analysis cache hit for {video_id}")
            return {
                "video_id": video_id,
                "title": video.title,
                "summary": stored.summary,
                "generated_at": stored.generated_at,
                "cached": True,
                "method": video.transcript_source,
            }

        if self.summarizer is None:
            raise ServiceNotConfigured("Summarization is not configured on this server.")

        transcribed = await self.transcribe(
            db, user, video_id, language=options.language.value, user_token=user_token
        )
        summarized = await self.summarize(
            db, options, transcript=transcribed["transcript"], video_id=video_id
        )
        return {
            "video_id": video_id,
            "title": transcribed["metadata"].title,
            "summary": summarized["summary"],
            "generated_at": summarized["generated_at"],
            "cached": summarized["cached"],
            "method": transcribed["method"],
        }
