"""
Fallback chain over transcript sources.
"""

import asyncio
from typing import List, Optional, Sequence

from readtube.config import config
from readtube.core.sources import TranscriptSource
from readtube.core.text import minutes_for
from readtube.models.schemas import TranscriptRequest, TranscriptResult
from readtube.utils.error_handling import (
    FailureKind,
    NoTranscriptAvailable,
    SourceAttempt,
    SourceFailure,
    VideoTooLong,
)
from readtube.utils.logger import logging


class TranscriptFetcher:
    """
    Try transcript sources in priority order until one returns text.

    Each source runs in a worker thread bounded by its own timeout. Failures,
    timeouts and empty results are recorded and the next source is tried.
    """

    def __init__(self, sources: Sequence[TranscriptSource],
                 max_duration_minutes: int = config.MAX_VIDEO_MINUTES):
        self.sources = list(sources)
        self.max_duration_minutes = max_duration_minutes

    def check_duration(self, duration_seconds: Optional[int]) -> None:
        """Raise VideoTooLong when a video exceeds the configured ceiling."""
        if duration_seconds is None:
            return
        if duration_seconds > self.max_duration_minutes * 60:
            raise VideoTooLong(minutes_for(duration_seconds), self.max_duration_minutes)

    async def fetch(self, request: TranscriptRequest,
                    duration_seconds: Optional[int] = None) -> TranscriptResult:
        """
        Acquire a transcript for ``request.video_id``.

        Args:
            request: Video ID plus optional language and user OAuth token
            duration_seconds: Video length, checked before any source runs

        Returns:
            TranscriptResult with the text and the name of the source that won

        Raises:
            VideoTooLong: The video is longer than the configured ceiling
            NoTranscriptAvailable: Every source failed; lists each attempt
        """
        self.check_duration(duration_seconds)

        attempts: List[SourceAttempt] = []
        for source in self.sources:
            try:
                text = await asyncio.wait_for(
                    asyncio.to_thread(source.fetch, request), timeout=source.timeout
                )
            except SourceFailure as e:
                attempts.append({"source": source.name, "kind": e.kind.value, "reason": e.reason})
                log = logging.debug if e.kind == FailureKind.NOT_CONFIGURED else logging.info
                log(f"{source.name} failed for {request.video_id}: {e.reason}")
                continue
            except asyncio.TimeoutError:
                attempts.append({
                    "source": source.name,
                    "kind": FailureKind.TIMEOUT.value,
                    "reason": f"timed out after {source.timeout}s",
                })
                logging.warning(f"{source.name} timed out for {request.video_id}")
                continue
            except Exception as e:
                attempts.append({
                    "source": source.name,
                    "kind": FailureKind.UPSTREAM.value,
                    "reason": type(e).__name__,
                })
                logging.exception(f"{source.name} raised unexpectedly for {request.video_id}")
                continue

            if not text or not text.strip():
                attempts.append({
                    "source": source.name,
                    "kind": FailureKind.EMPTY.value,
                    "reason": "empty transcript",
                })
                logging.info(f"{source.name} returned an empty transcript for {request.video_id}")
                continue

            logging.info(
                f"Transcript for {request.video_id} from {source.name} ({len(text)} chars)"
            )
            return TranscriptResult(text=text, source=source.name)

        error = NoTranscriptAvailable(request.video_id, attempts)
        logging.warning(str(error))
        raise error
