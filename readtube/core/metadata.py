"""
Video metadata lookup.

Uses the YouTube Data API when a service key is configured and falls back
to scraping the watch page with pytubefix otherwise.
"""

import datetime
from typing import Any, Dict, Optional

import requests
from pytubefix import YouTube
from pytubefix import exceptions as pytube_errors

from readtube.config import config
from readtube.core.text import parse_iso_duration
from readtube.core.youtube_api import YouTubeDataAPI
from readtube.models.schemas import VideoMetadata
from readtube.utils.error_handling import (
    FailureKind,
    SourceFailure,
    UpstreamServiceError,
    VideoUnavailable,
)
from readtube.utils.logger import logging


def classify_pytube_error(error: Exception) -> Optional[FailureKind]:
    """Map a pytubefix availability error onto a failure kind."""
    if isinstance(error, pytube_errors.VideoPrivate):
        return FailureKind.PRIVATE
    if isinstance(error, pytube_errors.AgeRestrictedError):
        return FailureKind.AGE_RESTRICTED
    if isinstance(error, pytube_errors.MembersOnly):
        return FailureKind.PRIVATE
    if isinstance(error, pytube_errors.VideoUnavailable):
        return FailureKind.UNAVAILABLE
    return None


def parse_published(value: Optional[str]) -> Optional[datetime.datetime]:
    if not value:
        return None
    try:
        return datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def best_thumbnail(thumbnails: Dict[str, Any]) -> str:
    for size in ("maxres", "high", "medium", "default"):
        if size in thumbnails:
            return thumbnails[size].get("url", "")
    return ""


class VideoMetadataClient:
    """Fetch descriptive metadata for a single video."""

    def __init__(self, api_key: Optional[str] = None, timeout: int = config.METADATA_TIMEOUT):
        self.api_key = api_key
        self.timeout = timeout

    def get(self, video_id: str) -> VideoMetadata:
        """
        Look up a video.

        Args:
            video_id: The 11-character YouTube video ID

        Returns:
            VideoMetadata for the video

        Raises:
            VideoUnavailable: The video is private, age-restricted, removed or unknown
            UpstreamServiceError: YouTube could not be reached
        """
        if self.api_key:
            return self._from_data_api(video_id)
        return self._from_watch_page(video_id)

    def _from_data_api(self, video_id: str) -> VideoMetadata:
        client = YouTubeDataAPI(api_key=self.api_key, timeout=self.timeout)
        try:
            item = client.get_video(video_id)
        except SourceFailure as e:
            if e.kind == FailureKind.NOT_FOUND:
                raise VideoUnavailable(FailureKind.NOT_FOUND)
            raise UpstreamServiceError(f"YouTube metadata lookup failed: {e.reason}")
        except requests.RequestException as e:
            logging.error(f"Metadata lookup for {video_id} failed: {e}")
            raise UpstreamServiceError("Could not reach YouTube.")

        snippet = item.get("snippet", {})
        details = item.get("contentDetails", {})
        status = item.get("status", {})
        statistics = item.get("statistics", {})

        if status.get("privacyStatus") == "private":
            raise VideoUnavailable(FailureKind.PRIVATE)
        if details.get("contentRating", {}).get("ytRating") == "ytAgeRestricted":
            raise VideoUnavailable(FailureKind.AGE_RESTRICTED)
        if status.get("uploadStatus") in ("deleted", "rejected", "failed"):
            raise VideoUnavailable(FailureKind.UNAVAILABLE)

        view_count = statistics.get("viewCount")
        return VideoMetadata(
            video_id=video_id,
            title=snippet.get("title") or "Untitled",
            channel_name=snippet.get("channelTitle", ""),
            duration_seconds=parse_iso_duration(details.get("duration")),
            thumbnail=best_thumbnail(snippet.get("thumbnails", {})),
            description=snippet.get("description"),
            view_count=int(view_count) if view_count is not None else None,
            published_at=parse_published(snippet.get("publishedAt")),
        )

    def _from_watch_page(self, video_id: str) -> VideoMetadata:
        url = f"https://www.youtube.com/watch?v={video_id}"
        try:
            yt = YouTube(url)
            yt.check_availability()
            return VideoMetadata(
                video_id=video_id,
                title=yt.title or "Untitled",
                channel_name=yt.author or "",
                duration_seconds=yt.length,
                thumbnail=yt.thumbnail_url or "",
                description=yt.description,
                view_count=yt.views,
                published_at=yt.publish_date,
            )
        except pytube_errors.PytubeFixError as e:
            kind = classify_pytube_error(e)
            if kind is not None:
                raise VideoUnavailable(kind)
            logging.error(f"Metadata scrape for {video_id} failed: {e}")
            raise UpstreamServiceError("Could not read video details from YouTube.")
