"""
YouTube video search through the Data API.
"""

import datetime
from typing import Any, Dict, Optional

import requests

from readtube.config import config
from readtube.core.metadata import best_thumbnail, parse_published
from readtube.core.text import parse_iso_duration
from readtube.core.youtube_api import YouTubeDataAPI
from readtube.models.schemas import SearchPage, SearchQuery, UploadDate, VideoMetadata
from readtube.utils.error_handling import ServiceNotConfigured, SourceFailure, UpstreamServiceError
from readtube.utils.logger import logging

UPLOAD_WINDOWS = {
    UploadDate.TODAY: datetime.timedelta(days=1),
    UploadDate.WEEK: datetime.timedelta(days=7),
    UploadDate.MONTH: datetime.timedelta(days=30),
    UploadDate.YEAR: datetime.timedelta(days=365),
}


def published_after(upload_date: Optional[UploadDate],
                    now: Optional[datetime.datetime] = None) -> Optional[str]:
    """RFC 3339 lower bound for an upload date filter, or None for no filter."""
    if upload_date is None:
        return None
    now = now or datetime.datetime.now(datetime.timezone.utc)
    return (now - UPLOAD_WINDOWS[upload_date]).strftime("%Y-%m-%dT%H:%M:%SZ")


class VideoSearch:
    """Search YouTube for videos. Needs a Data API key."""

    def __init__(self, api_key: Optional[str] = None, timeout: int = config.METADATA_TIMEOUT):
        self.api_key = api_key
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def search(self, query: SearchQuery) -> SearchPage:
        """
        Run one page of a search and enrich the hits with duration and views.

        Raises:
            ServiceNotConfigured: No Data API key is configured
            UpstreamServiceError: YouTube rejected the search or could not be reached
        """
        if not self.enabled:
            raise ServiceNotConfigured("Video search is not configured on this server.")

        params = {
            "q": query.query,
            "maxResults": query.max_results,
            "order": query.order.value,
        }
        if query.page_token:
            params["pageToken"] = query.page_token
        if query.duration is not None:
            params["videoDuration"] = query.duration.value
        after = published_after(query.upload_date)
        if after:
            params["publishedAfter"] = after

        client = YouTubeDataAPI(api_key=self.api_key, timeout=self.timeout)
        try:
            found = client.search(params)
            hits = [item for item in found.get("items", []) if item.get("id", {}).get("videoId")]
            details = {
                item["id"]: item
                for item in client.list_videos([hit["id"]["videoId"] for hit in hits])
            }
        except SourceFailure as e:
            raise UpstreamServiceError(f"YouTube search failed: {e.reason}")
        except requests.RequestException as e:
            logging.error(f"Search for '{query.query}' failed: {e}")
            raise UpstreamServiceError("Could not reach YouTube.")

        results = [self._to_metadata(hit, details.get(hit["id"]["videoId"], {})) for hit in hits]
        logging.info(f"Search for '{query.query}' returned {len(results)} videos")
        return SearchPage(
            results=results,
            next_page_token=found.get("nextPageToken"),
            total_results=found.get("pageInfo", {}).get("totalResults", len(results)),
        )

    @staticmethod
    def _to_metadata(hit: Dict[str, Any], details: Dict[str, Any]) -> VideoMetadata:
        snippet = hit.get("snippet", {})
        view_count = details.get("statistics", {}).get("viewCount")
        return VideoMetadata(
            video_id=hit["id"]["videoId"],
            title=snippet.get("title") or "Untitled",
            channel_name=snippet.get("channelTitle", ""),
            duration_seconds=parse_iso_duration(details.get("contentDetails", {}).get("duration")),
            thumbnail=best_thumbnail(snippet.get("thumbnails", {})),
            description=snippet.get("description"),
            view_count=int(view_count) if view_count is not None else None,
            published_at=parse_published(snippet.get("publishedAt")),
        )
