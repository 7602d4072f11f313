"""
Thin client for the YouTube Data API v3.
"""

from typing import Any, Dict, List, Optional

import requests
from retry import retry

from readtube.config import config
from readtube.utils.error_handling import FailureKind, SourceFailure
from readtube.utils.logger import logging

YOUTUBE_API_BASE_URL = "https://www.googleapis.com/youtube/v3"


class YouTubeDataAPI:
    """Calls the Data API with either a service key or a user's OAuth token."""

    def __init__(self, api_key: Optional[str] = None, access_token: Optional[str] = None,
                 timeout: int = config.METADATA_TIMEOUT):
        if not api_key and not access_token:
            raise ValueError("An API key or an OAuth access token is required.")
        self.api_key = api_key
        self.access_token = access_token
        self.timeout = timeout

    @retry(exceptions=(requests.ConnectionError, requests.Timeout),
           tries=config.HTTP_RETRIES,
           delay=config.HTTP_RETRY_DELAY,
           backoff=config.HTTP_RETRY_BACKOFF,
           logger=logging)
    def _get(self, path: str, params: Dict[str, Any], accept: str = "application/json") -> requests.Response:
        headers = {"Accept": accept}
        params = dict(params)
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        else:
            params["key"] = self.api_key
        return requests.get(
            f"{YOUTUBE_API_BASE_URL}/{path}",
            params=params,
            headers=headers,
            timeout=self.timeout,
        )

    @staticmethod
    def _raise_for_status(response: requests.Response, what: str) -> None:
        if response.ok:
            return
        reason = ""
        try:
            errors = response.json().get("error", {}).get("errors", [])
            if errors:
                reason = errors[0].get("reason", "")
        except ValueError:
            pass
        logging.warning(f"YouTube Data API {what} failed: HTTP {response.status_code} {reason}")
        if response.status_code == 404:
            raise SourceFailure(FailureKind.NOT_FOUND, f"{what}: not found")
        raise SourceFailure(
            FailureKind.UPSTREAM,
            f"{what}: HTTP {response.status_code}{' ' + reason if reason else ''}",
        )

    def get_video(self, video_id: str) -> Dict[str, Any]:
        """Return the raw video resource with snippet, details, stats and status."""
        response = self._get("videos", {
            "id": video_id,
            "part": "snippet,contentDetails,statistics,status",
        })
        self._raise_for_status(response, "video lookup")
        items = response.json().get("items", [])
        if not items:
            raise SourceFailure(FailureKind.NOT_FOUND, "video lookup: no such video")
        return items[0]

    def list_captions(self, video_id: str) -> List[Dict[str, Any]]:
        response = self._get("captions", {"videoId": video_id, "part": "snippet"})
        self._raise_for_status(response, "caption listing")
        return response.json().get("items", [])

    def download_caption(self, caption_id: str, fmt: str = "srt") -> str:
        response = self._get(f"captions/{caption_id}", {"tfmt": fmt}, accept="text/plain")
        self._raise_for_status(response, "caption download")
        return response.text

    def search(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Run a ``search.list`` for videos; ``params`` are passed through as-is."""
        response = self._get("search", dict(params, part="snippet", type="video"))
        self._raise_for_status(response, "video search")
        return response.json()

    def list_videos(self, video_ids: List[str]) -> List[Dict[str, Any]]:
        """Details and statistics for up to 50 videos in one call."""
        if not video_ids:
            return []
        response = self._get("videos", {"id": ",".join(video_ids), "part": "contentDetails,statistics"})
        self._raise_for_status(response, "video details")
        return response.json().get("items", [])
