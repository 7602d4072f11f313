"""
Transcript sources, one per acquisition strategy.

Every source takes a ``TranscriptRequest`` and returns plain transcript text.
When it cannot, it raises ``SourceFailure`` with a ``FailureKind`` so that the
fallback chain can move on without inspecting error messages.
"""

import os
import uuid
from pathlib import Path
from typing import List, Optional

import groq
import requests
from groq import Groq
from pytubefix import YouTube
from pytubefix import exceptions as pytube_errors
from retry import retry
from youtube_transcript_api import (
    CouldNotRetrieveTranscript,
    NoTranscriptFound,
    TranscriptsDisabled,
    VideoUnavailable,
    YouTubeTranscriptApi,
)

from readtube.config import config
from readtube.core.metadata import classify_pytube_error
from readtube.core.text import normalize_whitespace, parse_srt
from readtube.core.youtube_api import YouTubeDataAPI
from readtube.models.schemas import TranscriptRequest
from readtube.utils.error_handling import FailureKind, SourceFailure
from readtube.utils.logger import logging


class TranscriptSource:
    """Base class for a transcript acquisition strategy."""

    name = "source"
    timeout = config.CAPTION_TIMEOUT

    def fetch(self, request: TranscriptRequest) -> str:
        raise NotImplementedError

    def _languages(self, request: TranscriptRequest, preferred: List[str]) -> List[str]:
        languages = [request.language] if request.language else []
        return languages + [lang for lang in preferred if lang not in languages]


class YouTubeCaptionsSource(TranscriptSource):
    """
    Caption tracks through the official YouTube Data API.

    In ``user`` mode the caller's OAuth access token authenticates the
    requests; in ``service`` mode the configured API key does.
    """

    def __init__(self, mode: str = "service", api_key: Optional[str] = None,
                 preferred_languages: Optional[List[str]] = None,
                 timeout: int = config.CAPTION_TIMEOUT):
        if mode not in ("user", "service"):
            raise ValueError(f"Unknown captions mode: {mode}")
        self.mode = mode
        self.api_key = api_key
        self.preferred_languages = preferred_languages or list(config.PREFERRED_LANGUAGES)
        self.timeout = timeout
        self.name = "youtube_api_user" if mode == "user" else "youtube_api_key"

    def _client(self, request: TranscriptRequest) -> YouTubeDataAPI:
        if self.mode == "user":
            if not request.user_token:
                raise SourceFailure(FailureKind.NOT_CONFIGURED, "no YouTube token supplied")
            return YouTubeDataAPI(access_token=request.user_token, timeout=self.timeout)
        if not self.api_key:
            raise SourceFailure(FailureKind.NOT_CONFIGURED, "no YouTube API key configured")
        return YouTubeDataAPI(api_key=self.api_key, timeout=self.timeout)

    def _rank(self, tracks: List[dict], languages: List[str]) -> List[dict]:
        def key(track):
            snippet = track.get("snippet", {})
            language = snippet.get("language", "")
            base = language.split("-")[0]
            position = languages.index(base) if base in languages else len(languages)
            return (snippet.get("trackKind") == "asr", position)

        return sorted(tracks, key=key)

    def fetch(self, request: TranscriptRequest) -> str:
        client = self._client(request)
        try:
            tracks = client.list_captions(request.video_id)
            if not tracks:
                raise SourceFailure(FailureKind.NO_CAPTIONS, "no caption tracks")
            track = self._rank(tracks, self._languages(request, self.preferred_languages))[0]
            logging.info(
                f"{self.name}: downloading caption track {track.get('id')} "
                f"({track.get('snippet', {}).get('language')}) for {request.video_id}"
            )
            content = client.download_caption(track["id"])
        except requests.RequestException as e:
            raise SourceFailure(FailureKind.UPSTREAM, f"request failed: {type(e).__name__}")

        text = " ".join(entry["text"] for entry in parse_srt(content))
        text = normalize_whitespace(text or content)
        if not text:
            raise SourceFailure(FailureKind.EMPTY, "caption track is empty")
        return text


class CaptionScrapeSource(TranscriptSource):
    """Caption tracks read from the public player through youtube-transcript-api."""

    name = "caption_scrape"

    def __init__(self, preferred_languages: Optional[List[str]] = None,
                 timeout: int = config.CAPTION_TIMEOUT, api: Optional[YouTubeTranscriptApi] = None):
        self.preferred_languages = preferred_languages or list(config.PREFERRED_LANGUAGES)
        self.timeout = timeout
        self.api = api or YouTubeTranscriptApi()

    @retry(exceptions=requests.ConnectionError,
           tries=config.HTTP_RETRIES,
           delay=config.HTTP_RETRY_DELAY,
           backoff=config.HTTP_RETRY_BACKOFF,
           logger=logging)
    def _fetch_snippets(self, request: TranscriptRequest):
        listing = self.api.list(request.video_id)
        languages = self._languages(request, self.preferred_languages)

        transcript = None
        for finder in (listing.find_manually_created_transcript, listing.find_generated_transcript):
            try:
                transcript = finder(languages)
                break
            except NoTranscriptFound:
                continue

        if transcript is None:
            # Any language is better than none; the summarizer translates.
            transcript = next(iter(listing), None)
        if transcript is None:
            raise SourceFailure(FailureKind.NO_CAPTIONS, "no caption tracks")

        logging.info(f"{self.name}: using {transcript.language_code} track for {request.video_id}")
        return transcript.fetch()

    def fetch(self, request: TranscriptRequest) -> str:
        try:
            snippets = self._fetch_snippets(request)
        except TranscriptsDisabled:
            raise SourceFailure(FailureKind.DISABLED, "captions are disabled")
        except NoTranscriptFound:
            raise SourceFailure(FailureKind.NO_CAPTIONS, "no caption tracks")
        except VideoUnavailable:
            raise SourceFailure(FailureKind.UNAVAILABLE, "video is unavailable")
        except CouldNotRetrieveTranscript as e:
            raise SourceFailure(FailureKind.UPSTREAM, f"could not retrieve captions: {type(e).__name__}")
        except requests.RequestException as e:
            raise SourceFailure(FailureKind.UPSTREAM, f"request failed: {type(e).__name__}")

        text = normalize_whitespace(" ".join(snippet.text for snippet in snippets))
        if not text:
            raise SourceFailure(FailureKind.EMPTY, "caption track is empty")
        return text


class AudioTranscriptionSource(TranscriptSource):
    """Download the audio track and transcribe it with Groq speech-to-text."""

    name = "audio_transcription"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = config.DEFAULT_TRANSCRIPTION_MODEL,
        downloads_dir: Path = config.DOWNLOADS_DIR,
        client: Optional[Groq] = None,
        max_bytes: int = config.AUDIO_MAX_BYTES,
        timeout: int = config.AUDIO_TIMEOUT,
    ):
        self.api_key = api_key
        self.model = model
        self.downloads_dir = Path(downloads_dir)
        self.max_bytes = max_bytes
        self.timeout = timeout
        self.client = client
        if self.client is None and self.api_key:
            self.client = Groq(api_key=self.api_key, timeout=timeout)

    def _download_audio(self, request: TranscriptRequest) -> str:
        try:
            yt = YouTube(request.watch_url)
            stream = yt.streams.filter(only_audio=True).order_by('abr').first()
            if stream is None:
                raise SourceFailure(FailureKind.UNAVAILABLE, "no audio stream")
            if stream.filesize and stream.filesize > self.max_bytes:
                raise SourceFailure(
                    FailureKind.UPSTREAM,
                    f"audio is {stream.filesize} bytes, limit is {self.max_bytes}",
                )

            os.makedirs(self.downloads_dir, exist_ok=True)
            filename = f"{request.video_id}_{uuid.uuid4().hex[:8]}.{stream.subtype or 'm4a'}"
            output_path = str(self.downloads_dir / filename)
            logging.info(f"{self.name}: downloading audio for {request.video_id}")
            stream.download(output_path=str(self.downloads_dir), filename=filename)
            return output_path
        except pytube_errors.PytubeFixError as e:
            kind = classify_pytube_error(e) or FailureKind.UPSTREAM
            raise SourceFailure(kind, f"audio download failed: {type(e).__name__}")

    @retry(exceptions=groq.APIConnectionError,
           tries=config.HTTP_RETRIES,
           delay=config.HTTP_RETRY_DELAY,
           backoff=config.HTTP_RETRY_BACKOFF,
           logger=logging)
    def _transcribe(self, audio_path: str, language: Optional[str]) -> str:
        with open(audio_path, "rb") as audio_file:
            transcription = self.client.audio.transcriptions.create(
                file=(os.path.basename(audio_path), audio_file.read()),
                model=self.model,
                response_format="verbose_json",
                language=language,
                temperature=0.0,
            )
        return transcription.text

    def fetch(self, request: TranscriptRequest) -> str:
        if self.client is None:
            raise SourceFailure(FailureKind.NOT_CONFIGURED, "no speech-to-text key configured")

        audio_path = None
        try:
            audio_path = self._download_audio(request)
            text = self._transcribe(audio_path, request.language)
        except groq.APIError as e:
            raise SourceFailure(FailureKind.UPSTREAM, f"speech-to-text failed: {type(e).__name__}")
        finally:
            if audio_path and os.path.exists(audio_path):
                os.remove(audio_path)
                logging.debug(f"Removed temporary audio file {audio_path}")

        text = normalize_whitespace(text)
        if not text:
            raise SourceFailure(FailureKind.EMPTY, "speech-to-text returned no text")
        return text
