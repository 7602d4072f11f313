"""
Tests for the transcript fallback chain.
"""

import asyncio
import time

import pytest

from readtube.core.fallback import TranscriptFetcher
from readtube.models.schemas import TranscriptRequest
from readtube.utils.error_handling import FailureKind, NoTranscriptAvailable, VideoTooLong

from conftest import StubSource, TEST_VIDEO_ID


class SlowSource(StubSource):
    def fetch(self, request):
        self.calls.append(request)
        time.sleep(0.5)
        return "too late"


class BrokenSource(StubSource):
    def fetch(self, request):
        self.calls.append(request)
        raise RuntimeError("boom")


@pytest.fixture
def request_en():
    return TranscriptRequest(video_id=TEST_VIDEO_ID)


def test_first_working_source_wins(request_en):
    first = StubSource("youtube_api_user", failure=FailureKind.NOT_CONFIGURED)
    second = StubSource("caption_scrape", text="Never gonna give you up...")
    third = StubSource("audio_transcription", text="should not run")
    fetcher = TranscriptFetcher([first, second, third])

    result = asyncio.run(fetcher.fetch(request_en, duration_seconds=213))

    assert result.text == "Never gonna give you up..."
    assert result.source == "caption_scrape"
    assert len(first.calls) == 1
    assert third.calls == []


def test_all_sources_failing_lists_every_attempt(request_en):
    sources = [
        StubSource("youtube_api_user", failure=FailureKind.NOT_CONFIGURED),
        StubSource("youtube_api_key", failure=FailureKind.UPSTREAM),
        StubSource("caption_scrape", failure=FailureKind.NO_CAPTIONS),
        StubSource("audio_transcription", text="   "),
    ]
    fetcher = TranscriptFetcher(sources)

    with pytest.raises(NoTranscriptAvailable) as excinfo:
        asyncio.run(fetcher.fetch(request_en))

    attempts = excinfo.value.attempts
    assert [a["source"] for a in attempts] == [
        "youtube_api_user", "youtube_api_key", "caption_scrape", "audio_transcription",
    ]
    assert [a["kind"] for a in attempts] == ["not_configured", "upstream", "no_captions", "empty"]
    assert excinfo.value.status_code == 422
    for source in sources:
        assert source.name in str(excinfo.value)


def test_timeout_moves_to_next_source(request_en):
    slow = SlowSource("caption_scrape", timeout=0.05)
    backup = StubSource("audio_transcription", text="transcribed audio")
    fetcher = TranscriptFetcher([slow, backup])

    result = asyncio.run(fetcher.fetch(request_en))

    assert result.source == "audio_transcription"


def test_timeout_is_recorded(request_en):
    fetcher = TranscriptFetcher([SlowSource("caption_scrape", timeout=0.05)])

    with pytest.raises(NoTranscriptAvailable) as excinfo:
        asyncio.run(fetcher.fetch(request_en))
    assert excinfo.value.attempts[0]["kind"] == FailureKind.TIMEOUT.value


def test_unexpected_error_is_recorded_by_type(request_en):
    broken = BrokenSource("caption_scrape")
    backup = StubSource("audio_transcription", text="transcribed audio")
    fetcher = TranscriptFetcher([broken, backup])

    assert asyncio.run(fetcher.fetch(request_en)).text == "transcribed audio"

    with pytest.raises(NoTranscriptAvailable) as excinfo:
        asyncio.run(TranscriptFetcher([broken]).fetch(request_en))
    assert excinfo.value.attempts[0]["reason"] == "RuntimeError"


def test_duration_gate_runs_before_any_source(request_en):
    source = StubSource("caption_scrape", text="text")
    fetcher = TranscriptFetcher([source], max_duration_minutes=180)

    with pytest.raises(VideoTooLong) as excinfo:
        asyncio.run(fetcher.fetch(request_en, duration_seconds=181 * 60))

    assert source.calls == []
    assert excinfo.value.details == {"durationMinutes": 181, "limitMinutes": 180}


def test_duration_at_limit_is_allowed(request_en):
    fetcher = TranscriptFetcher([StubSource("caption_scrape", text="text")], max_duration_minutes=180)
    assert asyncio.run(fetcher.fetch(request_en, duration_seconds=180 * 60)).text == "text"
