"""
Configuration for pytest tests.
"""

import tempfile
from pathlib import Path
from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from readtube.api.app import create_app
from readtube.api.dependencies import Services, get_identity
from readtube.config import Config
from readtube.core.chat import VideoChat
from readtube.core.fallback import TranscriptFetcher
from readtube.core.identity import IdentityVerifier
from readtube.core.payments import PaymentGateway
from readtube.core.pipeline import VideoPipeline
from readtube.core.search import VideoSearch
from readtube.core.sources import TranscriptSource
from readtube.core.summarizer import TranscriptSummarizer
from readtube.db.database import create_db_engine, create_session_factory, init_db
from readtube.models.schemas import Identity, TranscriptRequest, VideoMetadata
from readtube.utils.error_handling import FailureKind, SourceFailure, VideoUnavailable

TEST_VIDEO_ID = "dQw4w9WgXcQ"
WEBHOOK_SECRET = "whsec_test_secret"
JWT_SECRET = "test-jwt-secret-that-is-long-enough-for-hs256"

TEST_DATA_DIR = Path(tempfile.gettempdir()) / "readtube-tests"


class UnitTestConfig(Config):
    """Configuration with every external service switched off."""

    DATA_DIR = TEST_DATA_DIR
    DOWNLOADS_DIR = TEST_DATA_DIR / "downloads"
    SUMMARIES_DIR = TEST_DATA_DIR / "summaries"
    DATABASE_URL = "sqlite://"
    GROQ_API_KEY = None
    TRANSCRIPTION_API_KEY = None
    YOUTUBE_API_KEY = None
    STRIPE_SECRET_KEY = None
    STRIPE_WEBHOOK_SECRET = WEBHOOK_SECRET
    AUTH_JWKS_URL = None
    AUTH_JWT_SECRET = JWT_SECRET
    FREE_MINUTES = 60
    ENFORCE_QUOTA = True
    MAX_VIDEO_MINUTES = 180
    LOG_LEVEL = "DEBUG"


class StubSource(TranscriptSource):
    """Transcript source returning fixed text or raising a fixed failure."""

    def __init__(self, name: str, text: Optional[str] = None,
                 failure: Optional[FailureKind] = None, timeout: float = 5):
        self.name = name
        self.text = text
        self.failure = failure
        self.timeout = timeout
        self.calls: List[TranscriptRequest] = []

    def fetch(self, request: TranscriptRequest) -> str:
        self.calls.append(request)
        if self.failure is not None:
            raise SourceFailure(self.failure, f"{self.failure.value} (stub)")
        return self.text


class StubMetadata:
    """Metadata client backed by a dict of video ID to VideoMetadata."""

    def __init__(self, videos: Dict[str, VideoMetadata]):
        self.videos = videos
        self.calls: List[str] = []

    def get(self, video_id: str) -> VideoMetadata:
        self.calls.append(video_id)
        if video_id not in self.videos:
            raise VideoUnavailable(FailureKind.NOT_FOUND)
        return self.videos[video_id]


@pytest.fixture
def rickroll_metadata():
    return VideoMetadata(
        video_id=TEST_VIDEO_ID,
        title="Rick Astley - Never Gonna Give You Up",
        channel_name="Rick Astley",
        duration_seconds=213,
        thumbnail="https://i.ytimg.com/vi/dQw4w9WgXcQ/hqdefault.jpg",
    )


@pytest.fixture
def db():
    """A session on a fresh in-memory database."""
    engine = create_db_engine("sqlite://")
    init_db(engine)
    session = create_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def fake_llm():
    return FakeListChatModel(responses=["Rick promises never to give you up or let you down."])


@pytest.fixture
def make_services(fake_llm, rickroll_metadata):
    """Factory for Services wired to stub sources and a fake model."""

    def _make(sources=None, videos=None, llm=fake_llm, enforce_quota=True) -> Services:
        if sources is None:
            sources = [StubSource("caption_scrape", text="Never gonna give you up...")]
        metadata = StubMetadata(videos or {TEST_VIDEO_ID: rickroll_metadata})
        summarizer = TranscriptSummarizer(llm=llm, model="fake-model") if llm is not None else None
        chat = VideoChat(llm=llm) if llm is not None else None
        pipeline = VideoPipeline(
            metadata=metadata,
            transcripts=TranscriptFetcher(sources, max_duration_minutes=UnitTestConfig.MAX_VIDEO_MINUTES),
            summarizer=summarizer,
            enforce_quota=enforce_quota,
            metadata_timeout=5,
            summary_timeout=5,
        )
        return Services(
            config=UnitTestConfig,
            pipeline=pipeline,
            chat=chat,
            payments=PaymentGateway(secret_key=None, webhook_secret=WEBHOOK_SECRET),
            identity=IdentityVerifier(secret=JWT_SECRET),
            search=VideoSearch(api_key=None),
        )

    return _make


@pytest.fixture
def make_client(make_services):
    """Factory for a TestClient signed in as a fixed identity."""

    def _make(identity: Optional[Identity] = None, **kwargs) -> TestClient:
        services = make_services(**kwargs)
        app = create_app(UnitTestConfig, services=services)
        identity = identity or Identity(subject="user-1", email="user@example.com", name="Test User")
        app.dependency_overrides[get_identity] = lambda: identity
        return TestClient(app)

    return _make


@pytest.fixture
def client(make_client):
    return make_client()
