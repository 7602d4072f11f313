"""
Service construction and FastAPI dependencies.

Every external client is built once by ``build_services`` at startup and
stored on ``app.state``; handlers receive them through ``Depends``.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from readtube.core.chat import VideoChat
from readtube.core.fallback import TranscriptFetcher
from readtube.core.identity import IdentityVerifier
from readtube.core.metadata import VideoMetadataClient
from readtube.core.payments import PaymentGateway
from readtube.core.pipeline import VideoPipeline
from readtube.core.search import VideoSearch
from readtube.core.sources import (
    AudioTranscriptionSource,
    CaptionScrapeSource,
    YouTubeCaptionsSource,
)
from readtube.core.summarizer import TranscriptSummarizer
from readtube.db.crud import get_or_create_user
from readtube.db.database import get_db
from readtube.db.models import User
from readtube.models.schemas import Identity
from readtube.utils.error_handling import ServiceNotConfigured, UnauthorizedError
from readtube.utils.logger import logging


@dataclass
class Services:
    config: type
    pipeline: VideoPipeline
    chat: Optional[VideoChat]
    payments: PaymentGateway
    identity: IdentityVerifier
    search: VideoSearch


def build_services(config) -> Services:
    """Build every client once from configuration."""
    for key in config.missing_keys():
        logging.warning(f"{key} is not set; the features that need it are disabled")

    sources = [
        YouTubeCaptionsSource(
            mode="user",
            preferred_languages=config.PREFERRED_LANGUAGES,
            timeout=config.CAPTION_TIMEOUT,
        ),
        YouTubeCaptionsSource(
            mode="service",
            api_key=config.YOUTUBE_API_KEY,
            preferred_languages=config.PREFERRED_LANGUAGES,
            timeout=config.CAPTION_TIMEOUT,
        ),
        CaptionScrapeSource(
            preferred_languages=config.PREFERRED_LANGUAGES,
            timeout=config.CAPTION_TIMEOUT,
        ),
        AudioTranscriptionSource(
            api_key=config.TRANSCRIPTION_API_KEY,
            model=config.DEFAULT_TRANSCRIPTION_MODEL,
            downloads_dir=config.DOWNLOADS_DIR,
            max_bytes=config.AUDIO_MAX_BYTES,
            timeout=config.AUDIO_TIMEOUT,
        ),
    ]

    summarizer = None
    chat = None
    if config.GROQ_API_KEY:
        summarizer = TranscriptSummarizer(
            api_key=config.GROQ_API_KEY,
            model=config.DEFAULT_SUMMARY_MODEL,
            provider=config.MODEL_PROVIDER,
            prompt_chars=config.TRANSCRIPT_PROMPT_CHARS,
        )
        chat = VideoChat(
            api_key=config.GROQ_API_KEY,
            model=config.DEFAULT_SUMMARY_MODEL,
            provider=config.MODEL_PROVIDER,
            transcript_chars=config.CHAT_TRANSCRIPT_CHARS,
        )

    pipeline = VideoPipeline(
        metadata=VideoMetadataClient(api_key=config.YOUTUBE_API_KEY, timeout=config.METADATA_TIMEOUT),
        transcripts=TranscriptFetcher(sources, max_duration_minutes=config.MAX_VIDEO_MINUTES),
        summarizer=summarizer,
        enforce_quota=config.ENFORCE_QUOTA,
        metadata_timeout=config.METADATA_TIMEOUT,
        summary_timeout=config.LLM_TIMEOUT,
    )

    return Services(
        config=config,
        pipeline=pipeline,
        chat=chat,
        payments=PaymentGateway(
            secret_key=config.STRIPE_SECRET_KEY,
            webhook_secret=config.STRIPE_WEBHOOK_SECRET,
            public_url=config.PUBLIC_URL,
            package_minutes=config.PACKAGE_MINUTES,
            package_price=config.PACKAGE_PRICE,
            currency=config.PACKAGE_CURRENCY,
        ),
        identity=IdentityVerifier(
            jwks_url=config.AUTH_JWKS_URL,
            secret=config.AUTH_JWT_SECRET,
            issuer=config.AUTH_ISSUER,
            audience=config.AUTH_AUDIENCE,
        ),
        search=VideoSearch(api_key=config.YOUTUBE_API_KEY, timeout=config.METADATA_TIMEOUT),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_identity(
    authorization: Optional[str] = Header(default=None),
    services: Services = Depends(get_services),
) -> Identity:
    """Verify the ``Authorization: Bearer`` header."""
    if not authorization:
        raise UnauthorizedError("Missing bearer token.")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise UnauthorizedError("Authorization header must be 'Bearer <token>'.")
    return services.identity.verify(token.strip())


def get_current_user(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
) -> User:
    return get_or_create_user(db, identity, free_minutes=services.config.FREE_MINUTES)


def get_youtube_token(x_youtube_token: Optional[str] = Header(default=None)) -> Optional[str]:
    """Optional OAuth access token for the caller's own YouTube account."""
    return x_youtube_token or None


def require_chat(services: Services = Depends(get_services)) -> VideoChat:
    if services.chat is None:
        raise ServiceNotConfigured("Chat is not configured on this server.")
    return services.chat


def require_search(services: Services = Depends(get_services)) -> VideoSearch:
    if not services.search.enabled:
        raise ServiceNotConfigured("Video search is not configured on this server.")
    return services.search
