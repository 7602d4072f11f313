"""
API routes for the caller's library, favorites, search history, usage and payments.
"""

import math
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from sqlalchemy.orm import Session

from readtube.api.dependencies import Services, get_current_user, get_services
from readtube.api.schemas import (
    CheckoutResponse,
    FavoriteEntry,
    FavoriteRequest,
    FavoritesResponse,
    LibraryResponse,
    LibrarySaveRequest,
    LibraryVideo,
    Pagination,
    PaymentEntry,
    SearchHistoryEntry,
    SearchHistoryResponse,
    UsageEntry,
    UsageResponse,
)
from readtube.core.text import format_clock, format_minutes
from readtube.db import crud
from readtube.db.database import get_db
from readtube.db.models import User, Video
from readtube.models.schemas import SummaryRecord
from readtube.utils.error_handling import InvalidRequestError, NotFoundError
from readtube.utils.helpers import is_valid_video_id
from readtube.utils.logger import logging

router = APIRouter(prefix="/api/v1", tags=["account"])


def _library_video(video: Video) -> LibraryVideo:
    record = SummaryRecord.from_stored(video.summary)
    return LibraryVideo(
        video_id=video.id,
        title=video.title,
        channel_name=video.channel_name or "",
        thumbnail=video.thumbnail or "",
        duration_seconds=video.duration_seconds,
        duration=format_clock(video.duration_seconds),
        description=video.description,
        transcript=video.transcript,
        summary=record.summary if record else None,
        created_at=video.created_at,
        updated_at=video.updated_at,
    )


def _checked_video_id(video_id: str) -> str:
    if not is_valid_video_id(video_id):
        raise InvalidRequestError("Invalid YouTube video ID.")
    return video_id


@router.get("/library", response_model=LibraryResponse)
async def list_library(
    video_id: Optional[str] = Query(default=None, alias="videoId"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    search: str = Query(default="", max_length=200),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Page through the caller's saved videos.

    With ``videoId`` only that video is returned, or 404 when it is not saved.
    """
    if video_id:
        video = crud.get_library_video(db, user.id, _checked_video_id(video_id))
        if video is None:
            raise NotFoundError("Video is not in your library.")
        return LibraryResponse(
            videos=[_library_video(video)],
            pagination=Pagination(page=1, limit=1, total=1, total_pages=1, has_more=False),
        )

    videos, total = crud.list_library(db, user.id, page=page, limit=limit, search=search.strip())
    total_pages = math.ceil(total / limit) if total else 0
    return LibraryResponse(
        videos=[_library_video(video) for video in videos],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_more=page < total_pages,
        ),
    )


@router.post("/library", response_model=LibraryVideo)
async def save_to_library(
    body: LibrarySaveRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Save a video with its transcript, and optionally a summary, to the library.

    A video this server already transcribed keeps its fetched transcript,
    metadata and summary; the uploaded copies are ignored.
    """
    video = crud.get_fetched_video(db, body.video_id)
    if video is not None:
        crud.save_to_library(db, user.id, body.video_id)
        logging.info(f"User {user.id} saved fetched video {body.video_id} to their library")
        return _library_video(video)

    fields = {
        name: value for name, value in {
            "title": body.title,
            "channel_name": body.channel_name,
            "thumbnail": body.thumbnail,
            "description": body.description,
            "duration_seconds": body.duration_seconds,
            "transcript": body.transcript,
        }.items() if value is not None
    }
    if body.summary and body.summary.strip():
        fields["summary"] = SummaryRecord(summary=body.summary).to_stored()

    video = crud.upsert_video(db, body.video_id, **fields)
    crud.save_to_library(db, user.id, body.video_id)
    logging.info(f"User {user.id} saved {body.video_id} to their library")
    return _library_video(video)


@router.delete("/library")
async def remove_from_library(
    video_id: str = Query(..., alias="videoId"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Remove a video from the caller's library. The cached video row is kept."""
    if not crud.remove_from_library(db, user.id, _checked_video_id(video_id)):
        raise NotFoundError("Video is not in your library.")
    logging.info(f"User {user.id} removed {video_id} from their library")
    return {"success": True, "videoId": video_id}


@router.get("/favorites", response_model=FavoritesResponse)
async def list_favorites(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """The caller's favorite videos, newest first."""
    return FavoritesResponse(favorites=[
        FavoriteEntry(
            id=favorite.id,
            video_id=favorite.video_id,
            video=_library_video(favorite.video),
            added_at=favorite.created_at,
        )
        for favorite in crud.list_favorites(db, user.id)
    ])


@router.post("/favorites")
async def update_favorites(
    body: FavoriteRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Add a video to, or remove it from, the caller's favorites.

    Only videos the caller can see may be added: ones this server has
    transcribed, or ones in the caller's own library.
    """
    if body.action == "add":
        if crud.get_visible_video(db, user.id, body.video_id) is None:
            raise NotFoundError("Video not found. Analyze it first.")
        favorite = crud.add_favorite(db, user.id, body.video_id)
        logging.info(f"User {user.id} added {body.video_id} to their favorites")
        return {
            "message": "Added to favorites",
            "favorite": {"id": favorite.id, "videoId": favorite.video_id, "addedAt": favorite.created_at},
        }

    crud.remove_favorite(db, user.id, body.video_id)
    logging.info(f"User {user.id} removed {body.video_id} from their favorites")
    return {"message": "Removed from favorites"}


@router.get("/user/searches", response_model=SearchHistoryResponse)
async def get_search_history(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """The caller's ten latest searches and the total number of searches."""
    searches, total = crud.get_recent_searches(db, user.id)
    return SearchHistoryResponse(
        searches=[
            SearchHistoryEntry(
                id=entry.id,
                query=entry.query,
                result_count=entry.result_count,
                created_at=entry.created_at,
            )
            for entry in searches
        ],
        total=total,
    )


@router.get("/user/usage", response_model=UsageResponse)
async def get_usage(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    """Quota counters, recent analyses and payments for the caller."""
    remaining = user.remaining_minutes
    payments = crud.get_payments(db, user.id)
    return UsageResponse(
        user={
            "id": user.id,
            "email": user.email,
            "name": user.name,
            "subscriptionStatus": user.subscription_status,
            "lastPurchaseAt": user.last_purchase_at,
        },
        usage={
            "minutesUsed": user.minutes_used,
            "minutesPurchased": user.minutes_purchased,
            "remainingMinutes": remaining,
            "quotaEnforced": services.pipeline.enforce_quota,
            "formattedUsed": format_minutes(user.minutes_used),
            "formattedPurchased": format_minutes(user.minutes_purchased),
            "formattedRemaining": format_minutes(remaining),
        },
        recent_usage=[
            UsageEntry(
                video_id=entry.video_id,
                video_title=entry.video_title,
                video_duration=entry.video_duration,
                minutes_used=entry.minutes_used,
                created_at=entry.created_at,
            )
            for entry in crud.get_recent_usage(db, user.id)
        ],
        payments=[
            PaymentEntry(
                amount=payment.amount,
                currency=payment.currency,
                status=payment.status,
                minutes_purchased=payment.minutes_purchased,
                created_at=payment.created_at,
                completed_at=payment.completed_at,
            )
            for payment in payments
        ],
        stats={
            "totalAnalyses": crud.count_usage(db, user.id),
            "totalSpent": sum(p.amount for p in payments if p.status == "completed"),
        },
    )


@router.post("/payments/checkout", response_model=CheckoutResponse)
def create_checkout(
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Start a Stripe Checkout session for one minutes package."""
    session = services.payments.create_checkout_session(user)
    return CheckoutResponse(session_id=session["sessionId"], url=session["url"])


@router.post("/payments/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    """Receive signed Stripe events. Replayed events are acknowledged without effect."""
    payload = await request.body()
    event = services.payments.parse_event(payload, stripe_signature)
    services.payments.apply_event(db, event)
    return {"received": True}
