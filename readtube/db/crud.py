"""
CRUD operations for the ReadTube database.
"""

import datetime
import json
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from readtube.db.models import (
    ChatMessage,
    Favorite,
    LibraryEntry,
    Payment,
    SearchHistory,
    UsageLog,
    User,
    Video,
    WebhookEvent,
)
from readtube.models.schemas import Identity, SummaryRecord
from readtube.utils.logger import logging

VIDEO_FIELDS = {
    "title",
    "channel_name",
    "duration_seconds",
    "thumbnail",
    "description",
    "view_count",
    "published_at",
    "transcript",
    "transcript_source",
    "summary",
}


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def get_video(db: Session, video_id: str) -> Optional[Video]:
    """Get a video by ID."""
    return db.query(Video).filter(Video.id == video_id).first()


def get_fetched_video(db: Session, video_id: str) -> Optional[Video]:
    """
    Get a video whose transcript this server fetched itself.

    Rows created only from client uploads (library saves) have no
    ``transcript_source`` and are never served to other callers.
    """
    video = get_video(db, video_id)
    if video is None or video.transcript_source is None:
        return None
    return video


def get_cached_summary(db: Session, video_id: str) -> Optional[SummaryRecord]:
    """Return the stored summary for a fetched video, if a non-empty one exists."""
    video = get_fetched_video(db, video_id)
    if not video:
        return None
    return SummaryRecord.from_stored(video.summary)


def get_cached_transcript(db: Session, video_id: str) -> Optional[str]:
    video = get_fetched_video(db, video_id)
    if video and video.transcript and video.transcript.strip():
        return video.transcript
    return None


REQUIRED_VIDEO_FIELDS = {"title", "channel_name", "thumbnail"}


def _apply_fields(video: Video, fields: Dict[str, Any]) -> None:
    for name, value in fields.items():
        if value is None and name in REQUIRED_VIDEO_FIELDS:
            continue
        setattr(video, name, value)


def upsert_video(db: Session, video_id: str, **fields: Any) -> Video:
    """
    Create or update the video row keyed by ``video_id``.

    Repeated calls update the same row. When another request inserts the
    same id between our read and our insert, the insert is retried as an
    update, so the later write wins.
    """
    unknown = set(fields) - VIDEO_FIELDS
    if unknown:
        raise ValueError(f"Unknown video fields: {sorted(unknown)}")

    video = get_video(db, video_id)
    if video:
        _apply_fields(video, fields)
        db.commit()
        db.refresh(video)
        return video

    values = {"title": "Pending", "channel_name": "", "thumbnail": ""}
    values.update({k: v for k, v in fields.items() if v is not None or k not in REQUIRED_VIDEO_FIELDS})
    video = Video(id=video_id, **values)
    db.add(video)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logging.info(f"Video {video_id} was inserted concurrently, updating instead")
        video = get_video(db, video_id)
        _apply_fields(video, fields)
        db.commit()
    db.refresh(video)
    return video


def store_summary(db: Session, video_id: str, record: SummaryRecord) -> Video:
    """Write a generated summary back onto the video row."""
    return upsert_video(db, video_id, summary=record.to_stored())


def get_user(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_subject(db: Session, subject: str) -> Optional[User]:
    return db.query(User).filter(User.external_id == subject).first()


def get_or_create_user(db: Session, identity: Identity, free_minutes: int = 0) -> User:
    """Return the user for an identity, creating it on first sight."""
    user = get_user_by_subject(db, identity.subject)
    if user:
        changed = False
        if identity.email and user.email != identity.email:
            user.email = identity.email
            changed = True
        if identity.name and user.name != identity.name:
            user.name = identity.name
            changed = True
        if changed:
            db.commit()
            db.refresh(user)
        return user

    user = User(
        external_id=identity.subject,
        email=identity.email,
        name=identity.name,
        minutes_purchased=free_minutes,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logging.info(f"User for identity {identity.subject} was created concurrently")
        return get_user_by_subject(db, identity.subject)
    db.refresh(user)
    logging.info(f"Created user {user.id} for identity {identity.subject}")
    return user


def append_usage(
    db: Session,
    user: User,
    video_id: str,
    video_title: str,
    video_duration: Optional[int],
    minutes_used: int,
) -> UsageLog:
    """Append a usage log entry and add its minutes to the user's counter."""
    entry = UsageLog(
        user_id=user.id,
        video_id=video_id,
        video_title=video_title,
        video_duration=video_duration,
        minutes_used=minutes_used,
    )
    db.add(entry)
    db.query(User).filter(User.id == user.id).update(
        {User.minutes_used: User.minutes_used + minutes_used},
        synchronize_session=False,
    )
    db.commit()
    db.refresh(entry)
    db.refresh(user)
    return entry


def get_recent_usage(db: Session, user_id: str, limit: int = 10) -> List[UsageLog]:
    return db.query(UsageLog).filter(
        UsageLog.user_id == user_id
    ).order_by(UsageLog.created_at.desc(), UsageLog.id.desc()).limit(limit).all()


def count_usage(db: Session, user_id: str) -> int:
    return db.query(UsageLog).filter(UsageLog.user_id == user_id).count()


def get_payments(db: Session, user_id: str, limit: int = 5) -> List[Payment]:
    return db.query(Payment).filter(
        Payment.user_id == user_id
    ).order_by(Payment.created_at.desc(), Payment.id.desc()).limit(limit).all()


def get_library_video(db: Session, user_id: str, video_id: str) -> Optional[Video]:
    return db.query(Video).join(LibraryEntry).filter(
        LibraryEntry.user_id == user_id,
        LibraryEntry.video_id == video_id,
    ).first()


def list_library(
    db: Session,
    user_id: str,
    page: int = 1,
    limit: int = 10,
    search: str = "",
) -> Tuple[List[Video], int]:
    """
    Page through a user's saved videos that have transcripts.

    ``search`` matches title, channel or description, case-insensitively.
    """
    query = db.query(Video).join(LibraryEntry).filter(
        LibraryEntry.user_id == user_id,
        Video.transcript.isnot(None),
    )
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            Video.title.ilike(pattern),
            Video.channel_name.ilike(pattern),
            Video.description.ilike(pattern),
        ))

    total = query.count()
    videos = query.order_by(
        LibraryEntry.updated_at.desc(), LibraryEntry.id.desc()
    ).offset((page - 1) * limit).limit(limit).all()
    return videos, total


def get_library_entry(db: Session, user_id: str, video_id: str) -> Optional[LibraryEntry]:
    return db.query(LibraryEntry).filter(
        LibraryEntry.user_id == user_id,
        LibraryEntry.video_id == video_id,
    ).first()


def save_to_library(db: Session, user_id: str, video_id: str) -> LibraryEntry:
    entry = get_library_entry(db, user_id, video_id)
    if entry:
        entry.updated_at = _utcnow()
    else:
        entry = LibraryEntry(user_id=user_id, video_id=video_id)
        db.add(entry)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logging.info(f"Library entry for {video_id} was saved concurrently")
        entry = get_library_entry(db, user_id, video_id)
    db.refresh(entry)
    return entry


def remove_from_library(db: Session, user_id: str, video_id: str) -> bool:
    deleted = db.query(LibraryEntry).filter(
        LibraryEntry.user_id == user_id,
        LibraryEntry.video_id == video_id,
    ).delete(synchronize_session=False)
    db.commit()
    return deleted > 0


def get_visible_video(db: Session, user_id: str, video_id: str) -> Optional[Video]:
    """A fetched video, or one the user saved to their own library."""
    return get_fetched_video(db, video_id) or get_library_video(db, user_id, video_id)


def list_favorites(db: Session, user_id: str) -> List[Favorite]:
    return db.query(Favorite).filter(
        Favorite.user_id == user_id
    ).order_by(Favorite.created_at.desc(), Favorite.id.desc()).all()


def add_favorite(db: Session, user_id: str, video_id: str) -> Favorite:
    """Mark a video as a favorite. Adding it twice returns the existing entry."""
    favorite = db.query(Favorite).filter(
        Favorite.user_id == user_id,
        Favorite.video_id == video_id,
    ).first()
    if favorite:
        return favorite

    favorite = Favorite(user_id=user_id, video_id=video_id)
    db.add(favorite)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        favorite = db.query(Favorite).filter(
            Favorite.user_id == user_id,
            Favorite.video_id == video_id,
        ).one()
    db.refresh(favorite)
    return favorite


def remove_favorite(db: Session, user_id: str, video_id: str) -> bool:
    deleted = db.query(Favorite).filter(
        Favorite.user_id == user_id,
        Favorite.video_id == video_id,
    ).delete(synchronize_session=False)
    db.commit()
    return deleted > 0


def record_search(db: Session, user_id: str, query: str, results: List[Dict[str, Any]]) -> SearchHistory:
    """Keep a user's search with the results it returned."""
    entry = SearchHistory(
        user_id=user_id,
        query=query,
        results=json.dumps(results, default=str),
        result_count=len(results),
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def get_recent_searches(db: Session, user_id: str, limit: int = 10) -> Tuple[List[SearchHistory], int]:
    """Latest searches of a user, newest first, and how many there are in total."""
    query = db.query(SearchHistory).filter(SearchHistory.user_id == user_id)
    recent = query.order_by(SearchHistory.created_at.desc(), SearchHistory.id.desc()).limit(limit).all()
    return recent, query.count()


def add_chat_message(db: Session, video_id: str, user_id: str, session_id: str,
                     message: str, response: str) -> ChatMessage:
    """Add a chat message to the history."""
    chat_entry = ChatMessage(
        video_id=video_id,
        user_id=user_id,
        session_id=session_id,
        message=message,
        response=response
    )
    db.add(chat_entry)
    db.commit()
    db.refresh(chat_entry)
    return chat_entry


def get_chat_history(db: Session, video_id: str, session_id: str, limit: int = 10) -> List[ChatMessage]:
    """Get the latest chat messages of a session, oldest first."""
    recent = db.query(ChatMessage).filter(
        ChatMessage.video_id == video_id,
        ChatMessage.session_id == session_id
    ).order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc()).limit(limit).all()
    return list(reversed(recent))


def event_processed(db: Session, event_id: str) -> bool:
    return db.query(WebhookEvent).filter(WebhookEvent.id == event_id).first() is not None


def mark_event_processed(db: Session, event_id: str, event_type: str) -> None:
    db.add(WebhookEvent(id=event_id, type=event_type))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()


def credit_purchase(
    db: Session,
    event_id: str,
    event_type: str,
    user_id: str,
    session_id: str,
    payment_intent: Optional[str],
    amount: int,
    currency: str,
    minutes_purchased: int,
) -> bool:
    """
    Record a completed checkout and credit the purchased minutes.

    The credit happens at most once per event ID and once per checkout
    session, so redelivered or duplicated events return False untouched.
    """
    if event_processed(db, event_id):
        logging.info(f"Webhook event {event_id} already processed, skipping")
        return False

    if db.query(Payment).filter(Payment.stripe_session_id == session_id).first():
        logging.info(f"Checkout session {session_id} already credited, skipping")
        mark_event_processed(db, event_id, event_type)
        return False

    user = get_user(db, user_id)
    if not user:
        logging.error(f"Checkout session {session_id} references unknown user {user_id}")
        mark_event_processed(db, event_id, event_type)
        return False

    now = _utcnow()
    db.add(WebhookEvent(id=event_id, type=event_type))
    db.add(Payment(
        user_id=user.id,
        stripe_session_id=session_id,
        stripe_payment_id=payment_intent,
        amount=amount,
        currency=currency,
        status="completed",
        minutes_purchased=minutes_purchased,
        completed_at=now,
    ))
    db.query(User).filter(User.id == user.id).update(
        {
            User.minutes_purchased: User.minutes_purchased + minutes_purchased,
            User.subscription_status: "PAID",
            User.last_purchase_at: now,
        },
        synchronize_session=False,
    )
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logging.info(f"Webhook event {event_id} was processed concurrently, skipping")
        return False
    return True


def update_payment_status(db: Session, payment_intent: str, status: str) -> int:
    values = {Payment.status: status}
    if status == "completed":
        values[Payment.completed_at] = _utcnow()
    updated = db.query(Payment).filter(
        Payment.stripe_payment_id == payment_intent
    ).update(values, synchronize_session=False)
    db.commit()
    return updated
