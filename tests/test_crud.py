"""
Tests for the database CRUD layer.
"""

import datetime

import pytest

from readtube.db import crud
from readtube.db.models import Payment, UsageLog, User, Video
from readtube.models.schemas import Identity, SummaryRecord, SummaryStyle

VIDEO_ID = "dQw4w9WgXcQ"


@pytest.fixture
def user(db):
    return crud.get_or_create_user(db, Identity(subject="auth|123", email="rick@example.com"), free_minutes=60)


def test_upsert_video_is_idempotent(db):
    crud.upsert_video(db, VIDEO_ID, title="Never Gonna Give You Up", duration_seconds=213)
    crud.upsert_video(db, VIDEO_ID, title="Never Gonna Give You Up", duration_seconds=213)

    assert db.query(Video).count() == 1
    video = crud.get_video(db, VIDEO_ID)
    assert video.title == "Never Gonna Give You Up"
    assert video.duration_seconds == 213


def test_upsert_video_updates_existing_row(db):
    crud.upsert_video(db, VIDEO_ID, title="Pending title")
    crud.upsert_video(db, VIDEO_ID, transcript="Never gonna give you up", transcript_source="caption_scrape")

    video = crud.get_video(db, VIDEO_ID)
    assert video.title == "Pending title"
    assert video.transcript == "Never gonna give you up"
    assert db.query(Video).count() == 1


def test_upsert_video_defaults_and_unknown_fields(db):
    video = crud.upsert_video(db, VIDEO_ID, title=None, channel_name=None)
    assert video.title == "Pending"
    assert video.channel_name == ""

    with pytest.raises(ValueError):
        crud.upsert_video(db, VIDEO_ID, owner="someone")


def test_cached_summary_requires_non_empty_text(db):
    assert crud.get_cached_summary(db, VIDEO_ID) is None

    crud.upsert_video(db, VIDEO_ID, title="Video", transcript_source="caption_scrape", summary="   ")
    assert crud.get_cached_summary(db, VIDEO_ID) is None

    record = SummaryRecord(
        summary="Rick will never give you up.",
        generated_at=datetime.datetime(2026, 1, 1, tzinfo=datetime.timezone.utc),
        style=SummaryStyle.BULLET_POINTS,
    )
    crud.store_summary(db, VIDEO_ID, record)

    cached = crud.get_cached_summary(db, VIDEO_ID)
    assert cached.summary == "Rick will never give you up."
    assert cached.style == SummaryStyle.BULLET_POINTS


def test_cached_summary_reads_plain_text(db):
    crud.upsert_video(
        db, VIDEO_ID, title="Video", transcript_source="caption_scrape", summary="An older plain-text summary."
    )

    cached = crud.get_cached_summary(db, VIDEO_ID)
    assert cached.summary == "An older plain-text summary."
    assert cached.generated_at is None


def test_uploaded_rows_are_not_served_from_cache(db):
    crud.upsert_video(db, VIDEO_ID, title="Video", transcript="Uploaded words", summary="Uploaded summary")

    assert crud.get_video(db, VIDEO_ID).transcript == "Uploaded words"
    assert crud.get_fetched_video(db, VIDEO_ID) is None
    assert crud.get_cached_transcript(db, VIDEO_ID) is None
    assert crud.get_cached_summary(db, VIDEO_ID) is None


def test_new_user_gets_free_minutes(db, user):
    assert user.minutes_purchased == 60
    assert user.minutes_used == 0
    assert user.subscription_status == "FREE"

    again = crud.get_or_create_user(db, Identity(subject="auth|123", name="Rick"), free_minutes=60)
    assert again.id == user.id
    assert again.name == "Rick"
    assert db.query(User).count() == 1


def test_append_usage_increments_counter(db, user):
    crud.append_usage(db, user, VIDEO_ID, "Never Gonna Give You Up", 213, 4)
    crud.append_usage(db, user, VIDEO_ID, "Never Gonna Give You Up", 213, 4)

    assert user.minutes_used == 8
    assert user.remaining_minutes == 52
    assert crud.count_usage(db, user.id) == 2
    assert crud.get_recent_usage(db, user.id)[0].minutes_used == 4


def test_library_pagination_and_search(db, user):
    for index in range(3):
        video_id = f"video{index:06d}"
        crud.upsert_video(db, video_id, title=f"Python talk {index}", transcript="text")
        crud.save_to_library(db, user.id, video_id)
    crud.upsert_video(db, "nocaption01", title="Python without transcript")
    crud.save_to_library(db, user.id, "nocaption01")

    videos, total = crud.list_library(db, user.id, page=1, limit=2)
    assert total == 3
    assert len(videos) == 2

    videos, total = crud.list_library(db, user.id, page=2, limit=2)
    assert len(videos) == 1

    videos, total = crud.list_library(db, user.id, search="TALK 1")
    assert total == 1
    assert videos[0].id == "video000001"


def test_save_to_library_twice_keeps_one_entry(db, user):
    crud.upsert_video(db, VIDEO_ID, title="Video", transcript="text")
    crud.save_to_library(db, user.id, VIDEO_ID)
    crud.save_to_library(db, user.id, VIDEO_ID)

    _, total = crud.list_library(db, user.id)
    assert total == 1


def test_remove_from_library_keeps_video(db, user):
    crud.upsert_video(db, VIDEO_ID, title="Video", transcript="text")
    crud.save_to_library(db, user.id, VIDEO_ID)

    assert crud.remove_from_library(db, user.id, VIDEO_ID) is True
    assert crud.remove_from_library(db, user.id, VIDEO_ID) is False
    assert crud.get_video(db, VIDEO_ID) is not None


def test_chat_history_is_oldest_first(db, user):
    crud.upsert_video(db, VIDEO_ID, title="Video", transcript="text")
    crud.add_chat_message(db, VIDEO_ID, user.id, "session-1", "first?", "first answer")
    crud.add_chat_message(db, VIDEO_ID, user.id, "session-1", "second?", "second answer")
    crud.add_chat_message(db, VIDEO_ID, user.id, "session-2", "other?", "other answer")

    history = crud.get_chat_history(db, VIDEO_ID, "session-1")
    assert [entry.message for entry in history] == ["first?", "second?"]


def _credit(db, user, event_id="evt_1", session_id="cs_1", minutes=300):
    return crud.credit_purchase(
        db,
        event_id=event_id,
        event_type="checkout.session.completed",
        user_id=user.id,
        session_id=session_id,
        payment_intent="pi_1",
        amount=2500,
        currency="pln",
        minutes_purchased=minutes,
    )


def test_credit_purchase_once_per_event(db, user):
    assert _credit(db, user) is True
    assert _credit(db, user) is False

    db.refresh(user)
    assert user.minutes_purchased == 360
    assert user.subscription_status == "PAID"
    assert user.last_purchase_at is not None
    assert db.query(Payment).count() == 1


def test_credit_purchase_once_per_checkout_session(db, user):
    assert _credit(db, user, event_id="evt_1") is True
    assert _credit(db, user, event_id="evt_2") is False

    db.refresh(user)
    assert user.minutes_purchased == 360
    assert crud.event_processed(db, "evt_2")


def test_credit_purchase_unknown_user(db):
    ghost = User(id="missing-user")
    assert _credit(db, ghost) is False
    assert crud.event_processed(db, "evt_1")


def test_update_payment_status(db, user):
    _credit(db, user)
    assert crud.update_payment_status(db, "pi_1", "failed") == 1
    assert db.query(Payment).one().status == "failed"
    assert crud.update_payment_status(db, "pi_unknown", "failed") == 0
    assert db.query(UsageLog).count() == 0
