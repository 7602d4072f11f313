"""
Tests for concurrent writers sharing one database file.

Each test opens two sessions and lets the second one commit inside the
first one's read-then-insert window, so the insert hits the unique
constraint and takes the retry branch.
"""

import asyncio
from unittest.mock import patch

import pytest

from readtube.db import crud
from readtube.db.database import create_db_engine, create_session_factory, init_db
from readtube.db.models import LibraryEntry, UsageLog, User, Video
from readtube.models.schemas import Identity

from conftest import TEST_VIDEO_ID


@pytest.fixture
def sessions(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'readtube.db'}")
    init_db(engine)
    factory = create_session_factory(engine)
    first, second = factory(), factory()
    try:
        yield first, second
    finally:
        first.close()
        second.close()
        engine.dispose()


def _lookup_racing(real_lookup, slow_session, race):
    """Wrap a lookup so its first miss in ``slow_session`` runs ``race`` before returning."""
    missed = []

    def lookup(db, *args):
        if db is slow_session and not missed:
            missed.append(args)
            race()
            return None
        return real_lookup(db, *args)

    return lookup, missed


def test_upsert_video_insert_race_updates_existing_row(sessions):
    first, second = sessions

    def race():
        crud.upsert_video(second, TEST_VIDEO_ID, title="Inserted concurrently", duration_seconds=213)

    lookup, missed = _lookup_racing(crud.get_video, first, race)
    with patch("readtube.db.crud.get_video", lookup):
        video = crud.upsert_video(
            first, TEST_VIDEO_ID, transcript="Never gonna give you up", transcript_source="caption_scrape"
        )

    assert missed
    assert first.query(Video).count() == 1
    assert video.title == "Inserted concurrently"
    assert video.duration_seconds == 213
    assert video.transcript == "Never gonna give you up"
    assert crud.get_cached_transcript(second, TEST_VIDEO_ID) == "Never gonna give you up"


def test_get_or_create_user_race_returns_existing_user(sessions):
    first, second = sessions
    identity = Identity(subject="auth|race", email="race@example.com")
    created = []

    def race():
        created.append(crud.get_or_create_user(second, identity, free_minutes=60).id)

    lookup, missed = _lookup_racing(crud.get_user_by_subject, first, race)
    with patch("readtube.db.crud.get_user_by_subject", lookup):
        user = crud.get_or_create_user(first, identity, free_minutes=60)

    assert missed
    assert user.id == created[0]
    assert user.minutes_purchased == 60
    assert first.query(User).count() == 1


def test_save_to_library_race_keeps_one_entry(sessions):
    first, second = sessions
    user = crud.get_or_create_user(second, Identity(subject="auth|race"))
    crud.upsert_video(second, TEST_VIDEO_ID, title="Video", transcript="text")
    user_id = user.id

    def race():
        crud.save_to_library(second, user_id, TEST_VIDEO_ID)

    lookup, missed = _lookup_racing(crud.get_library_entry, first, race)
    with patch("readtube.db.crud.get_library_entry", lookup):
        entry = crud.save_to_library(first, user_id, TEST_VIDEO_ID)

    assert missed
    assert entry.video_id == TEST_VIDEO_ID
    assert first.query(LibraryEntry).count() == 1


def test_concurrent_transcribes_share_one_video_row(sessions, make_services):
    first, second = sessions
    pipeline = make_services().pipeline
    alice = crud.get_or_create_user(first, Identity(subject="auth|alice"), free_minutes=60)
    bob = crud.get_or_create_user(second, Identity(subject="auth|bob"), free_minutes=60)

    async def both():
        return await asyncio.gather(
            pipeline.transcribe(first, alice, TEST_VIDEO_ID),
            pipeline.transcribe(second, bob, TEST_VIDEO_ID),
        )

    results = asyncio.run(both())

    assert [r["transcript"] for r in results] == ["Never gonna give you up..."] * 2
    assert first.query(Video).count() == 1
    assert crud.get_cached_transcript(first, TEST_VIDEO_ID) == "Never gonna give you up..."
    assert first.query(UsageLog).count() == 2
    first.refresh(alice)
    second.refresh(bob)
    assert alice.minutes_used == 4
    assert bob.minutes_used == 4
