"""
SQLAlchemy models for the ReadTube database.
"""

import datetime
import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from readtube.db.database import Base


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def _uuid() -> str:
    return str(uuid.uuid4())


class Video(Base):
    """Model representing a YouTube video and its cached analysis."""
    __tablename__ = "videos"

    id = Column(String(20), primary_key=True)  # YouTube video ID
    title = Column(String(255), nullable=False)
    channel_name = Column(String(255), nullable=False, default="")
    duration_seconds = Column(Integer, nullable=True)
    thumbnail = Column(String(512), nullable=False, default="")
    description = Column(Text, nullable=True)
    view_count = Column(Integer, nullable=True)
    published_at = Column(DateTime, nullable=True)
    transcript = Column(Text, nullable=True)
    transcript_source = Column(String(50), nullable=True)
    summary = Column(Text, nullable=True)  # Serialized SummaryRecord
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    library_entries = relationship("LibraryEntry", back_populates="video", cascade="all, delete-orphan")
    favorites = relationship("Favorite", back_populates="video", cascade="all, delete-orphan")
    chat_messages = relationship("ChatMessage", back_populates="video", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Video(id='{self.id}', title='{self.title}')>"


class User(Base):
    """Model representing an account known to the identity provider."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    external_id = Column(String(255), unique=True, nullable=False)
    email = Column(String(255), nullable=True)
    name = Column(String(255), nullable=True)
    minutes_used = Column(Integer, nullable=False, default=0)
    minutes_purchased = Column(Integer, nullable=False, default=0)
    subscription_status = Column(String(20), nullable=False, default="FREE")
    last_purchase_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    usage_logs = relationship("UsageLog", back_populates="user", cascade="all, delete-orphan")
    payments = relationship("Payment", back_populates="user", cascade="all, delete-orphan")
    library_entries = relationship("LibraryEntry", back_populates="user", cascade="all, delete-orphan")
    favorites = relationship("Favorite", back_populates="user", cascade="all, delete-orphan")
    searches = relationship("SearchHistory", back_populates="user", cascade="all, delete-orphan")

    @property
    def remaining_minutes(self) -> int:
        return max(0, (self.minutes_purchased or 0) - (self.minutes_used or 0))

    def __repr__(self):
        return f"<User(id='{self.id}', external_id='{self.external_id}')>"


class UsageLog(Base):
    """One analysed video charged against a user's minutes."""
    __tablename__ = "usage_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    video_id = Column(String(20), nullable=False)
    video_title = Column(String(255), nullable=False)
    video_duration = Column(Integer, nullable=True)  # seconds
    minutes_used = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=_utcnow)

    user = relationship("User", back_populates="usage_logs")

    def __repr__(self):
        return f"<UsageLog(id={self.id}, user_id='{self.user_id}', minutes={self.minutes_used})>"


class LibraryEntry(Base):
    """A video saved to a user's library."""
    __tablename__ = "library_entries"
    __table_args__ = (UniqueConstraint("user_id", "video_id", name="uq_library_user_video"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    video_id = Column(String(20), ForeignKey("videos.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    user = relationship("User", back_populates="library_entries")
    video = relationship("Video", back_populates="library_entries")


class Favorite(Base):
    """A video a user marked as a favorite."""
    __tablename__ = "favorites"
    __table_args__ = (UniqueConstraint("user_id", "video_id", name="uq_favorite_user_video"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    video_id = Column(String(20), ForeignKey("videos.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=_utcnow)

    user = relationship("User", back_populates="favorites")
    video = relationship("Video", back_populates="favorites")


class SearchHistory(Base):
    """One YouTube search run by a user, with the results it returned."""
    __tablename__ = "search_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    query = Column(String(200), nullable=False)
    results = Column(Text, nullable=True)  # JSON list of SearchResult
    result_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=_utcnow)

    user = relationship("User", back_populates="searches")

    def __repr__(self):
        return f"<SearchHistory(id={self.id}, query='{self.query}')>"


class Payment(Base):
    """A Stripe checkout payment."""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    stripe_session_id = Column(String(255), unique=True, nullable=False)
    stripe_payment_id = Column(String(255), nullable=True, index=True)
    amount = Column(Integer, nullable=False)
    currency = Column(String(10), nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    minutes_purchased = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=_utcnow)
    completed_at = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="payments")


class WebhookEvent(Base):
    """A Stripe event that has already been applied."""
    __tablename__ = "webhook_events"

    id = Column(String(255), primary_key=True)  # Stripe event ID
    type = Column(String(100), nullable=False)
    created_at = Column(DateTime, default=_utcnow)


class ChatMessage(Base):
    """Model representing one question and answer about a video."""
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    video_id = Column(String(20), ForeignKey("videos.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    session_id = Column(String(50), nullable=False)  # To group messages by conversation
    message = Column(Text, nullable=False)
    response = Column(Text, nullable=False)
    created_at = Column(DateTime, default=_utcnow)

    video = relationship("Video", back_populates="chat_messages")

    def __repr__(self):
        return f"<ChatMessage(id={self.id}, video_id='{self.video_id}', session_id='{self.session_id}')>"
