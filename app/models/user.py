from sqlalchemy import Column, String, Boolean, Integer, DateTime, ForeignKey, Text, Uuid, CheckConstraint
from sqlalchemy.orm import relationship
from app.db.database import Base
import uuid
from datetime import datetime


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("followers_count >= 0", name="ck_users_followers_count_non_negative"),
        CheckConstraint("following_count >= 0", name="ck_users_following_count_non_negative"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    username = Column(String(100), unique=True, nullable=True, index=True)
    display_name = Column(String(255), nullable=True)
    avatar_url = Column(String(500), nullable=True)

    # Privacy settings
    is_public = Column(Boolean, nullable=False, default=True)
    require_follow_approval = Column(Boolean, nullable=True)  # None = never set by the user
    comment_permission = Column(String(20), nullable=False, default="everyone")
    mention_permission = Column(String(20), nullable=False, default="everyone")
    appear_in_discover = Column(Boolean, nullable=False, default=True)
    allow_suggestions = Column(Boolean, nullable=False, default=True)

    # Denormalized counters, only ever changed with atomic UPDATEs
    followers_count = Column(Integer, nullable=False, default=0)
    following_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    videos = relationship("Video", back_populates="owner", cascade="all, delete-orphan")


class Video(Base):
    __tablename__ = "videos"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    caption = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    owner = relationship("User", back_populates="videos")
    comments = relationship("Comment", back_populates="video", cascade="all, delete-orphan")
