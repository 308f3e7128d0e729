"""
SQLAlchemy ORM models for user accounts and the per-user side tables the
topic service touches: ignore lists and reference events.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, PrimaryKeyConstraint, Text

from .base import Base


class UserORM(Base):
    """
    SQLAlchemy ORM model representing a forum account.

    `score` is only ever changed through additive updates (see ScoreLedger).
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=False)
    nick = Column(Text, nullable=False, unique=True)
    score = Column(Integer, nullable=False, default=0)
    moderator = Column(Boolean, nullable=False, default=False)
    anonymous = Column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<UserORM(id={self.id}, nick='{self.nick}', score={self.score})>"


class IgnoreListORM(Base):
    """A single 'user_id ignores ignored_id' entry."""
    __tablename__ = "ignore_list"

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    ignored_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    __table_args__ = (
        PrimaryKeyConstraint("user_id", "ignored_id", name="pk_ignore_list"),
    )


class UserEventORM(Base):
    """Notification row telling a user something happened in a topic."""
    __tablename__ = "user_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    topic_id = Column(Integer, ForeignKey("topics.id"), nullable=False)
    event_type = Column(Text, nullable=False, comment="Kind of event, e.g. 'REF' for a mention in a topic body.")
    created_at = Column(DateTime(timezone=True), nullable=False)
    unread = Column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<UserEventORM(id={self.id}, user_id={self.user_id}, topic_id={self.topic_id}, type='{self.event_type}')>"
