"""
SQLAlchemy ORM models for the 'polls' and 'poll_variants' tables.
"""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from .base import Base


class PollORM(Base):
    """A poll attached to exactly one topic."""
    __tablename__ = "polls"

    id = Column(Integer, primary_key=True, autoincrement=True)
    topic_id = Column(Integer, ForeignKey("topics.id"), nullable=False, unique=True)
    multiselect = Column(Boolean, nullable=False, default=False)

    variants = relationship(
        "PollVariantORM",
        back_populates="poll",
        order_by="PollVariantORM.display_order",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<PollORM(id={self.id}, topic_id={self.topic_id}, multiselect={self.multiselect})>"


class PollVariantORM(Base):
    """
    One answer option of a poll. Votes are stored on the variant row, so
    removing the variant removes its votes.
    """
    __tablename__ = "poll_variants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    poll_id = Column(Integer, ForeignKey("polls.id", ondelete="CASCADE"), nullable=False)
    label = Column(Text, nullable=False)
    display_order = Column(Integer, nullable=False, default=0)
    votes = Column(Integer, nullable=False, default=0)

    poll = relationship("PollORM", back_populates="variants")

    def __repr__(self) -> str:
        return f"<PollVariantORM(id={self.id}, poll_id={self.poll_id}, label='{self.label}')>"
