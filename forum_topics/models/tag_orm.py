"""
SQLAlchemy ORM models for the tag vocabulary and topic/tag links.
"""

from sqlalchemy import Column, ForeignKey, Integer, PrimaryKeyConstraint, Text

from .base import Base


class TagValueORM(Base):
    """A tag of the global vocabulary with its usage counter."""
    __tablename__ = "tag_values"

    id = Column(Integer, primary_key=True, autoincrement=True)
    value = Column(Text, nullable=False, unique=True)
    counter = Column(Integer, nullable=False, default=0, comment="Number of topics carrying this tag.")

    def __repr__(self) -> str:
        return f"<TagValueORM(id={self.id}, value='{self.value}', counter={self.counter})>"


class TopicTagORM(Base):
    __tablename__ = "topic_tags"

    topic_id = Column(Integer, ForeignKey("topics.id"), nullable=False)
    tag_id = Column(Integer, ForeignKey("tag_values.id"), nullable=False)

    __table_args__ = (
        PrimaryKeyConstraint("topic_id", "tag_id", name="pk_topic_tags"),
    )
