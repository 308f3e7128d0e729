"""
SQLAlchemy ORM models for the 'topics' table and its body and id sequence.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, Text, event, func, insert, literal, select
from sqlalchemy.orm import relationship

from .base import Base

TOPIC_SEQUENCE_NAME = "topics"


class TopicORM(Base):
    """
    SQLAlchemy ORM model representing a forum topic (metadata only).

    Attributes:
        id (int): Primary key, allocated from `topic_id_sequence`, never reused.
        group_id (int): Group the topic currently lives in.
        author_id (int): Author account.
        title (str): Topic title.
        url (str, optional): External link or gallery image path.
        link_text (str, optional): Text for `url` or gallery icon path.
        created_at (datetime): Posting time.
        last_modified_at (datetime): Bumped on option/resolve/move changes.
        sticky (bool): Pinned topic; cleared on delete.
        minor (bool): Minor news flag.
        not_on_top (bool): Hidden from the front page.
        moderated (bool): Committed by a moderator; true iff `commit_by_id` is set.
        resolved (bool): Question marked as resolved.
        deleted (bool): Soft-deleted.
        post_score (int, optional): Minimum score required to comment.
        commit_by_id (int, optional): Moderator who committed the topic.
        commit_at (datetime, optional): Commit time, used for SECTION navigation.
    """
    __tablename__ = "topics"

    id = Column(Integer, primary_key=True, autoincrement=False)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=False)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    title = Column(Text, nullable=False)
    url = Column(Text, nullable=True)
    link_text = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    last_modified_at = Column(DateTime(timezone=True), nullable=False)
    sticky = Column(Boolean, nullable=False, default=False)
    minor = Column(Boolean, nullable=False, default=False)
    not_on_top = Column(Boolean, nullable=False, default=False)
    moderated = Column(Boolean, nullable=False, default=False)
    resolved = Column(Boolean, nullable=False, default=False)
    deleted = Column(Boolean, nullable=False, default=False)
    post_score = Column(Integer, nullable=True)
    commit_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    commit_at = Column(DateTime(timezone=True), nullable=True)

    group = relationship("GroupORM", lazy="joined", innerjoin=True)

    __table_args__ = (
        Index("idx_topics_group_id", "group_id", "id"),
        Index("idx_topics_commit_at", "commit_at"),
        Index("idx_topics_created_at", "created_at"),
    )

    @property
    def section_id(self) -> int:
        return self.group.section_id

    def __repr__(self) -> str:
        return f"<TopicORM(id={self.id}, group_id={self.group_id}, title='{self.title}', deleted={self.deleted})>"


class TopicBodyORM(Base):
    """
    Raw body text of a topic, stored apart from its metadata.

    `bbcode` selects the markup dialect: True for the forum bbcode dialect,
    False for legacy HTML bodies.
    """
    __tablename__ = "topic_bodies"

    topic_id = Column(Integer, ForeignKey("topics.id"), primary_key=True)
    text = Column(Text, nullable=False)
    bbcode = Column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<TopicBodyORM(topic_id={self.topic_id}, bbcode={self.bbcode}, length={len(self.text or '')})>"


class TopicIdSequenceORM(Base):
    """Single-row counter that hands out topic ids."""
    __tablename__ = "topic_id_sequence"

    name = Column(Text, primary_key=True)
    value = Column(Integer, nullable=False, default=0)


@event.listens_for(Base.metadata, "after_create")
def seed_topic_id_sequence(target, connection, **kw):
    """
    Creates the counter row once the schema exists, starting after the
    highest topic id already stored.
    """
    sequence = TopicIdSequenceORM.__table__
    exists = connection.execute(
        select(sequence.c.name).where(sequence.c.name == TOPIC_SEQUENCE_NAME)
    ).first()
    if exists is not None:
        return

    connection.execute(
        insert(sequence).from_select(
            ["name", "value"],
            select(literal(TOPIC_SEQUENCE_NAME), func.coalesce(func.max(TopicORM.__table__.c.id), 0)),
        )
    )
