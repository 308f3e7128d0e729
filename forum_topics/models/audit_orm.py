"""
SQLAlchemy ORM models for the edit audit trail ('edit_info') and delete
records ('del_info').
"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Text

from .base import Base


class EditInfoORM(Base):
    """
    Immutable record of the prior values of the fields changed by one edit.

    Only the columns of fields that actually changed are populated.
    """
    __tablename__ = "edit_info"

    id = Column(Integer, primary_key=True, autoincrement=True)
    topic_id = Column(Integer, ForeignKey("topics.id"), nullable=False)
    editor_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    edited_at = Column(DateTime(timezone=True), nullable=False)
    old_message = Column(Text, nullable=True)
    old_title = Column(Text, nullable=True)
    old_tags = Column(Text, nullable=True, comment="Comma separated tag list before the edit.")
    old_link_text = Column(Text, nullable=True)
    old_url = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_edit_info_topic_id", "topic_id", "id"),
    )

    def __repr__(self) -> str:
        return f"<EditInfoORM(id={self.id}, topic_id={self.topic_id}, editor_id={self.editor_id})>"


class DeleteInfoORM(Base):
    """
    Side-effect record of a topic deletion, removed again on undelete.

    `bonus` holds the score delta actually applied to the author: the negated
    bonus, or 0 when no penalty was applied.
    """
    __tablename__ = "del_info"

    topic_id = Column(Integer, ForeignKey("topics.id"), primary_key=True)
    deleter_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    reason = Column(Text, nullable=False, default="")
    bonus = Column(Integer, nullable=False, default=0)
    deleted_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<DeleteInfoORM(topic_id={self.topic_id}, deleter_id={self.deleter_id}, bonus={self.bonus})>"
