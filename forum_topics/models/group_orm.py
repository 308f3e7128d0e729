"""
SQLAlchemy ORM models for the 'sections' and 'groups' tables.

Sections and groups are maintained by other parts of the forum; the topic
service only reads them, except for the relocation counter on `groups`.
"""

import enum

from sqlalchemy import Boolean, Column, Enum, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from .base import Base


class ScrollMode(str, enum.Enum):
    """Per-section rule for previous/next topic navigation."""
    SECTION = "SECTION"
    GROUP = "GROUP"
    NO_SCROLL = "NO_SCROLL"


class SectionORM(Base):
    """
    SQLAlchemy ORM model representing a forum section.

    Attributes:
        id (int): Primary key.
        name (str): Display name of the section.
        moderate (bool): Whether topics in this section need a moderator commit.
        scroll_mode (ScrollMode): Navigation policy for topics of this section.
    """
    __tablename__ = "sections"

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(Text, nullable=False)
    moderate = Column(Boolean, nullable=False, default=False, comment="Topics require a moderator commit.")
    scroll_mode = Column(Enum(ScrollMode, name="scroll_mode"), nullable=False, default=ScrollMode.NO_SCROLL)

    groups = relationship("GroupORM", back_populates="section")

    def __repr__(self) -> str:
        return f"<SectionORM(id={self.id}, name='{self.name}', scroll_mode={self.scroll_mode})>"


class GroupORM(Base):
    """
    SQLAlchemy ORM model representing a forum group inside a section.

    Attributes:
        id (int): Primary key.
        section_id (int): Owning section.
        title (str): Display title, embedded in move annotations.
        url_name (str): Short name used in group URLs.
        image_post_allowed (bool): New topics must carry a gallery image.
        poll_post_allowed (bool): New topics carry a poll.
        links_allowed (bool): Topics may carry an external link.
        moved_topics (int): Number of topics relocated into or out of this group.
    """
    __tablename__ = "groups"

    id = Column(Integer, primary_key=True, autoincrement=False)
    section_id = Column(Integer, ForeignKey("sections.id"), nullable=False)
    title = Column(Text, nullable=False)
    url_name = Column(Text, nullable=False, default="")
    image_post_allowed = Column(Boolean, nullable=False, default=False)
    poll_post_allowed = Column(Boolean, nullable=False, default=False)
    links_allowed = Column(Boolean, nullable=False, default=False)
    moved_topics = Column(Integer, nullable=False, default=0, comment="Relocation counter, bumped on both ends of a move.")

    section = relationship("SectionORM", back_populates="groups", lazy="joined", innerjoin=True)

    @property
    def moderated(self) -> bool:
        return bool(self.section is not None and self.section.moderate)

    def __repr__(self) -> str:
        return f"<GroupORM(id={self.id}, section_id={self.section_id}, title='{self.title}')>"
