"""
Tag storage for topics: the per-topic tag set and the global usage counters.
"""
import logging
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from forum_topics.models import TagValueORM, TopicTagORM

logger = logging.getLogger(__name__)


def parse_tags(text: Optional[str]) -> List[str]:
    """
    Splits a comma separated tag string into a clean tag list.

    Tags are trimmed and lower-cased; empty entries and duplicates are
    dropped. First-occurrence order is kept.
    """
    if not text:
        return []

    tags: List[str] = []
    for raw in text.split(","):
        tag = raw.strip().lower()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def tags_to_string(tags: Iterable[str]) -> str:
    return ",".join(tags)


class TagStore:
    """Reads and replaces topic tags and maintains the usage counters."""

    def get_topic_tags(self, session: Session, topic_id: int) -> List[str]:
        """Returns the topic's tags sorted by value."""
        stmt = (
            select(TagValueORM.value)
            .join(TopicTagORM, TopicTagORM.tag_id == TagValueORM.id)
            .where(TopicTagORM.topic_id == topic_id)
            .order_by(TagValueORM.value)
        )
        return list(session.execute(stmt).scalars().all())

    def update_tags(self, session: Session, topic_id: int, new_tags: Sequence[str]) -> bool:
        """
        Replaces the topic's tag set with `new_tags`.

        Returns:
            True if the stored set differed from `new_tags` and was replaced.
        """
        old_set = set(self.get_topic_tags(session, topic_id))
        new_set = set(new_tags)

        if old_set == new_set:
            return False

        session.execute(delete(TopicTagORM).where(TopicTagORM.topic_id == topic_id))
        for tag in sorted(new_set):
            tag_id = self._get_or_create_tag_id(session, tag)
            session.add(TopicTagORM(topic_id=topic_id, tag_id=tag_id))
        session.flush()
        return True

    def update_counters(self, session: Session, old_tags: Sequence[str], new_tags: Sequence[str]) -> None:
        """Decrements tags that were removed and increments tags that were added."""
        old_set = set(old_tags)
        new_set = set(new_tags)

        for tag in sorted(old_set - new_set):
            self.decrement(session, tag)
        for tag in sorted(new_set - old_set):
            self.increment(session, tag)

    def increment(self, session: Session, tag: str) -> None:
        tag_id = self._get_or_create_tag_id(session, tag)
        session.execute(
            update(TagValueORM)
            .where(TagValueORM.id == tag_id)
            .values(counter=TagValueORM.counter + 1)
            .execution_options(synchronize_session=False)
        )

    def decrement(self, session: Session, tag: str) -> None:
        session.execute(
            update(TagValueORM)
            .where(TagValueORM.value == tag)
            .values(counter=TagValueORM.counter - 1)
            .execution_options(synchronize_session=False)
        )

    def _get_or_create_tag_id(self, session: Session, tag: str) -> int:
        tag_id = session.execute(select(TagValueORM.id).where(TagValueORM.value == tag)).scalar_one_or_none()
        if tag_id is not None:
            return tag_id

        tag_value = TagValueORM(value=tag, counter=0)
        session.add(tag_value)
        session.flush()
        logger.info(f"Created new tag '{tag}' (id={tag_value.id})")
        return tag_value.id
