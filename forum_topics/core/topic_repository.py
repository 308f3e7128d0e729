"""
Topic Repository: row-level access to topics, their bodies and groups.

All methods work inside the caller's session; transaction boundaries belong
to the services built on top of it.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from forum_topics.exceptions import GroupNotFoundError, InvariantViolationError, TopicNotFoundError
from forum_topics.models import GroupORM, TopicBodyORM, TopicIdSequenceORM, TopicORM
from forum_topics.models.topic_orm import TOPIC_SEQUENCE_NAME
from forum_topics.models.dtos import GroupDTO, TopicDTO

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class TopicRepository:

    def allocate_topic_id(self, session: Session) -> int:
        """
        Hands out the next topic id with a single-row counter increment.

        Callers run this in its own short transaction so that allocation does
        not hold the counter row for the lifetime of a topic creation. The
        counter row is seeded together with the schema.

        Raises:
            InvariantViolationError: If the counter row is missing.
        """
        value = session.execute(
            update(TopicIdSequenceORM)
            .where(TopicIdSequenceORM.name == TOPIC_SEQUENCE_NAME)
            .values(value=TopicIdSequenceORM.value + 1)
            .returning(TopicIdSequenceORM.value)
            .execution_options(synchronize_session=False)
        ).scalar_one_or_none()
        if value is None:
            raise InvariantViolationError(f"Topic id counter '{TOPIC_SEQUENCE_NAME}' is not initialised")
        return value

    def get_topic_row(self, session: Session, topic_id: int, lock: bool = False) -> TopicORM:
        """
        Loads the topic row, optionally locking it for the rest of the transaction.

        Raises:
            TopicNotFoundError: If no topic has this id.
        """
        stmt = select(TopicORM).where(TopicORM.id == topic_id).execution_options(populate_existing=True)
        if lock:
            stmt = stmt.with_for_update(of=TopicORM)
        topic = session.execute(stmt).unique().scalar_one_or_none()
        if topic is None:
            raise TopicNotFoundError(topic_id)
        return topic

    def get_by_id(self, session: Session, topic_id: int) -> TopicDTO:
        return TopicDTO.model_validate(self.get_topic_row(session, topic_id))

    def get_group(self, session: Session, group_id: int) -> GroupDTO:
        group = session.execute(
            select(GroupORM).where(GroupORM.id == group_id).execution_options(populate_existing=True)
        ).unique().scalar_one_or_none()
        if group is None:
            raise GroupNotFoundError(group_id)
        return GroupDTO.model_validate(group)

    def insert_topic(self, session: Session, topic: TopicORM, text: str, bbcode: bool = True) -> None:
        """Adds the topic metadata row and its body in the current transaction."""
        session.add(topic)
        session.flush()
        session.add(TopicBodyORM(topic_id=topic.id, text=text, bbcode=bbcode))
        session.flush()

    def get_body(self, session: Session, topic_id: int) -> TopicBodyORM:
        body = session.execute(
            select(TopicBodyORM).where(TopicBodyORM.topic_id == topic_id).execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if body is None:
            raise TopicNotFoundError(topic_id)
        return body

    def update_body(self, session: Session, topic_id: int, text: str) -> None:
        session.execute(
            update(TopicBodyORM)
            .where(TopicBodyORM.topic_id == topic_id)
            .values(text=text)
            .execution_options(synchronize_session=False)
        )

    def append_body(self, session: Session, topic_id: int, addition: str) -> None:
        session.execute(
            update(TopicBodyORM)
            .where(TopicBodyORM.topic_id == topic_id)
            .values(text=TopicBodyORM.text + addition)
            .execution_options(synchronize_session=False)
        )

    def update_fields(self, session: Session, topic_id: int, **values) -> None:
        session.execute(
            update(TopicORM)
            .where(TopicORM.id == topic_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

    def get_time_first_topic(self, session: Session) -> Optional[datetime]:
        return session.execute(select(func.min(TopicORM.created_at)).where(TopicORM.created_at > EPOCH)).scalar()

    def get_topic_ids_between(self, session: Session, start: datetime, end: datetime) -> List[int]:
        stmt = (
            select(TopicORM.id)
            .where(TopicORM.created_at >= start, TopicORM.created_at < end)
            .order_by(TopicORM.id)
        )
        return list(session.execute(stmt).scalars().all())
