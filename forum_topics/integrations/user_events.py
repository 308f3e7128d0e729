"""
Reference notifications: tells users they were mentioned in a topic body.
"""
import logging
from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy.orm import Session

from forum_topics.models import UserEventORM
from forum_topics.models.dtos import UserDTO

logger = logging.getLogger(__name__)

REFERENCE_EVENT = "REF"


class UserEventNotifier:
    def add_user_ref_events(self, session: Session, users: Iterable[UserDTO], topic_id: int) -> int:
        """
        Queues one reference event per user (duplicates collapsed).

        Returns:
            Number of events queued.
        """
        now = datetime.now(timezone.utc)
        seen = set()
        for user in users:
            if user.id in seen:
                continue
            seen.add(user.id)
            session.add(UserEventORM(user_id=user.id, topic_id=topic_id, event_type=REFERENCE_EVENT, created_at=now))

        if seen:
            logger.debug(f"Queued {len(seen)} reference events for topic {topic_id}")
        return len(seen)
