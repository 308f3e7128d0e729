"""
Read-only lookups consumed by navigation: section scroll policy and the
viewer's ignore list.
"""
from typing import FrozenSet

from sqlalchemy import select
from sqlalchemy.orm import Session

from forum_topics.exceptions import SectionNotFoundError
from forum_topics.models import IgnoreListORM, ScrollMode, SectionORM


class SectionPolicyLookup:
    def scroll_mode_of(self, session: Session, section_id: int) -> ScrollMode:
        """
        Raises:
            SectionNotFoundError: If the section does not exist.
        """
        mode = session.execute(select(SectionORM.scroll_mode).where(SectionORM.id == section_id)).scalar_one_or_none()
        if mode is None:
            raise SectionNotFoundError(section_id)
        return ScrollMode(mode)


class IgnoreListLookup:
    def ignored_by(self, session: Session, user_id: int) -> FrozenSet[int]:
        """Ids of the users that `user_id` ignores."""
        stmt = select(IgnoreListORM.ignored_id).where(IgnoreListORM.user_id == user_id)
        return frozenset(session.execute(stmt).scalars().all())
