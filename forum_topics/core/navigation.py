"""
Navigation Resolver: previous/next topic for the topic page.

The neighbour of a topic depends on its section's scroll mode. Each mode maps
to one strategy function returning the neighbour id (or None); the resolver
then loads the neighbour. Nothing here writes to the store.
"""
import enum
import logging
from typing import Callable, Dict, FrozenSet, Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from forum_topics.exceptions import InvariantViolationError, SectionNotFoundError, TopicNotFoundError
from forum_topics.core.lookups import IgnoreListLookup, SectionPolicyLookup
from forum_topics.core.topic_repository import TopicRepository
from forum_topics.models import GroupORM, ScrollMode, SectionORM, TopicORM
from forum_topics.models.dtos import TopicDTO, UserDTO
from forum_topics.utils.db_session import get_db_session_context_manager

logger = logging.getLogger(__name__)


class Direction(enum.Enum):
    PREVIOUS = "previous"
    NEXT = "next"


NeighbourStrategy = Callable[[Session, TopicDTO, Direction, FrozenSet[int]], Optional[int]]


def no_scroll_neighbour(session: Session, topic: TopicDTO, direction: Direction, ignored: FrozenSet[int]) -> Optional[int]:
    return None


def section_neighbour(session: Session, topic: TopicDTO, direction: Direction, ignored: FrozenSet[int]) -> Optional[int]:
    """
    Nearest topic by commit time within the section.

    Candidates must be committed or live in a section without moderation, and
    must not be deleted. Pinned topics are skipped only when going backwards.
    """
    if topic.commit_at is None:
        return None

    stmt = (
        select(TopicORM.id)
        .join(GroupORM, TopicORM.group_id == GroupORM.id)
        .join(SectionORM, GroupORM.section_id == SectionORM.id)
        .where(
            GroupORM.section_id == topic.section_id,
            or_(TopicORM.moderated.is_(True), SectionORM.moderate.is_(False)),
            TopicORM.deleted.is_(False),
        )
    )

    if direction is Direction.PREVIOUS:
        stmt = stmt.where(TopicORM.commit_at < topic.commit_at, TopicORM.sticky.is_(False))
        stmt = stmt.order_by(TopicORM.commit_at.desc(), TopicORM.id.desc())
    else:
        stmt = stmt.where(TopicORM.commit_at > topic.commit_at)
        stmt = stmt.order_by(TopicORM.commit_at.asc(), TopicORM.id.asc())

    return session.execute(stmt.limit(1)).scalar_one_or_none()


def group_neighbour(session: Session, topic: TopicDTO, direction: Direction, ignored: FrozenSet[int]) -> Optional[int]:
    """
    Nearest topic by id within the group, skipping deleted topics and topics
    by authors the viewer ignores. Pinned topics are skipped only when going
    backwards.
    """
    stmt = select(TopicORM.id).where(TopicORM.group_id == topic.group_id, TopicORM.deleted.is_(False))

    if ignored:
        stmt = stmt.where(TopicORM.author_id.not_in(ignored))

    if direction is Direction.PREVIOUS:
        stmt = stmt.where(TopicORM.id < topic.id, TopicORM.sticky.is_(False)).order_by(TopicORM.id.desc())
    else:
        stmt = stmt.where(TopicORM.id > topic.id).order_by(TopicORM.id.asc())

    return session.execute(stmt.limit(1)).scalar_one_or_none()


NAVIGATION_STRATEGIES: Dict[ScrollMode, NeighbourStrategy] = {
    ScrollMode.SECTION: section_neighbour,
    ScrollMode.GROUP: group_neighbour,
    ScrollMode.NO_SCROLL: no_scroll_neighbour,
}


def is_identified(viewer: Optional[UserDTO]) -> bool:
    return viewer is not None and not viewer.anonymous


class NavigationResolver:
    """Computes the previous/next topic for a viewer."""

    def __init__(
        self,
        session: Optional[Session] = None,
        sections: Optional[SectionPolicyLookup] = None,
        ignore_list: Optional[IgnoreListLookup] = None,
        topics: Optional[TopicRepository] = None,
    ):
        self._shared_session = session
        self._sections = sections or SectionPolicyLookup()
        self._ignore_list = ignore_list or IgnoreListLookup()
        self._topics = topics or TopicRepository()

    def previous(self, topic: TopicDTO, viewer: Optional[UserDTO]) -> Optional[TopicDTO]:
        return self._neighbour(topic, viewer, Direction.PREVIOUS)

    def next(self, topic: TopicDTO, viewer: Optional[UserDTO]) -> Optional[TopicDTO]:
        return self._neighbour(topic, viewer, Direction.NEXT)

    def _neighbour(self, topic: TopicDTO, viewer: Optional[UserDTO], direction: Direction) -> Optional[TopicDTO]:
        if topic.sticky:
            return None

        with get_db_session_context_manager(existing_session=self._shared_session) as session:
            try:
                mode = self._sections.scroll_mode_of(session, topic.section_id)
            except SectionNotFoundError as e:
                logger.error(f"Cannot navigate from topic {topic.id}: {e}")
                return None

            ignored: FrozenSet[int] = frozenset()
            if mode is ScrollMode.GROUP and is_identified(viewer):
                ignored = self._ignore_list.ignored_by(session, viewer.id)

            neighbour_id = NAVIGATION_STRATEGIES[mode](session, topic, direction, ignored)
            if neighbour_id is None:
                return None

            try:
                return self._topics.get_by_id(session, neighbour_id)
            except TopicNotFoundError as e:
                raise InvariantViolationError(
                    f"{direction.value} topic {neighbour_id} of topic {topic.id} vanished during lookup"
                ) from e
