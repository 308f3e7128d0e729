"""
Topic Revision Engine for the forum topic service.

This component owns every mutation of a topic: creation, edits with audit
history and poll reconciliation, moderation commit with group relocation,
deletion, moves between groups and option changes. Each public mutating
method runs in exactly one transaction; any exception rolls back every write
made by that call.
"""
import logging
from calendar import monthrange
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from forum_topics.core.audit_log import AuditLog, EditDiff
from forum_topics.exceptions import InvariantViolationError, PollNotFoundError, PrecheckFailedError
from forum_topics.core.moderation import ModerationService, validate_bonus
from forum_topics.core.poll_reconciler import PollReconciler, PollStore, equal_strings
from forum_topics.core.score_ledger import ScoreLedger
from forum_topics.core.tag_store import TagStore, parse_tags, tags_to_string
from forum_topics.core.topic_repository import TopicRepository
from forum_topics.integrations.gallery import PreparedImage, place_topic_image
from forum_topics.integrations.user_events import UserEventNotifier
from forum_topics.models import GroupORM, TopicORM
from forum_topics.models.dtos import (
    AddTopicRequest,
    EditInfoDTO,
    GroupDTO,
    PollVariantDTO,
    TopicDTO,
    UserDTO,
)
from forum_topics.utils.db_session import get_db_session_context_manager

logger = logging.getLogger(__name__)


def build_move_annotation(
    bbcode: bool,
    url: Optional[str],
    link_text: Optional[str],
    mover_nick: str,
    origin_title: str,
) -> str:
    """
    Text appended to a topic body when a move strips its link.

    The old link (if any) is kept in the body, followed by a note naming the
    mover and the group the topic came from.
    """
    if bbcode:
        link = f"\n[url={url}]{link_text}[/url]\n" if url else ""
        return f"\n{link}\n[i]Moved by {mover_nick} from {origin_title}[/i]\n"

    link = f"<br><a href=\"{url}\">{link_text}</a>\n<br>\n" if url else ""
    return f"\n{link}<br><i>Moved by {mover_nick} from {origin_title}</i>\n"


class TopicRevisionEngine:
    """
    Orchestrates topic mutations and the read helpers callers need around them.
    """

    def __init__(
        self,
        session: Optional[Session] = None,
        topics: Optional[TopicRepository] = None,
        tags: Optional[TagStore] = None,
        audit_log: Optional[AuditLog] = None,
        poll_store: Optional[PollStore] = None,
        ledger: Optional[ScoreLedger] = None,
        notifier: Optional[UserEventNotifier] = None,
    ):
        """
        Initializes the TopicRevisionEngine.

        Args:
            session: An optional SQLAlchemy Session to use for all operations.
                     If None, each operation opens, commits and closes its own session.
            topics, tags, audit_log, poll_store, ledger, notifier: Collaborators,
                     defaulting to the database-backed implementations.
        """
        self._shared_session = session
        self._topics = topics or TopicRepository()
        self._tags = tags or TagStore()
        self._audit = audit_log or AuditLog()
        self._polls = poll_store or PollStore()
        self._reconciler = PollReconciler(self._polls)
        self._ledger = ledger or ScoreLedger()
        self._moderation = ModerationService(self._topics, self._ledger)
        self._notifier = notifier or UserEventNotifier()

    def _session(self):
        return get_db_session_context_manager(existing_session=self._shared_session)

    # --- Creation ---

    def allocate_topic_id(self) -> int:
        """
        Allocates a fresh topic id.

        Without a shared session the counter is bumped in its own short
        transaction, so concurrent creations never wait on each other's commit.
        """
        with self._session() as session:
            return self._topics.allocate_topic_id(session)

    def create_topic(
        self,
        author: UserDTO,
        group: GroupDTO,
        form: AddTopicRequest,
        body_text: str,
        image: Optional[PreparedImage] = None,
        user_refs: Iterable[UserDTO] = (),
        bbcode: bool = True,
    ) -> int:
        """
        Creates a topic with its body, and optionally its poll and tags.

        Args:
            author: Posting user.
            group: Destination group.
            form: Title, link, tags and poll labels submitted by the author.
            body_text: Raw body text.
            image: Prepared gallery image, mandatory for image groups.
            user_refs: Users mentioned in the body; each gets a reference event.
            bbcode: Markup dialect of `body_text`.

        Returns:
            The id of the new topic.

        Raises:
            PrecheckFailedError: If the group requires an image and none was supplied.
        """
        if group.image_post_allowed and image is None:
            raise PrecheckFailedError(f"Group {group.id} requires an image but none was prepared")

        topic_id = self.allocate_topic_id()

        with self._session() as session:
            url, link_text = form.url, form.link_text
            if group.image_post_allowed:
                url, link_text = place_topic_image(image, topic_id)

            now = datetime.now(timezone.utc)
            topic = TopicORM(
                id=topic_id,
                group_id=group.id,
                author_id=author.id,
                title=form.title,
                url=url,
                link_text=link_text,
                created_at=now,
                last_modified_at=now,
                moderated=False,
                deleted=False,
            )
            self._topics.insert_topic(session, topic, body_text, bbcode=bbcode)

            if group.poll_post_allowed and form.poll is not None:
                self._polls.create_poll(session, topic_id, form.poll, form.multiselect)

            if form.tags is not None:
                new_tags = parse_tags(form.tags)
                self._tags.update_tags(session, topic_id, new_tags)
                self._tags.update_counters(session, [], new_tags)

            self._notifier.add_user_ref_events(session, user_refs, topic_id)

        logger.info(f"Created topic {topic_id} in group {group.id} by {author.nick}")
        return topic_id

    # --- Edit & commit ---

    def update_and_commit(
        self,
        new_topic: TopicDTO,
        old_topic: TopicDTO,
        editor: UserDTO,
        new_tags: Optional[Sequence[str]],
        new_text: str,
        commit: bool = False,
        change_group_id: Optional[int] = None,
        bonus: int = 0,
        poll_variants: Optional[Sequence[PollVariantDTO]] = None,
        multiselect: bool = False,
    ) -> bool:
        """
        Applies an edit and, if requested, commits the topic.

        Args:
            new_topic: Edited snapshot (title, url, link text, minor flag).
            old_topic: Snapshot the editor started from. Only its id is used: the
                edit is diffed against the locked live row, so a concurrent edit
                that committed first is what this one is compared to.
            editor: User performing the edit.
            new_tags: Replacement tag list, or None to leave tags alone.
            new_text: Replacement body text.
            commit: Whether to commit (approve) the topic.
            change_group_id: Destination group when committing into another group.
            bonus: Author reward for the commit, in [0, 20].
            poll_variants: Submitted poll variants, or None to leave the poll alone.
            multiselect: Submitted multi-select flag (only used with poll_variants).

        Returns:
            True if anything changed: fields, tags, poll, group or commit state.
            A change of the minor flag alone counts as modified but writes no
            audit entry, since the edit log has no column for it.

        Raises:
            UserInputError: If committing with an out-of-range bonus. Nothing is written.
            InvariantViolationError: If poll variants are supplied for a topic without a poll.
        """
        if commit:
            validate_bonus(bonus)

        with self._session() as session:
            row = self._topics.get_topic_row(session, old_topic.id, lock=True)
            current = TopicDTO.model_validate(row)

            modified = self._update_topic(session, current, new_topic, editor, new_tags, new_text)

            if poll_variants is not None:
                try:
                    if self._reconciler.reconcile(session, old_topic.id, poll_variants, multiselect):
                        modified = True
                except PollNotFoundError as e:
                    raise InvariantViolationError(f"Poll variants submitted for topic {old_topic.id} without a poll") from e

            if commit:
                if change_group_id is not None and change_group_id != current.group_id:
                    self._relocate(session, current.id, current.group_id, change_group_id)

                self._moderation.commit(session, current, editor, bonus)
                modified = True

        if modified:
            logger.info(f"Topic {old_topic.id} edited by {editor.nick}")

        return modified

    def _update_topic(
        self,
        session: Session,
        old_topic: TopicDTO,
        new_topic: TopicDTO,
        editor: UserDTO,
        new_tags: Optional[Sequence[str]],
        new_text: str,
    ) -> bool:
        topic_id = old_topic.id
        diff = EditDiff(topic_id, editor.id)
        modified = False

        old_text = self._topics.get_body(session, topic_id).text
        if not equal_strings(old_text, new_text):
            diff.record("old_message", old_text)
            self._topics.update_body(session, topic_id, new_text)
            modified = True

        if not equal_strings(old_topic.title, new_topic.title):
            diff.record("old_title", old_topic.title)
            self._topics.update_fields(session, topic_id, title=new_topic.title)
            modified = True

        if not equal_strings(old_topic.link_text, new_topic.link_text):
            diff.record("old_link_text", old_topic.link_text)
            self._topics.update_fields(session, topic_id, link_text=new_topic.link_text)
            modified = True

        if not equal_strings(old_topic.url, new_topic.url):
            diff.record("old_url", old_topic.url)
            self._topics.update_fields(session, topic_id, url=new_topic.url)
            modified = True

        if new_tags is not None:
            old_tags = self._tags.get_topic_tags(session, topic_id)
            if self._tags.update_tags(session, topic_id, new_tags):
                diff.record("old_tags", tags_to_string(old_tags))
                self._tags.update_counters(session, old_tags, new_tags)
                modified = True

        # minor has no audit column: it marks the edit as modified without an entry of its own
        if old_topic.minor != new_topic.minor:
            self._topics.update_fields(session, topic_id, minor=new_topic.minor)
            modified = True

        self._audit.record_edit(session, diff)
        return modified

    def _relocate(self, session: Session, topic_id: int, from_group_id: int, to_group_id: int) -> None:
        """Moves the topic to another group and bumps the relocation counter of both groups."""
        group_ids = sorted({from_group_id, to_group_id})

        # Lock both group rows in ascending id order.
        session.execute(
            select(GroupORM.id).where(GroupORM.id.in_(group_ids)).order_by(GroupORM.id).with_for_update()
        ).all()

        self._topics.update_fields(session, topic_id, group_id=to_group_id)
        session.execute(
            update(GroupORM)
            .where(GroupORM.id.in_(group_ids))
            .values(moved_topics=GroupORM.moved_topics + 1)
            .execution_options(synchronize_session=False)
        )
        logger.info(f"Topic {topic_id} relocated from group {from_group_id} to group {to_group_id}")

    # --- Moderation ---

    def commit(self, topic: TopicDTO, committer: UserDTO, bonus: int) -> None:
        with self._session() as session:
            self._moderation.commit(session, topic, committer, bonus)

    def uncommit(self, topic: TopicDTO) -> None:
        with self._session() as session:
            self._moderation.uncommit(session, topic)

    def delete_with_bonus(self, topic: TopicDTO, actor: UserDTO, reason: str, bonus: int) -> int:
        """
        Deletes the topic; see ModerationService.delete_with_bonus.

        Returns:
            The score delta applied to the author.
        """
        with self._session() as session:
            self._topics.get_topic_row(session, topic.id, lock=True)
            return self._moderation.delete_with_bonus(session, topic, actor, reason, bonus)

    def undelete(self, topic: TopicDTO) -> None:
        with self._session() as session:
            self._moderation.undelete(session, topic)

    def move_topic(self, topic: TopicDTO, new_group: GroupDTO, mover: UserDTO) -> None:
        """
        Moves a topic to another group.

        When the destination allows neither links nor images, the topic's link
        is dropped and written into the body together with a note naming the
        mover and the origin group. Moving into an unmoderated group strips
        the topic's tags.
        """
        with self._session() as session:
            row = self._topics.get_topic_row(session, topic.id, lock=True)
            origin = self._topics.get_group(session, row.group_id)
            url, link_text = row.url, row.link_text
            body = self._topics.get_body(session, topic.id)

            self._topics.update_fields(
                session, topic.id, group_id=new_group.id, last_modified_at=datetime.now(timezone.utc)
            )

            if not new_group.links_allowed and not new_group.image_post_allowed:
                self._topics.update_fields(session, topic.id, url=None, link_text=None)
                annotation = build_move_annotation(body.bbcode, url, link_text, mover.nick, origin.title)
                self._topics.append_body(session, topic.id, annotation)

            if not new_group.moderated:
                old_tags = self._tags.get_topic_tags(session, topic.id)
                self._tags.update_tags(session, topic.id, [])
                self._tags.update_counters(session, old_tags, [])

        logger.info(f"Topic {topic.id} moved from group {origin.id} to group {new_group.id} by {mover.nick}")

    # --- Options ---

    def resolve_topic(self, topic_id: int, resolved: bool) -> None:
        """Sets the resolved flag and bumps last-modified by one second."""
        with self._session() as session:
            row = self._topics.get_topic_row(session, topic_id, lock=True)
            self._topics.update_fields(
                session,
                topic_id,
                resolved=resolved,
                last_modified_at=row.last_modified_at + timedelta(seconds=1),
            )

    def set_topic_options(self, topic: TopicDTO, post_score: Optional[int], sticky: bool, not_on_top: bool, minor: bool) -> None:
        with self._session() as session:
            self._topics.update_fields(
                session,
                topic.id,
                post_score=post_score,
                sticky=sticky,
                not_on_top=not_on_top,
                minor=minor,
                last_modified_at=datetime.now(timezone.utc),
            )

    # --- Reads ---

    def get_by_id(self, topic_id: int) -> TopicDTO:
        with self._session() as session:
            return self._topics.get_by_id(session, topic_id)

    def get_group(self, topic: TopicDTO) -> GroupDTO:
        with self._session() as session:
            return self._topics.get_group(session, topic.group_id)

    def get_body_text(self, topic: TopicDTO) -> str:
        with self._session() as session:
            return self._topics.get_body(session, topic.id).text

    def get_tags(self, topic: TopicDTO) -> List[str]:
        with self._session() as session:
            return self._tags.get_topic_tags(session, topic.id)

    def get_edit_info(self, topic_id: int) -> List[EditInfoDTO]:
        with self._session() as session:
            return self._audit.get_edit_info(session, topic_id)

    def get_time_first_topic(self) -> Optional[datetime]:
        with self._session() as session:
            return self._topics.get_time_first_topic(session)

    def get_topics_for_month(self, year: int, month: int) -> List[int]:
        """Ids of the topics created in the given month (1-12)."""
        start = datetime(year, month, 1, tzinfo=timezone.utc)
        end = start + timedelta(days=monthrange(year, month)[1])
        with self._session() as session:
            return self._topics.get_topic_ids_between(session, start, end)
