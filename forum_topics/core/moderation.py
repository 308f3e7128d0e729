"""
Moderation protocol for topics: commit/uncommit and delete/undelete.

Score effects are one-way. `uncommit` does not take back the commit bonus and
`undelete` does not refund the delete penalty; the moderation flags and the
author score are independent records.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.orm import Session

from forum_topics.exceptions import InvariantViolationError, UserInputError, UserNotFoundError
from forum_topics.core.score_ledger import ScoreLedger
from forum_topics.core.topic_repository import TopicRepository
from forum_topics.models import DeleteInfoORM
from forum_topics.models.dtos import TopicDTO, UserDTO

logger = logging.getLogger(__name__)

MIN_BONUS = 0
MAX_BONUS = 20


def bonus_in_range(bonus: int) -> bool:
    return MIN_BONUS <= bonus <= MAX_BONUS


def validate_bonus(bonus: int) -> None:
    """
    Checks a bonus supplied by a human actor.

    Raises:
        UserInputError: If the bonus is outside [MIN_BONUS, MAX_BONUS].
    """
    if not bonus_in_range(bonus):
        raise UserInputError(f"Invalid bonus value {bonus}: must be between {MIN_BONUS} and {MAX_BONUS}")


def deletion_penalty_applies(topic: TopicDTO, actor: UserDTO, bonus: int) -> bool:
    """A delete penalises the author only when a moderator deletes someone else's topic with a non-zero bonus."""
    return actor.moderator and bonus != 0 and actor.id != topic.author_id


class ModerationService:
    """
    Session-level moderation operations. Callers own the transaction.
    """

    def __init__(self, topics: Optional[TopicRepository] = None, ledger: Optional[ScoreLedger] = None):
        self._topics = topics or TopicRepository()
        self._ledger = ledger or ScoreLedger()

    def commit(self, session: Session, topic: TopicDTO, committer: UserDTO, bonus: int) -> None:
        """
        Marks the topic as committed by `committer` and rewards its author with `bonus`.

        Raises:
            InvariantViolationError: If the bonus is out of range (callers validate
                user input beforehand) or the author account is missing.
        """
        if not bonus_in_range(bonus):
            raise InvariantViolationError(f"Commit of topic {topic.id} with out-of-range bonus {bonus}")

        self._topics.update_fields(
            session,
            topic.id,
            moderated=True,
            commit_by_id=committer.id,
            commit_at=datetime.now(timezone.utc),
        )

        try:
            author = self._ledger.get_user(session, topic.author_id)
        except UserNotFoundError as e:
            raise InvariantViolationError(f"Author {topic.author_id} of topic {topic.id} is missing") from e

        self._ledger.adjust_score(session, author.id, bonus)
        logger.info(f"Topic {topic.id} committed by {committer.nick} (bonus={bonus})")

    def uncommit(self, session: Session, topic: TopicDTO) -> None:
        """Clears the commit flag, committer and commit time. The author score is left as is."""
        self._topics.update_fields(session, topic.id, moderated=False, commit_by_id=None, commit_at=None)
        logger.info(f"Topic {topic.id} uncommitted")

    def delete_with_bonus(self, session: Session, topic: TopicDTO, actor: UserDTO, reason: str, bonus: int) -> int:
        """
        Soft-deletes the topic, penalising the author when a moderator asks for it.

        Returns:
            The score delta applied to the author (0 or -bonus), also stored in the delete record.

        Raises:
            UserInputError: If the penalty applies and the bonus is out of range.
        """
        penalise = deletion_penalty_applies(topic, actor, bonus)
        if penalise:
            validate_bonus(bonus)

        self._topics.update_fields(session, topic.id, deleted=True, sticky=False)

        applied = 0
        if penalise:
            applied = -bonus
            self._ledger.adjust_score(session, topic.author_id, applied)

        session.add(DeleteInfoORM(
            topic_id=topic.id,
            deleter_id=actor.id,
            reason=reason or "",
            bonus=applied,
            deleted_at=datetime.now(timezone.utc),
        ))
        session.flush()
        logger.info(f"Topic {topic.id} deleted by {actor.nick} (score delta {applied}): {reason}")
        return applied

    def undelete(self, session: Session, topic: TopicDTO) -> None:
        """Restores the topic and drops its delete record. Any applied penalty stays."""
        self._topics.update_fields(session, topic.id, deleted=False)
        session.execute(
            delete(DeleteInfoORM)
            .where(DeleteInfoORM.topic_id == topic.id)
            .execution_options(synchronize_session=False)
        )
        logger.info(f"Topic {topic.id} undeleted")
