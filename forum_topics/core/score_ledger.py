"""
Score Ledger for forum accounts.

Author scores are shared counters touched by several flows (commit bonus,
delete penalty). They are only ever changed with a single additive UPDATE so
concurrent adjustments commute.
"""
import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from forum_topics.exceptions import UserNotFoundError
from forum_topics.models import UserORM
from forum_topics.models.dtos import UserDTO

logger = logging.getLogger(__name__)


class ScoreLedger:
    """Additive score adjustments and account lookups."""

    def get_user(self, session: Session, user_id: int) -> UserDTO:
        """
        Loads an account.

        Raises:
            UserNotFoundError: If no account has this id.
        """
        user = session.execute(select(UserORM).where(UserORM.id == user_id)).scalar_one_or_none()
        if user is None:
            raise UserNotFoundError(user_id)
        return UserDTO.model_validate(user)

    def adjust_score(self, session: Session, user_id: int, delta: int) -> None:
        """
        Applies `delta` to the account's score as `score = score + delta`.

        Args:
            session: Session of the surrounding transaction.
            user_id: Account whose score changes.
            delta: Signed adjustment.
        """
        if delta == 0:
            return
        session.execute(
            update(UserORM)
            .where(UserORM.id == user_id)
            .values(score=UserORM.score + delta)
            .execution_options(synchronize_session=False)
        )
        logger.debug(f"Adjusted score of user {user_id} by {delta}")
