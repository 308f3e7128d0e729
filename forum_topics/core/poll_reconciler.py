"""
Poll storage and the Poll Reconciler.

The reconciler aligns a topic's persisted poll variants with the variant list
submitted by an edit form: variants missing from the submission or submitted
with a blank label are removed, relabelled ones are updated in place, and
submitted variants with id 0 are appended.
"""
import logging
from typing import Dict, List, Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from forum_topics.exceptions import PollNotFoundError
from forum_topics.models import PollORM, PollVariantORM
from forum_topics.models.dtos import PollDTO, PollVariantDTO

logger = logging.getLogger(__name__)


def is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def equal_strings(first: Optional[str], second: Optional[str]) -> bool:
    """Compares two strings treating None and "" as equal."""
    if not first:
        return not second
    return first == second


class PollStore:
    """Create/read/modify polls and their variants."""

    def create_poll(self, session: Session, topic_id: int, labels: Sequence[str], multiselect: bool) -> PollORM:
        """Creates the topic's poll with one variant per non-blank label, in order."""
        poll = PollORM(topic_id=topic_id, multiselect=multiselect)
        session.add(poll)
        session.flush()

        order = 0
        for label in labels:
            if is_blank(label):
                continue
            order += 1
            session.add(PollVariantORM(poll_id=poll.id, label=label, display_order=order))
        session.flush()
        logger.info(f"Created poll {poll.id} for topic {topic_id} with {order} variants")
        return poll

    def get_poll_by_topic_id(self, session: Session, topic_id: int) -> PollDTO:
        """
        Loads the topic's poll with its variants in display order.

        Raises:
            PollNotFoundError: If the topic has no poll.
        """
        poll = session.execute(
            select(PollORM).where(PollORM.topic_id == topic_id).with_for_update()
        ).scalar_one_or_none()
        if poll is None:
            raise PollNotFoundError(topic_id)

        variants = session.execute(
            select(PollVariantORM)
            .where(PollVariantORM.poll_id == poll.id)
            .order_by(PollVariantORM.display_order, PollVariantORM.id)
        ).scalars().all()

        return PollDTO(
            id=poll.id,
            topic_id=poll.topic_id,
            multiselect=poll.multiselect,
            variants=[PollVariantDTO.model_validate(v) for v in variants],
        )

    def add_variant(self, session: Session, poll_id: int, label: str) -> int:
        """Appends a variant after the poll's current last variant and returns its id."""
        max_order = session.execute(
            select(func.max(PollVariantORM.display_order)).where(PollVariantORM.poll_id == poll_id)
        ).scalar()
        variant = PollVariantORM(poll_id=poll_id, label=label, display_order=(max_order or 0) + 1)
        session.add(variant)
        session.flush()
        return variant.id

    def update_variant_label(self, session: Session, variant_id: int, label: str) -> None:
        session.execute(
            update(PollVariantORM)
            .where(PollVariantORM.id == variant_id)
            .values(label=label)
            .execution_options(synchronize_session=False)
        )

    def remove_variant(self, session: Session, variant_id: int) -> None:
        session.execute(
            delete(PollVariantORM)
            .where(PollVariantORM.id == variant_id)
            .execution_options(synchronize_session=False)
        )

    def update_multiselect(self, session: Session, poll_id: int, multiselect: bool) -> None:
        session.execute(
            update(PollORM)
            .where(PollORM.id == poll_id)
            .values(multiselect=multiselect)
            .execution_options(synchronize_session=False)
        )


class PollReconciler:
    """
    Applies the delta between a persisted poll and a submitted variant list.
    """

    def __init__(self, poll_store: Optional[PollStore] = None):
        self._polls = poll_store or PollStore()

    def reconcile(
        self,
        session: Session,
        topic_id: int,
        new_variants: Sequence[PollVariantDTO],
        multiselect: bool,
    ) -> bool:
        """
        Reconciles the topic's poll with `new_variants` and `multiselect`.

        Args:
            session: Session of the surrounding transaction.
            topic_id: Topic owning the poll.
            new_variants: Submitted variants; id 0 means "create".
            multiselect: Submitted multi-select flag.

        Returns:
            True if any variant was removed, relabelled or added, or the flag changed.

        Raises:
            PollNotFoundError: If the topic has no poll.
        """
        poll = self._polls.get_poll_by_topic_id(session, topic_id)
        modified = False

        new_labels: Dict[int, Optional[str]] = {
            variant.id: variant.label for variant in new_variants if variant.id != 0
        }

        for old in poll.variants:
            label = new_labels.get(old.id)

            if is_blank(label):
                self._polls.remove_variant(session, old.id)
                modified = True
                logger.debug(f"Removed variant {old.id} from poll {poll.id}")
            elif not equal_strings(old.label, label):
                self._polls.update_variant_label(session, old.id, label)
                modified = True

        for variant in new_variants:
            if variant.id == 0 and not is_blank(variant.label):
                new_id = self._polls.add_variant(session, poll.id, variant.label)
                modified = True
                logger.debug(f"Added variant {new_id} to poll {poll.id}")

        if poll.multiselect != multiselect:
            self._polls.update_multiselect(session, poll.id, multiselect)
            modified = True

        return modified

    def current_variants(self, session: Session, topic_id: int) -> List[PollVariantDTO]:
        return self._polls.get_poll_by_topic_id(session, topic_id).variants
