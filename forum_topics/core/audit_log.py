"""
Audit Log for topic edits.

One entry per edit call, holding the prior value of every tracked field the
edit changed. Entries are never updated or deleted.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from forum_topics.models import EditInfoORM
from forum_topics.models.dtos import EditInfoDTO

logger = logging.getLogger(__name__)


class EditDiff:
    """
    Accumulates the prior values of the fields changed by one edit.
    """

    def __init__(self, topic_id: int, editor_id: int):
        self.topic_id = topic_id
        self.editor_id = editor_id
        self.old_message: Optional[str] = None
        self.old_title: Optional[str] = None
        self.old_tags: Optional[str] = None
        self.old_link_text: Optional[str] = None
        self.old_url: Optional[str] = None
        self._changed: List[str] = []

    def record(self, field: str, prior_value: Optional[str]) -> None:
        setattr(self, field, prior_value)
        if field not in self._changed:
            self._changed.append(field)

    @property
    def changed_fields(self) -> List[str]:
        return list(self._changed)

    def has_changes(self) -> bool:
        return bool(self._changed)


class AuditLog:
    """Writes and reads edit audit entries."""

    def record_edit(self, session: Session, diff: EditDiff) -> Optional[EditInfoORM]:
        """
        Persists `diff` as one audit entry.

        Returns:
            The new entry, or None when the diff is empty (nothing is written).
        """
        if not diff.has_changes():
            return None

        entry = EditInfoORM(
            topic_id=diff.topic_id,
            editor_id=diff.editor_id,
            edited_at=datetime.now(timezone.utc),
            old_message=diff.old_message,
            old_title=diff.old_title,
            old_tags=diff.old_tags,
            old_link_text=diff.old_link_text,
            old_url=diff.old_url,
        )
        session.add(entry)
        session.flush()
        logger.debug(f"Recorded edit {entry.id} of topic {diff.topic_id}: {', '.join(diff.changed_fields)}")
        return entry

    def get_edit_info(self, session: Session, topic_id: int) -> List[EditInfoDTO]:
        """Returns the topic's audit entries, most recent first."""
        stmt = select(EditInfoORM).where(EditInfoORM.topic_id == topic_id).order_by(EditInfoORM.id.desc())
        return [EditInfoDTO.model_validate(row) for row in session.execute(stmt).scalars().all()]
