"""
Core components for the forum topic service.
"""

from .audit_log import AuditLog
from .moderation import ModerationService
from .navigation import NavigationResolver
from .poll_reconciler import PollReconciler, PollStore
from .revision_engine import TopicRevisionEngine
from .score_ledger import ScoreLedger
from .tag_store import TagStore

__all__ = [
    "AuditLog",
    "ModerationService",
    "NavigationResolver",
    "PollReconciler",
    "PollStore",
    "TopicRevisionEngine",
    "ScoreLedger",
    "TagStore",
]
