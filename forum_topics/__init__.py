"""
Topic lifecycle service for a moderated forum.

Covers topic creation, edits with audit history, polls, moderation
commit/uncommit, deletion and previous/next navigation.
"""

__version__ = "0.1.0"
