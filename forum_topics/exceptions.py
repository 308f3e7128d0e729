"""
Exception hierarchy of the forum topic service.

`UserInputError` carries a message meant for the end user. Everything
derived from `InvariantViolationError` signals a bug or a data-integrity
problem and should be reported as a generic internal error.
"""


class TopicServiceError(Exception):
    """Base class for all errors raised by the topic service."""


class UserInputError(TopicServiceError):
    """A value supplied by a human actor is out of range."""


class PrecheckFailedError(TopicServiceError):
    """A precondition the caller had to prepare is not met (e.g. missing gallery image)."""


class InvariantViolationError(TopicServiceError):
    """Internal consistency failure. Never user-recoverable."""


class PollNotFoundError(TopicServiceError):
    def __init__(self, topic_id: int):
        super().__init__(f"Poll not found for topic {topic_id}")
        self.topic_id = topic_id


class UserNotFoundError(TopicServiceError):
    def __init__(self, user_id: int):
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class TopicNotFoundError(TopicServiceError):
    def __init__(self, topic_id: int):
        super().__init__(f"Topic {topic_id} not found")
        self.topic_id = topic_id


class GroupNotFoundError(TopicServiceError):
    def __init__(self, group_id: int):
        super().__init__(f"Group {group_id} not found")
        self.group_id = group_id


class SectionNotFoundError(TopicServiceError):
    def __init__(self, section_id: int):
        super().__init__(f"Section {section_id} not found")
        self.section_id = section_id
