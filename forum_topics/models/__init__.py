"""
Models package for the forum topic service.

This package contains SQLAlchemy ORM models and Pydantic DTOs.
"""

# Ensure all ORM models are registered with the Base metadata when this package is imported.
from . import base
from . import audit_orm
from . import group_orm
from . import poll_orm
from . import tag_orm
from . import topic_orm
from . import user_orm

# Import Base and ORM models for easy access
from .base import Base
from .audit_orm import DeleteInfoORM, EditInfoORM
from .group_orm import GroupORM, ScrollMode, SectionORM
from .poll_orm import PollORM, PollVariantORM
from .tag_orm import TagValueORM, TopicTagORM
from .topic_orm import TopicBodyORM, TopicIdSequenceORM, TopicORM
from .user_orm import IgnoreListORM, UserEventORM, UserORM

# Import DTOs for easy access
from .dtos import (
    AddTopicRequest,
    DeleteInfoDTO,
    EditInfoDTO,
    GroupDTO,
    PollDTO,
    PollVariantDTO,
    SectionDTO,
    TopicDTO,
    UserDTO,
)

# Define what is exported with 'from forum_topics.models import *'
__all__ = [
    # Base
    "Base",
    "ScrollMode",
    # ORMs
    "DeleteInfoORM",
    "EditInfoORM",
    "GroupORM",
    "IgnoreListORM",
    "PollORM",
    "PollVariantORM",
    "SectionORM",
    "TagValueORM",
    "TopicBodyORM",
    "TopicIdSequenceORM",
    "TopicORM",
    "TopicTagORM",
    "UserEventORM",
    "UserORM",
    # DTOs
    "AddTopicRequest",
    "DeleteInfoDTO",
    "EditInfoDTO",
    "GroupDTO",
    "PollDTO",
    "PollVariantDTO",
    "SectionDTO",
    "TopicDTO",
    "UserDTO",
]
