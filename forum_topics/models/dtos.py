"""
Pydantic Data Transfer Objects (DTOs) for the forum topic service.

These models are what callers pass in and get back; ORM rows never leave
the service.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .group_orm import ScrollMode


class UserDTO(BaseModel):
    """
    DTO for a forum account acting on or viewing a topic.

    Mirrors UserORM.
    """
    id: int
    nick: str
    score: int = 0
    moderator: bool = False
    anonymous: bool = False

    model_config = {"from_attributes": True}


class SectionDTO(BaseModel):
    id: int
    name: str
    moderate: bool = False
    scroll_mode: ScrollMode = ScrollMode.NO_SCROLL

    model_config = {"from_attributes": True}


class GroupDTO(BaseModel):
    """
    DTO for a forum group.

    `moderated` is inherited from the owning section.
    """
    id: int
    section_id: int
    title: str
    url_name: str = ""
    image_post_allowed: bool = False
    poll_post_allowed: bool = False
    links_allowed: bool = False
    moved_topics: int = 0
    moderated: bool = False

    model_config = {"from_attributes": True}


class TopicDTO(BaseModel):
    """
    Snapshot of a topic's metadata.

    Mirrors TopicORM plus the derived `section_id`. Edits are expressed as a
    pair of snapshots (before/after).
    """
    id: int
    group_id: int
    section_id: int
    author_id: int
    title: str
    url: Optional[str] = None
    link_text: Optional[str] = None
    created_at: datetime
    last_modified_at: datetime
    sticky: bool = False
    minor: bool = False
    not_on_top: bool = False
    moderated: bool = False
    resolved: bool = False
    deleted: bool = False
    post_score: Optional[int] = None
    commit_by_id: Optional[int] = None
    commit_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class PollVariantDTO(BaseModel):
    """
    A poll variant as persisted or as submitted by an edit form.

    `id == 0` marks a variant that does not exist yet and should be created.
    """
    id: int = 0
    label: Optional[str] = None
    display_order: int = 0
    votes: int = 0

    model_config = {"from_attributes": True}


class PollDTO(BaseModel):
    id: int
    topic_id: int
    multiselect: bool = False
    variants: List[PollVariantDTO] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class EditInfoDTO(BaseModel):
    """
    DTO for one audit entry of a topic edit.

    Mirrors EditInfoORM. A field is None when the edit did not change it.
    """
    id: int
    topic_id: int
    editor_id: int
    edited_at: datetime
    old_message: Optional[str] = None
    old_title: Optional[str] = None
    old_tags: Optional[str] = None
    old_link_text: Optional[str] = None
    old_url: Optional[str] = None

    model_config = {"from_attributes": True}


class DeleteInfoDTO(BaseModel):
    topic_id: int
    deleter_id: int
    reason: str
    bonus: int
    deleted_at: datetime

    model_config = {"from_attributes": True}


class AddTopicRequest(BaseModel):
    """
    Request model for posting a new topic.
    """
    title: str = Field(..., min_length=1, description="Topic title.")
    url: Optional[str] = Field(None, description="Optional external link.")
    link_text: Optional[str] = Field(None, description="Optional text for the external link.")
    tags: Optional[str] = Field(None, description="Comma separated tag list.")
    poll: Optional[List[str]] = Field(None, description="Poll variant labels, in display order.")
    multiselect: bool = Field(False, description="Whether the poll accepts several answers.")
