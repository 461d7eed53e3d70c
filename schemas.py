"""
Visage Database Schemas

Each Pydantic model corresponds to a MongoDB collection. The collection name is the lowercase of the class name.
References to other documents are stored as the referenced document's id string.

Collections used:
- User: Accounts, with their follower/following id lists
- Post: Feed posts (images/videos) with likes and comment ids
- Story: Ephemeral (24h) stories and permanent poetry/thought cards
- Comment: Comments on a post or a story, with embedded one-level replies
- Notification: Engagement notifications (schema only, nothing writes them yet)
"""

from datetime import datetime, timedelta, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

import settings

MediaType = Literal["image", "video"]
StoryMediaType = Literal["image", "video", "text"]
StoryType = Literal["ephemeral", "poetry", "thought"]
NotificationType = Literal["follow", "like", "comment", "mention"]


def _strip_required(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


class User(BaseModel):
    username: str = Field(..., min_length=1, description="Unique handle")
    email: str = Field(..., min_length=3, description="Unique login email, stored lowercased")
    password: str = Field(..., description="Password hash, never sent to clients")
    full_name: str = Field(..., min_length=1, description="Display name")
    bio: str = Field("", description="Profile bio")
    website: str = Field("", description="Profile link")
    profile_picture: str = Field("", description="Avatar URL on the media host")
    is_private: bool = Field(False)
    followers: List[str] = Field(default_factory=list, description="Ids of users following this user")
    following: List[str] = Field(default_factory=list, description="Ids of users this user follows")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("username", "full_name")
    @classmethod
    def _strip(cls, value: str) -> str:
        return _strip_required(value)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return _strip_required(value).lower()


class Post(BaseModel):
    author_id: str = Field(..., description="ID of the author user document")
    caption: Optional[str] = Field(None)
    media_url: str = Field(..., min_length=1, description="URL of the image or video")
    media_type: MediaType = Field(...)
    media_public_id: Optional[str] = Field(None, description="Media host id used to delete the file")
    location: Optional[str] = Field(None)
    hashtags: List[str] = Field(default_factory=list)
    likes: List[str] = Field(default_factory=list)
    comments: List[str] = Field(default_factory=list, description="Comment ids in insertion order")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Story(BaseModel):
    author_id: str
    content: str = Field(..., description="Story text, required even when media is attached")
    media_url: Optional[str] = None
    media_public_id: Optional[str] = None
    media_type: StoryMediaType = Field("text")
    story_type: StoryType = Field(...)
    expire_at: Optional[datetime] = Field(None, description="Set for ephemeral stories only")
    likes: List[str] = Field(default_factory=list)
    comments: List[str] = Field(default_factory=list)
    views: List[str] = Field(default_factory=list, description="Ids of users who opened the story")
    hashtags: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("content")
    @classmethod
    def _strip_content(cls, value: str) -> str:
        return _strip_required(value)

    @model_validator(mode="after")
    def _set_expiry(self):
        # Only ephemeral stories expire; the others are permanent cards.
        if self.story_type == "ephemeral":
            if self.expire_at is None:
                created = self.created_at or datetime.now(timezone.utc)
                self.expire_at = created + timedelta(hours=settings.STORY_TTL_HOURS)
        else:
            self.expire_at = None
        return self


class Reply(BaseModel):
    author_id: str
    text: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    likes: List[str] = Field(default_factory=list)

    @field_validator("text")
    @classmethod
    def _strip_text(cls, value: str) -> str:
        return _strip_required(value)


class Comment(BaseModel):
    author_id: str
    post_id: Optional[str] = Field(None, description="Parent post id, exclusive with story_id")
    story_id: Optional[str] = Field(None, description="Parent story id, exclusive with post_id")
    text: str
    likes: List[str] = Field(default_factory=list)
    replies: List[Reply] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("text")
    @classmethod
    def _strip_text(cls, value: str) -> str:
        return _strip_required(value)

    @model_validator(mode="after")
    def _one_parent(self):
        if (self.post_id is None) == (self.story_id is None):
            raise ValueError("a comment belongs to exactly one post or story")
        return self


class Notification(BaseModel):
    recipient_id: str
    sender_id: str
    type: NotificationType
    post_id: Optional[str] = None
    story_id: Optional[str] = None
    comment_id: Optional[str] = None
    read: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
