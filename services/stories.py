"""
Stories: ephemeral 24h stories plus permanent poetry and thought cards.

Expiry is a query-time filter. Expired ephemeral stories stay in the
collection and are simply left out of feed and profile listings.
"""

from typing import List, Optional

from bson import ObjectId
from pymongo.database import Database
from pymongo.errors import PyMongoError

import settings
from database import NEWEST_FIRST, create_document, get_documents, now_utc
from exceptions import NotFoundError, ValidationError
from logger import log
from media import MediaHost, MediaSource, public_id_from_url
from schemas import Story
from services.common import (
    add_member,
    extract_hashtags,
    get_or_404,
    populate_authors,
    populate_comments,
    populate_one,
    remove_member,
    require_author,
    unique_by_id,
)

STORY_TYPES = ("ephemeral", "poetry", "thought")
BOARD_TYPES = ("poetry", "thought")


def _not_expired(now) -> dict:
    return {"$or": [{"expire_at": {"$gt": now}}, {"expire_at": None}]}


def create_story(
    db: Database,
    media: MediaHost,
    user_id: str,
    content: Optional[str],
    story_type: Optional[str],
    source: Optional[MediaSource] = None,
) -> dict:
    if not content or not content.strip():
        raise ValidationError("Story content is required")
    if story_type not in STORY_TYPES:
        raise ValidationError(f"story_type must be one of: {', '.join(STORY_TYPES)}")

    media_url = None
    media_public_id = None
    media_type = "text"
    if source:
        uploaded = media.upload(source, folder=settings.STORY_MEDIA_FOLDER)
        media_url, media_public_id, media_type = uploaded.url, uploaded.public_id, uploaded.media_type

    story = Story(
        author_id=user_id,
        content=content,
        media_url=media_url,
        media_public_id=media_public_id,
        media_type=media_type,
        story_type=story_type,
        hashtags=extract_hashtags(content),
        created_at=now_utc(),
    )
    try:
        story_id = create_document(db, "story", story)
    except PyMongoError:
        if media_public_id:
            media.delete_quietly(media_public_id, media_type)
        raise

    log.info(f"User {user_id} created {story_type} story {story_id}")
    return populate_one(db, db["story"].find_one({"_id": ObjectId(story_id)}))


def get_story(db: Database, story_id: str) -> dict:
    story = get_or_404(db["story"], story_id, "Story")
    return populate_comments(db, populate_one(db, story))


def get_user_stories(db: Database, author_id: str) -> List[dict]:
    query = {"author_id": author_id}
    query.update(_not_expired(now_utc()))
    stories = get_documents(db, "story", query, sort=NEWEST_FIRST)
    return populate_authors(db, stories)


def get_feed(db: Database, user_id: str) -> List[dict]:
    """Unexpired stories from followed users and the actor, newest first."""
    me = get_or_404(db["user"], user_id, "User")
    authors = list(me.get("following", [])) + [user_id]
    query = {"author_id": {"$in": authors}}
    query.update(_not_expired(now_utc()))
    stories = get_documents(db, "story", query, sort=NEWEST_FIRST)
    return populate_authors(db, stories)


def get_by_type(db: Database, story_type: str) -> List[dict]:
    if story_type not in BOARD_TYPES:
        raise NotFoundError("Story type not found")
    stories = get_documents(
        db, "story", {"story_type": story_type}, sort=NEWEST_FIRST, limit=settings.STORY_TYPE_LIMIT
    )
    return populate_authors(db, unique_by_id(stories))


def like_story(db: Database, user_id: str, story_id: str) -> None:
    add_member(db["story"], story_id, "likes", user_id, "Story", "Story already liked")


def unlike_story(db: Database, user_id: str, story_id: str) -> None:
    remove_member(db["story"], story_id, "likes", user_id, "Story", "Story not liked yet")


def view_story(db: Database, user_id: str, story_id: str) -> bool:
    """Record a view. Returns False when the user had already viewed the story."""
    story = get_or_404(db["story"], story_id, "Story")
    result = db["story"].update_one({"_id": story["_id"]}, {"$addToSet": {"views": user_id}})
    if not result.matched_count:
        raise NotFoundError("Story not found")
    return bool(result.modified_count)


def delete_story(db: Database, media: MediaHost, user_id: str, story_id: str) -> None:
    story = get_or_404(db["story"], story_id, "Story")
    require_author(story, user_id)

    db["story"].delete_one({"_id": story["_id"]})
    log.info(f"User {user_id} deleted story {story_id}")

    if story.get("media_url"):
        public_id = story.get("media_public_id") or public_id_from_url(story["media_url"], settings.STORY_MEDIA_FOLDER)
        media.delete_quietly(public_id, story.get("media_type"))
