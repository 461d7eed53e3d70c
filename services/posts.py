"""
Posts: creation with media upload, the home feed, hashtag pages, explore
ranking and likes.
"""

from typing import List, Optional

from bson import ObjectId
from pymongo.database import Database
from pymongo.errors import PyMongoError

import settings
from database import NEWEST_FIRST, create_document, get_documents, now_utc
from exceptions import ValidationError
from logger import log
from media import MediaHost, MediaSource, public_id_from_url
from schemas import Post
from services.common import (
    add_member,
    extract_hashtags,
    get_or_404,
    populate_authors,
    populate_comments,
    populate_one,
    remove_member,
    require_author,
)

# likes + 2 * comments
EXPLORE_PIPELINE = [
    {
        "$addFields": {
            "likes_count": {"$size": "$likes"},
            "comments_count": {"$size": "$comments"},
            "engagement_score": {
                "$add": [
                    {"$size": "$likes"},
                    {"$multiply": [{"$size": "$comments"}, 2]},
                ]
            },
        }
    },
    {"$sort": {"engagement_score": -1}},
]


def create_post(
    db: Database,
    media: MediaHost,
    user_id: str,
    caption: Optional[str] = None,
    location: Optional[str] = None,
    source: Optional[MediaSource] = None,
) -> dict:
    if not source:
        raise ValidationError("Please upload an image or video")

    caption = caption.strip() if caption else caption
    uploaded = media.upload(source, folder=settings.POST_MEDIA_FOLDER)

    post = Post(
        author_id=user_id,
        caption=caption,
        media_url=uploaded.url,
        media_type=uploaded.media_type,
        media_public_id=uploaded.public_id,
        location=location,
        hashtags=extract_hashtags(caption),
    )
    try:
        post_id = create_document(db, "post", post)
    except PyMongoError:
        if uploaded.public_id:
            media.delete_quietly(uploaded.public_id, uploaded.media_type)
        raise

    log.info(f"User {user_id} created post {post_id}")
    return populate_one(db, db["post"].find_one({"_id": ObjectId(post_id)}))


def get_post(db: Database, post_id: str) -> dict:
    post = get_or_404(db["post"], post_id, "Post")
    return populate_comments(db, populate_one(db, post))


def get_user_posts(db: Database, author_id: str) -> List[dict]:
    posts = get_documents(db, "post", {"author_id": author_id}, sort=NEWEST_FIRST)
    return populate_authors(db, posts)


def get_feed(db: Database, user_id: str) -> List[dict]:
    """Own posts and posts of followed users, newest first."""
    me = get_or_404(db["user"], user_id, "User")
    authors = list(me.get("following", [])) + [user_id]
    posts = get_documents(
        db, "post", {"author_id": {"$in": authors}}, sort=NEWEST_FIRST, limit=settings.FEED_LIMIT
    )
    return populate_authors(db, posts)


def like_post(db: Database, user_id: str, post_id: str) -> None:
    add_member(db["post"], post_id, "likes", user_id, "Post", "Post already liked")
    log.debug(f"User {user_id} liked post {post_id}")


def unlike_post(db: Database, user_id: str, post_id: str) -> None:
    remove_member(db["post"], post_id, "likes", user_id, "Post", "Post not liked yet")
    log.debug(f"User {user_id} unliked post {post_id}")


def update_post(
    db: Database,
    user_id: str,
    post_id: str,
    caption: Optional[str] = None,
    location: Optional[str] = None,
) -> dict:
    post = get_or_404(db["post"], post_id, "Post")
    require_author(post, user_id)

    new_caption = caption.strip() if caption else post.get("caption")
    updates = {
        "caption": new_caption,
        "hashtags": extract_hashtags(new_caption),
        "updated_at": now_utc(),
    }
    if location is not None:
        updates["location"] = location

    db["post"].update_one({"_id": post["_id"]}, {"$set": updates})
    log.info(f"User {user_id} updated post {post_id}")
    return populate_one(db, db["post"].find_one({"_id": post["_id"]}))


def delete_post(db: Database, media: MediaHost, user_id: str, post_id: str) -> None:
    """Remove the post, then try to remove its media; a media failure is only logged."""
    post = get_or_404(db["post"], post_id, "Post")
    require_author(post, user_id)

    db["post"].delete_one({"_id": post["_id"]})
    log.info(f"User {user_id} deleted post {post_id}")

    public_id = post.get("media_public_id") or public_id_from_url(post["media_url"], settings.POST_MEDIA_FOLDER)
    media.delete_quietly(public_id, post.get("media_type"))


def get_by_hashtag(db: Database, tag: str) -> List[dict]:
    hashtag = "#" + tag.lstrip("#").lower()
    posts = get_documents(db, "post", {"hashtags": hashtag}, sort=NEWEST_FIRST)
    return populate_authors(db, posts)


def get_explore(db: Database) -> List[dict]:
    """The EXPLORE_LIMIT posts with the highest engagement score."""
    pipeline = EXPLORE_PIPELINE + [{"$limit": settings.EXPLORE_LIMIT}]
    posts = db["post"].aggregate(pipeline)
    return populate_authors(db, posts)
