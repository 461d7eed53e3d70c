"""
Comments on posts and stories, their likes and one level of replies.
"""

from typing import List

from bson import ObjectId
from pymongo.database import Database

from database import NEWEST_FIRST, create_document, get_documents, now_utc
from exceptions import ValidationError
from logger import log
from schemas import Comment, Reply
from services.common import (
    add_member,
    finish_paired_write,
    get_or_404,
    populate_authors,
    populate_one,
    remove_member,
    require_author,
)

PARENT_LABELS = {"post": "Post", "story": "Story"}


def _require_text(text: str) -> str:
    if not text or not text.strip():
        raise ValidationError("Comment text is required")
    return text.strip()


def _with_replies(db: Database, comment: dict) -> dict:
    item = populate_one(db, comment)
    item["replies"] = populate_authors(db, comment.get("replies", []))
    return item


def create_comment(db: Database, user_id: str, parent_kind: str, parent_id: str, text: str) -> dict:
    """Insert the comment, then append its id to the parent's ``comments`` list.

    If the append does not land the comment is deleted again, so a comment
    never exists without its parent pointing at it.
    """
    label = PARENT_LABELS.get(parent_kind)
    if label is None:
        raise ValidationError("Post ID or Story ID is required")
    text = _require_text(text)
    parent = get_or_404(db[parent_kind], parent_id, label)

    comment = Comment(author_id=user_id, text=text, **{f"{parent_kind}_id": parent_id})
    comment_id = create_document(db, "comment", comment)

    finish_paired_write(
        lambda: db[parent_kind].update_one(
            {"_id": parent["_id"]},
            {"$push": {"comments": comment_id}, "$set": {"updated_at": now_utc()}},
        ),
        lambda: db["comment"].delete_one({"_id": ObjectId(comment_id)}),
        f"comment {comment_id} on {parent_kind} {parent_id}",
    )

    log.info(f"User {user_id} commented on {parent_kind} {parent_id}")
    return populate_one(db, db["comment"].find_one({"_id": ObjectId(comment_id)}))


def get_comments(db: Database, parent_kind: str, parent_id: str) -> List[dict]:
    comments = get_documents(db, "comment", {f"{parent_kind}_id": parent_id}, sort=NEWEST_FIRST)
    return populate_authors(db, comments)


def delete_comment(db: Database, user_id: str, comment_id: str) -> None:
    comment = get_or_404(db["comment"], comment_id, "Comment")
    require_author(comment, user_id)

    parent_kind = "post" if comment.get("post_id") else "story"
    parent_oid = ObjectId(comment[f"{parent_kind}_id"])
    parent = db[parent_kind].find_one({"_id": parent_oid}, {"comments": 1}) or {}
    siblings = parent.get("comments", [])
    position = siblings.index(comment_id) if comment_id in siblings else len(siblings)
    db[parent_kind].update_one({"_id": parent_oid}, {"$pull": {"comments": comment_id}})

    # The undo puts the id back where it was so the list keeps insertion order.
    finish_paired_write(
        lambda: db["comment"].delete_one({"_id": comment["_id"]}),
        lambda: db[parent_kind].update_one(
            {"_id": parent_oid},
            {"$push": {"comments": {"$each": [comment_id], "$position": position}}},
        ),
        f"delete comment {comment_id}",
    )
    log.info(f"User {user_id} deleted comment {comment_id}")


def like_comment(db: Database, user_id: str, comment_id: str) -> None:
    add_member(db["comment"], comment_id, "likes", user_id, "Comment", "Comment already liked")


def unlike_comment(db: Database, user_id: str, comment_id: str) -> None:
    remove_member(db["comment"], comment_id, "likes", user_id, "Comment", "Comment not liked yet")


def reply_to_comment(db: Database, user_id: str, comment_id: str, text: str) -> dict:
    comment = get_or_404(db["comment"], comment_id, "Comment")
    reply = Reply(author_id=user_id, text=_require_text(text))

    db["comment"].update_one(
        {"_id": comment["_id"]},
        {"$push": {"replies": reply.model_dump()}, "$set": {"updated_at": now_utc()}},
    )
    log.info(f"User {user_id} replied to comment {comment_id}")
    return _with_replies(db, db["comment"].find_one({"_id": comment["_id"]}))
