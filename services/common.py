"""
Helpers shared by the domain services: hashtag extraction, the like/unlike
set toggles, author checks, author population and two-document writes.
"""

import re
from typing import Callable, Iterable, List, Optional

from bson import ObjectId
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from database import now_utc, serialize_doc, to_object_id
from exceptions import AuthorizationError, ConflictError, ConsistencyError, NotFoundError, VisageError
from logger import log

HASHTAG_RE = re.compile(r"#[A-Za-z0-9_]+")

AUTHOR_FIELDS = {"username": 1, "profile_picture": 1}


def extract_hashtags(text: Optional[str]) -> List[str]:
    """Lowercased ``#tags`` in order of appearance, repeats kept."""
    if not text:
        return []
    return [tag.lower() for tag in HASHTAG_RE.findall(text)]


def add_member(collection: Collection, doc_id: str, field: str, user_id: str, label: str, conflict: str) -> None:
    """Add ``user_id`` to a set-like list field in one conditional update.

    The ``$ne`` guard makes the check and the write a single atomic step, so
    two identical concurrent requests cannot both append.
    """
    oid = to_object_id(doc_id, label)
    result = collection.update_one(
        {"_id": oid, field: {"$ne": user_id}},
        {"$push": {field: user_id}, "$set": {"updated_at": now_utc()}},
    )
    if result.matched_count:
        return
    if collection.find_one({"_id": oid}, {"_id": 1}) is None:
        raise NotFoundError(f"{label} not found")
    raise ConflictError(conflict)


def remove_member(collection: Collection, doc_id: str, field: str, user_id: str, label: str, conflict: str) -> None:
    """Remove ``user_id`` from a set-like list field; the filter only matches when it is present."""
    oid = to_object_id(doc_id, label)
    result = collection.update_one(
        {"_id": oid, field: user_id},
        {"$pull": {field: user_id}, "$set": {"updated_at": now_utc()}},
    )
    if result.matched_count:
        return
    if collection.find_one({"_id": oid}, {"_id": 1}) is None:
        raise NotFoundError(f"{label} not found")
    raise ConflictError(conflict)


def get_or_404(collection: Collection, doc_id: str, label: str) -> dict:
    doc = collection.find_one({"_id": to_object_id(doc_id, label)})
    if not doc:
        raise NotFoundError(f"{label} not found")
    return doc


def require_author(doc: dict, user_id: str) -> None:
    if doc.get("author_id") != user_id:
        raise AuthorizationError("User not authorized")


def finish_paired_write(
    write: Callable,
    undo: Callable,
    description: str,
    error: Optional[VisageError] = None,
):
    """Run the second write of a two-document update; undo the first if it does not land.

    ``write`` must return a pymongo UpdateResult/DeleteResult. A write that
    raises, or matches nothing, triggers ``undo`` and then raises ``error``
    (a ConsistencyError by default).
    """
    failure = error or ConsistencyError(f"Could not complete {description}")
    try:
        result = write()
    except PyMongoError as e:
        log.error(f"Second write of {description} failed, rolling back: {e}")
        _run_undo(undo, description)
        raise failure
    matched = getattr(result, "matched_count", getattr(result, "deleted_count", 1))
    if not matched:
        log.error(f"Second write of {description} matched nothing, rolling back")
        _run_undo(undo, description)
        raise failure
    return result


def _run_undo(undo: Callable, description: str) -> None:
    try:
        undo()
    except PyMongoError as e:
        # Both halves failed; nothing else can fix it from here.
        log.critical(f"Rollback of {description} failed, documents are out of sync: {e}")


def populate_authors(db: Database, docs: Iterable[dict], field: str = "author_id", target: str = "author") -> List[dict]:
    """Serialize documents and attach ``{id, username, profile_picture}`` for their author.

    Authors are fetched with one query for the whole batch.
    """
    docs = list(docs)
    ids = {d.get(field) for d in docs if d.get(field)}
    oids = [ObjectId(i) for i in ids if ObjectId.is_valid(i)]
    authors = {}
    if oids:
        for user in db["user"].find({"_id": {"$in": oids}}, AUTHOR_FIELDS):
            authors[str(user["_id"])] = serialize_doc(user)

    out = []
    for doc in docs:
        item = serialize_doc(doc)
        item[target] = authors.get(doc.get(field))
        out.append(item)
    return out


def populate_one(db: Database, doc: dict) -> dict:
    return populate_authors(db, [doc])[0]


def populate_comments(db: Database, item: dict) -> dict:
    """Replace a serialized parent's comment ids with the comments, authors attached."""
    ids = [ObjectId(c) for c in item.get("comments", []) if ObjectId.is_valid(c)]
    if not ids:
        item["comments"] = []
        return item
    by_id = {str(c["_id"]): c for c in db["comment"].find({"_id": {"$in": ids}})}
    ordered = [by_id[str(i)] for i in ids if str(i) in by_id]
    item["comments"] = populate_authors(db, ordered)
    return item


def unique_by_id(items: Iterable[dict]) -> List[dict]:
    """Drop repeated documents, keeping the first occurrence of each id."""
    seen = set()
    out = []
    for item in items:
        key = str(item.get("_id", item.get("id")))
        if key in seen:
            continue
        seen.add(key)
        out.append(item)
    return out
