"""
MongoDB access for the Visage backend.

``db`` is the shared database handle, created at import time when
DATABASE_URL and DATABASE_NAME are set. Request handlers receive it through
the ``get_db`` dependency so tests can swap in another database.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

import settings
from exceptions import DatabaseUnavailableError, NotFoundError
from logger import log

NEWEST_FIRST = [("created_at", DESCENDING)]

_client: Optional[MongoClient] = None
db: Optional[Database] = None

if settings.DATABASE_URL and settings.DATABASE_NAME:
    _client = MongoClient(settings.DATABASE_URL, tz_aware=True)
    db = _client[settings.DATABASE_NAME]


def get_db() -> Database:
    if db is None:
        raise DatabaseUnavailableError("Database not configured")
    return db


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(value: str, label: str = "Document") -> ObjectId:
    """Parse a path id; a malformed id is reported the same way as a missing one."""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise NotFoundError(f"{label} not found")


def create_document(database: Database, collection_name: str, data: Union[BaseModel, dict]) -> str:
    """Insert a document, stamping created_at/updated_at, and return its id."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)
    data_dict.pop("id", None)

    now = now_utc()
    if not data_dict.get("created_at"):
        data_dict["created_at"] = now
    data_dict["updated_at"] = data_dict["created_at"]

    result = database[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(
    database: Database,
    collection_name: str,
    filter_dict: Optional[dict] = None,
    sort: Optional[list] = None,
    limit: Optional[int] = None,
) -> List[dict]:
    cursor = database[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def _serialize_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, dict):
        return serialize_doc(value)
    if isinstance(value, list):
        return [_serialize_value(v) for v in value]
    return value


def serialize_doc(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Turn a Mongo document into JSON-ready data: ``_id`` becomes ``id`` and passwords are dropped."""
    d = {}
    for key, value in doc.items():
        if key == "password":
            continue
        if key == "_id":
            d["id"] = str(value)
            continue
        d[key] = _serialize_value(value)
    return d


def ensure_indexes(database: Database) -> None:
    database["user"].create_index([("username", ASCENDING)], unique=True)
    database["user"].create_index([("email", ASCENDING)], unique=True)
    database["post"].create_index([("author_id", ASCENDING), ("created_at", DESCENDING)])
    database["post"].create_index([("hashtags", ASCENDING)])
    database["story"].create_index([("author_id", ASCENDING), ("created_at", DESCENDING)])
    database["story"].create_index([("story_type", ASCENDING), ("created_at", DESCENDING)])
    database["comment"].create_index([("post_id", ASCENDING), ("created_at", DESCENDING)])
    database["comment"].create_index([("story_id", ASCENDING), ("created_at", DESCENDING)])
    database["notification"].create_index([("recipient_id", ASCENDING), ("read", ASCENDING)])
    log.debug("Database indexes ensured")
