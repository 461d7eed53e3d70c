"""
User accounts, profiles and the follow graph.
"""

import re
from typing import List, Optional

from bson import ObjectId
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

import settings
from auth import create_token, hash_password, verify_password
from database import create_document, now_utc, serialize_doc, to_object_id
from exceptions import AuthError, ConflictError, NotFoundError, ValidationError
from logger import log
from media import MediaHost
from schemas import User
from services.common import finish_paired_write, get_or_404

PROFILE_FIELDS = ("username", "email", "full_name", "profile_picture")


def auth_payload(user: dict, extra: tuple = ()) -> dict:
    """Profile fields plus a fresh token, the shape returned by register/login/profile update."""
    payload = {"id": str(user["_id"])}
    for field in PROFILE_FIELDS + extra:
        payload[field] = user.get(field)
    payload["token"] = create_token(payload["id"])
    return payload


def register(db: Database, username: str, email: str, password: str, full_name: str) -> dict:
    user = User(username=username, email=email, password=hash_password(password), full_name=full_name)

    if db["user"].find_one({"$or": [{"email": user.email}, {"username": user.username}]}):
        raise ConflictError("User already exists")

    try:
        user_id = create_document(db, "user", user)
    except DuplicateKeyError:
        raise ConflictError("User already exists")

    log.info(f"Registered user {user.username} ({user_id})")
    return auth_payload(db["user"].find_one({"_id": ObjectId(user_id)}))


def login(db: Database, email: str, password: str) -> dict:
    user = db["user"].find_one({"email": (email or "").strip().lower()})
    if not user or not verify_password(password, user.get("password", "")):
        raise AuthError("Invalid email or password")
    log.debug(f"User {user['username']} logged in")
    return auth_payload(user)


def get_profile(db: Database, user_id: str) -> dict:
    return serialize_doc(get_or_404(db["user"], user_id, "User"))


def get_by_username(db: Database, username: str) -> dict:
    user = db["user"].find_one({"username": username})
    if not user:
        raise NotFoundError("User not found")
    return serialize_doc(user)


def update_profile(db: Database, media: MediaHost, user_id: str, fields: dict) -> dict:
    """Apply a partial profile update. Only keys present in ``fields`` change."""
    user = get_or_404(db["user"], user_id, "User")
    updates = {}

    picture = fields.get("profile_picture")
    if picture and picture != user.get("profile_picture"):
        uploaded = media.upload(picture, folder=settings.PROFILE_PICTURE_FOLDER)
        updates["profile_picture"] = uploaded.url

    for field in ("username", "full_name", "email"):
        value = fields.get(field)
        if value is None:
            continue
        value = value.strip()
        if not value:
            raise ValidationError(f"{field} cannot be blank")
        updates[field] = value.lower() if field == "email" else value

    for field in ("bio", "website", "is_private"):
        if fields.get(field) is not None:
            updates[field] = fields[field]

    if fields.get("password"):
        updates["password"] = hash_password(fields["password"])

    taken = []
    if updates.get("username") and updates["username"] != user["username"]:
        taken.append({"username": updates["username"]})
    if updates.get("email") and updates["email"] != user["email"]:
        taken.append({"email": updates["email"]})
    if taken and db["user"].find_one({"$or": taken, "_id": {"$ne": user["_id"]}}):
        raise ConflictError("Username or email already in use")

    if updates:
        updates["updated_at"] = now_utc()
        try:
            db["user"].update_one({"_id": user["_id"]}, {"$set": updates})
        except DuplicateKeyError:
            raise ConflictError("Username or email already in use")
        log.info(f"Updated profile of {user_id}: {sorted(k for k in updates if k != 'password')}")

    updated = db["user"].find_one({"_id": user["_id"]})
    return auth_payload(updated, extra=("bio", "website", "is_private"))


def follow(db: Database, user_id: str, target_id: str) -> None:
    if user_id == target_id:
        raise ValidationError("You cannot follow yourself")
    target = get_or_404(db["user"], target_id, "User")
    me = to_object_id(user_id, "User")

    # Conditional on the id being absent, so a repeated request cannot double-append.
    first = db["user"].update_one(
        {"_id": me, "following": {"$ne": target_id}},
        {"$push": {"following": target_id}, "$set": {"updated_at": now_utc()}},
    )
    if not first.matched_count:
        raise ConflictError("You are already following this user")

    finish_paired_write(
        lambda: db["user"].update_one(
            {"_id": target["_id"]},
            {"$addToSet": {"followers": user_id}, "$set": {"updated_at": now_utc()}},
        ),
        lambda: db["user"].update_one({"_id": me}, {"$pull": {"following": target_id}}),
        f"follow {user_id} -> {target_id}",
    )
    log.info(f"User {user_id} followed {target_id}")


def unfollow(db: Database, user_id: str, target_id: str) -> None:
    if user_id == target_id:
        raise ValidationError("You cannot unfollow yourself")
    target = get_or_404(db["user"], target_id, "User")
    me = to_object_id(user_id, "User")

    first = db["user"].update_one(
        {"_id": me, "following": target_id},
        {"$pull": {"following": target_id}, "$set": {"updated_at": now_utc()}},
    )
    if not first.matched_count:
        raise ConflictError("You are not following this user")

    finish_paired_write(
        lambda: db["user"].update_one(
            {"_id": target["_id"]},
            {"$pull": {"followers": user_id}, "$set": {"updated_at": now_utc()}},
        ),
        lambda: db["user"].update_one({"_id": me}, {"$push": {"following": target_id}}),
        f"unfollow {user_id} -> {target_id}",
    )
    log.info(f"User {user_id} unfollowed {target_id}")


def search_users(db: Database, query: Optional[str]) -> List[dict]:
    if not query or not query.strip():
        raise ValidationError("Query parameter is required")
    pattern = {"$regex": re.escape(query.strip()), "$options": "i"}
    users = db["user"].find({"$or": [{"username": pattern}, {"full_name": pattern}]})
    return [serialize_doc(u) for u in users]


def suggested_users(db: Database, user_id: str) -> List[dict]:
    """Up to SUGGESTED_LIMIT users the actor does not follow, in natural store order."""
    me = get_or_404(db["user"], user_id, "User")
    excluded = [me["_id"]] + [ObjectId(i) for i in me.get("following", []) if ObjectId.is_valid(i)]
    users = db["user"].find({"_id": {"$nin": excluded}}).limit(settings.SUGGESTED_LIMIT)
    return [serialize_doc(u) for u in users]
