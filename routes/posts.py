from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel, Field
from pymongo.database import Database

from auth import get_current_user
from database import get_db
from media import MediaHost, form_source, get_media_host
from services import posts

router = APIRouter(prefix="/api/posts", tags=["posts"])


class PostUpdate(BaseModel):
    caption: Optional[str] = Field(None, max_length=2200)
    location: Optional[str] = None


@router.post("", status_code=201)
def create_post(
    caption: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    media_url: Optional[str] = Form(None, description="Base64 data URI or remote URL"),
    media: Optional[UploadFile] = File(None),
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
    media_host: MediaHost = Depends(get_media_host),
):
    source = form_source(media, media_url)
    return posts.create_post(db, media_host, current_user["id"], caption, location, source)


# Literal paths are registered before /{post_id} so they are not captured by it.
@router.get("/feed")
def get_feed_posts(current_user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    return posts.get_feed(db, current_user["id"])


@router.get("/explore")
def get_explore_posts(db: Database = Depends(get_db)):
    return posts.get_explore(db)


@router.get("/hashtag/{tag}")
def get_posts_by_hashtag(tag: str, db: Database = Depends(get_db)):
    return posts.get_by_hashtag(db, tag)


@router.get("/user/{user_id}")
def get_user_posts(user_id: str, db: Database = Depends(get_db)):
    return posts.get_user_posts(db, user_id)


@router.get("/{post_id}")
def get_post(post_id: str, db: Database = Depends(get_db)):
    return posts.get_post(db, post_id)


@router.put("/{post_id}")
def update_post(
    post_id: str,
    payload: PostUpdate,
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    return posts.update_post(db, current_user["id"], post_id, payload.caption, payload.location)


@router.delete("/{post_id}")
def delete_post(
    post_id: str,
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
    media_host: MediaHost = Depends(get_media_host),
):
    posts.delete_post(db, media_host, current_user["id"], post_id)
    return {"message": "Post removed"}


@router.post("/{post_id}/like")
def like_post(post_id: str, current_user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    posts.like_post(db, current_user["id"], post_id)
    return {"message": "Post liked successfully"}


@router.post("/{post_id}/unlike")
def unlike_post(post_id: str, current_user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    posts.unlike_post(db, current_user["id"], post_id)
    return {"message": "Post unliked successfully"}
