from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pymongo.database import Database

from auth import get_current_user
from database import get_db
from media import MediaHost, form_source, get_media_host
from services import stories

router = APIRouter(prefix="/api/stories", tags=["stories"])


@router.post("", status_code=201)
def create_story(
    content: Optional[str] = Form(None),
    story_type: Optional[str] = Form(None),
    media_url: Optional[str] = Form(None),
    media: Optional[UploadFile] = File(None),
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
    media_host: MediaHost = Depends(get_media_host),
):
    source = form_source(media, media_url)
    return stories.create_story(db, media_host, current_user["id"], content, story_type, source)


@router.get("/feed")
def get_feed_stories(current_user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    return stories.get_feed(db, current_user["id"])


@router.get("/poetry")
def get_poetry_stories(db: Database = Depends(get_db)):
    return stories.get_by_type(db, "poetry")


@router.get("/thoughts")
def get_thought_stories(db: Database = Depends(get_db)):
    return stories.get_by_type(db, "thought")


@router.get("/user/{user_id}")
def get_user_stories(user_id: str, db: Database = Depends(get_db)):
    return stories.get_user_stories(db, user_id)


@router.get("/{story_id}")
def get_story(story_id: str, db: Database = Depends(get_db)):
    return stories.get_story(db, story_id)


@router.delete("/{story_id}")
def delete_story(
    story_id: str,
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
    media_host: MediaHost = Depends(get_media_host),
):
    stories.delete_story(db, media_host, current_user["id"], story_id)
    return {"message": "Story removed"}


@router.post("/{story_id}/like")
def like_story(story_id: str, current_user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    stories.like_story(db, current_user["id"], story_id)
    return {"message": "Story liked successfully"}


@router.post("/{story_id}/unlike")
def unlike_story(story_id: str, current_user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    stories.unlike_story(db, current_user["id"], story_id)
    return {"message": "Story unliked successfully"}


@router.post("/{story_id}/view")
def view_story(story_id: str, current_user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    if stories.view_story(db, current_user["id"], story_id):
        return {"message": "Story viewed"}
    return {"message": "Story already viewed"}
