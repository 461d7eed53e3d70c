from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from pymongo.database import Database

from auth import get_current_user
from database import get_db
from services import comments

router = APIRouter(prefix="/api/comments", tags=["comments"])


class CommentText(BaseModel):
    text: str = Field(..., max_length=1000)


@router.post("/post/{post_id}", status_code=201)
def comment_on_post(
    post_id: str,
    payload: CommentText,
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    return comments.create_comment(db, current_user["id"], "post", post_id, payload.text)


@router.post("/story/{story_id}", status_code=201)
def comment_on_story(
    story_id: str,
    payload: CommentText,
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    return comments.create_comment(db, current_user["id"], "story", story_id, payload.text)


@router.get("/post/{post_id}")
def get_post_comments(post_id: str, db: Database = Depends(get_db)):
    return comments.get_comments(db, "post", post_id)


@router.get("/story/{story_id}")
def get_story_comments(story_id: str, db: Database = Depends(get_db)):
    return comments.get_comments(db, "story", story_id)


@router.delete("/{comment_id}")
def delete_comment(comment_id: str, current_user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    comments.delete_comment(db, current_user["id"], comment_id)
    return {"message": "Comment removed"}


@router.post("/{comment_id}/like")
def like_comment(comment_id: str, current_user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    comments.like_comment(db, current_user["id"], comment_id)
    return {"message": "Comment liked successfully"}


@router.post("/{comment_id}/unlike")
def unlike_comment(comment_id: str, current_user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    comments.unlike_comment(db, current_user["id"], comment_id)
    return {"message": "Comment unliked successfully"}


@router.post("/{comment_id}/reply", status_code=201)
def reply_to_comment(
    comment_id: str,
    payload: CommentText,
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    return comments.reply_to_comment(db, current_user["id"], comment_id, payload.text)
