from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from pymongo.database import Database

from auth import get_current_user
from database import get_db
from media import MediaHost, get_media_host
from services import users

router = APIRouter(prefix="/api/users", tags=["users"])


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=30)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=1, max_length=60)


class LoginRequest(BaseModel):
    email: str
    password: str


class ProfileUpdate(BaseModel):
    username: Optional[str] = Field(None, max_length=30)
    full_name: Optional[str] = Field(None, max_length=60)
    email: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=150)
    website: Optional[str] = None
    is_private: Optional[bool] = None
    password: Optional[str] = Field(None, min_length=6)
    profile_picture: Optional[str] = Field(None, description="Base64 data URI or image URL")


@router.post("/register", status_code=201)
def register_user(payload: RegisterRequest, db: Database = Depends(get_db)):
    return users.register(db, payload.username, payload.email, payload.password, payload.full_name)


@router.post("/login")
def login_user(payload: LoginRequest, db: Database = Depends(get_db)):
    return users.login(db, payload.email, payload.password)


@router.get("/profile")
def get_user_profile(current_user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    return users.get_profile(db, current_user["id"])


@router.put("/profile")
def update_user_profile(
    payload: ProfileUpdate,
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
    media: MediaHost = Depends(get_media_host),
):
    return users.update_profile(db, media, current_user["id"], payload.model_dump(exclude_unset=True))


@router.post("/follow/{user_id}")
def follow_user(user_id: str, current_user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    users.follow(db, current_user["id"], user_id)
    return {"message": "User followed successfully"}


@router.post("/unfollow/{user_id}")
def unfollow_user(user_id: str, current_user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    users.unfollow(db, current_user["id"], user_id)
    return {"message": "User unfollowed successfully"}


@router.get("/username/{username}")
def get_user_by_username(username: str, db: Database = Depends(get_db)):
    return users.get_by_username(db, username)


@router.get("/search")
def search_users(query: Optional[str] = None, db: Database = Depends(get_db)):
    return users.search_users(db, query)


@router.get("/suggested")
def get_suggested_users(current_user: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    return users.suggested_users(db, current_user["id"])
