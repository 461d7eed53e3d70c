"""
Configuration Settings for the Visage backend

Every value comes from the environment (optionally a .env file next to this
module) with a development default. Modules read these constants at call
time through ``settings.NAME`` so tests can patch them.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

APP_ROOT = Path(__file__).resolve().parent

load_dotenv(dotenv_path=os.path.join(APP_ROOT, '.env'))


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str) -> list:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


# =============================================================================
# Database Settings
# =============================================================================

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

# =============================================================================
# Authentication Settings
# =============================================================================

JWT_SECRET = os.getenv("JWT_SECRET", "visage-dev-secret-change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
TOKEN_TTL_DAYS = int(os.getenv("TOKEN_TTL_DAYS", "30"))

# =============================================================================
# Media Host (Cloudinary) Settings
# =============================================================================

CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME")
CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY")
CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET")

MEDIA_TIMEOUT = int(os.getenv("MEDIA_TIMEOUT", "30"))          # Seconds per upload/destroy request
MAX_UPLOAD_BYTES = 10 * 1024 * 1024                              # 10MB, same as the upload form limit
ALLOWED_MEDIA_EXTENSIONS = ["jpeg", "jpg", "png", "gif", "mp4", "mov"]

POST_MEDIA_FOLDER = "visage_posts"
STORY_MEDIA_FOLDER = "visage_stories"
PROFILE_PICTURE_FOLDER = "visage_profile_pictures"

# =============================================================================
# Query Limits
# =============================================================================

FEED_LIMIT = 50                # Posts returned by the home feed
EXPLORE_LIMIT = 30             # Posts returned by explore ranking
STORY_TYPE_LIMIT = 30          # Poetry / thought board size
SUGGESTED_LIMIT = 5            # Suggested users
STORY_TTL_HOURS = 24           # Lifetime of an ephemeral story

# =============================================================================
# HTTP Settings
# =============================================================================

PORT = int(os.getenv("PORT", "8000"))
CORS_ORIGINS = _env_list("CORS_ORIGINS", "*")
EXPOSE_ERROR_DETAILS = _env_bool("EXPOSE_ERROR_DETAILS")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def validate_settings() -> list:
    """
    Check that the settings needed to serve traffic are present.

    Returns:
        list: Human readable problems; empty when everything is set.
    """
    problems = []
    if not DATABASE_URL or not DATABASE_NAME:
        problems.append("DATABASE_URL and DATABASE_NAME must both be set")
    if JWT_SECRET == "visage-dev-secret-change-me":
        problems.append("JWT_SECRET is using the development default")
    if not all([CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY, CLOUDINARY_API_SECRET]):
        problems.append("Cloudinary credentials are not set; media uploads will fail")
    return problems
