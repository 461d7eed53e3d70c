"""HTTP routers, one per resource, all mounted under /api."""

from routes.comments import router as comments_router
from routes.posts import router as posts_router
from routes.stories import router as stories_router
from routes.users import router as users_router

ROUTERS = [users_router, posts_router, stories_router, comments_router]
