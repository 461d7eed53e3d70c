"""
REST client for the Visage API, plus the small pieces of view state a UI
keeps on top of it (optimistic like toggles, story circles).
"""

from dataclasses import dataclass, field
from typing import Any, BinaryIO, Dict, List, Optional

import requests
from requests import Session

from logger import log

LIKEABLE = {"post": "posts", "story": "stories", "comment": "comments"}


class ApiError(Exception):
    """An error response from the API, carrying its status and ``message``."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class VisageClient:
    """Talks to a Visage backend at ``base_url`` (e.g. http://localhost:8000).

    register/login/update_profile store the returned token and send it as a
    bearer token on every later request.
    """

    def __init__(self, base_url: str, token: Optional[str] = None, timeout: float = 10.0, session: Optional[Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session: Session = session or requests.Session()
        self.token = None
        if token:
            self.set_token(token)

    # --- helpers ---
    def set_token(self, token: str) -> None:
        self.token = token
        self.session.headers.update({"Authorization": f"Bearer {token}"})

    def clear_token(self) -> None:
        self.token = None
        self.session.headers.pop("Authorization", None)

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}/api/{path.lstrip('/')}"
        resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        if not resp.ok:
            try:
                message = resp.json().get("message", resp.text)
            except ValueError:
                message = resp.text
            raise ApiError(resp.status_code, message)
        return resp.json()

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._request("GET", path, params=params)

    def _post(self, path: str, json_payload: Optional[Dict[str, Any]] = None, **kwargs) -> Any:
        return self._request("POST", path, json=json_payload, **kwargs)

    def _keep_token(self, data: Dict[str, Any]) -> Dict[str, Any]:
        if data.get("token"):
            self.set_token(data["token"])
        return data

    # --- users ---
    def register(self, username: str, email: str, password: str, full_name: str) -> Dict[str, Any]:
        payload = {"username": username, "email": email, "password": password, "full_name": full_name}
        return self._keep_token(self._post("/users/register", payload))

    def login(self, email: str, password: str) -> Dict[str, Any]:
        return self._keep_token(self._post("/users/login", {"email": email, "password": password}))

    def get_profile(self) -> Dict[str, Any]:
        return self._get("/users/profile")

    def update_profile(self, **fields) -> Dict[str, Any]:
        return self._keep_token(self._request("PUT", "/users/profile", json=fields))

    def get_user_by_username(self, username: str) -> Dict[str, Any]:
        return self._get(f"/users/username/{username}")

    def search_users(self, query: str) -> List[Dict[str, Any]]:
        return self._get("/users/search", params={"query": query})

    def get_suggested_users(self) -> List[Dict[str, Any]]:
        return self._get("/users/suggested")

    def follow_user(self, user_id: str) -> Dict[str, Any]:
        return self._post(f"/users/follow/{user_id}")

    def unfollow_user(self, user_id: str) -> Dict[str, Any]:
        return self._post(f"/users/unfollow/{user_id}")

    # --- posts ---
    def create_post(
        self,
        caption: Optional[str] = None,
        location: Optional[str] = None,
        media: Optional[BinaryIO] = None,
        filename: str = "upload.jpg",
        content_type: str = "image/jpeg",
        media_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create a post from an open file (multipart) or a base64 data URI / URL."""
        data = {k: v for k, v in {"caption": caption, "location": location, "media_url": media_url}.items() if v is not None}
        files = {"media": (filename, media, content_type)} if media is not None else None
        return self._request("POST", "/posts", data=data, files=files)

    def get_feed_posts(self) -> List[Dict[str, Any]]:
        return self._get("/posts/feed")

    def get_explore_posts(self) -> List[Dict[str, Any]]:
        return self._get("/posts/explore")

    def get_posts_by_hashtag(self, tag: str) -> List[Dict[str, Any]]:
        return self._get(f"/posts/hashtag/{tag.lstrip('#')}")

    def get_user_posts(self, user_id: str) -> List[Dict[str, Any]]:
        return self._get(f"/posts/user/{user_id}")

    def get_post(self, post_id: str) -> Dict[str, Any]:
        return self._get(f"/posts/{post_id}")

    def update_post(self, post_id: str, caption: Optional[str] = None, location: Optional[str] = None) -> Dict[str, Any]:
        return self._request("PUT", f"/posts/{post_id}", json={"caption": caption, "location": location})

    def delete_post(self, post_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/posts/{post_id}")

    def like_post(self, post_id: str) -> Dict[str, Any]:
        return self._post(f"/posts/{post_id}/like")

    def unlike_post(self, post_id: str) -> Dict[str, Any]:
        return self._post(f"/posts/{post_id}/unlike")

    # --- stories ---
    def create_story(
        self,
        content: str,
        story_type: str,
        media: Optional[BinaryIO] = None,
        filename: str = "upload.jpg",
        content_type: str = "image/jpeg",
        media_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        data = {"content": content, "story_type": story_type}
        if media_url:
            data["media_url"] = media_url
        files = {"media": (filename, media, content_type)} if media is not None else None
        return self._request("POST", "/stories", data=data, files=files)

    def get_feed_stories(self) -> List[Dict[str, Any]]:
        return self._get("/stories/feed")

    def get_poetry_stories(self) -> List[Dict[str, Any]]:
        return self._get("/stories/poetry")

    def get_thought_stories(self) -> List[Dict[str, Any]]:
        return self._get("/stories/thoughts")

    def get_user_stories(self, user_id: str) -> List[Dict[str, Any]]:
        return self._get(f"/stories/user/{user_id}")

    def get_story(self, story_id: str) -> Dict[str, Any]:
        return self._get(f"/stories/{story_id}")

    def delete_story(self, story_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/stories/{story_id}")

    def like_story(self, story_id: str) -> Dict[str, Any]:
        return self._post(f"/stories/{story_id}/like")

    def unlike_story(self, story_id: str) -> Dict[str, Any]:
        return self._post(f"/stories/{story_id}/unlike")

    def view_story(self, story_id: str) -> Dict[str, Any]:
        return self._post(f"/stories/{story_id}/view")

    # --- comments ---
    def create_post_comment(self, post_id: str, text: str) -> Dict[str, Any]:
        return self._post(f"/comments/post/{post_id}", {"text": text})

    def create_story_comment(self, story_id: str, text: str) -> Dict[str, Any]:
        return self._post(f"/comments/story/{story_id}", {"text": text})

    def get_post_comments(self, post_id: str) -> List[Dict[str, Any]]:
        return self._get(f"/comments/post/{post_id}")

    def get_story_comments(self, story_id: str) -> List[Dict[str, Any]]:
        return self._get(f"/comments/story/{story_id}")

    def delete_comment(self, comment_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/comments/{comment_id}")

    def like_comment(self, comment_id: str) -> Dict[str, Any]:
        return self._post(f"/comments/{comment_id}/like")

    def unlike_comment(self, comment_id: str) -> Dict[str, Any]:
        return self._post(f"/comments/{comment_id}/unlike")

    def reply_to_comment(self, comment_id: str, text: str) -> Dict[str, Any]:
        return self._post(f"/comments/{comment_id}/reply", {"text": text})

    # --- generic like toggle ---
    def set_liked(self, kind: str, item_id: str, liked: bool) -> Dict[str, Any]:
        """POST like or unlike on a post, story or comment."""
        if kind not in LIKEABLE:
            raise ValueError(f"cannot like a {kind}")
        action = "like" if liked else "unlike"
        return self._post(f"/{LIKEABLE[kind]}/{item_id}/{action}")


# === view state ===

@dataclass
class LikeState:
    """What a card shows: whether the viewer likes the item and how many likes it has."""
    liked: bool
    count: int

    @classmethod
    def from_item(cls, item: Dict[str, Any], viewer_id: Optional[str]) -> "LikeState":
        likes = item.get("likes", [])
        return cls(liked=viewer_id in likes, count=len(likes))


def toggle_like(client: VisageClient, kind: str, item_id: str, state: LikeState) -> LikeState:
    """Flip ``state`` right away, then confirm with the server.

    On an API error the state is put back the way it was and the error is
    re-raised for the caller to show.
    """
    previous = LikeState(state.liked, state.count)
    state.liked = not previous.liked
    state.count = previous.count + (1 if state.liked else -1)
    try:
        client.set_liked(kind, item_id, state.liked)
    except (ApiError, requests.RequestException) as e:
        log.warning(f"Could not {'like' if state.liked else 'unlike'} {kind} {item_id}: {e}")
        state.liked, state.count = previous.liked, previous.count
        raise
    return state


@dataclass
class StoryGroup:
    """One circle in the story bar: an author and their stories in feed order."""
    author: Dict[str, Any]
    stories: List[Dict[str, Any]] = field(default_factory=list)
    viewed: bool = False


def group_stories_by_author(stories: List[Dict[str, Any]], viewer_id: Optional[str]) -> List[StoryGroup]:
    """Group feed stories by author in first-seen order.

    A group is ``viewed`` once the viewer has opened every story in it.
    """
    groups: Dict[str, StoryGroup] = {}
    for story in stories:
        author = story.get("author") or {"id": story.get("author_id")}
        key = author.get("id") or story.get("author_id")
        if key not in groups:
            groups[key] = StoryGroup(author=author)
        groups[key].stories.append(story)
    for group in groups.values():
        group.viewed = all(viewer_id in s.get("views", []) for s in group.stories)
    return list(groups.values())
