"""
Tests for comments on posts and stories, comment likes and replies.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from bson import ObjectId
from mongomock.collection import Collection
from pymongo.errors import PyMongoError

from exceptions import ConsistencyError
from services import comments as comment_service


class TestCreateComment:
    """Tests for commenting and the parent's comment list."""

    def test_comment_on_post_is_linked(self, client, db, make_user, make_post):
        alice = make_user("alice")
        bob = make_user("bob")
        post = make_post(alice)

        resp = client.post(f"/api/comments/post/{post['id']}", json={"text": "  great shot "}, headers=bob["headers"])

        assert resp.status_code == 201
        comment = resp.json()
        assert comment["text"] == "great shot"
        assert comment["post_id"] == post["id"]
        assert comment["story_id"] is None
        assert comment["author"]["username"] == "bob"
        assert db["post"].find_one({"_id": ObjectId(post["id"])})["comments"] == [comment["id"]]

    def test_comment_on_story_is_linked(self, client, db, make_user, make_story):
        alice = make_user("alice")
        story = make_story(alice)

        resp = client.post(f"/api/comments/story/{story['id']}", json={"text": "so true"}, headers=alice["headers"])

        assert resp.status_code == 201
        assert resp.json()["story_id"] == story["id"]
        assert db["story"].find_one({"_id": ObjectId(story["id"])})["comments"] == [resp.json()["id"]]

    def test_comment_on_missing_parent(self, client, db, make_user):
        alice = make_user("alice")

        resp = client.post(f"/api/comments/post/{ObjectId()}", json={"text": "hello?"}, headers=alice["headers"])

        assert resp.status_code == 404
        assert resp.json() == {"message": "Post not found"}
        assert db["comment"].count_documents({}) == 0

    def test_blank_comment_is_rejected(self, client, make_user, make_post):
        alice = make_user("alice")
        post = make_post(alice)

        resp = client.post(f"/api/comments/post/{post['id']}", json={"text": "   "}, headers=alice["headers"])

        assert resp.status_code == 400
        assert resp.json() == {"message": "Comment text is required"}

    def test_comment_requires_auth(self, client, make_user, make_post):
        post = make_post(make_user("alice"))

        resp = client.post(f"/api/comments/post/{post['id']}", json={"text": "hi"})

        assert resp.status_code == 401

    def test_comment_is_removed_when_parent_link_fails(self, db, make_user, make_post):
        alice = make_user("alice")
        post = make_post(alice)
        original_update_one = Collection.update_one

        def flaky_update_one(self, filter_, update, *args, **kwargs):
            if "comments" in update.get("$push", {}):
                raise PyMongoError("write concern timeout")
            return original_update_one(self, filter_, update, *args, **kwargs)

        with patch.object(Collection, "update_one", flaky_update_one):
            with pytest.raises(ConsistencyError):
                comment_service.create_comment(db, alice["id"], "post", post["id"], "lost")

        assert db["comment"].count_documents({}) == 0
        assert db["post"].find_one({"_id": ObjectId(post["id"])})["comments"] == []


class TestListComments:
    """Tests for listing a parent's comments."""

    def test_newest_first_with_authors(self, client, db, make_user, make_post):
        alice = make_user("alice")
        post = make_post(alice)
        now = datetime.now(timezone.utc)
        for i, text in enumerate(["first", "second"]):
            db["comment"].insert_one({
                "author_id": alice["id"],
                "post_id": post["id"],
                "story_id": None,
                "text": text,
                "likes": [],
                "replies": [],
                "created_at": now + timedelta(minutes=i),
            })

        resp = client.get(f"/api/comments/post/{post['id']}")

        assert resp.status_code == 200
        assert [c["text"] for c in resp.json()] == ["second", "first"]
        assert resp.json()[0]["author"]["username"] == "alice"

    def test_story_comments_are_separate(self, client, make_user, make_post, make_story):
        alice = make_user("alice")
        post = make_post(alice)
        story = make_story(alice)
        client.post(f"/api/comments/post/{post['id']}", json={"text": "on post"}, headers=alice["headers"])

        assert client.get(f"/api/comments/story/{story['id']}").json() == []


class TestDeleteComment:
    """Tests for author-only comment deletion."""

    def test_delete_unlinks_from_parent(self, client, db, make_user, make_post):
        alice = make_user("alice")
        post = make_post(alice)
        comment = client.post(f"/api/comments/post/{post['id']}", json={"text": "oops"}, headers=alice["headers"]).json()

        resp = client.delete(f"/api/comments/{comment['id']}", headers=alice["headers"])

        assert resp.status_code == 200
        assert resp.json() == {"message": "Comment removed"}
        assert db["post"].find_one({"_id": ObjectId(post["id"])})["comments"] == []
        assert client.get(f"/api/comments/post/{post['id']}").json() == []

    def test_failed_delete_restores_comment_order(self, client, db, make_user, make_post):
        alice = make_user("alice")
        post = make_post(alice)
        ids = [
            client.post(f"/api/comments/post/{post['id']}", json={"text": t}, headers=alice["headers"]).json()["id"]
            for t in ("one", "two", "three")
        ]
        original_delete_one = Collection.delete_one

        def flaky_delete_one(self, filter_, *args, **kwargs):
            if self.name == "comment":
                raise PyMongoError("primary stepped down")
            return original_delete_one(self, filter_, *args, **kwargs)

        with patch.object(Collection, "delete_one", flaky_delete_one):
            with pytest.raises(ConsistencyError):
                comment_service.delete_comment(db, alice["id"], ids[1])

        assert db["post"].find_one({"_id": ObjectId(post["id"])})["comments"] == ids
        assert db["comment"].count_documents({}) == 3

    def test_delete_by_other_user_is_unauthorized(self, client, db, make_user, make_post):
        alice = make_user("alice")
        bob = make_user("bob")
        post = make_post(alice)
        comment = client.post(f"/api/comments/post/{post['id']}", json={"text": "mine"}, headers=alice["headers"]).json()

        resp = client.delete(f"/api/comments/{comment['id']}", headers=bob["headers"])

        assert resp.status_code == 401
        assert db["post"].find_one({"_id": ObjectId(post["id"])})["comments"] == [comment["id"]]

    def test_delete_missing_comment(self, client, make_user):
        alice = make_user("alice")

        resp = client.delete(f"/api/comments/{ObjectId()}", headers=alice["headers"])

        assert resp.status_code == 404


class TestLikesAndReplies:
    """Tests for comment likes and replies."""

    def test_like_unlike_and_conflicts(self, client, db, make_user, make_post):
        alice = make_user("alice")
        post = make_post(alice)
        comment = client.post(f"/api/comments/post/{post['id']}", json={"text": "hi"}, headers=alice["headers"]).json()
        url = f"/api/comments/{comment['id']}"

        assert client.post(f"{url}/like", headers=alice["headers"]).status_code == 200
        again = client.post(f"{url}/like", headers=alice["headers"])
        assert again.status_code == 400
        assert again.json() == {"message": "Comment already liked"}
        assert db["comment"].find_one({"_id": ObjectId(comment["id"])})["likes"] == [alice["id"]]

        assert client.post(f"{url}/unlike", headers=alice["headers"]).status_code == 200
        never = client.post(f"{url}/unlike", headers=alice["headers"])
        assert never.status_code == 400
        assert never.json() == {"message": "Comment not liked yet"}

    def test_reply_is_appended_with_author(self, client, make_user, make_post):
        alice = make_user("alice")
        bob = make_user("bob")
        post = make_post(alice)
        comment = client.post(f"/api/comments/post/{post['id']}", json={"text": "q?"}, headers=alice["headers"]).json()

        resp = client.post(f"/api/comments/{comment['id']}/reply", json={"text": "a!"}, headers=bob["headers"])

        assert resp.status_code == 201
        replies = resp.json()["replies"]
        assert len(replies) == 1
        assert replies[0]["text"] == "a!"
        assert replies[0]["likes"] == []
        assert replies[0]["author"]["username"] == "bob"

    def test_reply_to_missing_comment(self, client, make_user):
        alice = make_user("alice")

        resp = client.post(f"/api/comments/{ObjectId()}/reply", json={"text": "hello"}, headers=alice["headers"])

        assert resp.status_code == 404
