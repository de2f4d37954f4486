"""
Tests for the like, save and follow toggles and the saved/followed feeds.
"""
import pytest

from services.engagement_service import EngagementService
from models.models import Like


@pytest.mark.parametrize("action,message", [
    ("like", "Post liked successfully"),
    ("save", "Post saved successfully"),
    ("follow", "Post followed successfully"),
])
def test_toggle_add_is_idempotent(client, register_user, make_post, action, message):
    _, headers = register_user("alice")
    post = make_post(headers)

    for _ in range(2):
        response = client.post(f"/api/posts/{post['uuid']}/{action}", headers=headers)
        assert response.status_code == 200
        assert response.json() == {"status": "success", "message": message}


def test_unlike_never_liked_post_succeeds(client, register_user, make_post):
    _, headers = register_user("alice")
    post = make_post(headers)

    response = client.delete(f"/api/posts/{post['uuid']}/like", headers=headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Post unliked successfully"


def test_like_counts_and_flags(client, register_user, make_post):
    _, alice = register_user("alice")
    _, bob = register_user("bob")
    post = make_post(alice)

    client.post(f"/api/posts/{post['uuid']}/like", headers=alice)
    client.post(f"/api/posts/{post['uuid']}/like", headers=bob)
    client.delete(f"/api/posts/{post['uuid']}/like", headers=alice)

    as_alice = client.get(f"/api/posts/{post['uuid']}", headers=alice).json()["data"]
    assert as_alice["likeCount"] == 1
    assert as_alice["isLiked"] is False
    assert as_alice["isSaved"] is False

    as_bob = client.get(f"/api/posts/{post['uuid']}", headers=bob).json()["data"]
    assert as_bob["isLiked"] is True


def test_toggle_on_missing_post(client, register_user):
    _, headers = register_user("alice")
    response = client.post("/api/posts/missing/like", headers=headers)
    assert response.status_code == 404


def test_toggle_requires_auth(client, register_user, make_post):
    _, headers = register_user("alice")
    post = make_post(headers)
    assert client.post(f"/api/posts/{post['uuid']}/save").status_code == 401


def test_saved_and_followed_feeds(client, register_user, make_post):
    _, alice = register_user("alice")
    _, bob = register_user("bob")
    saved = make_post(alice, title="Post bob saves")
    followed = make_post(alice, title="Post bob follows")
    make_post(alice, title="Post bob ignores")

    client.post(f"/api/posts/{saved['uuid']}/save", headers=bob)
    client.post(f"/api/posts/{followed['uuid']}/follow", headers=bob)

    saved_page = client.get("/api/posts/saved", headers=bob).json()["data"]
    assert [p["uuid"] for p in saved_page["data"]] == [saved["uuid"]]
    assert saved_page["data"][0]["isSaved"] is True
    assert saved_page["data"][0]["isFollowed"] is False

    followed_page = client.get("/api/posts/followed", headers=bob).json()["data"]
    assert [p["uuid"] for p in followed_page["data"]] == [followed["uuid"]]


def test_saved_feed_empty(client, register_user):
    _, headers = register_user("alice")
    page = client.get("/api/posts/saved", headers=headers, params={"limit": 5}).json()["data"]
    assert page == {"data": [], "meta": {"total": 0, "page": 1, "limit": 5, "totalPages": 0}}


def test_service_add_returns_existing_row(db, register_user, make_post):
    user, headers = register_user("alice")
    post = make_post(headers)

    service = EngagementService(db)
    first = service.like(user["id"], post["id"])
    second = service.like(user["id"], post["id"])
    assert first.id == second.id
    assert db.query(Like).count() == 1

    assert service.unlike(user["id"], post["id"]) is True
    assert service.unlike(user["id"], post["id"]) is True
    assert db.query(Like).count() == 0
