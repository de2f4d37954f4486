"""
Tests for profiles and preferences.
"""
from models.models import UserPreference


def test_update_profile(client, register_user):
    _, headers = register_user("alice")
    response = client.patch("/api/users/profile", headers=headers, json={
        "name": "Alice Cooper",
        "location": "gurugram",
        "profileImage": "https://images.example.com/alice.png",
    })
    assert response.status_code == 200
    user = response.json()["data"]["user"]
    assert user["name"] == "Alice Cooper"
    assert user["location"] == "gurugram"
    assert user["profileImage"] == "https://images.example.com/alice.png"
    assert user["username"] == "alice"


def test_update_profile_rejects_bad_location(client, register_user):
    _, headers = register_user("alice")
    response = client.patch("/api/users/profile", headers=headers, json={"location": "paris"})
    assert response.status_code == 400
    assert "location" in response.json()["errors"]


def test_public_profile(client, register_user):
    alice, _ = register_user("alice")
    response = client.get(f"/api/users/{alice['uuid']}")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user"]["username"] == "alice"
    assert "email" not in data["user"]
    assert data["preferences"]["selectedCategories"] == ["announcement", "event", "news"]


def test_private_profile_hidden_from_others(client, register_user):
    alice, alice_headers = register_user("alice", visibility="private")
    _, bob_headers = register_user("bob")

    anonymous = client.get(f"/api/users/{alice['uuid']}")
    assert anonymous.status_code == 403
    assert anonymous.json()["message"] == "This profile is private"

    assert client.get(f"/api/users/{alice['uuid']}", headers=bob_headers).status_code == 403
    assert client.get(f"/api/users/{alice['uuid']}", headers=alice_headers).status_code == 200


def test_unknown_profile(client):
    assert client.get("/api/users/no-such-user").status_code == 404


def test_update_selected_categories_keeps_order(client, register_user):
    _, headers = register_user("alice")
    response = client.post("/api/users/preferences/categories", headers=headers, json={
        "categories": ["jobs", "announcement", "sale"],
    })
    assert response.status_code == 200
    assert response.json()["data"]["selectedCategories"] == ["jobs", "announcement", "sale"]

    stored = client.get("/api/users/preferences", headers=headers).json()["data"]
    assert stored["selectedCategories"] == ["jobs", "announcement", "sale"]


def test_update_selected_categories_validation(client, register_user):
    _, headers = register_user("alice")
    empty = client.post("/api/users/preferences/categories", headers=headers, json={"categories": []})
    assert empty.status_code == 400

    unknown = client.post("/api/users/preferences/categories", headers=headers, json={"categories": ["bogus"]})
    assert unknown.status_code == 400


def test_update_notification_preferences(client, register_user):
    _, headers = register_user("alice")
    response = client.post("/api/users/preferences/notifications", headers=headers, json={
        "preferences": {"all": False, "comments": True, "weeklyDigest": True},
    })
    assert response.status_code == 200
    assert response.json()["data"]["notificationPreferences"] == {
        "all": False, "comments": True, "weeklyDigest": True,
    }

    empty = client.post("/api/users/preferences/notifications", headers=headers, json={"preferences": {}})
    assert empty.status_code == 400
    assert empty.json()["errors"]["preferences"] == ["At least one notification preference is required"]


def test_preferences_created_when_missing(client, db, register_user):
    user, headers = register_user("alice")
    db.query(UserPreference).filter(UserPreference.user_id == user["id"]).delete()
    db.commit()

    response = client.get("/api/users/preferences", headers=headers)
    assert response.status_code == 200
    assert response.json()["data"]["notificationPreferences"] == {"all": True}


def test_preferences_require_auth(client):
    assert client.get("/api/users/preferences").status_code == 401


def test_update_profile_rejects_null_for_required_fields(client, register_user):
    _, headers = register_user("alice")
    for field in ("name", "location", "visibility"):
        response = client.patch("/api/users/profile", headers=headers, json={field: None})
        assert response.status_code == 400, field
        assert response.json()["errors"] == {field: ["This field cannot be null"]}

    profile = client.get("/api/auth/me", headers=headers).json()["data"]["user"]
    assert profile["name"] == "Alice"
    assert profile["location"] == "chandigarh"


def test_update_profile_clears_optional_fields(client, register_user):
    _, headers = register_user("alice", phone="9876543210")
    response = client.patch("/api/users/profile", headers=headers, json={"phone": None})
    assert response.status_code == 200
    assert response.json()["data"]["user"]["phone"] is None
