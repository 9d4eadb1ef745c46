def test_update_own_profile(client, make_user, headers):
    user = make_user(name="Asha")

    response = client.put(
        f"/users/{user.id}",
        json={"name": "Asha K", "bio": "Chess and chai", "photos": ["https://example.com/a.jpg"]},
        headers=headers(user),
    )

    assert response.status_code == 200
    body = response.json()["user"]
    assert body["name"] == "Asha K"
    assert body["bio"] == "Chess and chai"
    assert body["photo_url"] == "https://example.com/a.jpg"
    assert body["completed_profile"] is True


def test_cannot_update_someone_elses_profile(client, make_user, headers):
    owner, other = make_user(), make_user()

    response = client.put(f"/users/{owner.id}", json={"name": "Hijacked"}, headers=headers(other))

    assert response.status_code == 403
    assert response.json()["success"] is False


def test_bio_length_is_validated(client, make_user, headers):
    user = make_user()

    response = client.put(f"/users/{user.id}", json={"bio": "x" * 501}, headers=headers(user))

    assert response.status_code == 400


def test_get_unknown_user_is_404(client, make_user, headers):
    user = make_user()

    response = client.get("/users/does-not-exist", headers=headers(user))

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "User not found"}


def test_search_users(client, make_user, headers):
    viewer = make_user(name="Viewer")
    make_user(name="Ravi Chess Fan")
    make_user(name="Meera", bio="Loves chess openings")
    make_user(name="Karan", bio="Runner")

    response = client.get("/users", params={"search": "chess"}, headers=headers(viewer))

    assert response.status_code == 200
    names = {u["name"] for u in response.json()["users"]}
    assert names == {"Ravi Chess Fan", "Meera"}
    assert response.json()["pagination"]["total"] == 2


def test_block_and_unblock(client, make_user, headers):
    user, target = make_user(), make_user()

    blocked = client.post(f"/users/{user.id}/block/{target.id}", headers=headers(user))
    assert blocked.status_code == 200
    # Blocking twice keeps a single entry
    client.post(f"/users/{user.id}/block/{target.id}", headers=headers(user))
    assert client.get("/me", headers=headers(user)).json()["user"]["blocked_user_ids"] == [target.id]

    client.delete(f"/users/{user.id}/block/{target.id}", headers=headers(user))
    assert client.get("/me", headers=headers(user)).json()["user"]["blocked_user_ids"] == []


def test_cannot_block_yourself(client, make_user, headers):
    user = make_user()

    response = client.post(f"/users/{user.id}/block/{user.id}", headers=headers(user))

    assert response.status_code == 400


def test_verification_raises_trust_score(client, make_user, headers):
    user = make_user()

    response = client.post(
        f"/users/{user.id}/verify",
        json={"verification_photo_url": "https://example.com/selfie.jpg"},
        headers=headers(user),
    )

    assert response.status_code == 200
    assert response.json()["user"]["verified"] is True
    assert response.json()["user"]["trust_score"] == 60
