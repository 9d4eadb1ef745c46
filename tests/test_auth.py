from hangoutz.services import otp_service

PHONE = "+919876543210"


def test_send_otp_stores_hashed_code(client, monkeypatch):
    monkeypatch.setattr(otp_service, "generate_otp", lambda length=None: "654321")

    response = client.post("/auth/send-otp", json={"phone": PHONE})

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert PHONE in otp_service.pending_otps
    assert otp_service.pending_otps[PHONE] != "654321"


def test_send_otp_rejects_malformed_phone(client):
    response = client.post("/auth/send-otp", json={"phone": "not-a-phone"})

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_verify_otp_creates_user_then_logs_in(client, monkeypatch):
    monkeypatch.setattr(otp_service, "generate_otp", lambda length=None: "654321")
    client.post("/auth/send-otp", json={"phone": PHONE})

    first = client.post("/auth/verify-otp", json={"phone": PHONE, "otp": "654321"})
    assert first.status_code == 200
    body = first.json()
    assert body["is_new_user"] is True
    assert body["user"]["phone"] == PHONE
    assert body["user"]["trust_score"] == 50

    # The code is single use
    reused = client.post("/auth/verify-otp", json={"phone": PHONE, "otp": "654321"})
    assert reused.status_code == 400

    client.post("/auth/send-otp", json={"phone": PHONE})
    second = client.post("/auth/verify-otp", json={"phone": PHONE, "otp": "654321"})
    assert second.json()["is_new_user"] is False
    assert second.json()["user"]["id"] == body["user"]["id"]

    me = client.get("/me", headers={"Authorization": f"Bearer {second.json()['token']}"})
    assert me.status_code == 200
    assert me.json()["user"]["id"] == body["user"]["id"]
    assert me.json()["user"]["blocked_user_ids"] == []


def test_wrong_code_is_rejected(client, monkeypatch):
    monkeypatch.setattr(otp_service, "generate_otp", lambda length=None: "654321")
    client.post("/auth/send-otp", json={"phone": PHONE})

    response = client.post("/auth/verify-otp", json={"phone": PHONE, "otp": "111111"})

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Invalid OTP"}


def test_dev_code_is_accepted_outside_production(client):
    response = client.post("/auth/verify-otp", json={"phone": PHONE, "otp": "123456"})

    assert response.status_code == 200
    assert response.json()["is_new_user"] is True


def test_protected_routes_require_a_valid_token(client):
    assert client.get("/me").status_code == 401

    response = client.get("/me", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Invalid token"}


def test_token_for_deleted_user_is_rejected(client, make_user, headers):
    user = make_user()
    token_headers = headers(user)
    assert client.delete(f"/users/{user.id}", headers=token_headers).status_code == 200

    assert client.get("/me", headers=token_headers).status_code == 401
