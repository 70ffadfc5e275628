from datetime import timedelta

import jwt

from rudraksha_store.helpers import utcnow

from .conftest import PASSWORD


def register_body(**overrides):
    body = {
        "name": "Gita Rai",
        "email": "Gita@Beads.com",
        "password": "Strong@123",
        "confirmPassword": "Strong@123",
        "contactNumber": "9841111111",
    }
    body.update(overrides)
    return body


def test_register_customer(client, db):
    resp = client.post("/api/auth/register", json=register_body())

    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["email"] == "gita@beads.com"
    assert data["role"] == "customer"
    assert "password" not in data
    assert db.users.find_one({"email": "gita@beads.com"})["password"] != "Strong@123"


def test_register_duplicate_email(client):
    client.post("/api/auth/register", json=register_body())
    resp = client.post("/api/auth/register", json=register_body())
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Email already registered"


def test_register_rejects_weak_or_mismatched_passwords(client):
    weak = client.post("/api/auth/register", json=register_body(password="weak", confirmPassword="weak"))
    assert weak.status_code == 400
    assert "password" in weak.get_json()["details"]

    mismatch = client.post("/api/auth/register", json=register_body(confirmPassword="Other@1234"))
    assert mismatch.status_code == 400
    assert "Passwords do not match" in mismatch.get_json()["details"]


def test_customer_needs_contact_number(client):
    resp = client.post("/api/auth/register", json=register_body(contactNumber=None))
    assert resp.status_code == 400


def test_staff_registration_needs_admin(client, admin, editor):
    body = register_body(email="new-editor@beads.com", role="editor", contactNumber=None)

    assert client.post("/api/auth/register", json=body).status_code == 401
    assert client.post("/api/auth/register", json=body, headers=editor[1]).status_code == 403

    resp = client.post("/api/auth/register", json=body, headers=admin[1])
    assert resp.status_code == 201
    assert resp.get_json()["data"]["role"] == "editor"


def test_login(client, customer):
    resp = client.post("/api/auth/login", json={"email": "BUYER@beads.com", "password": PASSWORD})

    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["user"]["email"] == "buyer@beads.com"

    profile = client.get("/api/customer/profile", headers={"Authorization": f"Bearer {data['token']}"})
    assert profile.status_code == 200
    assert profile.get_json()["data"]["id"] == str(customer[0]["_id"])


def test_login_wrong_password(client, customer):
    resp = client.post("/api/auth/login", json={"email": "buyer@beads.com", "password": "Nope@1234"})
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid email or password"


def test_customer_token_signed_with_staff_secret_is_rejected(client, app, customer):
    payload = {"email": "buyer@beads.com", "role": "customer", "exp": utcnow() + timedelta(days=1)}
    token = jwt.encode(payload, app.config["JWT_SECRET"], algorithm="HS256")

    resp = client.get("/api/customer/profile", headers={"Authorization": f"Bearer {token}"})

    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid or expired token"


def test_expired_token_is_rejected(client, app, admin):
    payload = {"email": "admin@beads.com", "role": "admin", "exp": utcnow() - timedelta(minutes=1)}
    token = jwt.encode(payload, app.config["JWT_SECRET"], algorithm="HS256")
    resp = client.get("/api/users/profiles", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_malformed_header(client):
    resp = client.get("/api/customer/profile", headers={"Authorization": "Token abc"})
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Unauthorized"


def test_staff_profiles(client, admin, editor, customer):
    resp = client.get("/api/users/profiles", headers=editor[1])
    assert resp.status_code == 200
    emails = {user["email"] for user in resp.get_json()["data"]["users"]}
    assert emails == {"admin@beads.com", "editor@beads.com"}

    resp = client.get("/api/users/profiles?email=admin@beads.com", headers=editor[1])
    assert [u["email"] for u in resp.get_json()["data"]["users"]] == ["admin@beads.com"]

    resp = client.get(f"/api/users/profiles?ids={admin[0]['_id']}", headers=admin[1])
    assert resp.get_json()["data"]["users"][0]["role"] == "admin"

    assert client.get("/api/users/profiles", headers=customer[1]).status_code == 403
    assert client.get("/api/users/profiles?email=missing@beads.com", headers=admin[1]).status_code == 404


def test_update_profile(client, customer):
    _, headers = customer
    resp = client.patch("/api/customer/profile", json={"name": "<b>Sita</b>"}, headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["data"]["name"] == "Sita"

    resp = client.patch("/api/customer/profile", json={}, headers=headers)
    assert resp.status_code == 400


def test_change_password(client, customer):
    _, headers = customer
    wrong = client.post(
        "/api/customer/change-password",
        json={"oldPassword": "Wrong@1234", "newPassword": "Fresh@5678"},
        headers=headers,
    )
    assert wrong.status_code == 400
    assert wrong.get_json()["message"] == "Old password is incorrect"

    resp = client.post(
        "/api/customer/change-password",
        json={"oldPassword": PASSWORD, "newPassword": "Fresh@5678"},
        headers=headers,
    )
    assert resp.status_code == 200

    login = client.post("/api/auth/login", json={"email": "buyer@beads.com", "password": "Fresh@5678"})
    assert login.status_code == 200


def test_change_image(client, editor):
    _, headers = editor
    resp = client.post("/api/users/change-image", json={"newImage": "/uploads/me.png"}, headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["data"]["image"] == "/uploads/me.png"

    bad = client.post("/api/users/change-image", json={"newImage": "javascript:alert(1)"}, headers=headers)
    assert bad.status_code == 400


def test_change_email_issues_new_token(client, db, customer, other_customer):
    user, headers = customer
    taken = client.post(
        "/api/customer/change-email", json={"newEmail": other_customer[0]["email"]}, headers=headers
    )
    assert taken.status_code == 400
    assert taken.get_json()["message"] == "Email is already in use"

    resp = client.post("/api/customer/change-email", json={"newEmail": "Sita@Beads.com"}, headers=headers)
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["user"]["email"] == "sita@beads.com"
    assert db.users.find_one({"_id": user["_id"]})["email"] == "sita@beads.com"

    # The old token names an email that no longer exists.
    assert client.get("/api/customer/profile", headers=headers).status_code == 401
    fresh = {"Authorization": f"Bearer {data['token']}"}
    assert client.get("/api/customer/profile", headers=fresh).get_json()["data"]["email"] == "sita@beads.com"


def test_change_email_rejects_malformed_address(client, customer):
    resp = client.post("/api/customer/change-email", json={"newEmail": "not-an-email"}, headers=customer[1])
    assert resp.status_code == 400


def test_list_customers_for_staff(client, editor, customer, other_customer):
    resp = client.get("/api/customer", headers=editor[1])
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["total"] == 2
    assert {u["email"] for u in data["users"]} == {customer[0]["email"], other_customer[0]["email"]}
    assert all("password" not in u for u in data["users"])

    assert client.get("/api/customer", headers=customer[1]).status_code == 403


def test_list_customers_when_none(client, admin):
    resp = client.get("/api/customer", headers=admin[1])
    assert resp.status_code == 404
    assert resp.get_json()["message"] == "No customer found"
