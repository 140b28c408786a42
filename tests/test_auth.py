from app.crud import crud_user


def test_register_creates_student(client):
    response = client.post("/api/v1/auth/register", json={
        "email": "new@example.com", "password": "long-enough", "full_name": "New Student",
    })

    assert response.status_code == 201
    body = response.json()
    assert body["email"] == "new@example.com"
    assert body["auth_provider"] == "password"
    assert body["is_admin"] is False
    assert "password" not in body and "hashed_password" not in body


def test_register_duplicate_email(client, student):
    response = client.post("/api/v1/auth/register", json={
        "email": "student@example.com", "password": "another-pass",
    })
    assert response.status_code == 409


def test_register_short_password(client):
    response = client.post("/api/v1/auth/register", json={"email": "x@example.com", "password": "short"})
    assert response.status_code == 400
    assert response.json()["error_code"] == "VALIDATION_ERROR"


def test_token_login_and_me(client, student):
    response = client.post("/api/v1/auth/token", data={
        "username": "student@example.com", "password": "student-pass",
    })
    assert response.status_code == 200
    token = response.json()["access_token"]
    assert response.json()["token_type"] == "bearer"

    me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["id"] == student.id


def test_token_login_wrong_password(client, student):
    response = client.post("/api/v1/auth/token", data={
        "username": "student@example.com", "password": "wrong-pass",
    })
    assert response.status_code == 401


def test_me_rejects_invalid_token(client):
    response = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_inactive_user_cannot_log_in(client, db, student):
    student.is_active = False
    db.commit()

    response = client.post("/api/v1/auth/token", data={
        "username": "student@example.com", "password": "student-pass",
    })
    assert response.status_code == 401


def test_student_is_not_admin(client, student_headers):
    response = client.get("/api/v1/articles/admin/all", headers=student_headers)
    assert response.status_code == 403


def test_oauth_user_provisioning_is_idempotent(db):
    first = crud_user.get_or_create_oauth_user(db, email="g@example.com", full_name="G User")
    second = crud_user.get_or_create_oauth_user(db, email="g@example.com", full_name="Other")

    assert first.id == second.id
    assert first.auth_provider == "google"
    assert first.is_admin is False


def test_promoted_student_gets_admin_access(client, db, student, student_headers):
    crud_user.promote_to_admin(db, student)

    response = client.get("/api/v1/articles/admin/all", headers=student_headers)
    assert response.status_code == 200
