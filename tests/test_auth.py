import pytest

from conftest import add_user, login
from school_app.auth import services
from school_app.errors import (
    DuplicateUsername, InvalidCredentials, PasswordMismatch, Unauthenticated, ValidationError,
)
from school_app.models import Role, Student, User
from school_app.sessions import get_session_manager
from school_app.storage import get_storage


def registration(**overrides):
    data = {
        "username": "ravi",
        "password": "secret123",
        "confirm_password": "secret123",
        "full_name": "Ravi Kumar",
        "email": "ravi@example.com",
        "class_name": "9",
        "section": "B",
    }
    data.update(overrides)
    return data


# ---- service level ----------------------------------------------------------

def test_register_then_login_resolves_same_user(app):
    with app.app_context():
        storage, sessions = get_storage(), get_session_manager()
        user, token = services.register(storage, sessions, registration())
        assert sessions.resolve(token) == user.user_id

        student = storage.get_student_by_user_id(user.user_id)
        assert student is not None
        assert student.class_name == "9"

        again, token2 = services.login(storage, sessions, "ravi", "secret123")
        assert again.user_id == user.user_id
        assert token2 != token
        assert services.current_user(storage, sessions, token2).user_id == user.user_id


def test_duplicate_registration_leaves_no_partial_rows(app):
    with app.app_context():
        storage, sessions = get_storage(), get_session_manager()
        services.register(storage, sessions, registration())
        with pytest.raises(DuplicateUsername):
            services.register(storage, sessions, registration(email="other@example.com"))
        assert len(storage.list_records(User)) == 1
        assert len(storage.list_records(Student)) == 1


def test_register_password_mismatch(app):
    with app.app_context():
        storage, sessions = get_storage(), get_session_manager()
        with pytest.raises(PasswordMismatch):
            services.register(storage, sessions, registration(confirm_password="secret999"))
        assert storage.get_user_by_username("ravi") is None


def test_register_rejects_admin_role(app):
    with app.app_context():
        with pytest.raises(ValidationError) as exc:
            services.register(get_storage(), get_session_manager(), registration(role="admin"))
        assert "role" in exc.value.details


def test_register_validates_fields(app):
    with app.app_context():
        with pytest.raises(ValidationError) as exc:
            services.register(get_storage(), get_session_manager(), registration(email="nope", password="123"))
        assert "email" in exc.value.details


def test_short_password_rejected(app):
    with app.app_context():
        with pytest.raises(ValidationError) as exc:
            services.register(
                get_storage(), get_session_manager(), registration(password="abc", confirm_password="abc")
            )
        assert "password" in exc.value.details


def test_login_errors_do_not_reveal_which_part_failed(app):
    add_user(app, "meera")
    with app.app_context():
        storage, sessions = get_storage(), get_session_manager()
        with pytest.raises(InvalidCredentials) as unknown:
            services.login(storage, sessions, "nobody", "secret123")
        with pytest.raises(InvalidCredentials) as wrong:
            services.login(storage, sessions, "meera", "wrong-password")
        assert unknown.value.message == wrong.value.message


def test_login_requires_both_fields(app):
    with app.app_context():
        with pytest.raises(ValidationError):
            services.login(get_storage(), get_session_manager(), "", "")


def test_logout_then_current_user_fails(app):
    add_user(app, "meera")
    with app.app_context():
        storage, sessions = get_storage(), get_session_manager()
        _, token = services.login(storage, sessions, "meera", "secret123")
        services.logout(sessions, token)
        services.logout(sessions, token)
        with pytest.raises(Unauthenticated):
            services.current_user(storage, sessions, token)


def test_session_for_deleted_user_is_dropped(app):
    user_id, _ = add_user(app, "meera")
    with app.app_context():
        storage, sessions = get_storage(), get_session_manager()
        _, token = services.login(storage, sessions, "meera", "secret123")
        storage.delete_user(user_id)
        with pytest.raises(Unauthenticated):
            services.current_user(storage, sessions, token)
        assert sessions.resolve(token) is None


def test_admin_account_has_no_profile(app):
    with app.app_context():
        storage = get_storage()
        user = services.create_account(storage, registration(username="boss"), role=Role.ADMIN)
        assert user.role is Role.ADMIN
        assert storage.get_student_by_user_id(user.user_id) is None


# ---- HTTP -------------------------------------------------------------------

def test_login_sets_http_only_cookie(client, app):
    add_user(app, "meera")
    resp = login(client, "meera")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["success"] is True
    assert body["data"]["user"]["username"] == "meera"
    assert "password_hash" not in body["data"]["user"]
    assert body["data"]["user"]["student"]["class_name"] == "10"

    cookie = next(h for h in resp.headers.getlist("Set-Cookie") if h.startswith("sid="))
    assert "HttpOnly" in cookie
    assert "SameSite=Lax" in cookie
    assert "Secure" not in cookie
    assert cookie.split(";")[0] not in resp.get_data(as_text=True)


def test_login_failure_returns_401(client, app):
    add_user(app, "meera")
    resp = login(client, "meera", "wrong-password")
    assert resp.status_code == 401
    body = resp.get_json()
    assert body["success"] is False
    assert body["error"]["code"] == "invalid_credentials"
    assert not any(h.startswith("sid=") for h in resp.headers.getlist("Set-Cookie"))


def test_current_user_endpoint(client, app):
    assert client.get("/api/user").status_code == 401
    add_user(app, "meera")
    login(client, "meera")
    resp = client.get("/api/user")
    assert resp.status_code == 200
    assert resp.get_json()["data"]["user"]["username"] == "meera"


def test_register_endpoint(client):
    resp = client.post("/api/register", json=registration())
    assert resp.status_code == 201
    assert resp.get_json()["data"]["user"]["role"] == "student"
    assert client.get("/api/user").status_code == 200

    other = client.application.test_client()
    dup = other.post("/api/register", json=registration(email="dup@example.com"))
    assert dup.status_code == 409
    assert dup.get_json()["error"]["code"] == "duplicate_username"

    bad = other.post("/api/register", json=registration(username="sita", email="bad"))
    assert bad.status_code == 400
    assert "email" in bad.get_json()["error"]["details"]


def test_logout_endpoint(client, app):
    add_user(app, "meera")
    login(client, "meera")
    resp = client.post("/api/logout")
    assert resp.status_code == 204
    assert client.get("/api/user").status_code == 401
    assert client.post("/api/logout").status_code == 204


def test_relogin_rotates_session(app):
    add_user(app, "meera")
    first = app.test_client()
    login(first, "meera")
    stale_cookie = first.get_cookie("sid").value

    login(first, "meera")
    assert first.get_cookie("sid").value != stale_cookie

    replay = app.test_client()
    replay.set_cookie("sid", stale_cookie)
    assert replay.get("/api/user").status_code == 401


def test_non_object_body_is_rejected(client):
    resp = client.post("/api/login", json=["meera", "secret123"])
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "validation_error"
