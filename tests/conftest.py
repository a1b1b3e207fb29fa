import pytest

from school_app import create_app, db
from school_app.models import Role
from school_app.security import hash_password
from school_app.storage import get_storage

TEST_HASH_METHOD = "pbkdf2:sha256:1000"


def make_app(backend="memory", **overrides):
    config = {
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "STORAGE_BACKEND": backend,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "RATELIMIT_ENABLED": False,
        "PASSWORD_HASH_METHOD": TEST_HASH_METHOD,
        "SEED_DEMO_DATA": False,
    }
    config.update(overrides)
    return create_app(config)


@pytest.fixture(params=["memory", "database"])
def app(request):
    app = make_app(request.param)
    yield app
    if request.param == "database":
        with app.app_context():
            db.session.remove()
            db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def storage(app):
    with app.app_context():
        yield get_storage()


def add_user(app, username, password="secret123", role=Role.STUDENT, profile=None, **extra):
    """Create a user directly in storage. Returns (user_id, student_id or None)."""
    with app.app_context():
        storage = get_storage()
        fields = {
            "username": username,
            "password_hash": hash_password(password, TEST_HASH_METHOD),
            "role": role,
            "full_name": extra.pop("full_name", username.title()),
            "email": extra.pop("email", f"{username}@example.com"),
        }
        fields.update(extra)
        if role is Role.STUDENT and profile is None:
            profile = {"class_name": "10", "section": "A"}
        user = storage.create_user(fields, profile if role is Role.STUDENT else None)
        student = storage.get_student_by_user_id(user.user_id)
        return user.user_id, (student.student_id if student else None)


def login(client, username, password="secret123"):
    return client.post("/api/login", json={"username": username, "password": password})


@pytest.fixture()
def admin_user(app):
    user_id, _ = add_user(app, "principal", role=Role.ADMIN)
    return {"user_id": user_id, "username": "principal"}


@pytest.fixture()
def student_user(app):
    user_id, student_id = add_user(app, "asha")
    return {"user_id": user_id, "student_id": student_id, "username": "asha"}


@pytest.fixture()
def admin_client(app, admin_user):
    client = app.test_client()
    assert login(client, admin_user["username"]).status_code == 200
    return client


@pytest.fixture()
def student_client(app, student_user):
    client = app.test_client()
    assert login(client, student_user["username"]).status_code == 200
    return client
