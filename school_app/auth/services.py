import re
from functools import lru_cache

from flask import current_app

from ..errors import (
    DuplicateUsername, InvalidCredentials, PasswordMismatch, Unauthenticated, ValidationError,
)
from ..models import Role, User
from ..security import hash_password, verify_password
from ..validation import PROFILE_FIELDS, USER_FIELDS, parse_fields

USERNAME_RE = re.compile(r"^[A-Za-z0-9_.@-]{3,64}$")
MIN_PASSWORD_LENGTH = 6


def _hash_method():
    return current_app.config.get("PASSWORD_HASH_METHOD")


@lru_cache(maxsize=4)
def _dummy_hash(method):
    return hash_password("not-a-real-password", method)


def login(storage, sessions, username, password):
    """
    Check credentials and open a session.
    Returns (user, token). Unknown usernames and wrong passwords raise the
    same InvalidCredentials error.
    """
    username = (username or "").strip() if isinstance(username, str) else ""
    password = password if isinstance(password, str) else ""
    if not username or not password:
        raise ValidationError("Username and password are required.")

    user = storage.get_user_by_username(username)
    if user is None:
        # Keep the timing of unknown usernames close to a real check.
        verify_password(password, _dummy_hash(_hash_method()))
        current_app.logger.info(f"AUDIT login_failed username={username}")
        raise InvalidCredentials()
    if not verify_password(password, user.password_hash):
        current_app.logger.info(f"AUDIT login_failed username={username}")
        raise InvalidCredentials()

    token = sessions.create(user.user_id)
    current_app.logger.info(f"AUDIT login user_id={user.user_id} role={user.role.value}")
    return user, token


def create_account(storage, data, role=Role.STUDENT, require_confirmation=False):
    """
    Validate ``data`` and create the user, plus an empty student profile for
    the student role. The two rows are created as one unit by the storage.
    """
    fields = parse_fields(data, USER_FIELDS)
    if not USERNAME_RE.match(fields["username"]):
        raise ValidationError("Invalid data.", details={
            "username": "Use 3-64 letters, digits, or . _ @ - characters.",
        })

    password = data.get("password")
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError("Invalid data.", details={
            "password": f"Password must be at least {MIN_PASSWORD_LENGTH} characters.",
        })
    confirm = data.get("confirm_password")
    if require_confirmation or confirm is not None:
        if confirm != password:
            raise PasswordMismatch()

    profile = parse_fields(data, PROFILE_FIELDS) if role is Role.STUDENT else None

    if storage.get_user_by_username(fields["username"]) is not None:
        raise DuplicateUsername()

    fields["password_hash"] = hash_password(password, _hash_method())
    fields["role"] = role
    return storage.create_user(fields, profile)


def register(storage, sessions, data):
    """Self-service student registration; signs the new user in right away."""
    requested_role = data.get("role", Role.STUDENT.value)
    if requested_role != Role.STUDENT.value:
        raise ValidationError("Invalid data.", details={"role": "Only student accounts can self-register."})

    user = create_account(storage, data, role=Role.STUDENT, require_confirmation=True)
    token = sessions.create(user.user_id)
    current_app.logger.info(f"AUDIT register user_id={user.user_id} username={user.username}")
    return user, token


def logout(sessions, token):
    sessions.destroy(token)


def current_user(storage, sessions, token):
    user_id = sessions.resolve(token)
    if user_id is None:
        raise Unauthenticated()
    user = storage.get_record(User, user_id)
    if user is None:
        sessions.destroy(token)
        raise Unauthenticated()
    return user


def user_payload(storage, user):
    """Public view of a user; students also get their profile."""
    data = user.to_dict()
    if user.role is Role.STUDENT:
        student = storage.get_student_by_user_id(user.user_id)
        data["student"] = student.to_dict() if student else None
    return data
