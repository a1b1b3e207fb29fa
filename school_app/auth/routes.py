from flask import current_app, request
from flask_login import current_user, login_required

from .. import limiter
from ..api_utils import api_success, json_body
from ..sessions import get_session_manager
from ..storage import get_storage
from . import auth_bp, services


def _auth_rate_limit():
    return current_app.config["LOGIN_RATE_LIMIT"]


def _session_token():
    return request.cookies.get(current_app.config["AUTH_COOKIE_NAME"])


def _set_session_cookie(response, token):
    cfg = current_app.config
    response.set_cookie(
        cfg["AUTH_COOKIE_NAME"],
        token,
        max_age=cfg["SESSION_IDLE_TIMEOUT"],
        httponly=True,
        secure=cfg["AUTH_COOKIE_SECURE"],
        samesite="Lax",
    )
    return response


@auth_bp.route("/login", methods=["POST"])
@limiter.limit(_auth_rate_limit, methods=["POST"])
def login():
    data = json_body()
    storage = get_storage()
    sessions = get_session_manager()
    user, token = services.login(storage, sessions, data.get("username"), data.get("password"))

    # A new login replaces whatever session this browser carried before.
    old_token = _session_token()
    if old_token:
        sessions.destroy(old_token)

    response, status = api_success({"user": services.user_payload(storage, user)})
    return _set_session_cookie(response, token), status


@auth_bp.route("/register", methods=["POST"])
@limiter.limit(_auth_rate_limit, methods=["POST"])
def register():
    data = json_body()
    storage = get_storage()
    sessions = get_session_manager()
    user, token = services.register(storage, sessions, data)

    old_token = _session_token()
    if old_token:
        sessions.destroy(old_token)

    response, status = api_success({"user": services.user_payload(storage, user)}, status=201)
    return _set_session_cookie(response, token), status


@auth_bp.route("/logout", methods=["POST"])
def logout():
    token = _session_token()
    if current_user.is_authenticated:
        current_app.logger.info(f"AUDIT logout user_id={current_user.user_id}")
    services.logout(get_session_manager(), token)

    cfg = current_app.config
    response = current_app.response_class(status=204)
    response.delete_cookie(
        cfg["AUTH_COOKIE_NAME"], httponly=True, secure=cfg["AUTH_COOKIE_SECURE"], samesite="Lax"
    )
    return response


@auth_bp.route("/user", methods=["GET"])
@login_required
def get_current_user():
    return api_success({"user": services.user_payload(get_storage(), current_user)})
