from flask import Blueprint

from ..decorators import guard_blueprint

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")
guard_blueprint(admin_bp, "admin")

from . import routes  # noqa: E402,F401
