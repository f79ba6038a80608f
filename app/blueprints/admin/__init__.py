from flask import Blueprint, current_app
from flask_login import current_user

from app.extensions import login_manager

bp = Blueprint("admin", __name__)


@bp.before_request
def _require_login_admin():
    if current_app.config.get("LOGIN_DISABLED") or current_user.is_authenticated:
        return None
    return login_manager.unauthorized()


# Import submodules so their routes register on the same bp
from . import categories  # noqa: E402,F401
from . import questions  # noqa: E402,F401
from . import feedback  # noqa: E402,F401
from . import brands  # noqa: E402,F401
from . import dashboard  # noqa: E402,F401
