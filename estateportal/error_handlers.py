"""App-wide error pages for the estate portal."""

from flask import (
    Blueprint,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    url_for,
)
from flask_wtf.csrf import CSRFError
from google.api_core.exceptions import GoogleAPICallError

from .errors import AppError, PersistenceError

error_handlers_bp = Blueprint("error_handlers", __name__)

HTTP_MESSAGES = {
    401: "Please sign in to the estate portal to continue.",
    403: "Your account does not have access to this page.",
    404: "There is nothing at this address.",
}
FIRESTORE_UNAVAILABLE = (
    "Competition data is unavailable right now. Please try again shortly."
)


def _render_error(message, status_code):
    template = "404.html" if status_code == 404 else "error.html"  # noqa: PLR2004
    return render_template(template, error=message), status_code


@error_handlers_bp.app_errorhandler(PersistenceError)
def handle_persistence_error(error):
    """A Firestore write failed and no view handled it."""
    current_app.logger.error(
        f"Persistence error at stage {error.stage} "
        f"(old matches removed: {error.old_matches_removed}): {error.message}"
    )
    return _render_error(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Render any other application error with its own status code."""
    message = f"{type(error).__name__} ({error.status_code}): {error.message}"
    if error.status_code >= 500:  # noqa: PLR2004
        current_app.logger.error(message)
    else:
        current_app.logger.warning(message)
    return _render_error(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(401)
@error_handlers_bp.app_errorhandler(403)
@error_handlers_bp.app_errorhandler(404)
def handle_http_error(e):
    return _render_error(HTTP_MESSAGES[e.code], e.code)


@error_handlers_bp.app_errorhandler(500)
def handle_500(e):
    current_app.logger.error(f"Internal Server Error: {e}")
    return render_template("500.html"), 500


@error_handlers_bp.app_errorhandler(GoogleAPICallError)
def handle_firestore_error(e):
    """Firestore rejected or dropped a call; keep its details out of the page."""
    current_app.logger.error(f"Firestore error: {e}")
    return _render_error(FIRESTORE_UNAVAILABLE, 500)


@error_handlers_bp.app_errorhandler(CSRFError)
def handle_csrf_error(e):
    """Expired or missing CSRF token: send the resident back to the form."""
    current_app.logger.warning(f"CSRF Error: {e.description}")
    flash("This form expired before it was sent. Please submit it again.", "warning")
    return redirect(request.referrer or url_for("competition.list_competitions"))
