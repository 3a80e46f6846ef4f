"""HTML-or-JSON error replies for the storefront."""

from typing import Optional

from flask import Blueprint, render_template, request, jsonify, current_app
from flask.typing import ResponseReturnValue

from blazeblog.errors import BlazeBlogError
from common.base.logging_config import get_logger

logger = get_logger(__name__)

errors_bp = Blueprint('errors', __name__)

# status -> (title, reader-facing message)
ERROR_TEXT = {
    400: ("Bad Request", "The request was malformed or missing required fields."),
    404: ("Page Not Found", "The page you asked for could not be found on this blog."),
    405: ("Method Not Allowed", "The {method} method is not allowed for this endpoint."),
    500: ("Internal Server Error", "Something went wrong on our side. Please try again later."),
    502: ("Upstream Error", "The blog content could not be loaded right now. Please try again later."),
}


def wants_html() -> bool:
    return request.headers.get('Accept', '').startswith('text/html')


def handle_error(error_code: str, error_title: str, error_message: str,
                 details: Optional[str] = None) -> ResponseReturnValue:
    """
    Render an error for a browser, or a JSON body for widgets and API clients.

    :param error_code: HTTP status as a string
    :param error_title: Short title, also the JSON ``error`` key in snake case
    :param error_message: Text shown to the reader
    :param details: Exception text, only exposed when the app runs in debug mode
    :return: Response and status code
    """
    status = int(error_code)
    details = details if current_app.debug else None

    if wants_html():
        return render_template('error.html',
                               error_code=error_code,
                               error_title=error_title,
                               error_message=error_message,
                               technical_details=details), status

    body = {'error': error_title.lower().replace(' ', '_'), 'message': error_message}
    if details:
        body['details'] = details
    return jsonify(body), status


def _reply(status: int, e: Exception) -> ResponseReturnValue:
    title, message = ERROR_TEXT[status]
    return handle_error(str(status), title, message.format(method=request.method), str(e))


@errors_bp.app_errorhandler(400)
def bad_request(e: Exception) -> ResponseReturnValue:
    logger.warning(f"Bad request on {request.path}: {e}")
    return _reply(400, e)


@errors_bp.app_errorhandler(404)
def page_not_found(e: Exception) -> ResponseReturnValue:
    logger.info(f"Not found: {request.path}")
    return _reply(404, e)


@errors_bp.app_errorhandler(405)
def method_not_allowed(e: Exception) -> ResponseReturnValue:
    logger.warning(f"{request.method} not allowed on {request.path}")
    return _reply(405, e)


@errors_bp.app_errorhandler(500)
def internal_server_error(e: Exception) -> ResponseReturnValue:
    logger.error(f"Unhandled error on {request.path}: {e}", exc_info=True)
    return _reply(500, e)


@errors_bp.app_errorhandler(BlazeBlogError)
def handle_upstream_error(e: BlazeBlogError) -> ResponseReturnValue:
    """Content API failures that no page handler recovered from."""
    logger.error(f"Upstream API error on {request.path}: {e}")
    return _reply(502, e)
