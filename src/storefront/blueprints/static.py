"""Widget scripts, stylesheets and the favicon."""

import os

from flask import Blueprint, send_from_directory, Response
from werkzeug.exceptions import NotFound

import constants
from common.base.logging_config import get_logger

logger = get_logger(__name__)

static_bp = Blueprint('static', __name__)

ASSET_MAX_AGE = 3600


def _send_asset(directory: str, filename: str, **kwargs) -> Response:
    """
    Send a file with one-hour public caching.

    :raises NotFound: when the file does not exist
    """
    try:
        response = send_from_directory(directory, filename, **kwargs)
    except NotFound:
        logger.info(f"Missing asset {directory}/{filename}")
        raise
    response.headers['Cache-Control'] = f'public, max-age={ASSET_MAX_AGE}'
    return response


@static_bp.route('/js/<path:filename>')
def serve_js(filename: str) -> Response:
    return _send_asset(os.path.join(constants.WEB_DIR, 'js'), filename)


@static_bp.route('/css/<path:filename>')
def serve_css(filename: str) -> Response:
    return _send_asset(os.path.join(constants.WEB_DIR, 'css'), filename)


@static_bp.route('/favicon.ico')
def serve_favicon() -> Response:
    return _send_asset(constants.STATIC_DIR, 'favicon.svg', mimetype='image/svg+xml')
