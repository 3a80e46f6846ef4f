"""Per-request access logging for the storefront, written as JSON lines."""

import json
import logging
import os
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

from flask import Flask, Response, request, g

LOGGER_NAME = 'request_logger'
MAX_LOG_BYTES = 10_000_000
LOG_BACKUPS = 10

# Static assets are served with long cache headers; their hits are noise
UNLOGGED_PREFIXES = ('/js/', '/css/', '/favicon.ico')


def _rotating_handler(path: str, level: int, exact: bool) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))
    if exact:
        handler.addFilter(lambda record: record.levelno == level)
    return handler


class RequestLogger:
    """
    Access log for storefront requests.

    ``requests.log`` gets one INFO line per request with the tenant host,
    path, status and duration. ``requests.debug.log`` adds the client IP,
    user agent, referer and the query and JSON body with personal fields
    removed (comment and newsletter bodies carry email addresses).
    """

    SENSITIVE_PARAMS = {'credential', 'token', 'password', 'secret', 'auth', 'key',
                        'email', 'authoremail', 'authorname', 'name', 'phone'}

    def __init__(self, app: Optional[Flask] = None, log_dir: str = "logs"):
        self.log_dir = log_dir
        self.trusted_proxies = ['127.0.0.1', '::1']
        self.logger = logging.getLogger(LOGGER_NAME)
        if app:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        os.makedirs(self.log_dir, exist_ok=True)

        self.logger.propagate = False
        self.logger.setLevel(logging.DEBUG)
        if not self.logger.handlers:
            self.logger.addHandler(_rotating_handler(
                os.path.join(self.log_dir, 'requests.debug.log'), logging.DEBUG, exact=True))
            self.logger.addHandler(_rotating_handler(
                os.path.join(self.log_dir, 'requests.log'), logging.INFO, exact=False))

        app.before_request(self._start_timer)
        app.after_request(self._log_request)

    @staticmethod
    def _start_timer() -> None:
        g.request_start_time = datetime.utcnow()

    def client_ip(self) -> Optional[str]:
        """Client address, trusting Cloudflare/NGINX headers only from a local proxy."""
        forwarded = request.headers.get('CF-Connecting-IP') or request.headers.get('X-Real-IP')
        if forwarded and request.remote_addr in self.trusted_proxies:
            return forwarded
        return request.remote_addr

    def sanitize(self, values: Dict[str, Any]) -> Dict[str, Any]:
        return {k: v for k, v in values.items() if k.lower() not in self.SENSITIVE_PARAMS}

    def _log_request(self, response: Response) -> Response:
        if request.path.startswith(UNLOGGED_PREFIXES):
            return response

        started = g.get('request_start_time') or datetime.utcnow()
        client = g.get('blazeblog')
        entry = {
            'timestamp': datetime.utcnow().isoformat(),
            'method': request.method,
            'host': request.host,
            'tenant': getattr(client, 'domain', None),
            'path': request.path,
            'status_code': response.status_code,
            'duration_ms': int((datetime.utcnow() - started).total_seconds() * 1000),
        }
        self.logger.info(json.dumps(entry))

        detail = dict(entry)
        detail.update({
            'ip_address': self.client_ip(),
            'user_agent': request.user_agent.string,
            'referer': request.referrer,
        })
        query = self.sanitize(request.args.to_dict())
        if query:
            detail['query_params'] = query
        if request.method in ('POST', 'PUT') and request.is_json:
            body = request.get_json(silent=True)
            if isinstance(body, dict) and self.sanitize(body):
                detail['request_body'] = self.sanitize(body)
        self.logger.debug(json.dumps(detail, default=str))

        return response


def get_request_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """Helper function to get the request logger instance."""
    return logging.getLogger(name)
