"""Process-wide paths, run state and BlazeBlog upstream defaults."""

import os
from typing import Optional

SRC_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.dirname(SRC_DIR)
CONFIG_DIR = os.path.join(PROJECT_ROOT, "config")

WEB_DIR = os.path.join(SRC_DIR, "storefront")
STATIC_DIR = os.path.join(WEB_DIR, "static")
TEMPLATE_DIR = os.path.join(WEB_DIR, "templates")

# Set once by init_testing() or init_production()
TESTING: bool = False
INITIALIZED: bool = False
SERVICE: Optional[str] = None

DEFAULT_API_BASE_URL = "http://localhost:3001/api/v1"
DEFAULT_STATIC_BASE_URL = "https://static.blazeblog.co/blazeblog"
PROD_VIEWS_COLLECTOR_URL = "https://api.blazeblog.co/api/v1/views/collect"
DEV_VIEWS_COLLECTOR_URL = "http://localhost:3001/api/v1/views/collect"


def is_development_mode() -> bool:
    """True when ``FLASK_ENV=development``."""
    return os.getenv('FLASK_ENV', 'production').lower() == 'development'


def get_views_collector_url() -> str:
    return DEV_VIEWS_COLLECTOR_URL if is_development_mode() else PROD_VIEWS_COLLECTOR_URL


def get_log_dir() -> str:
    """``logs/``, or ``logs/<service>/`` once a service name is set."""
    base = os.path.join(PROJECT_ROOT, "logs")
    return os.path.join(base, SERVICE) if SERVICE else base


LOG_DIR = get_log_dir()
REQUEST_LOG_DIR = os.path.join(LOG_DIR, "requests")


def _set_state(testing: bool, service: Optional[str]) -> None:
    global TESTING, INITIALIZED, SERVICE, LOG_DIR, REQUEST_LOG_DIR
    TESTING = testing
    INITIALIZED = True
    SERVICE = service
    LOG_DIR = get_log_dir()
    REQUEST_LOG_DIR = os.path.join(LOG_DIR, "requests")


def init_testing(service: Optional[str] = None) -> None:
    _set_state(True, service)


def init_production(service: Optional[str] = None) -> None:
    """
    Mark the process as a production run.

    :param service: Log subdirectory name, e.g. ``storefront``
    """
    _set_state(False, service)
