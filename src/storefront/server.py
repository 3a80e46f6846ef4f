#!/usr/bin/python3

"""Flask app factory and server entry point for the BlazeBlog storefront."""

from datetime import datetime

from flask import Flask, request, g
from flask_compress import Compress
from waitress import serve

import constants

from blazeblog import client_for_host
from common.config.storefront_config import init_storefront_config, get_storefront_config
from common.base.logging_config import get_logger
from storefront.decorators import get_navigation_items
from storefront.presenters import format_date, json_ld_script, page_title, theme_for

logger = get_logger(__name__)


def bind_tenant_client():
    """Give each request an API client scoped to the tenant behind its Host header."""
    g.blazeblog = client_for_host(
        host=request.host,
        nginx_domain=request.headers.get('X-Nginx-Domain')
    )
    # Pages replace this once the site config has been fetched
    g.site_config = None


def inject_site_data():
    site_config = g.get('site_config')
    return {
        'site_config': site_config,
        'site': (site_config or {}).get('siteConfig') or {},
        'feature_flags': (site_config or {}).get('featureFlags', {}),
        'theme': theme_for(site_config, get_storefront_config().theme),
        'navigation': get_navigation_items(site_config),
        'page_title': lambda title=None: page_title(title, site_config),
        'current_year': datetime.utcnow().year,
    }


def create_app(testing: bool = False, config_path: str = None) -> Flask:
    """
    Build the storefront app.

    Outside tests, launch.py must have called ``constants.init_production()`` first.

    :param testing: Initialize test state and skip the request log
    :param config_path: Storefront TOML to load instead of the default
    :return: Configured Flask app
    """
    if testing:
        constants.init_testing()
    if not constants.INITIALIZED:
        raise RuntimeError("System not initialized. In production, launch.py must initialize the system.")

    app = Flask(__name__, template_folder=constants.TEMPLATE_DIR, static_folder=None)
    app.config['TESTING'] = testing

    if constants.is_development_mode():
        from flask_cors import CORS
        CORS(app, origins="*")
        logger.info("Development mode: CORS open to all origins")

    Compress(app)
    init_storefront_config(config_path)

    app.before_request(bind_tenant_client)
    app.context_processor(inject_site_data)
    app.jinja_env.filters['format_date'] = format_date
    app.jinja_env.filters['json_ld'] = json_ld_script

    if not testing:
        from common.base.request_logger import RequestLogger
        RequestLogger(app, log_dir=constants.REQUEST_LOG_DIR)

    from storefront.blueprints import STOREFRONT_BLUEPRINTS
    for blueprint in STOREFRONT_BLUEPRINTS:
        app.register_blueprint(blueprint)

    return app


app = None


def get_app():
    """Create the module-level app on first use."""
    global app
    if app is None:
        app = create_app()
    return app


def run_server(host: str = '0.0.0.0', port: int = 3000, debug: bool = False) -> None:
    """Serve with waitress, or with the Flask reloader when debugging."""
    logger.info(f"Starting storefront server on {host}:{port}")
    storefront_app = get_app()

    if debug:
        storefront_app.config['DEBUG'] = True
        storefront_app.run(host=host, port=port, debug=True)
        return

    serve(
        storefront_app,
        host=host,
        port=port,
        channel_timeout=60,
        cleanup_interval=30,
        connection_limit=100
    )
