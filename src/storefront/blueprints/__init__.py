"""Blueprints making up the storefront, in registration order."""

from .errors import errors_bp
from .static import static_bp
from .feeds import feeds_bp
from .api import api_bp
from .pages import pages_bp

STOREFRONT_BLUEPRINTS = [errors_bp, static_bp, feeds_bp, api_bp, pages_bp]

__all__ = ['STOREFRONT_BLUEPRINTS', 'errors_bp', 'static_bp', 'feeds_bp', 'api_bp', 'pages_bp']
