"""Web decorators for navigation."""

from .navigation import navigable, get_navigation_items, get_navigable_routes

__all__ = ['navigable', 'get_navigation_items', 'get_navigable_routes']
