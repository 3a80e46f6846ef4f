"""Header navigation registry, filled by the ``@navigable`` decorator on page routes."""

from functools import wraps
from typing import Any, Callable, Dict, List, Optional

# endpoint -> link info; keyed by endpoint so a re-imported module replaces its links
_navigable_routes: Dict[str, Dict[str, Any]] = {}


def _blueprint_name(route_func: Callable) -> str:
    """Name of the ``*_bp`` blueprint defined next to the route, else the module's last part."""
    for attr, obj in getattr(route_func, '__globals__', {}).items():
        if attr.endswith('_bp') and hasattr(obj, 'name'):
            return obj.name
    return route_func.__module__.rsplit('.', 1)[-1]


def navigable(name: str, description: str = "", category: str = "main",
              order: int = 100, feature_flag: Optional[str] = None,
              blueprint: Optional[str] = None) -> Callable:
    """
    Register a parameterless route as a header link.

    :param name: Link text
    :param category: Link group; the layout renders ``main``
    :param order: Position within the group, lowest first
    :param feature_flag: Site-config flag that must be on for the link to show
    :param blueprint: Blueprint name when it cannot be found from the route's module
    """
    def decorator(route_func: Callable) -> Callable:
        endpoint = f"{blueprint or _blueprint_name(route_func)}.{route_func.__name__}"
        _navigable_routes[endpoint] = {
            'endpoint': endpoint,
            'name': name,
            'description': description,
            'category': category,
            'order': order,
            'feature_flag': feature_flag,
        }

        @wraps(route_func)
        def wrapped_func(*args: Any, **kwargs: Any) -> Any:
            return route_func(*args, **kwargs)

        return wrapped_func

    return decorator


def get_navigable_routes() -> List[Dict[str, Any]]:
    return sorted(_navigable_routes.values(), key=lambda route: route['order'])


def get_navigation_items(site_config: Optional[Dict[str, Any]] = None) -> Dict[str, List[Dict[str, Any]]]:
    """
    Links grouped by category, with routes whose feature flag is off left out.

    Without a site config every flagged route is hidden.
    """
    from flask import url_for

    flags = (site_config or {}).get('featureFlags') or {}
    groups: Dict[str, List[Dict[str, Any]]] = {'main': []}
    for route in get_navigable_routes():
        if route['feature_flag'] and not flags.get(route['feature_flag']):
            continue
        groups.setdefault(route['category'], []).append({
            'name': route['name'],
            'description': route['description'],
            'url': url_for(route['endpoint']),
            'order': route['order'],
        })
    return groups
