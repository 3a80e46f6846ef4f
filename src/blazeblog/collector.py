"""Forwarding of page-view beacons to the BlazeBlog view collector."""

from typing import Optional

import requests

from blazeblog.errors import ApiConnectionError
from common.base.logging_config import get_logger

logger = get_logger(__name__)

# User agents whose page views are never forwarded
BOT_MARKERS = ('bot', 'spider', 'crawl', 'headlesschrome', 'phantomjs', 'puppeteer', 'pingdom')


def is_bot(user_agent: Optional[str]) -> bool:
    """
    Check a user agent against the bot and automation markers.

    :param user_agent: Raw ``User-Agent`` header
    :return: True if the view should not be counted
    """
    ua = (user_agent or '').lower()
    return any(marker in ua for marker in BOT_MARKERS)


def forward_view(collector_url: str, method: str, query_string: str = '', body: Optional[bytes] = None,
                 content_type: Optional[str] = None, origin_host: str = '', forwarded_for: str = '',
                 timeout: float = 5.0) -> requests.Response:
    """
    Relay a view beacon to the collector.

    :param collector_url: Collector endpoint
    :param method: HTTP method of the incoming beacon
    :param query_string: Raw query string of the incoming request, without ``?``
    :param body: Raw request body; dropped for GET and HEAD
    :param content_type: Incoming ``Content-Type``
    :param origin_host: Host the page view happened on
    :param forwarded_for: Client IP chain
    :param timeout: Request timeout in seconds
    :return: Collector response
    :raises ApiConnectionError: when the collector cannot be reached
    """
    method = method.upper()
    url = f"{collector_url}?{query_string}" if query_string else collector_url
    headers = {
        'x-origin-host': origin_host or '',
        'x-forwarded-for': forwarded_for or '',
    }
    if content_type:
        headers['content-type'] = content_type

    data = None if method in ('GET', 'HEAD') else body
    try:
        return requests.request(method, url, headers=headers, data=data, timeout=timeout)
    except requests.exceptions.RequestException as e:
        logger.error(f"Error forwarding view to collector: {e}")
        raise ApiConnectionError(f"Could not reach view collector: {e}") from e
