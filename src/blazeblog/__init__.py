"""BlazeBlog - client and response normalization for the BlazeBlog public API."""

from .client import BlazeBlogClient, client_for_host
from .errors import (
    BlazeBlogError,
    ApiError,
    ApiConnectionError,
    NotFoundError,
    UnexpectedResponseError
)

__all__ = [
    'BlazeBlogClient', 'client_for_host',
    'BlazeBlogError', 'ApiError', 'ApiConnectionError', 'NotFoundError', 'UnexpectedResponseError'
]
