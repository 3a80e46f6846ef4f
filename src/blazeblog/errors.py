"""Exceptions raised by the BlazeBlog API client."""

from typing import Optional


class BlazeBlogError(Exception):
    """Base class for all upstream API failures."""


class ApiError(BlazeBlogError):
    """The upstream API answered with a non-2xx status."""

    def __init__(self, status_code: int, reason: str = "", body: str = "", endpoint: Optional[str] = None):
        self.status_code = status_code
        self.reason = reason
        self.body = body
        self.endpoint = endpoint
        super().__init__(f"API Error: {status_code} - {reason}. Body: {body}")

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class ApiConnectionError(BlazeBlogError):
    """The upstream API could not be reached or timed out."""


class NotFoundError(BlazeBlogError):
    """A resource needed to complete the call does not exist upstream."""


class UnexpectedResponseError(BlazeBlogError):
    """The upstream API answered with a body of the wrong shape."""
