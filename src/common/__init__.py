"""Common - Shared functionality across storefront components."""

# Import key subpackages for easy access
from . import base
from . import config

__all__ = ["base", "config"]
