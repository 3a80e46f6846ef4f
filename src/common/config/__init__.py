"""Configuration management for the storefront."""

from .storefront_config import (
    ApiConfig,
    ThemeSettings,
    StorefrontConfigManager,
    init_storefront_config,
    get_storefront_config
)

__all__ = [
    'ApiConfig', 'ThemeSettings', 'StorefrontConfigManager',
    'init_storefront_config', 'get_storefront_config'
]
