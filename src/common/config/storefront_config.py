"""Storefront configuration management: upstream API, tenant and theme settings."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Union

import tomli

import constants
from common.base.logging_config import get_logger
logger = get_logger(__name__)

# CSS font stacks for the font families the CMS lets tenants pick
DEFAULT_FONTS: Dict[str, str] = {
    "lora": "'Lora', serif",
    "inter": "'Inter', sans-serif",
    "roboto": "'Roboto', sans-serif",
    "poppins": "'Poppins', sans-serif",
    "merriweather": "'Merriweather', serif",
    "open_sans": "'Open Sans', sans-serif",
    "source_sans_3": "'Source Sans 3', sans-serif",
}

@dataclass
class ApiConfig:
    """Upstream BlazeBlog API settings."""
    base_url: str = constants.DEFAULT_API_BASE_URL
    tenant_slug: str = ""
    static_base_url: str = constants.DEFAULT_STATIC_BASE_URL
    views_collector_url: Optional[str] = None
    timeout: float = 10.0
    domain_override: Optional[str] = None

    def collector_url(self) -> str:
        """
        Get the view collector URL, falling back to the mode default.

        :return: Collector URL
        """
        return self.views_collector_url or constants.get_views_collector_url()

@dataclass
class ThemeSettings:
    """Fallback theme used when the site config does not pick one."""
    default_palette: str = "retro"
    default_font: str = "poppins"
    fallback_font: str = "lora"
    fonts: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_FONTS))

    def font_css(self, font_name: Optional[str]) -> str:
        """
        Map a configured font family name to a CSS font stack.

        :param font_name: Font family as configured in the CMS, e.g. "Open Sans"
        :return: CSS font-family value
        """
        key = (font_name or self.default_font).lower()
        key = "_".join(key.split())
        return self.fonts.get(key) or self.fonts.get(self.fallback_font, DEFAULT_FONTS["lora"])

class StorefrontConfigManager:
    """Loads storefront settings from TOML, then applies environment overrides."""

    ENV_OVERRIDES = {
        'BLAZEBLOG_API_BASE_URL': 'base_url',
        'BLAZEBLOG_TENANT_SLUG': 'tenant_slug',
        'BLAZEBLOG_DOMAIN': 'domain_override',
        'BLAZEBLOG_VIEWS_COLLECTOR_URL': 'views_collector_url',
    }

    def __init__(self, config_path: Union[str, Path]):
        """
        Initialize the manager with a configuration file.

        :param config_path: Path to TOML configuration file; a missing file means defaults
        """
        self.config_path = config_path
        self.api = ApiConfig()
        self.theme = ThemeSettings()
        self._load_config()
        self._apply_env_overrides()

    def _load_config(self) -> None:
        """Load and validate configuration from the TOML file."""
        if not os.path.exists(self.config_path):
            logger.info(f"No storefront config at {self.config_path}, using defaults")
            return

        try:
            logger.info(f"Loading storefront configuration from {self.config_path}")
            with open(self.config_path, 'rb') as f:
                config = tomli.load(f)
        except tomli.TOMLDecodeError as e:
            logger.error(f"Error parsing storefront configuration: {str(e)}")
            raise

        api_settings = config.get('api', {})
        self.api = ApiConfig(
            base_url=api_settings.get('base_url', constants.DEFAULT_API_BASE_URL),
            tenant_slug=api_settings.get('tenant_slug', ''),
            static_base_url=api_settings.get('static_base_url', constants.DEFAULT_STATIC_BASE_URL),
            views_collector_url=api_settings.get('views_collector_url'),
            timeout=float(api_settings.get('timeout', 10.0)),
            domain_override=api_settings.get('domain_override')
        )

        theme_settings = config.get('theme', {})
        fonts = dict(DEFAULT_FONTS)
        fonts.update(theme_settings.get('fonts', {}))
        self.theme = ThemeSettings(
            default_palette=theme_settings.get('default_palette', 'retro'),
            default_font=theme_settings.get('default_font', 'poppins'),
            fallback_font=theme_settings.get('fallback_font', 'lora'),
            fonts=fonts
        )

        self._validate_config()
        logger.info(f"Storefront configuration loaded: api={self.api.base_url}, tenant={self.api.tenant_slug or '(none)'}")

    def _validate_config(self) -> None:
        """Validate the loaded configuration for consistency."""
        if not self.api.base_url.startswith(('http://', 'https://')):
            raise ValueError(f"API base_url must be an http(s) URL, got '{self.api.base_url}'")
        if self.api.timeout <= 0:
            raise ValueError(f"API timeout must be positive, got {self.api.timeout}")
        if self.theme.fallback_font not in self.theme.fonts:
            raise ValueError(f"Fallback font '{self.theme.fallback_font}' has no CSS mapping")

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides to the API settings."""
        for env_name, attr in self.ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if value:
                logger.debug(f"Overriding api.{attr} from {env_name}")
                setattr(self.api, attr, value)

    def api_base_url(self) -> str:
        """
        Get the API base URL without a trailing slash.

        :return: Base URL
        """
        return self.api.base_url.rstrip('/')

# Default configuration file path
DEFAULT_CONFIG_PATH = Path(constants.CONFIG_DIR) / "storefront.toml"

# Global config manager instance
_storefront_config: Optional[StorefrontConfigManager] = None

def init_storefront_config(config_path: Optional[Union[str, Path]] = None) -> StorefrontConfigManager:
    """
    Initialize the global storefront configuration.

    :param config_path: Path to configuration file
    :return: Config manager instance
    """
    global _storefront_config
    config_path = config_path or DEFAULT_CONFIG_PATH
    logger.info(f"Initializing storefront config with path: {config_path}")
    _storefront_config = StorefrontConfigManager(config_path)
    return _storefront_config

def get_storefront_config() -> StorefrontConfigManager:
    """
    Get the global storefront configuration, loading defaults on first use.

    :return: Config manager instance
    """
    global _storefront_config
    if _storefront_config is None:
        logger.info("Storefront config not initialized, initializing with default path")
        _storefront_config = StorefrontConfigManager(DEFAULT_CONFIG_PATH)
    return _storefront_config
