import os
import tempfile
import unittest
from unittest.mock import patch

import tomli
import tomli_w

import constants
from common.config.storefront_config import (
    DEFAULT_FONTS,
    StorefrontConfigManager,
    ThemeSettings,
    get_storefront_config,
    init_storefront_config,
)


class StorefrontConfigTestBase(unittest.TestCase):
    """Base class for storefront config tests with a temporary TOML file."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.config_path = os.path.join(self.temp_dir, "storefront.toml")
        self.env = patch.dict(os.environ, {}, clear=False)
        self.env.start()
        for name in StorefrontConfigManager.ENV_OVERRIDES:
            os.environ.pop(name, None)

    def tearDown(self):
        self.env.stop()
        try:
            if os.path.exists(self.config_path):
                os.unlink(self.config_path)
            os.rmdir(self.temp_dir)
        except OSError:
            pass

    def write_config(self, config):
        with open(self.config_path, "wb") as f:
            tomli_w.dump(config, f)


class TestStorefrontConfigManager(StorefrontConfigTestBase):
    """Test loading, validation and overrides."""

    def test_missing_file_uses_defaults(self):
        manager = StorefrontConfigManager(os.path.join(self.temp_dir, "absent.toml"))
        self.assertEqual(manager.api.base_url, constants.DEFAULT_API_BASE_URL)
        self.assertEqual(manager.api.static_base_url, constants.DEFAULT_STATIC_BASE_URL)
        self.assertEqual(manager.theme.default_palette, "retro")

    def test_load_values(self):
        self.write_config({
            "api": {
                "base_url": "https://api.example.com/api/v1/",
                "tenant_slug": "acme",
                "timeout": 4,
                "views_collector_url": "https://collector.example.com/collect",
            },
            "theme": {
                "default_palette": "dark",
                "fonts": {"comic_neue": "'Comic Neue', cursive"},
            },
        })
        manager = StorefrontConfigManager(self.config_path)

        self.assertEqual(manager.api_base_url(), "https://api.example.com/api/v1")
        self.assertEqual(manager.api.tenant_slug, "acme")
        self.assertEqual(manager.api.timeout, 4.0)
        self.assertEqual(manager.api.collector_url(), "https://collector.example.com/collect")
        self.assertEqual(manager.theme.default_palette, "dark")
        self.assertEqual(manager.theme.font_css("Comic Neue"), "'Comic Neue', cursive")
        self.assertEqual(manager.theme.font_css("Inter"), DEFAULT_FONTS["inter"])

    def test_invalid_base_url(self):
        self.write_config({"api": {"base_url": "ftp://api.example.com"}})
        with self.assertRaises(ValueError):
            StorefrontConfigManager(self.config_path)

    def test_invalid_timeout(self):
        self.write_config({"api": {"timeout": 0}})
        with self.assertRaises(ValueError):
            StorefrontConfigManager(self.config_path)

    def test_unknown_fallback_font(self):
        self.write_config({"theme": {"fallback_font": "wingdings"}})
        with self.assertRaises(ValueError):
            StorefrontConfigManager(self.config_path)

    def test_malformed_toml(self):
        with open(self.config_path, "w") as f:
            f.write("[api\nbase_url = ")
        with self.assertRaises(tomli.TOMLDecodeError):
            StorefrontConfigManager(self.config_path)

    def test_env_overrides(self):
        self.write_config({"api": {"base_url": "https://api.example.com/api/v1", "tenant_slug": "acme"}})
        os.environ["BLAZEBLOG_API_BASE_URL"] = "https://staging.example.com/api/v1"
        os.environ["BLAZEBLOG_DOMAIN"] = "localhost:3000"

        manager = StorefrontConfigManager(self.config_path)

        self.assertEqual(manager.api.base_url, "https://staging.example.com/api/v1")
        self.assertEqual(manager.api.domain_override, "localhost:3000")
        self.assertEqual(manager.api.tenant_slug, "acme")

    @patch.dict(os.environ, {"FLASK_ENV": "development"})
    def test_collector_defaults_by_mode(self):
        manager = StorefrontConfigManager(os.path.join(self.temp_dir, "absent.toml"))
        self.assertEqual(manager.api.collector_url(), constants.DEV_VIEWS_COLLECTOR_URL)


class TestThemeSettings(unittest.TestCase):
    """Test font name to CSS mapping."""

    def test_font_names(self):
        theme = ThemeSettings()
        self.assertEqual(theme.font_css("Open Sans"), DEFAULT_FONTS["open_sans"])
        self.assertEqual(theme.font_css("Source Sans 3"), DEFAULT_FONTS["source_sans_3"])
        self.assertEqual(theme.font_css(None), DEFAULT_FONTS["poppins"])
        self.assertEqual(theme.font_css("Papyrus"), DEFAULT_FONTS["lora"])


class TestGlobalConfig(StorefrontConfigTestBase):
    """Test the module-level init/get pair."""

    def test_init_then_get(self):
        self.write_config({"api": {"tenant_slug": "globex"}})
        manager = init_storefront_config(self.config_path)
        self.assertIs(get_storefront_config(), manager)
        self.assertEqual(get_storefront_config().api.tenant_slug, "globex")


if __name__ == '__main__':
    unittest.main()
