"""Tests for RSS, sitemap and robots.txt."""

import unittest
from unittest.mock import patch

from blazeblog.client import BlazeBlogClient
from blazeblog.errors import ApiConnectionError, ApiError
from blazeblog.normalize import normalize_post_list, normalize_site_config
from storefront.blueprints.feeds import rfc822
from storefront.server import create_app


class FeedTestBase(unittest.TestCase):
    """App with upstream calls patched on the client class."""

    def setUp(self):
        self.app = create_app(testing=True)
        self.app.config.update({
            'TESTING': True,
            'SERVER_NAME': 'blog.example.com',
        })
        self.client = self.app.test_client()

    def patch_client(self, name, **kwargs):
        patcher = patch.object(BlazeBlogClient, name, **kwargs)
        mock = patcher.start()
        self.addCleanup(patcher.stop)
        return mock


class TestRssFeed(FeedTestBase):
    """Test the RSS feed and its fallbacks."""

    def test_upstream_feed(self):
        self.patch_client('get_rss', return_value='<rss version="2.0"><channel/></rss>')
        response = self.client.get('/rss.xml')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers['Content-Type'], 'application/rss+xml; charset=utf-8')
        self.assertEqual(response.headers['Cache-Control'], 'public, max-age=3600, s-maxage=3600')
        self.assertEqual(response.data, b'<rss version="2.0"><channel/></rss>')

    def test_built_from_posts(self):
        self.patch_client('get_rss', side_effect=ApiError(404, 'Not Found'))
        posts = self.patch_client('get_posts', return_value=normalize_post_list([
            {'id': 1, 'title': 'Fish & Chips', 'slug': 'fish-chips', 'excerpt': 'Crispy',
             'publishedAt': '2024-01-05T10:00:00Z', 'category': {'name': 'Food'}},
        ]))
        self.patch_client('get_site_config', return_value=normalize_site_config({
            'siteConfig': {'seoTitle': 'Acme Blog', 'homeMetaDescription': 'News from Acme'},
        }))
        response = self.client.get('/rss.xml')

        self.assertEqual(response.status_code, 200)
        body = response.data.decode('utf-8')
        self.assertIn('<title>Acme Blog</title>', body)
        self.assertIn('<description>News from Acme</description>', body)
        self.assertIn('<title>Fish &amp; Chips</title>', body)
        self.assertIn('<link>http://blog.example.com/fish-chips</link>', body)
        self.assertIn('<pubDate>Fri, 05 Jan 2024 10:00:00 +0000</pubDate>', body)
        self.assertIn('<category>Food</category>', body)
        posts.assert_called_once_with(limit=20, page=1)

    def test_built_without_site_config(self):
        self.patch_client('get_rss', side_effect=ApiError(404, 'Not Found'))
        self.patch_client('get_posts', return_value=normalize_post_list([]))
        self.patch_client('get_site_config', side_effect=ApiConnectionError("down"))
        response = self.client.get('/rss.xml')

        self.assertEqual(response.status_code, 200)
        self.assertIn(b'<title>BlazeBlog</title>', response.data)

    def test_error_feed(self):
        self.patch_client('get_rss', side_effect=ApiError(404, 'Not Found'))
        self.patch_client('get_posts', side_effect=ApiConnectionError("down"))
        self.patch_client('get_site_config', return_value=normalize_site_config({}))
        response = self.client.get('/rss.xml')

        self.assertEqual(response.status_code, 500)
        self.assertIn(b'RSS feed temporarily unavailable', response.data)
        self.assertNotIn('Cache-Control', response.headers)

    def test_rfc822(self):
        self.assertEqual(rfc822('2024-01-05T10:00:00+02:00'), 'Fri, 05 Jan 2024 08:00:00 +0000')
        self.assertEqual(rfc822('2024-01-05'), 'Fri, 05 Jan 2024 00:00:00 +0000')
        self.assertIsNone(rfc822('yesterday'))
        self.assertIsNone(rfc822(None))


class TestSitemap(FeedTestBase):
    """Test the sitemap."""

    def test_upstream_sitemap(self):
        self.patch_client('get_sitemap', return_value='<urlset>api</urlset>')
        response = self.client.get('/sitemap.xml')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers['Content-Type'], 'application/xml; charset=utf-8')
        self.assertEqual(response.data, b'<urlset>api</urlset>')

    def test_fallback_sitemap(self):
        self.patch_client('get_sitemap', side_effect=ApiConnectionError("down"))
        response = self.client.get('/sitemap.xml')

        self.assertEqual(response.status_code, 500)
        self.assertIn(b'<loc>http://blog.example.com/</loc>', response.data)


class TestRobots(FeedTestBase):
    """Test robots.txt."""

    def test_points_at_sitemap(self):
        response = self.client.get('/robots.txt')

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.headers['Content-Type'].startswith('text/plain'))
        self.assertEqual(response.headers['Cache-Control'], 'public, max-age=86400')
        self.assertEqual(response.data.decode('utf-8'),
                         "User-agent: *\nAllow: /\n\nSitemap: https://blog.example.com/sitemap.xml\n")


if __name__ == '__main__':
    unittest.main()
