"""Tests for the BlazeBlog API client."""

import json
import unittest
from unittest.mock import Mock, patch

import requests

from blazeblog.client import BlazeBlogClient, client_for_host
from blazeblog.errors import ApiConnectionError, ApiError, NotFoundError, UnexpectedResponseError

BASE_URL = "https://api.example.com/api/v1"
STATIC = "https://static.example.com/blazeblog"


def make_response(status_code=200, body=None, text=None, content_type='application/json'):
    """Build a stand-in for ``requests.Response``."""
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.reason = 'OK' if response.ok else 'Error'
    response.headers = {'Content-Type': content_type} if content_type else {}
    if text is None:
        text = json.dumps(body) if body is not None else ''
    response.text = text
    response.json = Mock(side_effect=lambda: json.loads(text))
    return response


class ClientTestBase(unittest.TestCase):
    """Client wired to a mocked session."""

    def setUp(self):
        self.session = Mock()
        self.session.headers = {}
        self.client = BlazeBlogClient(BASE_URL, 'tenant', domain='blog.example.com',
                                      static_base=STATIC, session=self.session)

    def respond(self, *responses):
        self.session.request.side_effect = list(responses)

    def called_urls(self):
        return [call.args[1] for call in self.session.request.call_args_list]


class TestMakeRequest(ClientTestBase):
    """Test the shared request path."""

    def test_tenant_headers_sent(self):
        self.respond(make_response(body={'ok': True}))
        self.client.make_request('/public/posts', params={'page': 1})

        args, kwargs = self.session.request.call_args
        self.assertEqual(args, ('GET', f"{BASE_URL}/public/posts"))
        self.assertEqual(kwargs['headers']['X-domain'], 'blog.example.com')
        self.assertEqual(kwargs['headers']['X-public-site'], 'true')
        self.assertEqual(kwargs['headers']['Cache-Control'], 'no-store')
        self.assertEqual(kwargs['params'], {'page': 1})
        self.assertEqual(kwargs['timeout'], 10.0)

    def test_user_agent_set_on_session(self):
        self.assertEqual(self.session.headers['User-Agent'], 'BlazeBlog-Storefront/1.0')

    def test_non_2xx_raises_api_error(self):
        self.respond(make_response(status_code=404, body={'message': 'nope'}))
        with self.assertRaises(ApiError) as ctx:
            self.client.make_request('/public/missing')
        self.assertTrue(ctx.exception.is_not_found)
        self.assertEqual(ctx.exception.endpoint, '/public/missing')
        self.assertIn('nope', str(ctx.exception))

    def test_connection_failure(self):
        self.session.request.side_effect = requests.exceptions.ConnectionError("refused")
        with self.assertRaises(ApiConnectionError):
            self.client.make_request('/public/posts')

    def test_text_bodies(self):
        self.respond(make_response(text='<rss></rss>', content_type='application/rss+xml'))
        self.assertEqual(self.client.make_request('/public/rss'), '<rss></rss>')

    def test_json_without_content_type(self):
        self.respond(make_response(text='{"a": 1}', content_type='text/plain'))
        self.assertEqual(self.client.make_request('/public/x'), {'a': 1})

    def test_invalid_json(self):
        self.respond(make_response(text='{broken', content_type='application/json'))
        with self.assertRaises(UnexpectedResponseError):
            self.client.make_request('/public/x')

    def test_empty_body(self):
        self.respond(make_response(text='', content_type=None))
        self.assertIsNone(self.client.make_request('/public/x'))


class TestPosts(ClientTestBase):
    """Test post retrieval."""

    def test_get_posts_endpoints(self):
        listing = {'data': [{'id': 1, 'title': 'A', 'slug': 'a'}], 'meta': {'total': 1}}
        self.respond(make_response(body=listing), make_response(body=listing), make_response(body=listing))

        self.client.get_posts(limit=9, page=2)
        self.client.get_posts(category='news', tags=['ignored'])
        self.client.get_posts(tags=['python', 'flask'])

        self.assertEqual(self.called_urls(), [
            f"{BASE_URL}/public/posts",
            f"{BASE_URL}/public/posts/category/news",
            f"{BASE_URL}/public/posts/tag/python",
        ])
        first_kwargs = self.session.request.call_args_list[0].kwargs
        self.assertEqual(first_kwargs['params'], {'page': 2, 'limit': 9})

    def test_get_posts_clamps_paging(self):
        self.respond(make_response(body=[]))
        result = self.client.get_posts(limit=0, page=-3)
        self.assertEqual(self.session.request.call_args.kwargs['params'], {'page': 1, 'limit': 1})
        self.assertEqual(result['posts'], [])

    def test_slug_is_quoted(self):
        self.respond(make_response(body=[]))
        self.client.get_posts_by_author('ana/../x')
        self.assertEqual(self.called_urls(), [f"{BASE_URL}/public/posts/author/ana%2F..%2Fx"])

    def test_get_post(self):
        self.respond(make_response(body={'data': {'id': 1, 'title': 'Hello', 'slug': 'hello',
                                                  'featuredImage': '/a.png'}}))
        result = self.client.get_post('hello')

        self.assertEqual(result['post']['featuredImage'], f"{STATIC}/a.png")
        self.assertEqual(self.session.request.call_args.kwargs['params'], {'include': 'related'})

    def test_get_post_failure_returns_none(self):
        self.respond(make_response(status_code=404))
        self.assertIsNone(self.client.get_post('missing'))

    def test_related_posts_failure_is_empty(self):
        self.respond(make_response(status_code=500))
        self.assertEqual(self.client.get_related_posts('hello'), {'posts': []})

    def test_related_posts_limit(self):
        posts = [{'id': i, 'title': f"P{i}"} for i in range(1, 6)]
        self.respond(make_response(body={'data': posts}))
        self.assertEqual(len(self.client.get_related_posts('hello')['posts']), 3)

    def test_home_falls_back_to_latest(self):
        self.respond(
            make_response(status_code=404),
            make_response(body={'data': [{'id': 1, 'title': 'A', 'slug': 'a'}]})
        )
        home = self.client.get_home_with_tags()

        self.assertEqual([p['slug'] for p in home['latest']], ['a'])
        self.assertEqual(home['tags'], [])
        self.assertEqual(self.called_urls(), [f"{BASE_URL}/public/home", f"{BASE_URL}/public/posts"])
        self.assertEqual(self.session.request.call_args.kwargs['params'], {'page': 1, 'limit': 9})

    def test_blank_search_skips_request(self):
        self.assertEqual(self.client.search_posts('   '), {'posts': [], 'categories': [], 'tags': []})
        self.session.request.assert_not_called()

    def test_search(self):
        self.respond(make_response(body={'data': {'posts': [{'id': 1, 'title': 'Flask', 'slug': 'flask'}]}}))
        result = self.client.search_posts('flask')
        self.assertEqual(result['posts'][0]['slug'], 'flask')
        self.assertEqual(self.session.request.call_args.kwargs['params'], {'q': 'flask'})


class TestComments(ClientTestBase):
    """Test comment listing and creation."""

    def post_response(self):
        return make_response(body={'data': {'id': 42, 'title': 'Hello', 'slug': 'hello'}})

    def test_get_comments_resolves_post_id(self):
        self.respond(self.post_response(), make_response(body={'data': [{'id': 1, 'content': 'Nice'}]}))
        result = self.client.get_comments('hello', page=2, limit=5)

        self.assertEqual(self.called_urls()[1], f"{BASE_URL}/public/posts/42/comments")
        self.assertEqual(self.session.request.call_args.kwargs['params'], {'page': 2, 'limit': 5})
        self.assertEqual(result['comments'][0]['content'], 'Nice')
        self.assertTrue(result['config']['enabled'])

    def test_get_comments_missing_post(self):
        self.respond(make_response(status_code=404))
        result = self.client.get_comments('missing', page=3, limit=5)
        self.assertEqual(result['comments'], [])
        self.assertEqual(result['meta'], {'total': 0, 'page': 1, 'limit': 5, 'totalPages': 1})
        self.assertIn('config', result)

    def test_create_comment(self):
        self.respond(self.post_response(), make_response(status_code=201, body={'id': 7}))
        body = self.client.create_comment('hello', 'Ana', 'ana@example.com', 'Great post',
                                          author_website='https://ana.dev', parent_comment_id=3)

        self.assertEqual(body, {'id': 7})
        args, kwargs = self.session.request.call_args
        self.assertEqual(args, ('POST', f"{BASE_URL}/public/posts/42/comments"))
        self.assertEqual(kwargs['json'], {
            'authorName': 'Ana',
            'authorEmail': 'ana@example.com',
            'content': 'Great post',
            'authorWebsite': 'https://ana.dev',
            'parentCommentId': 3,
        })

    def test_create_comment_missing_post(self):
        self.respond(make_response(status_code=404))
        with self.assertRaises(NotFoundError):
            self.client.create_comment('missing', 'Ana', 'ana@example.com', 'Hi')

    def test_create_comment_by_id_omits_optional_fields(self):
        self.respond(make_response(status_code=201, body={'id': 8}))
        self.client.create_comment_by_post_id(42, 'Ana', 'ana@example.com', 'Hi')
        self.assertEqual(set(self.session.request.call_args.kwargs['json']),
                         {'authorName', 'authorEmail', 'content'})


class TestSite(ClientTestBase):
    """Test site-level calls."""

    def test_site_config(self):
        self.respond(make_response(body={'data': {'featureFlags': {'enableTagsPage': True}}}))
        config = self.client.get_site_config()
        self.assertTrue(config['featureFlags']['enableTagsPage'])
        self.assertFalse(config['featureFlags']['maintenanceMode'])

    def test_newsletter_payload(self):
        self.respond(make_response(status_code=201, body={'message': 'ok'}))
        self.client.subscribe_to_newsletter('ana@example.com', name='Ana')
        self.assertEqual(self.session.request.call_args.kwargs['json'], {'email': 'ana@example.com', 'name': 'Ana'})

    def test_active_lead_form(self):
        self.respond(make_response(body={'data': {'id': 'f1', 'steps': []}}))
        form = self.client.get_active_lead_form()
        self.assertEqual(form['id'], 'f1')
        self.assertEqual(form['steps'], [])

    def test_active_lead_form_none(self):
        self.respond(make_response(body={'data': None}))
        self.assertIsNone(self.client.get_active_lead_form())

    def test_active_lead_form_failure(self):
        self.respond(make_response(status_code=500))
        self.assertIsNone(self.client.get_active_lead_form())

    def test_submit_lead_form(self):
        self.respond(make_response(status_code=201, body={'ok': True}))
        self.client.submit_lead_form('f1', {'email': 'a@b.co'}, {'timeTaken': 12, 'userAgent': 'UA'})

        args, kwargs = self.session.request.call_args
        self.assertEqual(args, ('POST', f"{BASE_URL}/public/lead-forms/f1/submit"))
        self.assertEqual(kwargs['json'], {'values': {'email': 'a@b.co'}, 'timeTaken': 12, 'userAgent': 'UA'})

    def test_rss_tries_endpoints_in_order(self):
        self.respond(
            make_response(status_code=404),
            make_response(text='<rss>feed</rss>', content_type='application/rss+xml')
        )
        self.assertEqual(self.client.get_rss(), '<rss>feed</rss>')
        self.assertEqual(self.called_urls(), [f"{BASE_URL}/public/site/rss", f"{BASE_URL}/public/rss"])

    def test_rss_all_endpoints_fail(self):
        self.respond(make_response(status_code=404), make_response(status_code=404), make_response(status_code=500))
        with self.assertRaises(ApiError) as ctx:
            self.client.get_rss()
        self.assertEqual(ctx.exception.status_code, 500)

    def test_sitemap_xml_body(self):
        self.respond(make_response(text='<urlset/>', content_type='application/xml'))
        self.assertEqual(self.client.get_sitemap(), '<urlset/>')

    def test_sitemap_wrapped(self):
        self.respond(make_response(body={'data': {'sitemap': '<urlset>wrapped</urlset>'}}))
        self.assertEqual(self.client.get_sitemap(), '<urlset>wrapped</urlset>')

    def test_sitemap_url(self):
        self.respond(make_response(body={'sitemapUrl': 'https://cdn.example.com/sitemap.xml'}))
        self.session.get.return_value = make_response(text='<urlset>remote</urlset>', content_type='application/xml')

        self.assertEqual(self.client.get_sitemap(), '<urlset>remote</urlset>')
        self.session.get.assert_called_once_with('https://cdn.example.com/sitemap.xml', timeout=10.0)

    def test_sitemap_without_content(self):
        self.respond(make_response(body={'data': {}}))
        with self.assertRaises(UnexpectedResponseError):
            self.client.get_sitemap()


class TestClientForHost(unittest.TestCase):
    """Test tenant resolution from the request."""

    def make_config(self, domain_override=None):
        config = Mock()
        config.api_base_url.return_value = BASE_URL
        config.api.tenant_slug = 'tenant'
        config.api.domain_override = domain_override
        config.api.static_base_url = STATIC
        config.api.timeout = 3.0
        return config

    @patch('blazeblog.client.requests.Session')
    def test_host_header_wins_over_proxy_domain(self, _session):
        client = client_for_host('blog.example.com', 'proxy.example.com', config=self.make_config())
        self.assertEqual(client.domain, 'blog.example.com')
        self.assertEqual(client.timeout, 3.0)
        self.assertEqual(client.static_base, STATIC)

    @patch('blazeblog.client.requests.Session')
    def test_proxy_domain_used_without_host(self, _session):
        client = client_for_host(None, 'proxy.example.com', config=self.make_config())
        self.assertEqual(client.domain, 'proxy.example.com')

    @patch('blazeblog.client.requests.Session')
    def test_domain_override(self, _session):
        client = client_for_host('blog.example.com', config=self.make_config('localhost:3000'))
        self.assertEqual(client.domain, 'localhost:3000')


if __name__ == '__main__':
    unittest.main()
