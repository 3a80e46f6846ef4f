"""Client for the BlazeBlog public content API."""

import json
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

import constants
from blazeblog.errors import (
    ApiConnectionError,
    ApiError,
    BlazeBlogError,
    NotFoundError,
    UnexpectedResponseError
)
from blazeblog.normalize import (
    empty_comments,
    normalize_comments,
    normalize_home,
    normalize_lead_form,
    normalize_post,
    normalize_post_list,
    normalize_related_posts,
    normalize_search,
    normalize_site_config,
    normalize_taxonomy,
    unwrap
)
from common.base.logging_config import get_logger
from common.config.storefront_config import StorefrontConfigManager, get_storefront_config

logger = get_logger(__name__)

# Static comment settings until the API exposes them per tenant
COMMENTS_CONFIG = {'enabled': True, 'allowUrls': True, 'allowNested': True, 'signUpMessage': None}


def _path(segment: Any) -> str:
    """Quote a slug or id for use as a single path segment."""
    return quote(str(segment), safe='')


class BlazeBlogClient:
    """
    Tenant-scoped client for the BlazeBlog public API.

    Every call identifies the tenant through the ``X-domain`` header and
    returns normalized data (see ``blazeblog.normalize``).
    """

    RSS_ENDPOINTS = ('/public/site/rss', '/public/rss', '/public/feed')
    HOME_FALLBACK_LIMIT = 9

    def __init__(self, base_url: str, tenant_slug: str = '', domain: Optional[str] = None,
                 static_base: str = constants.DEFAULT_STATIC_BASE_URL, timeout: float = 10.0,
                 session: Optional[requests.Session] = None):
        """
        Initialize the client.

        :param base_url: API root, e.g. ``https://api.blazeblog.co/api/v1``
        :param tenant_slug: Tenant slug from configuration
        :param domain: Host name that identifies the tenant upstream
        :param static_base: CDN base for relative image paths
        :param timeout: Per-request timeout in seconds
        :param session: Optional session to reuse
        """
        self.base_url = base_url.rstrip('/')
        self.tenant_slug = tenant_slug
        self.domain = domain
        self.static_base = static_base
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': 'BlazeBlog-Storefront/1.0'
        })

    def make_request(self, endpoint: str, method: str = 'GET', json: Optional[Dict[str, Any]] = None,
                     headers: Optional[Dict[str, str]] = None, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Call an API endpoint.

        :param endpoint: Path below the API root, starting with ``/``
        :param method: HTTP method
        :param json: Optional JSON body
        :param headers: Extra headers, override the defaults
        :param params: Optional query parameters
        :return: Decoded JSON, or the body text when upstream did not send JSON
        :raises ApiError: on a non-2xx status
        :raises ApiConnectionError: when the API cannot be reached
        """
        url = f"{self.base_url}{endpoint}"
        request_headers = {
            'X-domain': self.domain or '',
            'Content-Type': 'application/json',
            'X-public-site': 'true',
            'Cache-Control': 'no-store',
        }
        if headers:
            request_headers.update(headers)

        logger.debug(f"{method} {url} params={params} domain={self.domain}")
        try:
            response = self.session.request(
                method,
                url,
                headers=request_headers,
                json=json,
                params=params,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Error calling BlazeBlog API: {method} {endpoint}, error: {e}")
            raise ApiConnectionError(f"Could not reach {url}: {e}") from e

        if not response.ok:
            logger.error(f"BlazeBlog API returned status {response.status_code} for {method} {endpoint}")
            raise ApiError(response.status_code, response.reason, response.text, endpoint)

        return self._decode(response)

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        """Decode a JSON body, falling back to text for XML and plain responses."""
        content_type = response.headers.get('Content-Type', '')
        if 'json' in content_type:
            try:
                return response.json()
            except ValueError as e:
                raise UnexpectedResponseError(f"Invalid JSON from API: {e}") from e
        text = response.text
        if not text:
            return None
        if text.lstrip().startswith(('{', '[')):
            try:
                return json.loads(text)
            except ValueError:
                return text
        return text

    # --- posts ---

    def get_posts(self, limit: int = 10, page: int = 1, tags: Optional[List[str]] = None,
                  category: Optional[str] = None) -> Dict[str, Any]:
        """
        Get a page of posts, optionally filtered by category or tag.

        :param limit: Page size
        :param page: 1-based page number
        :param tags: Tag slugs; only the first one is used by the API
        :param category: Category slug, takes precedence over tags
        :return: Dict with ``posts``, ``meta``, ``pagination`` and ``seo``
        """
        limit = max(1, limit)
        page = max(1, page)
        if category:
            endpoint = f"/public/posts/category/{_path(category)}"
        elif tags:
            endpoint = f"/public/posts/tag/{_path(tags[0])}"
        else:
            endpoint = "/public/posts"

        response = self.make_request(endpoint, params={'page': page, 'limit': limit})
        return normalize_post_list(response, page, limit, self.static_base)

    def get_posts_by_author(self, slug: str, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        """
        Get a page of posts written by one author.

        :param slug: Author username
        :param page: 1-based page number
        :param limit: Page size
        :return: Dict with ``posts``, ``meta``, ``pagination`` and ``seo``
        """
        limit = max(1, limit)
        page = max(1, page)
        response = self.make_request(f"/public/posts/author/{_path(slug)}",
                                     params={'page': page, 'limit': limit})
        return normalize_post_list(response, page, limit, self.static_base)

    def get_post(self, slug: str, include_related: bool = True) -> Optional[Dict[str, Any]]:
        """
        Get a single post.

        :param slug: Post slug
        :param include_related: Ask the API to embed related posts
        :return: ``{"post": ...}``, or None if the post could not be loaded
        """
        params = {'include': 'related'} if include_related else None
        try:
            response = self.make_request(f"/public/posts/{_path(slug)}", params=params)
            return {'post': normalize_post(response, self.static_base)}
        except BlazeBlogError as e:
            logger.error(f"Error fetching post {slug}: {e}")
            return None

    def get_related_posts(self, slug: str, limit: int = 3) -> Dict[str, Any]:
        """
        Get posts related to a post.

        :param slug: Post slug
        :param limit: Maximum number of posts
        :return: ``{"posts": [...]}``, empty on failure
        """
        try:
            response = self.make_request(f"/public/posts/{_path(slug)}/related")
            return {'posts': normalize_related_posts(response, limit, self.static_base)}
        except BlazeBlogError as e:
            logger.error(f"Error fetching related posts for {slug}: {e}")
            return {'posts': []}

    def get_home_with_tags(self) -> Dict[str, Any]:
        """
        Get the home page payload.

        Falls back to the plain latest-posts listing when the home endpoint
        is not available for this tenant.

        :return: Dict with ``latest``, ``tags`` (tag groups) and ``seo``
        """
        try:
            response = self.make_request('/public/home')
            return normalize_home(response, self.static_base)
        except BlazeBlogError as e:
            logger.warning(f"Home endpoint unavailable, falling back to latest posts: {e}")

        listing = self.get_posts(limit=self.HOME_FALLBACK_LIMIT, page=1)
        return {'latest': listing['posts'], 'tags': [], 'seo': listing['seo']}

    def search_posts(self, query: str) -> Dict[str, Any]:
        """
        Full-text search.

        :param query: Search terms
        :return: Dict with ``posts``, ``categories`` and ``tags``
        """
        if not query or not query.strip():
            return {'posts': [], 'categories': [], 'tags': []}
        response = self.make_request('/public/search', params={'q': query})
        return normalize_search(response, self.static_base)

    # --- taxonomies ---

    def get_tags(self) -> Dict[str, Any]:
        """Get popular tags as ``{"tags": [...]}``."""
        response = self.make_request('/public/tags', params={'popular': 'true'})
        return {'tags': normalize_taxonomy(response, 'tags')}

    def get_categories(self) -> Dict[str, Any]:
        """Get categories as ``{"categories": [...]}``."""
        response = self.make_request('/public/categories')
        return {'categories': normalize_taxonomy(response, 'categories')}

    def get_authors(self) -> Dict[str, Any]:
        """Get authors as ``{"authors": [...]}``."""
        response = self.make_request('/public/authors')
        return {'authors': normalize_taxonomy(response, 'authors')}

    # --- comments ---

    def _require_post(self, slug: str) -> Dict[str, Any]:
        result = self.get_post(slug, include_related=False)
        if not result or not result.get('post'):
            raise NotFoundError(f"Post not found: {slug}")
        return result['post']

    @staticmethod
    def _comment_payload(author_name: str, author_email: str, content: str,
                         author_website: Optional[str] = None,
                         parent_comment_id: Optional[int] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            'authorName': author_name,
            'authorEmail': author_email,
            'content': content,
        }
        if author_website:
            payload['authorWebsite'] = author_website
        if parent_comment_id is not None:
            payload['parentCommentId'] = parent_comment_id
        return payload

    def get_comments(self, post_slug: str, page: int = 1, limit: int = 5) -> Dict[str, Any]:
        """
        Get a page of comments for a post.

        :param post_slug: Post slug
        :param page: 1-based page number
        :param limit: Page size
        :return: Dict with ``comments``, ``meta`` and ``config``; empty on failure
        """
        try:
            post = self._require_post(post_slug)
            response = self.make_request(f"/public/posts/{_path(post['id'])}/comments",
                                         params={'page': page, 'limit': limit})
            result = normalize_comments(response, page, limit)
        except BlazeBlogError as e:
            logger.warning(f"Could not load comments for {post_slug}: {e}")
            result = empty_comments(limit)
        result['config'] = dict(COMMENTS_CONFIG)
        return result

    def create_comment(self, post_slug: str, author_name: str, author_email: str, content: str,
                       author_website: Optional[str] = None,
                       parent_comment_id: Optional[int] = None) -> Dict[str, Any]:
        """
        Post a comment on a post identified by slug.

        :raises NotFoundError: if the post does not exist
        :return: Upstream response body
        """
        post = self._require_post(post_slug)
        return self.create_comment_by_post_id(post['id'], author_name, author_email, content,
                                              author_website, parent_comment_id)

    def create_comment_by_post_id(self, post_id: int, author_name: str, author_email: str, content: str,
                                  author_website: Optional[str] = None,
                                  parent_comment_id: Optional[int] = None) -> Dict[str, Any]:
        """
        Post a comment on a post identified by id.

        :return: Upstream response body
        """
        payload = self._comment_payload(author_name, author_email, content, author_website, parent_comment_id)
        logger.info(f"Creating comment on post {post_id}")
        return self.make_request(f"/public/posts/{_path(post_id)}/comments", method='POST', json=payload)

    # --- site ---

    def get_site_config(self) -> Dict[str, Any]:
        """Get the normalized tenant site config."""
        return normalize_site_config(self.make_request('/public/site-config'))

    def subscribe_to_newsletter(self, email: str, name: Optional[str] = None,
                                company: Optional[str] = None) -> Dict[str, Any]:
        """
        Subscribe an email address to the tenant newsletter.

        :return: Upstream response body
        """
        payload: Dict[str, Any] = {'email': email}
        if name:
            payload['name'] = name
        if company:
            payload['company'] = company
        return self.make_request('/public/newsletter/subscribe', method='POST', json=payload)

    def get_active_lead_form(self) -> Optional[Dict[str, Any]]:
        """
        Get the lead-capture form currently published for the tenant.

        :return: Normalized form, or None when there is none or the call fails
        """
        try:
            response = self.make_request('/public/lead-forms/active')
        except BlazeBlogError as e:
            logger.warning(f"Could not load active lead form: {e}")
            return None
        form = unwrap(response)
        if not isinstance(form, dict) or not form.get('id'):
            return None
        return normalize_lead_form(form)

    def submit_lead_form(self, form_id: str, values: Dict[str, Any],
                         meta: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Submit answers to a lead-capture form.

        :param form_id: Form id
        :param values: Answers keyed by field id
        :param meta: Submission metadata such as ``timeTaken`` and ``userAgent``
        :return: Upstream response body
        """
        payload = {'values': values}
        payload.update(meta or {})
        return self.make_request(f"/public/lead-forms/{_path(form_id)}/submit", method='POST', json=payload)

    def get_rss(self) -> str:
        """
        Get the tenant RSS feed from the first endpoint that serves one.

        :return: RSS XML
        :raises BlazeBlogError: the last error when no endpoint answered
        """
        last_error: Optional[BlazeBlogError] = None
        for endpoint in self.RSS_ENDPOINTS:
            try:
                body = self.make_request(endpoint, headers={'Accept': 'application/rss+xml, application/xml, text/xml'})
            except BlazeBlogError as e:
                logger.debug(f"RSS endpoint {endpoint} failed: {e}")
                last_error = e
                continue
            if isinstance(body, str) and body.strip():
                return body
            last_error = UnexpectedResponseError(f"RSS endpoint {endpoint} returned no XML")
        raise last_error or UnexpectedResponseError('No RSS content received')

    def get_sitemap(self) -> str:
        """
        Get the tenant sitemap.

        The API returns the XML itself, ``{"sitemap": xml}`` or
        ``{"sitemapUrl": url}`` pointing at a pre-generated file.

        :return: Sitemap XML
        """
        body = self.make_request('/public/site/sitemap', headers={'Accept': 'application/xml, text/xml'})
        if isinstance(body, str) and body.strip():
            return body

        data = unwrap(body)
        if isinstance(data, str) and data.strip():
            return data
        if isinstance(data, dict):
            if isinstance(data.get('sitemap'), str):
                return data['sitemap']
            if data.get('sitemapUrl'):
                return self._fetch_text(data['sitemapUrl'])
        raise UnexpectedResponseError('No sitemap content or URL found in response')

    def _fetch_text(self, url: str) -> str:
        """Fetch a document outside the API root, such as a pre-generated sitemap."""
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise ApiConnectionError(f"Could not reach {url}: {e}") from e
        if not response.ok:
            raise ApiError(response.status_code, response.reason, response.text, url)
        return response.text


def client_for_host(host: Optional[str] = None, nginx_domain: Optional[str] = None,
                    config: Optional[StorefrontConfigManager] = None) -> BlazeBlogClient:
    """
    Build a client for the tenant a request is addressed to.

    :param host: Request ``Host`` header
    :param nginx_domain: ``X-Nginx-Domain`` header set by the proxy, if any
    :param config: Storefront config, defaults to the global one
    :return: Tenant-scoped client
    """
    config = config or get_storefront_config()
    domain = config.api.domain_override or host or nginx_domain
    return BlazeBlogClient(
        config.api_base_url(),
        config.api.tenant_slug,
        domain=domain,
        static_base=config.api.static_base_url,
        timeout=config.api.timeout
    )
