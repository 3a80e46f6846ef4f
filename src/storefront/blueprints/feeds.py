"""Blueprint for RSS feeds, sitemaps and robots.txt."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from flask import Blueprint, request, make_response, Response, render_template_string, g

from blazeblog.errors import BlazeBlogError
from common.base.logging_config import get_logger
from storefront.fanout import gather

logger = get_logger(__name__)

feeds_bp = Blueprint('feeds', __name__)

RSS_CONTENT_TYPE = 'application/rss+xml; charset=utf-8'
XML_CONTENT_TYPE = 'application/xml; charset=utf-8'
FEED_CACHE_CONTROL = 'public, max-age=3600, s-maxage=3600'
ROBOTS_CACHE_CONTROL = 'public, max-age=86400'
FALLBACK_FEED_SIZE = 20

RSS_TEMPLATE = '''<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom">
    <channel>
        <title>{{ title }}</title>
        <link>{{ link }}</link>
        <description>{{ description }}</description>
        <language>en-us</language>
        <lastBuildDate>{{ build_date }}</lastBuildDate>
        <atom:link href="{{ feed_link }}" rel="self" type="application/rss+xml" />
        {%- for item in items %}
        <item>
            <title>{{ item.title }}</title>
            <link>{{ item.link }}</link>
            <guid isPermaLink="true">{{ item.link }}</guid>
            {%- if item.pubDate %}
            <pubDate>{{ item.pubDate }}</pubDate>
            {%- endif %}
            <description>{{ item.description }}</description>
            {%- if item.category %}
            <category>{{ item.category }}</category>
            {%- endif %}
        </item>
        {%- endfor %}
    </channel>
</rss>'''

ERROR_FEED_TEMPLATE = '''<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
    <channel>
        <title>{{ title }}</title>
        <link>{{ link }}</link>
        <description>RSS feed temporarily unavailable</description>
    </channel>
</rss>'''

SITEMAP_TEMPLATE = '''<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
    <url>
        <loc>{{ base_url }}/</loc>
        <lastmod>{{ lastmod }}</lastmod>
        <changefreq>daily</changefreq>
        <priority>1.0</priority>
    </url>
</urlset>'''


def base_url() -> str:
    return request.url_root.rstrip('/')


def rfc822(value: Optional[str]) -> Optional[str]:
    """Convert an ISO timestamp to the RSS date format; None if it cannot be parsed."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).strftime('%a, %d %b %Y %H:%M:%S +0000')


def feed_items(posts: List[Dict[str, Any]], root: str) -> List[Dict[str, Any]]:
    items = []
    for post in posts:
        items.append({
            'title': post.get('title') or '(Untitled)',
            'link': f"{root}/{post['slug']}",
            'pubDate': rfc822(post.get('publishedAt')),
            'description': post.get('excerpt') or '',
            'category': (post.get('category') or {}).get('name'),
        })
    return items


def xml_response(body: str, content_type: str, status: int = 200,
                 cache_control: Optional[str] = FEED_CACHE_CONTROL) -> Response:
    response = make_response(body, status)
    response.headers['Content-Type'] = content_type
    if cache_control:
        response.headers['Cache-Control'] = cache_control
    return response


@feeds_bp.route('/rss.xml')
def rss_feed() -> Response:
    """
    RSS feed for the tenant.

    Served from the API when it has one, else built from the latest posts.

    :return: XML response containing the RSS feed
    """
    client = g.blazeblog
    try:
        return xml_response(client.get_rss(), RSS_CONTENT_TYPE)
    except BlazeBlogError as e:
        logger.warning(f"Upstream RSS unavailable, building feed from posts: {e}")

    root = base_url()
    try:
        results = gather(
            {
                'listing': lambda: client.get_posts(limit=FALLBACK_FEED_SIZE, page=1),
                'site_config': client.get_site_config,
            },
            fallbacks={'site_config': None}
        )
    except BlazeBlogError as e:
        logger.error(f"Could not build fallback RSS feed: {e}")
        body = render_template_string(ERROR_FEED_TEMPLATE, title='RSS Feed Error', link=root)
        return xml_response(body, RSS_CONTENT_TYPE, status=500, cache_control=None)

    site = (results['site_config'] or {}).get('siteConfig') or {}
    title = site.get('seoTitle') or site.get('h1') or 'BlazeBlog'
    body = render_template_string(
        RSS_TEMPLATE,
        title=title,
        link=root,
        description=site.get('homeMetaDescription') or f"Latest posts from {title}",
        build_date=datetime.now(timezone.utc).strftime('%a, %d %b %Y %H:%M:%S +0000'),
        feed_link=request.url,
        items=feed_items(results['listing']['posts'], root)
    )
    return xml_response(body, RSS_CONTENT_TYPE)


@feeds_bp.route('/sitemap.xml')
def sitemap() -> Response:
    """
    Sitemap for the tenant, as generated by the API.

    :return: XML response containing the sitemap
    """
    try:
        return xml_response(g.blazeblog.get_sitemap(), XML_CONTENT_TYPE)
    except BlazeBlogError as e:
        logger.error(f"Error fetching sitemap: {e}")

    body = render_template_string(
        SITEMAP_TEMPLATE,
        base_url=base_url(),
        lastmod=datetime.now(timezone.utc).strftime('%Y-%m-%d')
    )
    return xml_response(body, XML_CONTENT_TYPE, status=500, cache_control=None)


@feeds_bp.route('/robots.txt')
def robots_txt() -> Response:
    """
    Crawl rules pointing at this host's sitemap.

    :return: Plain text response
    """
    host = request.headers.get('Host')
    sitemap_url = f"https://{host}/sitemap.xml" if host else "/sitemap.xml"
    body = f"User-agent: *\nAllow: /\n\nSitemap: {sitemap_url}\n"
    response = make_response(body)
    response.headers['Content-Type'] = 'text/plain; charset=utf-8'
    response.headers['Cache-Control'] = ROBOTS_CACHE_CONTROL
    return response
