"""Blueprint for the server-rendered blog pages."""

from typing import Any, Callable, Dict, Optional

from flask import Blueprint, render_template, request, g, abort
from flask.typing import ResponseReturnValue

from blazeblog.normalize import humanize_slug
from common.base.logging_config import get_logger
from storefront.decorators import navigable
from storefront.fanout import gather
from storefront.presenters import blog_posting_json_ld, hero_segment, post_images, tag_cloud

logger = get_logger(__name__)

pages_bp = Blueprint('pages', __name__)

POSTS_PER_PAGE = 9


def fetch_with_site_config(calls: Dict[str, Callable[[], Any]],
                           fallbacks: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Run the page's upstream calls alongside the site config fetch.

    The site config may fail; it then comes back as None and the page
    renders the maintenance screen.

    :param calls: Page-specific upstream calls
    :param fallbacks: Fallback values for calls that may fail
    :return: Results keyed like ``calls``, plus ``site_config``
    """
    calls = dict(calls)
    calls['site_config'] = g.blazeblog.get_site_config
    fallbacks = dict(fallbacks or {})
    fallbacks['site_config'] = None

    results = gather(calls, fallbacks)
    g.site_config = results['site_config']
    return results


def site_unavailable() -> bool:
    """Whether the current tenant must be shown the maintenance page."""
    site_config = g.get('site_config')
    if not site_config:
        return True
    return bool(site_config['featureFlags'].get('maintenanceMode'))


def maintenance_page() -> ResponseReturnValue:
    return render_template('maintenance.html'), 503


def require_flag(flag: str) -> None:
    """Abort with 404 when the tenant has not enabled a page."""
    if not g.site_config['featureFlags'].get(flag):
        abort(404)


def current_page() -> int:
    return max(1, request.args.get('page', 1, type=int) or 1)


def seo_meta(seo: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return (seo or {}).get('meta') or {}


@pages_bp.route('/')
@navigable(name="Home", order=0)
def home() -> ResponseReturnValue:
    """Home page: latest posts and posts grouped by popular tags."""
    results = fetch_with_site_config(
        {'home': g.blazeblog.get_home_with_tags},
        fallbacks={'home': None}
    )
    if site_unavailable():
        return maintenance_page()

    home_data = results['home']
    if home_data is None:
        return render_template('home.html', error="Could not fetch posts", latest=[], tag_groups=[],
                               active_tag='latest', seo=None, hero=None)

    active_tag = request.args.get('tag', 'latest')
    tag_groups = home_data['tags']
    if active_tag != 'latest' and not any(group['slug'] == active_tag for group in tag_groups):
        active_tag = 'latest'

    return render_template(
        'home.html',
        error=None,
        latest=home_data['latest'],
        tag_groups=tag_groups,
        active_tag=active_tag,
        seo=home_data['seo'],
        hero=hero_segment(g.site_config)
    )


@pages_bp.route('/<string:slug>')
def post(slug: str) -> ResponseReturnValue:
    """
    Single post page.

    :param slug: Post slug
    """
    client = g.blazeblog
    results = fetch_with_site_config({'post': lambda: client.get_post(slug)})
    if site_unavailable():
        return maintenance_page()

    if not results['post']:
        abort(404)
    post_data = results['post']['post']

    related = client.get_related_posts(slug)['posts'] or post_data['relatedPosts']

    return render_template(
        'post.html',
        post=post_data,
        related_posts=related,
        images=post_images(post_data, client.static_base),
        json_ld=blog_posting_json_ld(post_data, g.site_config)
    )


@pages_bp.route('/category/<string:slug>')
def category(slug: str) -> ResponseReturnValue:
    """
    Posts in a category, paginated.

    :param slug: Category slug
    """
    page = current_page()
    client = g.blazeblog
    results = fetch_with_site_config(
        {'listing': lambda: client.get_posts(limit=POSTS_PER_PAGE, page=page, category=slug)},
        fallbacks={'listing': None}
    )
    if site_unavailable():
        return maintenance_page()
    listing = results['listing']
    if listing is None:
        abort(404)

    name = humanize_slug(slug)
    if listing['posts'] and listing['posts'][0].get('category'):
        name = listing['posts'][0]['category'].get('name') or name

    return render_template(
        'listing.html',
        heading=name,
        kind='category',
        slug=slug,
        posts=listing['posts'],
        pagination=listing['pagination'],
        seo=listing['seo']
    )


@pages_bp.route('/tag/<string:slug>')
def tag(slug: str) -> ResponseReturnValue:
    """
    Posts carrying a tag, paginated.

    :param slug: Tag slug
    """
    page = current_page()
    client = g.blazeblog
    results = fetch_with_site_config(
        {'listing': lambda: client.get_posts(limit=POSTS_PER_PAGE, page=page, tags=[slug])},
        fallbacks={'listing': None}
    )
    if site_unavailable():
        return maintenance_page()
    listing = results['listing']
    if listing is None:
        abort(404)

    name = humanize_slug(slug)
    if listing['posts']:
        for post_tag in listing['posts'][0]['tags']:
            if post_tag.get('slug') == slug and post_tag.get('name'):
                name = post_tag['name']
                break

    return render_template(
        'listing.html',
        heading=name,
        kind='tag',
        slug=slug,
        posts=listing['posts'],
        pagination=listing['pagination'],
        seo=listing['seo']
    )


@pages_bp.route('/author/<string:slug>')
def author(slug: str) -> ResponseReturnValue:
    """
    Posts by one author, paginated.

    :param slug: Author username
    """
    page = current_page()
    client = g.blazeblog
    results = fetch_with_site_config(
        {'listing': lambda: client.get_posts_by_author(slug, page=page, limit=POSTS_PER_PAGE)},
        fallbacks={'listing': None}
    )
    if site_unavailable():
        return maintenance_page()
    require_flag('enableAuthorsPage')
    listing = results['listing']
    if listing is None:
        abort(404)

    meta = seo_meta(listing['seo'])
    heading = meta.get('title') or f"Posts by {humanize_slug(slug)}"

    return render_template(
        'listing.html',
        heading=heading,
        kind='author',
        slug=slug,
        posts=listing['posts'],
        pagination=listing['pagination'],
        seo=listing['seo']
    )


@pages_bp.route('/authors')
@navigable(name="Authors", order=40, feature_flag='enableAuthorsPage')
def authors() -> ResponseReturnValue:
    """Author directory."""
    results = fetch_with_site_config(
        {'authors': g.blazeblog.get_authors},
        fallbacks={'authors': {'authors': []}}
    )
    if site_unavailable():
        return maintenance_page()
    require_flag('enableAuthorsPage')
    return render_template('authors.html', authors=results['authors']['authors'])


@pages_bp.route('/categories')
@navigable(name="Categories", order=20, feature_flag='enableCategoriesPage')
def categories() -> ResponseReturnValue:
    """Category directory."""
    results = fetch_with_site_config(
        {'categories': g.blazeblog.get_categories},
        fallbacks={'categories': {'categories': []}}
    )
    if site_unavailable():
        return maintenance_page()
    require_flag('enableCategoriesPage')
    return render_template('categories.html', categories=results['categories']['categories'])


@pages_bp.route('/tags')
@navigable(name="Tags", order=30, feature_flag='enableTagsPage')
def tags() -> ResponseReturnValue:
    """Tag cloud."""
    results = fetch_with_site_config(
        {'tags': g.blazeblog.get_tags},
        fallbacks={'tags': {'tags': []}}
    )
    if site_unavailable():
        return maintenance_page()
    require_flag('enableTagsPage')
    return render_template('tags.html', tags=tag_cloud(results['tags']['tags']))


@pages_bp.route('/search')
@navigable(name="Search", order=50)
def search() -> ResponseReturnValue:
    """Search results page; without a query it only shows the search box."""
    query = request.args.get('q', '').strip()
    client = g.blazeblog
    calls: Dict[str, Callable[[], Any]] = {}
    if query:
        calls['results'] = lambda: client.search_posts(query)

    results = fetch_with_site_config(calls, fallbacks={'results': None})
    if site_unavailable():
        return maintenance_page()

    error = None
    posts = []
    if query:
        if results['results'] is None:
            error = "Search is unavailable right now. Please try again later."
        else:
            posts = results['results']['posts']

    return render_template('search.html', query=query, posts=posts, error=error)
