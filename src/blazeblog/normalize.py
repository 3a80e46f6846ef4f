"""
Normalization of BlazeBlog API responses.

The public API has shipped several wrapping conventions over its versions:
bare lists, ``{"data": [...]}``, ``{"data": {"posts": [...]}}``, SEO objects
at the top level or inside ``data``, pagination metadata under different
keys. Every function here accepts any of those shapes for one logical
resource and returns a single internal shape. Upstream fields the storefront
does not know about are passed through untouched; optional fields the
templates rely on are always present.
"""

import html
import math
import re
from typing import Any, Dict, Iterable, List, Optional

import constants
from blazeblog.errors import UnexpectedResponseError

FEATURE_FLAG_DEFAULTS: Dict[str, bool] = {
    'enableTagsPage': False,
    'maintenanceMode': False,
    'enableAuthorsPage': False,
    'autoApproveComments': False,
    'enableCommentsReply': False,
    'enableCategoriesPage': False,
    'enableComments': False,
    'enableNewsletters': False,
}

SITE_TEXT_DEFAULTS: Dict[str, str] = {
    'h1': '',
    'logoPath': '',
    'seoTitle': '',
    'aboutUsContent': '',
    'homeMetaDescription': '',
}

WORDS_PER_MINUTE = 200

_SLUG_STRIP = re.compile(r'[^a-z0-9]+')
_TAG_PATTERN = re.compile(r'<[^>]+>')
_IMG_SRC_PATTERN = re.compile(r'<img\b[^>]*?\bsrc=["\']([^"\']+)["\']', re.IGNORECASE)


def unwrap(response: Any) -> Any:
    """
    Strip an optional ``data`` envelope.

    :param response: Decoded JSON body
    :return: ``response["data"]`` when present and not null, else the response itself
    """
    if isinstance(response, dict) and response.get('data') is not None:
        return response['data']
    return response


def slugify(title: Optional[str]) -> str:
    """Lowercase a title and collapse everything but letters and digits to dashes."""
    if not title:
        return ''
    return _SLUG_STRIP.sub('-', title.lower()).strip('-')


def humanize_slug(slug: str) -> str:
    """Turn ``web-dev`` into ``Web dev`` for headings when upstream gave no name."""
    if not slug:
        return ''
    return (slug[0].upper() + slug[1:]).replace('-', ' ')


def absolutize_image_url(url: Any, static_base: str = constants.DEFAULT_STATIC_BASE_URL) -> Optional[str]:
    """
    Resolve an upstream image path against the static CDN.

    :param url: Absolute URL, CDN-relative path, or nothing
    :param static_base: CDN base the relative paths live under
    :return: Absolute URL, or None when there is no usable image
    """
    if not url or not isinstance(url, str):
        return None
    if url.startswith(('http://', 'https://')):
        return url
    return f"{static_base.rstrip('/')}/{url.lstrip('/')}"


def estimate_reading_time(text: Optional[str]) -> int:
    """
    Estimate reading time in whole minutes.

    :param text: Post body, may contain HTML
    :return: Minutes at 200 words per minute, at least 1
    """
    if not text:
        return 1
    plain = html.unescape(_TAG_PATTERN.sub(' ', text))
    words = len(plain.split())
    return max(1, math.ceil(words / WORDS_PER_MINUTE))


def _extract_list(data: Any, *keys: str) -> List[Any]:
    """Find the list of records in ``data``, looking under each of ``keys`` in turn."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in keys:
            inner = data.get(key)
            if isinstance(inner, list):
                return inner
            if isinstance(inner, dict):
                found = _extract_list(unwrap(inner), *keys)
                if found:
                    return found
    return []


def first_number(mapping: Dict[str, Any], keys: Iterable[str]) -> Optional[int]:
    """First of ``keys`` holding a number or a digit string, as an int."""
    for key in keys:
        value = mapping.get(key)
        if isinstance(value, bool):
            continue
        if isinstance(value, (int, float)):
            return int(value)
        if isinstance(value, str) and value.isdigit():
            return int(value)
    return None


def normalize_post_tags(tags: Any) -> List[Dict[str, Any]]:
    """Tag objects pass through; bare tag names become ``{name, slug}``."""
    if not isinstance(tags, list):
        return []
    result = []
    for tag in tags:
        if isinstance(tag, dict):
            result.append(tag)
        elif isinstance(tag, str) and tag.strip():
            result.append({'name': tag.strip(), 'slug': slugify(tag)})
    return result


def normalize_post(raw: Any, static_base: str = constants.DEFAULT_STATIC_BASE_URL) -> Dict[str, Any]:
    """
    Normalize one post.

    :param raw: Post object, optionally wrapped in ``{"data": ...}``
    :param static_base: CDN base for relative image paths
    :return: Post dict with every upstream field plus the filled defaults
    :raises UnexpectedResponseError: if the body is not an object
    """
    post = unwrap(raw)
    if not isinstance(post, dict):
        raise UnexpectedResponseError(f"Expected a post object, got {type(post).__name__}")

    result = dict(post)

    slug = post.get('slug') or slugify(post.get('title')) or f"post-{post.get('id')}"
    featured_image = absolutize_image_url(post.get('featuredImage'), static_base)

    reading_time = post.get('readingTime')
    if isinstance(reading_time, bool) or not isinstance(reading_time, (int, float)) or reading_time <= 0:
        reading_time = estimate_reading_time(post.get('content') or post.get('excerpt'))

    user = post.get('user') if isinstance(post.get('user'), dict) else {}

    result.update({
        'slug': slug,
        'featuredImage': featured_image,
        'publishedAt': post.get('publishedAt') or post.get('createdAt'),
        'readingTime': reading_time,
        'user': user,
        'category': post.get('category') or None,
        'tags': normalize_post_tags(post.get('tags')),
        'description': post.get('excerpt'),
        'image': featured_image,
        'author': {
            'name': user.get('username'),
            'image': None,
        },
        'relatedPosts': normalize_related_posts(post.get('relatedPosts') or [], static_base=static_base),
    })
    return result


def normalize_related_posts(response: Any, limit: Optional[int] = None,
                            static_base: str = constants.DEFAULT_STATIC_BASE_URL) -> List[Dict[str, Any]]:
    """
    Normalize related posts.

    Items are either link rows ``{"relatedPost": {...}, "sortOrder": n}`` or
    bare posts. Entries without an id and title are dropped.

    :param response: Decoded related-posts body
    :param limit: Maximum number of posts to keep
    :param static_base: CDN base for relative image paths
    :return: List of normalized posts
    """
    posts = []
    for item in _extract_list(unwrap(response), 'relatedPosts', 'posts'):
        if not isinstance(item, dict):
            continue
        candidate = item.get('relatedPost') if 'relatedPost' in item else item
        if not isinstance(candidate, dict) or not candidate.get('id') or not candidate.get('title'):
            continue
        if limit is not None and len(posts) >= limit:
            break
        posts.append(normalize_post(candidate, static_base))
    return posts


def paginate(total: int, page: int, limit: int) -> Dict[str, Any]:
    """
    Compute pagination links for a page of results.

    :param total: Total number of items upstream
    :param page: Current 1-based page
    :param limit: Page size
    :return: Pagination dict with next/prev page numbers or None
    """
    total_pages = math.ceil(total / limit) if limit > 0 else 0
    return {
        'total': total,
        'limit': limit,
        'page': page,
        'totalPages': total_pages,
        'nextPage': page + 1 if page < total_pages else None,
        'prevPage': page - 1 if page > 1 else None,
    }


def normalize_post_list(response: Any, page: int = 1, limit: int = 10,
                        static_base: str = constants.DEFAULT_STATIC_BASE_URL) -> Dict[str, Any]:
    """
    Normalize any paginated post listing.

    :param response: Decoded listing body in any supported shape
    :param page: Page that was requested
    :param limit: Page size that was requested
    :param static_base: CDN base for relative image paths
    :return: Dict with ``posts``, ``meta``, ``pagination`` and ``seo``
    """
    data = unwrap(response)
    raw_posts = _extract_list(data, 'posts')
    posts = [normalize_post(p, static_base) for p in raw_posts if isinstance(p, dict)]

    meta_in = None
    if isinstance(response, dict) and isinstance(response.get('meta'), dict):
        meta_in = response['meta']
    elif isinstance(data, dict) and isinstance(data.get('meta'), dict):
        meta_in = data['meta']
    meta_in = meta_in or {}

    total = first_number(meta_in, ('total', 'totalItems', 'totalCount'))
    upstream_pages = None
    if total is None:
        total = len(posts)
        upstream_pages = first_number(meta_in, ('totalPages', 'pageCount'))

    pagination = paginate(total, page, limit)
    if upstream_pages is not None:
        pagination['totalPages'] = upstream_pages
        pagination['nextPage'] = page + 1 if page < upstream_pages else None

    meta = dict(meta_in)
    meta['total'] = total
    meta.setdefault('limit', limit)

    return {
        'posts': posts,
        'meta': meta,
        'pagination': pagination,
        'seo': normalize_seo(response),
    }


def normalize_site_config(response: Any) -> Dict[str, Any]:
    """
    Normalize the tenant site config.

    The config is unwrapped from ``data`` only when that envelope actually
    holds the feature flags; older API versions return it bare.

    :param response: Decoded site-config body
    :return: Site config with all known flags and text fields present
    :raises UnexpectedResponseError: if the body is not an object
    """
    config = response
    if isinstance(response, dict) and isinstance(response.get('data'), dict) \
            and 'featureFlags' in response['data']:
        config = response['data']
    if not isinstance(config, dict):
        raise UnexpectedResponseError(f"Expected a site config object, got {type(config).__name__}")

    result = dict(config)

    flags = dict(FEATURE_FLAG_DEFAULTS)
    if isinstance(config.get('featureFlags'), dict):
        flags.update(config['featureFlags'])
    result['featureFlags'] = flags

    site = dict(SITE_TEXT_DEFAULTS)
    if isinstance(config.get('siteConfig'), dict):
        site.update({k: v for k, v in config['siteConfig'].items() if v is not None})
    result['siteConfig'] = site

    result['analytics'] = config.get('analytics') if isinstance(config.get('analytics'), dict) else {}

    scripts = config.get('analyticsScripts')
    scripts = dict(scripts) if isinstance(scripts, dict) else {}
    if not isinstance(scripts.get('scripts'), list):
        scripts['scripts'] = []
    result['analyticsScripts'] = scripts

    links = config.get('headerNavigationLinks')
    result['headerNavigationLinks'] = links if isinstance(links, list) else []
    result['theme'] = config.get('theme') if isinstance(config.get('theme'), dict) else {}
    return result


def normalize_comment(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Copy a comment and normalize its nested replies."""
    comment = dict(raw)
    comment['replies'] = [normalize_comment(r) for r in (raw.get('replies') or []) if isinstance(r, dict)]
    return comment


def thread_comments(comments: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Nest a flat comment list into reply trees using ``parentCommentId``.

    Replies whose parent is not in the list stay at the top level.

    :param comments: Normalized comments, each with a ``replies`` list
    :return: Top-level comments
    """
    by_id = {c['id']: c for c in comments if c.get('id') is not None}
    parents: Dict[Any, Any] = {}
    roots = []
    for comment in comments:
        parent_id = comment.get('parentCommentId')
        parent = by_id.get(parent_id) if parent_id is not None else None
        if parent is None or parent is comment or _creates_cycle(comment.get('id'), parent_id, parents):
            roots.append(comment)
            continue
        parents[comment.get('id')] = parent_id
        parent['replies'].append(comment)
    return roots


def _creates_cycle(comment_id: Any, parent_id: Any, parents: Dict[Any, Any]) -> bool:
    seen = set()
    current = parent_id
    while current is not None and current not in seen:
        if current == comment_id:
            return True
        seen.add(current)
        current = parents.get(current)
    return False


def normalize_comments(response: Any, page: int = 1, limit: int = 5) -> Dict[str, Any]:
    """
    Normalize a page of comments.

    :param response: Decoded comments body
    :param page: Page that was requested
    :param limit: Page size that was requested
    :return: Dict with threaded ``comments`` and ``meta``
    """
    data = unwrap(response)
    comments = [normalize_comment(c) for c in _extract_list(data, 'comments') if isinstance(c, dict)]
    if any(c.get('parentCommentId') is not None for c in comments):
        comments = thread_comments(comments)

    meta = None
    if isinstance(response, dict) and isinstance(response.get('meta'), dict):
        meta = dict(response['meta'])
    elif isinstance(data, dict) and isinstance(data.get('meta'), dict):
        meta = dict(data['meta'])
    if meta is None:
        meta = {'total': len(comments), 'page': page, 'limit': limit, 'totalPages': 1}
    return {'comments': comments, 'meta': meta}


def empty_comments(limit: int = 5) -> Dict[str, Any]:
    """Comments result used when the upstream call fails; always reports page 1."""
    return {'comments': [], 'meta': {'total': 0, 'page': 1, 'limit': limit, 'totalPages': 1}}


def normalize_search(response: Any, static_base: str = constants.DEFAULT_STATIC_BASE_URL) -> Dict[str, Any]:
    """
    Normalize search results.

    Posts may sit at ``data.posts.posts``, ``data.posts`` or be the whole body.

    :param response: Decoded search body
    :param static_base: CDN base for relative image paths
    :return: Dict with ``posts``, ``categories`` and ``tags``
    """
    data = unwrap(response)
    posts = [normalize_post(p, static_base) for p in _extract_list(data, 'posts') if isinstance(p, dict)]
    categories: List[Any] = []
    tags: List[Any] = []
    if isinstance(data, dict):
        categories = _extract_list(data.get('categories'), 'categories')
        tags = _extract_list(data.get('tags'), 'tags')
    return {'posts': posts, 'categories': categories, 'tags': tags}


def normalize_taxonomy(response: Any, key: str) -> List[Dict[str, Any]]:
    """
    Normalize a list of tags, categories or authors.

    :param response: Decoded body
    :param key: Name the list may be nested under, e.g. ``tags``
    :return: List of records; anything that is not a list becomes empty
    """
    return [item for item in _extract_list(unwrap(response), key) if isinstance(item, dict)]


def normalize_seo(response: Any) -> Optional[Dict[str, Any]]:
    """
    Pull the SEO object out of a page-level response.

    :param response: Decoded body that may carry ``seo`` at the top or under ``data``
    :return: SEO dict with ``meta``, ``breadcrumbs`` and ``jsonLd`` list, or None
    """
    seo = response.get('seo') if isinstance(response, dict) else None
    if seo is None:
        data = unwrap(response)
        if isinstance(data, dict):
            seo = data.get('seo')
    if not isinstance(seo, dict):
        return None

    result = dict(seo)
    meta = dict(seo['meta']) if isinstance(seo.get('meta'), dict) else {}
    meta.setdefault('title', seo.get('title'))
    meta.setdefault('description', seo.get('description'))
    meta.setdefault('canonicalUrl', seo.get('canonicalUrl'))
    result['meta'] = meta

    breadcrumbs = seo.get('breadcrumbs')
    result['breadcrumbs'] = breadcrumbs if isinstance(breadcrumbs, list) else []

    json_ld = seo.get('jsonLd')
    if isinstance(json_ld, dict):
        json_ld = [json_ld]
    result['jsonLd'] = [item for item in json_ld if isinstance(item, dict)] if isinstance(json_ld, list) else []
    return result


def normalize_home(response: Any, static_base: str = constants.DEFAULT_STATIC_BASE_URL) -> Dict[str, Any]:
    """
    Normalize the home page payload: latest posts plus posts grouped by tag.

    :param response: Decoded home body
    :param static_base: CDN base for relative image paths
    :return: Dict with ``latest``, ``tags`` (tag groups) and ``seo``
    """
    data = unwrap(response)
    latest_raw: List[Any] = []
    groups_raw: List[Any] = []
    if isinstance(data, dict):
        latest_raw = _extract_list(data.get('latest'), 'posts') or _extract_list(data, 'posts')
        groups_raw = _extract_list(data.get('tags') or data.get('tagGroups'), 'tags')
    elif isinstance(data, list):
        latest_raw = data

    groups = []
    for group in groups_raw:
        if not isinstance(group, dict):
            continue
        normalized = dict(group)
        normalized['slug'] = group.get('slug') or slugify(group.get('name'))
        normalized['posts'] = [normalize_post(p, static_base)
                               for p in _extract_list(group.get('posts'), 'posts') if isinstance(p, dict)]
        groups.append(normalized)

    return {
        'latest': [normalize_post(p, static_base) for p in latest_raw if isinstance(p, dict)],
        'tags': groups,
        'seo': normalize_seo(response),
    }


def extract_content_images(content: Optional[str],
                           static_base: str = constants.DEFAULT_STATIC_BASE_URL) -> List[str]:
    """
    List the images embedded in a post body, in document order.

    :param content: Post HTML
    :param static_base: CDN base for relative image paths
    :return: Unique absolute image URLs
    """
    if not content:
        return []
    images: List[str] = []
    for src in _IMG_SRC_PATTERN.findall(content):
        url = absolutize_image_url(html.unescape(src), static_base)
        if url and url not in images:
            images.append(url)
    return images


def _normalize_options(options: Any) -> List[Dict[str, str]]:
    """Options arrive as plain strings or ``{value, label}`` objects."""
    if not isinstance(options, list):
        return []
    normalized = []
    for option in options:
        if isinstance(option, str):
            normalized.append({'value': option, 'label': option})
        elif isinstance(option, dict):
            value = option.get('value') if option.get('value') is not None else option.get('label')
            label = option.get('label') if option.get('label') is not None else option.get('value')
            value = '' if value is None else str(value)
            label = '' if label is None else str(label)
            if value or label:
                normalized.append({'value': value, 'label': label})
    return normalized


def normalize_lead_form(form: Dict[str, Any]) -> Dict[str, Any]:
    """
    Normalize a lead-capture form: steps and fields in display order, options as value/label pairs.

    :param form: Form object from the API
    :return: Form dict with ``steps`` always present
    """
    result = dict(form)
    steps = []
    for step in sorted((s for s in form.get('steps') or [] if isinstance(s, dict)),
                       key=lambda s: s.get('stepOrder') or 0):
        normalized_step = dict(step)
        fields = []
        for field in sorted((f for f in step.get('fields') or [] if isinstance(f, dict)),
                            key=lambda f: f.get('fieldOrder') or 0):
            normalized_field = dict(field)
            normalized_field['required'] = bool(field.get('required'))
            normalized_field['options'] = _normalize_options(field.get('options'))
            fields.append(normalized_field)
        normalized_step['fields'] = fields
        steps.append(normalized_step)
    result['steps'] = steps
    result['isMultiStep'] = bool(form.get('isMultiStep')) or len(steps) > 1
    return result
