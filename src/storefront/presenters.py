"""View helpers: theme, titles, dates, tag cloud sizing, hero block and structured data."""

import html
import json
import math
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from markupsafe import Markup

from blazeblog.normalize import extract_content_images, first_number
from common.config.storefront_config import ThemeSettings

MIN_TAG_FONT_EM = 1.0
MAX_TAG_FONT_EM = 3.0
UNCOUNTED_TAG_WEIGHT = 0.1
DEFAULT_SITE_TITLE = "BlazeBlog"
HERO_ALIGNMENTS = ('left', 'center', 'right')

_MD_RULES = [
    (re.compile(r'^###\s+(.*)$', re.MULTILINE), r'<h3>\1</h3>'),
    (re.compile(r'^##\s+(.*)$', re.MULTILINE), r'<h2>\1</h2>'),
    (re.compile(r'^#\s+(.*)$', re.MULTILINE), r'<h1>\1</h1>'),
    (re.compile(r'\*\*(.*?)\*\*'), r'<strong>\1</strong>'),
    (re.compile(r'\*(.*?)\*'), r'<em>\1</em>'),
    (re.compile(r'\[(.*?)\]\((https?:[^\s)]+)\)'), r'<a href="\2" target="_blank" rel="noopener">\1</a>'),
]
_TAG = re.compile(r'<[^>]+>')
_HEADING_BLOCK = re.compile(r'^<h[1-6]>')


def theme_for(site_config: Optional[Dict[str, Any]], settings: ThemeSettings) -> Dict[str, str]:
    """
    Pick the colour palette and font stack for a tenant.

    :param site_config: Normalized site config, or None when it could not be loaded
    :param settings: Storefront theme defaults
    :return: Dict with ``palette`` and ``font_css``
    """
    if not site_config:
        return {'palette': settings.default_palette, 'font_css': settings.font_css(settings.fallback_font)}
    theme = site_config.get('theme') or {}
    return {
        'palette': theme.get('colorPalette') or settings.default_palette,
        'font_css': settings.font_css(theme.get('fontFamily')),
    }


def site_title(site_config: Optional[Dict[str, Any]]) -> str:
    if not site_config:
        return DEFAULT_SITE_TITLE
    return site_config['siteConfig'].get('seoTitle') or DEFAULT_SITE_TITLE


def page_title(title: Optional[str], site_config: Optional[Dict[str, Any]]) -> str:
    """
    Build the document title: ``"{title} | {site}"``, or the site title alone.

    :param title: Page-specific title
    :param site_config: Normalized site config
    :return: Title string
    """
    base = site_title(site_config)
    if not title:
        return base
    return f"{title} | {base}"


def format_date(value: Optional[str]) -> str:
    """Render an ISO timestamp as ``January 5, 2024``; unparseable input is returned as is."""
    if not value:
        return ''
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        return str(value)
    return f"{parsed.strftime('%B')} {parsed.day}, {parsed.year}"


def tag_font_size(post_count: Optional[int], max_count: int) -> float:
    """
    Font size in em for a tag cloud entry, on a log scale between 1em and 3em.

    :param post_count: Posts carrying the tag, if known
    :param max_count: Highest post count among the displayed tags
    :return: Font size in em
    """
    if not post_count or post_count <= 0:
        weight = UNCOUNTED_TAG_WEIGHT
    elif max_count <= 1:
        weight = 1.0
    else:
        weight = math.log(post_count) / math.log(max_count)
    return MIN_TAG_FONT_EM + weight * (MAX_TAG_FONT_EM - MIN_TAG_FONT_EM)


def tag_cloud(tags: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Attach a ``font_size`` (like ``"2.00em"``) to each tag.

    :param tags: Normalized tags
    :return: New tag dicts with ``font_size``
    """
    counts = [first_number(tag, ('postCount',)) for tag in tags]
    max_count = max([count or 1 for count in counts] + [1])
    return [dict(tag, font_size=f"{tag_font_size(count, max_count):.2f}em")
            for tag, count in zip(tags, counts)]


def post_images(post: Dict[str, Any], static_base: str) -> List[str]:
    """
    Images for the post gallery: the featured image first, then those in the body.

    :param post: Normalized post
    :param static_base: CDN base for relative image paths
    :return: Unique image URLs
    """
    images = [post['featuredImage']] if post.get('featuredImage') else []
    for url in extract_content_images(post.get('content'), static_base):
        if url not in images:
            images.append(url)
    return images


def blog_posting_json_ld(post: Dict[str, Any], site_config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Build schema.org BlogPosting structured data for a post page.

    :param post: Normalized post
    :param site_config: Normalized site config
    :return: JSON-LD dict
    """
    data = {
        '@context': 'https://schema.org',
        '@type': 'BlogPosting',
        'headline': post.get('title'),
        'description': post.get('excerpt'),
        'author': {
            '@type': 'Person',
            'name': post['user'].get('username'),
        },
        'publisher': {
            '@type': 'Organization',
            'name': site_config['siteConfig'].get('h1'),
            'logo': {
                '@type': 'ImageObject',
                'url': site_config['siteConfig'].get('logoPath'),
            },
        },
        'datePublished': post.get('publishedAt') or post.get('createdAt'),
        'dateModified': post.get('updatedAt') or post.get('createdAt'),
    }
    if post.get('featuredImage'):
        data['image'] = post['featuredImage']
    return data


def json_ld_script(data: Dict[str, Any]) -> Markup:
    """Serialize JSON-LD for embedding inside a ``<script>`` element."""
    payload = json.dumps(data, ensure_ascii=False)
    payload = payload.replace('<', '\\u003c').replace('>', '\\u003e').replace('&', '\\u0026')
    return Markup(payload)


def markdown_to_html(text: Optional[str]) -> str:
    """
    Render the small markdown subset the CMS hero editor produces.

    Any HTML in the input is stripped and the rest escaped before the
    headings, emphasis and links are turned into tags.

    :param text: Markdown source
    :return: HTML string
    """
    if not text:
        return ''
    source = _TAG.sub('', text.replace('▌', ''))
    rendered = html.escape(source)
    for pattern, replacement in _MD_RULES:
        rendered = pattern.sub(replacement, rendered)

    blocks = []
    for block in re.split(r'\n{2,}', rendered):
        if _HEADING_BLOCK.match(block):
            blocks.append(block)
        else:
            blocks.append(f"<p>{block.replace(chr(10), '<br/>')}</p>")
    return '\n'.join(blocks)


def hero_segment(site_config: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Build the home page hero block from the site config.

    :param site_config: Normalized site config
    :return: Dict with ``html``, ``align``, ``cta_text`` and ``cta_url``, or None when hidden
    """
    site = (site_config or {}).get('siteConfig') or {}
    hero = site.get('heroSettings') or site.get('heroSegment')
    if not isinstance(hero, dict) or hero.get('enabled') is False:
        return None

    align = hero.get('align') if hero.get('align') in HERO_ALIGNMENTS else 'center'
    body = markdown_to_html(hero.get('contentMd') or hero.get('content') or '')
    cta_text = hero.get('ctaText') or hero.get('ctaLabel')
    if not body and not cta_text:
        return None

    return {
        'html': Markup(body),
        'align': align,
        'cta_text': cta_text,
        'cta_url': hero.get('ctaUrl'),
    }
