"""JSON endpoints used by the client-side widgets: search, comments, newsletter, lead forms, view beacons."""

import re
from typing import Any, Dict, Optional, Tuple

from flask import Blueprint, request, jsonify, g, Response
from flask.typing import ResponseReturnValue

from blazeblog.collector import forward_view, is_bot
from blazeblog.errors import BlazeBlogError, ApiError, NotFoundError
from common.base.logging_config import get_logger
from common.config.storefront_config import get_storefront_config
from storefront.presenters import markdown_to_html

logger = get_logger(__name__)

api_bp = Blueprint('api', __name__, url_prefix='/api')

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
COMMENT_FIELDS = ('authorName', 'authorEmail', 'content')
DEFAULT_COMMENTS_LIMIT = 10

# Upstream response headers never relayed back from the view collector
HOP_BY_HOP_HEADERS = {'set-cookie', 'connection', 'keep-alive', 'transfer-encoding',
                      'content-encoding', 'content-length', 'cache-control'}


def error_response(message: str, status: int) -> Tuple[Response, int]:
    return jsonify({'message': message}), status


def json_body() -> Dict[str, Any]:
    """The request JSON when it is an object, else an empty dict."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def missing_fields(data: Dict[str, Any], fields: Tuple[str, ...]) -> list:
    """Names of required text fields that are absent, blank or not strings."""
    return [name for name in fields
            if not isinstance(data.get(name), str) or not data[name].strip()]


def is_post_id(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    return isinstance(value, int) or (isinstance(value, str) and bool(value.strip()))


def is_missing_post(error: BlazeBlogError) -> bool:
    return isinstance(error, NotFoundError) or (isinstance(error, ApiError) and error.is_not_found)


@api_bp.route('/search')
def search() -> ResponseReturnValue:
    """
    Autocomplete search.

    :return: JSON list of ``{title, slug, excerpt}``
    """
    query = request.args.get('q', '').strip()
    if not query:
        return error_response("Query parameter 'q' is required", 400)

    try:
        results = g.blazeblog.search_posts(query)
    except BlazeBlogError as e:
        logger.error(f"Search failed for '{query}': {e}")
        return error_response('Failed to search posts', 500)

    return jsonify([
        {'title': post.get('title'), 'slug': post['slug'], 'excerpt': post.get('excerpt')}
        for post in results['posts']
    ])


@api_bp.route('/comments/<string:slug>', methods=['GET'])
def list_comments(slug: str) -> ResponseReturnValue:
    """
    A page of comments for a post.

    :param slug: Post slug
    """
    page = max(1, request.args.get('page', 1, type=int) or 1)
    limit = max(1, request.args.get('limit', DEFAULT_COMMENTS_LIMIT, type=int) or DEFAULT_COMMENTS_LIMIT)
    try:
        return jsonify(g.blazeblog.get_comments(slug, page=page, limit=limit))
    except BlazeBlogError as e:
        logger.error(f"Failed to fetch comments for {slug}: {e}")
        return error_response('Failed to fetch comments', 500)


def _create_comment(data: Dict[str, Any], post_slug: Optional[str] = None) -> ResponseReturnValue:
    missing = missing_fields(data, COMMENT_FIELDS)
    if not post_slug and not is_post_id(data.get('postId')):
        missing.append('postId')
    if missing:
        return error_response(f"Missing required fields: {', '.join(missing)}", 400)

    website = data.get('authorWebsite')
    kwargs = {
        'author_name': data['authorName'].strip(),
        'author_email': data['authorEmail'].strip(),
        'content': data['content'].strip(),
        'author_website': website if isinstance(website, str) and website else None,
        'parent_comment_id': data.get('parentCommentId'),
    }
    try:
        if post_slug:
            body = g.blazeblog.create_comment(post_slug, **kwargs)
        else:
            body = g.blazeblog.create_comment_by_post_id(data['postId'], **kwargs)
    except BlazeBlogError as e:
        if is_missing_post(e):
            return error_response('Post not found', 404)
        logger.error(f"Failed to create comment: {e}")
        return error_response('Failed to create comment', 500)

    return jsonify(body), 201


@api_bp.route('/comments/<string:slug>', methods=['POST'])
def create_comment(slug: str) -> ResponseReturnValue:
    """
    Post a comment on the post with this slug.

    :param slug: Post slug
    """
    return _create_comment(json_body(), post_slug=slug)


@api_bp.route('/comments', methods=['POST'])
def create_comment_by_id() -> ResponseReturnValue:
    """Post a comment on the post named by ``postId`` in the body."""
    return _create_comment(json_body())


@api_bp.route('/newsletter/subscribe', methods=['POST'])
def newsletter_subscribe() -> ResponseReturnValue:
    """Subscribe an email address to the tenant newsletter."""
    data = json_body()
    email = str(data.get('email') or '').strip()
    if not EMAIL_PATTERN.match(email):
        return error_response('A valid email address is required', 400)

    try:
        body = g.blazeblog.subscribe_to_newsletter(email, name=data.get('name'), company=data.get('company'))
    except BlazeBlogError as e:
        logger.error(f"Newsletter subscription failed: {e}")
        return error_response('Failed to subscribe to newsletter', 500)

    return jsonify(body if body is not None else {'message': 'Subscribed'}), 201


@api_bp.route('/lead-forms/active')
def active_lead_form() -> ResponseReturnValue:
    """The published lead-capture form, or 204 when the tenant has none."""
    form = g.blazeblog.get_active_lead_form()
    if form is None:
        return '', 204
    form['descriptionHtml'] = markdown_to_html(form.get('description'))
    return jsonify(form)


@api_bp.route('/lead-forms/<string:form_id>/submit', methods=['POST'])
def submit_lead_form(form_id: str) -> ResponseReturnValue:
    """
    Forward lead form answers.

    :param form_id: Form id
    """
    data = json_body()
    values = data.get('values')
    if not isinstance(values, dict):
        return error_response("Field 'values' must be an object", 400)

    meta_in = data.get('meta') if isinstance(data.get('meta'), dict) else {}
    meta = {
        'timeTaken': meta_in.get('timeTaken'),
        'userAgent': meta_in.get('userAgent') or request.headers.get('User-Agent', ''),
    }

    try:
        body = g.blazeblog.submit_lead_form(form_id, values, meta)
    except BlazeBlogError as e:
        logger.error(f"Lead form {form_id} submission failed: {e}")
        return error_response('Failed to submit form', 500)

    return jsonify(body if body is not None else {'message': 'Submitted'}), 201


@api_bp.route('/views/collect', methods=['GET', 'POST', 'OPTIONS'])
def collect_view() -> ResponseReturnValue:
    """Relay a page-view beacon to the view collector."""
    if request.method == 'OPTIONS':
        response = Response(status=204)
        response.headers['Access-Control-Allow-Origin'] = '*'
        response.headers['Access-Control-Allow-Methods'] = 'GET,POST,OPTIONS'
        response.headers['Access-Control-Allow-Headers'] = '*'
        return response

    if is_bot(request.headers.get('User-Agent')):
        response = Response(status=204)
        response.headers['Cache-Control'] = 'no-store'
        return response

    forwarded_for = (request.headers.get('CF-Connecting-IP')
                     or request.headers.get('X-Forwarded-For')
                     or '')
    try:
        upstream = forward_view(
            get_storefront_config().api.collector_url(),
            request.method,
            query_string=request.query_string.decode('utf-8'),
            body=request.get_data(),
            content_type=request.headers.get('Content-Type'),
            origin_host=request.host,
            forwarded_for=forwarded_for
        )
    except BlazeBlogError:
        response, status = error_response('View collector unavailable', 502)
        response.status_code = status
        response.headers['Cache-Control'] = 'no-store'
        return response

    response = Response(upstream.content, status=upstream.status_code)
    for name, value in upstream.headers.items():
        if name.lower() not in HOP_BY_HOP_HEADERS:
            response.headers[name] = value
    response.headers['Cache-Control'] = 'no-store'
    return response
