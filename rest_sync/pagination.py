"""
Next page computation.

Two strategies are available and each provider picks one:
- Link style: the provider sends the complete next page URL in the HTTP Link header (rel="next").
- Offset style: the response body carries a "has more" flag, and the next URL is the request URL
  with its offset advanced by the page limit.

Both produce an opaque token, which is the full URL of the next request, or "" when there is no next page.
"""

from typing import Any, Callable, Mapping, Optional
from urllib.parse import parse_qs, unquote_plus, urlsplit, urlunsplit

# For parsing RFC 8288 Link headers
from requests.utils import parse_header_links

from rest_sync.errors import URLError

NextPageFunc = Callable[[Any], str]

LINK_HEADER = "Link"
NEXT_REL = "next"
OFFSET_PARAM = "offset"
LIMIT_PARAM = "limit"
DEFAULT_HAS_MORE_PATH = "pagination.has_more"


def header_value(headers: Optional[Mapping[str, str]], name: str) -> str:
    """Look up a header by name, ignoring case, so plain dicts work as well as requests' headers."""
    if not headers:
        return ""
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value or ""
    return ""


def link_from_header(headers: Optional[Mapping[str, str]], rel: str = NEXT_REL) -> str:
    """Return the URL of the given relation in the Link header, or "" if there is none."""
    value = header_value(headers, LINK_HEADER)
    if not value:
        return ""

    for link in parse_header_links(value):
        rels = link.get("rel", "").split()
        if rel in rels and link.get("url"):
            return link["url"]
    return ""


def make_link_next_page(headers: Optional[Mapping[str, str]], rel: str = NEXT_REL) -> NextPageFunc:
    """The next page token is the Link header URL verbatim; the body is not consulted."""

    def next_page(_document: Any) -> str:
        return link_from_header(headers, rel)

    return next_page


def has_more_records(document: Any, has_more_path: str = DEFAULT_HAS_MORE_PATH) -> bool:
    """Read the boolean "has more" flag at a dotted path. Anything but a literal true means no."""
    current = document
    for part in has_more_path.split("."):
        if not isinstance(current, dict):
            return False
        current = current.get(part)
    return current is True


def make_offset_next_page(
    request_url: str, default_limit: int, has_more_path: str = DEFAULT_HAS_MORE_PATH
) -> NextPageFunc:
    """Advance the offset of the request that produced the page when the body says more records exist."""

    def next_page(document: Any) -> str:
        if not has_more_records(document, has_more_path):
            return ""
        return next_offset_url(request_url, default_limit)

    return next_page


def next_offset_url(request_url: str, default_limit: int) -> str:
    """
    Build the URL of the page following the one fetched with request_url.
    Every query parameter other than offset is kept verbatim and in place.
    Args:
        request_url: the URL that produced the current page.
        default_limit: page size to assume when the URL carries no limit.
    Returns:
        The next page URL, with offset set to the current offset plus the limit.
    Raises:
        URLError: if request_url is not an absolute http(s) URL.
    """
    parts = _split_absolute_url(request_url)

    query = parse_qs(parts.query, keep_blank_values=True)
    offset = _int_param(query, OFFSET_PARAM, 0)
    limit = _int_param(query, LIMIT_PARAM, default_limit)
    next_offset = offset + limit

    segments = []
    offset_written = False
    for segment in parts.query.split("&"):
        if not segment:
            continue
        name = unquote_plus(segment.split("=", 1)[0])
        if name == OFFSET_PARAM:
            if not offset_written:
                segments.append(f"{OFFSET_PARAM}={next_offset}")
                offset_written = True
            continue
        segments.append(segment)

    if not offset_written:
        segments.append(f"{OFFSET_PARAM}={next_offset}")
    if LIMIT_PARAM not in query:
        segments.append(f"{LIMIT_PARAM}={limit}")

    return urlunsplit((parts.scheme, parts.netloc, parts.path, "&".join(segments), ""))


def require_absolute_url(url: str) -> str:
    """
    Check that a next page token is an absolute http(s) URL before it is requested.
    Raises:
        URLError: if it is not.
    """
    _split_absolute_url(url)
    return url


def _split_absolute_url(url: str):
    try:
        parts = urlsplit(url)
    except ValueError as e:
        raise URLError(f"Cannot parse URL {url!r}: {e}") from e

    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise URLError(f"Not an absolute http(s) URL: {url!r}")
    return parts


def _int_param(query: dict, name: str, default: int) -> int:
    values = query.get(name)
    if not values:
        return default
    try:
        return int(values[0])
    except ValueError:
        return default
