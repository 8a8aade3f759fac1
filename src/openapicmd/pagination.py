"""Next-page detection on response bodies."""

from typing import Any, NamedTuple, Optional

NEXT_URL_KEYS = ("next", "next_url", "nextUrl", "nextPageUrl", "next_page_url")
META_NEXT_URL_KEYS = ("next", "next_url", "next_page_url")

# (response key, query parameter to send it back in)
CURSOR_KEYS = (
    ("next_page_token", "page_token"),
    ("nextPageToken", "pageToken"),
    ("next_cursor", "cursor"),
    ("nextCursor", "cursor"),
    ("continuation_token", "continuation_token"),
)


class NextCursor(NamedTuple):
    query_param: str
    value: str


def _is_http_url(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(("http://", "https://"))


def detect_next_page_url(body: Any) -> Optional[str]:
    """Absolute URL of the next page from direct fields, HAL links or ``meta``."""
    if not isinstance(body, dict):
        return None

    for key in NEXT_URL_KEYS:
        if _is_http_url(body.get(key)):
            return body[key]

    for links_key in ("_links", "links"):
        links = body.get(links_key)
        if not isinstance(links, dict):
            continue
        nxt = links.get("next")
        if _is_http_url(nxt):
            return nxt
        if isinstance(nxt, dict) and _is_http_url(nxt.get("href")):
            return nxt["href"]

    meta = body.get("meta")
    if isinstance(meta, dict):
        for key in META_NEXT_URL_KEYS:
            if _is_http_url(meta.get(key)):
                return meta[key]

    return None


def _search_cursor(target: dict) -> Optional[NextCursor]:
    for response_key, query_param in CURSOR_KEYS:
        value = target.get(response_key)
        if isinstance(value, str) and value:
            return NextCursor(query_param, value)
    return None


def detect_next_cursor(body: Any) -> Optional[NextCursor]:
    """Cursor or page token to send as a query parameter for the next page."""
    if not isinstance(body, dict):
        return None
    found = _search_cursor(body)
    if found is None and isinstance(body.get("meta"), dict):
        found = _search_cursor(body["meta"])
    return found
