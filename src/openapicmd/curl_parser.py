"""Parse pasted curl commands into request parts."""

import json
import logging
import re
import shlex
from typing import Any, Optional
from urllib.parse import parse_qsl, unquote, urlsplit

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

_CONTINUATION_RE = re.compile(r"\\\r?\n")
_PATH_PARAM_RE = re.compile(r"\{(\w+)\}")

_DATA_FLAGS = ("-d", "--data", "--data-raw", "--data-binary", "--data-urlencode")


class ParsedCurl(BaseModel):
    method: str = "GET"
    url: str
    origin: str
    path: str
    query_params: dict[str, str] = Field(default_factory=dict)
    headers: dict[str, str] = Field(default_factory=dict)
    body: Optional[str] = None
    body_json: Optional[dict[str, Any]] = None


def extract_path_params(template: str, url_path: str) -> dict[str, str]:
    """Match a path template against a concrete path.

    Examples:
        >>> extract_path_params("/users/{id}", "/users/42")
        {'id': '42'}
        >>> extract_path_params("/users/{id}", "/orders/42")
        {}
    """
    names = _PATH_PARAM_RE.findall(template)
    pattern = ""
    for i, chunk in enumerate(_PATH_PARAM_RE.split(template)):
        # split() alternates literal text and captured names
        pattern += re.escape(chunk) if i % 2 == 0 else "([^/?#]+)"
    m = re.fullmatch(pattern + r"(?:[?#].*)?", url_path)
    if not m:
        return {}
    return {name: unquote(value) for name, value in zip(names, m.groups())}


def parse_curl(raw: str) -> ParsedCurl | None:
    """Parse a curl command line; returns None when it is not one or has no URL."""
    normalized = _CONTINUATION_RE.sub(" ", raw).strip()
    if not normalized.startswith("curl"):
        return None

    try:
        tokens = shlex.split(normalized[4:])
    except ValueError as e:
        logger.warning(f"Cannot tokenize curl command: {e}")
        return None

    method = "GET"
    url = ""
    headers: dict[str, str] = {}
    body: Optional[str] = None

    i = 0
    while i < len(tokens):
        t = tokens[i]
        nxt = tokens[i + 1] if i + 1 < len(tokens) else None

        if t in ("-X", "--request"):
            method = (nxt or "GET").upper()
            i += 1
        elif t in ("-H", "--header"):
            name, sep, value = (nxt or "").partition(":")
            if sep and name.strip():
                headers[name.strip().lower()] = value.strip()
            i += 1
        elif t in _DATA_FLAGS:
            body = nxt
            i += 1
        elif t == "--json":
            body = nxt
            if method == "GET":
                method = "POST"
            i += 1
        elif not t.startswith("-") and t.startswith("http"):
            url = t
        elif t.startswith("--") or (t.startswith("-") and len(t) == 2):
            # unknown flag: skip its value unless the next token is a flag or the URL
            if nxt is not None and not nxt.startswith(("-", "http")):
                i += 1
        i += 1

    if not url:
        return None

    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return None

    body_json = None
    if body:
        try:
            parsed = json.loads(body)
        except ValueError:
            parsed = None
        if isinstance(parsed, dict):
            body_json = parsed

    if method == "GET" and body:
        method = "POST"

    return ParsedCurl(
        method=method,
        url=url,
        origin=f"{parts.scheme}://{parts.netloc}",
        path=parts.path or "/",
        query_params=dict(parse_qsl(parts.query, keep_blank_values=True)),
        headers=headers,
        body=body,
        body_json=body_json,
    )
