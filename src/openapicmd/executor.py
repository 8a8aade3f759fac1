"""HTTP execution of assembled requests and curl rendering."""

from __future__ import annotations

import json
import logging
import subprocess
import time
from typing import Any, Optional
from urllib.parse import quote, urlencode

import requests
from pydantic import BaseModel, Field

from .config import Environment, RequestSettings, TokenProvider
from .consts import DEFAULT_TOKEN_HEADER
from .openapi import Endpoint
from .utils import sanitize

logger = logging.getLogger(__name__)


class RequestValues(BaseModel):
    path_params: dict[str, str] = Field(default_factory=dict)
    query_params: dict[str, str] = Field(default_factory=dict)
    headers: dict[str, str] = Field(default_factory=dict)
    body: str = ""


class RequestResult(BaseModel):
    status: int
    status_text: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None
    duration_ms: int = 0
    error: Optional[str] = None
    curl_command: Optional[str] = None
    token_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and 200 <= self.status < 300


class TokenResult(BaseModel):
    token: Optional[str] = None
    status: int = 0
    response_body: Any = None
    network_error: Optional[str] = None


class TokenCache:
    """Bearer tokens per environment name, owned by the caller's session."""

    def __init__(self):
        self._tokens: dict[str, str] = {}

    def get(self, env_name: str) -> str | None:
        return self._tokens.get(env_name)

    def set(self, env_name: str, token: str) -> None:
        self._tokens[env_name] = token

    def has(self, env_name: str) -> bool:
        return env_name in self._tokens

    def clear(self, env_name: str) -> None:
        self._tokens.pop(env_name, None)


def build_url(base_url: str, path: str, path_params: dict[str, str]) -> str:
    resolved = path
    for key, value in path_params.items():
        if value.strip():
            resolved = resolved.replace("{" + key + "}", quote(value, safe=""))
    return base_url.rstrip("/") + resolved


def extract_by_path(obj: Any, path: str) -> str | None:
    """Pull a token out of a response with a plain dot path.

    An empty path means the body itself is the token (only when it is a string).
    """
    trimmed = path.strip()
    if not trimmed:
        return obj if isinstance(obj, str) else None

    cur = obj
    for part in trimmed.split("."):
        if not isinstance(cur, dict):
            return None
        cur = cur.get(part)
    if cur is None:
        return None
    return cur if isinstance(cur, str) else json.dumps(cur)


def run_hook(hook: str, timeout: int) -> dict[str, str]:
    """Run the pre-request shell hook and return any headers it prints as JSON."""
    try:
        completed = subprocess.run(
            hook, shell=True, capture_output=True, text=True, timeout=timeout, check=True
        )
    except (subprocess.SubprocessError, OSError) as e:
        logger.warning(f"Pre-request hook failed: {e}")
        return {}

    output = completed.stdout.strip()
    if not output:
        return {}
    try:
        parsed = json.loads(output)
    except ValueError:
        logger.warning("Pre-request hook output is not JSON, ignoring")
        return {}
    if not isinstance(parsed, dict):
        return {}

    headers = parsed.get("headers")
    if isinstance(headers, dict):
        return {str(k): str(v) for k, v in headers.items()}
    return {k: v for k, v in parsed.items() if isinstance(v, str)}


def _decode_body(response: requests.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def fetch_token(
    provider: TokenProvider,
    base_url: str,
    env_name: str,
    cache: TokenCache,
    timeout: int,
) -> TokenResult:
    """Call the token provider endpoint and cache the extracted token."""
    url = build_url(base_url, provider.path, {})
    body: Any = None
    if provider.body.strip():
        try:
            body = json.loads(provider.body)
        except ValueError:
            body = provider.body

    headers = {"Content-Type": "application/json", **provider.extra_headers}
    try:
        response = requests.request(
            provider.method.upper(),
            url,
            headers=headers,
            json=body if not isinstance(body, str) else None,
            data=body if isinstance(body, str) else None,
            timeout=timeout,
        )
    except requests.RequestException as e:
        logger.warning(f"Token request failed for environment {env_name}: {e}")
        return TokenResult(network_error=str(e))

    data = _decode_body(response)
    token = extract_by_path(data, provider.token_path)
    if token:
        cache.set(env_name, token)
        logger.info(f"Token fetched for environment {env_name}: {sanitize(token)}")
    return TokenResult(token=token, status=response.status_code, response_body=data)


def build_curl(
    method: str,
    url: str,
    headers: dict[str, str],
    query_params: Optional[dict[str, str]],
    data: Any,
) -> str:
    """Render a request as a copyable multi-line curl command."""

    def quoted(text: str) -> str:
        return "'" + text.replace("'", "'\\''") + "'"

    parts = [f"curl -X {method.upper()}"]
    for k, v in headers.items():
        parts.append(f"  -H {quoted(f'{k}: {v}')}")

    if data is not None:
        body = data if isinstance(data, str) else json.dumps(data, ensure_ascii=False)
        parts.append(f"  -d {quoted(body)}")

    final_url = url
    if query_params:
        final_url += "?" + urlencode(query_params)
    parts.append(f"  {quoted(final_url)}")

    return " \\\n".join(parts)


def execute_request(
    endpoint: Endpoint,
    values: RequestValues,
    env: Optional[Environment] = None,
    fallback_base_url: str = "",
    token_cache: Optional[TokenCache] = None,
    settings: Optional[RequestSettings] = None,
) -> RequestResult:
    """Send one request; transport failures come back as a result with ``error`` set."""
    settings = settings or RequestSettings()
    token_cache = token_cache if token_cache is not None else TokenCache()

    base_url = env.base_url if env and env.base_url else fallback_base_url
    url = build_url(base_url, endpoint.path, values.path_params)

    # Lowest to highest priority: env headers, hook headers, form headers, token.
    headers: dict[str, str] = dict(env.headers) if env else {}
    if env and env.pre_request_hook:
        headers.update(run_hook(env.pre_request_hook, settings.hook_timeout))
    headers.update(values.headers)

    token_error = None
    if env and env.token_provider:
        provider = env.token_provider
        token = token_cache.get(env.name)
        if not token:
            fetched = fetch_token(
                provider, env.base_url, env.name, token_cache, settings.token_timeout
            )
            token = fetched.token
            if not token:
                token_error = fetched.network_error or (
                    f"No token at '{provider.token_path}' (status {fetched.status})"
                )
        if token:
            headers[provider.header_name or DEFAULT_TOKEN_HEADER] = f"{provider.prefix}{token}"

    data: Any = None
    if values.body.strip():
        try:
            data = json.loads(values.body)
            if "Content-Type" not in headers and "content-type" not in headers:
                content_type = endpoint.request_body.content_type if endpoint.request_body else None
                headers["Content-Type"] = content_type or "application/json"
        except ValueError:
            data = values.body

    query = {k: v for k, v in values.query_params.items() if v.strip()} or None
    curl_command = build_curl(endpoint.method, url, headers, query, data)

    logger.info(f"{endpoint.method.upper()} {url}")
    start = time.monotonic()
    try:
        response = requests.request(
            endpoint.method.upper(),
            url,
            headers=headers,
            params=query,
            data=json.dumps(data) if data is not None and not isinstance(data, str) else data,
            timeout=settings.timeout,
        )
    except requests.RequestException as e:
        duration_ms = int((time.monotonic() - start) * 1000)
        logger.warning(f"Request failed: {endpoint.method.upper()} {url}: {e}")
        return RequestResult(
            status=0,
            status_text="Network Error",
            duration_ms=duration_ms,
            error=str(e),
            curl_command=curl_command,
            token_error=token_error,
        )

    duration_ms = int((time.monotonic() - start) * 1000)
    logger.info(f"{endpoint.method.upper()} {url} -> {response.status_code} in {duration_ms}ms")
    return RequestResult(
        status=response.status_code,
        status_text=response.reason or "",
        headers={k: str(v) for k, v in response.headers.items()},
        body=_decode_body(response),
        duration_ms=duration_ms,
        curl_command=curl_command,
        token_error=token_error,
    )


def bind_executor(
    env: Optional[Environment] = None,
    token_cache: Optional[TokenCache] = None,
    settings: Optional[RequestSettings] = None,
):
    """Executor callable ``(endpoint, values, fallback_base_url)`` for one session."""
    token_cache = token_cache if token_cache is not None else TokenCache()

    def run(endpoint: Endpoint, values: RequestValues, fallback_base_url: str = "") -> RequestResult:
        return execute_request(endpoint, values, env, fallback_base_url, token_cache, settings)

    return run
