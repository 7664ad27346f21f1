"""Scrub secret-looking material before it reaches a decision record."""

from __future__ import annotations

from typing import Any

import httpx

REDACTED = "[redacted]"

_SENSITIVE_KEY_TERMS = (
    "api_key",
    "apikey",
    "token",
    "secret",
    "password",
    "passwd",
    "authorization",
    "bearer",
    "private_key",
    "privatekey",
    "access_key",
    "accesskey",
    "credential",
    "signature",
    "mnemonic",
    "seed",
    "session",
    "jwt",
    "auth",
)

_SENSITIVE_VALUE_PREFIXES = (
    "sk-",
    "rk-",
    "ghp_",
    "github_pat_",
    "xoxb-",
    "xoxa-",
)


def is_sensitive_key(key: str) -> bool:
    key_lower = key.lower()
    return any(term in key_lower for term in _SENSITIVE_KEY_TERMS)


def is_sensitive_value(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    s = value.strip()
    if s.count(".") == 2 and len(s) >= 24:
        return True
    if s.lower().startswith("bearer "):
        return True
    for prefix in _SENSITIVE_VALUE_PREFIXES:
        if s.startswith(prefix):
            return True
    if "-----BEGIN" in s:
        return True
    return False


def redact_value(key: str | None, value: Any) -> Any:
    """Redact a JSON-like value, preserving structure and safe primitives."""
    if key is not None and is_sensitive_key(key):
        return REDACTED
    if isinstance(value, str):
        return REDACTED if is_sensitive_value(value) else value
    if isinstance(value, (list, tuple)):
        return [redact_value(None, v) for v in value]
    if isinstance(value, dict):
        return {str(k): redact_value(str(k), v) for k, v in value.items()}
    return value


def redact_details(details: dict[str, Any] | None) -> dict[str, Any] | None:
    if details is None:
        return None
    return {k: redact_value(k, v) for k, v in details.items()}


def redact_url(url: str | None) -> str | None:
    """Replace sensitive query parameters and userinfo in ``url``."""
    if url is None:
        return None
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError):
        return url
    params = [
        (k, REDACTED if is_sensitive_key(k) or is_sensitive_value(v) else v)
        for k, v in parsed.params.multi_items()
    ]
    if parsed.userinfo:
        parsed = parsed.copy_with(username=None, password=None)
    if params:
        parsed = parsed.copy_with(params=httpx.QueryParams(params))
    return str(parsed)
