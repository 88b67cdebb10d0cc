"""Redaction utilities for logging.

Prefers safety over fidelity: secrets typed into forms, credentials in URLs
and large script bodies never reach the log stream verbatim.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from ..sensitivity import is_sensitive_key, is_sensitive_selector

MAX_LOGGED_SCRIPT = 200


def redact_url(url: str) -> str:
    """Drop userinfo and redact sensitive query values; unchanged when nothing to hide."""
    if not isinstance(url, str) or not url:
        return url
    try:
        parts = urlsplit(url)
    except ValueError:
        return url

    changed = False
    netloc = parts.netloc
    query = parts.query

    if "@" in netloc:
        netloc = netloc.split("@", 1)[1]
        changed = True

    if query:
        pairs = parse_qsl(query, keep_blank_values=True)
        out_pairs: list[tuple[str, str]] = []
        for k, v in pairs:
            if is_sensitive_key(k) and v:
                out_pairs.append((k, "<redacted>"))
                changed = True
            else:
                out_pairs.append((k, v))
        query = urlencode(out_pairs, doseq=True)

    if not changed:
        return url
    return urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))


def _redacted_summary(value: Any) -> str:
    if isinstance(value, str):
        return f"<redacted str len={len(value)}>"
    return "<redacted>"


def redact_tool_arguments(tool: str, args: dict[str, Any]) -> dict[str, Any]:
    """Redact tool arguments for safe logging."""
    op = (tool or "").removeprefix("browser_")
    out: dict[str, Any] = {}
    selector = args.get("selector") if isinstance(args.get("selector"), str) else ""
    for key, value in args.items():
        lk = str(key).lower()
        if lk == "url" and isinstance(value, str):
            out[key] = redact_url(value)
        elif op == "fill" and lk == "value" and (is_sensitive_selector(selector) or is_sensitive_key(lk)):
            out[key] = _redacted_summary(value)
        elif op == "evaluate" and lk == "script" and isinstance(value, str) and len(value) > MAX_LOGGED_SCRIPT:
            out[key] = value[:MAX_LOGGED_SCRIPT] + f"… <truncated len={len(value)}>"
        elif is_sensitive_key(lk):
            out[key] = _redacted_summary(value)
        else:
            out[key] = value
    return out


def redact_config(config: dict[str, Any]) -> dict[str, Any]:
    """Configuration view safe to show to a caller (proxy credentials in flags stripped)."""
    out = dict(config)
    flags = out.get("extra_flags")
    if isinstance(flags, list):
        cleaned = []
        for flag in flags:
            name, sep, value = str(flag).partition("=")
            if sep and "://" in value:
                cleaned.append(f"{name}={redact_url(value)}")
            elif sep and is_sensitive_key(name.lstrip("-")):
                cleaned.append(f"{name}=<redacted>")
            else:
                cleaned.append(str(flag))
        out["extra_flags"] = cleaned
    return out


__all__ = ["redact_config", "redact_tool_arguments", "redact_url"]
