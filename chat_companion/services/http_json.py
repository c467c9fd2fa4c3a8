"""Small JSON-over-HTTP helper shared by the service adapters."""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from typing import Any, Dict, Optional, Type


def post_json(
    endpoint: str,
    payload: Dict[str, Any],
    *,
    timeout: float,
    error_cls: Type[Exception],
    ssl_context: Optional[ssl.SSLContext] = None,
) -> Dict[str, Any]:
    """
    POST ``payload`` as JSON and return the decoded JSON object.

    Every failure (non-2xx status, unreachable host, timeout, non-JSON body)
    is raised as ``error_cls``. For non-2xx replies carrying ``{"error": ...}``
    that message is used.
    """
    request = urllib.request.Request(
        endpoint,
        data=json.dumps(payload).encode("utf-8"),
        headers={
            "Content-Type": "application/json",
            "Accept": "application/json",
        },
        method="POST",
    )

    try:
        with urllib.request.urlopen(request, timeout=timeout, context=ssl_context) as response:  # type: ignore[arg-type]
            body = response.read()
    except urllib.error.HTTPError as exc:
        detail = exc.read().decode("utf-8", errors="ignore")
        raise error_cls(f"Request failed ({exc.code}): {_error_message(detail)}") from exc
    except urllib.error.URLError as exc:
        raise error_cls(f"Request could not reach the server: {exc.reason}") from exc
    except (TimeoutError, OSError) as exc:
        raise error_cls(f"Request failed: {exc}") from exc

    try:
        data = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise error_cls("Response was not valid JSON") from exc

    if not isinstance(data, dict):
        raise error_cls("Response was not a JSON object")
    return data


def _error_message(detail: str) -> str:
    try:
        data = json.loads(detail)
    except json.JSONDecodeError:
        return detail
    if isinstance(data, dict) and isinstance(data.get("error"), str):
        return data["error"]
    return detail
