from __future__ import annotations

"""Lightweight HTTP client util with retry.

Uses stdlib urllib; channel senders call `post_json` and translate HttpError
into a delivery failure.
"""
import json
import time
import urllib.request
import urllib.error
from typing import Any, Dict, Mapping, Optional


class HttpError(Exception):
    pass


def post_json(
    url: str,
    payload: Mapping[str, Any],
    *,
    headers: Optional[Mapping[str, str]] = None,
    timeout: float = 5.0,
    retries: int = 2,
    backoff: float = 0.5,
) -> Dict[str, Any]:
    body = json.dumps(payload).encode("utf-8")
    req_headers = {"Content-Type": "application/json", "Accept": "application/json"}
    req_headers.update(headers or {})
    last_err: Optional[Exception] = None
    for attempt in range(retries + 1):
        req = urllib.request.Request(url, data=body, headers=req_headers, method="POST")
        try:
            with urllib.request.urlopen(req, timeout=timeout) as resp:  # nosec B310
                if resp.status >= 400:
                    raise HttpError(f"HTTP {resp.status} for {url}")
                data = resp.read()
                return json.loads(data.decode("utf-8")) if data else {}
        except urllib.error.HTTPError as e:
            last_err = e
            if e.code < 500:
                # client errors will not improve on retry
                break
        except (
            urllib.error.URLError,
            TimeoutError,
            HttpError,
            ValueError,
        ) as e:  # ValueError for JSON decode
            last_err = e
        if attempt == retries:
            break
        time.sleep(backoff * (2**attempt))
    raise HttpError(f"Failed to POST to {url}: {last_err}")
