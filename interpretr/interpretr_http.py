import time
from typing import Any, Dict, Optional

import httpx


def http_get_text(url: str, *, config: Optional[Dict[str, Any]] = None,
                  transport: Optional[httpx.BaseTransport] = None) -> tuple[str, Optional[str]]:
    """
    Fetch `url` and return (body text, content type).

    config keys: timeout (seconds), retries, backoff, headers.
    Transport errors and 5xx responses are retried; any other non-2xx
    response raises at once.
    """
    cfg = dict(config or {})
    timeout = float(cfg.pop('timeout', 5.0))
    retries = max(int(cfg.pop('retries', 2)), 0)
    backoff = float(cfg.pop('backoff', 0.2))
    headers = dict(cfg.pop('headers', {}))

    with httpx.Client(timeout=timeout, follow_redirects=True, transport=transport) as client:
        for attempt in range(retries + 1):
            last_attempt = attempt == retries
            try:
                resp = client.get(url, headers=headers)
            except httpx.TransportError:
                if last_attempt:
                    raise
            else:
                if 200 <= resp.status_code < 300:
                    return resp.text, resp.headers.get("Content-Type")
                if resp.status_code < 500 or last_attempt:
                    preview = (resp.text or "")[:200]
                    raise RuntimeError(f"HTTP {resp.status_code} for {url}: {preview}")
            time.sleep(backoff * (2 ** attempt))
