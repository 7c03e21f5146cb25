import time
from typing import Optional, Dict, Any
import httpx


def http_get_string(url: str, config: Optional[Dict[str, Any]] = None) -> str:
    """
    Fetch `url` and return the response body as text.

    config keys:
      - timeout  (seconds, default 5.0)
      - retries  (extra attempts after a transport error, default 2)
      - backoff  (base delay, doubled per attempt, default 0.2)
      - headers  (extra request headers)

    Status codes are not interpreted: a 404 page is still a body. Only
    transport failures are retried; the last one is re-raised.
    """
    cfg = dict(config or {})
    timeout = float(cfg.pop('timeout', 5.0))
    retries = int(cfg.pop('retries', 2))
    backoff = float(cfg.pop('backoff', 0.2))
    headers = dict(cfg.pop('headers', {}) or {})

    with httpx.Client(timeout=timeout, follow_redirects=True) as client:
        last_exc = None
        for attempt in range(retries + 1):
            try:
                resp = client.get(url, headers=headers)
                return resp.text
            except httpx.HTTPError as e:
                last_exc = e
                if attempt < retries:
                    time.sleep(backoff * (2 ** attempt))
                    continue
                raise last_exc
