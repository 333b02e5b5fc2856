import asyncio
from typing import Dict, List, Optional

import httpx

from rested import rested_log as log
from rested.rested_config import Config
from rested.rested_ir import Request
from rested.rested_runtime import RunStrategy
from rested.rested_serialize import prettify


class ResponseError(Exception):
    """A request that got an answer, but not a 2xx one."""

    def __init__(self, url: str, status_code: int, reason: str, body: str):
        super().__init__(f"{url}: status code {status_code}: {reason} {body}".rstrip())
        self.url = url
        self.status_code = status_code
        self.reason = reason
        self.body = body


async def http_request(method: str, url: str, *,
                       headers: Optional[List[tuple]] = None,
                       data: Optional[str] = None,
                       config: Optional[Dict] = None) -> str:
    """
    Send one request and return the response body as text.

    config keys:
      - timeout (seconds, default 30)
      - retries (extra attempts after a transport failure, default 0)
      - backoff (base delay between attempts, doubled each time, default 0.2)

    Non-2xx responses raise ResponseError straight away; only transport
    failures are retried. JSON responses come back pretty-printed.
    """
    cfg = dict(config or {})
    timeout = float(cfg.pop('timeout', 30.0))
    retries = int(cfg.pop('retries', 0))
    backoff = float(cfg.pop('backoff', 0.2))

    content = data.encode('utf-8') if data is not None else None

    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
        for attempt in range(retries + 1):
            try:
                resp = await client.request(
                    method.upper(),
                    url,
                    headers=list(headers or []),
                    content=content,
                )
            except httpx.TransportError as e:
                if attempt < retries:
                    log.dbg(f"attempt {attempt + 1} for {url} failed: {e!r}; retrying")
                    await asyncio.sleep(backoff * (2 ** attempt))
                    continue
                raise

            ct = resp.headers.get("Content-Type")
            if 200 <= resp.status_code < 300:
                return prettify(resp.content, content_type=ct)
            raise ResponseError(url, int(resp.status_code), resp.reason_phrase or "", resp.text or "")


class HttpxRunner(RunStrategy):
    """Sends requests over the network with httpx."""

    def __init__(self, config: Optional[Config] = None, backoff: float = 0.2):
        config = config or Config(scratch_dir=None)
        self.config = {'timeout': config.timeout, 'retries': config.retries, 'backoff': backoff}

    async def run_request(self, request: Request) -> str:
        return await http_request(
            str(request.method),
            request.url,
            headers=[(h.name, h.value) for h in request.headers],
            data=request.body,
            config=self.config,
        )
