from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urljoin

import requests

from .materialize import GeneratedRequest

DEFAULT_MAX_BYTES = 1024 * 1024
_DEFAULT_RETRY_STATUSES = frozenset({429, 502, 503, 504})


@dataclass(frozen=True)
class TransportOptions:
    timeout: float = 10.0
    verify_tls: bool = True
    proxy: str | None = None
    follow_redirects: bool = False
    retries: int = 0
    retry_backoff_s: float = 0.25
    retry_statuses: frozenset[int] = _DEFAULT_RETRY_STATUSES
    max_bytes: int = DEFAULT_MAX_BYTES

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise SystemExit("--timeout must be > 0")
        if self.retries < 0:
            raise SystemExit("--retries must be >= 0")
        if self.retry_backoff_s < 0:
            raise SystemExit("--retry-backoff must be >= 0")
        if self.max_bytes <= 0:
            raise SystemExit("--max-bytes must be > 0")


@dataclass(frozen=True)
class Observation:
    url: str
    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""
    num_bytes: int = 0
    truncated: bool = False
    elapsed_ms: int = 0
    attempts: int = 0
    error: str | None = None


def _proxies(proxy: str | None) -> dict[str, str] | None:
    if proxy is None:
        return None
    p = proxy.strip()
    if not p:
        return None
    return {"http": p, "https": p}


def resolve_url(request_url: str, base_url: str) -> str:
    """Relative request paths are resolved against the target; absolute URLs pass through."""
    return urljoin(base_url, request_url)


def _read_body(resp: Any, *, max_bytes: int) -> tuple[int, bytes, bool]:
    # Stream so huge responses never sit in memory; only max_bytes are kept for matching.
    iter_content = getattr(resp, "iter_content", None)
    if callable(iter_content):
        parts: list[bytes] = []
        kept = 0
        total = 0
        try:
            for chunk in iter_content(chunk_size=8192):
                if not chunk:
                    continue
                b = bytes(chunk)
                total += len(b)
                if kept < max_bytes:
                    take = b[: max_bytes - kept]
                    parts.append(take)
                    kept += len(take)
        finally:
            close = getattr(resp, "close", None)
            if callable(close):
                close()
        return total, b"".join(parts), total > kept

    body = getattr(resp, "content", b"") or b""
    if not isinstance(body, (bytes, bytearray)):
        body = str(body).encode("utf-8", errors="replace")
    body_bytes = bytes(body)
    return len(body_bytes), body_bytes[:max_bytes], len(body_bytes) > max_bytes


def dispatch(
    session: requests.Session,
    request: GeneratedRequest,
    *,
    base_url: str,
    options: TransportOptions,
) -> Observation:
    url = resolve_url(request.url, base_url)
    proxies = _proxies(options.proxy)
    start = time.time()

    last_error: str | None = None
    last_status = 0
    last_headers: dict[str, str] = {}
    last_sample = b""
    last_num_bytes = 0
    last_truncated = False
    attempts_used = 0

    max_attempts = options.retries + 1
    for attempt in range(1, max_attempts + 1):
        attempts_used = attempt
        try:
            resp = session.request(
                request.method,
                url,
                headers=dict(request.headers),
                data=request.content,
                timeout=options.timeout,
                verify=options.verify_tls,
                proxies=proxies,
                allow_redirects=options.follow_redirects,
                stream=True,
            )
            last_status = int(getattr(resp, "status_code", 0))
            raw_headers = getattr(resp, "headers", None) or {}
            last_headers = {str(k): str(v) for k, v in raw_headers.items()}
            last_num_bytes, last_sample, last_truncated = _read_body(
                resp, max_bytes=options.max_bytes
            )
            last_error = None
        except requests.RequestException as exc:
            last_error = f"{type(exc).__name__}: {exc}"
            last_status = 0
            last_headers = {}
            last_sample = b""
            last_num_bytes = 0
            last_truncated = False

        retryable = last_error is not None or last_status in options.retry_statuses
        if not retryable or attempt >= max_attempts:
            break
        if options.retry_backoff_s:
            time.sleep(options.retry_backoff_s * (2 ** (attempt - 1)))

    return Observation(
        url=url,
        status=last_status,
        headers=last_headers,
        body=last_sample.decode("utf-8", errors="replace"),
        num_bytes=last_num_bytes,
        truncated=last_truncated,
        elapsed_ms=int((time.time() - start) * 1000),
        attempts=attempts_used,
        error=last_error,
    )
