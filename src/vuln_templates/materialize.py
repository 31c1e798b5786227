from __future__ import annotations

import io
import re
from dataclasses import dataclass, field
from typing import Mapping
from urllib.parse import urlsplit

from requests.structures import CaseInsensitiveDict

from .descriptor import RequestTemplate
from .errors import InvalidRequest

_ILLEGAL_CHAR_RE = re.compile(r"[\x00-\x20\x7f]")
_BAD_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")


@dataclass(frozen=True)
class GeneratedRequest:
    method: str
    url: str
    headers: dict[str, str] = field(hash=False)
    content: bytes | None = None
    # Single-use reader over content; not part of equality.
    body: io.BytesIO | None = field(default=None, compare=False, repr=False)


def _check_url(url: str) -> str | None:
    """Returns why url can't be addressed, or None when it can."""
    m = _ILLEGAL_CHAR_RE.search(url)
    if m is not None:
        return f"illegal character {m.group(0)!r} at offset {m.start()}"
    if _BAD_ESCAPE_RE.search(url):
        return "malformed percent-escape"
    try:
        parts = urlsplit(url)
        _ = parts.port
    except ValueError as exc:
        return str(exc)
    if parts.scheme and parts.netloc == "" and url[len(parts.scheme) + 1 :].startswith("//"):
        return "missing host"
    return None


def _fold_headers(headers: Mapping[str, str]) -> dict[str, str]:
    # Names are case-insensitive; the last entry for a name wins, spelling included.
    folded: CaseInsensitiveDict[str] = CaseInsensitiveDict()
    for name, value in headers.items():
        folded.pop(name, None)
        folded[name] = value
    return dict(folded)


def materialize_request(template: RequestTemplate, url: str, *, index: int = 0) -> GeneratedRequest:
    problem = _check_url(url)
    if problem is not None:
        raise InvalidRequest(index, url, problem)

    content: bytes | None = None
    body: io.BytesIO | None = None
    if template.body:
        content = template.body.encode("utf-8")
        body = io.BytesIO(content)

    return GeneratedRequest(
        method=template.method,
        url=url,
        headers=_fold_headers(template.headers),
        content=content,
        body=body,
    )
