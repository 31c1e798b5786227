from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping

HTTP_METHODS = frozenset(
    {"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE", "CONNECT"}
)


@dataclass(frozen=True)
class RequestTemplate:
    """Declarative request pattern: one request per path, plus opaque matcher rules.

    Collections are copied on construction and exposed read-only, so a template can
    be shared between threads generating requests for different targets.
    """

    method: str
    paths: tuple[str, ...] = ()
    headers: Mapping[str, str] = field(default_factory=dict, hash=False)
    body: str = ""
    matchers: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.method, str) or not self.method:
            raise ValueError("method must be a non-empty string")
        object.__setattr__(self, "paths", tuple(self.paths))
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))
        object.__setattr__(self, "body", self.body or "")
        object.__setattr__(self, "matchers", tuple(self.matchers))

    @classmethod
    def build(
        cls,
        method: str,
        paths: Iterable[str],
        *,
        headers: Mapping[str, str] | None = None,
        body: str | None = None,
        matchers: Iterable[Any] = (),
    ) -> RequestTemplate:
        return cls(
            method=method,
            paths=tuple(paths),
            headers=dict(headers or {}),
            body=body or "",
            matchers=tuple(matchers),
        )
