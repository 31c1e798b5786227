from __future__ import annotations

import enum
import re
from types import MappingProxyType
from typing import Iterator, Mapping
from urllib.parse import urlsplit

from .errors import MalformedTarget

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*$")
_ILLEGAL_RE = re.compile(r"[\x00-\x20\x7f]")


class Variable(str, enum.Enum):
    """Placeholder names a template may reference. Anything else expands to ""."""

    BASE_URL = "BaseURL"
    HOSTNAME = "Hostname"

    @classmethod
    def from_name(cls, name: str) -> Variable | None:
        try:
            return cls(name)
        except ValueError:
            return None


class VariableContext(Mapping[Variable, str]):
    """Read-only values for every recognized placeholder, for one target."""

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[Variable, str]) -> None:
        self._values = MappingProxyType({Variable(k): str(v) for k, v in values.items()})

    def __getitem__(self, key: Variable) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[Variable]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        inner = ", ".join(f"{k.value}={v!r}" for k, v in self._values.items())
        return f"VariableContext({inner})"

    def lookup(self, name: str) -> str:
        var = Variable.from_name(name)
        if var is None:
            return ""
        return self._values.get(var, "")


def _host_of(netloc: str) -> str:
    host = netloc.rpartition("@")[2]
    if host.startswith("["):
        end = host.find("]")
        if end == -1:
            return ""
        return host[1:end]
    return host.partition(":")[0]


def resolve_variables(base_url: str) -> VariableContext:
    if not isinstance(base_url, str) or not base_url:
        raise MalformedTarget(base_url, "target must be a non-empty string")
    if _ILLEGAL_RE.search(base_url):
        raise MalformedTarget(base_url, "contains whitespace or control characters")

    try:
        parts = urlsplit(base_url)
        # Accessing .port validates it (non-numeric or out of range raises).
        _ = parts.port
    except ValueError as exc:
        raise MalformedTarget(base_url, str(exc)) from exc

    if not parts.scheme or not _SCHEME_RE.fullmatch(parts.scheme):
        raise MalformedTarget(base_url, "missing URL scheme")
    hostname = _host_of(parts.netloc)
    if not hostname:
        raise MalformedTarget(base_url, "missing host")

    return VariableContext({Variable.BASE_URL: base_url, Variable.HOSTNAME: hostname})
