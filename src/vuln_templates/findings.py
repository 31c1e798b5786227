from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Mapping

SEVERITIES = ("info", "low", "medium", "high", "critical")


@dataclass(frozen=True)
class Finding:
    """One JSONL row: a dispatched request and its matcher verdict, or a generation error."""

    template_id: str
    template_name: str
    severity: str
    target: str
    block: int
    request_index: int | None
    method: str | None
    url: str | None
    status: int | None
    matched: bool
    elapsed_ms: int
    attempts: int
    response_bytes: int
    truncated: bool
    error: str | None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def severity_rank(value: Any) -> int:
    if isinstance(value, str) and value.lower() in SEVERITIES:
        return SEVERITIES.index(value.lower())
    return 0


def min_rank(min_severity: str) -> int:
    if min_severity not in SEVERITIES:
        raise SystemExit("--min-severity must be one of: " + ", ".join(SEVERITIES))
    return severity_rank(min_severity)


def key(item: Mapping[str, Any]) -> str:
    template_id = item.get("template_id")
    url = item.get("url")
    target = item.get("target")

    tid = template_id if isinstance(template_id, str) and template_id else "<unknown>"
    if isinstance(url, str) and url:
        return f"{tid} {url}"
    if isinstance(target, str) and target:
        return f"{tid} {target}"
    return tid


def is_match(item: Mapping[str, Any], *, min_rank: int = 0) -> bool:
    if item.get("matched") is not True:
        return False
    return severity_rank(item.get("severity")) >= min_rank
