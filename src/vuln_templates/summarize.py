from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .findings import is_match, key as finding_key, min_rank
from .jsonl import read_jsonl, text_out


@dataclass(frozen=True)
class Summary:
    total: int
    matched: int
    errors: int
    by_severity: dict[str, int]
    min_severity: str
    matched_keys: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "matched": self.matched,
            "errors": self.errors,
            "by_severity": dict(self.by_severity),
            "min_severity": self.min_severity,
            "matched_keys": list(self.matched_keys),
        }


def summarize_jsonl(in_path: Path, *, min_severity: str = "info") -> Summary:
    rank = min_rank(min_severity)
    items = [x for x in read_jsonl(in_path) if isinstance(x, dict)]

    hits = [d for d in items if is_match(d, min_rank=rank)]
    by_severity: dict[str, int] = {}
    for d in hits:
        sev = d.get("severity") if isinstance(d.get("severity"), str) else "info"
        by_severity[sev] = by_severity.get(sev, 0) + 1

    return Summary(
        total=len(items),
        matched=len(hits),
        errors=sum(1 for d in items if d.get("error")),
        by_severity=dict(sorted(by_severity.items())),
        min_severity=min_severity,
        matched_keys=sorted({finding_key(d) for d in hits}),
    )


def write_summary(summary: Summary, out_path: Path, *, as_json: bool) -> None:
    with text_out(out_path) as out:
        if as_json:
            out.write(json.dumps(summary.to_dict()) + "\n")
            return

        sev = ", ".join(f"{k}={v}" for k, v in summary.by_severity.items()) or "none"
        out.write(
            f"total: {summary.total}, matched: {summary.matched} ({sev}), "
            f"errors: {summary.errors} (min_severity={summary.min_severity})\n"
        )
        if summary.matched_keys:
            out.write("matched:\n")
            for k in summary.matched_keys:
                out.write(f"  - {k}\n")
