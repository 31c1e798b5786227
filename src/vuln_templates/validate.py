from __future__ import annotations

import sys
from pathlib import Path

from .loader import (
    find_unexpanded_env_vars,
    iter_template_files,
    parse_template,
    read_template_data,
)
from .templating import DEFAULT_TEMPLATER
from .variables import Variable

_KNOWN_NAMES = frozenset(v.value for v in Variable)


def template_warnings(path: Path) -> tuple[list[str], set[str]]:
    """Parses one template (exiting on structural errors) and lists soft problems."""
    data = read_template_data(path)
    template = parse_template(data, source=str(path))

    warnings: list[str] = []
    for block_idx, block in enumerate(template.requests, start=1):
        where = f"{path}: requests[{block_idx}]"
        if not block.paths:
            warnings.append(f"{where} has no paths and will generate no requests")
        for path_idx, p in enumerate(block.paths, start=1):
            unknown = [n for n in DEFAULT_TEMPLATER.placeholders(p) if n not in _KNOWN_NAMES]
            if unknown:
                joined = ", ".join("{{" + n + "}}" for n in unknown)
                warnings.append(
                    f"{where}.path[{path_idx}] uses unknown placeholders {joined} "
                    "(they expand to an empty string)"
                )
        if not block.matchers:
            warnings.append(f"{where} has no matchers and can never match")

    return warnings, find_unexpanded_env_vars(data)


def validate_templates(paths: list[Path], *, require_env: bool) -> int:
    files = iter_template_files(paths)
    if not files:
        raise SystemExit("no templates found")

    missing: set[str] = set()
    for f in files:
        warnings, unexpanded = template_warnings(f)
        for w in warnings:
            print("warning: " + w, file=sys.stderr)
        missing |= unexpanded

    if missing:
        msg = "unexpanded env vars found: " + ", ".join(sorted(missing))
        if require_env:
            print(msg, file=sys.stderr)
            return 2
        print("warning: " + msg, file=sys.stderr)

    return 0
