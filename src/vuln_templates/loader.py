from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, cast

import yaml

from .descriptor import HTTP_METHODS, RequestTemplate
from .matchers import compile_matcher

_ENV_PATTERN = re.compile(r"\$\{[A-Za-z_][A-Za-z0-9_]*\}|\$[A-Za-z_][A-Za-z0-9_]*")
_TEMPLATE_SUFFIXES = (".yml", ".yaml")


@dataclass(frozen=True)
class ScanTemplate:
    id: str
    name: str
    severity: str
    author: str | None
    requests: tuple[RequestTemplate, ...]
    source: str


def expand_env(value: Any) -> Any:
    if isinstance(value, str):
        return os.path.expandvars(value)
    if isinstance(value, list):
        return [expand_env(v) for v in value]
    if isinstance(value, dict):
        return {k: expand_env(v) for k, v in value.items()}
    return value


def find_unexpanded_env_vars(value: Any) -> set[str]:
    found: set[str] = set()

    def walk(v: Any) -> None:
        if isinstance(v, str):
            found.update(_ENV_PATTERN.findall(v))
        elif isinstance(v, list):
            for x in v:
                walk(x)
        elif isinstance(v, dict):
            for x in v.values():
                walk(x)

    walk(value)
    return found


def read_template_data(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SystemExit(f"could not read template {path}: {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise SystemExit(f"invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise SystemExit(f"{path}: template must be a YAML mapping")
    return cast(dict[str, Any], expand_env(data))


def _require_non_empty_str(value: Any, *, name: str) -> str:
    if not isinstance(value, str) or not value:
        raise SystemExit(f"{name} must be a non-empty string")
    return value


def _as_str_map(value: Any, *, name: str) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise SystemExit(f"{name} must be a mapping of string->string")
    out: dict[str, str] = {}
    for k, v in value.items():
        if not isinstance(k, str) or not k:
            raise SystemExit(f"{name} keys must be non-empty strings")
        # YAML happily turns `X-Retry: 1` into an int; headers are always text.
        if isinstance(v, bool) or not isinstance(v, (str, int, float)):
            raise SystemExit(f"{name} must be a mapping of string->string")
        out[k] = str(v)
    return out


def _as_paths(value: Any, *, name: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise SystemExit(f"{name} must be a string or a list of strings")
    for idx, p in enumerate(value, start=1):
        if not isinstance(p, str) or not p:
            raise SystemExit(f"{name}[{idx}] must be a non-empty string")
    return list(value)


def _as_method(value: Any, *, name: str) -> str:
    if value is None:
        return "GET"
    method = _require_non_empty_str(value, name=name).upper()
    if method not in HTTP_METHODS:
        raise SystemExit(f"{name} must be one of: {', '.join(sorted(HTTP_METHODS))}")
    return method


def parse_request_block(raw: Any, *, name: str) -> RequestTemplate:
    if not isinstance(raw, dict):
        raise SystemExit(f"{name} must be a mapping")

    body = raw.get("body")
    if body is not None and not isinstance(body, str):
        raise SystemExit(f"{name}.body must be a string")

    matchers_raw = raw.get("matchers")
    if matchers_raw is None:
        matchers_raw = []
    if not isinstance(matchers_raw, list):
        raise SystemExit(f"{name}.matchers must be a list")

    return RequestTemplate.build(
        _as_method(raw.get("method"), name=f"{name}.method"),
        _as_paths(raw.get("path"), name=f"{name}.path"),
        headers=_as_str_map(raw.get("headers"), name=f"{name}.headers"),
        body=body,
        matchers=[
            compile_matcher(m, name=f"{name}.matchers[{idx}]")
            for idx, m in enumerate(matchers_raw, start=1)
        ],
    )


def parse_template(data: dict[str, Any], *, source: str) -> ScanTemplate:
    template_id = _require_non_empty_str(data.get("id"), name=f"{source}: id")

    info = data.get("info")
    if info is None:
        info = {}
    if not isinstance(info, dict):
        raise SystemExit(f"{source}: info must be a mapping")
    name = info.get("name") or template_id
    if not isinstance(name, str):
        raise SystemExit(f"{source}: info.name must be a string")
    severity = info.get("severity") or "info"
    if not isinstance(severity, str):
        raise SystemExit(f"{source}: info.severity must be a string")
    author = info.get("author")
    if author is not None and not isinstance(author, str):
        raise SystemExit(f"{source}: info.author must be a string")

    blocks = data.get("requests")
    if not isinstance(blocks, list) or not blocks:
        raise SystemExit(f"{source}: template must include a requests list")

    return ScanTemplate(
        id=template_id,
        name=name,
        severity=severity.lower(),
        author=author,
        requests=tuple(
            parse_request_block(block, name=f"{source}: requests[{idx}]")
            for idx, block in enumerate(blocks, start=1)
        ),
        source=source,
    )


def load_template(path: Path) -> ScanTemplate:
    return parse_template(read_template_data(path), source=str(path))


def iter_template_files(paths: Iterable[Path]) -> list[Path]:
    files: list[Path] = []
    for p in paths:
        if p.is_dir():
            files.extend(sorted(f for f in p.rglob("*") if f.suffix in _TEMPLATE_SUFFIXES))
        elif p.exists():
            files.append(p)
        else:
            raise SystemExit(f"template path does not exist: {p}")
    return files


def load_templates(paths: Iterable[Path]) -> list[ScanTemplate]:
    templates: list[ScanTemplate] = []
    seen: dict[str, str] = {}
    for f in iter_template_files(paths):
        t = load_template(f)
        if t.id in seen:
            raise SystemExit(f"duplicate template id {t.id!r} in {f} (already in {seen[t.id]})")
        seen[t.id] = t.source
        templates.append(t)
    if not templates:
        raise SystemExit("no templates found")
    return templates
