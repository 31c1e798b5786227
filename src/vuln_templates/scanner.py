from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterable

import requests

from .errors import InvalidRequest, MalformedTarget
from .findings import Finding
from .generator import generate
from .jsonl import text_out, write_row
from .loader import ScanTemplate, load_templates
from .matchers import evaluate
from .transport import DEFAULT_MAX_BYTES, TransportOptions, dispatch


def read_targets(targets: Iterable[str] | None, targets_file: Path | None) -> list[str]:
    out: list[str] = []
    for t in targets or []:
        t = t.strip()
        if t:
            out.append(t)
    if targets_file is not None:
        try:
            lines = targets_file.read_text(encoding="utf-8").splitlines()
        except OSError as exc:
            raise SystemExit(f"could not read targets file {targets_file}: {exc}") from exc
        for line in lines:
            s = line.strip()
            if s and not s.startswith("#"):
                out.append(s)
    if not out:
        raise SystemExit("no targets given (use --target or --targets-file)")
    return out


def _error_row(
    template: ScanTemplate,
    target: str,
    *,
    block: int,
    error: str,
    request_index: int | None = None,
    url: str | None = None,
    method: str | None = None,
) -> Finding:
    return Finding(
        template_id=template.id,
        template_name=template.name,
        severity=template.severity,
        target=target,
        block=block,
        request_index=request_index,
        method=method,
        url=url,
        status=None,
        matched=False,
        elapsed_ms=0,
        attempts=0,
        response_bytes=0,
        truncated=False,
        error=error,
    )


def scan_target(
    session: requests.Session,
    template: ScanTemplate,
    target: str,
    *,
    options: TransportOptions,
) -> list[Finding]:
    rows: list[Finding] = []
    for block_idx, block in enumerate(template.requests, start=1):
        try:
            generation = generate(block, target)
        except MalformedTarget as exc:
            # Every block would fail the same way; one row per target is enough.
            return [_error_row(template, target, block=block_idx, error=str(exc))]
        except InvalidRequest as exc:
            rows.append(
                _error_row(
                    template,
                    target,
                    block=block_idx,
                    error=str(exc),
                    request_index=exc.index,
                    url=exc.url,
                    method=block.method,
                )
            )
            continue

        for req_idx, req in enumerate(generation.requests):
            obs = dispatch(session, req, base_url=target, options=options)
            matched = obs.error is None and evaluate(generation.matchers, obs)
            rows.append(
                Finding(
                    template_id=template.id,
                    template_name=template.name,
                    severity=template.severity,
                    target=target,
                    block=block_idx,
                    request_index=req_idx,
                    method=req.method,
                    url=obs.url,
                    status=obs.status,
                    matched=matched,
                    elapsed_ms=obs.elapsed_ms,
                    attempts=obs.attempts,
                    response_bytes=obs.num_bytes,
                    truncated=obs.truncated,
                    error=obs.error,
                )
            )
    return rows


def run_scan(
    template_paths: list[Path],
    targets: list[str],
    out_path: Path,
    timeout: float,
    *,
    fail_on_match: bool = False,
    only_ids: list[str] | None = None,
    verify_tls: bool = True,
    proxy: str | None = None,
    follow_redirects: bool = False,
    retries: int = 0,
    retry_backoff_s: float = 0.25,
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> int:
    options = TransportOptions(
        timeout=float(timeout),
        verify_tls=verify_tls,
        proxy=proxy,
        follow_redirects=follow_redirects,
        retries=retries,
        retry_backoff_s=retry_backoff_s,
        max_bytes=max_bytes,
    )

    templates = load_templates(template_paths)
    if only_ids:
        wanted = set(only_ids)
        templates = [t for t in templates if t.id in wanted]
        if not templates:
            raise SystemExit(f"no templates matched filters: only-id={sorted(wanted)!r}")

    total = 0
    matched = 0
    errors = 0

    with requests.Session() as session, text_out(out_path) as out:
        for target in targets:
            for template in templates:
                for row in scan_target(session, template, target, options=options):
                    total += 1
                    if row.matched:
                        matched += 1
                        print(
                            f"[{row.severity}] {row.template_id} {row.url}",
                            file=sys.stderr,
                        )
                    if row.error:
                        errors += 1
                    write_row(out, row.to_dict())

    out_label = "stdout" if str(out_path) == "-" else str(out_path)
    print(f"wrote {out_label} ({matched}/{total} matched, {errors} errors)", file=sys.stderr)
    return 2 if (fail_on_match and matched) else 0
