from __future__ import annotations

import argparse
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from .errors import TemplateError
from .generator import generate
from .jsonl import text_out, write_row
from .loader import load_template
from .scanner import read_targets, run_scan
from .summarize import summarize_jsonl, write_summary
from .transport import DEFAULT_MAX_BYTES
from .validate import validate_templates


def _version_str() -> str:
    try:
        return version("vuln-templates")
    except PackageNotFoundError:
        return "0.0.0+unknown"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="vuln-templates")
    parser.add_argument("--version", action="version", version=_version_str())

    sub = parser.add_subparsers(dest="cmd", required=True)

    p_gen = sub.add_parser(
        "generate",
        help="Print the requests a template would send to a target, without sending them",
    )
    p_gen.add_argument("--template", required=True, help="Path to YAML template file")
    p_gen.add_argument("--target", required=True, help="Target base URL")
    p_gen.add_argument("--out", default="-", help="Output JSONL path, or '-' for stdout")
    p_gen.set_defaults(func=_generate)

    p_scan = sub.add_parser("scan", help="Run templates against targets")
    p_scan.add_argument(
        "--template",
        action="append",
        required=True,
        help="Template file or directory of templates (repeatable)",
    )
    p_scan.add_argument("--target", action="append", help="Target base URL (repeatable)")
    p_scan.add_argument("--targets-file", help="File with one target base URL per line")
    p_scan.add_argument(
        "--out", default="scan-results.jsonl", help="Output JSONL path, or '-' for stdout"
    )
    p_scan.add_argument("--timeout", type=float, default=10.0)
    p_scan.add_argument(
        "--max-bytes",
        type=int,
        default=DEFAULT_MAX_BYTES,
        help="Max response bytes kept for matching",
    )
    p_scan.add_argument(
        "--retries",
        type=int,
        default=0,
        help="Retry count for transient errors and 429/502/503/504 (default: 0)",
    )
    p_scan.add_argument(
        "--retry-backoff",
        type=float,
        default=0.25,
        help="Seconds for exponential backoff base between retries (default: 0.25)",
    )
    p_scan.add_argument(
        "--only-id",
        action="append",
        help="Run only templates with this id (repeatable)",
    )
    p_scan.add_argument("--proxy", help="Proxy URL (e.g. http://127.0.0.1:8080)")
    p_scan.add_argument(
        "--insecure",
        action="store_true",
        help="Disable TLS certificate verification (useful for local/self-signed targets)",
    )
    p_scan.add_argument(
        "--follow-redirects",
        action="store_true",
        help="Follow HTTP redirects (default: disabled)",
    )
    p_scan.add_argument(
        "--fail-on-match",
        action="store_true",
        help="Exit non-zero if any template matched (CI/regression mode)",
    )
    p_scan.set_defaults(func=_scan)

    p_validate = sub.add_parser("validate", help="Validate template files without sending requests")
    p_validate.add_argument(
        "--template",
        action="append",
        required=True,
        help="Template file or directory of templates (repeatable)",
    )
    p_validate.add_argument(
        "--require-env",
        action="store_true",
        help="Fail if any $VAR / ${VAR} references are left unexpanded",
    )
    p_validate.set_defaults(func=_validate)

    p_sum = sub.add_parser("summarize", help="Summarize a scan JSONL report")
    p_sum.add_argument("--in", dest="in_path", required=True, help="Input JSONL path, or '-'")
    p_sum.add_argument("--out", dest="out_path", default="-", help="Output path, or '-'")
    p_sum.add_argument("--json", action="store_true", help="Write the summary as JSON")
    p_sum.add_argument(
        "--min-severity",
        default="info",
        help="Only count matches at or above this severity (info, low, medium, high, critical)",
    )
    p_sum.set_defaults(func=_summarize)

    args = parser.parse_args(argv)
    return int(args.func(args))


def _generate(args: argparse.Namespace) -> int:
    template = load_template(Path(args.template))
    rows: list[dict[str, object]] = []
    for block_idx, block in enumerate(template.requests, start=1):
        try:
            generation = generate(block, str(args.target))
        except TemplateError as exc:
            raise SystemExit(f"{template.source}: requests[{block_idx}]: {exc}") from exc
        for req_idx, req in enumerate(generation.requests):
            rows.append(
                {
                    "template_id": template.id,
                    "block": block_idx,
                    "request_index": req_idx,
                    "method": req.method,
                    "url": req.url,
                    "headers": dict(req.headers),
                    "body": req.content.decode("utf-8") if req.content is not None else None,
                }
            )

    with text_out(Path(args.out)) as out:
        for row in rows:
            write_row(out, row)
    return 0


def _scan(args: argparse.Namespace) -> int:
    targets = read_targets(
        args.target, Path(args.targets_file) if args.targets_file is not None else None
    )
    return run_scan(
        [Path(t) for t in args.template],
        targets,
        Path(args.out),
        float(args.timeout),
        fail_on_match=bool(args.fail_on_match),
        only_ids=(list(args.only_id) if args.only_id else None),
        verify_tls=not bool(args.insecure),
        proxy=(str(args.proxy) if args.proxy is not None else None),
        follow_redirects=bool(args.follow_redirects),
        retries=int(args.retries),
        retry_backoff_s=float(args.retry_backoff),
        max_bytes=int(args.max_bytes),
    )


def _validate(args: argparse.Namespace) -> int:
    return validate_templates(
        [Path(t) for t in args.template], require_env=bool(args.require_env)
    )


def _summarize(args: argparse.Namespace) -> int:
    summary = summarize_jsonl(Path(args.in_path), min_severity=str(args.min_severity))
    write_summary(summary, Path(args.out_path), as_json=bool(args.json))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
