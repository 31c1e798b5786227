from __future__ import annotations

import json
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator, TextIO


def _is_std_stream(path: Path) -> bool:
    return str(path) == "-"


def open_jsonl_in(path: Path) -> TextIO:
    if _is_std_stream(path):
        return sys.stdin
    return path.open("r", encoding="utf-8")


def open_text_out(path: Path) -> TextIO:
    if _is_std_stream(path):
        return sys.stdout
    path.parent.mkdir(parents=True, exist_ok=True)
    return path.open("w", encoding="utf-8")


@contextmanager
def text_out(path: Path) -> Iterator[TextIO]:
    """Like open_text_out, but leaves stdout open when done."""
    out = open_text_out(path)
    try:
        yield out
    finally:
        if out is not sys.stdout:
            out.close()


def write_row(out: TextIO, row: dict[str, Any]) -> None:
    out.write(json.dumps(row, ensure_ascii=False) + "\n")


def iter_jsonl_lines(lines: Iterable[str], *, source: str = "<input>") -> Iterator[Any]:
    for line_num, line in enumerate(lines, start=1):
        text = line.strip()
        if text:
            yield _decode_row(text, source=source, line_num=line_num)


def _decode_row(text: str, *, source: str, line_num: int) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise SystemExit(
            f"invalid JSONL in {source} at line {line_num}: {exc.msg} (col {exc.colno})"
        ) from exc


def read_jsonl_lines(lines: Iterable[str], *, source: str = "<input>") -> list[Any]:
    return list(iter_jsonl_lines(lines, source=source))


def read_jsonl(path: Path) -> list[Any]:
    source = "<stdin>" if _is_std_stream(path) else str(path)
    handle = open_jsonl_in(path)
    try:
        return read_jsonl_lines(handle, source=source)
    finally:
        if handle is not sys.stdin:
            handle.close()
