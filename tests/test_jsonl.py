from __future__ import annotations

import io
from pathlib import Path

import pytest

from vuln_templates.jsonl import (
    iter_jsonl_lines,
    read_jsonl,
    read_jsonl_lines,
    text_out,
    write_row,
)


def test_read_jsonl_lines_reports_line_number() -> None:
    with pytest.raises(SystemExit, match="line 2"):
        read_jsonl_lines(['{"ok":true}', '{"broken":'], source="sample.jsonl")


def test_read_jsonl_reports_file_path(tmp_path: Path) -> None:
    inp = tmp_path / "in.jsonl"
    inp.write_text('{"ok": true}\n{"broken":\n', encoding="utf-8")
    with pytest.raises(SystemExit, match=r"invalid JSONL in .*in\.jsonl at line 2"):
        read_jsonl(inp)


def test_text_out_creates_parents_and_round_trips_rows(tmp_path: Path) -> None:
    out = tmp_path / "nested" / "dir" / "rows.jsonl"
    with text_out(out) as handle:
        write_row(handle, {"url": "https://example.test/ü"})
    assert read_jsonl(out) == [{"url": "https://example.test/ü"}]


def test_write_row_is_one_line() -> None:
    buf = io.StringIO()
    write_row(buf, {"a": "x\ny"})
    assert buf.getvalue().count("\n") == 1


def test_iter_jsonl_lines_skips_blank_lines_lazily() -> None:
    rows = iter_jsonl_lines(["", '{"a":1}', "   ", '{"b":2}', "{bad"], source="s")
    assert next(rows) == {"a": 1}
    assert next(rows) == {"b": 2}
    with pytest.raises(SystemExit, match="invalid JSONL in s at line 5"):
        next(rows)
