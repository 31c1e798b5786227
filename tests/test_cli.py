from __future__ import annotations

import json
from pathlib import Path

import pytest

from vuln_templates.cli import main


def _template(tmp_path: Path) -> Path:
    f = tmp_path / "t.yml"
    f.write_text(
        "id: admin\nrequests:\n"
        "  - method: POST\n"
        "    path: ['{{BaseURL}}/admin', '{{Unknown}}/x']\n"
        "    headers:\n      X-Test: '1'\n"
        "    body: data\n",
        encoding="utf-8",
    )
    return f


def test_generate_writes_requests_without_sending(tmp_path: Path) -> None:
    out = tmp_path / "out.jsonl"
    rc = main(
        [
            "generate",
            "--template",
            str(_template(tmp_path)),
            "--target",
            "https://example.com:8443/app",
            "--out",
            str(out),
        ]
    )
    assert rc == 0
    rows = [json.loads(line) for line in out.read_text(encoding="utf-8").splitlines()]
    assert [r["url"] for r in rows] == ["https://example.com:8443/app/admin", "/x"]
    assert rows[0]["method"] == "POST"
    assert rows[0]["headers"] == {"X-Test": "1"}
    assert rows[0]["body"] == "data"


def test_generate_malformed_target_exits(tmp_path: Path) -> None:
    with pytest.raises(SystemExit, match="malformed target"):
        main(["generate", "--template", str(_template(tmp_path)), "--target", "::not a url::"])


def test_validate_command(tmp_path: Path) -> None:
    assert main(["validate", "--template", str(_template(tmp_path))]) == 0


def test_summarize_command(tmp_path: Path) -> None:
    inp = tmp_path / "in.jsonl"
    inp.write_text(
        '{"template_id":"a","url":"https://x.test/a","severity":"high","matched":true}\n',
        encoding="utf-8",
    )
    out = tmp_path / "summary.json"
    assert main(["summarize", "--in", str(inp), "--out", str(out), "--json"]) == 0
    assert json.loads(out.read_text(encoding="utf-8"))["matched_keys"] == ["a https://x.test/a"]
