from __future__ import annotations

from pathlib import Path

import pytest
from _pytest.monkeypatch import MonkeyPatch
from pytest import CaptureFixture

from vuln_templates.validate import validate_templates


def test_validate_ok(tmp_path: Path, capsys: CaptureFixture[str]) -> None:
    f = tmp_path / "t.yml"
    f.write_text(
        "id: t\nrequests:\n"
        "  - path: ['{{BaseURL}}/a', 'http://{{Hostname}}/b']\n"
        "    matchers:\n      - type: status\n        status: [200]\n",
        encoding="utf-8",
    )
    assert validate_templates([f], require_env=True) == 0
    assert capsys.readouterr().err == ""


def test_validate_warns_on_unknown_placeholders(
    tmp_path: Path, capsys: CaptureFixture[str]
) -> None:
    f = tmp_path / "t.yml"
    f.write_text(
        "id: t\nrequests:\n"
        "  - path: ['{{BaseUrl}}/a']\n"
        "    matchers:\n      - type: status\n        status: [200]\n",
        encoding="utf-8",
    )
    assert validate_templates([f], require_env=False) == 0
    err = capsys.readouterr().err
    assert "path[1] uses unknown placeholders {{BaseUrl}}" in err


def test_validate_warns_on_empty_paths_and_missing_matchers(
    tmp_path: Path, capsys: CaptureFixture[str]
) -> None:
    f = tmp_path / "t.yml"
    f.write_text("id: t\nrequests:\n  - path: []\n", encoding="utf-8")
    assert validate_templates([f], require_env=False) == 0
    err = capsys.readouterr().err
    assert "has no paths and will generate no requests" in err
    assert "has no matchers" in err


def test_validate_require_env(
    tmp_path: Path, monkeypatch: MonkeyPatch, capsys: CaptureFixture[str]
) -> None:
    monkeypatch.delenv("VT_MISSING_TOKEN", raising=False)
    f = tmp_path / "t.yml"
    f.write_text(
        "id: t\nrequests:\n  - path: /\n    headers:\n      Authorization: $VT_MISSING_TOKEN\n"
        "    matchers:\n      - type: status\n        status: [200]\n",
        encoding="utf-8",
    )
    assert validate_templates([f], require_env=True) == 2
    assert "unexpanded env vars found: $VT_MISSING_TOKEN" in capsys.readouterr().err
    assert validate_templates([f], require_env=False) == 0


def test_validate_structural_error_exits(tmp_path: Path) -> None:
    f = tmp_path / "t.yml"
    f.write_text("id: t\nrequests:\n  - method: 1\n", encoding="utf-8")
    with pytest.raises(SystemExit, match="method must be a non-empty string"):
        validate_templates([f], require_env=False)


def test_validate_empty_directory(tmp_path: Path) -> None:
    with pytest.raises(SystemExit, match="no templates found"):
        validate_templates([tmp_path], require_env=False)
