from __future__ import annotations

from pathlib import Path

import pytest
from _pytest.monkeypatch import MonkeyPatch

from vuln_templates.loader import load_template, load_templates
from vuln_templates.matchers import Matcher


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_load_template(tmp_path: Path) -> None:
    f = _write(
        tmp_path / "git.yml",
        "id: git-config\n"
        "info:\n  name: Git config\n  severity: Medium\n  author: someone\n"
        "requests:\n"
        "  - method: post\n"
        "    path:\n"
        "      - '{{BaseURL}}/.git/config'\n"
        "      - '{{BaseURL}}/.git/HEAD'\n"
        "    headers:\n      X-Retry: 1\n"
        "    body: a=b\n"
        "    matchers:\n"
        "      - type: word\n        words: ['[core]']\n",
    )
    t = load_template(f)
    assert t.id == "git-config"
    assert t.name == "Git config"
    assert t.severity == "medium"
    assert t.author == "someone"
    assert t.source == str(f)
    (block,) = t.requests
    assert block.method == "POST"
    assert block.paths == ("{{BaseURL}}/.git/config", "{{BaseURL}}/.git/HEAD")
    assert dict(block.headers) == {"X-Retry": "1"}
    assert block.body == "a=b"
    assert isinstance(block.matchers[0], Matcher)


def test_single_path_string_and_defaults(tmp_path: Path) -> None:
    f = _write(
        tmp_path / "t.yml",
        "id: t\nrequests:\n  - path: '{{BaseURL}}/'\n",
    )
    t = load_template(f)
    assert t.name == "t"
    assert t.severity == "info"
    block = t.requests[0]
    assert block.method == "GET"
    assert block.paths == ("{{BaseURL}}/",)
    assert block.body == ""
    assert block.matchers == ()


def test_env_vars_are_expanded(tmp_path: Path, monkeypatch: MonkeyPatch) -> None:
    monkeypatch.setenv("SCAN_TOKEN", "secret")
    f = _write(
        tmp_path / "t.yml",
        "id: t\nrequests:\n  - path: '/'\n    headers:\n      Authorization: Bearer ${SCAN_TOKEN}\n",
    )
    assert load_template(f).requests[0].headers["Authorization"] == "Bearer secret"


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("requests: []\n", "id must be a non-empty string"),
        ("id: t\n", "template must include a requests list"),
        ("id: t\nrequests:\n  - method: FETCH\n    path: /\n", "method must be one of"),
        ("id: t\nrequests:\n  - path: [1]\n", r"path\[1\] must be a non-empty string"),
        ("id: t\nrequests:\n  - path: /\n    body: [1]\n", "body must be a string"),
        ("- just a list\n", "template must be a YAML mapping"),
    ],
)
def test_structural_errors(tmp_path: Path, text: str, message: str) -> None:
    f = _write(tmp_path / "t.yml", text)
    with pytest.raises(SystemExit, match=message):
        load_template(f)


def test_load_templates_from_directory(tmp_path: Path) -> None:
    d = tmp_path / "templates"
    d.mkdir()
    _write(d / "b.yaml", "id: b\nrequests:\n  - path: /b\n")
    _write(d / "a.yml", "id: a\nrequests:\n  - path: /a\n")
    _write(d / "notes.txt", "ignored")
    assert [t.id for t in load_templates([d])] == ["a", "b"]


def test_load_templates_rejects_duplicate_ids(tmp_path: Path) -> None:
    a = _write(tmp_path / "a.yml", "id: same\nrequests:\n  - path: /a\n")
    b = _write(tmp_path / "b.yml", "id: same\nrequests:\n  - path: /b\n")
    with pytest.raises(SystemExit, match="duplicate template id 'same'"):
        load_templates([a, b])


def test_load_templates_rejects_missing_path(tmp_path: Path) -> None:
    with pytest.raises(SystemExit, match="template path does not exist"):
        load_templates([tmp_path / "missing.yml"])
