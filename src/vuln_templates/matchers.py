from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable

if TYPE_CHECKING:
    from .transport import Observation

MATCHER_TYPES = ("status", "size", "word", "regex")
CONDITIONS = ("or", "and")
PARTS = ("body", "header", "all")


@dataclass(frozen=True)
class Matcher:
    type: str
    condition: str = "or"
    part: str = "body"
    negative: bool = False
    status: tuple[int, ...] = ()
    size: tuple[int, ...] = ()
    words: tuple[str, ...] = ()
    regex: tuple[re.Pattern[str], ...] = ()

    def match(self, observation: Observation) -> bool:
        matched = self._match(observation)
        return not matched if self.negative else matched

    def _match(self, observation: Observation) -> bool:
        if self.type == "status":
            return observation.status in self.status
        if self.type == "size":
            return observation.num_bytes in self.size

        corpus = _corpus(observation, self.part)
        if self.type == "word":
            hits = (w in corpus for w in self.words)
        else:
            hits = (rx.search(corpus) is not None for rx in self.regex)
        return all(hits) if self.condition == "and" else any(hits)


def _corpus(observation: Observation, part: str) -> str:
    header_text = "".join(f"{k}: {v}\r\n" for k, v in observation.headers.items())
    if part == "header":
        return header_text
    if part == "all":
        return header_text + observation.body
    return observation.body


def _int_tuple(value: Any, *, name: str) -> tuple[int, ...]:
    if not isinstance(value, list) or not value:
        raise SystemExit(f"{name} must be a non-empty list of integers")
    for v in value:
        if not isinstance(v, int) or isinstance(v, bool):
            raise SystemExit(f"{name} must be a non-empty list of integers")
    return tuple(value)


def _str_tuple(value: Any, *, name: str) -> tuple[str, ...]:
    if not isinstance(value, list) or not value:
        raise SystemExit(f"{name} must be a non-empty list of strings")
    for v in value:
        if not isinstance(v, str) or not v:
            raise SystemExit(f"{name} must be a list of non-empty strings")
    return tuple(value)


def _choice(value: Any, *, name: str, choices: tuple[str, ...], default: str) -> str:
    if value is None:
        return default
    if not isinstance(value, str) or value.lower() not in choices:
        raise SystemExit(f"{name} must be one of: {', '.join(choices)}")
    return value.lower()


def compile_matcher(raw: Any, *, name: str) -> Matcher:
    if not isinstance(raw, dict):
        raise SystemExit(f"{name} must be a mapping")

    kind = raw.get("type")
    if not isinstance(kind, str) or kind.lower() not in MATCHER_TYPES:
        raise SystemExit(f"{name}.type must be one of: {', '.join(MATCHER_TYPES)}")
    kind = kind.lower()

    negative = raw.get("negative", False)
    if not isinstance(negative, bool):
        raise SystemExit(f"{name}.negative must be a boolean")

    common: dict[str, Any] = {
        "type": kind,
        "condition": _choice(
            raw.get("condition"), name=f"{name}.condition", choices=CONDITIONS, default="or"
        ),
        "part": _choice(raw.get("part"), name=f"{name}.part", choices=PARTS, default="body"),
        "negative": negative,
    }

    if kind == "status":
        return Matcher(**common, status=_int_tuple(raw.get("status"), name=f"{name}.status"))
    if kind == "size":
        return Matcher(**common, size=_int_tuple(raw.get("size"), name=f"{name}.size"))
    if kind == "word":
        return Matcher(**common, words=_str_tuple(raw.get("words"), name=f"{name}.words"))

    compiled: list[re.Pattern[str]] = []
    for idx, pattern in enumerate(_str_tuple(raw.get("regex"), name=f"{name}.regex"), start=1):
        try:
            compiled.append(re.compile(pattern))
        except re.error as exc:
            raise SystemExit(f"{name}.regex[{idx}] is not a valid regex: {exc}") from exc
    return Matcher(**common, regex=tuple(compiled))


def evaluate(matchers: Iterable[Any], observation: Observation) -> bool:
    """True when any matcher matches. Rules that aren't Matcher objects are ignored."""
    return any(m.match(observation) for m in matchers if isinstance(m, Matcher))
