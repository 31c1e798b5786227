from __future__ import annotations

import re
from dataclasses import dataclass, field

from .variables import VariableContext

DEFAULT_OPEN_MARKER = "{{"
DEFAULT_CLOSE_MARKER = "}}"


@dataclass(frozen=True)
class PathTemplater:
    """Single-pass placeholder substitution for request paths.

    The placeholder name is the raw text between the markers (no trimming, matched
    case-sensitively). Unknown names expand to an empty string, and substituted values
    are never rescanned. An opening marker without a matching close is left as-is.
    """

    open_marker: str = DEFAULT_OPEN_MARKER
    close_marker: str = DEFAULT_CLOSE_MARKER
    _pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.open_marker or not self.close_marker:
            raise ValueError("placeholder markers must be non-empty strings")
        pattern = re.compile(
            re.escape(self.open_marker) + r"(.*?)" + re.escape(self.close_marker), re.DOTALL
        )
        object.__setattr__(self, "_pattern", pattern)

    def expand(self, path: str, context: VariableContext) -> str:
        return self._pattern.sub(lambda m: context.lookup(m.group(1)), path)

    def placeholders(self, path: str) -> list[str]:
        seen: list[str] = []
        for m in self._pattern.finditer(path):
            name = m.group(1)
            if name not in seen:
                seen.append(name)
        return seen


DEFAULT_TEMPLATER = PathTemplater()


def expand_path(path: str, context: VariableContext) -> str:
    return DEFAULT_TEMPLATER.expand(path, context)
