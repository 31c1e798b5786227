from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .descriptor import RequestTemplate
from .materialize import GeneratedRequest, materialize_request
from .templating import DEFAULT_TEMPLATER, PathTemplater
from .variables import resolve_variables


@dataclass(frozen=True)
class Generation:
    requests: tuple[GeneratedRequest, ...]
    # The template's own matcher rules, passed through for response evaluation.
    matchers: tuple[Any, ...]

    def __len__(self) -> int:
        return len(self.requests)


def generate(
    template: RequestTemplate, base_url: str, *, templater: PathTemplater = DEFAULT_TEMPLATER
) -> Generation:
    """Builds one request per template path against base_url.

    Raises MalformedTarget when base_url is not an absolute URL, and InvalidRequest
    (with the failing path index) when any resolved path is not addressable. Either
    way no requests are returned.
    """
    context = resolve_variables(base_url)
    requests = tuple(
        materialize_request(template, templater.expand(path, context), index=idx)
        for idx, path in enumerate(template.paths)
    )
    return Generation(requests=requests, matchers=template.matchers)
