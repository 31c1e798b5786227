from __future__ import annotations


class TemplateError(ValueError):
    """Base class for request generation failures."""


class MalformedTarget(TemplateError):
    def __init__(self, target: object, reason: str) -> None:
        self.target = target
        self.reason = reason
        super().__init__(f"malformed target {target!r}: {reason}")


class InvalidRequest(TemplateError):
    def __init__(self, index: int, url: str, reason: str) -> None:
        self.index = index
        self.url = url
        self.reason = reason
        super().__init__(f"path[{index}] resolved to an invalid request url {url!r}: {reason}")
