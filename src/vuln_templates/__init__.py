from __future__ import annotations

from .descriptor import HTTP_METHODS, RequestTemplate
from .errors import InvalidRequest, MalformedTarget, TemplateError
from .generator import Generation, generate
from .materialize import GeneratedRequest, materialize_request
from .templating import PathTemplater, expand_path
from .variables import Variable, VariableContext, resolve_variables

__all__ = [
    "HTTP_METHODS",
    "Generation",
    "GeneratedRequest",
    "InvalidRequest",
    "MalformedTarget",
    "PathTemplater",
    "RequestTemplate",
    "TemplateError",
    "Variable",
    "VariableContext",
    "expand_path",
    "generate",
    "materialize_request",
    "resolve_variables",
]
