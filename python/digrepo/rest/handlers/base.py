"""
Common support for the REST endpoint handlers
"""
from collections.abc import Mapping
from logging import Logger

from digrepo.repo import Repository, RepositoryObject
from ..dispatch import EndpointRequest, HandlerRegistry
from ..errors import BadRequest
from ..permissions import EndpointKind, Method

_true_vals = ("true", "1", "yes", "on", "t", "y")
_false_vals = ("false", "0", "no", "off", "f", "n", "")

def as_bool(value, name: str="parameter") -> bool:
    """
    interpret a request parameter value as a boolean
    :raises BadRequest:  if the value is not recognized as a boolean
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        if value.lower() in _true_vals:
            return True
        if value.lower() in _false_vals:
            return False
    raise BadRequest("%s: not a boolean value: %s" % (name, str(value)))

def as_int(value, name: str="parameter") -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise BadRequest("%s: not an integer: %s" % (name, str(value)))

def as_list(value) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]

class EndpointHandlers(object):
    """
    a base class for a set of handlers, one per supported method, for a kind of REST endpoint.
    Subclasses set :py:attr:`kind` and implement handler methods named after the HTTP methods
    they support (``do_GET``, ``do_POST``, etc.); each takes an
    :py:class:`~digrepo.rest.dispatch.EndpointRequest` and returns the result to be encoded.
    """
    kind: EndpointKind = None

    def __init__(self, repo: Repository, config: Mapping=None, log: Logger=None):
        self.repo = repo
        if config is None:
            config = {}
        self.cfg = config
        self.log = log

    def register_with(self, registry: HandlerRegistry):
        """
        register this instance's handler methods with the given registry
        """
        for meth in Method:
            func = getattr(self, "do_"+meth.value, None)
            if func:
                registry.register(self.kind, meth, func)

    def require(self, req: EndpointRequest, name: str):
        """
        return the value of a required request parameter
        :raises BadRequest:  if the parameter was not provided
        """
        val = req.param(name)
        if val is None or val == '':
            raise BadRequest("Missing required parameter: "+name)
        return val

    def require_object(self, req: EndpointRequest) -> RepositoryObject:
        if req.object is None:
            raise BadRequest("Object identifier required")
        return req.object

    def created(self, req: EndpointRequest):
        """
        mark the response as reporting the creation of a resource
        """
        req.ctx.status = 201
