"""
The request dispatch pipeline of the REST service.

A :py:class:`Dispatcher` takes a request on a kind of endpoint, along with the identifiers
extracted from the request path, through the following steps:

  1. determine the effective method (allowing a POST to override it),
  2. resolve the addressed object or datastream,
  3. ensure the user has the permission required for the operation,
  4. extract the request parameters,
  5. invoke the endpoint handler registered for the operation, and
  6. encode the handler's result as the response.

Any failure along the way ends the request with an error response carrying the failure's
HTTP status.
"""
from collections import OrderedDict
from collections.abc import Mapping
from logging import Logger
from typing import Callable

from digrepo.base.config import ConfigurationException
from digrepo.repo import RepositoryException
from digrepo.search import SearchException
from . import system
from .access import AccessEnforcer
from .encode import encode, encode_error, Encoded
from .errors import RESTError, MethodNotAllowed
from .params import RequestContext, extract_parameters, extract_solr_parameters, effective_method
from .permissions import EndpointKind, Method, PermissionMapper
from .resource import Resource, ResourceResolver

__all__ = [ "EndpointRequest", "HandlerRegistry", "Dispatcher" ]

OBJECT_ID = "object_id"
SUB_RESOURCE_ID = "sub_resource_id"

class EndpointRequest(object):
    """
    the inputs to an endpoint handler
    """

    def __init__(self, kind: EndpointKind, method: Method, path_params: Mapping,
                 params: Mapping, resource: Resource, ctx: RequestContext):
        self.kind = kind
        self.method = method
        self.path_params = path_params
        self.params = params
        self.resource = resource
        self.ctx = ctx

    @property
    def object(self):
        """
        the resolved object addressed by the request, or None
        """
        return self.resource.object if self.resource else None

    @property
    def datastream(self):
        """
        the resolved datastream addressed by the request, or None
        """
        return self.resource.datastream if self.resource else None

    @property
    def who(self):
        return self.ctx.who

    def param(self, name: str, defval=None):
        return self.params.get(name, defval)

HandlerFunc = Callable[[EndpointRequest], object]

class HandlerRegistry(object):
    """
    the explicit mapping of REST operations--endpoint kind plus method--to the functions that
    carry them out
    """

    def __init__(self):
        self._handlers = {}

    def register(self, kind: EndpointKind, method: Method, handler: HandlerFunc):
        self._handlers[(kind, method)] = handler

    def get(self, kind: EndpointKind, method: Method) -> HandlerFunc:
        """
        return the handler for the given operation or None if none is registered
        """
        return self._handlers.get((kind, method))

    def __contains__(self, op) -> bool:
        return op in self._handlers

    def validate(self, mapper: PermissionMapper):
        """
        ensure that every operation that is assigned a permission has a handler registered for it
        :raises ConfigurationException:  if any operation is missing a handler
        """
        missing = [f"{k.value} {m.value}" for k, m in mapper.operations()
                   if (k, m) not in self._handlers]
        if missing:
            raise ConfigurationException("No handlers registered for operations: " +
                                         ", ".join(missing))

class Dispatcher(object):
    """
    the engine that carries a REST request through resolution, access control, parameter
    extraction, handling, and encoding.  It returns the response content, content type, and
    status as produced by :py:func:`~digrepo.rest.encode.encode` or, on failure,
    :py:func:`~digrepo.rest.encode.encode_error`.
    """

    def __init__(self, resolver: ResourceResolver, enforcer: AccessEnforcer,
                 registry: HandlerRegistry, log: Logger=None):
        self.resolver = resolver
        self.enforcer = enforcer
        self.registry = registry
        if not log:
            log = system.getSysLogger("dispatch")
        self.log = log

    @property
    def mapper(self) -> PermissionMapper:
        return self.enforcer.mapper

    def is_routed(self, kind: EndpointKind, method: Method) -> bool:
        """
        return True if the given operation is supported by this service
        """
        if kind != EndpointKind.SOLR and not self.mapper.supports(kind, method):
            return False
        return (kind, method) in self.registry

    def handle(self, kind: EndpointKind, path_params: Mapping, ctx: RequestContext) -> Encoded:
        """
        process a request on an endpoint of the given kind
        :param EndpointKind kind:  the kind of endpoint being addressed
        :param dict  path_params:  the identifiers extracted from the request path:
                                   ``object_id`` and ``sub_resource_id``
        :param RequestContext ctx: the request being handled
        :return:  a 3-tuple holding the response body, its content type, and the HTTP status
        """
        try:
            path_params = OrderedDict((k, v) for k, v in (path_params or {}).items() if v)
            method = effective_method(ctx)
            if not self.is_routed(kind, method):
                raise MethodNotAllowed("%s not supported on %s resources" % (method.value, kind.value))

            resource = self.resolver.resolve(path_params.get(OBJECT_ID),
                                             path_params.get(SUB_RESOURCE_ID))
            self.enforcer.require_access(kind, method, resource)

            params = self._parameters(ctx, method)
            req = EndpointRequest(kind, method, path_params, params, resource, ctx)
            return encode(self._invoke(req), ctx)

        except RESTError as ex:
            return self._fail(ex, kind, ctx)
        except Exception as ex:
            return self._unexpected(ex, kind, ctx)

    def handle_solr(self, path_params: Mapping, ctx: RequestContext) -> Encoded:
        """
        process a search request.  The query is expected as the ``query`` path parameter.
        """
        kind = EndpointKind.SOLR
        try:
            path_params = OrderedDict((k, v) for k, v in (path_params or {}).items() if v)
            method = effective_method(ctx)
            self.enforcer.require_access(kind, method)

            params = extract_solr_parameters(ctx, method)
            if (kind, method) not in self.registry:
                raise MethodNotAllowed("Search service is not installed")
            req = EndpointRequest(kind, method, path_params, params, Resource.NONE, ctx)
            return encode(self._invoke(req), ctx)

        except RESTError as ex:
            return self._fail(ex, kind, ctx)
        except Exception as ex:
            return self._unexpected(ex, kind, ctx)

    def _parameters(self, ctx: RequestContext, method: Method) -> Mapping:
        params = extract_parameters(ctx, method)
        if ctx.method == 'POST' and 'method' in params:
            params = OrderedDict(params)
            del params['method']
        return params

    def _invoke(self, req: EndpointRequest):
        handler = self.registry.get(req.kind, req.method)
        try:
            return handler(req)
        except (RepositoryException, SearchException) as ex:
            raise RESTError(str(ex), ex.code) from ex

    def _fail(self, ex: RESTError, kind: EndpointKind, ctx: RequestContext) -> Encoded:
        if ex.code >= 500:
            self.log.error("%s request on %s failed: %s", ctx.method, kind.value, ex.message)
        else:
            self.log.debug("%s request on %s rejected (%d): %s", ctx.method, kind.value,
                           ex.code, ex.message)
        return encode_error(ex)

    def _unexpected(self, ex: Exception, kind: EndpointKind, ctx: RequestContext) -> Encoded:
        self.log.exception("Unexpected failure handling %s request on %s: %s",
                           ctx.method, kind.value, str(ex))
        return encode_error(RESTError("Internal Server Error", 500))
