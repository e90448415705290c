"""
The REST interface to the digital object repository.

The service maps HTTP methods and URL paths onto operations on repository objects, their
datastreams, and their relationships, as well as onto searches of the repository's Solr index.
Each request passes through a common pipeline (see :py:mod:`~digrepo.rest.dispatch`) that
resolves the addressed resource, enforces access control, extracts the request parameters,
invokes an endpoint handler, and encodes the result as JSON.

The WSGI application that hosts the service is provided by :py:mod:`~digrepo.rest.wsgi`.
"""
from digrepo.base import DigRepoSystem

system = DigRepoSystem("REST Service", "rest")

from .errors import *
from .permissions import EndpointKind, Method, PermissionMapper
from .resource import Resource, ResourceType, ResourceResolver
from .access import AccessPolicy, RolePolicy, AccessEnforcer
from .params import RequestContext, extract_parameters, extract_solr_parameters, effective_method
from .encode import encode, encode_error
from .dispatch import Dispatcher, HandlerRegistry, EndpointRequest
