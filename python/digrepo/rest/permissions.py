"""
The mapping of REST operations--an endpoint kind plus an HTTP method--to the permission a user
must hold to carry them out.
"""
from collections.abc import Mapping
from enum import Enum

from digrepo.base.config import ConfigurationException

class EndpointKind(Enum):
    """
    the category of REST resource being addressed
    """
    OBJECT = "object"
    DATASTREAM = "datastream"
    DATASTREAM_TOKEN = "datastream_token"
    RELATIONSHIP = "relationship"
    SOLR = "solr"

class Method(Enum):
    """
    the HTTP methods supported by the REST interface
    """
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"

VIEW_OBJECTS = "view objects"
INGEST_OBJECTS = "ingest objects"
MANAGE_OBJECT_PROPERTIES = "manage object properties"
PURGE_OBJECTS = "purge objects"
ADD_DATASTREAMS = "add datastreams"
EDIT_DATASTREAMS = "edit datastreams"
PURGE_DATASTREAMS = "purge datastreams"
MANAGE_RELATIONSHIPS = "manage object relationships"
SOLR_SEARCH = "perform solr search"

DEFAULT_PERMISSIONS = {
    EndpointKind.OBJECT: {
        Method.GET:    VIEW_OBJECTS,
        Method.POST:   INGEST_OBJECTS,
        Method.PUT:    MANAGE_OBJECT_PROPERTIES,
        Method.DELETE: PURGE_OBJECTS
    },
    EndpointKind.DATASTREAM: {
        Method.GET:    VIEW_OBJECTS,
        Method.POST:   ADD_DATASTREAMS,
        Method.PUT:    EDIT_DATASTREAMS,
        Method.DELETE: PURGE_DATASTREAMS
    },
    EndpointKind.DATASTREAM_TOKEN: {
        Method.GET:    VIEW_OBJECTS
    },
    EndpointKind.RELATIONSHIP: {
        Method.GET:    VIEW_OBJECTS,
        Method.POST:   MANAGE_RELATIONSHIPS,
        Method.DELETE: MANAGE_RELATIONSHIPS
    }
}

class PermissionMapper:
    """
    a lookup table of the permission required for each REST operation.  Only the operations in
    the table are routed by the service; asking for the permission of any other combination is
    a programming error.

    The default table can be customized via a configuration dictionary of the form
    ``{ endpoint_kind: { METHOD: permission_name } }``; a configured operation not found in the
    default table is added to it.
    """

    def __init__(self, config: Mapping=None):
        self._table = dict((k, dict(v)) for k, v in DEFAULT_PERMISSIONS.items())
        if config:
            self._load(config)

    def _load(self, config: Mapping):
        for kind, perms in config.items():
            try:
                kind = EndpointKind(kind)
                if kind == EndpointKind.SOLR:
                    raise ValueError("solr access is not controlled by the permission table")
                if not isinstance(perms, Mapping):
                    raise TypeError("not a dictionary: "+str(perms))
                for meth, perm in perms.items():
                    self._table.setdefault(kind, {})[Method(meth.upper())] = str(perm)
            except (ValueError, TypeError, AttributeError) as ex:
                raise ConfigurationException("permissions: bad entry for %s: %s" % (kind, str(ex)),
                                             cause=ex)

    def supports(self, kind: EndpointKind, method: Method) -> bool:
        """
        return True if the given operation is one that has a permission assigned to it
        """
        return method in self._table.get(kind, {})

    def methods_for(self, kind: EndpointKind):
        """
        return the methods supported for the given kind of endpoint
        """
        return [m for m in Method if m in self._table.get(kind, {})]

    def operations(self):
        """
        iterate through all of the (kind, method) pairs in the table
        """
        for kind, perms in self._table.items():
            for meth in perms:
                yield (kind, meth)

    def permission_for(self, kind: EndpointKind, method: Method) -> str:
        """
        return the name of the permission required to apply the given method to the given kind of
        endpoint.
        :raises KeyError:  if the combination is not supported
        """
        return self._table[kind][method]
