"""
Resolution of the object and datastream identifiers found in a request path into the
repository entities they refer to.
"""
from enum import Enum
from logging import Logger
from typing import Union
from urllib.parse import unquote

from digrepo.repo import (Repository, RepositoryObject, Datastream, RepositoryException,
                          ObjectNotFound, DatastreamNotFound)
from .errors import RESTError, NotFound

__all__ = [ "ResourceType", "Resource", "ResourceResolver" ]

class ResourceType(Enum):
    NONE = "none"
    OBJECT = "object"
    DATASTREAM = "datastream"

class Resource(object):
    """
    the repository entity a request is addressed to: nothing (for collection-level requests),
    an object, or one of an object's datastreams.  Consumers should branch on :py:attr:`type`.
    """

    def __init__(self, type: ResourceType, value: Union[RepositoryObject, Datastream]=None):
        if (type == ResourceType.NONE) != (value is None):
            raise ValueError("Resource: value must be given for (and only for) type "+
                             "OBJECT or DATASTREAM")
        self._type = type
        self._value = value

    @property
    def type(self) -> ResourceType:
        return self._type

    @property
    def value(self) -> Union[RepositoryObject, Datastream]:
        """
        the resolved object or datastream (None if the type is NONE)
        """
        return self._value

    @property
    def object(self) -> RepositoryObject:
        """
        the object addressed by the request (the parent object if the resource is a datastream)
        or None if no object was addressed.
        """
        if self._type == ResourceType.DATASTREAM:
            return self._value.parent
        return self._value

    @property
    def datastream(self) -> Datastream:
        """
        the resolved datastream or None if the resource is not a datastream
        """
        return self._value if self._type == ResourceType.DATASTREAM else None

    @classmethod
    def for_object(cls, obj: RepositoryObject):
        return cls(ResourceType.OBJECT, obj)

    @classmethod
    def for_datastream(cls, ds: Datastream):
        return cls(ResourceType.DATASTREAM, ds)

    def __repr__(self):
        return "Resource(%s: %r)" % (self._type.name, self._value)

Resource.NONE = Resource(ResourceType.NONE)

class ResourceResolver(object):
    """
    a class that retrieves the object (and possibly its datastream) identified in a request
    path.  The resolver contacts the repository at most once per call.
    """

    def __init__(self, repository: Repository, log: Logger=None):
        self.repo = repository
        self.log = log

    def resolve(self, object_id: str=None, sub_resource_id: str=None) -> Resource:
        """
        return the resource identified by the given (URL-encoded) path parameters.  If
        ``object_id`` is not provided, :py:attr:`Resource.NONE` is returned.  If only
        ``object_id`` is provided, the object is returned even if ``sub_resource_id`` would
        identify one of its datastreams.
        :raises NotFound:   if the object or datastream does not exist
        :raises RESTError:  if the repository failed while retrieving the entities; its code
                            reflects the nature of the failure
        """
        if not object_id:
            return Resource.NONE

        pid = unquote(object_id)
        dsid = unquote(sub_resource_id) if sub_resource_id else None
        try:
            obj = self.repo.get_object(pid)
            if not dsid:
                return Resource.for_object(obj)
            return Resource.for_datastream(obj[dsid])

        except ObjectNotFound as ex:
            raise NotFound("Object %s not found" % pid) from ex
        except DatastreamNotFound as ex:
            raise NotFound("Datastream %s not found in object %s" % (dsid, pid)) from ex
        except RepositoryException as ex:
            what = pid if not dsid else "%s/%s" % (pid, dsid)
            if self.log:
                self.log.error("Failed to retrieve %s from repository: %s", what, str(ex))
            raise RESTError("Failed to retrieve %s: %s" % (what, str(ex)),
                            getattr(ex, 'code', None) or 500) from ex
