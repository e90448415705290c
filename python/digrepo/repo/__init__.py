"""
The interface to the digital object repository that the REST services front.

A repository stores *objects*, each identified by a persistent identifier (PID) of the form
``namespace:local``.  An object carries descriptive properties (label, owner, state, content
models), a set of named *datastreams*--its binary content or metadata streams--and a set of
RDF-style relationships to other objects.

The abstract interface is defined in :py:mod:`~digrepo.repo.base`; implementations include:

:py:mod:`~digrepo.repo.inmem`
    a simple in-memory store, useful for testing
:py:mod:`~digrepo.repo.mongo`
    a store backed by a MongoDB database
"""
from collections.abc import Mapping

from digrepo.base import DigRepoException, DigRepoSystem
from digrepo.base.config import ConfigurationException

system = DigRepoSystem("Object Repository", "repo")

class RepositoryException(DigRepoException):
    """
    a base class for failures accessing the repository.  Each carries an HTTP-compatible status
    ``code`` describing the nature of the failure (500 by default).
    """
    def __init__(self, message=None, code=500, cause=None):
        if not message:
            message = "Problem accessing the repository"
            if cause:
                message += ": " + str(cause)
        super(RepositoryException, self).__init__(message)
        self.code = code
        self.cause = cause

class ObjectNotFound(RepositoryException):
    """
    an exception indicating that a requested object does not exist in the repository
    """
    def __init__(self, pid, message=None, cause=None):
        if not message:
            message = "Object not found: " + str(pid)
        super(ObjectNotFound, self).__init__(message, 404, cause)
        self.pid = pid

class DatastreamNotFound(RepositoryException):
    """
    an exception indicating that an object does not have a requested datastream
    """
    def __init__(self, pid, dsid, message=None, cause=None):
        if not message:
            message = "Datastream %s not found in object %s" % (dsid, pid)
        super(DatastreamNotFound, self).__init__(message, 404, cause)
        self.pid = pid
        self.dsid = dsid

class RepositoryConflict(RepositoryException):
    """
    an exception indicating that an update would conflict with existing content (e.g. creating
    an object or datastream whose identifier is already taken)
    """
    def __init__(self, message, cause=None):
        super(RepositoryConflict, self).__init__(message, 409, cause)

from .base import RepositoryObject, Datastream, Relationship, Repository

def create_repository(config: Mapping):
    """
    create a Repository instance according to the given configuration.  The ``factory``
    parameter selects the implementation: ``inmem`` (the default) or ``mongo``; the latter
    requires the ``db_url`` parameter.
    """
    if not isinstance(config, Mapping):
        raise ConfigurationException("repository config: not a dictionary: "+str(config))

    factory = config.get("factory", "inmem")
    if factory == "inmem":
        from .inmem import InMemoryRepository
        return InMemoryRepository(config)

    if factory == "mongo":
        from .mongo import MongoRepository
        if not config.get("db_url"):
            raise ConfigurationException("Missing required config param: repository.db_url")
        return MongoRepository(config["db_url"], config)

    raise ConfigurationException("repository.factory type not supported: "+str(factory))
