"""
Enforcement of access control on REST operations.

The :py:class:`AccessEnforcer` decides whether the requesting user may carry out an operation on
a resolved resource by asking an :py:class:`AccessPolicy` whether the user holds the permission
that the :py:class:`~digrepo.rest.permissions.PermissionMapper` assigns to the operation.  When
access is denied, the caller is told whether the user should authenticate (401) or is simply not
allowed (403).
"""
from abc import ABCMeta, abstractmethod
from collections.abc import Mapping
from logging import Logger
from typing import Iterable, Set

from digrepo.base.config import ConfigurationException
from digrepo.repo import RepositoryObject, Datastream
from digrepo.web.agent import Agent
from .errors import Unauthorized, Forbidden
from .permissions import EndpointKind, Method, PermissionMapper, SOLR_SEARCH
from .resource import Resource, ResourceType

__all__ = [ "AccessPolicy", "RolePolicy", "AccessEnforcer" ]

ANONYMOUS_ROLE = "anonymous"
AUTHENTICATED_ROLE = "authenticated"

class AccessPolicy(metaclass=ABCMeta):
    """
    the interface for answering whether the current user holds a named permission, either
    generally or with respect to a particular object or datastream.
    """

    @abstractmethod
    def object_access(self, permission: str, obj: RepositoryObject) -> bool:
        raise NotImplementedError()

    @abstractmethod
    def datastream_access(self, permission: str, ds: Datastream) -> bool:
        raise NotImplementedError()

    @abstractmethod
    def user_access(self, permission: str) -> bool:
        raise NotImplementedError()

    @abstractmethod
    def user_is_anonymous(self) -> bool:
        raise NotImplementedError()

class RolePolicy(AccessPolicy):
    """
    an AccessPolicy that grants permissions to roles via configuration.  A user's roles are:
    ``anonymous`` if the user is not authenticated; otherwise, ``authenticated`` plus all of the
    groups attached to the user's :py:class:`~digrepo.web.agent.Agent`.

    The configuration (the ``access`` parameter of the service configuration) recognizes:

    ``roles``
        a dictionary mapping role names to the list of permissions granted to it
    ``superusers``
        a list of user identities that are granted all permissions

    An object may further be limited to certain users via its ``restricted_to`` list of user
    and group names.  An object's owner always passes this restriction.
    """

    def __init__(self, config: Mapping, who: Agent, log: Logger=None):
        if config is None:
            config = {}
        self.cfg = config
        self.who = who
        self.log = log

        roles = config.get('roles', {})
        if not isinstance(roles, Mapping):
            raise ConfigurationException("access.roles: not a dictionary: "+str(roles))
        self._grants = self._granted_to(roles, self.roles)

    @property
    def roles(self) -> Set[str]:
        """
        the names of the roles the current user has
        """
        if self.user_is_anonymous():
            return set([ANONYMOUS_ROLE])
        return set([AUTHENTICATED_ROLE] + [g for g in self.who.groups if g])

    @staticmethod
    def _granted_to(roles: Mapping, held: Iterable[str]) -> Set[str]:
        out = set()
        for role in held:
            perms = roles.get(role, [])
            if isinstance(perms, str):
                perms = [perms]
            out.update(perms)
        return out

    def is_superuser(self) -> bool:
        return not self.user_is_anonymous() and \
               self.who.actor in self.cfg.get('superusers', [])

    def user_is_anonymous(self) -> bool:
        return not self.who or self.who.is_anonymous

    def user_access(self, permission: str) -> bool:
        return self.is_superuser() or permission in self._grants

    def _passes_restriction(self, obj: RepositoryObject) -> bool:
        if not obj or not obj.restricted_to or self.is_superuser():
            return True
        if self.user_is_anonymous():
            return False
        if obj.owner and obj.owner == self.who.actor:
            return True
        allowed = set(obj.restricted_to)
        return self.who.actor in allowed or bool(allowed.intersection(self.who.groups))

    def object_access(self, permission: str, obj: RepositoryObject) -> bool:
        return self.user_access(permission) and self._passes_restriction(obj)

    def datastream_access(self, permission: str, ds: Datastream) -> bool:
        return self.user_access(permission) and self._passes_restriction(ds.parent)

class AccessEnforcer(object):
    """
    a class that checks whether the user behind a request may carry out the requested operation.
    """

    def __init__(self, policy: AccessPolicy, search=None, mapper: PermissionMapper=None,
                 log: Logger=None):
        """
        :param AccessPolicy policy:  the policy reflecting the permissions of the requesting user
        :param SolrClient   search:  the search client; if None, the search subsystem is
                                     considered unavailable
        :param PermissionMapper mapper:  the table of permissions required for each operation
        """
        self.policy = policy
        self.search = search
        if not mapper:
            mapper = PermissionMapper()
        self.mapper = mapper
        self.log = log

    def search_available(self) -> bool:
        return bool(self.search is not None and self.search.available)

    def check_access(self, kind: EndpointKind, method: Method, resource: Resource=None) -> bool:
        """
        return True if the requesting user may apply the given method to the given resource
        """
        if kind == EndpointKind.SOLR:
            return self.search_available() and self.policy.user_access(SOLR_SEARCH)

        if resource is None:
            resource = Resource.NONE
        perm = self.mapper.permission_for(kind, method)
        if resource.type == ResourceType.OBJECT:
            return self.policy.object_access(perm, resource.value)
        if resource.type == ResourceType.DATASTREAM:
            return self.policy.datastream_access(perm, resource.value)
        return self.policy.user_access(perm)

    def require_access(self, kind: EndpointKind, method: Method, resource: Resource=None):
        """
        ensure that the requesting user may apply the given method to the given resource
        :raises Unauthorized:  if access is denied and the user is not authenticated
        :raises Forbidden:     if access is denied to an authenticated user
        """
        if self.check_access(kind, method, resource):
            return

        if self.log:
            self.log.info("Access denied: %s %s on %s", method.value, kind.value,
                          repr(resource or Resource.NONE))
        if self.policy.user_is_anonymous():
            raise Unauthorized()
        raise Forbidden()
