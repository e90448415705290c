"""
a module defining the representation of the client identity making a request on a repository
service.

An :py:class:`Agent` identifies who is behind a request: the software *vehicle* that delivered
it and the *actor*--an authenticated identity, either human or functional--that authorizes it.
It also carries the information used to make authorization decisions: an agent class and a set
of groups (roles) the actor belongs to.
"""
import json
from collections import OrderedDict
from copy import deepcopy
from typing import Iterable, Mapping, Tuple

PUBLIC_AGENT_CLASS = "public"
ADMIN_AGENT_CLASS = "admin"
INVALID_AGENT_CLASS = "invalid"
ANONYMOUS_USER = "anonymous"

class Agent(object):
    """
    a class describing the client agent that is making a request on a repository resource.  An
    agent's identifier has two main parts: a *vehicle*--the software that made the request--and
    an *actor*--the identity that authorizes it.

    Two properties are provided for assessing authorization.  The :py:attr:`groups` property
    is a list of named collections of users (i.e. roles) that can be granted permissions.  The
    :py:attr:`agent_class` represents a dynamic group assigned to the agent based on how it was
    authenticated; it always appears as the first group in :py:attr:`groups`.  An agent with
    the class set to ``INVALID`` presented credentials that could not be validated and should
    be treated as unauthenticated.
    """
    USER: str = "user"
    AUTO: str = "auto"  # for functional identities
    UNKN: str = ""
    PUBLIC: str = PUBLIC_AGENT_CLASS
    ADMIN: str = ADMIN_AGENT_CLASS
    INVALID: str = INVALID_AGENT_CLASS
    ANONYMOUS: str = ANONYMOUS_USER
    default_class = PUBLIC_AGENT_CLASS

    def __init__(self, vehicle: str, actortype: str, actorid: str = None, agclass: str = None,
                 agents: Iterable[str] = None, groups: Iterable[str] = None, **kwargs):
        """
        create an agent
        :param str   vehicle:  a name for the software component that this agent originates from.
        :param str actortype:  one of USER, AUTO, or UNKN, indicating the type of actor the identifier
                               represents
        :param str   actorid:  the unique identifier for the actor (i.e. a username)
        :param str   agclass:  an agent classification name (see :py:attr:`agent_class`).
        :param list[str] agents:  the list of upstream agents that this agent is acting on behalf of
                               (optional).
        :param list[str] groups:  a list of names of permission groups that the actor should be
                               considered part of (optional).
        :param kwargs:  arbitrary key-value pairs that will be saved as custom properties of the agent
        """
        self._vehicle = vehicle

        if actortype not in (self.USER, self.AUTO, self.UNKN):
            raise ValueError("Actor: actortype not one of "+str((self.USER, self.AUTO)))
        self._actor_type = actortype
        if not agclass:
            agclass = self.default_class
        self._agclass = agclass

        self._groups = set()
        if groups:
            self._groups = set(groups)

        self._agents = []
        if agents:
            self._agents = list(agents)
        if not actorid:
            actorid = self.ANONYMOUS
        self._actor = actorid
        self._md = OrderedDict((k,v) for k,v in kwargs.items() if v is not None)

    @property
    def actor(self) -> str:
        """
        an identifier for the specific client actor making a request.
        """
        return self._actor

    @property
    def actor_type(self) -> str:
        """
        the category of the actor behind the request: USER for real people, AUTO for
        functional identities, or UNKN.
        """
        return self._actor_type

    @property
    def vehicle(self) -> str:
        return self._vehicle

    @property
    def agent_class(self) -> str:
        """
        a named category for the agent intended to confer a set of permissions automatically.
        This class will be listed as the first group in the groups property
        """
        return self._agclass

    @property
    def id(self) -> str:
        """
        an identifier for this agent, of the form *vehicle*/*actor*.
        """
        return f"{self.vehicle}/{self.actor}"

    @property
    def groups(self) -> Tuple[str]:
        """
        return the names of permission groups currently attached to this agent.
        """
        return tuple([self._agclass] + sorted(self._groups))

    @property
    def is_anonymous(self) -> bool:
        """
        True if this agent does not represent an authenticated actor.  Agents that presented
        invalid credentials are considered anonymous.
        """
        return self._actor == self.ANONYMOUS or self._agclass == self.INVALID

    def attach_group(self, group: str):
        """
        Attach the given group to this user to indicate that the user should be considered part of
        this group.
        """
        self._groups.add(group)

    def detach_group(self, group: str):
        """
        Remove this user from the given group.  Nothing is done if the group is not already attached
        to this user.
        """
        self._groups.discard(group)

    def is_in_group(self, group: str):
        return group in self.groups

    @property
    def delegated(self) -> Tuple[str]:
        """
        a list representing a chain of delegated agents--tools or services--that led to this
        request.  This information is provided by clients through unauthenticated means and
        should _not_ be used to make authorization decisions.
        """
        return tuple(self._agents)

    def get_prop(self, propname: str, defval=None):
        """
        return an actor property with the given name.  These arbitrary properties are typically
        set at construction time from authentication credentials.
        """
        return self._md.get(propname, defval)

    def set_prop(self, propname: str, val):
        """
        set an actor property with the given name to a given value.  To unset a property, provide
        None as the value.
        """
        if val is None:
            self._md.pop(propname, None)
        else:
            self._md[propname] = val

    def to_dict(self, withmd=False) -> Mapping:
        """
        return a dictionary describing this agent that can be converted to JSON directly
        """
        out = OrderedDict([
            ("vehicle", self.vehicle),
            ("actor", self.actor),
            ("type", self.actor_type),
            ("class", self.agent_class)
        ])
        if self._groups:
            out['groups'] = sorted(self._groups)
        if self._agents:
            out['delegated'] = list(self._agents)
        if withmd and self._md:
            out['actor_md'] = deepcopy(self._md)
        return out

    def serialize(self, indent=None, withmd=False):
        kw = {}
        if indent:
            kw['indent'] = indent
        return json.dumps(self.to_dict(withmd), **kw)

    def __str__(self):
        return self.id

    def __repr__(self):
        return "Agent(%s)" % self.id
