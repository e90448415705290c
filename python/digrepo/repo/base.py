"""
The abstract interface to the object repository and the classes representing its contents.

A :py:class:`Repository` hands out :py:class:`RepositoryObject` instances, each a fresh,
detached copy of a stored object.  Changes made to an object (or its datastreams and
relationships) are not persisted until the object is passed back to
:py:meth:`Repository.save_object`.
"""
import hashlib, re
from abc import ABCMeta, abstractmethod
from collections import OrderedDict, namedtuple
from collections.abc import Mapping
from copy import deepcopy
from datetime import datetime, timezone
from logging import Logger
from typing import Iterator, List

from . import (RepositoryException, ObjectNotFound, DatastreamNotFound, RepositoryConflict,
               system)

__all__ = [ "RepositoryObject", "Datastream", "Relationship", "Repository",
            "STATE_ACTIVE", "STATE_INACTIVE", "STATE_DELETED" ]

STATE_ACTIVE = "A"
STATE_INACTIVE = "I"
STATE_DELETED = "D"
STATES = (STATE_ACTIVE, STATE_INACTIVE, STATE_DELETED)

CONTROL_GROUPS = ("X", "M", "R", "E")

_pid_re = re.compile(r'^[A-Za-z0-9.-]+:\S+$')
_dsid_re = re.compile(r'^[A-Za-z_][A-Za-z0-9_.-]*$')

def now_stamp() -> str:
    """
    return the current time as an ISO 8601 timestamp string (UTC)
    """
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace("+00:00", "Z")

def is_valid_pid(pid: str) -> bool:
    """
    return True if the given string is a legal object identifier (of the form namespace:local)
    """
    return bool(pid and _pid_re.match(pid))

Relationship = namedtuple("Relationship", "uri predicate object literal")
Relationship.__doc__ = """
a relationship asserted by an object: the object is the subject of a statement with the predicate
(given as a namespace URI plus local name) and an object (either another object's PID or a literal
value).
"""

def relationship_to_dict(rel: Relationship) -> Mapping:
    return OrderedDict([
        ("predicate", OrderedDict([("value", rel.predicate), ("namespace", rel.uri)])),
        ("object", OrderedDict([("literal", rel.literal), ("value", rel.object)]))
    ])

class Datastream(object):
    """
    a named stream of content attached to an object.  If the datastream is versionable,
    replacing its content or properties preserves the previous state as a version.
    """

    def __init__(self, dsid: str, label: str=None, mimetype: str="application/octet-stream",
                 control_group: str="M", state: str=STATE_ACTIVE, versionable: bool=True,
                 content: bytes=None, created: str=None, parent=None):
        if not _dsid_re.match(dsid or ''):
            raise ValueError("Illegal datastream identifier: "+str(dsid))
        if control_group not in CONTROL_GROUPS:
            raise ValueError("Unsupported control group: "+str(control_group))
        if state not in STATES:
            raise ValueError("Illegal datastream state: "+str(state))
        self._id = dsid
        self.label = label or dsid
        self.mimetype = mimetype
        self.control_group = control_group
        self.state = state
        self.versionable = versionable
        self.parent = parent
        self._content = content or b''
        self._created = created or now_stamp()
        self._versions = []

    @property
    def id(self) -> str:
        return self._id

    @property
    def created(self) -> str:
        """
        the date the current version of this datastream was created
        """
        return self._created

    @property
    def content(self) -> bytes:
        return self._content

    @property
    def size(self) -> int:
        return len(self._content)

    @property
    def checksum(self) -> str:
        """
        the SHA-256 checksum of the current content as a hex string
        """
        return hashlib.sha256(self._content).hexdigest()

    @property
    def versions(self) -> List[Mapping]:
        """
        descriptions of the previous versions of this datastream, most recent first
        """
        return [self._describe_version(v) for v in reversed(self._versions)]

    def _describe_version(self, v):
        return OrderedDict([
            ("label", v['label']),
            ("mimeType", v['mimetype']),
            ("created", v['created']),
            ("size", len(v['content']))
        ])

    def get_version(self, n: int) -> Mapping:
        """
        return the state of the datastream as of a given version, where 0 is the current version,
        1 is the version prior to it, etc.  The returned dictionary includes the version's
        ``content``.
        :raises IndexError:  if no such version exists
        """
        if n < 0:
            raise IndexError("Negative version number: %d" % n)
        if n == 0:
            return self._snapshot()
        return deepcopy(self._versions[-n])

    def _snapshot(self):
        return { "label": self.label, "mimetype": self.mimetype, "created": self._created,
                 "content": self._content }

    def update(self, content: bytes=None, label: str=None, mimetype: str=None, state: str=None,
               versionable: bool=None):
        """
        update the content and/or properties of this datastream.  If this datastream is versionable
        and its content, label, or MIME type changes, the previous state is saved as a version.
        """
        if state is not None and state not in STATES:
            raise ValueError("Illegal datastream state: "+str(state))
        if versionable is not None:
            self.versionable = bool(versionable)
        if state is not None:
            self.state = state

        if content is None and label is None and mimetype is None:
            return

        if self.versionable:
            self._versions.append(self._snapshot())
        if content is not None:
            self._content = content
        if label is not None:
            self.label = label
        if mimetype is not None:
            self.mimetype = mimetype
        self._created = now_stamp()
        if self.parent:
            self.parent.touch()

    def to_dict(self, withversions=False) -> Mapping:
        """
        return a JSON-ready description of this datastream (without its content)
        """
        out = OrderedDict([
            ("dsid", self.id),
            ("label", self.label),
            ("state", self.state),
            ("size", self.size),
            ("mimeType", self.mimetype),
            ("controlGroup", self.control_group),
            ("created", self.created),
            ("versionable", self.versionable),
            ("checksum", self.checksum),
            ("checksumType", "SHA-256")
        ])
        if withversions:
            out['versions'] = self.versions
        return out

    def to_record(self) -> Mapping:
        """
        return the full state of this datastream, including its content and versions, as a
        dictionary suitable for storage
        """
        return {
            "dsid": self.id, "label": self.label, "mimetype": self.mimetype,
            "control_group": self.control_group, "state": self.state,
            "versionable": self.versionable, "created": self._created,
            "content": self._content, "versions": deepcopy(self._versions)
        }

    @classmethod
    def from_record(cls, rec: Mapping, parent=None):
        out = cls(rec['dsid'], rec.get('label'), rec.get('mimetype', "application/octet-stream"),
                  rec.get('control_group', "M"), rec.get('state', STATE_ACTIVE),
                  rec.get('versionable', True), bytes(rec.get('content') or b''), rec.get('created'),
                  parent)
        out._versions = [dict(v, content=bytes(v.get('content') or b''))
                         for v in rec.get('versions', [])]
        return out

    def __repr__(self):
        pid = self.parent.id if self.parent else "?"
        return "Datastream(%s/%s)" % (pid, self.id)


class RepositoryObject(object):
    """
    an object in the repository.  Its datastreams can be accessed by identifier via the
    index operator (``obj["DC"]``); iterating over the object yields its datastreams.
    """

    def __init__(self, pid: str, label: str=None, owner: str=None, state: str=STATE_ACTIVE,
                 models: List[str]=None, created: str=None, modified: str=None,
                 restricted_to: List[str]=None):
        if not is_valid_pid(pid):
            raise ValueError("Illegal object identifier: "+str(pid))
        if state not in STATES:
            raise ValueError("Illegal object state: "+str(state))
        self._id = pid
        self.label = label or ""
        self.owner = owner or ""
        self.state = state
        self.models = list(models or [])
        self.restricted_to = list(restricted_to or [])
        self._created = created or now_stamp()
        self._modified = modified or self._created
        self._dss = OrderedDict()
        self._rels = []

    @property
    def id(self) -> str:
        return self._id

    @property
    def namespace(self) -> str:
        return self._id.split(':', 1)[0]

    @property
    def created(self) -> str:
        return self._created

    @property
    def modified(self) -> str:
        return self._modified

    def touch(self):
        """
        record that this object was just modified
        """
        self._modified = now_stamp()

    def __getitem__(self, dsid: str) -> Datastream:
        try:
            return self._dss[dsid]
        except KeyError:
            raise DatastreamNotFound(self.id, dsid)

    def __contains__(self, dsid: str) -> bool:
        return dsid in self._dss

    def __iter__(self) -> Iterator[Datastream]:
        return iter(list(self._dss.values()))

    def add_datastream(self, ds: Datastream) -> Datastream:
        """
        attach a new datastream to this object
        :raises RepositoryConflict:  if a datastream with the same ID already exists
        """
        if ds.id in self._dss:
            raise RepositoryConflict("Datastream %s already exists in object %s" % (ds.id, self.id))
        ds.parent = self
        self._dss[ds.id] = ds
        self.touch()
        return ds

    def purge_datastream(self, dsid: str):
        """
        remove a datastream (and all of its versions) from this object
        :raises DatastreamNotFound:  if the datastream does not exist
        """
        if dsid not in self._dss:
            raise DatastreamNotFound(self.id, dsid)
        del self._dss[dsid]
        self.touch()

    @property
    def relationships(self) -> List[Relationship]:
        return list(self._rels)

    def add_relationship(self, uri: str, predicate: str, object: str, literal: bool=False):
        """
        assert a relationship with this object as the subject.  Adding a relationship that
        already exists has no effect.
        """
        rel = Relationship(uri, predicate, object, bool(literal))
        if rel not in self._rels:
            self._rels.append(rel)
            self.touch()
        return rel

    def get_relationships(self, uri: str=None, predicate: str=None, object: str=None,
                          literal: bool=None) -> List[Relationship]:
        """
        return the relationships that match all of the given constraints (None matches anything)
        """
        return [r for r in self._rels if (uri is None or r.uri == uri) and
                                         (predicate is None or r.predicate == predicate) and
                                         (object is None or r.object == object) and
                                         (literal is None or r.literal == bool(literal))]

    def remove_relationships(self, uri: str=None, predicate: str=None, object: str=None,
                             literal: bool=None) -> int:
        """
        remove the relationships matching the given constraints
        :return:  the number of relationships removed
        """
        doomed = self.get_relationships(uri, predicate, object, literal)
        self._rels = [r for r in self._rels if r not in doomed]
        if doomed:
            self.touch()
        return len(doomed)

    def to_dict(self) -> Mapping:
        """
        return a JSON-ready description of this object and its datastreams
        """
        return OrderedDict([
            ("pid", self.id),
            ("label", self.label),
            ("owner", self.owner),
            ("models", list(self.models)),
            ("state", self.state),
            ("created", self.created),
            ("modified", self.modified),
            ("datastreams", [ds.to_dict() for ds in self])
        ])

    def to_record(self) -> Mapping:
        return {
            "pid": self.id, "label": self.label, "owner": self.owner, "state": self.state,
            "models": list(self.models), "restricted_to": list(self.restricted_to),
            "created": self._created, "modified": self._modified,
            "datastreams": [ds.to_record() for ds in self._dss.values()],
            "relationships": [list(r) for r in self._rels]
        }

    @classmethod
    def from_record(cls, rec: Mapping):
        out = cls(rec['pid'], rec.get('label'), rec.get('owner'), rec.get('state', STATE_ACTIVE),
                  rec.get('models'), rec.get('created'), rec.get('modified'), rec.get('restricted_to'))
        for dsrec in rec.get('datastreams', []):
            ds = Datastream.from_record(dsrec, out)
            out._dss[ds.id] = ds
        out._rels = [Relationship(*r) for r in rec.get('relationships', [])]
        return out

    def __repr__(self):
        return "RepositoryObject(%s)" % self.id


class Repository(metaclass=ABCMeta):
    """
    the abstract interface to an object store.  Implementations provide the record-level
    storage functions, :py:meth:`_get_record`, :py:meth:`_put_record`, :py:meth:`_delete_record`,
    and :py:meth:`_next_num`.

    This class recognizes the following configuration parameters:

    ``default_namespace``
        the PID namespace to use when minting identifiers for new objects when one is not
        specified (default: "digrepo")
    """

    def __init__(self, config: Mapping=None, log: Logger=None):
        if config is None:
            config = {}
        self.cfg = config
        if not log:
            log = system.getSysLogger()
        self.log = log

    @abstractmethod
    def _get_record(self, pid: str) -> Mapping:
        """
        return the stored record for the object with the given identifier or None if it
        does not exist
        """
        raise NotImplementedError()

    @abstractmethod
    def _put_record(self, rec: Mapping):
        """
        store (insert or replace) the given object record
        """
        raise NotImplementedError()

    @abstractmethod
    def _delete_record(self, pid: str) -> bool:
        """
        remove the record with the given identifier, returning False if it did not exist
        """
        raise NotImplementedError()

    @abstractmethod
    def _next_num(self, namespace: str) -> int:
        """
        return the next unused sequence number for identifiers in the given namespace
        """
        raise NotImplementedError()

    def exists(self, pid: str) -> bool:
        return self._get_record(pid) is not None

    def get_object(self, pid: str) -> RepositoryObject:
        """
        return the object with the given identifier
        :raises ObjectNotFound:  if the object does not exist
        :raises RepositoryException:  if the object could not be retrieved from the store
        """
        rec = self._get_record(pid)
        if rec is None:
            raise ObjectNotFound(pid)
        try:
            return RepositoryObject.from_record(rec)
        except (KeyError, ValueError, TypeError) as ex:
            raise RepositoryException("Corrupted record for object %s: %s" % (pid, str(ex)), cause=ex)

    def mint_id(self, namespace: str=None) -> str:
        """
        return a new, unused identifier in the given namespace
        """
        if not namespace:
            namespace = self.cfg.get('default_namespace', 'digrepo')
        pid = "%s:%d" % (namespace, self._next_num(namespace))
        while self.exists(pid):
            pid = "%s:%d" % (namespace, self._next_num(namespace))
        return pid

    def new_object(self, pid: str=None, namespace: str=None, **props) -> RepositoryObject:
        """
        create a new object that has not yet been ingested.  If ``pid`` is not given, one will
        be minted in the given namespace.
        :param props:  object properties (``label``, ``owner``, ``state``, ``models``)
        :raises ValueError:  if the given identifier is illegal
        """
        if not pid:
            pid = self.mint_id(namespace)
        return RepositoryObject(pid, **props)

    def ingest_object(self, obj: RepositoryObject) -> RepositoryObject:
        """
        add a new object to the repository
        :raises RepositoryConflict:  if an object with the same identifier already exists
        """
        if self.exists(obj.id):
            raise RepositoryConflict("Object already exists: "+obj.id)
        self._put_record(obj.to_record())
        self.log.info("Ingested object %s", obj.id)
        return obj

    def save_object(self, obj: RepositoryObject):
        """
        persist the changes made to an existing object
        :raises ObjectNotFound:  if the object no longer exists in the repository
        """
        if not self.exists(obj.id):
            raise ObjectNotFound(obj.id)
        self._put_record(obj.to_record())

    def purge_object(self, pid: str):
        """
        permanently remove an object from the repository
        :raises ObjectNotFound:  if the object does not exist
        """
        if not self._delete_record(pid):
            raise ObjectNotFound(pid)
        self.log.info("Purged object %s", pid)
