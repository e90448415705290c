"""
Handlers for the ``datastream`` endpoints: retrieving, adding, updating, and purging an object's
datastreams.
"""
import re
from collections import OrderedDict

from digrepo.repo import Datastream
from digrepo.repo.base import STATES, CONTROL_GROUPS
from ..dispatch import EndpointRequest
from ..errors import RESTError, BadRequest, NotFound
from ..permissions import EndpointKind
from .base import EndpointHandlers, as_bool, as_int

_token = r"[!#$%&'*+.^_`|~0-9A-Za-z-]+"
_mimetype_re = re.compile(r'%s/%s([ \t]*;[ \t]*%s=(%s|"[\x20\x21\x23-\x7e]*"))*' %
                          (_token, _token, _token, _token))

def _mimetype(value):
    """
    return the given MIME type if it is a legal media type of the form type/subtype[;params]
    :raises BadRequest:  if it is not
    """
    if value is None:
        return None
    if not isinstance(value, str) or not _mimetype_re.fullmatch(value):
        raise BadRequest("mimeType: not a legal media type: "+repr(value))
    return value

def _content_bytes(content) -> bytes:
    if content is None:
        return None
    if isinstance(content, bytes):
        return content
    if isinstance(content, str):
        return content.encode('utf-8')
    raise BadRequest("content: must be given as a string")

class DatastreamHandlers(EndpointHandlers):
    kind = EndpointKind.DATASTREAM

    def do_GET(self, req: EndpointRequest):
        """
        return a datastream's content or, if the ``content`` parameter is false, its description.
        Without a datastream identifier, the descriptions of all of the object's datastreams are
        returned.  The ``version`` parameter selects a previous version (1 being the most recent
        prior one).
        """
        ds = req.datastream
        if ds is None:
            return [d.to_dict() for d in self.require_object(req)]

        version = as_int(req.param('version', 0), 'version')
        try:
            snapshot = ds.get_version(version)
        except IndexError:
            raise NotFound("Version %d of datastream %s not found" % (version, ds.id))

        if as_bool(req.param('content', True), 'content'):
            req.ctx.content_type = snapshot['mimetype']
            return snapshot['content']

        if version:
            return OrderedDict([
                ("dsid", ds.id),
                ("version", version),
                ("label", snapshot['label']),
                ("mimeType", snapshot['mimetype']),
                ("created", snapshot['created']),
                ("size", len(snapshot['content']))
            ])
        return ds.to_dict(withversions=True)

    def do_POST(self, req: EndpointRequest):
        obj = self.require_object(req)
        if req.datastream is not None:
            raise RESTError("Datastream %s already exists in object %s" %
                            (req.datastream.id, obj.id), 409)

        dsid = self.require(req, 'dsid')
        props = {
            "label": req.param('label'),
            "mimetype": _mimetype(req.param('mimeType', "application/octet-stream")),
            "control_group": str(req.param('controlGroup', "M")).upper(),
            "state": str(req.param('state', "A")).upper()[:1],
            "versionable": as_bool(req.param('versionable', True), 'versionable'),
            "content": _content_bytes(req.param('content'))
        }
        if props['control_group'] not in CONTROL_GROUPS:
            raise BadRequest("controlGroup: not one of "+", ".join(CONTROL_GROUPS))
        try:
            ds = Datastream(dsid, **props)
        except ValueError as ex:
            raise BadRequest(str(ex))

        obj.add_datastream(ds)
        self.repo.save_object(obj)
        self.created(req)
        return ds.to_dict()

    def do_PUT(self, req: EndpointRequest):
        ds = self._require_datastream(req)
        state = req.param('state')
        if state is not None:
            state = str(state).upper()[:1]
            if state not in STATES:
                raise BadRequest("Unrecognized datastream state: "+state)
        versionable = req.param('versionable')
        if versionable is not None:
            versionable = as_bool(versionable, 'versionable')

        ds.update(content=_content_bytes(req.param('content')), label=req.param('label'),
                  mimetype=_mimetype(req.param('mimeType')), state=state,
                  versionable=versionable)
        self.repo.save_object(ds.parent)
        return ds.to_dict()

    def do_DELETE(self, req: EndpointRequest):
        ds = self._require_datastream(req)
        obj = ds.parent
        obj.purge_datastream(ds.id)
        self.repo.save_object(obj)
        return None

    def _require_datastream(self, req: EndpointRequest) -> Datastream:
        if req.datastream is None:
            raise BadRequest("Datastream identifier required")
        return req.datastream
